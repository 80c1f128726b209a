"""
DataCollector: per-run flow records and link statistics summary

This module records what every run handed to the traffic generator and
condenses the per-device athstats output written by ns-3:

1. flows.csv: calibrated on/off parameters and activity window of each flow
2. run_summary.json: per-device totals of the athstats counters

Athstats files hold one line per reporting interval:
    tx rx tx_altrate short_retry long_retry exceeded_retry
    phy_rx_ok phy_rx_error phy_tx rssi rate
The last two columns are constant placeholders and are not loaded.

Copyright (c) 2025 CDoS-WiFi Research Team
Licensed under the MIT License
"""

import csv
import json
import re
from pathlib import Path
import time as time_module
import numpy as np
from Config import Config
from ExperimentErrors import ResourceError

ATHSTATS_COLUMNS = [
    'tx', 'rx', 'tx_altrate', 'short_retry', 'long_retry',
    'exceeded_retry', 'phy_rx_ok', 'phy_rx_error', 'phy_tx'
]

FLOW_HEADERS = [
    'flow_index', 'is_attacking', 'sender_id', 'receiver_id',
    'sender_x', 'receiver_x', 'dest_ip', 'port', 'packet_size',
    'on_kind', 'on_value', 'off_kind', 'off_mean', 'data_rate_bps',
    'expected_utilization', 'start_time', 'stop_time'
]

_DEVICE_FILE = re.compile(r"_(\d+)_(\d+)$")


def _kind(variable):
    return type(variable).__name__.replace("Variable", "").lower()


class DataCollector:
    """
    Collects per-flow rows in memory and mirrors them to flows.csv.
    """
    def __init__(self):
        self.flow_data = []
        self.run_dir = None
        self.flows_file = None
        self.simulation_start_time = None
        self.sim_time_end_seconds = 0.0
        self.wall_clock_seconds = 0.0

    def init_run_files(self, run_dir):
        """
        Start the records of a new run.

        Args:
            run_dir: Existing run directory

        Raises:
            ResourceError: if flows.csv cannot be written
        """
        self.run_dir = Path(run_dir)
        self.flows_file = self.run_dir / Config.FLOWS_FILE
        self.flow_data = []
        try:
            with open(self.flows_file, 'w', newline='') as f:
                csv.writer(f).writerow(FLOW_HEADERS)
        except OSError as e:
            raise ResourceError(f"cannot write {self.flows_file}: {e}") from e

        self.simulation_start_time = time_module.time()

    def record_flow(self, flow, params):
        """Record the traffic parameters handed to one sender"""
        row = {
            'flow_index': flow.index,
            'is_attacking': flow.is_attacking,
            'sender_id': flow.sender.id,
            'receiver_id': flow.receiver.id,
            'sender_x': flow.sender.position[0],
            'receiver_x': flow.receiver.position[0],
            'dest_ip': flow.receiver.address,
            'port': flow.port,
            'packet_size': params.packet_size,
            'on_kind': _kind(params.on_time),
            'on_value': params.on_time.mean,
            'off_kind': _kind(params.off_time),
            'off_mean': params.off_time.mean,
            'data_rate_bps': params.data_rate_bps,
            'expected_utilization': params.expected_utilization,
            'start_time': params.start_time,
            'stop_time': params.stop_time,
        }

        self.flow_data.append(row)
        self._append_to_csv(self.flows_file, row)

    def _append_to_csv(self, filename, row_dict):
        """
        Internal method: Append a single row to CSV file using DictWriter.

        Args:
            filename: Path to CSV file
            row_dict: Dictionary of column_name → value
        """
        try:
            with open(filename, 'a', newline='') as f:
                dw = csv.DictWriter(f, fieldnames=FLOW_HEADERS)
                dw.writerow({k: row_dict.get(k, "") for k in FLOW_HEADERS})
        except OSError as e:
            raise ResourceError(f"cannot write {filename}: {e}") from e

    @staticmethod
    def load_athstats(path):
        """
        Load one athstats file.

        Returns:
            2-D array with one row per reporting interval and one column per
            ATHSTATS_COLUMNS entry (zero rows for an empty file)
        """
        with open(path) as f:
            lines = [line for line in f if line.strip()]
        if not lines:
            return np.zeros((0, len(ATHSTATS_COLUMNS)))
        return np.loadtxt(lines, usecols=range(len(ATHSTATS_COLUMNS)), ndmin=2)

    def summarize_statistics(self, stats_prefix):
        """
        Total the athstats counters of every device written under `stats_prefix`.

        Creates run_summary.json in the run directory containing:
        - Per-device totals and interval counts
        - Flow count and attacking flow index
        - Simulation timing (ns-3 sim time vs wall-clock time)

        Returns:
            Dictionary containing summary statistics
        """
        stats_prefix = Path(stats_prefix)
        devices = []
        for path in sorted(stats_prefix.parent.glob(stats_prefix.name + "_*")):
            match = _DEVICE_FILE.search(path.name)
            if not match:
                continue
            data = self.load_athstats(path)
            totals = data.sum(axis=0) if len(data) else np.zeros(len(ATHSTATS_COLUMNS))
            devices.append({
                'node_id': int(match.group(1)),
                'device_id': int(match.group(2)),
                'file': str(path),
                'intervals': int(data.shape[0]),
                'totals': {name: int(v) for name, v in zip(ATHSTATS_COLUMNS, totals)},
            })
        devices.sort(key=lambda d: (d['node_id'], d['device_id']))

        self.wall_clock_seconds = time_module.time() - (self.simulation_start_time or time_module.time())
        attacking = [row['flow_index'] for row in self.flow_data if row['is_attacking']]
        summary = {
            'flow_count': len(self.flow_data),
            'attacking_flow': attacking[0] if attacking else None,
            'sim_time_seconds': self.sim_time_end_seconds,
            'wall_clock_seconds': self.wall_clock_seconds,
            'devices': devices,
            'data_files': {
                'flows': str(self.flows_file) if self.flows_file else "",
                'stats_prefix': str(stats_prefix),
            }
        }

        if self.run_dir is not None:
            summary_file = self.run_dir / Config.SUMMARY_FILE
            try:
                with open(summary_file, 'w') as f:
                    json.dump(summary, f, indent=2)
            except OSError as e:
                raise ResourceError(f"cannot write {summary_file}: {e}") from e

        return summary
