"""
CDoS-WiFi: Cascading Denial-of-Service Experiment on Ad-hoc Wi-Fi

This module implements the orchestrator of a single experiment run. A run
places an even number of stations in a line inside a one-floor office
building, pairs them into sender/receiver flows and drives every sender with
an on/off UDP source calibrated to a target channel utilization.

Key Responsibilities:
    - Parameter validation: rejects unusable configurations before any
      simulator object exists
    - Load calibration: derives on/off traffic parameters per sender, with
      the last flow acting as the attacking flow
    - Activity windows: attacking flow active on an interior interval,
      ordinary flows started at staggered offsets until the end of the run
    - ARP warm-up: one small probe per flow before any real traffic
    - Output: per-run directory keyed by (u_0, rho, T), athstats per device,
      flows.csv and run_summary.json

Topology (6 stations):
    node 5 <- node 4    node 3 <- node 2    node 1 <- node 0
    (flow 2, attacking)  (flow 1)            (flow 0)

Research Context:
    With 1500 byte packets the saturated attacking flow triggers a cascading
    DoS on its neighbours; with 200 byte packets the cascade does not occur.
    See L. Xin and D. Starobinski, "Mitigation of Cascading Denial of Service
    Attacks on Wi-Fi Networks", IEEE CNS 2018.

Copyright (c) 2025 CDoS-WiFi Research Team
Licensed under the MIT License
"""

import math
from pathlib import Path
from typing import Dict, List, Tuple

from Config import Config
from DataCollector import DataCollector
from ExperimentConfig import ExperimentConfig, RunOutput
from ExperimentErrors import ConfigurationError, EngineError, ExperimentError, ResourceError
from LoadCalibrator import TrafficParams, derive_traffic_params
from Topology import Flow, LinearTopology


def default_backend():
    """Return the ns-3 backend class (imports the ns-3 bindings)"""
    from Ns3Backend import Ns3Backend
    return Ns3Backend


def activity_window(flow: Flow, duration: float) -> Tuple[float, float]:
    """
    Start and stop time of a flow's traffic.

    The attacking flow runs on [ATTACK_START, ATTACK_STOP), clipped to the
    run. Ordinary flow k starts at REST_START + k * REST_STAGGER and runs to
    the end of the run.
    """
    if flow.is_attacking:
        return Config.ATTACK_START, min(Config.ATTACK_STOP, duration)
    return Config.REST_START + flow.index * Config.REST_STAGGER, duration


def probe_time(flow: Flow) -> float:
    """Start time of the ARP warm-up probe of a flow"""
    return Config.PROBE_START + flow.index * Config.PROBE_STAGGER


class CascadingDosExperiment:
    def __init__(self, config: ExperimentConfig, backend_factory=None):
        """
        Validate a configuration and derive everything a run needs.

        No simulator object is created here; a configuration error is raised
        before anything is scheduled.

        Args:
            config: Inputs of the run
            backend_factory: Callable taking StackSettings and returning a
                backend; defaults to the ns-3 backend

        Attributes:
            topology: Linear station layout and flows
            traffic: Flow index -> TrafficParams (with activity window)
            probe_times: Flow index -> warm-up probe time
            data_collector: Writes flows.csv and run_summary.json
        """
        config.validate()
        self.config = config
        self.topology = LinearTopology(config.station_count)
        self.traffic: Dict[int, TrafficParams] = self._calibrate_flows()
        self.probe_times: Dict[int, float] = {f.index: probe_time(f) for f in self.topology.flows}
        self._check_schedule()

        self._backend_factory = backend_factory
        self.backend = None
        self.data_collector = DataCollector()

    def _calibrate_flows(self) -> Dict[int, TrafficParams]:
        """
        Derive the on/off parameters of every sender.

        The attacking flow uses the attacking utilization; every other flow
        uses the ordinary one.
        """
        cfg = self.config
        traffic = {}
        for flow in self.topology.flows:
            load = cfg.attacking_utilization if flow.is_attacking else cfg.ordinary_utilization
            params = derive_traffic_params(cfg.packet_length, cfg.link_rate, load,
                                           is_attacking=flow.is_attacking)
            start, stop = activity_window(flow, cfg.duration)
            traffic[flow.index] = params.with_window(start, stop)
        return traffic

    def _check_schedule(self) -> None:
        attack_start = self.traffic[self.topology.attacking_flow.index].start_time
        for flow in self.topology.ordinary_flows:
            start = self.traffic[flow.index].start_time
            if start >= attack_start:
                raise ConfigurationError(
                    f"flow {flow.index} would start at {start:.3f}s, "
                    f"not before the attacking flow ({attack_start:.3f}s)")
        for flow in self.topology.flows:
            if self.probe_times[flow.index] >= self.traffic[flow.index].start_time:
                raise ConfigurationError(
                    f"warm-up probe of flow {flow.index} would not precede its traffic")

    @property
    def ordinary_start_times(self) -> List[float]:
        return [self.traffic[f.index].start_time for f in self.topology.ordinary_flows]

    def _check_sampleable(self) -> None:
        """
        Reject on/off times the engine cannot sample before anything is written.

        An ordinary flow at utilization 0 gets an exponential off time with an
        infinite mean.

        Raises:
            EngineError: if any flow has a non-finite on or off mean
        """
        for index, params in self.traffic.items():
            for name, variable in (("on", params.on_time), ("off", params.off_time)):
                if not math.isfinite(variable.mean):
                    raise EngineError(
                        f"run {self.config.run_name()}: flow {index} {name} time "
                        f"has mean {variable.mean}, which cannot be sampled")

    def _prepare_output(self) -> Path:
        """
        Create the run directory.

        Raises:
            ResourceError: if the directory cannot be created
        """
        run_dir = self.config.run_dir()
        try:
            run_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise ResourceError(f"cannot create output directory {run_dir}: {e}") from e
        return run_dir

    def _schedule_arp_warmup(self) -> None:
        """
        Schedule one single-packet probe per flow, sender to receiver.

        The probes populate the ARP caches before any real traffic starts.
        Nothing waits for them; a lost probe only means the first data packet
        of that flow triggers ARP itself.
        """
        for flow in self.topology.flows:
            send_probe = self.backend.create_probe_sender(flow, Config.PROBE_SIZE, Config.PROBE_PORT)
            self.backend.schedule(self.probe_times[flow.index], send_probe)

        print(f"[warmup] {len(self.topology.flows)} ARP probes scheduled "
              f"({min(self.probe_times.values()):.3f}s - {max(self.probe_times.values()):.3f}s)")

    def run(self) -> RunOutput:
        """
        Execute the complete run lifecycle.

        Execution Flow:
            1. Create the run directory and flows.csv
            2. Build the backend with this run's stack settings
            3. Install stations, devices and addressing
            4. Install one on/off sender and one sink per flow
            5. Schedule the ARP warm-up probes
            6. Enable athstats on every device
            7. Run the simulator until config.duration
            8. Destroy the simulator (always)
            9. Summarize the athstats output

        Returns:
            RunOutput for the run directory

        Raises:
            ResourceError: output cannot be written
            EngineError: ns-3 rejected the scenario or failed while running
        """
        cfg = self.config
        self._check_sampleable()
        run_dir = self._prepare_output()
        stats_prefix = run_dir / Config.STATS_PREFIX
        self.data_collector.init_run_files(run_dir)

        print(f"[experiment] {cfg.run_name()}: {cfg.station_count} stations, "
              f"{cfg.duration:g}s, RTS/CTS {'on' if cfg.handshake_enabled else 'off'}")

        factory = self._backend_factory or default_backend()
        try:
            self.backend = factory(cfg.stack_settings())
            self.backend.build_topology(self.topology)

            for flow in self.topology.flows:
                params = self.traffic[flow.index]
                self.backend.install_flow(flow, params)
                self.data_collector.record_flow(flow, params)

            self._schedule_arp_warmup()
            self.backend.enable_statistics(str(stats_prefix))

            print(f"Starting simulator run (stop time: {cfg.duration}s)...")
            sim_end = self.backend.run_until(cfg.duration)
            print(f"Simulator finished at {sim_end}s")

        except ExperimentError:
            raise
        except Exception as e:
            raise EngineError(f"run {cfg.run_name()} failed: {e}") from e
        finally:
            if self.backend is not None:
                self.backend.destroy()
                self.backend = None

        self.data_collector.sim_time_end_seconds = float(sim_end)
        summary = self.data_collector.summarize_statistics(stats_prefix)
        print(f"✅ {cfg.run_name()}: {len(summary['devices'])} device statistics files")

        return RunOutput(
            run_dir=run_dir,
            stats_prefix=stats_prefix,
            key=(cfg.attacking_utilization, cfg.ordinary_utilization, cfg.packet_length),
            flows=list(self.data_collector.flow_data),
            sim_time_end=float(sim_end),
        )
