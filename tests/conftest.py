import os
import sys
from pathlib import Path

import pytest

# The modules live flat under classes/; make them importable when the project
# is not installed.
CLASSES_DIR = os.path.join(os.path.dirname(os.path.dirname(__file__)), "classes")
if CLASSES_DIR not in sys.path:
    sys.path.insert(0, CLASSES_DIR)


def athstats_line(tx=0, rx=0, short_retry=0, long_retry=0, exceeded=0,
                  phy_rx_ok=0, phy_rx_error=0, phy_tx=0):
    return "%8u %8u %7u %7u %7u %6u %6u %6u %7u %4u %3uM\n" % (
        tx, rx, 0, short_retry, long_retry, exceeded,
        phy_rx_ok, phy_rx_error, phy_tx, 0, 0)


class RecordingBackend:
    """In-process stand-in for the ns-3 backend that records every call."""

    seeds = []
    instances = []

    def __init__(self, stack):
        self.stack = stack
        self.calls = []
        self.topology = None
        self.flows = {}
        self.events = []
        self.probes_sent = []
        self.stats_prefix = None
        self.destroyed = False
        type(self).instances.append(self)

    @classmethod
    def set_seed(cls, seed, run=None):
        cls.seeds.append(seed)

    def build_topology(self, topology):
        self.calls.append("build_topology")
        self.topology = topology

    def install_flow(self, flow, params):
        self.calls.append("install_flow")
        self.flows[flow.index] = params

    def create_probe_sender(self, flow, size, port):
        def send_probe():
            self.probes_sent.append((flow.index, size, port))
        return send_probe

    def schedule(self, time, callback):
        self.calls.append("schedule")
        self.events.append((time, callback))

    def enable_statistics(self, prefix):
        self.calls.append("enable_statistics")
        self.stats_prefix = prefix
        for station in self.topology.stations:
            Path(f"{prefix}_{station.id:03d}_000").write_text(
                athstats_line(tx=10 + station.id, rx=5, short_retry=1)
                + athstats_line(tx=20, rx=7, long_retry=2))

    def run_until(self, deadline):
        self.calls.append("run_until")
        for time, callback in sorted(self.events, key=lambda e: e[0]):
            if time <= deadline:
                callback()
        return float(deadline)

    def destroy(self):
        self.calls.append("destroy")
        self.destroyed = True


@pytest.fixture
def backend_cls():
    """Fresh RecordingBackend subclass so seeds/instances do not leak between tests."""
    return type("RecordingBackend", (RecordingBackend,), {"seeds": [], "instances": []})
