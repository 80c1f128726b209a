import json
import math

import pytest

pytest.importorskip("ns")

from CascadingDosExperiment import CascadingDosExperiment  # noqa: E402
from ExperimentConfig import ExperimentConfig  # noqa: E402
from ExperimentErrors import EngineError  # noqa: E402
from LoadCalibrator import ConstantVariable, ExponentialVariable  # noqa: E402
from Ns3Backend import has_attribute, make_random_variable, retry_limit_path  # noqa: E402


def test_constant_variable_maps_to_ns3():
    rv = make_random_variable(ConstantVariable(0.002))
    assert rv.GetValue() == pytest.approx(0.002)


def test_exponential_variable_maps_to_ns3():
    rv = make_random_variable(ExponentialVariable(0.0123))
    assert rv.GetValue() >= 0.0


def test_unbounded_exponential_rejected():
    with pytest.raises(EngineError):
        make_random_variable(ExponentialVariable(math.inf))


def test_retry_limit_avoids_obsolete_attribute():
    path = retry_limit_path("/NodeList/0/DeviceList/*/$ns3::WifiNetDevice")
    assert path is not None
    if has_attribute("ns3::WifiMac", "FrameRetryLimit"):
        assert path.endswith("/Mac/FrameRetryLimit")


def test_short_runs_complete_in_one_process(tmp_path):
    """Two real runs back to back, handshake off then on"""
    for handshake in (False, True):
        cfg = ExperimentConfig(handshake_enabled=handshake, station_count=6, duration=5.0,
                               output_root=str(tmp_path / ("rts" if handshake else "plain")))
        out = CascadingDosExperiment(cfg).run()

        assert out.sim_time_end == pytest.approx(5.0)
        stats_files = sorted(p.name for p in out.run_dir.glob("nodes_*"))
        assert len(stats_files) == 6
        summary = json.loads((out.run_dir / "run_summary.json").read_text())
        assert [d["node_id"] for d in summary["devices"]] == list(range(6))
        assert summary["devices"][0]["intervals"] >= 1
