import csv
import json

import pytest

from CascadingDosExperiment import CascadingDosExperiment, activity_window, probe_time
from Config import Config
from ExperimentConfig import ExperimentConfig, StackSettings
from ExperimentErrors import ConfigurationError, EngineError, ResourceError
from LoadCalibrator import ConstantVariable, ExponentialVariable


def _config(tmp_path, **overrides):
    values = dict(station_count=6, duration=203.0, attacking_utilization=1.0,
                  ordinary_utilization=0.14, packet_length=1500,
                  output_root=str(tmp_path / "out"))
    values.update(overrides)
    return ExperimentConfig(**values)


def test_run_name_format(tmp_path):
    cfg = _config(tmp_path)
    assert cfg.run_name() == "u_0=1.00rho=0.14T=1500"
    assert cfg.run_dir() == tmp_path / "out" / "u_0=1.00rho=0.14T=1500"


def test_attacking_flow_uses_attacking_load(tmp_path):
    exp = CascadingDosExperiment(_config(tmp_path))
    assert exp.traffic[2].on_time == ConstantVariable(1.0)
    assert exp.traffic[2].off_time == ConstantVariable(0.0)
    for k in (0, 1):
        assert isinstance(exp.traffic[k].off_time, ExponentialVariable)
        assert exp.traffic[k].expected_utilization == pytest.approx(0.14)


def test_activity_windows(tmp_path):
    exp = CascadingDosExperiment(_config(tmp_path))
    attack = exp.traffic[2]
    assert (attack.start_time, attack.stop_time) == (53.0, 153.0)

    starts = exp.ordinary_start_times
    assert starts == pytest.approx([3.1, 3.11])
    assert all(a < b for a, b in zip(starts, starts[1:]))
    assert all(s < attack.start_time for s in starts)
    assert all(exp.traffic[k].stop_time == 203.0 for k in (0, 1))


def test_attacking_window_clipped_to_run(tmp_path):
    exp = CascadingDosExperiment(_config(tmp_path, duration=100.0))
    assert exp.traffic[2].stop_time == 100.0
    for params in exp.traffic.values():
        assert params.stop_time <= 100.0


def test_window_helpers_follow_config(tmp_path):
    exp = CascadingDosExperiment(_config(tmp_path, station_count=10))
    for flow in exp.topology.flows:
        start, stop = activity_window(flow, 203.0)
        assert probe_time(flow) < start
    assert len(set(exp.probe_times.values())) == len(exp.topology.flows)


@pytest.mark.parametrize("overrides", [
    {"station_count": 5},
    {"station_count": 0},
    {"duration": 0},
    {"duration": -3.0},
    {"packet_length": 0},
    {"attacking_utilization": 1.5},
    {"ordinary_utilization": -0.2},
])
def test_invalid_config_rejected_before_anything_runs(tmp_path, backend_cls, overrides):
    cfg = _config(tmp_path, **overrides)
    with pytest.raises(ConfigurationError):
        CascadingDosExperiment(cfg, backend_factory=backend_cls)
    assert backend_cls.instances == []
    assert not (tmp_path / "out").exists()


def test_stagger_reaching_attack_start_rejected(tmp_path, monkeypatch):
    monkeypatch.setattr(Config, "REST_STAGGER", 60.0)
    with pytest.raises(ConfigurationError):
        CascadingDosExperiment(_config(tmp_path))


def test_run_drives_backend(tmp_path, backend_cls):
    out = CascadingDosExperiment(_config(tmp_path), backend_factory=backend_cls).run()
    backend = backend_cls.instances[0]

    assert backend.calls[0] == "build_topology"
    assert backend.calls.count("install_flow") == 3
    assert backend.calls.index("run_until") > backend.calls.index("enable_statistics")
    assert backend.calls[-1] == "destroy"
    assert backend.destroyed

    assert backend.stack == StackSettings(rts_cts_threshold=4692480)
    assert backend.stats_prefix == str(out.stats_prefix)
    assert out.key == (1.0, 0.14, 1500)
    assert out.sim_time_end == 203.0


def test_warmup_probes_precede_traffic(tmp_path, backend_cls):
    CascadingDosExperiment(_config(tmp_path), backend_factory=backend_cls).run()
    backend = backend_cls.instances[0]

    assert sorted(backend.probes_sent) == [(0, 10, 9), (1, 10, 9), (2, 10, 9)]
    times = [t for t, _ in backend.events]
    assert len(set(times)) == 3
    for (t, _), k in zip(backend.events, range(3)):
        assert t < backend.flows[k].start_time


def test_handshake_enabled_lowers_threshold(tmp_path, backend_cls):
    CascadingDosExperiment(_config(tmp_path, handshake_enabled=True), backend_factory=backend_cls).run()
    assert backend_cls.instances[0].stack.rts_cts_threshold == 100


def test_run_writes_records(tmp_path, backend_cls):
    out = CascadingDosExperiment(_config(tmp_path), backend_factory=backend_cls).run()

    assert out.run_dir.is_dir()
    with open(out.run_dir / "flows.csv", newline="") as f:
        rows = list(csv.DictReader(f))
    assert [r["flow_index"] for r in rows] == ["0", "1", "2"]
    assert [r["is_attacking"] for r in rows] == ["False", "False", "True"]
    assert rows[2]["on_kind"] == "constant"
    assert rows[0]["off_kind"] == "exponential"
    assert float(rows[0]["off_mean"]) == pytest.approx(0.012286, abs=1e-6)

    summary = json.loads((out.run_dir / "run_summary.json").read_text())
    assert summary["flow_count"] == 3
    assert summary["attacking_flow"] == 2
    assert len(summary["devices"]) == 6
    assert summary["devices"][0]["totals"]["tx"] == 30
    assert summary["devices"][5]["file"].endswith("nodes_005_000")
    assert (summary["devices"][5]["node_id"], summary["devices"][5]["device_id"]) == (5, 0)


def test_repeated_runs_share_paths_and_artifacts(tmp_path, backend_cls):
    first = CascadingDosExperiment(_config(tmp_path), backend_factory=backend_cls).run()
    names = sorted(p.name for p in first.run_dir.iterdir())
    second = CascadingDosExperiment(_config(tmp_path), backend_factory=backend_cls).run()

    assert first.run_dir == second.run_dir
    assert sorted(p.name for p in second.run_dir.iterdir()) == names
    assert len(backend_cls.instances) == 2


def test_unwritable_output_fails_fast(tmp_path, backend_cls):
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    exp = CascadingDosExperiment(_config(tmp_path, output_root=str(blocker)), backend_factory=backend_cls)

    with pytest.raises(ResourceError):
        exp.run()
    assert backend_cls.instances == []


def test_idle_ordinary_flows_fail_before_output(tmp_path, backend_cls):
    exp = CascadingDosExperiment(_config(tmp_path, ordinary_utilization=0.0), backend_factory=backend_cls)

    with pytest.raises(EngineError):
        exp.run()
    assert backend_cls.instances == []
    assert not (tmp_path / "out").exists()


def test_idle_attacking_flow_runs(tmp_path, backend_cls):
    out = CascadingDosExperiment(_config(tmp_path, attacking_utilization=0.0),
                                 backend_factory=backend_cls).run()
    assert out.run_dir.is_dir()
    assert backend_cls.instances[0].flows[2].on_time == ConstantVariable(0.0)


def test_engine_failure_is_wrapped_and_engine_destroyed(tmp_path, backend_cls):
    class FailingBackend(backend_cls):
        def run_until(self, deadline):
            raise RuntimeError("unsupported configuration")

    exp = CascadingDosExperiment(_config(tmp_path), backend_factory=FailingBackend)
    with pytest.raises(EngineError) as excinfo:
        exp.run()

    assert isinstance(excinfo.value.__cause__, RuntimeError)
    assert backend_cls.instances[0].destroyed
    assert exp.backend is None
