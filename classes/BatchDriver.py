"""
BatchDriver: reproducible series of CDoS-WiFi runs

Seeds every random number generator once, then runs one experiment per
packet length, in order. Runs never overlap, and the first failing run ends
the batch.

Copyright (c) 2025 CDoS-WiFi Research Team
Licensed under the MIT License
"""

import random
from typing import List, Sequence

import numpy as np

from CascadingDosExperiment import CascadingDosExperiment, default_backend
from Config import Config
from ExperimentConfig import ExperimentConfig, RunOutput


def seed_all(seed: int, backend) -> None:
    """Seed ns-3, Python random and numpy"""
    backend.set_seed(seed)
    random.seed(seed)
    np.random.seed(seed)


def run_batch(seed: int = Config.SEED,
              station_count: int = Config.N_STATIONS,
              duration: float = Config.STOP_TIME,
              attacking_utilization: float = Config.ATTACK_LOAD,
              ordinary_utilization: float = Config.REST_LOAD,
              packet_lengths: Sequence[int] = Config.PKT_LENGTHS,
              handshake_enabled: bool = Config.RTS_CTS_ENABLED,
              output_root: str = Config.OUTPUT_ROOT,
              backend=None) -> List[RunOutput]:
    """
    Run one experiment per packet length with a single seed.

    Args:
        seed: RNG seed fixed once for the whole batch
        station_count: Stations per run
        duration: Simulated seconds per run
        attacking_utilization: Offered load of the attacking flow
        ordinary_utilization: Offered load of the other flows
        packet_lengths: Packet lengths to run, in order
        handshake_enabled: RTS/CTS on or off
        output_root: Directory holding the run directories
        backend: Backend class (set_seed + constructor); defaults to ns-3

    Returns:
        One RunOutput per packet length, in order

    Raises:
        ExperimentError: from the first run that fails; later runs are not
            attempted
    """
    backend = backend or default_backend()

    configs = [
        ExperimentConfig(
            handshake_enabled=handshake_enabled,
            station_count=station_count,
            duration=duration,
            attacking_utilization=attacking_utilization,
            ordinary_utilization=ordinary_utilization,
            packet_length=int(length),
            output_root=output_root,
        )
        for length in packet_lengths
    ]
    for cfg in configs:
        cfg.validate()

    seed_all(seed, backend)
    print(f"🔧 Batch: seed={seed}, {len(configs)} runs, lengths={[c.packet_length for c in configs]}")

    outputs = []
    for cfg in configs:
        experiment = CascadingDosExperiment(cfg, backend_factory=backend)
        outputs.append(experiment.run())
    return outputs
