"""
ExperimentConfig: per-run inputs, stack settings and run outputs

ExperimentConfig captures one run's parameters, StackSettings carries the
Wi-Fi/IP stack values that the backend applies to the nodes it builds, and
RunOutput is the handle returned once a run has completed.

Copyright (c) 2025 CDoS-WiFi Research Team
Licensed under the MIT License
"""

import math
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Tuple

from Config import Config
from ExperimentErrors import ConfigurationError
from LoadCalibrator import check_utilization


@dataclass(frozen=True)
class StackSettings:
    """
    Wi-Fi / IP stack values applied to the nodes of a single run.

    Attributes:
        rts_cts_threshold: Frames larger than this (bytes) use RTS/CTS
        mtu: Wi-Fi net device MTU
        fragmentation_threshold: MAC fragmentation threshold (bytes)
        max_slrc: Long retry limit
        data_mode: Constant-rate data mode
        control_mode: Constant-rate control mode
        arp_dead_timeout: ARP dead-entry timeout (seconds)
        arp_alive_timeout: ARP alive-entry timeout (seconds)
    """
    rts_cts_threshold: int = Config.RTS_CTS_THRESHOLD_OFF
    mtu: int = Config.WIFI_MTU
    fragmentation_threshold: int = Config.FRAGMENTATION_THRESHOLD
    max_slrc: int = Config.MAX_SLRC
    data_mode: str = Config.DATA_MODE
    control_mode: str = Config.CONTROL_MODE
    arp_dead_timeout: float = Config.ARP_DEAD_TIMEOUT
    arp_alive_timeout: float = Config.ARP_ALIVE_TIMEOUT

    @classmethod
    def for_handshake(cls, handshake_enabled: bool) -> "StackSettings":
        threshold = Config.RTS_CTS_THRESHOLD_ON if handshake_enabled else Config.RTS_CTS_THRESHOLD_OFF
        return cls(rts_cts_threshold=threshold)


@dataclass(frozen=True)
class ExperimentConfig:
    """
    Inputs of one experiment run.

    Attributes:
        handshake_enabled: Enable RTS/CTS for all payload sizes used
        station_count: Number of stations (even, >= 2)
        duration: Simulated run length in seconds
        attacking_utilization: Offered load of the attacking flow (u_0)
        ordinary_utilization: Offered load of every other flow (rho)
        packet_length: UDP payload length in bytes (T)
        link_rate: Nominal link rate in bits/second
        output_root: Directory holding every run directory
    """
    handshake_enabled: bool = Config.RTS_CTS_ENABLED
    station_count: int = Config.N_STATIONS
    duration: float = Config.STOP_TIME
    attacking_utilization: float = Config.ATTACK_LOAD
    ordinary_utilization: float = Config.REST_LOAD
    packet_length: int = 1500
    link_rate: int = Config.LINK_RATE_BPS
    output_root: str = Config.OUTPUT_ROOT

    @property
    def flow_count(self) -> int:
        return self.station_count // 2

    @property
    def attacking_flow_index(self) -> int:
        return self.flow_count - 1

    def validate(self) -> None:
        """Raise ConfigurationError unless every parameter is usable"""
        if isinstance(self.station_count, bool) or not isinstance(self.station_count, int):
            raise ConfigurationError(f"station count must be an integer, got {self.station_count!r}")
        if self.station_count < 2 or self.station_count % 2:
            raise ConfigurationError(f"station count must be even and >= 2, got {self.station_count}")
        if not (self.duration > 0) or math.isinf(self.duration):
            raise ConfigurationError(f"duration must be a positive number of seconds, got {self.duration!r}")
        if self.packet_length <= 0:
            raise ConfigurationError(f"packet length must be positive, got {self.packet_length!r}")
        if self.link_rate <= 0:
            raise ConfigurationError(f"link rate must be positive, got {self.link_rate!r}")
        check_utilization(self.attacking_utilization, "attacking flow utilization")
        check_utilization(self.ordinary_utilization, "ordinary flow utilization")

    def stack_settings(self) -> StackSettings:
        return StackSettings.for_handshake(self.handshake_enabled)

    def run_name(self) -> str:
        """Directory name keyed by (u_0, rho, T)"""
        return "u_0=%1.2frho=%.2fT=%d" % (self.attacking_utilization,
                                          self.ordinary_utilization,
                                          self.packet_length)

    def run_dir(self) -> Path:
        return Path(self.output_root) / self.run_name()


@dataclass
class RunOutput:
    """
    Result handle of a completed run.

    Attributes:
        run_dir: Directory holding the run's statistics
        stats_prefix: Path prefix passed to the statistics facility
        key: (attacking utilization, ordinary utilization, packet length)
        flows: Per-flow rows recorded in flows.csv
        sim_time_end: Simulated time reached when the engine stopped
    """
    run_dir: Path
    stats_prefix: Path
    key: Tuple[float, float, int]
    flows: List[dict] = field(default_factory=list)
    sim_time_end: float = 0.0
