"""
LoadCalibrator: offered-load to on/off traffic parameter conversion

Each sender runs an on/off source. During an "on" period it transmits at the
link rate; "off" periods are drawn from an exponential distribution. The
calibrator picks the on duration and the mean off duration so that the
long-run fraction of time spent transmitting equals a target utilization:

    utilization = on / (on + E[off])
    E[off]      = on * (1 / utilization - 1)

with on = packet_length * 8 / link_rate, i.e. one packet per burst.

The attacking flow short-circuits the two exact end points: utilization 1 is
a saturated, always-backlogged source, utilization 0 installs the flow but
never lets it transmit. Ordinary flows always use the formula above, even at
0 and 1.

Copyright (c) 2025 CDoS-WiFi Research Team
Licensed under the MIT License
"""

import math
from dataclasses import dataclass, replace
from typing import Optional, Union

from ExperimentErrors import ConfigurationError


@dataclass(frozen=True)
class ConstantVariable:
    """Degenerate random variable that always returns `value` (seconds)"""
    value: float

    @property
    def mean(self) -> float:
        return self.value


@dataclass(frozen=True)
class ExponentialVariable:
    """Exponentially distributed random variable with the given mean (seconds)"""
    mean: float


RandomVariable = Union[ConstantVariable, ExponentialVariable]


@dataclass(frozen=True)
class TrafficParams:
    """
    Parameters handed to the on/off traffic generator of one sender.

    Attributes:
        on_time: Distribution of "on" period durations
        off_time: Distribution of "off" period durations
        data_rate_bps: Rate cap applied while "on"
        packet_size: Application payload size in bytes
        start_time: Application start (seconds), set by the orchestrator
        stop_time: Application stop (seconds), set by the orchestrator
    """
    on_time: RandomVariable
    off_time: RandomVariable
    data_rate_bps: int
    packet_size: int
    start_time: Optional[float] = None
    stop_time: Optional[float] = None

    def with_window(self, start_time: float, stop_time: float) -> "TrafficParams":
        return replace(self, start_time=start_time, stop_time=stop_time)

    @property
    def expected_utilization(self) -> float:
        """Long-run fraction of time the source is "on" """
        on = self.on_time.mean
        off = self.off_time.mean
        if math.isinf(off):
            return 0.0
        if on + off == 0:
            return 0.0
        return on / (on + off)


def packet_transmit_time(packet_length: int, link_rate: float) -> float:
    """Seconds needed to send one packet of `packet_length` bytes at `link_rate` bps"""
    return packet_length * 8 / link_rate


def check_utilization(target_utilization: float, label: str = "utilization") -> None:
    # NaN fails both comparisons
    if not (0.0 <= target_utilization <= 1.0):
        raise ConfigurationError(f"{label} must lie in [0, 1], got {target_utilization!r}")


def off_time_mean(on_time: float, target_utilization: float) -> float:
    """
    Mean "off" duration that yields `target_utilization` for a fixed "on" time.

    At exactly 0 the mean is unbounded and `math.inf` is returned.
    """
    if target_utilization == 0:
        return math.inf
    return on_time * (1.0 / target_utilization - 1.0)


def derive_traffic_params(packet_length: int, link_rate: float,
                          target_utilization: float,
                          is_attacking: bool = False) -> TrafficParams:
    """
    Translate an offered load into on/off traffic generator parameters.

    Args:
        packet_length: Packet size in bytes (> 0)
        link_rate: Nominal link rate in bits/second (> 0)
        target_utilization: Desired fraction of time transmitting, in [0, 1]
        is_attacking: True for the single distinguished attacking flow

    Returns:
        TrafficParams without an activity window

    Raises:
        ConfigurationError: on a non-positive length/rate or an
            out-of-range utilization
    """
    if packet_length <= 0:
        raise ConfigurationError(f"packet length must be positive, got {packet_length!r}")
    if link_rate <= 0:
        raise ConfigurationError(f"link rate must be positive, got {link_rate!r}")
    check_utilization(target_utilization)

    if is_attacking and target_utilization == 1:
        on_time, off_time = ConstantVariable(1.0), ConstantVariable(0.0)
    elif is_attacking and target_utilization == 0:
        on_time, off_time = ConstantVariable(0.0), ConstantVariable(1.0)
    else:
        pkt_time = packet_transmit_time(packet_length, link_rate)
        on_time = ConstantVariable(pkt_time)
        off_time = ExponentialVariable(off_time_mean(pkt_time, target_utilization))

    return TrafficParams(
        on_time=on_time,
        off_time=off_time,
        data_rate_bps=int(link_rate),
        packet_size=int(packet_length),
    )
