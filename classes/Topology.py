"""
Topology: linear station layout and sender/receiver flow pairing

Stations sit on a single axis inside the office building, station i at
x = FIRST_STATION_X - i * STATION_SPACING. Station 2k sends to station 2k+1;
that pair is flow k. The last flow is the attacking one.

"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from Config import Config
from ExperimentErrors import ConfigurationError


class StationRole(Enum):
    SENDER = "sender"
    RECEIVER = "receiver"


@dataclass(frozen=True)
class Station:
    """
    One Wi-Fi station of the experiment.

    Attributes:
        id: Node index, also its ns-3 node id within the run
        position: (x, y, z) coordinates in meters
        role: Sender or receiver
        address: IPv4 address assigned in order from SUBNET_BASE
    """
    id: int
    position: Tuple[float, float, float]
    role: StationRole
    address: str


@dataclass(frozen=True)
class Flow:
    """
    Sender/receiver station pair.

    Attributes:
        index: Flow index k
        sender: Station 2k
        receiver: Station 2k+1
        port: UDP port of the receiver sink
        is_attacking: True for the distinguished attacking flow
    """
    index: int
    sender: Station
    receiver: Station
    port: int
    is_attacking: bool = False


def station_address(station_id: int) -> str:
    # Ipv4AddressHelper hands out .1, .2, ... in device order
    host = station_id + 1
    return f"10.{(host >> 16) & 0xFF}.{(host >> 8) & 0xFF}.{host & 0xFF}"


class LinearTopology:
    def __init__(self, station_count: int,
                 first_x: float = Config.FIRST_STATION_X,
                 spacing: float = Config.STATION_SPACING,
                 height: float = Config.STATION_HEIGHT):
        if station_count < 2 or station_count % 2:
            raise ConfigurationError(f"station count must be even and >= 2, got {station_count}")

        self.stations: List[Station] = []
        for i in range(station_count):
            role = StationRole.SENDER if i % 2 == 0 else StationRole.RECEIVER
            self.stations.append(Station(
                id=i,
                position=(first_x - i * spacing, 0.0, height),
                role=role,
                address=station_address(i),
            ))

        n_flows = station_count // 2
        self.flows: List[Flow] = [
            Flow(index=k,
                 sender=self.stations[2 * k],
                 receiver=self.stations[2 * k + 1],
                 port=Config.TRAFFIC_PORT + k,
                 is_attacking=(k == n_flows - 1))
            for k in range(n_flows)
        ]

    def __len__(self):
        return len(self.stations)

    @property
    def positions(self) -> List[Tuple[float, float, float]]:
        return [s.position for s in self.stations]

    @property
    def attacking_flow(self) -> Flow:
        return self.flows[-1]

    @property
    def ordinary_flows(self) -> List[Flow]:
        return self.flows[:-1]
