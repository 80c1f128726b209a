"""
Ns3Backend: ns-3 realization of a CDoS-WiFi run

Everything that touches the ns-3 Python bindings lives here. One backend
instance owns the nodes, devices, applications and probe sockets of exactly
one run and tears the simulator down in destroy().

Network Setup:
    - Office building: one floor, 11 rooms along x, concrete walls with
      windows; HybridBuildingsPropagationLossModel at 2.4 GHz with 12 dB
      internal wall loss, constant-speed propagation delay
    - Wi-Fi: 802.11g ad-hoc MAC, ConstantRateWifiManager
      (ErpOfdmRate6Mbps data, DsssRate1Mbps control)
    - IP: 10.0.0.0/8 assigned in node order
    - Traffic: OnOffApplication per sender, PacketSink per receiver
    - Statistics: AthstatsHelper on every Wi-Fi device

Stack settings (RTS/CTS threshold, MTU, ARP timeouts, ...) are applied to
this run's nodes through node-scoped config paths, never as global defaults.

Copyright (c) 2025 CDoS-WiFi Research Team
Licensed under the MIT License
"""

from ns import ns
import cppyy
import math

from Config import Config
from ExperimentConfig import StackSettings
from ExperimentErrors import EngineError
from LoadCalibrator import ConstantVariable, ExponentialVariable


def setup_cppyy_callbacks():
    """
    Define the C++ trampoline used to schedule Python callables as ns-3 events.

    Safe to call more than once; the definitions are compiled only the first
    time.
    """
    if hasattr(cppyy.gbl, "pythonMakeEvent"):
        return

    cppyy.cppdef(r"""
    #include "ns3/event-id.h"
    #include "ns3/make-event.h"
    #include <vector>
    #include <functional>
    #include <memory>
    using namespace ns3;

    static std::vector<std::shared_ptr<std::function<void()>>> _py_store;

    EventImpl* pythonMakeEvent(std::function<void()> f) {
        auto func_ptr = std::make_shared<std::function<void()>>(std::move(f));
        _py_store.push_back(func_ptr);
        return MakeEvent(*func_ptr);
    }

    void ClearPythonCallbacks() {
        _py_store.clear();
    }
    """)


def has_attribute(type_name, attribute):
    """True if the ns-3 TypeId `type_name` (or a parent) declares `attribute`"""
    info = ns.TypeId.AttributeInformation()
    return bool(ns.TypeId.LookupByName(type_name).LookupAttributeByName(attribute, info))


def retry_limit_path(wifi_path):
    """
    Config path of the long retry limit under a WifiNetDevice path.

    Recent ns-3 releases replaced RemoteStationManager/MaxSlrc with
    Mac/FrameRetryLimit and abort on any access to the obsolete attribute,
    so MaxSlrc is only used where FrameRetryLimit does not exist.
    """
    if has_attribute("ns3::WifiMac", "FrameRetryLimit"):
        return f"{wifi_path}/Mac/FrameRetryLimit"
    if has_attribute("ns3::WifiRemoteStationManager", "MaxSlrc"):
        return f"{wifi_path}/RemoteStationManager/MaxSlrc"
    return None


def make_random_variable(variable):
    """
    Build the ns-3 random variable object for a calibrated distribution.

    Raises:
        EngineError: for an exponential with a non-finite mean, which ns-3
            cannot sample
    """
    if isinstance(variable, ConstantVariable):
        rv = ns.CreateObject[ns.ConstantRandomVariable]()
        rv.SetAttribute("Constant", ns.DoubleValue(float(variable.value)))
        return rv
    if isinstance(variable, ExponentialVariable):
        if not math.isfinite(variable.mean):
            raise EngineError(f"exponential off time with mean {variable.mean} is not supported")
        rv = ns.CreateObject[ns.ExponentialRandomVariable]()
        rv.SetAttribute("Mean", ns.DoubleValue(float(variable.mean)))
        return rv
    raise EngineError(f"unsupported random variable {variable!r}")


class Ns3Backend:
    def __init__(self, stack: StackSettings):
        """
        Attributes:
            stack: Stack settings applied to every node of the run
            nodes: NodeContainer with one node per station
            devices: Wi-Fi NetDeviceContainer, in station order
            interfaces: Ipv4InterfaceContainer, in station order
            apps: Every installed sender and sink application
            _event_refs: Python callbacks kept alive until destroy()
        """
        setup_cppyy_callbacks()
        self.stack = stack
        self.nodes = None
        self.devices = None
        self.interfaces = None
        self.apps = ns.ApplicationContainer()
        self.building = None
        self._athstats = None
        self._event_refs = []
        self._probe_sockets = []

    @staticmethod
    def set_seed(seed, run=None):
        ns.RngSeedManager.SetSeed(int(seed))
        if run is not None:
            ns.RngSeedManager.SetRun(int(run))

    def _build_building(self):
        building = ns.CreateObject[ns.Building]()
        building.SetBoundaries(ns.Box(*Config.BUILDING_BOUNDS))
        building.SetBuildingType(ns.Building.Office)
        building.SetExtWallsType(ns.Building.ConcreteWithWindows)
        building.SetNRoomsX(Config.BUILDING_ROOMS_X)
        building.SetNRoomsY(Config.BUILDING_ROOMS_Y)
        building.SetNFloors(Config.BUILDING_FLOORS)
        self.building = building

        loss = ns.CreateObject[ns.HybridBuildingsPropagationLossModel]()
        loss.SetAttribute("Frequency", ns.DoubleValue(Config.CARRIER_FREQUENCY))
        loss.SetAttribute("InternalWallLoss", ns.DoubleValue(Config.INTERNAL_WALL_LOSS))
        return loss

    def build_topology(self, topology):
        """
        Create the stations, place them in the building and install Wi-Fi and IP.

        Args:
            topology: LinearTopology of the run
        """
        self.nodes = ns.NodeContainer()
        self.nodes.Create(len(topology))

        loss = self._build_building()

        # ---------------- Mobility ---------------
        mobility = ns.MobilityHelper()
        mobility.SetMobilityModel("ns3::ConstantPositionMobilityModel")
        positions = ns.CreateObject[ns.ListPositionAllocator]()
        for x, y, z in topology.positions:
            positions.Add(ns.Vector(x, y, z))
        mobility.SetPositionAllocator(positions)
        mobility.Install(self.nodes)
        ns.BuildingsHelper.Install(self.nodes)

        # ---------------- Wi-Fi: channel/phy/mac/devices ----------------
        channel = ns.CreateObject[ns.YansWifiChannel]()
        channel.SetPropagationLossModel(loss)
        channel.SetPropagationDelayModel(ns.CreateObject[ns.ConstantSpeedPropagationDelayModel]())

        wifi = ns.WifiHelper()
        try:
            wifi.SetStandard(ns.WIFI_STANDARD_80211g)
        except AttributeError:
            wifi.SetStandard(ns.WIFI_PHY_STANDARD_80211g)
        wifi.SetRemoteStationManager("ns3::ConstantRateWifiManager",
                                     "DataMode", ns.StringValue(self.stack.data_mode),
                                     "ControlMode", ns.StringValue(self.stack.control_mode))

        phy = ns.YansWifiPhyHelper()
        phy.SetChannel(channel)

        mac = ns.WifiMacHelper()
        mac.SetType("ns3::AdhocWifiMac")
        self.devices = wifi.Install(phy, mac, self.nodes)

        # ---------------- IP ----------------
        internet = ns.InternetStackHelper()
        internet.Install(self.nodes)

        addr = ns.Ipv4AddressHelper()
        addr.SetBase(ns.Ipv4Address(Config.SUBNET_BASE), ns.Ipv4Mask(Config.SUBNET_MASK))
        self.interfaces = addr.Assign(self.devices)

        self._apply_stack_settings()
        print(f"✅ {len(topology)} stations installed ({len(topology.flows)} flows)")

    def _set(self, path, value):
        if not ns.Config.SetFailSafe(path, value):
            raise EngineError(f"no attribute matched {path}")

    def _apply_stack_settings(self):
        """
        Apply StackSettings to the devices and ARP caches of this run's nodes.

        The ARP caches exist once addresses are assigned, so this runs last.
        """
        s = self.stack
        for i in range(self.nodes.GetN()):
            node_id = self.nodes.Get(i).GetId()
            wifi_path = f"/NodeList/{node_id}/DeviceList/*/$ns3::WifiNetDevice"
            manager = f"{wifi_path}/RemoteStationManager"

            self._set(f"{wifi_path}/Mtu", ns.UintegerValue(s.mtu))
            self._set(f"{manager}/RtsCtsThreshold", ns.UintegerValue(s.rts_cts_threshold))
            self._set(f"{manager}/FragmentationThreshold", ns.UintegerValue(s.fragmentation_threshold))

            retry_path = retry_limit_path(wifi_path)
            if retry_path is None:
                print(f"[WARN] node {node_id}: no long retry limit attribute, keeping the default")
            else:
                self._set(retry_path, ns.UintegerValue(s.max_slrc))

            arp_path = f"/NodeList/{node_id}/$ns3::ArpL3Protocol/CacheList/*"
            self._set(f"{arp_path}/DeadTimeout", ns.TimeValue(ns.Seconds(s.arp_dead_timeout)))
            self._set(f"{arp_path}/AliveTimeout", ns.TimeValue(ns.Seconds(s.arp_alive_timeout)))

    def install_flow(self, flow, params):
        """
        Install the on/off sender and the UDP sink of one flow.

        Args:
            flow: Flow to install
            params: TrafficParams with an activity window
        """
        remote = ns.InetSocketAddress(ns.Ipv4Address(flow.receiver.address), int(flow.port)).ConvertTo()
        onoff = ns.OnOffHelper("ns3::UdpSocketFactory", remote)
        onoff.SetAttribute("PacketSize", ns.UintegerValue(params.packet_size))
        onoff.SetAttribute("OnTime", ns.PointerValue(make_random_variable(params.on_time)))
        onoff.SetAttribute("OffTime", ns.PointerValue(make_random_variable(params.off_time)))
        onoff.SetAttribute("DataRate", ns.DataRateValue(ns.DataRate(int(params.data_rate_bps))))
        onoff.SetAttribute("StartTime", ns.TimeValue(ns.Seconds(params.start_time)))
        onoff.SetAttribute("StopTime", ns.TimeValue(ns.Seconds(params.stop_time)))
        self.apps.Add(onoff.Install(self.nodes.Get(flow.sender.id)))

        local = ns.InetSocketAddress(ns.Ipv4Address.GetAny(), int(flow.port)).ConvertTo()
        sink = ns.PacketSinkHelper("ns3::UdpSocketFactory", local)
        self.apps.Add(sink.Install(self.nodes.Get(flow.receiver.id)))

        label = "attacking" if flow.is_attacking else "ordinary"
        print(f"[flow {flow.index}] {label}: node{flow.sender.id} → {flow.receiver.address}:{flow.port} "
              f"[{params.start_time:.3f}s, {params.stop_time:.3f}s)")

    def create_probe_sender(self, flow, size, port):
        """
        Open a UDP socket from the flow's sender to its receiver.

        Returns:
            Zero-argument callable sending one `size`-byte packet
        """
        sock = ns.Socket.CreateSocket(self.nodes.Get(flow.sender.id), ns.UdpSocketFactory.GetTypeId())
        sock.Connect(ns.InetSocketAddress(ns.Ipv4Address(flow.receiver.address), int(port)).ConvertTo())
        self._probe_sockets.append(sock)

        def send_probe(s=sock, n=int(size), k=flow.index):
            try:
                s.Send(ns.Packet(n))
            except Exception as e:
                print(f"[warmup] probe send error (flow {k}): {e}")

        return send_probe

    def schedule(self, time, callback):
        """Schedule a Python callable at `time` seconds of simulated time"""
        self._event_refs.append(callback)
        ns.Simulator.Schedule(ns.Seconds(time), cppyy.gbl.pythonMakeEvent(callback))

    def enable_statistics(self, prefix):
        """Write one athstats file per Wi-Fi device, named <prefix>_<node:03d>_<device:03d>"""
        self._athstats = ns.AthstatsHelper()
        self._athstats.EnableAthstats(str(prefix), self.devices)

    def run_until(self, deadline):
        ns.Simulator.Stop(ns.Seconds(deadline))
        ns.Simulator.Run()
        return ns.Simulator.Now().GetSeconds()

    def destroy(self):
        try:
            ns.Simulator.Destroy()
            print("Simulator destroyed")
        except Exception as e:
            print(f"Warning during simulator destruction: {e}")

        if hasattr(cppyy.gbl, "ClearPythonCallbacks"):
            cppyy.gbl.ClearPythonCallbacks()
        self._event_refs.clear()
        self._probe_sockets.clear()
        self._athstats = None
