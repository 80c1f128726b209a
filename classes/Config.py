"""
CDoS-WiFi Configuration Parameters

This module defines the default parameters of the cascading denial-of-service
experiment, including the batch definition, station layout, traffic timing,
Wi-Fi stack settings and the office building propagation model.

Parameter categories:
- Batch defaults (seed, loads, packet lengths)
- Linear topology and addressing
- Traffic calibration and activity windows
- ARP warm-up probes
- Wi-Fi / IP stack settings
- Building model and output settings

Copyright (c) 2025 CDoS-WiFi Research Team
Licensed under the MIT License
"""

class Config:
    """Default configuration parameters for CDoS-WiFi experiments"""

    SEED = 1

    # ============================================================================
    # Batch Defaults
    # ============================================================================
    N_STATIONS = 6
    STOP_TIME = 203.0
    ATTACK_LOAD = 1.0
    REST_LOAD = 0.14
    PKT_LENGTHS = (200, 1500)
    RTS_CTS_ENABLED = False

    # ============================================================================
    # Linear Topology
    # ============================================================================
    FIRST_STATION_X = 43.5
    STATION_SPACING = 8.0
    STATION_HEIGHT = 1.0
    SUBNET_BASE = "10.0.0.0"
    SUBNET_MASK = "255.0.0.0"
    TRAFFIC_PORT = 12345

    # ============================================================================
    # Traffic Calibration
    # ============================================================================
    LINK_RATE_BPS = 6000000

    # ============================================================================
    # Activity Windows
    # ============================================================================
    ATTACK_START = 53.0
    ATTACK_STOP = 153.0
    REST_START = 3.1
    REST_STAGGER = 0.01

    # ============================================================================
    # ARP Warm-up Probes
    # ============================================================================
    PROBE_PORT = 9
    PROBE_SIZE = 10
    PROBE_START = 0.001
    PROBE_STAGGER = 0.001

    # ============================================================================
    # Wi-Fi / IP Stack
    # ============================================================================
    RTS_CTS_THRESHOLD_ON = 100
    RTS_CTS_THRESHOLD_OFF = 4692480
    WIFI_MTU = 2296
    FRAGMENTATION_THRESHOLD = 2300
    MAX_SLRC = 7
    DATA_MODE = "ErpOfdmRate6Mbps"
    CONTROL_MODE = "DsssRate1Mbps"
    ARP_DEAD_TIMEOUT = 0.0
    ARP_ALIVE_TIMEOUT = 120000.0

    # ============================================================================
    # Office Building Model
    # ============================================================================
    BUILDING_BOUNDS = (0.0, 44.0, -3.0, 3.0, 0.0, 3.0)
    BUILDING_ROOMS_X = 11
    BUILDING_ROOMS_Y = 1
    BUILDING_FLOORS = 1
    CARRIER_FREQUENCY = 2.4e9
    INTERNAL_WALL_LOSS = 12.0

    # ============================================================================
    # Output Settings
    # ============================================================================
    OUTPUT_ROOT = "CDoS-6Mbps-adhoc-UDP-building"
    STATS_PREFIX = "nodes"
    FLOWS_FILE = "flows.csv"
    SUMMARY_FILE = "run_summary.json"
