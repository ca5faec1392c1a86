"""Built-in scenarios for latency simulation.

Each preset is stored in the same dictionary format accepted by
Scenario.from_dict and scenario JSON files.
"""

from typing import Any, Dict, List

from latency_sim.core.scenario import Scenario

PRESETS: Dict[str, Dict[str, Any]] = {
    "simple": {
        "name": "Simple 2-Hop Network",
        "description": "A basic network with one router between source and destination",
        "packet_size": 1500,
        "nodes": ["Source:Host", "Router:Router", "Destination:Host"],
        "hops": [
            {"bandwidth": 100e6, "distance": 100, "propagation_speed": 2e8,
             "processing_delay": 0.5, "queuing_delay": 0.2},
            {"bandwidth": 100e6, "distance": 100, "propagation_speed": 2e8,
             "processing_delay": 0.5, "queuing_delay": 0.1},
        ],
    },
    "lan": {
        "name": "Local Area Network",
        "description": "High-speed local network with minimal delays",
        "packet_size": 1500,
        "nodes": ["Client:Host", "Switch:Switch", "Server:Server"],
        "hops": [
            {"bandwidth": 1e9, "distance": 50, "propagation_speed": 2e8,
             "processing_delay": 0.01, "queuing_delay": 0},
            {"bandwidth": 1e9, "distance": 50, "propagation_speed": 2e8,
             "processing_delay": 0.05, "queuing_delay": 0},
        ],
    },
    "wan": {
        "name": "Wide Area Network",
        "description": "Cross-country connection with significant propagation delay",
        "packet_size": 1500,
        "nodes": ["NYC:Host", "Chicago:Router", "Denver:Router", "LA:Host"],
        "hops": [
            {"bandwidth": 10e9, "distance": 1200e3, "propagation_speed": 2e8,
             "processing_delay": 0.5, "queuing_delay": 0.8},
            {"bandwidth": 10e9, "distance": 1500e3, "propagation_speed": 2e8,
             "processing_delay": 0.5, "queuing_delay": 1.2},
            {"bandwidth": 10e9, "distance": 1300e3, "propagation_speed": 2e8,
             "processing_delay": 0.5, "queuing_delay": 0.5},
        ],
    },
    "congested": {
        "name": "Congested Network",
        "description": "Network experiencing heavy congestion with significant queuing delays",
        "packet_size": 1500,
        "nodes": ["User:Host", "ISP Router:Router", "Core Router:Router", "CDN:Server"],
        "hops": [
            {"bandwidth": 100e6, "distance": 10e3, "propagation_speed": 2e8,
             "processing_delay": 2, "queuing_delay": 15},
            {"bandwidth": 1e9, "distance": 100e3, "propagation_speed": 2e8,
             "processing_delay": 1.5, "queuing_delay": 8},
            {"bandwidth": 10e9, "distance": 50e3, "propagation_speed": 2e8,
             "processing_delay": 0.3, "queuing_delay": 2},
        ],
    },
    "transcontinental": {
        "name": "Transcontinental Cable",
        "description": "NYC to London via undersea fiber optic cable",
        "packet_size": 1500,
        "nodes": ["NYC:Host", "Atlantic Cable:Router", "London:Host"],
        "hops": [
            {"bandwidth": 100e9, "distance": 100e3, "propagation_speed": 2e8,
             "processing_delay": 0.5, "queuing_delay": 0.2},
            {"bandwidth": 100e9, "distance": 5500e3, "propagation_speed": 2e8,
             "processing_delay": 0.5, "queuing_delay": 0.3},
        ],
    },
    "satellite": {
        "name": "Satellite Internet",
        "description": "Geostationary satellite connection with extreme propagation delay",
        "packet_size": 1500,
        "nodes": ["User:Host", "Satellite:Satellite", "Ground Station:Router", "Server:Server"],
        "hops": [
            {"bandwidth": 25e6, "distance": 35786e3, "propagation_speed": 3e8,
             "processing_delay": 2, "queuing_delay": 5},
            {"bandwidth": 1e9, "distance": 35786e3, "propagation_speed": 3e8,
             "processing_delay": 1, "queuing_delay": 2},
            {"bandwidth": 10e9, "distance": 500e3, "propagation_speed": 2e8,
             "processing_delay": 0.5, "queuing_delay": 0.5},
        ],
    },
    "balanced": {
        "name": "Balanced Delays",
        "description": "All four delay components contribute roughly equally",
        "packet_size": 1500,
        "nodes": ["Home:Host", "Regional ISP:Router", "Remote Server:Server"],
        "hops": [
            # 1.2 Mbps and 2000 km give ~10ms transmission and propagation.
            {"bandwidth": 1.2e6, "distance": 2000e3, "propagation_speed": 2e8,
             "processing_delay": 10, "queuing_delay": 10},
            {"bandwidth": 100e6, "distance": 100e3, "propagation_speed": 2e8,
             "processing_delay": 1, "queuing_delay": 1},
        ],
    },
    "transmission_dominant": {
        "name": "Transmission-Dominant",
        "description": "Scenario where transmission delay dominates (slow link, large packet)",
        "packet_size": 10000,
        "nodes": ["Source:Host", "Destination:Host"],
        "hops": [
            {"bandwidth": 56e3, "distance": 10, "propagation_speed": 2e8,
             "processing_delay": 0.01, "queuing_delay": 0},
        ],
    },
    "propagation_dominant": {
        "name": "Propagation-Dominant",
        "description": "Scenario where propagation delay dominates (long distance)",
        "packet_size": 64,
        "nodes": ["Earth:Host", "Mars Rover:Host"],
        "hops": [
            {"bandwidth": 1e9, "distance": 225e9, "propagation_speed": 3e8,
             "processing_delay": 0, "queuing_delay": 0},
        ],
    },
    "processing_dominant": {
        "name": "Processing-Dominant",
        "description": "Scenario with heavy processing (deep packet inspection, encryption)",
        "packet_size": 1500,
        "nodes": ["Client:Host", "Security Appliance:Firewall", "Server:Server"],
        "hops": [
            {"bandwidth": 10e9, "distance": 100, "propagation_speed": 2e8,
             "processing_delay": 50, "queuing_delay": 0},
            {"bandwidth": 10e9, "distance": 100, "propagation_speed": 2e8,
             "processing_delay": 30, "queuing_delay": 0},
        ],
    },
    "queuing_dominant": {
        "name": "Queuing-Dominant",
        "description": "Heavily congested network during peak hours",
        "packet_size": 1500,
        "nodes": ["Home:Host", "Congested ISP:Router", "Internet:Cloud"],
        "hops": [
            {"bandwidth": 1e9, "distance": 1000, "propagation_speed": 2e8,
             "processing_delay": 0.5, "queuing_delay": 100},
            {"bandwidth": 10e9, "distance": 10e3, "propagation_speed": 2e8,
             "processing_delay": 0.5, "queuing_delay": 50},
        ],
    },
}

PRESET_GROUPS: Dict[str, List[str]] = {
    "basic": ["simple", "lan", "wan"],
    "real_world": ["congested", "transcontinental", "satellite"],
    "educational": [
        "balanced",
        "transmission_dominant",
        "propagation_dominant",
        "processing_dominant",
        "queuing_dominant",
    ],
}


def list_presets() -> List[str]:
    return list(PRESETS)


def get_preset(name: str) -> Scenario:
    """Build a built-in scenario by name.

    Args:
        name: Preset name, e.g. "simple" or "satellite".

    Returns:
        A new Scenario.

    Raises:
        KeyError: If no preset has that name.
    """
    if name not in PRESETS:
        raise KeyError(f"Unknown preset '{name}'. Available: {', '.join(PRESETS)}")
    return Scenario.from_dict(PRESETS[name])
