"""Scenario configuration for latency simulation.

This module defines the Hop, SimulationConfig and Scenario classes, which
describe the network path a packet travels and how the simulation is played
back, and functions to build them from dictionaries or JSON files.

Example JSON:
    {
      "name": "Simple 2-Hop Network",
      "packet_size": 1500,
      "nodes": ["Source", "Router", "Destination"],
      "hops": [
        {"bandwidth": 100e6, "distance": 100, "propagation_speed": 2e8,
         "processing_delay": 0.5, "queuing_delay": 0.2},
        {"bandwidth": 100e6, "distance": 100, "medium": "copper",
         "processing_delay": 0.5, "utilization": 0.3}
      ],
      "simulation": {"send_mode": "interval", "packet_interval": 10}
    }
"""

import json
import logging
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, NamedTuple, Optional

import networkx as nx

from latency_sim.core.delay_model import BITS_PER_BYTE, DelayModel
from latency_sim.core.enums import SendMode

logger = logging.getLogger(__name__)

DEFAULT_PACKET_SIZE = 1500

# Keys used by the browser configuration format.
_CAMEL_CASE_KEYS = {
    "propagationSpeed": "propagation_speed",
    "processingDelay": "processing_delay",
    "queuingDelay": "queuing_delay",
    "processingPower": "processing_power",
    "cpuLoad": "cpu_load",
    "packetSize": "packet_size",
    "maxSimulationTime": "max_simulation_time",
    "playbackSpeed": "playback_speed",
    "sendMode": "send_mode",
    "packetInterval": "packet_interval",
    "burstSize": "burst_size",
    "maxPackets": "max_packets",
    "visualizationMode": "visualization_mode",
    "node": "name",
    "nodeType": "node_type",
}


class HopTiming(NamedTuple):
    """Fixed durations of one hop for a given packet size, in milliseconds."""

    entry_queuing: float
    transmission: float
    propagation: float
    processing: float

    @property
    def total(self) -> float:
        return self.entry_queuing + self.transmission + self.propagation + self.processing


@dataclass(frozen=True)
class Hop:
    """One directed link plus its downstream device.

    Attributes:
        name: Display name of the hop.
        bandwidth: Link bandwidth in bits per second.
        distance: Link length in metres.
        medium: Physical medium, used when propagation_speed is not given.
        propagation_speed: Explicit signal speed in metres per second.
        processing_delay: Processing time at the downstream device in ms.
        queuing_delay: Fixed queuing delay in ms.
        utilization: Link utilization (0-1) used to derive queuing delay.
        processing_power: Device power class scaling processing_delay.
        cpu_load: Device load (0-1) scaling processing_delay.
        geostationary: Satellite links travel up to GEO orbit and back.
    """

    name: Optional[str] = None
    bandwidth: Optional[float] = None
    distance: Optional[float] = None
    medium: Optional[str] = None
    propagation_speed: Optional[float] = None
    processing_delay: Optional[float] = None
    queuing_delay: Optional[float] = None
    utilization: Optional[float] = None
    processing_power: Optional[str] = None
    cpu_load: float = 0.0
    geostationary: bool = False

    def processing_time(self) -> float:
        """Processing delay in ms, scaled when a power class is configured."""
        if not self.processing_delay or self.processing_delay <= 0:
            return 0.0
        if self.processing_power is None:
            return float(self.processing_delay)
        return DelayModel.processing(self.processing_delay, self.processing_power, self.cpu_load)

    def queuing_time(self) -> float:
        """Queuing delay in ms: explicit value, else derived from utilization."""
        if self.queuing_delay and self.queuing_delay > 0:
            return float(self.queuing_delay)
        if self.utilization and self.utilization > 0:
            return DelayModel.queuing(self.utilization)
        return 0.0

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Hop":
        """Create a hop from a configuration dictionary.

        Args:
            data: Hop configuration; snake_case or camelCase keys.

        Returns:
            The created Hop.

        Raises:
            ValueError: If data is not a dictionary or has unknown keys.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Hop configuration must be a dict, got {type(data).__name__}")
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name == "node_type":
                continue
            if name not in known:
                raise ValueError(f"Unknown hop field: {key}")
            kwargs[name] = value
        return cls(**kwargs)


@dataclass
class SimulationConfig:
    """Playback and packet injection settings.

    Attributes:
        max_simulation_time: Upper bound of the timeline in ms.
        playback_speed: Simulated ms per real second.
        min_playback_speed: Lower clamp for playback_speed.
        max_playback_speed: Upper clamp for playback_speed.
        send_mode: How packets are injected.
        packet_interval: Time between sends (or bursts) in ms.
        burst_size: Packets per burst.
        burst_stagger: Offset between packets of one burst in ms.
        max_packets: Hard cap on packets created.
        visualization_mode: "multi" for continuous traffic, "single" for one packet.
    """

    max_simulation_time: float = 500.0
    playback_speed: float = 0.25
    min_playback_speed: float = 0.05
    max_playback_speed: float = 2.0
    send_mode: SendMode = SendMode.INTERVAL
    packet_interval: float = 10.0
    burst_size: int = 3
    burst_stagger: float = 0.1
    max_packets: int = 20
    visualization_mode: str = "multi"

    def __post_init__(self):
        """Validate simulation configuration."""
        self.send_mode = SendMode(self.send_mode)
        if self.visualization_mode not in ("multi", "single"):
            raise ValueError(
                f"visualization_mode must be 'multi' or 'single', got '{self.visualization_mode}'"
            )
        if self.min_playback_speed > self.max_playback_speed:
            raise ValueError("min_playback_speed must not exceed max_playback_speed")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SimulationConfig":
        if not isinstance(data, dict):
            raise ValueError("'simulation' section must be a dict")
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            name = _CAMEL_CASE_KEYS.get(key, key)
            if name not in known:
                raise ValueError(f"Unknown simulation field: {key}")
            kwargs[name] = value
        return cls(**kwargs)


@dataclass
class Scenario:
    """Ordered sequence of hops a packet traverses.

    Attributes:
        hops: Hops in traversal order.
        packet_size: Packet size in bytes.
        name: Display name.
        description: Short description.
        nodes: Names of the len(hops) + 1 endpoints, source first.
        simulation: Playback and injection settings.
    """

    hops: List[Hop] = field(default_factory=list)
    packet_size: int = DEFAULT_PACKET_SIZE
    name: str = "Custom Scenario"
    description: str = ""
    nodes: List[str] = field(default_factory=list)
    simulation: SimulationConfig = field(default_factory=SimulationConfig)

    def __post_init__(self):
        """Fill in node names that were not configured."""
        self.hops = list(self.hops)
        names = list(self.nodes)
        # Hop i leaves node i, so a named hop names its upstream node.
        for i in range(len(names), len(self.hops) + 1):
            if i == len(self.hops):
                names.append("Destination")
            elif self.hops[i].name:
                names.append(self.hops[i].name)
            else:
                names.append("Source" if i == 0 else f"Router {i}")
        self.nodes = names

    @property
    def packet_bits(self) -> int:
        return self.packet_size * BITS_PER_BYTE

    def hop_timings(self) -> List[HopTiming]:
        """Compute the fixed durations of each hop.

        The first hop never has entry queuing since there is no upstream
        link to wait behind.

        Returns:
            One HopTiming per hop, in order.
        """
        timings = []
        for i, hop in enumerate(self.hops):
            delays = DelayModel.for_hop(hop, self.packet_size, i)
            timings.append(
                HopTiming(
                    entry_queuing=delays.queuing,
                    transmission=delays.transmission,
                    propagation=delays.propagation,
                    processing=delays.processing,
                )
            )
        return timings

    def single_packet_latency(self) -> float:
        """Total time in ms for one packet to traverse an idle path."""
        return sum(timing.total for timing in self.hop_timings())

    def to_graph(self) -> nx.DiGraph:
        """Build a directed path graph of the scenario.

        Returns:
            NetworkX DiGraph with one node per endpoint and one edge per hop,
            carrying the hop's delay components as edge attributes.
        """
        graph = nx.DiGraph()
        for i, node in enumerate(self.nodes):
            graph.add_node(i, name=node)
        for i, (hop, timing) in enumerate(zip(self.hops, self.hop_timings())):
            graph.add_edge(
                i,
                i + 1,
                hop=i,
                bandwidth=hop.bandwidth,
                distance=hop.distance,
                queuing=timing.entry_queuing,
                transmission=timing.transmission,
                propagation=timing.propagation,
                processing=timing.processing,
                delay=timing.total,
            )
        return graph

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Scenario":
        """Create a scenario from a configuration dictionary.

        Args:
            data: Scenario configuration with a 'hops' list.

        Returns:
            The created Scenario.

        Raises:
            ValueError: If required fields are missing or invalid.
        """
        if not isinstance(data, dict):
            raise ValueError(f"Scenario must be a dict, got {type(data).__name__}")
        if "hops" not in data:
            raise ValueError("Missing required field: 'hops'")
        if not isinstance(data["hops"], list):
            raise ValueError("'hops' must be a list")

        hops = [Hop.from_dict(hop) for hop in data["hops"]]
        packet_size = data.get("packet_size", data.get("packetSize", DEFAULT_PACKET_SIZE))
        try:
            packet_size = int(packet_size)
        except (TypeError, ValueError) as e:
            raise ValueError(f"'packet_size' must be a number of bytes, got {packet_size!r}") from e

        nodes = []
        for node in data.get("nodes", []):
            # "Name:Type" entries name the node before the colon.
            nodes.append(str(node).split(":", 1)[0])

        simulation = SimulationConfig.from_dict(data.get("simulation", {}))

        return cls(
            hops=hops,
            packet_size=packet_size,
            name=data.get("name", "Custom Scenario"),
            description=data.get("description", ""),
            nodes=nodes,
            simulation=simulation,
        )


def load_scenario(json_path: str) -> Scenario:
    """Load a scenario from a JSON file.

    Args:
        json_path: Path to the JSON scenario file.

    Returns:
        Scenario object with parsed configuration.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ValueError: If the JSON is invalid or fields are missing.
    """
    path = Path(json_path)
    if not path.exists():
        raise FileNotFoundError(f"Scenario file not found: {json_path}")

    with open(path, "r") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"Invalid JSON in {json_path}: {e}") from e

    scenario = Scenario.from_dict(data)
    logger.debug("Loaded scenario %r with %d hops from %s", scenario.name, len(scenario.hops), path)
    return scenario
