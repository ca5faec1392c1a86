"""State snapshots emitted by the latency simulation.

A snapshot is an immutable copy of every packet's phase and every hop
queue's occupancy at one simulated time. It is what rendering
collaborators consume.
"""

from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional, Tuple

from latency_sim.core.enums import Phase


@dataclass(frozen=True)
class PacketState:
    """Phase of a single packet in a snapshot."""

    id: int
    phase: Phase
    hop: int
    progress: float
    send_time: float
    size: int


@dataclass(frozen=True)
class QueueState:
    """Occupancy of a single hop queue in a snapshot."""

    queue_length: int
    transmitting_packet_id: Optional[int]


@dataclass(frozen=True)
class Snapshot:
    """Simulation state at one simulated time.

    Attributes:
        time: Simulated time in ms.
        packets: Packet states in creation order.
        queues: Queue states in hop order.
    """

    time: float
    packets: Tuple[PacketState, ...] = ()
    queues: Tuple[QueueState, ...] = ()

    def packet(self, packet_id: int) -> Optional[PacketState]:
        """Look up a packet's state by ID."""
        for state in self.packets:
            if state.id == packet_id:
                return state
        return None

    def count(self, phase: Phase) -> int:
        """Number of packets in the given phase."""
        return sum(1 for state in self.packets if state.phase == phase)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        packets = []
        for state in self.packets:
            data = asdict(state)
            data["phase"] = state.phase.value
            packets.append(data)
        return {
            "time": self.time,
            "packets": packets,
            "queues": [asdict(queue) for queue in self.queues],
        }
