"""Packet class for latency simulation.

This module defines the Packet class, which represents a packet travelling
along the simulated path, and PhaseState, the phase/progress pair reported
for it at a given simulated time.
"""

from dataclasses import dataclass, field
from typing import Dict, Optional

from latency_sim.core.delay_model import BITS_PER_BYTE
from latency_sim.core.enums import Phase


@dataclass(frozen=True)
class PhaseState:
    """Phase of a packet together with its progress within that phase.

    Attributes:
        phase: The packet's phase.
        progress: Fraction of the phase elapsed, between 0 and 1.
    """

    phase: Phase
    progress: float = 0.0

    @classmethod
    def waiting(cls) -> "PhaseState":
        return cls(Phase.WAITING)

    @classmethod
    def delivered(cls) -> "PhaseState":
        return cls(Phase.DELIVERED, 1.0)


@dataclass(eq=False)
class Packet:
    """Represents a packet travelling along the path.

    Attributes:
        id: Unique identifier, increasing in creation order.
        send_time: Time when the packet leaves the source, in ms.
        size: Size of packet in bytes.
        current_hop: Index of the hop being traversed.
        phase: Current phase.
        progress: Progress within the current phase.
        completed_hops: Number of hops fully traversed.
        arrival_times: First-bit arrival time at each node, keyed by node index.
        transmission_starts: Time the packet occupied each hop's server.
        delivered_at: Time the packet reached the destination.
        delivery_notified: Whether delivery hooks have fired.
    """

    id: int
    send_time: float
    size: int
    current_hop: int = 0
    phase: Phase = Phase.WAITING
    progress: float = 0.0
    completed_hops: int = 0
    arrival_times: Dict[int, float] = field(default_factory=dict)
    transmission_starts: Dict[int, float] = field(default_factory=dict)
    delivered_at: Optional[float] = None
    delivery_notified: bool = False

    @property
    def size_bits(self) -> int:
        return self.size * BITS_PER_BYTE

    @property
    def state(self) -> PhaseState:
        return PhaseState(self.phase, self.progress)

    @property
    def is_delivered(self) -> bool:
        return self.phase is Phase.DELIVERED

    def set_state(self, phase: Phase, progress: float = 0.0) -> None:
        """Set the phase and clamp progress to [0, 1].

        Args:
            phase: New phase.
            progress: Fraction of the phase elapsed.
        """
        self.phase = phase
        self.progress = min(max(progress, 0.0), 1.0)

    def record_arrival(self, node: int, time: float) -> None:
        """Record first-bit arrival at a node, keeping the first value.

        Args:
            node: Index of the node reached.
            time: Arrival time in ms.
        """
        self.arrival_times.setdefault(node, time)

    def get_total_delay(self) -> Optional[float]:
        """Calculate total delay if packet has been delivered.

        Returns:
            Total delay in ms or None if packet hasn't arrived.
        """
        if self.delivered_at is None:
            return None
        return self.delivered_at - self.send_time

    def rewind(self) -> None:
        """Forget all progress so the packet can be re-simulated from its send time.

        The delivery notification guard is kept: a packet that was already
        reported delivered is never reported again.
        """
        self.current_hop = 0
        self.phase = Phase.WAITING
        self.progress = 0.0
        self.completed_hops = 0
        self.arrival_times.clear()
        self.transmission_starts.clear()
        self.delivered_at = None

    def __repr__(self) -> str:
        return (
            f"Packet({self.id}, sent={self.send_time:.3f}ms, "
            f"{self.phase.value}@hop{self.current_hop}, {self.progress:.2f})"
        )
