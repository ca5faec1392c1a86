"""Hop queue for latency simulation.

This module defines the HopQueue class, which models the single
transmission server of a hop and the FIFO backlog of packets waiting for it.
"""

import logging
from collections import deque
from typing import Deque, Dict, Optional

from latency_sim.core.delay_model import DelayModel
from latency_sim.core.enums import Phase
from latency_sim.core.packet import Packet

logger = logging.getLogger(__name__)


class HopQueue:
    """Single-server FIFO queue in front of a hop's link.

    A packet occupies the server for its transmission time. Start instants
    are exact: a packet that claims an idle server starts when it became
    ready (or when the server last became free, if later), and a packet
    handed the server from the backlog starts when the previous
    transmission completed. Hand-offs therefore do not depend on how often
    the queue is advanced.

    Attributes:
        index: Hop index.
        bandwidth: Link bandwidth in bits per second.
        waiting: Packets waiting for the server, oldest first.
        transmitting: Packet currently occupying the server.
        start_time: Time the current occupant started transmitting.
        free_at: Time the server last became free.
    """

    def __init__(self, index: int, bandwidth: Optional[float]):
        """Initialize a hop queue.

        Args:
            index: Hop index.
            bandwidth: Link bandwidth in bits per second.
        """
        self.index = index
        self.bandwidth = bandwidth
        self.waiting: Deque[Packet] = deque()
        self.transmitting: Optional[Packet] = None
        self.start_time: Optional[float] = None
        self.free_at = float("-inf")
        self._ready_at: Dict[int, float] = {}

    @property
    def queue_length(self) -> int:
        return len(self.waiting)

    @property
    def transmitting_packet_id(self) -> Optional[int]:
        return self.transmitting.id if self.transmitting is not None else None

    @property
    def is_busy(self) -> bool:
        return self.transmitting is not None

    def transmission_time(self, packet: Packet) -> float:
        """Time in ms the packet occupies the server."""
        return DelayModel.transmission(packet.size_bits, self.bandwidth)

    def is_server_occupied_by(self, packet: Packet) -> bool:
        return self.transmitting is packet

    def is_queued(self, packet: Packet) -> bool:
        return packet in self.waiting

    def progress(self, now: float) -> float:
        """Transmission progress of the current occupant, clamped to [0, 1).

        Args:
            now: Current simulation time.

        Returns:
            Fraction of the occupant's transmission elapsed, 0 if idle.
        """
        if self.transmitting is None:
            return 0.0
        duration = self.transmission_time(self.transmitting)
        if duration <= 0:
            return 0.0
        raw = (now - self.start_time) / duration
        return min(max(raw, 0.0), 1.0 - 1e-12)

    def finish_time(self) -> Optional[float]:
        """Time the current occupant completes its transmission."""
        if self.transmitting is None:
            return None
        return self.start_time + self.transmission_time(self.transmitting)

    def try_start(self, packet: Packet, now: float, ready_at: Optional[float] = None) -> bool:
        """Occupy the server if it is idle and the packet is next in line.

        Args:
            packet: Packet asking for the server.
            now: Current simulation time.
            ready_at: Time the packet became ready to transmit (defaults to now).

        Returns:
            True if the packet now occupies the server.
        """
        if self.transmitting is not None:
            return False
        if self.waiting and self.waiting[0] is not packet:
            return False
        if self.waiting:
            self.waiting.popleft()
        ready = self._ready_at.pop(packet.id, None)
        if ready is None:
            ready = now if ready_at is None else ready_at
        self._occupy(packet, max(ready, self.free_at))
        return True

    def enqueue_if_absent(self, packet: Packet, ready_at: float) -> bool:
        """Append a packet to the backlog unless it is already there.

        Args:
            packet: Packet to enqueue.
            ready_at: Time the packet became ready to transmit.

        Returns:
            True if the packet was appended.
        """
        if packet in self.waiting or packet is self.transmitting:
            return False
        self.waiting.append(packet)
        self._ready_at[packet.id] = ready_at
        logger.debug(
            "Hop %d: packet %d queued behind packet %d (%d waiting)",
            self.index, packet.id, self.transmitting_packet_id, len(self.waiting),
        )
        return True

    def claim_or_enqueue(self, packet: Packet, now: float, ready_at: float) -> Phase:
        """Give the packet the server, or queue it if the server is taken.

        Args:
            packet: Packet that is ready to transmit.
            now: Current simulation time.
            ready_at: Time the packet became ready to transmit.

        Returns:
            Phase.TRANSMITTING if the packet occupies the server, else Phase.QUEUING.
        """
        if self.transmitting is packet or self.try_start(packet, now, ready_at):
            return Phase.TRANSMITTING
        self.enqueue_if_absent(packet, ready_at)
        return Phase.QUEUING

    def advance(self, now: float) -> int:
        """Release completed transmissions and serve the backlog in order.

        Args:
            now: Current simulation time.

        Returns:
            Number of server state changes (releases and hand-offs).
        """
        changes = 0
        while self.transmitting is not None:
            finish = self.finish_time()
            if finish > now:
                break
            self.transmitting = None
            self.start_time = None
            self.free_at = finish
            changes += 1
            if self.waiting:
                packet = self.waiting.popleft()
                ready = self._ready_at.pop(packet.id, finish)
                self._occupy(packet, max(finish, ready))
                changes += 1
        return changes

    def clear(self) -> None:
        """Empty the backlog and free the server."""
        self.waiting.clear()
        self._ready_at.clear()
        self.transmitting = None
        self.start_time = None
        self.free_at = float("-inf")

    def _occupy(self, packet: Packet, start: float) -> None:
        self.transmitting = packet
        self.start_time = start
        packet.transmission_starts[self.index] = start
        logger.debug("Hop %d: packet %d transmitting from %.4fms", self.index, packet.id, start)

    def __repr__(self) -> str:
        return (
            f"HopQueue({self.index}, transmitting={self.transmitting_packet_id}, "
            f"waiting={[p.id for p in self.waiting]})"
        )
