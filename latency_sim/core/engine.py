"""Packet simulation engine for latency simulation.

This module defines the PacketSimulationEngine class, which decides for
every packet which phase it occupies at an absolute simulated time and
keeps each hop's transmission server and backlog up to date.
"""

import logging
from typing import Any, Callable, Dict, List, Optional

from latency_sim.core.enums import Phase
from latency_sim.core.hop_queue import HopQueue
from latency_sim.core.packet import Packet
from latency_sim.core.scenario import HopTiming, Scenario
from latency_sim.core.snapshot import PacketState, QueueState, Snapshot

logger = logging.getLogger(__name__)

DELAY_TYPES = ("transmission", "propagation", "processing", "queuing")


class PacketSimulationEngine:
    """Evaluates packets against the delay model and hop queues.

    Each call to evaluate() is a complete, synchronous pass: hop queues
    release finished transmissions, packets are evaluated oldest first, and
    the two steps repeat until no queue changes hands. Evaluating twice at
    the same time therefore yields the same snapshot.

    Attributes:
        scenario: The path being simulated.
        timings: Fixed per-hop durations for the scenario's packet size.
        queues: One HopQueue per hop.
        packets: All packets created since the last reset, in creation order.
        current_time: Time of the last evaluation in ms.
        max_packets: Hard cap on packets created.
    """

    def __init__(self, scenario: Scenario, max_packets: Optional[int] = None):
        """Initialize the engine.

        Args:
            scenario: The path to simulate.
            max_packets: Cap on packets created (defaults to the scenario's setting).
        """
        self.scenario = scenario
        self.timings: List[HopTiming] = scenario.hop_timings()
        self.queues: List[HopQueue] = [
            HopQueue(i, hop.bandwidth) for i, hop in enumerate(scenario.hops)
        ]
        self.packets: List[Packet] = []
        self.next_packet_id = 1
        self.current_time = 0.0
        self.max_packets = (
            max_packets if max_packets is not None else scenario.simulation.max_packets
        )

        self.hooks: Dict[str, List[Callable[..., Any]]] = {
            "packet_sent": [],  # a packet is created
            "packet_delivered": [],  # a packet reaches the destination
        }

    @property
    def hop_count(self) -> int:
        return len(self.timings)

    @property
    def can_send(self) -> bool:
        return len(self.packets) < self.max_packets

    def send_packet(self, send_time: Optional[float] = None) -> Optional[Packet]:
        """Create a new packet.

        Args:
            send_time: Time the packet leaves the source (defaults to current time).

        Returns:
            The created Packet, or None if the packet cap has been reached.
        """
        if not self.can_send:
            logger.debug("Packet cap of %d reached, send request ignored", self.max_packets)
            return None

        if send_time is None:
            send_time = self.current_time
        packet = Packet(self.next_packet_id, float(send_time), self.scenario.packet_size)
        self.next_packet_id += 1
        self.packets.append(packet)
        logger.debug("Packet %d created, send time %.4fms", packet.id, packet.send_time)
        self.call_hooks("packet_sent", packet)
        return packet

    def evaluate(self, now: float) -> Snapshot:
        """Bring every packet and queue to the given time.

        Evaluating an earlier time than the last one re-simulates from zero.

        Args:
            now: Absolute simulated time in ms.

        Returns:
            Snapshot of the state at now.
        """
        if now < self.current_time:
            self.rewind()
        self.current_time = now
        # Same-hop contention is resolved oldest send first.
        order = sorted(self.packets, key=lambda p: (p.send_time, p.id))
        max_passes = 2 * (len(order) + 1) * (self.hop_count + 1)

        self._advance_queues(now)
        for _ in range(max_passes):
            for packet in order:
                if not packet.is_delivered:
                    self.update_packet(packet, now)
            if self._advance_queues(now) == 0:
                break

        return self.snapshot()

    def update_packet(self, packet: Packet, now: float) -> None:
        """Decide the packet's phase and progress at the given time.

        Args:
            packet: Packet to update.
            now: Absolute simulated time in ms.
        """
        if now < packet.send_time:
            packet.set_state(Phase.WAITING)
            return

        elapsed = now - packet.send_time
        accumulated = self._replay_completed_hops(packet)

        for hop_index in range(packet.completed_hops, self.hop_count):
            timing = self.timings[hop_index]
            queue = self.queues[hop_index]
            packet.current_hop = hop_index

            # Fixed entry queuing; zero for the first hop.
            if timing.entry_queuing > 0:
                if elapsed <= accumulated + timing.entry_queuing:
                    packet.set_state(
                        Phase.QUEUING, (elapsed - accumulated) / timing.entry_queuing
                    )
                    return
                accumulated += timing.entry_queuing

            if timing.transmission > 0:
                start = packet.transmission_starts.get(hop_index)
                if start is None:
                    if queue.is_queued(packet):
                        packet.set_state(Phase.QUEUING)
                        return
                    ready_at = packet.send_time + accumulated
                    if queue.claim_or_enqueue(packet, now, ready_at) is Phase.QUEUING:
                        packet.set_state(Phase.QUEUING)
                        return
                    start = packet.transmission_starts[hop_index]

                end = start + timing.transmission
                if now < end:
                    packet.set_state(Phase.TRANSMITTING, (now - start) / timing.transmission)
                    return
                accumulated = end - packet.send_time

            if timing.propagation > 0:
                if elapsed <= accumulated + timing.propagation:
                    progress = (elapsed - accumulated) / timing.propagation
                    packet.set_state(Phase.PROPAGATING, progress)
                    if progress >= 1:
                        packet.record_arrival(hop_index + 1, now)
                    return
                accumulated += timing.propagation
            packet.record_arrival(hop_index + 1, packet.send_time + accumulated)

            if timing.processing > 0:
                if elapsed <= accumulated + timing.processing:
                    packet.set_state(Phase.PROCESSING, (elapsed - accumulated) / timing.processing)
                    return
                accumulated += timing.processing

            packet.completed_hops = hop_index + 1

        self._deliver(packet, packet.send_time + accumulated)

    def _replay_completed_hops(self, packet: Packet) -> float:
        """Sum the time spent in hops the packet has fully traversed.

        Args:
            packet: Packet to replay.

        Returns:
            Time in ms from the packet's send time to the end of its last completed hop.
        """
        accumulated = 0.0
        for hop_index in range(min(packet.completed_hops, self.hop_count)):
            timing = self.timings[hop_index]
            accumulated += timing.entry_queuing
            if timing.transmission > 0:
                start = packet.transmission_starts.get(hop_index)
                if start is not None:
                    # Includes any wait behind other packets at this hop.
                    accumulated = max(accumulated, start - packet.send_time)
                accumulated += timing.transmission
            accumulated += timing.propagation + timing.processing
        return accumulated

    def _deliver(self, packet: Packet, delivered_at: float) -> None:
        packet.set_state(Phase.DELIVERED, 1.0)
        packet.current_hop = self.hop_count
        packet.completed_hops = self.hop_count
        if packet.delivered_at is None:
            packet.delivered_at = delivered_at

        if not packet.delivery_notified:
            packet.delivery_notified = True
            logger.debug(
                "Packet %d delivered at %.4fms (latency %.4fms)",
                packet.id, packet.delivered_at, packet.get_total_delay(),
            )
            self.call_hooks("packet_delivered", packet)

    def _advance_queues(self, now: float) -> int:
        return sum([queue.advance(now) for queue in self.queues])

    def rewind(self) -> None:
        """Discard all dynamic state so the next evaluation re-simulates from zero.

        Packets are kept, along with their delivery notification guards.
        """
        for queue in self.queues:
            queue.clear()
        for packet in self.packets:
            packet.rewind()

    def reset(self) -> None:
        """Remove all packets and empty every queue."""
        for queue in self.queues:
            queue.clear()
        self.packets = []
        self.next_packet_id = 1
        self.current_time = 0.0

    def snapshot(self) -> Snapshot:
        """Capture the current state of packets and queues.

        Returns:
            Snapshot at the time of the last evaluation.
        """
        return Snapshot(
            time=self.current_time,
            packets=tuple(
                PacketState(
                    id=p.id,
                    phase=p.phase,
                    hop=p.current_hop,
                    progress=p.progress,
                    send_time=p.send_time,
                    size=p.size,
                )
                for p in self.packets
            ),
            queues=tuple(
                QueueState(q.queue_length, q.transmitting_packet_id) for q in self.queues
            ),
        )

    def delivered_packets(self) -> List[Packet]:
        return [p for p in self.packets if p.is_delivered]

    def delay_totals(self, packet: Packet, now: Optional[float] = None) -> Dict[str, float]:
        """Calculate how long the packet has spent in each delay type.

        Waiting behind other packets counts as queuing.

        Args:
            packet: Packet to inspect.
            now: Time to measure up to (defaults to the last evaluation time).

        Returns:
            Time in ms per delay type; the values sum to the packet's age,
            or to its latency once delivered.
        """
        if now is None:
            now = self.current_time
        totals = dict.fromkeys(DELAY_TYPES, 0.0)
        cursor = packet.send_time

        def spend(kind: str, duration: float) -> None:
            nonlocal cursor
            totals[kind] += min(duration, max(now - cursor, 0.0))
            cursor += duration

        for hop_index, timing in enumerate(self.timings):
            if cursor >= now:
                break
            spend("queuing", timing.entry_queuing)
            if timing.transmission > 0:
                start = packet.transmission_starts.get(hop_index)
                if start is None:
                    spend("queuing", max(now - cursor, 0.0))
                    break
                spend("queuing", max(start - cursor, 0.0))
                spend("transmission", timing.transmission)
            spend("propagation", timing.propagation)
            spend("processing", timing.processing)
        return totals

    def location(self, packet: Packet) -> str:
        """Describe where the packet is, using the scenario's node names.

        Args:
            packet: Packet to describe.

        Returns:
            Human-readable location such as "Router" or "Source → Router (40%)".
        """
        nodes = self.scenario.nodes
        if packet.phase is Phase.WAITING:
            return nodes[0]
        if packet.phase is Phase.DELIVERED:
            return nodes[-1]

        source = nodes[packet.current_hop]
        destination = nodes[packet.current_hop + 1]
        if packet.phase is Phase.PROPAGATING:
            return f"{source} → {destination} ({round(packet.progress * 100)}%)"
        if packet.phase is Phase.PROCESSING:
            return destination
        # Queuing and transmitting both happen in front of the link.
        return source

    def register_hook(self, event_type: str, callback: Callable[..., Any]) -> None:
        """Register a callback function for a specific event type.

        Args:
            event_type: The type of event to register for.
            callback: The function to call when the event occurs.
        """
        if event_type not in self.hooks:
            raise ValueError(f"Unknown hook type: {event_type}")
        self.hooks[event_type].append(callback)

    def call_hooks(self, event_type: str, *args: Any, **kwargs: Any) -> None:
        """Call all registered callbacks for the given event type.

        Args:
            event_type: The type of event that occurred.
            *args, **kwargs: Arguments to pass to the callback functions.
        """
        if event_type in self.hooks:
            for callback in self.hooks[event_type]:
                callback(*args, **kwargs)
