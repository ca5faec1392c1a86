"""Discrete-event replay of a scenario path.

This module replays packets along a scenario's hops with SimPy, using one
single-server resource per hop link. It produces exact transmission start
and delivery times and is used to cross-check the frame-driven engine.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import simpy

from latency_sim.core.scenario import HopTiming, Scenario

logger = logging.getLogger(__name__)


@dataclass
class ReferenceRecord:
    """Timing of one packet in the reference replay.

    Attributes:
        packet_id: Packet ID, assigned from 1 in send order.
        send_time: Time the packet left the source in ms.
        transmission_starts: Time the packet occupied each hop's link.
        arrival_times: First-bit arrival time at each node after the source.
        delivered_at: Time the packet reached the destination.
    """

    packet_id: int
    send_time: float
    transmission_starts: Dict[int, float] = field(default_factory=dict)
    arrival_times: Dict[int, float] = field(default_factory=dict)
    delivered_at: Optional[float] = None

    @property
    def latency(self) -> Optional[float]:
        if self.delivered_at is None:
            return None
        return self.delivered_at - self.send_time


class ReferenceReplay:
    """Replays packets along a path with one SimPy resource per hop.

    Attributes:
        env: SimPy environment.
        timings: Fixed per-hop durations.
        links: One capacity-1 resource per hop.
        records: Timing records in send order.
    """

    def __init__(self, scenario: Scenario):
        """Initialize the replay.

        Args:
            scenario: The path to replay.
        """
        self.env = simpy.Environment()
        self.timings: List[HopTiming] = scenario.hop_timings()
        self.links = [simpy.Resource(self.env, capacity=1) for _ in self.timings]
        self.records: List[ReferenceRecord] = []

    def send(self, send_time: float) -> ReferenceRecord:
        """Schedule a packet to leave the source at send_time.

        Args:
            send_time: Send time in ms.

        Returns:
            The packet's timing record, filled in as the replay runs.
        """
        record = ReferenceRecord(len(self.records) + 1, float(send_time))
        self.records.append(record)
        self.env.process(self._traverse(record))
        return record

    def run(self, until: Optional[float] = None) -> List[ReferenceRecord]:
        """Run the replay.

        Args:
            until: Stop time in ms (runs until all packets are delivered if None).

        Returns:
            Timing records in send order.
        """
        self.env.run(until=until)
        return self.records

    def _traverse(self, record: ReferenceRecord):
        yield self.env.timeout(record.send_time)

        for hop_index, timing in enumerate(self.timings):
            if timing.entry_queuing > 0:
                yield self.env.timeout(timing.entry_queuing)

            if timing.transmission > 0:
                with self.links[hop_index].request() as request:
                    yield request
                    record.transmission_starts[hop_index] = self.env.now
                    yield self.env.timeout(timing.transmission)

            if timing.propagation > 0:
                yield self.env.timeout(timing.propagation)
            record.arrival_times[hop_index + 1] = self.env.now

            if timing.processing > 0:
                yield self.env.timeout(timing.processing)

        record.delivered_at = self.env.now
        logger.debug("Reference packet %d delivered at %.4fms", record.packet_id, self.env.now)


def replay_path(
    scenario: Scenario, send_times: Iterable[float], until: Optional[float] = None
) -> List[ReferenceRecord]:
    """Replay packets sent at the given times along a scenario's path.

    Packets sent at the same time contend in the order given.

    Args:
        scenario: The path to replay.
        send_times: Send time of each packet in ms.
        until: Stop time in ms (runs to completion if None).

    Returns:
        Timing records in send order.
    """
    replay = ReferenceReplay(scenario)
    for send_time in sorted(send_times):
        replay.send(send_time)
    return replay.run(until)
