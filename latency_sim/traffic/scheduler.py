"""Packet send scheduling for latency simulation.

This module provides the Scheduler class, which decides when new packets
are injected at the source: only on request (manual), one packet every
interval, or a burst of packets every interval.
"""

import logging
from typing import List, Optional, Union

from latency_sim.core.enums import SendMode

logger = logging.getLogger(__name__)


class Scheduler:
    """Decides the send times of automatically injected packets.

    Attributes:
        mode: Current send mode.
        interval: Time between sends (or bursts) in ms.
        burst_size: Packets per burst.
        stagger: Offset between packets of one burst in ms.
        last_send: Time of the last automatic send.
    """

    def __init__(
        self,
        mode: Union[SendMode, str] = SendMode.INTERVAL,
        interval: float = 10.0,
        burst_size: int = 3,
        stagger: float = 0.1,
    ):
        """Initialize the scheduler.

        Args:
            mode: Send mode ("manual", "interval" or "burst").
            interval: Time between sends (or bursts) in ms.
            burst_size: Packets per burst.
            stagger: Offset between packets of one burst in ms.
        """
        self.mode = SendMode(mode)
        self.interval = interval
        self.burst_size = burst_size
        self.stagger = stagger
        self.last_send = float("-inf")

    @classmethod
    def from_config(cls, config) -> "Scheduler":
        """Create a scheduler from a SimulationConfig."""
        return cls(
            config.send_mode,
            config.packet_interval,
            config.burst_size,
            config.burst_stagger,
        )

    def configure(
        self,
        mode: Union[SendMode, str],
        interval: Optional[float] = None,
        burst_size: Optional[int] = None,
    ) -> None:
        """Change the send mode and, optionally, its parameters.

        Args:
            mode: New send mode.
            interval: New interval in ms (unchanged if None).
            burst_size: New burst size (unchanged if None).
        """
        self.mode = SendMode(mode)
        if interval is not None:
            self.interval = interval
        if burst_size is not None:
            self.burst_size = burst_size
        logger.debug(
            "Send mode %s, interval %.3fms, burst size %d",
            self.mode.value, self.interval, self.burst_size,
        )

    def due_send_times(self, now: float) -> List[float]:
        """Send times of packets that are due at the given time.

        Args:
            now: Current simulation time in ms.

        Returns:
            Send times of the packets to create, possibly empty.
        """
        if self.mode is SendMode.MANUAL:
            return []
        if now - self.last_send < self.interval:
            return []

        self.last_send = now
        if self.mode is SendMode.BURST:
            return [now + i * self.stagger for i in range(self.burst_size)]
        return [now]

    def reset(self) -> None:
        self.last_send = float("-inf")
