"""Closed-form delay formulas for latency simulation.

This module defines the DelayModel class, which computes the transmission,
propagation, processing and queuing delay of a single hop. Every public
formula returns milliseconds.
"""

from dataclasses import dataclass
from typing import Optional, Union

from latency_sim.core.enums import PowerClass

BITS_PER_BYTE = 8
MS_PER_SECOND = 1000.0

DEFAULT_PROPAGATION_SPEED = 2e8

# Signal speed in metres per second for each medium.
PROPAGATION_SPEEDS = {
    "fiber": 2e8,
    "copper": 2e8,
    "coax": 2e8,
    "wireless": 3e8,
    "wifi": 3e8,
    "satellite": 3e8,
    "air": 3e8,
    "vacuum": 3e8,
}

# Ground to geostationary orbit, in metres.
GEOSTATIONARY_ALTITUDE = 35_786_000.0

POWER_MULTIPLIERS = {
    PowerClass.LOW: 3.0,
    PowerClass.MEDIUM: 1.5,
    PowerClass.HIGH: 1.0,
}

UNSTABLE_UTILIZATION = 0.95
IDLE_UTILIZATION = 0.05
UNSTABLE_QUEUING_DELAY = 100.0
MIN_QUEUING_DELAY = 0.1
MAX_QUEUING_DELAY = 5000.0


@dataclass(frozen=True)
class HopDelays:
    """Delay components of one hop, in milliseconds.

    Attributes:
        transmission: Time to serialize the packet onto the link.
        propagation: Time for the signal to cross the link.
        processing: Time spent in the downstream device.
        queuing: Time spent waiting before transmission.
    """

    transmission: float = 0.0
    propagation: float = 0.0
    processing: float = 0.0
    queuing: float = 0.0

    @property
    def total(self) -> float:
        return self.transmission + self.propagation + self.processing + self.queuing

    def as_dict(self) -> dict:
        """Return the components and their total as a plain dictionary."""
        return {
            "transmission": self.transmission,
            "propagation": self.propagation,
            "processing": self.processing,
            "queuing": self.queuing,
            "total": self.total,
        }


class DelayModel:
    """Stateless delay formulas for a single hop/packet pair."""

    @staticmethod
    def transmission(bits: float, bandwidth: Optional[float]) -> float:
        """Calculate transmission delay.

        Args:
            bits: Packet size in bits.
            bandwidth: Link bandwidth in bits per second.

        Returns:
            Transmission delay in milliseconds, 0 when bandwidth is unknown.
        """
        if not bandwidth or bandwidth <= 0:
            return 0.0
        return bits / bandwidth * MS_PER_SECOND

    @staticmethod
    def propagation_speed(
        speed: Optional[float] = None, medium: Optional[str] = None
    ) -> float:
        """Select the signal speed for a link.

        Args:
            speed: Explicit propagation speed in metres per second.
            medium: Name of the physical medium.

        Returns:
            The explicit speed if given, else the medium's speed, else fiber speed.
        """
        if speed and speed > 0:
            return float(speed)
        if medium:
            return PROPAGATION_SPEEDS.get(medium.lower(), DEFAULT_PROPAGATION_SPEED)
        return DEFAULT_PROPAGATION_SPEED

    @staticmethod
    def propagation(
        distance: Optional[float],
        speed: Optional[float] = None,
        medium: Optional[str] = None,
        geostationary: bool = False,
    ) -> float:
        """Calculate propagation delay.

        Args:
            distance: Link length in metres.
            speed: Explicit propagation speed in metres per second.
            medium: Name of the physical medium, used when speed is not given.
            geostationary: Route satellite links up to GEO orbit and back down.

        Returns:
            Propagation delay in milliseconds.
        """
        path = distance if distance and distance > 0 else 0.0
        if geostationary and medium and medium.lower() == "satellite":
            path += 2 * GEOSTATIONARY_ALTITUDE
        if path <= 0:
            return 0.0
        return path / DelayModel.propagation_speed(speed, medium) * MS_PER_SECOND

    @staticmethod
    def processing(
        base_time: Optional[float],
        power_class: Union[PowerClass, str, None] = PowerClass.HIGH,
        current_load: float = 0.0,
    ) -> float:
        """Calculate processing delay scaled by device power and load.

        Args:
            base_time: Base processing time in milliseconds.
            power_class: Device power class (low, medium or high).
            current_load: Device load between 0 and 1.

        Returns:
            Processing delay in milliseconds.
        """
        if not base_time or base_time <= 0:
            return 0.0
        try:
            multiplier = POWER_MULTIPLIERS[PowerClass(power_class)]
        except ValueError:
            multiplier = 1.0
        load = min(max(current_load or 0.0, 0.0), 1.0)
        return base_time * multiplier * (1 + load * 2)

    @staticmethod
    def queuing(utilization: Optional[float]) -> float:
        """Derive queuing delay from link utilization.

        Uses the cubic congestion curve 1/(1-u)^3 - 1.

        Args:
            utilization: Link utilization between 0 and 1.

        Returns:
            Queuing delay in milliseconds, never above MAX_QUEUING_DELAY.
        """
        u = utilization or 0.0
        if u >= UNSTABLE_UTILIZATION:
            delay = UNSTABLE_QUEUING_DELAY
        elif u < IDLE_UTILIZATION:
            delay = MIN_QUEUING_DELAY
        else:
            delay = 1 / (1 - u) ** 3 - 1
        return min(delay, MAX_QUEUING_DELAY)

    @staticmethod
    def for_hop(hop, packet_size: int, hop_index: int) -> HopDelays:
        """Calculate every delay component of a hop.

        The first hop has no upstream link to queue behind, so its queuing
        is always zero.

        Args:
            hop: Hop configuration.
            packet_size: Packet size in bytes.
            hop_index: Position of the hop along the path, from 0.

        Returns:
            HopDelays for the hop.
        """
        return HopDelays(
            transmission=DelayModel.transmission(packet_size * BITS_PER_BYTE, hop.bandwidth),
            propagation=DelayModel.propagation(
                hop.distance, hop.propagation_speed, hop.medium, hop.geostationary
            ),
            processing=hop.processing_time(),
            queuing=hop.queuing_time() if hop_index > 0 else 0.0,
        )
