"""Enumerations for latency simulation.

This module defines enumerations used throughout the latency simulator.
"""

from enum import Enum

class Phase(str, Enum):
    """Lifecycle phase of a packet at a given simulated time.

    Attributes:
        WAITING: The packet has not been sent yet.
        QUEUING: Waiting for a hop, either a fixed entry delay or a busy server.
        TRANSMITTING: Bits are being serialized onto the hop's link.
        PROPAGATING: The signal is travelling along the link.
        PROCESSING: The downstream device is handling the packet.
        DELIVERED: The packet has traversed every hop.
    """

    WAITING = "waiting"
    QUEUING = "queuing"
    TRANSMITTING = "transmitting"
    PROPAGATING = "propagating"
    PROCESSING = "processing"
    DELIVERED = "delivered"


class SendMode(str, Enum):
    """Enum for packet injection modes.

    Attributes:
        MANUAL: Packets are only created on explicit request.
        INTERVAL: One packet every fixed interval.
        BURST: A group of packets every fixed interval.
    """

    MANUAL = "manual"
    INTERVAL = "interval"
    BURST = "burst"

class PowerClass(str, Enum):
    """Processing power of a device, used to scale processing delay."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
