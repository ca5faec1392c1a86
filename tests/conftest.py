import sys
from pathlib import Path

# Ensure package import for tests
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

import pytest

from latency_sim.core.scenario import Hop, Scenario


@pytest.fixture
def one_hop() -> Scenario:
    """125-byte packets over a single 1 Mbps hop: 1ms transmission, nothing else."""
    return Scenario(hops=[Hop(bandwidth=1e6)], packet_size=125)


@pytest.fixture
def two_hop() -> Scenario:
    """Two hops with 1ms for every non-zero phase.

    Hop 0: transmission 0-1, propagation 1-2, processing 2-3.
    Hop 1: entry queuing 3-4, transmission 4-5. Delivered at 5.
    """
    return Scenario(
        hops=[
            Hop(bandwidth=1e6, distance=2e5, propagation_speed=2e8, processing_delay=1.0),
            Hop(bandwidth=1e6, queuing_delay=1.0),
        ],
        packet_size=125,
    )
