import pytest

from latency_sim.core.delay_model import (
    GEOSTATIONARY_ALTITUDE,
    MAX_QUEUING_DELAY,
    DelayModel,
    HopDelays,
)
from latency_sim.core.enums import PowerClass
from latency_sim.core.scenario import Hop


def test_transmission_delay():
    assert DelayModel.transmission(1000, 1e6) == pytest.approx(1.0)
    assert DelayModel.transmission(1500 * 8, 100e6) == pytest.approx(0.12)


@pytest.mark.parametrize("bandwidth", [None, 0, -5])
def test_transmission_without_bandwidth_is_zero(bandwidth):
    assert DelayModel.transmission(1000, bandwidth) == 0.0


def test_propagation_uses_explicit_speed_first():
    assert DelayModel.propagation(2e5, speed=2e8) == pytest.approx(1.0)
    assert DelayModel.propagation(3e5, speed=3e8, medium="copper") == pytest.approx(1.0)


def test_propagation_medium_table_and_default():
    assert DelayModel.propagation(3e5, medium="wifi") == pytest.approx(1.0)
    assert DelayModel.propagation(3e5, medium="Vacuum") == pytest.approx(1.0)
    assert DelayModel.propagation(2e5, medium="fiber") == pytest.approx(1.0)
    assert DelayModel.propagation(2e5, medium="string-and-cans") == pytest.approx(1.0)
    assert DelayModel.propagation(2e5) == pytest.approx(1.0)


def test_propagation_without_distance_is_zero():
    assert DelayModel.propagation(None, speed=2e8) == 0.0
    assert DelayModel.propagation(0) == 0.0


def test_geostationary_satellite_adds_orbit_path():
    expected = 2 * GEOSTATIONARY_ALTITUDE / 3e8 * 1000
    assert DelayModel.propagation(0, medium="satellite", geostationary=True) == pytest.approx(expected)
    # Only satellite links go up to orbit
    assert DelayModel.propagation(0, medium="fiber", geostationary=True) == 0.0


def test_processing_scales_with_power_and_load():
    assert DelayModel.processing(2.0, PowerClass.HIGH, 0.0) == pytest.approx(2.0)
    assert DelayModel.processing(2.0, "medium", 0.0) == pytest.approx(3.0)
    assert DelayModel.processing(2.0, "low", 0.5) == pytest.approx(12.0)


def test_processing_unknown_power_and_clamped_load():
    assert DelayModel.processing(2.0, "turbo", 0.0) == pytest.approx(2.0)
    assert DelayModel.processing(2.0, "high", 3.0) == pytest.approx(6.0)
    assert DelayModel.processing(0, "low", 1.0) == 0.0


def test_queuing_curve():
    assert DelayModel.queuing(0.5) == pytest.approx(7.0)
    assert DelayModel.queuing(0.9) == pytest.approx(999.0)


def test_queuing_bounds():
    assert DelayModel.queuing(0.01) == pytest.approx(0.1)
    assert DelayModel.queuing(0.95) == pytest.approx(100.0)
    assert DelayModel.queuing(1.5) == pytest.approx(100.0)
    assert DelayModel.queuing(0.94) <= MAX_QUEUING_DELAY


def test_for_hop_components():
    hop = Hop(bandwidth=1e6, distance=2e5, processing_delay=0.5, utilization=0.5)
    delays = DelayModel.for_hop(hop, 125, 1)
    assert delays == HopDelays(transmission=1.0, propagation=1.0, processing=0.5, queuing=7.0)
    assert delays.total == pytest.approx(9.5)
    assert delays.as_dict()["total"] == pytest.approx(9.5)


def test_hop_prefers_explicit_queuing_delay():
    hop = Hop(queuing_delay=2.0, utilization=0.5)
    assert hop.queuing_time() == 2.0
    assert Hop(utilization=0.0).queuing_time() == 0.0
    assert Hop().queuing_time() == 0.0


def test_hop_processing_with_power_class():
    assert Hop(processing_delay=1.0).processing_time() == 1.0
    assert Hop(processing_delay=1.0, processing_power="low", cpu_load=0.5).processing_time() == pytest.approx(6.0)


def test_for_hop_first_hop_has_no_queuing():
    hop = Hop(bandwidth=1e6, queuing_delay=2.0)
    assert DelayModel.for_hop(hop, 125, 0).queuing == 0.0
    assert DelayModel.for_hop(hop, 125, 3).queuing == 2.0
