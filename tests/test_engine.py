import pytest

from latency_sim.core.delay_model import DelayModel
from latency_sim.core.engine import PacketSimulationEngine
from latency_sim.core.enums import Phase
from latency_sim.core.packet import PhaseState
from latency_sim.core.presets import get_preset
from latency_sim.core.scenario import Scenario
from latency_sim.utils.metrics import delay_breakdown

PHASE_ORDER = {
    Phase.QUEUING: 0,
    Phase.TRANSMITTING: 1,
    Phase.PROPAGATING: 2,
    Phase.PROCESSING: 3,
}


def timeline_position(state, hop_count):
    """Sortable position of a packet along its journey."""
    if state.phase is Phase.WAITING:
        return (-1, 0, 0.0)
    if state.phase is Phase.DELIVERED:
        return (hop_count, 0, 1.0)
    # Queuing progress restarts at 0 when entry queuing runs into a busy server
    progress = 0.0 if state.phase is Phase.QUEUING else state.progress
    return (state.hop, PHASE_ORDER[state.phase], progress)


def test_single_hop_transmission(one_hop):
    engine = PacketSimulationEngine(one_hop)
    engine.send_packet(0.0)

    state = engine.evaluate(0.5).packet(1)
    assert state.phase is Phase.TRANSMITTING
    assert state.progress == pytest.approx(0.5)

    state = engine.evaluate(1.0).packet(1)
    assert state.phase is Phase.DELIVERED
    assert engine.packets[0].delivered_at == pytest.approx(1.0)


def test_second_packet_waits_for_server(one_hop):
    engine = PacketSimulationEngine(one_hop)
    engine.send_packet(0.0)
    engine.send_packet(0.1)

    snapshot = engine.evaluate(0.5)
    assert snapshot.packet(2).phase is Phase.QUEUING
    assert snapshot.queues[0].queue_length == 1
    assert snapshot.queues[0].transmitting_packet_id == 1

    snapshot = engine.evaluate(1.0)
    assert snapshot.packet(1).phase is Phase.DELIVERED
    assert snapshot.packet(2).phase is Phase.TRANSMITTING
    assert snapshot.queues[0].transmitting_packet_id == 2
    assert engine.packets[1].transmission_starts[0] == pytest.approx(1.0)

    engine.evaluate(2.0)
    assert engine.packets[1].delivered_at == pytest.approx(2.0)


def test_large_steps_give_the_same_deliveries(one_hop):
    stepped = PacketSimulationEngine(one_hop)
    jumped = PacketSimulationEngine(one_hop)
    for engine in (stepped, jumped):
        for send_time in (0.0, 0.1, 0.2, 2.5):
            engine.send_packet(send_time)

    for step in range(1, 101):
        stepped.evaluate(step * 0.05)
    jumped.evaluate(5.0)

    # The last packet is ready at 2.5 but the server is busy until 3.0
    expected = [1.0, 2.0, 3.0, 4.0]
    assert [p.delivered_at for p in stepped.packets] == pytest.approx(expected)
    assert [p.delivered_at for p in jumped.packets] == pytest.approx(expected)


def test_phase_sequence(two_hop):
    engine = PacketSimulationEngine(two_hop)
    engine.send_packet(0.0)

    expected = [
        (0.5, Phase.TRANSMITTING, 0, 0.5),
        (1.5, Phase.PROPAGATING, 0, 0.5),
        (2.5, Phase.PROCESSING, 0, 0.5),
        (3.5, Phase.QUEUING, 1, 0.5),
        (4.25, Phase.TRANSMITTING, 1, 0.25),
        (5.0, Phase.DELIVERED, 2, 1.0),
    ]
    for now, phase, hop, progress in expected:
        state = engine.evaluate(now).packet(1)
        assert (state.phase, state.hop) == (phase, hop), now
        assert state.progress == pytest.approx(progress)

    packet = engine.packets[0]
    assert packet.arrival_times == pytest.approx({1: 2.0, 2: 5.0})
    assert packet.get_total_delay() == pytest.approx(5.0)


def test_waiting_before_send_time(one_hop):
    engine = PacketSimulationEngine(one_hop)
    engine.send_packet(5.0)
    snapshot = engine.evaluate(1.0)
    assert snapshot.packet(1).phase is Phase.WAITING
    assert snapshot.count(Phase.WAITING) == 1


def test_evaluation_is_idempotent(one_hop):
    engine = PacketSimulationEngine(one_hop)
    for send_time in (0.0, 0.1, 0.2):
        engine.send_packet(send_time)

    first = engine.evaluate(1.5)
    second = engine.evaluate(1.5)
    assert first == second


def test_backward_seek_resimulates(one_hop):
    engine = PacketSimulationEngine(one_hop)
    engine.send_packet(0.0)
    engine.send_packet(0.1)

    forward = engine.evaluate(0.5)
    engine.evaluate(3.0)
    backward = engine.evaluate(0.5)

    assert backward == forward
    assert engine.packets[0].delivered_at is None
    engine.evaluate(3.0)
    assert [p.delivered_at for p in engine.packets] == pytest.approx([1.0, 2.0])


def test_delivery_notified_once(one_hop):
    engine = PacketSimulationEngine(one_hop)
    delivered = []
    engine.register_hook("packet_delivered", delivered.append)
    engine.send_packet(0.0)

    engine.evaluate(2.0)
    engine.evaluate(3.0)
    engine.evaluate(0.5)
    engine.evaluate(2.0)
    assert [p.id for p in delivered] == [1]


def test_packet_sent_hook_and_unknown_hook(one_hop):
    engine = PacketSimulationEngine(one_hop)
    sent = []
    engine.register_hook("packet_sent", sent.append)
    engine.send_packet(0.0)
    assert [p.id for p in sent] == [1]

    with pytest.raises(ValueError):
        engine.register_hook("packet_lost", print)


def test_packet_cap(one_hop):
    engine = PacketSimulationEngine(one_hop, max_packets=2)
    assert engine.send_packet(0.0).id == 1
    assert engine.send_packet(0.0).id == 2
    assert engine.send_packet(0.0) is None
    assert len(engine.packets) == 2


def test_reset(one_hop):
    engine = PacketSimulationEngine(one_hop)
    engine.send_packet(0.0)
    engine.send_packet(0.1)
    engine.evaluate(0.5)

    engine.reset()
    assert engine.packets == []
    assert engine.queues[0].transmitting is None
    assert engine.send_packet(0.0).id == 1


def test_empty_path_delivers_at_send_time():
    engine = PacketSimulationEngine(Scenario(hops=[]))
    engine.send_packet(0.0)
    assert engine.evaluate(0.0).packet(1).phase is Phase.DELIVERED
    assert engine.packets[0].get_total_delay() == 0.0


def test_delay_components_add_up_to_latency():
    scenario = get_preset("wan")
    engine = PacketSimulationEngine(scenario)
    engine.send_packet(0.0)
    latency = scenario.single_packet_latency()
    engine.evaluate(latency + 1.0)

    packet = engine.packets[0]
    assert packet.get_total_delay() == pytest.approx(latency)
    totals = engine.delay_totals(packet)
    assert sum(totals.values()) == pytest.approx(latency)
    expected = delay_breakdown(scenario)["totals"]
    for kind, value in totals.items():
        assert value == pytest.approx(expected[kind])


def test_contention_counts_as_queuing(one_hop):
    engine = PacketSimulationEngine(one_hop)
    engine.send_packet(0.0)
    second = engine.send_packet(0.1)
    engine.evaluate(3.0)

    totals = engine.delay_totals(second)
    assert totals["queuing"] == pytest.approx(0.9)
    assert totals["transmission"] == pytest.approx(1.0)


def test_partial_delay_totals(two_hop):
    engine = PacketSimulationEngine(two_hop)
    packet = engine.send_packet(0.0)
    engine.evaluate(1.5)
    totals = engine.delay_totals(packet)
    assert totals == pytest.approx(
        {"transmission": 1.0, "propagation": 0.5, "processing": 0.0, "queuing": 0.0}
    )


def test_progress_is_monotonic():
    scenario = get_preset("simple")
    engine = PacketSimulationEngine(scenario)
    for send_time in (0.0, 0.05, 0.1, 0.15):
        engine.send_packet(send_time)

    last = {}
    for step in range(0, 400):
        snapshot = engine.evaluate(step * 0.01)
        for state in snapshot.packets:
            position = timeline_position(state, len(scenario.hops))
            assert position >= last.get(state.id, position)
            last[state.id] = position
    assert all(p.is_delivered for p in engine.packets)


def test_location(two_hop):
    engine = PacketSimulationEngine(two_hop)
    packet = engine.send_packet(0.0)

    expected = [
        (0.5, "Source"),
        (1.5, "Source → Router 1 (50%)"),
        (2.5, "Router 1"),
        (3.5, "Router 1"),
        (6.0, "Destination"),
    ]
    for now, location in expected:
        engine.evaluate(now)
        assert engine.location(packet) == location


def test_packet_state_pairs(one_hop):
    engine = PacketSimulationEngine(one_hop)
    packet = engine.send_packet(1.0)
    engine.evaluate(0.5)
    assert packet.state == PhaseState.waiting()
    engine.evaluate(2.0)
    assert packet.state == PhaseState.delivered()


def test_hop_delays_sum_to_engine_latency():
    scenario = get_preset("simple")
    expected = sum(
        DelayModel.for_hop(hop, scenario.packet_size, i).total
        for i, hop in enumerate(scenario.hops)
    )
    engine = PacketSimulationEngine(scenario)
    packet = engine.send_packet(0.0)
    engine.evaluate(expected + 1.0)

    assert packet.get_total_delay() == pytest.approx(expected)
    assert expected == pytest.approx(1.341)
