import pytest

from latency_sim.core.enums import Phase
from latency_sim.core.hop_queue import HopQueue
from latency_sim.core.packet import Packet


def make_packets(*send_times):
    return [Packet(i + 1, t, 125) for i, t in enumerate(send_times)]


def test_idle_server_is_claimed():
    queue = HopQueue(0, 1e6)
    (p1,) = make_packets(0.0)

    assert queue.try_start(p1, now=0.2, ready_at=0.0)
    assert queue.is_server_occupied_by(p1)
    assert queue.transmitting_packet_id == 1
    assert p1.transmission_starts[0] == 0.0
    assert queue.progress(0.5) == pytest.approx(0.5)


def test_busy_server_queues_packet():
    queue = HopQueue(0, 1e6)
    p1, p2 = make_packets(0.0, 0.1)

    assert queue.claim_or_enqueue(p1, 0.0, 0.0) is Phase.TRANSMITTING
    assert queue.claim_or_enqueue(p2, 0.1, 0.1) is Phase.QUEUING
    assert queue.is_queued(p2)
    assert queue.queue_length == 1
    # Asking again does not enqueue twice
    assert queue.claim_or_enqueue(p2, 0.2, 0.1) is Phase.QUEUING
    assert queue.queue_length == 1


def test_advance_hands_off_at_completion_time():
    queue = HopQueue(0, 1e6)
    p1, p2 = make_packets(0.0, 0.1)
    queue.claim_or_enqueue(p1, 0.0, 0.0)
    queue.claim_or_enqueue(p2, 0.1, 0.1)

    assert queue.advance(0.5) == 0
    assert queue.advance(1.0) == 2
    assert queue.transmitting_packet_id == 2
    assert queue.start_time == pytest.approx(1.0)
    assert queue.queue_length == 0
    assert not queue.is_queued(p2)


def test_hand_off_waits_for_readiness():
    queue = HopQueue(0, 1e6)
    p1, p2 = make_packets(0.0, 0.0)
    queue.claim_or_enqueue(p1, 0.0, 0.0)
    queue.enqueue_if_absent(p2, ready_at=1.5)

    queue.advance(2.0)
    assert p2.transmission_starts[0] == pytest.approx(1.5)


def test_advance_is_independent_of_step_size():
    coarse = HopQueue(0, 1e6)
    fine = HopQueue(0, 1e6)
    coarse_packets = make_packets(0.0, 0.0, 0.0)
    fine_packets = make_packets(0.0, 0.0, 0.0)
    for queue, packets in ((coarse, coarse_packets), (fine, fine_packets)):
        for packet in packets:
            queue.claim_or_enqueue(packet, 0.0, 0.0)

    assert coarse.advance(10.0) == 5
    for step in range(1, 101):
        fine.advance(step * 0.1)

    for a, b in zip(coarse_packets, fine_packets):
        assert a.transmission_starts[0] == pytest.approx(b.transmission_starts[0])
    assert [p.transmission_starts[0] for p in coarse_packets] == pytest.approx([0.0, 1.0, 2.0])
    assert not coarse.is_busy
    assert coarse.free_at == pytest.approx(3.0)


def test_fifo_order_is_preserved():
    queue = HopQueue(0, 1e6)
    packets = make_packets(0.0, 0.1, 0.2, 0.3)
    for packet in packets:
        queue.claim_or_enqueue(packet, packet.send_time, packet.send_time)

    served = [queue.transmitting_packet_id]
    for t in (1.0, 2.0, 3.0):
        queue.advance(t)
        served.append(queue.transmitting_packet_id)
    assert served == [1, 2, 3, 4]


def test_only_the_queue_head_may_start():
    queue = HopQueue(0, 1e6)
    p1, p2, p3 = make_packets(0.0, 0.0, 0.0)
    queue.claim_or_enqueue(p1, 0.0, 0.0)
    queue.claim_or_enqueue(p2, 0.0, 0.0)
    queue.claim_or_enqueue(p3, 0.0, 0.0)
    queue.transmitting = None

    assert not queue.try_start(p3, 1.0)
    assert queue.try_start(p2, 1.0)
    assert queue.waiting[0] is p3


def test_never_both_queued_and_transmitting():
    queue = HopQueue(0, 1e6)
    (p1,) = make_packets(0.0)
    queue.claim_or_enqueue(p1, 0.0, 0.0)
    assert not queue.enqueue_if_absent(p1, 0.0)
    assert queue.queue_length == 0


def test_progress_is_clamped():
    queue = HopQueue(0, 1e6)
    assert queue.progress(3.0) == 0.0
    (p1,) = make_packets(0.0)
    queue.try_start(p1, 0.0)
    assert 0.0 <= queue.progress(5.0) < 1.0
    assert queue.progress(-1.0) == 0.0


def test_clear():
    queue = HopQueue(0, 1e6)
    p1, p2 = make_packets(0.0, 0.0)
    queue.claim_or_enqueue(p1, 0.0, 0.0)
    queue.claim_or_enqueue(p2, 0.0, 0.0)
    queue.clear()
    assert queue.transmitting is None
    assert queue.queue_length == 0
    assert queue.free_at == float("-inf")
