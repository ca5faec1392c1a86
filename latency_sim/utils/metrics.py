"""Metrics utilities for latency simulation.

This module provides functions for analysing a scenario's delays and the
results of a simulation run, including delay breakdowns, round-trip time,
bandwidth-delay product, throughput, jitter and multi-packet timing.
"""

import json
import math
import os
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from latency_sim.core.delay_model import BITS_PER_BYTE, MS_PER_SECOND
from latency_sim.core.engine import DELAY_TYPES, PacketSimulationEngine
from latency_sim.core.scenario import Scenario

DEFAULT_WINDOW_SIZE = 65536
DEFAULT_HEADER_SIZE = 40
ASYMMETRIC_RTT_FACTOR = 1.5


def delay_breakdown(scenario: Scenario) -> Dict[str, Any]:
    """Break a scenario's single-packet latency down by delay type.

    Args:
        scenario: Scenario to analyse.

    Returns:
        Dictionary with the total per delay type, the overall total, per-hop
        components, the dominant delay type and each type's percentage.
    """
    totals = dict.fromkeys(DELAY_TYPES, 0.0)
    hops = []
    for i, timing in enumerate(scenario.hop_timings()):
        hop = {
            "hop": i,
            "from": scenario.nodes[i],
            "to": scenario.nodes[i + 1],
            "transmission": timing.transmission,
            "propagation": timing.propagation,
            "processing": timing.processing,
            "queuing": timing.entry_queuing,
            "total": timing.total,
        }
        hops.append(hop)
        for kind in DELAY_TYPES:
            totals[kind] += hop[kind]

    totals["total"] = sum(totals[kind] for kind in DELAY_TYPES)
    return {
        "totals": totals,
        "hops": hops,
        "dominant": dominant_delay(totals),
        "percentages": delay_percentages(totals),
    }


def dominant_delay(delays: Dict[str, float]) -> str:
    """Name of the largest delay type (ties go to the first in DELAY_TYPES)."""
    return max(DELAY_TYPES, key=lambda kind: delays.get(kind) or 0.0)


def delay_percentages(delays: Dict[str, float]) -> Dict[str, float]:
    total = delays.get("total") or sum(delays.get(kind) or 0.0 for kind in DELAY_TYPES)
    if not total:
        total = 1.0
    return {kind: (delays.get(kind) or 0.0) / total * 100 for kind in DELAY_TYPES}


def path_segments(scenario: Scenario) -> List[Dict[str, Any]]:
    """Lay out the phases of one packet on an idle path as time segments.

    Args:
        scenario: Scenario to lay out.

    Returns:
        One segment per non-zero phase with its type, hop, start and end in ms.
    """
    segments = []
    now = 0.0
    for i, timing in enumerate(scenario.hop_timings()):
        for kind, duration in (
            ("queuing", timing.entry_queuing),
            ("transmission", timing.transmission),
            ("propagation", timing.propagation),
            ("processing", timing.processing),
        ):
            if duration > 0:
                segments.append({"type": kind, "hop": i, "start": now, "end": now + duration})
                now += duration
    return segments


def round_trip_time(scenario: Scenario, symmetric: bool = True) -> float:
    """Round-trip time in ms.

    An asymmetric return path is estimated at half the forward latency.
    """
    one_way = scenario.single_packet_latency()
    return one_way * 2 if symmetric else one_way * ASYMMETRIC_RTT_FACTOR


def bandwidth_delay_product(
    bandwidth: float, delay: float, packet_size: int = 1500, window_size: int = DEFAULT_WINDOW_SIZE
) -> Dict[str, float]:
    """Calculate the bandwidth-delay product.

    Args:
        bandwidth: Link bandwidth in bits per second.
        delay: One-way delay in ms.
        packet_size: Packet size in bytes.
        window_size: Window size in bytes.

    Returns:
        Data in flight in bits, bytes, packets and windows.
    """
    bits = bandwidth * delay / MS_PER_SECOND
    size = bits / BITS_PER_BYTE
    return {
        "bits": bits,
        "bytes": size,
        "packets": math.ceil(size / packet_size),
        "windows": math.ceil(size / window_size),
    }


def max_throughput(bandwidth: float, rtt: float, window_size: int = DEFAULT_WINDOW_SIZE) -> float:
    """Window-limited throughput in bits per second.

    Args:
        bandwidth: Link bandwidth in bits per second.
        rtt: Round-trip time in ms.
        window_size: Window size in bytes.

    Returns:
        The lower of the bandwidth and one window per round trip.
    """
    if rtt <= 0:
        return bandwidth
    window_limited = window_size * BITS_PER_BYTE / (rtt / MS_PER_SECOND)
    return min(bandwidth, window_limited)


def effective_rate(
    bandwidth: float, payload_size: int, header_size: int = DEFAULT_HEADER_SIZE
) -> Dict[str, float]:
    efficiency = payload_size / (payload_size + header_size)
    return {
        "raw_bandwidth": bandwidth,
        "effective_rate": bandwidth * efficiency,
        "efficiency": efficiency,
        "overhead_percent": (1 - efficiency) * 100,
    }


def mm1_queue(arrival_rate: float, service_rate: float) -> Dict[str, Any]:
    """Estimate queue statistics with the M/M/1 model.

    Args:
        arrival_rate: Packet arrival rate in packets per second.
        service_rate: Service rate in packets per second.

    Returns:
        Stability, utilization, average delay in ms and average queue length.
    """
    if service_rate <= arrival_rate:
        return {
            "stable": False,
            "utilization": 1.0,
            "average_delay": math.inf,
            "average_queue_length": math.inf,
        }
    utilization = arrival_rate / service_rate
    return {
        "stable": True,
        "utilization": utilization,
        "average_delay": MS_PER_SECOND / (service_rate - arrival_rate),
        "average_queue_length": utilization / (1 - utilization),
    }


def jitter(delays: Sequence[float]) -> Dict[str, float]:
    """Calculate delay variation statistics.

    Args:
        delays: Measured delays in ms.

    Returns:
        Minimum, maximum, mean, population standard deviation and range;
        all zero for fewer than two measurements.
    """
    if len(delays) < 2:
        return {"min": 0.0, "max": 0.0, "average": 0.0, "std_dev": 0.0, "range": 0.0}
    values = np.asarray(delays, dtype=float)
    return {
        "min": float(values.min()),
        "max": float(values.max()),
        "average": float(values.mean()),
        "std_dev": float(values.std()),
        "range": float(np.ptp(values)),
    }


def bottleneck(scenario: Scenario) -> Dict[str, Any]:
    """Find the hop with the lowest bandwidth.

    Returns:
        The bottleneck bandwidth (inf if no hop has one) and its hop index (-1 if none).
    """
    bandwidth, hop_index = math.inf, -1
    for i, hop in enumerate(scenario.hops):
        if hop.bandwidth and hop.bandwidth < bandwidth:
            bandwidth, hop_index = hop.bandwidth, i
    return {"bandwidth": bandwidth, "hop": hop_index}


def multi_packet_timing(scenario: Scenario, num_packets: int, interval: float = 0.0) -> Dict[str, Any]:
    """Estimate timing of a packet train without contention.

    Args:
        scenario: Scenario to analyse.
        num_packets: Number of packets sent.
        interval: Time between sends in ms.

    Returns:
        First and last packet times, effective throughput and bottleneck.
    """
    latency = scenario.single_packet_latency()
    last_send = (num_packets - 1) * interval
    last_arrival = last_send + latency
    seconds = last_arrival / MS_PER_SECOND
    throughput = scenario.packet_bits * num_packets / seconds if seconds > 0 else 0.0
    slowest = bottleneck(scenario)
    return {
        "first_packet_time": latency,
        "last_packet_send_time": last_send,
        "last_packet_arrival_time": last_arrival,
        "effective_throughput": throughput,
        "bottleneck": slowest,
        "utilization": throughput / slowest["bandwidth"] if slowest["hop"] >= 0 else 0.0,
        "packets_per_second": num_packets / (seconds or 1),
    }


def run_metrics(engine: PacketSimulationEngine, now: Optional[float] = None) -> Dict[str, Any]:
    """Summarise a simulation run.

    Args:
        engine: Engine after a run.
        now: Time to measure delay totals at (defaults to the last evaluation time).

    Returns:
        Packet counts, latency statistics, cumulative time per delay type and
        the delivery time of each delivered packet.
    """
    delivered = engine.delivered_packets()
    latencies = [p.get_total_delay() for p in delivered]

    totals = dict.fromkeys(DELAY_TYPES, 0.0)
    for packet in engine.packets:
        for kind, value in engine.delay_totals(packet, now).items():
            totals[kind] += value

    return {
        "scenario": engine.scenario.name,
        "time": engine.current_time if now is None else now,
        "packets_sent": len(engine.packets),
        "packets_delivered": len(delivered),
        "packets_in_flight": len(engine.packets) - len(delivered),
        "single_packet_latency": engine.scenario.single_packet_latency(),
        "average_latency": float(np.mean(latencies)) if latencies else 0.0,
        "jitter": jitter(latencies),
        "delay_totals": totals,
        "deliveries": {p.id: p.delivered_at for p in delivered},
    }


def save_metrics_to_json(metrics: Dict[str, Any], filename: str = "results/metrics.json") -> None:
    """Save metrics to a JSON file.

    Args:
        metrics: Dictionary of metrics to save.
        filename: Output filename.
    """
    directory = os.path.dirname(filename)
    if directory:
        os.makedirs(directory, exist_ok=True)

    # JSON object keys must be strings
    serializable_metrics = {}
    for key, value in metrics.items():
        if isinstance(value, dict):
            serializable_metrics[key] = {str(k): v for k, v in value.items()}
        else:
            serializable_metrics[key] = value

    with open(filename, "w") as f:
        json.dump(serializable_metrics, f, indent=2)
