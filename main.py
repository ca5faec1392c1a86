import argparse
import logging
import os

from latency_sim.core.engine import PacketSimulationEngine
from latency_sim.core.enums import SendMode
from latency_sim.core.playback import PlaybackClock, run_headless
from latency_sim.core.presets import get_preset, list_presets
from latency_sim.core.reference import replay_path
from latency_sim.core.scenario import Scenario, load_scenario
from latency_sim.utils.metrics import (
    delay_breakdown,
    round_trip_time,
    run_metrics,
    save_metrics_to_json,
)
from latency_sim.utils.visualization import (
    plot_delay_breakdown,
    plot_phase_timeline,
    save_path_visualization,
)


def print_breakdown(scenario: Scenario):
    """Print the single-packet delay breakdown of a scenario"""
    breakdown = delay_breakdown(scenario)
    print(f"\n=== {scenario.name} ===")
    if scenario.description:
        print(scenario.description)
    print(f"Path: {' → '.join(scenario.nodes)}  ({scenario.packet_size} bytes)")

    for hop in breakdown["hops"]:
        print(
            f"  Hop {hop['hop']} {hop['from']} → {hop['to']}: "
            f"tx {hop['transmission']:.4f}ms, prop {hop['propagation']:.4f}ms, "
            f"proc {hop['processing']:.4f}ms, queue {hop['queuing']:.4f}ms"
        )

    totals = breakdown["totals"]
    print(f"Single-packet latency: {totals['total']:.4f}ms (RTT {round_trip_time(scenario):.4f}ms)")
    for kind, percent in breakdown["percentages"].items():
        print(f"  {kind:<13} {totals[kind]:10.4f}ms  {percent:5.1f}%")
    print(f"Dominant delay: {breakdown['dominant']}")


def run_simulation(scenario: Scenario, frame_seconds: float, record: bool = False):
    """Play a scenario headless and return the engine and recorded snapshots"""
    engine = PacketSimulationEngine(scenario)
    clock = PlaybackClock(engine)

    snapshots = []
    if record:
        clock.register_hook("update", snapshots.append)
    clock.register_hook(
        "packet_delivered",
        lambda p: print(f"  Packet {p.id} delivered at {p.delivered_at:.4f}ms"),
    )

    print(
        f"\nRunning {clock.mode}-packet simulation to {clock.max_simulation_time:.4f}ms "
        f"({scenario.simulation.send_mode.value} sends)"
    )
    run_headless(clock, frame_seconds=frame_seconds)
    return engine, snapshots


def verify_against_reference(engine: PacketSimulationEngine):
    """Compare delivery times with the discrete-event reference replay"""
    records = replay_path(engine.scenario, [p.send_time for p in engine.packets])
    mismatches = 0
    for packet, record in zip(engine.packets, records):
        if packet.delivered_at is None or record.delivered_at is None:
            continue
        if abs(packet.delivered_at - record.delivered_at) > 1e-6:
            mismatches += 1
            print(
                f"  Packet {packet.id}: engine {packet.delivered_at:.6f}ms, "
                f"reference {record.delivered_at:.6f}ms"
            )
    print(f"Reference check: {mismatches} mismatching deliveries")
    return mismatches == 0


def main():
    """Main function to run a latency simulation"""
    parser = argparse.ArgumentParser(description="Packet Latency Simulator")
    parser.add_argument("--list", action="store_true", help="List built-in scenarios")
    parser.add_argument("--preset", default="simple", help="Built-in scenario to run")
    parser.add_argument("--scenario", help="Path to a scenario JSON file")
    parser.add_argument("--mode", choices=["single", "multi"], help="Visualization mode")
    parser.add_argument(
        "--send-mode", choices=["manual", "interval", "burst"], help="Packet send mode"
    )
    parser.add_argument("--interval", type=float, help="Time between sends in ms")
    parser.add_argument("--burst-size", type=int, help="Packets per burst")
    parser.add_argument("--max-packets", type=int, help="Packet cap")
    parser.add_argument("--speed", type=float, help="Simulated ms per real second")
    parser.add_argument(
        "--frame", type=float, default=1 / 60, help="Real seconds per frame (default: 1/60)"
    )
    parser.add_argument("--output", help="Save run metrics to this JSON file")
    parser.add_argument("--plot", help="Save plots to this directory")
    parser.add_argument(
        "--verify", action="store_true", help="Check deliveries against the reference replay"
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")

    args = parser.parse_args()

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )

    if args.list:
        for name in list_presets():
            print(f"{name:<22} {get_preset(name).name}")
        return

    scenario = load_scenario(args.scenario) if args.scenario else get_preset(args.preset)

    # Command line flags override the scenario's simulation section
    sim = scenario.simulation
    if args.mode:
        sim.visualization_mode = args.mode
    if args.send_mode:
        sim.send_mode = SendMode(args.send_mode)
    if args.interval is not None:
        sim.packet_interval = args.interval
    if args.burst_size is not None:
        sim.burst_size = args.burst_size
    if args.max_packets is not None:
        sim.max_packets = args.max_packets
    if args.speed is not None:
        sim.playback_speed = args.speed

    print_breakdown(scenario)
    engine, snapshots = run_simulation(scenario, args.frame, record=bool(args.plot))

    metrics = run_metrics(engine)
    print(
        f"\nSent {metrics['packets_sent']}, delivered {metrics['packets_delivered']}, "
        f"average latency {metrics['average_latency']:.4f}ms, "
        f"jitter {metrics['jitter']['std_dev']:.4f}ms"
    )

    if args.verify:
        verify_against_reference(engine)

    if args.output:
        save_metrics_to_json(metrics, args.output)
        print(f"Metrics saved to {args.output}")

    if args.plot:
        os.makedirs(args.plot, exist_ok=True)
        save_path_visualization(scenario, os.path.join(args.plot, "path.png"))
        plot_delay_breakdown(scenario, os.path.join(args.plot, "delay_breakdown.png"))
        plot_phase_timeline(snapshots, os.path.join(args.plot, "phase_timeline.png"))
        print(f"Plots saved to {args.plot}")


if __name__ == "__main__":
    main()
