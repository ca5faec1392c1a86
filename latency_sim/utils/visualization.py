"""Visualization utilities for latency simulation.

This module provides functions for plotting scenario delays and simulation
results offline, including the path graph, per-hop delay breakdown and a
per-packet phase timeline.
"""

import os
from typing import Dict, List, Sequence, Tuple

import matplotlib.pyplot as plt
import networkx as nx
import numpy as np

from latency_sim.core.engine import DELAY_TYPES
from latency_sim.core.enums import Phase
from latency_sim.core.scenario import Scenario
from latency_sim.core.snapshot import Snapshot

DELAY_COLORS = {
    "transmission": "tab:blue",
    "propagation": "tab:green",
    "processing": "tab:orange",
    "queuing": "tab:red",
}

PHASE_COLORS = {
    Phase.QUEUING: DELAY_COLORS["queuing"],
    Phase.TRANSMITTING: DELAY_COLORS["transmission"],
    Phase.PROPAGATING: DELAY_COLORS["propagation"],
    Phase.PROCESSING: DELAY_COLORS["processing"],
}


def _finish(fig, filename: str | None, show: bool) -> None:
    if filename:
        directory = os.path.dirname(filename)
        if directory:
            os.makedirs(directory, exist_ok=True)
        fig.savefig(filename)
        plt.close(fig)
    elif show:
        plt.show()


def save_path_visualization(
    scenario: Scenario,
    filename: str | None = None,
    figsize: Tuple[int, int] = (10, 3),
    show=True,
) -> None:
    """Draw the scenario's path with each hop labelled by its delay.

    Args:
        scenario: Scenario to draw.
        filename: Output filename, or None to show it immediately.
        figsize: Figure size as (width, height) in inches.
        show: Whether to show the figure when no filename is given.
    """
    fig = plt.figure(figsize=figsize)

    graph = scenario.to_graph()
    pos = {node: (node, 0) for node in graph.nodes()}

    nx.draw_networkx_nodes(graph, pos, node_size=800, node_color="lightblue")
    nx.draw_networkx_edges(graph, pos, edge_color="gray", arrows=True, arrowsize=20)

    labels = {node: data["name"] for node, data in graph.nodes(data=True)}
    nx.draw_networkx_labels(graph, pos, labels=labels, font_size=10)

    edge_labels = {(u, v): f"{graph[u][v]['delay']:.3f}ms" for u, v in graph.edges()}
    nx.draw_networkx_edge_labels(
        graph, pos, edge_labels=edge_labels, font_size=9, rotate=False,
        bbox=dict(facecolor="white", edgecolor="none", alpha=0.7),
    )

    plt.title(scenario.name)
    plt.axis("off")
    plt.tight_layout()
    _finish(fig, filename, show)


def plot_delay_breakdown(
    scenario: Scenario,
    filename: str | None = None,
    show=True,
) -> None:
    """Plot a stacked bar of each hop's delay components.

    Args:
        scenario: Scenario to plot.
        filename: Output filename, or None to show it immediately.
        show: Whether to show the figure when no filename is given.
    """
    timings = scenario.hop_timings()
    components = {
        "transmission": [t.transmission for t in timings],
        "propagation": [t.propagation for t in timings],
        "processing": [t.processing for t in timings],
        "queuing": [t.entry_queuing for t in timings],
    }

    fig, ax = plt.subplots(figsize=(8, 5))
    x = np.arange(len(timings))
    bottom = np.zeros(len(timings))
    for kind in DELAY_TYPES:
        values = np.array(components[kind])
        ax.bar(x, values, width=0.5, bottom=bottom, label=kind, color=DELAY_COLORS[kind])
        bottom += values

    ax.set_xticks(x)
    ax.set_xticklabels(
        [f"{scenario.nodes[i]} → {scenario.nodes[i + 1]}" for i in range(len(timings))],
        rotation=20,
    )
    ax.set_ylabel("Delay (ms)")
    ax.set_title(f"{scenario.name}: delay per hop")
    ax.legend()
    plt.tight_layout()
    _finish(fig, filename, show)


def phase_intervals(snapshots: Sequence[Snapshot]) -> Dict[int, List[Tuple[Phase, float, float]]]:
    """Group consecutive snapshots into phase intervals per packet.

    Args:
        snapshots: Snapshots in time order.

    Returns:
        For each packet ID, (phase, start, end) intervals in time order.
    """
    intervals: Dict[int, List[Tuple[Phase, float, float]]] = {}
    for snapshot in snapshots:
        for state in snapshot.packets:
            runs = intervals.setdefault(state.id, [])
            if runs and runs[-1][0] == state.phase:
                runs[-1] = (state.phase, runs[-1][1], snapshot.time)
            else:
                if runs:
                    phase, start, _ = runs[-1]
                    runs[-1] = (phase, start, snapshot.time)
                runs.append((state.phase, snapshot.time, snapshot.time))
    return intervals


def plot_phase_timeline(
    snapshots: Sequence[Snapshot],
    filename: str | None = None,
    show=True,
) -> None:
    """Plot each packet's phases over time from recorded snapshots.

    Args:
        snapshots: Snapshots in time order, e.g. collected from the "update" hook.
        filename: Output filename, or None to show it immediately.
        show: Whether to show the figure when no filename is given.
    """
    intervals = phase_intervals(snapshots)

    fig, ax = plt.subplots(figsize=(10, 1 + 0.4 * max(len(intervals), 1)))
    for row, (packet_id, runs) in enumerate(sorted(intervals.items())):
        for phase, start, end in runs:
            if phase in PHASE_COLORS and end > start:
                ax.broken_barh([(start, end - start)], (row - 0.4, 0.8), color=PHASE_COLORS[phase])

    ax.set_yticks(range(len(intervals)))
    ax.set_yticklabels([f"Packet {packet_id}" for packet_id in sorted(intervals)])
    ax.set_xlabel("Time (ms)")
    ax.set_title("Packet phases")
    handles = [plt.Rectangle((0, 0), 1, 1, color=color) for color in PHASE_COLORS.values()]
    ax.legend(handles, [phase.value for phase in PHASE_COLORS], loc="upper right")
    plt.tight_layout()
    _finish(fig, filename, show)
