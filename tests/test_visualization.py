import matplotlib

matplotlib.use("Agg")

from latency_sim.core.engine import PacketSimulationEngine
from latency_sim.core.enums import Phase
from latency_sim.core.presets import get_preset
from latency_sim.utils.visualization import (
    phase_intervals,
    plot_delay_breakdown,
    plot_phase_timeline,
    save_path_visualization,
)


def record_snapshots(scenario, times):
    engine = PacketSimulationEngine(scenario)
    engine.send_packet(0.0)
    engine.send_packet(0.1)
    return [engine.evaluate(t) for t in times]


def test_phase_intervals(one_hop):
    snapshots = record_snapshots(one_hop, [0.0, 0.5, 1.0, 1.5, 2.0])
    intervals = phase_intervals(snapshots)

    assert intervals[1] == [(Phase.TRANSMITTING, 0.0, 1.0), (Phase.DELIVERED, 1.0, 2.0)]
    assert [phase for phase, _, _ in intervals[2]] == [
        Phase.WAITING, Phase.QUEUING, Phase.TRANSMITTING, Phase.DELIVERED,
    ]


def test_plots_are_saved(tmp_path):
    scenario = get_preset("wan")
    latency = scenario.single_packet_latency()
    snapshots = record_snapshots(scenario, [latency * i / 20 for i in range(25)])

    save_path_visualization(scenario, str(tmp_path / "path.png"))
    plot_delay_breakdown(scenario, str(tmp_path / "breakdown.png"))
    plot_phase_timeline(snapshots, str(tmp_path / "plots" / "timeline.png"))

    assert (tmp_path / "path.png").exists()
    assert (tmp_path / "breakdown.png").exists()
    assert (tmp_path / "plots" / "timeline.png").exists()
