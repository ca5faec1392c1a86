"""Playback clock for latency simulation.

This module defines the PlaybackClock class, which maps real elapsed time
onto simulated time, injects packets through a Scheduler and asks the
engine for a snapshot at every new time. It also provides run_headless, a
host loop that drives a clock without a display.
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from latency_sim.core.engine import PacketSimulationEngine
from latency_sim.core.enums import SendMode
from latency_sim.core.packet import Packet
from latency_sim.core.scenario import SimulationConfig
from latency_sim.core.snapshot import Snapshot
from latency_sim.traffic.scheduler import Scheduler

logger = logging.getLogger(__name__)

# Step sizes of the step controls, in ms.
SINGLE_MODE_STEP = 0.5
MULTI_MODE_STEP = 2.0
# Multi mode shows this many single-packet latencies at most.
MULTI_MODE_LATENCY_SPAN = 20
# Single mode ends this far past the delivery instant, in ms.
SINGLE_MODE_END_PADDING = 1e-9


class PlaybackClock:
    """Drives a PacketSimulationEngine through simulated time.

    Attributes:
        engine: The engine being driven.
        scheduler: Decides when packets are injected.
        send_mode: Send mode multi mode uses; single mode always sends manually.
        config: Playback settings.
        mode: "single" (one manually sent packet) or "multi" (continuous traffic).
        current_time: Current simulated time in ms.
        is_playing: Whether advance() moves time forward.
        playback_speed: Simulated ms per real second.
        max_simulation_time: Upper bound of the timeline in ms.
    """

    def __init__(
        self,
        engine: PacketSimulationEngine,
        scheduler: Optional[Scheduler] = None,
        config: Optional[SimulationConfig] = None,
    ):
        """Initialize the clock.

        Args:
            engine: Engine to drive.
            scheduler: Packet scheduler (built from the config if omitted).
            config: Playback settings (defaults to the engine scenario's settings).
        """
        self.engine = engine
        self.config = config if config is not None else engine.scenario.simulation
        self.scheduler = scheduler if scheduler is not None else Scheduler.from_config(self.config)
        self.send_mode = self.scheduler.mode
        self.mode = self.config.visualization_mode
        self.current_time = 0.0
        self.is_playing = False
        self.playback_speed = self._clamp_speed(self.config.playback_speed)
        self.max_simulation_time = self.config.max_simulation_time

        self.hooks: Dict[str, List[Callable[..., Any]]] = {
            "update": [],  # a new snapshot was produced
            "complete": [],  # playback reached the end of the timeline
        }

        self.set_visualization_mode(self.mode)

    @property
    def single_packet_latency(self) -> float:
        return self.engine.scenario.single_packet_latency()

    def set_visualization_mode(self, mode: str) -> None:
        """Switch between single-packet and multi-packet playback.

        Switching resets the simulation.

        Args:
            mode: "single" or "multi".

        Raises:
            ValueError: If mode is unknown.
        """
        if mode not in ("single", "multi"):
            raise ValueError(f"Unknown visualization mode: {mode}")
        self.mode = mode

        latency = self.single_packet_latency
        if mode == "single":
            self.scheduler.configure(SendMode.MANUAL)
            # The packet is delivered only once time passes its latency.
            self.max_simulation_time = latency + SINGLE_MODE_END_PADDING
        else:
            self.scheduler.configure(self.send_mode)
            self.max_simulation_time = self.config.max_simulation_time
            if latency > 0:
                self.max_simulation_time = min(
                    MULTI_MODE_LATENCY_SPAN * latency, self.config.max_simulation_time
                )
        logger.info(
            "Visualization mode %s, timeline 0-%.4fms", mode, self.max_simulation_time
        )
        self.reset()

    def advance(self, real_delta: float) -> Snapshot:
        """Move simulated time forward by the given real time.

        Args:
            real_delta: Real elapsed time in seconds.

        Returns:
            Snapshot at the new time (the current one if paused).
        """
        if not self.is_playing:
            return self.engine.snapshot()
        return self.set_time(self.current_time + real_delta * self.playback_speed)

    def set_time(self, time: float) -> Snapshot:
        """Jump to a simulated time.

        The time is clamped to the timeline. Seeking backwards re-simulates
        from zero; due packets are injected before the engine is evaluated.

        Args:
            time: Target simulated time in ms.

        Returns:
            Snapshot at the new time.
        """
        time = max(0.0, min(time, self.max_simulation_time))
        self.current_time = time

        for send_time in self.scheduler.due_send_times(time):
            self.engine.send_packet(send_time)

        snapshot = self.engine.evaluate(time)
        self.call_hooks("update", snapshot)

        if self.is_playing and time >= self.max_simulation_time:
            self.pause()
            logger.info("Playback complete at %.4fms", time)
            self.call_hooks("complete", snapshot)
        return snapshot

    def step_forward(self, step: Optional[float] = None) -> Snapshot:
        if step is None:
            step = SINGLE_MODE_STEP if self.mode == "single" else MULTI_MODE_STEP
        return self.set_time(self.current_time + step)

    def step_backward(self, step: Optional[float] = None) -> Snapshot:
        if step is None:
            step = SINGLE_MODE_STEP if self.mode == "single" else MULTI_MODE_STEP
        return self.set_time(self.current_time - step)

    def play(self) -> None:
        """Start playback; a finished single-packet run starts over."""
        if self.mode == "single" and self.current_time >= self.max_simulation_time:
            self.reset()
        self.is_playing = True
        logger.info("Playback started at %.4fms", self.current_time)

    def pause(self) -> None:
        self.is_playing = False
        logger.info("Playback paused at %.4fms", self.current_time)

    def reset(self) -> Snapshot:
        """Remove all packets, stop playback and return to time zero.

        In single mode the packet is sent again at time zero.

        Returns:
            Snapshot at time zero.
        """
        self.is_playing = False
        self.engine.reset()
        self.scheduler.reset()
        self.current_time = 0.0
        if self.mode == "single":
            self.engine.send_packet(0.0)
        logger.info("Playback reset")
        # Scheduled sends start with the first set_time after a reset.
        snapshot = self.engine.evaluate(0.0)
        self.call_hooks("update", snapshot)
        return snapshot

    def set_playback_speed(self, speed: float) -> None:
        self.playback_speed = self._clamp_speed(speed)

    def set_send_mode(
        self,
        mode: Union[SendMode, str],
        interval: Optional[float] = None,
        burst_size: Optional[int] = None,
    ) -> None:
        """Change how packets are injected.

        In single mode the new mode applies once multi mode is selected again.

        Args:
            mode: "manual", "interval" or "burst".
            interval: Time between sends (or bursts) in ms.
            burst_size: Packets per burst.
        """
        self.send_mode = SendMode(mode)
        active = SendMode.MANUAL if self.mode == "single" else self.send_mode
        self.scheduler.configure(active, interval, burst_size)

    def manual_send(self) -> Optional[Packet]:
        """Send a packet now and evaluate it immediately.

        Returns:
            The created Packet, or None if the packet cap has been reached.
        """
        packet = self.engine.send_packet(self.current_time)
        if packet is not None:
            self.engine.evaluate(self.current_time)
        return packet

    def register_hook(self, event_type: str, callback: Callable[..., Any]) -> None:
        """Register a callback for a clock or engine event.

        Args:
            event_type: "update", "complete", or an engine event name.
            callback: The function to call when the event occurs.
        """
        if event_type in self.hooks:
            self.hooks[event_type].append(callback)
        else:
            self.engine.register_hook(event_type, callback)

    def call_hooks(self, event_type: str, *args: Any, **kwargs: Any) -> None:
        if event_type in self.hooks:
            for callback in self.hooks[event_type]:
                callback(*args, **kwargs)

    def _clamp_speed(self, speed: float) -> float:
        return max(self.config.min_playback_speed, min(speed, self.config.max_playback_speed))


def run_headless(
    clock: PlaybackClock,
    frame_seconds: float = 1 / 60,
    max_frames: Optional[int] = None,
    on_frame: Optional[Callable[[Snapshot], None]] = None,
) -> Snapshot:
    """Play a clock to the end of its timeline without a display.

    Args:
        clock: Clock to drive.
        frame_seconds: Real time per frame in seconds.
        max_frames: Stop after this many frames (unbounded if None).
        on_frame: Called with each frame's snapshot.

    Returns:
        Snapshot of the last frame.
    """
    if frame_seconds <= 0:
        raise ValueError(f"frame_seconds must be positive, got {frame_seconds}")

    clock.play()
    snapshot = clock.set_time(clock.current_time)
    frames = 0
    while clock.is_playing and (max_frames is None or frames < max_frames):
        snapshot = clock.advance(frame_seconds)
        frames += 1
        if on_frame is not None:
            on_frame(snapshot)
    logger.debug("Headless run finished after %d frames at %.4fms", frames, clock.current_time)
    return snapshot
