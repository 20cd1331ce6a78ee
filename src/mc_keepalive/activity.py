"""Human-like idle behaviour: patrol steps, head turns and occasional chat."""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass
from typing import Protocol

from mc_keepalive.adapters.client import AnimationKind
from mc_keepalive.position import PositionState, Vec3, distance
from mc_keepalive.timers import RepeatingTask, TimerScheduler

CHAT_PHRASES: tuple[str, ...] = (
    "I'm here",
    "Hi!",
    "All good",
    "Nice server",
    "Ok",
)


class ActionSink(Protocol):
    """Outbound side of an active session."""

    @property
    def entity_id(self) -> int | None:
        """Peer-assigned entity id, ``None`` until spawn is confirmed."""

    def send_move(self, x: float, y: float, z: float, *, pitch: float, yaw: float) -> bool:
        """Request a move/orientation update."""

    def send_animate(self, kind: AnimationKind) -> bool:
        """Request a non-positional animation."""

    def send_chat(self, text: str) -> bool:
        """Send a chat line as the configured identity."""


@dataclass(slots=True)
class ActivityConfig:
    """Timing bounds (seconds) and patrol geometry."""

    step_interval: tuple[float, float] = (3.0, 6.0)
    turn_interval: tuple[float, float] = (15.0, 30.0)
    chat_interval: tuple[float, float] = (180.0, 300.0)
    patrol_radius: float = 5.0
    return_step: float = 0.8
    jump_probability: float = 0.3
    phrases: tuple[str, ...] = CHAT_PHRASES


def yaw_towards(dx: float, dz: float) -> float:
    return math.degrees(math.atan2(-dx, dz))


class ActivityScheduler:
    """Three independent randomized timers driving an active session."""

    def __init__(
        self,
        sink: ActionSink,
        position: PositionState,
        scheduler: TimerScheduler,
        config: ActivityConfig | None = None,
        *,
        rng: random.Random | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._sink = sink
        self._position = position
        self._config = config or ActivityConfig()
        self._rng = rng or random.Random()
        self._logger = logger or logging.getLogger("mc_keepalive.activity")

        self._tasks = (
            RepeatingTask("patrol-step", self.step, self._sampler(self._config.step_interval), scheduler),
            RepeatingTask("patrol-turn", self.turn, self._sampler(self._config.turn_interval), scheduler),
            RepeatingTask("chat", self.chat, self._sampler(self._config.chat_interval), scheduler),
        )

    @property
    def config(self) -> ActivityConfig:
        return self._config

    @property
    def running(self) -> bool:
        return any(task.running for task in self._tasks)

    def start(self) -> None:
        if self.running:
            return
        self._logger.info(
            "activity_started",
            extra={"anchor": self._position.anchor, "patrol_radius": self._config.patrol_radius},
        )
        for task in self._tasks:
            task.start()

    def stop(self) -> None:
        was_running = self.running
        for task in self._tasks:
            task.stop()
        if was_running:
            self._logger.info("activity_stopped")

    def _sampler(self, bounds: tuple[float, float]):
        low, high = bounds
        return lambda: self._rng.uniform(low, high)

    def step(self) -> None:
        """Take one patrol step, or walk back toward the anchor when too far out."""
        if self._sink.entity_id is None:
            return

        pos = self._position
        anchor = pos.anchor or pos.coordinates
        radius = self._config.patrol_radius
        current = pos.distance_to(anchor)

        if current >= radius and current > 0:
            dx = (anchor.x - pos.x) / current
            dz = (anchor.z - pos.z) / current
            self._move(
                pos.x + dx * self._config.return_step,
                pos.y,
                pos.z + dz * self._config.return_step,
                yaw=yaw_towards(dx, dz),
            )
            return

        stride = self._rng.choice((1, 2))
        heading = pos.yaw or self._rng.random() * 360
        angle = math.radians(heading)
        directions = (
            (math.sin(angle), math.cos(angle)),
            (-math.sin(angle), -math.cos(angle)),
            (math.cos(angle), -math.sin(angle)),
            (-math.cos(angle), math.sin(angle)),
        )
        dx, dz = self._rng.choice(directions)
        target = Vec3(pos.x + dx * stride, pos.y, pos.z + dz * stride)

        if distance(target, anchor) > radius:
            self._logger.debug("patrol_step_skipped", extra={"distance": round(distance(target, anchor), 2)})
            return

        self._move(target.x, target.y, target.z, yaw=yaw_towards(dx, dz))

    def turn(self) -> None:
        """Look somewhere else without moving."""
        if self._sink.entity_id is None:
            return

        yaw = self._rng.random() * 360
        pitch = self._rng.random() * 20 - 10
        self._position.orient(pitch=pitch, yaw=yaw)
        self._sink.send_move(self._position.x, self._position.y, self._position.z, pitch=pitch, yaw=yaw)

    def chat(self) -> None:
        """Say a stock phrase and sometimes jump."""
        if self._sink.entity_id is None:
            return

        self._sink.send_chat(self._rng.choice(self._config.phrases))
        if self._rng.random() < self._config.jump_probability:
            self._sink.send_animate(AnimationKind.JUMP)

    def _move(self, x: float, y: float, z: float, *, yaw: float) -> None:
        self._position.move_to(x, y, z, yaw=yaw)
        self._sink.send_move(x, y, z, pitch=self._position.pitch, yaw=yaw)
