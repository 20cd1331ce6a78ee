"""In-process stand-in for a game server, used for dry runs and tests."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from mc_keepalive.adapters.client import AnimationKind, ConnectRequest, EventSink, MoveRequest
from mc_keepalive.events import Disconnected, PositionSeeded, SessionEvent, Spawned
from mc_keepalive.position import Vec3
from mc_keepalive.timers import TimerHandle, TimerScheduler


class LoopbackConnection:
    """Records outbound requests and replays a scripted join sequence."""

    def __init__(self, request: ConnectRequest, emit: EventSink, logger: logging.Logger) -> None:
        self.request = request
        self._emit: EventSink | None = emit
        self._logger = logger
        self._pending: list[TimerHandle] = []
        self.moves: list[MoveRequest] = []
        self.animations: list[AnimationKind] = []
        self.chats: list[str] = []
        self.closed = False

    def schedule(self, scheduler: TimerScheduler, delay: float, event: SessionEvent) -> None:
        self._pending.append(scheduler.call_later(delay, self._deliver, event))

    def _deliver(self, event: SessionEvent) -> None:
        if self._emit is not None:
            self._emit(event)

    def send_move(self, request: MoveRequest) -> None:
        self.moves.append(request)
        self._logger.debug(
            "loopback_move",
            extra={"x": round(request.x, 2), "y": round(request.y, 2), "z": round(request.z, 2), "yaw": round(request.yaw, 1)},
        )

    def send_animate(self, entity_id: int, kind: AnimationKind) -> None:
        self.animations.append(kind)
        self._logger.debug("loopback_animate", extra={"entity_id": entity_id, "animation": kind.value})

    def send_chat(self, sender: str, text: str) -> None:
        self.chats.append(text)
        self._logger.info("loopback_chat", extra={"sender": sender, "text": text})

    def detach(self) -> None:
        self._emit = None
        for handle in self._pending:
            handle.cancel()
        self._pending.clear()

    def close(self) -> None:
        self.closed = True


@dataclass(slots=True)
class LoopbackClientFactory:
    """Simulated server: seeds a spawn position then confirms spawn.

    When ``accepted_versions`` is given, any other candidate is rejected with an
    ``outdated_server`` disconnect, which exercises version rotation.
    """

    scheduler: TimerScheduler
    spawn_position: Vec3 = Vec3(0.0, 64.0, 0.0)
    entity_id: int = 1
    accepted_versions: frozenset[str] | None = None
    join_delay_seconds: float = 0.0
    logger: logging.Logger = field(default_factory=lambda: logging.getLogger("mc_keepalive.adapters.loopback"))
    connections: list[LoopbackConnection] = field(default_factory=list)

    def connect(self, request: ConnectRequest, emit: EventSink) -> LoopbackConnection:
        connection = LoopbackConnection(request, emit, self.logger)
        self.connections.append(connection)

        if self.accepted_versions is not None and request.version not in self.accepted_versions:
            connection.schedule(self.scheduler, self.join_delay_seconds, Disconnected(reason="outdated_server"))
        else:
            connection.schedule(self.scheduler, self.join_delay_seconds, PositionSeeded(self.spawn_position))
            connection.schedule(self.scheduler, self.join_delay_seconds, Spawned(entity_id=self.entity_id))
        return connection
