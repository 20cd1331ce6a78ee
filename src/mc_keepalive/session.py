"""Lifetime of one protocol-client connection attempt."""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable

from mc_keepalive.activity import ActivityConfig, ActivityScheduler
from mc_keepalive.adapters.client import AnimationKind, ClientConnection, ClientFactory, ConnectRequest, MoveRequest
from mc_keepalive.events import (
    Errored,
    PositionSeeded,
    SessionEvent,
    Spawned,
    TerminalEvent,
    TextReceived,
    is_terminal,
)
from mc_keepalive.failures import ConnectionFailure, ProtocolIncompatibleError, classify, parse_entity_id
from mc_keepalive.position import PositionState
from mc_keepalive.timers import RepeatingTask, TimerScheduler


@dataclass(slots=True)
class SessionState:
    version: str | None = None
    generation: int = 0
    live: bool = False
    entity_id: int | None = None

    @property
    def active(self) -> bool:
        return self.live and self.entity_id is not None


class SessionManager:
    """Owns the connection handle, its event wiring and its teardown.

    At most one attempt is live at a time: ``connect`` always tears down the
    previous one first, and events from an abandoned handle are dropped.
    """

    def __init__(
        self,
        *,
        host: str,
        port: int,
        identity: str,
        client_factory: ClientFactory,
        scheduler: TimerScheduler,
        position: PositionState,
        on_failure: Callable[[ConnectionFailure], None],
        on_active: Callable[[], None] | None = None,
        activity_config: ActivityConfig | None = None,
        keepalive_seconds: float = 60.0,
        rng: random.Random | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        self._host = host
        self._port = port
        self._identity = identity
        self._factory = client_factory
        self._position = position
        self._on_failure = on_failure
        self._on_active = on_active
        self._logger = logger or logging.getLogger("mc_keepalive.session")

        self._state = SessionState()
        self._connection: ClientConnection | None = None
        self._activity = ActivityScheduler(self, position, scheduler, activity_config, rng=rng)
        self._liveness = RepeatingTask("keepalive-log", self._log_liveness, lambda: keepalive_seconds, scheduler)

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def identity(self) -> str:
        return self._identity

    @property
    def entity_id(self) -> int | None:
        return self._state.entity_id

    @property
    def connection(self) -> ClientConnection | None:
        return self._connection

    @property
    def activity(self) -> ActivityScheduler:
        return self._activity

    @property
    def liveness_running(self) -> bool:
        return self._liveness.running

    def connect(self, version: str) -> None:
        """Start a new attempt with ``version``, abandoning any previous one."""
        self.close()

        self._state.generation += 1
        generation = self._state.generation
        self._state.version = version
        self._state.live = True
        request = ConnectRequest(host=self._host, port=self._port, username=self._identity, version=version)
        self._logger.info(
            "connect_attempt",
            extra={"host": self._host, "port": self._port, "identity": self._identity, "version": version},
        )

        try:
            connection = self._factory.connect(request, lambda event: self._receive(generation, event))
        except Exception as exc:  # noqa: BLE001 - constructor failures follow the async error path.
            self._logger.exception("client_create_failed", extra={"version": version})
            self.dispatch(Errored(message=f"{type(exc).__name__}: {exc}", cause=exc))
            return

        if self._state.generation != generation or not self._state.live:
            # the attempt already ended while the factory was running
            self._release(connection)
            return
        self._connection = connection

    def close(self) -> None:
        """Tear down the current attempt. Safe to call when nothing is live."""
        self._activity.stop()
        self._liveness.stop()
        connection, self._connection = self._connection, None
        if connection is not None:
            self._release(connection)
            self._logger.debug("session_closed", extra={"version": self._state.version})
        self._state.live = False
        self._state.entity_id = None

    def dispatch(self, event: SessionEvent) -> None:
        """Single entry point for every event of the live attempt."""
        if not self._state.live:
            self._logger.debug("event_ignored", extra={"event": type(event).__name__})
            return

        if isinstance(event, PositionSeeded):
            self._position.seed(event.position)
            self._logger.info("position_seeded", extra={"position": event.position, "anchor": self._position.anchor})
        elif isinstance(event, Spawned):
            self._handle_spawn(event)
        elif isinstance(event, TextReceived):
            self._logger.info("chat_received", extra={"source": event.source, "text": event.text})
        elif is_terminal(event):
            self._handle_terminal(event)

    def send_move(self, x: float, y: float, z: float, *, pitch: float, yaw: float) -> bool:
        entity_id = self.entity_id
        if entity_id is None or self._connection is None:
            return False
        request = MoveRequest(entity_id=entity_id, x=x, y=y, z=z, pitch=pitch, yaw=yaw, head_yaw=yaw)
        return self._send("move", self._connection.send_move, request)

    def send_animate(self, kind: AnimationKind) -> bool:
        entity_id = self.entity_id
        if entity_id is None or self._connection is None:
            return False
        return self._send("animate", self._connection.send_animate, entity_id, kind)

    def send_chat(self, text: str) -> bool:
        if self.entity_id is None or self._connection is None:
            return False
        sent = self._send("chat", self._connection.send_chat, self._identity, text)
        if sent:
            self._logger.info("chat_sent", extra={"identity": self._identity, "text": text})
        return sent

    def _receive(self, generation: int, event: SessionEvent) -> None:
        if generation != self._state.generation:
            self._logger.debug("stale_event_dropped", extra={"event": type(event).__name__, "generation": generation})
            return
        self.dispatch(event)

    def _handle_spawn(self, event: Spawned) -> None:
        if self._state.entity_id is not None:
            return
        try:
            entity_id = parse_entity_id(event.entity_id)
        except ProtocolIncompatibleError as exc:
            self._handle_terminal(Errored(message=str(exc), cause=exc))
            return

        self._state.entity_id = entity_id
        anchor = self._position.ensure_anchor()
        self._logger.info(
            "session_active",
            extra={
                "host": self._host,
                "port": self._port,
                "version": self._state.version,
                "entity_id": entity_id,
                "anchor": anchor,
            },
        )
        self._activity.start()
        self._liveness.start()
        if self._on_active is not None:
            self._on_active()

    def _handle_terminal(self, event: TerminalEvent) -> None:
        failure = classify(event, version=self._state.version)
        self._logger.warning(
            "connection_terminated",
            extra={
                "host": self._host,
                "port": self._port,
                "version": failure.version,
                "kind": failure.kind.value,
                "detail": failure.detail,
            },
        )
        self.close()
        self._on_failure(failure)

    def _send(self, action: str, fn: Callable[..., None], *args: object) -> bool:
        try:
            fn(*args)
        except Exception as exc:  # noqa: BLE001 - outbound requests are fire-and-forget.
            self._logger.warning("send_failed", extra={"action": action, "error": f"{type(exc).__name__}: {exc}"})
            return False
        return True

    def _release(self, connection: ClientConnection) -> None:
        for step in (connection.detach, connection.close):
            try:
                step()
            except Exception as exc:  # noqa: BLE001 - teardown must always complete.
                self._logger.warning(
                    "teardown_step_failed",
                    extra={"step": step.__name__, "error": f"{type(exc).__name__}: {exc}"},
                )

    def _log_liveness(self) -> None:
        self._logger.info(
            "keepalive",
            extra={"at": datetime.now(timezone.utc).isoformat(), "version": self._state.version},
        )
