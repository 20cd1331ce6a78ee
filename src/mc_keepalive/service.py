"""Wires position, session, reconnection and lifecycle into one runnable service."""

from __future__ import annotations

import asyncio
import logging
import random
from typing import Callable

from mc_keepalive.activity import ActivityConfig
from mc_keepalive.adapters.client import ClientFactory
from mc_keepalive.config import Settings
from mc_keepalive.failures import ConnectionFailure
from mc_keepalive.health import HealthServer
from mc_keepalive.lifecycle import ProcessGuard
from mc_keepalive.position import PositionState
from mc_keepalive.reconnect import BackoffPolicy, ReconnectController
from mc_keepalive.session import SessionManager
from mc_keepalive.timers import TimerScheduler

logger = logging.getLogger("mc_keepalive.service")


def activity_config_from(settings: Settings) -> ActivityConfig:
    chat_low = settings.chat_interval_ms / 1000
    return ActivityConfig(
        step_interval=(settings.patrol_step_sec_min, settings.patrol_step_sec_max),
        turn_interval=(settings.patrol_turn_sec_min, settings.patrol_turn_sec_max),
        chat_interval=(chat_low, chat_low + settings.chat_jitter_ms / 1000),
        patrol_radius=settings.max_patrol_distance,
        jump_probability=settings.jump_probability,
    )


def backoff_policy_from(settings: Settings) -> BackoffPolicy:
    return BackoffPolicy(
        base_delay=settings.reconnect_delay_ms / 1000,
        step=settings.backoff_step_ms / 1000,
        cap=settings.backoff_cap_ms / 1000,
        rotation_delay=settings.rotation_delay_ms / 1000,
        max_attempts=settings.max_attempts,
    )


class KeepaliveService:
    """One bot: a long-lived position model, a session manager and its controller."""

    def __init__(
        self,
        settings: Settings,
        *,
        client_factory: ClientFactory,
        scheduler: TimerScheduler,
        terminate: Callable[[int], None],
        rng: random.Random | None = None,
    ) -> None:
        self.settings = settings
        self.position = PositionState()
        rng = rng or random.Random()

        self.session = SessionManager(
            host=settings.mc_host,
            port=settings.mc_port,
            identity=settings.identity(rng),
            client_factory=client_factory,
            scheduler=scheduler,
            position=self.position,
            on_failure=self._on_failure,
            on_active=self._on_active,
            activity_config=activity_config_from(settings),
            keepalive_seconds=settings.keepalive_log_sec,
            rng=rng,
        )
        self.controller = ReconnectController(
            versions=settings.version_candidates,
            connect=self.session.connect,
            scheduler=scheduler,
            terminate=terminate,
            mode=settings.reconnect_mode,
            policy=backoff_policy_from(settings),
        )

    def start(self) -> None:
        logger.info(
            "service_starting",
            extra={
                "host": self.settings.mc_host,
                "port": self.settings.mc_port,
                "identity": self.session.identity,
                "versions": ",".join(self.settings.version_candidates),
                "mode": self.settings.reconnect_mode.value,
            },
        )
        self.controller.start()

    def stop(self) -> None:
        self.controller.stop()
        self.session.close()

    def _on_failure(self, failure: ConnectionFailure) -> None:
        self.controller.handle_failure(failure)

    def _on_active(self) -> None:
        self.controller.mark_active()


async def serve(
    settings: Settings,
    client_factory_builder: Callable[[TimerScheduler], ClientFactory],
    *,
    install_signals: bool = True,
) -> int:
    """Run until a signal, a fatal fault or (exit mode) a connection failure."""
    loop = asyncio.get_running_loop()
    service: KeepaliveService | None = None

    def _teardown() -> None:
        if service is not None:
            service.stop()

    guard = ProcessGuard(loop=loop, teardown=_teardown)
    guard.install(signals=install_signals)
    health = HealthServer(settings.port) if settings.health_enabled else None
    try:
        if health is not None:
            await health.start()
        service = KeepaliveService(
            settings,
            client_factory=client_factory_builder(loop),
            scheduler=loop,
            terminate=guard.shutdown,
        )
        service.start()
        return await guard.wait()
    finally:
        _teardown()
        if health is not None:
            await health.stop()
        guard.uninstall()
