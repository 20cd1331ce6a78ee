"""Retry scheduling and protocol-version rotation after a connection ends."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Sequence

from mc_keepalive.config import ReconnectMode
from mc_keepalive.failures import ConnectionFailure, FailureKind
from mc_keepalive.timers import TimerHandle, TimerScheduler


@dataclass(frozen=True, slots=True)
class BackoffPolicy:
    """Delay constants, all in seconds."""

    base_delay: float = 60.0
    step: float = 5.0
    cap: float = 60.0
    rotation_delay: float = 1.0
    max_attempts: int = 100

    def retry_delay(self, attempts: int) -> float:
        return self.base_delay + min(attempts * self.step, self.cap)

    def rotation_delay_for(self, full_cycle: bool) -> float:
        return self.base_delay * 2 if full_cycle else self.rotation_delay


class ReconnectController:
    """Decides whether, when and with which version candidate to reconnect."""

    def __init__(
        self,
        *,
        versions: Sequence[str],
        connect: Callable[[str], None],
        scheduler: TimerScheduler,
        terminate: Callable[[int], None],
        mode: ReconnectMode = ReconnectMode.RETRY,
        policy: BackoffPolicy | None = None,
        logger: logging.Logger | None = None,
    ) -> None:
        if not versions:
            raise ValueError("At least one protocol version candidate is required")
        self._versions = list(versions)
        self._connect = connect
        self._scheduler = scheduler
        self._terminate = terminate
        self._mode = mode
        self._policy = policy or BackoffPolicy()
        self._logger = logger or logging.getLogger("mc_keepalive.reconnect")

        self._index = 0
        self._attempts = 0
        self._pending: TimerHandle | None = None
        self._pending_delay: float | None = None
        self._stopped = False

    @property
    def current_version(self) -> str:
        return self._versions[self._index]

    @property
    def version_index(self) -> int:
        return self._index

    @property
    def attempts(self) -> int:
        return self._attempts

    @property
    def retry_pending(self) -> bool:
        return self._pending is not None

    @property
    def pending_delay(self) -> float | None:
        """Delay of the outstanding retry, if one is scheduled."""
        return self._pending_delay

    def start(self) -> None:
        """Make the first connection attempt with the first candidate."""
        self._stopped = False
        self._connect(self.current_version)

    def stop(self) -> None:
        """Cancel any pending retry and refuse to schedule new ones."""
        self._stopped = True
        self._cancel_pending()

    def mark_active(self) -> None:
        """A session spawned; earlier failures are forgiven."""
        if self._attempts:
            self._logger.info("attempts_reset", extra={"previous_attempts": self._attempts})
        self._attempts = 0

    def handle_failure(self, failure: ConnectionFailure) -> None:
        if self._stopped:
            return

        if self._mode is ReconnectMode.EXIT:
            self._logger.error(
                "reconnect_disabled_exiting",
                extra={"kind": failure.kind.value, "version": failure.version, "detail": failure.detail},
            )
            self._terminate(1)
            return

        if self._pending is not None:
            self._logger.debug("retry_already_pending", extra={"kind": failure.kind.value, "detail": failure.detail})
            return

        if failure.kind is FailureKind.PROTOCOL_MISMATCH:
            previous = self.current_version
            self._index = (self._index + 1) % len(self._versions)
            full_cycle = self._index == 0
            delay = self._policy.rotation_delay_for(full_cycle)
            self._logger.warning(
                "version_rotated",
                extra={
                    "from_version": previous,
                    "to_version": self.current_version,
                    "full_cycle": full_cycle,
                    "detail": failure.detail,
                },
            )
        else:
            delay = self._policy.retry_delay(self._attempts)

        self._schedule(delay, failure)

    def _schedule(self, delay: float, failure: ConnectionFailure) -> None:
        self._attempts = min(self._attempts + 1, self._policy.max_attempts)
        self._pending_delay = delay
        self._pending = self._scheduler.call_later(delay, self._fire)
        self._logger.info(
            "reconnect_scheduled",
            extra={
                "kind": failure.kind.value,
                "version": self.current_version,
                "attempt": self._attempts,
                "delay_seconds": delay,
            },
        )

    def _fire(self) -> None:
        self._pending = None
        self._pending_delay = None
        if self._stopped:
            return
        self._connect(self.current_version)

    def _cancel_pending(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
        self._pending = None
        self._pending_delay = None
