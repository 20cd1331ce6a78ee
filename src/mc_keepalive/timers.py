"""Deferred-callback timers used by the activity scheduler and session manager."""

from __future__ import annotations

import logging
from typing import Callable, Protocol


class TimerHandle(Protocol):
    """Cancellable reference to a pending callback."""

    def cancel(self) -> None:
        """Prevent the callback from running; safe to call more than once."""


class TimerScheduler(Protocol):
    """Anything that can run a callback later; ``asyncio`` event loops qualify."""

    def call_later(self, delay: float, callback: Callable[..., object], *args: object) -> TimerHandle:
        """Run ``callback(*args)`` after ``delay`` seconds."""


class RepeatingTask:
    """Runs an action repeatedly, sampling a fresh delay before every run.

    The delay sampler is what makes successive intervals non-periodic; pass a
    constant function for a plain fixed-period timer.
    """

    def __init__(
        self,
        name: str,
        action: Callable[[], None],
        sample_delay: Callable[[], float],
        scheduler: TimerScheduler,
        *,
        logger: logging.Logger | None = None,
    ) -> None:
        self.name = name
        self._action = action
        self._sample_delay = sample_delay
        self._scheduler = scheduler
        self._logger = logger or logging.getLogger("mc_keepalive.timers")
        self._handle: TimerHandle | None = None
        self._active = False

    @property
    def running(self) -> bool:
        return self._active

    def start(self) -> None:
        """Arm the task once; repeated calls leave the pending timer alone."""
        if self._active:
            return
        self._active = True
        self._arm()

    def stop(self) -> None:
        """Cancel the pending run. Stopping a stopped task is a no-op."""
        self._active = False
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None

    def _arm(self) -> None:
        delay = max(0.0, float(self._sample_delay()))
        self._handle = self._scheduler.call_later(delay, self._fire)
        self._logger.debug("timer_armed", extra={"timer": self.name, "delay_seconds": round(delay, 3)})

    def _fire(self) -> None:
        self._handle = None
        if not self._active:
            return
        try:
            self._action()
        finally:
            # the action may have stopped us (e.g. by tearing down the session)
            if self._active and self._handle is None:
                self._arm()
