"""Signal and unhandled-fault handling that tears the session down before exit."""

from __future__ import annotations

import asyncio
import logging
import signal
from typing import Any, Callable

EXIT_OK = 0
EXIT_FAILURE = 1

_HANDLED_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ProcessGuard:
    """Turns SIGINT/SIGTERM and uncaught loop faults into one orderly shutdown."""

    def __init__(
        self,
        *,
        loop: asyncio.AbstractEventLoop,
        teardown: Callable[[], None],
        logger: logging.Logger | None = None,
    ) -> None:
        self._loop = loop
        self._teardown = teardown
        self._logger = logger or logging.getLogger("mc_keepalive.lifecycle")
        self._done = asyncio.Event()
        self._exit_code: int | None = None
        self._installed_signals: list[signal.Signals] = []
        self._fallback_handlers: dict[signal.Signals, Any] = {}
        self._previous_exception_handler: Any = None

    @property
    def exit_code(self) -> int | None:
        return self._exit_code

    def install(self, *, signals: bool = True) -> None:
        self._previous_exception_handler = self._loop.get_exception_handler()
        self._loop.set_exception_handler(self._on_loop_exception)
        if not signals:
            return

        for sig in _HANDLED_SIGNALS:
            try:
                self._loop.add_signal_handler(sig, self.shutdown, EXIT_OK)
                self._installed_signals.append(sig)
            except NotImplementedError:
                # no loop signal support (e.g. Windows); hop back onto the loop thread
                self._install_fallback(sig)
            except RuntimeError as exc:
                # loop is not running on the main thread
                self._logger.warning("signal_handler_skipped", extra={"signal": sig.name, "error": str(exc)})

    def _install_fallback(self, sig: signal.Signals) -> None:
        try:
            self._fallback_handlers[sig] = signal.signal(
                sig, lambda *_: self._loop.call_soon_threadsafe(self.shutdown, EXIT_OK)
            )
        except ValueError as exc:
            self._logger.warning("signal_handler_skipped", extra={"signal": sig.name, "error": str(exc)})

    def uninstall(self) -> None:
        for sig in self._installed_signals:
            self._loop.remove_signal_handler(sig)
        self._installed_signals.clear()
        for sig, previous in self._fallback_handlers.items():
            signal.signal(sig, previous)
        self._fallback_handlers.clear()
        self._loop.set_exception_handler(self._previous_exception_handler)

    def shutdown(self, code: int = EXIT_FAILURE) -> None:
        """Tear down once and release ``wait``; later calls keep the first code."""
        if self._exit_code is not None:
            return
        self._exit_code = code
        self._logger.info("shutdown", extra={"exit_code": code})
        try:
            self._teardown()
        except Exception:  # noqa: BLE001 - the process is exiting either way.
            self._logger.exception("teardown_failed")
            self._exit_code = EXIT_FAILURE
        finally:
            self._done.set()

    async def wait(self) -> int:
        await self._done.wait()
        return EXIT_FAILURE if self._exit_code is None else self._exit_code

    def _on_loop_exception(self, loop: asyncio.AbstractEventLoop, context: dict[str, Any]) -> None:
        exception = context.get("exception")
        self._logger.error(
            "unhandled_fault",
            extra={"context_message": context.get("message"), "error": repr(exception) if exception else None},
            exc_info=exception if isinstance(exception, BaseException) else None,
        )
        self.shutdown(EXIT_FAILURE)
