from __future__ import annotations

import asyncio
import threading

from mc_keepalive.lifecycle import EXIT_FAILURE, EXIT_OK, ProcessGuard


def test_shutdown_runs_teardown_once_and_keeps_first_code() -> None:
    async def _run() -> tuple[int, list[str]]:
        calls: list[str] = []
        guard = ProcessGuard(loop=asyncio.get_running_loop(), teardown=lambda: calls.append("teardown"))
        guard.install(signals=False)
        try:
            guard.shutdown(EXIT_OK)
            guard.shutdown(EXIT_FAILURE)
            return await asyncio.wait_for(guard.wait(), timeout=1), calls
        finally:
            guard.uninstall()

    code, calls = asyncio.run(_run())
    assert code == EXIT_OK
    assert calls == ["teardown"]


def test_uncaught_callback_fault_exits_with_failure() -> None:
    async def _run() -> tuple[int, list[str]]:
        calls: list[str] = []
        loop = asyncio.get_running_loop()
        guard = ProcessGuard(loop=loop, teardown=lambda: calls.append("teardown"))
        guard.install(signals=False)

        def explode() -> None:
            raise RuntimeError("unexpected")

        try:
            loop.call_soon(explode)
            return await asyncio.wait_for(guard.wait(), timeout=1), calls
        finally:
            guard.uninstall()

    code, calls = asyncio.run(_run())
    assert code == EXIT_FAILURE
    assert calls == ["teardown"]


def test_signal_handlers_install_and_restore() -> None:
    async def _run() -> int:
        loop = asyncio.get_running_loop()
        guard = ProcessGuard(loop=loop, teardown=lambda: None)
        guard.install()
        guard.uninstall()
        guard.shutdown(EXIT_OK)
        return await asyncio.wait_for(guard.wait(), timeout=1)

    assert asyncio.run(_run()) == EXIT_OK


def test_failing_teardown_still_releases_waiter() -> None:
    def broken() -> None:
        raise RuntimeError("half closed")

    async def _run() -> int:
        guard = ProcessGuard(loop=asyncio.get_running_loop(), teardown=broken)
        guard.shutdown(EXIT_OK)
        return await asyncio.wait_for(guard.wait(), timeout=1)

    assert asyncio.run(_run()) == EXIT_FAILURE


def test_install_off_main_thread_skips_signals_without_raising() -> None:
    outcome: dict[str, int] = {}

    async def _run() -> int:
        guard = ProcessGuard(loop=asyncio.get_running_loop(), teardown=lambda: None)
        guard.install()
        try:
            guard.shutdown(EXIT_OK)
            return await asyncio.wait_for(guard.wait(), timeout=1)
        finally:
            guard.uninstall()

    def worker() -> None:
        outcome["code"] = asyncio.run(_run())

    thread = threading.Thread(target=worker)
    thread.start()
    thread.join(timeout=5)

    assert outcome == {"code": EXIT_OK}
