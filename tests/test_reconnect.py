from __future__ import annotations

import pytest

from mc_keepalive.config import ReconnectMode
from mc_keepalive.failures import ConnectionFailure, FailureKind
from mc_keepalive.reconnect import BackoffPolicy, ReconnectController

TIMEOUT = ConnectionFailure(FailureKind.TRANSIENT_NETWORK, "Ping timed out")
MISMATCH = ConnectionFailure(FailureKind.PROTOCOL_MISMATCH, "disconnect: outdated_server")
UNKNOWN = ConnectionFailure(FailureKind.UNCLASSIFIED, "socket closed")


class Harness:
    def __init__(self, scheduler, *, versions=("A", "B"), mode=ReconnectMode.RETRY, policy=None) -> None:
        self.scheduler = scheduler
        self.connects: list[str] = []
        self.exit_codes: list[int] = []
        self.controller = ReconnectController(
            versions=list(versions),
            connect=self.connects.append,
            scheduler=scheduler,
            terminate=self.exit_codes.append,
            mode=mode,
            policy=policy or BackoffPolicy(base_delay=60.0, step=5.0, cap=20.0, rotation_delay=1.0, max_attempts=10),
        )

    def fail_and_fire(self, failure: ConnectionFailure) -> float:
        self.controller.handle_failure(failure)
        delay = self.controller.pending_delay
        self.scheduler.run_pending()
        return delay


def test_requires_at_least_one_version(scheduler) -> None:
    with pytest.raises(ValueError):
        ReconnectController(versions=[], connect=print, scheduler=scheduler, terminate=print)


def test_repeated_timeouts_keep_version_and_grow_delay_to_cap(scheduler) -> None:
    harness = Harness(scheduler)
    harness.controller.start()

    delays = [harness.fail_and_fire(TIMEOUT) for _ in range(7)]

    assert delays == [60.0, 65.0, 70.0, 75.0, 80.0, 80.0, 80.0]
    assert harness.connects == ["A"] * 8
    assert harness.controller.current_version == "A"


def test_outdated_server_rotates_then_full_cycle_doubles_cooldown(scheduler) -> None:
    harness = Harness(scheduler)
    harness.controller.start()

    first = harness.fail_and_fire(MISMATCH)
    assert first == 1.0
    assert harness.connects[-1] == "B"

    second = harness.fail_and_fire(MISMATCH)
    assert second == 120.0
    assert harness.connects == ["A", "B", "A"]


def test_mismatch_never_repeats_candidate_with_multiple_versions(scheduler) -> None:
    harness = Harness(scheduler, versions=("A", "B", "C"))
    harness.controller.start()

    for _ in range(9):
        harness.fail_and_fire(MISMATCH)

    pairs = zip(harness.connects, harness.connects[1:])
    assert all(a != b for a, b in pairs)
    assert harness.connects[:5] == ["A", "B", "C", "A", "B"]


def test_single_candidate_mismatch_always_waits_full_cycle(scheduler) -> None:
    harness = Harness(scheduler, versions=("only",))
    harness.controller.start()

    assert harness.fail_and_fire(MISMATCH) == 120.0
    assert harness.connects == ["only", "only"]


def test_only_one_retry_pending_during_event_storm(scheduler) -> None:
    harness = Harness(scheduler)
    harness.controller.start()

    harness.controller.handle_failure(MISMATCH)
    harness.controller.handle_failure(UNKNOWN)
    harness.controller.handle_failure(MISMATCH)
    harness.controller.handle_failure(TIMEOUT)

    assert len(scheduler.pending) == 1
    assert harness.controller.current_version == "B"
    assert harness.controller.attempts == 1


def test_exit_mode_terminates_without_scheduling(scheduler) -> None:
    harness = Harness(scheduler, mode=ReconnectMode.EXIT)
    harness.controller.start()

    harness.controller.handle_failure(TIMEOUT)

    assert harness.exit_codes == [1]
    assert scheduler.delays == []
    assert harness.controller.retry_pending is False


def test_exit_mode_also_covers_protocol_mismatch(scheduler) -> None:
    harness = Harness(scheduler, mode=ReconnectMode.EXIT)
    harness.controller.start()

    harness.controller.handle_failure(MISMATCH)

    assert harness.exit_codes == [1]
    assert harness.controller.current_version == "A"


def test_attempts_saturate_and_reset_on_active_session(scheduler) -> None:
    harness = Harness(scheduler)
    harness.controller.start()
    seen: list[int] = []

    for _ in range(15):
        harness.fail_and_fire(UNKNOWN)
        seen.append(harness.controller.attempts)

    assert seen == sorted(seen)
    assert seen[-1] == 10

    harness.controller.mark_active()
    assert harness.controller.attempts == 0
    assert harness.fail_and_fire(TIMEOUT) == 60.0


def test_stop_cancels_pending_retry_and_ignores_later_failures(scheduler) -> None:
    harness = Harness(scheduler)
    harness.controller.start()
    harness.controller.handle_failure(TIMEOUT)

    harness.controller.stop()
    harness.controller.handle_failure(TIMEOUT)
    scheduler.advance(1_000.0)

    assert scheduler.pending == []
    assert harness.connects == ["A"]
