from __future__ import annotations

import itertools
from typing import Callable

import pytest

from mc_keepalive.adapters.client import AnimationKind, ConnectRequest, EventSink, MoveRequest
from mc_keepalive.events import SessionEvent


class ManualHandle:
    def __init__(self, when: float, seq: int, callback: Callable[..., object], args: tuple) -> None:
        self.when = when
        self.seq = seq
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic stand-in for ``loop.call_later`` driven by ``advance``."""

    def __init__(self) -> None:
        self.now = 0.0
        self._timers: list[ManualHandle] = []
        self._seq = itertools.count()
        self.delays: list[float] = []

    def call_later(self, delay: float, callback: Callable[..., object], *args: object) -> ManualHandle:
        handle = ManualHandle(self.now + delay, next(self._seq), callback, args)
        self._timers.append(handle)
        self.delays.append(delay)
        return handle

    @property
    def pending(self) -> list[ManualHandle]:
        return [timer for timer in self._timers if not timer.cancelled]

    def advance(self, seconds: float) -> None:
        target = self.now + seconds
        while True:
            due = [timer for timer in self.pending if timer.when <= target]
            if not due:
                break
            timer = min(due, key=lambda t: (t.when, t.seq))
            self._timers.remove(timer)
            self.now = timer.when
            timer.callback(*timer.args)
        self.now = target
        self._timers = self.pending

    def run_pending(self) -> None:
        """Fire everything currently scheduled, however far out."""
        if self.pending:
            self.advance(max(timer.when for timer in self.pending) - self.now)


class FakeConnection:
    def __init__(self, request: ConnectRequest, emit: EventSink) -> None:
        self.request = request
        self._emit = emit
        self.moves: list[MoveRequest] = []
        self.animations: list[tuple[int, AnimationKind]] = []
        self.chats: list[tuple[str, str]] = []
        self.detached = False
        self.closed = False

    def emit(self, event: SessionEvent) -> None:
        # deliberately ignores ``detached`` so tests can simulate late callbacks
        self._emit(event)

    def send_move(self, request: MoveRequest) -> None:
        self.moves.append(request)

    def send_animate(self, entity_id: int, kind: AnimationKind) -> None:
        self.animations.append((entity_id, kind))

    def send_chat(self, sender: str, text: str) -> None:
        self.chats.append((sender, text))

    def detach(self) -> None:
        self.detached = True

    def close(self) -> None:
        self.closed = True


class FakeClientFactory:
    def __init__(self, fail_with: Exception | None = None) -> None:
        self.fail_with = fail_with
        self.requests: list[ConnectRequest] = []
        self.connections: list[FakeConnection] = []

    def connect(self, request: ConnectRequest, emit: EventSink) -> FakeConnection:
        self.requests.append(request)
        if self.fail_with is not None:
            raise self.fail_with
        connection = FakeConnection(request, emit)
        self.connections.append(connection)
        return connection

    @property
    def last(self) -> FakeConnection:
        return self.connections[-1]


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def factory() -> FakeClientFactory:
    return FakeClientFactory()
