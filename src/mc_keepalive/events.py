"""Tagged lifecycle events delivered by a protocol client to the session manager."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union

from mc_keepalive.position import Vec3


@dataclass(frozen=True, slots=True)
class PositionSeeded:
    """The peer reported where the controlled entity starts."""

    position: Vec3


@dataclass(frozen=True, slots=True)
class Spawned:
    """The peer confirmed the entity is in the world.

    ``entity_id`` is the raw value reported by the client; it is validated once
    by the session manager.
    """

    entity_id: Any


@dataclass(frozen=True, slots=True)
class TextReceived:
    text: str
    source: str | None = None


@dataclass(frozen=True, slots=True)
class Errored:
    message: str
    cause: BaseException | None = None


@dataclass(frozen=True, slots=True)
class Disconnected:
    reason: str | None = None


@dataclass(frozen=True, slots=True)
class Ended:
    pass


@dataclass(frozen=True, slots=True)
class Closed:
    pass


SessionEvent = Union[PositionSeeded, Spawned, TextReceived, Errored, Disconnected, Ended, Closed]
TerminalEvent = Union[Errored, Disconnected, Ended, Closed]

TERMINAL_EVENTS: tuple[type, ...] = (Errored, Disconnected, Ended, Closed)


def is_terminal(event: SessionEvent) -> bool:
    return isinstance(event, TERMINAL_EVENTS)
