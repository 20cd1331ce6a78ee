"""Boundary for game-protocol client integrations."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Protocol

from mc_keepalive.events import SessionEvent


class AnimationKind(str, Enum):
    """Non-positional animations the session may request."""

    JUMP = "jump"


@dataclass(frozen=True, slots=True)
class ConnectRequest:
    """Everything a protocol client needs to open one connection attempt."""

    host: str
    port: int
    username: str
    version: str


@dataclass(frozen=True, slots=True)
class MoveRequest:
    """Position/orientation update addressed to the controlled entity."""

    entity_id: int
    x: float
    y: float
    z: float
    pitch: float
    yaw: float
    head_yaw: float
    on_ground: bool = True


EventSink = Callable[[SessionEvent], None]


class ClientConnection(Protocol):
    """A live connection handle. Outbound requests are fire-and-forget."""

    def send_move(self, request: MoveRequest) -> None:
        """Queue a move/orientation update."""

    def send_animate(self, entity_id: int, kind: AnimationKind) -> None:
        """Queue an animation for the entity."""

    def send_chat(self, sender: str, text: str) -> None:
        """Queue a chat message."""

    def detach(self) -> None:
        """Stop delivering events to the sink."""

    def close(self) -> None:
        """Release the underlying connection."""


class ClientFactory(Protocol):
    """Opens connections and reports their lifecycle through ``emit``."""

    def connect(self, request: ConnectRequest, emit: EventSink) -> ClientConnection:
        """Start a connection attempt; may raise synchronously."""
