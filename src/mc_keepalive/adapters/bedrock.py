"""Module-backed Bedrock protocol client adapter.

The protocol client is imported at runtime from a configurable module so the
session engine stays testable in CI where no protocol implementation is
installed. The module must expose ``create_client(**options)`` returning an
event emitter in the style of ``bedrock-protocol``: ``on(name, fn)``,
``queue(packet_name, params)`` and optionally ``remove_all_listeners()`` and
``close()``.
"""

from __future__ import annotations

import importlib
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Callable

from mc_keepalive.adapters.client import AnimationKind, ConnectRequest, EventSink, MoveRequest
from mc_keepalive.events import (
    Closed,
    Disconnected,
    Ended,
    Errored,
    PositionSeeded,
    SessionEvent,
    Spawned,
    TextReceived,
)
from mc_keepalive.position import Vec3

_ANIMATION_IDS = {AnimationKind.JUMP: 1}


class ClientUnavailableError(RuntimeError):
    """Raised when the protocol client module is missing or has no ``create_client``."""


def _field(packet: Any, name: str) -> Any:
    if isinstance(packet, Mapping):
        return packet.get(name)
    return getattr(packet, name, None)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _to_vec3(source: Any) -> Vec3 | None:
    x, y, z = _field(source, "x"), _field(source, "y"), _field(source, "z")
    if not _is_number(x):
        return None
    return Vec3(float(x), float(y) if _is_number(y) else 64.0, float(z) if _is_number(z) else 0.0)


def extract_position(packet: Any) -> Vec3 | None:
    """Pull a start position out of a ``start_game`` packet, if it carries one."""
    for key in ("position", "player_position", "spawn_position"):
        candidate = _field(packet, key)
        if candidate is not None and (position := _to_vec3(candidate)) is not None:
            return position
    return _to_vec3(packet)


def runtime_entity_id(client: Any) -> Any:
    """Best-effort lookup of the entity id the server assigned to this client."""
    value = getattr(client, "entity_id", None)
    if value is not None:
        return value
    entity = getattr(client, "entity", None)
    if entity is not None and _field(entity, "runtime_id") is not None:
        return _field(entity, "runtime_id")
    start_game = getattr(client, "start_game_data", None)
    if start_game is not None:
        return _field(start_game, "runtime_entity_id")
    return None


class EmitterConnection:
    """Translates emitter callbacks into session events and requests into packets."""

    def __init__(self, client: Any, emit: EventSink) -> None:
        self._client = client
        self._emit: EventSink | None = emit
        self._start_game_entity_id: Any = None
        self._bind()

    def _bind(self) -> None:
        handlers: dict[str, Callable[..., None]] = {
            "start_game": self._on_start_game,
            "spawn": self._on_spawn,
            "text": self._on_text,
            "error": self._on_error,
            "disconnect": self._on_disconnect,
            "end": lambda *_: self._deliver(Ended()),
            "close": lambda *_: self._deliver(Closed()),
        }
        for name, handler in handlers.items():
            self._client.on(name, handler)

    def _deliver(self, event: SessionEvent) -> None:
        if self._emit is not None:
            self._emit(event)

    def _on_start_game(self, packet: Any = None) -> None:
        if packet is not None:
            self._start_game_entity_id = _field(packet, "runtime_entity_id")
        position = extract_position(packet) if packet is not None else None
        if position is not None:
            self._deliver(PositionSeeded(position))

    def _on_spawn(self, *_: Any) -> None:
        entity_id = runtime_entity_id(self._client)
        if entity_id is None:
            entity_id = self._start_game_entity_id
        self._deliver(Spawned(entity_id=entity_id))

    def _on_text(self, packet: Any = None) -> None:
        message = _field(packet, "message") if packet is not None else None
        self._deliver(TextReceived(text=str(message if message is not None else packet), source=_field(packet, "source_name")))

    def _on_error(self, error: Any = None) -> None:
        cause = error if isinstance(error, BaseException) else None
        self._deliver(Errored(message=str(error), cause=cause))

    def _on_disconnect(self, packet: Any = None) -> None:
        reason = _field(packet, "reason") if packet is not None else None
        if reason is None and packet is not None:
            reason = packet
        self._deliver(Disconnected(reason=None if reason is None else str(reason)))

    def send_move(self, request: MoveRequest) -> None:
        self._client.queue(
            "move_player",
            {
                "runtime_id": request.entity_id,
                "position": {"x": request.x, "y": request.y, "z": request.z},
                "pitch": request.pitch,
                "yaw": request.yaw,
                "head_yaw": request.head_yaw,
                "mode": 0,
                "on_ground": request.on_ground,
                "ridden_runtime_id": 0,
            },
        )

    def send_animate(self, entity_id: int, kind: AnimationKind) -> None:
        self._client.queue("animate", {"action_id": _ANIMATION_IDS[kind], "runtime_id": entity_id})

    def send_chat(self, sender: str, text: str) -> None:
        self._client.queue(
            "text",
            {
                "type": "chat",
                "needs_translation": False,
                "source_name": sender,
                "message": text,
                "xuid": "",
                "platform_chat_id": "",
                "filtered_message": "",
            },
        )

    def detach(self) -> None:
        self._emit = None
        remove = getattr(self._client, "remove_all_listeners", None)
        if callable(remove):
            remove()

    def close(self) -> None:
        close = getattr(self._client, "close", None)
        if callable(close):
            close()


@dataclass(slots=True)
class ModuleClientFactory:
    """Opens connections through ``<module_name>.create_client``."""

    module_name: str = "bedrock_protocol"
    offline: bool = True
    _create_client: Callable[..., Any] = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._create_client = self._resolve_factory(self.module_name)

    def connect(self, request: ConnectRequest, emit: EventSink) -> EmitterConnection:
        client = self._create_client(
            host=request.host,
            port=request.port,
            username=request.username,
            offline=self.offline,
            version=request.version,
        )
        return EmitterConnection(client, emit)

    @staticmethod
    def _resolve_factory(module_name: str) -> Callable[..., Any]:
        try:
            module = importlib.import_module(module_name)
        except Exception as exc:  # noqa: BLE001
            raise ClientUnavailableError(
                f"Unable to import protocol client module {module_name!r}. Install it or set CLIENT_MODULE."
            ) from exc

        for attr in ("create_client", "createClient"):
            fn = getattr(module, attr, None)
            if callable(fn):
                return fn

        raise ClientUnavailableError(
            f"Imported {module_name!r} but found no supported API (expected create_client/createClient)."
        )
