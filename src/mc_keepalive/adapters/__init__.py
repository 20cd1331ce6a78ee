"""Game-protocol client adapters."""

from .bedrock import ClientUnavailableError, EmitterConnection, ModuleClientFactory
from .client import AnimationKind, ClientConnection, ClientFactory, ConnectRequest, EventSink, MoveRequest
from .loopback import LoopbackClientFactory, LoopbackConnection

__all__ = [
    "AnimationKind",
    "ClientConnection",
    "ClientFactory",
    "ClientUnavailableError",
    "ConnectRequest",
    "EmitterConnection",
    "EventSink",
    "LoopbackClientFactory",
    "LoopbackConnection",
    "ModuleClientFactory",
    "MoveRequest",
]
