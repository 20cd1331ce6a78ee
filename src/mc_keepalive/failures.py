"""Classification of terminal connection events into recovery strategies."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from mc_keepalive.events import Closed, Disconnected, Ended, Errored, TerminalEvent


class FailureKind(str, Enum):
    """How a terminated connection should be recovered."""

    TRANSIENT_NETWORK = "transient_network"
    PROTOCOL_MISMATCH = "protocol_mismatch"
    UNCLASSIFIED = "unclassified"


class ProtocolIncompatibleError(ValueError):
    """Raised when the peer speaks a protocol the client cannot work with."""


# matched against the text with spaces and underscores removed, so
# "outdated_client", "outdated client" and "disconnectionScreen.outdatedClient" agree
_MISMATCH_MARKERS = (
    "outdatedclient",
    "outdatedserver",
    "unsupported",
    "incompatible",
)

_NETWORK_MARKERS = (
    "timed out",
    "timeout",
    "unreachable",
    "econnrefused",
    "connection refused",
    "econnreset",
    "connection reset",
    "enotfound",
    "name or service not known",
)


@dataclass(frozen=True, slots=True)
class ConnectionFailure:
    """A classified terminal event, ready for the reconnection controller."""

    kind: FailureKind
    detail: str
    version: str | None = None


def classify_text(text: str) -> FailureKind:
    lowered = text.lower()
    compact = lowered.replace("_", "").replace(" ", "")
    if any(marker in compact for marker in _MISMATCH_MARKERS):
        return FailureKind.PROTOCOL_MISMATCH
    if any(marker in lowered for marker in _NETWORK_MARKERS):
        return FailureKind.TRANSIENT_NETWORK
    return FailureKind.UNCLASSIFIED


def describe(event: TerminalEvent) -> str:
    if isinstance(event, Errored):
        return event.message
    if isinstance(event, Disconnected):
        return f"disconnect: {event.reason}" if event.reason else "disconnect"
    if isinstance(event, Ended):
        return "stream ended"
    if isinstance(event, Closed):
        return "socket closed"
    raise TypeError(f"Not a terminal event: {event!r}")


def classify(event: TerminalEvent, *, version: str | None = None) -> ConnectionFailure:
    """Map a terminal event to exactly one failure kind."""
    detail = describe(event)
    if isinstance(event, Errored) and isinstance(event.cause, ProtocolIncompatibleError):
        kind = FailureKind.PROTOCOL_MISMATCH
    elif isinstance(event, (Errored, Disconnected)):
        kind = classify_text(detail)
    else:
        kind = FailureKind.UNCLASSIFIED
    return ConnectionFailure(kind=kind, detail=detail, version=version)


def parse_entity_id(raw: object) -> int:
    """Validate a peer-assigned entity id into an unsigned 64-bit integer."""
    if isinstance(raw, bool):
        raise ProtocolIncompatibleError(f"Unsupported entity id: {raw!r}")
    if isinstance(raw, int):
        value = raw
    elif isinstance(raw, str) and raw.strip().isdigit():
        value = int(raw.strip())
    else:
        raise ProtocolIncompatibleError(f"Unsupported entity id: {raw!r}")

    if not 0 < value < 2**64:
        raise ProtocolIncompatibleError(f"Entity id out of range: {value}")
    return value
