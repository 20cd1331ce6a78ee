import pytest

from mc_keepalive.events import Closed, Disconnected, Ended, Errored
from mc_keepalive.failures import FailureKind, ProtocolIncompatibleError, classify, parse_entity_id


@pytest.mark.parametrize(
    ("event", "kind"),
    [
        (Errored("Ping timed out"), FailureKind.TRANSIENT_NETWORK),
        (Errored("connect ECONNREFUSED 10.0.0.1:19132"), FailureKind.TRANSIENT_NETWORK),
        (Errored("Unsupported protocol version 712"), FailureKind.PROTOCOL_MISMATCH),
        (Errored("something odd"), FailureKind.UNCLASSIFIED),
        (Disconnected("outdated_server"), FailureKind.PROTOCOL_MISMATCH),
        (Disconnected("disconnectionScreen.outdatedClient"), FailureKind.PROTOCOL_MISMATCH),
        (Disconnected("disconnectionScreen.outdatedServer"), FailureKind.PROTOCOL_MISMATCH),
        (Disconnected("Outdated client! Please use 1.21.131"), FailureKind.PROTOCOL_MISMATCH),
        (Disconnected("Server closed"), FailureKind.UNCLASSIFIED),
        (Disconnected(None), FailureKind.UNCLASSIFIED),
        (Ended(), FailureKind.UNCLASSIFIED),
        (Closed(), FailureKind.UNCLASSIFIED),
    ],
)
def test_classify_maps_each_event_to_one_kind(event, kind) -> None:
    assert classify(event, version="1.21.100").kind is kind


def test_classify_trusts_protocol_incompatible_cause_over_text() -> None:
    failure = classify(Errored("bad id", cause=ProtocolIncompatibleError("bad id")), version="A")

    assert failure.kind is FailureKind.PROTOCOL_MISMATCH
    assert failure.version == "A"
    assert failure.detail == "bad id"


def test_parse_entity_id_accepts_ints_and_digit_strings() -> None:
    assert parse_entity_id(42) == 42
    assert parse_entity_id(" 18446744073709551615 ") == 2**64 - 1


@pytest.mark.parametrize("raw", [None, True, 0, -5, 2**64, "12a", 3.5, object()])
def test_parse_entity_id_rejects_everything_else(raw) -> None:
    with pytest.raises(ProtocolIncompatibleError):
        parse_entity_id(raw)
