import logging

from mc_keepalive.telemetry.logging import ContextFormatter, configure_logging


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("mc_keepalive.reconnect", logging.INFO, __file__, 1, "reconnect_scheduled", None, None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_extra_context_is_rendered_as_pairs() -> None:
    formatter = ContextFormatter("%(message)s")

    line = formatter.format(_record(version="1.21.100", attempt=3))

    assert line == "reconnect_scheduled version=1.21.100 attempt=3"


def test_plain_records_are_unchanged() -> None:
    assert ContextFormatter("%(message)s").format(_record()) == "reconnect_scheduled"


def test_configure_logging_installs_single_handler() -> None:
    root = logging.getLogger()
    saved_handlers, saved_level = root.handlers[:], root.level
    try:
        configure_logging("debug")
        configure_logging("debug")
        assert len(root.handlers) == 1
        assert root.level == logging.DEBUG
    finally:
        root.handlers[:] = saved_handlers
        root.setLevel(saved_level)
