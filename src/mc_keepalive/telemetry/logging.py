"""Logging setup: rich console output with structured ``extra`` context."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

# attributes every LogRecord carries; anything else came in through ``extra``
_RECORD_FIELDS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class ContextFormatter(logging.Formatter):
    """Appends ``key=value`` pairs for fields passed through ``extra``."""

    def formatMessage(self, record: logging.LogRecord) -> str:
        base = super().formatMessage(record)
        context = {key: value for key, value in vars(record).items() if key not in _RECORD_FIELDS}
        if not context:
            return base
        rendered = " ".join(f"{key}={value}" for key, value in context.items())
        return f"{base} {rendered}"


def configure_logging(level: str = "INFO") -> None:
    handler = RichHandler(show_path=False, rich_tracebacks=True, markup=False)
    handler.setFormatter(ContextFormatter("%(message)s"))

    root = logging.getLogger()
    root.handlers[:] = [handler]
    root.setLevel(level.upper())
