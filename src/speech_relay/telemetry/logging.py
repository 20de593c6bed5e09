"""Logging setup: event-name messages with ``extra`` fields rendered as key=value pairs."""

from __future__ import annotations

import logging

from rich.logging import RichHandler

_RESERVED_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class ExtraFieldsFormatter(logging.Formatter):
    """Appends non-standard record attributes (the ``extra=`` payload) to the message."""

    def format(self, record: logging.LogRecord) -> str:
        message = super().format(record)
        fields = {key: value for key, value in vars(record).items() if key not in _RESERVED_ATTRS}
        if not fields:
            return message
        rendered = " ".join(f"{key}={value!r}" for key, value in sorted(fields.items()))
        return f"{message} {rendered}"


def configure_logging(level: str | int = "INFO") -> None:
    """Route the ``speech_relay`` loggers through a rich console handler."""
    handler = RichHandler(rich_tracebacks=True, show_path=False, markup=False)
    handler.setFormatter(ExtraFieldsFormatter("%(name)s: %(message)s"))

    logger = logging.getLogger("speech_relay")
    logger.handlers.clear()
    logger.addHandler(handler)
    logger.setLevel(level.upper() if isinstance(level, str) else level)
    logger.propagate = False
