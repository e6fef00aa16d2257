# Copyright (c) 2026 Veritas Aequitas Holdings LLC. All rights reserved.
"""Logging setup: API key redaction, JSON or text output on stderr.

Every handler installed by :func:`setup_logging` carries a
:class:`RedactingFilter`, so request URLs with a ``key=`` parameter never
reach a log sink verbatim.  Records may carry ``threat_list``, ``prefix``
or ``url`` extras; the JSON formatter emits them as top-level fields.
"""

import json
import logging
import re
import sys
from datetime import UTC, datetime
from typing import IO, Any

_SECRET_PATTERNS = (
    re.compile(r"(key=[A-Za-z0-9\-_]{4})[A-Za-z0-9\-_]*"),
    re.compile(r"(AIza[0-9A-Za-z\-_]{4})[0-9A-Za-z\-_]*"),
)

_CONTEXT_FIELDS = ("threat_list", "prefix", "url")

TEXT_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def redact_sensitive(text: str) -> str:
    for pattern in _SECRET_PATTERNS:
        text = pattern.sub(r"\1[REDACTED]", text)
    return text


def short_hex(value: bytes, length: int = 8) -> str:
    """Render a hash, prefix or version token compactly for log lines."""
    text = value.hex()
    if len(text) <= length:
        return text
    return f"{text[:length]}…"


class RedactingFilter(logging.Filter):
    """Render the record's message once and scrub API keys from it."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.msg = redact_sensitive(record.getMessage())
        record.args = None
        if record.exc_info and not record.exc_text:
            record.exc_text = redact_sensitive(
                logging.Formatter().formatException(record.exc_info)
            )
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        for name in _CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                entry[name] = str(value)
        if record.exc_text:
            entry["exception"] = record.exc_text
        elif record.exc_info and record.exc_info[1]:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry)


def setup_logging(
    level: str = "INFO",
    fmt: str = "text",
    stream: IO[str] | None = None,
) -> None:
    """(Re)configure the ``gwebrisk`` logger with a single stderr handler."""
    root = logging.getLogger("gwebrisk")
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
    root.handlers.clear()

    handler = logging.StreamHandler(stream or sys.stderr)
    handler.addFilter(RedactingFilter())
    if fmt == "json":
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT))
    root.addHandler(handler)
