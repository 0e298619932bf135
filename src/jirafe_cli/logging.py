"""Logging setup for the CLI.

Log lines go to stderr as JSON objects so stdout stays reserved for command
output. Anything passed through ``extra=`` is included, with credentials
masked: keys such as ``Authorization`` or ``api_token`` are replaced by
``REDACTED`` and bearer tokens embedded in strings are cut out.
"""

from __future__ import annotations

import json
import logging
import re
import sys
from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, TextIO

if TYPE_CHECKING:
    from jirafe_cli.config import JirafeSettings

REDACTED = "***"

_SENSITIVE_KEYS = frozenset({"authorization", "api_token", "apitoken", "token"})
_BEARER_RE = re.compile(r"(Bearer\s+)\S+", re.IGNORECASE)

# Attributes every LogRecord carries; anything else came in through `extra=`.
_RECORD_ATTRS = frozenset(vars(logging.makeLogRecord({}))) | {"message", "asctime"}


def redact(value: Any) -> Any:
    """Return ``value`` with credentials masked, recursing into mappings and lists."""

    if isinstance(value, Mapping):
        return {
            key: REDACTED if str(key).lower() in _SENSITIVE_KEYS else redact(item)
            for key, item in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [redact(item) for item in value]
    if isinstance(value, str):
        return _BEARER_RE.sub(rf"\g<1>{REDACTED}", value)
    return value


class JsonLogFormatter(logging.Formatter):
    """Render a record as one JSON line."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        entry: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": redact(record.getMessage()),
        }

        extra = {
            key: value
            for key, value in vars(record).items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }
        if extra:
            entry["extra"] = redact(extra)

        if record.exc_info:
            entry["exception"] = redact(self.formatException(record.exc_info))

        return json.dumps(entry, ensure_ascii=False, default=str)


def configure_logging(settings: JirafeSettings, stream: TextIO | None = None) -> None:
    """Install a single JSON handler on the root logger at ``settings.log_level``."""

    root = logging.getLogger()
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(JsonLogFormatter())
    root.addHandler(handler)
    root.setLevel(settings.log_level)

    # urllib3 logs every connection at DEBUG.
    logging.getLogger("urllib3").setLevel(max(root.level, logging.INFO))
