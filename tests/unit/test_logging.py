"""Unit tests for structured logging."""

from __future__ import annotations

import io
import json
import logging
import sys

import pytest

from jirafe_cli.config import JirafeSettings
from jirafe_cli.logging import REDACTED, JsonLogFormatter, configure_logging, redact


def _record(msg: str = "Event %s", *args: object, **extra: object) -> logging.LogRecord:
    record = logging.makeLogRecord(
        {
            "name": "jirafe_cli.client",
            "levelno": logging.INFO,
            "levelname": "INFO",
            "msg": msg,
            "args": args or ("tracked",),
        }
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_formatter_emits_core_fields() -> None:
    entry = json.loads(JsonLogFormatter().format(_record()))

    assert entry["level"] == "INFO"
    assert entry["logger"] == "jirafe_cli.client"
    assert entry["message"] == "Event tracked"
    assert "timestamp" in entry
    assert "extra" not in entry


def test_formatter_includes_extra_fields() -> None:
    entry = json.loads(JsonLogFormatter().format(_record(type="pageview", count=3)))

    assert entry["extra"] == {"type": "pageview", "count": 3}


def test_formatter_masks_credentials_in_extra() -> None:
    record = _record(
        headers={"Authorization": "Bearer secret-token", "Content-Type": "application/json"},
        api_token="secret-token",
        site="s1",
    )

    formatted = JsonLogFormatter().format(record)
    entry = json.loads(formatted)

    assert "secret-token" not in formatted
    assert entry["extra"]["headers"] == {"Authorization": REDACTED, "Content-Type": "application/json"}
    assert entry["extra"]["api_token"] == REDACTED
    assert entry["extra"]["site"] == "s1"


def test_formatter_masks_bearer_token_in_message() -> None:
    entry = json.loads(JsonLogFormatter().format(_record("sent %s", "Bearer abc123")))

    assert entry["message"] == f"sent Bearer {REDACTED}"


def test_formatter_includes_exception() -> None:
    try:
        raise RuntimeError("boom")
    except RuntimeError:
        record = _record()
        record.exc_info = sys.exc_info()

    entry = json.loads(JsonLogFormatter().format(record))

    assert "RuntimeError: boom" in entry["exception"]


def test_redact_walks_nested_values() -> None:
    value = {"events": [{"token": "t1", "url": "/"}], "note": "Bearer xyz"}

    assert redact(value) == {
        "events": [{"token": REDACTED, "url": "/"}],
        "note": f"Bearer {REDACTED}",
    }


def test_configure_logging_uses_settings_level(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("JIRAFE_LOG_LEVEL", "info")
    stream = io.StringIO()

    configure_logging(JirafeSettings(), stream=stream)
    configure_logging(JirafeSettings(), stream=stream)

    root = logging.getLogger()
    assert root.level == logging.INFO
    assert len(root.handlers) == 1
    assert isinstance(root.handlers[0].formatter, JsonLogFormatter)

    logging.getLogger("jirafe_cli.test").debug("hidden")
    logging.getLogger("jirafe_cli.test").info("hello")

    lines = stream.getvalue().splitlines()
    assert len(lines) == 1
    assert json.loads(lines[0])["message"] == "hello"


def test_configure_logging_defaults_to_stderr(capsys: pytest.CaptureFixture[str]) -> None:
    configure_logging(JirafeSettings())

    logging.getLogger("jirafe_cli.test").warning("careful")

    captured = capsys.readouterr()
    assert captured.out == ""
    assert json.loads(captured.err)["message"] == "careful"
