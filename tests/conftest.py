"""Test configuration and fixtures."""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest
import requests

from jirafe_cli.config import Credentials, SettingsStore
from jirafe_cli.logging import JsonLogFormatter

_ENV_VARS = (
    "JIRAFE_BASE_URL",
    "JIRAFE_CONFIG_PATH",
    "JIRAFE_TIMEOUT_SECONDS",
    "JIRAFE_LOG_LEVEL",
    "JIRAFE_SITE_ID",
    "JIRAFE_API_TOKEN",
)


def make_response(
    status_code: int,
    body: Any = None,
    *,
    raw: bytes | None = None,
    url: str = "https://event.jirafe.com/v2/s1/events",
) -> requests.Response:
    """Build a real `requests.Response` without touching the network."""

    response = requests.Response()
    response.status_code = status_code
    response.url = url
    response.reason = {
        200: "OK",
        400: "Bad Request",
        401: "Unauthorized",
        500: "Internal Server Error",
    }.get(status_code, "")
    if raw is not None:
        response._content = raw
    elif body is not None:
        response._content = json.dumps(body).encode("utf-8")
        response.headers["Content-Type"] = "application/json"
    else:
        response._content = b""
    return response


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep tests away from the developer's environment, `.env` and home config."""

    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def credentials() -> Credentials:
    return Credentials(site_id="s1", api_token="test-token")


@pytest.fixture
def config_path(tmp_path: Path) -> Path:
    return tmp_path / "config" / "jirafe.json"


@pytest.fixture
def store(config_path: Path) -> SettingsStore:
    return SettingsStore(config_path)


@pytest.fixture
def session() -> Mock:
    """A `requests.Session` stand-in that answers 200 `{"ok": true}` by default."""

    mock_session = Mock(spec=requests.Session)
    mock_session.request.return_value = make_response(200, {"ok": True})
    return mock_session


@pytest.fixture
def respond(session: Mock) -> Callable[..., None]:
    """Set the next response returned by the mocked session."""

    def _respond(status_code: int, body: Any = None, *, raw: bytes | None = None) -> None:
        session.request.return_value = make_response(status_code, body, raw=raw)

    return _respond


@pytest.fixture(autouse=True)
def restore_root_logging() -> Iterator[None]:
    """`main()` reconfigures the root logger; undo that after each test."""

    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, JsonLogFormatter):
            root.removeHandler(handler)
    root.setLevel(level)
