"""Jirafe event API client.

All network traffic goes through `JirafeClient.request`, which attaches the
bearer token, issues exactly one HTTP call and turns every failure into a
`RequestError` carrying a single human-readable message. Site-scoped operations
put the configured site ID in front of the endpoint path.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from types import TracebackType
from typing import Any
from urllib.parse import quote

import requests

from jirafe_cli.config import DEFAULT_BASE_URL, Credentials
from jirafe_cli.events import (
    build_batch,
    build_cart_event,
    build_custom_event,
    build_event,
    build_order_event,
    build_page_view,
    build_product_event,
    build_user_event,
)

logger = logging.getLogger(__name__)

CONFIGURE_HINT = "jirafe config set --site-id YOUR_SITE_ID --token YOUR_TOKEN"
NOT_CONFIGURED_MESSAGE = f"Not configured. Run: {CONFIGURE_HINT}"

_METHODS = frozenset({"GET", "POST"})


class JirafeError(Exception):
    """Base error carrying the one message shown to the user."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(JirafeError):
    """Raised before any network I/O when the site ID or API token is missing."""


class RequestError(JirafeError):
    """Raised when an HTTP call fails or returns an unusable response."""


def _error_message(response: requests.Response | None, exc: Exception) -> str:
    if response is not None:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and payload.get("message"):
            return str(payload["message"])
    return f"Request failed: {exc}"


class JirafeClient:
    """Thin wrapper around a `requests.Session` for the event API."""

    def __init__(
        self,
        *,
        credentials: Credentials,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        session: requests.Session | None = None,
    ) -> None:
        if not credentials.is_complete:
            raise ConfigurationError(NOT_CONFIGURED_MESSAGE)

        self._site_id = credentials.site_id.strip()
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._headers = {
            "Authorization": f"Bearer {credentials.api_token.strip()}",
            "Content-Type": "application/json",
        }
        self._owns_session = session is None
        self._session = session if session is not None else requests.Session()

    @property
    def site_id(self) -> str:
        return self._site_id

    def close(self) -> None:
        if self._owns_session:
            self._session.close()

    def __enter__(self) -> JirafeClient:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def _site_path(self, endpoint: str) -> str:
        return f"/{quote(self._site_id, safe='')}/{endpoint}"

    def request(self, method: str, path: str, body: Mapping[str, Any] | None = None) -> Any:
        """Send one request and return the decoded JSON response.

        GET sends ``body`` as query parameters, POST as a JSON document. An empty
        response body decodes to ``None``.
        """

        method = method.upper()
        if method not in _METHODS:
            raise ValueError(f"Unsupported HTTP method: {method}")

        url = f"{self._base_url}{path}"
        kwargs: dict[str, Any]
        if method == "GET":
            kwargs = {"params": dict(body or {})}
        else:
            kwargs = {"json": dict(body) if body is not None else None}

        logger.debug("Sending request", extra={"method": method, "path": path})
        try:
            response = self._session.request(
                method, url, headers=self._headers, timeout=self._timeout, **kwargs
            )
            response.raise_for_status()
        except requests.HTTPError as exc:
            logger.debug(
                "Request rejected",
                extra={
                    "method": method,
                    "path": path,
                    "status": getattr(exc.response, "status_code", None),
                },
            )
            raise RequestError(_error_message(exc.response, exc)) from exc
        except requests.RequestException as exc:
            logger.debug("Request failed", extra={"method": method, "path": path, "error": str(exc)})
            raise RequestError(_error_message(None, exc)) from exc

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as exc:
            raise RequestError(f"Request failed: invalid JSON response ({exc})") from exc

    # Events

    def track_event(self, kind: str, data: Mapping[str, Any] | None = None) -> Any:
        return self._post_event(build_event(kind, data))

    def track_page_view(self, data: Mapping[str, Any] | None = None) -> Any:
        return self._post_event(build_page_view(data))

    def track_product(self, action: str, data: Mapping[str, Any] | None = None) -> Any:
        return self._post_event(build_product_event(action, data))

    def track_cart(self, action: str, data: Mapping[str, Any] | None = None) -> Any:
        return self._post_event(build_cart_event(action, data))

    def track_order(self, data: Mapping[str, Any] | None = None) -> Any:
        return self._post_event(build_order_event(data))

    def track_user(self, action: str, data: Mapping[str, Any] | None = None) -> Any:
        return self._post_event(build_user_event(action, data))

    def track_custom(self, kind: str, data: Mapping[str, Any] | None = None) -> Any:
        return self._post_event(build_custom_event(kind, data))

    def _post_event(self, envelope: Mapping[str, Any]) -> Any:
        result = self.request("POST", self._site_path("events"), envelope)
        logger.info("Event tracked", extra={"type": envelope["type"]})
        return result

    def track_batch(self, events: Iterable[Mapping[str, Any]]) -> Any:
        """Submit all events in one call; the server's response covers the whole batch."""

        batch = build_batch(events)
        result = self.request("POST", self._site_path("batch"), batch)
        logger.info("Batch tracked", extra={"count": len(batch["events"])})
        return result

    # Analytics

    def get_analytics(self, params: Mapping[str, Any] | None = None) -> Any:
        return self.request("GET", self._site_path("analytics"), params or {})

    def get_stats(self, params: Mapping[str, Any] | None = None) -> Any:
        return self.request("GET", self._site_path("stats"), params or {})
