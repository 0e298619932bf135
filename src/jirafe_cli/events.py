"""Event envelope builders.

An envelope is the JSON object posted to `/{site_id}/events`: a `type` key plus
event-specific fields. A field whose value is `UNSET` is absent and left out of
the envelope. `None` is an explicit null and is sent as such; the server treats
a missing field and a null field differently.

Actions are open strings. The server owns validation of both actions and field
values, so unknown fields are forwarded untouched.

Fields each kind usually carries:

- pageview: ``url``, ``title``, ``referrer``
- product:  ``product_id``, ``name``, ``price``
- cart:     ``items``, ``total``
- order:    ``order_id``, ``total``, ``items``
- user:     ``user_id``, ``email``, ``name``
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping
from typing import Any

PAGEVIEW = "pageview"
ORDER = "order"
PRODUCT_PREFIX = "product_"
CART_PREFIX = "cart_"
USER_PREFIX = "user_"

Envelope = dict[str, Any]


class _Unset(enum.Enum):
    UNSET = "UNSET"

    def __repr__(self) -> str:
        return "UNSET"


UNSET = _Unset.UNSET
"""Marks a field the caller did not provide."""


def build_event(kind: str, data: Mapping[str, Any] | None = None) -> Envelope:
    """Return ``{"type": kind, **data}`` without the `UNSET` fields.

    ``type`` always comes from ``kind``; a ``type`` key inside ``data`` is ignored.
    """

    envelope: Envelope = {"type": kind}
    for key, value in (data or {}).items():
        if key != "type" and value is not UNSET:
            envelope[key] = value
    return envelope


def build_page_view(data: Mapping[str, Any] | None = None) -> Envelope:
    return build_event(PAGEVIEW, data)


def build_product_event(action: str, data: Mapping[str, Any] | None = None) -> Envelope:
    return build_event(f"{PRODUCT_PREFIX}{action}", data)


def build_cart_event(action: str, data: Mapping[str, Any] | None = None) -> Envelope:
    return build_event(f"{CART_PREFIX}{action}", data)


def build_order_event(data: Mapping[str, Any] | None = None) -> Envelope:
    return build_event(ORDER, data)


def build_user_event(action: str, data: Mapping[str, Any] | None = None) -> Envelope:
    return build_event(f"{USER_PREFIX}{action}", data)


def build_custom_event(kind: str, data: Mapping[str, Any] | None = None) -> Envelope:
    return build_event(kind, data)


def build_batch(events: Iterable[Mapping[str, Any]]) -> dict[str, list[Any]]:
    """Wrap envelopes as ``{"events": [...]}``, keeping order and duplicates."""

    return {"events": list(events)}
