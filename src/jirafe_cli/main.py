"""CLI entrypoint for the Jirafe event API.

Every command resolves credentials, builds one event (or query) and issues a
single request through `JirafeClient`.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from jirafe_cli import __version__
from jirafe_cli.client import CONFIGURE_HINT, JirafeClient, JirafeError
from jirafe_cli.config import (
    API_TOKEN_KEY,
    SITE_ID_KEY,
    JirafeSettings,
    SettingsStore,
    resolve_credentials,
)
from jirafe_cli.events import UNSET
from jirafe_cli.logging import configure_logging

logger = logging.getLogger(__name__)


def _print_success(message: str) -> None:
    print(f"✓ {message}")


def _print_error(message: str) -> None:
    print(f"✗ {message}", file=sys.stderr)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _mask_token(token: str) -> str:
    if len(token) <= 8:
        return "*" * len(token)
    return f"{token[:4]}...{token[-4:]}"


def _load_json(value: str, what: str) -> Any:
    try:
        return json.loads(value)
    except json.JSONDecodeError as e:
        raise JirafeError(f"Invalid JSON for {what}: {e}") from e


def _parse_param(value: str) -> tuple[str, str]:
    key, sep, param = value.partition("=")
    if not sep or not key.strip():
        raise argparse.ArgumentTypeError(f"expected KEY=VALUE, got {value!r}")
    return key.strip(), param


def _query_params(args: argparse.Namespace) -> dict[str, str]:
    params: dict[str, str] = dict(args.params or [])
    if args.date_from is not None:
        params["from"] = args.date_from
    if args.date_to is not None:
        params["to"] = args.date_to
    return params


def _read_batch(source: str) -> list[Any]:
    try:
        text = sys.stdin.read() if source == "-" else Path(source).read_text(encoding="utf-8")
    except OSError as e:
        raise JirafeError(f"Cannot read batch file {source}: {e.strerror or e}") from e

    payload = _load_json(text, "batch file")
    if isinstance(payload, dict):
        payload = payload.get("events")
    if not isinstance(payload, list):
        raise JirafeError("Batch file must contain a JSON array of events or an 'events' array")
    return payload


def _add_json_flag(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--json", action="store_true", help="Output the server response as JSON")


def _add_query_options(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--from", dest="date_from", default=None, help="Start date, e.g. 2024-01-01")
    parser.add_argument("--to", dest="date_to", default=None, help="End date, e.g. 2024-01-31")
    parser.add_argument(
        "--param",
        dest="params",
        action="append",
        type=_parse_param,
        default=None,
        metavar="KEY=VALUE",
        help="Extra query parameter (repeatable)",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="jirafe",
        description="Jirafe Events CLI - analytics and event tracking from your terminal",
    )
    parser.add_argument("--version", action="version", version=f"jirafe-cli {__version__}")

    subparsers = parser.add_subparsers(dest="command", required=True)

    # config
    config = subparsers.add_parser("config", help="Manage CLI configuration")
    config_commands = config.add_subparsers(dest="config_command", required=True)

    config_set = config_commands.add_parser("set", help="Set configuration values")
    config_set.add_argument("--site-id", default=None, help="Jirafe site ID")
    config_set.add_argument("--token", default=None, help="API token")

    config_commands.add_parser("show", help="Show current configuration")
    config_commands.add_parser("clear", help="Remove stored configuration")

    # track
    track = subparsers.add_parser("track", help="Track events")
    track_commands = track.add_subparsers(dest="track_command", required=True)

    pageview = track_commands.add_parser("pageview", help="Track a page view")
    pageview.add_argument("url", help="Page URL")
    pageview.add_argument("--title", default=UNSET, help="Page title")
    pageview.add_argument("--referrer", default=UNSET, help="Referrer URL")
    _add_json_flag(pageview)

    product = track_commands.add_parser(
        "product", help="Track product event (view, add_to_cart, purchase)"
    )
    product.add_argument("action", help="Product action")
    product.add_argument("product_id", help="Product ID")
    product.add_argument("--name", default=UNSET, help="Product name")
    product.add_argument("--price", type=float, default=UNSET, help="Product price")
    _add_json_flag(product)

    cart = track_commands.add_parser("cart", help="Track cart event (add, remove, checkout)")
    cart.add_argument("action", help="Cart action")
    cart.add_argument("--items", default=UNSET, help="Cart items as JSON")
    cart.add_argument("--total", type=float, default=UNSET, help="Cart total")
    _add_json_flag(cart)

    order = track_commands.add_parser("order", help="Track an order/purchase")
    order.add_argument("order_id", help="Order ID")
    order.add_argument("--total", type=float, default=UNSET, help="Order total")
    order.add_argument("--items", default=UNSET, help="Order items as JSON")
    _add_json_flag(order)

    user = track_commands.add_parser("user", help="Track user event (login, signup, update)")
    user.add_argument("action", help="User action")
    user.add_argument("user_id", help="User ID")
    user.add_argument("--email", default=UNSET, help="User email")
    user.add_argument("--name", default=UNSET, help="User name")
    _add_json_flag(user)

    custom = track_commands.add_parser("custom", help="Track custom event with JSON data")
    custom.add_argument("event_type", help="Event type")
    custom.add_argument("data", help="Event data as a JSON object")
    _add_json_flag(custom)

    batch = track_commands.add_parser("batch", help="Track several events in one request")
    batch.add_argument(
        "file",
        help="JSON file holding an array of events (or an object with 'events'); '-' for stdin",
    )
    _add_json_flag(batch)

    # read-back
    analytics = subparsers.add_parser("analytics", help="Fetch analytics for the site")
    _add_query_options(analytics)

    stats = subparsers.add_parser("stats", help="Fetch stats for the site")
    _add_query_options(stats)

    return parser


def _run_config(args: argparse.Namespace, store: SettingsStore) -> int:
    if args.config_command == "set":
        if not args.site_id and not args.token:
            _print_error("No options provided. Use --site-id or --token")
            return 1
        if args.site_id:
            store.set(SITE_ID_KEY, args.site_id)
            _print_success("Site ID set")
        if args.token:
            store.set(API_TOKEN_KEY, args.token)
            _print_success("API token set")
        return 0

    if args.config_command == "show":
        site_id = store.get(SITE_ID_KEY)
        token = store.get(API_TOKEN_KEY)
        print("\nJirafe CLI Configuration\n")
        print(f"Site ID:  {site_id or 'not set'}")
        print(f"Token:    {_mask_token(token) if token else 'not set'}")
        print(f"File:     {store.path}")
        print("")
        return 0

    if args.config_command == "clear":
        store.clear()
        _print_success("Configuration cleared")
        return 0

    logger.error("Unknown config command", extra={"command": args.config_command})
    return 2


def _run_track(args: argparse.Namespace, client: JirafeClient) -> int:
    kind = args.track_command

    if kind == "pageview":
        result = client.track_page_view(
            {"url": args.url, "title": args.title, "referrer": args.referrer}
        )
        message = "Page view tracked"
    elif kind == "product":
        result = client.track_product(
            args.action,
            {"product_id": args.product_id, "name": args.name, "price": args.price},
        )
        message = f"Product {args.action} tracked"
    elif kind == "cart":
        data: dict[str, Any] = {"total": args.total}
        if args.items is not UNSET:
            data["items"] = _load_json(args.items, "--items")
        result = client.track_cart(args.action, data)
        message = f"Cart {args.action} tracked"
    elif kind == "order":
        data = {"order_id": args.order_id, "total": args.total}
        if args.items is not UNSET:
            data["items"] = _load_json(args.items, "--items")
        result = client.track_order(data)
        message = "Order tracked"
    elif kind == "user":
        result = client.track_user(
            args.action,
            {"user_id": args.user_id, "email": args.email, "name": args.name},
        )
        message = f"User {args.action} tracked"
    elif kind == "custom":
        payload = _load_json(args.data, "event data")
        if not isinstance(payload, dict):
            raise JirafeError("Custom event data must be a JSON object")
        result = client.track_custom(args.event_type, payload)
        message = "Custom event tracked"
    elif kind == "batch":
        events = _read_batch(args.file)
        result = client.track_batch(events)
        message = f"Batch of {len(events)} events tracked"
    else:
        logger.error("Unknown track command", extra={"command": kind})
        return 2

    if args.json:
        _print_json(result)
    else:
        _print_success(message)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = JirafeSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your environment or .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings)
    store = SettingsStore(settings.config_path)

    try:
        if args.command == "config":
            return _run_config(args, store)

        credentials = resolve_credentials(settings, store)
        if not credentials.is_complete:
            _print_error("Not configured.")
            print("\nRun the following to configure:", file=sys.stderr)
            print(f"  {CONFIGURE_HINT}", file=sys.stderr)
            return 1

        with JirafeClient(
            credentials=credentials,
            base_url=settings.base_url,
            timeout=settings.timeout_seconds,
        ) as client:
            if args.command == "track":
                return _run_track(args, client)
            if args.command == "analytics":
                _print_json(client.get_analytics(_query_params(args)))
                return 0
            if args.command == "stats":
                _print_json(client.get_stats(_query_params(args)))
                return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except JirafeError as e:
        _print_error(e.message)
        return 1

    except Exception as e:
        logger.exception("Command failed")
        _print_error(str(e))
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
