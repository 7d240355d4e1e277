"""Mapping of raw exchange records into canonical order types."""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Mapping
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any

from ..errors import ExchangeRejectionError, MalformedResponseError
from .models import CancelReport, Order, OrderSide, PlacedOrder

logger = logging.getLogger(__name__)

STATUS_OPEN_DEFAULT = "open"
STATUS_LOOKUP_DEFAULT = "unknown"
STATUS_PLACED_DEFAULT = "success"


def parse_decimal(raw: Any, field: str) -> Decimal:
    """Parse a numeric-as-text field, failing closed on anything unparseable."""
    if raw is None or isinstance(raw, bool) or raw == "":
        raise MalformedResponseError(f"Exchange record field {field!r} is missing or empty")
    try:
        value = Decimal(str(raw))
    except (InvalidOperation, ValueError) as exc:
        raise MalformedResponseError(f"Exchange record field {field!r} is not numeric: {raw!r}") from exc
    if not value.is_finite():
        raise MalformedResponseError(f"Exchange record field {field!r} is not finite: {raw!r}")
    return value


def parse_timestamp(raw: Any) -> int:
    """Parse ``created_at`` as epoch seconds (int, numeric string or ISO-8601)."""
    if isinstance(raw, bool):
        raise MalformedResponseError(f"Exchange record has invalid created_at: {raw!r}")
    if isinstance(raw, int):
        return raw
    if isinstance(raw, float):
        if not math.isfinite(raw):
            raise MalformedResponseError(f"Exchange record has invalid created_at: {raw!r}")
        return int(raw)
    if isinstance(raw, str):
        text = raw.strip()
        try:
            return int(Decimal(text))
        except (InvalidOperation, ValueError, OverflowError):
            pass
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as exc:
            raise MalformedResponseError(f"Exchange record has invalid created_at: {raw!r}") from exc
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp())
    raise MalformedResponseError(f"Exchange record has invalid created_at: {raw!r}")


def _parse_side(raw: Any) -> OrderSide:
    try:
        return OrderSide(str(raw).upper())
    except ValueError as exc:
        raise MalformedResponseError(f"Exchange record has unknown side: {raw!r}") from exc


def normalize_order(raw: Mapping[str, Any], *, default_status: str = STATUS_LOOKUP_DEFAULT) -> Order:
    """Convert an exchange order record into an :class:`Order`.

    ``default_status`` is used when the record carries no status; listings pass
    :data:`STATUS_OPEN_DEFAULT`, single lookups :data:`STATUS_LOOKUP_DEFAULT`.
    """
    if not isinstance(raw, Mapping):
        raise MalformedResponseError(f"Expected an order record mapping, got {type(raw).__name__}")

    order_id = raw.get("id")
    if not order_id:
        raise MalformedResponseError("Exchange record has no order id")

    original_size = parse_decimal(raw.get("original_size"), "original_size")
    matched_raw = raw.get("size_matched")
    matched_size = Decimal(0) if matched_raw in (None, "") else parse_decimal(matched_raw, "size_matched")
    remaining = original_size - matched_size
    if matched_size < 0 or remaining < 0:
        raise MalformedResponseError(
            f"Order {order_id}: matched size {matched_size} is outside [0, {original_size}]"
        )

    created_at = raw.get("created_at")
    if created_at in (None, "", 0):
        timestamp = int(time.time())
        estimated = True
    else:
        timestamp = parse_timestamp(created_at)
        estimated = False

    return Order(
        order_id=str(order_id),
        token_id=str(raw.get("asset_id") or ""),
        side=_parse_side(raw.get("side")),
        price=parse_decimal(raw.get("price"), "price"),
        original_size=original_size,
        size=remaining,
        status=str(raw.get("status") or default_status),
        timestamp=timestamp,
        raw=dict(raw),
        timestamp_estimated=estimated,
    )


def normalize_placement(raw: Any) -> PlacedOrder:
    """Extract the order id and status from an order submission response."""
    if not isinstance(raw, Mapping):
        raise MalformedResponseError(f"Expected an order response mapping, got {type(raw).__name__}")

    if raw.get("success") is False or raw.get("errorMsg"):
        reason = raw.get("errorMsg") or "order was not accepted"
        raise ExchangeRejectionError(f"Exchange rejected order: {reason}", payload=dict(raw))

    order_id = raw.get("orderID") or raw.get("id")
    if not order_id:
        raise MalformedResponseError("Order response has no order id")
    return PlacedOrder(order_id=str(order_id), status=str(raw.get("status") or STATUS_PLACED_DEFAULT))


def normalize_cancel_report(raw: Any, requested: list[str]) -> CancelReport:
    """Itemize a cancel response.

    A gateway that returns nothing is taken at its word: every requested id is
    reported as canceled.
    """
    if raw is None:
        return CancelReport(canceled=tuple(requested))
    if not isinstance(raw, Mapping):
        raise MalformedResponseError(f"Expected a cancel response mapping, got {type(raw).__name__}")

    canceled = raw.get("canceled") or []
    not_canceled = raw.get("not_canceled") or {}
    if not isinstance(canceled, list) or not isinstance(not_canceled, Mapping):
        raise MalformedResponseError(f"Unexpected cancel response shape: {raw!r}")

    report = CancelReport(
        canceled=tuple(str(order_id) for order_id in canceled),
        not_canceled={str(k): str(v) for k, v in not_canceled.items()},
    )
    if report.not_canceled:
        logger.warning("Exchange did not cancel %d order(s): %s", len(report.not_canceled), report.not_canceled)
    return report
