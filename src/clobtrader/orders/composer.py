"""Validation and wire mapping for outbound orders."""

from __future__ import annotations

from decimal import Decimal, InvalidOperation
from typing import Any

from ..errors import ValidationError
from .models import OrderRequest, OrderSide


def _to_decimal(value: Any, field: str) -> Decimal:
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number", field=field)
    if isinstance(value, Decimal):
        number = value
    else:
        try:
            # str() keeps float inputs like 0.65 from picking up binary noise
            number = Decimal(str(value))
        except (InvalidOperation, ValueError, TypeError) as exc:
            raise ValidationError(f"{field} must be a number, got {value!r}", field=field) from exc
    if not number.is_finite():
        raise ValidationError(f"{field} must be a finite number", field=field)
    return number


def validate_token_id(token_id: Any) -> str:
    if not isinstance(token_id, str) or not token_id.strip():
        raise ValidationError("tokenId is required", field="token_id")
    return token_id


def validate_side(side: Any) -> OrderSide:
    if isinstance(side, OrderSide):
        return side
    if side == "BUY":
        return OrderSide.BUY
    if side == "SELL":
        return OrderSide.SELL
    raise ValidationError(f"side must be 'BUY' or 'SELL', got {side!r}", field="side")


def validate_price(price: Any) -> Decimal:
    value = _to_decimal(price, "price")
    if value <= 0 or value >= 1:
        raise ValidationError(
            f"price must be between 0 and 1 exclusive (e.g. 0.65), got {value}",
            field="price",
        )
    return value


def validate_size(size: Any) -> Decimal:
    value = _to_decimal(size, "size")
    if value <= 0:
        raise ValidationError(f"size must be greater than 0, got {value}", field="size")
    return value


def compose_order(request: OrderRequest) -> dict[str, Any]:
    """Validate ``request`` and map it to the gateway wire payload.

    Raises:
        ValidationError: for the first field that fails validation.
    """
    wire: dict[str, Any] = {
        "tokenID": validate_token_id(request.token_id),
        "side": validate_side(request.side).value,
        "price": validate_price(request.price),
        "size": validate_size(request.size),
    }
    if request.expiration is not None:
        wire["expiration"] = request.expiration
    if request.nonce is not None:
        wire["nonce"] = request.nonce
    return wire
