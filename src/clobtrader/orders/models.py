"""Domain types exchanged with callers of the trading client."""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from enum import Enum
from typing import Any


class OrderSide(Enum):
    """Order side."""

    BUY = "BUY"
    SELL = "SELL"

    @property
    def wire_code(self) -> int:
        """Numeric side used in the signed order struct (BUY=0, SELL=1)."""
        return 0 if self is OrderSide.BUY else 1


@dataclass(frozen=True, slots=True)
class OrderRequest:
    """A limit order as the caller describes it.

    ``price`` is the probability price of the outcome token, strictly between
    0 and 1. ``expiration`` (epoch seconds) and ``nonce`` are optional and are
    left to the exchange defaults when omitted.
    """

    token_id: str
    side: OrderSide | str
    price: Decimal | float | str
    size: Decimal | float | str
    expiration: int | None = None
    nonce: int | None = None


@dataclass(frozen=True, slots=True)
class Order:
    """Canonical view of an exchange order record.

    ``size`` is the remaining unfilled quantity. ``timestamp`` is the creation
    time in epoch seconds as reported by the exchange; when the exchange omits
    it the time of normalization is used instead and ``timestamp_estimated``
    is set, so it should not be relied on for ordering.
    """

    order_id: str
    token_id: str
    side: OrderSide
    price: Decimal
    original_size: Decimal
    size: Decimal
    status: str
    timestamp: int
    raw: dict[str, Any] = field(repr=False, compare=False)
    timestamp_estimated: bool = False

    @property
    def matched_size(self) -> Decimal:
        return self.original_size - self.size


@dataclass(frozen=True, slots=True)
class PlacedOrder:
    order_id: str
    status: str


@dataclass(frozen=True, slots=True)
class CancelReport:
    """Outcome of a cancel call as itemized by the exchange.

    ``not_canceled`` maps order ids to the reason the exchange gave.
    """

    canceled: tuple[str, ...] = ()
    not_canceled: dict[str, str] = field(default_factory=dict)

    @property
    def all_canceled(self) -> bool:
        return not self.not_canceled
