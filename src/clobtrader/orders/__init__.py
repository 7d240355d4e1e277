"""Order composition and response normalization."""

from .composer import compose_order
from .models import CancelReport, Order, OrderRequest, OrderSide, PlacedOrder
from .normalizer import (
    STATUS_LOOKUP_DEFAULT,
    STATUS_OPEN_DEFAULT,
    normalize_cancel_report,
    normalize_order,
    normalize_placement,
)

__all__ = [
    "compose_order",
    "CancelReport",
    "Order",
    "OrderRequest",
    "OrderSide",
    "PlacedOrder",
    "STATUS_LOOKUP_DEFAULT",
    "STATUS_OPEN_DEFAULT",
    "normalize_cancel_report",
    "normalize_order",
    "normalize_placement",
]
