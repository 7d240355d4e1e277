"""clobtrader: order-lifecycle client for a CLOB exchange.

Typical startup::

    from clobtrader import configure_logging, create_trading_client, load_settings

    configure_logging("logs")
    client = create_trading_client(load_settings())
"""

from .auth import PENDING, CustodialKey, ExternalSigner, LocalCredentials, RemoteSigning
from .client import TradingClient, create_trading_client
from .config import load_settings
from .errors import (
    ConfigurationError,
    ExchangeRejectionError,
    MalformedResponseError,
    TradingError,
    TransportError,
    ValidationError,
)
from .logging import configure_logging
from .orders import CancelReport, Order, OrderRequest, OrderSide, PlacedOrder
from .settings import Settings, TradingSettings

__all__ = [
    "PENDING",
    "CustodialKey",
    "ExternalSigner",
    "LocalCredentials",
    "RemoteSigning",
    "TradingClient",
    "create_trading_client",
    "load_settings",
    "configure_logging",
    "ConfigurationError",
    "ExchangeRejectionError",
    "MalformedResponseError",
    "TradingError",
    "TransportError",
    "ValidationError",
    "CancelReport",
    "Order",
    "OrderRequest",
    "OrderSide",
    "PlacedOrder",
    "Settings",
    "TradingSettings",
]
