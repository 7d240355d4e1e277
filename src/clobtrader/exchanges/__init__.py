"""Exchange gateway and signing layer."""

from .clob import ClobGateway
from .protocol import ExchangeGateway, OrderSigner
from .signing import DelegatedSigner, LocalAccountSigner

__all__ = [
    "ClobGateway",
    "ExchangeGateway",
    "OrderSigner",
    "DelegatedSigner",
    "LocalAccountSigner",
]
