"""Protocols for the exchange gateway and the order signer."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any, Protocol


class ExchangeGateway(Protocol):
    """Authenticated access to the CLOB exchange.

    Implementations classify failures as
    :class:`~clobtrader.errors.TransportError`,
    :class:`~clobtrader.errors.ExchangeRejectionError` or
    :class:`~clobtrader.errors.MalformedResponseError` and never retry.
    """

    async def submit(self, wire_order: Mapping[str, Any]) -> Mapping[str, Any]:
        """Sign and post an order.

        Args:
            wire_order: Payload built by ``compose_order``

        Returns:
            Raw exchange response carrying ``orderID`` and ``status``
        """
        ...

    async def cancel_one(self, order_id: str) -> Mapping[str, Any] | None:
        """Cancel a single order.

        Returns:
            Raw response with ``canceled`` / ``not_canceled``, or None
        """
        ...

    async def cancel_many(self, order_ids: Sequence[str]) -> Mapping[str, Any] | None:
        """Cancel several orders in one batched call."""
        ...

    async def list_open(self) -> list[Mapping[str, Any]]:
        """List open order records for the authenticated wallet."""
        ...

    async def get_one(self, order_id: str) -> Mapping[str, Any] | None:
        """Fetch an order record.

        Returns:
            The raw record, or None when the exchange has no such order
        """
        ...

    async def close(self) -> None:
        """Close connections (HTTP session, etc.)."""
        ...


class OrderSigner(Protocol):
    """Wallet abstraction that owns the signing key."""

    async def get_address(self) -> str:
        ...

    async def sign_typed_data(self, typed_data: dict[str, Any]) -> str:
        """Sign an EIP-712 payload and return the 0x-prefixed hex signature."""
        ...
