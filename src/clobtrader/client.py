"""Trading client: the public surface for placing and managing CLOB orders."""

from __future__ import annotations

import logging
from collections.abc import Iterator, Sequence
from contextlib import contextmanager
from typing import Any

import aiohttp

from .auth import (
    AuthMode,
    BuilderAttribution,
    CustodialKey,
    ExternalSigner,
    WalletIdentity,
    WalletPending,
    resolve_api_credentials,
    resolve_auth_mode,
    resolve_builder_attribution,
)
from .errors import MalformedResponseError, TradingError, TransportError, ValidationError
from .exchanges.clob import ClobGateway
from .exchanges.protocol import ExchangeGateway, OrderSigner
from .exchanges.signing import DelegatedSigner, LocalAccountSigner
from .orders.composer import compose_order
from .orders.models import CancelReport, Order, OrderRequest, PlacedOrder
from .orders.normalizer import (
    STATUS_LOOKUP_DEFAULT,
    STATUS_OPEN_DEFAULT,
    normalize_cancel_report,
    normalize_order,
    normalize_placement,
)
from .settings import FrontendSettings, Settings, TradingSettings

logger = logging.getLogger(__name__)


@contextmanager
def _operation(name: str) -> Iterator[None]:
    """Re-raise any failure as a classified error carrying the operation name."""
    try:
        yield
    except TradingError as exc:
        raise exc.with_context(name) from exc
    except Exception as exc:
        raise TransportError(f"Failed to {name}: {exc}", operation=name) from exc


def _require_order_id(order_id: Any) -> str:
    if not isinstance(order_id, str) or not order_id:
        raise ValidationError("orderId is required", field="order_id")
    return order_id


def build_signer(auth_mode: AuthMode) -> OrderSigner:
    if isinstance(auth_mode, CustodialKey):
        return LocalAccountSigner(auth_mode.private_key)
    if isinstance(auth_mode, ExternalSigner):
        return DelegatedSigner(auth_mode.signer)
    raise TypeError(f"Unknown auth mode: {auth_mode!r}")


class TradingClient:
    """Place, cancel and inspect limit orders on the CLOB.

    The auth mode is resolved once, here, from ``settings``; a missing or
    ambiguous configuration raises :class:`~clobtrader.errors.ConfigurationError`
    and no client is created.

    Every public coroutine is independent: concurrent calls on one client are
    not ordered, so await a cancel before placing its replacement. No timeout
    is applied beyond what the gateway is configured with.

    Example::

        client = TradingClient(settings.trading)
        placed = await client.place_order(
            OrderRequest(token_id="123...", side="BUY", price=0.65, size=10)
        )
    """

    def __init__(self, settings: TradingSettings, *, gateway: ExchangeGateway | None = None) -> None:
        self._settings = settings
        self._auth_mode = resolve_auth_mode(settings)
        self._builder = resolve_builder_attribution(settings.builder)
        self._signer = build_signer(self._auth_mode)

        if isinstance(self._auth_mode, CustodialKey):
            self._identity = WalletIdentity.resolved(self._signer.address)
            logger.info("Trading client in custodial mode for %s", self._identity.address)
        else:
            self._identity = WalletIdentity.from_lookup(self._signer.get_address)
            logger.info("Trading client in externally-signed mode; wallet address pending")

        if gateway is None:
            timeout = None
            if settings.request_timeout is not None:
                timeout = aiohttp.ClientTimeout(total=settings.request_timeout)
            gateway = ClobGateway(
                self._signer,
                self._identity,
                host=settings.host,
                chain_id=settings.chain_id,
                api_credentials=resolve_api_credentials(settings, self._auth_mode),
                builder=self._builder,
                timeout=timeout,
            )
        self._gateway = gateway

    @property
    def auth_mode(self) -> AuthMode:
        return self._auth_mode

    @property
    def builder_attribution(self) -> BuilderAttribution:
        return self._builder

    @property
    def gateway(self) -> ExchangeGateway:
        """The underlying gateway, for calls this client does not wrap."""
        return self._gateway

    async def place_order(self, request: OrderRequest) -> PlacedOrder:
        """Place a limit order.

        Raises:
            ValidationError: if the request is invalid; nothing is sent.
            TransportError, ExchangeRejectionError, MalformedResponseError:
                if the submission fails.
        """
        with _operation("place order"):
            wire = compose_order(request)
            logger.info(
                "Placing %s order for %s: %s @ %s", wire["side"], wire["tokenID"], wire["size"], wire["price"]
            )
            placed = normalize_placement(await self._gateway.submit(wire))
        logger.info("Order %s placed with status %s", placed.order_id, placed.status)
        return placed

    async def cancel_order(self, order_id: str) -> CancelReport:
        """Cancel an order.

        Cancelling an order that is already filled, cancelled or unknown is
        reported exactly as the exchange reports it.
        """
        with _operation("cancel order"):
            _require_order_id(order_id)
            report = normalize_cancel_report(await self._gateway.cancel_one(order_id), [order_id])
        logger.info("Cancel %s: canceled=%s not_canceled=%s", order_id, report.canceled, report.not_canceled)
        return report

    async def cancel_orders(self, order_ids: Sequence[str] | None) -> CancelReport:
        """Cancel several orders in a single batched call.

        A partial failure does not raise: the returned report lists the ids
        the exchange canceled and, per id, why the rest were not.
        """
        with _operation("cancel orders"):
            if not order_ids:
                raise ValidationError("orderIds array is required", field="order_ids")
            ids = [_require_order_id(order_id) for order_id in order_ids]
            report = normalize_cancel_report(await self._gateway.cancel_many(ids), ids)
        logger.info("Batch cancel of %d order(s): %d canceled", len(ids), len(report.canceled))
        return report

    async def get_open_orders(self, address: str | None = None) -> list[Order]:
        """List open orders of the authenticated wallet.

        ``address`` is accepted for compatibility but does not filter: the
        exchange always answers for the wallet the client authenticates as.
        Orders without a status are reported as ``"open"``.
        """
        if address is not None:
            logger.debug("get_open_orders ignores address %s; listing the authenticated wallet", address)
        with _operation("get open orders"):
            records = await self._gateway.list_open()
            if not isinstance(records, list):
                raise MalformedResponseError(f"Expected a list of orders, got {type(records).__name__}")
            return [normalize_order(record, default_status=STATUS_OPEN_DEFAULT) for record in records]

    async def get_order(self, order_id: str) -> Order | None:
        """Look up one order; None when the exchange has no such order.

        An order without a status is reported as ``"unknown"``.
        """
        with _operation("get order"):
            _require_order_id(order_id)
            record = await self._gateway.get_one(order_id)
            if not record:
                return None
            return normalize_order(record, default_status=STATUS_LOOKUP_DEFAULT)

    def get_wallet_address(self) -> str | WalletPending:
        """The wallet address, or ``PENDING`` while an external signer is being queried.

        Raises:
            ConfigurationError: if the signer's address lookup failed.
        """
        return self._identity.address

    async def wallet_ready(self) -> str:
        """Wait until the wallet address is known and return it."""
        return await self._identity.ready()

    async def close(self) -> None:
        await self._gateway.close()

    async def __aenter__(self) -> "TradingClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()


def create_trading_client(
    settings: Settings | TradingSettings,
    *,
    signer: Any = None,
    gateway: ExchangeGateway | None = None,
) -> TradingClient:
    """Create a trading client from settings.

    ``signer`` fills the ``frontend`` block, since signer objects cannot come
    from a config file.
    """
    if isinstance(settings, Settings):
        logger.debug("settings=%s", settings.redacted())
        trading = settings.trading
    else:
        trading = settings
    if signer is not None:
        trading = trading.model_copy(update={"frontend": FrontendSettings(signer=signer)})
    client = TradingClient(trading, gateway=gateway)
    logger.info("Initialized trading client for %s (chain %s)", trading.host, trading.chain_id)
    return client
