"""Tests for the trading client facade."""

import asyncio
from decimal import Decimal
from unittest.mock import AsyncMock

import pytest
from eth_account import Account

from clobtrader.auth import PENDING, CustodialKey, ExternalSigner, LocalCredentials, RemoteSigning
from clobtrader.client import TradingClient, create_trading_client
from clobtrader.errors import (
    ConfigurationError,
    ExchangeRejectionError,
    MalformedResponseError,
    TransportError,
    ValidationError,
)
from clobtrader.exchanges.clob import ClobGateway
from clobtrader.orders.models import CancelReport, OrderRequest, PlacedOrder
from clobtrader.settings import (
    BackendSettings,
    BuilderSettings,
    FrontendSettings,
    Settings,
    TradingSettings,
)


def _order(**overrides):
    fields = {"token_id": "T1", "side": "BUY", "price": 0.65, "size": 10}
    fields.update(overrides)
    return OrderRequest(**fields)


class TestConstruction:
    """Tests for client construction."""

    def test_custodial_mode(self, backend_settings, private_key, stub_gateway):
        """Test custodial mode construction."""
        client = TradingClient(backend_settings, gateway=stub_gateway)
        assert isinstance(client.auth_mode, CustodialKey)
        assert client.get_wallet_address() == Account.from_key(private_key).address
        assert client.gateway is stub_gateway

    def test_both_modes_rejected(self, private_key, make_signer, stub_gateway):
        """Test configuring both auth modes is rejected."""
        settings = TradingSettings(
            backend=BackendSettings(private_key=private_key),
            frontend=FrontendSettings(signer=make_signer()),
        )
        with pytest.raises(ConfigurationError):
            TradingClient(settings, gateway=stub_gateway)

    def test_no_mode_rejected(self, stub_gateway):
        """Test configuring no auth mode is rejected."""
        with pytest.raises(ConfigurationError):
            TradingClient(TradingSettings(), gateway=stub_gateway)

    def test_invalid_private_key(self, stub_gateway):
        """Test an invalid private key."""
        settings = TradingSettings(backend=BackendSettings(private_key="0xnot-a-key"))
        with pytest.raises(ConfigurationError, match="private key"):
            TradingClient(settings, gateway=stub_gateway)

    def test_signer_without_capabilities_rejected(self, stub_gateway):
        """Test a signer without capabilities is rejected."""
        settings = TradingSettings(frontend=FrontendSettings(signer=object()))
        with pytest.raises(ConfigurationError, match="Signer"):
            TradingClient(settings, gateway=stub_gateway)

    def test_builder_attribution_remote_wins(self, backend_settings, api_secret, stub_gateway):
        """Test a remote signing server wins over local credentials."""
        settings = backend_settings.model_copy(
            update={
                "builder": BuilderSettings(
                    key="k", secret=api_secret, passphrase="p", signing_server_url="https://sign.example.com"
                )
            }
        )
        client = TradingClient(settings, gateway=stub_gateway)
        assert client.builder_attribution == RemoteSigning("https://sign.example.com")

    def test_builder_attribution_local(self, backend_settings, builder_settings, api_secret, stub_gateway):
        """Test complete local builder credentials are used."""
        settings = backend_settings.model_copy(update={"builder": builder_settings})
        client = TradingClient(settings, gateway=stub_gateway)
        assert client.builder_attribution == LocalCredentials("builder_key", api_secret, "builder_pass")

    def test_default_gateway(self, backend_settings):
        """Test the default aiohttp gateway."""
        client = TradingClient(backend_settings.model_copy(update={"request_timeout": 5.0}))
        assert isinstance(client.gateway, ClobGateway)
        assert client.gateway.host == "https://clob.polymarket.com"
        assert client.gateway.chain_id == 137
        assert client.gateway.timeout.total == 5.0

    def test_create_trading_client_with_signer(self, api_credentials, make_signer, stub_gateway):
        """Test creating a client with a caller-supplied signer."""
        signer = make_signer()
        settings = Settings(trading=TradingSettings(api_credentials=api_credentials))
        client = create_trading_client(settings, signer=signer, gateway=stub_gateway)
        assert isinstance(client.auth_mode, ExternalSigner)
        assert client.auth_mode.signer is signer


class TestWalletAddress:
    """Tests for wallet address exposure in externally-signed mode."""

    @pytest.mark.asyncio
    async def test_pending_then_resolved(self, make_signer, signer_address, stub_gateway):
        """Test the address is pending then resolved."""
        signer = make_signer(hold=True)
        client = TradingClient(TradingSettings(frontend=FrontendSettings(signer=signer)), gateway=stub_gateway)

        await asyncio.sleep(0)
        assert client.get_wallet_address() is PENDING

        signer.release.set()
        assert await client.wallet_ready() == signer_address
        assert client.get_wallet_address() == signer_address
        assert signer.lookups == 1

    def test_pending_outside_event_loop(self, frontend_settings, stub_gateway):
        """Test the address is pending outside an event loop."""
        client = TradingClient(frontend_settings, gateway=stub_gateway)
        assert client.get_wallet_address() is PENDING

    @pytest.mark.asyncio
    async def test_lookup_failure(self, make_signer, stub_gateway):
        """Test a failed address lookup."""
        signer = make_signer(fail=RuntimeError("user rejected"))
        client = TradingClient(TradingSettings(frontend=FrontendSettings(signer=signer)), gateway=stub_gateway)

        with pytest.raises(ConfigurationError, match="user rejected"):
            await client.wallet_ready()


class TestPlaceOrder:
    """Tests for place_order."""

    @pytest.mark.asyncio
    async def test_place_order(self, backend_settings, stub_gateway):
        """Test placing an order."""
        client = TradingClient(backend_settings, gateway=stub_gateway)

        placed = await client.place_order(_order())

        assert placed == PlacedOrder(order_id="O1", status="matched")
        stub_gateway.submit.assert_awaited_once_with(
            {"tokenID": "T1", "side": "BUY", "price": Decimal("0.65"), "size": Decimal("10")}
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize("price", [0, -0.5, 1, 1.01, 100])
    async def test_price_out_of_range_never_reaches_gateway(self, backend_settings, stub_gateway, price):
        """Test an out-of-range price never reaches the gateway."""
        client = TradingClient(backend_settings, gateway=stub_gateway)

        with pytest.raises(ValidationError, match="Failed to place order: price") as exc_info:
            await client.place_order(_order(price=price))

        assert exc_info.value.field == "price"
        assert exc_info.value.operation == "place order"
        stub_gateway.submit.assert_not_called()

    @pytest.mark.asyncio
    async def test_invalid_expiration_is_validation_error(self, backend_settings):
        """Test that a bad expiration surfaces as a validation error, not a transport failure."""
        client = TradingClient(backend_settings)
        client.gateway._request = AsyncMock()

        with pytest.raises(ValidationError, match="Failed to place order: expiration") as exc_info:
            await client.place_order(_order(token_id="1234", expiration="tomorrow"))

        assert exc_info.value.field == "expiration"
        client.gateway._request.assert_not_called()

    @pytest.mark.asyncio
    async def test_transport_failure_wrapped(self, backend_settings, stub_gateway):
        """Test a transport failure is wrapped."""
        stub_gateway.submit = AsyncMock(side_effect=TransportError("connection reset"))
        client = TradingClient(backend_settings, gateway=stub_gateway)

        with pytest.raises(TransportError, match="Failed to place order: connection reset") as exc_info:
            await client.place_order(_order())

        assert isinstance(exc_info.value.__cause__, TransportError)

    @pytest.mark.asyncio
    async def test_rejection_keeps_details(self, backend_settings, stub_gateway):
        """Test a rejection keeps its details."""
        stub_gateway.submit = AsyncMock(
            side_effect=ExchangeRejectionError("invalid signature", status_code=400, payload={"error": "x"})
        )
        client = TradingClient(backend_settings, gateway=stub_gateway)

        with pytest.raises(ExchangeRejectionError) as exc_info:
            await client.place_order(_order())

        assert exc_info.value.status_code == 400
        assert exc_info.value.payload == {"error": "x"}
        assert str(exc_info.value) == "Failed to place order: invalid signature"

    @pytest.mark.asyncio
    async def test_unclassified_gateway_error_is_transport(self, backend_settings, stub_gateway):
        """Test an unclassified gateway error is a transport failure."""
        stub_gateway.submit = AsyncMock(side_effect=OSError("network unreachable"))
        client = TradingClient(backend_settings, gateway=stub_gateway)

        with pytest.raises(TransportError, match="Failed to place order: network unreachable"):
            await client.place_order(_order())

    @pytest.mark.asyncio
    async def test_rejected_response_body(self, backend_settings, stub_gateway):
        """Test a rejected placement body."""
        stub_gateway.submit = AsyncMock(return_value={"success": False, "errorMsg": "not enough balance"})
        client = TradingClient(backend_settings, gateway=stub_gateway)

        with pytest.raises(ExchangeRejectionError, match="not enough balance"):
            await client.place_order(_order())


class TestCancel:
    """Tests for cancel_order and cancel_orders."""

    @pytest.mark.asyncio
    async def test_cancel_order(self, backend_settings, stub_gateway):
        """Test cancelling an order."""
        client = TradingClient(backend_settings, gateway=stub_gateway)

        report = await client.cancel_order("O1")

        assert report == CancelReport(canceled=("O1",))
        stub_gateway.cancel_one.assert_awaited_once_with("O1")

    @pytest.mark.asyncio
    async def test_cancel_order_requires_id(self, backend_settings, stub_gateway):
        """Test cancel_order rejects an empty id."""
        client = TradingClient(backend_settings, gateway=stub_gateway)

        with pytest.raises(ValidationError, match="Failed to cancel order: orderId is required"):
            await client.cancel_order("")

        stub_gateway.cancel_one.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancel_unknown_order_reported_as_exchange_says(self, backend_settings, stub_gateway):
        """Test cancelling an unknown order keeps the exchange report."""
        stub_gateway.cancel_one = AsyncMock(
            return_value={"canceled": [], "not_canceled": {"O9": "order can't be found"}}
        )
        client = TradingClient(backend_settings, gateway=stub_gateway)

        report = await client.cancel_order("O9")

        assert report.canceled == ()
        assert report.not_canceled == {"O9": "order can't be found"}

    @pytest.mark.asyncio
    @pytest.mark.parametrize("order_ids", [[], None])
    async def test_cancel_orders_requires_ids(self, backend_settings, stub_gateway, order_ids):
        """Test cancel_orders rejects an empty id list."""
        client = TradingClient(backend_settings, gateway=stub_gateway)

        with pytest.raises(ValidationError, match="Failed to cancel orders"):
            await client.cancel_orders(order_ids)

        stub_gateway.cancel_many.assert_not_called()

    @pytest.mark.asyncio
    async def test_cancel_orders_single_batch(self, backend_settings, stub_gateway):
        """Test cancel_orders makes a single batched call."""
        client = TradingClient(backend_settings, gateway=stub_gateway)

        report = await client.cancel_orders(["O1", "O2"])

        assert report.canceled == ("O1", "O2")
        stub_gateway.cancel_many.assert_awaited_once_with(["O1", "O2"])

    @pytest.mark.asyncio
    async def test_cancel_orders_partial_failure_itemized(self, backend_settings, stub_gateway):
        """Test a partial batch failure is itemized."""
        stub_gateway.cancel_many = AsyncMock(
            return_value={"canceled": ["O1"], "not_canceled": {"O2": "order already matched"}}
        )
        client = TradingClient(backend_settings, gateway=stub_gateway)

        report = await client.cancel_orders(["O1", "O2"])

        assert report.canceled == ("O1",)
        assert report.not_canceled == {"O2": "order already matched"}
        assert not report.all_canceled

    @pytest.mark.asyncio
    async def test_cancel_orders_transport_error(self, backend_settings, stub_gateway):
        """Test a batch cancel transport failure."""
        stub_gateway.cancel_many = AsyncMock(side_effect=TransportError("timeout"))
        client = TradingClient(backend_settings, gateway=stub_gateway)

        with pytest.raises(TransportError, match="Failed to cancel orders: timeout"):
            await client.cancel_orders(["O1"])


class TestQueries:
    """Tests for get_open_orders and get_order."""

    @pytest.mark.asyncio
    async def test_get_open_orders(self, backend_settings, stub_gateway, sample_order_record):
        """Test listing open orders."""
        record = dict(sample_order_record)
        del record["status"]
        stub_gateway.list_open = AsyncMock(return_value=[record, sample_order_record])
        client = TradingClient(backend_settings, gateway=stub_gateway)

        orders = await client.get_open_orders()

        assert [o.status for o in orders] == ["open", "LIVE"]
        assert orders[0].size == Decimal("6.5")

    @pytest.mark.asyncio
    async def test_get_open_orders_address_ignored(self, backend_settings, stub_gateway):
        """Test the address argument is ignored."""
        client = TradingClient(backend_settings, gateway=stub_gateway)

        assert await client.get_open_orders("0xsomeoneelse") == []
        stub_gateway.list_open.assert_awaited_once_with()

    @pytest.mark.asyncio
    async def test_get_open_orders_malformed(self, backend_settings, stub_gateway, sample_order_record):
        """Test a malformed open-orders listing."""
        stub_gateway.list_open = AsyncMock(return_value=[dict(sample_order_record, original_size="??")])
        client = TradingClient(backend_settings, gateway=stub_gateway)

        with pytest.raises(MalformedResponseError, match="Failed to get open orders"):
            await client.get_open_orders()

    @pytest.mark.asyncio
    async def test_get_order(self, backend_settings, stub_gateway, sample_order_record):
        """Test getting an order."""
        record = dict(sample_order_record)
        del record["status"]
        stub_gateway.get_one = AsyncMock(return_value=record)
        client = TradingClient(backend_settings, gateway=stub_gateway)

        order = await client.get_order("0xabc123")

        assert order.order_id == "0xabc123"
        assert order.status == "unknown"
        stub_gateway.get_one.assert_awaited_once_with("0xabc123")

    @pytest.mark.asyncio
    async def test_get_order_not_found_is_none(self, backend_settings, stub_gateway):
        """Test a missing order returns None."""
        client = TradingClient(backend_settings, gateway=stub_gateway)
        assert await client.get_order("missing") is None

    @pytest.mark.asyncio
    async def test_get_order_transport_failure(self, backend_settings, stub_gateway):
        """Test a lookup transport failure."""
        stub_gateway.get_one = AsyncMock(side_effect=TransportError("connection refused"))
        client = TradingClient(backend_settings, gateway=stub_gateway)

        with pytest.raises(TransportError, match="Failed to get order: connection refused"):
            await client.get_order("O1")

    @pytest.mark.asyncio
    async def test_get_order_infinite_created_at_is_malformed(
        self, backend_settings, stub_gateway, sample_order_record
    ):
        """Test that a non-finite created_at is reported as a malformed response."""
        stub_gateway.get_one = AsyncMock(return_value=dict(sample_order_record, created_at=float("inf")))
        client = TradingClient(backend_settings, gateway=stub_gateway)

        with pytest.raises(MalformedResponseError, match="Failed to get order: .*created_at"):
            await client.get_order("O1")

    @pytest.mark.asyncio
    async def test_get_order_requires_id(self, backend_settings, stub_gateway):
        """Test get_order rejects an empty id."""
        client = TradingClient(backend_settings, gateway=stub_gateway)

        with pytest.raises(ValidationError):
            await client.get_order("")

        stub_gateway.get_one.assert_not_called()


class TestLifecycle:
    """Tests for closing the client."""

    @pytest.mark.asyncio
    async def test_context_manager_closes_gateway(self, backend_settings, stub_gateway):
        """Test the async context manager closes the gateway."""
        async with TradingClient(backend_settings, gateway=stub_gateway) as client:
            await client.get_open_orders()

        stub_gateway.close.assert_awaited_once()
