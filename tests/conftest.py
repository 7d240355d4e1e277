"""Pytest configuration and fixtures."""

import asyncio
import base64
from unittest.mock import AsyncMock

import pytest

from clobtrader.settings import (
    ApiCredentials,
    BackendSettings,
    BuilderSettings,
    FrontendSettings,
    TradingSettings,
)

TEST_PRIVATE_KEY = "0x4c0883a69102937d6231471b5dbb6204fe5129617082792ae468d01a3f362318"
SIGNER_ADDRESS = "0x1111111111111111111111111111111111111111"


class FakeSigner:
    """Externally supplied signer whose address lookup can be held open."""

    def __init__(self, address=SIGNER_ADDRESS, *, hold=False, fail=None):
        self.address_to_return = address
        self.release = asyncio.Event() if hold else None
        self.fail = fail
        self.lookups = 0
        self.signed = []

    async def get_address(self):
        self.lookups += 1
        if self.release is not None:
            await self.release.wait()
        if self.fail is not None:
            raise self.fail
        return self.address_to_return

    async def sign_typed_data(self, typed_data):
        self.signed.append(typed_data)
        return "0x" + "ab" * 65


@pytest.fixture
def private_key():
    """Test wallet private key."""
    return TEST_PRIVATE_KEY


@pytest.fixture
def api_secret():
    """Base64 encoded API secret."""
    return base64.urlsafe_b64encode(b"test_api_secret_789012").decode()


@pytest.fixture
def api_credentials(api_secret):
    return ApiCredentials(api_key="test_api_key_123456", api_secret=api_secret, passphrase="test_passphrase")


@pytest.fixture
def backend_settings(private_key, api_credentials):
    """Custodial-mode trading settings."""
    return TradingSettings(
        backend=BackendSettings(private_key=private_key),
        api_credentials=api_credentials,
    )


@pytest.fixture
def frontend_settings(api_credentials):
    """Externally-signed trading settings with a fake signer."""
    return TradingSettings(
        frontend=FrontendSettings(signer=FakeSigner()),
        api_credentials=api_credentials,
    )


@pytest.fixture
def builder_settings(api_secret):
    return BuilderSettings(key="builder_key", secret=api_secret, passphrase="builder_pass")


@pytest.fixture
def stub_gateway():
    """Gateway stub recording every call."""
    gateway = AsyncMock()
    gateway.submit = AsyncMock(return_value={"orderID": "O1", "status": "matched"})
    gateway.cancel_one = AsyncMock(return_value={"canceled": ["O1"], "not_canceled": {}})
    gateway.cancel_many = AsyncMock(return_value={"canceled": ["O1", "O2"], "not_canceled": {}})
    gateway.list_open = AsyncMock(return_value=[])
    gateway.get_one = AsyncMock(return_value=None)
    gateway.close = AsyncMock(return_value=None)
    return gateway


@pytest.fixture
def sample_order_record():
    """Sample order record as returned by the exchange."""
    return {
        "id": "0xabc123",
        "asset_id": "71321045679252212594626385532706912750332728571942532289631379312455583992563",
        "side": "BUY",
        "price": "0.65",
        "size_matched": "3.5",
        "original_size": "10",
        "status": "LIVE",
        "created_at": 1700000000,
        "outcome": "Yes",
    }


@pytest.fixture
def make_signer():
    """Factory for fake external signers."""
    return FakeSigner


@pytest.fixture
def signer_address():
    return SIGNER_ADDRESS
