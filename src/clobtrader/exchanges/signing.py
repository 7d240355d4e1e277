"""Order signing payloads and request authentication headers."""

from __future__ import annotations

import base64
import hashlib
import hmac
import inspect
import logging
import secrets
from collections.abc import Mapping
from decimal import ROUND_DOWN, Decimal
from typing import Any

from eth_account import Account

from ..errors import ConfigurationError, ValidationError
from ..orders.models import OrderSide

logger = logging.getLogger(__name__)

ZERO_ADDRESS = "0x0000000000000000000000000000000000000000"
SIGNATURE_TYPE_EOA = 0
COLLATERAL_DECIMALS = 6

EXCHANGE_CONTRACTS: dict[int, str] = {
    137: "0x4bFb41d5B3570DeFd03C39a9A4D8dE6Bd8B8982E",
    80002: "0xdFE02Eb6733538f8Ea35D585af8DE5958AD99E40",
}

EIP712_DOMAIN_TYPE = [
    {"name": "name", "type": "string"},
    {"name": "version", "type": "string"},
    {"name": "chainId", "type": "uint256"},
    {"name": "verifyingContract", "type": "address"},
]

ORDER_TYPE = [
    {"name": "salt", "type": "uint256"},
    {"name": "maker", "type": "address"},
    {"name": "signer", "type": "address"},
    {"name": "taker", "type": "address"},
    {"name": "tokenId", "type": "uint256"},
    {"name": "makerAmount", "type": "uint256"},
    {"name": "takerAmount", "type": "uint256"},
    {"name": "expiration", "type": "uint256"},
    {"name": "nonce", "type": "uint256"},
    {"name": "feeRateBps", "type": "uint256"},
    {"name": "side", "type": "uint8"},
    {"name": "signatureType", "type": "uint8"},
]


async def maybe_await(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def signature_to_hex(signature: Any) -> str:
    """Normalize the signature shapes wallets return to a 0x-prefixed hex string."""
    signature = getattr(signature, "signature", signature)
    if isinstance(signature, (bytes, bytearray)):
        return "0x" + bytes(signature).hex()
    text = str(signature)
    return text if text.startswith("0x") else "0x" + text


class LocalAccountSigner:
    """Signer backed by a private key held in process (custodial mode)."""

    def __init__(self, private_key: str):
        try:
            self._account = Account.from_key(private_key)
        except Exception as exc:
            raise ConfigurationError(f"Invalid backend private key: {exc}") from exc

    @property
    def address(self) -> str:
        return self._account.address

    async def get_address(self) -> str:
        return self._account.address

    async def sign_typed_data(self, typed_data: dict[str, Any]) -> str:
        signed = self._account.sign_typed_data(full_message=typed_data)
        return signature_to_hex(signed.signature)


class DelegatedSigner:
    """Adapter over a caller supplied signer (externally-signed mode).

    The wrapped object must expose ``get_address()`` (or an ``address``
    attribute) and ``sign_typed_data(typed_data)``; either may be sync or async.
    """

    def __init__(self, handle: Any):
        if not callable(getattr(handle, "get_address", None)) and not isinstance(
            getattr(handle, "address", None), str
        ):
            raise ConfigurationError("Signer must provide get_address() or an address attribute")
        if not callable(getattr(handle, "sign_typed_data", None)):
            raise ConfigurationError("Signer must provide sign_typed_data()")
        self.handle = handle

    async def get_address(self) -> str:
        lookup = getattr(self.handle, "get_address", None)
        if callable(lookup):
            return await maybe_await(lookup())
        return self.handle.address

    async def sign_typed_data(self, typed_data: dict[str, Any]) -> str:
        signature = await maybe_await(self.handle.sign_typed_data(typed_data))
        return signature_to_hex(signature)


def parse_uint(raw: Any, field: str) -> int:
    """Parse an unsigned order field given as an int or a string of digits; None is 0."""
    if raw is None:
        return 0
    if isinstance(raw, int) and not isinstance(raw, bool) and raw >= 0:
        return raw
    if isinstance(raw, str) and raw.isdigit():
        return int(raw)
    raise ValidationError(f"{field} must be a non-negative integer, got {raw!r}", field=field)


def to_base_units(amount: Decimal) -> int:
    scaled = amount * (Decimal(10) ** COLLATERAL_DECIMALS)
    return int(scaled.to_integral_value(rounding=ROUND_DOWN))


def order_amounts(side: OrderSide, price: Decimal, size: Decimal) -> tuple[int, int]:
    """Return (makerAmount, takerAmount) in base units.

    A buyer gives collateral (price * size) for shares; a seller the reverse.
    """
    notional = to_base_units(price * size)
    shares = to_base_units(size)
    if side is OrderSide.BUY:
        return notional, shares
    return shares, notional


def build_order_message(
    wire_order: Mapping[str, Any],
    *,
    maker: str,
    salt: int | None = None,
    fee_rate_bps: int = 0,
) -> dict[str, Any]:
    """Build the order struct for a composed wire order.

    Absent ``expiration`` and ``nonce`` default to 0 (no expiry, first nonce).
    """
    token_id = str(wire_order["tokenID"])
    if not token_id.isdigit():
        raise ValidationError(f"tokenId must be a decimal token id to be signed, got {token_id!r}", field="token_id")

    side = OrderSide(wire_order["side"])
    maker_amount, taker_amount = order_amounts(side, Decimal(wire_order["price"]), Decimal(wire_order["size"]))
    if maker_amount <= 0 or taker_amount <= 0:
        raise ValidationError("order is too small to be represented on the exchange", field="size")

    return {
        "salt": salt if salt is not None else secrets.randbelow(2**53),
        "maker": maker,
        "signer": maker,
        "taker": ZERO_ADDRESS,
        "tokenId": int(token_id),
        "makerAmount": maker_amount,
        "takerAmount": taker_amount,
        "expiration": parse_uint(wire_order.get("expiration"), "expiration"),
        "nonce": parse_uint(wire_order.get("nonce"), "nonce"),
        "feeRateBps": fee_rate_bps,
        "side": side.wire_code,
        "signatureType": SIGNATURE_TYPE_EOA,
    }


def build_typed_data(message: Mapping[str, Any], chain_id: int) -> dict[str, Any]:
    contract = EXCHANGE_CONTRACTS.get(chain_id)
    if contract is None:
        supported = ", ".join(str(c) for c in EXCHANGE_CONTRACTS)
        raise ConfigurationError(f"Unsupported chain id {chain_id}. Supported chain ids: {supported}")
    return {
        "types": {"EIP712Domain": EIP712_DOMAIN_TYPE, "Order": ORDER_TYPE},
        "primaryType": "Order",
        "domain": {
            "name": "Polymarket CTF Exchange",
            "version": "1",
            "chainId": chain_id,
            "verifyingContract": contract,
        },
        "message": dict(message),
    }


def signed_order_payload(message: Mapping[str, Any], signature: str) -> dict[str, Any]:
    """JSON body shape of a signed order (amounts as strings, side as text)."""
    return {
        "salt": message["salt"],
        "maker": message["maker"],
        "signer": message["signer"],
        "taker": message["taker"],
        "tokenId": str(message["tokenId"]),
        "makerAmount": str(message["makerAmount"]),
        "takerAmount": str(message["takerAmount"]),
        "expiration": str(message["expiration"]),
        "nonce": str(message["nonce"]),
        "feeRateBps": str(message["feeRateBps"]),
        "side": OrderSide.BUY.value if message["side"] == 0 else OrderSide.SELL.value,
        "signatureType": message["signatureType"],
        "signature": signature,
    }


def build_hmac_signature(secret: str, timestamp: int, method: str, path: str, body: str | None = None) -> str:
    """HMAC-SHA256 over ``timestamp + method + path + body`` with a base64 secret."""
    message = f"{timestamp}{method}{path}"
    if body:
        message += body.replace("'", '"')
    try:
        key = base64.urlsafe_b64decode(secret)
    except (ValueError, TypeError) as exc:
        raise ConfigurationError("API secret must be base64 encoded") from exc
    digest = hmac.new(key, message.encode(), hashlib.sha256).digest()
    return base64.urlsafe_b64encode(digest).decode()


def l2_headers(
    address: str,
    key: str,
    secret: str,
    passphrase: str,
    *,
    timestamp: int,
    method: str,
    path: str,
    body: str | None = None,
) -> dict[str, str]:
    return {
        "POLY_ADDRESS": address,
        "POLY_SIGNATURE": build_hmac_signature(secret, timestamp, method, path, body),
        "POLY_TIMESTAMP": str(timestamp),
        "POLY_API_KEY": key,
        "POLY_PASSPHRASE": passphrase,
    }


def builder_headers(
    key: str,
    secret: str,
    passphrase: str,
    *,
    timestamp: int,
    method: str,
    path: str,
    body: str | None = None,
) -> dict[str, str]:
    return {
        "POLY_BUILDER_API_KEY": key,
        "POLY_BUILDER_PASSPHRASE": passphrase,
        "POLY_BUILDER_SIGNATURE": build_hmac_signature(secret, timestamp, method, path, body),
        "POLY_BUILDER_TIMESTAMP": str(timestamp),
    }
