"""Polymarket CLOB REST gateway."""

from __future__ import annotations

import asyncio
import json
import logging
import time
from collections.abc import Mapping, Sequence
from typing import Any

import aiohttp

from ..auth import BuilderAttribution, LocalCredentials, RemoteSigning, WalletIdentity
from ..errors import (
    ConfigurationError,
    ExchangeRejectionError,
    MalformedResponseError,
    TransportError,
)
from ..settings import DEFAULT_HOST, POLYGON_CHAIN_ID
from .protocol import OrderSigner
from .signing import (
    build_order_message,
    build_typed_data,
    builder_headers,
    l2_headers,
    signed_order_payload,
)

logger = logging.getLogger(__name__)

USER_AGENT = "clobtrader/1.0"

POST_ORDER = "/order"
CANCEL_ORDER = "/order"
CANCEL_ORDERS = "/orders"
OPEN_ORDERS = "/data/orders"
GET_ORDER = "/data/order/"

INITIAL_CURSOR = "MA=="
END_CURSOR = "LTE="


class ClobGateway:
    """Gateway for the CLOB REST API.

    Orders are signed by ``signer``; every call carries L2 HMAC headers built
    from ``api_credentials``. Builder attribution headers are attached to order
    submissions, computed locally or fetched from the remote signing server.
    """

    def __init__(
        self,
        signer: OrderSigner,
        identity: WalletIdentity,
        *,
        host: str = DEFAULT_HOST,
        chain_id: int = POLYGON_CHAIN_ID,
        api_credentials: LocalCredentials | None = None,
        builder: BuilderAttribution = None,
        timeout: aiohttp.ClientTimeout | None = None,
        order_type: str = "GTC",
    ):
        self.host = host.rstrip("/")
        self.chain_id = chain_id
        self.signer = signer
        self.identity = identity
        self.api_credentials = api_credentials
        self.builder = builder
        self.timeout = timeout
        self.order_type = order_type
        self.session: aiohttp.ClientSession | None = None

        if api_credentials is None:
            logger.warning("No API credentials configured; authenticated CLOB calls will fail")

    async def _ensure_session(self) -> aiohttp.ClientSession:
        if self.session is None:
            self.session = aiohttp.ClientSession(timeout=self.timeout or aiohttp.ClientTimeout())
        return self.session

    async def _auth_headers(self, method: str, path: str, body: str | None) -> dict[str, str]:
        creds = self.api_credentials
        if creds is None:
            raise ConfigurationError("API credentials are required for authenticated CLOB calls")
        address = await self.identity.ready()
        return l2_headers(
            address,
            creds.key,
            creds.secret,
            creds.passphrase,
            timestamp=int(time.time()),
            method=method,
            path=path,
            body=body,
        )

    async def _builder_headers(self, method: str, path: str, body: str | None) -> dict[str, str]:
        builder = self.builder
        if isinstance(builder, LocalCredentials):
            return builder_headers(
                builder.key,
                builder.secret,
                builder.passphrase,
                timestamp=int(time.time()),
                method=method,
                path=path,
                body=body,
            )
        if isinstance(builder, RemoteSigning):
            return await self._remote_builder_headers(builder.signing_server_url, method, path, body)
        return {}

    async def _remote_builder_headers(
        self, url: str, method: str, path: str, body: str | None
    ) -> dict[str, str]:
        session = await self._ensure_session()
        request = json.dumps({"method": method, "path": path, "body": body or ""})
        try:
            async with session.request(
                "POST", url, data=request, headers={"Content-Type": "application/json"}
            ) as resp:
                status = resp.status
                text = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(f"Builder signing server unreachable: {exc}") from exc

        if status != 200:
            raise TransportError(f"Builder signing server returned HTTP {status}")
        try:
            headers = json.loads(text)
        except json.JSONDecodeError as exc:
            raise MalformedResponseError("Builder signing server returned invalid JSON") from exc
        if not isinstance(headers, dict):
            raise MalformedResponseError("Builder signing server returned a non-object payload")
        return {str(k): str(v) for k, v in headers.items()}

    async def _request(
        self,
        method: str,
        path: str,
        *,
        body: Any = None,
        params: dict[str, str] | None = None,
        attribute: bool = False,
        allow_not_found: bool = False,
    ) -> Any:
        """Perform an authenticated request and classify the outcome."""
        payload = json.dumps(body, separators=(",", ":")) if body is not None else None
        headers = {"Content-Type": "application/json", "User-Agent": USER_AGENT}
        headers.update(await self._auth_headers(method, path, payload))
        if attribute:
            headers.update(await self._builder_headers(method, path, payload))

        session = await self._ensure_session()
        url = f"{self.host}{path}"
        logger.debug("%s %s", method, path)
        try:
            async with session.request(method, url, data=payload, params=params, headers=headers) as resp:
                status = resp.status
                text = await resp.text()
        except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc

        if status == 404 and allow_not_found:
            return None

        data = None
        if text:
            try:
                data = json.loads(text)
            except json.JSONDecodeError as exc:
                if status < 400:
                    raise MalformedResponseError(f"{method} {path} returned invalid JSON") from exc
                data = text

        if status >= 500:
            raise TransportError(f"{method} {path} failed: HTTP {status}")
        if status >= 400:
            reason = data
            if isinstance(data, dict):
                reason = data.get("error") or data.get("errorMsg") or data
            raise ExchangeRejectionError(
                f"{method} {path} rejected with HTTP {status}: {reason}",
                status_code=status,
                payload=data,
            )
        return data

    async def submit(self, wire_order: Mapping[str, Any]) -> Mapping[str, Any]:
        """Sign and post an order."""
        maker = await self.identity.ready()
        message = build_order_message(wire_order, maker=maker)
        signature = await self.signer.sign_typed_data(build_typed_data(message, self.chain_id))

        creds = self.api_credentials
        body = {
            "order": signed_order_payload(message, signature),
            "owner": creds.key if creds else "",
            "orderType": self.order_type,
        }
        data = await self._request("POST", POST_ORDER, body=body, attribute=True)
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Unexpected order response: {data!r}")
        return data

    async def cancel_one(self, order_id: str) -> Mapping[str, Any] | None:
        """Cancel a single order."""
        return await self._request("DELETE", CANCEL_ORDER, body={"orderID": order_id})

    async def cancel_many(self, order_ids: Sequence[str]) -> Mapping[str, Any] | None:
        """Cancel several orders in one call."""
        return await self._request("DELETE", CANCEL_ORDERS, body=list(order_ids))

    async def list_open(self) -> list[Mapping[str, Any]]:
        """Fetch all open orders, following the pagination cursor."""
        results: list[Mapping[str, Any]] = []
        cursor = INITIAL_CURSOR
        while cursor != END_CURSOR:
            data = await self._request("GET", OPEN_ORDERS, params={"next_cursor": cursor})
            if isinstance(data, list):
                results.extend(data)
                break
            if not isinstance(data, dict) or not isinstance(data.get("data", []), list):
                raise MalformedResponseError(f"Unexpected open orders response: {data!r}")
            results.extend(data.get("data", []))
            cursor = data.get("next_cursor") or END_CURSOR
        return results

    async def get_one(self, order_id: str) -> Mapping[str, Any] | None:
        """Fetch an order, returning None when the exchange does not know it."""
        data = await self._request("GET", f"{GET_ORDER}{order_id}", allow_not_found=True)
        if not data:
            return None
        if not isinstance(data, dict):
            raise MalformedResponseError(f"Unexpected order response: {data!r}")
        return data

    async def close(self) -> None:
        """Close connections."""
        if self.session:
            await self.session.close()
            self.session = None
