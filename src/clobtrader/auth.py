"""Auth mode and builder attribution resolution.

A client runs in exactly one of two modes, fixed at construction:

- custodial (``CustodialKey``): the client holds the wallet private key and
  signs orders itself; the wallet address is known immediately.
- externally signed (``ExternalSigner``): signing is delegated to a caller
  supplied signer; the wallet address is looked up from the signer once,
  asynchronously, and exposed through :class:`WalletIdentity`.

Builder attribution is resolved independently by
:func:`resolve_builder_attribution`.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Union

from .errors import ConfigurationError
from .settings import BuilderSettings, TradingSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CustodialKey:
    private_key: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class ExternalSigner:
    signer: Any


AuthMode = Union[CustodialKey, ExternalSigner]


@dataclass(frozen=True, slots=True)
class LocalCredentials:
    key: str
    secret: str = field(repr=False)
    passphrase: str = field(repr=False)


@dataclass(frozen=True, slots=True)
class RemoteSigning:
    signing_server_url: str


# ``None`` is the third variant: no builder attribution.
BuilderAttribution = Union[LocalCredentials, RemoteSigning, None]


def resolve_auth_mode(settings: TradingSettings) -> AuthMode:
    """Select the auth mode from the ``backend`` and ``frontend`` blocks.

    Raises:
        ConfigurationError: if neither or both blocks are configured.
    """
    private_key = None
    if settings.backend is not None:
        private_key = settings.backend.private_key.get_secret_value() or None
    signer = settings.frontend.signer if settings.frontend is not None else None

    if private_key and signer is not None:
        raise ConfigurationError(
            "Trading configuration is ambiguous: configure either 'backend' "
            "(private key) or 'frontend' (signer), not both."
        )
    if private_key:
        return CustodialKey(private_key=private_key)
    if signer is not None:
        return ExternalSigner(signer=signer)
    raise ConfigurationError(
        "Trading configuration must include either 'backend' or 'frontend' mode. "
        "For bots/servers use 'backend' with private_key. "
        "For apps that delegate signing use 'frontend' with a signer."
    )


def _secret(value: Any) -> str | None:
    if value is None:
        return None
    return value.get_secret_value() or None


def resolve_builder_attribution(builder: BuilderSettings | None) -> BuilderAttribution:
    """Pick the builder attribution path.

    Precedence: a remote signing server URL wins; otherwise complete local
    credentials (key, secret and passphrase); otherwise no attribution.
    """
    if builder is None:
        return None
    if builder.signing_server_url:
        return RemoteSigning(signing_server_url=builder.signing_server_url)

    key, secret, passphrase = _secret(builder.key), _secret(builder.secret), _secret(builder.passphrase)
    if key and secret and passphrase:
        return LocalCredentials(key=key, secret=secret, passphrase=passphrase)
    if key or secret or passphrase:
        logger.warning("Builder credentials are incomplete; orders will not carry builder attribution")
    return None


def resolve_api_credentials(settings: TradingSettings, auth_mode: AuthMode) -> LocalCredentials | None:
    """Credentials for authenticated CLOB calls.

    Explicit ``api_credentials`` are used when given. In custodial mode a
    complete local builder credential set doubles as the API credentials.
    """
    creds = settings.api_credentials
    if creds is not None:
        return LocalCredentials(
            key=creds.api_key.get_secret_value(),
            secret=creds.api_secret.get_secret_value(),
            passphrase=creds.passphrase.get_secret_value(),
        )
    if isinstance(auth_mode, CustodialKey):
        builder = resolve_builder_attribution(settings.builder)
        if isinstance(builder, LocalCredentials):
            return builder
    return None


class WalletPending(Enum):
    """Marker returned while the wallet address lookup is still running."""

    PENDING = "pending"


PENDING = WalletPending.PENDING


class WalletIdentity:
    """Wallet address of the active auth mode.

    Either resolved up front (custodial) or resolved once from an async lookup
    (external signer). :meth:`ready` awaits the lookup; :attr:`address` never
    blocks and returns :data:`PENDING` until the lookup has completed.
    """

    def __init__(
        self,
        address: str | None = None,
        lookup: Callable[[], Awaitable[str]] | None = None,
    ) -> None:
        if address is None and lookup is None:
            raise ValueError("WalletIdentity needs an address or a lookup")
        self._address = address
        self._lookup = lookup
        self._task: asyncio.Task[str] | None = None
        self._error: BaseException | None = None

    @classmethod
    def resolved(cls, address: str) -> "WalletIdentity":
        return cls(address=address)

    @classmethod
    def from_lookup(cls, lookup: Callable[[], Awaitable[str]]) -> "WalletIdentity":
        identity = cls(lookup=lookup)
        identity.start()
        return identity

    def start(self) -> None:
        """Start the lookup if an event loop is running; otherwise on first ``ready()``."""
        if self._address is not None or self._task is not None:
            return
        try:
            asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running event loop; wallet address lookup deferred")
            return
        self._ensure_task()

    def _ensure_task(self) -> asyncio.Task[str]:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self._resolve())
            self._task.add_done_callback(self._on_done)
        return self._task

    async def _resolve(self) -> str:
        assert self._lookup is not None
        try:
            address = await self._lookup()
        except Exception as exc:
            raise ConfigurationError(f"Signer address lookup failed: {exc}") from exc
        if not address:
            raise ConfigurationError("Signer returned an empty wallet address")
        self._address = str(address)
        logger.info("Resolved wallet address %s from signer", self._address)
        return self._address

    def _on_done(self, task: asyncio.Task[str]) -> None:
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            self._error = error
            logger.error("%s", error)

    @property
    def is_ready(self) -> bool:
        return self._address is not None

    @property
    def address(self) -> str | WalletPending:
        """The wallet address, or :data:`PENDING` while the lookup runs.

        Raises:
            ConfigurationError: if the lookup failed.
        """
        if self._address is not None:
            return self._address
        if self._error is not None:
            raise self._error
        return PENDING

    async def ready(self) -> str:
        """Wait for the wallet address, starting the lookup if needed."""
        if self._address is not None:
            return self._address
        if self._error is not None:
            raise self._error
        # shield so a cancelled caller does not cancel the shared lookup
        return await asyncio.shield(self._ensure_task())
