"""Error taxonomy for the order-lifecycle layer."""

from __future__ import annotations

from typing import Any


class TradingError(Exception):
    """Base class for every error raised by clobtrader."""

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.operation = operation

    def with_context(self, operation: str) -> "TradingError":
        """Return a copy of this error prefixed with the failed operation.

        The class and any extra attributes are preserved so callers can keep
        matching on the error kind after the facade adds context.
        """
        wrapped = self.__class__.__new__(self.__class__)
        wrapped.__dict__.update(self.__dict__)
        Exception.__init__(wrapped, f"Failed to {operation}: {self}")
        wrapped.operation = operation
        return wrapped


class ConfigurationError(TradingError):
    """Raised when the auth configuration is missing or ambiguous."""


class ValidationError(TradingError):
    """Raised when caller input is rejected before any network call."""

    def __init__(self, message: str, *, field: str | None = None, operation: str | None = None) -> None:
        super().__init__(message, operation=operation)
        self.field = field


class TransportError(TradingError):
    """Raised when the exchange could not be reached."""


class ExchangeRejectionError(TradingError):
    """Raised when the exchange received the request and refused it."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        payload: Any = None,
        operation: str | None = None,
    ) -> None:
        super().__init__(message, operation=operation)
        self.status_code = status_code
        self.payload = payload


class MalformedResponseError(TradingError):
    """Raised when an exchange response cannot be parsed."""
