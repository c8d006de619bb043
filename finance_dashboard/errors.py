"""Exception hierarchy for the finance dashboard."""

from __future__ import annotations

from typing import Optional


class FinanceDashboardError(Exception):
    """Base class for all errors raised by this package."""


class AggregatorError(FinanceDashboardError):
    """Any failure talking to the bank-data aggregator."""


class AuthError(AggregatorError):
    """Exchanging the secret pair for an access token failed."""


class RemoteError(AggregatorError):
    def __init__(self, status_code: int, body: str = "", message: Optional[str] = None) -> None:
        self.status_code = status_code
        self.body = body
        super().__init__(message or f"Aggregator responded with HTTP {status_code}: {body[:200]}")


class NotFoundError(RemoteError):
    def __init__(self, body: str = "", message: Optional[str] = None) -> None:
        super().__init__(404, body, message)


class RequestTimeoutError(AggregatorError, TimeoutError):
    """The aggregator did not answer within the configured bound."""


class StorageError(FinanceDashboardError):
    """The snapshot file could not be read or written."""


class MissingCredentialsError(FinanceDashboardError):
    def __init__(self, message: str = "secretId and secretKey are required") -> None:
        super().__init__(message)


class InvalidTransactionError(FinanceDashboardError):
    """A raw transaction could not be normalized."""
