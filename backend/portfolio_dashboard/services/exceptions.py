# backend/portfolio_dashboard/services/exceptions.py
"""
Service layer exceptions.

These exceptions carry NO HTTP knowledge; the application layer maps them to
responses. Valuation anomalies (missing prices, oversold positions, tail
reconciliation) are never raised: they are reported as warnings in the
result status. Exceptions are reserved for bad input and for market data
failures that a caller has to handle.

Exception Hierarchy:
    ServiceError (base)
    ├── ValidationError
    │   └── InvalidTransactionError
    ├── MarketDataError
    │   ├── ProviderUnavailableError
    │   ├── TickerNotFoundError
    │   └── RateLimitError
    └── PriceDataError

    CircuitBreakerOpen (from circuit_breaker module)
        - Raised when circuit breaker is open and blocking requests
"""

from datetime import date


class ServiceError(Exception):
    """
    Base exception for all service layer errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(self.message)

    def __str__(self) -> str:
        return self.message


# =============================================================================
# VALIDATION ERRORS
# =============================================================================


class ValidationError(ServiceError):
    """
    Raised when service input is invalid.

    Attributes:
        field: The field that failed validation (optional)
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        self.field = field
        super().__init__(message)


class InvalidTransactionError(ValidationError):
    """
    Raised when a transaction record is malformed.

    Examples:
    - negative quantity
    - BUY or SELL without a positive price
    - empty ticker

    Attributes:
        ticker: Ticker of the offending transaction
        trade_date: Date of the offending transaction
    """

    def __init__(
            self,
            reason: str,
            ticker: str | None = None,
            trade_date: date | None = None,
            field: str | None = None,
    ) -> None:
        self.ticker = ticker
        self.trade_date = trade_date
        where = ""
        if ticker:
            where = f" for {ticker}"
            if trade_date:
                where += f" on {trade_date.isoformat()}"
        super().__init__(f"Invalid transaction{where}: {reason}", field=field)


# =============================================================================
# MARKET DATA PROVIDER ERRORS
# =============================================================================


class MarketDataError(ServiceError):
    """
    Base exception for market data provider failures.

    Attributes:
        provider: Name of the provider that failed
    """

    def __init__(self, message: str, provider: str | None = None) -> None:
        self.provider = provider
        super().__init__(message)


class ProviderUnavailableError(MarketDataError):
    """
    Raised when a market data provider is temporarily unavailable.

    Examples:
    - Network timeout
    - Server errors (500, 502, 503)

    This is a retryable error.
    """

    def __init__(self, provider: str, reason: str) -> None:
        message = f"Provider '{provider}' is unavailable: {reason}"
        super().__init__(message, provider=provider)
        self.reason = reason


class TickerNotFoundError(MarketDataError):
    """
    Raised when the provider does not know a ticker.

    This is NOT a retryable error.
    """

    def __init__(self, ticker: str, provider: str) -> None:
        message = f"Ticker '{ticker}' not found by {provider}"
        super().__init__(message, provider=provider)
        self.ticker = ticker


class RateLimitError(MarketDataError):
    """
    Raised when the provider's rate limit has been exceeded.

    This is a retryable error (with backoff).

    Attributes:
        retry_after: Seconds to wait before retrying (if provided by API)
    """

    def __init__(self, provider: str, retry_after: int | None = None) -> None:
        message = f"Rate limit exceeded for provider '{provider}'"
        if retry_after:
            message += f" (retry after {retry_after}s)"
        super().__init__(message, provider=provider)
        self.retry_after = retry_after


# =============================================================================
# PRICE DATA ERRORS
# =============================================================================


class PriceDataError(ServiceError):
    """
    Raised when stored daily close data cannot be loaded.

    Examples:
    - price directory does not exist
    - a price file cannot be read

    Attributes:
        source: File path or provider the data was loaded from
    """

    def __init__(self, message: str, source: str | None = None) -> None:
        self.source = source
        super().__init__(message)


# =============================================================================
# CIRCUIT BREAKER (re-exported for convenience)
# =============================================================================

from portfolio_dashboard.services.circuit_breaker import CircuitBreakerOpen  # noqa: E402

__all__ = [
    # Base
    "ServiceError",
    # Validation
    "ValidationError",
    "InvalidTransactionError",
    # Market Data
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
    # Price data
    "PriceDataError",
    # Circuit Breaker
    "CircuitBreakerOpen",
]
