# backend/portfolio_dashboard/services/market_data/base.py
"""
Abstract interface for market data providers.

A provider answers two questions for the valuation core:
- get_snapshot: what is a ticker worth right now (spot price + timestamp)
- get_daily_closes: what were its daily closes over a window

The base class carries the retry policy so every provider backs off the
same way on transient failures.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Callable, TypeVar

from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception_type,
    before_sleep_log,
)

from portfolio_dashboard.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


# =============================================================================
# DATA CLASSES - PRICES
# =============================================================================

@dataclass(frozen=True)
class DailyClose:
    """
    Closing price of one ticker on one calendar day.

    Attributes:
        date: Calendar date
        close: Closing price (always positive)
    """

    date: date
    close: Decimal

    def __post_init__(self) -> None:
        if self.close <= 0:
            raise ValueError(f"Close must be positive, got {self.close}")


@dataclass(frozen=True)
class DateRange:
    """Inclusive date range of available history."""

    start: date
    end: date

    def contains(self, day: date) -> bool:
        return self.start <= day <= self.end


@dataclass(frozen=True)
class SpotSnapshot:
    """
    Most recent known price of a ticker.

    Attributes:
        price: Last traded/closing price (positive)
        as_of: When the price was observed (timezone-aware)
    """

    price: Decimal
    as_of: datetime


@dataclass
class BatchPricesResult:
    """
    Result of fetching daily closes for several tickers.

    Attributes:
        prices: ticker -> closes for tickers that succeeded
        errors: ticker -> error message for tickers that failed
    """

    prices: dict[str, list[DailyClose]] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    @property
    def success_count(self) -> int:
        return len(self.prices)

    @property
    def failure_count(self) -> int:
        return len(self.errors)

    @property
    def all_successful(self) -> bool:
        return not self.errors


# =============================================================================
# ABSTRACT BASE CLASS
# =============================================================================

class MarketDataProvider(ABC):
    """
    Abstract base class for market data providers.

    Retry Behavior:
        `_execute_with_retry` retries with exponential backoff. Subclasses
        tune it through class attributes:

        - MAX_RETRY_ATTEMPTS: Total attempts (default: 3)
        - RETRY_MIN_WAIT: Minimum wait in seconds (default: 1)
        - RETRY_MAX_WAIT: Maximum wait in seconds (default: 10)
        - RETRY_MULTIPLIER: Exponential multiplier (default: 1)

    Retryable Exceptions:
        - ProviderUnavailableError: Network issues, timeouts, server errors
        - RateLimitError: API rate limit exceeded

    Non-Retryable Exceptions:
        - TickerNotFoundError: the ticker does not exist at the provider
    """

    MAX_RETRY_ATTEMPTS: int = 3
    RETRY_MIN_WAIT: int = 1
    RETRY_MAX_WAIT: int = 10
    RETRY_MULTIPLIER: int = 1

    @property
    @abstractmethod
    def name(self) -> str:
        """Provider identifier used in logs and errors (e.g. "yahoo")."""

    @abstractmethod
    def get_snapshot(self, ticker: str) -> SpotSnapshot | None:
        """
        Fetch the latest price of a ticker.

        Returns:
            SpotSnapshot, or None when the provider has no recent price

        Raises:
            TickerNotFoundError: Ticker unknown to the provider
            ProviderUnavailableError: Network or API error (retryable)
            RateLimitError: Rate limit exceeded (retryable)
        """

    @abstractmethod
    def get_daily_closes(
            self,
            ticker: str,
            start_date: date,
            end_date: date,
    ) -> list[DailyClose]:
        """
        Fetch daily closes for trading days in [start_date, end_date].

        Returns:
            Closes sorted by date (no forward fill)

        Raises:
            TickerNotFoundError: Ticker unknown to the provider
            ProviderUnavailableError: Network or API error (retryable)
            RateLimitError: Rate limit exceeded (retryable)
        """

    def get_daily_closes_batch(
            self,
            tickers: list[str],
            start_date: date,
            end_date: date,
    ) -> BatchPricesResult:
        """
        Fetch daily closes for several tickers.

        Default implementation calls get_daily_closes() per ticker and
        collects failures instead of raising.
        """
        result = BatchPricesResult()

        for ticker in tickers:
            key = ticker.upper()
            try:
                result.prices[key] = self.get_daily_closes(key, start_date, end_date)
            except Exception as e:
                logger.error(f"Failed to fetch daily closes for {key}: {e}")
                result.errors[key] = str(e)

        return result

    # =========================================================================
    # RETRY HELPER METHOD
    # =========================================================================

    def _execute_with_retry(
            self,
            func: Callable[..., T],
            *args: Any,
            **kwargs: Any,
    ) -> T:
        """
        Execute a function, retrying transient provider failures.

        Raises:
            The last exception if all retries fail
        """

        @retry(
            stop=stop_after_attempt(self.MAX_RETRY_ATTEMPTS),
            wait=wait_exponential(
                multiplier=self.RETRY_MULTIPLIER,
                min=self.RETRY_MIN_WAIT,
                max=self.RETRY_MAX_WAIT,
            ),
            retry=retry_if_exception_type((ProviderUnavailableError, RateLimitError)),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        def _inner() -> T:
            return func(*args, **kwargs)

        return _inner()
