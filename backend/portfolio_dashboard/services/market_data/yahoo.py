# backend/portfolio_dashboard/services/market_data/yahoo.py
"""
Yahoo Finance market data provider implementation.

Implements MarketDataProvider with the yfinance library:
- spot snapshots from the most recent daily bar of the last few sessions
- daily closes from unadjusted daily history
- Yahoo errors mapped onto the service exception hierarchy
- retries inherited from the base class, guarded by a circuit breaker

Limitations:
- Rate limits exist but are not documented
- Quotes may be delayed 15-20 minutes
"""

import logging
import math
from datetime import date, datetime, time, timedelta, timezone
from decimal import Decimal
from typing import Any

import yfinance as yf

from portfolio_dashboard.services.circuit_breaker import CircuitBreaker
from portfolio_dashboard.services.constants import (
    CIRCUIT_BREAKER_FAILURE_THRESHOLD,
    CIRCUIT_BREAKER_FAILURE_WINDOW,
    CIRCUIT_BREAKER_HALF_OPEN_MAX_CALLS,
    CIRCUIT_BREAKER_RECOVERY_TIMEOUT,
    EXTERNAL_API_TIMEOUT_SECONDS,
    SHARE_PRECISION,
    SPOT_LOOKBACK_PERIOD,
)
from portfolio_dashboard.services.exceptions import (
    MarketDataError,
    ProviderUnavailableError,
    RateLimitError,
    TickerNotFoundError,
)
from portfolio_dashboard.services.market_data.base import (
    DailyClose,
    MarketDataProvider,
    SpotSnapshot,
)

logger = logging.getLogger(__name__)


class YahooFinanceProvider(MarketDataProvider):
    """
    Yahoo Finance implementation of MarketDataProvider.

    Configuration:
        timeout: Per-request timeout in seconds (default: 10)
        breaker: Circuit breaker shared by all calls (one is created if omitted)

    Retry Behavior (inherited from MarketDataProvider):
        - Retries on ProviderUnavailableError and RateLimitError
        - Does NOT retry on TickerNotFoundError
        - Exponential backoff: 1s -> 2s -> 4s, at most 3 attempts

    Example:
        provider = YahooFinanceProvider(timeout=15)
        snapshot = provider.get_snapshot("PLTR")
        closes = provider.get_daily_closes("AAPL", date(2024, 1, 1), date(2024, 12, 31))
    """

    def __init__(
            self,
            timeout: int = EXTERNAL_API_TIMEOUT_SECONDS,
            breaker: CircuitBreaker | None = None,
    ) -> None:
        self._timeout = timeout
        self._breaker = breaker or CircuitBreaker(
            name="yahoo-finance",
            failure_threshold=CIRCUIT_BREAKER_FAILURE_THRESHOLD,
            recovery_timeout=CIRCUIT_BREAKER_RECOVERY_TIMEOUT,
            half_open_max_calls=CIRCUIT_BREAKER_HALF_OPEN_MAX_CALLS,
            failure_window=CIRCUIT_BREAKER_FAILURE_WINDOW,
            excluded_exceptions=(TickerNotFoundError,),
        )
        logger.info(f"YahooFinanceProvider initialized (timeout={timeout}s)")

    @property
    def name(self) -> str:
        return "yahoo"

    @property
    def breaker(self) -> CircuitBreaker:
        return self._breaker

    # =========================================================================
    # SPOT SNAPSHOT
    # =========================================================================

    def get_snapshot(self, ticker: str) -> SpotSnapshot | None:
        """
        Fetch the latest close from the last few sessions.

        Returns:
            SpotSnapshot of the most recent bar, or None if Yahoo returned no bars

        Raises:
            TickerNotFoundError: If ticker not found
            ProviderUnavailableError: If Yahoo Finance unavailable
            CircuitBreakerOpen: If recent calls kept failing
        """
        with self._breaker:
            return self._execute_with_retry(self._fetch_snapshot, ticker)

    def _fetch_snapshot(self, ticker: str) -> SpotSnapshot | None:
        symbol = self._build_yahoo_symbol(ticker)
        logger.debug(f"Fetching spot snapshot for {symbol}")

        try:
            df = yf.Ticker(symbol).history(
                period=SPOT_LOOKBACK_PERIOD,
                interval="1d",
                auto_adjust=False,
                timeout=self._timeout,
            )
        except Exception as e:
            raise self._map_error(e, ticker) from e

        if df.empty:
            logger.warning(f"No recent bars for {symbol}")
            return None

        for idx, row in df.iloc[::-1].iterrows():
            price = self._to_decimal(row.get("Close"))
            if price is not None and price > 0:
                return SpotSnapshot(price=price, as_of=self._to_datetime(idx))

        return None

    # =========================================================================
    # DAILY CLOSES
    # =========================================================================

    def get_daily_closes(
            self,
            ticker: str,
            start_date: date,
            end_date: date,
    ) -> list[DailyClose]:
        """
        Fetch unadjusted daily closes for [start_date, end_date].

        Raises:
            TickerNotFoundError: If ticker not found
            ProviderUnavailableError: If Yahoo Finance unavailable
            CircuitBreakerOpen: If recent calls kept failing
        """
        with self._breaker:
            return self._execute_with_retry(
                self._fetch_daily_closes,
                ticker,
                start_date,
                end_date,
            )

    def _fetch_daily_closes(
            self,
            ticker: str,
            start_date: date,
            end_date: date,
    ) -> list[DailyClose]:
        symbol = self._build_yahoo_symbol(ticker)
        logger.debug(f"Fetching daily closes for {symbol}: {start_date} to {end_date}")

        try:
            # Yahoo end date is exclusive
            df = yf.Ticker(symbol).history(
                start=start_date.isoformat(),
                end=(end_date + timedelta(days=1)).isoformat(),
                interval="1d",
                auto_adjust=False,
                timeout=self._timeout,
            )
        except Exception as e:
            raise self._map_error(e, ticker) from e

        if df.empty:
            logger.warning(f"No price data for {symbol} between {start_date} and {end_date}")
            return []

        closes = []
        for idx, row in df.iterrows():
            price = self._to_decimal(row.get("Close"))
            if price is None or price <= 0:
                continue
            closes.append(DailyClose(date=self._to_datetime(idx).date(), close=price))

        logger.debug(f"Fetched {len(closes)} closes for {symbol}")
        return closes

    # =========================================================================
    # HELPER METHODS
    # =========================================================================

    @staticmethod
    def _build_yahoo_symbol(ticker: str) -> str:
        """
        Build the Yahoo symbol for a US ticker.

        "AAPL.US" -> "AAPL", "BRK.B" -> "BRK-B"
        """
        symbol = ticker.strip().upper()
        if symbol.endswith(".US"):
            symbol = symbol[:-3]
        return symbol.replace(".", "-")

    def _map_error(self, error: Exception, ticker: str) -> MarketDataError:
        error_str = str(error).lower()

        if "not found" in error_str or "no data" in error_str or "delisted" in error_str:
            return TickerNotFoundError(ticker=ticker, provider=self.name)

        if "rate limit" in error_str or "too many requests" in error_str:
            return RateLimitError(provider=self.name)

        logger.error(f"Yahoo Finance error for {ticker}: {error}")
        return ProviderUnavailableError(provider=self.name, reason=str(error))

    @staticmethod
    def _to_decimal(value: Any) -> Decimal | None:
        """Convert a value to Decimal, returning None for NaN/None."""
        if value is None:
            return None
        try:
            if math.isnan(float(value)):
                return None
            return Decimal(str(value)).quantize(SHARE_PRECISION)
        except (TypeError, ValueError):
            return None

    @staticmethod
    def _to_datetime(idx: Any) -> datetime:
        """Convert a pandas index entry (Timestamp) to an aware datetime."""
        if hasattr(idx, "to_pydatetime"):
            value = idx.to_pydatetime()
        elif isinstance(idx, datetime):
            value = idx
        else:
            value = datetime.combine(idx, time.min)

        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value
