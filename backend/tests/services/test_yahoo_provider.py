# backend/tests/services/test_yahoo_provider.py
"""
Tests for the YahooFinanceProvider.

This module tests:
- Symbol building
- Spot snapshots from recent daily bars
- Daily close fetching and NaN handling
- Error classification, retries and the circuit breaker

Note: These tests mock the yfinance library to avoid actual API calls.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock, patch

import numpy as np
import pandas as pd
import pytest

from portfolio_dashboard.services.circuit_breaker import CircuitBreaker, CircuitBreakerOpen
from portfolio_dashboard.services.exceptions import (
    ProviderUnavailableError,
    RateLimitError,
    TickerNotFoundError,
)
from portfolio_dashboard.services.market_data.base import DailyClose
from portfolio_dashboard.services.market_data.yahoo import YahooFinanceProvider


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def provider():
    """Provider with zero retry backoff so failing tests stay fast."""
    yahoo = YahooFinanceProvider(timeout=10)
    yahoo.RETRY_MULTIPLIER = 0
    yahoo.RETRY_MIN_WAIT = 0
    yahoo.RETRY_MAX_WAIT = 0
    return yahoo


@pytest.fixture
def daily_bars():
    """DataFrame shaped like yfinance history() output."""
    dates = pd.date_range(start="2024-01-15", periods=4, freq="B")
    return pd.DataFrame({
        "Open": [185.0, 186.0, 184.5, 187.0],
        "High": [187.0, 188.0, 186.0, 189.0],
        "Low": [184.0, 185.0, 183.5, 186.0],
        "Close": [186.0, 185.5, np.nan, 188.25],
        "Volume": [1000000, 1100000, 900000, 1200000],
    }, index=dates)


def _mock_history(mock_yf, df):
    mock_ticker = MagicMock()
    mock_ticker.history.return_value = df
    mock_yf.Ticker.return_value = mock_ticker
    return mock_ticker


# =============================================================================
# INITIALIZATION AND SYMBOLS
# =============================================================================

class TestYahooProviderInit:
    """Tests for provider initialization."""

    def test_provider_name(self):
        assert YahooFinanceProvider().name == "yahoo"

    def test_default_breaker_excludes_unknown_tickers(self):
        breaker = YahooFinanceProvider().breaker

        assert breaker.name == "yahoo-finance"
        assert TickerNotFoundError in breaker.excluded_exceptions

    def test_accepts_shared_breaker(self):
        breaker = CircuitBreaker(name="shared")

        assert YahooFinanceProvider(breaker=breaker).breaker is breaker


class TestBuildYahooSymbol:
    """Tests for US ticker to Yahoo symbol mapping."""

    @pytest.mark.parametrize("ticker,expected", [
        ("AAPL", "AAPL"),
        ("aapl.us", "AAPL"),
        ("BRK.B", "BRK-B"),
        (" brk.b.us ", "BRK-B"),
    ])
    def test_build_symbol(self, ticker, expected):
        assert YahooFinanceProvider._build_yahoo_symbol(ticker) == expected


# =============================================================================
# SPOT SNAPSHOTS
# =============================================================================

class TestGetSnapshot:
    """Tests for get_snapshot()."""

    @patch("portfolio_dashboard.services.market_data.yahoo.yf")
    def test_latest_bar(self, mock_yf, provider, daily_bars):
        mock_ticker = _mock_history(mock_yf, daily_bars)

        snapshot = provider.get_snapshot("BRK.B")

        mock_yf.Ticker.assert_called_once_with("BRK-B")
        assert mock_ticker.history.call_args.kwargs["period"] == "5d"
        assert snapshot.price == Decimal("188.25")
        assert snapshot.as_of == datetime(2024, 1, 18, tzinfo=timezone.utc)

    @patch("portfolio_dashboard.services.market_data.yahoo.yf")
    def test_skips_trailing_nan(self, mock_yf, provider, daily_bars):
        _mock_history(mock_yf, daily_bars.iloc[:3])

        snapshot = provider.get_snapshot("AAPL")

        assert snapshot.price == Decimal("185.5")
        assert snapshot.as_of.date() == date(2024, 1, 16)

    @patch("portfolio_dashboard.services.market_data.yahoo.yf")
    def test_no_bars_returns_none(self, mock_yf, provider):
        _mock_history(mock_yf, pd.DataFrame())

        assert provider.get_snapshot("AAPL") is None


# =============================================================================
# DAILY CLOSES
# =============================================================================

class TestGetDailyCloses:
    """Tests for get_daily_closes()."""

    @patch("portfolio_dashboard.services.market_data.yahoo.yf")
    def test_parses_closes_and_drops_nan(self, mock_yf, provider, daily_bars):
        _mock_history(mock_yf, daily_bars)

        closes = provider.get_daily_closes("AAPL", date(2024, 1, 15), date(2024, 1, 18))

        assert closes == [
            DailyClose(date(2024, 1, 15), Decimal("186")),
            DailyClose(date(2024, 1, 16), Decimal("185.5")),
            DailyClose(date(2024, 1, 18), Decimal("188.25")),
        ]

    @patch("portfolio_dashboard.services.market_data.yahoo.yf")
    def test_end_date_is_inclusive(self, mock_yf, provider, daily_bars):
        mock_ticker = _mock_history(mock_yf, daily_bars)

        provider.get_daily_closes("AAPL", date(2024, 1, 15), date(2024, 1, 18))

        call_args = mock_ticker.history.call_args
        assert call_args.kwargs["start"] == "2024-01-15"
        assert call_args.kwargs["end"] == "2024-01-19"
        assert call_args.kwargs["auto_adjust"] is False

    @patch("portfolio_dashboard.services.market_data.yahoo.yf")
    def test_empty_range(self, mock_yf, provider):
        _mock_history(mock_yf, pd.DataFrame())

        assert provider.get_daily_closes("AAPL", date(2020, 1, 1), date(2020, 1, 5)) == []

    @patch("portfolio_dashboard.services.market_data.yahoo.yf")
    def test_batch_collects_failures(self, mock_yf, provider, daily_bars):
        good = MagicMock()
        good.history.return_value = daily_bars
        bad = MagicMock()
        bad.history.side_effect = Exception("No data found, symbol may be delisted")
        mock_yf.Ticker.side_effect = lambda symbol: bad if symbol == "ZZZZ" else good

        result = provider.get_daily_closes_batch(["aapl", "zzzz"], date(2024, 1, 15), date(2024, 1, 18))

        assert list(result.prices) == ["AAPL"]
        assert result.errors == {"ZZZZ": "Ticker 'ZZZZ' not found by yahoo"}
        assert not result.all_successful


# =============================================================================
# ERROR HANDLING
# =============================================================================

class TestErrorHandling:
    """Tests for error classification, retries and the breaker."""

    @patch("portfolio_dashboard.services.market_data.yahoo.yf")
    def test_not_found_is_not_retried(self, mock_yf, provider):
        mock_ticker = _mock_history(mock_yf, None)
        mock_ticker.history.side_effect = Exception("404 Not Found")

        with pytest.raises(TickerNotFoundError) as exc_info:
            provider.get_snapshot("ZZZZ")

        assert exc_info.value.ticker == "ZZZZ"
        assert mock_ticker.history.call_count == 1

    @patch("portfolio_dashboard.services.market_data.yahoo.yf")
    def test_rate_limit_retried_then_raised(self, mock_yf, provider):
        mock_ticker = _mock_history(mock_yf, None)
        mock_ticker.history.side_effect = Exception("Too Many Requests. Rate limited.")

        with pytest.raises(RateLimitError):
            provider.get_snapshot("AAPL")

        assert mock_ticker.history.call_count == provider.MAX_RETRY_ATTEMPTS

    @patch("portfolio_dashboard.services.market_data.yahoo.yf")
    def test_transient_error_recovers_on_retry(self, mock_yf, provider, daily_bars):
        mock_ticker = _mock_history(mock_yf, None)
        mock_ticker.history.side_effect = [Exception("Connection reset"), daily_bars]

        snapshot = provider.get_snapshot("AAPL")

        assert snapshot.price == Decimal("188.25")
        assert provider.breaker.stats.failed_calls == 0

    @patch("portfolio_dashboard.services.market_data.yahoo.yf")
    def test_network_error_maps_to_unavailable(self, mock_yf, provider):
        mock_yf.Ticker.side_effect = Exception("Connection timeout")

        with pytest.raises(ProviderUnavailableError) as exc_info:
            provider.get_daily_closes("AAPL", date(2024, 1, 1), date(2024, 1, 5))

        assert exc_info.value.provider == "yahoo"

    @patch("portfolio_dashboard.services.market_data.yahoo.yf")
    def test_open_breaker_fails_fast(self, mock_yf):
        breaker = CircuitBreaker(name="yahoo", failure_threshold=1)
        with pytest.raises(RuntimeError):
            with breaker:
                raise RuntimeError("quote service down")
        provider = YahooFinanceProvider(breaker=breaker)

        with pytest.raises(CircuitBreakerOpen):
            provider.get_snapshot("AAPL")

        mock_yf.Ticker.assert_not_called()
