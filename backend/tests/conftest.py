# backend/tests/conftest.py
"""
Pytest configuration and fixtures.

This module provides shared fixtures for all tests:
- Environment defaults (set before the app is imported anywhere)
- FakeSpotProvider for spot price lookups
- Daily close factories and an in-memory PriceStore
- EquityEngine / LiveMetricsAggregator wired to the fakes with a fixed "today"
- A TestClient with the service dependencies overridden
"""

import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import threading
from collections.abc import Callable, Iterable
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

import pytest

from portfolio_dashboard.services.analytics.live_metrics import LiveMetricsAggregator
from portfolio_dashboard.services.cache import TTLCache
from portfolio_dashboard.services.equity.benchmark import SyntheticBenchmarkBuilder
from portfolio_dashboard.services.equity.engine import EquityEngine
from portfolio_dashboard.services.equity.types import Transaction, TransactionType
from portfolio_dashboard.services.market_data.base import DailyClose, SpotSnapshot
from portfolio_dashboard.services.market_data.price_store import PriceStore

# Friday
TODAY = date(2024, 3, 15)


# =============================================================================
# FAKE SPOT PROVIDER
# =============================================================================

class FakeSpotProvider:
    """
    In-memory SpotPriceProvider.

    Configure prices per ticker, errors per ticker, or a delay to simulate a
    slow upstream. Unknown tickers return None (no quote).
    """

    def __init__(self, prices: dict[str, str | Decimal] | None = None):
        self._prices = {t.upper(): Decimal(str(p)) for t, p in (prices or {}).items()}
        self._errors: dict[str, Exception] = {}
        self._delays: dict[str, float] = {}
        self._lock = threading.Lock()
        self.calls: list[str] = []

    def set_price(self, ticker: str, price: str | Decimal) -> None:
        self._prices[ticker.upper()] = Decimal(str(price))

    def add_error(self, ticker: str, error: Exception) -> None:
        self._errors[ticker.upper()] = error

    def add_delay(self, ticker: str, seconds: float) -> None:
        self._delays[ticker.upper()] = seconds

    @property
    def call_count(self) -> int:
        return len(self.calls)

    def get_snapshot(self, ticker: str) -> SpotSnapshot | None:
        symbol = ticker.upper()
        with self._lock:
            self.calls.append(symbol)

        if symbol in self._delays:
            threading.Event().wait(self._delays[symbol])
        if symbol in self._errors:
            raise self._errors[symbol]

        price = self._prices.get(symbol)
        if price is None:
            return None
        return SpotSnapshot(price=price, as_of=datetime(2024, 3, 15, 21, 0, tzinfo=timezone.utc))


# =============================================================================
# DATA FACTORIES
# =============================================================================

def weekdays(start: date, end: date) -> list[date]:
    """All Monday-Friday dates from start to end inclusive."""
    days = []
    current = start
    while current <= end:
        if current.weekday() < 5:
            days.append(current)
        current += timedelta(days=1)
    return days


def make_closes(
        start: date,
        end: date,
        price: str | Decimal | Callable[[date], Decimal] = "100",
) -> list[DailyClose]:
    """Weekday closes; price is a constant or a function of the date."""
    closes = []
    for day in weekdays(start, end):
        value = price(day) if callable(price) else Decimal(str(price))
        closes.append(DailyClose(date=day, close=value))
    return closes


def buy(day: date, ticker: str, quantity: str, price: str, fees: str = "0") -> Transaction:
    return Transaction(
        date=day,
        ticker=ticker,
        type=TransactionType.BUY,
        quantity=Decimal(quantity),
        price=Decimal(price),
        fees=Decimal(fees),
    )


def sell(day: date, ticker: str, quantity: str, price: str, fees: str = "0") -> Transaction:
    return Transaction(
        date=day,
        ticker=ticker,
        type=TransactionType.SELL,
        quantity=Decimal(quantity),
        price=Decimal(price),
        fees=Decimal(fees),
    )


# =============================================================================
# FIXTURES
# =============================================================================

@pytest.fixture
def today() -> date:
    return TODAY


@pytest.fixture
def spot_provider() -> FakeSpotProvider:
    return FakeSpotProvider()


@pytest.fixture
def price_store() -> PriceStore:
    """
    AAPL, MSFT and SPY with weekday closes from 2024-01-02 through TODAY.

    AAPL: 100 in January, 110 in February, 120 in March
    MSFT: constant 200
    SPY:  constant 400
    """
    def aapl(day: date) -> Decimal:
        return {1: Decimal("100"), 2: Decimal("110")}.get(day.month, Decimal("120"))

    return PriceStore(
        {
            "AAPL": make_closes(date(2024, 1, 2), TODAY, aapl),
            "MSFT": make_closes(date(2024, 1, 2), TODAY, "200"),
            "SPY": make_closes(date(2024, 1, 2), TODAY, "400"),
        },
        aliases={"GOOG": "GOOGL"},
        expected_tickers=["AAPL", "MSFT"],
    )


@pytest.fixture
def make_engine(price_store: PriceStore, spot_provider: FakeSpotProvider):
    """Factory for engines over the shared fakes; override store, spot, today or timeout per test."""

    def _make(
            store: PriceStore | None = None,
            spot: FakeSpotProvider | None = None,
            today: date = TODAY,
            full_history: Iterable[str] = ("AAPL", "MSFT", "GOOGL"),
            cache: TTLCache | None = None,
            spot_timeout: float = 2.0,
    ) -> EquityEngine:
        return EquityEngine(
            price_store=store or price_store,
            spot_provider=spot or spot_provider,
            full_history_tickers=full_history,
            ticker_aliases={"GOOG": "GOOGL"},
            spot_timeout_seconds=spot_timeout,
            spot_max_workers=4,
            cache=cache,
            today_provider=lambda: today,
        )

    return _make


@pytest.fixture
def engine(make_engine) -> EquityEngine:
    return make_engine()


@pytest.fixture
def aggregator(engine: EquityEngine, price_store: PriceStore, spot_provider: FakeSpotProvider) -> LiveMetricsAggregator:
    return LiveMetricsAggregator(
        engine=engine,
        price_store=price_store,
        spot_provider=spot_provider,
        spot_timeout_seconds=2.0,
        spot_max_workers=4,
    )


@pytest.fixture
def benchmark_builder(price_store: PriceStore) -> SyntheticBenchmarkBuilder:
    return SyntheticBenchmarkBuilder(price_store)


@pytest.fixture
def client(price_store, engine, aggregator, benchmark_builder):
    """
    TestClient with every service dependency replaced by the in-memory fakes.

    The Yahoo provider is constructed but never called: health checks only
    read its circuit breaker.
    """
    from fastapi.testclient import TestClient

    from portfolio_dashboard.dependencies import (
        get_benchmark_builder,
        get_equity_engine,
        get_live_metrics_aggregator,
        get_market_data_provider,
        get_price_store,
    )
    from portfolio_dashboard.main import app
    from portfolio_dashboard.services.market_data.yahoo import YahooFinanceProvider

    provider = YahooFinanceProvider()
    app.dependency_overrides[get_price_store] = lambda: price_store
    app.dependency_overrides[get_equity_engine] = lambda: engine
    app.dependency_overrides[get_live_metrics_aggregator] = lambda: aggregator
    app.dependency_overrides[get_benchmark_builder] = lambda: benchmark_builder
    app.dependency_overrides[get_market_data_provider] = lambda: provider

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
