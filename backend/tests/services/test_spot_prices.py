# tests/services/test_spot_prices.py
"""
Tests for spot price caching and concurrent spot fetching.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

from conftest import FakeSpotProvider
from portfolio_dashboard.services.exceptions import ProviderUnavailableError
from portfolio_dashboard.services.market_data.spot import (
    REASON_NO_SPOT,
    REASON_SPOT_ERROR,
    REASON_SPOT_TIMEOUT,
    CachedSpotPriceProvider,
    fetch_spot_prices,
)


class MutableClock:
    def __init__(self):
        self.now = datetime(2024, 3, 15, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now


class TestCachedSpotPriceProvider:
    """Tests for the staleness window."""

    def test_reuses_quote_within_window(self):
        upstream = FakeSpotProvider({"NVDA": "880"})
        clock = MutableClock()
        spot = CachedSpotPriceProvider(upstream, staleness_hours=24, clock=clock)

        first = spot.get_snapshot("nvda")
        clock.now += timedelta(hours=23)
        upstream.set_price("NVDA", "900")
        second = spot.get_snapshot("NVDA")

        assert first.price == Decimal("880")
        assert second is first
        assert upstream.calls == ["NVDA"]

    def test_refetches_after_window(self):
        upstream = FakeSpotProvider({"NVDA": "880"})
        clock = MutableClock()
        spot = CachedSpotPriceProvider(upstream, staleness_hours=24, clock=clock)

        spot.get_snapshot("NVDA")
        clock.now += timedelta(hours=24)
        upstream.set_price("NVDA", "900")

        assert spot.get_snapshot("NVDA").price == Decimal("900")
        assert upstream.call_count == 2

    def test_missing_quote_not_cached(self):
        upstream = FakeSpotProvider()
        spot = CachedSpotPriceProvider(upstream)

        assert spot.get_snapshot("NVDA") is None
        upstream.set_price("NVDA", "880")

        assert spot.get_snapshot("NVDA").price == Decimal("880")

    def test_clear_forces_refetch(self):
        upstream = FakeSpotProvider({"NVDA": "880"})
        spot = CachedSpotPriceProvider(upstream)

        spot.get_snapshot("NVDA")
        spot.clear()
        spot.get_snapshot("NVDA")

        assert upstream.call_count == 2


class TestFetchSpotPrices:
    """Tests for fetch_spot_prices()."""

    def test_collects_snapshots_and_failures(self):
        upstream = FakeSpotProvider({"NVDA": "880", "AMD": "180"})
        upstream.add_error("TSLA", ProviderUnavailableError("yahoo", "timeout"))

        result = fetch_spot_prices(upstream, ["NVDA", "AMD", "TSLA", "ZZZ"], timeout_seconds=2.0)

        assert {t: s.price for t, s in result.snapshots.items()} == {
            "NVDA": Decimal("880"),
            "AMD": Decimal("180"),
        }
        assert result.failures == {"TSLA": REASON_SPOT_ERROR, "ZZZ": REASON_NO_SPOT}

    def test_slow_ticker_times_out(self):
        upstream = FakeSpotProvider({"NVDA": "880", "AMD": "180"})
        upstream.add_delay("AMD", 1.0)

        result = fetch_spot_prices(upstream, ["NVDA", "AMD"], timeout_seconds=0.2, max_workers=2)

        assert list(result.snapshots) == ["NVDA"]
        assert result.failures == {"AMD": REASON_SPOT_TIMEOUT}

    def test_duplicates_fetched_once(self):
        upstream = FakeSpotProvider({"NVDA": "880"})

        fetch_spot_prices(upstream, ["NVDA", "NVDA"])

        assert upstream.calls == ["NVDA"]

    def test_empty_request(self):
        upstream = FakeSpotProvider()

        result = fetch_spot_prices(upstream, [])

        assert result.snapshots == {}
        assert result.failures == {}
        assert upstream.call_count == 0
