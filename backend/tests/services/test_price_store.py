# tests/services/test_price_store.py
"""
Tests for the in-memory daily close store.

Covers ticker normalization, forward fill, clamping to history, batch
memoization and the status report.
"""

from datetime import date
from decimal import Decimal

import pytest

from conftest import TODAY, make_closes, weekdays
from portfolio_dashboard.services.market_data.base import DailyClose, DateRange
from portfolio_dashboard.services.market_data.price_store import PriceStore, normalize_ticker


class TestNormalizeTicker:
    """Tests for normalize_ticker()."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("aapl", "AAPL"),
            (" msft ", "MSFT"),
            ("aapl.us", "AAPL"),
            ("BRK.B", "BRK.B"),
        ],
    )
    def test_normalizes_case_and_suffix(self, raw, expected):
        assert normalize_ticker(raw) == expected

    def test_applies_aliases_after_suffix(self):
        assert normalize_ticker("goog.us", {"GOOG": "GOOGL"}) == "GOOGL"


class TestDailyClose:
    """Tests for the DailyClose value object."""

    @pytest.mark.parametrize("close", [Decimal("0"), Decimal("-1.5")])
    def test_rejects_non_positive_close(self, close):
        with pytest.raises(ValueError, match="Close must be positive"):
            DailyClose(date=TODAY, close=close)


class TestLookups:
    """Tests for single-day lookups."""

    def test_close_on_trading_day(self, price_store):
        assert price_store.get_close_for_date("AAPL", date(2024, 2, 1)) == Decimal("110")

    def test_weekend_uses_friday_close(self, price_store):
        # Friday 2024-02-02 -> Saturday and Sunday
        assert price_store.get_close_for_date("AAPL", date(2024, 2, 3)) == Decimal("110")
        assert price_store.get_close_for_date("aapl.us", date(2024, 2, 4)) == Decimal("110")

    def test_outside_history_is_none(self, price_store):
        assert price_store.get_close_for_date("AAPL", date(2024, 1, 1)) is None
        assert price_store.get_close_for_date("AAPL", date(2024, 3, 16)) is None

    def test_alias_resolves_to_canonical(self):
        store = PriceStore(
            {"GOOGL": make_closes(date(2024, 1, 2), date(2024, 1, 5), "140")},
            aliases={"GOOG": "GOOGL"},
        )

        assert store.has_ticker("GOOG")
        assert store.get_close_for_date("goog", date(2024, 1, 3)) == Decimal("140")

    def test_date_range_and_history_end(self, price_store):
        assert price_store.get_ticker_date_range("MSFT") == DateRange(date(2024, 1, 2), TODAY)
        assert price_store.get_history_end("MSFT") == TODAY
        assert price_store.has_timeseries_on("MSFT", date(2024, 1, 6))
        assert not price_store.has_timeseries_on("MSFT", date(2024, 3, 16))
        assert price_store.get_ticker_date_range("NVDA") is None


class TestDailyCloses:
    """Tests for get_daily_closes() forward fill and clamping."""

    def test_one_close_per_calendar_day(self, price_store):
        closes = price_store.get_daily_closes("AAPL", date(2024, 1, 31), date(2024, 2, 5))

        assert [c.date for c in closes] == [
            date(2024, 1, 31),
            date(2024, 2, 1),
            date(2024, 2, 2),
            date(2024, 2, 3),
            date(2024, 2, 4),
            date(2024, 2, 5),
        ]
        assert [c.close for c in closes] == [Decimal(v) for v in ("100", "110", "110", "110", "110", "110")]

    def test_window_clamped_to_history(self, price_store):
        closes = price_store.get_daily_closes("MSFT", date(2023, 12, 25), date(2024, 1, 3))

        assert [c.date for c in closes] == [date(2024, 1, 2), date(2024, 1, 3)]

    def test_window_fully_outside_history(self, price_store):
        assert price_store.get_daily_closes("MSFT", date(2024, 4, 1), date(2024, 4, 30)) == []

    def test_starting_on_weekend_carries_previous_close(self, price_store):
        closes = price_store.get_daily_closes("AAPL", date(2024, 3, 2), date(2024, 3, 3))

        # Friday 2024-03-01 is already a March close
        assert [c.close for c in closes] == [Decimal("120"), Decimal("120")]

    def test_unknown_ticker_recorded_as_missing(self, price_store):
        assert price_store.get_daily_closes("nvda", date(2024, 1, 2), TODAY) == []
        price_store.get_close_for_date("NVDA", TODAY)

        status = price_store.get_status()
        assert status.missing_prices == ("NVDA (no price history available)",)


class TestBatchLoad:
    """Tests for batch_load_daily_closes() memoization."""

    def test_same_request_is_memoized(self, price_store):
        first = price_store.batch_load_daily_closes(["AAPL", "MSFT"], date(2024, 1, 2), TODAY)
        second = price_store.batch_load_daily_closes(["msft", "aapl"], date(2024, 1, 2), TODAY)

        assert first is second
        assert first["AAPL"][date(2024, 1, 6)] == Decimal("100")

    def test_new_window_replaces_memo(self, price_store):
        first = price_store.batch_load_daily_closes(["AAPL"], date(2024, 1, 2), TODAY)
        second = price_store.batch_load_daily_closes(["AAPL"], date(2024, 2, 1), TODAY)

        assert first is not second
        assert min(second["AAPL"]) == date(2024, 2, 1)

    def test_unknown_ticker_maps_to_empty(self, price_store):
        batch = price_store.batch_load_daily_closes(["AAPL", "NVDA"], date(2024, 1, 2), TODAY)

        assert batch["NVDA"] == {}

    def test_clear_batch_cache(self, price_store):
        first = price_store.batch_load_daily_closes(["AAPL"], date(2024, 1, 2), TODAY)
        price_store.clear_batch_cache()

        assert price_store.batch_load_daily_closes(["AAPL"], date(2024, 1, 2), TODAY) is not first


class TestTradingDays:
    """Tests for get_trading_days()."""

    def test_union_of_actual_close_dates(self, price_store):
        days = price_store.get_trading_days(["AAPL", "MSFT"], date(2024, 1, 1), date(2024, 1, 31))

        assert days == weekdays(date(2024, 1, 2), date(2024, 1, 31))

    def test_includes_dates_only_one_ticker_has(self):
        store = PriceStore({
            "AAPL": [DailyClose(date(2024, 1, 2), Decimal("1"))],
            "MSFT": [DailyClose(date(2024, 1, 3), Decimal("1"))],
        })

        assert store.get_trading_days(["AAPL", "MSFT", "NVDA"], date(2024, 1, 1), date(2024, 1, 5)) == [
            date(2024, 1, 2),
            date(2024, 1, 3),
        ]


class TestStatus:
    """Tests for the status report and range validation."""

    def test_healthy_store(self, price_store):
        status = price_store.get_status()

        assert status.tickers_loaded == ("AAPL", "MSFT")
        assert status.missing_tickers == ()
        assert status.warnings == ()
        assert status.date_range == DateRange(date(2024, 1, 2), TODAY)
        assert status.last_updated is not None

    def test_missing_expected_ticker(self):
        store = PriceStore(
            {"AAPL": make_closes(date(2024, 1, 2), TODAY)},
            expected_tickers=["AAPL", "nvda"],
        )
        status = store.get_status()

        assert status.missing_tickers == ("NVDA",)
        assert "Full-history ticker NVDA has no price data" in status.warnings
        assert "Missing full-history tickers: NVDA" in status.warnings

    def test_inconsistent_ranges(self):
        store = PriceStore(
            {
                "AAPL": make_closes(date(2024, 1, 2), TODAY),
                "MSFT": make_closes(date(2024, 2, 1), TODAY),
            },
            expected_tickers=["AAPL", "MSFT"],
        )

        assert store.get_status().warnings == (
            "Full-history tickers have inconsistent date ranges: MSFT(2024-02-01-2024-03-15)",
        )

    def test_load_warnings_kept_and_clearable(self):
        store = PriceStore({}, load_warnings=["No price file for AAPL in /data"])

        assert store.get_status().warnings == ("No price file for AAPL in /data",)
        store.clear_status()
        assert store.get_status().warnings == ()

    def test_empty_history_entries_dropped(self):
        store = PriceStore({"AAPL": []})

        assert store.tickers == []
        assert not store.has_ticker("AAPL")
