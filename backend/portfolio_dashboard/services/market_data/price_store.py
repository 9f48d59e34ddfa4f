# backend/portfolio_dashboard/services/market_data/price_store.py
"""
In-memory store of daily closes for the full-history tickers.

The store is read-only after construction and is injected into the equity
engine, the live metrics aggregator and the benchmark builder. Loading the
data (Stooq files or a provider) happens in loaders.py.

Lookup rules:
    - Tickers are normalized before every lookup: uppercase, trailing
      ".US" removed, then the alias table applied (GOOG -> GOOGL).
    - Daily series are forward-filled across weekends and holidays but
      clamped to the ticker's history: nothing before the first close,
      nothing after the last one.
"""

from __future__ import annotations

import logging
import threading
from bisect import bisect_left, bisect_right
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from portfolio_dashboard.services.market_data.base import DailyClose, DateRange

logger = logging.getLogger(__name__)


def normalize_ticker(ticker: str, aliases: Mapping[str, str] | None = None) -> str:
    """
    Canonical form of a ticker symbol.

    "aapl.us" -> "AAPL", "GOOG" -> "GOOGL" (with the default alias table)
    """
    symbol = ticker.strip().upper()
    if symbol.endswith(".US"):
        symbol = symbol[:-3]
    if aliases:
        symbol = aliases.get(symbol, symbol)
    return symbol


@dataclass(frozen=True)
class PriceStoreStatus:
    """
    Snapshot of what the store holds and what it could not answer.

    Attributes:
        missing_prices: Lookups for tickers without history ("XYZ (no price history available)")
        warnings: Load and validation warnings
        last_updated: When the data was loaded
        tickers_loaded: Expected tickers that have history
        missing_tickers: Expected tickers without history
        date_range: Reference history range (first loaded expected ticker)
    """

    missing_prices: tuple[str, ...]
    warnings: tuple[str, ...]
    last_updated: datetime | None
    tickers_loaded: tuple[str, ...]
    missing_tickers: tuple[str, ...]
    date_range: DateRange | None


class PriceStore:
    """
    Read-only daily close store with forward fill and batch loading.

    Thread Safety:
        The close data never changes after construction. The batch memo and
        the status lists are guarded by a lock.

    Example:
        store = PriceStore({"AAPL": closes}, aliases={"GOOG": "GOOGL"})
        store.get_close_for_date("aapl.us", date(2024, 1, 6))  # Friday's close
    """

    def __init__(
            self,
            history: Mapping[str, Iterable[DailyClose]],
            aliases: Mapping[str, str] | None = None,
            expected_tickers: Iterable[str] | None = None,
            load_warnings: Iterable[str] = (),
    ) -> None:
        self._aliases = dict(aliases or {})
        self._closes: dict[str, dict[date, Decimal]] = {}
        self._dates: dict[str, list[date]] = {}

        for raw_ticker, closes in history.items():
            ticker = self.normalize(raw_ticker)
            by_date = self._closes.setdefault(ticker, {})
            for dc in closes:
                by_date[dc.date] = dc.close
            if by_date:
                self._dates[ticker] = sorted(by_date)
            else:
                del self._closes[ticker]

        self._expected = [self.normalize(t) for t in (expected_tickers or [])]
        self._lock = threading.Lock()
        self._batch_key: tuple[tuple[str, ...], date, date] | None = None
        self._batch: dict[str, dict[date, Decimal]] = {}
        self._missing_prices: list[str] = []
        self._warnings: list[str] = list(load_warnings)
        self._last_updated = datetime.now(timezone.utc)

        self._validate_ranges()

        logger.info(
            f"PriceStore loaded {len(self._dates)} tickers "
            f"({sum(len(d) for d in self._dates.values())} closes)"
        )

    # =========================================================================
    # TICKER METADATA
    # =========================================================================

    def normalize(self, ticker: str) -> str:
        return normalize_ticker(ticker, self._aliases)

    @property
    def tickers(self) -> list[str]:
        return sorted(self._dates)

    def has_ticker(self, ticker: str) -> bool:
        return self.normalize(ticker) in self._dates

    def get_ticker_date_range(self, ticker: str) -> DateRange | None:
        dates = self._dates.get(self.normalize(ticker))
        if not dates:
            return None
        return DateRange(start=dates[0], end=dates[-1])

    def get_history_end(self, ticker: str) -> date | None:
        dates = self._dates.get(self.normalize(ticker))
        return dates[-1] if dates else None

    def has_timeseries_on(self, ticker: str, day: date) -> bool:
        """True if the day falls inside the ticker's history (after forward fill)."""
        date_range = self.get_ticker_date_range(ticker)
        return date_range is not None and date_range.contains(day)

    # =========================================================================
    # PRICE LOOKUPS
    # =========================================================================

    def get_daily_closes(self, ticker: str, start: date, end: date) -> list[DailyClose]:
        """
        One close per calendar day in [start, end], forward-filled.

        The window is clamped to the ticker's history. Returns an empty list
        for unknown tickers (recorded in the status) or an empty window.
        """
        symbol = self.normalize(ticker)
        dates = self._dates.get(symbol)
        if not dates:
            self._record_missing(symbol)
            return []

        first = max(start, dates[0])
        last = min(end, dates[-1])
        if first > last:
            return []

        closes = self._closes[symbol]
        idx = bisect_right(dates, first) - 1
        current = closes[dates[idx]]

        result = []
        day = first
        while day <= last:
            if day in closes:
                current = closes[day]
            result.append(DailyClose(date=day, close=current))
            day += timedelta(days=1)
        return result

    def batch_load_daily_closes(
            self,
            tickers: Iterable[str],
            start: date,
            end: date,
    ) -> dict[str, dict[date, Decimal]]:
        """
        Load forward-filled closes for many tickers in one pass.

        The most recent batch is memoized by (tickers, start, end), so the
        engine's per-day lookups through get_close_for_date hit memory.
        Tickers without history map to an empty dict.
        """
        symbols = tuple(sorted({self.normalize(t) for t in tickers}))
        key = (symbols, start, end)

        with self._lock:
            if self._batch_key == key:
                return self._batch

        batch = {
            symbol: {dc.date: dc.close for dc in self.get_daily_closes(symbol, start, end)}
            for symbol in symbols
        }

        with self._lock:
            self._batch_key = key
            self._batch = batch

        logger.debug(f"Batch loaded {len(symbols)} tickers for {start} to {end}")
        return batch

    def clear_batch_cache(self) -> None:
        with self._lock:
            self._batch_key = None
            self._batch = {}

    def get_close_for_date(self, ticker: str, day: date) -> Decimal | None:
        """
        Close for one day: batch memo first, then a single-day lookup.

        Returns None outside the ticker's history.
        """
        symbol = self.normalize(ticker)

        with self._lock:
            cached = self._batch.get(symbol)
        if cached and day in cached:
            return cached[day]

        dates = self._dates.get(symbol)
        if not dates:
            self._record_missing(symbol)
            return None
        if day < dates[0] or day > dates[-1]:
            return None
        return self._closes[symbol][dates[bisect_right(dates, day) - 1]]

    def get_latest_close(self, ticker: str) -> Decimal | None:
        symbol = self.normalize(ticker)
        dates = self._dates.get(symbol)
        if not dates:
            return None
        return self._closes[symbol][dates[-1]]

    def get_trading_days(self, tickers: Iterable[str], start: date, end: date) -> list[date]:
        """Sorted union of dates with an actual close for any of the tickers."""
        days: set[date] = set()
        for ticker in tickers:
            dates = self._dates.get(self.normalize(ticker))
            if not dates:
                continue
            lo = bisect_left(dates, start)
            hi = bisect_right(dates, end)
            days.update(dates[lo:hi])
        return sorted(days)

    # =========================================================================
    # STATUS
    # =========================================================================

    def get_status(self) -> PriceStoreStatus:
        loaded = tuple(t for t in self._expected if t in self._dates)
        missing = tuple(t for t in self._expected if t not in self._dates)
        reference = self.get_ticker_date_range(loaded[0]) if loaded else None

        with self._lock:
            return PriceStoreStatus(
                missing_prices=tuple(self._missing_prices),
                warnings=tuple(self._warnings),
                last_updated=self._last_updated,
                tickers_loaded=loaded,
                missing_tickers=missing,
                date_range=reference,
            )

    def clear_status(self) -> None:
        with self._lock:
            self._missing_prices.clear()
            self._warnings.clear()

    def _record_missing(self, symbol: str) -> None:
        entry = f"{symbol} (no price history available)"
        with self._lock:
            if entry not in self._missing_prices:
                self._missing_prices.append(entry)

    def _validate_ranges(self) -> None:
        ranges: dict[str, DateRange] = {}
        for ticker in self._expected:
            date_range = self.get_ticker_date_range(ticker)
            if date_range is None:
                self._warnings.append(f"Full-history ticker {ticker} has no price data")
            else:
                ranges[ticker] = date_range

        if len(ranges) > 1:
            reference = next(iter(ranges.values()))
            inconsistent = [
                f"{ticker}({r.start.isoformat()}-{r.end.isoformat()})"
                for ticker, r in ranges.items()
                if r != reference
            ]
            if inconsistent:
                self._warnings.append(
                    f"Full-history tickers have inconsistent date ranges: {', '.join(inconsistent)}"
                )

        missing = [t for t in self._expected if t not in ranges]
        if missing:
            self._warnings.append(f"Missing full-history tickers: {', '.join(missing)}")

        for warning in self._warnings:
            logger.warning(f"PriceStore: {warning}")
