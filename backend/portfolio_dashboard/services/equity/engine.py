# backend/portfolio_dashboard/services/equity/engine.py
"""
Equity Engine: daily portfolio value series from a transaction list.

The engine replays share positions day by day and values them with the
best available price for each held ticker:

    1. timeseries - daily close from the PriceStore (full-history tickers,
                    inside their covered range)
    2. spot       - present-day snapshot held constant across the date
    3. missing    - recorded in the status, contributes nothing

Performance Optimization:
    All price data is loaded before the replay starts:
    - 1 batch load of daily closes for the full-history tickers
    - 1 concurrent spot fetch (bounded timeout) for tickers that may need bridging
    The replay then only does in-memory lookups.

Failure Semantics:
    Price failures never escape build_series. They end up in the status
    (missing prices, warnings) and the series is built from whatever could
    be priced. A day on which no held ticker is priced is skipped, never
    written as a zero point.

Caching:
    Results are memoized by a SHA-256 content hash of the normalized,
    sorted transaction list plus today's date. Concurrent identical builds
    are serialized so only one of them does the work.
"""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Callable, Iterable, Mapping, Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from portfolio_dashboard.services.cache import TTLCache
from portfolio_dashboard.services.constants import (
    CURRENCY_PRECISION,
    HUNDRED,
    PERCENTAGE_PRECISION,
    SPOT_FETCH_MAX_WORKERS,
    SPOT_FETCH_TIMEOUT_SECONDS,
    ZERO,
)
from portfolio_dashboard.services.equity.types import (
    DailyValuePoint,
    EquityEngineStatus,
    EquitySeriesResult,
    MissingPrice,
    PriceResolution,
    PriceSource,
    Transaction,
)
from portfolio_dashboard.services.market_data.base import DateRange, SpotSnapshot
from portfolio_dashboard.services.market_data.price_store import PriceStore, normalize_ticker
from portfolio_dashboard.services.market_data.spot import TRANSIENT_FAILURES, fetch_spot_prices
from portfolio_dashboard.services.protocols import SpotPriceProvider

logger = logging.getLogger(__name__)

DEFAULT_FULL_HISTORY_TICKERS: tuple[str, ...] = (
    "AAPL", "MSFT", "AMZN", "NVDA", "META", "TSLA", "GOOGL",
)
DEFAULT_TICKER_ALIASES: dict[str, str] = {"GOOG": "GOOGL"}


# =============================================================================
# SAME-DAY TRADE COMBINATION
# =============================================================================

@dataclass(frozen=True)
class CombinedTrade:
    """
    All BUY/SELL trades of one ticker on one day, merged.

    Attributes:
        date: Trade date
        ticker: Canonical ticker
        quantity: Net signed share change
        price: Volume-weighted average price (weighted by absolute quantity)
        trade_count: Number of trades merged
    """

    date: date
    ticker: str
    quantity: Decimal
    price: Decimal
    trade_count: int


def combine_same_day_trades(
        transactions: Iterable[Transaction],
        aliases: Mapping[str, str] | None = None,
) -> dict[date, list[CombinedTrade]]:
    """
    Merge same-day trades per ticker into one VWAP trade.

    Non-share transactions (dividends, cash movements, splits) are ignored.

    Example:
        BUY 10 @ 100 and BUY 20 @ 115 on the same day -> +30 @ 110
    """
    groups: dict[tuple[date, str], list[Transaction]] = {}
    for txn in transactions:
        if not txn.type.affects_shares:
            continue
        ticker = normalize_ticker(txn.ticker, aliases)
        groups.setdefault((txn.date, ticker), []).append(txn)

    combined: dict[date, list[CombinedTrade]] = {}
    for (day, ticker), trades in groups.items():
        net = sum((t.signed_quantity for t in trades), ZERO)
        volume = sum((t.quantity for t in trades), ZERO)
        if volume > 0:
            price = sum((t.quantity * t.price for t in trades), ZERO) / volume
        else:
            price = trades[-1].price
        combined.setdefault(day, []).append(
            CombinedTrade(date=day, ticker=ticker, quantity=net, price=price, trade_count=len(trades))
        )
    return combined


# =============================================================================
# ENGINE
# =============================================================================

class EquityEngine:
    """
    Builds the daily portfolio value series with pricing provenance.

    Attributes:
        _price_store: Daily closes for full-history tickers
        _spot_provider: Present-day snapshots for everything else
        _full_history: Allow-list of tickers valued from daily history
        _aliases: Ticker alias table applied before any lookup
        _cache: Series cache keyed by transaction content hash
        _today_provider: Clock returning "today" (injectable for tests)
    """

    def __init__(
            self,
            price_store: PriceStore,
            spot_provider: SpotPriceProvider,
            full_history_tickers: Iterable[str] = DEFAULT_FULL_HISTORY_TICKERS,
            ticker_aliases: Mapping[str, str] | None = None,
            spot_timeout_seconds: float = SPOT_FETCH_TIMEOUT_SECONDS,
            spot_max_workers: int = SPOT_FETCH_MAX_WORKERS,
            cache: TTLCache[EquitySeriesResult] | None = None,
            today_provider: Callable[[], date] = date.today,
    ) -> None:
        self._price_store = price_store
        self._spot_provider = spot_provider
        self._aliases = dict(DEFAULT_TICKER_ALIASES if ticker_aliases is None else ticker_aliases)
        self._full_history = frozenset(normalize_ticker(t, self._aliases) for t in full_history_tickers)
        self._spot_timeout = spot_timeout_seconds
        self._spot_max_workers = spot_max_workers
        self._cache: TTLCache[EquitySeriesResult] = cache or TTLCache(name="equity-series")
        self._today_provider = today_provider

    @property
    def today(self) -> date:
        return self._today_provider()

    @property
    def full_history_tickers(self) -> frozenset[str]:
        return self._full_history

    def canonical(self, ticker: str) -> str:
        return normalize_ticker(ticker, self._aliases)

    def is_full_history(self, ticker: str) -> bool:
        return self.canonical(ticker) in self._full_history

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def build_series(self, transactions: Sequence[Transaction]) -> EquitySeriesResult:
        """
        Build the daily value series for a transaction list.

        Transactions need not be sorted. An empty list returns an empty
        series with a "No trades provided" warning.
        A result built while spot lookups errored or timed out is returned
        but not cached, so the next request retries them.
        """
        today = self.today

        if not transactions:
            return EquitySeriesResult(
                series=(),
                status=EquityEngineStatus(
                    valued_through=today,
                    warnings=("No trades provided",),
                    total_trades=0,
                ),
            )

        key = self._cache_key(transactions, today)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug(f"Series cache hit ({len(transactions)} trades)")
            return cached

        with self._cache.build_lock(key):
            cached = self._cache.get(key)
            if cached is not None:
                return cached

            result = self._build(transactions, today)
            degraded = [m.ticker for m in result.status.missing_prices if m.reason in TRANSIENT_FAILURES]
            if degraded:
                logger.warning(f"Series not cached, spot lookup failed for {', '.join(degraded)}")
            else:
                self._cache.set(key, result)

        logger.info(
            f"Built equity series: {len(result.series)} points from "
            f"{len(transactions)} trades, {len(result.status.warnings)} warnings"
        )
        return result

    def get_portfolio_value_on_date(self, transactions: Sequence[Transaction], on: date) -> Decimal:
        """Series value on an exact date, 0 when that date has no point."""
        result = self.build_series(transactions)
        for point in result.series:
            if point.date == on:
                return point.value
        return ZERO

    def get_latest_portfolio_value(self, transactions: Sequence[Transaction]) -> Decimal:
        """Value of the last series point, 0 for an empty series."""
        result = self.build_series(transactions)
        return result.series[-1].value if result.series else ZERO

    def clear_cache(self) -> int:
        """Drop all cached series. Returns the number of entries removed."""
        count = self._cache.clear()
        logger.info(f"Equity series cache cleared ({count} entries)")
        return count

    def resolve_price_for_date(
            self,
            ticker: str,
            on: date,
            history: Mapping[str, Mapping[date, Decimal]] | None = None,
            spot: Mapping[str, SpotSnapshot] | None = None,
    ) -> PriceResolution:
        """
        Resolve one ticker's price on one day by priority.

        Args:
            ticker: Symbol (aliases applied)
            on: Valuation date
            history: Preloaded closes (ticker -> date -> close); falls back
                     to the PriceStore when a date is not preloaded
            spot: Preloaded snapshots (ticker -> snapshot)
        """
        symbol = self.canonical(ticker)

        if symbol in self._full_history:
            history_end = self._price_store.get_history_end(symbol)
            if history_end is not None and on <= history_end:
                price = (history or {}).get(symbol, {}).get(on)
                if price is None:
                    price = self._price_store.get_close_for_date(symbol, on)
                if price is not None:
                    return PriceResolution(price=price, source=PriceSource.TIMESERIES)

        snapshot = (spot or {}).get(symbol)
        if snapshot is not None:
            return PriceResolution(price=snapshot.price, source=PriceSource.SPOT)

        return PriceResolution(price=None, source=PriceSource.MISSING)

    # =========================================================================
    # BUILD STEPS
    # =========================================================================

    def _build(self, transactions: Sequence[Transaction], today: date) -> EquitySeriesResult:
        warnings: list[str] = []
        missing: dict[str, MissingPrice] = {}

        ordered = sorted(transactions, key=lambda t: t.date)
        first_date = ordered[0].date
        calendar_end = max(today, ordered[-1].date)

        # Step 1: Partition tickers
        held_tickers = list(dict.fromkeys(
            self.canonical(t.ticker) for t in ordered if t.type.affects_shares
        ))
        full_tickers = [t for t in held_tickers if t in self._full_history]

        # Step 2: Batch preload
        history, trading_days, ranges = self._preload_history(
            full_tickers, first_date, calendar_end, warnings
        )
        spot_tickers = [
            t for t in held_tickers
            if self._may_need_spot(t, ranges.get(t), first_date, calendar_end)
        ]
        spot = self._preload_spot(spot_tickers, missing)

        # Step 3: Calendar
        calendar = sorted(set(trading_days) | {t.date for t in ordered} | {today})

        # Step 4: Replay
        combined = combine_same_day_trades(ordered, self._aliases)
        holdings: dict[str, Decimal] = {}
        raw_points: list[tuple[date, Decimal]] = []
        spot_valued: set[str] = set()
        bridged: set[date] = set()
        skipped: list[date] = []

        for day in calendar:
            for trade in combined.get(day, ()):
                held = holdings.get(trade.ticker, ZERO)
                updated = held + trade.quantity
                if updated < 0:
                    message = (
                        f"Sell of {-trade.quantity} {trade.ticker} on {day.isoformat()} "
                        f"exceeds holdings of {held}; position clamped to 0"
                    )
                    logger.warning(message)
                    warnings.append(message)
                    updated = ZERO
                holdings[trade.ticker] = updated

            total = ZERO
            priced = False
            held_any = False
            for ticker, shares in holdings.items():
                if shares <= 0:
                    continue
                held_any = True
                resolution = self.resolve_price_for_date(ticker, day, history, spot)
                if resolution.source == PriceSource.MISSING:
                    entry = MissingPrice(ticker=ticker, on=day)
                    missing.setdefault(str(entry), entry)
                    continue
                if resolution.source == PriceSource.SPOT:
                    spot_valued.add(ticker)
                    bridged.add(day)
                total += shares * resolution.price
                priced = True

            if priced:
                raw_points.append((day, total.quantize(CURRENCY_PRECISION)))
            elif held_any:
                skipped.append(day)

        if skipped:
            message = (
                f"Skipped {len(skipped)} day(s) with no priced holdings "
                f"({skipped[0].isoformat()} to {skipped[-1].isoformat()})"
            )
            logger.warning(message)
            warnings.append(message)

        # Step 5: Cumulative returns
        series = self._with_cumulative_returns(raw_points)

        # Step 6: Status
        valued_through = next(
            (p.date for p in reversed(series) if p.value > 0),
            first_date,
        )
        status = EquityEngineStatus(
            valued_through=valued_through,
            spot_valued_tickers=tuple(sorted(spot_valued)),
            bridged_dates=tuple(sorted(bridged)),
            missing_prices=tuple(missing.values()),
            warnings=tuple(warnings),
            total_trades=len(transactions),
            date_range=DateRange(start=first_date, end=calendar_end),
        )
        return EquitySeriesResult(series=tuple(series), status=status)

    def _preload_history(
            self,
            tickers: list[str],
            start: date,
            end: date,
            warnings: list[str],
    ) -> tuple[dict[str, dict[date, Decimal]], list[date], dict[str, DateRange]]:
        """Batch-load closes, trading days and ranges; failures become warnings."""
        if not tickers:
            return {}, [], {}

        try:
            history = self._price_store.batch_load_daily_closes(tickers, start, end)
            trading_days = self._price_store.get_trading_days(tickers, start, end)
            ranges = {}
            for ticker in tickers:
                date_range = self._price_store.get_ticker_date_range(ticker)
                if date_range is not None:
                    ranges[ticker] = date_range
        except Exception as e:
            logger.exception(f"Price history preload failed for {len(tickers)} tickers")
            warnings.append(f"Price history unavailable: {e}")
            return {}, [], {}

        for ticker in tickers:
            if ticker not in ranges:
                warnings.append(f"No price history for {ticker}; using spot price")

        return history, trading_days, ranges

    def _may_need_spot(
            self,
            ticker: str,
            date_range: DateRange | None,
            first_date: date,
            calendar_end: date,
    ) -> bool:
        if ticker not in self._full_history:
            return True
        if date_range is None:
            return True
        return date_range.start > first_date or date_range.end < calendar_end

    def _preload_spot(
            self,
            tickers: list[str],
            missing: dict[str, MissingPrice],
    ) -> dict[str, SpotSnapshot]:
        if not tickers:
            return {}

        fetched = fetch_spot_prices(
            self._spot_provider,
            tickers,
            timeout_seconds=self._spot_timeout,
            max_workers=self._spot_max_workers,
        )
        for ticker, reason in fetched.failures.items():
            entry = MissingPrice(ticker=ticker, reason=reason)
            missing.setdefault(str(entry), entry)
        return fetched.snapshots

    @staticmethod
    def _with_cumulative_returns(points: list[tuple[date, Decimal]]) -> list[DailyValuePoint]:
        if len(points) < 2 or points[0][1] <= 0:
            return [DailyValuePoint(date=d, value=v) for d, v in points]

        base = points[0][1]
        return [
            DailyValuePoint(
                date=d,
                value=v,
                cumulative_return=((v - base) / base * HUNDRED).quantize(PERCENTAGE_PRECISION),
            )
            for d, v in points
        ]

    # =========================================================================
    # CACHE KEY
    # =========================================================================

    def _cache_key(self, transactions: Iterable[Transaction], today: date) -> str:
        """
        SHA-256 over the sorted, normalized transactions and today's date.

        Decimals are normalized so 10 and 10.00 hash the same.
        """
        rows = sorted(
            "|".join((
                t.date.isoformat(),
                self.canonical(t.ticker),
                t.type.value,
                _decimal_text(t.quantity),
                _decimal_text(t.price),
                _decimal_text(t.fees),
            ))
            for t in transactions
        )
        digest = hashlib.sha256()
        digest.update(today.isoformat().encode())
        for row in rows:
            digest.update(b"\n")
            digest.update(row.encode())
        return digest.hexdigest()


def _decimal_text(value: Decimal | None) -> str:
    if value is None:
        return ""
    return format(value.normalize(), "f")
