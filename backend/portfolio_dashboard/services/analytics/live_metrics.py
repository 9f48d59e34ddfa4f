# backend/portfolio_dashboard/services/analytics/live_metrics.py
"""
Live dashboard metrics: hero total, returns, allocation and per-holding P/L.

The equity series answers "what was the portfolio worth on each day". The
dashboard header answers "what is it worth now", and must always show a
number. The two use different pricing policies:

    Series:       unpriced days are skipped
    Live metrics: every held position gets a price, falling back through
                  timeseries -> forward-filled close -> spot
                  -> last transaction price -> fixed fallback price

After both are computed, the series tail is reconciled with the live total
so the chart and the header never disagree.

Architecture:
    LiveMetricsAggregator
    ├── EquityEngine          (series + status)
    ├── PriceStore            (closes for full-history tickers)
    ├── SpotPriceProvider     (present-day snapshots)
    ├── positions.py          (positions derived from transactions)
    └── returns.py            (YTD, all-time, CAGR, return series)
"""

import logging
from collections.abc import Sequence
from dataclasses import dataclass, replace
from datetime import date
from decimal import Decimal

from portfolio_dashboard.services.analytics.returns import (
    compute_all_time_return,
    compute_cagr,
    compute_return_series,
    compute_ytd_return,
    validate_ytd_consistency,
)
from portfolio_dashboard.services.analytics.types import (
    AllocationSlice,
    HoldingPerformance,
    LiveDataMetrics,
    PositionValuation,
)
from portfolio_dashboard.services.constants import (
    CURRENCY_PRECISION,
    DEFAULT_FALLBACK_PRICE,
    HUNDRED,
    OVERWEIGHT_THRESHOLD_PCT,
    PERCENTAGE_PRECISION,
    RECONCILIATION_TOLERANCE,
    SPOT_FETCH_MAX_WORKERS,
    SPOT_FETCH_TIMEOUT_SECONDS,
    UNKNOWN_SECTOR,
    ZERO,
)
from portfolio_dashboard.services.equity.positions import (
    CostBasisMethod,
    DerivedPosition,
    compute_positions,
)
from portfolio_dashboard.services.equity.types import (
    DailyValuePoint,
    Position,
    PriceSource,
    Transaction,
)
from portfolio_dashboard.services.market_data.price_store import PriceStore
from portfolio_dashboard.services.market_data.spot import fetch_spot_prices
from portfolio_dashboard.services.protocols import EquitySeriesBuilder, SpotPriceProvider

logger = logging.getLogger(__name__)

NOTE_FORWARD_FILLED = "forward-filled close"
NOTE_LAST_TRADE = "last transaction price"
NOTE_FALLBACK = "fallback price"


@dataclass(frozen=True)
class _Priced:
    price: Decimal
    source: PriceSource
    note: str | None = None


class LiveMetricsAggregator:
    """
    Computes the full dashboard metric set for current positions.

    Example:
        aggregator = LiveMetricsAggregator(engine, price_store, spot_provider)
        metrics = aggregator.compute_live_metrics(positions, transactions)
        metrics.total_value     # hero number
        metrics.equity_series   # reconciled chart series
    """

    def __init__(
            self,
            engine: EquitySeriesBuilder,
            price_store: PriceStore,
            spot_provider: SpotPriceProvider,
            fallback_price: Decimal = DEFAULT_FALLBACK_PRICE,
            overweight_threshold_pct: Decimal = OVERWEIGHT_THRESHOLD_PCT,
            reconciliation_tolerance: Decimal = RECONCILIATION_TOLERANCE,
            currency: str = "USD",
            spot_timeout_seconds: float = SPOT_FETCH_TIMEOUT_SECONDS,
            spot_max_workers: int = SPOT_FETCH_MAX_WORKERS,
    ) -> None:
        self._engine = engine
        self._price_store = price_store
        self._spot_provider = spot_provider
        self._fallback_price = fallback_price
        self._overweight_threshold = overweight_threshold_pct
        self._tolerance = reconciliation_tolerance
        self._currency = currency
        self._spot_timeout = spot_timeout_seconds
        self._spot_max_workers = spot_max_workers

    # =========================================================================
    # PUBLIC API
    # =========================================================================

    def compute_live_metrics(
            self,
            positions: Sequence[Position] | None,
            transactions: Sequence[Transaction],
            valuation_date: date | None = None,
            cost_basis_method: CostBasisMethod = CostBasisMethod.FIFO,
    ) -> LiveDataMetrics:
        """
        Compute hero total, returns, allocation and holdings performance.

        Never raises on pricing problems; every fallback taken is listed in
        the result's warnings.

        Args:
            positions: Current holdings, or None to derive them from the
                transactions up to the valuation date
            transactions: Full transaction history
            valuation_date: Defaults to today
            cost_basis_method: Used only when positions are derived
        """
        valuation_date = valuation_date or self._engine.today
        warnings: list[str] = []

        if positions is None:
            derived = self.derive_positions(
                [t for t in transactions if t.date <= valuation_date],
                cost_basis_method,
            )
            positions = [p.to_position() for p in derived]
        positions = self.merge_positions(positions)

        # Step 1: Series
        series_result = self._engine.build_series(transactions)

        # Step 2: Value positions independently of the series
        valuations = self.value_positions(positions, valuation_date, warnings)
        total_value = sum((v.market_value for v in valuations), ZERO)

        # Step 3: Reconcile the series tail with the live total
        series = [p for p in series_result.series if p.date <= valuation_date]
        series, reconciled = self._reconcile(series, total_value, warnings)

        # Step 4: Returns
        ytd = compute_ytd_return(series, today=valuation_date)
        if series and not validate_ytd_consistency(ytd, total_value, self._tolerance):
            warnings.append(
                f"YTD current value {ytd.current_value} does not match total value {total_value}"
            )
        all_time = compute_all_time_return(series)
        cagr = compute_cagr(series)
        return_series = compute_return_series(series)

        # Step 5: Allocation and holdings
        by_ticker = {p.ticker: p for p in positions}
        allocation = self._build_allocation(valuations, by_ticker, total_value, warnings)
        holdings = self._build_holdings(valuations, by_ticker, total_value)

        # Step 6: Invariants
        self._check_invariants(series, holdings, total_value, warnings)

        logger.info(
            f"Live metrics: total={total_value} {self._currency}, "
            f"{len(valuations)} holdings, {len(series)} series points, "
            f"reconciled={reconciled}, {len(warnings)} warnings"
        )

        return LiveDataMetrics(
            total_value=total_value,
            ytd_return=ytd.ytd_return,
            ytd=ytd,
            all_time_return=all_time,
            cagr=cagr,
            current_holdings_count=len(valuations),
            valuation_date=valuation_date,
            currency=self._currency,
            equity_series=series,
            return_series=return_series,
            asset_allocation=allocation,
            holdings_performance=holdings,
            status=series_result.status,
            reconciled=reconciled,
            warnings=warnings,
        )

    def derive_positions(
            self,
            transactions: Sequence[Transaction],
            method: CostBasisMethod = CostBasisMethod.FIFO,
    ) -> list[DerivedPosition]:
        """Current positions rebuilt from transactions, keyed by canonical ticker."""
        return compute_positions(transactions, method, canonical=self._engine.canonical)

    def merge_positions(self, positions: Sequence[Position]) -> list[Position]:
        """
        Combine held positions that share a canonical ticker (e.g. GOOG and GOOGL).

        Shares and cost basis are summed; the first sector given wins and
        the last position's last_price is kept when it has one.
        """
        merged: dict[str, Position] = {}
        for position in positions:
            if position.shares <= 0:
                continue
            symbol = self._engine.canonical(position.ticker)
            existing = merged.get(symbol)
            if existing is None:
                merged[symbol] = replace(position, ticker=symbol)
                continue
            merged[symbol] = Position(
                ticker=symbol,
                shares=existing.shares + position.shares,
                cost_basis=existing.cost_basis + position.cost_basis,
                sector=existing.sector or position.sector,
                last_price=position.last_price or existing.last_price,
            )
        return list(merged.values())

    def value_positions(
            self,
            positions: Sequence[Position],
            valuation_date: date,
            warnings: list[str] | None = None,
    ) -> list[PositionValuation]:
        """
        Price every position with shares > 0.

        Timeseries prices are resolved first; spot snapshots are fetched in
        one bounded batch only for what is left.
        """
        if warnings is None:
            warnings = []

        held = [p for p in positions if p.shares > 0]
        priced: dict[str, _Priced] = {}

        for position in held:
            symbol = self._engine.canonical(position.ticker)
            result = self._price_from_history(symbol, valuation_date, warnings)
            if result is not None:
                priced[symbol] = result

        unresolved = list(dict.fromkeys(
            self._engine.canonical(p.ticker) for p in held
            if self._engine.canonical(p.ticker) not in priced
        ))
        if unresolved:
            fetched = fetch_spot_prices(
                self._spot_provider,
                unresolved,
                timeout_seconds=self._spot_timeout,
                max_workers=self._spot_max_workers,
            )
            for symbol, snapshot in fetched.snapshots.items():
                priced[symbol] = _Priced(price=snapshot.price, source=PriceSource.SPOT)

        valuations = []
        for position in held:
            symbol = self._engine.canonical(position.ticker)
            result = priced.get(symbol) or self._price_from_fallback(position, symbol, warnings)
            valuations.append(PositionValuation(
                ticker=symbol,
                shares=position.shares,
                price=result.price,
                price_source=result.source,
                market_value=(position.shares * result.price).quantize(CURRENCY_PRECISION),
                price_note=result.note,
            ))
        return valuations

    # =========================================================================
    # PRICING CHAIN
    # =========================================================================

    def _price_from_history(self, symbol: str, on: date, warnings: list[str]) -> _Priced | None:
        if not self._engine.is_full_history(symbol):
            return None

        date_range = self._price_store.get_ticker_date_range(symbol)
        if date_range is None:
            return None

        if date_range.contains(on):
            price = self._price_store.get_close_for_date(symbol, on)
            if price is not None:
                return _Priced(price=price, source=PriceSource.TIMESERIES)

        if on > date_range.end:
            price = self._price_store.get_latest_close(symbol)
            if price is not None:
                message = (
                    f"{symbol}: no close on {on.isoformat()}, "
                    f"using last close from {date_range.end.isoformat()}"
                )
                logger.warning(message)
                warnings.append(message)
                return _Priced(price=price, source=PriceSource.TIMESERIES, note=NOTE_FORWARD_FILLED)

        return None

    def _price_from_fallback(self, position: Position, symbol: str, warnings: list[str]) -> _Priced:
        if position.last_price is not None and position.last_price > 0:
            message = f"{symbol}: no market price, using last transaction price {position.last_price}"
            logger.warning(message)
            warnings.append(message)
            return _Priced(price=position.last_price, source=PriceSource.MISSING, note=NOTE_LAST_TRADE)

        message = f"{symbol}: no price available, using fallback price {self._fallback_price}"
        logger.warning(message)
        warnings.append(message)
        return _Priced(price=self._fallback_price, source=PriceSource.MISSING, note=NOTE_FALLBACK)

    # =========================================================================
    # RECONCILIATION
    # =========================================================================

    def _reconcile(
            self,
            series: list[DailyValuePoint],
            total_value: Decimal,
            warnings: list[str],
    ) -> tuple[list[DailyValuePoint], bool]:
        """Replace the series tail with the live total when they differ beyond tolerance."""
        if not series:
            return series, False

        tail = series[-1]
        if abs(tail.value - total_value) <= self._tolerance:
            return series, False

        message = (
            f"Series value {tail.value} on {tail.date.isoformat()} differs from live total "
            f"{total_value}; last point replaced with live total"
        )
        logger.warning(message)
        warnings.append(message)

        cumulative = None
        if len(series) >= 2 and series[0].value > 0:
            base = series[0].value
            cumulative = ((total_value - base) / base * HUNDRED).quantize(PERCENTAGE_PRECISION)

        series[-1] = DailyValuePoint(date=tail.date, value=total_value, cumulative_return=cumulative)
        return series, True

    # =========================================================================
    # BREAKDOWNS
    # =========================================================================

    def _build_allocation(
            self,
            valuations: list[PositionValuation],
            positions: dict[str, Position],
            total_value: Decimal,
            warnings: list[str],
    ) -> list[AllocationSlice]:
        by_sector: dict[str, list[PositionValuation]] = {}
        for valuation in valuations:
            sector = positions[valuation.ticker].sector or UNKNOWN_SECTOR
            by_sector.setdefault(sector, []).append(valuation)

            weight = _weight(valuation.market_value, total_value)
            if weight > self._overweight_threshold:
                message = (
                    f"{valuation.ticker} is {weight.quantize(Decimal('0.01'))}% of the portfolio "
                    f"(above {self._overweight_threshold}%)"
                )
                logger.warning(message)
                warnings.append(message)

        slices = []
        for sector, members in by_sector.items():
            value = sum((m.market_value for m in members), ZERO)
            slices.append(AllocationSlice(
                sector=sector,
                value=value,
                weight_pct=_weight(value, total_value),
                count=len(members),
            ))
        slices.sort(key=lambda s: s.value, reverse=True)
        return slices

    def _build_holdings(
            self,
            valuations: list[PositionValuation],
            positions: dict[str, Position],
            total_value: Decimal,
    ) -> list[HoldingPerformance]:
        holdings = []
        for valuation in valuations:
            position = positions[valuation.ticker]
            unrealized = valuation.market_value - position.cost_basis
            if position.cost_basis > 0:
                pl_pct = (unrealized / position.cost_basis * HUNDRED).quantize(PERCENTAGE_PRECISION)
            else:
                pl_pct = ZERO
            weight = _weight(valuation.market_value, total_value)

            holdings.append(HoldingPerformance(
                ticker=valuation.ticker,
                sector=position.sector or UNKNOWN_SECTOR,
                shares=valuation.shares,
                price=valuation.price,
                price_source=valuation.price_source,
                market_value=valuation.market_value,
                cost_basis=position.cost_basis,
                unrealized_pl=unrealized.quantize(CURRENCY_PRECISION),
                unrealized_pl_pct=pl_pct,
                weight_pct=weight,
                contribution_pct=(weight * pl_pct / HUNDRED).quantize(PERCENTAGE_PRECISION),
            ))
        holdings.sort(key=lambda h: h.market_value, reverse=True)
        return holdings

    def _check_invariants(
            self,
            series: list[DailyValuePoint],
            holdings: list[HoldingPerformance],
            total_value: Decimal,
            warnings: list[str],
    ) -> None:
        positions_sum = sum((h.market_value for h in holdings), ZERO)

        if series and abs(series[-1].value - positions_sum) > self._tolerance:
            message = f"Series tail {series[-1].value} does not match positions sum {positions_sum}"
            logger.error(message)
            warnings.append(message)

        if abs(total_value - positions_sum) > self._tolerance:
            message = f"Total value {total_value} does not match positions sum {positions_sum}"
            logger.error(message)
            warnings.append(message)


def _weight(value: Decimal, total: Decimal) -> Decimal:
    if total <= 0:
        return ZERO
    return (value / total * HUNDRED).quantize(PERCENTAGE_PRECISION)
