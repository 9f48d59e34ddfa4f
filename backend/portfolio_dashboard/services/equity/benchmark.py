# backend/portfolio_dashboard/services/equity/benchmark.py
"""
Synthetic benchmark: the user's cash flows replayed into one index ETF.

Every BUY in the portfolio is mirrored as a purchase of the benchmark
(default SPY) for the same cash amount on the same day, every SELL as a
sale. The resulting benchmark value line answers "what if all this money
had gone into the index instead".

Cash flow per trade:
    BUY:  -(quantity x price + fees)  -> buys (notional + fees) / close shares
    SELL:  (quantity x price - fees)  -> sells (notional - fees) / close shares,
                                         capped at the shares held
"""

from __future__ import annotations

import logging
from bisect import bisect_right
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from portfolio_dashboard.services.constants import CURRENCY_PRECISION, SHARE_PRECISION, ZERO
from portfolio_dashboard.services.equity.types import Transaction, TransactionType
from portfolio_dashboard.services.market_data.price_store import PriceStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BenchmarkPoint:
    """Benchmark holding on one day: value = shares x close."""

    date: date
    value: Decimal
    shares: Decimal
    close: Decimal


@dataclass(frozen=True)
class BenchmarkResult:
    """
    Benchmark series and a one-line status.

    Attributes:
        points: One point per calendar day with a (forward-filled) close
        status: Summary shown next to the benchmark line
        warnings: Skipped or capped trades
    """

    points: tuple[BenchmarkPoint, ...]
    status: str
    warnings: tuple[str, ...] = ()


class SyntheticBenchmarkBuilder:
    """
    Builds the synthetic benchmark series from a transaction list.

    Example:
        builder = SyntheticBenchmarkBuilder(price_store)
        result = builder.build(transactions, date(2023, 1, 1), date(2024, 1, 1))
    """

    def __init__(self, price_store: PriceStore, ticker: str = "SPY") -> None:
        self._price_store = price_store
        self._ticker = ticker.upper()

    @property
    def ticker(self) -> str:
        return self._ticker

    def build(
            self,
            transactions: Sequence[Transaction],
            start_date: date,
            end_date: date,
    ) -> BenchmarkResult:
        if not transactions:
            return BenchmarkResult(points=(), status=f"No trades provided for {self._ticker} benchmark")

        closes = self._price_store.get_daily_closes(self._ticker, start_date, end_date)
        if not closes:
            logger.warning(f"No {self._ticker} price data available for benchmark")
            return BenchmarkResult(points=(), status=f"No {self._ticker} price data available")

        close_dates = [c.date for c in closes]
        close_by_date = {c.date: c.close for c in closes}
        warnings: list[str] = []

        # Share count after each trade date, in date order
        timeline: list[tuple[date, Decimal]] = []
        shares = ZERO
        trades = [t for t in sorted(transactions, key=lambda t: t.date) if t.type.affects_shares]

        for trade in trades:
            close = close_by_date.get(trade.date)
            if close is None:
                idx = bisect_right(close_dates, trade.date) - 1
                if idx < 0:
                    message = (
                        f"No {self._ticker} close on or before {trade.date.isoformat()}; "
                        f"{trade.type.value} {trade.ticker} skipped"
                    )
                    logger.warning(message)
                    warnings.append(message)
                    continue
                close = closes[idx].close

            notional = trade.quantity * trade.price
            if trade.type == TransactionType.BUY:
                shares += (notional + trade.fees) / close
            else:
                to_sell = (notional - trade.fees) / close
                if to_sell > shares:
                    message = (
                        f"{trade.type.value} {trade.ticker} on {trade.date.isoformat()} exceeds "
                        f"benchmark shares held; capped"
                    )
                    logger.warning(message)
                    warnings.append(message)
                    to_sell = shares
                shares -= to_sell

            timeline.append((trade.date, shares))

        timeline_dates = [d for d, _ in timeline]
        points = []
        for close in closes:
            idx = bisect_right(timeline_dates, close.date) - 1
            held = timeline[idx][1] if idx >= 0 else ZERO
            points.append(BenchmarkPoint(
                date=close.date,
                value=(held * close.close).quantize(CURRENCY_PRECISION),
                shares=held.quantize(SHARE_PRECISION),
                close=close.close,
            ))

        status = f"{self._ticker} benchmark built with {len(points)} points from {len(trades)} trades"
        logger.info(status)
        return BenchmarkResult(points=tuple(points), status=status, warnings=tuple(warnings))
