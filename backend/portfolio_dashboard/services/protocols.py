# backend/portfolio_dashboard/services/protocols.py
"""
Protocol interfaces for service dependency injection.

Using typing.Protocol enables structural subtyping:
- Existing classes satisfy protocols without modification
- Test fakes work without explicit inheritance
"""

from __future__ import annotations

from collections.abc import Sequence
from datetime import date
from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from portfolio_dashboard.services.equity.types import EquitySeriesResult, Transaction
    from portfolio_dashboard.services.market_data.base import SpotSnapshot


class SpotPriceProvider(Protocol):
    """Interface required by the equity engine and live metrics for spot prices."""

    def get_snapshot(self, ticker: str) -> SpotSnapshot | None:
        ...


class EquitySeriesBuilder(Protocol):
    """Interface required by LiveMetricsAggregator."""

    @property
    def today(self) -> date:
        ...

    def build_series(self, transactions: Sequence[Transaction]) -> EquitySeriesResult:
        ...

    def canonical(self, ticker: str) -> str:
        ...

    def is_full_history(self, ticker: str) -> bool:
        ...
