# backend/portfolio_dashboard/services/analytics/types.py
"""
Data types for return calculations and live dashboard metrics.

All money and percentage values use Decimal. Percentages are expressed in
percent (12.5 means 12.5%), matching what the dashboard displays.

Architecture:
    - SeriesPoint / DatedValue: input points for return calculations
    - WindowCAGRResult, CAGRResult, YTDResult, ReturnPoint: calculator outputs
    - PositionValuation, AllocationSlice, HoldingPerformance: live metric parts
    - LiveDataMetrics: full dashboard metric set
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Protocol

from portfolio_dashboard.services.equity.types import (
    DailyValuePoint,
    EquityEngineStatus,
    PriceSource,
)


class PeriodKind(str, Enum):
    """
    Granularity of a series, used to parse dates and build labels.

    Attributes:
        DAILY: ISO dates ("2024-03-15"), labels stay ISO dates
        QUARTERLY: "YYYY-Qn" or ISO dates, labels "YYYY-Qn"
        TTM: like QUARTERLY, labels "YYYY-Qn (TTM)"
        ANNUAL: "YYYY", labels "YYYY"
    """
    DAILY = "daily"
    QUARTERLY = "quarterly"
    TTM = "ttm"
    ANNUAL = "annual"


class CAGRNullReason(str, Enum):
    """Why a CAGR could not be computed."""
    INSUFFICIENT = "insufficient"
    NONPOSITIVE = "nonpositive"
    SHORT_SPAN = "shortspan"
    NONFINITE = "nonfinite"
    INVALID_WINDOW = "invalidwindow"


# =============================================================================
# INPUT TYPES
# =============================================================================

class DatedValue(Protocol):
    """Anything with a date (or period label) and a value."""

    @property
    def date(self) -> date | str:
        ...

    @property
    def value(self) -> Decimal | float | int | None:
        ...


@dataclass(frozen=True)
class SeriesPoint:
    """
    A labelled series value (e.g. fundamentals: "2023", "2023-Q4").

    Attributes:
        date: date or period label
        value: Numeric value (None for a missing observation)
    """
    date: date | str
    value: Decimal | float | int | None


# =============================================================================
# CAGR
# =============================================================================

@dataclass(frozen=True)
class WindowCAGRResult:
    """
    CAGR over a trailing N-year window.

    Attributes:
        cagr_pct: CAGR in percent, None when undefined
        start_label: Label of the chosen start point ("" when null)
        end_label: Label of the end point ("" when null)
        start_value: Value at the start point
        end_value: Value at the end point
        elapsed_years: Actual years between start and end (365.25-day years)
        null_reason: Why cagr_pct is None
    """
    cagr_pct: Decimal | None
    start_label: str = ""
    end_label: str = ""
    start_value: Decimal | None = None
    end_value: Decimal | None = None
    elapsed_years: Decimal | None = None
    null_reason: CAGRNullReason | None = None

    @classmethod
    def null(cls, reason: CAGRNullReason) -> WindowCAGRResult:
        return cls(cagr_pct=None, null_reason=reason)


@dataclass(frozen=True)
class CAGRResult:
    """
    Whole-series CAGR between the first and last valid points.

    Attributes:
        cagr_pct: CAGR in percent, None when undefined
        years: Elapsed years, rounded to 0.1
        start_value: First valid value
        end_value: Last valid value
    """
    cagr_pct: Decimal | None
    years: Decimal | None = None
    start_value: Decimal | None = None
    end_value: Decimal | None = None


# =============================================================================
# YTD / RETURN SERIES
# =============================================================================

@dataclass(frozen=True)
class YTDResult:
    """
    Year-to-date return.

    Attributes:
        ytd_return: Return in percent (0 when the baseline is not positive)
        baseline_date: Date of the baseline point
        baseline_value: Value at the baseline point
        current_value: Value of the last point
        calculation_date: "Today" used to pick the current year
    """
    ytd_return: Decimal
    baseline_date: date | None
    baseline_value: Decimal
    current_value: Decimal
    calculation_date: date


@dataclass(frozen=True)
class ReturnPoint:
    """Cumulative return (percent) relative to the first point."""
    date: date
    return_pct: Decimal


# =============================================================================
# LIVE METRICS
# =============================================================================

@dataclass(frozen=True)
class PositionValuation:
    """
    Current market value of one position.

    Attributes:
        ticker: Symbol
        shares: Shares held
        price: Price used
        price_source: timeseries / spot / missing (fallback or last trade price)
        price_note: How the price was obtained when not a direct lookup
        market_value: shares x price
    """
    ticker: str
    shares: Decimal
    price: Decimal
    price_source: PriceSource
    market_value: Decimal
    price_note: str | None = None


@dataclass(frozen=True)
class AllocationSlice:
    """Market value grouped by sector."""
    sector: str
    value: Decimal
    weight_pct: Decimal
    count: int


@dataclass(frozen=True)
class HoldingPerformance:
    """
    Per-position performance.

    Attributes:
        ticker: Symbol
        sector: Sector label
        shares: Shares held
        price: Current price
        price_source: Provenance of the price
        market_value: shares x price
        cost_basis: Total cost of the held shares
        unrealized_pl: market_value - cost_basis
        unrealized_pl_pct: unrealized_pl / cost_basis x 100 (0 when cost basis <= 0)
        weight_pct: market_value / total x 100
        contribution_pct: weight x return, in percentage points of the portfolio
    """
    ticker: str
    sector: str
    shares: Decimal
    price: Decimal
    price_source: PriceSource
    market_value: Decimal
    cost_basis: Decimal
    unrealized_pl: Decimal
    unrealized_pl_pct: Decimal
    weight_pct: Decimal
    contribution_pct: Decimal


@dataclass
class LiveDataMetrics:
    """
    Full dashboard metric set.

    Attributes:
        total_value: Sum of position market values (the "hero" number)
        ytd_return: YTD return in percent
        ytd: Full YTD calculation
        all_time_return: All-time return in percent
        cagr: Whole-series CAGR
        current_holdings_count: Positions with shares > 0
        valuation_date: Date the metrics were computed for
        currency: Reporting currency
        equity_series: Series after reconciliation
        return_series: Cumulative returns of the reconciled series
        asset_allocation: Sector allocation, largest first
        holdings_performance: Per-position performance, largest first
        status: Engine status of the underlying series build
        reconciled: True when the series tail was replaced by total_value
        warnings: Aggregator warnings (pricing fallbacks, reconciliation, invariants)
    """
    total_value: Decimal
    ytd_return: Decimal
    ytd: YTDResult
    all_time_return: Decimal
    cagr: CAGRResult
    current_holdings_count: int
    valuation_date: date
    currency: str
    equity_series: list[DailyValuePoint]
    return_series: list[ReturnPoint]
    asset_allocation: list[AllocationSlice]
    holdings_performance: list[HoldingPerformance]
    status: EquityEngineStatus
    reconciled: bool = False
    warnings: list[str] = field(default_factory=list)
