# backend/portfolio_dashboard/schemas/metrics.py
"""
Pydantic schemas for live dashboard metrics and CAGR.

These schemas handle:
- Live metrics requests (current positions + transaction history)
- Positions derived from transactions (FIFO, LIFO or average cost)
- Hero total, YTD, all-time return and whole-series CAGR
- Sector allocation and per-holding performance
- Window CAGR for labelled series (annual, quarterly, TTM)
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field

from portfolio_dashboard.schemas.equity import (
    DailyValuePointResponse,
    EquityStatusResponse,
)
from portfolio_dashboard.schemas.transactions import PositionIn, TransactionIn
from portfolio_dashboard.services.analytics.types import CAGRNullReason, PeriodKind
from portfolio_dashboard.services.constants import MAX_BATCH_SIZE
from portfolio_dashboard.services.equity.positions import CostBasisMethod
from portfolio_dashboard.services.equity.types import PriceSource


# =============================================================================
# LIVE METRICS
# =============================================================================

class LiveMetricsRequest(BaseModel):
    """Current positions and the transactions that produced them."""

    positions: list[PositionIn] | None = Field(
        default=None,
        max_length=MAX_BATCH_SIZE,
        description="Omit to derive positions from the transactions"
    )
    transactions: list[TransactionIn] = Field(
        default_factory=list,
        max_length=MAX_BATCH_SIZE,
    )
    valuation_date: dt.date | None = Field(
        default=None,
        description="Defaults to today"
    )
    cost_basis_method: CostBasisMethod = Field(
        default=CostBasisMethod.FIFO,
        description="Used when positions are derived from the transactions"
    )


class PositionsRequest(BaseModel):
    """Transactions to rebuild current positions from."""

    transactions: list[TransactionIn] = Field(
        default_factory=list,
        max_length=MAX_BATCH_SIZE,
    )
    cost_basis_method: CostBasisMethod = Field(default=CostBasisMethod.FIFO)


class DerivedPositionResponse(BaseModel):
    ticker: str
    shares: Decimal
    cost_basis: Decimal
    average_cost: Decimal
    realized_gain: Decimal
    last_price: Decimal | None


class PositionsResponse(BaseModel):
    cost_basis_method: CostBasisMethod
    positions: list[DerivedPositionResponse]


class YTDResponse(BaseModel):
    ytd_return: Decimal = Field(..., description="YTD return in percent")
    baseline_date: dt.date | None
    baseline_value: Decimal
    current_value: Decimal
    calculation_date: dt.date


class CAGRResponse(BaseModel):
    cagr_pct: Decimal | None = Field(..., description="CAGR in percent (None when undefined)")
    years: Decimal | None = None
    start_value: Decimal | None = None
    end_value: Decimal | None = None


class ReturnPointResponse(BaseModel):
    date: dt.date
    return_pct: Decimal


class AllocationSliceResponse(BaseModel):
    sector: str
    value: Decimal
    weight_pct: Decimal
    count: int


class HoldingPerformanceResponse(BaseModel):
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
    contribution_pct: Decimal = Field(
        ...,
        description="Contribution to portfolio return, in percentage points"
    )


class LiveMetricsResponse(BaseModel):
    """Full dashboard metric set."""

    total_value: Decimal = Field(..., description="Sum of position market values")
    ytd_return: Decimal
    ytd: YTDResponse
    all_time_return: Decimal
    cagr: CAGRResponse
    current_holdings_count: int
    valuation_date: dt.date
    currency: str
    equity_series: list[DailyValuePointResponse]
    return_series: list[ReturnPointResponse]
    asset_allocation: list[AllocationSliceResponse]
    holdings_performance: list[HoldingPerformanceResponse]
    status: EquityStatusResponse
    reconciled: bool = Field(..., description="True when the series tail was replaced by total_value")
    warnings: list[str]


# =============================================================================
# WINDOW CAGR
# =============================================================================

class SeriesPointIn(BaseModel):
    """A labelled value: date may be 'YYYY', 'YYYY-Qn' or 'YYYY-MM-DD'."""

    date: dt.date | str = Field(..., examples=["2023", "2023-Q4", "2023-12-29"])
    value: float | None = Field(default=None, description="None for a missing observation")


class WindowCAGRRequest(BaseModel):
    points: list[SeriesPointIn] = Field(
        default_factory=list,
        max_length=MAX_BATCH_SIZE,
    )
    window_years: int = Field(..., gt=0, le=100, examples=[1, 3, 5, 10])
    period_kind: PeriodKind = Field(default=PeriodKind.DAILY)


class WindowCAGRResponse(BaseModel):
    cagr_pct: Decimal | None
    start_label: str
    end_label: str
    start_value: Decimal | None = None
    end_value: Decimal | None = None
    elapsed_years: Decimal | None = None
    null_reason: CAGRNullReason | None = None
