# backend/portfolio_dashboard/schemas/equity.py
"""
Pydantic schemas for the equity series endpoints.

These schemas handle:
- Series build requests (a transaction list)
- The daily value series with per-point cumulative return
- Engine diagnostics (spot-valued tickers, missing prices, warnings)
- Single-value lookups and cache maintenance
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field

from portfolio_dashboard.schemas.transactions import TransactionIn
from portfolio_dashboard.services.constants import MAX_BATCH_SIZE


# =============================================================================
# REQUEST SCHEMAS
# =============================================================================

class EquitySeriesRequest(BaseModel):
    """Transactions to value. Order does not matter."""

    transactions: list[TransactionIn] = Field(
        default_factory=list,
        max_length=MAX_BATCH_SIZE,
        description="All trades and cash events of the portfolio"
    )


# =============================================================================
# RESPONSE SCHEMAS
# =============================================================================

class DailyValuePointResponse(BaseModel):
    """Portfolio value on one day."""

    date: dt.date
    value: Decimal = Field(..., description="Sum of shares x price over priced tickers")
    cumulative_return: Decimal | None = Field(
        default=None,
        description="% change from the first point (None when undefined)"
    )


class MissingPriceResponse(BaseModel):
    """A ticker (and day) that could not be priced."""

    ticker: str
    date: dt.date | None = Field(default=None, description="None for a failed spot lookup")
    reason: str
    label: str = Field(..., description="Display form, e.g. 'AAPL on 2024-01-02'")


class DateRangeResponse(BaseModel):
    start: dt.date
    end: dt.date


class EquityStatusResponse(BaseModel):
    """Diagnostics for a built series."""

    valued_through: dt.date = Field(..., description="Latest date with a positive value")
    spot_valued_tickers: list[str] = Field(default_factory=list)
    bridged_dates: list[dt.date] = Field(default_factory=list)
    missing_prices: list[MissingPriceResponse] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    total_trades: int = 0
    date_range: DateRangeResponse | None = None


class EquitySeriesResponse(BaseModel):
    """Daily value series and its diagnostics."""

    series: list[DailyValuePointResponse]
    status: EquityStatusResponse


class PortfolioValueResponse(BaseModel):
    """A single portfolio value."""

    date: dt.date | None = Field(default=None, description="Date of the value (None for an empty series)")
    value: Decimal


class CacheClearResponse(BaseModel):
    cleared: int = Field(..., description="Number of cached series removed")
