# backend/portfolio_dashboard/services/equity/types.py
"""
Internal data types for the equity engine.

These dataclasses are used by the engine, the benchmark builder and the
live metrics aggregator. They are NOT Pydantic schemas - those live in
portfolio_dashboard/schemas/ for API serialization.

Design Principles:
- Immutable (frozen=True): results are shared through the series cache
- Decimal for ALL money, share and price values (never float)
- date (not datetime) for valuation dates
- Anomalies are reported in EquityEngineStatus, never raised

Type Hierarchy:
    Transaction          - One user trade or cash event
    Position             - Current holding used for live metrics
    PriceResolution      - Price + provenance for one ticker on one day
    DailyValuePoint      - One point of the value series
    MissingPrice         - A ticker/date that could not be priced
    EquityEngineStatus   - Diagnostics for a built series
    EquitySeriesResult   - Series + status
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from portfolio_dashboard.services.exceptions import InvalidTransactionError
from portfolio_dashboard.services.market_data.base import DateRange


# =============================================================================
# TRANSACTIONS & POSITIONS
# =============================================================================

class TransactionType(str, enum.Enum):
    """
    Transaction types.

    Only BUY and SELL change share counts. The other types are accepted so
    full broker exports can be passed through; their dates still enter the
    valuation calendar.
    """

    BUY = "BUY"
    SELL = "SELL"
    DIVIDEND = "DIVIDEND"
    CASH_IN = "CASH_IN"
    CASH_OUT = "CASH_OUT"
    SPLIT = "SPLIT"

    @property
    def affects_shares(self) -> bool:
        return self in (TransactionType.BUY, TransactionType.SELL)


@dataclass(frozen=True)
class Transaction:
    """
    A single trade or cash event.

    Attributes:
        date: Trade date
        ticker: Uppercase symbol as entered (aliases resolved by the engine)
        type: Transaction type
        quantity: Share count magnitude (never negative; SELL is signed by type)
        price: Price per share (required and positive for BUY/SELL)
        fees: Commission, added to BUY cost and deducted from SELL proceeds

    Raises:
        InvalidTransactionError: On an empty ticker, negative quantity or
            missing price for a trade
    """

    date: date
    ticker: str
    type: TransactionType
    quantity: Decimal
    price: Decimal | None = None
    fees: Decimal = Decimal("0")

    def __post_init__(self) -> None:
        ticker = self.ticker.strip().upper()
        if not ticker:
            raise InvalidTransactionError("ticker is required", trade_date=self.date, field="ticker")
        object.__setattr__(self, "ticker", ticker)

        if self.quantity < 0:
            raise InvalidTransactionError(
                f"quantity must not be negative, got {self.quantity}",
                ticker=ticker, trade_date=self.date, field="quantity",
            )
        if self.fees < 0:
            raise InvalidTransactionError(
                f"fees must not be negative, got {self.fees}",
                ticker=ticker, trade_date=self.date, field="fees",
            )
        if self.type.affects_shares and (self.price is None or self.price <= 0):
            raise InvalidTransactionError(
                f"{self.type.value} requires a positive price",
                ticker=ticker, trade_date=self.date, field="price",
            )

    @property
    def signed_quantity(self) -> Decimal:
        """+quantity for BUY, -quantity for SELL, 0 otherwise."""
        if self.type == TransactionType.BUY:
            return self.quantity
        if self.type == TransactionType.SELL:
            return -self.quantity
        return Decimal("0")


@dataclass(frozen=True)
class Position:
    """
    A current holding as shown on the dashboard.

    Attributes:
        ticker: Symbol
        shares: Shares held
        cost_basis: Total cost of the held shares
        sector: Sector label (None -> "Unknown")
        last_price: Price of the last transaction, used as a pricing fallback
    """

    ticker: str
    shares: Decimal
    cost_basis: Decimal
    sector: str | None = None
    last_price: Decimal | None = None


# =============================================================================
# PRICING
# =============================================================================

class PriceSource(str, enum.Enum):
    """Where a day's price for a ticker came from."""

    TIMESERIES = "timeseries"
    SPOT = "spot"
    MISSING = "missing"


@dataclass(frozen=True)
class PriceResolution:
    """Resolved price (None when missing) and its provenance."""

    price: Decimal | None
    source: PriceSource

    @property
    def is_priced(self) -> bool:
        return self.price is not None


@dataclass(frozen=True)
class MissingPrice:
    """
    A ticker that could not be priced.

    Attributes:
        ticker: Symbol
        on: Day that could not be priced (None for a failed spot lookup)
        reason: Short reason ("no price", "no spot price", "spot price error", ...)
    """

    ticker: str
    on: date | None = None
    reason: str = "no price"

    def __str__(self) -> str:
        if self.on is not None:
            return f"{self.ticker} on {self.on.isoformat()}"
        return f"{self.ticker} ({self.reason})"


# =============================================================================
# SERIES RESULT
# =============================================================================

@dataclass(frozen=True)
class DailyValuePoint:
    """
    Portfolio value on one day.

    Attributes:
        date: Valuation date
        value: Sum of shares x price over priced tickers
        cumulative_return: % change from the first point (None when undefined)
    """

    date: date
    value: Decimal
    cumulative_return: Decimal | None = None


@dataclass(frozen=True)
class EquityEngineStatus:
    """
    Diagnostics for a built series.

    Attributes:
        valued_through: Latest date with a positive value
        spot_valued_tickers: Tickers priced from a bridged spot price
        bridged_dates: Dates on which at least one spot price was used
        missing_prices: Unpriced ticker/day pairs and failed spot lookups
        warnings: Human-readable anomalies (oversell, skipped days, ...)
        total_trades: Number of input transactions
        date_range: First trade date to the end of the calendar
    """

    valued_through: date
    spot_valued_tickers: tuple[str, ...] = ()
    bridged_dates: tuple[date, ...] = ()
    missing_prices: tuple[MissingPrice, ...] = ()
    warnings: tuple[str, ...] = ()
    total_trades: int = 0
    date_range: DateRange | None = None


@dataclass(frozen=True)
class EquitySeriesResult:
    """Daily value series and its diagnostics."""

    series: tuple[DailyValuePoint, ...]
    status: EquityEngineStatus

    @property
    def is_empty(self) -> bool:
        return not self.series

    @property
    def latest(self) -> DailyValuePoint | None:
        return self.series[-1] if self.series else None
