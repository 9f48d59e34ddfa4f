# backend/portfolio_dashboard/schemas/transactions.py
"""
Request schemas for transactions and positions.

Validation layers:
- Field constraints: type, sign, numeric limits
- Field validators: normalization (uppercase, trim)
- Model validator: BUY/SELL require a price

IMPORTANT: All financial values use Decimal for precision.
Never use float for money!
"""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field, field_validator, model_validator

from portfolio_dashboard.schemas.validators import validate_ticker
from portfolio_dashboard.services.equity.types import Position, Transaction, TransactionType


class TransactionIn(BaseModel):
    """One trade or cash event as sent by the dashboard."""

    date: dt.date = Field(
        ...,
        description="Trade date",
        examples=["2024-03-15"]
    )

    ticker: str = Field(
        ...,
        min_length=1,
        max_length=20,
        description="Trading symbol (e.g., 'AAPL')",
        examples=["AAPL", "GOOG", "VTI"]
    )

    type: TransactionType = Field(
        ...,
        description="Transaction type",
        examples=["BUY", "SELL"]
    )

    quantity: Decimal = Field(
        ...,
        ge=0,
        max_digits=20,
        decimal_places=8,
        description="Number of shares (magnitude; SELL is signed by type)",
        examples=["10", "0.5"]
    )

    price: Decimal | None = Field(
        default=None,
        gt=0,
        max_digits=20,
        decimal_places=8,
        description="Price per share (required for BUY and SELL)",
        examples=["150.25"]
    )

    fees: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        max_digits=20,
        decimal_places=8,
        description="Commission (0 or positive)",
        examples=["0", "1.50"]
    )

    @field_validator('ticker')
    @classmethod
    def validate_and_normalize_ticker(cls, v: str) -> str:
        return validate_ticker(v)

    @field_validator('type', mode='before')
    @classmethod
    def normalize_type(cls, v: object) -> object:
        """Accept 'buy' as well as 'BUY'."""
        if isinstance(v, str):
            return v.strip().upper()
        return v

    @model_validator(mode='after')
    def require_price_for_trades(self) -> 'TransactionIn':
        if self.type.affects_shares and self.price is None:
            raise ValueError(f"price is required for {self.type.value} transactions")
        return self

    def to_domain(self) -> Transaction:
        return Transaction(
            date=self.date,
            ticker=self.ticker,
            type=self.type,
            quantity=self.quantity,
            price=self.price,
            fees=self.fees,
        )


class PositionIn(BaseModel):
    """A current holding, as shown in the dashboard's holdings table."""

    ticker: str = Field(
        ...,
        min_length=1,
        max_length=20,
        description="Trading symbol",
        examples=["AAPL"]
    )

    shares: Decimal = Field(
        ...,
        ge=0,
        description="Shares currently held",
        examples=["25"]
    )

    cost_basis: Decimal = Field(
        default=Decimal("0"),
        ge=0,
        description="Total cost of the held shares",
        examples=["3750.00"]
    )

    sector: str | None = Field(
        default=None,
        max_length=100,
        description="Sector label (omitted -> 'Unknown')",
        examples=["Technology"]
    )

    last_price: Decimal | None = Field(
        default=None,
        gt=0,
        description="Price of the most recent trade, used when no market price exists"
    )

    @field_validator('ticker')
    @classmethod
    def validate_and_normalize_ticker(cls, v: str) -> str:
        return validate_ticker(v)

    @field_validator('sector')
    @classmethod
    def normalize_sector(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None

    def to_domain(self) -> Position:
        return Position(
            ticker=self.ticker,
            shares=self.shares,
            cost_basis=self.cost_basis,
            sector=self.sector,
            last_price=self.last_price,
        )
