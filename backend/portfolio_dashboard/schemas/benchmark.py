# backend/portfolio_dashboard/schemas/benchmark.py
"""Pydantic schemas for the synthetic benchmark."""

import datetime as dt
from decimal import Decimal

from pydantic import BaseModel, Field, model_validator

from portfolio_dashboard.schemas.transactions import TransactionIn
from portfolio_dashboard.services.constants import MAX_BATCH_SIZE


class BenchmarkRequest(BaseModel):
    """
    Transactions to mirror into the benchmark.

    start_date defaults to the first trade date, end_date to today.
    """

    transactions: list[TransactionIn] = Field(
        default_factory=list,
        max_length=MAX_BATCH_SIZE,
    )
    start_date: dt.date | None = None
    end_date: dt.date | None = None

    @model_validator(mode='after')
    def validate_range(self) -> 'BenchmarkRequest':
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError(
                f"start_date ({self.start_date}) must be on or before end_date ({self.end_date})"
            )
        return self


class BenchmarkPointResponse(BaseModel):
    date: dt.date
    value: Decimal
    shares: Decimal
    close: Decimal


class BenchmarkResponse(BaseModel):
    ticker: str
    points: list[BenchmarkPointResponse]
    status: str
    warnings: list[str] = Field(default_factory=list)
