# backend/portfolio_dashboard/schemas/prices.py
"""Pydantic schemas for price data status."""

import datetime as dt

from pydantic import BaseModel, Field

from portfolio_dashboard.schemas.equity import DateRangeResponse


class PriceStoreStatusResponse(BaseModel):
    """What the price store has loaded and what it could not find."""

    tickers_loaded: list[str]
    missing_tickers: list[str] = Field(default_factory=list)
    missing_prices: list[str] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    last_updated: dt.datetime | None = None
    date_range: DateRangeResponse | None = None
