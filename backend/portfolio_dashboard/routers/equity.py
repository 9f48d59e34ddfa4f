# backend/portfolio_dashboard/routers/equity.py
"""
Equity series endpoints.

- POST /equity/series - Daily value series with pricing diagnostics
- POST /equity/value?on=YYYY-MM-DD - Portfolio value on one date
- POST /equity/latest-value - Value of the last series point
- DELETE /equity/cache - Drop cached series

The transaction list travels in the request body because the dashboard
holds it client-side (uploaded CSV); nothing is persisted here.
"""

from datetime import date

from fastapi import APIRouter, Depends, Query, Request

from portfolio_dashboard.dependencies import get_equity_engine
from portfolio_dashboard.middleware.rate_limit import RATE_LIMIT_ANALYTICS, RATE_LIMIT_WRITE, limiter
from portfolio_dashboard.schemas.equity import (
    CacheClearResponse,
    DailyValuePointResponse,
    DateRangeResponse,
    EquitySeriesRequest,
    EquitySeriesResponse,
    EquityStatusResponse,
    MissingPriceResponse,
    PortfolioValueResponse,
)
from portfolio_dashboard.services.equity.engine import EquityEngine
from portfolio_dashboard.services.equity.types import (
    DailyValuePoint,
    EquityEngineStatus,
    MissingPrice,
)
from portfolio_dashboard.services.market_data.base import DateRange

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/equity",
    tags=["Equity"],
)


# =============================================================================
# MAPPER FUNCTIONS (Internal Types -> Pydantic Schemas)
# =============================================================================

def map_date_range(date_range: DateRange | None) -> DateRangeResponse | None:
    if date_range is None:
        return None
    return DateRangeResponse(start=date_range.start, end=date_range.end)


def map_value_point(point: DailyValuePoint) -> DailyValuePointResponse:
    return DailyValuePointResponse(
        date=point.date,
        value=point.value,
        cumulative_return=point.cumulative_return,
    )


def _map_missing_price(entry: MissingPrice) -> MissingPriceResponse:
    return MissingPriceResponse(
        ticker=entry.ticker,
        date=entry.on,
        reason=entry.reason,
        label=str(entry),
    )


def map_status(status: EquityEngineStatus) -> EquityStatusResponse:
    """Map internal EquityEngineStatus to Pydantic schema."""
    return EquityStatusResponse(
        valued_through=status.valued_through,
        spot_valued_tickers=list(status.spot_valued_tickers),
        bridged_dates=list(status.bridged_dates),
        missing_prices=[_map_missing_price(m) for m in status.missing_prices],
        warnings=list(status.warnings),
        total_trades=status.total_trades,
        date_range=map_date_range(status.date_range),
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post(
    "/series",
    response_model=EquitySeriesResponse,
    summary="Build the daily equity series",
)
@limiter.limit(RATE_LIMIT_ANALYTICS)
def build_series(
        request: Request,  # Required for rate limiting
        body: EquitySeriesRequest,
        engine: EquityEngine = Depends(get_equity_engine),
) -> EquitySeriesResponse:
    """
    Build the portfolio's daily value series.

    Full-history tickers are valued from daily closes, everything else from
    a spot price bridged across the series. Days without any priced holding
    are skipped. Missing prices and anomalies are listed in **status**.
    """
    result = engine.build_series([t.to_domain() for t in body.transactions])

    return EquitySeriesResponse(
        series=[map_value_point(p) for p in result.series],
        status=map_status(result.status),
    )


@router.post(
    "/value",
    response_model=PortfolioValueResponse,
    summary="Portfolio value on a date",
)
@limiter.limit(RATE_LIMIT_ANALYTICS)
def get_value_on_date(
        request: Request,  # Required for rate limiting
        body: EquitySeriesRequest,
        on: date = Query(..., description="Valuation date (YYYY-MM-DD)"),
        engine: EquityEngine = Depends(get_equity_engine),
) -> PortfolioValueResponse:
    """Series value on exactly `on`; 0 when the series has no point that day."""
    value = engine.get_portfolio_value_on_date([t.to_domain() for t in body.transactions], on)
    return PortfolioValueResponse(date=on, value=value)


@router.post(
    "/latest-value",
    response_model=PortfolioValueResponse,
    summary="Latest portfolio value",
)
@limiter.limit(RATE_LIMIT_ANALYTICS)
def get_latest_value(
        request: Request,  # Required for rate limiting
        body: EquitySeriesRequest,
        engine: EquityEngine = Depends(get_equity_engine),
) -> PortfolioValueResponse:
    """Value of the last series point; 0 (and no date) for an empty series."""
    transactions = [t.to_domain() for t in body.transactions]
    value = engine.get_latest_portfolio_value(transactions)

    # Served from the series cache
    latest = engine.build_series(transactions).latest
    return PortfolioValueResponse(date=latest.date if latest else None, value=value)


@router.delete(
    "/cache",
    response_model=CacheClearResponse,
    summary="Clear the series cache",
)
@limiter.limit(RATE_LIMIT_WRITE)
def clear_cache(
        request: Request,  # Required for rate limiting
        engine: EquityEngine = Depends(get_equity_engine),
) -> CacheClearResponse:
    return CacheClearResponse(cleared=engine.clear_cache())
