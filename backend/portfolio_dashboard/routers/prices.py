# backend/portfolio_dashboard/routers/prices.py
"""
Price data endpoints.

- GET /prices/status - Loaded tickers, history range, missing data and load warnings
"""

from fastapi import APIRouter, Depends, Request

from portfolio_dashboard.dependencies import get_price_store
from portfolio_dashboard.middleware.rate_limit import RATE_LIMIT_DEFAULT, limiter
from portfolio_dashboard.routers.equity import map_date_range
from portfolio_dashboard.schemas.prices import PriceStoreStatusResponse
from portfolio_dashboard.services.market_data.price_store import PriceStore

router = APIRouter(
    prefix="/prices",
    tags=["Prices"],
)


@router.get(
    "/status",
    response_model=PriceStoreStatusResponse,
    summary="Price data status",
)
@limiter.limit(RATE_LIMIT_DEFAULT)
def get_price_status(
        request: Request,  # Required for rate limiting
        store: PriceStore = Depends(get_price_store),
) -> PriceStoreStatusResponse:
    status = store.get_status()
    return PriceStoreStatusResponse(
        tickers_loaded=list(status.tickers_loaded),
        missing_tickers=list(status.missing_tickers),
        missing_prices=list(status.missing_prices),
        warnings=list(status.warnings),
        last_updated=status.last_updated,
        date_range=map_date_range(status.date_range),
    )
