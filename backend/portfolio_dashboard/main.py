# backend/portfolio_dashboard/main.py
"""
FastAPI application entry point.

This file:
- Configures application-wide logging
- Creates the FastAPI application
- Registers global exception handlers
- Registers all routers
- Defines global endpoints (health checks)

Run:
    uvicorn portfolio_dashboard.main:app --reload --app-dir backend
"""

import logging

from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from starlette.exceptions import HTTPException as StarletteHTTPException

from portfolio_dashboard.config import settings
from portfolio_dashboard.dependencies import get_market_data_provider, get_price_store
from portfolio_dashboard.middleware import (
    RATE_LIMIT_HEALTH,
    CorrelationIdMiddleware,
    SlowAPIMiddleware,
    limiter,
    rate_limit_exceeded_handler,
)
from portfolio_dashboard.routers import (
    benchmark_router,
    charts_router,
    equity_router,
    metrics_router,
    prices_router,
)
from portfolio_dashboard.schemas.errors import ErrorDetail
from portfolio_dashboard.services.circuit_breaker import CircuitState
from portfolio_dashboard.services.exceptions import (
    CircuitBreakerOpen,
    MarketDataError,
    PriceDataError,
    ProviderUnavailableError,
    RateLimitError,
    ServiceError,
    TickerNotFoundError,
    ValidationError,
)
from portfolio_dashboard.services.market_data.price_store import PriceStore
from portfolio_dashboard.services.market_data.yahoo import YahooFinanceProvider
from portfolio_dashboard.utils import setup_logging

logger = logging.getLogger(__name__)

# =============================================================================
# LOGGING SETUP (must be before app creation)
# =============================================================================

setup_logging()

# =============================================================================
# APPLICATION SETUP
# =============================================================================

app = FastAPI(
    title=settings.app_name,
    description="Portfolio valuation engine: equity series, live metrics and chart scaling",
    version="0.1.0",
    debug=settings.debug,
)


# =============================================================================
# CORS MIDDLEWARE
# =============================================================================

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)


# =============================================================================
# MIDDLEWARE (order matters: last added = first executed)
# =============================================================================

app.state.limiter = limiter
app.add_middleware(SlowAPIMiddleware)
app.add_middleware(CorrelationIdMiddleware)


# =============================================================================
# GLOBAL EXCEPTION HANDLERS
# =============================================================================
# Service exceptions are converted to ErrorDetail responses here, so routers
# never catch them. Valuation anomalies are not exceptions; they arrive in
# the response body as warnings.
# =============================================================================

app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)


def _error_response(
        status_code: int,
        error: str,
        message: str,
        details: dict | list | None = None,
        headers: dict[str, str] | None = None,
) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content=ErrorDetail(error=error, message=message, details=details).model_dump(),
        headers=headers,
    )


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError) -> JSONResponse:
    """Handle service input validation errors (400)."""
    logger.warning(f"Validation error: {exc}")
    return _error_response(
        400,
        type(exc).__name__,
        str(exc),
        {"field": exc.field} if exc.field else None,
    )


@app.exception_handler(TickerNotFoundError)
async def ticker_not_found_handler(request: Request, exc: TickerNotFoundError) -> JSONResponse:
    """Handle ticker not found on market data provider (404)."""
    logger.warning(f"Ticker not found on provider: {exc.ticker}")
    return _error_response(404, "TickerNotFoundError", str(exc), {"ticker": exc.ticker})


@app.exception_handler(RateLimitError)
async def rate_limit_handler(request: Request, exc: RateLimitError) -> JSONResponse:
    """Handle provider rate limit exceeded (429)."""
    logger.warning(f"Rate limit exceeded: {exc}")
    return _error_response(
        429,
        "RateLimitError",
        str(exc),
        {"retry_after": exc.retry_after} if exc.retry_after else None,
    )


@app.exception_handler(ProviderUnavailableError)
async def provider_unavailable_handler(request: Request, exc: ProviderUnavailableError) -> JSONResponse:
    """Handle market data provider unavailable (503)."""
    logger.error(f"Provider unavailable: {exc}")
    return _error_response(503, "ProviderUnavailableError", str(exc))


@app.exception_handler(CircuitBreakerOpen)
async def circuit_breaker_handler(request: Request, exc: CircuitBreakerOpen) -> JSONResponse:
    """Handle circuit breaker open (503 with Retry-After)."""
    logger.warning(f"Circuit breaker open: {exc.breaker_name}")
    retry_after = int(exc.time_remaining) + 1  # Round up
    return _error_response(
        503,
        "CircuitBreakerOpen",
        f"Service temporarily unavailable. The {exc.breaker_name} circuit breaker is open.",
        {"breaker_name": exc.breaker_name, "retry_after": retry_after},
        headers={"Retry-After": str(retry_after)},
    )


@app.exception_handler(PriceDataError)
async def price_data_error_handler(request: Request, exc: PriceDataError) -> JSONResponse:
    """Handle unreadable price data (503)."""
    logger.error(f"Price data error: {exc}")
    return _error_response(
        503,
        "PriceDataError",
        str(exc),
        {"source": exc.source} if exc.source else None,
    )


@app.exception_handler(MarketDataError)
async def market_data_error_handler(request: Request, exc: MarketDataError) -> JSONResponse:
    """Handle generic market data errors (500)."""
    logger.error(f"Market data error: {exc}")
    return _error_response(500, "MarketDataError", str(exc))


@app.exception_handler(ServiceError)
async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
    """Handle generic service errors (500)."""
    logger.error(f"Service error: {exc}")
    return _error_response(500, "ServiceError", str(exc))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Keep framework HTTP errors (404 route, 405 method) in the ErrorDetail shape."""
    return _error_response(exc.status_code, "HTTPException", str(exc.detail), headers=exc.headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Convert request validation errors (422) to the ErrorDetail shape."""
    errors = [
        {
            "field": ".".join(str(loc) for loc in error["loc"]),
            "message": error["msg"],
            "type": error["type"],
        }
        for error in exc.errors()
    ]
    return _error_response(422, "ValidationError", "Request validation failed", errors)


# =============================================================================
# ROUTER REGISTRATION
# =============================================================================

app.include_router(equity_router)  # /equity/*
app.include_router(metrics_router)  # /metrics/*
app.include_router(charts_router)  # /charts/*
app.include_router(benchmark_router)  # /benchmark/*
app.include_router(prices_router)  # /prices/*


# =============================================================================
# GLOBAL ENDPOINTS
# =============================================================================

@app.get("/", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def root(request: Request):
    """API root - returns basic application info."""
    return {
        "message": f"Welcome to {settings.app_name}!",
        "docs": "/docs",
        "redoc": "/redoc",
    }


@app.get("/health", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def health_check(
        request: Request,
        store: PriceStore = Depends(get_price_store),
        provider: YahooFinanceProvider = Depends(get_market_data_provider),
):
    """
    Health check with dependency status.

    The service always answers 200: without price history every ticker is
    valued from spot prices, and without spot prices positions fall back to
    their last trade price. Missing data shows up as "degraded".
    """
    status = store.get_status()
    breaker_state = provider.breaker.state

    price_data = {
        "status": "healthy" if status.tickers_loaded and not status.missing_tickers else "degraded",
        "tickers_loaded": len(status.tickers_loaded),
        "missing_tickers": list(status.missing_tickers),
    }
    market_data = {
        "status": "healthy" if breaker_state == CircuitState.CLOSED else "degraded",
        "provider": provider.name,
        "circuit_breaker": breaker_state.value,
    }

    overall = "healthy"
    if price_data["status"] != "healthy" or market_data["status"] != "healthy":
        overall = "degraded"

    return {
        "status": overall,
        "environment": settings.environment,
        "checks": {
            "price_data": price_data,
            "market_data": market_data,
        },
    }


@app.get("/health/live", tags=["Health"])
@limiter.limit(RATE_LIMIT_HEALTH)
def liveness_check(request: Request):
    """Liveness probe: succeeds whenever the process is up."""
    return {"status": "alive"}
