# backend/portfolio_dashboard/services/__init__.py
"""
Service layer for valuation logic.

Services have NO knowledge of HTTP (no HTTPException, no status codes).
They raise domain exceptions for invalid input and report valuation
anomalies through status objects and warnings.

Usage:
    from portfolio_dashboard.services import EquityEngine, LiveMetricsAggregator
    from portfolio_dashboard.services import PriceStore, YahooFinanceProvider
    from portfolio_dashboard.services import ServiceError, PriceDataError

Architecture:
    services/
    ├── __init__.py              # This file - main exports
    ├── exceptions.py            # Domain exceptions
    ├── constants.py             # Business constants and limits
    ├── protocols.py             # Service interfaces (Protocol classes)
    ├── circuit_breaker.py       # Circuit breaker for external APIs
    ├── cache.py                 # Thread-safe TTL cache
    ├── market_data/             # Price data
    │   ├── base.py              # Abstract provider interface
    │   ├── yahoo.py             # Yahoo Finance implementation
    │   ├── price_store.py       # In-memory daily closes
    │   ├── loaders.py           # Stooq directory / provider loaders
    │   └── spot.py              # Cached spot prices + bounded batch fetch
    ├── equity/                  # Value series
    │   ├── types.py             # Transaction, Position, series types
    │   ├── engine.py            # EquityEngine
    │   └── benchmark.py         # Synthetic SPY benchmark
    └── analytics/               # Returns and dashboard metrics
        ├── types.py             # Result types
        ├── returns.py           # CAGR, YTD, all-time, return series
        └── live_metrics.py      # LiveMetricsAggregator
"""

# Analytics
from portfolio_dashboard.services.analytics import LiveMetricsAggregator
# Circuit breaker
from portfolio_dashboard.services.circuit_breaker import CircuitBreaker, CircuitBreakerOpen, CircuitState
# Equity
from portfolio_dashboard.services.equity import EquityEngine, SyntheticBenchmarkBuilder
# Exceptions
from portfolio_dashboard.services.exceptions import (
    # Base exceptions
    ServiceError,
    # Input validation
    ValidationError,
    InvalidTransactionError,
    # Market data exceptions
    MarketDataError,
    ProviderUnavailableError,
    TickerNotFoundError,
    RateLimitError,
    # Price data
    PriceDataError,
)
# Market data
from portfolio_dashboard.services.market_data import (
    CachedSpotPriceProvider,
    MarketDataProvider,
    PriceStore,
    YahooFinanceProvider,
)

__all__ = [
    # Services
    "EquityEngine",
    "SyntheticBenchmarkBuilder",
    "LiveMetricsAggregator",
    "PriceStore",
    "CachedSpotPriceProvider",
    "MarketDataProvider",
    "YahooFinanceProvider",
    # Circuit breaker
    "CircuitBreaker",
    "CircuitBreakerOpen",
    "CircuitState",
    # Exceptions
    "ServiceError",
    "ValidationError",
    "InvalidTransactionError",
    "MarketDataError",
    "ProviderUnavailableError",
    "TickerNotFoundError",
    "RateLimitError",
    "PriceDataError",
]
