# backend/portfolio_dashboard/services/market_data/__init__.py
"""
Market data services package.

This package contains:
- Abstract provider interface and price data classes (base.py)
- Yahoo Finance implementation (yahoo.py)
- In-memory daily close store (price_store.py)
- Stooq file and provider loaders (loaders.py)
- Spot price caching and concurrent fetch (spot.py)

Usage:
    from portfolio_dashboard.services.market_data import (
        PriceStore,
        YahooFinanceProvider,
        CachedSpotPriceProvider,
        load_price_directory,
    )

Architecture:
    MarketDataProvider (ABC)
    └── YahooFinanceProvider

    PriceStore  <- load_price_directory / load_from_provider
    CachedSpotPriceProvider -> MarketDataProvider.get_snapshot
"""

from portfolio_dashboard.services.market_data.base import (
    BatchPricesResult,
    DailyClose,
    DateRange,
    MarketDataProvider,
    SpotSnapshot,
)
from portfolio_dashboard.services.market_data.loaders import (
    load_from_provider,
    load_price_directory,
    parse_stooq_file,
)
from portfolio_dashboard.services.market_data.price_store import (
    PriceStore,
    PriceStoreStatus,
    normalize_ticker,
)
from portfolio_dashboard.services.market_data.spot import (
    CachedSpotPriceProvider,
    SpotFetchResult,
    fetch_spot_prices,
)
from portfolio_dashboard.services.market_data.yahoo import YahooFinanceProvider

__all__ = [
    # Interface and data classes
    "MarketDataProvider",
    "DailyClose",
    "DateRange",
    "SpotSnapshot",
    "BatchPricesResult",
    # Providers
    "YahooFinanceProvider",
    "CachedSpotPriceProvider",
    # Price store
    "PriceStore",
    "PriceStoreStatus",
    "normalize_ticker",
    # Loaders
    "parse_stooq_file",
    "load_price_directory",
    "load_from_provider",
    # Spot fetch
    "SpotFetchResult",
    "fetch_spot_prices",
]
