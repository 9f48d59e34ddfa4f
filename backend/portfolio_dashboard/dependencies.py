# backend/portfolio_dashboard/dependencies.py
"""
Dependency injection module for FastAPI services.

This module provides singleton service instances that are shared across
all requests, so the price store is loaded once and the series and spot
caches are shared.

Services are lazily initialized on first use to avoid import-time side
effects (reading price files, network calls). Tests replace them with
app.dependency_overrides.

Usage in routers:
    from portfolio_dashboard.dependencies import get_equity_engine

    @router.post("/series")
    def build_series(engine: EquityEngine = Depends(get_equity_engine)):
        ...
"""

import logging
from datetime import date
from functools import lru_cache

from portfolio_dashboard.config import settings
from portfolio_dashboard.services.analytics.live_metrics import LiveMetricsAggregator
from portfolio_dashboard.services.cache import TTLCache
from portfolio_dashboard.services.equity.benchmark import SyntheticBenchmarkBuilder
from portfolio_dashboard.services.equity.engine import EquityEngine
from portfolio_dashboard.services.exceptions import PriceDataError
from portfolio_dashboard.services.market_data.loaders import load_from_provider, load_price_directory
from portfolio_dashboard.services.market_data.price_store import PriceStore
from portfolio_dashboard.services.market_data.spot import CachedSpotPriceProvider
from portfolio_dashboard.services.market_data.yahoo import YahooFinanceProvider

logger = logging.getLogger(__name__)


# =============================================================================
# SINGLETON SERVICE INSTANCES
# =============================================================================
# Order matters: define dependencies before dependents
# 1. get_market_data_provider (no deps)
# 2. get_spot_provider (depends on provider)
# 3. get_price_store (depends on provider when PRICE_SOURCE=yahoo)
# 4. get_equity_engine (depends on price store, spot provider)
# 5. get_live_metrics_aggregator / get_benchmark_builder


@lru_cache(maxsize=1)
def get_market_data_provider() -> YahooFinanceProvider:
    """
    Get the singleton Yahoo Finance provider.

    Shares the provider (and its circuit breaker) across spot lookups and
    history loading.
    """
    logger.debug("Initializing singleton YahooFinanceProvider")
    return YahooFinanceProvider(timeout=settings.yahoo_timeout_seconds)


@lru_cache(maxsize=1)
def get_spot_provider() -> CachedSpotPriceProvider:
    """Get the singleton spot provider with the configured staleness window."""
    logger.debug("Initializing singleton CachedSpotPriceProvider")
    return CachedSpotPriceProvider(
        get_market_data_provider(),
        staleness_hours=settings.spot_staleness_hours,
    )


@lru_cache(maxsize=1)
def get_price_store() -> PriceStore:
    """
    Get the singleton price store, loaded from PRICE_SOURCE.

    A missing price directory does not stop the app: the store starts
    empty, the failure is kept in its status warnings, and valuation
    falls back to spot prices.
    """
    tickers = list(dict.fromkeys([*settings.full_history_tickers, settings.benchmark_ticker]))

    if settings.price_source == "yahoo":
        history, warnings = load_from_provider(
            get_market_data_provider(),
            tickers,
            settings.price_history_start,
            date.today(),
        )
    else:
        try:
            history, warnings = load_price_directory(settings.price_data_dir, tickers)
        except PriceDataError as e:
            logger.error(f"Price data unavailable: {e}")
            history, warnings = {}, [str(e)]

    logger.info(f"Initializing PriceStore from {settings.price_source} ({len(history)} tickers)")
    return PriceStore(
        history,
        aliases=settings.ticker_aliases,
        expected_tickers=settings.full_history_tickers,
        load_warnings=warnings,
    )


@lru_cache(maxsize=1)
def get_equity_engine() -> EquityEngine:
    """
    Get the singleton EquityEngine.

    Shares the series cache across requests, so identical transaction
    lists are only built once per day.
    """
    logger.debug("Initializing singleton EquityEngine")
    return EquityEngine(
        price_store=get_price_store(),
        spot_provider=get_spot_provider(),
        full_history_tickers=settings.full_history_tickers,
        ticker_aliases=settings.ticker_aliases,
        spot_timeout_seconds=settings.spot_fetch_timeout_seconds,
        spot_max_workers=settings.spot_fetch_max_workers,
        cache=TTLCache(
            ttl_seconds=settings.series_cache_ttl_seconds,
            max_size=settings.series_cache_max_size,
            name="equity-series",
        ),
    )


@lru_cache(maxsize=1)
def get_live_metrics_aggregator() -> LiveMetricsAggregator:
    """Get the singleton LiveMetricsAggregator."""
    logger.debug("Initializing singleton LiveMetricsAggregator")
    return LiveMetricsAggregator(
        engine=get_equity_engine(),
        price_store=get_price_store(),
        spot_provider=get_spot_provider(),
        fallback_price=settings.fallback_price,
        overweight_threshold_pct=settings.overweight_threshold_pct,
        reconciliation_tolerance=settings.reconciliation_tolerance,
        currency=settings.base_currency,
        spot_timeout_seconds=settings.spot_fetch_timeout_seconds,
        spot_max_workers=settings.spot_fetch_max_workers,
    )


@lru_cache(maxsize=1)
def get_benchmark_builder() -> SyntheticBenchmarkBuilder:
    """Get the singleton synthetic benchmark builder."""
    logger.debug("Initializing singleton SyntheticBenchmarkBuilder")
    return SyntheticBenchmarkBuilder(get_price_store(), ticker=settings.benchmark_ticker)
