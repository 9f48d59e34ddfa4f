# backend/portfolio_dashboard/routers/__init__.py
"""
API routers for the Portfolio Dashboard.

Each router handles a specific domain:
- equity: Daily value series, point lookups, series cache
- metrics: Live dashboard metrics and window CAGR
- charts: Y-axis scaling and labels
- benchmark: Synthetic SPY benchmark
- prices: Price data status
"""

from portfolio_dashboard.routers.benchmark import router as benchmark_router
from portfolio_dashboard.routers.charts import router as charts_router
from portfolio_dashboard.routers.equity import router as equity_router
from portfolio_dashboard.routers.metrics import router as metrics_router
from portfolio_dashboard.routers.prices import router as prices_router

__all__ = [
    "equity_router",
    "metrics_router",
    "charts_router",
    "benchmark_router",
    "prices_router",
]
