# backend/portfolio_dashboard/schemas/__init__.py
"""
Pydantic schemas for API request/response validation.

Organized by domain:
- errors: Error response format
- validators: Reusable validation functions (ticker)
- transactions: Transaction and position input
- equity: Equity series, status and value lookups
- metrics: Live metrics and window CAGR
- charts: Y-axis scale
- benchmark: Synthetic benchmark
- prices: Price store status
"""

from portfolio_dashboard.schemas.benchmark import (
    BenchmarkPointResponse,
    BenchmarkRequest,
    BenchmarkResponse,
)
from portfolio_dashboard.schemas.charts import YAxisRequest, YAxisResponse
from portfolio_dashboard.schemas.equity import (
    CacheClearResponse,
    DailyValuePointResponse,
    EquitySeriesRequest,
    EquitySeriesResponse,
    EquityStatusResponse,
    MissingPriceResponse,
    PortfolioValueResponse,
)
from portfolio_dashboard.schemas.errors import ErrorDetail
from portfolio_dashboard.schemas.metrics import (
    LiveMetricsRequest,
    LiveMetricsResponse,
    PositionsRequest,
    PositionsResponse,
    WindowCAGRRequest,
    WindowCAGRResponse,
)
from portfolio_dashboard.schemas.prices import PriceStoreStatusResponse
from portfolio_dashboard.schemas.transactions import PositionIn, TransactionIn

__all__ = [
    # Errors
    "ErrorDetail",
    # Input
    "TransactionIn",
    "PositionIn",
    # Equity
    "EquitySeriesRequest",
    "EquitySeriesResponse",
    "EquityStatusResponse",
    "DailyValuePointResponse",
    "MissingPriceResponse",
    "PortfolioValueResponse",
    "CacheClearResponse",
    # Metrics
    "LiveMetricsRequest",
    "LiveMetricsResponse",
    "PositionsRequest",
    "PositionsResponse",
    "WindowCAGRRequest",
    "WindowCAGRResponse",
    # Charts
    "YAxisRequest",
    "YAxisResponse",
    # Benchmark
    "BenchmarkRequest",
    "BenchmarkResponse",
    "BenchmarkPointResponse",
    # Prices
    "PriceStoreStatusResponse",
]
