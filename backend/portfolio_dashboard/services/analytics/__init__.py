# backend/portfolio_dashboard/services/analytics/__init__.py
"""
Analytics package: returns, CAGR and live dashboard metrics.

Architecture:
    analytics/
    ├── __init__.py        # This file - package exports
    ├── types.py           # Result data classes
    ├── returns.py         # Window CAGR, CAGR, YTD, all-time, return series
    └── live_metrics.py    # LiveMetricsAggregator (hero total, allocation, P/L)

Usage:
    from portfolio_dashboard.services.analytics import compute_window_cagr

    result = compute_window_cagr(points, window_years=5, period_kind=PeriodKind.ANNUAL)
    if result.cagr_pct is not None:
        print(f"5y CAGR {result.cagr_pct}% ({result.start_label} -> {result.end_label})")

Data Flow:
    EquityEngine.build_series()
        ↓
    DailyValuePoint series
        ↓
    LiveMetricsAggregator (prices positions, reconciles the tail)
        ↓
    returns.py functions -> LiveDataMetrics
"""

from portfolio_dashboard.services.analytics.live_metrics import LiveMetricsAggregator
from portfolio_dashboard.services.analytics.returns import (
    compute_all_time_return,
    compute_cagr,
    compute_return_series,
    compute_window_cagr,
    compute_ytd_return,
    parse_period_date,
    validate_ytd_consistency,
)
from portfolio_dashboard.services.analytics.types import (
    AllocationSlice,
    CAGRNullReason,
    CAGRResult,
    HoldingPerformance,
    LiveDataMetrics,
    PeriodKind,
    PositionValuation,
    ReturnPoint,
    SeriesPoint,
    WindowCAGRResult,
    YTDResult,
)

__all__ = [
    # Aggregator
    "LiveMetricsAggregator",
    # Return functions
    "compute_window_cagr",
    "compute_cagr",
    "compute_ytd_return",
    "validate_ytd_consistency",
    "compute_all_time_return",
    "compute_return_series",
    "parse_period_date",
    # Types
    "PeriodKind",
    "CAGRNullReason",
    "SeriesPoint",
    "WindowCAGRResult",
    "CAGRResult",
    "YTDResult",
    "ReturnPoint",
    "PositionValuation",
    "AllocationSlice",
    "HoldingPerformance",
    "LiveDataMetrics",
]
