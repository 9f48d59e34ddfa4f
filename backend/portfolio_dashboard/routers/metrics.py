# backend/portfolio_dashboard/routers/metrics.py
"""
Dashboard metric endpoints.

- POST /metrics/live - Hero total, returns, allocation and holdings performance
- POST /metrics/positions - Current positions rebuilt from transactions
- POST /metrics/cagr - Trailing-window CAGR for a labelled series
"""

from fastapi import APIRouter, Depends, Request

from portfolio_dashboard.dependencies import get_live_metrics_aggregator
from portfolio_dashboard.middleware.rate_limit import RATE_LIMIT_ANALYTICS, limiter
from portfolio_dashboard.routers.equity import map_status, map_value_point
from portfolio_dashboard.schemas.metrics import (
    AllocationSliceResponse,
    CAGRResponse,
    DerivedPositionResponse,
    HoldingPerformanceResponse,
    LiveMetricsRequest,
    LiveMetricsResponse,
    PositionsRequest,
    PositionsResponse,
    ReturnPointResponse,
    WindowCAGRRequest,
    WindowCAGRResponse,
    YTDResponse,
)
from portfolio_dashboard.services.analytics.live_metrics import LiveMetricsAggregator
from portfolio_dashboard.services.analytics.returns import compute_window_cagr
from portfolio_dashboard.services.analytics.types import (
    AllocationSlice,
    HoldingPerformance,
    LiveDataMetrics,
    SeriesPoint,
)
from portfolio_dashboard.services.constants import CURRENCY_PRECISION
from portfolio_dashboard.services.equity.positions import DerivedPosition

# =============================================================================
# ROUTER SETUP
# =============================================================================

router = APIRouter(
    prefix="/metrics",
    tags=["Metrics"],
)


# =============================================================================
# MAPPER FUNCTIONS (Internal Types -> Pydantic Schemas)
# =============================================================================

def _map_allocation(slice_: AllocationSlice) -> AllocationSliceResponse:
    return AllocationSliceResponse(
        sector=slice_.sector,
        value=slice_.value,
        weight_pct=slice_.weight_pct,
        count=slice_.count,
    )


def _map_holding(holding: HoldingPerformance) -> HoldingPerformanceResponse:
    return HoldingPerformanceResponse(
        ticker=holding.ticker,
        sector=holding.sector,
        shares=holding.shares,
        price=holding.price,
        price_source=holding.price_source,
        market_value=holding.market_value,
        cost_basis=holding.cost_basis,
        unrealized_pl=holding.unrealized_pl,
        unrealized_pl_pct=holding.unrealized_pl_pct,
        weight_pct=holding.weight_pct,
        contribution_pct=holding.contribution_pct,
    )


def _map_derived_position(position: DerivedPosition) -> DerivedPositionResponse:
    return DerivedPositionResponse(
        ticker=position.ticker,
        shares=position.shares,
        cost_basis=position.cost_basis.quantize(CURRENCY_PRECISION),
        average_cost=position.average_cost,
        realized_gain=position.realized_gain,
        last_price=position.last_price,
    )


def _map_live_metrics(metrics: LiveDataMetrics) -> LiveMetricsResponse:
    """Map internal LiveDataMetrics to Pydantic schema."""
    return LiveMetricsResponse(
        total_value=metrics.total_value,
        ytd_return=metrics.ytd_return,
        ytd=YTDResponse(
            ytd_return=metrics.ytd.ytd_return,
            baseline_date=metrics.ytd.baseline_date,
            baseline_value=metrics.ytd.baseline_value,
            current_value=metrics.ytd.current_value,
            calculation_date=metrics.ytd.calculation_date,
        ),
        all_time_return=metrics.all_time_return,
        cagr=CAGRResponse(
            cagr_pct=metrics.cagr.cagr_pct,
            years=metrics.cagr.years,
            start_value=metrics.cagr.start_value,
            end_value=metrics.cagr.end_value,
        ),
        current_holdings_count=metrics.current_holdings_count,
        valuation_date=metrics.valuation_date,
        currency=metrics.currency,
        equity_series=[map_value_point(p) for p in metrics.equity_series],
        return_series=[
            ReturnPointResponse(date=p.date, return_pct=p.return_pct)
            for p in metrics.return_series
        ],
        asset_allocation=[_map_allocation(s) for s in metrics.asset_allocation],
        holdings_performance=[_map_holding(h) for h in metrics.holdings_performance],
        status=map_status(metrics.status),
        reconciled=metrics.reconciled,
        warnings=metrics.warnings,
    )


# =============================================================================
# ENDPOINTS
# =============================================================================

@router.post(
    "/live",
    response_model=LiveMetricsResponse,
    summary="Live dashboard metrics",
)
@limiter.limit(RATE_LIMIT_ANALYTICS)
def get_live_metrics(
        request: Request,  # Required for rate limiting
        body: LiveMetricsRequest,
        aggregator: LiveMetricsAggregator = Depends(get_live_metrics_aggregator),
) -> LiveMetricsResponse:
    """
    Compute the dashboard's live metrics.

    Every held position is priced (falling back to the last trade price or
    a fixed fallback price when no market price exists), and the equity
    series' last point is reconciled with the resulting total. Fallbacks
    and reconciliation are reported in **warnings**.

    When **positions** is omitted they are rebuilt from the transactions
    using **cost_basis_method**.
    """
    positions = None
    if body.positions is not None:
        positions = [p.to_domain() for p in body.positions]

    metrics = aggregator.compute_live_metrics(
        positions=positions,
        transactions=[t.to_domain() for t in body.transactions],
        valuation_date=body.valuation_date,
        cost_basis_method=body.cost_basis_method,
    )
    return _map_live_metrics(metrics)


@router.post(
    "/positions",
    response_model=PositionsResponse,
    summary="Positions from transactions",
)
@limiter.limit(RATE_LIMIT_ANALYTICS)
def get_positions(
        request: Request,  # Required for rate limiting
        body: PositionsRequest,
        aggregator: LiveMetricsAggregator = Depends(get_live_metrics_aggregator),
) -> PositionsResponse:
    """
    Rebuild open positions with cost basis and realized gain.

    Sells are matched against purchase lots oldest first (FIFO), newest
    first (LIFO), or at the running average cost (AVERAGE).
    """
    positions = aggregator.derive_positions(
        [t.to_domain() for t in body.transactions],
        body.cost_basis_method,
    )
    return PositionsResponse(
        cost_basis_method=body.cost_basis_method,
        positions=[_map_derived_position(p) for p in positions],
    )


@router.post(
    "/cagr",
    response_model=WindowCAGRResponse,
    summary="Trailing-window CAGR",
)
@limiter.limit(RATE_LIMIT_ANALYTICS)
def get_window_cagr(
        request: Request,  # Required for rate limiting
        body: WindowCAGRRequest,
) -> WindowCAGRResponse:
    """
    CAGR over the last `window_years` of a series.

    Returns `cagr_pct: null` (with `null_reason`) when the series is too
    short, has no positive values, or does not reach back far enough.
    """
    result = compute_window_cagr(
        [SeriesPoint(date=p.date, value=p.value) for p in body.points],
        body.window_years,
        body.period_kind,
    )
    return WindowCAGRResponse(
        cagr_pct=result.cagr_pct,
        start_label=result.start_label,
        end_label=result.end_label,
        start_value=result.start_value,
        end_value=result.end_value,
        elapsed_years=result.elapsed_years,
        null_reason=result.null_reason,
    )
