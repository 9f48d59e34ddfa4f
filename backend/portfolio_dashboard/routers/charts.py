# backend/portfolio_dashboard/routers/charts.py
"""
Chart helper endpoints.

- POST /charts/y-axis - Five-tick y-axis with formatted labels
"""

from fastapi import APIRouter, Request

from portfolio_dashboard.middleware.rate_limit import RATE_LIMIT_DEFAULT, limiter
from portfolio_dashboard.schemas.charts import YAxisRequest, YAxisResponse
from portfolio_dashboard.utils.axis import compute_y_axis_scale

router = APIRouter(
    prefix="/charts",
    tags=["Charts"],
)


@router.post(
    "/y-axis",
    response_model=YAxisResponse,
    summary="Compute a y-axis scale",
)
@limiter.limit(RATE_LIMIT_DEFAULT)
def get_y_axis(
        request: Request,  # Required for rate limiting
        body: YAxisRequest,
) -> YAxisResponse:
    scale = compute_y_axis_scale(body.values, body.metric_kind)
    return YAxisResponse(
        domain=scale.domain,
        ticks=list(scale.ticks),
        step=scale.step,
        unit_suffix=scale.unit_suffix,
        decimals=scale.decimals,
        labels=list(scale.labels),
    )
