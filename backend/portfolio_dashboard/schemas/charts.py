# backend/portfolio_dashboard/schemas/charts.py
"""Pydantic schemas for chart axis scaling."""

from pydantic import BaseModel, Field

from portfolio_dashboard.services.constants import MAX_AXIS_VALUES
from portfolio_dashboard.utils.axis import MetricKind


class YAxisRequest(BaseModel):
    values: list[float | None] = Field(
        default_factory=list,
        max_length=MAX_AXIS_VALUES,
        description="Plotted values; missing values are ignored"
    )
    metric_kind: MetricKind = Field(default=MetricKind.CURRENCY)


class YAxisResponse(BaseModel):
    domain: tuple[float, float]
    ticks: list[float] = Field(..., description="Exactly five equally spaced ticks")
    step: float
    unit_suffix: str
    decimals: int
    labels: list[str]
