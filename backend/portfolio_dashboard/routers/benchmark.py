# backend/portfolio_dashboard/routers/benchmark.py
"""
Benchmark endpoints.

- POST /benchmark/spy - The portfolio's cash flows replayed into the benchmark ETF
"""

from datetime import date

from fastapi import APIRouter, Depends, Request

from portfolio_dashboard.dependencies import get_benchmark_builder
from portfolio_dashboard.middleware.rate_limit import RATE_LIMIT_ANALYTICS, limiter
from portfolio_dashboard.schemas.benchmark import (
    BenchmarkPointResponse,
    BenchmarkRequest,
    BenchmarkResponse,
)
from portfolio_dashboard.services.equity.benchmark import SyntheticBenchmarkBuilder

router = APIRouter(
    prefix="/benchmark",
    tags=["Benchmark"],
)


@router.post(
    "/spy",
    response_model=BenchmarkResponse,
    summary="Synthetic benchmark series",
)
@limiter.limit(RATE_LIMIT_ANALYTICS)
def get_spy_benchmark(
        request: Request,  # Required for rate limiting
        body: BenchmarkRequest,
        builder: SyntheticBenchmarkBuilder = Depends(get_benchmark_builder),
) -> BenchmarkResponse:
    """
    Mirror every BUY and SELL as a purchase or sale of the benchmark for
    the same cash amount, and return the benchmark's daily value.
    """
    transactions = [t.to_domain() for t in body.transactions]
    start = body.start_date or min((t.date for t in transactions), default=date.today())
    end = body.end_date or date.today()

    result = builder.build(transactions, start, end)

    return BenchmarkResponse(
        ticker=builder.ticker,
        points=[
            BenchmarkPointResponse(date=p.date, value=p.value, shares=p.shares, close=p.close)
            for p in result.points
        ],
        status=result.status,
        warnings=list(result.warnings),
    )
