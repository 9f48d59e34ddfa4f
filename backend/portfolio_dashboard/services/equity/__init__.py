# backend/portfolio_dashboard/services/equity/__init__.py
"""
Equity package: portfolio value series and synthetic benchmark.

Usage:
    from portfolio_dashboard.services.equity import EquityEngine

    engine = EquityEngine(price_store, spot_provider)
    result = engine.build_series(transactions)

Architecture:
    equity/
    ├── __init__.py      # This file - package exports
    ├── types.py         # Transaction, Position, series and status types
    ├── engine.py        # EquityEngine (day-by-day replay + series cache)
    ├── positions.py     # compute_positions (FIFO/LIFO/average cost basis)
    └── benchmark.py     # SyntheticBenchmarkBuilder (cash flows into SPY)

Data Flow:
    Transactions -> combine_same_day_trades -> replay over calendar
    PriceStore + SpotPriceProvider -> PriceResolution per ticker/day
    -> DailyValuePoint series + EquityEngineStatus
"""

from portfolio_dashboard.services.equity.benchmark import (
    BenchmarkPoint,
    BenchmarkResult,
    SyntheticBenchmarkBuilder,
)
from portfolio_dashboard.services.equity.engine import (
    CombinedTrade,
    EquityEngine,
    combine_same_day_trades,
)
from portfolio_dashboard.services.equity.positions import (
    CostBasisMethod,
    DerivedPosition,
    compute_positions,
)
from portfolio_dashboard.services.equity.types import (
    DailyValuePoint,
    EquityEngineStatus,
    EquitySeriesResult,
    MissingPrice,
    Position,
    PriceResolution,
    PriceSource,
    Transaction,
    TransactionType,
)

__all__ = [
    # Engine
    "EquityEngine",
    "CombinedTrade",
    "combine_same_day_trades",
    # Positions
    "compute_positions",
    "CostBasisMethod",
    "DerivedPosition",
    # Benchmark
    "SyntheticBenchmarkBuilder",
    "BenchmarkPoint",
    "BenchmarkResult",
    # Types
    "Transaction",
    "TransactionType",
    "Position",
    "PriceSource",
    "PriceResolution",
    "MissingPrice",
    "DailyValuePoint",
    "EquityEngineStatus",
    "EquitySeriesResult",
]
