# backend/portfolio_dashboard/utils/__init__.py
"""
Cross-cutting utilities for the Portfolio Dashboard.

- logging: Logging setup with correlation ID support
- context: Request context (correlation IDs)
- axis: Chart Y-axis scale and value formatting

Usage:
    from portfolio_dashboard.utils import setup_logging, get_logger
    from portfolio_dashboard.utils.axis import compute_y_axis_scale
"""

from portfolio_dashboard.utils.context import (
    get_correlation_id,
    set_correlation_id,
    clear_correlation_id,
)
from portfolio_dashboard.utils.logging import setup_logging, get_logger

__all__ = [
    # Logging
    "setup_logging",
    "get_logger",
    # Context
    "get_correlation_id",
    "set_correlation_id",
    "clear_correlation_id",
]
