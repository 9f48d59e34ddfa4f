# backend/portfolio_dashboard/utils/context.py
"""
Request context for the Portfolio Dashboard API.

Holds the correlation ID of the request being served so that log records
emitted deep inside the valuation services can be traced back to it.

Uses contextvars, so the value follows async/await boundaries and stays
isolated between concurrent requests.

Usage:
    from portfolio_dashboard.utils.context import get_correlation_id, set_correlation_id

    # In middleware
    set_correlation_id("abc-123")

    # Anywhere while handling the request
    correlation_id = get_correlation_id()  # "abc-123"
"""

from contextvars import ContextVar

_correlation_id_var: ContextVar[str | None] = ContextVar("correlation_id", default=None)


def get_correlation_id() -> str | None:
    """Return the current request's correlation ID, or None outside a request."""
    return _correlation_id_var.get()


def set_correlation_id(correlation_id: str) -> None:
    """
    Set the correlation ID for the current request.

    Called by CorrelationIdMiddleware at the start of each request.
    """
    _correlation_id_var.set(correlation_id)


def clear_correlation_id() -> None:
    """Clear the correlation ID at the end of a request."""
    _correlation_id_var.set(None)
