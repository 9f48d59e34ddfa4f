# backend/portfolio_dashboard/services/constants.py
"""
Centralized constants for the valuation services.

This module provides a single source of truth for business constants used
across the equity engine, return calculator and live metrics. Values that
deployments tune (staleness, fallback price, thresholds) live in
portfolio_dashboard.config and default to the constants below.

Usage:
    from portfolio_dashboard.services.constants import (
        DAYS_PER_YEAR,
        CURRENCY_PRECISION,
        ZERO,
    )
"""

from decimal import Decimal


# =============================================================================
# FINANCIAL CALENDAR CONSTANTS
# =============================================================================

# Average calendar days per year including leap years
# Used for elapsed-year fractions in CAGR
DAYS_PER_YEAR: float = 365.25

# Quarters per year, used when CAGR years come from "YYYY-Qn" labels
QUARTERS_PER_YEAR: int = 4


# =============================================================================
# PRICE SETTINGS
# =============================================================================

# Hours after which a spot quote is considered stale and refetched
DEFAULT_STALENESS_HOURS: int = 24

# Price shown for a live position when no source has a price
# Keeps the dashboard showing a number instead of a blank
DEFAULT_FALLBACK_PRICE: Decimal = Decimal("100.00")

# Number of recent sessions requested when resolving a spot snapshot
SPOT_LOOKBACK_PERIOD: str = "5d"


# =============================================================================
# LIVE METRICS THRESHOLDS
# =============================================================================

# Maximum allowed difference between the series tail and the live total
# before the tail is replaced by the live total
RECONCILIATION_TOLERANCE: Decimal = Decimal("0.01")

# Position weight (%) above which a concentration warning is raised
OVERWEIGHT_THRESHOLD_PCT: Decimal = Decimal("20")

# Sector label for positions without sector metadata
UNKNOWN_SECTOR: str = "Unknown"


# =============================================================================
# CACHE SETTINGS
# =============================================================================

# Time-to-live for cached equity series in seconds
# The cache key already includes today's date, so this only bounds memory
SERIES_CACHE_TTL_SECONDS: int = 3600

# Maximum cached equity series (LRU eviction beyond this)
SERIES_CACHE_MAX_SIZE: int = 128

# Maximum cached spot snapshots
SPOT_CACHE_MAX_SIZE: int = 1000


# =============================================================================
# CIRCUIT BREAKER SETTINGS
# =============================================================================

# Number of failures before circuit opens and blocks requests
CIRCUIT_BREAKER_FAILURE_THRESHOLD: int = 5

# Seconds to wait before testing if service has recovered
CIRCUIT_BREAKER_RECOVERY_TIMEOUT: float = 60.0

# Maximum calls allowed in half-open state to test recovery
CIRCUIT_BREAKER_HALF_OPEN_MAX_CALLS: int = 3

# Time window (seconds) for counting failures (0 = count all failures)
CIRCUIT_BREAKER_FAILURE_WINDOW: float = 300.0


# =============================================================================
# EXTERNAL API TIMEOUT SETTINGS
# =============================================================================

# Default timeout for a single market data request
EXTERNAL_API_TIMEOUT_SECONDS: int = 10

# Overall timeout for a concurrent spot price fetch across tickers
SPOT_FETCH_TIMEOUT_SECONDS: float = 10.0

# Maximum concurrent spot price requests
SPOT_FETCH_MAX_WORKERS: int = 8


# =============================================================================
# DECIMAL PRECISION CONSTANTS
# =============================================================================

# Currency amounts: 2 decimal places (e.g., $1234.56)
# Used for: portfolio value, market value, P&L amounts
CURRENCY_PRECISION: Decimal = Decimal("0.01")

# Share quantities: 8 decimal places (fractional shares)
SHARE_PRECISION: Decimal = Decimal("0.00000001")

# Percentage values: 4 decimal places (e.g., 12.3456%)
# Used for: cumulative returns, CAGR, weights
PERCENTAGE_PRECISION: Decimal = Decimal("0.0001")


# =============================================================================
# UTILITY CONSTANTS
# =============================================================================

ZERO: Decimal = Decimal("0")

HUNDRED: Decimal = Decimal("100")


# =============================================================================
# RATE LIMITING CONSTANTS
# =============================================================================
# Format follows slowapi/limits syntax: "100/minute", "10/hour", etc.

# Default rate limit for read endpoints
RATE_LIMIT_DEFAULT: str = "100/minute"

# Rate limit for cache invalidation and other write endpoints
RATE_LIMIT_WRITE: str = "30/minute"

# Rate limit for health check endpoints
RATE_LIMIT_HEALTH: str = "300/minute"

# Rate limit for valuation and analytics endpoints
# Series builds can hit the spot provider, moderate limit
RATE_LIMIT_ANALYTICS: str = "60/minute"


# =============================================================================
# RESOURCE LIMIT CONSTANTS
# =============================================================================

# Maximum number of transactions or positions in a single request
MAX_BATCH_SIZE: int = 5000

# Maximum number of values in a single axis request
MAX_AXIS_VALUES: int = 10000
