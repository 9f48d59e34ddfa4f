# backend/portfolio_dashboard/config.py
"""
Application configuration using Pydantic Settings.

Loads configuration from environment variables with validation:
- ENVIRONMENT: Runtime mode (development, test, production)
- PRICE_SOURCE: Where daily close history comes from (directory or yahoo)
- FULL_HISTORY_TICKERS: Tickers valued from daily close history

Tickers not in the full-history allow-list are valued from a spot price
that is bridged (held constant) across the series.

Usage:
    from portfolio_dashboard.config import settings

    if settings.is_production:
        # Production-specific logic
        ...
"""
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Literal

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Find the .env file in project root (parent of backend/)
_BACKEND_DIR = Path(__file__).resolve().parent.parent
_PROJECT_ROOT = _BACKEND_DIR.parent
_ENV_FILE = _PROJECT_ROOT / ".env"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables:
        - ENVIRONMENT: Runtime environment (development, test, production)
        - APP_NAME: Application name (default: "Portfolio Dashboard")
        - DEBUG: Enable debug mode (default: False)
        - LOG_LEVEL: Logging level (default: "INFO")
        - LOG_FORMAT: Log output format, text or json (default: "text")

    Price Settings:
        - PRICE_SOURCE: "directory" (Stooq files) or "yahoo" (default: "directory")
        - PRICE_DATA_DIR: Directory holding Stooq daily files
        - SPOT_STALENESS_HOURS: Age after which a spot quote is refetched (default: 24)
    """

    environment: Literal["development", "test", "production"] = Field(
        default="development",
        description="Runtime environment (development, test, production)"
    )

    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)"
    )
    log_format: Literal["text", "json"] = Field(
        default="text",
        description="Log output format"
    )

    app_name: str = "Portfolio Dashboard"
    debug: bool = False

    # =========================================================================
    # TICKER UNIVERSE
    # =========================================================================
    full_history_tickers: list[str] = Field(
        default=["AAPL", "MSFT", "AMZN", "NVDA", "META", "TSLA", "GOOGL"],
        description="Tickers with full daily close history"
    )
    ticker_aliases: dict[str, str] = Field(
        default={"GOOG": "GOOGL"},
        description="Alternate symbols mapped to their canonical ticker"
    )
    benchmark_ticker: str = Field(
        default="SPY",
        description="Ticker used for the synthetic benchmark"
    )

    # =========================================================================
    # PRICE DATA
    # =========================================================================
    price_source: Literal["directory", "yahoo"] = Field(
        default="directory",
        description="Source of daily close history"
    )
    price_data_dir: Path = Field(
        default=_PROJECT_ROOT / "data" / "prices",
        description="Directory of Stooq daily files (<ticker>.txt or <ticker>.us.txt)"
    )
    price_history_start: date = Field(
        default=date(2015, 1, 1),
        description="Earliest date loaded when fetching history from a provider"
    )

    # =========================================================================
    # SPOT PRICES
    # =========================================================================
    spot_staleness_hours: int = Field(
        default=24,
        ge=1,
        description="Hours after which a cached spot quote is refetched"
    )
    spot_fetch_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Overall timeout for a concurrent spot price fetch"
    )
    spot_fetch_max_workers: int = Field(
        default=8,
        ge=1,
        le=32,
        description="Maximum concurrent spot price requests"
    )
    yahoo_timeout_seconds: int = Field(
        default=10,
        ge=1,
        description="Per-request timeout for Yahoo Finance calls"
    )

    # =========================================================================
    # SERIES CACHE
    # =========================================================================
    series_cache_ttl_seconds: int = Field(
        default=3600,
        ge=1,
        description="Time-to-live for cached equity series"
    )
    series_cache_max_size: int = Field(
        default=128,
        ge=1,
        description="Maximum number of cached equity series"
    )

    # =========================================================================
    # LIVE METRICS
    # =========================================================================
    overweight_threshold_pct: Decimal = Field(
        default=Decimal("20"),
        description="Position weight (%) above which a concentration warning is raised"
    )
    fallback_price: Decimal = Field(
        default=Decimal("100.00"),
        gt=0,
        description="Price shown for a position with no price from any source"
    )
    reconciliation_tolerance: Decimal = Field(
        default=Decimal("0.01"),
        ge=0,
        description="Allowed difference between series tail and live total"
    )
    base_currency: str = Field(
        default="USD",
        description="Currency all values are reported in"
    )

    # =========================================================================
    # RATE LIMITING
    # =========================================================================
    rate_limit_enabled: bool = Field(
        default=True,
        description="Enable per-client rate limiting"
    )
    trust_proxy_headers: bool = Field(
        default=False,
        description="Trust X-Forwarded-For from any client (only behind a load balancer)"
    )
    trusted_proxy_ips: list[str] = Field(
        default=["127.0.0.1"],
        description="Proxy addresses whose forwarded headers are trusted"
    )

    # =========================================================================
    # CORS
    # =========================================================================
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Allowed CORS origins"
    )
    cors_allow_credentials: bool = Field(
        default=True,
        description="Allow credentials in CORS requests"
    )
    cors_allow_methods: list[str] = Field(
        default=["*"],
        description="Allowed HTTP methods for CORS"
    )
    cors_allow_headers: list[str] = Field(
        default=["*"],
        description="Allowed HTTP headers for CORS"
    )

    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE) if _ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @model_validator(mode="after")
    def normalize_tickers(self) -> "Settings":
        """
        Uppercase ticker settings so lookups are case-insensitive.

        Aliases must not point at themselves, and the benchmark ticker is
        always loaded alongside the full-history set.
        """
        tickers = [t.strip().upper() for t in self.full_history_tickers if t.strip()]
        aliases = {k.strip().upper(): v.strip().upper() for k, v in self.ticker_aliases.items()}

        for alias, canonical in aliases.items():
            if alias == canonical:
                raise ValueError(f"Ticker alias '{alias}' maps to itself")

        object.__setattr__(self, "full_history_tickers", tickers)
        object.__setattr__(self, "ticker_aliases", aliases)
        object.__setattr__(self, "benchmark_ticker", self.benchmark_ticker.strip().upper())
        return self

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


# Create single instance
settings = Settings()
