# backend/portfolio_dashboard/services/market_data/spot.py
"""
Spot price access for tickers without full daily history.

- CachedSpotPriceProvider: wraps a provider with the 24-hour staleness
  policy (a quote is reused until it is older than the staleness window).
- fetch_spot_prices: concurrent snapshot fetch with an overall timeout.
  Per-ticker failures are reported, never raised, because a missing
  spot price only means the ticker is skipped for the day.
"""

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable

from portfolio_dashboard.services.cache import TTLCache
from portfolio_dashboard.services.constants import (
    DEFAULT_STALENESS_HOURS,
    SPOT_CACHE_MAX_SIZE,
    SPOT_FETCH_MAX_WORKERS,
    SPOT_FETCH_TIMEOUT_SECONDS,
)
from portfolio_dashboard.services.market_data.base import SpotSnapshot
from portfolio_dashboard.services.protocols import SpotPriceProvider

logger = logging.getLogger(__name__)

REASON_NO_SPOT = "no spot price"
REASON_SPOT_ERROR = "spot price error"
REASON_SPOT_TIMEOUT = "spot price timeout"

# Failures that may clear on the next attempt
TRANSIENT_FAILURES: frozenset[str] = frozenset({REASON_SPOT_ERROR, REASON_SPOT_TIMEOUT})


class CachedSpotPriceProvider:
    """
    Spot provider with a staleness window.

    Snapshots are cached per ticker for `staleness_hours`. A None result
    is not cached, so a ticker that had no quote is asked again next time.
    Errors from the wrapped provider propagate.
    """

    def __init__(
            self,
            provider: SpotPriceProvider,
            staleness_hours: int = DEFAULT_STALENESS_HOURS,
            max_size: int = SPOT_CACHE_MAX_SIZE,
            clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._provider = provider
        self._staleness_hours = staleness_hours
        self._cache: TTLCache[SpotSnapshot] = TTLCache(
            ttl_seconds=staleness_hours * 3600,
            max_size=max_size,
            clock=clock or (lambda: datetime.now(timezone.utc)),
            name="spot-cache",
        )

    def get_snapshot(self, ticker: str) -> SpotSnapshot | None:
        key = ticker.strip().upper()
        cached = self._cache.get(key)
        if cached is not None:
            return cached

        snapshot = self._provider.get_snapshot(key)
        if snapshot is not None:
            self._cache.set(key, snapshot)
        return snapshot

    def clear(self) -> None:
        self._cache.clear()


@dataclass
class SpotFetchResult:
    """
    Outcome of a concurrent spot fetch.

    Attributes:
        snapshots: ticker -> snapshot for tickers that returned a price
        failures: ticker -> reason (no spot price, spot price error, spot price timeout)
    """

    snapshots: dict[str, SpotSnapshot] = field(default_factory=dict)
    failures: dict[str, str] = field(default_factory=dict)


def fetch_spot_prices(
        provider: SpotPriceProvider,
        tickers: list[str],
        timeout_seconds: float = SPOT_FETCH_TIMEOUT_SECONDS,
        max_workers: int = SPOT_FETCH_MAX_WORKERS,
) -> SpotFetchResult:
    """
    Fetch snapshots for many tickers concurrently.

    Waits at most `timeout_seconds` in total; tickers still in flight are
    reported as timed out and their results are discarded.
    """
    result = SpotFetchResult()
    unique = list(dict.fromkeys(tickers))
    if not unique:
        return result

    executor = ThreadPoolExecutor(
        max_workers=min(max_workers, len(unique)),
        thread_name_prefix="spot-fetch",
    )
    try:
        futures: dict[Future, str] = {
            executor.submit(provider.get_snapshot, ticker): ticker for ticker in unique
        }
        done, not_done = wait(futures, timeout=timeout_seconds)

        for future in done:
            ticker = futures[future]
            try:
                snapshot = future.result()
            except Exception as e:
                logger.warning(f"Spot price fetch failed for {ticker}: {e}")
                result.failures[ticker] = REASON_SPOT_ERROR
                continue

            if snapshot is None:
                result.failures[ticker] = REASON_NO_SPOT
            else:
                result.snapshots[ticker] = snapshot

        for future in not_done:
            ticker = futures[future]
            logger.warning(f"Spot price fetch timed out for {ticker} after {timeout_seconds}s")
            result.failures[ticker] = REASON_SPOT_TIMEOUT
    finally:
        executor.shutdown(wait=False, cancel_futures=True)

    logger.debug(
        f"Fetched {len(result.snapshots)} spot prices, {len(result.failures)} missing"
    )
    return result
