# backend/portfolio_dashboard/services/market_data/loaders.py
"""
Loaders that turn stored or fetched price history into DailyClose lists.

Stooq daily file format:
    <TICKER>,<PER>,<DATE>,<TIME>,<OPEN>,<HIGH>,<LOW>,<CLOSE>,<VOL>,<OPENINT>
    AAPL.US,D,20240102,000000,187.15,188.44,183.885,185.64,82488674,0

    DATE is YYYYMMDD (column 2), CLOSE is column 7. Rows with an
    unparseable date or a non-positive close are skipped.

Files are looked up as <ticker>.txt, then <ticker>.us.txt (lowercase).
"""

import csv
import logging
from collections.abc import Iterable
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path

from portfolio_dashboard.services.exceptions import PriceDataError
from portfolio_dashboard.services.market_data.base import DailyClose, MarketDataProvider

logger = logging.getLogger(__name__)

DATE_COLUMN = 2
CLOSE_COLUMN = 7
STOOQ_DATE_FORMAT = "%Y%m%d"


def parse_stooq_file(path: Path) -> list[DailyClose]:
    """
    Parse one Stooq daily file into closes sorted by date.

    Raises:
        PriceDataError: If the file cannot be read
    """
    try:
        with path.open(newline="", encoding="utf-8") as f:
            return parse_stooq_rows(csv.reader(f))
    except OSError as e:
        raise PriceDataError(f"Cannot read price file {path}: {e}", source=str(path)) from e


def parse_stooq_rows(rows: Iterable[list[str]]) -> list[DailyClose]:
    """Parse Stooq rows (header first) into closes sorted by date."""
    closes: dict[date, DailyClose] = {}
    skipped = 0

    for line_number, row in enumerate(rows, start=1):
        if line_number == 1 or not row:
            continue
        if len(row) <= CLOSE_COLUMN:
            skipped += 1
            continue

        try:
            day = datetime.strptime(row[DATE_COLUMN].strip(), STOOQ_DATE_FORMAT).date()
            close = Decimal(row[CLOSE_COLUMN].strip())
        except (ValueError, InvalidOperation):
            skipped += 1
            continue

        if not close.is_finite() or close <= 0:
            skipped += 1
            continue

        closes[day] = DailyClose(date=day, close=close)

    if skipped:
        logger.debug(f"Skipped {skipped} malformed Stooq rows")

    return [closes[d] for d in sorted(closes)]


def find_stooq_file(directory: Path, ticker: str) -> Path | None:
    base = ticker.strip().lower()
    if base.endswith(".us"):
        base = base[:-3]
    for name in (f"{base}.txt", f"{base}.us.txt"):
        candidate = directory / name
        if candidate.is_file():
            return candidate
    return None


def load_price_directory(
        directory: Path,
        tickers: Iterable[str],
) -> tuple[dict[str, list[DailyClose]], list[str]]:
    """
    Load Stooq files for the given tickers.

    Returns:
        (ticker -> closes, load warnings). Tickers without a file are left
        out and reported in the warnings.

    Raises:
        PriceDataError: If the directory does not exist
    """
    if not directory.is_dir():
        raise PriceDataError(f"Price directory not found: {directory}", source=str(directory))

    history: dict[str, list[DailyClose]] = {}
    warnings: list[str] = []

    for ticker in tickers:
        symbol = ticker.strip().upper()
        path = find_stooq_file(directory, symbol)
        if path is None:
            warnings.append(f"No price file for {symbol} in {directory}")
            continue

        closes = parse_stooq_file(path)
        if not closes:
            warnings.append(f"Price file for {symbol} has no valid rows")
            continue

        history[symbol] = closes
        logger.info(
            f"Loaded {len(closes)} closes for {symbol} "
            f"({closes[0].date} to {closes[-1].date})"
        )

    return history, warnings


def load_from_provider(
        provider: MarketDataProvider,
        tickers: Iterable[str],
        start: date,
        end: date,
) -> tuple[dict[str, list[DailyClose]], list[str]]:
    """
    Fetch daily closes through a market data provider.

    Returns:
        (ticker -> closes, load warnings). Failed tickers are reported in
        the warnings instead of raising.
    """
    result = provider.get_daily_closes_batch([t.upper() for t in tickers], start, end)

    warnings = [
        f"Failed to load {ticker} from {provider.name}: {error}"
        for ticker, error in result.errors.items()
    ]
    history = {ticker: closes for ticker, closes in result.prices.items() if closes}
    for ticker in result.prices:
        if ticker not in history:
            warnings.append(f"{provider.name} returned no closes for {ticker}")

    logger.info(
        f"Loaded {len(history)} tickers from {provider.name} "
        f"({result.failure_count} failed)"
    )
    return history, warnings
