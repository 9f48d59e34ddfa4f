# backend/portfolio_dashboard/services/analytics/returns.py
"""
Return calculation functions for dashboard series.

This module contains pure functions for:
- Window CAGR: CAGR over a trailing N-year window
- Whole-series CAGR: first valid point to last valid point
- YTD Return: against the first point of the current calendar year
- All-time Return: first point to last point
- Return series: cumulative % per point

All functions are stateless and accept any sequence of objects with a
`date` (a date or a period label such as "2023" or "2023-Q4") and a
`value`.

Formulas:
    Simple Return = (End - Start) / Start x 100
    CAGR = ((End / Start)^(1 / years) - 1) x 100
    years = elapsed days / 365.25

Null Safety:
    CAGR is undefined for non-positive bases, so points with a value that
    is missing, non-finite or <= 0 are dropped before any CAGR work. Any
    result that cannot be computed is None, never an exception.
"""

import decimal
import logging
import math
import re
from collections.abc import Iterable, Sequence
from datetime import date
from decimal import Decimal

from portfolio_dashboard.services.analytics.types import (
    CAGRNullReason,
    CAGRResult,
    DatedValue,
    PeriodKind,
    ReturnPoint,
    WindowCAGRResult,
    YTDResult,
)
from portfolio_dashboard.services.constants import (
    DAYS_PER_YEAR,
    HUNDRED,
    PERCENTAGE_PRECISION,
    QUARTERS_PER_YEAR,
    ZERO,
)

logger = logging.getLogger(__name__)

_YEAR_RE = re.compile(r"^(\d{4})$")
_QUARTER_RE = re.compile(r"^(\d{4})-Q([1-4])$")
_TTM_SUFFIX = " (TTM)"
_DAYS_PER_YEAR = Decimal(str(DAYS_PER_YEAR))
_ONE_DECIMAL = Decimal("0.1")


# =============================================================================
# PARSING HELPERS
# =============================================================================

def parse_period_date(raw: date | str) -> date:
    """
    Convert a date or period label to a comparable date.

    "2023"       -> 2023-01-01
    "2023-Q2"    -> 2023-05-15 (middle of the quarter)
    "2023-06-30" -> 2023-06-30

    Raises:
        ValueError: If the label is not a year, quarter or ISO date
    """
    if isinstance(raw, date):
        return raw

    label = raw.strip()
    if label.endswith(_TTM_SUFFIX):
        label = label[: -len(_TTM_SUFFIX)]

    match = _YEAR_RE.match(label)
    if match:
        return date(int(match.group(1)), 1, 1)

    match = _QUARTER_RE.match(label)
    if match:
        quarter = int(match.group(2))
        return date(int(match.group(1)), (quarter - 1) * 3 + 2, 15)

    return date.fromisoformat(label[:10])


def format_period_label(raw: date | str, parsed: date, kind: PeriodKind) -> str:
    """Display label for a point under the given period kind."""
    if kind == PeriodKind.DAILY:
        return parsed.isoformat()

    if kind == PeriodKind.ANNUAL:
        if isinstance(raw, str) and _YEAR_RE.match(raw.strip()):
            return raw.strip()
        return str(parsed.year)

    if isinstance(raw, str) and _QUARTER_RE.match(raw.strip().removesuffix(_TTM_SUFFIX)):
        label = raw.strip().removesuffix(_TTM_SUFFIX)
    else:
        label = f"{parsed.year}-Q{(parsed.month - 1) // 3 + 1}"

    return f"{label}{_TTM_SUFFIX}" if kind == PeriodKind.TTM else label


def to_decimal(value: Decimal | float | int | None) -> Decimal | None:
    """Decimal for a finite number, None for missing or non-finite input."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, float):
        return Decimal(str(value)) if math.isfinite(value) else None
    return Decimal(value)


def _valid_points(series: Iterable[DatedValue]) -> list[tuple[date, date | str, Decimal]]:
    """(parsed date, raw date, value) for points with a positive finite value, by date."""
    points = []
    for point in series:
        value = to_decimal(point.value)
        if value is None or value <= 0:
            continue
        try:
            parsed = parse_period_date(point.date)
        except (TypeError, ValueError):
            logger.debug(f"Skipping point with unparseable date {point.date!r}")
            continue
        points.append((parsed, point.date, value))
    points.sort(key=lambda p: p[0])
    return points


def _subtract_years(day: date, years: int) -> date:
    try:
        return day.replace(year=day.year - years)
    except ValueError:
        # Feb 29 -> Feb 28
        return day.replace(year=day.year - years, day=28)


def _annualize(start: Decimal, end: Decimal, years: Decimal) -> Decimal | None:
    """((end / start)^(1/years) - 1) x 100, None when not representable."""
    try:
        growth = (end / start) ** (Decimal("1") / years) - Decimal("1")
        if not growth.is_finite():
            return None
        return (growth * HUNDRED).quantize(PERCENTAGE_PRECISION)
    except (decimal.InvalidOperation, decimal.Overflow, decimal.DivisionByZero):
        return None


# =============================================================================
# CAGR
# =============================================================================

def compute_window_cagr(
        series: Sequence[DatedValue],
        window_years: int,
        period_kind: PeriodKind = PeriodKind.DAILY,
) -> WindowCAGRResult:
    """
    CAGR over the trailing `window_years` of a series.

    The end point is always the latest valid point. The start point is the
    latest point dated on or before (end - window_years calendar years);
    when the series does not reach that far back the result is null rather
    than extrapolated. Elapsed time is the actual span between the chosen
    points in 365.25-day years, not the nominal window.

    Example:
        [(2020-01-01, 1000), (2024-01-01, 1500)], window 4
        -> elapsed 4.0 years, CAGR ~ 10.67%
    """
    if window_years <= 0:
        return WindowCAGRResult.null(CAGRNullReason.INVALID_WINDOW)

    if len(series) < 2:
        return WindowCAGRResult.null(CAGRNullReason.INSUFFICIENT)

    points = _valid_points(series)
    if len(points) < 2:
        return WindowCAGRResult.null(CAGRNullReason.NONPOSITIVE)

    end_date, end_raw, end_value = points[-1]
    target = _subtract_years(end_date, window_years)

    start = next((p for p in reversed(points) if p[0] <= target), None)
    if start is None:
        return WindowCAGRResult.null(CAGRNullReason.SHORT_SPAN)

    start_date, start_raw, start_value = start
    elapsed = Decimal((end_date - start_date).days) / _DAYS_PER_YEAR
    if elapsed <= 0:
        return WindowCAGRResult.null(CAGRNullReason.SHORT_SPAN)

    cagr = _annualize(start_value, end_value, elapsed)
    if cagr is None:
        return WindowCAGRResult.null(CAGRNullReason.NONFINITE)

    return WindowCAGRResult(
        cagr_pct=cagr,
        start_label=format_period_label(start_raw, start_date, period_kind),
        end_label=format_period_label(end_raw, end_date, period_kind),
        start_value=start_value,
        end_value=end_value,
        elapsed_years=elapsed.quantize(PERCENTAGE_PRECISION),
    )


def compute_cagr(series: Sequence[DatedValue]) -> CAGRResult:
    """
    CAGR between the first and last valid points of a whole series.

    Years come from the labels when both ends are quarter labels
    (quarters / 4) or year labels (difference in years); otherwise from
    the dates (days / 365.25). Reported years are rounded to 0.1.
    """
    points = _valid_points(series)
    if len(points) < 2:
        return CAGRResult(cagr_pct=None)

    start_date, start_raw, start_value = points[0]
    end_date, end_raw, end_value = points[-1]

    years = _label_years(start_raw, end_raw)
    if years is None:
        years = Decimal((end_date - start_date).days) / _DAYS_PER_YEAR

    if years <= 0:
        return CAGRResult(cagr_pct=None, start_value=start_value, end_value=end_value)

    return CAGRResult(
        cagr_pct=_annualize(start_value, end_value, years),
        years=years.quantize(_ONE_DECIMAL),
        start_value=start_value,
        end_value=end_value,
    )


def _label_years(start: date | str, end: date | str) -> Decimal | None:
    if not isinstance(start, str) or not isinstance(end, str):
        return None

    start_q = _QUARTER_RE.match(start.strip().removesuffix(_TTM_SUFFIX))
    end_q = _QUARTER_RE.match(end.strip().removesuffix(_TTM_SUFFIX))
    if start_q and end_q:
        quarters = (
            (int(end_q.group(1)) - int(start_q.group(1))) * QUARTERS_PER_YEAR
            + int(end_q.group(2)) - int(start_q.group(2))
        )
        return Decimal(quarters) / QUARTERS_PER_YEAR

    start_y = _YEAR_RE.match(start.strip())
    end_y = _YEAR_RE.match(end.strip())
    if start_y and end_y:
        return Decimal(int(end_y.group(1)) - int(start_y.group(1)))

    return None


# =============================================================================
# SIMPLE RETURNS
# =============================================================================

def compute_ytd_return(series: Sequence[DatedValue], today: date | None = None) -> YTDResult:
    """
    Year-to-date return.

    Baseline is the first point on or after January 1 of today's year; no
    Jan 1 value is interpolated. When the series has no point in the
    current year, the series' first point is the baseline.
    """
    today = today or date.today()
    points = sorted(
        ((parse_period_date(p.date), to_decimal(p.value) or ZERO) for p in series),
        key=lambda p: p[0],
    )

    if not points:
        return YTDResult(
            ytd_return=ZERO,
            baseline_date=None,
            baseline_value=ZERO,
            current_value=ZERO,
            calculation_date=today,
        )

    year_start = date(today.year, 1, 1)
    baseline_date, baseline_value = next(
        (p for p in points if p[0] >= year_start),
        points[0],
    )
    current_value = points[-1][1]

    if baseline_value <= 0:
        ytd = ZERO
    else:
        ytd = ((current_value - baseline_value) / baseline_value * HUNDRED).quantize(PERCENTAGE_PRECISION)

    return YTDResult(
        ytd_return=ytd,
        baseline_date=baseline_date,
        baseline_value=baseline_value,
        current_value=current_value,
        calculation_date=today,
    )


def validate_ytd_consistency(
        ytd: YTDResult,
        portfolio_value: Decimal,
        tolerance: Decimal = Decimal("0.01"),
) -> bool:
    """True when the YTD current value matches the portfolio value within tolerance."""
    consistent = abs(ytd.current_value - portfolio_value) <= tolerance
    if not consistent:
        logger.warning(
            f"YTD current value {ytd.current_value} differs from portfolio value "
            f"{portfolio_value} by more than {tolerance}"
        )
    return consistent


def compute_all_time_return(series: Sequence[DatedValue]) -> Decimal:
    """(last - first) / first x 100; 0 with fewer than 2 points or a non-positive first value."""
    if len(series) < 2:
        return ZERO

    ordered = sorted(series, key=lambda p: parse_period_date(p.date))
    first = to_decimal(ordered[0].value)
    last = to_decimal(ordered[-1].value)
    if first is None or last is None or first <= 0:
        return ZERO

    return ((last - first) / first * HUNDRED).quantize(PERCENTAGE_PRECISION)


def compute_return_series(series: Sequence[DatedValue]) -> list[ReturnPoint]:
    """
    Cumulative return per point relative to the first point.

    Empty with fewer than 2 points or a non-positive first value.
    """
    if len(series) < 2:
        return []

    ordered = sorted(series, key=lambda p: parse_period_date(p.date))
    base = to_decimal(ordered[0].value)
    if base is None or base <= 0:
        return []

    result = []
    for point in ordered:
        value = to_decimal(point.value)
        if value is None:
            continue
        result.append(ReturnPoint(
            date=parse_period_date(point.date),
            return_pct=((value - base) / base * HUNDRED).quantize(PERCENTAGE_PRECISION),
        ))
    return result
