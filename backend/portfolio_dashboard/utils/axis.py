# backend/portfolio_dashboard/utils/axis.py
"""
Y-axis scaling and tick label formatting for dashboard charts.

Ticks follow a 1-2-5 progression and there are always exactly five of
them, equally spaced, with zero on the axis:

    all >= 0:   0, s, 2s, 3s, 4s        s = nice(max / 4)
    mixed:      -2s, -s, 0, s, 2s       s = nice(abs_max / 2)
    all <= 0:   -4s, -3s, -2s, -s, 0    s = nice(abs(min) / 4)

Labels pick a unit (K, M, B, T) from the data's absolute maximum, so every
tick on one axis uses the same unit.

Usage:
    scale = compute_y_axis_scale([1200.0, 3400.0], MetricKind.CURRENCY)
    scale.ticks    # (0.0, 1000.0, 2000.0, 3000.0, 4000.0)
    scale.labels   # ('$0.0K', '$1.0K', '$2.0K', '$3.0K', '$4.0K')
"""

import math
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

DEFAULT_DOMAIN: tuple[float, float] = (0.0, 100.0)
DEFAULT_TICKS: tuple[float, ...] = (0.0, 25.0, 50.0, 75.0, 100.0)
TICK_COUNT = 5

_NICE_STEPS = (1, 2, 5, 10)

_UNITS: tuple[tuple[float, str], ...] = (
    (1e12, "T"),
    (1e9, "B"),
    (1e6, "M"),
    (1e3, "K"),
)
_SHARE_UNITS: tuple[tuple[float, str], ...] = (
    (1e9, "B"),
    (1e6, "M"),
)


class MetricKind(str, Enum):
    """How values on an axis are rendered."""

    CURRENCY = "currency"
    EPS = "eps"
    SHARES = "shares"
    PERCENT = "percent"
    RATIO = "ratio"


def nice_number(value: float) -> float:
    """
    Smallest of {1, 2, 5, 10} x 10^k that is >= value.

    Examples:
        nice_number(0.3)  -> 0.5
        nice_number(25)   -> 50
        nice_number(2000) -> 2000

    Raises:
        ValueError: If value is not a positive finite number
    """
    if not math.isfinite(value) or value <= 0:
        raise ValueError(f"nice_number requires a positive finite value, got {value}")

    magnitude = 10 ** math.floor(math.log10(value))
    normalized = round(value / magnitude, 9)
    for step in _NICE_STEPS:
        if step >= normalized:
            return step * magnitude
    return 10 * magnitude


def _pick_unit(abs_max: float, kind: MetricKind) -> tuple[float, str]:
    if kind in (MetricKind.PERCENT, MetricKind.RATIO, MetricKind.EPS):
        return 1.0, ""
    units = _SHARE_UNITS if kind == MetricKind.SHARES else _UNITS
    for scale, suffix in units:
        if abs_max >= scale:
            return scale, suffix
    return 1.0, ""


@dataclass(frozen=True)
class YAxisScale:
    """
    Domain, ticks and label formatting for one chart axis.

    Attributes:
        domain: (min, max) of the axis
        ticks: Five equally spaced tick values
        step: Distance between ticks
        metric_kind: Rendering kind
        unit_scale: Divisor applied before formatting (1, 1e3, 1e6, ...)
        unit_suffix: "", "K", "M", "B" or "T"
        decimals: Decimal places for scaled values
    """

    domain: tuple[float, float]
    ticks: tuple[float, ...]
    step: float
    metric_kind: MetricKind = MetricKind.CURRENCY
    unit_scale: float = 1.0
    unit_suffix: str = ""
    decimals: int = 0

    def format(self, value: float) -> str:
        """Render one value with this axis' unit and precision."""
        kind = self.metric_kind
        sign = "-" if value < 0 else ""
        magnitude = abs(value)

        if kind == MetricKind.CURRENCY:
            return f"{sign}${magnitude / self.unit_scale:.{self.decimals}f}{self.unit_suffix}"
        if kind == MetricKind.EPS:
            return f"{sign}${magnitude:.2f}"
        if kind == MetricKind.SHARES:
            return f"{sign}{magnitude / self.unit_scale:.{self.decimals}f}{self.unit_suffix}"
        if kind == MetricKind.PERCENT:
            return f"{sign}{magnitude:.{self.decimals}f}%"
        return f"{sign}{magnitude:.2f}"

    @property
    def labels(self) -> tuple[str, ...]:
        return tuple(self.format(tick) for tick in self.ticks)


def compute_y_axis_scale(
        data: Iterable[float | int | None],
        metric_kind: MetricKind = MetricKind.CURRENCY,
) -> YAxisScale:
    """
    Compute a zero-anchored 5-tick axis for a set of values.

    Missing and non-finite values are ignored. Empty input or all zeros
    give the default 0..100 axis.
    """
    values = [float(v) for v in data if v is not None and math.isfinite(float(v))]
    lowest = min(values, default=0.0)
    highest = max(values, default=0.0)

    if not values or (lowest == 0 and highest == 0):
        unit_scale, suffix = _pick_unit(DEFAULT_DOMAIN[1], metric_kind)
        return YAxisScale(
            domain=DEFAULT_DOMAIN,
            ticks=DEFAULT_TICKS,
            step=25.0,
            metric_kind=metric_kind,
            unit_scale=unit_scale,
            unit_suffix=suffix,
            decimals=_decimals(25.0, unit_scale),
        )

    if lowest >= 0:
        step = nice_number(highest / 4)
        multiples = range(0, TICK_COUNT)
    elif highest <= 0:
        step = nice_number(abs(lowest) / 4)
        multiples = range(-(TICK_COUNT - 1), 1)
    else:
        step = nice_number(max(abs(lowest), abs(highest)) / 2)
        multiples = range(-2, 3)

    ticks = tuple(_clean(step * i, step) for i in multiples)
    abs_max = max(abs(lowest), abs(highest))
    unit_scale, suffix = _pick_unit(abs_max, metric_kind)

    return YAxisScale(
        domain=(ticks[0], ticks[-1]),
        ticks=ticks,
        step=step,
        metric_kind=metric_kind,
        unit_scale=unit_scale,
        unit_suffix=suffix,
        decimals=_decimals(step, unit_scale),
    )


def _decimals(step: float, unit_scale: float) -> int:
    return 0 if step >= 5 * unit_scale else 1


def _clean(value: float, step: float) -> float:
    # Drop float noise such as 0.30000000000000004 and -0.0, keeping
    # 10 significant digits below the step's magnitude
    digits = max(10, 10 - math.floor(math.log10(step)))
    cleaned = round(value, digits)
    return 0.0 if cleaned == 0 else cleaned


def format_value(value: float | None, metric_kind: MetricKind) -> str:
    """Tooltip formatting for a single value, independent of any axis."""
    if value is None or not math.isfinite(value):
        return "N/A"

    if metric_kind == MetricKind.CURRENCY:
        scale, suffix = _pick_unit(abs(value), metric_kind)
        sign = "-" if value < 0 else ""
        return f"{sign}${abs(value) / scale:.2f}{suffix}"
    if metric_kind == MetricKind.EPS:
        return f"${value:.2f}" if value >= 0 else f"-${abs(value):.2f}"
    if metric_kind == MetricKind.SHARES:
        scale, suffix = _pick_unit(abs(value), metric_kind)
        return f"{value / scale:.2f}{suffix}"
    if metric_kind == MetricKind.PERCENT:
        return f"{value:.1f}%"
    return f"{value:.2f}"
