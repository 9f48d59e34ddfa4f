# tests/utils/test_axis.py
"""
Tests for chart Y-axis scaling and label formatting.
"""

import math

import pytest

from portfolio_dashboard.utils.axis import (
    MetricKind,
    compute_y_axis_scale,
    format_value,
    nice_number,
)


class TestNiceNumber:
    """Tests for nice_number()."""

    @pytest.mark.parametrize("value,expected", [
        (0.3, 0.5),
        (1, 1),
        (1.01, 2),
        (25, 50),
        (2000, 2000),
        (7.5, 10),
        (0.07, 0.1),
    ])
    def test_rounds_up_to_1_2_5(self, value, expected):
        assert nice_number(value) == pytest.approx(expected)

    @pytest.mark.parametrize("value", [0, -1, math.inf, math.nan])
    def test_rejects_invalid(self, value):
        with pytest.raises(ValueError):
            nice_number(value)


class TestComputeYAxisScale:
    """Tests for compute_y_axis_scale()."""

    def test_positive_values(self):
        scale = compute_y_axis_scale([1200.0, 3400.0])

        assert scale.ticks == (0.0, 1000.0, 2000.0, 3000.0, 4000.0)
        assert scale.domain == (0.0, 4000.0)
        assert scale.step == 1000.0
        assert scale.labels == ("$0.0K", "$1.0K", "$2.0K", "$3.0K", "$4.0K")

    def test_negative_values(self):
        scale = compute_y_axis_scale([-30.0, -5.0], MetricKind.PERCENT)

        assert scale.ticks == (-40.0, -30.0, -20.0, -10.0, 0.0)
        assert scale.labels == ("-40%", "-30%", "-20%", "-10%", "0%")

    def test_mixed_values_centered_on_zero(self):
        scale = compute_y_axis_scale([-2.5e6, 7.0e6])

        assert scale.ticks == (-1.0e7, -5.0e6, 0.0, 5.0e6, 1.0e7)
        assert scale.unit_suffix == "M"
        assert scale.labels == ("-$10M", "-$5M", "$0M", "$5M", "$10M")

    @pytest.mark.parametrize("data", [
        [],
        [0, 0],
        [None, float("nan")],
    ])
    def test_default_axis(self, data):
        scale = compute_y_axis_scale(data)

        assert scale.domain == (0.0, 100.0)
        assert scale.ticks == (0.0, 25.0, 50.0, 75.0, 100.0)

    @pytest.mark.parametrize("data", [
        [0.3, 0.9],
        [12.0, 87.0],
        [-1.0, 1.0],
        [150_000.0, 2_100_000.0],
        [-0.04, 0.01],
        [1e12, 3.3e12],
        [1e-12, 3e-12],
        [-5e-15, 2e-15],
    ])
    def test_five_equally_spaced_ticks_with_zero(self, data):
        scale = compute_y_axis_scale(data)

        assert len(scale.ticks) == 5
        assert 0.0 in scale.ticks
        gaps = {round((b - a) / scale.step, 9) for a, b in zip(scale.ticks, scale.ticks[1:])}
        assert gaps == {1.0}
        assert scale.domain[0] <= min(data)
        assert scale.domain[1] >= max(data)

    def test_no_float_noise(self):
        scale = compute_y_axis_scale([0.0, 0.35], MetricKind.RATIO)

        assert scale.ticks == (0.0, 0.1, 0.2, 0.3, 0.4)
        assert scale.labels == ("0.00", "0.10", "0.20", "0.30", "0.40")

    def test_tiny_values_keep_distinct_ticks(self):
        scale = compute_y_axis_scale([1e-12, 3e-12], MetricKind.RATIO)

        assert scale.step == pytest.approx(1e-12)
        assert scale.ticks == pytest.approx((0.0, 1e-12, 2e-12, 3e-12, 4e-12), abs=1e-24)
        assert len(set(scale.ticks)) == 5

    def test_shares_use_millions_and_billions(self):
        scale = compute_y_axis_scale([0.0, 3.2e9], MetricKind.SHARES)

        assert scale.unit_suffix == "B"
        assert scale.labels[-1] == "4.0B"

        small = compute_y_axis_scale([0.0, 40_000.0], MetricKind.SHARES)
        assert small.unit_suffix == ""

    def test_eps_labels(self):
        scale = compute_y_axis_scale([-1.2, 3.4], MetricKind.EPS)

        assert scale.labels == ("-$4.00", "-$2.00", "$0.00", "$2.00", "$4.00")


class TestFormatValue:
    """Tests for tooltip formatting."""

    @pytest.mark.parametrize("value,kind,expected", [
        (1_234_567.0, MetricKind.CURRENCY, "$1.23M"),
        (-950.0, MetricKind.CURRENCY, "-$950.00"),
        (2.5e12, MetricKind.CURRENCY, "$2.50T"),
        (-0.42, MetricKind.EPS, "-$0.42"),
        (15_300_000_000.0, MetricKind.SHARES, "15.30B"),
        (12.345, MetricKind.PERCENT, "12.3%"),
        (1.5, MetricKind.RATIO, "1.50"),
        (None, MetricKind.CURRENCY, "N/A"),
        (math.nan, MetricKind.PERCENT, "N/A"),
    ])
    def test_format(self, value, kind, expected):
        assert format_value(value, kind) == expected
