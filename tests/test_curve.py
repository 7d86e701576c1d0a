"""Tests for the benchmark curve."""

import math

import pytest

from fyarb.core.errors import InvalidCurveError
from fyarb.core.timeutil import SECONDS_PER_DAY
from fyarb.pricing.curve import (
    BenchmarkCurve,
    CurveKnot,
    DayCount,
    curve_summary,
    discount_factor_from_rate,
    rate_from_discount_factor,
)


class TestDayCount:
    """Tests for year fractions."""

    def test_act360(self):
        assert DayCount.ACT360.year_fraction(90 * SECONDS_PER_DAY) == pytest.approx(0.25)

    def test_act365(self):
        assert DayCount.ACT365.year_fraction(365 * SECONDS_PER_DAY) == pytest.approx(1.0)

    def test_rate_df_inverse(self):
        df = discount_factor_from_rate(0.05, 0.25)
        assert df == pytest.approx(1 / 1.0125)
        assert rate_from_discount_factor(df, 0.25) == pytest.approx(0.05)

    def test_rate_needs_positive_tau(self):
        with pytest.raises(ValueError):
            rate_from_discount_factor(0.99, 0.0)


class TestBenchmarkCurve:
    """Tests for BenchmarkCurve."""

    @pytest.fixture
    def curve(self):
        return BenchmarkCurve.default_usd()

    def test_flat_extrapolation(self, curve):
        assert curve.rate(0.0) == curve.knots[0].rate
        assert curve.rate(30.0) == curve.knots[-1].rate

    def test_linear_interpolation(self):
        curve = BenchmarkCurve([CurveKnot(0.25, 0.04), CurveKnot(0.75, 0.05)])
        assert curve.rate(0.5) == pytest.approx(0.045)

    def test_df_is_one_at_maturity(self, curve):
        assert curve.discount_factor(1_700_000_000, 1_700_000_000) == 1.0

    def test_df_in_unit_interval_and_monotone(self, curve):
        as_of = 1_700_000_000
        previous = 1.0
        for days in range(1, 3 * 365, 7):
            df = curve.discount_factor(as_of + days * SECONDS_PER_DAY, as_of)
            assert 0 < df <= 1
            assert df <= previous + 1e-15
            previous = df

    def test_maturity_before_as_of_raises(self, curve):
        with pytest.raises(ValueError):
            curve.discount_factor(1_000, 2_000)

    def test_day_count_changes_df(self):
        knots = [CurveKnot(0.25, 0.05)]
        as_of = 1_700_000_000
        maturity = as_of + 90 * SECONDS_PER_DAY
        df360 = BenchmarkCurve(knots, DayCount.ACT360).discount_factor(maturity, as_of)
        df365 = BenchmarkCurve(knots, DayCount.ACT365).discount_factor(maturity, as_of)
        assert df365 > df360

    def test_forward_rates_non_negative(self, curve):
        for t1, t2 in [(0.0, 0.1), (0.1, 0.5), (0.5, 1.0), (1.0, 2.0), (2.0, 5.0)]:
            assert curve.forward_rate(t1, t2) >= -1e-12

    def test_round_trip_dict(self, curve):
        rebuilt = BenchmarkCurve.from_dict(curve.to_dict())
        assert rebuilt.knots == curve.knots
        assert rebuilt.day_count == curve.day_count

    def test_summary(self, curve):
        rows = curve_summary(curve, [0.25, 1.0])
        assert [r["tenor"] for r in rows] == [0.25, 1.0]
        assert rows[0]["df"] > rows[1]["df"]


class TestCurveValidation:
    """Curves that must be rejected."""

    @pytest.mark.parametrize(
        "knots",
        [
            [],
            [CurveKnot(0.5, 0.05), CurveKnot(0.25, 0.05)],
            [CurveKnot(0.25, 0.05), CurveKnot(0.25, 0.06)],
            [CurveKnot(0.25, -0.01)],
            [CurveKnot(-0.25, 0.01)],
            [CurveKnot(0.25, math.nan)],
            [CurveKnot(math.inf, 0.05)],
            # steep inversion: r(tau) * tau decreases on the segment
            [CurveKnot(0.25, 0.10), CurveKnot(1.0, 0.01)],
        ],
    )
    def test_invalid(self, knots):
        with pytest.raises(InvalidCurveError):
            BenchmarkCurve(knots)

    def test_mild_inversion_is_valid(self):
        curve = BenchmarkCurve([CurveKnot(0.25, 0.050), CurveKnot(1.0, 0.045)])
        assert curve.discount_factor_for_tau(1.0) < curve.discount_factor_for_tau(0.25)

    def test_malformed_dict(self):
        with pytest.raises(InvalidCurveError):
            BenchmarkCurve.from_dict({"knots": [{"tenor": 0.25}]})

    def test_unknown_day_count(self):
        with pytest.raises(InvalidCurveError):
            BenchmarkCurve.from_dict({"knots": [{"tenor": 0.25, "rate": 0.05}], "day_count": "30/360"})
