"""
Benchmark term structure.

Convention (shared with the implied pricer, never mixed):
- Year fraction: ACT/360 on unix seconds (ACT/365 selectable)
- Rates: simple, linearly interpolated between knots, flat outside
- Discount factor: DF = 1 / (1 + r * tau)

A curve is immutable. Refresh means building a new BenchmarkCurve and
swapping the reference (see services.curve_store).
"""

import math
from dataclasses import dataclass, asdict
from enum import Enum
from typing import Any, Iterable, Optional

from fyarb.core.errors import InvalidCurveError
from fyarb.core.timeutil import SECONDS_PER_DAY

# Slack for the forward-rate check; knots come from float market data.
_FORWARD_EPS = 1e-12


class DayCount(str, Enum):
    """Day count convention for year fractions."""
    ACT360 = "act360"
    ACT365 = "act365"

    @property
    def days_per_year(self) -> float:
        return 360.0 if self is DayCount.ACT360 else 365.0

    def year_fraction(self, seconds: float) -> float:
        """Convert a duration in seconds to a year fraction."""
        return seconds / SECONDS_PER_DAY / self.days_per_year


def discount_factor_from_rate(rate: float, tau: float) -> float:
    """Simple-compounding discount factor."""
    if tau <= 0:
        return 1.0
    return 1.0 / (1.0 + rate * tau)


def rate_from_discount_factor(df: float, tau: float) -> float:
    """Inverse of discount_factor_from_rate."""
    if tau <= 0:
        raise ValueError("tau must be positive to imply a rate")
    if df <= 0:
        raise ValueError(f"discount factor must be positive, got {df}")
    return (1.0 / df - 1.0) / tau


@dataclass(frozen=True)
class CurveKnot:
    """(time to maturity in years, simple rate), e.g. (0.25, 0.05)."""
    tenor: float
    rate: float

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class BenchmarkCurve:
    """
    Piecewise-linear simple-rate curve.

    Validated on construction; every valid curve yields discount factors
    in (0, 1] that are non-increasing in maturity.
    """

    __slots__ = ("_knots", "_day_count", "_source")

    def __init__(
        self,
        knots: Iterable[CurveKnot],
        day_count: DayCount = DayCount.ACT360,
        source: str = "static",
    ):
        knots = tuple(knots)
        _validate_knots(knots)
        self._knots = knots
        self._day_count = DayCount(day_count)
        self._source = source

    @property
    def knots(self) -> tuple[CurveKnot, ...]:
        return self._knots

    @property
    def day_count(self) -> DayCount:
        return self._day_count

    @property
    def source(self) -> str:
        return self._source

    def __repr__(self) -> str:
        return f"BenchmarkCurve(knots={len(self._knots)}, day_count={self._day_count.value}, source={self._source!r})"

    @classmethod
    def default_usd(cls) -> "BenchmarkCurve":
        """Placeholder SOFR curve; replace with market data in production."""
        return cls(
            [
                CurveKnot(0.0028, 0.0520),  # ~1 day
                CurveKnot(0.0833, 0.0515),  # 1 month
                CurveKnot(0.25, 0.0500),    # 3 months
                CurveKnot(0.50, 0.0475),    # 6 months
                CurveKnot(1.00, 0.0450),    # 1 year
                CurveKnot(2.00, 0.0425),    # 2 years
            ],
            DayCount.ACT360,
            source="default_usd",
        )

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BenchmarkCurve":
        """
        Build from config, e.g.
        {"day_count": "act360", "knots": [{"tenor": 0.25, "rate": 0.05}, ...]}
        """
        try:
            knots = [CurveKnot(float(k["tenor"]), float(k["rate"])) for k in data.get("knots", [])]
            day_count = DayCount(str(data.get("day_count", DayCount.ACT360.value)).lower())
        except (KeyError, TypeError, ValueError) as e:
            raise InvalidCurveError(f"Malformed curve definition: {e}") from e
        return cls(knots, day_count, source=data.get("source", "config"))

    def to_dict(self) -> dict[str, Any]:
        return {
            "day_count": self._day_count.value,
            "source": self._source,
            "knots": [k.to_dict() for k in self._knots],
        }

    # ==============================================
    # Rates
    # ==============================================

    def rate(self, tau: float) -> float:
        """Interpolated simple rate for a year fraction."""
        knots = self._knots
        if tau <= knots[0].tenor:
            return knots[0].rate
        if tau >= knots[-1].tenor:
            return knots[-1].rate

        for lo, hi in zip(knots, knots[1:]):
            if tau <= hi.tenor:
                alpha = (tau - lo.tenor) / (hi.tenor - lo.tenor)
                return lo.rate + alpha * (hi.rate - lo.rate)

        return knots[-1].rate  # unreachable for validated knots

    def forward_rate(self, t1: float, t2: float) -> float:
        """Simple forward rate between two year fractions."""
        if t2 <= t1:
            return 0.0
        df1 = self.discount_factor_for_tau(t1)
        df2 = self.discount_factor_for_tau(t2)
        return (df1 / df2 - 1.0) / (t2 - t1)

    # ==============================================
    # Discount factors
    # ==============================================

    def time_to_maturity(self, as_of_time: int, maturity_time: int) -> float:
        """Year fraction from as_of to maturity, floored at zero."""
        return self._day_count.year_fraction(max(maturity_time - as_of_time, 0))

    def discount_factor_for_tau(self, tau: float) -> float:
        return discount_factor_from_rate(self.rate(tau), tau)

    def discount_factor(self, maturity_time: int, as_of_time: int) -> float:
        """
        Present value of one unit of base asset paid at maturity_time.

        Args:
            maturity_time: unix seconds
            as_of_time: unix seconds, must not be after maturity_time

        Returns:
            Discount factor in (0, 1]; exactly 1.0 when the times are equal
        """
        if maturity_time == as_of_time:
            return 1.0
        if maturity_time < as_of_time:
            raise ValueError(
                f"maturity {maturity_time} is before as-of time {as_of_time}"
            )
        return self.discount_factor_for_tau(self.time_to_maturity(as_of_time, maturity_time))


def _validate_knots(knots: tuple[CurveKnot, ...]) -> None:
    if not knots:
        raise InvalidCurveError("Curve needs at least one knot")

    for k in knots:
        if not (math.isfinite(k.tenor) and math.isfinite(k.rate)):
            raise InvalidCurveError(f"Non-finite knot {k}")
        if k.tenor < 0:
            raise InvalidCurveError(f"Negative tenor in knot {k}")
        if k.rate < 0:
            raise InvalidCurveError(f"Negative rate in knot {k}")

    for lo, hi in zip(knots, knots[1:]):
        if hi.tenor <= lo.tenor:
            raise InvalidCurveError(
                f"Tenors must be strictly increasing: {lo.tenor} then {hi.tenor}"
            )
        # d/dtau [r(tau) * tau] = r0 + s * (2 tau - t0) on the segment; it is
        # linear in tau, so checking both ends covers the whole segment.
        slope = (hi.rate - lo.rate) / (hi.tenor - lo.tenor)
        growth_lo = lo.rate + slope * lo.tenor
        growth_hi = lo.rate + slope * (2 * hi.tenor - lo.tenor)
        if min(growth_lo, growth_hi) < -_FORWARD_EPS:
            raise InvalidCurveError(
                f"Knots {lo} -> {hi} imply a negative forward rate",
                details={"segment": [lo.to_dict(), hi.to_dict()]},
            )


def curve_summary(curve: BenchmarkCurve, tenors: Optional[list[float]] = None) -> list[dict[str, float]]:
    """Rate and DF at a few tenors, for status output."""
    tenors = tenors or [k.tenor for k in curve.knots]
    return [
        {"tenor": t, "rate": curve.rate(t), "df": curve.discount_factor_for_tau(t)}
        for t in tenors
    ]
