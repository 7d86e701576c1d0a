"""
YieldSpace pool pricing.

A fixed-yield pool holds base reserves z and FY reserves y and keeps

    z^(1-t) + y^(1-t) = k,     t = seconds_to_maturity / time_stretch

constant across trades. The spot price of FY in base is (z/y)^t, which
tends to par as maturity approaches. The fee is charged on the input
amount of each trade.

All previews are local computations on a snapshot; nothing here touches
the chain. Power differences are evaluated with log1p/expm1 because the
probe and the bisection both look at trades many orders of magnitude
smaller than the reserves.
"""

import math

from fyarb.core.timeutil import SECONDS_PER_YEAR
from fyarb.domain.models import PoolSnapshot


def time_stretch_seconds(years: float) -> float:
    return years * SECONDS_PER_YEAR


def _counter_delta(x: float, dx: float, other: float, a: float) -> float:
    """
    Change in `other` when `x` moves by `dx` on the curve x^a + other^a = k.

    Returns -other when the move would need more than the whole reserve.
    """
    # (x + dx)^a - x^a, relative to other^a
    shift = x ** a * math.expm1(a * math.log1p(dx / x)) / other ** a
    if shift >= 1.0:
        return -other
    return other * math.expm1(math.log1p(-shift) / a)


class YieldSpacePool:
    """Pricing function of one pool at one snapshot."""

    def __init__(
        self,
        base_reserves: float,
        fy_reserves: float,
        fee_bps: float,
        seconds_to_maturity: float,
        time_stretch: float,
    ):
        if base_reserves <= 0 or fy_reserves <= 0:
            raise ValueError("reserves must be positive")
        if not 0 <= fee_bps < 10_000:
            raise ValueError(f"fee_bps out of range: {fee_bps}")
        if seconds_to_maturity <= 0:
            raise ValueError("pool has matured")
        t = seconds_to_maturity / time_stretch
        if t >= 1.0:
            raise ValueError("maturity is beyond the time stretch horizon")

        self.z = float(base_reserves)
        self.y = float(fy_reserves)
        self.fee = fee_bps / 10_000
        self.t = t
        self.a = 1.0 - t
        self.k = self.z ** self.a + self.y ** self.a

    @classmethod
    def from_snapshot(cls, snapshot: PoolSnapshot, time_stretch: float) -> "YieldSpacePool":
        return cls(
            snapshot.base_reserves,
            snapshot.fy_reserves,
            snapshot.fee_bps,
            snapshot.seconds_to_maturity,
            time_stretch,
        )

    def spot_price(self) -> float:
        """Base per FY, before fees."""
        return (self.z / self.y) ** self.t

    # ==============================================
    # Trade previews
    # ==============================================

    def sell_base_preview(self, base_in: float) -> float:
        """FY received for `base_in` base."""
        if base_in <= 0:
            return 0.0
        dy = _counter_delta(self.z, base_in * (1 - self.fee), self.y, self.a)
        return -dy

    def sell_fy_preview(self, fy_in: float) -> float:
        """Base received for `fy_in` FY."""
        if fy_in <= 0:
            return 0.0
        dz = _counter_delta(self.y, fy_in * (1 - self.fee), self.z, self.a)
        return -dz

    def buy_fy_preview(self, fy_out: float) -> float:
        """Base required to take exactly `fy_out` FY out."""
        if fy_out <= 0:
            return 0.0
        if fy_out >= self.y:
            raise ValueError(f"cannot buy {fy_out} FY from {self.y} reserves")
        dz = _counter_delta(self.y, -fy_out, self.z, self.a)
        return dz / (1 - self.fee)

    # ==============================================
    # Marginal prices after a trade
    # ==============================================

    def buy_fy_marginal(self, fy_out: float) -> float:
        """d(base in)/d(fy out) after `fy_out` has been bought."""
        y1 = self.y - fy_out
        if y1 <= 0:
            return math.inf
        z1 = self.z + _counter_delta(self.y, -fy_out, self.z, self.a) if fy_out > 0 else self.z
        return (z1 / y1) ** self.t / (1 - self.fee)

    def sell_fy_marginal(self, fy_in: float) -> float:
        """d(base out)/d(fy in) after `fy_in` has been sold."""
        dy = max(fy_in, 0.0) * (1 - self.fee)
        y1 = self.y + dy
        z1 = self.z + _counter_delta(self.y, dy, self.z, self.a) if dy > 0 else self.z
        if z1 <= 0:
            return 0.0
        return (1 - self.fee) * (z1 / y1) ** self.t

    # ==============================================
    # Liquidity bounds (FY units)
    # ==============================================

    def max_fy_out(self) -> float:
        """FY that can be bought before the price reaches par (z == y)."""
        y_par = (self.k / 2) ** (1 / self.a)
        return max(0.0, self.y - y_par)

    def max_fy_in(self) -> float:
        """FY that can be sold before the base reserve is exhausted."""
        y_max = self.k ** (1 / self.a)
        return max(0.0, (y_max - self.y) / (1 - self.fee))
