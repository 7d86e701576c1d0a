"""
Pool-implied discount factors.

Reads a pool's marginal price with a hypothetical round trip of a small
probe (a fixed fraction of base reserves, so the probe stays in the
linear part of the curve for any pool size) and expresses it in the same
rate convention as the benchmark curve.
"""

from typing import Optional

from fyarb.core.errors import IlliquidPoolError
from fyarb.core.logging import LoggerMixin
from fyarb.domain.models import PoolSnapshot
from fyarb.pricing.curve import DayCount, discount_factor_from_rate, rate_from_discount_factor
from fyarb.pricing.yieldspace import YieldSpacePool, time_stretch_seconds


class ImpliedPricer(LoggerMixin):
    """
    Derives a pool's implied discount factor from its snapshot.

    No trade is executed; the probe runs against the local YieldSpace
    model of the snapshot.
    """

    def __init__(
        self,
        min_liquidity: float = 100.0,
        probe_fraction: float = 1e-6,
        time_stretch_years: float = 10.0,
        day_count: DayCount = DayCount.ACT360,
    ):
        if not 0 < probe_fraction < 1:
            raise ValueError(f"probe_fraction must be in (0, 1), got {probe_fraction}")
        self.min_liquidity = min_liquidity
        self.probe_fraction = probe_fraction
        self.time_stretch = time_stretch_seconds(time_stretch_years)
        self.day_count = DayCount(day_count)

    def pool(self, snapshot: PoolSnapshot) -> YieldSpacePool:
        """Pricing model for a snapshot, or IlliquidPoolError if it cannot be priced."""
        self._check_priceable(snapshot)
        return YieldSpacePool.from_snapshot(snapshot, self.time_stretch)

    def marginal_price(self, snapshot: PoolSnapshot) -> float:
        """
        Base per FY at the margin: midpoint of the probe's ask and bid.

        Ask: base paid per FY received when selling the probe of base.
        Bid: base received per FY when selling the same quantity of FY.
        """
        pool = self.pool(snapshot)
        probe = snapshot.base_reserves * self.probe_fraction

        fy_out = pool.sell_base_preview(probe)
        base_out = pool.sell_fy_preview(probe)
        if fy_out <= 0 or base_out <= 0:
            raise IlliquidPoolError(
                f"Probe returned nothing on pool {snapshot.pool_id}",
                pool_id=snapshot.pool_id,
                reason="probe_failed",
            )

        ask = probe / fy_out
        bid = base_out / probe
        return (ask + bid) / 2

    def implied_rate(self, snapshot: PoolSnapshot, price: Optional[float] = None) -> float:
        """Simple annual rate implied by the pool over its own time to maturity."""
        if price is None:
            price = self.marginal_price(snapshot)
        tau = self.day_count.year_fraction(snapshot.seconds_to_maturity)
        return rate_from_discount_factor(price, tau)

    def implied_discount_factor(self, snapshot: PoolSnapshot) -> float:
        """
        Discount factor implied by the pool, comparable with
        BenchmarkCurve.discount_factor(snapshot.maturity, snapshot.observed_at).

        Raises:
            IlliquidPoolError: reserves below the floor, or pool matured
        """
        price = self.marginal_price(snapshot)
        tau = self.day_count.year_fraction(snapshot.seconds_to_maturity)
        rate = rate_from_discount_factor(price, tau)
        df = discount_factor_from_rate(rate, tau)

        self.logger.debug(
            f"Pool {snapshot.pool_id}: price={price:.8f} rate={rate:.6f} df={df:.8f}"
        )
        return df

    def _check_priceable(self, snapshot: PoolSnapshot) -> None:
        if snapshot.maturity <= snapshot.observed_at:
            raise IlliquidPoolError(
                f"Pool {snapshot.pool_id} has matured",
                pool_id=snapshot.pool_id,
                reason="matured",
            )
        if min(snapshot.base_reserves, snapshot.fy_reserves) < self.min_liquidity:
            raise IlliquidPoolError(
                f"Pool {snapshot.pool_id} reserves below {self.min_liquidity}",
                pool_id=snapshot.pool_id,
                reason="below_min_liquidity",
                details={
                    "base_reserves": snapshot.base_reserves,
                    "fy_reserves": snapshot.fy_reserves,
                },
            )
        if min(snapshot.base_reserves, snapshot.fy_reserves) <= 0:
            raise IlliquidPoolError(
                f"Pool {snapshot.pool_id} has an empty reserve",
                pool_id=snapshot.pool_id,
                reason="empty_reserve",
            )
        if snapshot.seconds_to_maturity >= self.time_stretch:
            raise IlliquidPoolError(
                f"Pool {snapshot.pool_id} matures beyond the pricing horizon",
                pool_id=snapshot.pool_id,
                reason="beyond_time_stretch",
            )
        if not 0 <= snapshot.fee_bps < 10_000:
            raise IlliquidPoolError(
                f"Pool {snapshot.pool_id} reports fee {snapshot.fee_bps} bps",
                pool_id=snapshot.pool_id,
                reason="bad_fee",
            )
