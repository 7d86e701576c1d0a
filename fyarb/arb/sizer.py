"""
Trade Sizing.

Profit of buying x FY on the cheap pool and selling it on the rich pool,

    P(x) = base_out_rich(x) - base_in_cheap(x),

is concave: both pools move against the trade as x grows. P'(x) is the
rich pool's marginal bid minus the cheap pool's marginal ask, so the
optimum is the root of P' and a bisection on its sign finds it.

Hard caps (never exceeded by an emitted proposal):
- leg-1 FY output <= max_position_token
- leg-1 base input <= max_position_base
"""

from typing import Callable, Optional

from fyarb.core.errors import IlliquidPoolError, SearchDidNotConvergeError
from fyarb.core.logging import LoggerMixin
from fyarb.domain.models import PoolSnapshot, TradeProposal
from fyarb.pricing.implied import ImpliedPricer
from fyarb.pricing.yieldspace import YieldSpacePool


def apply_slippage(amount: float, slippage_bps: float, is_max_in: bool) -> float:
    """Widen an input cap upwards or an output floor downwards."""
    adjustment = amount * slippage_bps / 10_000
    if is_max_in:
        return amount + adjustment
    return max(amount - adjustment, 0.0)


class TradeSizer(LoggerMixin):
    """
    Bounded search for the profit-maximising FY amount.

    Convergence guarantee: the returned size is the midpoint of a final
    interval narrower than `tolerance` FY, or there is no proposal.
    """

    def __init__(
        self,
        pricer: ImpliedPricer,
        tolerance: float = 1e-6,
        max_iterations: int = 64,
        dust: float = 0.01,
        slippage_bps: float = 50.0,
    ):
        if tolerance <= 0:
            raise ValueError("tolerance must be positive")
        if max_iterations < 1:
            raise ValueError("max_iterations must be at least 1")
        self.pricer = pricer
        self.tolerance = tolerance
        self.max_iterations = max_iterations
        self.dust = dust
        self.slippage_bps = slippage_bps

    def upper_bound(
        self,
        cheap_pool: YieldSpacePool,
        rich_pool: YieldSpacePool,
        max_position_base: float,
        max_position_token: float,
    ) -> float:
        """Largest FY amount the search may consider."""
        limits = [
            max(max_position_token, 0.0),
            cheap_pool.sell_base_preview(max(max_position_base, 0.0)),
            cheap_pool.max_fy_out(),
            rich_pool.max_fy_in(),
        ]
        return max(min(limits), 0.0)

    def bisect(self, slope: Callable[[float], float], upper: float) -> float:
        """
        Root of a decreasing slope on [0, upper].

        Raises:
            SearchDidNotConvergeError: iteration cap hit before tolerance
        """
        lo, hi = 0.0, upper
        for _ in range(self.max_iterations):
            if hi - lo < self.tolerance:
                break
            mid = (lo + hi) / 2
            if slope(mid) > 0:
                lo = mid
            else:
                hi = mid

        if hi - lo >= self.tolerance:
            raise SearchDidNotConvergeError(
                f"Bisection stopped at width {hi - lo:.3g} after {self.max_iterations} iterations",
                iterations=self.max_iterations,
                width=hi - lo,
            )
        return (lo + hi) / 2

    def expected_profit(
        self,
        cheap: PoolSnapshot,
        rich: PoolSnapshot,
        fy_amount: float,
    ) -> float:
        """Gross profit in base of trading `fy_amount` through the pair."""
        cheap_pool = self.pricer.pool(cheap)
        rich_pool = self.pricer.pool(rich)
        return rich_pool.sell_fy_preview(fy_amount) - cheap_pool.buy_fy_preview(fy_amount)

    def size(
        self,
        cheap: PoolSnapshot,
        rich: PoolSnapshot,
        max_position_base: float,
        max_position_token: float,
        gas_cost_base: float,
    ) -> Optional[TradeProposal]:
        """
        Size the trade for one cheap/rich pair.

        Args:
            cheap: Snapshot of the pool to buy FY from
            rich: Snapshot of the pool to sell FY into
            max_position_base: Cap on base spent in leg 1
            max_position_token: Cap on FY acquired in leg 1
            gas_cost_base: Gas estimate in base units

        Returns:
            TradeProposal, or None when no size is profitable
        """
        pair = f"{cheap.pool_id} -> {rich.pool_id}"
        try:
            cheap_pool = self.pricer.pool(cheap)
            rich_pool = self.pricer.pool(rich)
        except IlliquidPoolError as e:
            self.logger.info(f"Pair {pair}: not sizeable ({e.reason})")
            return None

        upper = self.upper_bound(cheap_pool, rich_pool, max_position_base, max_position_token)
        if upper <= 0:
            self.logger.debug(f"Pair {pair}: no room under position limits")
            return None

        def slope(x: float) -> float:
            return rich_pool.sell_fy_marginal(x) - cheap_pool.buy_fy_marginal(x)

        if slope(0.0) <= 0:
            self.logger.debug(f"Pair {pair}: marginal profit is not positive at zero size")
            return None

        try:
            fy_amount = self.bisect(slope, upper)
        except SearchDidNotConvergeError as e:
            self.logger.warning(f"Pair {pair}: {e.message}; skipping")
            return None

        if fy_amount < self.dust:
            self.logger.debug(f"Pair {pair}: size {fy_amount:.6g} below dust {self.dust}")
            return None

        base_in = cheap_pool.buy_fy_preview(fy_amount)
        base_out = rich_pool.sell_fy_preview(fy_amount)
        gross = base_out - base_in
        net = gross - gas_cost_base

        if net <= 0:
            self.logger.debug(
                f"Pair {pair}: net profit {net:.6f} not positive (gross={gross:.6f}, gas={gas_cost_base})"
            )
            return None

        if fy_amount > max_position_token or base_in > max_position_base:
            self.logger.error(
                f"Pair {pair}: size {fy_amount:.6f} FY / {base_in:.6f} base breaks position caps; dropped"
            )
            return None

        proposal = TradeProposal(
            cheap_pool=cheap.pool_id,
            rich_pool=rich.pool_id,
            fy_amount=fy_amount,
            base_in=base_in,
            max_base_in=min(apply_slippage(base_in, self.slippage_bps, True), max_position_base),
            base_out=base_out,
            min_base_out=apply_slippage(base_out, self.slippage_bps, False),
            gross_profit=gross,
            expected_profit=net,
            expected_edge_bps=gross / base_in * 10_000,
            block_number=cheap.block_number,
        )

        self.logger.info(
            f"Pair {pair}: size={fy_amount:.6f} FY, base_in={base_in:.6f}, "
            f"base_out={base_out:.6f}, net={net:.6f}"
        )
        return proposal
