"""
Arbitrage Engine.

Per-block orchestrator for fixed-yield pool arbitrage.

Flow:
1. Trigger: new block height (duplicates and reorgs to lower heights ignored)
2. Snapshot: fetch every configured pool at that height, concurrently
3. Price: implied discount factor per pool, benchmark DF at the same maturity
4. Detect: classify cheap / rich / fair
5. Size: bounded search over each same-maturity cheap/rich pair
6. Emit: at most one proposal, unless a newer block arrived meanwhile
"""

import asyncio
from dataclasses import replace
from typing import Iterable, Optional, Protocol

from fyarb.core.config import ArbConfig
from fyarb.core.errors import FyArbError
from fyarb.core.logging import LoggerMixin, cycle_logger
from fyarb.domain.models import (
    BlockEvent,
    Classification,
    CycleResult,
    CycleState,
    PoolSnapshot,
    TradeProposal,
)
from fyarb.arb.divergence import DivergenceDetector
from fyarb.arb.sizer import TradeSizer
from fyarb.pricing.curve import BenchmarkCurve, DayCount
from fyarb.pricing.implied import ImpliedPricer
from fyarb.services.curve_store import CurveStore
from fyarb.services.execution import ExecutionService


class SnapshotSource(Protocol):
    async def get_pool_snapshot(self, pool_id: str, block: BlockEvent) -> PoolSnapshot:
        ...


class BlockFilter:
    """Admits strictly increasing block heights only."""

    def __init__(self):
        self.last_height: Optional[int] = None

    def is_new(self, height: int) -> bool:
        return self.last_height is None or height > self.last_height

    def accept(self, height: int) -> bool:
        if not self.is_new(height):
            return False
        self.last_height = height
        return True


class ArbEngine(LoggerMixin):
    """
    Fixed-Yield Arbitrage Engine.

    `evaluate` is a pure function of (snapshots, curve, block); `on_block`
    wraps it with fetching, supersession checks and emission.
    """

    def __init__(
        self,
        config: ArbConfig,
        source: SnapshotSource,
        curve_store: CurveStore,
        executor: Optional[ExecutionService] = None,
        receiver: str = "",
    ):
        """
        Initialize arbitrage engine.

        Args:
            config: Validated arbitrage configuration
            source: Pool snapshot source (chain provider)
            curve_store: Holder of the live benchmark curve
            executor: Receiver of emitted proposals
            receiver: Profit receiver address written into proposals
        """
        self.config = config
        self.source = source
        self.curve_store = curve_store
        self.executor = executor
        self.receiver = receiver

        self.pricer = ImpliedPricer(
            min_liquidity=config.min_liquidity,
            probe_fraction=config.probe_fraction,
            time_stretch_years=config.time_stretch_years,
            day_count=DayCount(config.day_count),
        )
        self.detector = DivergenceDetector(config.edge_threshold_bps)
        self.sizer = TradeSizer(
            self.pricer,
            tolerance=config.tolerance,
            max_iterations=config.max_iterations,
            dust=config.dust,
            slippage_bps=config.slippage_bps,
        )

        self.block_filter = BlockFilter()
        self.state = CycleState.IDLE
        self._active_cycles = 0
        self.latest_block: Optional[int] = None
        self.last_result: Optional[CycleResult] = None
        self.emitted: list[TradeProposal] = []

    # ==============================================
    # Pure evaluation
    # ==============================================

    def evaluate(
        self,
        snapshots: Iterable[PoolSnapshot],
        curve: BenchmarkCurve,
        block_number: int,
        excluded: Optional[dict[str, str]] = None,
    ) -> CycleResult:
        """
        Evaluate one consistent set of snapshots.

        Args:
            snapshots: Pool snapshots, all at `block_number`
            curve: Benchmark curve captured for this cycle
            block_number: Block height of the snapshots
            excluded: Pools already dropped upstream (pool_id -> reason)

        Returns:
            CycleResult with every divergence and the best proposal, if any
        """
        snapshots = list(snapshots)
        by_id = {s.pool_id: s for s in snapshots}
        divergences, illiquid = self.detector.evaluate_all(snapshots, curve, self.pricer)

        proposal = self.select_proposal(divergences, by_id)
        if proposal is not None:
            proposal = replace(proposal, receiver=self.receiver, block_number=block_number)

        return CycleResult(
            block_number=block_number,
            divergences=tuple(divergences),
            excluded={**(excluded or {}), **illiquid},
            proposal=proposal,
        )

    def select_proposal(
        self,
        divergences: list,
        snapshots: dict[str, PoolSnapshot],
    ) -> Optional[TradeProposal]:
        """
        Proposal for the highest-ranked cheap pool that can be traded.

        Cheap legs are taken in rank order (largest edge, then pool id).
        For a cheap leg, the most profitable same-maturity rich leg wins;
        the next cheap leg is tried only when none of its pairs size.
        """
        cheap = self.detector.rank(divergences, Classification.CHEAP)
        rich = self.detector.rank(divergences, Classification.RICH)
        if not cheap or not rich:
            return None

        for c in cheap:
            best: Optional[TradeProposal] = None
            for r in rich:
                # the router trades one FY token across both legs
                if c.maturity != r.maturity:
                    continue
                spread = c.edge_bps - r.edge_bps
                if spread < self.config.min_trade_edge_bps:
                    self.logger.debug(
                        f"Pair {c.pool_id} -> {r.pool_id}: spread {spread:.1f}bps below "
                        f"{self.config.min_trade_edge_bps}bps"
                    )
                    continue

                proposal = self.sizer.size(
                    snapshots[c.pool_id],
                    snapshots[r.pool_id],
                    self.config.max_position_base,
                    self.config.max_position_token,
                    self.config.gas_cost_base,
                )
                if proposal and (best is None or proposal.expected_profit > best.expected_profit):
                    best = proposal

            if best is not None:
                return best

        return None

    # ==============================================
    # Block-driven cycle
    # ==============================================

    async def fetch_snapshots(
        self,
        block: BlockEvent,
    ) -> tuple[list[PoolSnapshot], dict[str, str]]:
        """
        Fetch all configured pools at one height.

        A failed fetch excludes that pool only.

        Returns:
            (snapshots, excluded pool_id -> reason)
        """
        results = await asyncio.gather(
            *(self.source.get_pool_snapshot(pool_id, block) for pool_id in self.config.pools),
            return_exceptions=True,
        )

        snapshots = []
        excluded = {}
        for pool_id, result in zip(self.config.pools, results):
            if isinstance(result, PoolSnapshot):
                snapshots.append(result)
            elif isinstance(result, FyArbError):
                self.logger.warning(f"Snapshot of {pool_id} failed: {result.message}")
                excluded[pool_id] = "fetch_failed"
            elif isinstance(result, Exception):
                self.logger.error(f"Snapshot of {pool_id} failed: {result}", exc_info=result)
                excluded[pool_id] = "fetch_failed"
            else:
                raise result
        return snapshots, excluded

    def is_superseded(self, block: BlockEvent) -> bool:
        return self.latest_block is not None and self.latest_block != block.number

    async def on_block(self, block: BlockEvent) -> Optional[CycleResult]:
        """
        Run one cycle for a new block.

        Returns:
            CycleResult, or None if the height was not new
        """
        if not self.block_filter.accept(block.number):
            self.logger.debug(f"Ignoring block {block.number}: not above {self.block_filter.last_height}")
            return None

        self.latest_block = block.number
        self._active_cycles += 1
        self.state = CycleState.EVALUATING
        try:
            return await self._run_cycle(block)
        finally:
            self._active_cycles -= 1
            # a superseded cycle leaves the state to the newer one still running
            if self._active_cycles == 0 or not self.is_superseded(block):
                self.state = CycleState.IDLE

    async def _run_cycle(self, block: BlockEvent) -> CycleResult:
        log = cycle_logger(self.logger, block.number)

        # one curve per cycle even if a refresh lands mid-cycle
        curve = self.curve_store.current
        snapshots, excluded = await self.fetch_snapshots(block)

        if self.is_superseded(block):
            log.info("Superseded during fetch; discarding")
            return CycleResult(block_number=block.number, excluded=excluded, superseded=True)

        stale = sorted(s.pool_id for s in snapshots if s.block_number != block.number)
        if stale:
            log.warning(f"Snapshots off-height for {stale}; dropping cycle")
            excluded.update({pool_id: "height_mismatch" for pool_id in stale})
            result = CycleResult(block_number=block.number, excluded=excluded)
            self.last_result = result
            return result

        result = self.evaluate(snapshots, curve, block.number, excluded)
        log.info(
            f"{len(result.divergences)} priced, {len(result.excluded)} excluded, "
            f"proposal={'yes' if result.proposal else 'no'}"
        )

        if self.is_superseded(block):
            log.info("Superseded before emission; discarding")
            return replace(result, superseded=True)

        if result.proposal is not None:
            self.state = CycleState.EMITTING
            self._emit(result.proposal, log)

        self.last_result = result
        return result

    def _emit(self, proposal: TradeProposal, log) -> None:
        self.emitted.append(proposal)
        log.info(
            f"Emitting {proposal.cheap_pool} -> {proposal.rich_pool}: "
            f"{proposal.fy_amount:.6f} FY, expected profit {proposal.expected_profit:.6f}"
        )
        if self.executor is None:
            return
        try:
            self.executor.submit(proposal)
        except FyArbError as e:
            log.error(f"Executor rejected proposal: {e.message}")

    def get_status(self) -> dict:
        return {
            "state": self.state.value,
            "latest_block": self.latest_block,
            "pools": list(self.config.pools),
            "curve": repr(self.curve_store.current),
            "emitted": len(self.emitted),
            "last_result": self.last_result.to_dict() if self.last_result else None,
        }
