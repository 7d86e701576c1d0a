"""
Divergence Detection.

Compares each pool's implied discount factor with the benchmark curve at
the pool's maturity.

Core Logic:
1. edge_bps = (benchmark_df - implied_df) / benchmark_df * 1e4
2. edge above +threshold: FY is cheap in the pool (buy there)
3. edge below -threshold: FY is rich in the pool (sell there)
4. otherwise fair
5. Rank candidates by |edge|, ties by lowest pool id
"""

from typing import Iterable, Optional

from fyarb.core.errors import IlliquidPoolError
from fyarb.core.logging import LoggerMixin
from fyarb.domain.models import Classification, DivergenceResult, PoolSnapshot
from fyarb.pricing.curve import BenchmarkCurve
from fyarb.pricing.implied import ImpliedPricer


def edge_bps(implied: float, benchmark: float) -> float:
    """Relative divergence in basis points; positive means the pool is cheap."""
    if benchmark <= 0:
        raise ValueError(f"benchmark discount factor must be positive, got {benchmark}")
    return (benchmark - implied) / benchmark * 10_000


def rank_key(result: DivergenceResult) -> tuple[float, str]:
    return (-result.abs_edge_bps, result.pool_id.lower())


class DivergenceDetector(LoggerMixin):
    """Classifies pools as cheap, rich or fair against the benchmark."""

    def __init__(self, edge_threshold_bps: float = 10.0):
        self.edge_threshold_bps = edge_threshold_bps

    def classify(
        self,
        pool_id: str,
        implied: float,
        benchmark: float,
        edge_threshold_bps: Optional[float] = None,
        maturity: int = 0,
    ) -> DivergenceResult:
        """
        Classify one pool.

        Args:
            pool_id: Pool identifier
            implied: Pool-implied discount factor
            benchmark: Curve discount factor for the same maturity
            edge_threshold_bps: Override of the configured threshold
            maturity: Pool maturity, carried for pairing

        Returns:
            DivergenceResult
        """
        threshold = self.edge_threshold_bps if edge_threshold_bps is None else edge_threshold_bps
        edge = edge_bps(implied, benchmark)

        if abs(edge) < threshold:
            classification = Classification.FAIR
        elif edge > 0:
            classification = Classification.CHEAP
        else:
            classification = Classification.RICH

        return DivergenceResult(
            pool_id=pool_id,
            classification=classification,
            implied_df=implied,
            benchmark_df=benchmark,
            edge_bps=edge,
            maturity=maturity,
        )

    def evaluate(
        self,
        snapshot: PoolSnapshot,
        curve: BenchmarkCurve,
        pricer: ImpliedPricer,
    ) -> DivergenceResult:
        """
        Price one snapshot and classify it.

        Raises:
            IlliquidPoolError: propagated from the pricer
        """
        implied = pricer.implied_discount_factor(snapshot)
        benchmark = curve.discount_factor(snapshot.maturity, snapshot.observed_at)
        result = self.classify(
            snapshot.pool_id,
            implied,
            benchmark,
            maturity=snapshot.maturity,
        )

        self.logger.debug(
            f"Pool {snapshot.pool_id}: implied={implied:.6f} benchmark={benchmark:.6f} "
            f"edge={result.edge_bps:+.1f}bps -> {result.classification.value}"
        )
        return result

    def evaluate_all(
        self,
        snapshots: Iterable[PoolSnapshot],
        curve: BenchmarkCurve,
        pricer: ImpliedPricer,
    ) -> tuple[list[DivergenceResult], dict[str, str]]:
        """
        Classify every snapshot; illiquid or matured pools are excluded.

        Returns:
            (results ordered by pool id, excluded pool_id -> reason)
        """
        results = []
        excluded = {}

        for snapshot in sorted(snapshots, key=lambda s: s.pool_id.lower()):
            try:
                results.append(self.evaluate(snapshot, curve, pricer))
            except IlliquidPoolError as e:
                self.logger.info(f"Excluding pool {snapshot.pool_id}: {e.reason}")
                excluded[snapshot.pool_id] = e.reason

        return results, excluded

    def rank(
        self,
        results: Iterable[DivergenceResult],
        classification: Classification,
    ) -> list[DivergenceResult]:
        """Candidates of one class, best first."""
        return sorted(
            (r for r in results if r.classification == classification),
            key=rank_key,
        )

    def best(
        self,
        results: Iterable[DivergenceResult],
        classification: Classification,
    ) -> Optional[DivergenceResult]:
        ranked = self.rank(results, classification)
        return ranked[0] if ranked else None
