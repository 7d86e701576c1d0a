"""Shared fixtures: curves and pool snapshots built from a target discount factor."""

import pytest

from fyarb.core.config import ArbConfig
from fyarb.core.timeutil import SECONDS_PER_DAY, SECONDS_PER_YEAR
from fyarb.domain.models import PoolSnapshot
from fyarb.pricing.curve import BenchmarkCurve, CurveKnot

NOW = 1_700_000_000
TIME_STRETCH = 10 * SECONDS_PER_YEAR


def make_snapshot(
    pool_id: str,
    df: float,
    days: float = 90,
    base: float = 1_000_000.0,
    fee_bps: float = 0.0,
    block_number: int = 100,
    observed_at: int = NOW,
) -> PoolSnapshot:
    """
    Snapshot whose zero-fee spot price equals `df`.

    Spot is (z/y)^t, so y = z / df^(1/t).
    """
    seconds = int(days * SECONDS_PER_DAY)
    t = seconds / TIME_STRETCH
    return PoolSnapshot(
        pool_id=pool_id,
        base_reserves=base,
        fy_reserves=base / df ** (1 / t),
        fee_bps=fee_bps,
        maturity=observed_at + seconds,
        observed_at=observed_at,
        block_number=block_number,
    )


def flat_curve_for_df(df: float, tenor: float = 0.25) -> BenchmarkCurve:
    """Flat simple-rate curve with discount factor `df` at `tenor` years."""
    rate = (1 / df - 1) / tenor
    return BenchmarkCurve([CurveKnot(tenor, rate)], source="test")


@pytest.fixture
def snapshot_factory():
    return make_snapshot


@pytest.fixture
def curve_98():
    """DF 0.98 at 90 days (ACT/360)."""
    return flat_curve_for_df(0.98)


@pytest.fixture
def arb_config():
    return ArbConfig(
        pools=["0xaaa", "0xbbb"],
        edge_threshold_bps=10,
        min_trade_edge_bps=20,
        max_position_base=50_000,
        max_position_token=100_000,
        tolerance=1e-6,
        max_iterations=64,
        dust=0.01,
        slippage_bps=50,
        gas_cost_base=0.05,
    )


@pytest.fixture
def curve_factory():
    return flat_curve_for_df


@pytest.fixture
def now():
    return NOW
