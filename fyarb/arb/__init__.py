"""
Fixed-yield arbitrage.

- divergence: classify pools against the benchmark curve
- sizer: bounded search for the profit-maximising trade
- engine: per-block orchestration and emission
"""

from fyarb.arb.divergence import DivergenceDetector
from fyarb.arb.engine import ArbEngine, BlockFilter
from fyarb.arb.sizer import TradeSizer

__all__ = [
    "ArbEngine",
    "BlockFilter",
    "DivergenceDetector",
    "TradeSizer",
]
