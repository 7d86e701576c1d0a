"""
Pricing module.

- curve: benchmark term structure and the shared rate convention
- yieldspace: pool pricing function and trade previews
- implied: pool-implied discount factors via a marginal-price probe
"""

from fyarb.pricing.curve import BenchmarkCurve, CurveKnot, DayCount
from fyarb.pricing.implied import ImpliedPricer
from fyarb.pricing.yieldspace import YieldSpacePool

__all__ = [
    "BenchmarkCurve",
    "CurveKnot",
    "DayCount",
    "ImpliedPricer",
    "YieldSpacePool",
]
