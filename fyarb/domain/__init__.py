"""
Domain module - Business models

Value objects shared by pricing, sizing and orchestration.
"""

from fyarb.domain.models import (
    BlockEvent,
    Classification,
    CycleResult,
    CycleState,
    DivergenceResult,
    PoolSnapshot,
    TradeProposal,
)

__all__ = [
    "BlockEvent",
    "Classification",
    "CycleResult",
    "CycleState",
    "DivergenceResult",
    "PoolSnapshot",
    "TradeProposal",
]
