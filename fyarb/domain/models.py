"""
Core data models for fyarb.

All models are frozen dataclasses and provide to_dict() for JSON
serialization. They are cycle-scoped values: nothing here is mutated
after construction, and nothing is carried from one block to the next
except the benchmark curve.
"""

from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import Any, Optional


class Classification(str, Enum):
    """Pool valuation relative to the benchmark curve."""
    CHEAP = "cheap"     # FY trades at a steeper discount than fair: buy
    RICH = "rich"       # FY trades above fair value: sell
    FAIR = "fair"


class CycleState(str, Enum):
    """Orchestrator state machine."""
    IDLE = "idle"
    EVALUATING = "evaluating"
    EMITTING = "emitting"


@dataclass(frozen=True)
class BlockEvent:
    """New-block signal from the block source."""
    number: int
    timestamp: int          # unix seconds

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class PoolSnapshot:
    """
    Point-in-time view of one pool.

    Reserves are in whole token units. `observed_at` is the timestamp of
    the block the reserves were read at and is the pricing "as of" time.
    """
    pool_id: str
    base_reserves: float
    fy_reserves: float
    fee_bps: float
    maturity: int           # unix seconds
    observed_at: int        # unix seconds
    block_number: int = 0

    @property
    def fee(self) -> float:
        """Fee as a fraction of the trade input."""
        return self.fee_bps / 10_000

    @property
    def seconds_to_maturity(self) -> int:
        return self.maturity - self.observed_at

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PoolSnapshot":
        return cls(**data)


@dataclass(frozen=True)
class DivergenceResult:
    """Implied vs. benchmark discount factor for one pool in one cycle."""
    pool_id: str
    classification: Classification
    implied_df: float
    benchmark_df: float
    edge_bps: float         # (benchmark - implied) / benchmark * 1e4
    maturity: int = 0

    @property
    def abs_edge_bps(self) -> float:
        return abs(self.edge_bps)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["classification"] = self.classification.value
        return data


@dataclass(frozen=True)
class TradeProposal:
    """
    Two-leg arbitrage: buy `fy_amount` FY on the cheap pool, sell it on
    the rich pool.

    Leg 1: exact `fy_amount` out, paying at most `max_base_in`.
    Leg 2: sell `fy_amount`, receiving at least `min_base_out`.
    """
    cheap_pool: str
    rich_pool: str
    fy_amount: float
    base_in: float
    max_base_in: float
    base_out: float
    min_base_out: float
    gross_profit: float
    expected_profit: float          # net of gas
    expected_edge_bps: float
    receiver: str = ""
    block_number: int = 0

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class CycleResult:
    """Outcome of one evaluation cycle."""
    block_number: int
    divergences: tuple[DivergenceResult, ...] = ()
    excluded: dict[str, str] = field(default_factory=dict)  # pool_id -> reason
    proposal: Optional[TradeProposal] = None
    superseded: bool = False

    @property
    def emitted(self) -> bool:
        return self.proposal is not None and not self.superseded

    def to_dict(self) -> dict[str, Any]:
        return {
            "block_number": self.block_number,
            "divergences": [d.to_dict() for d in self.divergences],
            "excluded": dict(self.excluded),
            "proposal": self.proposal.to_dict() if self.proposal else None,
            "superseded": self.superseded,
        }
