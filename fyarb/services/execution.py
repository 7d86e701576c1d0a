"""
Execution hand-off.

The engine emits at most one TradeProposal per block to an
ExecutionService. Signing, gas bidding and broadcast belong to the
collaborator; this module only knows the router call the proposal maps to:

    arbBuyFYThenSellFY(cheapPool, richPool, fyOutTarget, maxBaseIn,
                       minBaseOutRich, receiver)

The router re-checks both legs' bounds and reverts on non-positive profit.
"""

from abc import ABC, abstractmethod
from decimal import ROUND_CEILING, ROUND_FLOOR, Decimal
from typing import Any

from fyarb.core.errors import ConfigurationError
from fyarb.core.logging import LoggerMixin
from fyarb.domain.models import TradeProposal

ROUTER_FUNCTION = "arbBuyFYThenSellFY"


def to_base_units(amount: float, decimals: int, rounding: str = ROUND_FLOOR) -> int:
    """Whole-token float to integer base units."""
    scale = Decimal(10) ** decimals
    return int((Decimal(str(amount)) * scale).to_integral_value(rounding=rounding))


def build_router_call(proposal: TradeProposal, decimals: int = 18) -> dict[str, Any]:
    """
    Router arguments for a proposal, in integer base units.

    Caps round down and floors round up, so integer rounding can only
    tighten the bounds the sizer computed.
    """
    if not proposal.receiver:
        raise ConfigurationError("Profit receiver address is not configured")

    return {
        "function": ROUTER_FUNCTION,
        "args": {
            "cheapPool": proposal.cheap_pool,
            "richPool": proposal.rich_pool,
            "fyOutTarget": to_base_units(proposal.fy_amount, decimals, ROUND_FLOOR),
            "maxBaseIn": to_base_units(proposal.max_base_in, decimals, ROUND_FLOOR),
            "minBaseOutRich": to_base_units(proposal.min_base_out, decimals, ROUND_CEILING),
            "receiver": proposal.receiver,
        },
    }


class ExecutionService(ABC):
    """Receives ownership of emitted proposals."""

    @abstractmethod
    def submit(self, proposal: TradeProposal) -> None:
        """Hand one proposal over for settlement."""
        pass


class DryRunExecutor(ExecutionService, LoggerMixin):
    """Logs router calls instead of sending them."""

    def __init__(self, decimals: int = 18):
        self.decimals = decimals
        self.submitted: list[TradeProposal] = []

    def submit(self, proposal: TradeProposal) -> None:
        self.submitted.append(proposal)
        try:
            call = build_router_call(proposal, self.decimals)
        except ConfigurationError as e:
            self.logger.warning(f"Dry run without router call: {e.message}")
            call = None

        self.logger.info(
            f"[DRY RUN] block={proposal.block_number} buy {proposal.fy_amount:.6f} FY on "
            f"{proposal.cheap_pool}, sell on {proposal.rich_pool}, "
            f"expected profit={proposal.expected_profit:.6f}"
        )
        if call:
            self.logger.debug(f"[DRY RUN] {call['function']}({call['args']})")
