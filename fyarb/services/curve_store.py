"""
Shared benchmark curve.

Holds the one live BenchmarkCurve. Cycles read `current` once and keep
that reference for the whole cycle; a refresh swaps in a new object and
never edits the old one, so no locking is needed.
"""

from typing import TYPE_CHECKING, Optional

from fyarb.core.errors import FyArbError
from fyarb.core.logging import LoggerMixin
from fyarb.pricing.curve import BenchmarkCurve

if TYPE_CHECKING:
    from fyarb.providers.curves import CurveProvider


class CurveStore(LoggerMixin):
    """Reference holder with wholesale replacement."""

    def __init__(
        self,
        curve: BenchmarkCurve,
        provider: Optional["CurveProvider"] = None,
    ):
        if not isinstance(curve, BenchmarkCurve):
            raise TypeError(f"expected BenchmarkCurve, got {type(curve).__name__}")
        self._curve = curve
        self.provider = provider
        self.refresh_count = 0

    @classmethod
    def load(cls, provider: "CurveProvider") -> "CurveStore":
        """
        Initial load. Errors propagate: no curve means no startup.

        Raises:
            InvalidCurveError, ProviderError
        """
        return cls(provider.load_curve(), provider)

    @property
    def current(self) -> BenchmarkCurve:
        return self._curve

    def replace(self, curve: BenchmarkCurve) -> None:
        if not isinstance(curve, BenchmarkCurve):
            raise TypeError(f"expected BenchmarkCurve, got {type(curve).__name__}")
        self._curve = curve
        self.refresh_count += 1
        self.logger.info(f"Benchmark curve replaced: {curve!r}")

    def refresh(self) -> bool:
        """
        Reload from the provider; on failure keep the previous curve.

        Returns:
            True if the curve was replaced
        """
        if self.provider is None:
            return False
        try:
            curve = self.provider.load_curve()
        except FyArbError as e:
            self.logger.error(f"Curve refresh failed, keeping previous curve: {e.message}")
            return False
        self.replace(curve)
        return True
