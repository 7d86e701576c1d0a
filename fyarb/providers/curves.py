"""
Benchmark curve providers.

A curve provider turns some source of market rates into a validated
BenchmarkCurve. Sources:
- static: knots from the `curve:` section of config.yaml
- fred: latest observations of US money-market and Treasury series
"""

import time
from abc import abstractmethod
from typing import Any, Optional

from fyarb.core.config import Settings
from fyarb.core.errors import ConfigurationError, FyArbError
from fyarb.pricing.curve import BenchmarkCurve
from fyarb.providers.base import BaseProvider, HealthCheckResult, ProviderStatus


class CurveProvider(BaseProvider):
    """Source of benchmark curves."""

    name = "curve"

    @abstractmethod
    def load_curve(self) -> BenchmarkCurve:
        """
        Build a fresh curve.

        Raises:
            InvalidCurveError: data does not form a valid curve
            ProviderError: data could not be fetched
        """
        pass

    def healthcheck(self) -> HealthCheckResult:
        start_time = time.time()
        try:
            curve = self.load_curve()
        except FyArbError as e:
            return HealthCheckResult(
                status=ProviderStatus.UNAVAILABLE,
                message=f"{self.name}: {e.message}",
            )
        return HealthCheckResult(
            status=ProviderStatus.HEALTHY,
            message=f"{len(curve.knots)} knots",
            latency_ms=(time.time() - start_time) * 1000,
        )


class StaticCurveProvider(CurveProvider):
    """
    Curve from configuration.

    Falls back to BenchmarkCurve.default_usd() when no knots are configured.
    """

    name = "static"

    def __init__(self, curve_config: Optional[dict[str, Any]] = None, **kwargs):
        super().__init__(**kwargs)
        self.curve_config = curve_config or {}

    def load_curve(self) -> BenchmarkCurve:
        if not self.curve_config.get("knots"):
            self.logger.info("No curve knots configured; using default USD curve")
            return BenchmarkCurve.default_usd()

        curve = BenchmarkCurve.from_dict({
            "knots": self.curve_config["knots"],
            "day_count": self.curve_config.get("day_count", "act360"),
            "source": "static",
        })
        self.logger.info(f"Loaded static curve: {curve!r}")
        return curve


def create_curve_provider(
    curve_config: Optional[dict[str, Any]] = None,
    settings: Optional[Settings] = None,
) -> CurveProvider:
    """Pick the curve provider named by `curve.source`."""
    curve_config = curve_config or {}
    source = curve_config.get("source", "static")

    if source == "static":
        return StaticCurveProvider(curve_config, settings=settings)
    if source == "fred":
        from fyarb.providers.fred import FREDCurveProvider

        return FREDCurveProvider(
            day_count=curve_config.get("day_count", "act360"),
            settings=settings,
        )
    raise ConfigurationError(f"Unknown curve source: {source}")
