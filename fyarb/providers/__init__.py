"""
Providers module - Data adapters

Each provider wraps an external source and returns domain models.
All providers inherit from BaseProvider for consistent interface.
"""

from fyarb.providers.base import BaseProvider, HealthCheckResult, ProviderStatus
from fyarb.providers.chain import ChainStateProvider
from fyarb.providers.curves import CurveProvider, StaticCurveProvider, create_curve_provider
from fyarb.providers.fred import FREDCurveProvider

__all__ = [
    "BaseProvider",
    "HealthCheckResult",
    "ProviderStatus",
    "ChainStateProvider",
    "CurveProvider",
    "StaticCurveProvider",
    "create_curve_provider",
    "FREDCurveProvider",
]
