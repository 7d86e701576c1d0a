"""
Base provider class for all data adapters.

All providers must:
- Inherit from BaseProvider
- Implement healthcheck()
- Raise FyArbError subclasses on failure; the caller decides whether a
  failure excludes one pool, keeps the previous curve, or stops startup
- Return domain models, not raw API responses
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional

from fyarb.core.cache import CacheManager, get_provider_cache
from fyarb.core.config import Settings, get_settings
from fyarb.core.errors import ProviderError
from fyarb.core.logging import LoggerMixin


class ProviderStatus(str, Enum):
    """Provider health status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNAVAILABLE = "unavailable"


@dataclass
class HealthCheckResult:
    """Result of a provider health check."""
    status: ProviderStatus
    message: str
    latency_ms: Optional[float] = None
    details: Optional[dict[str, Any]] = None


class BaseProvider(ABC, LoggerMixin):
    """
    Abstract base class for all data providers.

    Features provided by base class:
    - Settings
    - Caching
    - Logging
    - Lazy initialization
    """

    name: str = "base"

    def __init__(
        self,
        settings: Optional[Settings] = None,
        cache: Optional[CacheManager] = None,
    ):
        self.settings = settings or get_settings()
        self.cache = cache or get_provider_cache(self.name)

        self._initialized = False
        self._last_error: Optional[Exception] = None

    def _ensure_initialized(self) -> None:
        if not self._initialized:
            self._initialize()
            self._initialized = True

    def _initialize(self) -> None:
        """Override in subclass for API-specific setup."""
        pass

    @abstractmethod
    def healthcheck(self) -> HealthCheckResult:
        """
        Check if the provider is healthy.

        Async providers implement this as a coroutine.
        """
        pass

    def _get_cached(self, key: str) -> Optional[Any]:
        return self.cache.get(f"{self.name}:{key}")

    def _set_cached(self, key: str, value: Any) -> None:
        self.cache.set(f"{self.name}:{key}", value)

    def _handle_error(
        self,
        error: Exception,
        operation: str,
        recoverable: bool = True,
    ) -> None:
        """
        Record and log a provider error; raise ProviderError if not recoverable.
        """
        self._last_error = error
        self.logger.error(f"Provider {self.name} error during {operation}: {error}")

        if not recoverable:
            raise ProviderError(
                f"{self.name}: {operation} failed - {error}",
                provider=self.name,
                recoverable=False,
            ) from error
