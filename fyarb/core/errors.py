"""
Unified exception definitions for fyarb.

All custom exceptions inherit from FyArbError for easy catching.

Severity is part of the contract:
- ConfigurationError / InvalidCurveError: fatal at startup
- IlliquidPoolError / SnapshotFetchError: exclude one pool from one cycle
- SearchDidNotConvergeError: treated as "no profitable trade"
"""

from typing import Any, Optional


class FyArbError(Exception):
    """Base exception for all fyarb errors."""

    def __init__(
        self,
        message: str,
        *,
        code: Optional[str] = None,
        details: Optional[dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.code = code or "FYARB_ERROR"
        self.details = details or {}

    def to_dict(self) -> dict[str, Any]:
        """Convert to dict for logging/serialization."""
        return {
            "error": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(FyArbError):
    """Configuration-related errors."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="CONFIG_ERROR", **kwargs)


class InvalidCurveError(FyArbError):
    """Benchmark curve is empty or malformed."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message, code="INVALID_CURVE", **kwargs)


class IlliquidPoolError(FyArbError):
    """Pool cannot be priced this cycle (thin reserves or matured)."""

    def __init__(self, message: str, *, pool_id: str, reason: str, **kwargs):
        details = kwargs.pop("details", {})
        details["pool_id"] = pool_id
        details["reason"] = reason
        super().__init__(message, code="ILLIQUID_POOL", details=details, **kwargs)
        self.pool_id = pool_id
        self.reason = reason


class SearchDidNotConvergeError(FyArbError):
    """Bisection hit its iteration cap before reaching tolerance."""

    def __init__(
        self,
        message: str,
        *,
        iterations: int,
        width: float,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["iterations"] = iterations
        details["width"] = width
        super().__init__(message, code="NO_CONVERGENCE", details=details, **kwargs)
        self.iterations = iterations
        self.width = width


class ProviderError(FyArbError):
    """Data provider errors (RPC failures, rate limits, etc.)."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        recoverable: bool = True,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["provider"] = provider
        details["recoverable"] = recoverable
        super().__init__(message, code="PROVIDER_ERROR", details=details, **kwargs)
        self.provider = provider
        self.recoverable = recoverable


class SnapshotFetchError(ProviderError):
    """Pool snapshot could not be read; the pool sits out this cycle."""

    def __init__(self, message: str, *, provider: str, pool_id: str, **kwargs):
        details = kwargs.pop("details", {})
        details["pool_id"] = pool_id
        super().__init__(message, provider=provider, recoverable=True, details=details, **kwargs)
        self.code = "SNAPSHOT_FETCH_FAILED"
        self.pool_id = pool_id


class RateLimitError(ProviderError):
    """API rate limit exceeded."""

    def __init__(
        self,
        message: str,
        *,
        provider: str,
        retry_after: Optional[int] = None,
        **kwargs,
    ):
        details = kwargs.pop("details", {})
        details["retry_after"] = retry_after
        super().__init__(message, provider=provider, recoverable=True, details=details, **kwargs)
        self.code = "RATE_LIMIT"
        self.retry_after = retry_after
