"""
Core module - Engineering foundation

Contains configuration, logging, errors, RPC transport, caching, and time utilities.
"""

from fyarb.core.config import ArbConfig, Settings, get_settings, load_arb_config, load_yaml_config
from fyarb.core.errors import (
    FyArbError,
    ConfigurationError,
    InvalidCurveError,
    IlliquidPoolError,
    SearchDidNotConvergeError,
    ProviderError,
    SnapshotFetchError,
)
from fyarb.core.logging import setup_logging, get_logger

__all__ = [
    "ArbConfig",
    "Settings",
    "get_settings",
    "load_arb_config",
    "load_yaml_config",
    "FyArbError",
    "ConfigurationError",
    "InvalidCurveError",
    "IlliquidPoolError",
    "SearchDidNotConvergeError",
    "ProviderError",
    "SnapshotFetchError",
    "setup_logging",
    "get_logger",
]
