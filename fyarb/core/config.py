"""
Configuration management for fyarb.

Two layers:
- Settings: secrets and deployment knobs from environment / .env
- config/config.yaml: business rules (pools, thresholds, limits)

The `arbitrage:` section is validated into ArbConfig before anything
starts; a bad value is a startup failure, never a mid-run surprise.
"""

import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from fyarb.core.errors import ConfigurationError


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==============================================
    # Environment
    # ==============================================
    fyarb_env: str = Field(default="local", description="Environment: local/cloud")
    log_level: str = Field(default="INFO")
    timezone: str = Field(default="UTC")

    # ==============================================
    # Chain access
    # ==============================================
    rpc_url: Optional[str] = Field(default=None, description="JSON-RPC endpoint of the chain node")
    receiver_address: Optional[str] = Field(default=None, description="Profit receiver for router calls")

    # ==============================================
    # Benchmark data
    # ==============================================
    fred_api_key: Optional[str] = Field(default=None)

    # ==============================================
    # Runtime Config
    # ==============================================
    cache_ttl: int = Field(default=3600, description="Cache TTL in seconds")
    http_timeout: int = Field(default=10, description="HTTP timeout in seconds")
    config_path: Optional[str] = Field(default=None, description="Override for config.yaml")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v = v.upper()
        if v not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v


class ArbConfig(BaseModel):
    """
    Validated `arbitrage:` section.

    Amounts are in whole token units (the chain provider scales by
    `token_decimals`). Basis-point values are plain numbers (10 = 0.10%).
    """

    model_config = {"frozen": True, "extra": "ignore"}

    pools: list[str] = Field(default_factory=list)
    token_decimals: int = Field(default=18, ge=0, le=36)

    edge_threshold_bps: float = Field(default=10.0, ge=0)
    min_trade_edge_bps: float = Field(default=20.0, ge=0)

    max_position_base: float = Field(default=50_000.0, ge=0)
    max_position_token: float = Field(default=100_000.0, ge=0)

    tolerance: float = Field(default=1e-6, gt=0)
    max_iterations: int = Field(default=64, ge=1, le=10_000)
    dust: float = Field(default=0.01, ge=0)
    slippage_bps: float = Field(default=50.0, ge=0, lt=10_000)
    gas_cost_base: float = Field(default=0.05, ge=0)

    probe_fraction: float = Field(default=1e-6, gt=0, lt=0.01)
    min_liquidity: float = Field(default=100.0, ge=0)
    time_stretch_years: float = Field(default=10.0, gt=0)
    day_count: str = Field(default="act360")

    @field_validator("pools")
    @classmethod
    def validate_pools(cls, v: list[str]) -> list[str]:
        normalized = [p.strip() for p in v]
        if any(not p for p in normalized):
            raise ValueError("Pool identifiers must be non-empty")
        if len({p.lower() for p in normalized}) != len(normalized):
            raise ValueError("Duplicate pool identifiers")
        return normalized

    @field_validator("day_count")
    @classmethod
    def validate_day_count(cls, v: str) -> str:
        v = v.lower()
        if v not in {"act360", "act365"}:
            raise ValueError(f"Unsupported day count: {v}")
        return v

    @model_validator(mode="after")
    def check_edges(self) -> "ArbConfig":
        if self.dust and self.dust < self.tolerance:
            raise ValueError("dust must not be smaller than the bisection tolerance")
        return self

    @classmethod
    def from_dict(cls, data: Optional[dict[str, Any]]) -> "ArbConfig":
        """Validate a raw config section, raising ConfigurationError on failure."""
        try:
            return cls(**(data or {}))
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid arbitrage configuration: {e.error_count()} error(s)",
                details={"errors": e.errors(include_url=False)},
            ) from e


class ConfigLoader:
    """
    Configuration loader that supports multiple sources.

    - local: Load from .env file
    - cloud: Environment variables injected by the platform
    """

    def __init__(self, env: Optional[str] = None):
        self.env = env or os.getenv("FYARB_ENV", "local")

    def load(self) -> Settings:
        """Load settings based on environment."""
        try:
            return Settings()
        except ValidationError as e:
            raise ConfigurationError(
                f"Invalid settings for env '{self.env}'",
                details={"errors": e.errors(include_url=False)},
            ) from e


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    loader = ConfigLoader()
    return loader.load()


def load_yaml_config(config_path: Optional[str] = None) -> dict[str, Any]:
    """
    Load YAML configuration file.

    Args:
        config_path: Path to config file. Defaults to config/config.yaml

    Returns:
        Configuration dictionary
    """
    if config_path is None:
        # Find project root (where pyproject.toml is)
        current = Path(__file__).resolve()
        for parent in current.parents:
            if (parent / "pyproject.toml").exists():
                config_path = str(parent / "config" / "config.yaml")
                break
        else:
            config_path = "config/config.yaml"

    path = Path(config_path)
    if not path.exists():
        raise ConfigurationError(f"Config file not found: {config_path}")

    with open(path, "r", encoding="utf-8") as f:
        try:
            return yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Config file is not valid YAML: {config_path}") from e


def load_arb_config(config: Optional[dict[str, Any]] = None) -> ArbConfig:
    """Load and validate the arbitrage section."""
    if config is None:
        config = load_yaml_config(get_settings().config_path)
    return ArbConfig.from_dict(config.get("arbitrage", {}))
