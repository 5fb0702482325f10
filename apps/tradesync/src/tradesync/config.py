"""Configuration models for tradesync.

Loads exchange sessions and sync settings from a YAML file with Pydantic
validation.
"""

import os
from pathlib import Path
from typing import Literal, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator

from tradesync.errors import ConfigError


class SessionConfig(BaseModel):
    """One exchange account to sync."""

    name: str = Field(..., min_length=1, description="Unique session identifier")
    exchange: Literal["bybit"] = Field(default="bybit", description="Exchange integration")
    api_key: str = Field(default="", description="API key")
    api_secret: str = Field(default="", repr=False, description="API secret")
    env_var_prefix: Optional[str] = Field(
        default=None,
        description="Read {PREFIX}_API_KEY / {PREFIX}_API_SECRET when the key fields are empty",
    )
    testnet: bool = Field(default=False, description="Use testnet endpoints")
    margin: bool = Field(default=False, description="Cross margin account")
    isolated_margin: bool = Field(default=False, description="Isolated margin account")
    isolated_margin_symbol: Optional[str] = Field(
        default=None,
        description="The one pair an isolated margin session trades",
    )

    @field_validator("isolated_margin_symbol", mode="before")
    @classmethod
    def normalize_symbol(cls, v):
        """Trim and uppercase the isolated pair."""
        if isinstance(v, str):
            return v.strip().upper() or None
        return v

    @model_validator(mode="after")
    def resolve_credentials(self):
        """Fill credentials from the environment and check isolated margin."""
        if self.env_var_prefix:
            prefix = self.env_var_prefix.upper()
            if not self.api_key:
                self.api_key = os.environ.get(f"{prefix}_API_KEY", "")
            if not self.api_secret:
                self.api_secret = os.environ.get(f"{prefix}_API_SECRET", "")

        if self.isolated_margin and not self.isolated_margin_symbol:
            raise ValueError(
                f"Session '{self.name}' is isolated margin but has no isolated_margin_symbol"
            )
        return self


class SyncConfig(BaseModel):
    """History sync settings."""

    default_lookback_months: int = Field(
        default=3,
        ge=1,
        description="How far back a sync without --since starts",
    )


class TradesyncConfig(BaseModel):
    """Root configuration for tradesync."""

    database_url: Optional[str] = Field(
        default=None,
        description="Database connection URL (falls back to TRADESYNC_* settings)",
    )
    sessions: list[SessionConfig] = Field(default_factory=list)
    sync: SyncConfig = Field(default_factory=SyncConfig)

    @model_validator(mode="after")
    def validate_unique_names(self):
        """Session names are lookup keys."""
        seen = set()
        for session in self.sessions:
            if session.name in seen:
                raise ValueError(f"Duplicate session name '{session.name}'")
            seen.add(session.name)
        return self


def load_config(config_path: Optional[str]) -> TradesyncConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to the config file.

    Returns:
        Validated TradesyncConfig

    Raises:
        ConfigError: Path missing or nonexistent, unreadable YAML, or a
            validation failure.
    """
    if not config_path:
        raise ConfigError("--config is required")

    path = Path(config_path)
    if not path.is_file():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with open(path) as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {config_path}: {e}") from e

    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {config_path} must contain a mapping")

    try:
        return TradesyncConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e
