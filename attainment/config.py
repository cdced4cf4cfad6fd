"""
attainment/config.py

- Reads ATTAINMENT_* environment variables (and an optional .env file) into the
  engine settings.
- pydantic v2 / pydantic-settings v2.
- A dict handed to ``load_settings`` overrides the environment, so a JSON
  config file can be layered on top.
"""

from typing import Any, Dict, Literal, Optional

from pydantic import ValidationError as PydanticValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .core.enums import AggregationMethod
from .core.exceptions import ConfigurationError


class AttainmentSettings(BaseSettings):
    # =========================
    # Storage
    # =========================
    database_type: Literal["sqlite", "memory"] = "sqlite"
    database_path: str = "attainment.db"

    # =========================
    # Engine
    # =========================
    max_workers: int = 8
    default_required_level: int = 1
    aggregation_method: AggregationMethod = AggregationMethod.MARKS
    percentage_precision: int = 2

    # =========================
    # REST
    # =========================
    rest_host: str = "0.0.0.0"
    rest_port: int = 8000

    # =========================
    # Logging
    # =========================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("max_workers")
    @classmethod
    def _positive_workers(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_workers must be at least 1")
        return v

    @field_validator("default_required_level")
    @classmethod
    def _scored_level(cls, v: int) -> int:
        if v not in (1, 2, 3):
            raise ValueError("default_required_level must be 1, 2 or 3")
        return v

    @field_validator("percentage_precision")
    @classmethod
    def _non_negative_precision(cls, v: int) -> int:
        if v < 0:
            raise ValueError("percentage_precision cannot be negative")
        return v

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_level(cls, v):
        if isinstance(v, str):
            return v.upper()
        return v

    model_config = SettingsConfigDict(
        env_prefix="ATTAINMENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )


def load_settings(overrides: Optional[Dict[str, Any]] = None) -> AttainmentSettings:
    """Build settings from the environment plus explicit overrides."""
    try:
        return AttainmentSettings(**(overrides or {}))
    except PydanticValidationError as e:
        raise ConfigurationError(f"Invalid engine configuration: {e}", details={"errors": e.errors()})
