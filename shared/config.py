"""
Shared configuration management for the form constraint engine.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="FORMS_",
        env_file=".env",
        case_sensitive=False,
        extra="allow"
    )

    # Environment
    env: str = Field(default="local")
    log_level: str = Field(default="info")


class FormsConfig(BaseConfig):
    """Constraint engine configuration."""

    service_name: str = Field(default="forms")

    # Authored condition documents nested deeper than this are rejected
    max_condition_depth: int = Field(default=32, ge=1)

    # Emit a debug event with the per-field result map after evaluate_all
    log_evaluations: bool = Field(default=False)


def get_config(**overrides) -> FormsConfig:
    """Get configuration for the constraint engine."""
    return FormsConfig(**overrides)
