# Copyright (c) 2025-2026 OptimNow. All Rights Reserved.
# Licensed under the Apache License, Version 2.0.
# See LICENSE file in the project root for full license information.

"""Configuration management for the License Configuration Reconciler.

This module handles loading and validating configuration from environment
variables with sensible defaults.
"""

from typing import Optional

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings have sensible defaults for local development.
    In production, these should be set via environment variables
    or a .env file.
    """

    # General Configuration
    log_level: str = Field(
        default="INFO",
        description="Logging level (DEBUG, INFO, WARNING, ERROR)",
        validation_alias="LOG_LEVEL",
    )
    environment: str = Field(
        default="development",
        description="Environment name (development, staging, production)",
        validation_alias=AliasChoices("ENVIRONMENT", "ENV"),
    )

    # AWS Configuration
    aws_region: str = Field(
        default="us-east-1",
        description="AWS region hosting the License Manager control plane",
        validation_alias=AliasChoices("AWS_REGION", "AWS_DEFAULT_REGION"),
    )
    max_attempts: int = Field(
        default=3,
        ge=1,
        description="Transport-level retry attempts for botocore",
        validation_alias="AWS_MAX_ATTEMPTS",
    )
    retry_mode: str = Field(
        default="standard",
        description="botocore retry mode (legacy, standard, adaptive)",
        validation_alias="AWS_RETRY_MODE",
    )
    call_timeout_seconds: Optional[float] = Field(
        default=60.0,
        gt=0,
        description="Deadline applied to every remote call (None disables it)",
        validation_alias="RECONCILER_CALL_TIMEOUT",
    )

    # Tag Configuration
    default_tags: dict[str, str] = Field(
        default_factory=dict,
        description="Process-wide default tags applied to every license configuration (JSON object)",
        validation_alias=AliasChoices("RECONCILER_DEFAULT_TAGS", "DEFAULT_TAGS"),
    )
    ignore_tag_keys: list[str] = Field(
        default_factory=list,
        description="Tag keys managed outside the reconciler (JSON array)",
        validation_alias="RECONCILER_IGNORE_TAG_KEYS",
    )
    ignore_tag_key_prefixes: list[str] = Field(
        default_factory=list,
        description="Tag key prefixes managed outside the reconciler (JSON array)",
        validation_alias="RECONCILER_IGNORE_TAG_KEY_PREFIXES",
    )

    # Audit Configuration
    audit_enabled: bool = Field(
        default=False,
        description="Record every reconciler operation in the audit database",
        validation_alias="AUDIT_ENABLED",
    )
    audit_db_path: str = Field(
        default="reconciler_audit.db",
        description="Path to the audit log SQLite database",
        validation_alias="AUDIT_DB_PATH",
    )

    # Runner Configuration
    state_path: str = Field(
        default="license_configuration.state.json",
        description="Path to the JSON file holding the persisted resource state",
        validation_alias=AliasChoices("RECONCILER_STATE_PATH", "STATE_PATH"),
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    @field_validator("retry_mode")
    @classmethod
    def _check_retry_mode(cls, value: str) -> str:
        if value not in {"legacy", "standard", "adaptive"}:
            raise ValueError(f"retry_mode must be legacy, standard or adaptive, got '{value}'")
        return value


def get_settings() -> Settings:
    """
    Get application settings.

    Loads settings from environment variables and .env file.

    Returns:
        Settings instance with all configuration values
    """
    return Settings()


# Global settings instance (lazy loaded)
_settings: Optional[Settings] = None


def settings() -> Settings:
    """
    Get the global settings instance.

    Creates the settings instance on first call and caches it.

    Returns:
        Global Settings instance
    """
    global _settings
    if _settings is None:
        _settings = get_settings()
    return _settings


def reset_settings() -> None:
    """Drop the cached global settings so the next call reloads them."""
    global _settings
    _settings = None
