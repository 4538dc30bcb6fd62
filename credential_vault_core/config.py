"""
Centralized configuration management for the credential vault core.

This module provides a unified configuration system with support for:
- Environment variables
- Feature flags
- Encryption keyring settings
- Validation using Pydantic
"""

import os
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from .constants import REDACTED, EnvironmentVariable, Limits, LogLevel, QueueName


def _parse_keyring(raw: str) -> Dict[str, str]:
    """Parse "kid:base64key,kid2:base64key" into {kid: base64key}."""
    keyring: Dict[str, str] = {}
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        key_id, sep, key = part.partition(":")
        if not sep or not key_id.strip() or not key.strip():
            raise ValueError(f"Invalid keyring entry '{part}', expected '<key_id>:<base64 key>'")
        keyring[key_id.strip()] = key.strip()
    return keyring


class QueueConfig(BaseModel):
    """Queue configuration for Azure Storage log shipping."""

    connection_string: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.AZURE_STORAGE_CONNECTION.value, ""),
        description="Azure Storage connection string",
    )
    logs_queue_name: str = Field(default=QueueName.LOGS.value, description="Logs queue name")
    batch_size: int = Field(default=10, gt=0, description="Log entries buffered per send")


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.LOG_LEVEL.value, LogLevel.INFO.value),
        description="Logging level",
    )
    format: str = Field(
        default="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        description="Log format string",
    )

    @field_validator("level")
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is valid."""
        valid_levels = {level.value for level in LogLevel}
        if v.upper() not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v.upper()


class FeatureFlags(BaseModel):
    """Feature flags for controlling core behavior."""

    enable_logs_queue: bool = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.ENABLE_LOGS_QUEUE.value, "false").lower()
        == "true",
        description="Ship structured logs to an Azure Storage queue",
    )


class SecurityConfig(BaseModel):
    """Encryption keyring and audit redaction settings."""

    encryption_keys: Dict[str, str] = Field(
        default_factory=lambda: _parse_keyring(
            os.getenv(EnvironmentVariable.ENCRYPTION_KEYS.value, "")
        ),
        description="Keyring of key_id -> base64-encoded 32-byte AES key",
    )
    active_key_id: Optional[str] = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.ACTIVE_KEY_ID.value) or None,
        description="Key id used for new encryptions; defaults to the only key in the ring",
    )
    redaction_marker: str = Field(default=REDACTED, description="Audit redaction marker")
    default_history_limit: int = Field(
        default=Limits.DEFAULT_HISTORY_LIMIT, gt=0, description="Default audit history page"
    )

    @field_validator("encryption_keys", mode="before")
    @classmethod
    def parse_keyring_string(cls, v: Any) -> Any:
        """Accept the raw environment format as well as a mapping."""
        if isinstance(v, str):
            return _parse_keyring(v)
        return v

    @model_validator(mode="after")
    def resolve_active_key(self) -> "SecurityConfig":
        """Default the active key when the ring holds exactly one key."""
        if self.active_key_id is None and len(self.encryption_keys) == 1:
            self.active_key_id = next(iter(self.encryption_keys))
        if self.active_key_id is not None and self.active_key_id not in self.encryption_keys:
            raise ValueError(f"Active key id '{self.active_key_id}' is not in the keyring")
        return self


class AppConfig(BaseModel):
    """Main application configuration."""

    environment: str = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.APP_ENV.value, "development"),
        description="Application environment",
    )
    debug: bool = Field(
        default_factory=lambda: os.getenv(EnvironmentVariable.DEBUG.value, "false").lower()
        == "true",
        description="Debug mode",
    )

    # Sub-configurations
    queue: QueueConfig = Field(default_factory=QueueConfig, description="Queue configuration")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
    features: FeatureFlags = Field(default_factory=FeatureFlags, description="Feature flags")
    security: SecurityConfig = Field(
        default_factory=SecurityConfig, description="Security configuration"
    )

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create configuration from environment variables."""
        return cls()


# Process-level configuration for the outer web layer; the core receives it explicitly
_config: Optional[AppConfig] = None


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    global _config
    if _config is None:
        _config = AppConfig.from_env()
    return _config


def set_config(config: AppConfig) -> None:
    """Set the global configuration instance."""
    global _config
    _config = config


def reset_config() -> None:
    """Reset the global configuration instance."""
    global _config
    _config = None
