"""
Constants for the credential vault core.

This module centralizes magic strings and numeric defaults used throughout
the package to ensure consistency and maintainability.
"""

from enum import Enum


class QueueName(str, Enum):
    """Standard queue names used for log shipping."""

    LOGS = "logs-queue"


class LogLevel(str, Enum):
    """Standard logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class EnvironmentVariable(str, Enum):
    """Standard environment variable names."""

    AZURE_STORAGE_CONNECTION = "AzureWebJobsStorage"
    DATABASE_URL = "DATABASE_URL"
    APP_ENV = "APP_ENV"
    LOG_LEVEL = "LOG_LEVEL"
    DEBUG = "DEBUG"
    ENCRYPTION_KEYS = "VAULT_ENCRYPTION_KEYS"
    ACTIVE_KEY_ID = "VAULT_ACTIVE_KEY_ID"
    ENABLE_LOGS_QUEUE = "ENABLE_LOGS_QUEUE"


# Marker substituted for sensitive audit values
REDACTED = "[REDACTED]"

# Fields whose audit values are always redacted, per resource type
SECURE_LOGIN_SENSITIVE_FIELDS = frozenset({"password", "totp_secret", "username"})
PLATFORM_SENSITIVE_FIELDS = frozenset({"password", "totp_secret"})

# Secret columns routed through the encryption codec
SECURE_LOGIN_SECRET_FIELDS = ("username", "password", "totp_secret")
PLATFORM_SECRET_FIELDS = ("username", "password", "totp_secret")

# Fields compared on update; one audit entry per changed field
SECURE_LOGIN_TRACKED_FIELDS = (
    "item_name",
    "username",
    "password",
    "totp_secret",
    "website_url",
    "notes",
    "login_type",
    "google_account_id",
)

PLATFORM_TRACKED_FIELDS = (
    "platform_name",
    "platform_type",
    "account_status",
    "login_method",
    "profile_url",
    "profile_id",
    "username",
    "password",
    "email",
    "phone",
    "recovery_email",
    "recovery_phone",
    "two_fa_enabled",
    "totp_enabled",
    "totp_secret",
    "notes",
)

DEFAULT_FOLDER_COLOR = "#6366f1"
DEFAULT_FOLDER_ICON = "folder"


class Limits:
    """System limits and thresholds."""

    DEFAULT_PAGE_SIZE = 20
    MAX_PAGE_SIZE = 500
    DEFAULT_HISTORY_LIMIT = 50
    DEFAULT_USER_HISTORY_LIMIT = 100
    MAX_NAME_LENGTH = 255
