"""
SQLAlchemy models for the credential vault core.

This module provides a common entry point for all models.
"""

from .db_audit_models import PlatformAuditLog, SecureLoginHistory
from .db_base import EncryptedText, IntegerIdMixin, TimestampMixin, utc_now
from .db_config import (
    Base,
    DatabaseConfig,
    DatabaseManager,
    close_db,
    get_development_config,
    get_production_config,
    import_all_models,
    initialize_db,
)
from .db_group_models import SecureLoginGroup, SecureLoginGroupMember
from .db_platform_models import Ecosystem, PlatformAccess, SocialMediaPlatform
from .db_user_models import EmailAccount, User, UserEcosystem
from .db_vault_models import (
    SecureLogin,
    SecureLoginFolder,
    SecureLoginGroupAccess,
    SecureLoginUserAccess,
)

__all__ = [
    # Base definitions
    "Base",
    "EncryptedText",
    "IntegerIdMixin",
    "TimestampMixin",
    "utc_now",
    # Configuration
    "DatabaseConfig",
    "DatabaseManager",
    "close_db",
    "import_all_models",
    "initialize_db",
    "get_production_config",
    "get_development_config",
    # Models
    "User",
    "EmailAccount",
    "UserEcosystem",
    "Ecosystem",
    "SocialMediaPlatform",
    "PlatformAccess",
    "SecureLogin",
    "SecureLoginFolder",
    "SecureLoginUserAccess",
    "SecureLoginGroupAccess",
    "SecureLoginGroup",
    "SecureLoginGroupMember",
    "SecureLoginHistory",
    "PlatformAuditLog",
]
