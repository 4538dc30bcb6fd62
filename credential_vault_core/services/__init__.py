"""Service layer for business logic."""

from .access_control_service import (
    NO_ACCESS,
    AccessControlService,
    AccessResult,
    PlatformAccessResult,
)
from .audit_service import AuditService, extract_changes, sensitive_fields
from .base_service import BaseService, SessionManagedService
from .folder_service import FolderService
from .group_service import GroupService
from .identity_lookup import EmailAccountLookup, ExternalIdentityLookup
from .platform_service import PlatformCredentialService
from .secure_login_service import SecureLoginService
from .vault_core import VaultCore

__all__ = [
    "NO_ACCESS",
    "AccessControlService",
    "AccessResult",
    "PlatformAccessResult",
    "AuditService",
    "extract_changes",
    "sensitive_fields",
    "BaseService",
    "SessionManagedService",
    "FolderService",
    "GroupService",
    "EmailAccountLookup",
    "ExternalIdentityLookup",
    "PlatformCredentialService",
    "SecureLoginService",
    "VaultCore",
]
