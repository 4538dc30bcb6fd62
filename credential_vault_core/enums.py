"""
Enums used across the credential_vault_core package.

This module contains enum definitions that are used by multiple modules
to avoid circular import issues.
"""

import enum


class VaultAccessLevel(str, enum.Enum):
    """Effective access a principal holds over a secure login."""

    OWNER = "owner"
    EDIT = "edit"
    READ = "read"
    NONE = "none"


class GrantLevel(str, enum.Enum):
    """Level stored on a secure login grant. Ordered: read < edit."""

    READ = "read"
    EDIT = "edit"

    @property
    def rank(self) -> int:
        return 2 if self is GrantLevel.EDIT else 1

    def to_access_level(self) -> VaultAccessLevel:
        return VaultAccessLevel(self.value)


class GranteeType(str, enum.Enum):
    """Kind of principal a grant targets."""

    USER = "user"
    GROUP = "group"


class GroupRole(str, enum.Enum):
    """Role held by a member inside a sharing group."""

    MEMBER = "member"
    ADMIN = "admin"


class PrincipalRole(str, enum.Enum):
    """Portal-wide role; governs the ecosystem/platform side only."""

    READ = "read"
    WRITE = "write"
    MANAGER = "manager"
    ADMIN = "admin"

    @property
    def can_write(self) -> bool:
        return self is not PrincipalRole.READ


class LoginType(str, enum.Enum):
    """How a secure login authenticates."""

    EMAIL_PASSWORD = "email_password"
    GOOGLE_OAUTH = "google_oauth"


class AuditAction(str, enum.Enum):
    """Action recorded on an audit entry."""

    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"
    ACCESS_GRANTED = "access_granted"
    ACCESS_REVOKED = "access_revoked"


class ResourceType(str, enum.Enum):
    """Protected resource kinds; each has its own audit table and redaction set."""

    SECURE_LOGIN = "secure_login"
    PLATFORM = "platform"


class OwnershipScope(str, enum.Enum):
    """List filter restricting results to owned or shared items."""

    ALL = "all"
    OWNED = "owned"
    SHARED = "shared"
