"""Pydantic schemas for service payloads."""

from .audit_schemas import AuditEntryRead, AuditOrigin, FieldChange
from .group_schemas import GroupMemberRead, GroupRead
from .platform_schemas import PlatformAccessRead, PlatformCreate, PlatformRead, PlatformUpdate
from .vault_schemas import (
    AccessGrantRead,
    FolderCreate,
    FolderRead,
    FolderUpdate,
    SecureLoginCreate,
    SecureLoginFilter,
    SecureLoginRead,
    SecureLoginUpdate,
)

__all__ = [
    "AuditEntryRead",
    "AuditOrigin",
    "FieldChange",
    "GroupMemberRead",
    "GroupRead",
    "PlatformAccessRead",
    "PlatformCreate",
    "PlatformRead",
    "PlatformUpdate",
    "AccessGrantRead",
    "FolderCreate",
    "FolderRead",
    "FolderUpdate",
    "SecureLoginCreate",
    "SecureLoginFilter",
    "SecureLoginRead",
    "SecureLoginUpdate",
]
