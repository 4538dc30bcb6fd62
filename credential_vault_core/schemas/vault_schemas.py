"""
Pydantic schemas for secure login vault items, grants and folders.

Enumerated values (login type, grant level, grantee type) are accepted as plain
strings here and validated by the services, so callers receive the package's
ValidationError with the offending field.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import DEFAULT_FOLDER_COLOR, DEFAULT_FOLDER_ICON, Limits
from ..enums import OwnershipScope, VaultAccessLevel


class VaultSchema(BaseModel):
    """Base schema for vault payloads."""

    model_config = ConfigDict(validate_assignment=True, extra="forbid")


class SecureLoginCreate(VaultSchema):
    item_name: str = Field(..., max_length=Limits.MAX_NAME_LENGTH)
    username: Optional[str] = None
    password: Optional[str] = None
    totp_secret: Optional[str] = None
    website_url: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = None
    login_type: str = Field(default="email_password")
    google_account_id: Optional[int] = None
    folder_id: Optional[int] = None

    @field_validator("item_name")
    @classmethod
    def validate_item_name(cls, v):
        if not v or not v.strip():
            raise ValueError("item_name is required")
        return v.strip()


class SecureLoginUpdate(VaultSchema):
    """Partial update; only fields explicitly provided are compared and written."""

    item_name: Optional[str] = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    username: Optional[str] = None
    password: Optional[str] = None
    totp_secret: Optional[str] = None
    website_url: Optional[str] = Field(default=None, max_length=500)
    notes: Optional[str] = None
    login_type: Optional[str] = None
    google_account_id: Optional[int] = None

    @field_validator("item_name")
    @classmethod
    def validate_item_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("item_name cannot be empty")
        return v.strip() if v is not None else v


class SecureLoginRead(BaseModel):
    """Decrypted view returned to an authorized caller."""

    id: int
    owner_id: int
    item_name: str
    username: str = ""
    password: str = ""
    totp_secret: str = ""
    website_url: Optional[str] = None
    notes: Optional[str] = None
    login_type: str
    google_account_id: Optional[int] = None
    folder_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    access_level: VaultAccessLevel
    is_owner: bool = False


class SecureLoginFilter(BaseModel):
    """List/search filters; access gating is applied before any of these."""

    search: Optional[str] = None
    login_type: Optional[str] = None
    folder_id: Optional[int] = None
    root_only: bool = Field(default=False, description="Only items outside any folder")
    scope: OwnershipScope = OwnershipScope.ALL
    page: int = Field(default=1, ge=1)
    page_size: int = Field(default=Limits.DEFAULT_PAGE_SIZE, ge=1, le=Limits.MAX_PAGE_SIZE)


class AccessGrantRead(BaseModel):
    """A user or group grant on a vault item."""

    id: int
    grantee_type: str
    grantee_id: int
    access_level: str
    granted_by: Optional[int] = None
    granted_at: Optional[datetime] = None


class FolderCreate(VaultSchema):
    name: str = Field(..., max_length=Limits.MAX_NAME_LENGTH)
    parent_id: Optional[int] = None
    description: Optional[str] = None
    color: str = Field(default=DEFAULT_FOLDER_COLOR, max_length=20)
    icon: str = Field(default=DEFAULT_FOLDER_ICON, max_length=50)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("Folder name is required")
        return v.strip()


class FolderUpdate(VaultSchema):
    """Partial update; parent_id=None in the payload moves the folder to the root."""

    name: Optional[str] = Field(default=None, max_length=Limits.MAX_NAME_LENGTH)
    parent_id: Optional[int] = None
    description: Optional[str] = None
    color: Optional[str] = Field(default=None, max_length=20)
    icon: Optional[str] = Field(default=None, max_length=50)

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError("Folder name cannot be empty")
        return v.strip() if v is not None else v


class FolderRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    parent_id: Optional[int] = None
    name: str
    description: Optional[str] = None
    color: str
    icon: str
    item_count: int = 0
    child_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
