"""
Pydantic schemas for ecosystem-scoped platform credentials.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class PlatformSchema(BaseModel):
    model_config = ConfigDict(validate_assignment=True, extra="forbid")


class PlatformCreate(PlatformSchema):
    ecosystem_id: int
    platform_name: str = Field(..., max_length=255)
    platform_type: str = Field(..., max_length=100)
    username: Optional[str] = None
    password: Optional[str] = None
    totp_secret: Optional[str] = None
    profile_url: Optional[str] = Field(default=None, max_length=500)
    profile_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    recovery_email: Optional[str] = None
    recovery_phone: Optional[str] = None
    account_status: str = "active"
    login_method: Optional[str] = None
    two_fa_enabled: bool = False
    totp_enabled: bool = False
    notes: Optional[str] = None

    @field_validator("platform_name", "platform_type")
    @classmethod
    def validate_required(cls, v):
        if not v or not v.strip():
            raise ValueError("Value is required")
        return v.strip()


class PlatformUpdate(PlatformSchema):
    """Partial update; only fields explicitly provided are compared and written."""

    platform_name: Optional[str] = Field(default=None, max_length=255)
    platform_type: Optional[str] = Field(default=None, max_length=100)
    username: Optional[str] = None
    password: Optional[str] = None
    totp_secret: Optional[str] = None
    profile_url: Optional[str] = Field(default=None, max_length=500)
    profile_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    recovery_email: Optional[str] = None
    recovery_phone: Optional[str] = None
    account_status: Optional[str] = None
    login_method: Optional[str] = None
    two_fa_enabled: Optional[bool] = None
    totp_enabled: Optional[bool] = None
    notes: Optional[str] = None


class PlatformRead(BaseModel):
    """Decrypted view returned to a principal with ecosystem access."""

    id: int
    ecosystem_id: int
    platform_name: str
    platform_type: str
    username: str = ""
    password: str = ""
    totp_secret: str = ""
    profile_url: Optional[str] = None
    profile_id: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    recovery_email: Optional[str] = None
    recovery_phone: Optional[str] = None
    account_status: str
    login_method: Optional[str] = None
    two_fa_enabled: bool = False
    totp_enabled: bool = False
    notes: Optional[str] = None
    can_edit: bool = False
    can_delete: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class PlatformAccessRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    platform_id: int
    user_id: int
    access_level: str
    notes: Optional[str] = None
    granted_by: Optional[int] = None
    granted_at: Optional[datetime] = None
