"""
Pydantic schemas for audit entries and request origin.
"""

from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class AuditOrigin(BaseModel):
    """Where a request came from; recorded on every audit entry when known."""

    model_config = ConfigDict(frozen=True)

    ip_address: Optional[str] = Field(default=None, max_length=64)
    user_agent: Optional[str] = Field(default=None, max_length=500)


class FieldChange(BaseModel):
    """One tracked field whose value differs between two snapshots."""

    model_config = ConfigDict(frozen=True)

    field: str
    old_value: Any = None
    new_value: Any = None


class AuditEntryRead(BaseModel):
    """Audit entry as stored (sensitive values already redacted)."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    resource_id: int
    action: str
    field_name: Optional[str] = None
    old_value: Optional[str] = None
    new_value: Optional[str] = None
    actor_id: int
    actor_role: Optional[str] = None
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None
    created_at: datetime
