"""
Pydantic schemas for sharing groups and their members.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict


class GroupRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    owner_id: int
    name: str
    description: Optional[str] = None
    member_count: int = 0
    is_owner: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class GroupMemberRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    group_id: int
    user_id: int
    role: str
    added_by: Optional[int] = None
    added_at: Optional[datetime] = None
