"""
Sharing group models.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text

from .db_base import IntegerIdMixin, TimestampMixin, utc_now
from .db_config import Base


class SecureLoginGroup(Base, IntegerIdMixin, TimestampMixin):
    """Sharing group. The owner is implicit and never has a member row."""

    __tablename__ = "secure_login_groups"

    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)

    __table_args__ = (Index("ix_secure_login_group_owner_name", "owner_id", "name", unique=True),)


class SecureLoginGroupMember(Base, IntegerIdMixin):
    """Membership of a user in a sharing group."""

    __tablename__ = "secure_login_group_members"

    group_id = Column(
        Integer, ForeignKey("secure_login_groups.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # member | admin
    role = Column(String(20), nullable=False, default="member")
    added_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    added_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_secure_login_group_member", "group_id", "user_id", unique=True),
        Index("ix_secure_login_group_member_user", "user_id"),
    )
