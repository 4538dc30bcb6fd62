"""
Append-only audit trail models.

Resource ids are plain integers rather than foreign keys: entries outlive the
records they describe.
"""

from sqlalchemy import Column, DateTime, Index, Integer, String, Text

from .db_base import IntegerIdMixin, utc_now
from .db_config import Base


class AuditEntryMixin:
    """Columns shared by every audit table."""

    user_id = Column(Integer, nullable=False, index=True)
    action = Column(String(50), nullable=False)
    field_name = Column(String(100), nullable=True)
    old_value = Column(Text, nullable=True)
    new_value = Column(Text, nullable=True)
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(500), nullable=True)
    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)


class SecureLoginHistory(Base, IntegerIdMixin, AuditEntryMixin):
    """Audit entry for a vault item."""

    __tablename__ = "secure_login_history"

    secure_login_id = Column(Integer, nullable=False)

    __table_args__ = (Index("ix_secure_login_history_item", "secure_login_id", "created_at"),)


class PlatformAuditLog(Base, IntegerIdMixin, AuditEntryMixin):
    """Audit entry for a platform credential, tagged with the actor's role."""

    __tablename__ = "platform_audit_logs"

    platform_id = Column(Integer, nullable=False)
    user_role = Column(String(20), nullable=True)

    __table_args__ = (Index("ix_platform_audit_platform", "platform_id", "created_at"),)
