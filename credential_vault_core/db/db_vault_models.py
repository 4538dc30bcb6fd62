"""
Secure login vault models: items, grants and folders.
"""

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text

from .db_base import EncryptedText, IntegerIdMixin, TimestampMixin, utc_now
from .db_config import Base


class SecureLoginFolder(Base, IntegerIdMixin, TimestampMixin):
    """Owner-private folder; parent chains must stay acyclic."""

    __tablename__ = "secure_login_folders"

    owner_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    parent_id = Column(Integer, ForeignKey("secure_login_folders.id"), nullable=True)
    name = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    color = Column(String(20), nullable=False, default="#6366f1")
    icon = Column(String(50), nullable=False, default="folder")


class SecureLogin(Base, IntegerIdMixin, TimestampMixin):
    """Personal vault item."""

    __tablename__ = "secure_logins"

    owner_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True
    )
    item_name = Column(String(255), nullable=False)

    # Encrypted
    username = EncryptedText()
    password = EncryptedText()
    totp_secret = EncryptedText()

    website_url = Column(String(500), nullable=True)
    notes = Column(Text, nullable=True)
    # email_password | google_oauth
    login_type = Column(String(50), nullable=False, default="email_password")
    google_account_id = Column(
        Integer, ForeignKey("email_accounts.id", ondelete="SET NULL"), nullable=True
    )
    folder_id = Column(
        Integer, ForeignKey("secure_login_folders.id", ondelete="SET NULL"), nullable=True
    )
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    __table_args__ = (Index("ix_secure_login_owner_updated", "owner_id", "updated_at"),)


class SecureLoginUserAccess(Base, IntegerIdMixin):
    """Direct grant of a vault item to a user."""

    __tablename__ = "secure_login_user_access"

    secure_login_id = Column(
        Integer, ForeignKey("secure_logins.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    # read | edit
    access_level = Column(String(10), nullable=False)
    granted_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    granted_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_secure_login_user_grant", "secure_login_id", "user_id", unique=True),
        Index("ix_secure_login_user_grant_user", "user_id"),
    )


class SecureLoginGroupAccess(Base, IntegerIdMixin):
    """Grant of a vault item to a sharing group."""

    __tablename__ = "secure_login_group_access"

    secure_login_id = Column(
        Integer, ForeignKey("secure_logins.id", ondelete="CASCADE"), nullable=False
    )
    group_id = Column(
        Integer, ForeignKey("secure_login_groups.id", ondelete="CASCADE"), nullable=False
    )
    # read | edit
    access_level = Column(String(10), nullable=False)
    granted_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    granted_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_secure_login_group_grant", "secure_login_id", "group_id", unique=True),
        Index("ix_secure_login_group_grant_group", "group_id"),
    )
