"""
Ecosystem and platform credential models.
"""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text

from .db_base import EncryptedText, IntegerIdMixin, TimestampMixin, utc_now
from .db_config import Base


class Ecosystem(Base, IntegerIdMixin, TimestampMixin):
    """Named grouping of platform credentials."""

    __tablename__ = "ecosystems"

    name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)


class SocialMediaPlatform(Base, IntegerIdMixin, TimestampMixin):
    """Organizational platform account credential, scoped to an ecosystem."""

    __tablename__ = "social_media_platforms"

    ecosystem_id = Column(
        Integer, ForeignKey("ecosystems.id", ondelete="CASCADE"), nullable=False, index=True
    )
    platform_name = Column(String(255), nullable=False)
    platform_type = Column(String(100), nullable=False)

    # Encrypted
    username = EncryptedText()
    password = EncryptedText()
    totp_secret = EncryptedText()

    profile_url = Column(String(500), nullable=True)
    profile_id = Column(String(255), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    recovery_email = Column(String(255), nullable=True)
    recovery_phone = Column(String(50), nullable=True)
    account_status = Column(String(50), nullable=False, default="active")
    login_method = Column(String(50), nullable=True)
    two_fa_enabled = Column(Boolean, nullable=False, default=False)
    totp_enabled = Column(Boolean, nullable=False, default=False)
    notes = Column(Text, nullable=True)

    created_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)


class PlatformAccess(Base, IntegerIdMixin):
    """Advisory access tag; display-only, never consulted by the resolver."""

    __tablename__ = "platform_access"

    platform_id = Column(
        Integer, ForeignKey("social_media_platforms.id", ondelete="CASCADE"), nullable=False
    )
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    access_level = Column(String(100), nullable=False)
    notes = Column(Text, nullable=True)
    granted_by = Column(Integer, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    granted_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_platform_access_tag", "platform_id", "user_id", "access_level", unique=True),
    )
