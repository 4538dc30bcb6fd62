"""
Identity models: portal users, external email accounts, ecosystem membership.

Just the data structure - the core reads these but never manages them.
"""

from sqlalchemy import Boolean, Column, ForeignKey, Index, Integer, String

from .db_base import IntegerIdMixin, TimestampMixin
from .db_config import Base


class User(Base, IntegerIdMixin, TimestampMixin):
    """Portal user; the principal identity for every vault operation."""

    __tablename__ = "users"

    email = Column(String(255), nullable=False, unique=True)
    name = Column(String(255), nullable=True)
    # read | write | manager | admin
    role = Column(String(20), nullable=False, default="read")
    is_active = Column(Boolean, nullable=False, default=True)


class EmailAccount(Base, IntegerIdMixin, TimestampMixin):
    """External identity record referenced by google_oauth vault items."""

    __tablename__ = "email_accounts"

    email_address = Column(String(255), nullable=False, unique=True)
    status = Column(String(50), nullable=False, default="active")
    primary_use = Column(String(100), nullable=True)


class UserEcosystem(Base, IntegerIdMixin, TimestampMixin):
    """Assignment of a user to an ecosystem."""

    __tablename__ = "user_ecosystems"

    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    ecosystem_id = Column(
        Integer, ForeignKey("ecosystems.id", ondelete="CASCADE"), nullable=False
    )

    __table_args__ = (Index("ix_user_ecosystem", "user_id", "ecosystem_id", unique=True),)
