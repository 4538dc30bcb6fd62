"""
Base column helpers shared by all vault models.

Keeps cross-database compatibility (SQLite for tests, PostgreSQL in production).
Secret columns hold codec tokens as plain text; encryption happens in the
service layer, never in the database.
"""

from datetime import UTC, datetime

from sqlalchemy import Column, DateTime, Integer, Text


def utc_now():
    """Return current UTC time with timezone info attached."""
    return datetime.now(UTC)


def EncryptedText(**kwargs):
    """Column holding an encryption codec token, or NULL for an absent secret."""
    return Column(Text, nullable=True, **kwargs)


class TimestampMixin:
    """Simple mixin for created_at/updated_at timestamps."""

    created_at = Column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)


class IntegerIdMixin:
    """Autoincrement integer primary key."""

    id = Column(Integer, primary_key=True, autoincrement=True)
