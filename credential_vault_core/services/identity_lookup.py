"""
External identity lookup used to validate google_oauth vault items.
"""

from typing import Optional, Protocol, runtime_checkable

from sqlalchemy.orm import Session

from ..db.db_user_models import EmailAccount, User
from ..repositories.record_store import RecordStore, where


@runtime_checkable
class ExternalIdentityLookup(Protocol):
    """Confirms that a linked external account record exists."""

    def exists(self, account_id: int) -> bool: ...


class EmailAccountLookup:
    """Default lookup backed by the email_accounts table."""

    def __init__(self, session: Session):
        self.store = RecordStore(session)

    def exists(self, account_id: int) -> bool:
        if account_id is None:
            return False
        return self.store.exists(EmailAccount, where(id=account_id))


def user_exists(store: RecordStore, user_id: Optional[int]) -> bool:
    """Whether a portal user with this id exists."""
    if user_id is None:
        return False
    return store.exists(User, where(id=user_id))
