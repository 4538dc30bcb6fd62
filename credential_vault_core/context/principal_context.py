"""
Principal context management for the credential vault core.

The web layer authenticates the request and binds the resulting principal here;
the core only reads it. Identity resolution (sessions, SSO) happens outside.
"""

import threading
from contextlib import contextmanager
from typing import Generator, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from ..enums import PrincipalRole
from ..exceptions import AuthenticationError, ErrorCode, ValidationError
from ..utils.logger import get_logger


class Principal(BaseModel):
    """Authenticated identity acting on the vault."""

    model_config = ConfigDict(frozen=True, from_attributes=True)

    id: int = Field(..., gt=0, description="User id")
    role: PrincipalRole = Field(default=PrincipalRole.READ, description="Portal-wide role")
    email: Optional[str] = Field(default=None, description="Login email, informational")

    @property
    def is_admin(self) -> bool:
        return self.role is PrincipalRole.ADMIN


class PrincipalContext:
    """
    Manages the acting principal using thread-local storage.

    One request runs on one thread, so the bound principal never leaks across
    concurrent requests.
    """

    _thread_local = threading.local()
    _logger = get_logger()

    @classmethod
    def set_current_principal(cls, principal: Principal) -> None:
        """
        Bind the principal for the current execution context.

        Args:
            principal: Authenticated principal

        Raises:
            ValidationError: If principal is not a Principal instance
        """
        if not isinstance(principal, Principal):
            raise ValidationError(
                "principal must be a Principal instance",
                error_code=ErrorCode.MISSING_REQUIRED,
                field="principal",
            )

        cls._thread_local.principal = principal
        cls._logger.debug(f"Current principal set to: {principal.id}")

    @classmethod
    def get_current_principal(cls) -> Optional[Principal]:
        """Return the bound principal or None."""
        return getattr(cls._thread_local, "principal", None)

    @classmethod
    def get_current_principal_id(cls) -> Optional[int]:
        principal = cls.get_current_principal()
        return principal.id if principal is not None else None

    @classmethod
    def clear_current_principal(cls) -> None:
        """Clear the bound principal."""
        if hasattr(cls._thread_local, "principal"):
            delattr(cls._thread_local, "principal")
        cls._logger.debug("Current principal cleared")


@contextmanager
def principal_context(
    principal: Union[Principal, int], role: Optional[PrincipalRole] = None
) -> Generator[Principal, None, None]:
    """
    Context manager binding a principal for the duration of the block.

    Accepts a Principal or a bare user id (with an optional role). The previous
    principal, if any, is restored afterwards.

    Yields:
        The bound Principal
    """
    if not isinstance(principal, Principal):
        principal = Principal(id=principal, role=role or PrincipalRole.READ)

    previous = PrincipalContext.get_current_principal()
    PrincipalContext.set_current_principal(principal)
    try:
        yield principal
    finally:
        if previous is not None:
            PrincipalContext.set_current_principal(previous)
        else:
            PrincipalContext.clear_current_principal()


def require_principal() -> Principal:
    """
    Return the bound principal.

    Raises:
        AuthenticationError: If no principal is bound
    """
    principal = PrincipalContext.get_current_principal()
    if principal is None:
        raise AuthenticationError()
    return principal
