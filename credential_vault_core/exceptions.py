"""
Consolidated exception system with error codes, context, and correlation support.

This module provides a unified exception hierarchy for the vault core, with
automatic logging and correlation ID tracking. Every error carries an HTTP status
code so the surrounding web layer can translate it without inspecting messages.
"""

import threading
import traceback
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

# Thread-local storage for correlation ID
_thread_local = threading.local()

# Vault items must not disclose whether they exist to principals without access
GENERIC_DENIAL_MESSAGE = "Access denied"


class ErrorCode(str, Enum):
    """Standardized error codes for API responses."""

    # System errors (1xxx)
    INTERNAL_ERROR = "1000"
    DATABASE_ERROR = "1001"
    CONFIGURATION_ERROR = "1003"
    DECRYPTION_FAILED = "1005"
    ENCRYPTION_FAILED = "1006"
    AUDIT_WRITE_FAILED = "1007"

    # Validation errors (2xxx)
    VALIDATION_FAILED = "2000"
    INVALID_FORMAT = "2001"
    MISSING_REQUIRED = "2002"
    CONSTRAINT_VIOLATION = "2004"
    CYCLE_DETECTED = "2005"

    # Resource errors (3xxx)
    NOT_FOUND = "3000"
    DUPLICATE = "3001"

    # Business logic errors (4xxx)
    BUSINESS_RULE_VIOLATION = "4000"
    PERMISSION_DENIED = "4003"
    UNAUTHENTICATED = "4005"


class BaseError(Exception):
    """Base exception with context, error codes, logging, and error chaining."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context: Any,
    ):
        """
        Initialize base error with rich context.

        Args:
            message: Human-readable error message
            error_code: Standardized error code from ErrorCode enum
            status_code: HTTP status code for API responses
            cause: Original exception that caused this error
            **context: Additional context information
        """
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.cause = cause
        self.timestamp = datetime.now(timezone.utc).isoformat()
        self.error_id = str(uuid.uuid4())
        self.context = context

        correlation_id = get_correlation_id()
        if correlation_id:
            self.context["correlation_id"] = correlation_id

        self.context["error_id"] = self.error_id

        if cause:
            self.context["cause"] = {
                "type": type(cause).__name__,
                "message": str(cause),
                "traceback": traceback.format_exception(type(cause), cause, cause.__traceback__),
            }

        self._log_error()

        super().__init__(message)

    def _log_error(self) -> None:
        """Log error with appropriate level based on status code."""
        # Lazy import: the logger module imports config, which must not import us back
        from .utils.logger import get_logger

        logger = get_logger()

        log_data = {
            "error_id": self.error_id,
            "error_code": self.error_code.value,
            "status_code": self.status_code,
            "error_message": self.message,
            "timestamp": self.timestamp,
            "context": {k: v for k, v in self.context.items() if k not in ["cause", "traceback"]},
        }

        if "correlation_id" in self.context:
            log_data["correlation_id"] = self.context["correlation_id"]

        if self.status_code >= 500:
            logger.error(
                f"Error {self.error_code.value}: {self.message}", extra=log_data, exc_info=self.cause
            )
        elif self.status_code >= 400:
            logger.warning(f"Client error {self.error_code.value}: {self.message}", extra=log_data)
        else:
            logger.info(f"Error {self.error_code.value}: {self.message}", extra=log_data)

    def to_dict(
        self, include_cause: bool = False, include_traceback: bool = False
    ) -> Dict[str, Any]:
        """
        Convert to dict for API responses.

        Args:
            include_cause: Include cause information (useful for debugging)
            include_traceback: Include full traceback (only in debug mode)

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        result: Dict[str, Any] = {
            "error": {
                "id": self.error_id,
                "code": self.error_code.value,
                "message": self.message,
                "timestamp": self.timestamp,
                "context": {
                    k: v
                    for k, v in self.context.items()
                    if k not in ["cause", "error_id", "correlation_id"]
                },
            }
        }

        if "correlation_id" in self.context:
            result["error"]["correlation_id"] = self.context["correlation_id"]

        if include_cause and "cause" in self.context:
            result["error"]["cause"] = {
                "type": self.context["cause"]["type"],
                "message": self.context["cause"]["message"],
            }
            if include_traceback:
                result["error"]["cause"]["traceback"] = self.context["cause"]["traceback"]

        return result

    def add_context(self, **kwargs: Any) -> "BaseError":
        """
        Add additional context to the error (fluent interface).

        Returns:
            Self for method chaining
        """
        self.context.update(kwargs)
        return self

    @property
    def error_chain(self) -> List[Exception]:
        """Get the full chain of errors."""
        chain: List[Exception] = [self]
        current = self.cause
        while current:
            chain.append(current)
            current = getattr(current, "cause", None)
        return chain


# Layer-specific base exceptions
class RepositoryError(BaseError):
    """Repository layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.DATABASE_ERROR,
        status_code: int = 500,
        cause: Optional[Exception] = None,
        **context,
    ):
        """Initialize repository error with database context."""
        super().__init__(message, error_code, status_code, cause, **context)


class ServiceError(BaseError):
    """Service layer errors."""

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        operation: Optional[str] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        """Initialize service error with operation context."""
        if operation:
            context["operation"] = operation
        super().__init__(message, error_code, 500, cause, **context)


class ValidationError(BaseError):
    """Malformed input, invalid enumerated values, cyclic folder moves."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.VALIDATION_FAILED,
        cause: Optional[Exception] = None,
        **context,
    ):
        """Initialize validation error with field context."""
        if field:
            context["field"] = field
        super().__init__(message, error_code, 400, cause, **context)


class AccessDeniedError(BaseError):
    """The resolver refused the requested action."""

    def __init__(
        self,
        message: str = GENERIC_DENIAL_MESSAGE,
        action: Optional[str] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        if action:
            context["action"] = action
        super().__init__(message, ErrorCode.PERMISSION_DENIED, 403, cause, **context)


class NotFoundError(BaseError):
    """A record that is safe to disclose as missing does not exist."""

    def __init__(
        self,
        message: str = "Resource not found",
        resource_type: Optional[str] = None,
        cause: Optional[Exception] = None,
        **context,
    ):
        if resource_type:
            context["resource_type"] = resource_type
        super().__init__(message, ErrorCode.NOT_FOUND, 404, cause, **context)


class ConflictError(BaseError):
    """Duplicate grant, member or name."""

    def __init__(
        self,
        message: str,
        resource_type: Optional[str] = None,
        error_code: ErrorCode = ErrorCode.DUPLICATE,
        cause: Optional[Exception] = None,
        **context,
    ):
        if resource_type:
            context["resource_type"] = resource_type
        super().__init__(message, error_code, 409, cause, **context)


class CodecError(BaseError):
    """
    Raised when a stored secret cannot be decrypted (or a value cannot be encrypted).

    Indicates data corruption or a key mismatch. Always surfaced to the caller,
    never converted into an empty secret.
    """

    def __init__(
        self,
        message: str = "Failed to decrypt stored secret",
        error_code: ErrorCode = ErrorCode.DECRYPTION_FAILED,
        cause: Optional[Exception] = None,
        **context,
    ):
        super().__init__(message, error_code, 500, cause, **context)


class AuditWriteError(BaseError):
    """Audit persistence failed. Logged on construction; never propagated to callers."""

    def __init__(
        self,
        message: str = "Failed to write audit entry",
        cause: Optional[Exception] = None,
        **context,
    ):
        super().__init__(message, ErrorCode.AUDIT_WRITE_FAILED, 500, cause, **context)


class AuthenticationError(BaseError):
    """No authenticated principal is available for the current request."""

    def __init__(self, message: str = "Authentication required", **context):
        super().__init__(message, ErrorCode.UNAUTHENTICATED, 401, **context)


# Factory functions for common error patterns
def not_found(
    resource_type: str, cause: Optional[Exception] = None, **identifiers
) -> NotFoundError:
    """
    Factory for not found errors.

    Args:
        resource_type: Type of resource (e.g., 'Group', 'Platform')
        cause: Original exception if any
        **identifiers: Resource identifiers (e.g., group_id=12)

    Returns:
        Configured NotFoundError instance
    """
    id_parts = [f"{k}={v}" for k, v in identifiers.items()]
    message = f"{resource_type} not found"
    if id_parts:
        message += f": {', '.join(id_parts)}"

    return NotFoundError(message, resource_type=resource_type, cause=cause, **identifiers)


def duplicate(
    resource_type: str, cause: Optional[Exception] = None, **identifiers
) -> ConflictError:
    """
    Factory for duplicate resource errors.

    Args:
        resource_type: Type of resource (e.g., 'GroupMember', 'Folder')
        cause: Original exception if any
        **identifiers: Identifiers of the conflicting entity

    Returns:
        Configured ConflictError instance
    """
    id_parts = [f"{k}={v}" for k, v in identifiers.items()]
    message = f"Duplicate {resource_type}"
    if id_parts:
        message += f": {', '.join(id_parts)}"

    return ConflictError(message, resource_type=resource_type, cause=cause, **identifiers)


def validation_failed(
    field: str, value: Any, reason: str, cause: Optional[Exception] = None
) -> ValidationError:
    """
    Factory for validation errors.

    Args:
        field: Field that failed validation
        value: The invalid value
        reason: Why validation failed
        cause: Original exception if any

    Returns:
        Configured ValidationError instance
    """
    return ValidationError(
        f"Validation failed for {field}: {reason}",
        field=field,
        error_code=ErrorCode.VALIDATION_FAILED,
        cause=cause,
        value=str(value),
        reason=reason,
    )


def permission_denied(
    action: str, resource: str, cause: Optional[Exception] = None, **context
) -> AccessDeniedError:
    """
    Factory for descriptive permission errors.

    Only use where the resource's existence is already visible to the caller
    (platform credentials, groups the caller belongs to). Vault items use
    access_denied() instead.

    Args:
        action: Action that was denied (e.g., 'delete', 'update_role')
        resource: Resource being accessed
        cause: Original exception if any
        **context: Additional context

    Returns:
        Configured AccessDeniedError instance
    """
    return AccessDeniedError(
        f"Permission denied: {action} on {resource}",
        action=action,
        cause=cause,
        resource=resource,
        **context,
    )


def access_denied(action: str, **context) -> AccessDeniedError:
    """Factory for the uniform vault-item denial (identical for missing and forbidden items)."""
    return AccessDeniedError(GENERIC_DENIAL_MESSAGE, action=action, **context)


# Correlation ID management
def set_correlation_id(correlation_id: str) -> None:
    """Set the correlation ID for the current thread."""
    _thread_local.correlation_id = correlation_id


def get_correlation_id() -> Optional[str]:
    """Get the current thread's correlation ID."""
    return getattr(_thread_local, "correlation_id", None)


def clear_correlation_id() -> None:
    """Clear the current thread's correlation ID."""
    if hasattr(_thread_local, "correlation_id"):
        delattr(_thread_local, "correlation_id")
