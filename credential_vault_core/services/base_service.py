"""
Base service implementation with common functionality for all services.

This module provides a base class with shared methods and patterns to
reduce duplication across service implementations.
"""

import logging
import math
from contextlib import contextmanager
from typing import Any, Dict, List, NoReturn, Optional, Type, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from ..exceptions import BaseError, ErrorCode, RepositoryError, ServiceError, ValidationError
from ..repositories.record_store import RecordStore
from ..utils.logger import get_logger

TSchema = TypeVar("TSchema", bound=BaseModel)


class BaseService:
    """Base service with common functionality for all services."""

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or get_logger()

    def _handle_service_exception(
        self, operation: str, exception: Exception, resource_id: Optional[Any] = None
    ) -> NoReturn:
        """
        Handle and log unexpected service exceptions consistently.

        Args:
            operation: Operation being performed
            exception: Exception that occurred
            resource_id: Optional ID of the resource involved

        Raises:
            ServiceError wrapping the original exception
        """
        if isinstance(exception, RepositoryError):
            error_code = exception.error_code
        else:
            error_code = ErrorCode.INTERNAL_ERROR

        error_msg = f"Error in {operation}: {str(exception)}"
        self.logger.error(
            error_msg,
            extra={
                "operation": operation,
                "resource_id": resource_id,
                "error_type": type(exception).__name__,
            },
            exc_info=exception,
        )
        raise ServiceError(
            error_msg,
            error_code=error_code,
            operation=operation,
            resource_id=resource_id,
            cause=exception,
        )

    @staticmethod
    def _coerce(schema_class: Type[TSchema], data: Any) -> TSchema:
        """Accept a schema instance or a plain dict, reporting bad input as ValidationError."""
        if isinstance(data, schema_class):
            return data
        try:
            return schema_class.model_validate(data)
        except PydanticValidationError as e:
            first = e.errors()[0] if e.errors() else {}
            field = ".".join(str(part) for part in first.get("loc", ())) or None
            raise ValidationError(
                f"Invalid {schema_class.__name__}: {first.get('msg', str(e))}",
                field=field,
                cause=e,
            )

    def paginate_results(
        self, results: List[Any], total_count: int, page: int, page_size: int
    ) -> Dict[str, Any]:
        """
        Create a standardized pagination response.

        Args:
            results: Results for current page
            total_count: Total number of records
            page: Current page number
            page_size: Size of each page

        Returns:
            Paginated response with metadata
        """
        total_pages = math.ceil(total_count / page_size) if page_size > 0 else 0

        return {
            "data": results,
            "pagination": {
                "page": page,
                "page_size": page_size,
                "total_count": total_count,
                "total_pages": total_pages,
                "has_previous": page > 1,
                "has_next": page < total_pages,
            },
        }


class SessionManagedService(BaseService):
    """
    Service bound to one database session.

    When the service creates its session it commits or rolls back per
    transaction. When the caller passes a session in, each transaction runs in
    a SAVEPOINT and the caller decides when to commit.
    """

    def __init__(self, session: Optional[Session] = None, logger: Optional[logging.Logger] = None):
        """
        Args:
            session: Optional existing session (shared with other services or a test)
            logger: Optional logger instance
        """
        super().__init__(logger)
        if session is not None:
            self.session = session
            self._owns_session = False
        else:
            self.session = self._create_session()
            self._owns_session = True
        self.store = RecordStore(self.session)

    def _create_session(self) -> Session:
        """Create a new session from the process-wide database manager."""
        from ..db.db_config import get_db_manager

        return get_db_manager().session_factory()

    @contextmanager
    def transaction(self, operation: Optional[str] = None, resource_id: Optional[Any] = None):
        """
        Context manager for transactional operations.

        Usage:
            with service.transaction("update_item", item_id):
                ...  # commits (or releases the savepoint) on success, rolls back on error

        Unexpected exceptions are wrapped in ServiceError; the package's own
        errors propagate unchanged.
        """
        if self._owns_session:
            scope = None
        else:
            scope = self.session.begin_nested()
        try:
            yield self.session
            if scope is not None:
                scope.commit()
            else:
                self.session.commit()
        except Exception as e:
            if scope is not None:
                if scope.is_active:
                    scope.rollback()
            else:
                self.session.rollback()
            if isinstance(e, BaseError) or operation is None:
                raise
            self._handle_service_exception(operation, e, resource_id)

    def commit(self):
        """Manually commit the current transaction."""
        if self._owns_session:
            self.session.commit()

    def rollback(self):
        """Manually rollback the current transaction."""
        if self._owns_session:
            self.session.rollback()

    def close(self):
        """Close the session if we own it."""
        if self._owns_session and self.session:
            self.session.close()

    def __enter__(self):
        """Support for 'with' statement."""
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Auto-close session on exit."""
        if exc_type:
            self.rollback()
        else:
            self.commit()
        self.close()
