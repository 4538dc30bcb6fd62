"""
Generic record store used by the services.

Works with any SQLAlchemy model through typed predicates instead of ad-hoc
filter dictionaries. The store never commits: services own transaction
boundaries, the store only adds, flushes and deletes.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Sequence, Type, TypeVar, Union

from sqlalchemy import and_, func, or_
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from ..exceptions import ErrorCode, RepositoryError
from ..utils.logger import get_logger

T = TypeVar("T")


class Op(str, Enum):
    """Comparison operators understood by the store."""

    EQ = "eq"
    NE = "ne"
    IN = "in"
    NOT_IN = "not_in"
    IS_NULL = "is_null"
    NOT_NULL = "not_null"
    ILIKE = "ilike"
    LT = "lt"
    GT = "gt"


@dataclass(frozen=True)
class Predicate:
    """A single field comparison against a model column."""

    field: str
    op: Op = Op.EQ
    value: Any = None

    def to_clause(self, model_class: Type[Any]):
        column = getattr(model_class, self.field, None)
        if column is None:
            raise RepositoryError(
                f"Unknown field '{self.field}' on {model_class.__name__}",
                error_code=ErrorCode.INVALID_FORMAT,
                model=model_class.__name__,
                field=self.field,
            )

        if self.op is Op.EQ:
            return column.is_(None) if self.value is None else column == self.value
        if self.op is Op.NE:
            return column.is_not(None) if self.value is None else column != self.value
        if self.op is Op.IN:
            return column.in_(list(self.value))
        if self.op is Op.NOT_IN:
            return column.not_in(list(self.value))
        if self.op is Op.IS_NULL:
            return column.is_(None)
        if self.op is Op.NOT_NULL:
            return column.is_not(None)
        if self.op is Op.ILIKE:
            # Portable case-insensitive containment (SQLite has no ILIKE)
            return func.lower(column).contains(str(self.value).lower(), autoescape=True)
        if self.op is Op.LT:
            return column < self.value
        if self.op is Op.GT:
            return column > self.value
        raise RepositoryError(f"Unsupported operator: {self.op}", error_code=ErrorCode.INVALID_FORMAT)


@dataclass(frozen=True)
class AnyOf:
    """Disjunction of predicates."""

    predicates: Sequence[Predicate]

    def to_clause(self, model_class: Type[Any]):
        return or_(*[p.to_clause(model_class) for p in self.predicates])


Condition = Union[Predicate, AnyOf]


def where(**equals: Any) -> List[Predicate]:
    """Shorthand for a list of equality predicates."""
    return [Predicate(field, Op.EQ, value) for field, value in equals.items()]


class RecordStore:
    """Session-bound data access for vault models."""

    def __init__(self, session: Session):
        self.session = session
        self.logger = get_logger()

    def _query(self, model_class: Type[T], conditions: Optional[Iterable[Condition]] = None):
        query = self.session.query(model_class)
        clauses = [c.to_clause(model_class) for c in (conditions or [])]
        if clauses:
            query = query.filter(and_(*clauses))
        return query

    def _wrap(self, action: str, model_class: Type[Any], error: Exception, **context) -> RepositoryError:
        error_code = (
            ErrorCode.CONSTRAINT_VIOLATION
            if isinstance(error, IntegrityError)
            else ErrorCode.DATABASE_ERROR
        )
        return RepositoryError(
            f"Failed to {action} {model_class.__name__}: {str(error)}",
            error_code=error_code,
            cause=error,
            model=model_class.__name__,
            **context,
        )

    def create(self, model_class: Type[T], data: Dict[str, Any]) -> T:
        """
        Add a new record and flush it so its id is assigned.

        Args:
            model_class: SQLAlchemy model class
            data: Column values

        Returns:
            Created record instance

        Raises:
            RepositoryError: If the insert fails (CONSTRAINT_VIOLATION for unique/FK failures)
        """
        try:
            record = model_class(**data)
            self.session.add(record)
            self.session.flush()
        except SQLAlchemyError as e:
            raise self._wrap("create", model_class, e)

        self.logger.debug(
            f"Created {model_class.__name__}",
            extra={"model": model_class.__name__, "record_id": getattr(record, "id", None)},
        )
        return record

    def get_by_id(self, model_class: Type[T], record_id: Any, for_update: bool = False) -> Optional[T]:
        """
        Fetch a record by primary key.

        Args:
            model_class: SQLAlchemy model class
            record_id: Primary key value
            for_update: Lock the row (SELECT ... FOR UPDATE) where the backend supports it

        Returns:
            Record instance or None
        """
        if record_id is None:
            return None
        query = self._query(model_class, [Predicate("id", Op.EQ, record_id)])
        if for_update and self.session.bind.dialect.name != "sqlite":
            query = query.with_for_update()
        try:
            return query.first()
        except SQLAlchemyError as e:
            raise self._wrap("read", model_class, e, record_id=record_id)

    def find_one(self, model_class: Type[T], conditions: Iterable[Condition]) -> Optional[T]:
        """Return the first record matching all conditions, or None."""
        try:
            return self._query(model_class, conditions).first()
        except SQLAlchemyError as e:
            raise self._wrap("read", model_class, e)

    def find_all(
        self,
        model_class: Type[T],
        conditions: Optional[Iterable[Condition]] = None,
        order_by: Optional[Sequence[Any]] = None,
        limit: Optional[int] = None,
        offset: Optional[int] = None,
    ) -> List[T]:
        """
        List records matching all conditions.

        Args:
            model_class: SQLAlchemy model class
            conditions: Predicates combined with AND
            order_by: Column expressions (e.g. Model.updated_at.desc())
            limit: Optional limit
            offset: Optional offset

        Returns:
            List of record instances
        """
        query = self._query(model_class, conditions)
        if order_by:
            query = query.order_by(*order_by)
        if offset:
            query = query.offset(offset)
        if limit:
            query = query.limit(limit)
        try:
            return query.all()
        except SQLAlchemyError as e:
            raise self._wrap("list", model_class, e)

    def column_values(
        self, model_class: Type[Any], column: str, conditions: Optional[Iterable[Condition]] = None
    ) -> List[Any]:
        """Return one column of every matching record."""
        query = self.session.query(getattr(model_class, column))
        clauses = [c.to_clause(model_class) for c in (conditions or [])]
        if clauses:
            query = query.filter(and_(*clauses))
        try:
            return [row[0] for row in query.all()]
        except SQLAlchemyError as e:
            raise self._wrap("read", model_class, e)

    def count(self, model_class: Type[Any], conditions: Optional[Iterable[Condition]] = None) -> int:
        """Count records matching all conditions."""
        try:
            return self._query(model_class, conditions).count()
        except SQLAlchemyError as e:
            raise self._wrap("count", model_class, e)

    def exists(self, model_class: Type[Any], conditions: Iterable[Condition]) -> bool:
        """Check if a record exists with the given conditions."""
        return self.find_one(model_class, conditions) is not None

    def update(self, record: T, data: Dict[str, Any]) -> T:
        """
        Apply column values to a loaded record and flush.

        Unlike a partial merge, None is written through so callers can clear fields.
        """
        model_class = type(record)
        try:
            for key, value in data.items():
                if not hasattr(model_class, key):
                    raise RepositoryError(
                        f"Unknown field '{key}' on {model_class.__name__}",
                        error_code=ErrorCode.INVALID_FORMAT,
                        model=model_class.__name__,
                        field=key,
                    )
                setattr(record, key, value)
            self.session.flush()
        except SQLAlchemyError as e:
            raise self._wrap("update", model_class, e, record_id=getattr(record, "id", None))

        self.logger.debug(
            f"Updated {model_class.__name__}",
            extra={"model": model_class.__name__, "record_id": getattr(record, "id", None)},
        )
        return record

    def delete(self, record: Any) -> None:
        """Delete a loaded record and flush."""
        model_class = type(record)
        record_id = getattr(record, "id", None)
        try:
            self.session.delete(record)
            self.session.flush()
        except SQLAlchemyError as e:
            raise self._wrap("delete", model_class, e, record_id=record_id)

        self.logger.debug(
            f"Deleted {model_class.__name__}",
            extra={"model": model_class.__name__, "record_id": record_id},
        )

    def update_where(
        self, model_class: Type[Any], conditions: Iterable[Condition], data: Dict[str, Any]
    ) -> int:
        """Bulk update matching records; returns the number of rows changed."""
        try:
            updated = self._query(model_class, conditions).update(
                data, synchronize_session="fetch"
            )
            self.session.flush()
        except SQLAlchemyError as e:
            raise self._wrap("update", model_class, e)
        return updated

    def delete_where(self, model_class: Type[Any], conditions: Iterable[Condition]) -> int:
        """Bulk delete matching records; returns the number of rows removed."""
        try:
            deleted = self._query(model_class, conditions).delete(synchronize_session="fetch")
            self.session.flush()
        except SQLAlchemyError as e:
            raise self._wrap("delete", model_class, e)
        return deleted

    def flush(self) -> None:
        try:
            self.session.flush()
        except SQLAlchemyError as e:
            raise RepositoryError(
                f"Failed to flush session: {str(e)}", error_code=ErrorCode.DATABASE_ERROR, cause=e
            )
