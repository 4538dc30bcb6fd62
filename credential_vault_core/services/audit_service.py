"""
Append-only audit trail for vault items and platform credentials.

Writes never fail the caller: a storage failure is wrapped in AuditWriteError,
which logs itself for operators, and the primary operation carries on. Each
write runs in its own SAVEPOINT so a failed insert leaves the caller's
transaction usable.
"""

from enum import Enum
from typing import Any, Dict, FrozenSet, Iterable, List, Mapping, Optional, Type, Union

from sqlalchemy.orm import Session

from ..config import AppConfig, get_config
from ..constants import (
    PLATFORM_SENSITIVE_FIELDS,
    SECURE_LOGIN_SENSITIVE_FIELDS,
    Limits,
)
from ..context.operation_context import operation
from ..db.db_audit_models import PlatformAuditLog, SecureLoginHistory
from ..enums import AuditAction, ResourceType
from ..exceptions import AuditWriteError
from ..repositories.record_store import Predicate
from ..schemas.audit_schemas import AuditEntryRead, AuditOrigin, FieldChange
from .base_service import SessionManagedService

_SENSITIVE_FIELDS: Dict[ResourceType, FrozenSet[str]] = {
    ResourceType.SECURE_LOGIN: SECURE_LOGIN_SENSITIVE_FIELDS,
    ResourceType.PLATFORM: PLATFORM_SENSITIVE_FIELDS,
}

_AUDIT_MODELS: Dict[ResourceType, Type[Any]] = {
    ResourceType.SECURE_LOGIN: SecureLoginHistory,
    ResourceType.PLATFORM: PlatformAuditLog,
}

_RESOURCE_COLUMNS: Dict[ResourceType, str] = {
    ResourceType.SECURE_LOGIN: "secure_login_id",
    ResourceType.PLATFORM: "platform_id",
}


def _is_absent(value: Any) -> bool:
    return value is None or value == ""


def _to_text(value: Any) -> Optional[str]:
    """Normalize an audited value to its stored text form; absent values stay NULL."""
    if _is_absent(value):
        return None
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def sensitive_fields(resource_type: ResourceType) -> FrozenSet[str]:
    """Fields whose values are always redacted for the given resource type."""
    return _SENSITIVE_FIELDS[ResourceType(resource_type)]


def extract_changes(
    old: Mapping[str, Any], new: Mapping[str, Any], tracked_fields: Iterable[str]
) -> List[FieldChange]:
    """
    Compare two snapshots over the tracked fields.

    Only fields present in ``new`` are considered. None and "" both mean
    "absent" and compare equal.

    Returns:
        One FieldChange per field whose value differs
    """
    changes = []
    for field in tracked_fields:
        if field not in new:
            continue
        old_value = old.get(field)
        new_value = new[field]
        if _is_absent(old_value) and _is_absent(new_value):
            continue
        if _to_text(old_value) == _to_text(new_value):
            continue
        changes.append(FieldChange(field=field, old_value=old_value, new_value=new_value))
    return changes


class AuditService(SessionManagedService):
    """Records and reads audit entries."""

    def __init__(self, session: Optional[Session] = None, config: Optional[AppConfig] = None):
        super().__init__(session)
        self.config = config or get_config()
        self.marker = self.config.security.redaction_marker

    def redact(
        self, resource_type: ResourceType, field_name: Optional[str], value: Any
    ) -> Optional[str]:
        """Return the value as stored: the marker for sensitive non-empty values."""
        text = _to_text(value)
        if text is not None and field_name in sensitive_fields(resource_type):
            return self.marker
        return text

    def record(
        self,
        resource_type: Union[ResourceType, str],
        resource_id: int,
        action: Union[AuditAction, str],
        actor_id: int,
        field_name: Optional[str] = None,
        old_value: Any = None,
        new_value: Any = None,
        origin: Optional[AuditOrigin] = None,
        actor_role: Optional[str] = None,
    ) -> None:
        """
        Append one audit entry. Never raises on storage failure.

        Args:
            resource_type: Which audit table the entry belongs to
            resource_id: Id of the audited record
            action: create | update | delete | access_granted | access_revoked
            actor_id: Principal performing the change
            field_name: Changed field, for field-level entries
            old_value: Value before the change (redacted when sensitive)
            new_value: Value after the change (redacted when sensitive)
            origin: Request IP and user agent, when known
            actor_role: Portal role of the actor (platform entries)
        """
        resource_type = ResourceType(resource_type)
        action = AuditAction(action)
        model_class = _AUDIT_MODELS[resource_type]

        data: Dict[str, Any] = {
            _RESOURCE_COLUMNS[resource_type]: resource_id,
            "user_id": actor_id,
            "action": action.value,
            "field_name": field_name,
            "old_value": self.redact(resource_type, field_name, old_value),
            "new_value": self.redact(resource_type, field_name, new_value),
            "ip_address": origin.ip_address if origin else None,
            "user_agent": origin.user_agent if origin else None,
        }
        if resource_type is ResourceType.PLATFORM:
            data["user_role"] = actor_role

        try:
            with self.session.begin_nested():
                self.store.create(model_class, data)
        except Exception as e:
            # Constructing the error logs it at ERROR with full context
            AuditWriteError(
                cause=e,
                resource_type=resource_type.value,
                resource_id=resource_id,
                action=action.value,
                actor_id=actor_id,
                field_name=field_name,
            )

    def log_create(self, resource_type, resource_id, actor_id, origin=None, actor_role=None):
        self.record(
            resource_type, resource_id, AuditAction.CREATE, actor_id,
            origin=origin, actor_role=actor_role,
        )

    def log_update(
        self,
        resource_type,
        resource_id,
        actor_id,
        changes: Iterable[FieldChange],
        origin=None,
        actor_role=None,
    ):
        """One update entry per changed field."""
        for change in changes:
            self.record(
                resource_type,
                resource_id,
                AuditAction.UPDATE,
                actor_id,
                field_name=change.field,
                old_value=change.old_value,
                new_value=change.new_value,
                origin=origin,
                actor_role=actor_role,
            )

    def log_delete(self, resource_type, resource_id, actor_id, origin=None, actor_role=None):
        self.record(
            resource_type, resource_id, AuditAction.DELETE, actor_id,
            origin=origin, actor_role=actor_role,
        )

    def log_access_granted(
        self,
        resource_type,
        resource_id,
        actor_id,
        grantee_type,
        grantee_id,
        level,
        origin=None,
        actor_role=None,
    ):
        grantee_type = _to_text(grantee_type)
        self.record(
            resource_type,
            resource_id,
            AuditAction.ACCESS_GRANTED,
            actor_id,
            field_name=f"{grantee_type}_access",
            new_value=f"{grantee_type}:{grantee_id}:{_to_text(level)}",
            origin=origin,
            actor_role=actor_role,
        )

    def log_access_revoked(
        self, resource_type, resource_id, actor_id, grantee_type, grantee_id, origin=None, actor_role=None
    ):
        grantee_type = _to_text(grantee_type)
        self.record(
            resource_type,
            resource_id,
            AuditAction.ACCESS_REVOKED,
            actor_id,
            field_name=f"{grantee_type}_access",
            old_value=f"{grantee_type}:{grantee_id}",
            origin=origin,
            actor_role=actor_role,
        )

    def _to_read(self, resource_type: ResourceType, entry: Any) -> AuditEntryRead:
        return AuditEntryRead(
            id=entry.id,
            resource_id=getattr(entry, _RESOURCE_COLUMNS[resource_type]),
            action=entry.action,
            field_name=entry.field_name,
            old_value=entry.old_value,
            new_value=entry.new_value,
            actor_id=entry.user_id,
            actor_role=getattr(entry, "user_role", None),
            ip_address=entry.ip_address,
            user_agent=entry.user_agent,
            created_at=entry.created_at,
        )

    @operation()
    def history(
        self,
        resource_type: Union[ResourceType, str],
        resource_id: int,
        limit: Optional[int] = None,
    ) -> List[AuditEntryRead]:
        """
        Audit entries for one record, newest first.

        Ties on created_at are broken by id, so entries written in the same
        instant keep their write order (reversed). Each call re-reads the store.

        Args:
            resource_type: Which audit table to read
            resource_id: Id of the audited record
            limit: Maximum number of entries (defaults to the configured history limit)
        """
        resource_type = ResourceType(resource_type)
        model_class = _AUDIT_MODELS[resource_type]
        limit = limit or self.config.security.default_history_limit

        entries = self.store.find_all(
            model_class,
            [Predicate(_RESOURCE_COLUMNS[resource_type], value=resource_id)],
            order_by=[model_class.created_at.desc(), model_class.id.desc()],
            limit=limit,
        )
        return [self._to_read(resource_type, entry) for entry in entries]

    @operation()
    def user_history(
        self,
        actor_id: int,
        resource_type: Union[ResourceType, str] = ResourceType.PLATFORM,
        limit: int = Limits.DEFAULT_USER_HISTORY_LIMIT,
    ) -> List[AuditEntryRead]:
        """Entries written by one actor, newest first."""
        resource_type = ResourceType(resource_type)
        model_class = _AUDIT_MODELS[resource_type]

        entries = self.store.find_all(
            model_class,
            [Predicate("user_id", value=actor_id)],
            order_by=[model_class.created_at.desc(), model_class.id.desc()],
            limit=limit,
        )
        return [self._to_read(resource_type, entry) for entry in entries]
