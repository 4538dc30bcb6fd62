"""
Service for ecosystem-scoped platform credentials.

Access follows ecosystem membership and the principal's portal role: any
member of the ecosystem (and every admin) may read, write/manager/admin may
edit, only admin may delete. A platform's existence is visible once the
principal can see its ecosystem, so missing and forbidden platforms are
reported separately. Advisory access tags are recorded and listed but never
consulted.
"""

from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from ..config import AppConfig, get_config
from ..constants import Limits, PLATFORM_SECRET_FIELDS, PLATFORM_TRACKED_FIELDS
from ..context.operation_context import operation
from ..context.principal_context import Principal
from ..db.db_base import utc_now
from ..db.db_platform_models import Ecosystem, PlatformAccess, SocialMediaPlatform
from ..enums import GranteeType, ResourceType
from ..exceptions import (
    ValidationError,
    duplicate,
    not_found,
    permission_denied,
)
from ..repositories.record_store import AnyOf, Op, Predicate, where
from ..schemas.audit_schemas import AuditEntryRead, AuditOrigin
from ..schemas.platform_schemas import (
    PlatformAccessRead,
    PlatformCreate,
    PlatformRead,
    PlatformUpdate,
)
from ..utils.encryption_utils import EncryptionCodec
from .access_control_service import AccessControlService, PlatformAccessResult
from .audit_service import AuditService, extract_changes
from .base_service import SessionManagedService
from .identity_lookup import user_exists


class PlatformCredentialService(SessionManagedService):
    """Create, read, update, delete and tag platform credentials."""

    def __init__(
        self,
        session: Optional[Session] = None,
        codec: Optional[EncryptionCodec] = None,
        config: Optional[AppConfig] = None,
        access: Optional[AccessControlService] = None,
        audit: Optional[AuditService] = None,
    ):
        super().__init__(session)
        self.config = config or get_config()
        self.codec = codec or EncryptionCodec.from_config(self.config)
        self.access = access or AccessControlService(self.session)
        self.audit = audit or AuditService(self.session, self.config)

    def _require(self, principal: Principal, platform_id: int, action: str, check) -> PlatformAccessResult:
        result = self.access.resolve_platform(principal, platform_id)
        if not result.exists:
            raise not_found("Platform", platform_id=platform_id)
        if not check(result):
            raise permission_denied(action, "Platform", platform_id=platform_id)
        return result

    def _load(self, platform_id: int, for_update: bool = False) -> SocialMediaPlatform:
        platform = self.store.get_by_id(SocialMediaPlatform, platform_id, for_update=for_update)
        if platform is None:
            # Deleted after the access check passed
            raise not_found("Platform", platform_id=platform_id)
        return platform

    def _ensure_unique(
        self, ecosystem_id: int, name: str, platform_type: str, exclude_id: Optional[int] = None
    ) -> None:
        conditions = where(ecosystem_id=ecosystem_id, platform_name=name, platform_type=platform_type)
        if exclude_id is not None:
            conditions.append(Predicate("id", Op.NE, exclude_id))
        if self.store.exists(SocialMediaPlatform, conditions):
            raise duplicate(
                "Platform", ecosystem_id=ecosystem_id, platform_name=name, platform_type=platform_type
            )

    def _decrypted(self, platform: SocialMediaPlatform) -> Dict[str, Any]:
        values = {field: getattr(platform, field) for field in PLATFORM_TRACKED_FIELDS}
        for field in PLATFORM_SECRET_FIELDS:
            values[field] = self.codec.decrypt(getattr(platform, field))
        return values

    def _to_read(self, platform: SocialMediaPlatform, result: PlatformAccessResult) -> PlatformRead:
        values = self._decrypted(platform)
        return PlatformRead(
            id=platform.id,
            ecosystem_id=platform.ecosystem_id,
            can_edit=result.can_edit,
            can_delete=result.can_delete,
            created_at=platform.created_at,
            updated_at=platform.updated_at,
            **values,
        )

    @operation()
    def create_platform(
        self,
        principal: Principal,
        data: Union[PlatformCreate, Dict[str, Any]],
        origin: Optional[AuditOrigin] = None,
    ) -> PlatformRead:
        """
        Create a platform credential in one of the principal's ecosystems.

        Raises:
            NotFoundError: Ecosystem does not exist
            AccessDeniedError: Read-only role, or not assigned to the ecosystem
            ConflictError: Same name and type already exist in the ecosystem
        """
        data = self._coerce(PlatformCreate, data)
        if not self.store.exists(Ecosystem, where(id=data.ecosystem_id)):
            raise not_found("Ecosystem", ecosystem_id=data.ecosystem_id)
        if not principal.role.can_write or not self.access.has_ecosystem_access(
            principal, data.ecosystem_id
        ):
            raise permission_denied("create", "Platform", ecosystem_id=data.ecosystem_id)

        values = data.model_dump()
        for field in PLATFORM_SECRET_FIELDS:
            values[field] = self.codec.encrypt(values[field])

        with self.transaction("create_platform"):
            self._ensure_unique(data.ecosystem_id, data.platform_name, data.platform_type)
            platform = self.store.create(
                SocialMediaPlatform,
                {**values, "created_by": principal.id, "updated_by": principal.id},
            )
            self.audit.log_create(
                ResourceType.PLATFORM, platform.id, principal.id,
                origin=origin, actor_role=principal.role.value,
            )

        self.logger.info(
            "Platform created",
            extra={"platform_id": platform.id, "ecosystem_id": platform.ecosystem_id},
        )
        return self._to_read(platform, self.access.resolve_platform(principal, platform.id))

    @operation()
    def get_platform(self, principal: Principal, platform_id: int) -> PlatformRead:
        """Decrypted view of a platform in one of the principal's ecosystems."""
        result = self._require(principal, platform_id, "read", lambda r: r.can_access)
        return self._to_read(self._load(platform_id), result)

    @operation()
    def list_platforms(
        self,
        principal: Principal,
        ecosystem_id: Optional[int] = None,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = Limits.DEFAULT_PAGE_SIZE,
    ) -> Dict[str, Any]:
        """Platforms in the principal's ecosystems (all of them for admins), by name."""
        page = max(page, 1)
        page_size = min(max(page_size, 1), Limits.MAX_PAGE_SIZE)

        conditions: List[Any] = []
        ecosystem_ids = self.access.accessible_ecosystem_ids(principal)
        if ecosystem_ids is not None:
            if not ecosystem_ids:
                return self.paginate_results([], 0, page, page_size)
            conditions.append(Predicate("ecosystem_id", Op.IN, ecosystem_ids))
        if ecosystem_id is not None:
            conditions.append(Predicate("ecosystem_id", value=ecosystem_id))
        if search:
            conditions.append(
                AnyOf(
                    [
                        Predicate("platform_name", Op.ILIKE, search),
                        Predicate("platform_type", Op.ILIKE, search),
                    ]
                )
            )

        total = self.store.count(SocialMediaPlatform, conditions)
        platforms = self.store.find_all(
            SocialMediaPlatform,
            conditions,
            order_by=[SocialMediaPlatform.platform_name, SocialMediaPlatform.id],
            limit=page_size,
            offset=(page - 1) * page_size,
        )
        # Every listed platform shares the same role-derived rights
        rights = PlatformAccessResult(
            exists=True,
            can_access=True,
            can_edit=principal.role.can_write,
            can_delete=principal.is_admin,
        )
        return self.paginate_results(
            [self._to_read(p, rights) for p in platforms], total, page, page_size
        )

    @operation()
    def update_platform(
        self,
        principal: Principal,
        platform_id: int,
        data: Union[PlatformUpdate, Dict[str, Any]],
        origin: Optional[AuditOrigin] = None,
    ) -> PlatformRead:
        """
        Update the fields present in data; one audit entry per changed field.

        Raises:
            NotFoundError: Platform does not exist
            AccessDeniedError: Not in the ecosystem, or a read-only role
        """
        data = self._coerce(PlatformUpdate, data)
        result = self._require(principal, platform_id, "update", lambda r: r.can_edit)
        incoming = data.model_dump(exclude_unset=True)
        for field in ("platform_name", "platform_type", "account_status"):
            if field in incoming and not (incoming[field] or "").strip():
                raise ValidationError(f"{field} cannot be cleared", field=field)

        with self.transaction("update_platform", platform_id):
            platform = self._load(platform_id, for_update=True)
            changes = extract_changes(self._decrypted(platform), incoming, PLATFORM_TRACKED_FIELDS)

            updates: Dict[str, Any] = {}
            for change in changes:
                if change.field in PLATFORM_SECRET_FIELDS:
                    updates[change.field] = self.codec.encrypt(change.new_value)
                elif isinstance(change.new_value, bool):
                    updates[change.field] = change.new_value
                else:
                    updates[change.field] = change.new_value or None

            if "platform_name" in updates or "platform_type" in updates:
                self._ensure_unique(
                    platform.ecosystem_id,
                    updates.get("platform_name", platform.platform_name),
                    updates.get("platform_type", platform.platform_type),
                    exclude_id=platform_id,
                )

            for field in PLATFORM_SECRET_FIELDS:
                if field not in updates and self.codec.needs_rotation(getattr(platform, field)):
                    updates[field] = self.codec.rotate(getattr(platform, field))

            if updates:
                updates["updated_by"] = principal.id
                self.store.update(platform, updates)
            self.audit.log_update(
                ResourceType.PLATFORM, platform_id, principal.id, changes,
                origin=origin, actor_role=principal.role.value,
            )

        self.logger.info(
            "Platform updated",
            extra={"platform_id": platform_id, "changed_fields": [c.field for c in changes]},
        )
        return self._to_read(platform, result)

    @operation()
    def delete_platform(
        self, principal: Principal, platform_id: int, origin: Optional[AuditOrigin] = None
    ) -> None:
        """Delete a platform and its advisory tags. Admin only."""
        self._require(principal, platform_id, "delete", lambda r: r.can_delete)

        with self.transaction("delete_platform", platform_id):
            platform = self._load(platform_id, for_update=True)
            self.audit.log_delete(
                ResourceType.PLATFORM, platform_id, principal.id,
                origin=origin, actor_role=principal.role.value,
            )
            self.store.delete_where(PlatformAccess, where(platform_id=platform_id))
            self.store.delete(platform)

        self.logger.info("Platform deleted", extra={"platform_id": platform_id})

    @operation()
    def grant_platform_access(
        self,
        principal: Principal,
        platform_id: int,
        user_id: int,
        access_level: str,
        notes: Optional[str] = None,
        origin: Optional[AuditOrigin] = None,
    ) -> PlatformAccessRead:
        """
        Record that a user holds an advisory role on the external platform.
        Audited as access_granted.

        Raises:
            ValidationError: Empty access level
            NotFoundError: Platform or user does not exist
            AccessDeniedError: Principal cannot edit the platform
            ConflictError: The same tag is already recorded
        """
        self._require(principal, platform_id, "grant_access", lambda r: r.can_edit)
        access_level = (access_level or "").strip()
        if not access_level:
            raise ValidationError("Access level is required", field="access_level")
        if not user_exists(self.store, user_id):
            raise not_found("User", user_id=user_id)

        with self.transaction("grant_platform_access", platform_id):
            if self.store.exists(
                PlatformAccess,
                where(platform_id=platform_id, user_id=user_id, access_level=access_level),
            ):
                raise duplicate(
                    "PlatformAccess",
                    platform_id=platform_id,
                    user_id=user_id,
                    access_level=access_level,
                )
            tag = self.store.create(
                PlatformAccess,
                {
                    "platform_id": platform_id,
                    "user_id": user_id,
                    "access_level": access_level,
                    "notes": notes or None,
                    "granted_by": principal.id,
                    "granted_at": utc_now(),
                },
            )
            self.audit.log_access_granted(
                ResourceType.PLATFORM, platform_id, principal.id, GranteeType.USER, user_id,
                access_level, origin=origin, actor_role=principal.role.value,
            )

        return PlatformAccessRead.model_validate(tag)

    @operation()
    def revoke_platform_access(
        self,
        principal: Principal,
        platform_id: int,
        access_id: int,
        origin: Optional[AuditOrigin] = None,
    ) -> None:
        """Remove one advisory tag; audited as access_revoked."""
        self._require(principal, platform_id, "revoke_access", lambda r: r.can_edit)
        with self.transaction("revoke_platform_access", platform_id):
            tag = self.store.find_one(PlatformAccess, where(id=access_id, platform_id=platform_id))
            if tag is None:
                raise not_found("PlatformAccess", platform_id=platform_id, access_id=access_id)
            self.audit.log_access_revoked(
                ResourceType.PLATFORM, platform_id, principal.id, GranteeType.USER, tag.user_id,
                origin=origin, actor_role=principal.role.value,
            )
            self.store.delete(tag)

    @operation()
    def list_platform_access(self, principal: Principal, platform_id: int) -> List[PlatformAccessRead]:
        """Advisory tags on a platform, grouped by level then newest first."""
        self._require(principal, platform_id, "list_access", lambda r: r.can_access)
        tags = self.store.find_all(
            PlatformAccess,
            where(platform_id=platform_id),
            order_by=[PlatformAccess.access_level, PlatformAccess.granted_at.desc()],
        )
        return [PlatformAccessRead.model_validate(t) for t in tags]

    @operation()
    def history(
        self, principal: Principal, platform_id: int, limit: Optional[int] = None
    ) -> List[AuditEntryRead]:
        """Audit trail of a platform. Needs ecosystem access and a role that may view audit logs."""
        self._require(
            principal, platform_id, "history", lambda r: r.can_access and principal.role.can_write
        )
        return self.audit.history(ResourceType.PLATFORM, platform_id, limit=limit)

    @operation()
    def user_activity(
        self, principal: Principal, limit: int = Limits.DEFAULT_USER_HISTORY_LIMIT
    ) -> List[AuditEntryRead]:
        """Platform changes made by the principal, newest first."""
        return self.audit.user_history(principal.id, ResourceType.PLATFORM, limit=limit)
