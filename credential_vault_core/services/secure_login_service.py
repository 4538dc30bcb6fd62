"""
Service for personal secure login vault items.

Every operation asks the resolver first, routes secret fields through the
encryption codec, and records each observable change in the audit trail within
the same transaction. Denials are uniform: a missing item and an item the
caller cannot reach both produce the same AccessDeniedError.
"""

from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from ..config import AppConfig, get_config
from ..constants import SECURE_LOGIN_SECRET_FIELDS, SECURE_LOGIN_TRACKED_FIELDS
from ..context.operation_context import operation
from ..db.db_base import utc_now
from ..db.db_group_models import SecureLoginGroup
from ..db.db_vault_models import (
    SecureLogin,
    SecureLoginFolder,
    SecureLoginGroupAccess,
    SecureLoginUserAccess,
)
from ..enums import (
    AuditAction,
    GranteeType,
    GrantLevel,
    LoginType,
    OwnershipScope,
    ResourceType,
    VaultAccessLevel,
)
from ..exceptions import (
    ErrorCode,
    ValidationError,
    access_denied,
    not_found,
    validation_failed,
)
from ..repositories.record_store import AnyOf, Op, Predicate, where
from ..schemas.audit_schemas import AuditEntryRead, AuditOrigin
from ..schemas.vault_schemas import (
    AccessGrantRead,
    SecureLoginCreate,
    SecureLoginFilter,
    SecureLoginRead,
    SecureLoginUpdate,
)
from ..utils.encryption_utils import EncryptionCodec
from .access_control_service import AccessControlService, AccessResult
from .audit_service import AuditService, extract_changes
from .base_service import SessionManagedService
from .identity_lookup import EmailAccountLookup, ExternalIdentityLookup, user_exists


def parse_login_type(value: Union[LoginType, str, None]) -> LoginType:
    if value is None:
        return LoginType.EMAIL_PASSWORD
    try:
        return LoginType(value)
    except ValueError as e:
        raise validation_failed(
            "login_type", value, f"must be one of {[t.value for t in LoginType]}", cause=e
        )


def parse_grant_level(value: Union[GrantLevel, str]) -> GrantLevel:
    try:
        return GrantLevel(value)
    except ValueError as e:
        raise validation_failed(
            "access_level", value, f"must be one of {[g.value for g in GrantLevel]}", cause=e
        )


def parse_grantee_type(value: Union[GranteeType, str]) -> GranteeType:
    try:
        return GranteeType(value)
    except ValueError as e:
        raise validation_failed(
            "grantee_type", value, f"must be one of {[g.value for g in GranteeType]}", cause=e
        )


class SecureLoginService(SessionManagedService):
    """Create, read, update, delete, share and list vault items."""

    def __init__(
        self,
        session: Optional[Session] = None,
        codec: Optional[EncryptionCodec] = None,
        config: Optional[AppConfig] = None,
        access: Optional[AccessControlService] = None,
        audit: Optional[AuditService] = None,
        identity_lookup: Optional[ExternalIdentityLookup] = None,
    ):
        super().__init__(session)
        self.config = config or get_config()
        self.codec = codec or EncryptionCodec.from_config(self.config)
        self.access = access or AccessControlService(self.session)
        self.audit = audit or AuditService(self.session, self.config)
        self.identity_lookup = identity_lookup or EmailAccountLookup(self.session)

    # Helpers

    def _require(self, principal_id: int, item_id: int, action: str, check) -> AccessResult:
        result = self.access.resolve(principal_id, item_id)
        if not check(result):
            raise access_denied(action, principal_id=principal_id, secure_login_id=item_id)
        return result

    def _load(self, item_id: int, for_update: bool = False) -> SecureLogin:
        item = self.store.get_by_id(SecureLogin, item_id, for_update=for_update)
        if item is None:
            # Resolver already approved; a concurrent delete removed the row
            raise access_denied("load", secure_login_id=item_id)
        return item

    def _validate_google_account(self, login_type: LoginType, account_id: Optional[int]) -> None:
        if login_type is LoginType.GOOGLE_OAUTH and account_id is not None:
            if not self.identity_lookup.exists(account_id):
                raise validation_failed("google_account_id", account_id, "Invalid Google account")

    def _validate_folder(self, owner_id: int, folder_id: Optional[int]) -> None:
        if folder_id is None:
            return
        if not self.store.exists(SecureLoginFolder, where(id=folder_id, owner_id=owner_id)):
            raise validation_failed("folder_id", folder_id, "Invalid folder")

    def _decrypted(self, item: SecureLogin) -> Dict[str, Any]:
        """Current tracked values with secrets decrypted; CodecError propagates."""
        values = {field: getattr(item, field) for field in SECURE_LOGIN_TRACKED_FIELDS}
        for field in SECURE_LOGIN_SECRET_FIELDS:
            values[field] = self.codec.decrypt(getattr(item, field))
        return values

    def _to_read(self, item: SecureLogin, level: VaultAccessLevel) -> SecureLoginRead:
        return SecureLoginRead(
            id=item.id,
            owner_id=item.owner_id,
            item_name=item.item_name,
            username=self.codec.decrypt(item.username),
            password=self.codec.decrypt(item.password),
            totp_secret=self.codec.decrypt(item.totp_secret),
            website_url=item.website_url,
            notes=item.notes,
            login_type=item.login_type,
            google_account_id=item.google_account_id,
            folder_id=item.folder_id,
            created_at=item.created_at,
            updated_at=item.updated_at,
            access_level=level,
            is_owner=level is VaultAccessLevel.OWNER,
        )

    # Operations

    @operation()
    def create_item(
        self,
        owner_id: int,
        data: Union[SecureLoginCreate, Dict[str, Any]],
        origin: Optional[AuditOrigin] = None,
    ) -> SecureLoginRead:
        """
        Create a vault item owned by owner_id.

        Args:
            owner_id: Creating principal, who becomes the owner
            data: Item fields; secrets in plaintext
            origin: Request origin for the audit entry

        Returns:
            Decrypted view with access level owner

        Raises:
            ValidationError: Bad login type, unknown Google account, or foreign folder
        """
        data = self._coerce(SecureLoginCreate, data)
        login_type = parse_login_type(data.login_type)
        self._validate_google_account(login_type, data.google_account_id)
        self._validate_folder(owner_id, data.folder_id)

        with self.transaction("create_item"):
            item = self.store.create(
                SecureLogin,
                {
                    "owner_id": owner_id,
                    "item_name": data.item_name,
                    "username": self.codec.encrypt(data.username),
                    "password": self.codec.encrypt(data.password),
                    "totp_secret": self.codec.encrypt(data.totp_secret),
                    "website_url": data.website_url or None,
                    "notes": data.notes or None,
                    "login_type": login_type.value,
                    "google_account_id": data.google_account_id,
                    "folder_id": data.folder_id,
                    "updated_by": owner_id,
                },
            )
            self.audit.log_create(ResourceType.SECURE_LOGIN, item.id, owner_id, origin=origin)

        self.logger.info(
            "Secure login created",
            extra={"secure_login_id": item.id, "owner_id": owner_id, "login_type": login_type.value},
        )
        return self._to_read(item, VaultAccessLevel.OWNER)

    @operation()
    def get_item(self, principal_id: int, item_id: int) -> SecureLoginRead:
        """
        Decrypted view of an item the principal can access.

        Raises:
            AccessDeniedError: Item missing or not accessible (indistinguishable)
            CodecError: A stored secret cannot be decrypted
        """
        result = self._require(principal_id, item_id, "read", lambda r: r.can_access)
        return self._to_read(self._load(item_id), result.level)

    @operation()
    def update_item(
        self,
        actor_id: int,
        item_id: int,
        data: Union[SecureLoginUpdate, Dict[str, Any]],
        origin: Optional[AuditOrigin] = None,
    ) -> SecureLoginRead:
        """
        Update the fields present in data; audit one entry per changed field.

        Each tracked field is compared against the current decrypted value;
        unchanged fields are neither written nor audited. Secrets sealed under
        a retired key are re-encrypted with the active key.

        Raises:
            AccessDeniedError: Actor lacks edit access
            ValidationError: Bad login type or unknown Google account
        """
        data = self._coerce(SecureLoginUpdate, data)
        result = self._require(actor_id, item_id, "update", lambda r: r.can_edit)
        incoming = data.model_dump(exclude_unset=True)

        with self.transaction("update_item", item_id):
            item = self._load(item_id, for_update=True)
            current = self._decrypted(item)

            if "login_type" in incoming:
                incoming["login_type"] = parse_login_type(incoming["login_type"]).value
            login_type = LoginType(incoming.get("login_type", item.login_type))
            if "google_account_id" in incoming or "login_type" in incoming:
                self._validate_google_account(
                    login_type, incoming.get("google_account_id", item.google_account_id)
                )
            if "item_name" in incoming and incoming["item_name"] is None:
                raise ValidationError("item_name cannot be cleared", field="item_name")

            changes = extract_changes(current, incoming, SECURE_LOGIN_TRACKED_FIELDS)

            updates: Dict[str, Any] = {}
            for change in changes:
                if change.field in SECURE_LOGIN_SECRET_FIELDS:
                    updates[change.field] = self.codec.encrypt(change.new_value)
                else:
                    updates[change.field] = change.new_value if change.new_value != "" else None

            for field in SECURE_LOGIN_SECRET_FIELDS:
                if field not in updates and self.codec.needs_rotation(getattr(item, field)):
                    updates[field] = self.codec.rotate(getattr(item, field))

            if updates:
                updates["updated_by"] = actor_id
                self.store.update(item, updates)
            self.audit.log_update(
                ResourceType.SECURE_LOGIN, item_id, actor_id, changes, origin=origin
            )

        self.logger.info(
            "Secure login updated",
            extra={
                "secure_login_id": item_id,
                "actor_id": actor_id,
                "changed_fields": [c.field for c in changes],
            },
        )
        return self._to_read(item, result.level)

    @operation()
    def delete_item(
        self, actor_id: int, item_id: int, origin: Optional[AuditOrigin] = None
    ) -> None:
        """
        Delete an item. Owner only; editors are refused.

        The delete audit entry is written and flushed before the row goes, and
        user and group grants are removed in the same transaction.
        """
        self._require(actor_id, item_id, "delete", lambda r: r.is_owner)

        with self.transaction("delete_item", item_id):
            item = self._load(item_id, for_update=True)
            self.audit.log_delete(ResourceType.SECURE_LOGIN, item_id, actor_id, origin=origin)
            self.store.delete_where(SecureLoginUserAccess, where(secure_login_id=item_id))
            self.store.delete_where(SecureLoginGroupAccess, where(secure_login_id=item_id))
            self.store.delete(item)

        self.logger.info(
            "Secure login deleted", extra={"secure_login_id": item_id, "actor_id": actor_id}
        )

    @operation()
    def grant_access(
        self,
        actor_id: int,
        item_id: int,
        grantee_type: Union[GranteeType, str],
        grantee_id: int,
        level: Union[GrantLevel, str],
        origin: Optional[AuditOrigin] = None,
    ) -> AccessGrantRead:
        """
        Share an item with a user or group. Owner only; re-granting updates the level.

        Raises:
            AccessDeniedError: Actor is not the owner
            ValidationError: Bad grantee type or level, or a self-grant
            NotFoundError: Grantee user or group does not exist
        """
        self._require(actor_id, item_id, "grant_access", lambda r: r.is_owner)
        grantee_type = parse_grantee_type(grantee_type)
        level = parse_grant_level(level)

        if grantee_type is GranteeType.USER:
            if grantee_id == actor_id:
                raise ValidationError(
                    "Cannot share with yourself",
                    field="grantee_id",
                    error_code=ErrorCode.BUSINESS_RULE_VIOLATION,
                )
            if not user_exists(self.store, grantee_id):
                raise not_found("User", user_id=grantee_id)
            model_class, grantee_column = SecureLoginUserAccess, "user_id"
        else:
            if not self.store.exists(SecureLoginGroup, where(id=grantee_id)):
                raise not_found("Group", group_id=grantee_id)
            model_class, grantee_column = SecureLoginGroupAccess, "group_id"

        with self.transaction("grant_access", item_id):
            grant = self.store.find_one(
                model_class, where(secure_login_id=item_id, **{grantee_column: grantee_id})
            )
            if grant is None:
                grant = self.store.create(
                    model_class,
                    {
                        "secure_login_id": item_id,
                        grantee_column: grantee_id,
                        "access_level": level.value,
                        "granted_by": actor_id,
                    },
                )
            else:
                self.store.update(
                    grant,
                    {"access_level": level.value, "granted_by": actor_id, "granted_at": utc_now()},
                )
            self.audit.log_access_granted(
                ResourceType.SECURE_LOGIN,
                item_id,
                actor_id,
                grantee_type,
                grantee_id,
                level,
                origin=origin,
            )

        return AccessGrantRead(
            id=grant.id,
            grantee_type=grantee_type.value,
            grantee_id=grantee_id,
            access_level=grant.access_level,
            granted_by=grant.granted_by,
            granted_at=grant.granted_at,
        )

    @operation()
    def revoke_access(
        self,
        actor_id: int,
        item_id: int,
        grantee_type: Union[GranteeType, str],
        grantee_id: int,
        origin: Optional[AuditOrigin] = None,
    ) -> None:
        """
        Remove a user or group grant. Owner only.

        Raises:
            AccessDeniedError: Actor is not the owner
            NotFoundError: No such grant
        """
        self._require(actor_id, item_id, "revoke_access", lambda r: r.is_owner)
        grantee_type = parse_grantee_type(grantee_type)
        if grantee_type is GranteeType.USER:
            model_class, grantee_column = SecureLoginUserAccess, "user_id"
        else:
            model_class, grantee_column = SecureLoginGroupAccess, "group_id"

        with self.transaction("revoke_access", item_id):
            grant = self.store.find_one(
                model_class, where(secure_login_id=item_id, **{grantee_column: grantee_id})
            )
            if grant is None:
                raise not_found(
                    "Access grant",
                    secure_login_id=item_id,
                    grantee_type=grantee_type.value,
                    grantee_id=grantee_id,
                )
            self.store.delete(grant)
            self.audit.log_access_revoked(
                ResourceType.SECURE_LOGIN,
                item_id,
                actor_id,
                grantee_type,
                grantee_id,
                origin=origin,
            )

    @operation()
    def list_access(self, principal_id: int, item_id: int) -> Dict[str, List[AccessGrantRead]]:
        """User and group grants on an item; visible to anyone with access."""
        self._require(principal_id, item_id, "list_access", lambda r: r.can_access)

        user_grants = self.store.find_all(
            SecureLoginUserAccess,
            where(secure_login_id=item_id),
            order_by=[SecureLoginUserAccess.granted_at.desc(), SecureLoginUserAccess.id.desc()],
        )
        group_grants = self.store.find_all(
            SecureLoginGroupAccess,
            where(secure_login_id=item_id),
            order_by=[SecureLoginGroupAccess.granted_at.desc(), SecureLoginGroupAccess.id.desc()],
        )
        return {
            "user_access": [
                AccessGrantRead(
                    id=g.id,
                    grantee_type=GranteeType.USER.value,
                    grantee_id=g.user_id,
                    access_level=g.access_level,
                    granted_by=g.granted_by,
                    granted_at=g.granted_at,
                )
                for g in user_grants
            ],
            "group_access": [
                AccessGrantRead(
                    id=g.id,
                    grantee_type=GranteeType.GROUP.value,
                    grantee_id=g.group_id,
                    access_level=g.access_level,
                    granted_by=g.granted_by,
                    granted_at=g.granted_at,
                )
                for g in group_grants
            ],
        }

    @operation()
    def list_items(
        self,
        principal_id: int,
        filters: Union[SecureLoginFilter, Dict[str, Any], None] = None,
    ) -> Dict[str, Any]:
        """
        Page through the items the principal can access.

        The accessible set gates the query before any other filter, the count
        and the page boundaries, so totals never reveal inaccessible items.

        Returns:
            {"data": [SecureLoginRead, ...], "pagination": {...}}
        """
        filters = self._coerce(SecureLoginFilter, filters or {})
        levels = self.access.accessible_levels(principal_id)

        if filters.scope is OwnershipScope.OWNED:
            visible_ids = {i for i, lvl in levels.items() if lvl is VaultAccessLevel.OWNER}
        elif filters.scope is OwnershipScope.SHARED:
            visible_ids = {i for i, lvl in levels.items() if lvl is not VaultAccessLevel.OWNER}
        else:
            visible_ids = set(levels)

        if not visible_ids:
            return self.paginate_results([], 0, filters.page, filters.page_size)

        conditions: List[Any] = [Predicate("id", Op.IN, visible_ids)]
        if filters.search:
            conditions.append(
                AnyOf(
                    [
                        Predicate("item_name", Op.ILIKE, filters.search),
                        Predicate("website_url", Op.ILIKE, filters.search),
                    ]
                )
            )
        if filters.login_type:
            conditions.append(Predicate("login_type", value=parse_login_type(filters.login_type).value))
        if filters.folder_id is not None:
            conditions.append(Predicate("folder_id", value=filters.folder_id))
        elif filters.root_only:
            conditions.append(Predicate("folder_id", Op.IS_NULL))

        total = self.store.count(SecureLogin, conditions)
        items = self.store.find_all(
            SecureLogin,
            conditions,
            order_by=[SecureLogin.updated_at.desc(), SecureLogin.id.desc()],
            limit=filters.page_size,
            offset=(filters.page - 1) * filters.page_size,
        )
        results = [self._to_read(item, levels[item.id]) for item in items]
        return self.paginate_results(results, total, filters.page, filters.page_size)

    @operation()
    def move_item(
        self,
        actor_id: int,
        item_id: int,
        folder_id: Optional[int],
        origin: Optional[AuditOrigin] = None,
    ) -> SecureLoginRead:
        """
        File an item into one of its owner's folders (None for the root).

        Requires edit access; editors cannot file into their own folders.
        Audited as an update of folder_id.
        """
        result = self._require(actor_id, item_id, "move", lambda r: r.can_edit)

        with self.transaction("move_item", item_id):
            item = self._load(item_id, for_update=True)
            self._validate_folder(item.owner_id, folder_id)
            if item.folder_id != folder_id:
                old_folder = item.folder_id
                self.store.update(item, {"folder_id": folder_id, "updated_by": actor_id})
                self.audit.record(
                    ResourceType.SECURE_LOGIN,
                    item_id,
                    AuditAction.UPDATE,
                    actor_id,
                    field_name="folder_id",
                    old_value=old_folder,
                    new_value=folder_id,
                    origin=origin,
                )

        return self._to_read(item, result.level)

    @operation()
    def history(
        self, actor_id: int, item_id: int, limit: Optional[int] = None
    ) -> List[AuditEntryRead]:
        """Audit trail of an item, newest first. Owner only."""
        self._require(actor_id, item_id, "history", lambda r: r.is_owner)
        return self.audit.history(ResourceType.SECURE_LOGIN, item_id, limit=limit)
