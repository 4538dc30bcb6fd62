"""
Access-control resolver for vault items, sharing groups and platform credentials.

Vault item precedence, strictly in this order:
1. owner of the item -> owner
2. direct user grant -> its level, verbatim
3. grants to any group the principal belongs to -> edit if any is edit, else read
4. otherwise -> none (also for items that do not exist)

Every call reads the store; nothing is cached.
"""

from typing import Dict, Iterable, Optional, Set

from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from ..context.operation_context import operation
from ..context.principal_context import Principal
from ..db.db_group_models import SecureLoginGroup, SecureLoginGroupMember
from ..db.db_platform_models import SocialMediaPlatform
from ..db.db_user_models import UserEcosystem
from ..db.db_vault_models import SecureLogin, SecureLoginGroupAccess, SecureLoginUserAccess
from ..enums import GrantLevel, GroupRole, PrincipalRole, VaultAccessLevel
from ..repositories.record_store import Op, Predicate, where
from .base_service import SessionManagedService


class AccessResult(BaseModel):
    """Effective access of one principal over one vault item."""

    model_config = ConfigDict(frozen=True)

    can_access: bool
    level: VaultAccessLevel

    @property
    def can_edit(self) -> bool:
        return self.level in (VaultAccessLevel.OWNER, VaultAccessLevel.EDIT)

    @property
    def is_owner(self) -> bool:
        return self.level is VaultAccessLevel.OWNER

    @classmethod
    def of(cls, level: VaultAccessLevel) -> "AccessResult":
        return cls(can_access=level is not VaultAccessLevel.NONE, level=level)


NO_ACCESS = AccessResult(can_access=False, level=VaultAccessLevel.NONE)


class PlatformAccessResult(BaseModel):
    """Effective access of one principal over one platform credential."""

    model_config = ConfigDict(frozen=True)

    exists: bool
    can_access: bool
    can_edit: bool
    can_delete: bool


def combine_group_levels(levels: Iterable[str]) -> Optional[VaultAccessLevel]:
    """Most permissive of several group grant levels, or None when there are none."""
    best: Optional[GrantLevel] = None
    for raw in levels:
        level = GrantLevel(raw)
        if best is None or level.rank > best.rank:
            best = level
    return best.to_access_level() if best is not None else None


class AccessControlService(SessionManagedService):
    """Computes effective permissions from ownership, grants and group membership."""

    def __init__(self, session: Optional[Session] = None):
        super().__init__(session)

    def _group_ids_for(self, principal_id: int) -> Set[int]:
        """Groups the principal belongs to, as owner or member."""
        member_of = self.store.column_values(
            SecureLoginGroupMember, "group_id", where(user_id=principal_id)
        )
        owned = self.store.column_values(SecureLoginGroup, "id", where(owner_id=principal_id))
        return set(member_of) | set(owned)

    @operation()
    def resolve(self, principal_id: int, secure_login_id: int) -> AccessResult:
        """
        Effective access of a principal over a vault item.

        Args:
            principal_id: Requesting user
            secure_login_id: Vault item id

        Returns:
            AccessResult; level none for inaccessible and nonexistent items alike
        """
        owner_ids = self.store.column_values(SecureLogin, "owner_id", where(id=secure_login_id))
        if not owner_ids:
            return NO_ACCESS
        if owner_ids[0] == principal_id:
            return AccessResult.of(VaultAccessLevel.OWNER)

        direct = self.store.find_one(
            SecureLoginUserAccess,
            where(secure_login_id=secure_login_id, user_id=principal_id),
        )
        if direct is not None:
            return AccessResult.of(GrantLevel(direct.access_level).to_access_level())

        group_ids = self._group_ids_for(principal_id)
        if group_ids:
            levels = self.store.column_values(
                SecureLoginGroupAccess,
                "access_level",
                [
                    Predicate("secure_login_id", value=secure_login_id),
                    Predicate("group_id", Op.IN, group_ids),
                ],
            )
            combined = combine_group_levels(levels)
            if combined is not None:
                return AccessResult.of(combined)

        return NO_ACCESS

    def can_access(self, principal_id: int, secure_login_id: int) -> bool:
        return self.resolve(principal_id, secure_login_id).can_access

    def can_edit(self, principal_id: int, secure_login_id: int) -> bool:
        return self.resolve(principal_id, secure_login_id).can_edit

    def is_owner(self, principal_id: int, secure_login_id: int) -> bool:
        return self.resolve(principal_id, secure_login_id).is_owner

    def accessible_levels(self, principal_id: int) -> Dict[int, VaultAccessLevel]:
        """
        Effective level for every vault item the principal can access.

        Applies the same precedence as resolve() in bulk: owned items first,
        then direct grants, then the most permissive group grant.
        """
        levels: Dict[int, VaultAccessLevel] = {
            item_id: VaultAccessLevel.OWNER
            for item_id in self.store.column_values(
                SecureLogin, "id", where(owner_id=principal_id)
            )
        }

        for grant in self.store.find_all(SecureLoginUserAccess, where(user_id=principal_id)):
            if grant.secure_login_id not in levels:
                levels[grant.secure_login_id] = GrantLevel(grant.access_level).to_access_level()

        group_ids = self._group_ids_for(principal_id)
        if group_ids:
            by_item: Dict[int, list] = {}
            for grant in self.store.find_all(
                SecureLoginGroupAccess, [Predicate("group_id", Op.IN, group_ids)]
            ):
                by_item.setdefault(grant.secure_login_id, []).append(grant.access_level)
            for item_id, item_levels in by_item.items():
                if item_id not in levels:
                    levels[item_id] = combine_group_levels(item_levels)

        return levels

    def list_accessible_resource_ids(self, principal_id: int) -> Set[int]:
        """Owned, directly shared and group-shared vault item ids."""
        return set(self.accessible_levels(principal_id))

    # Group authority is evaluated against the group itself, independent of item access

    def is_group_owner(self, principal_id: int, group_id: int) -> bool:
        return self.store.exists(SecureLoginGroup, where(id=group_id, owner_id=principal_id))

    def group_role(self, principal_id: int, group_id: int) -> Optional[GroupRole]:
        member = self.store.find_one(
            SecureLoginGroupMember, where(group_id=group_id, user_id=principal_id)
        )
        return GroupRole(member.role) if member is not None else None

    def can_manage_group(self, principal_id: int, group_id: int) -> bool:
        """Owner of the group, or a member holding the admin role."""
        if self.is_group_owner(principal_id, group_id):
            return True
        return self.group_role(principal_id, group_id) is GroupRole.ADMIN

    def has_group_access(self, principal_id: int, group_id: int) -> bool:
        """Owner or any member."""
        if self.is_group_owner(principal_id, group_id):
            return True
        return self.group_role(principal_id, group_id) is not None

    # Platform credentials: ecosystem membership plus portal role

    def has_ecosystem_access(self, principal: Principal, ecosystem_id: int) -> bool:
        """Admins see every ecosystem; others only those assigned to them."""
        if principal.role is PrincipalRole.ADMIN:
            return True
        return self.store.exists(
            UserEcosystem, where(user_id=principal.id, ecosystem_id=ecosystem_id)
        )

    def accessible_ecosystem_ids(self, principal: Principal) -> Optional[Set[int]]:
        """Assigned ecosystem ids, or None meaning every ecosystem (admins)."""
        if principal.role is PrincipalRole.ADMIN:
            return None
        return set(
            self.store.column_values(UserEcosystem, "ecosystem_id", where(user_id=principal.id))
        )

    @operation()
    def resolve_platform(self, principal: Principal, platform_id: int) -> PlatformAccessResult:
        """
        Effective access over a platform credential.

        The role tag read may view but not edit; write, manager and admin may
        edit; only admin may delete. Advisory platform access tags play no part.
        """
        ecosystem_ids = self.store.column_values(
            SocialMediaPlatform, "ecosystem_id", where(id=platform_id)
        )
        if not ecosystem_ids:
            return PlatformAccessResult(
                exists=False, can_access=False, can_edit=False, can_delete=False
            )

        if not self.has_ecosystem_access(principal, ecosystem_ids[0]):
            return PlatformAccessResult(
                exists=True, can_access=False, can_edit=False, can_delete=False
            )

        return PlatformAccessResult(
            exists=True,
            can_access=True,
            can_edit=principal.role.can_write,
            can_delete=principal.role is PrincipalRole.ADMIN,
        )
