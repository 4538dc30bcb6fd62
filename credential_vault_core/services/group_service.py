"""
Service for sharing groups and their membership.

The group owner is implicit: it never has a member row, cannot be added as a
member and cannot be removed. Role changes are reserved to the owner.
"""

from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Session

from ..constants import Limits
from ..context.operation_context import operation
from ..db.db_group_models import SecureLoginGroup, SecureLoginGroupMember
from ..db.db_vault_models import SecureLoginGroupAccess
from ..enums import GroupRole
from ..exceptions import (
    ErrorCode,
    ValidationError,
    duplicate,
    not_found,
    permission_denied,
    validation_failed,
)
from ..repositories.record_store import AnyOf, Op, Predicate, where
from ..schemas.group_schemas import GroupMemberRead, GroupRead
from .access_control_service import AccessControlService
from .base_service import SessionManagedService
from .identity_lookup import user_exists


def parse_group_role(value: Union[GroupRole, str, None]) -> GroupRole:
    if value is None:
        return GroupRole.MEMBER
    try:
        return GroupRole(value)
    except ValueError as e:
        raise validation_failed(
            "role", value, f"must be one of {[r.value for r in GroupRole]}", cause=e
        )


def _clean_name(name: Optional[str]) -> str:
    if name is None or not name.strip():
        raise ValidationError("Group name is required", field="name", error_code=ErrorCode.MISSING_REQUIRED)
    name = name.strip()
    if len(name) > Limits.MAX_NAME_LENGTH:
        raise validation_failed("name", name, f"longer than {Limits.MAX_NAME_LENGTH} characters")
    return name


class GroupService(SessionManagedService):
    """Manages groups that the resolver consults for group grants."""

    def __init__(self, session: Optional[Session] = None, access: Optional[AccessControlService] = None):
        super().__init__(session)
        self.access = access or AccessControlService(self.session)

    def _get_group(self, group_id: int) -> SecureLoginGroup:
        group = self.store.get_by_id(SecureLoginGroup, group_id)
        if group is None:
            raise not_found("Group", group_id=group_id)
        return group

    def _ensure_unique_name(self, owner_id: int, name: str, exclude_id: Optional[int] = None) -> None:
        conditions = where(owner_id=owner_id, name=name)
        if exclude_id is not None:
            conditions.append(Predicate("id", Op.NE, exclude_id))
        if self.store.exists(SecureLoginGroup, conditions):
            raise duplicate("Group", owner_id=owner_id, name=name)

    def _to_read(self, group: SecureLoginGroup, actor_id: int) -> GroupRead:
        return GroupRead(
            id=group.id,
            owner_id=group.owner_id,
            name=group.name,
            description=group.description,
            member_count=self.store.count(SecureLoginGroupMember, where(group_id=group.id)),
            is_owner=group.owner_id == actor_id,
            created_at=group.created_at,
            updated_at=group.updated_at,
        )

    @operation()
    def create_group(
        self, owner_id: int, name: str, description: Optional[str] = None
    ) -> GroupRead:
        """
        Create a group owned by owner_id.

        Raises:
            ValidationError: Missing name
            ConflictError: The owner already has a group with this name
        """
        name = _clean_name(name)
        with self.transaction("create_group"):
            self._ensure_unique_name(owner_id, name)
            group = self.store.create(
                SecureLoginGroup,
                {"owner_id": owner_id, "name": name, "description": description or None},
            )

        self.logger.info("Group created", extra={"group_id": group.id, "owner_id": owner_id})
        return self._to_read(group, owner_id)

    @operation()
    def update_group(
        self,
        actor_id: int,
        group_id: int,
        name: Optional[str] = None,
        description: Optional[str] = None,
    ) -> GroupRead:
        """Rename or re-describe a group. Owner only."""
        group = self._get_group(group_id)
        if group.owner_id != actor_id:
            raise permission_denied("update_group", "Group", group_id=group_id)

        updates: Dict[str, Any] = {}
        if name is not None:
            name = _clean_name(name)
            if name != group.name:
                updates["name"] = name
        if description is not None:
            updates["description"] = description or None

        with self.transaction("update_group", group_id):
            if "name" in updates:
                self._ensure_unique_name(group.owner_id, updates["name"], exclude_id=group_id)
            if updates:
                self.store.update(group, updates)

        return self._to_read(group, actor_id)

    @operation()
    def delete_group(self, actor_id: int, group_id: int) -> None:
        """Delete a group with its memberships and item grants. Owner only."""
        group = self._get_group(group_id)
        if group.owner_id != actor_id:
            raise permission_denied("delete_group", "Group", group_id=group_id)

        with self.transaction("delete_group", group_id):
            self.store.delete_where(SecureLoginGroupMember, where(group_id=group_id))
            self.store.delete_where(SecureLoginGroupAccess, where(group_id=group_id))
            self.store.delete(group)

        self.logger.info("Group deleted", extra={"group_id": group_id, "actor_id": actor_id})

    @operation()
    def get_group(self, actor_id: int, group_id: int) -> GroupRead:
        """A group the actor owns or belongs to."""
        group = self._get_group(group_id)
        if not self.access.has_group_access(actor_id, group_id):
            raise permission_denied("read", "Group", group_id=group_id)
        return self._to_read(group, actor_id)

    @operation()
    def list_groups(
        self,
        actor_id: int,
        search: Optional[str] = None,
        page: int = 1,
        page_size: int = Limits.DEFAULT_PAGE_SIZE,
    ) -> Dict[str, Any]:
        """Groups the actor owns or belongs to, by name."""
        page = max(page, 1)
        page_size = min(max(page_size, 1), Limits.MAX_PAGE_SIZE)

        member_of = self.store.column_values(
            SecureLoginGroupMember, "group_id", where(user_id=actor_id)
        )
        conditions: List[Any] = [
            AnyOf([Predicate("owner_id", value=actor_id), Predicate("id", Op.IN, member_of)])
        ]
        if search:
            conditions.append(Predicate("name", Op.ILIKE, search))

        total = self.store.count(SecureLoginGroup, conditions)
        groups = self.store.find_all(
            SecureLoginGroup,
            conditions,
            order_by=[SecureLoginGroup.name, SecureLoginGroup.id],
            limit=page_size,
            offset=(page - 1) * page_size,
        )
        return self.paginate_results(
            [self._to_read(g, actor_id) for g in groups], total, page, page_size
        )

    @operation()
    def add_member(
        self,
        actor_id: int,
        group_id: int,
        user_id: int,
        role: Union[GroupRole, str, None] = GroupRole.MEMBER,
    ) -> GroupMemberRead:
        """
        Add a user to a group.

        Raises:
            AccessDeniedError: Actor is neither owner nor group admin
            ValidationError: Bad role, or the user is the group owner
            NotFoundError: Group or user does not exist
            ConflictError: The user is already a member
        """
        group = self._get_group(group_id)
        if not self.access.can_manage_group(actor_id, group_id):
            raise permission_denied("add_member", "Group", group_id=group_id)
        role = parse_group_role(role)

        if not user_exists(self.store, user_id):
            raise not_found("User", user_id=user_id)
        if user_id == group.owner_id:
            raise ValidationError(
                "Group owner cannot be added as a member",
                field="user_id",
                error_code=ErrorCode.BUSINESS_RULE_VIOLATION,
                group_id=group_id,
            )

        with self.transaction("add_member", group_id):
            if self.store.exists(SecureLoginGroupMember, where(group_id=group_id, user_id=user_id)):
                raise duplicate("GroupMember", group_id=group_id, user_id=user_id)
            member = self.store.create(
                SecureLoginGroupMember,
                {"group_id": group_id, "user_id": user_id, "role": role.value, "added_by": actor_id},
            )

        self.logger.info(
            "Group member added",
            extra={"group_id": group_id, "user_id": user_id, "role": role.value},
        )
        return GroupMemberRead.model_validate(member)

    @operation()
    def remove_member(self, actor_id: int, group_id: int, user_id: int) -> None:
        """
        Remove a member. Group managers may remove anyone but the owner;
        any member may remove themself.
        """
        group = self._get_group(group_id)
        is_self = actor_id == user_id
        if not is_self and not self.access.can_manage_group(actor_id, group_id):
            raise permission_denied("remove_member", "Group", group_id=group_id)
        if user_id == group.owner_id:
            raise ValidationError(
                "Cannot remove the group owner",
                field="user_id",
                error_code=ErrorCode.BUSINESS_RULE_VIOLATION,
                group_id=group_id,
            )

        with self.transaction("remove_member", group_id):
            member = self.store.find_one(
                SecureLoginGroupMember, where(group_id=group_id, user_id=user_id)
            )
            if member is None:
                raise not_found("GroupMember", group_id=group_id, user_id=user_id)
            self.store.delete(member)

        self.logger.info("Group member removed", extra={"group_id": group_id, "user_id": user_id})

    @operation()
    def update_role(
        self, actor_id: int, group_id: int, user_id: int, role: Union[GroupRole, str]
    ) -> GroupMemberRead:
        """Change a member's role. Owner only; group admins cannot promote."""
        group = self._get_group(group_id)
        if group.owner_id != actor_id:
            raise permission_denied("update_role", "Group", group_id=group_id)
        role = parse_group_role(role)

        with self.transaction("update_role", group_id):
            member = self.store.find_one(
                SecureLoginGroupMember, where(group_id=group_id, user_id=user_id)
            )
            if member is None:
                raise not_found("GroupMember", group_id=group_id, user_id=user_id)
            self.store.update(member, {"role": role.value})

        return GroupMemberRead.model_validate(member)

    @operation()
    def list_members(self, actor_id: int, group_id: int) -> List[GroupMemberRead]:
        """Members of a group the actor owns or belongs to."""
        self._get_group(group_id)
        if not self.access.has_group_access(actor_id, group_id):
            raise permission_denied("list_members", "Group", group_id=group_id)
        members = self.store.find_all(
            SecureLoginGroupMember,
            where(group_id=group_id),
            order_by=[SecureLoginGroupMember.added_at, SecureLoginGroupMember.id],
        )
        return [GroupMemberRead.model_validate(m) for m in members]
