"""
Tests for GroupService: group lifecycle and membership management.
"""

import pytest

from credential_vault_core.db import (
    SecureLoginGroup,
    SecureLoginGroupAccess,
    SecureLoginGroupMember,
)
from credential_vault_core.exceptions import (
    AccessDeniedError,
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
)
from credential_vault_core.services.group_service import parse_group_role
from tests.fixtures.factories import GroupFactory, GroupMemberFactory, UserFactory


@pytest.fixture
def group(group_service, owner):
    return group_service.create_group(owner.id, "Marketing", "Shared social logins")


class TestParseGroupRole:
    def test_default_member(self):
        assert parse_group_role(None).value == "member"

    def test_invalid(self):
        with pytest.raises(ValidationError) as exc_info:
            parse_group_role("owner")

        assert exc_info.value.context["field"] == "role"


class TestCreateGroup:
    def test_create(self, group, owner):
        assert group.owner_id == owner.id
        assert group.name == "Marketing"
        assert group.is_owner is True
        assert group.member_count == 0

    def test_name_is_trimmed_and_required(self, group_service, owner):
        assert group_service.create_group(owner.id, "  Ops  ").name == "Ops"

        with pytest.raises(ValidationError) as exc_info:
            group_service.create_group(owner.id, "   ")

        assert exc_info.value.error_code == ErrorCode.MISSING_REQUIRED

    def test_duplicate_name_per_owner(self, group_service, group, owner, other_user):
        with pytest.raises(ConflictError):
            group_service.create_group(owner.id, "Marketing")

        assert group_service.create_group(other_user.id, "Marketing").owner_id == other_user.id


class TestUpdateAndDelete:
    def test_owner_renames(self, group_service, group, owner):
        updated = group_service.update_group(owner.id, group.id, name="Brand", description="")

        assert updated.name == "Brand"
        assert updated.description is None

    def test_rename_to_existing_name(self, group_service, group, owner):
        group_service.create_group(owner.id, "Sales")

        with pytest.raises(ConflictError):
            group_service.update_group(owner.id, group.id, name="Sales")

    def test_group_admin_cannot_update(self, group_service, group, other_user):
        GroupMemberFactory(group_id=group.id, user_id=other_user.id, role="admin")

        with pytest.raises(AccessDeniedError):
            group_service.update_group(other_user.id, group.id, name="Hijacked")

    def test_missing_group(self, group_service, owner):
        with pytest.raises(NotFoundError):
            group_service.update_group(owner.id, 4242, name="X")

    def test_delete_removes_members_and_grants(
        self, group_service, secure_login_service, group, owner, other_user, item, db_session
    ):
        group_service.add_member(owner.id, group.id, other_user.id)
        secure_login_service.grant_access(owner.id, item.id, "group", group.id, "edit")

        group_service.delete_group(owner.id, group.id)

        assert db_session.get(SecureLoginGroup, group.id) is None
        assert db_session.query(SecureLoginGroupMember).count() == 0
        assert db_session.query(SecureLoginGroupAccess).count() == 0
        with pytest.raises(AccessDeniedError):
            secure_login_service.get_item(other_user.id, item.id)

    def test_only_owner_deletes(self, group_service, group, other_user):
        GroupMemberFactory(group_id=group.id, user_id=other_user.id, role="admin")

        with pytest.raises(AccessDeniedError):
            group_service.delete_group(other_user.id, group.id)


class TestReadAndList:
    def test_member_can_read(self, group_service, group, owner, other_user):
        group_service.add_member(owner.id, group.id, other_user.id)

        view = group_service.get_group(other_user.id, group.id)

        assert view.is_owner is False
        assert view.member_count == 1

    def test_outsider_is_refused(self, group_service, group, other_user):
        with pytest.raises(AccessDeniedError):
            group_service.get_group(other_user.id, group.id)
        with pytest.raises(AccessDeniedError):
            group_service.list_members(other_user.id, group.id)

    def test_missing_group_is_not_found(self, group_service, other_user):
        with pytest.raises(NotFoundError):
            group_service.get_group(other_user.id, 4242)

    def test_list_owned_and_member_groups(self, group_service, group, owner, other_user):
        foreign = GroupFactory(name="Alpha")
        GroupMemberFactory(group_id=foreign.id, user_id=owner.id)
        GroupFactory(name="Unrelated")

        page = group_service.list_groups(owner.id)

        assert [g.name for g in page["data"]] == ["Alpha", "Marketing"]
        assert page["pagination"]["total_count"] == 2

    def test_list_search_and_pages(self, group_service, owner):
        for name in ["Ops East", "Ops West", "Finance"]:
            group_service.create_group(owner.id, name)

        page = group_service.list_groups(owner.id, search="ops", page=2, page_size=1)

        assert [g.name for g in page["data"]] == ["Ops West"]
        assert page["pagination"]["total_pages"] == 2
        assert page["pagination"]["has_next"] is False


class TestMembership:
    def test_owner_adds_member(self, group_service, group, owner, other_user):
        member = group_service.add_member(owner.id, group.id, other_user.id, role="admin")

        assert member.user_id == other_user.id
        assert member.role == "admin"
        assert member.added_by == owner.id
        assert [m.user_id for m in group_service.list_members(other_user.id, group.id)] == [
            other_user.id
        ]

    def test_group_admin_adds_member(self, group_service, group, other_user):
        GroupMemberFactory(group_id=group.id, user_id=other_user.id, role="admin")
        newcomer = UserFactory()

        member = group_service.add_member(other_user.id, group.id, newcomer.id)

        assert member.role == "member"

    def test_plain_member_cannot_add(self, group_service, group, other_user):
        GroupMemberFactory(group_id=group.id, user_id=other_user.id, role="member")

        with pytest.raises(AccessDeniedError):
            group_service.add_member(other_user.id, group.id, UserFactory().id)

    def test_duplicate_member(self, group_service, group, owner, other_user):
        group_service.add_member(owner.id, group.id, other_user.id)

        with pytest.raises(ConflictError):
            group_service.add_member(owner.id, group.id, other_user.id)

    def test_owner_is_never_a_member(self, group_service, group, owner):
        with pytest.raises(ValidationError) as exc_info:
            group_service.add_member(owner.id, group.id, owner.id)

        assert exc_info.value.error_code == ErrorCode.BUSINESS_RULE_VIOLATION

    def test_unknown_user(self, group_service, group, owner):
        with pytest.raises(NotFoundError):
            group_service.add_member(owner.id, group.id, 99999)

    def test_member_leaves(self, group_service, group, owner, other_user, db_session):
        group_service.add_member(owner.id, group.id, other_user.id)

        group_service.remove_member(other_user.id, group.id, other_user.id)

        assert db_session.query(SecureLoginGroupMember).count() == 0

    def test_member_cannot_remove_others(self, group_service, group, owner, other_user):
        group_service.add_member(owner.id, group.id, other_user.id)
        third = UserFactory()
        group_service.add_member(owner.id, group.id, third.id)

        with pytest.raises(AccessDeniedError):
            group_service.remove_member(other_user.id, group.id, third.id)

    def test_owner_cannot_be_removed(self, group_service, group, owner):
        with pytest.raises(ValidationError):
            group_service.remove_member(owner.id, group.id, owner.id)

    def test_remove_non_member(self, group_service, group, owner, other_user):
        with pytest.raises(NotFoundError):
            group_service.remove_member(owner.id, group.id, other_user.id)

    def test_update_role_is_owner_only(self, group_service, group, owner, other_user):
        group_service.add_member(owner.id, group.id, other_user.id, role="admin")
        third = UserFactory()
        group_service.add_member(owner.id, group.id, third.id)

        with pytest.raises(AccessDeniedError):
            group_service.update_role(other_user.id, group.id, third.id, "admin")

        promoted = group_service.update_role(owner.id, group.id, third.id, "admin")
        assert promoted.role == "admin"

    def test_update_role_of_non_member(self, group_service, group, owner, other_user):
        with pytest.raises(NotFoundError):
            group_service.update_role(owner.id, group.id, other_user.id, "member")
