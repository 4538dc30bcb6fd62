"""
Tests for the access-control resolver.

Covers precedence (owner > direct grant > group grants > none), group
authority checks and platform credential access.
"""

import pytest

from credential_vault_core.context.principal_context import Principal
from credential_vault_core.enums import VaultAccessLevel
from credential_vault_core.services.access_control_service import (
    NO_ACCESS,
    combine_group_levels,
)
from tests.fixtures.factories import (
    EcosystemFactory,
    GroupFactory,
    GroupMemberFactory,
    UserEcosystemFactory,
    UserFactory,
)


def _share_with_group(secure_login_service, owner, item, level, members=()):
    group = GroupFactory(owner_id=owner.id)
    for user in members:
        GroupMemberFactory(group_id=group.id, user_id=user.id)
    secure_login_service.grant_access(owner.id, item.id, "group", group.id, level)
    return group


class TestCombineGroupLevels:
    def test_edit_wins(self):
        assert combine_group_levels(["read", "edit", "read"]) is VaultAccessLevel.EDIT

    def test_read_only(self):
        assert combine_group_levels(["read"]) is VaultAccessLevel.READ

    def test_no_grants(self):
        assert combine_group_levels([]) is None


class TestResolve:
    def test_owner(self, access_service, owner, item):
        result = access_service.resolve(owner.id, item.id)

        assert result.level is VaultAccessLevel.OWNER
        assert result.can_access and result.can_edit and result.is_owner

    def test_no_grant(self, access_service, other_user, item):
        assert access_service.resolve(other_user.id, item.id) == NO_ACCESS

    def test_missing_item_is_indistinguishable(self, access_service, other_user):
        assert access_service.resolve(other_user.id, 987654) == NO_ACCESS

    @pytest.mark.parametrize(
        "level,expected", [("read", VaultAccessLevel.READ), ("edit", VaultAccessLevel.EDIT)]
    )
    def test_direct_grant(
        self, access_service, secure_login_service, owner, other_user, item, level, expected,
    ):
        secure_login_service.grant_access(owner.id, item.id, "user", other_user.id, level)

        result = access_service.resolve(other_user.id, item.id)

        assert result.level is expected
        assert result.can_edit is (expected is VaultAccessLevel.EDIT)
        assert result.is_owner is False

    def test_most_permissive_group_grant(
        self, access_service, secure_login_service, owner, other_user, item,
    ):
        _share_with_group(secure_login_service, owner, item, "read", members=[other_user])
        _share_with_group(secure_login_service, owner, item, "edit", members=[other_user])

        assert access_service.resolve(other_user.id, item.id).level is VaultAccessLevel.EDIT

    def test_direct_grant_beats_group_grant(
        self, access_service, secure_login_service, owner, other_user, item,
    ):
        _share_with_group(secure_login_service, owner, item, "edit", members=[other_user])
        secure_login_service.grant_access(owner.id, item.id, "user", other_user.id, "read")

        assert access_service.resolve(other_user.id, item.id).level is VaultAccessLevel.READ

    def test_group_owner_counts_as_member(
        self, access_service, secure_login_service, owner, other_user, item,
    ):
        group = GroupFactory(owner_id=other_user.id)
        secure_login_service.grant_access(owner.id, item.id, "group", group.id, "read")

        assert access_service.resolve(other_user.id, item.id).level is VaultAccessLevel.READ

    def test_owner_precedes_any_grant(self, access_service, secure_login_service, owner, item):
        _share_with_group(secure_login_service, owner, item, "read", members=[owner])

        assert access_service.is_owner(owner.id, item.id) is True

    def test_convenience_predicates(
        self, access_service, secure_login_service, owner, other_user, item,
    ):
        secure_login_service.grant_access(owner.id, item.id, "user", other_user.id, "read")

        assert access_service.can_access(other_user.id, item.id) is True
        assert access_service.can_edit(other_user.id, item.id) is False
        assert access_service.is_owner(other_user.id, item.id) is False


class TestAccessibleLevels:
    def test_bulk_levels_match_resolve(
        self, access_service, secure_login_service, owner, other_user, item,
    ):
        own = secure_login_service.create_item(other_user.id, {"item_name": "Own"})
        shared = secure_login_service.create_item(owner.id, {"item_name": "Shared"})
        secure_login_service.grant_access(owner.id, item.id, "user", other_user.id, "read")
        _share_with_group(secure_login_service, owner, item, "edit", members=[other_user])
        _share_with_group(secure_login_service, owner, shared, "edit", members=[other_user])

        levels = access_service.accessible_levels(other_user.id)

        assert levels == {
            own.id: VaultAccessLevel.OWNER,
            item.id: VaultAccessLevel.READ,
            shared.id: VaultAccessLevel.EDIT,
        }
        for item_id, level in levels.items():
            assert access_service.resolve(other_user.id, item_id).level is level

    def test_resource_ids(self, access_service, owner, other_user, item):
        assert access_service.list_accessible_resource_ids(owner.id) == {item.id}
        assert access_service.list_accessible_resource_ids(other_user.id) == set()


class TestGroupAuthority:
    def test_owner_and_admin_can_manage(self, access_service):
        group = GroupFactory()
        admin = GroupMemberFactory(group_id=group.id, role="admin")
        member = GroupMemberFactory(group_id=group.id, role="member")

        assert access_service.can_manage_group(group.owner_id, group.id) is True
        assert access_service.can_manage_group(admin.user_id, group.id) is True
        assert access_service.can_manage_group(member.user_id, group.id) is False

    def test_has_group_access(self, access_service, other_user):
        group = GroupFactory()
        member = GroupMemberFactory(group_id=group.id)

        assert access_service.has_group_access(group.owner_id, group.id) is True
        assert access_service.has_group_access(member.user_id, group.id) is True
        assert access_service.has_group_access(other_user.id, group.id) is False


class TestPlatformAccess:
    @pytest.fixture
    def platform(self, platform_service, db_session):
        ecosystem = EcosystemFactory()
        admin = Principal(id=UserFactory(role="admin").id, role="admin")
        created = platform_service.create_platform(
            admin,
            {"ecosystem_id": ecosystem.id, "platform_name": "Brand", "platform_type": "Facebook"},
        )
        return created

    def _member(self, ecosystem_id, role):
        user = UserFactory(role=role)
        UserEcosystemFactory(user_id=user.id, ecosystem_id=ecosystem_id)
        return Principal(id=user.id, role=role)

    def test_missing_platform(self, access_service):
        result = access_service.resolve_platform(Principal(id=1, role="admin"), 424242)

        assert result.exists is False
        assert result.can_access is False

    def test_outside_ecosystem(self, access_service, platform):
        stranger = Principal(id=UserFactory(role="manager").id, role="manager")

        result = access_service.resolve_platform(stranger, platform.id)

        assert result.exists is True
        assert result.can_access is False

    @pytest.mark.parametrize(
        "role,can_edit,can_delete",
        [("read", False, False), ("write", True, False), ("manager", True, False)],
    )
    def test_role_matrix(self, access_service, platform, role, can_edit, can_delete):
        principal = self._member(platform.ecosystem_id, role)

        result = access_service.resolve_platform(principal, platform.id)

        assert result.can_access is True
        assert result.can_edit is can_edit
        assert result.can_delete is can_delete

    def test_admin_sees_every_ecosystem(self, access_service, platform):
        admin = Principal(id=UserFactory(role="admin").id, role="admin")

        result = access_service.resolve_platform(admin, platform.id)

        assert result.can_access and result.can_edit and result.can_delete
        assert access_service.accessible_ecosystem_ids(admin) is None

    def test_accessible_ecosystem_ids(self, access_service, platform):
        principal = self._member(platform.ecosystem_id, "read")

        assert access_service.accessible_ecosystem_ids(principal) == {platform.ecosystem_id}
