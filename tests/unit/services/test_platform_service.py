"""
Tests for PlatformCredentialService: ecosystem-scoped credentials, advisory
access tags and the platform audit trail.
"""

import pytest

from credential_vault_core.constants import REDACTED
from credential_vault_core.context.principal_context import Principal
from credential_vault_core.db import PlatformAccess, PlatformAuditLog, SocialMediaPlatform
from credential_vault_core.exceptions import (
    AccessDeniedError,
    ConflictError,
    NotFoundError,
    ValidationError,
)
from tests.fixtures.factories import EcosystemFactory, UserEcosystemFactory, UserFactory


def _principal(role, ecosystem=None):
    user = UserFactory(role=role)
    if ecosystem is not None:
        UserEcosystemFactory(user_id=user.id, ecosystem_id=ecosystem.id)
    return Principal(id=user.id, role=role, email=user.email)


@pytest.fixture
def ecosystem(db_session):
    return EcosystemFactory(name="Acme")


@pytest.fixture
def writer(ecosystem):
    return _principal("write", ecosystem)


@pytest.fixture
def admin(db_session):
    return _principal("admin")


@pytest.fixture
def platform(platform_service, writer, ecosystem):
    return platform_service.create_platform(
        writer,
        {
            "ecosystem_id": ecosystem.id,
            "platform_name": "Acme Page",
            "platform_type": "Facebook",
            "username": "acme.social",
            "password": "pa55",
            "email": "social@acme.example",
        },
    )


class TestCreatePlatform:
    def test_create(self, platform, writer, db_session):
        assert platform.password == "pa55"
        assert platform.can_edit is True
        assert platform.can_delete is False
        assert platform.account_status == "active"

        row = db_session.get(SocialMediaPlatform, platform.id)
        assert row.password.startswith("v1:")
        assert row.created_by == writer.id
        assert row.totp_secret is None

    def test_create_is_audited_with_role(self, platform, db_session):
        entry = db_session.query(PlatformAuditLog).filter_by(platform_id=platform.id).one()

        assert (entry.action, entry.user_role) == ("create", "write")

    def test_reader_cannot_create(self, platform_service, ecosystem):
        reader = _principal("read", ecosystem)

        with pytest.raises(AccessDeniedError):
            platform_service.create_platform(
                reader,
                {"ecosystem_id": ecosystem.id, "platform_name": "X", "platform_type": "TikTok"},
            )

    def test_outside_ecosystem(self, platform_service, ecosystem):
        outsider = _principal("manager")

        with pytest.raises(AccessDeniedError):
            platform_service.create_platform(
                outsider,
                {"ecosystem_id": ecosystem.id, "platform_name": "X", "platform_type": "TikTok"},
            )

    def test_unknown_ecosystem(self, platform_service, admin):
        with pytest.raises(NotFoundError):
            platform_service.create_platform(
                admin, {"ecosystem_id": 4242, "platform_name": "X", "platform_type": "TikTok"}
            )

    def test_duplicate_in_ecosystem(self, platform_service, platform, writer, ecosystem):
        with pytest.raises(ConflictError):
            platform_service.create_platform(
                writer,
                {
                    "ecosystem_id": ecosystem.id,
                    "platform_name": "Acme Page",
                    "platform_type": "Facebook",
                },
            )


class TestReadPlatforms:
    def test_reader_in_ecosystem(self, platform_service, platform, ecosystem):
        reader = _principal("read", ecosystem)

        view = platform_service.get_platform(reader, platform.id)

        assert view.username == "acme.social"
        assert view.can_edit is False

    def test_missing_and_forbidden_are_distinguished(self, platform_service, platform):
        outsider = _principal("write")

        with pytest.raises(AccessDeniedError):
            platform_service.get_platform(outsider, platform.id)
        with pytest.raises(NotFoundError):
            platform_service.get_platform(outsider, 4242)

    def test_list_is_scoped_to_ecosystems(self, platform_service, platform, writer, admin):
        other_ecosystem = EcosystemFactory()
        platform_service.create_platform(
            admin,
            {"ecosystem_id": other_ecosystem.id, "platform_name": "Elsewhere", "platform_type": "X"},
        )

        assert [p.id for p in platform_service.list_platforms(writer)["data"]] == [platform.id]
        assert platform_service.list_platforms(admin)["pagination"]["total_count"] == 2
        assert platform_service.list_platforms(_principal("read"))["data"] == []

    def test_list_filters(self, platform_service, platform, writer, ecosystem):
        platform_service.create_platform(
            writer,
            {"ecosystem_id": ecosystem.id, "platform_name": "Acme Clips", "platform_type": "YouTube"},
        )

        by_type = platform_service.list_platforms(writer, search="youtube")
        by_ecosystem = platform_service.list_platforms(writer, ecosystem_id=ecosystem.id)

        assert [p.platform_name for p in by_type["data"]] == ["Acme Clips"]
        assert [p.platform_name for p in by_ecosystem["data"]] == ["Acme Clips", "Acme Page"]


class TestUpdatePlatform:
    def test_changes_are_audited_and_redacted(
        self, platform_service, platform, writer, db_session,
    ):
        updated = platform_service.update_platform(
            writer,
            platform.id,
            {"password": "n3w", "username": "acme.brand", "two_fa_enabled": True},
        )

        assert updated.password == "n3w"
        assert updated.two_fa_enabled is True
        rows = {
            r.field_name: r
            for r in db_session.query(PlatformAuditLog).filter_by(
                platform_id=platform.id, action="update"
            )
        }
        assert set(rows) == {"password", "username", "two_fa_enabled"}
        assert rows["password"].old_value == REDACTED
        assert rows["username"].new_value == "acme.brand"
        assert rows["two_fa_enabled"].new_value == "true"
        assert rows["password"].user_role == "write"

    def test_no_op_update(self, platform_service, platform, writer, db_session):
        before = db_session.query(PlatformAuditLog).count()

        platform_service.update_platform(
            writer, platform.id, {"platform_name": "Acme Page", "password": "pa55", "phone": ""}
        )

        assert db_session.query(PlatformAuditLog).count() == before

    def test_required_fields_cannot_be_cleared(self, platform_service, platform, writer):
        with pytest.raises(ValidationError):
            platform_service.update_platform(writer, platform.id, {"platform_name": " "})

    def test_reader_cannot_update(self, platform_service, platform, ecosystem):
        reader = _principal("read", ecosystem)

        with pytest.raises(AccessDeniedError):
            platform_service.update_platform(reader, platform.id, {"notes": "x"})

    def test_rename_collision(self, platform_service, platform, writer, ecosystem):
        other = platform_service.create_platform(
            writer,
            {"ecosystem_id": ecosystem.id, "platform_name": "Acme Page 2", "platform_type": "Facebook"},
        )

        with pytest.raises(ConflictError):
            platform_service.update_platform(writer, other.id, {"platform_name": "Acme Page"})


class TestDeletePlatform:
    def test_only_admin_deletes(self, platform_service, platform, writer):
        with pytest.raises(AccessDeniedError):
            platform_service.delete_platform(writer, platform.id)

    def test_delete_keeps_history(self, platform_service, platform, admin, writer, db_session):
        platform_service.grant_platform_access(writer, platform.id, writer.id, "Admin")

        platform_service.delete_platform(admin, platform.id)

        assert db_session.get(SocialMediaPlatform, platform.id) is None
        assert db_session.query(PlatformAccess).count() == 0
        actions = [
            r.action
            for r in db_session.query(PlatformAuditLog)
            .filter_by(platform_id=platform.id)
            .order_by(PlatformAuditLog.id)
        ]
        assert actions == ["create", "access_granted", "delete"]

    @pytest.mark.parametrize("call", ["get", "update", "delete"])
    def test_row_gone_after_access_check(self, platform_service, platform, admin, monkeypatch, call):
        monkeypatch.setattr(platform_service.store, "get_by_id", lambda *args, **kwargs: None)

        with pytest.raises(NotFoundError):
            if call == "get":
                platform_service.get_platform(admin, platform.id)
            elif call == "update":
                platform_service.update_platform(admin, platform.id, {"notes": "x"})
            else:
                platform_service.delete_platform(admin, platform.id)


class TestAdvisoryTags:
    def test_tags_do_not_grant_access(self, platform_service, platform, writer):
        outsider = _principal("read")
        platform_service.grant_platform_access(writer, platform.id, outsider.id, "Admin")

        with pytest.raises(AccessDeniedError):
            platform_service.get_platform(outsider, platform.id)

    def test_grant_list_and_revoke(self, platform_service, platform, writer):
        user = UserFactory()
        editor_tag = platform_service.grant_platform_access(
            writer, platform.id, user.id, "Editor", notes="agency"
        )
        platform_service.grant_platform_access(writer, platform.id, user.id, "Admin")

        tags = platform_service.list_platform_access(writer, platform.id)
        assert [t.access_level for t in tags] == ["Admin", "Editor"]
        assert editor_tag.notes == "agency"
        assert editor_tag.granted_by == writer.id

        platform_service.revoke_platform_access(writer, platform.id, editor_tag.id)
        assert [t.access_level for t in platform_service.list_platform_access(writer, platform.id)] == [
            "Admin"
        ]

    def test_duplicate_tag(self, platform_service, platform, writer):
        platform_service.grant_platform_access(writer, platform.id, writer.id, "Admin")

        with pytest.raises(ConflictError):
            platform_service.grant_platform_access(writer, platform.id, writer.id, "Admin")

    def test_tag_validation(self, platform_service, platform, writer):
        with pytest.raises(ValidationError):
            platform_service.grant_platform_access(writer, platform.id, writer.id, "  ")
        with pytest.raises(NotFoundError):
            platform_service.grant_platform_access(writer, platform.id, 99999, "Admin")
        with pytest.raises(NotFoundError):
            platform_service.revoke_platform_access(writer, platform.id, 99999)

    def test_grant_and_revoke_are_audited(self, platform_service, platform, writer, db_session):
        user = UserFactory()
        tag = platform_service.grant_platform_access(writer, platform.id, user.id, "Editor")
        platform_service.revoke_platform_access(writer, platform.id, tag.id)

        granted, revoked = (
            db_session.query(PlatformAuditLog)
            .filter(PlatformAuditLog.platform_id == platform.id, PlatformAuditLog.action != "create")
            .order_by(PlatformAuditLog.id)
            .all()
        )
        assert (granted.action, granted.field_name, granted.new_value) == (
            "access_granted", "user_access", f"user:{user.id}:Editor"
        )
        assert (revoked.action, revoked.old_value) == ("access_revoked", f"user:{user.id}")
        assert granted.user_role == revoked.user_role == "write"


class TestPlatformHistory:
    def test_writer_reads_history(self, platform_service, platform, writer):
        platform_service.update_platform(writer, platform.id, {"notes": "hello"})

        history = platform_service.history(writer, platform.id)

        assert [e.action for e in history] == ["update", "create"]
        assert history[0].actor_role == "write"

    def test_reader_cannot_read_history(self, platform_service, platform, ecosystem):
        with pytest.raises(AccessDeniedError):
            platform_service.history(_principal("read", ecosystem), platform.id)

    def test_user_activity(self, platform_service, platform, writer, admin):
        assert [e.resource_id for e in platform_service.user_activity(writer)] == [platform.id]
        assert platform_service.user_activity(admin) == []
