"""
Tests for VaultCore wiring: one session, shared resolver and audit writer.
"""

import pytest

from credential_vault_core.enums import VaultAccessLevel
from credential_vault_core.exceptions import ValidationError
from credential_vault_core.services import VaultCore
from tests.fixtures.factories import EmailAccountFactory, UserFactory


class StaticLookup:
    """Identity lookup that knows a fixed set of account ids."""

    def __init__(self, known):
        self.known = set(known)

    def exists(self, account_id):
        return account_id in self.known


@pytest.fixture
def core(db_session, app_config, codec):
    with VaultCore(session=db_session, config=app_config, codec=codec) as vault:
        yield vault


class TestWiring:
    def test_services_share_session_and_collaborators(self, core, db_session):
        assert core.secure_logins.session is db_session
        assert core.secure_logins.access is core.access
        assert core.secure_logins.audit is core.audit
        assert core.platforms.access is core.access
        assert core.groups.access is core.access
        assert core.folders.session is db_session

    def test_end_to_end_sharing(self, core):
        alice = UserFactory()
        bob = UserFactory()

        group = core.groups.create_group(alice.id, "Family")
        core.groups.add_member(alice.id, group.id, bob.id)
        folder = core.folders.create_folder(alice.id, {"name": "Streaming"})
        item = core.secure_logins.create_item(
            alice.id, {"item_name": "Movies", "password": "popcorn", "folder_id": folder.id}
        )
        core.secure_logins.grant_access(alice.id, item.id, "group", group.id, "read")

        assert core.resolve_access(bob.id, item.id).level is VaultAccessLevel.READ
        assert core.list_accessible_resource_ids(bob.id) == {item.id}
        assert core.secure_logins.get_item(bob.id, item.id).password == "popcorn"

    def test_custom_identity_lookup(self, db_session, app_config, codec):
        owner = UserFactory()
        linked = EmailAccountFactory()
        unlisted = EmailAccountFactory()
        core = VaultCore(
            session=db_session,
            config=app_config,
            codec=codec,
            identity_lookup=StaticLookup({linked.id}),
        )

        created = core.secure_logins.create_item(
            owner.id, {"item_name": "SSO", "login_type": "google_oauth", "google_account_id": linked.id}
        )

        assert created.google_account_id == linked.id
        with pytest.raises(ValidationError):
            core.secure_logins.create_item(
                owner.id,
                {"item_name": "SSO 2", "login_type": "google_oauth", "google_account_id": unlisted.id},
            )
