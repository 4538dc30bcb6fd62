"""
Unit test conftest.py - Component-specific fixtures.

Services are built against the per-test session; they run each operation in a
SAVEPOINT and leave the outer transaction to the test.
"""

import pytest

from credential_vault_core.services import (
    AccessControlService,
    AuditService,
    FolderService,
    GroupService,
    PlatformCredentialService,
    SecureLoginService,
)
from tests.fixtures.factories import UserFactory

# ==================== SERVICE FIXTURES ====================


@pytest.fixture(scope="function")
def access_service(db_session):
    return AccessControlService(session=db_session)


@pytest.fixture(scope="function")
def audit_service(db_session, app_config):
    return AuditService(session=db_session, config=app_config)


@pytest.fixture(scope="function")
def secure_login_service(db_session, app_config, codec, access_service, audit_service):
    return SecureLoginService(
        session=db_session,
        codec=codec,
        config=app_config,
        access=access_service,
        audit=audit_service,
    )


@pytest.fixture(scope="function")
def group_service(db_session, access_service):
    return GroupService(session=db_session, access=access_service)


@pytest.fixture(scope="function")
def folder_service(db_session, audit_service):
    return FolderService(session=db_session, audit=audit_service)


@pytest.fixture(scope="function")
def platform_service(db_session, app_config, codec, access_service, audit_service):
    return PlatformCredentialService(
        session=db_session,
        codec=codec,
        config=app_config,
        access=access_service,
        audit=audit_service,
    )


# ==================== DATA FIXTURES ====================


@pytest.fixture(scope="function")
def owner(db_session):
    return UserFactory(email="owner@example.com")


@pytest.fixture(scope="function")
def other_user(db_session):
    return UserFactory(email="other@example.com")


@pytest.fixture(scope="function")
def item(secure_login_service, owner):
    """A vault item with every secret populated."""
    return secure_login_service.create_item(
        owner.id,
        {
            "item_name": "Bank",
            "username": "alice",
            "password": "s3cret",
            "totp_secret": "JBSWY3DPEHPK3PXP",
            "website_url": "https://bank.example.com",
        },
    )
