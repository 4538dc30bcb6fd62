"""
Test fixtures for the credential vault core.

This module provides shared test fixtures: an in-memory SQLite database with
the full schema, a fresh session per test, and an encryption keyring.
"""

import pytest
from sqlalchemy.orm import Session

from credential_vault_core.config import AppConfig, SecurityConfig, reset_config, set_config
from credential_vault_core.context.principal_context import PrincipalContext
from credential_vault_core.db import DatabaseConfig, DatabaseManager, import_all_models
from credential_vault_core.db.db_config import Base, initialize_db
from credential_vault_core.exceptions import clear_correlation_id
from credential_vault_core.utils.encryption_utils import EncryptionCodec, generate_key
from tests.fixtures.factories import configure_factories


@pytest.fixture(scope="session")
def db_config() -> DatabaseConfig:
    """Create SQLite in-memory database configuration for testing."""
    return DatabaseConfig(
        db_type="sqlite",
        database=":memory:",
        echo=False,
        development_mode=True,
    )


@pytest.fixture(scope="session")
def db_manager(db_config: DatabaseConfig) -> DatabaseManager:
    """Create and initialize database manager with all models."""
    import_all_models()
    return initialize_db(db_config)


@pytest.fixture(scope="function")
def db_session(db_manager: DatabaseManager) -> Session:
    """
    Create a database session for each test.

    Tables are created before and dropped after every test so each test
    starts from an empty schema.
    """
    Base.metadata.create_all(db_manager.engine)
    session = db_manager.session_factory()
    configure_factories(session)

    yield session

    session.rollback()
    session.close()
    Base.metadata.drop_all(db_manager.engine)


@pytest.fixture(scope="session")
def encryption_key() -> str:
    return generate_key()


@pytest.fixture(scope="function")
def app_config(encryption_key) -> AppConfig:
    """Application config with a single-key keyring, installed process-wide."""
    config = AppConfig(security=SecurityConfig(encryption_keys={"k1": encryption_key}))
    set_config(config)
    yield config
    reset_config()


@pytest.fixture(scope="function")
def codec(app_config) -> EncryptionCodec:
    return EncryptionCodec.from_config(app_config)


@pytest.fixture(autouse=True)
def clean_thread_context():
    """No principal or correlation id leaks between tests."""
    yield
    PrincipalContext.clear_current_principal()
    clear_correlation_id()
