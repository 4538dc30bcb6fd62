"""
Unit tests for the exception system.

Tests all exception classes, factory functions, and error handling patterns.
"""

import logging

import pytest

from credential_vault_core.exceptions import (
    AccessDeniedError,
    AuditWriteError,
    AuthenticationError,
    BaseError,
    CodecError,
    ConflictError,
    ErrorCode,
    NotFoundError,
    ValidationError,
    access_denied,
    clear_correlation_id,
    duplicate,
    get_correlation_id,
    not_found,
    permission_denied,
    set_correlation_id,
    validation_failed,
)


class TestBaseError:
    def test_basic_error_creation(self):
        error = BaseError("Test error message")

        assert error.message == "Test error message"
        assert error.error_code == ErrorCode.INTERNAL_ERROR
        assert error.status_code == 500
        assert error.cause is None
        assert error.context["error_id"] == error.error_id
        assert error.timestamp is not None

    def test_error_with_cause(self):
        original_error = ValueError("Original error")
        error = BaseError("Wrapped error", cause=original_error)

        assert error.cause is original_error
        assert error.context["cause"]["type"] == "ValueError"
        assert error.context["cause"]["message"] == "Original error"
        assert error.error_chain == [error, original_error]

    def test_error_with_correlation_id(self):
        set_correlation_id("corr-123")
        try:
            error = BaseError("Correlated")
            assert error.context["correlation_id"] == "corr-123"
            assert error.to_dict()["error"]["correlation_id"] == "corr-123"
        finally:
            clear_correlation_id()

        assert get_correlation_id() is None

    def test_to_dict_hides_cause_by_default(self):
        error = BaseError("Wrapped", cause=RuntimeError("boom"), group_id=4)

        payload = payload_default = error.to_dict()["error"]
        assert payload["context"] == {"group_id": 4}
        assert "cause" not in payload_default

        with_cause = error.to_dict(include_cause=True)["error"]
        assert with_cause["cause"] == {"type": "RuntimeError", "message": "boom"}

    def test_add_context_is_fluent(self):
        error = BaseError("Oops")

        assert error.add_context(operation_name="x") is error
        assert error.context["operation_name"] == "x"

    def test_server_errors_log_at_error(self, caplog):
        with caplog.at_level(logging.DEBUG, logger="credential_vault_core"):
            BaseError("Server side")
            ValidationError("Client side")

        levels = {r.getMessage().split(" | ")[0]: r.levelno for r in caplog.records}
        assert levels["Error 1000: Server side"] == logging.ERROR
        assert levels["Client error 2000: Client side"] == logging.WARNING


class TestErrorClasses:
    @pytest.mark.parametrize(
        "error,status,code",
        [
            (ValidationError("bad", field="name"), 400, ErrorCode.VALIDATION_FAILED),
            (AccessDeniedError(), 403, ErrorCode.PERMISSION_DENIED),
            (NotFoundError(), 404, ErrorCode.NOT_FOUND),
            (ConflictError("dup"), 409, ErrorCode.DUPLICATE),
            (CodecError(), 500, ErrorCode.DECRYPTION_FAILED),
            (AuditWriteError(), 500, ErrorCode.AUDIT_WRITE_FAILED),
            (AuthenticationError(), 401, ErrorCode.UNAUTHENTICATED),
        ],
    )
    def test_status_and_code(self, error, status, code):
        assert error.status_code == status
        assert error.error_code == code

    def test_validation_error_records_field(self):
        assert ValidationError("bad", field="item_name").context["field"] == "item_name"

    def test_access_denied_message_is_generic(self):
        assert AccessDeniedError().message == "Access denied"


class TestFactories:
    def test_not_found(self):
        error = not_found("Group", group_id=12)

        assert isinstance(error, NotFoundError)
        assert error.message == "Group not found: group_id=12"
        assert error.context["resource_type"] == "Group"
        assert error.context["group_id"] == 12

    def test_duplicate(self):
        error = duplicate("GroupMember", group_id=1, user_id=2)

        assert isinstance(error, ConflictError)
        assert error.message == "Duplicate GroupMember: group_id=1, user_id=2"

    def test_validation_failed(self):
        error = validation_failed("role", "owner", "must be member or admin")

        assert error.context["field"] == "role"
        assert error.context["value"] == "owner"
        assert "must be member or admin" in error.message

    def test_permission_denied_is_descriptive(self):
        error = permission_denied("update_role", "Group", group_id=3)

        assert error.message == "Permission denied: update_role on Group"
        assert error.context["action"] == "update_role"

    def test_access_denied_is_uniform(self):
        missing = access_denied("read", secure_login_id=999)
        forbidden = access_denied("read", secure_login_id=1)

        assert missing.message == forbidden.message == "Access denied"
        assert missing.status_code == forbidden.status_code == 403
