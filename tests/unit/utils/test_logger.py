"""Tests for the logging helpers."""

import logging
import sys
from unittest.mock import MagicMock, patch

import pytest

from credential_vault_core.context.principal_context import Principal, principal_context
from credential_vault_core.utils import logger as logger_module
from credential_vault_core.utils.json_utils import loads
from credential_vault_core.utils.logger import (
    AzureQueueHandler,
    ContextAwareLogger,
    PrincipalContextFilter,
    configure_logging,
    get_logger,
    reset_logging,
)


def _record(msg="hello", **extra):
    record = logging.LogRecord(
        name="credential_vault_core",
        level=logging.INFO,
        pathname=__file__,
        lineno=10,
        msg=msg,
        args=(),
        exc_info=None,
    )
    for key, value in extra.items():
        setattr(record, key, value)
    return record


@pytest.fixture
def queue_handler():
    with patch.object(AzureQueueHandler, "_ensure_queue_exists", return_value=True):
        handler = AzureQueueHandler(
            queue_name="logs-queue", connection_string="UseDevelopmentStorage=true", batch_size=2
        )
    yield handler
    handler.log_buffer.clear()


@pytest.fixture(autouse=True)
def clean_function_logger():
    yield
    for name in ("function.vault-api", "function.vault-worker"):
        configured = logging.getLogger(name)
        for handler in configured.handlers[:]:
            if isinstance(handler, AzureQueueHandler):
                handler.log_buffer.clear()
            configured.removeHandler(handler)
    reset_logging()


class TestContextAwareLogger:
    def test_extra_is_formatted_into_message(self):
        inner = MagicMock()
        wrapped = ContextAwareLogger(inner)

        wrapped.info("Created item", extra={"item_id": 5, "status": "ok"})

        inner.info.assert_called_once_with(
            "Created item | item_id=5 | status=ok", extra={"item_id": 5, "status": "ok"}
        )

    def test_without_extra(self):
        inner = MagicMock()

        ContextAwareLogger(inner).warning("plain")

        inner.warning.assert_called_once_with("plain", extra={})

    def test_exc_info_passes_through(self):
        inner = MagicMock()

        ContextAwareLogger(inner).error("boom", exc_info=True)

        inner.error.assert_called_once_with("boom", extra={}, exc_info=True)


class TestPrincipalContextFilter:
    def test_adds_principal_id(self):
        record = _record()

        with principal_context(Principal(id=42)):
            assert PrincipalContextFilter().filter(record) is True

        assert record.principal_id == 42

    def test_no_principal(self):
        record = _record()

        assert PrincipalContextFilter().filter(record) is True
        assert not hasattr(record, "principal_id")


class TestAzureQueueHandler:
    def test_build_entry_collects_context(self, queue_handler):
        entry = queue_handler.build_entry(_record("done", principal_id=3, group_id=9))

        assert entry["message"] == "done"
        assert entry["level"] == "INFO"
        assert entry["principal_id"] == 3
        assert entry["context"] == {"group_id": 9}

    def test_build_entry_includes_exception(self, queue_handler):
        try:
            raise RuntimeError("broken")
        except RuntimeError:
            record = _record()
            record.exc_info = sys.exc_info()

        entry = queue_handler.build_entry(record)

        assert entry["exception"]["type"] == "RuntimeError"
        assert entry["exception"]["message"] == "broken"

    def test_batches_until_full(self, queue_handler):
        client = MagicMock()
        with patch.object(logger_module.QueueClient, "from_connection_string", return_value=client):
            queue_handler.emit(_record("first"))
            assert client.send_message.call_count == 0

            queue_handler.emit(_record("second"))

        assert client.send_message.call_count == 2
        assert loads(client.send_message.call_args_list[0].args[0])["message"] == "first"
        assert queue_handler.log_buffer == []

    def test_send_failure_does_not_raise(self, queue_handler):
        client = MagicMock()
        client.send_message.side_effect = RuntimeError("queue down")
        queue_handler.log_buffer.append({"message": "x"})

        with patch.object(logger_module.QueueClient, "from_connection_string", return_value=client):
            queue_handler.flush()

        assert queue_handler.log_buffer == []

    def test_no_connection_string_keeps_buffer(self):
        with patch.object(logger_module, "get_config") as get_config:
            get_config.return_value.queue.connection_string = ""
            handler = AzureQueueHandler()

        handler.log_buffer.append({"message": "x"})
        handler.flush()

        assert handler.log_buffer == [{"message": "x"}]


class TestConfigureLogging:
    def test_console_only(self):
        wrapped = configure_logging("vault-api", log_level="DEBUG", enable_queue=False)

        assert get_logger() is wrapped
        assert wrapped.logger.level == logging.DEBUG
        assert len(wrapped.logger.handlers) == 1

    def test_with_queue(self):
        with patch.object(AzureQueueHandler, "_ensure_queue_exists", return_value=True):
            wrapped = configure_logging(
                "vault-worker",
                enable_queue=True,
                connection_string="UseDevelopmentStorage=true",
            )

        assert any(isinstance(h, AzureQueueHandler) for h in wrapped.logger.handlers)

    def test_default_logger_without_configuration(self):
        assert get_logger().logger.name == "credential_vault_core"
