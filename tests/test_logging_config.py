"""Tests for the central logging setup."""

import logging

import pytest

from storefront_core.logging_config import get_logger, setup_logging


@pytest.fixture()
def restore_logging():
    yield
    setup_logging(log_file=None)


class TestSetupLogging:
    def test_writes_order_messages_to_log_file(self, tmp_path, restore_logging):
        log_file = tmp_path / "storefront.log"
        setup_logging(log_file=str(log_file), level="INFO")

        get_logger("storefront_core.fulfillment").info("[Order: ord-001] capture_payment: Zahlung erfasst.")
        for handler in logging.getLogger().handlers:
            handler.flush()

        content = log_file.read_text(encoding="utf-8")
        assert "INFO - [PID:" in content
        assert "[Order: ord-001] capture_payment" in content

    def test_level_is_applied(self, restore_logging):
        setup_logging(log_file=None, level="WARNING")
        assert logging.getLogger().level == logging.WARNING

    def test_http_client_loggers_are_quieted(self, restore_logging):
        setup_logging(log_file=None, level="DEBUG")
        assert logging.getLogger("httpx").level == logging.WARNING
        assert logging.getLogger("httpcore").level == logging.WARNING

    def test_reconfiguring_replaces_handlers(self, tmp_path, restore_logging):
        setup_logging(log_file=str(tmp_path / "first.log"))
        setup_logging(log_file=None)
        assert not any(isinstance(h, logging.FileHandler) for h in logging.getLogger().handlers)
