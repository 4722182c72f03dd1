"""Tests for Courier structured logging."""

import json
import logging

import structlog

from courier.logging import (
    bind_context,
    configure_logging,
    get_logger,
    log_context,
)


class TestConfigureLogging:
    """Tests for logging configuration."""

    def test_configure_with_defaults(self):
        """Should configure with INFO level and JSON format by default."""
        configure_logging()
        assert logging.getLogger().level == logging.INFO
        get_logger("test").info("test message")

    def test_configure_with_text_format(self):
        """Should accept text format for development."""
        configure_logging(level="DEBUG", format="text")
        assert logging.getLogger().level == logging.DEBUG
        get_logger("test").debug("text format message")

    def test_reconfigure_replaces_handler(self):
        """Repeated configuration should not stack handlers."""
        configure_logging(level="INFO")
        before = len(logging.getLogger().handlers)
        configure_logging(level="DEBUG")

        assert len(logging.getLogger().handlers) == before

    def test_unknown_level_falls_back(self):
        """An unknown level name should fall back to INFO."""
        configure_logging(level="CHATTY")
        assert logging.getLogger().level == logging.INFO

    def test_stdlib_records_rendered_as_json(self):
        """Storage-layer stdlib records should get the structlog JSON shape."""
        configure_logging(format="json")
        handler = logging.getLogger().handlers[-1]
        record = logging.LogRecord(
            "courier.storage.memory", logging.WARNING, __file__, 1, "stdlib record", None, None
        )

        rendered = json.loads(handler.format(record))

        assert rendered["event"] == "stdlib record"
        assert rendered["level"] == "warning"
        assert rendered["logger"] == "courier.storage.memory"
        assert "timestamp" in rendered


class TestGetLogger:
    """Tests for logger creation."""

    def test_loggers_are_callable(self):
        """Should return callable logger instances."""
        logger = get_logger("courier.webhooks")
        assert callable(getattr(logger, "info", None))
        assert callable(getattr(logger, "warning", None))
        assert callable(getattr(logger, "exception", None))

    def test_log_with_exception(self):
        """Should handle exception logging."""
        logger = get_logger("test")
        try:
            raise ValueError("test error")
        except ValueError:
            logger.exception("caught an error")

    def test_module_level_logger(self):
        """The package logger should be importable and usable."""
        from courier.logging import logger

        logger.info("module logger works")


class TestContext:
    """Tests for context binding."""

    def setup_method(self):
        structlog.contextvars.clear_contextvars()

    def teardown_method(self):
        structlog.contextvars.clear_contextvars()

    def test_bind_context(self):
        """Bound values should be visible to later records."""
        bind_context(owner_id="user_123")
        assert structlog.contextvars.get_contextvars() == {"owner_id": "user_123"}

    def test_log_context_scoped(self):
        """Values should only be bound inside the block."""
        with log_context(webhook_id="whk_abc", webhook_event="entry.created"):
            assert structlog.contextvars.get_contextvars() == {
                "webhook_id": "whk_abc",
                "webhook_event": "entry.created",
            }

        assert structlog.contextvars.get_contextvars() == {}

    def test_log_context_restores_outer_values(self):
        """Shadowed values should come back after the block."""
        bind_context(owner_id="user_1")

        with log_context(owner_id="user_2", webhook_id="whk_abc"):
            assert structlog.contextvars.get_contextvars()["owner_id"] == "user_2"

        assert structlog.contextvars.get_contextvars() == {"owner_id": "user_1"}
