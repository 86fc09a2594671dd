"""
Tests for logging utilities module.
"""

import structlog

from tax_copilot.utils.logging import (
    APP_NAME,
    LoggerMixin,
    add_app_context,
    add_correlation_id,
    clear_correlation_id,
    get_correlation_id,
    get_logger,
    set_correlation_id,
    setup_logging,
)


class TestCorrelationId:
    """Tests for correlation ID management."""

    def test_set_and_get_correlation_id(self) -> None:
        assert get_correlation_id() is None

        set_correlation_id("test-123")
        assert get_correlation_id() == "test-123"

        clear_correlation_id()
        assert get_correlation_id() is None

    def test_set_correlation_id_generates_uuid(self) -> None:
        cid = set_correlation_id()

        assert len(cid) == 36
        assert get_correlation_id() == cid

    def test_empty_value_generates_uuid(self) -> None:
        assert len(set_correlation_id("")) == 36


class TestProcessors:
    """Tests for the structlog processors."""

    def test_correlation_id_added_when_set(self) -> None:
        set_correlation_id("req-42")

        event = add_correlation_id(None, "info", {"event": "x"})

        assert event["correlation_id"] == "req-42"

    def test_correlation_id_omitted_when_unset(self) -> None:
        event = add_correlation_id(None, "info", {"event": "x"})

        assert "correlation_id" not in event

    def test_app_context(self) -> None:
        assert add_app_context(None, "info", {})["app"] == APP_NAME


class TestSetup:
    def test_json_setup(self) -> None:
        setup_logging("INFO", "json")

        assert structlog.is_configured()
        get_logger("test").info("json_configured", key="value")

    def test_console_setup(self) -> None:
        setup_logging("DEBUG", "console")

        get_logger("test").debug("console_configured")


class TestLoggerMixin:
    def test_logger_cached_per_instance(self) -> None:
        class Service(LoggerMixin):
            pass

        service = Service()

        assert service.logger is service.logger
