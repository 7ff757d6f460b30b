"""Tests for structured logging."""

import json
import logging

import pytest
import structlog

from spigot.observability.logging import (
    _add_request_id,
    _redact_sensitive,
    clear_request_id,
    configure_logging,
    get_logger,
    request_id_var,
    set_request_id,
)


class TestRequestIdContext:
    """Tests for request ID context variable."""

    def test_request_id_default_none(self):
        """Request ID is None by default."""
        clear_request_id()
        assert request_id_var.get() is None

    def test_set_request_id(self):
        """set_request_id sets the context variable."""
        set_request_id("req-123")
        assert request_id_var.get() == "req-123"
        clear_request_id()

    def test_clear_request_id(self):
        """clear_request_id clears the context variable."""
        set_request_id("req-456")
        clear_request_id()
        assert request_id_var.get() is None


class TestAddRequestIdProcessor:
    """Tests for _add_request_id processor."""

    def test_adds_request_id_when_set(self):
        """Adds request_id to event dict when set."""
        set_request_id("req-abc")
        try:
            event_dict = {"event": "test"}
            result = _add_request_id(None, None, event_dict)
            assert result["request_id"] == "req-abc"
        finally:
            clear_request_id()

    def test_no_request_id_when_not_set(self):
        """Does not add request_id when not set."""
        clear_request_id()
        event_dict = {"event": "test"}
        result = _add_request_id(None, None, event_dict)
        assert "request_id" not in result


class TestRedactSensitiveProcessor:
    """Tests for _redact_sensitive processor."""

    @pytest.mark.parametrize(
        "field",
        ["private_key", "private_key_file", "secret", "password", "api_key", "mnemonic"],
    )
    def test_redacts_sensitive_fields(self, field):
        """Redacts key material and credentials."""
        event_dict = {"event": "test", field: "0x1234567890"}
        result = _redact_sensitive(None, None, event_dict)
        assert result[field] == "[REDACTED]"

    def test_redacts_case_insensitive(self):
        """Redacts fields case-insensitively."""
        event_dict = {"event": "test", "Private_Key": "0x123"}
        result = _redact_sensitive(None, None, event_dict)
        assert result["Private_Key"] == "[REDACTED]"

    def test_preserves_non_sensitive(self):
        """Preserves addresses, hashes and amounts."""
        event_dict = {
            "event": "test",
            "recipient": "0x" + "11" * 20,
            "tx_hash": "0x" + "ab" * 32,
            "amount": "0.1",
        }
        result = _redact_sensitive(None, None, event_dict)
        assert result["recipient"] == "0x" + "11" * 20
        assert result["tx_hash"] == "0x" + "ab" * 32
        assert result["amount"] == "0.1"

    def test_preserves_key_field(self):
        """Preserves 'key' field used for rate window keys."""
        event_dict = {"event": "test", "key": "spigot:ratelimit:10.0.0.1"}
        result = _redact_sensitive(None, None, event_dict)
        assert result["key"] == "spigot:ratelimit:10.0.0.1"


class TestConfigureLogging:
    """Tests for configure_logging function."""

    def setup_method(self):
        """Reset structlog before each test."""
        structlog.reset_defaults()

    def test_configure_json_format(self):
        """Configures JSON format logging."""
        configure_logging(level="INFO", log_format="json")

        logger = get_logger("test")
        assert logger is not None

    def test_configure_text_format(self):
        """Configures text format logging."""
        configure_logging(level="DEBUG", log_format="text")

        logger = get_logger("test")
        assert logger is not None

    def test_configure_log_level(self):
        """Configures log level."""
        configure_logging(level="WARNING", log_format="json")

        root_logger = logging.getLogger()
        assert root_logger.level == logging.WARNING

    def test_configure_invalid_log_level_raises(self):
        """Invalid log level raises ValueError."""
        with pytest.raises(ValueError, match="Invalid log level"):
            configure_logging(level="INVALID", log_format="json")

    def test_reconfigure_replaces_handler(self):
        """Calling configure_logging twice installs a single handler."""
        configure_logging(level="INFO", log_format="json")
        configure_logging(level="INFO", log_format="json")

        installed = [
            h for h in logging.getLogger().handlers if getattr(h, "_spigot_handler", False)
        ]
        assert len(installed) == 1


def test_logging_integration(capfd):
    """Integration test for structured logging."""
    structlog.reset_defaults()
    configure_logging(level="INFO", log_format="json")

    set_request_id("req-integration")
    logger = get_logger("integration")
    logger.info("test event", recipient="0xabc", private_key="0xsecret")
    clear_request_id()

    captured = capfd.readouterr()
    output = captured.out + captured.err
    assert "req-integration" in output
    assert "test event" in output
    assert "0xabc" in output
    assert "0xsecret" not in output


def test_stdlib_records_carry_extra_fields(capfd):
    """Plain logging records are rendered as JSON with their extra fields."""
    structlog.reset_defaults()
    configure_logging(level="INFO", log_format="json")

    set_request_id("req-stdlib")
    logging.getLogger("spigot.test").info("Transaction submitted", extra={"sequence": 7})
    clear_request_id()

    lines = [line for line in capfd.readouterr().out.splitlines() if "Transaction submitted" in line]
    assert lines
    record = json.loads(lines[-1])
    assert record["event"] == "Transaction submitted"
    assert record["sequence"] == 7
    assert record["request_id"] == "req-stdlib"
    assert record["level"] == "info"
