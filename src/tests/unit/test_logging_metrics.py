"""Unit tests for logging and metrics utilities."""

from pathlib import Path

import structlog
from prometheus_client import REGISTRY

from taskboard_service.config import Settings
from taskboard_service.utils.logging import (
    bind_request_context,
    clear_request_context,
    get_logger,
    sanitize_for_logging,
    setup_logging,
)
from taskboard_service.utils.metrics import Metrics, get_metrics


class TestGetLogger:
    """Tests for get_logger function."""

    def test_returns_logger(self) -> None:
        """Test get_logger returns a logger."""
        logger = get_logger("test_module")

        assert hasattr(logger, "info")
        assert hasattr(logger, "error")

    def test_multiple_calls_same_logger(self) -> None:
        """Test multiple calls return cached logger."""
        assert get_logger("cached_test_module") is get_logger("cached_test_module")


class TestSetupLogging:
    """Tests for setup_logging function."""

    def test_setup_logging_json_format(self) -> None:
        """Test setting up JSON format logging."""
        setup_logging(Settings(log_level="INFO", log_format="json"))

        get_logger("test_json").info("test_message", count=1)

    def test_setup_logging_console_format(self) -> None:
        setup_logging(Settings(log_level="DEBUG", log_format="console"), use_stderr=True)

        get_logger("test_console").debug("test_message")

    def test_setup_logging_with_file(self, tmp_path: Path) -> None:
        """Test a log file receives JSON lines."""
        log_file = tmp_path / "taskboard.log"
        setup_logging(Settings(log_level="INFO", log_format="console", log_file=str(log_file)))

        get_logger("test_file").info("file_event", password="hunter2hunter2")

        content = log_file.read_text()
        assert "file_event" in content
        assert "hunter2hunter2" not in content


class TestRequestContext:
    """Tests for request-scoped log context."""

    def test_bind_and_clear(self) -> None:
        bind_request_context(request_id="abc123")
        assert structlog.contextvars.get_contextvars() == {"request_id": "abc123"}

        clear_request_context()
        assert structlog.contextvars.get_contextvars() == {}

    def test_bind_replaces_previous_request(self) -> None:
        """Test a new request does not inherit the last one's values."""
        bind_request_context(request_id="first", path="/tasks")
        bind_request_context(request_id="second")

        assert structlog.contextvars.get_contextvars() == {"request_id": "second"}
        clear_request_context()


class TestSanitizeForLogging:
    """Tests for sanitize_for_logging processor."""

    def test_sanitizes_password(self) -> None:
        """Test password is sanitized."""
        result = sanitize_for_logging(None, "info", {"password": "my-secret-password", "event": "test"})

        assert "my-secret-password" not in str(result["password"])

    def test_sanitizes_token_and_authorization(self) -> None:
        event_dict = {
            "token": "eyJhbGciOiJIUzI1NiJ9.payload.sig",
            "authorization": "Bearer abc",
            "event": "test",
        }
        result = sanitize_for_logging(None, "info", event_dict)

        assert result["token"] != event_dict["token"]
        assert result["authorization"] != "Bearer abc"

    def test_sanitizes_nested(self) -> None:
        """Test nested sensitive data is sanitized."""
        result = sanitize_for_logging(
            None,
            "info",
            {"user": {"username": "alice", "password_hash": "$2b$04$abcdefghijkl"}, "event": "test"},
        )

        assert result["user"]["username"] == "alice"
        assert "abcdefghijkl" not in str(result["user"]["password_hash"])

    def test_short_secret_fully_redacted(self) -> None:
        result = sanitize_for_logging(None, "info", {"secret": "abc", "event": "test"})

        assert result["secret"] == "***REDACTED***"

    def test_preserves_safe_data(self) -> None:
        """Test safe data is preserved."""
        result = sanitize_for_logging(None, "info", {"name": "test", "count": 42, "event": "test"})

        assert result["name"] == "test"
        assert result["count"] == 42


class TestMetrics:
    """Tests for Metrics class."""

    def test_get_metrics_cached(self) -> None:
        """Test get_metrics returns cached instance."""
        metrics = get_metrics()

        assert isinstance(metrics, Metrics)
        assert metrics is get_metrics()

    def test_record_http_request(self) -> None:
        labels = {"method": "GET", "route": "/metrics-test", "status": "200"}
        before = REGISTRY.get_sample_value("taskboard_http_requests_total", labels) or 0.0

        get_metrics().record_http_request(method="GET", route="/metrics-test", status=200, duration=0.01)

        assert REGISTRY.get_sample_value("taskboard_http_requests_total", labels) == before + 1

    def test_record_guard_decision(self) -> None:
        labels = {"action": "metrics_test", "outcome": "denied"}
        before = REGISTRY.get_sample_value("taskboard_guard_decisions_total", labels) or 0.0

        get_metrics().record_guard_decision("metrics_test", allowed=False)

        assert REGISTRY.get_sample_value("taskboard_guard_decisions_total", labels) == before + 1

    def test_record_transition(self) -> None:
        labels = {"from_status": "ToDo", "to_status": "Done"}
        before = REGISTRY.get_sample_value("taskboard_workflow_transitions_total", labels) or 0.0

        get_metrics().record_transition("ToDo", "Done")

        assert REGISTRY.get_sample_value("taskboard_workflow_transitions_total", labels) == before + 1

    def test_record_store_operation(self) -> None:
        labels = {"store": "test", "operation": "insert", "status": "success"}
        before = REGISTRY.get_sample_value("taskboard_store_operations_total", labels) or 0.0

        get_metrics().record_store_operation(store="test", operation="insert", status="success", duration=0.001)

        assert REGISTRY.get_sample_value("taskboard_store_operations_total", labels) == before + 1
