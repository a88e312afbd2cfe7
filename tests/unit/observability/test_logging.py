"""Tests for structured logging and the audit backend."""

import json
from io import StringIO

import pytest
import structlog

from tests.factories import RecordingHook
from txaudit.observability.logging import (
    HookDispatcher,
    SensitiveFieldRedactor,
    build_backend_logger,
    get_logger,
    setup_logging,
)


class TestSetupLogging:
    """Tests for setup_logging."""

    def test_json_format_writes_to_stream(self) -> None:
        stream = StringIO()
        setup_logging(level="INFO", format="json", stream=stream)

        structlog.get_logger("test").info("diagnostic_event", key="value")

        parsed = json.loads(stream.getvalue().strip())
        assert parsed["event"] == "diagnostic_event"
        assert parsed["key"] == "value"
        assert parsed["level"] == "info"
        structlog.reset_defaults()

    def test_console_format(self) -> None:
        setup_logging(level="DEBUG", format="console", redact_pii=False, stream=StringIO())
        get_logger("test").debug("test_message")
        structlog.reset_defaults()

    def test_get_logger_returns_logger(self) -> None:
        assert get_logger("txaudit.tests") is not None


class TestSensitiveFieldRedactor:
    """Tests for SensitiveFieldRedactor."""

    @pytest.fixture
    def redactor(self) -> SensitiveFieldRedactor:
        return SensitiveFieldRedactor()

    def test_redacts_sensitive_keys_case_insensitively(
        self, redactor: SensitiveFieldRedactor
    ) -> None:
        event_dict = {"Authorization": "Bearer abc", "Cookie": "sid=1", "path": "/"}
        result = redactor(None, None, event_dict)  # type: ignore
        assert result["Authorization"] == "[REDACTED]"
        assert result["Cookie"] == "[REDACTED]"
        assert result["path"] == "/"

    def test_redacts_nested_segment_headers(self, redactor: SensitiveFieldRedactor) -> None:
        event_dict = {
            "segment.data": {
                "request.headers": {"authorization": "Bearer abc", "accept": "*/*"},
                "params": {"password": "hunter2"},
            }
        }
        result = redactor(None, None, event_dict)  # type: ignore
        data = result["segment.data"]
        assert data["request.headers"]["authorization"] == "[REDACTED]"
        assert data["request.headers"]["accept"] == "*/*"
        assert data["params"]["password"] == "[REDACTED]"

    def test_redacts_patterns_in_strings(self, redactor: SensitiveFieldRedactor) -> None:
        event_dict = {"request.body": '{"email": "jane@example.com", "ssn": "123-45-6789"}'}
        result = redactor(None, None, event_dict)  # type: ignore
        assert "jane@example.com" not in result["request.body"]
        assert "[EMAIL]" in result["request.body"]
        assert "[SSN]" in result["request.body"]

    def test_handles_lists(self, redactor: SensitiveFieldRedactor) -> None:
        event_dict = {"transaction.segments": [{"type": "http", "data": {"token": "t"}}]}
        result = redactor(None, None, event_dict)  # type: ignore
        assert result["transaction.segments"][0]["data"]["token"] == "[REDACTED]"

    def test_custom_keys(self) -> None:
        redactor = SensitiveFieldRedactor(keys={"Tenant"})
        result = redactor(None, None, {"tenant": "acme", "password": "p"})  # type: ignore
        assert result == {"tenant": "[REDACTED]", "password": "p"}

    def test_preserves_non_sensitive_data(self, redactor: SensitiveFieldRedactor) -> None:
        event_dict = {"event": "segment", "elapsed_ms": 15, "audit": False, "rows": [1, 2]}
        result = redactor(None, None, event_dict)  # type: ignore
        assert result == event_dict


class TestHookDispatcher:
    """Tests for HookDispatcher."""

    def test_calls_every_hook_with_copy(self) -> None:
        first, second = RecordingHook(), RecordingHook()
        dispatcher = HookDispatcher([first])
        dispatcher.add(second)

        event_dict = {"event": "segment"}
        result = dispatcher(None, "info", event_dict)  # type: ignore
        first.entries[0][1]["event"] = "changed"

        assert result is event_dict
        assert event_dict["event"] == "segment"
        assert second.entries == [("info", {"event": "segment"})]


class TestBuildBackendLogger:
    """Tests for build_backend_logger."""

    def test_independent_of_global_configuration(self) -> None:
        output = StringIO()
        backend = build_backend_logger(
            logger_factory=lambda: structlog.PrintLogger(output)
        )

        backend.info("segment", **{"segment.type": "sql"})

        parsed = json.loads(output.getvalue())
        assert parsed["segment.type"] == "sql"
        assert parsed["level"] == "info"
        assert "timestamp" in parsed

    def test_timestamp_not_redacted(self) -> None:
        recorder = RecordingHook()
        backend = build_backend_logger(
            hooks=HookDispatcher([recorder]),
            logger_factory=lambda: structlog.PrintLogger(StringIO()),
        )

        backend.info("segment")

        [(_, fields)] = recorder.entries
        assert "[" not in fields["timestamp"]

    def test_redaction_can_be_disabled(self) -> None:
        output = StringIO()
        backend = build_backend_logger(
            redact_pii=False,
            logger_factory=lambda: structlog.PrintLogger(output),
        )

        backend.info("segment", token="abc")

        assert json.loads(output.getvalue())["token"] == "abc"

    def test_custom_renderer(self) -> None:
        output = StringIO()
        backend = build_backend_logger(
            log_format=structlog.processors.KeyValueRenderer(key_order=["event"]),
            logger_factory=lambda: structlog.PrintLogger(output),
        )

        backend.error("transaction", audit=True)

        line = output.getvalue()
        assert line.startswith("event='transaction'")
        assert "audit=True" in line
