"""Unit tests for DevForge logging and observability.

This module tests the logging setup, performance decorator, operation
context manager and observability hooks.
"""

import json
import logging
from unittest.mock import MagicMock

import pytest

from devforge.devforge_logging import (
    JsonFormatter,
    ObservabilityHooks,
    log_artifact_generated,
    log_checkpoint_created,
    log_error_with_context,
    log_operation,
    log_performance,
    log_phase_transition,
    observability_hooks,
    setup_logging,
)


class TestJsonFormatter:
    """Test cases for JsonFormatter."""

    def test_basic_record(self):
        record = logging.getLogger("test").makeRecord(
            "test", logging.INFO, "test.py", 10, "Hello %s", ("world",), None, func="fn"
        )

        data = json.loads(JsonFormatter().format(record))

        assert data["message"] == "Hello world"
        assert data["level"] == "INFO"
        assert data["function"] == "fn"

    def test_extra_fields_merged(self):
        record = logging.getLogger("test").makeRecord(
            "test", logging.INFO, "test.py", 10, "msg", (), None, extra={"extra_fields": {"operation": "x"}}
        )

        assert json.loads(JsonFormatter().format(record))["operation"] == "x"


@pytest.fixture
def restore_devforge_logger():
    """setup_logging reconfigures the package logger; undo it for later tests."""
    logger = logging.getLogger("devforge")
    yield logger
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = True
    logger.setLevel(logging.NOTSET)


@pytest.mark.usefixtures("restore_devforge_logger")
class TestSetupLogging:
    """Test cases for setup_logging."""

    def test_console_and_file_handlers(self, tmp_path):
        log_file = tmp_path / "logs" / "devforge.jsonl"

        setup_logging("DEBUG", log_file)
        logger = logging.getLogger("devforge")

        assert len(logger.handlers) == 2
        assert not logger.propagate
        assert any(isinstance(h.formatter, JsonFormatter) for h in logger.handlers)
        for handler in logger.handlers:
            handler.flush()
        assert log_file.exists()

        setup_logging()
        assert len(logging.getLogger("devforge").handlers) == 1


class TestLogPerformance:
    """Test cases for the log_performance decorator."""

    def test_returns_result(self):
        @log_performance("add")
        def add(a, b):
            return a + b

        assert add(2, 3) == 5
        assert add.__name__ == "add"

    def test_reraises(self, caplog):
        @log_performance("explode")
        def explode():
            raise RuntimeError("boom")

        with caplog.at_level(logging.WARNING, logger="devforge.performance"):
            with pytest.raises(RuntimeError):
                explode()

        assert any("Failed operation: explode" in r.getMessage() for r in caplog.records)


class TestLogOperation:
    """Test cases for the log_operation context manager."""

    def test_success(self):
        with log_operation("noop", project_name="demo"):
            pass

    def test_failure_reraised(self):
        with pytest.raises(ValueError):
            with log_operation("fails"):
                raise ValueError("bad")


class TestObservabilityHooks:
    """Test cases for ObservabilityHooks."""

    def test_register_and_trigger(self):
        hooks = ObservabilityHooks()
        callback = MagicMock()
        hooks.register_hook("checkpoint_created", callback)

        hooks.log_workflow_event("checkpoint_created", project_name="demo", checkpoint_id="CP-0001")

        callback.assert_called_once()
        kwargs = callback.call_args.kwargs
        assert kwargs["project_name"] == "demo"
        assert kwargs["checkpoint_id"] == "CP-0001"
        assert "event_type" not in kwargs

    def test_failing_hook_does_not_stop_others(self):
        hooks = ObservabilityHooks()
        second = MagicMock()
        hooks.register_hook("evt", MagicMock(side_effect=RuntimeError("hook broke")))
        hooks.register_hook("evt", second)

        hooks.trigger_hooks("evt", value=1)

        second.assert_called_once_with(value=1)

    def test_clear(self):
        hooks = ObservabilityHooks()
        hooks.register_hook("evt", MagicMock())
        hooks.clear()
        assert hooks.hooks == {}


class TestEmitters:
    """Test cases for the convenience event emitters."""

    def test_emitters_reach_global_hooks(self):
        events = []
        for event in ("phase_transition", "checkpoint_created", "artifact_generated"):
            observability_hooks.register_hook(event, lambda event=event, **data: events.append((event, data)))

        log_phase_transition("demo", "approve_architecture", "decision_matrix", "backend_dev")
        log_checkpoint_created("demo", "CP-0001", automatic=True)
        log_artifact_generated("demo", "postman", ["a.json"], request_count=3)

        assert [e for e, _ in events] == ["phase_transition", "checkpoint_created", "artifact_generated"]
        assert events[0][1]["to_phase"] == "backend_dev"
        assert events[1][1]["automatic"] is True
        assert events[2][1]["request_count"] == 3

    def test_log_error_with_context(self, caplog):
        with caplog.at_level(logging.ERROR, logger="devforge.errors"):
            log_error_with_context(ValueError("bad"), {"operation": "write_text"}, path="x")

        assert any("Error in write_text: bad" in r.getMessage() for r in caplog.records)
