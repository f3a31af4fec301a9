"""Tests for structured logging module."""

import asyncio
from unittest.mock import Mock, patch

import pytest

from schemasmith.core.exceptions import ArgumentError
from schemasmith.logging.structured import LogContext, StructuredLogger


class TestLogContext:
    """Test cases for LogContext class."""

    def test_context_initialization(self):
        """Test LogContext initializes correctly."""
        context = LogContext()
        assert context.get_all() == {}

    def test_set_and_get_context_value(self):
        """Test setting and getting context values."""
        context = LogContext()

        context.set("datasource_id", "main")
        context.set("attempt", 2)

        assert context.get("datasource_id") == "main"
        assert context.get("attempt") == 2
        assert context.get("nonexistent") is None
        assert context.get("nonexistent", "default") == "default"

    def test_update_and_clear(self):
        """Test updating and clearing context."""
        context = LogContext()
        context.set("existing", "value")

        context.update({"existing": "updated_value", "table_name": "orders"})
        assert context.get_all() == {"existing": "updated_value", "table_name": "orders"}

        context.clear()
        assert context.get_all() == {}

    def test_get_all_returns_copy(self):
        context = LogContext()
        context.set("a", 1)

        context.get_all()["a"] = 2

        assert context.get("a") == 1

    async def test_task_isolation(self):
        """Each asyncio task writes to its own copy of the context."""
        context = LogContext()
        context.set("parent", True)

        async def handle(request_id):
            context.set("request_id", request_id)
            await asyncio.sleep(0.01)
            return context.get_all()

        results = await asyncio.gather(*(handle(i) for i in range(3)))

        assert [r["request_id"] for r in results] == [0, 1, 2]
        assert all(r["parent"] for r in results)
        assert context.get_all() == {"parent": True}

    def test_scope_restores_previous_values(self):
        context = LogContext()
        context.set("datasource_id", "main")

        with context.scope(datasource_id="reporting", table_name="orders"):
            assert context.get("datasource_id") == "reporting"

        assert context.get_all() == {"datasource_id": "main"}


class TestStructuredLogger:
    """Test cases for StructuredLogger class."""

    def test_logger_initialization(self):
        """Test StructuredLogger initializes correctly."""
        logger = StructuredLogger("test.logger", level="DEBUG")

        assert logger.name == "test.logger"
        assert logger.get_level() == "DEBUG"
        assert logger.get_context() == {}

    def test_set_and_get_level(self):
        """Test setting and getting log levels."""
        logger = StructuredLogger("test.levels")

        logger.set_level("error")
        assert logger.get_level() == "ERROR"

    def test_invalid_log_level_raises_exception(self):
        """Test that invalid log level raises exception."""
        logger = StructuredLogger("test.logger")

        with pytest.raises(ArgumentError) as exc_info:
            logger.set_level("INVALID_LEVEL")

        assert exc_info.value.code == "UNKNOWN_LOG_LEVEL"

    @patch("structlog.get_logger")
    def test_logging_methods_call_structlog(self, mock_get_logger):
        """Test that logging methods call structlog correctly."""
        mock_structlog_logger = Mock()
        mock_get_logger.return_value = mock_structlog_logger

        logger = StructuredLogger("test.logger")

        logger.debug("Debug message", extra_field="debug_value")
        logger.info("Info message", extra_field="info_value")
        logger.warning("Warning message")
        logger.error("Error message")
        logger.critical("Critical message")

        mock_structlog_logger.debug.assert_called_once()
        mock_structlog_logger.info.assert_called_once()
        mock_structlog_logger.warning.assert_called_once()
        mock_structlog_logger.error.assert_called_once()
        mock_structlog_logger.critical.assert_called_once()

        args, kwargs = mock_structlog_logger.info.call_args
        assert args == ("Info message",)
        assert kwargs["extra_field"] == "info_value"
        assert kwargs["logger"] == "test.logger"
        assert "correlation_id" in kwargs

    @patch("structlog.get_logger")
    def test_exception_attaches_traceback(self, mock_get_logger):
        mock_structlog_logger = Mock()
        mock_get_logger.return_value = mock_structlog_logger
        logger = StructuredLogger("test.logger")

        try:
            raise ValueError("boom")
        except ValueError:
            logger.exception("Failed")

        _, kwargs = mock_structlog_logger.error.call_args
        assert kwargs["exc_info"] is True

    def test_context_manager(self):
        """Test logger context manager functionality."""
        logger = StructuredLogger("test.logger")
        logger._context.set("initial", "value")

        with logger.context(datasource_id="main", operation="tables.list"):
            context = logger.get_context()
            assert context["initial"] == "value"
            assert context["datasource_id"] == "main"
            assert context["operation"] == "tables.list"

        assert logger.get_context() == {"initial": "value"}

    def test_context_restored_after_exception(self):
        logger = StructuredLogger("test.logger")

        with pytest.raises(RuntimeError):
            with logger.context(table_name="orders"):
                raise RuntimeError("inside")

        assert "table_name" not in logger.get_context()

    def test_bind_creates_new_logger(self):
        """Test binding context creates a new logger."""
        logger = StructuredLogger("test.logger")
        logger._context.set("original", "value")

        bound = logger.bind(datasource_id="main")

        assert bound is not logger
        assert bound.name == logger.name
        assert bound.get_context()["original"] == "value"
        assert bound.get_context()["datasource_id"] == "main"
        assert "datasource_id" not in logger.get_context()
        assert bound._prepare_event_dict()["datasource_id"] == "main"

    def test_correlation_id_management(self):
        logger = StructuredLogger("test.logger")

        logger.set_correlation_id("req-1")

        assert logger.get_correlation_id() == "req-1"

    def test_correlation_disabled(self):
        logger = StructuredLogger("test.logger", enable_correlation=False)

        logger.set_correlation_id("req-1")

        assert logger.get_correlation_id() is None
        assert "correlation_id" not in logger._prepare_event_dict(a=1)

    def test_correlation_id_generated_once(self):
        logger = StructuredLogger("test.logger")

        first = logger._prepare_event_dict()["correlation_id"]
        second = logger._prepare_event_dict()["correlation_id"]

        assert first == second

    @patch("structlog.get_logger")
    def test_context_is_shared_between_loggers(self, mock_get_logger):
        """Values set through one logger appear on events of another."""
        mock_structlog_logger = Mock()
        mock_get_logger.return_value = mock_structlog_logger
        service_logger = StructuredLogger("services.tables")
        connection_logger = StructuredLogger("database.sqlite")

        with service_logger.context(datasource_id="main", correlation_id="req-9"):
            connection_logger.debug("Executing statement")

        _, kwargs = mock_structlog_logger.debug.call_args
        assert kwargs["logger"] == "database.sqlite"
        assert kwargs["datasource_id"] == "main"
        assert kwargs["correlation_id"] == "req-9"

    def test_repr(self):
        logger = StructuredLogger("test.repr", level="WARNING")

        assert repr(logger) == "StructuredLogger(name='test.repr', level='WARNING', correlation=True)"
