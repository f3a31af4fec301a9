"""Logging-specific test configuration and fixtures."""

import logging
import tempfile
from pathlib import Path
from unittest.mock import Mock

import pytest
import structlog

from schemasmith.config.models import LoggingConfig
from schemasmith.logging.factory import LoggerFactory


@pytest.fixture
def temp_log_file():
    """Create temporary log file for testing."""
    with tempfile.NamedTemporaryFile(suffix=".log", delete=False) as temp_file:
        temp_path = Path(temp_file.name)

    yield temp_path

    # Cleanup
    temp_path.unlink(missing_ok=True)


@pytest.fixture
def sample_logging_config(temp_log_file):
    """Create sample logging configuration."""
    return LoggingConfig(
        level="INFO",
        format="json",
        file_path=temp_log_file,
        console_output=False,
        max_file_size=1048576,  # 1MB
        backup_count=3,
    )


@pytest.fixture
def logger_factory():
    """Create clean logger factory for testing."""
    factory = LoggerFactory()
    yield factory
    # Cleanup after test
    factory.shutdown()


@pytest.fixture
def mock_structured_logger():
    """Mock StructuredLogger used to observe what other loggers emit."""
    logger = Mock()
    logger.name = "mock"
    return logger


@pytest.fixture(autouse=True)
def cleanup_global_logging():
    """Restore global logging state after each test."""
    saved_structlog = structlog.get_config()
    yield

    from schemasmith.logging.factory import _global_factory
    _global_factory.shutdown()

    # Factories reconfigure structlog and the root logger
    structlog.configure(**saved_structlog)
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(logging.WARNING)
