"""Simple import test to verify logging module can be imported."""

import pytest


def test_import_logging_module():
    """Test that logging module can be imported without errors."""
    try:
        from schemasmith.logging import (  # noqa: F401
            AuditLogger,
            PerformanceLogger,
            StructuredLogger,
            configure_logging,
            get_logger,
        )
    except ImportError as e:
        pytest.fail(f"Failed to import logging module: {e}")


def test_create_simple_logger():
    """Test creating a simple logger."""
    from schemasmith.logging import get_logger

    logger = get_logger("test.simple")
    assert logger is not None
    assert logger.name == "test.simple"


def test_basic_logging():
    """Test basic logging functionality."""
    from schemasmith.logging import get_logger

    logger = get_logger("test.basic")

    # These should not raise any exceptions
    logger.info("Test info message", datasource_id="main")
    logger.debug("Test debug message")
    logger.warning("Test warning message")
    logger.error("Test error message", error="boom")
