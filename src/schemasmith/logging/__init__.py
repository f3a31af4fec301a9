"""SchemaSmith structured logging framework.

This package provides structured logging, operation timing and the audit
trail written for every service call.

Example:
    >>> from schemasmith.logging import get_logger
    >>> logger = get_logger(__name__)
    >>> logger.info("Operation started", operation="tables.create")
"""

from .audit import AuditEvent, AuditEventType, AuditLogger, AuditSeverity
from .factory import (
    LoggerFactory,
    configure_logging,
    get_audit_logger,
    get_logger,
    get_performance_logger,
    shutdown_logging,
)
from .formatters import JSONFormatter, TextFormatter, get_formatter
from .performance import PerformanceLogger, TimingContext
from .structured import LogContext, StructuredLogger

__all__ = [
    # Factory and configuration
    "LoggerFactory",
    "configure_logging",
    "get_logger",
    "get_performance_logger",
    "get_audit_logger",
    "shutdown_logging",

    # Formatters
    "JSONFormatter",
    "TextFormatter",
    "get_formatter",

    # Performance logging
    "PerformanceLogger",
    "TimingContext",

    # Audit logging
    "AuditLogger",
    "AuditEvent",
    "AuditEventType",
    "AuditSeverity",

    # Structured logging
    "StructuredLogger",
    "LogContext",
]
