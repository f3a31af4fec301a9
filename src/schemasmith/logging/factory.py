"""Logger factory and configuration for SchemaSmith.

This module provides centralized logger creation and configuration of
both the stdlib logging handlers and the structlog processor chain.

Classes:
    LoggerFactory: Logger creation and configuration manager
    LoggerConfig: Resolved logging settings

Functions:
    configure_logging: Configure logging system globally
    get_logger: Get a structured logger from the global factory
    get_performance_logger: Get a performance logger from the global factory
    get_audit_logger: Get an audit logger from the global factory

Example:
    >>> from schemasmith.logging import configure_logging, get_logger
    >>> configure_logging(level="INFO", format="json")
    >>> logger = get_logger("schemasmith.services")
    >>> logger.info("Service started", datasources=3)
"""

import logging
import logging.handlers
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import structlog

from .audit import AuditLogger
from .formatters import get_formatter
from .performance import PerformanceLogger
from .structured import StructuredLogger
from ..config.models import LoggingConfig
from ..core.exceptions import ArgumentError


@dataclass
class LoggerConfig:
    """Resolved logging settings.

    Attributes:
        level: Log level
        format: Log format (json, text)
        console_output: Enable console output
        file_path: Log file path, file output is enabled when set
        max_file_size: Maximum file size before rotation
        backup_count: Number of backup files to keep
        correlation_ids: Enable correlation ID tracking
        slow_operation_ms: Slow operation threshold for performance loggers
    """
    level: str = "INFO"
    format: str = "json"
    console_output: bool = True
    file_path: Optional[str] = None
    max_file_size: int = 10485760  # 10MB
    backup_count: int = 5
    correlation_ids: bool = True
    slow_operation_ms: Optional[float] = 1000.0


class LoggerFactory:
    """Factory for creating and configuring SchemaSmith loggers.

    Example:
        >>> factory = LoggerFactory()
        >>> factory.configure_from_config(system_config.logging)
        >>> logger = factory.get_logger("connector.postgresql")
    """

    def __init__(self, config: Optional[LoggerConfig] = None) -> None:
        self.config = config or LoggerConfig()
        self.initialized = False
        self._loggers: Dict[str, StructuredLogger] = {}
        self._performance_loggers: Dict[str, PerformanceLogger] = {}
        self._audit_loggers: Dict[str, AuditLogger] = {}

    def configure_from_config(self, logging_config: LoggingConfig) -> None:
        """Configure factory from a LoggingConfig instance.

        Args:
            logging_config: SchemaSmith logging configuration
        """
        self.config = LoggerConfig(
            level=logging_config.level,
            format=logging_config.format,
            console_output=logging_config.console_output,
            file_path=str(logging_config.file_path) if logging_config.file_path else None,
            max_file_size=logging_config.max_file_size,
            backup_count=logging_config.backup_count,
            correlation_ids=logging_config.correlation_ids,
            slow_operation_ms=logging_config.slow_operation_ms,
        )
        for perf_logger in self._performance_loggers.values():
            perf_logger.slow_threshold_ms = self.config.slow_operation_ms
        self.initialized = False
        self._configure_logging_system()

    def configure_from_dict(self, config_dict: Dict[str, Any]) -> None:
        """Configure factory from dictionary, ignoring unknown keys."""
        for key, value in config_dict.items():
            if hasattr(self.config, key):
                setattr(self.config, key, value)

        self.initialized = False
        self._configure_logging_system()

    def _configure_logging_system(self) -> None:
        if self.initialized:
            return

        self._configure_stdlib_logging()
        self._configure_structlog()
        self.initialized = True

    def _configure_stdlib_logging(self) -> None:
        level = getattr(logging, self.config.level.upper(), logging.INFO)
        root_logger = logging.getLogger()
        root_logger.setLevel(level)
        root_logger.handlers.clear()

        if self.config.console_output:
            console_handler = logging.StreamHandler(sys.stderr)
            console_handler.setLevel(level)
            console_handler.setFormatter(get_formatter(self.config.format))
            root_logger.addHandler(console_handler)

        if self.config.file_path:
            file_path = Path(self.config.file_path)
            file_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.handlers.RotatingFileHandler(
                filename=str(file_path),
                maxBytes=self.config.max_file_size,
                backupCount=self.config.backup_count,
                encoding="utf-8",
            )
            file_handler.setLevel(level)
            file_handler.setFormatter(get_formatter(self.config.format))
            root_logger.addHandler(file_handler)

    def _configure_structlog(self) -> None:
        processors = [
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.UnicodeDecoder(),
        ]

        if self.config.format.lower() == "json":
            processors.append(structlog.processors.JSONRenderer())
        else:
            processors.append(structlog.dev.ConsoleRenderer(colors=False))

        structlog.configure(
            processors=processors,
            wrapper_class=structlog.stdlib.BoundLogger,
            logger_factory=structlog.stdlib.LoggerFactory(),
            context_class=dict,
            cache_logger_on_first_use=True,
        )

    def get_logger(
        self,
        name: str,
        *,
        level: Optional[str] = None,
        enable_correlation: Optional[bool] = None,
    ) -> StructuredLogger:
        """Get or create a structured logger.

        Args:
            name: Logger name
            level: Override default log level
            enable_correlation: Override correlation ID setting

        Returns:
            StructuredLogger instance
        """
        cache_key = f"{name}_{level}_{enable_correlation}"
        if cache_key in self._loggers:
            return self._loggers[cache_key]

        logger = StructuredLogger(
            name=name,
            level=level or self.config.level,
            enable_correlation=(
                enable_correlation if enable_correlation is not None else self.config.correlation_ids
            ),
        )
        self._loggers[cache_key] = logger
        return logger

    def get_performance_logger(self, name: str, *, auto_log: bool = True) -> PerformanceLogger:
        """Get or create a performance logger."""
        if name not in self._performance_loggers:
            self._performance_loggers[name] = PerformanceLogger(
                name=name,
                auto_log=auto_log,
                slow_threshold_ms=self.config.slow_operation_ms,
                logger=self.get_logger(f"perf.{name}"),
            )
        return self._performance_loggers[name]

    def get_audit_logger(self, name: str, *, retain_in_memory: bool = True) -> AuditLogger:
        """Get or create an audit logger."""
        if name not in self._audit_loggers:
            self._audit_loggers[name] = AuditLogger(
                name=name,
                retain_in_memory=retain_in_memory,
                logger=self.get_logger(f"audit.{name}"),
            )
        return self._audit_loggers[name]

    def set_level(self, level: str) -> None:
        """Set log level for the root logger and all cached loggers.

        Raises:
            ArgumentError: If the level name is unknown
        """
        if not isinstance(getattr(logging, level.upper(), None), int):
            raise ArgumentError(f"Invalid log level: {level}")

        self.config.level = level
        for logger in self._loggers.values():
            logger.set_level(level)
        logging.getLogger().setLevel(getattr(logging, level.upper()))

    def shutdown(self) -> None:
        """Shutdown logging system and clean up resources."""
        self._loggers.clear()
        self._performance_loggers.clear()
        self._audit_loggers.clear()
        logging.shutdown()
        self.initialized = False

    def __repr__(self) -> str:
        return (
            f"LoggerFactory("
            f"level={self.config.level!r}, "
            f"format={self.config.format!r}, "
            f"initialized={self.initialized})"
        )


# Global logger factory instance
_global_factory = LoggerFactory()


def configure_logging(
    *,
    level: str = "INFO",
    format: str = "json",
    console_output: bool = True,
    file_path: Optional[str] = None,
    **kwargs: Any,
) -> None:
    """Configure SchemaSmith logging globally.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        format: Log format (json, text)
        console_output: Enable console output
        file_path: Log file path, enables rotating file output when set
        **kwargs: Additional LoggerConfig fields
    """
    _global_factory.configure_from_dict({
        "level": level,
        "format": format,
        "console_output": console_output,
        "file_path": file_path,
        **kwargs,
    })


def get_logger(
    name: str,
    *,
    level: Optional[str] = None,
    enable_correlation: Optional[bool] = None,
) -> StructuredLogger:
    """Get or create a structured logger using the global factory.

    Example:
        >>> logger = get_logger("repositories.file")
        >>> logger.info("Registry loaded", datasources=4)
    """
    return _global_factory.get_logger(name, level=level, enable_correlation=enable_correlation)


def get_performance_logger(name: str, *, auto_log: bool = True) -> PerformanceLogger:
    """Get or create a performance logger using the global factory."""
    return _global_factory.get_performance_logger(name, auto_log=auto_log)


def get_audit_logger(name: str, *, retain_in_memory: bool = True) -> AuditLogger:
    """Get or create an audit logger using the global factory."""
    return _global_factory.get_audit_logger(name, retain_in_memory=retain_in_memory)


def get_factory() -> LoggerFactory:
    """Get the global logger factory instance."""
    return _global_factory


def shutdown_logging() -> None:
    """Shutdown the global logging system."""
    _global_factory.shutdown()
