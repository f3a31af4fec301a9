"""Structured logging implementation for SchemaSmith.

Loggers wrap structlog and merge a task-local context into every event.
The context lives in a ``contextvars.ContextVar`` shared by all loggers,
so keys a service sets for one call (datasource, operation, correlation
id) also appear on the events logged by the connection and dialect code
running inside that call. Each asyncio task sees its own copy.

Classes:
    StructuredLogger: Main structured logging interface
    LogContext: Access to the shared task-local context

Example:
    >>> logger = StructuredLogger("services.tables")
    >>> with logger.context(datasource_id="main", correlation_id="req-1"):
    ...     logger.info("Creating table", table_name="orders")
"""

import logging
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, ContextManager, Dict, Generator, Optional

import structlog

from ..core.exceptions import ArgumentError

_log_context: ContextVar[Optional[Dict[str, Any]]] = ContextVar("schemasmith_log_context", default=None)


class LogContext:
    """Task-local key/value context merged into log events.

    Writes replace the stored dict instead of mutating it, so a task
    created while a value is set keeps its snapshot and never leaks
    changes back into its parent.

    Example:
        >>> context = LogContext()
        >>> context.set("request_id", "req_123")
        >>> context.get_all()
        {'request_id': 'req_123'}
    """

    @staticmethod
    def _values() -> Dict[str, Any]:
        return _log_context.get() or {}

    def set(self, key: str, value: Any) -> None:
        _log_context.set({**self._values(), key: value})

    def get(self, key: str, default: Any = None) -> Any:
        return self._values().get(key, default)

    def get_all(self) -> Dict[str, Any]:
        """Return a copy of all context values."""
        return dict(self._values())

    def update(self, context: Dict[str, Any]) -> None:
        _log_context.set({**self._values(), **context})

    def clear(self) -> None:
        _log_context.set({})

    @contextmanager
    def scope(self, **values: Any) -> Generator[None, None, None]:
        """Add values for the duration of a block, then restore the previous context."""
        token = _log_context.set({**self._values(), **values})
        try:
            yield
        finally:
            _log_context.reset(token)


class StructuredLogger:
    """Structured logger with shared context and correlation ids.

    Attributes:
        name: Logger name

    Example:
        >>> logger = StructuredLogger("connector.sqlite")
        >>> logger.info("Connection opened", database="app.db")
    """

    def __init__(
        self,
        name: str,
        *,
        level: str = "INFO",
        enable_correlation: bool = True,
        bound: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Initialize structured logger.

        Args:
            name: Logger name (typically module name)
            level: Initial log level
            enable_correlation: Whether to attach a correlation id to events
            bound: Values attached to every event of this logger instance
        """
        self.name = name
        self._enable_correlation = enable_correlation
        self._bound: Dict[str, Any] = dict(bound or {})
        self._logger = structlog.get_logger(name)
        self._context = LogContext()
        self._stdlib_logger = logging.getLogger(name)
        self._stdlib_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    def _ensure_correlation_id(self) -> str:
        correlation_id = self._context.get("correlation_id")
        if not correlation_id:
            correlation_id = str(uuid.uuid4())
            self._context.set("correlation_id", correlation_id)
        return correlation_id

    def _prepare_event_dict(self, **kwargs: Any) -> Dict[str, Any]:
        event_dict: Dict[str, Any] = {"logger": self.name}
        event_dict.update(self._context.get_all())
        event_dict.update(self._bound)

        if self._enable_correlation:
            event_dict["correlation_id"] = self._ensure_correlation_id()
        else:
            event_dict.pop("correlation_id", None)

        event_dict.update(kwargs)
        return event_dict

    def context(self, **context_data: Any) -> ContextManager[None]:
        """Context manager adding temporary values to the shared context.

        Example:
            >>> with logger.context(datasource_id="main"):
            ...     logger.info("Listing tables")
        """
        return self._context.scope(**context_data)

    def bind(self, **context_data: Any) -> "StructuredLogger":
        """Create a new logger that attaches ``context_data`` to every event."""
        return StructuredLogger(
            self.name,
            level=self.get_level(),
            enable_correlation=self._enable_correlation,
            bound={**self._bound, **context_data},
        )

    def set_level(self, level: str) -> None:
        """Set logging level.

        Raises:
            ArgumentError: If the level name is unknown
        """
        log_level = getattr(logging, str(level).upper(), None)
        if not isinstance(log_level, int):
            raise ArgumentError(f"Unknown log level: {level}", code="UNKNOWN_LOG_LEVEL")
        self._stdlib_logger.setLevel(log_level)

    def get_level(self) -> str:
        return logging.getLevelName(self._stdlib_logger.getEffectiveLevel())

    def debug(self, message: str, **kwargs: Any) -> None:
        self._logger.debug(message, **self._prepare_event_dict(**kwargs))

    def info(self, message: str, **kwargs: Any) -> None:
        self._logger.info(message, **self._prepare_event_dict(**kwargs))

    def warning(self, message: str, **kwargs: Any) -> None:
        self._logger.warning(message, **self._prepare_event_dict(**kwargs))

    def error(self, message: str, **kwargs: Any) -> None:
        self._logger.error(message, **self._prepare_event_dict(**kwargs))

    def critical(self, message: str, **kwargs: Any) -> None:
        self._logger.critical(message, **self._prepare_event_dict(**kwargs))

    def exception(self, message: str, **kwargs: Any) -> None:
        """Log an error together with the active exception's traceback."""
        self._logger.error(message, exc_info=True, **self._prepare_event_dict(**kwargs))

    def set_correlation_id(self, correlation_id: str) -> None:
        if self._enable_correlation:
            self._context.set("correlation_id", correlation_id)

    def get_correlation_id(self) -> Optional[str]:
        """Current correlation id, or None when correlation is disabled."""
        if not self._enable_correlation:
            return None
        return self._context.get("correlation_id")

    def get_context(self) -> Dict[str, Any]:
        """Shared context plus this logger's bound values."""
        return {**self._context.get_all(), **self._bound}

    def __repr__(self) -> str:
        return (
            f"StructuredLogger("
            f"name={self.name!r}, "
            f"level={self.get_level()!r}, "
            f"correlation={self._enable_correlation})"
        )
