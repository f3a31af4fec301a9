"""Audit logging for SchemaSmith operations.

Every service call produces exactly one audit event describing who did
what against which datasource object, and whether it succeeded.

Classes:
    AuditEventType: Coarse classification of audited operations
    AuditSeverity: Severity levels for audit events
    AuditEvent: Structured audit event representation
    AuditLogger: Audit event sink with in-memory retention and export

Example:
    >>> audit = AuditLogger("services")
    >>> audit.log_event(context.to_audit_event(True, "Created table 'orders'"))
"""

import json
import uuid
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from .structured import StructuredLogger
from ..core.exceptions import ArgumentError, ErrorCodes


_READ_VERBS = frozenset({"list", "get", "exists", "get_on_column", "test"})


class AuditEventType(Enum):
    """Types of audit events."""

    READ = "schema.read"
    MODIFY = "schema.modify"
    QUERY = "data.query"
    DATASOURCE = "datasource.manage"
    CUSTOM = "custom"

    @classmethod
    def from_operation(cls, operation: Optional[str]) -> "AuditEventType":
        """Classify an operation name such as ``tables.create``.

        Args:
            operation: Dotted operation name

        Returns:
            Matching event type
        """
        if not operation:
            return cls.CUSTOM

        area, _, verb = operation.rpartition(".")
        if verb == "query":
            return cls.QUERY
        if area == "datasources" and verb not in _READ_VERBS:
            return cls.DATASOURCE
        if verb in _READ_VERBS:
            return cls.READ
        return cls.MODIFY


class AuditSeverity(Enum):
    """Severity levels for audit events."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


@dataclass
class AuditEvent:
    """Structured audit event representation.

    Attributes:
        event_id: Unique event identifier
        event_type: Type of audit event
        timestamp: Event timestamp (ISO format, UTC)
        severity: Event severity level
        user_identifier: Caller identity, ``Anonymous`` when unknown
        operation: Dotted operation name
        datasource_id: Datasource the operation targeted
        schema_name: Schema the operation targeted
        table_name: Table the operation targeted
        view_name: View the operation targeted
        column_names: Columns the operation targeted
        index_name: Index the operation targeted
        constraint_name: Constraint the operation targeted
        success: Whether the operation succeeded
        message: Outcome description or error message
        request_id: Correlation identifier of the caller's request
        ip_address: Caller address, when known
        properties: Additional event details
    """

    event_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    event_type: AuditEventType = AuditEventType.CUSTOM
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    severity: AuditSeverity = AuditSeverity.LOW
    user_identifier: str = "Anonymous"
    operation: str = ""
    datasource_id: Optional[str] = None
    schema_name: Optional[str] = None
    table_name: Optional[str] = None
    view_name: Optional[str] = None
    column_names: Optional[List[str]] = None
    index_name: Optional[str] = None
    constraint_name: Optional[str] = None
    success: bool = True
    message: Optional[str] = None
    request_id: Optional[str] = None
    ip_address: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Normalize enum fields supplied as strings."""
        if isinstance(self.event_type, str):
            try:
                self.event_type = AuditEventType(self.event_type)
            except ValueError:
                self.event_type = AuditEventType.CUSTOM

        if isinstance(self.severity, str):
            try:
                self.severity = AuditSeverity(self.severity)
            except ValueError:
                self.severity = AuditSeverity.LOW

    @property
    def outcome(self) -> str:
        """Return ``success`` or ``failure``."""
        return "success" if self.success else "failure"

    def to_dict(self) -> Dict[str, Any]:
        """Convert audit event to dictionary.

        Returns:
            Dictionary representation of audit event
        """
        data = asdict(self)
        data["event_type"] = self.event_type.value
        data["severity"] = self.severity.value
        return data

    def to_json(self) -> str:
        """Convert audit event to JSON string."""
        return json.dumps(self.to_dict(), default=str)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditEvent":
        """Create audit event from dictionary.

        Args:
            data: Dictionary containing audit event data

        Returns:
            AuditEvent instance
        """
        known = {name for name in cls.__dataclass_fields__}
        return cls(**{key: value for key, value in data.items() if key in known})

    def __repr__(self) -> str:
        """Return string representation of audit event."""
        return (
            f"AuditEvent("
            f"id={self.event_id[:8]}..., "
            f"operation={self.operation}, "
            f"user={self.user_identifier}, "
            f"success={self.success})"
        )


class AuditLogger:
    """Audit event sink.

    Events are written to a structured logger (info on success, warning on
    failure), optionally retained in memory for querying, and forwarded to
    any registered handlers.

    Attributes:
        name: Logger name
        logger: Underlying structured logger
        retain_in_memory: Whether events are kept for querying
        max_events: Upper bound on retained events
    """

    def __init__(
        self,
        name: str,
        *,
        retain_in_memory: bool = True,
        max_events: int = 10000,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        """Initialize audit logger.

        Args:
            name: Logger name
            retain_in_memory: Whether to retain events in memory
            max_events: Maximum number of retained events, oldest dropped first
            logger: Custom structured logger instance
        """
        self.name = name
        self.retain_in_memory = retain_in_memory
        self.max_events = max_events
        self.logger = logger or StructuredLogger(f"audit.{name}")
        self._events: List[AuditEvent] = []
        self._event_handlers: List[Callable[[AuditEvent], Any]] = []

    def add_event_handler(self, handler: Callable[[AuditEvent], Any]) -> None:
        """Add custom event handler.

        Args:
            handler: Function to call for each audit event
        """
        self._event_handlers.append(handler)

    def log_event(self, event: AuditEvent) -> AuditEvent:
        """Record an audit event.

        Args:
            event: Event to record

        Returns:
            The recorded event
        """
        if self.retain_in_memory:
            self._events.append(event)
            if len(self._events) > self.max_events:
                del self._events[: len(self._events) - self.max_events]

        payload = event.to_dict()
        payload["audit_message"] = payload.pop("message")
        if event.success:
            self.logger.info(f"Operation {event.operation} succeeded", **payload)
        else:
            self.logger.warning(f"Operation {event.operation} failed", **payload)

        for handler in self._event_handlers:
            try:
                handler(event)
            except Exception as e:
                self.logger.error(
                    "Audit event handler failed",
                    handler=getattr(handler, "__name__", repr(handler)),
                    error=str(e),
                )

        return event

    def get_events(
        self,
        *,
        operation: Optional[str] = None,
        datasource_id: Optional[str] = None,
        user_identifier: Optional[str] = None,
        event_type: Optional[Union[AuditEventType, str]] = None,
        success: Optional[bool] = None,
        start_time: Optional[datetime] = None,
        limit: Optional[int] = None,
    ) -> List[AuditEvent]:
        """Query retained audit events.

        Args:
            operation: Filter by operation name
            datasource_id: Filter by datasource (case-insensitive)
            user_identifier: Filter by caller
            event_type: Filter by event type
            success: Filter by outcome
            start_time: Only events at or after this time
            limit: Maximum number of events to return

        Returns:
            Matching events, newest first
        """
        if not self.retain_in_memory:
            self.logger.warning("Event querying not available - in-memory retention disabled")
            return []

        events = self._events[:]

        if operation:
            events = [e for e in events if e.operation == operation]

        if datasource_id:
            key = datasource_id.casefold()
            events = [e for e in events if (e.datasource_id or "").casefold() == key]

        if user_identifier:
            events = [e for e in events if e.user_identifier == user_identifier]

        if event_type:
            if isinstance(event_type, str):
                event_type = AuditEventType(event_type)
            events = [e for e in events if e.event_type == event_type]

        if success is not None:
            events = [e for e in events if e.success == success]

        if start_time:
            events = [e for e in events if datetime.fromisoformat(e.timestamp) >= start_time]

        events.reverse()

        if limit:
            events = events[:limit]

        return events

    def export_events(
        self,
        *,
        file_path: Optional[Path] = None,
        **filter_kwargs: Any,
    ) -> Optional[str]:
        """Export audit events as JSON.

        Args:
            file_path: Optional file path to save export
            **filter_kwargs: Filtering parameters for get_events

        Returns:
            JSON document, or None if saved to file
        """
        events = self.get_events(**filter_kwargs)
        output = json.dumps([event.to_dict() for event in events], indent=2, default=str)

        if file_path:
            validate_export_path(file_path).write_text(output, encoding="utf-8")
            return None

        return output

    def get_statistics(self) -> Dict[str, Any]:
        """Get audit log statistics.

        Returns:
            Dictionary containing counts by outcome, type and operation
        """
        if not self._events:
            return {"total_events": 0}

        operation_counts: Dict[str, int] = {}
        type_counts: Dict[str, int] = {}
        for event in self._events:
            operation_counts[event.operation] = operation_counts.get(event.operation, 0) + 1
            type_name = event.event_type.value
            type_counts[type_name] = type_counts.get(type_name, 0) + 1

        failures = sum(1 for e in self._events if not e.success)

        return {
            "total_events": len(self._events),
            "successful": len(self._events) - failures,
            "failed": failures,
            "event_types": type_counts,
            "operations": operation_counts,
        }

    def clear(self) -> None:
        """Drop all retained events."""
        self._events.clear()

    def __len__(self) -> int:
        """Return number of retained events."""
        return len(self._events)

    def __repr__(self) -> str:
        """Return string representation of audit logger."""
        return f"AuditLogger(name={self.name!r}, events={len(self._events)})"


def validate_export_path(file_path: Union[str, Path]) -> Path:
    """Validate that an export destination directory exists.

    Raises:
        ArgumentError: If the parent directory is missing
    """
    path = Path(file_path)
    if not path.parent.exists():
        raise ArgumentError(
            f"Export directory does not exist: {path.parent}",
            code=ErrorCodes.ARGUMENT_INVALID,
            context={"file_path": str(path)},
        )
    return path
