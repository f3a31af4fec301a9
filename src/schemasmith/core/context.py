"""Per-call operation context.

Every service method takes an OperationContext as its first argument.
The caller supplies identity and correlation data; services fill in the
entity fields (datasource, schema, table, ...) as they resolve them, and
the completed context becomes the audit record for the call.
"""

import uuid
from dataclasses import dataclass, field, replace
from typing import Any, Dict, List, Optional

from ..logging.audit import AuditEvent, AuditEventType, AuditSeverity

ANONYMOUS_USER = "Anonymous"


@dataclass
class OperationContext:
    """Caller identity and correlation data for a single operation.

    Attributes:
        user: Authenticated caller identifier
        operation: Dotted operation name, set by the service
        datasource_id: Target datasource
        schema_name: Target schema
        table_name: Target table
        view_name: Target view
        column_names: Target columns
        index_name: Target index
        constraint_name: Target constraint
        request_id: Correlation identifier
        ip_address: Caller address
        properties: Free-form additional data
    """

    user: Optional[str] = None
    operation: Optional[str] = None
    datasource_id: Optional[str] = None
    schema_name: Optional[str] = None
    table_name: Optional[str] = None
    view_name: Optional[str] = None
    column_names: Optional[List[str]] = None
    index_name: Optional[str] = None
    constraint_name: Optional[str] = None
    request_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    ip_address: Optional[str] = None
    properties: Dict[str, Any] = field(default_factory=dict)

    @property
    def user_identifier(self) -> str:
        return self.user or ANONYMOUS_USER

    def for_operation(self, operation: str, **entity_fields: Any) -> "OperationContext":
        """Return a copy scoped to one operation.

        The caller's context object is never mutated, so one context can be
        reused across concurrent calls.

        Args:
            operation: Dotted operation name, e.g. ``tables.create``
            **entity_fields: Entity fields to set on the copy

        Returns:
            New OperationContext
        """
        values = {key: value for key, value in entity_fields.items() if value is not None}
        return replace(self, operation=operation, properties=dict(self.properties), **values)

    def to_audit_event(self, success: bool, message: Optional[str] = None) -> AuditEvent:
        """Build the audit event describing this operation's outcome.

        Args:
            success: Whether the operation succeeded
            message: Outcome description or error message

        Returns:
            AuditEvent populated from this context
        """
        event_type = AuditEventType.from_operation(self.operation)
        if not success:
            severity = AuditSeverity.HIGH
        elif event_type in (AuditEventType.READ, AuditEventType.QUERY):
            severity = AuditSeverity.LOW
        else:
            severity = AuditSeverity.MEDIUM

        return AuditEvent(
            event_type=event_type,
            severity=severity,
            user_identifier=self.user_identifier,
            operation=self.operation or "",
            datasource_id=self.datasource_id,
            schema_name=self.schema_name,
            table_name=self.table_name,
            view_name=self.view_name,
            column_names=list(self.column_names) if self.column_names else None,
            index_name=self.index_name,
            constraint_name=self.constraint_name,
            success=success,
            message=message,
            request_id=self.request_id,
            ip_address=self.ip_address,
            properties=dict(self.properties),
        )
