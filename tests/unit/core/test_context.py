"""Unit tests for OperationContext."""

from schemasmith.core.context import OperationContext
from schemasmith.logging.audit import AuditEventType, AuditSeverity


class TestOperationContext:
    """Test cases for OperationContext."""

    def test_defaults(self):
        context = OperationContext()

        assert context.user_identifier == "Anonymous"
        assert context.request_id
        assert context.properties == {}

    def test_request_ids_are_unique(self):
        assert OperationContext().request_id != OperationContext().request_id

    def test_for_operation_copies(self):
        context = OperationContext(user="ops", properties={"ticket": "T-1"})

        scoped = context.for_operation("tables.create", datasource_id="main", table_name="orders", schema_name=None)

        assert scoped is not context
        assert scoped.operation == "tables.create"
        assert scoped.datasource_id == "main"
        assert scoped.table_name == "orders"
        assert scoped.request_id == context.request_id
        assert context.operation is None
        assert context.datasource_id is None

        scoped.properties["message"] = "done"
        assert "message" not in context.properties

    def test_for_operation_ignores_none_fields(self):
        context = OperationContext(schema_name="sales")

        scoped = context.for_operation("tables.get", schema_name=None)

        assert scoped.schema_name == "sales"


class TestAuditEventConversion:
    """Test cases for to_audit_event."""

    def test_successful_read(self):
        context = OperationContext(user="ops", ip_address="10.0.0.1").for_operation(
            "tables.get", datasource_id="main", table_name="orders"
        )

        event = context.to_audit_event(True, "Retrieved table")

        assert event.event_type == AuditEventType.READ
        assert event.severity == AuditSeverity.LOW
        assert event.user_identifier == "ops"
        assert event.operation == "tables.get"
        assert event.datasource_id == "main"
        assert event.table_name == "orders"
        assert event.ip_address == "10.0.0.1"
        assert event.request_id == context.request_id
        assert event.success is True
        assert event.message == "Retrieved table"

    def test_failed_modification(self):
        context = OperationContext().for_operation("columns.drop", column_names=["qty"])

        event = context.to_audit_event(False, "boom")

        assert event.event_type == AuditEventType.MODIFY
        assert event.severity == AuditSeverity.HIGH
        assert event.column_names == ["qty"]
        assert event.user_identifier == "Anonymous"

    def test_query_and_datasource_events(self):
        assert OperationContext(operation="views.query").to_audit_event(True).event_type == AuditEventType.QUERY
        assert (
            OperationContext(operation="datasources.add").to_audit_event(True).event_type
            == AuditEventType.DATASOURCE
        )
        assert OperationContext(operation="datasources.list").to_audit_event(True).event_type == AuditEventType.READ
