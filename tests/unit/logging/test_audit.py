"""Tests for audit logging module."""

import json
from datetime import datetime, timedelta, timezone

import pytest

from schemasmith.core.exceptions import ArgumentError
from schemasmith.logging.audit import AuditEvent, AuditEventType, AuditLogger, AuditSeverity


def make_event(operation="tables.create", success=True, **kwargs):
    return AuditEvent(
        event_type=AuditEventType.from_operation(operation),
        operation=operation,
        success=success,
        **kwargs,
    )


class TestAuditEventType:
    """Test classification of operation names."""

    @pytest.mark.parametrize(
        "operation,expected",
        [
            ("tables.list", AuditEventType.READ),
            ("tables.get", AuditEventType.READ),
            ("views.exists", AuditEventType.READ),
            ("default_constraints.get_on_column", AuditEventType.READ),
            ("tables.query", AuditEventType.QUERY),
            ("views.query", AuditEventType.QUERY),
            ("tables.create", AuditEventType.MODIFY),
            ("columns.drop", AuditEventType.MODIFY),
            ("datasources.add", AuditEventType.DATASOURCE),
            ("datasources.remove", AuditEventType.DATASOURCE),
            ("datasources.get", AuditEventType.READ),
            ("datasources.test", AuditEventType.READ),
            (None, AuditEventType.CUSTOM),
        ],
    )
    def test_from_operation(self, operation, expected):
        assert AuditEventType.from_operation(operation) == expected


class TestAuditEvent:
    """Test cases for AuditEvent."""

    def test_defaults(self):
        event = AuditEvent()

        assert event.event_type == AuditEventType.CUSTOM
        assert event.user_identifier == "Anonymous"
        assert event.outcome == "success"
        assert event.event_id

    def test_string_enums_normalized(self):
        event = AuditEvent(event_type="schema.modify", severity="high")

        assert event.event_type == AuditEventType.MODIFY
        assert event.severity == AuditSeverity.HIGH

    def test_unknown_string_enums_fall_back(self):
        event = AuditEvent(event_type="nope", severity="extreme")

        assert event.event_type == AuditEventType.CUSTOM
        assert event.severity == AuditSeverity.LOW

    def test_to_dict_and_from_dict(self):
        event = make_event(datasource_id="main", column_names=["a"], properties={"x": 1})

        data = event.to_dict()
        assert data["event_type"] == "schema.modify"
        assert data["severity"] == "low"
        json.loads(event.to_json())

        restored = AuditEvent.from_dict({**data, "unexpected": True})
        assert restored == event

    def test_failure_outcome(self):
        assert make_event(success=False).outcome == "failure"


class TestAuditLogger:
    """Test cases for AuditLogger."""

    def test_log_event_retains_and_logs(self, mock_structured_logger):
        audit = AuditLogger("test", logger=mock_structured_logger)

        returned = audit.log_event(make_event(message="Created table 'orders'"))

        assert len(audit) == 1
        assert audit.get_events() == [returned]
        mock_structured_logger.info.assert_called_once()
        _, kwargs = mock_structured_logger.info.call_args
        assert kwargs["audit_message"] == "Created table 'orders'"
        assert "message" not in kwargs

    def test_failures_logged_as_warning(self, mock_structured_logger):
        audit = AuditLogger("test", logger=mock_structured_logger)

        audit.log_event(make_event(success=False))

        mock_structured_logger.warning.assert_called_once()
        mock_structured_logger.info.assert_not_called()

    def test_retention_disabled(self, mock_structured_logger):
        audit = AuditLogger("test", retain_in_memory=False, logger=mock_structured_logger)

        audit.log_event(make_event())

        assert len(audit) == 0
        assert audit.get_events() == []

    def test_max_events_drops_oldest(self, mock_structured_logger):
        audit = AuditLogger("test", max_events=2, logger=mock_structured_logger)

        for op in ("tables.create", "tables.drop", "tables.rename"):
            audit.log_event(make_event(op))

        assert [e.operation for e in audit.get_events()] == ["tables.rename", "tables.drop"]

    def test_get_events_filters(self, mock_structured_logger):
        """Test filtering by several event fields."""
        audit = AuditLogger("test", logger=mock_structured_logger)
        audit.log_event(make_event("tables.create", datasource_id="Main", user_identifier="ops"))
        audit.log_event(make_event("tables.get", datasource_id="main"))
        audit.log_event(make_event("tables.drop", success=False, datasource_id="other"))

        assert len(audit.get_events(datasource_id="MAIN")) == 2
        assert len(audit.get_events(user_identifier="ops")) == 1
        assert len(audit.get_events(event_type=AuditEventType.READ)) == 1
        assert len(audit.get_events(event_type="schema.modify")) == 2
        assert [e.operation for e in audit.get_events(success=False)] == ["tables.drop"]
        assert len(audit.get_events(operation="tables.get")) == 1
        assert len(audit.get_events(limit=1)) == 1

    def test_get_events_start_time(self, mock_structured_logger):
        audit = AuditLogger("test", logger=mock_structured_logger)
        old = make_event(timestamp=(datetime.now(timezone.utc) - timedelta(hours=2)).isoformat())
        recent = make_event()
        audit.log_event(old)
        audit.log_event(recent)

        events = audit.get_events(start_time=datetime.now(timezone.utc) - timedelta(hours=1))

        assert events == [recent]

    def test_event_handlers(self, mock_structured_logger):
        audit = AuditLogger("test", logger=mock_structured_logger)
        received = []

        def failing_handler(event):
            raise RuntimeError("sink down")

        audit.add_event_handler(received.append)
        audit.add_event_handler(failing_handler)
        audit.log_event(make_event())

        assert len(received) == 1
        mock_structured_logger.error.assert_called_once()

    def test_export_events(self, mock_structured_logger, tmp_path):
        audit = AuditLogger("test", logger=mock_structured_logger)
        audit.log_event(make_event(datasource_id="main"))

        exported = json.loads(audit.export_events())
        assert exported[0]["datasource_id"] == "main"

        target = tmp_path / "audit.json"
        assert audit.export_events(file_path=target) is None
        assert json.loads(target.read_text())[0]["operation"] == "tables.create"

    def test_export_to_missing_directory(self, mock_structured_logger, tmp_path):
        audit = AuditLogger("test", logger=mock_structured_logger)

        with pytest.raises(ArgumentError):
            audit.export_events(file_path=tmp_path / "missing" / "audit.json")

    def test_statistics_and_clear(self, mock_structured_logger):
        audit = AuditLogger("test", logger=mock_structured_logger)
        assert audit.get_statistics() == {"total_events": 0}

        audit.log_event(make_event("tables.create"))
        audit.log_event(make_event("tables.create", success=False))
        audit.log_event(make_event("tables.list"))

        stats = audit.get_statistics()
        assert stats["total_events"] == 3
        assert stats["successful"] == 2
        assert stats["failed"] == 1
        assert stats["operations"] == {"tables.create": 2, "tables.list": 1}
        assert stats["event_types"] == {"schema.modify": 2, "schema.read": 1}

        audit.clear()
        assert len(audit) == 0
