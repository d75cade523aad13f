"""
Tests for Logbook models

Test strategy:
1. Unit tests for the entity models and their normalising validators
2. Export option rules
3. Audit event construction and row conversion
"""

import pytest
from datetime import datetime, timezone
from decimal import Decimal
from uuid import uuid4

from pydantic import ValidationError

from logbook.models.entities import (
    DEFAULT_CLIENT_NAME,
    DEFAULT_DESCRIPTION,
    Client,
    ExportFormat,
    ExportOptions,
    ExportSnapshot,
    ImportSummary,
    LogEntry,
    LogEntryType,
)
from logbook.models.audit import (
    AuditEvent,
    AuditEventBuilder,
    AuditEventType,
    AuditSeverity,
)


class TestLogEntryType:
    """Tests for the entry type labels."""

    def test_labels(self):
        assert LogEntryType.TASK.display_name == "Task"
        assert LogEntryType.NOTE.display_name == "Note"
        assert LogEntryType.PAYMENT.display_name == "Payment"

    def test_raw_values(self):
        assert [int(t) for t in LogEntryType] == [0, 1, 2]

    def test_from_label_is_exact(self):
        """Test label lookup is case-sensitive."""
        assert LogEntryType.from_label("Payment") is LogEntryType.PAYMENT
        assert LogEntryType.from_label("payment") is None
        assert LogEntryType.from_label("Invoice") is None


class TestExportFormat:
    """Tests for format metadata."""

    def test_json_metadata(self):
        assert ExportFormat.JSON.file_extension == "json"
        assert ExportFormat.JSON.mime_type == "application/json"
        assert ExportFormat.JSON.label == "JSON"

    def test_csv_metadata(self):
        assert ExportFormat.CSV.file_extension == "csv"
        assert ExportFormat.CSV.mime_type == "text/csv"

    def test_from_string(self):
        assert ExportFormat("csv") is ExportFormat.CSV


class TestClient:
    """Tests for the Client model."""

    def test_blank_name_gets_default(self):
        assert Client(name="   ").name == DEFAULT_CLIENT_NAME
        assert Client(name=None).name == DEFAULT_CLIENT_NAME

    def test_empty_tag_is_none(self):
        assert Client(name="Acme", tag="").tag is None

    def test_rejects_negative_rate(self):
        with pytest.raises(ValidationError):
            Client(name="Acme", hourly_rate=Decimal("-1"))

    def test_is_frozen(self):
        client = Client(name="Acme")
        with pytest.raises(ValidationError):
            client.name = "Other"


class TestLogEntry:
    """Tests for the LogEntry model."""

    def test_defaults(self):
        entry = LogEntry()
        assert entry.type is LogEntryType.TASK
        assert entry.description == DEFAULT_DESCRIPTION
        assert entry.amount == Decimal("0")
        assert entry.client_id is None

    def test_amount_only_kept_for_payments(self):
        """Test non-payment entries carry a zero amount."""
        note = LogEntry(type=LogEntryType.NOTE, amount=Decimal("10"))
        payment = LogEntry(type=LogEntryType.PAYMENT, amount=Decimal("10"))
        assert note.amount == Decimal("0")
        assert payment.amount == Decimal("10")

    def test_completion_only_kept_for_tasks(self):
        assert LogEntry(type=LogEntryType.TASK, is_complete=True).is_complete is True
        assert LogEntry(type=LogEntryType.NOTE, is_complete=True).is_complete is False

    def test_naive_dates_assumed_utc(self):
        entry = LogEntry(occurs_at=datetime(2025, 1, 1, 12, 0))
        assert entry.occurs_at.tzinfo == timezone.utc

    def test_empty_tag_is_none(self):
        assert LogEntry(tag="").tag is None


class TestExportOptions:
    """Tests for the export selection rules."""

    def test_default_selects_everything(self):
        options = ExportOptions()
        assert options.entry_types == set(LogEntryType)
        assert options.include_clients is True

    def test_entries_require_clients(self):
        with pytest.raises(ValidationError, match="Client data must be included"):
            ExportOptions(include_clients=False)

    def test_nothing_selected_rejected(self):
        with pytest.raises(ValidationError, match="at least one"):
            ExportOptions(
                include_tasks=False,
                include_notes=False,
                include_payments=False,
                include_clients=False,
            )

    def test_clients_only_allowed(self):
        options = ExportOptions(
            include_tasks=False,
            include_notes=False,
            include_payments=False,
        )
        assert options.entry_types == set()

    def test_apply_filters_entries(self, sample_snapshot):
        options = ExportOptions(include_tasks=False, include_notes=False)
        filtered = options.apply(sample_snapshot)

        assert [e.type for e in filtered.entries] == [LogEntryType.PAYMENT]
        assert len(filtered.clients) == 2
        assert filtered.exported_at == sample_snapshot.exported_at


class TestExportSnapshot:
    """Tests for the snapshot container."""

    def test_defaults_to_now_in_utc(self):
        snapshot = ExportSnapshot()
        assert snapshot.exported_at.tzinfo is not None
        assert snapshot.clients == []
        assert snapshot.entries == []


class TestImportSummary:
    """Tests for the summary counts."""

    def test_has_changes(self):
        assert ImportSummary(imported_entries=1).has_changes is True
        assert ImportSummary(total_entries=3, skipped_entries=3).has_changes is False


class TestAuditModels:
    """Tests for audit-related models."""

    def test_audit_event_creation(self):
        """Test AuditEvent model creation."""
        event = AuditEvent(
            event_type=AuditEventType.EXPORT_STARTED,
            description="Export started (csv)",
        )
        assert event.event_type == AuditEventType.EXPORT_STARTED
        assert event.severity == AuditSeverity.INFO
        assert event.event_id is not None

    def test_audit_event_to_log_dict(self):
        """Test conversion to log dictionary."""
        correlation_id = uuid4()
        event = AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            correlation_id=correlation_id,
            description="Imported",
            details={"imported_entries": 2},
        )
        log_dict = event.to_log_dict()

        assert log_dict["event_type"] == "import_completed"
        assert log_dict["correlation_id"] == str(correlation_id)
        assert log_dict["details"] == {"imported_entries": 2}

    def test_row_round_trip(self):
        event = AuditEventBuilder.import_rejected("format_error", "Missing CLIENTS", uuid4())
        assert AuditEvent.from_row(event.to_row()) == event

    def test_builder_export_completed(self):
        correlation_id = uuid4()
        event = AuditEventBuilder.export_completed(
            export_format="json",
            filename="logbook_export.json",
            client_count=2,
            entry_count=3,
            size_bytes=512,
            correlation_id=correlation_id,
        )

        assert event.event_type == AuditEventType.EXPORT_COMPLETED
        assert event.correlation_id == correlation_id
        assert event.details["filename"] == "logbook_export.json"

    def test_builder_import_failed_is_error(self):
        event = AuditEventBuilder.import_failed("storage_commit_error", "disk full", uuid4())
        assert event.severity == AuditSeverity.ERROR
        assert event.error_code == "storage_commit_error"
