"""
Audit Models for Logbook

Every export and import is recorded as a sequence of audit events
sharing one correlation ID, so a failed import can be traced from the
bytes that were read to the step that failed.

DESIGN DECISION: Audit logs are append-only. We never delete or modify them.
"""

import json
from datetime import datetime
from enum import Enum
from typing import Any, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field

from logbook.models.entities import utc_now


class AuditEventType(str, Enum):
    """Types of events we audit."""
    # Export
    EXPORT_STARTED = "export_started"
    EXPORT_COMPLETED = "export_completed"
    EXPORT_FAILED = "export_failed"

    # Import
    IMPORT_STARTED = "import_started"
    IMPORT_DECODED = "import_decoded"
    IMPORT_COMPLETED = "import_completed"
    IMPORT_REJECTED = "import_rejected"
    IMPORT_FAILED = "import_failed"

    # System events
    SYSTEM_ERROR = "system_error"


class AuditSeverity(str, Enum):
    """Severity level for audit events."""
    DEBUG = "debug"
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    CRITICAL = "critical"


class AuditEvent(BaseModel):
    """
    A single audit event.

    This is the core unit of our audit trail.
    """

    # Identity
    event_id: UUID = Field(
        default_factory=uuid4,
        description="Unique event identifier"
    )
    timestamp: datetime = Field(
        default_factory=utc_now,
        description="When the event occurred (UTC)"
    )

    # Event classification
    event_type: AuditEventType = Field(
        ...,
        description="Type of event"
    )
    severity: AuditSeverity = Field(
        default=AuditSeverity.INFO,
        description="Event severity"
    )

    # Correlation - all events of one export or import share this
    correlation_id: Optional[UUID] = Field(
        default=None,
        description="ID to correlate related events"
    )

    description: str = Field(
        ...,
        max_length=500,
        description="Human-readable description of what happened"
    )
    details: dict[str, Any] = Field(
        default_factory=dict,
        description="Additional event-specific data"
    )

    # Error information (if applicable)
    error_code: Optional[str] = None
    error_message: Optional[str] = None

    def to_log_dict(self) -> dict:
        """
        Convert to a dictionary suitable for structured logging.
        """
        return {
            "event_id": str(self.event_id),
            "timestamp": self.timestamp.isoformat(),
            "event_type": self.event_type.value,
            "severity": self.severity.value,
            "correlation_id": str(self.correlation_id) if self.correlation_id else None,
            "description": self.description,
            "details": self.details,
            "error_code": self.error_code,
            "error_message": self.error_message,
        }

    def to_row(self) -> tuple:
        """
        Convert to a row for the audit_events table.

        Columns in order:
        (event_id, timestamp, event_type, severity, correlation_id,
         description, details_json, error_code, error_message)
        """
        return (
            str(self.event_id),
            self.timestamp.isoformat(),
            self.event_type.value,
            self.severity.value,
            str(self.correlation_id) if self.correlation_id else None,
            self.description,
            json.dumps(self.details) if self.details else None,
            self.error_code,
            self.error_message,
        )

    @classmethod
    def from_row(cls, row) -> "AuditEvent":
        """Inverse of to_row."""
        return cls(
            event_id=UUID(row[0]),
            timestamp=datetime.fromisoformat(row[1]),
            event_type=AuditEventType(row[2]),
            severity=AuditSeverity(row[3]),
            correlation_id=UUID(row[4]) if row[4] else None,
            description=row[5],
            details=json.loads(row[6]) if row[6] else {},
            error_code=row[7],
            error_message=row[8],
        )


class AuditEventBuilder:
    """
    Helper class to build audit events with common patterns.

    Usage:
        event = AuditEventBuilder.export_started("csv", correlation_id)
        event = AuditEventBuilder.import_completed(summary_counts, correlation_id)
    """

    @staticmethod
    def export_started(
        export_format: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_STARTED,
            correlation_id=correlation_id,
            description=f"Export started ({export_format})",
            details={"format": export_format},
        )

    @staticmethod
    def export_completed(
        export_format: str,
        filename: str,
        client_count: int,
        entry_count: int,
        size_bytes: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_COMPLETED,
            correlation_id=correlation_id,
            description=f"Exported {client_count} clients and {entry_count} entries to {filename}",
            details={
                "format": export_format,
                "filename": filename,
                "client_count": client_count,
                "entry_count": entry_count,
                "size_bytes": size_bytes,
            },
        )

    @staticmethod
    def export_failed(
        export_format: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.EXPORT_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description=f"Export failed ({export_format})",
            error_message=error_message,
            details={"format": export_format},
        )

    @staticmethod
    def import_started(
        import_format: str,
        size_bytes: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_STARTED,
            correlation_id=correlation_id,
            description=f"Import started ({import_format}, {size_bytes} bytes)",
            details={
                "format": import_format,
                "size_bytes": size_bytes,
            },
        )

    @staticmethod
    def import_decoded(
        client_count: int,
        entry_count: int,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_DECODED,
            correlation_id=correlation_id,
            description=f"Decoded {client_count} clients and {entry_count} entries",
            details={
                "client_count": client_count,
                "entry_count": entry_count,
            },
        )

    @staticmethod
    def import_completed(
        counts: dict[str, int],
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_COMPLETED,
            correlation_id=correlation_id,
            description=(
                f"Imported {counts.get('imported_clients', 0)} clients and "
                f"{counts.get('imported_entries', 0)} entries"
            ),
            details=counts,
        )

    @staticmethod
    def import_rejected(
        error_code: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        """The file was refused before anything was staged."""
        return AuditEvent(
            event_type=AuditEventType.IMPORT_REJECTED,
            severity=AuditSeverity.WARNING,
            correlation_id=correlation_id,
            description="Import rejected: file could not be read as an export",
            error_code=error_code,
            error_message=error_message,
        )

    @staticmethod
    def import_failed(
        error_code: str,
        error_message: str,
        correlation_id: UUID
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.IMPORT_FAILED,
            severity=AuditSeverity.ERROR,
            correlation_id=correlation_id,
            description="Import failed, no changes were made",
            error_code=error_code,
            error_message=error_message,
        )

    @staticmethod
    def system_error(
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None
    ) -> AuditEvent:
        return AuditEvent(
            event_type=AuditEventType.SYSTEM_ERROR,
            severity=AuditSeverity.ERROR,
            description=f"System error: {error_type}",
            error_message=error_message,
            details=details or {},
            correlation_id=correlation_id,
        )
