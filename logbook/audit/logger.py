"""
Audit Logger

DESIGN DECISION: Every export and import is logged.
This provides:
1. Traceability from the file that was read to the rows that were added
2. Debugging capability for rejected files
3. A history the user can look back on

The audit logger:
- Is async to match the storage layer
- Never breaks the main flow when the audit store fails
- Groups the events of one operation under a correlation ID
"""

import logging
from typing import Optional
from uuid import UUID, uuid4

import structlog

from logbook.models.audit import AuditEvent, AuditEventBuilder, AuditSeverity
from logbook.services.storage import AuditStorageInterface, StorageError


# Configure structlog for local logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)


class AuditLogger:
    """
    Central audit logging service.

    Logs events both to:
    1. Structured local log (for debugging)
    2. The audit store, when one is configured
    """

    def __init__(
        self,
        storage: Optional[AuditStorageInterface] = None,
    ):
        """
        Initialize audit logger.

        Args:
            storage: Storage backend for persistence.
                    If None, only logs locally.
        """
        self._storage = storage
        self._logger = structlog.get_logger("logbook.audit")

    async def log(self, event: AuditEvent) -> bool:
        """
        Log an audit event.

        Always logs locally. Persists to storage if available.

        Returns True if storage write succeeded (or no storage configured).
        """
        log_dict = event.to_log_dict()

        if event.severity in (AuditSeverity.ERROR, AuditSeverity.CRITICAL):
            self._logger.error("audit_event", **log_dict)
        elif event.severity is AuditSeverity.WARNING:
            self._logger.warning("audit_event", **log_dict)
        else:
            self._logger.info("audit_event", **log_dict)

        if self._storage:
            try:
                return await self._storage.append_event(event)
            except StorageError as e:
                self._logger.error(
                    "audit_storage_failed",
                    error=str(e),
                    event_id=str(event.event_id),
                )
                return False

        return True

    async def log_export_started(
        self,
        export_format: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.export_started(export_format, correlation_id))

    async def log_export_completed(
        self,
        export_format: str,
        filename: str,
        client_count: int,
        entry_count: int,
        size_bytes: int,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.export_completed(
            export_format=export_format,
            filename=filename,
            client_count=client_count,
            entry_count=entry_count,
            size_bytes=size_bytes,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_export_failed(
        self,
        export_format: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        event = AuditEventBuilder.export_failed(
            export_format=export_format,
            error_message=error_message,
            correlation_id=correlation_id,
        )
        await self.log(event)

    async def log_import_started(
        self,
        import_format: str,
        size_bytes: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.import_started(import_format, size_bytes, correlation_id)
        )

    async def log_import_decoded(
        self,
        client_count: int,
        entry_count: int,
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.import_decoded(client_count, entry_count, correlation_id)
        )

    async def log_import_completed(
        self,
        counts: dict[str, int],
        correlation_id: UUID,
    ) -> None:
        await self.log(AuditEventBuilder.import_completed(counts, correlation_id))

    async def log_import_rejected(
        self,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.import_rejected(error_code, error_message, correlation_id)
        )

    async def log_import_failed(
        self,
        error_code: str,
        error_message: str,
        correlation_id: UUID,
    ) -> None:
        await self.log(
            AuditEventBuilder.import_failed(error_code, error_message, correlation_id)
        )

    async def log_error(
        self,
        error_type: str,
        error_message: str,
        details: Optional[dict] = None,
        correlation_id: Optional[UUID] = None,
    ) -> None:
        """Log an error."""
        event = AuditEventBuilder.system_error(
            error_type=error_type,
            error_message=error_message,
            details=details,
            correlation_id=correlation_id,
        )
        await self.log(event)


def create_correlation_id() -> UUID:
    """
    Create a new correlation ID for tracking related events.

    Use this at the start of an export or import and pass it through
    every step.
    """
    return uuid4()


def configure_log_level(debug_mode: bool) -> int:
    """
    Set the level for everything logged under the `logbook` namespace.

    structlog hands records to the stdlib logger of the same name, so this
    is the level filter_by_level applies.
    """
    level = logging.DEBUG if debug_mode else logging.INFO
    logging.basicConfig(format="%(message)s")
    logging.getLogger("logbook").setLevel(level)
    return level
