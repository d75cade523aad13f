"""
Main Orchestrator for Logbook Data Portability

This module ties the components together and defines the end-to-end flows:
1. Export (snapshot -> filter -> encode -> bytes + file metadata)
2. Import (bytes -> decode -> reconcile -> commit -> summary)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Each flow is a coroutine; encoding and decoding run in a worker thread
  so the caller's event loop is never blocked
- At most one export and one import run at a time; later calls wait
- A failed import leaves the store untouched
- Every step is audited under one correlation ID
"""

import asyncio
from pathlib import Path
from typing import Optional, Union
from uuid import UUID

import structlog

from logbook.audit import AuditLogger, configure_log_level, create_correlation_id
from logbook.config import get_settings
from logbook.models.entities import (
    ExportFormat,
    ExportOptions,
    ExportResult,
    ImportSummary,
)
from logbook.portability import (
    AccessError,
    FormatError,
    NotRecognizedFormatError,
    Reconciler,
    StorageCommitError,
    decode_payload,
    encode_snapshot,
)
from logbook.services.storage import (
    InMemoryLogbookStorage,
    LogbookStorageInterface,
    SQLiteLogbookStorage,
    StorageConnectionError,
    StorageError,
)
from logbook.services.transport import guess_format, read_import_file

logger = structlog.get_logger(__name__)


class ExportFlow:
    """
    Orchestrates an export.

    Flow:
    1. Snapshot → read every client and entry
    2. Filter → apply ExportOptions
    3. Encode → JSON or CSV bytes (worker thread)
    4. Package → ExportResult with file name and MIME type
    """

    def __init__(
        self,
        storage: LogbookStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        filename_stem: Optional[str] = None,
    ):
        self._storage = storage
        self._audit_logger = audit_logger
        self._filename_stem = filename_stem or get_settings().portability.export_filename_stem
        self._lock = asyncio.Lock()

    def suggested_filename(self, fmt: ExportFormat) -> str:
        return f"{self._filename_stem}.{fmt.file_extension}"

    async def export(
        self,
        fmt: ExportFormat,
        options: Optional[ExportOptions] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ExportResult:
        """
        Export the data set.

        Returns:
            Bytes plus suggested file name and MIME type

        Raises:
            StorageError: The snapshot could not be read
        """
        fmt = ExportFormat(fmt)
        options = options or ExportOptions()
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            if self._audit_logger:
                await self._audit_logger.log_export_started(fmt.value, correlation_id)

            try:
                snapshot = options.apply(await self._storage.snapshot())
            except StorageError as e:
                if self._audit_logger:
                    await self._audit_logger.log_export_failed(
                        export_format=fmt.value,
                        error_message=str(e),
                        correlation_id=correlation_id,
                    )
                raise

            try:
                content = await asyncio.to_thread(encode_snapshot, snapshot, fmt)
            except Exception as e:
                if self._audit_logger:
                    await self._audit_logger.log_error(
                        error_type="export_encoding",
                        error_message=str(e),
                        details={"format": fmt.value, "exception": type(e).__name__},
                        correlation_id=correlation_id,
                    )
                raise

            result = ExportResult(
                content=content,
                filename=self.suggested_filename(fmt),
                mime_type=fmt.mime_type,
                format=fmt,
                exported_at=snapshot.exported_at,
                client_count=len(snapshot.clients),
                entry_count=len(snapshot.entries),
            )

            if self._audit_logger:
                await self._audit_logger.log_export_completed(
                    export_format=fmt.value,
                    filename=result.filename,
                    client_count=result.client_count,
                    entry_count=result.entry_count,
                    size_bytes=len(content),
                    correlation_id=correlation_id,
                )

        return result


class ImportFlow:
    """
    Orchestrates an import.

    Flow:
    1. Read → bytes from the caller or the transport layer
    2. Decode → candidate snapshot (worker thread)
    3. Reconcile → drop duplicates, unlink unresolved client references
    4. Commit → one all-or-nothing write
    5. Report → ImportSummary

    There is no partial state: the call either returns a summary or
    raises, and on a raise the store is unchanged.
    """

    def __init__(
        self,
        storage: LogbookStorageInterface,
        audit_logger: Optional[AuditLogger] = None,
        max_import_bytes: Optional[int] = None,
    ):
        self._reconciler = Reconciler(storage)
        self._audit_logger = audit_logger
        self._max_import_bytes = (
            max_import_bytes or get_settings().portability.max_import_size_bytes
        )
        self._lock = asyncio.Lock()

    async def import_data(
        self,
        data: bytes,
        fmt: ExportFormat,
        correlation_id: Optional[UUID] = None,
    ) -> ImportSummary:
        """
        Import export bytes in the declared format.

        Raises:
            NotRecognizedFormatError: Not an export from this application
            FormatError: Export is corrupted or incomplete
            StorageCommitError: Commit failed, nothing was imported
        """
        fmt = ExportFormat(fmt)
        correlation_id = correlation_id or create_correlation_id()

        async with self._lock:
            if self._audit_logger:
                await self._audit_logger.log_import_started(fmt.value, len(data), correlation_id)

            try:
                candidate = await asyncio.to_thread(decode_payload, data, fmt)
            except (NotRecognizedFormatError, FormatError) as e:
                if self._audit_logger:
                    await self._audit_logger.log_import_rejected(e.code, str(e), correlation_id)
                raise
            except Exception as e:
                if self._audit_logger:
                    await self._audit_logger.log_error(
                        error_type="import_decoding",
                        error_message=str(e),
                        details={"format": fmt.value, "exception": type(e).__name__},
                        correlation_id=correlation_id,
                    )
                raise

            if self._audit_logger:
                await self._audit_logger.log_import_decoded(
                    client_count=len(candidate.clients),
                    entry_count=len(candidate.entries),
                    correlation_id=correlation_id,
                )

            try:
                summary = await self._reconciler.reconcile(candidate)
            except StorageCommitError as e:
                if self._audit_logger:
                    await self._audit_logger.log_import_failed(e.code, str(e), correlation_id)
                raise

            if self._audit_logger:
                await self._audit_logger.log_import_completed(
                    summary.model_dump(), correlation_id
                )

        return summary

    async def import_file(
        self,
        path: Union[str, Path],
        fmt: Optional[ExportFormat] = None,
        correlation_id: Optional[UUID] = None,
    ) -> ImportSummary:
        """
        Read a file through the transport layer and import it.

        The format defaults to the one implied by the file extension.

        Raises:
            AccessError: The file could not be read
            NotRecognizedFormatError: Unknown extension and no declared format,
                or not an export from this application
        """
        correlation_id = correlation_id or create_correlation_id()

        try:
            data = await asyncio.to_thread(read_import_file, path, self._max_import_bytes)
        except AccessError as e:
            if self._audit_logger:
                await self._audit_logger.log_import_rejected(e.code, str(e), correlation_id)
            raise

        fmt = fmt or guess_format(path)
        if fmt is None:
            raise NotRecognizedFormatError(f"Cannot tell the export format of {Path(path).name}")

        return await self.import_data(data, fmt, correlation_id)


async def create_app_components(
    use_storage: bool = True,
    db_path: Optional[Union[str, Path]] = None,
) -> tuple[ExportFlow, ImportFlow, LogbookStorageInterface]:
    """
    Create all application components.

    Args:
        use_storage: Open the SQLite store. Falls back to an in-memory
            store (and local-only audit logging) if it cannot be opened.
        db_path: Overrides the configured database path

    Returns:
        (export_flow, import_flow, storage)
    """
    app_settings = get_settings().app
    configure_log_level(app_settings.debug_mode)
    logger.info(
        "app_starting",
        environment=app_settings.app_environment,
        debug_mode=app_settings.debug_mode,
    )

    storage: LogbookStorageInterface
    audit_logger = AuditLogger()

    if use_storage:
        try:
            sqlite_storage = await SQLiteLogbookStorage.create(db_path)
        except StorageConnectionError as e:
            logger.warning("storage_unavailable", error=str(e))
            storage = InMemoryLogbookStorage()
        else:
            storage = sqlite_storage
            if get_settings().storage.persist_audit_events:
                audit_logger = AuditLogger(sqlite_storage)
    else:
        storage = InMemoryLogbookStorage()

    export_flow = ExportFlow(storage=storage, audit_logger=audit_logger)
    import_flow = ImportFlow(storage=storage, audit_logger=audit_logger)

    return export_flow, import_flow, storage
