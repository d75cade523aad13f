"""
Import Reconciler

Merges a decoded candidate set into the store.

Flow:
1. Read the identifiers already stored
2. Keep candidate clients whose id is new
3. Build the set of client ids an entry may link to (existing + new)
4. Keep candidate entries whose id is new; unlink any client reference
   that does not resolve
5. Stage everything and commit once (nothing staged -> no commit)
6. Report totals / imported / skipped per kind

Duplicates are decided by id alone. Existing rows always win; content
differences in the candidate are ignored.
"""

import asyncio
from uuid import UUID

import structlog

from logbook.models.entities import (
    Client,
    ExportSnapshot,
    ImportSummary,
    LogEntry,
    utc_now,
)
from logbook.portability.errors import StorageCommitError
from logbook.services.storage import LogbookStorageInterface, StorageError

logger = structlog.get_logger(__name__)


class Reconciler:
    """
    Deduplicating merge of an import candidate into a store.

    The store is assumed to be used exclusively by this reconciler for the
    duration of reconcile().
    """

    def __init__(self, storage: LogbookStorageInterface):
        self._storage = storage

    def _select_clients(
        self,
        candidates: list[Client],
        existing_ids: set[UUID],
    ) -> tuple[list[Client], set[UUID]]:
        """New clients, plus every client id entries may link to."""
        known_ids = set(existing_ids)
        new_clients = []
        for client in candidates:
            if client.id in known_ids:
                continue
            new_clients.append(client)
            known_ids.add(client.id)
        return new_clients, known_ids

    def _select_entries(
        self,
        candidates: list[LogEntry],
        existing_ids: set[UUID],
        client_ids: set[UUID],
    ) -> list[LogEntry]:
        seen_ids = set(existing_ids)
        imported_at = utc_now()
        new_entries = []

        for entry in candidates:
            if entry.id in seen_ids:
                continue
            seen_ids.add(entry.id)

            changes = {}
            if entry.client_id is not None and entry.client_id not in client_ids:
                logger.info(
                    "import_client_ref_unresolved",
                    entry_id=str(entry.id),
                    client_id=str(entry.client_id),
                )
                changes["client_id"] = None
            if entry.created_at is None:
                changes["created_at"] = imported_at

            new_entries.append(entry.model_copy(update=changes) if changes else entry)

        return new_entries

    async def _commit(self, clients: list[Client], entries: list[LogEntry]) -> None:
        try:
            await self._storage.insert(clients, entries)
            await self._storage.commit()
        except StorageError as e:
            await self._storage.rollback()
            raise StorageCommitError(f"Commit failed: {e}", cause=e) from e

    async def reconcile(self, candidate: ExportSnapshot) -> ImportSummary:
        """
        Merge the candidate into the store.

        Returns:
            Counts per kind

        Raises:
            StorageCommitError: The store could not be read or the commit
                failed. Nothing was imported.
        """
        try:
            existing_client_ids, existing_entry_ids = await self._storage.existing_identifiers()
        except StorageError as e:
            raise StorageCommitError(f"Could not read existing identifiers: {e}", cause=e) from e

        new_clients, linkable_ids = self._select_clients(candidate.clients, existing_client_ids)
        new_entries = self._select_entries(candidate.entries, existing_entry_ids, linkable_ids)

        summary = ImportSummary(
            total_clients=len(candidate.clients),
            imported_clients=len(new_clients),
            skipped_clients=len(candidate.clients) - len(new_clients),
            total_entries=len(candidate.entries),
            imported_entries=len(new_entries),
            skipped_entries=len(candidate.entries) - len(new_entries),
        )

        if summary.has_changes:
            # Once started, the commit runs to completion even if the caller is cancelled
            await asyncio.shield(self._commit(new_clients, new_entries))

        logger.info("import_reconciled", **summary.model_dump())
        return summary
