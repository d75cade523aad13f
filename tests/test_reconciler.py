"""
Tests for the import reconciler.

Test strategy:
1. Deduplication by id against the store and within one file
2. Unresolved client references are cleared, not rejected
3. Commit failures leave the store untouched
"""

from datetime import datetime, timezone
from uuid import UUID

import pytest

from logbook.models.entities import (
    Client,
    ExportSnapshot,
    LogEntry,
    LogEntryType,
)
from logbook.portability import Reconciler, StorageCommitError
from logbook.services.storage import InMemoryLogbookStorage, StorageError


U1 = UUID("00000000-0000-4000-8000-000000000001")
U2 = UUID("00000000-0000-4000-8000-000000000002")
U9 = UUID("00000000-0000-4000-8000-000000000009")
E1 = UUID("00000000-0000-4000-8000-0000000000e1")
E2 = UUID("00000000-0000-4000-8000-0000000000e2")


class FailingCommitStorage(InMemoryLogbookStorage):
    """Store whose commit always fails."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.rollback_count = 0

    async def commit(self) -> None:
        raise StorageError("disk full")

    async def rollback(self) -> None:
        self.rollback_count += 1
        await super().rollback()


class UnreadableStorage(InMemoryLogbookStorage):
    async def existing_identifiers(self):
        raise StorageError("database is locked")


class TestReconcile:
    """Tests for the deduplicating merge."""

    async def test_new_data_is_imported(self):
        storage = InMemoryLogbookStorage()
        candidate = ExportSnapshot(
            clients=[Client(id=U1, name="Acme")],
            entries=[LogEntry(id=E1, client_id=U1)],
        )

        summary = await Reconciler(storage).reconcile(candidate)

        assert summary.imported_clients == 1
        assert summary.imported_entries == 1
        assert summary.skipped_clients == 0
        assert [c.id for c in storage.clients] == [U1]
        assert storage.entries[0].client_id == U1

    async def test_existing_client_skipped_and_new_one_linked(self):
        """Store has u1; file has u1, u2 and an entry pointing at u2."""
        storage = InMemoryLogbookStorage(clients=[Client(id=U1, name="Stored")])
        candidate = ExportSnapshot(
            clients=[Client(id=U1, name="From file"), Client(id=U2, name="New")],
            entries=[LogEntry(id=E1, client_id=U2)],
        )

        summary = await Reconciler(storage).reconcile(candidate)

        assert summary.total_clients == 2
        assert summary.imported_clients == 1
        assert summary.skipped_clients == 1
        assert summary.imported_entries == 1
        # Existing rows win
        names = {c.id: c.name for c in storage.clients}
        assert names == {U1: "Stored", U2: "New"}
        assert storage.entries[0].client_id == U2

    async def test_entry_can_link_to_stored_client(self):
        storage = InMemoryLogbookStorage(clients=[Client(id=U1, name="Stored")])
        candidate = ExportSnapshot(entries=[LogEntry(id=E1, client_id=U1)])

        await Reconciler(storage).reconcile(candidate)

        assert storage.entries[0].client_id == U1

    async def test_unresolved_client_reference_cleared(self):
        storage = InMemoryLogbookStorage()
        candidate = ExportSnapshot(entries=[LogEntry(id=E1, client_id=U9)])

        summary = await Reconciler(storage).reconcile(candidate)

        assert summary.imported_entries == 1
        assert storage.entries[0].client_id is None

    async def test_reimport_is_idempotent(self, sample_snapshot):
        storage = InMemoryLogbookStorage()
        reconciler = Reconciler(storage)

        await reconciler.reconcile(sample_snapshot)
        summary = await reconciler.reconcile(sample_snapshot)

        assert summary.imported_clients == 0
        assert summary.imported_entries == 0
        assert summary.skipped_clients == 2
        assert summary.skipped_entries == 3
        assert len(storage.entries) == 3
        assert storage.commit_count == 1

    async def test_nothing_new_means_no_commit(self, populated_storage, sample_snapshot):
        summary = await Reconciler(populated_storage).reconcile(sample_snapshot)

        assert summary.has_changes is False
        assert populated_storage.commit_count == 0

    async def test_duplicate_ids_within_file(self):
        storage = InMemoryLogbookStorage()
        candidate = ExportSnapshot(
            clients=[Client(id=U1, name="First"), Client(id=U1, name="Second")],
            entries=[
                LogEntry(id=E1, description="first"),
                LogEntry(id=E1, description="second"),
                LogEntry(id=E2, type=LogEntryType.NOTE),
            ],
        )

        summary = await Reconciler(storage).reconcile(candidate)

        assert summary.imported_clients == 1
        assert summary.skipped_clients == 1
        assert summary.imported_entries == 2
        assert summary.skipped_entries == 1
        assert storage.clients[0].name == "First"
        assert storage.entries[0].description == "first"

    async def test_missing_created_at_filled_in(self):
        storage = InMemoryLogbookStorage()
        before = datetime.now(timezone.utc)

        await Reconciler(storage).reconcile(ExportSnapshot(entries=[LogEntry(id=E1)]))

        assert storage.entries[0].created_at >= before

    async def test_present_created_at_kept(self):
        created = datetime(2024, 1, 1, tzinfo=timezone.utc)
        storage = InMemoryLogbookStorage()

        await Reconciler(storage).reconcile(
            ExportSnapshot(entries=[LogEntry(id=E1, created_at=created)])
        )

        assert storage.entries[0].created_at == created


class TestReconcileFailures:
    """Tests for the all-or-nothing guarantee."""

    async def test_commit_failure_rolls_back(self, sample_snapshot):
        storage = FailingCommitStorage()

        with pytest.raises(StorageCommitError) as exc_info:
            await Reconciler(storage).reconcile(sample_snapshot)

        assert storage.rollback_count == 1
        assert storage.clients == []
        assert storage.entries == []
        assert isinstance(exc_info.value.cause, StorageError)

    async def test_unreadable_store(self, sample_snapshot):
        with pytest.raises(StorageCommitError):
            await Reconciler(UnreadableStorage()).reconcile(sample_snapshot)
