"""
Tests for the SQLite store.

Uses real SQLite (in-memory) for accurate testing.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from logbook.models.audit import AuditEventBuilder
from logbook.models.entities import Client, LogEntry, LogEntryType
from logbook.services.storage import (
    DuplicateError,
    SQLiteLogbookStorage,
    StorageConnectionError,
    StorageError,
)


class TestSQLiteInitialization:
    """Tests for opening the store."""

    async def test_create_in_memory(self):
        storage = await SQLiteLogbookStorage.create(":memory:")
        snapshot = await storage.snapshot()
        assert snapshot.clients == []
        assert snapshot.entries == []
        await storage.close()

    async def test_create_on_disk(self, tmp_path):
        db_path = tmp_path / "logbook.sqlite3"
        storage = await SQLiteLogbookStorage.create(db_path)
        await storage.close()
        assert db_path.exists()

    async def test_unopenable_path(self, tmp_path):
        with pytest.raises(StorageConnectionError):
            await SQLiteLogbookStorage.create(tmp_path / "missing" / "db.sqlite3")

    async def test_use_before_initialize(self):
        storage = SQLiteLogbookStorage(":memory:")
        with pytest.raises(StorageConnectionError):
            await storage.snapshot()


class TestSQLiteWrites:
    """Tests for staged inserts and commit."""

    async def test_insert_invisible_until_commit(self, sqlite_storage, client_a):
        await sqlite_storage.insert([client_a], [])
        assert (await sqlite_storage.snapshot()).clients == []

        await sqlite_storage.commit()
        assert (await sqlite_storage.snapshot()).clients == [client_a]

    async def test_rows_round_trip(self, sqlite_storage, client_a, client_b, sample_entries):
        await sqlite_storage.insert([client_a, client_b], sample_entries)
        await sqlite_storage.commit()

        snapshot = await sqlite_storage.snapshot()

        assert snapshot.clients == [client_a, client_b]
        assert snapshot.entries == sample_entries
        payment = next(e for e in snapshot.entries if e.type is LogEntryType.PAYMENT)
        assert payment.amount == Decimal("1250.75")

    async def test_existing_identifiers(self, sqlite_storage, client_a, sample_entries):
        await sqlite_storage.insert([client_a], sample_entries[:1])
        await sqlite_storage.commit()

        client_ids, entry_ids = await sqlite_storage.existing_identifiers()

        assert client_ids == {client_a.id}
        assert entry_ids == {sample_entries[0].id}

    async def test_rollback_discards_staged_rows(self, sqlite_storage, client_a):
        await sqlite_storage.insert([client_a], [])
        await sqlite_storage.rollback()
        await sqlite_storage.commit()

        assert (await sqlite_storage.snapshot()).clients == []

    async def test_duplicate_commit_applies_nothing(self, sqlite_storage, client_a):
        await sqlite_storage.insert([client_a], [])
        await sqlite_storage.commit()

        other = Client(name="Other")
        await sqlite_storage.insert([other, client_a], [])
        with pytest.raises(DuplicateError):
            await sqlite_storage.commit()

        assert (await sqlite_storage.snapshot()).clients == [client_a]

    async def test_unknown_client_reference_rejected(self, sqlite_storage):
        entry = LogEntry(description="orphan", client_id=uuid4())
        await sqlite_storage.insert([], [entry])

        with pytest.raises(StorageError):
            await sqlite_storage.commit()

        assert (await sqlite_storage.snapshot()).entries == []


class TestSQLiteAudit:
    """Tests for the audit log tables."""

    async def test_events_by_correlation_id(self, sqlite_storage):
        correlation_id = uuid4()
        started = AuditEventBuilder.export_started("csv", correlation_id)
        failed = AuditEventBuilder.export_failed("csv", "boom", correlation_id)
        unrelated = AuditEventBuilder.export_started("json", uuid4())

        for event in (started, failed, unrelated):
            assert await sqlite_storage.append_event(event) is True

        events = await sqlite_storage.get_events_by_correlation_id(correlation_id)
        assert [e.event_id for e in events] == [started.event_id, failed.event_id]

    async def test_recent_events_newest_first(self, sqlite_storage):
        first = AuditEventBuilder.import_started("json", 10, uuid4())
        second = AuditEventBuilder.import_started("csv", 20, uuid4())
        await sqlite_storage.append_event(first)
        await sqlite_storage.append_event(second)

        events = await sqlite_storage.get_recent_events(limit=1)
        assert [e.event_id for e in events] == [second.event_id]
