"""
Tests for the standup record repository

Tests cover:
- Key layout per member
- Saving and loading records
- Batched iteration and windows
- Previous-update lookup ordering and limits
- Tolerance of unreadable objects and store failures
"""

from unittest.mock import AsyncMock

import pytest

from standup_tracker.core.exceptions import StoreError
from standup_tracker.models.analytics import DateRange
from standup_tracker.services.storage_service import RecordRepository


@pytest.fixture
def repository(memory_store):
    return RecordRepository(memory_store, batch_size=2)


class TestKeys:
    def test_record_key_layout(self, repository, record_factory):
        record = record_factory(member_id="alice")

        key = repository.record_key(record)

        assert key == f"standups/alice/{record.timestamp}_{record.id}.json"

    def test_member_ids_are_quoted(self):
        assert RecordRepository.member_prefix("jane doe/qa") == "standups/jane%20doe%2Fqa/"


class TestSaveAndLoad:
    @pytest.mark.asyncio
    async def test_round_trip(self, repository, record_factory):
        record = record_factory(tasks=2, blockers="Flaky CI", follow_up_questions=["Why?"])

        await repository.save_record(record)

        assert await repository.get_records("alice") == [record]

    @pytest.mark.asyncio
    async def test_save_failure_raises_store_error(self, record_factory):
        store = AsyncMock()
        store.put.side_effect = StoreError("disk full")
        repository = RecordRepository(store)

        with pytest.raises(StoreError):
            await repository.save_record(record_factory())

    @pytest.mark.asyncio
    async def test_unexpected_save_failure_is_wrapped(self, record_factory):
        store = AsyncMock()
        store.put.side_effect = OSError("connection reset")
        repository = RecordRepository(store)

        with pytest.raises(StoreError) as exc_info:
            await repository.save_record(record_factory())

        assert exc_info.value.key.startswith("standups/alice/")


class TestIteration:
    @pytest.mark.asyncio
    async def test_batches_are_bounded(self, repository, record_factory):
        for day in range(5):
            await repository.save_record(record_factory(day=day))

        sizes = [len(batch) async for batch in repository.iter_batches()]

        assert sizes == [2, 2, 1]

    @pytest.mark.asyncio
    async def test_member_scope(self, repository, record_factory):
        await repository.save_record(record_factory(member_id="alice"))
        await repository.save_record(record_factory(member_id="alicia"))

        records = await repository.get_records("alice")

        assert [r.member_id for r in records] == ["alice"]

    @pytest.mark.asyncio
    async def test_window(self, repository, record_factory):
        records = [record_factory(day=day) for day in range(4)]
        for record in records:
            await repository.save_record(record)

        window = DateRange(start=records[1].timestamp, end=records[2].timestamp)

        assert await repository.get_records(window=window) == records[1:3]

    @pytest.mark.asyncio
    async def test_records_are_oldest_first_across_members(self, repository, record_factory):
        await repository.save_record(record_factory(member_id="bob", day=0))
        await repository.save_record(record_factory(member_id="alice", day=3))
        await repository.save_record(record_factory(member_id="alice", day=1))

        records = await repository.get_records()

        assert [r.timestamp for r in records] == sorted(r.timestamp for r in records)

    @pytest.mark.asyncio
    async def test_invalid_objects_are_skipped(self, repository, memory_store, record_factory):
        await repository.save_record(record_factory(day=0))
        await memory_store.put("standups/alice/garbage.json", b"{not json")

        records = await repository.get_records("alice")

        assert len(records) == 1

    @pytest.mark.asyncio
    async def test_listing_failure_yields_nothing(self):
        store = AsyncMock()
        store.list.side_effect = StoreError("unavailable")
        repository = RecordRepository(store)

        assert await repository.get_records() == []

    @pytest.mark.asyncio
    async def test_read_failure_skips_object(self, repository, memory_store, record_factory):
        await repository.save_record(record_factory(day=0))
        await repository.save_record(record_factory(day=1))
        original_get = memory_store.get
        keys = [obj.key for obj in await memory_store.list("standups/")]

        async def flaky_get(key):
            if key == keys[0]:
                raise StoreError("read failed", key)
            return await original_get(key)

        memory_store.get = flaky_get

        records = await repository.get_records()

        assert len(records) == 1


class TestPreviousUpdates:
    @pytest.mark.asyncio
    async def test_returns_most_recent_oldest_first(self, repository, record_factory):
        for day in range(5):
            await repository.save_record(record_factory(day=day))

        previous = await repository.get_previous_updates("alice", limit=3)

        assert len(previous) == 3
        assert [r.timestamp for r in previous] == sorted(r.timestamp for r in previous)

    @pytest.mark.asyncio
    async def test_new_member_has_no_history(self, repository):
        assert await repository.get_previous_updates("nobody") == []
