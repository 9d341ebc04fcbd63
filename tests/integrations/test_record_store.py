"""
Tests for record store adapters

Both stores are exercised through the same contract; the SQL store runs
against in-memory SQLite via aiosqlite.
"""

import pytest
import pytest_asyncio

from standup_tracker.database import create_session_factory, init_models
from standup_tracker.integrations.record_store import InMemoryRecordStore, SQLRecordStore


@pytest_asyncio.fixture
async def sql_store():
    engine, session_factory = create_session_factory("sqlite+aiosqlite:///:memory:")
    await init_models(engine)
    yield SQLRecordStore(session_factory)
    await engine.dispose()


@pytest_asyncio.fixture(params=["memory", "sql"])
async def store(request, sql_store):
    if request.param == "memory":
        return InMemoryRecordStore()
    return sql_store


class TestRecordStoreContract:
    @pytest.mark.asyncio
    async def test_put_and_get(self, store):
        await store.put("standups/alice/1.json", b'{"a": 1}')

        assert await store.get("standups/alice/1.json") == b'{"a": 1}'

    @pytest.mark.asyncio
    async def test_missing_key(self, store):
        assert await store.get("standups/nobody/1.json") is None

    @pytest.mark.asyncio
    async def test_put_overwrites(self, store):
        await store.put("k", b"first")
        await store.put("k", b"second")

        assert await store.get("k") == b"second"
        assert len(await store.list("k")) == 1

    @pytest.mark.asyncio
    async def test_list_by_prefix_in_key_order(self, store):
        for key in ["standups/bob/2.json", "standups/alice/2.json", "standups/alice/1.json", "other/x"]:
            await store.put(key, b"{}")

        listed = await store.list("standups/alice/")

        assert [obj.key for obj in listed] == ["standups/alice/1.json", "standups/alice/2.json"]
        assert all(obj.last_modified is not None for obj in listed)

    @pytest.mark.asyncio
    async def test_prefix_wildcards_are_literal(self, store):
        await store.put("standups/a_b/1.json", b"{}")
        await store.put("standups/axb/1.json", b"{}")

        listed = await store.list("standups/a_b/")

        assert [obj.key for obj in listed] == ["standups/a_b/1.json"]
