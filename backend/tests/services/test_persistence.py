"""Tests for the key-value persistence backends."""

import pytest
import pytest_asyncio

from teachease.core.database import create_engine, create_session_factory, init_db
from teachease.services.persistence import MemoryKeyValueBackend, SQLAlchemyKeyValueBackend
from teachease.services.storage_service import StorageService


@pytest_asyncio.fixture
async def sql_backend(tmp_path):
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'device.db'}", echo=False)
    await init_db(engine)
    yield SQLAlchemyKeyValueBackend(create_session_factory(engine))
    await engine.dispose()


class TestSQLAlchemyKeyValueBackend:

    @pytest.mark.asyncio
    async def test_get_missing_key(self, sql_backend):
        assert await sql_backend.get("students") is None

    @pytest.mark.asyncio
    async def test_set_then_get(self, sql_backend):
        await sql_backend.set("students", "[]")

        assert await sql_backend.get("students") == "[]"

    @pytest.mark.asyncio
    async def test_set_replaces_value(self, sql_backend):
        await sql_backend.set("subjects", "[1]")
        await sql_backend.set("subjects", "[2]")

        assert await sql_backend.get("subjects") == "[2]"

    @pytest.mark.asyncio
    async def test_remove_ignores_missing_keys(self, sql_backend):
        await sql_backend.set("a", "1")
        await sql_backend.set("b", "2")

        await sql_backend.remove(["a", "missing"])

        assert await sql_backend.get("a") is None
        assert await sql_backend.get("b") == "2"

    @pytest.mark.asyncio
    async def test_remove_nothing(self, sql_backend):
        await sql_backend.remove([])

    @pytest.mark.asyncio
    async def test_store_round_trip_on_sqlite(self, sql_backend, make_student, make_subject):
        store = StorageService(sql_backend)
        await store.save_subject(make_subject())
        await store.save_student(make_student(), skip_sync=True)

        reopened = StorageService(sql_backend)

        assert (await reopened.get_students())[0].model_dump() == make_student().model_dump()
        assert await reopened.get_pending_sync() == {"subjects": ["subj-1"]}


class TestMemoryKeyValueBackend:

    @pytest.mark.asyncio
    async def test_initial_data(self):
        backend = MemoryKeyValueBackend({"students": "[]"})

        assert await backend.get("students") == "[]"
        assert backend.keys() == ["students"]

    @pytest.mark.asyncio
    async def test_remove(self):
        backend = MemoryKeyValueBackend({"a": "1", "b": "2"})

        await backend.remove(["a", "c"])

        assert backend.keys() == ["b"]
