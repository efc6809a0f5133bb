"""Shared pytest fixtures for rowforge unit and integration tests."""
from __future__ import annotations

from collections.abc import AsyncIterator, Iterator

import pytest
import pytest_asyncio

from rowforge.adapters import AioSqliteAdapter
from rowforge.config import reset_settings
from rowforge.db import Database
from tests.fixtures import RecordingAdapter, load_ddl


@pytest.fixture(autouse=True)
def fresh_settings() -> Iterator[None]:
    """Every test sees settings rebuilt from its own environment."""
    reset_settings()
    yield
    reset_settings()


@pytest.fixture()
def recorder() -> RecordingAdapter:
    return RecordingAdapter()


@pytest.fixture()
def fake_db(recorder: RecordingAdapter) -> Database:
    """A SQLite-flavoured database whose adapter only records statements."""
    return Database(recorder)


@pytest_asyncio.fixture()
async def sqlite_db() -> AsyncIterator[Database]:
    """An in-memory aiosqlite database with the sample schema and seed rows."""
    db = Database(AioSqliteAdapter(":memory:"))
    await db.connect()
    for statement in load_ddl("sqlite"):
        await db.query(statement)
    for name in ("core", "platform"):
        await db.table("teams").insert({"name": name})
    for name in ("admin", "editor", "viewer", "auditor"):
        await db.table("roles").insert({"name": name})
    yield db
    await db.close_all()
