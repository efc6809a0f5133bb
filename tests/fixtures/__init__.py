"""Test fixtures: sample DDL, model declarations and a recording adapter."""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import Any, Literal

from rowforge.adapters.base import Adapter, QueryResult
from rowforge.errors import AdapterError
from rowforge.model import FieldTransform, Model, ModelSchema

_FIXTURES_DIR = Path(__file__).parent


def load_ddl(target: Literal["sqlite", "postgres"] = "sqlite") -> list[str]:
    """Return the sample DDL for ``target`` split into single statements.

    Args:
        target: ``'sqlite'`` (default) or ``'postgres'``.

    Returns:
        Statements ready to be sent one by one through ``Database.query``.
    """
    text = (_FIXTURES_DIR / f"ddl_{target}.sql").read_text()
    return [stmt.strip() for stmt in text.split(";") if stmt.strip()]


def hash_password(raw: str) -> str:
    return hashlib.sha256(raw.encode()).hexdigest()


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class Team(Model):
    schema = ModelSchema(table="teams", fields=["id", "name"])


class User(Model):
    schema = ModelSchema(
        table="users",
        fields=["id", "name", "email", "age", "password", "tags", "team_id", "created_at"],
        searchable=["name", "email"],
        pivots={"user_roles": ("user_id", "role_id")},
        transforms={
            "password": FieldTransform(to_storage=hash_password),
            "tags": FieldTransform(
                to_storage=lambda tags: ",".join(tags),
                from_storage=lambda raw: raw.split(",") if raw else [],
            ),
        },
    )


class Role(Model):
    schema = ModelSchema(table="roles", fields=["id", "name"])


class Post(Model):
    schema = ModelSchema(table="posts", fields=["id", "user_id", "title"])


# ---------------------------------------------------------------------------
# Recording adapter
# ---------------------------------------------------------------------------


class RecordingAdapter(Adapter):
    """In-memory adapter that records statements and replays scripted results.

    Args:
        dialect_name: Dialect reported to the ``Database``.
        results: ``QueryResult`` objects returned in order; an empty
            ``QueryResult`` is returned once they run out.
        fail_on: Statement prefixes (case-insensitive) that raise ``AdapterError``.
    """

    def __init__(
        self,
        dialect_name: str = "sqlite",
        results: list[QueryResult] | None = None,
        fail_on: tuple[str, ...] = (),
    ) -> None:
        self._dialect_name = dialect_name
        self.results = list(results or [])
        self.fail_on = tuple(p.lower() for p in fail_on)
        self.statements: list[tuple[str, list[Any]]] = []
        self.connected = False
        self.released = 0

    @property
    def dialect_name(self) -> str:
        return self._dialect_name

    @property
    def sql(self) -> list[str]:
        """Only the SQL text of every recorded statement."""
        return [sql for sql, _ in self.statements]

    async def connect(self) -> None:
        self.connected = True

    async def query(self, sql: str, bindings: list[Any] | None = None) -> QueryResult:
        self.statements.append((sql, list(bindings or [])))
        if self.fail_on and sql.lower().startswith(self.fail_on):
            raise AdapterError(f"scripted failure for: {sql}", sql=sql)
        if self.results:
            return self.results.pop(0)
        return QueryResult()

    async def release(self) -> None:
        self.released += 1

    async def close(self) -> None:
        self.connected = False

    async def close_all(self) -> None:
        self.connected = False
