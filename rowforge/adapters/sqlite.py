"""aiosqlite-backed adapter."""
from __future__ import annotations

from typing import Any

import aiosqlite

from rowforge.adapters.base import Adapter, QueryResult
from rowforge.errors import AdapterError


class AioSqliteAdapter(Adapter):
    """Runs statements on a single aiosqlite connection.

    The connection is opened in autocommit mode (``isolation_level=None``)
    so that the ``begin`` / ``commit`` / ``rollback`` statements issued by
    :meth:`rowforge.db.Database.transaction` control transactions explicitly.
    SQLite has no pool: one connection serves every statement, which also
    satisfies the "one reserved connection per transaction" requirement.

    Args:
        database: File path, or ``":memory:"``.
        **connect_kwargs: Extra keyword arguments for ``sqlite3.connect``.
    """

    def __init__(self, database: str = ":memory:", **connect_kwargs: Any) -> None:
        self._database = database
        self._connect_kwargs = connect_kwargs
        self._conn: aiosqlite.Connection | None = None

    @property
    def dialect_name(self) -> str:
        return "sqlite"

    @property
    def database(self) -> str:
        return self._database

    async def connect(self) -> None:
        if self._conn is not None:
            return
        try:
            self._conn = await aiosqlite.connect(
                self._database, isolation_level=None, **self._connect_kwargs
            )
        except aiosqlite.Error as exc:
            raise AdapterError(f"Cannot open SQLite database '{self._database}': {exc}") from exc
        self._conn.row_factory = aiosqlite.Row

    async def query(self, sql: str, bindings: list[Any] | None = None) -> QueryResult:
        await self.connect()
        assert self._conn is not None
        try:
            cursor = await self._conn.execute(sql, list(bindings or []))
            try:
                rows = await cursor.fetchall()
                is_insert = sql.lstrip().upper().startswith("INSERT")
                return QueryResult(
                    rows=[dict(row) for row in rows],
                    insert_id=cursor.lastrowid if is_insert else None,
                    affected_rows=max(cursor.rowcount, 0),
                )
            finally:
                await cursor.close()
        except aiosqlite.Error as exc:
            raise AdapterError(str(exc), sql=sql) from exc

    async def release(self) -> None:
        # single connection, nothing to hand back
        return None

    async def close(self) -> None:
        if self._conn is not None:
            conn, self._conn = self._conn, None
            await conn.close()

    async def close_all(self) -> None:
        await self.close()
