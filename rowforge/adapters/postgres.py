"""asyncpg-backed adapter."""
from __future__ import annotations

from typing import Any

import asyncpg

from rowforge.adapters.base import Adapter, QueryResult
from rowforge.errors import AdapterError

_ROW_RETURNING_PREFIXES = ("select", "with", "values", "show")


class AsyncpgAdapter(Adapter):
    """Runs statements on a connection acquired from an asyncpg pool.

    One connection is reserved per adapter on :meth:`connect` and kept until
    :meth:`release`, so every statement of a transaction lands on the same
    backend session.

    Args:
        dsn: PostgreSQL connection string.
        pool: An existing pool to acquire from instead of creating one.
        **pool_kwargs: Extra keyword arguments for ``asyncpg.create_pool``.
    """

    def __init__(
        self,
        dsn: str | None = None,
        *,
        pool: asyncpg.Pool | None = None,
        **pool_kwargs: Any,
    ) -> None:
        self._dsn = dsn
        self._pool = pool
        self._pool_kwargs = pool_kwargs
        self._conn: Any = None

    @property
    def dialect_name(self) -> str:
        return "postgres"

    async def connect(self) -> None:
        if self._conn is not None:
            return
        try:
            if self._pool is None:
                self._pool = await asyncpg.create_pool(self._dsn, **self._pool_kwargs)
            self._conn = await self._pool.acquire()
        except (asyncpg.PostgresError, asyncpg.InterfaceError, OSError) as exc:
            raise AdapterError(f"Cannot connect to PostgreSQL: {exc}") from exc

    async def query(self, sql: str, bindings: list[Any] | None = None) -> QueryResult:
        await self.connect()
        args = list(bindings or [])
        statement = sql.lstrip().lower()
        try:
            if statement.startswith(_ROW_RETURNING_PREFIXES) or " returning " in statement:
                records = await self._conn.fetch(sql, *args)
                rows = [dict(record) for record in records]
                insert_id = None
                if statement.startswith("insert") and rows:
                    insert_id = next(iter(rows[0].values()))
                return QueryResult(rows=rows, insert_id=insert_id, affected_rows=len(rows))
            status = await self._conn.execute(sql, *args)
        except (asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
            raise AdapterError(str(exc), sql=sql) from exc
        return QueryResult(affected_rows=_affected_rows(status))

    async def release(self) -> None:
        if self._conn is not None and self._pool is not None:
            conn, self._conn = self._conn, None
            await self._pool.release(conn)

    async def close(self) -> None:
        await self.release()

    async def close_all(self) -> None:
        await self.release()
        if self._pool is not None:
            pool, self._pool = self._pool, None
            await pool.close()


def _affected_rows(status: str) -> int:
    """Parse the row count out of a command tag such as ``UPDATE 3``."""
    tail = status.rsplit(" ", 1)[-1] if status else ""
    return int(tail) if tail.isdigit() else 0
