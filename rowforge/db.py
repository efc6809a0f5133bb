"""Connection context: one adapter, one dialect, transaction control.

``Database`` is what builders and models are bound to.  It owns no SQL
knowledge beyond the raw ``begin`` / ``commit`` / ``rollback`` statements;
everything else arrives pre-rendered as :class:`~rowforge.dialect.CompiledSQL`.
"""
from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar, Union

from rowforge.adapters.base import Adapter, QueryResult
from rowforge.config import Settings, get_settings
from rowforge.dialect import CompiledSQL, Dialect, DialectFactory
from rowforge.errors import SchemaError, TransactionError
from rowforge.log import get_logger

if TYPE_CHECKING:
    from rowforge.query.builder import Query

T = TypeVar("T")

#: A transaction body: receives the database, may be sync or async.
TransactionCallback = Callable[["Database"], Union[T, Awaitable[T]]]

logger = get_logger(__name__)


class Database:
    """Binds an :class:`Adapter` to its :class:`Dialect`.

    Args:
        adapter: The driver adapter statements are sent through.
        dialect: Optional explicit dialect; defaults to the one registered
            under ``adapter.dialect_name``.

    Example::

        db = Database(AioSqliteAdapter("app.db"))
        async with db:
            rows = await db.table("users").where("active", 1).all()
    """

    def __init__(self, adapter: Adapter, dialect: Dialect | None = None) -> None:
        self._adapter = adapter
        self._dialect = dialect or DialectFactory.create(adapter.dialect_name)
        self._in_transaction = False

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def from_settings(cls, settings: Settings | None = None) -> Database:
        """Build a database from ``settings.database_url``.

        ``sqlite:///path`` (or ``sqlite+aiosqlite://``) selects
        :class:`~rowforge.adapters.AioSqliteAdapter`; ``postgresql://`` /
        ``postgres://`` selects :class:`~rowforge.adapters.AsyncpgAdapter`.

        Raises:
            SchemaError: If the URL scheme is not supported.
        """
        from rowforge.adapters import AioSqliteAdapter, AsyncpgAdapter

        settings = settings or get_settings()
        url = settings.database_url
        scheme, _, rest = url.partition("://")
        scheme = scheme.lower()
        if scheme in ("sqlite", "sqlite+aiosqlite"):
            path = rest[1:] if rest.startswith("/") else rest
            return cls(AioSqliteAdapter(path or ":memory:"))
        if scheme in ("postgresql", "postgres"):
            return cls(AsyncpgAdapter(url))
        raise SchemaError(
            f"Unsupported database URL scheme '{scheme}'.",
            details={"database_url": url},
        )

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def adapter(self) -> Adapter:
        return self._adapter

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def in_transaction(self) -> bool:
        return self._in_transaction

    # ------------------------------------------------------------------
    # Connection lifecycle
    # ------------------------------------------------------------------

    async def connect(self) -> Database:
        await self._adapter.connect()
        return self

    async def release(self) -> None:
        await self._adapter.release()

    async def close(self) -> None:
        await self._adapter.close()

    async def close_all(self) -> None:
        await self._adapter.close_all()

    async def __aenter__(self) -> Database:
        return await self.connect()

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def query(self, sql: str, bindings: list[Any] | None = None) -> QueryResult:
        """Send raw ``sql`` with positional ``bindings`` through the adapter.

        Adapter failures propagate unchanged.
        """
        bindings = list(bindings or [])
        result = await self._adapter.query(sql, bindings)
        logger.debug(
            "query_executed",
            sql=sql,
            params=len(bindings),
            rows=len(result.rows),
            dialect=self._dialect.dialect_name,
        )
        return result

    async def execute(self, compiled: CompiledSQL) -> QueryResult:
        """Execute a rendered statement."""
        return await self.query(compiled.sql, compiled.params)

    def table(self, name: str, alias: str | None = None) -> Query:
        """Return a raw builder targeting ``name`` bound to this database."""
        from rowforge.query.builder import Query

        return Query(name, alias=alias, db=self)

    # ------------------------------------------------------------------
    # Transactions
    # ------------------------------------------------------------------

    async def begin(self) -> None:
        if self._in_transaction:
            raise TransactionError("A transaction is already active on this database.")
        await self.query("begin")
        self._in_transaction = True
        logger.debug("transaction_started")

    async def commit(self) -> None:
        if not self._in_transaction:
            raise TransactionError("No active transaction to commit.")
        await self.query("commit")
        self._in_transaction = False
        logger.debug("transaction_committed")

    async def rollback(self) -> None:
        if not self._in_transaction:
            raise TransactionError("No active transaction to roll back.")
        try:
            await self.query("rollback")
        finally:
            self._in_transaction = False
        logger.debug("transaction_rolled_back")

    async def transaction(self, callback: TransactionCallback[T]) -> T:
        """Run ``callback`` inside ``begin`` … ``commit``.

        Any exception raised by the callback (or by ``commit``) triggers a
        rollback, after which the original exception is re-raised unchanged.
        Cancellation of the awaiting task rolls back the same way.

        Args:
            callback: Receives this database; may return an awaitable.

        Returns:
            Whatever the callback returned.
        """
        await self.begin()
        try:
            result = callback(self)
            if inspect.isawaitable(result):
                result = await result
            await self.commit()
        except BaseException as exc:
            if self._in_transaction:
                try:
                    await self.rollback()
                except Exception as rollback_exc:
                    logger.error(
                        "transaction_rollback_failed",
                        error=str(rollback_exc),
                        original_error=str(exc),
                    )
                    raise exc
            logger.warning("transaction_aborted", error=str(exc))
            raise
        return result
