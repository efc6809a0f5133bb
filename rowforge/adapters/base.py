"""Adapter contract between the rowforge core and a database driver.

An adapter owns the driver connection.  The core only ever calls the
methods below, always sequentially, and never inspects driver-specific
errors: adapters wrap them in :class:`~rowforge.errors.AdapterError`.

Transactions are driven by the core through plain ``begin`` / ``commit`` /
``rollback`` statements sent to :meth:`Adapter.query`, so an adapter must
keep every statement of a transaction on the same connection.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class QueryResult:
    """What an adapter reports back for one executed statement.

    Attributes:
        rows: Result rows as ``column -> value`` dicts (empty for writes).
        insert_id: Database-generated key of an inserted row, if any.
        affected_rows: Number of rows changed by a write, if reported.
    """

    rows: list[dict[str, Any]] = field(default_factory=list)
    insert_id: Any = None
    affected_rows: int = 0

    def first(self) -> dict[str, Any] | None:
        """Return the first row, or ``None`` when the result is empty."""
        return self.rows[0] if self.rows else None

    def scalar(self) -> Any:
        """Return the first column of the first row, or ``None``."""
        row = self.first()
        if not row:
            return None
        return next(iter(row.values()))


class Adapter(ABC):
    """Abstract base for asynchronous database adapters."""

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Name of the dialect registered in :class:`~rowforge.dialect.DialectFactory`."""

    @abstractmethod
    async def connect(self) -> None:
        """Open (or reserve) the connection.  Must be idempotent."""

    @abstractmethod
    async def query(self, sql: str, bindings: list[Any] | None = None) -> QueryResult:
        """Execute ``sql`` with positional ``bindings``.

        Raises:
            AdapterError: On any driver failure.
        """

    @abstractmethod
    async def release(self) -> None:
        """Give the reserved connection back (to the pool, if any)."""

    @abstractmethod
    async def close(self) -> None:
        """Close this adapter's connection."""

    @abstractmethod
    async def close_all(self) -> None:
        """Close every connection the adapter's driver holds (pool included)."""
