"""Dialect abstractions: CompiledSQL and the Dialect ABC.

The Template Method pattern (GoF) is used:
- ``Dialect`` defines the hooks the statement renderer relies on.
- ``SQLiteDialect``, ``PostgresDialect`` and ``MySQLDialect`` override the
  engine-specific steps (positional placeholder style, quoting, random
  ordering, LIKE escaping, generated-key retrieval).
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any


@dataclass
class CompiledSQL:
    """The output of rendering one statement.

    Attributes:
        sql: The SQL string with positional placeholders.
        params: Values aligned positionally with the placeholders, in the
            exact order they were emitted.
        dialect: The target dialect name.
    """

    sql: str
    params: list[Any] = field(default_factory=list)
    dialect: str = ""


class Dialect(ABC):
    """Abstract base for engine-specific SQL flavours.

    Subclasses implement the dialect-specific methods; the
    ``StatementRenderer`` uses this interface via the Strategy pattern.
    """

    @abstractmethod
    def param_placeholder(self, position: int) -> str:
        """Return the placeholder for the bound value at ``position``.

        Args:
            position: 1-based position of the value in the parameter list.

        Returns:
            Dialect-specific placeholder string.
        """

    @abstractmethod
    def quote_identifier(self, name: str) -> str:
        """Return a properly-quoted SQL identifier.

        Args:
            name: Unquoted identifier (table or column name).

        Returns:
            Quoted identifier.
        """

    @abstractmethod
    def random_function(self) -> str:
        """Return the expression used for ``ORDER BY <random>``."""

    @property
    @abstractmethod
    def dialect_name(self) -> str:
        """Return the canonical dialect name (``'sqlite'``, ``'postgres'``...)."""

    def like_escape_clause(self) -> str:
        """Return the suffix that makes backslash the LIKE escape character.

        Engines where backslash already is the default escape return ``""``.
        """
        return ""

    def insert_returning(self, primary: str | None) -> str:
        """Return the suffix that reports the generated key of an INSERT.

        Engines exposing ``lastrowid`` through the driver return ``""``.

        Args:
            primary: Primary-key column, or ``None`` when unknown.
        """
        return ""

    def limit_clause(self, offset: int, length: int) -> str:
        """Render the pagination clause.  Values are inlined integers."""
        if offset:
            return f"LIMIT {length} OFFSET {offset}"
        return f"LIMIT {length}"
