"""PostgreSQL dialect."""

from __future__ import annotations

from rowforge.dialect.base import Dialect
from rowforge.dialect.registry import DialectFactory


@DialectFactory.register("postgres")
class PostgresDialect(Dialect):
    """Renders PostgreSQL-flavoured parameterized SQL.

    Parameter style: ``$1, $2, ...`` – compatible with ``asyncpg``
    positional execution.  Because the placeholders are numbered, the
    renderer must emit them in a single left-to-right pass.

    PostgreSQL has no ``lastrowid``; INSERT statements get a
    ``RETURNING <primary>`` suffix so the adapter can read the key back.
    """

    @property
    def dialect_name(self) -> str:
        return "postgres"

    def param_placeholder(self, position: int) -> str:
        return f"${position}"

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace('"', '""')
        return f'"{escaped}"'

    def random_function(self) -> str:
        return "RANDOM()"

    def insert_returning(self, primary: str | None) -> str:
        if not primary:
            return ""
        return f" RETURNING {self.quote_identifier(primary)}"
