"""SQLite dialect."""
from __future__ import annotations

from rowforge.dialect.base import Dialect
from rowforge.dialect.registry import DialectFactory


@DialectFactory.register("sqlite")
class SQLiteDialect(Dialect):
    """Renders SQLite-flavoured parameterized SQL.

    Parameter style: ``?`` – compatible with ``sqlite3`` / ``aiosqlite``
    positional execution (``cursor.execute(sql, params)``).

    Note: SQLite has no default LIKE escape character, so an explicit
    ``ESCAPE '\\'`` is appended to escaped keyword matches.
    """

    @property
    def dialect_name(self) -> str:
        return "sqlite"

    def param_placeholder(self, position: int) -> str:
        return "?"

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace('"', '""')
        return f'"{escaped}"'

    def random_function(self) -> str:
        return "RANDOM()"

    def like_escape_clause(self) -> str:
        return " ESCAPE '\\'"
