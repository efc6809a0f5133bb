"""MySQL dialect."""

from __future__ import annotations

from rowforge.dialect.base import Dialect
from rowforge.dialect.registry import DialectFactory


@DialectFactory.register("mysql")
class MySQLDialect(Dialect):
    """Renders MySQL-flavoured parameterized SQL.

    Parameter style: ``%s`` – compatible with ``PyMySQL`` / ``aiomysql``
    positional execution.

    Identifiers are quoted with backticks (`` ` ``) rather than double-quotes.
    Backslash is MySQL's default LIKE escape character, and the generated key
    is available from the driver, so neither suffix hook is overridden.
    """

    @property
    def dialect_name(self) -> str:
        return "mysql"

    def param_placeholder(self, position: int) -> str:
        return "%s"

    def quote_identifier(self, name: str) -> str:
        escaped = name.replace("`", "``")
        return f"`{escaped}`"

    def random_function(self) -> str:
        return "RAND()"
