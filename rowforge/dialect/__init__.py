"""rowforge dialect layer: placeholder style, quoting and engine quirks."""
from rowforge.dialect.base import CompiledSQL, Dialect
from rowforge.dialect.mysql import MySQLDialect
from rowforge.dialect.postgres import PostgresDialect
from rowforge.dialect.registry import DialectFactory
from rowforge.dialect.sqlite import SQLiteDialect

__all__ = [
    "CompiledSQL",
    "Dialect",
    "DialectFactory",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
]
