"""rowforge – an asynchronous object-relational mapping layer.

Public API
----------
``Database``
    Binds an adapter to its dialect; runs raw statements and transactions.

``Query``
    Fluent clause accumulator rendering parameterized SELECT / INSERT /
    UPDATE / DELETE and aggregate statements.

``Model`` / ``ModelSchema``
    Entities bound to a table, with field transforms, lifecycle events and
    associations.  ``Model.using(db)`` returns the ``ModelFactory`` that
    creates entities and their builders.

Re-exported types
-----------------
``CompiledSQL``, ``Page``, ``QueryResult``, the reference adapters, the
dialects, ``Settings`` and all error classes.

Extensibility
-------------
New dialects can be registered via::

    from rowforge.dialect import DialectFactory

    @DialectFactory.register("oracle")
    class OracleDialect(Dialect):
        ...

A ``Database`` picks the dialect registered under its adapter's
``dialect_name`` automatically.
"""

from __future__ import annotations

from rowforge.adapters import Adapter, AioSqliteAdapter, AsyncpgAdapter, QueryResult
from rowforge.config import Settings, get_settings, reset_settings
from rowforge.db import Database
from rowforge.dialect import (
    CompiledSQL,
    Dialect,
    DialectFactory,
    MySQLDialect,
    PostgresDialect,
    SQLiteDialect,
)
from rowforge.errors import (
    AdapterError,
    CompilationError,
    InvalidOperatorError,
    InvalidRangeError,
    NotFoundError,
    RowforgeError,
    SchemaError,
    TransactionError,
    UnknownPivotError,
    ValidationError,
)
from rowforge.log import configure_logging, get_logger
from rowforge.model import (
    EventBus,
    FieldTransform,
    Model,
    ModelFactory,
    ModelQuery,
    ModelSchema,
)
from rowforge.query import Page, Query, escape_like, split_operator

__all__ = [
    # Connection
    "Database",
    "Adapter",
    "AioSqliteAdapter",
    "AsyncpgAdapter",
    "QueryResult",
    # Query building
    "Query",
    "Page",
    "CompiledSQL",
    "escape_like",
    "split_operator",
    # Dialects
    "Dialect",
    "DialectFactory",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
    # Models
    "Model",
    "ModelSchema",
    "FieldTransform",
    "ModelFactory",
    "ModelQuery",
    "EventBus",
    # Configuration and logging
    "Settings",
    "get_settings",
    "reset_settings",
    "configure_logging",
    "get_logger",
    # Errors
    "RowforgeError",
    "ValidationError",
    "InvalidOperatorError",
    "InvalidRangeError",
    "UnknownPivotError",
    "NotFoundError",
    "AdapterError",
    "TransactionError",
    "SchemaError",
    "CompilationError",
]
