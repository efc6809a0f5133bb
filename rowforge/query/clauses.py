"""Clause-level state and SQL builders.

The dataclasses at the top of this module are the pieces of accumulated
builder state; each builder class below renders exactly one clause.
Builders that can bind values (``HavingClauseBuilder``) share the
statement's :class:`~rowforge.query.predicates.BindingList` so positions
stay consistent with the WHERE clause.

Classes
-------
SelectClauseBuilder   — ``SELECT [DISTINCT] <fields>``
FromClauseBuilder     — ``FROM <table> [AS alias], ...``
JoinClauseBuilder     — ``<KIND> JOIN <table> [ON a <op> b]``
OrderClauseBuilder    — ``ORDER BY ...`` / random order
HavingClauseBuilder   — ``HAVING <raw>`` with ``?`` markers bound in order
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any

from rowforge.dialect.base import Dialect
from rowforge.errors import CompilationError
from rowforge.query.identifiers import quote_field
from rowforge.query.predicates import BindingList, PredicateGroup

_MARKER_RE = re.compile(r"\?")


# ---------------------------------------------------------------------------
# Accumulated state
# ---------------------------------------------------------------------------


@dataclass
class SourceTable:
    """One entry of the FROM list."""

    table: str
    alias: str | None = None


@dataclass
class JoinSpec:
    """A single JOIN entry.

    Attributes:
        kind: ``INNER``, ``LEFT``, ``RIGHT``, ``FULL`` or ``CROSS``.
        table: Joined table (optionally ``"table alias"``).
        field1: Left-hand field of the ON comparison, or ``None``.
        operator: Comparison operator (``=`` by default).
        field2: Right-hand field of the ON comparison.
    """

    kind: str
    table: str
    field1: str | None = None
    operator: str = "="
    field2: str | None = None


@dataclass
class OrderSpec:
    """A single ORDER BY entry; ``direction`` ``None`` means database default."""

    field: str
    direction: str | None = None


@dataclass
class LimitSpec:
    """Pagination window."""

    offset: int
    length: int


@dataclass
class HavingSpec:
    """Raw HAVING text plus the values bound to its ``?`` markers."""

    raw: str
    bindings: list[Any] = field(default_factory=list)


@dataclass
class QueryState:
    """Everything a builder has accumulated for one logical statement."""

    sources: list[SourceTable] = field(default_factory=list)
    fields: list[str] = field(default_factory=list)
    distinct: bool = False
    joins: list[JoinSpec] = field(default_factory=list)
    where: PredicateGroup = field(default_factory=PredicateGroup)
    group_by: list[str] = field(default_factory=list)
    having: HavingSpec | None = None
    orders: list[OrderSpec] = field(default_factory=list)
    random: bool = False
    limit: LimitSpec | None = None

    @property
    def table(self) -> str | None:
        """The primary (first) source table."""
        return self.sources[0].table if self.sources else None


# ---------------------------------------------------------------------------
# Clause builders
# ---------------------------------------------------------------------------


class SelectClauseBuilder:
    """Builds the ``SELECT [DISTINCT] …`` clause."""

    def __init__(self, dialect: Dialect) -> None:
        self._dialect = dialect

    def build(self, fields: list[str], distinct: bool = False) -> str:
        prefix = "SELECT DISTINCT" if distinct else "SELECT"
        if not fields:
            return f"{prefix} *"
        items = ", ".join(quote_field(f, self._dialect) for f in fields)
        return f"{prefix} {items}"


class FromClauseBuilder:
    """Builds the ``FROM …`` fragment; several sources render as a comma join."""

    def __init__(self, dialect: Dialect) -> None:
        self._dialect = dialect

    def build(self, sources: list[SourceTable]) -> str:
        if not sources:
            raise CompilationError("Statement has no source table.", clause="FROM")
        quote = self._dialect.quote_identifier
        parts: list[str] = []
        for source in sources:
            table_sql = quote_field(source.table, self._dialect)
            if source.alias:
                table_sql = f"{table_sql} AS {quote(source.alias)}"
            parts.append(table_sql)
        return f"FROM {', '.join(parts)}"


class JoinClauseBuilder:
    """Builds a single ``JOIN … ON …`` fragment."""

    def __init__(self, dialect: Dialect) -> None:
        self._dialect = dialect

    def build(self, join: JoinSpec) -> str:
        table_sql = quote_field(join.table, self._dialect)
        sql = f"{join.kind} JOIN {table_sql}"
        if join.field1 is not None and join.field2 is not None:
            left = quote_field(join.field1, self._dialect)
            right = quote_field(join.field2, self._dialect)
            sql += f" ON {left} {join.operator} {right}"
        return sql


class OrderClauseBuilder:
    """Builds ``ORDER BY`` for explicit fields or random ordering."""

    def __init__(self, dialect: Dialect) -> None:
        self._dialect = dialect

    def build(self, orders: list[OrderSpec], random: bool = False) -> str:
        if random:
            return f"ORDER BY {self._dialect.random_function()}"
        if not orders:
            return ""
        parts: list[str] = []
        for order in orders:
            column = quote_field(order.field, self._dialect)
            parts.append(f"{column} {order.direction}" if order.direction else column)
        return f"ORDER BY {', '.join(parts)}"


class HavingClauseBuilder:
    """Builds ``HAVING <raw>``, replacing ``?`` markers with bound placeholders.

    The markers are replaced left to right and each consumes the next value
    of :attr:`HavingSpec.bindings`.
    """

    def __init__(self, bindings: BindingList) -> None:
        self._bindings = bindings

    def build(self, having: HavingSpec) -> str:
        markers = len(_MARKER_RE.findall(having.raw))
        if markers != len(having.bindings):
            raise CompilationError(
                f"HAVING clause has {markers} placeholder(s) but "
                f"{len(having.bindings)} binding(s).",
                clause="HAVING",
            )
        values = iter(having.bindings)
        sql = _MARKER_RE.sub(lambda _m: self._bindings.add(next(values)), having.raw)
        return f"HAVING {sql}"
