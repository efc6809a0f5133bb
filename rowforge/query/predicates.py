"""Predicate tree nodes and their SQL renderer.

The builder records WHERE conditions as a tree of small dataclasses rather
than SQL text.  Rendering is deferred until a statement is executed so that
placeholders are emitted, and values appended to the :class:`BindingList`,
in one deterministic left-to-right pass.  That single pass is what keeps the
parameter list aligned with the placeholders, including numbered
placeholders (``$1``, ``$2``...) and sub-queries spliced into IN / EXISTS.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Union

from rowforge.dialect.base import Dialect
from rowforge.errors import CompilationError
from rowforge.query.identifiers import quote_field
from rowforge.query.operators import PATTERN_OPS, Connector

if TYPE_CHECKING:
    from rowforge.query.builder import Query


# ---------------------------------------------------------------------------
# Runtime binding accumulator (shared across a whole statement)
# ---------------------------------------------------------------------------


@dataclass
class BindingList:
    """Accumulates positional values during a single rendering pass.

    A single instance is threaded through every clause renderer and every
    nested sub-query of one statement, so placeholder positions are
    globally consistent.
    """

    dialect: Dialect
    values: list[Any] = field(default_factory=list)

    def add(self, value: Any) -> str:
        """Store a value and return the placeholder that refers to it."""
        self.values.append(value)
        return self.dialect.param_placeholder(len(self.values))


# ---------------------------------------------------------------------------
# Tree nodes
# ---------------------------------------------------------------------------


@dataclass
class Comparison:
    """``field <op> value``.  ``escaped`` marks LIKE values built by escape_like."""

    field: str
    operator: str
    value: Any
    escaped: bool = False


@dataclass
class ColumnComparison:
    """``field <op> other`` where both sides are columns (no bound value)."""

    field: str
    operator: str
    other: str


@dataclass
class Between:
    """``field [NOT] BETWEEN low AND high``."""

    field: str
    low: Any
    high: Any
    negated: bool = False


@dataclass
class InList:
    """``field [NOT] IN (v1, v2, ...)``."""

    field: str
    values: list[Any]
    negated: bool = False


@dataclass
class InSubquery:
    """``field [NOT] IN (SELECT ...)``."""

    field: str
    query: Query
    negated: bool = False


@dataclass
class NullCheck:
    """``field IS [NOT] NULL``."""

    field: str
    negated: bool = False


@dataclass
class Exists:
    """``[NOT] EXISTS (SELECT ...)``."""

    query: Query
    negated: bool = False


@dataclass
class PredicateGroup:
    """An ordered list of ``(connector, node)`` pairs.

    The connector of the first pair is never rendered.  A group nested in
    another group renders inside parentheses.
    """

    items: list[tuple[Connector, PredicateNode]] = field(default_factory=list)

    def add(self, node: PredicateNode, connector: Connector = Connector.AND) -> None:
        self.items.append((connector, node))

    def clear(self) -> None:
        self.items.clear()

    def __bool__(self) -> bool:
        return bool(self.items)

    def __len__(self) -> int:
        return len(self.items)


PredicateNode = Union[
    Comparison,
    ColumnComparison,
    Between,
    InList,
    InSubquery,
    NullCheck,
    Exists,
    PredicateGroup,
]


# ---------------------------------------------------------------------------
# Predicate renderer
# ---------------------------------------------------------------------------


class PredicateBuilder:
    """Renders a :class:`PredicateGroup` to SQL text.

    The ``build_subquery_fn`` renders a nested builder as a SELECT using the
    **same** :class:`BindingList`; it is injected by the
    :class:`~rowforge.query.renderer.StatementRenderer`.

    Args:
        dialect: Target dialect.
        bindings: Shared positional value accumulator.
        build_subquery_fn: Callable rendering a nested ``Query`` as SELECT.
    """

    def __init__(
        self,
        dialect: Dialect,
        bindings: BindingList,
        build_subquery_fn: Callable[[Query], str] | None = None,
    ) -> None:
        self._dialect = dialect
        self._bindings = bindings
        self._build_subquery_fn = build_subquery_fn

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def build(self, group: PredicateGroup) -> str:
        """Render ``group`` without surrounding parentheses."""
        parts: list[str] = []
        for index, (connector, node) in enumerate(group.items):
            sql = self._dispatch(node)
            if index == 0:
                parts.append(sql)
            else:
                parts.append(f"{connector.value} {sql}")
        return " ".join(parts)

    # ------------------------------------------------------------------
    # Node dispatch
    # ------------------------------------------------------------------

    def _dispatch(self, node: PredicateNode) -> str:
        if isinstance(node, Comparison):
            return self._build_comparison(node)

        if isinstance(node, ColumnComparison):
            return f"{self._field(node.field)} {node.operator} {self._field(node.other)}"

        if isinstance(node, Between):
            column = self._field(node.field)
            low = self._bindings.add(node.low)
            high = self._bindings.add(node.high)
            keyword = "NOT BETWEEN" if node.negated else "BETWEEN"
            return f"{column} {keyword} {low} AND {high}"

        if isinstance(node, InList):
            column = self._field(node.field)
            values = ", ".join(self._bindings.add(v) for v in node.values)
            keyword = "NOT IN" if node.negated else "IN"
            return f"{column} {keyword} ({values})"

        if isinstance(node, InSubquery):
            column = self._field(node.field)
            keyword = "NOT IN" if node.negated else "IN"
            return f"{column} {keyword} ({self._build_subquery(node.query)})"

        if isinstance(node, NullCheck):
            keyword = "IS NOT NULL" if node.negated else "IS NULL"
            return f"{self._field(node.field)} {keyword}"

        if isinstance(node, Exists):
            keyword = "NOT EXISTS" if node.negated else "EXISTS"
            return f"{keyword} ({self._build_subquery(node.query)})"

        if isinstance(node, PredicateGroup):
            if not node:
                raise CompilationError("Cannot render an empty predicate group.", clause="WHERE")
            return f"({self.build(node)})"

        raise CompilationError(
            f"Unknown predicate node: {type(node).__name__}", clause="WHERE"
        )

    # ------------------------------------------------------------------
    # Node sub-renderers
    # ------------------------------------------------------------------

    def _field(self, ref: str) -> str:
        return quote_field(ref, self._dialect)

    def _build_comparison(self, node: Comparison) -> str:
        column = self._field(node.field)
        placeholder = self._bindings.add(node.value)
        sql = f"{column} {node.operator} {placeholder}"
        if node.escaped and node.operator in PATTERN_OPS:
            sql += self._dialect.like_escape_clause()
        return sql

    def _build_subquery(self, query: Query) -> str:
        if self._build_subquery_fn is None:
            raise CompilationError("No subquery build function configured.")
        return self._build_subquery_fn(query)
