"""The fluent clause accumulator.

``Query`` records structured clause state (see
:class:`~rowforge.query.clauses.QueryState`) through chainable mutators and
renders it through :class:`~rowforge.query.renderer.StatementRenderer` only
when a statement is compiled or executed.

Usage::

    rows = await (
        db.table("users")
        .select("id", "name")
        .where("age", ">", 18)
        .or_where(lambda q: q.where("role", "admin").where_not_null("verified_at"))
        .order_by("name")
        .limit(20)
        .all()
    )

Argument validation (operator whitelist, BETWEEN/IN arity, limits) happens
synchronously inside the mutators, before anything is rendered.  Field
names are not checked here; raw builders are not tied to declared fields.
"""
from __future__ import annotations

import inspect
import math
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING, Any, Callable

from rowforge.dialect import CompiledSQL, Dialect, SQLiteDialect
from rowforge.errors import InvalidRangeError, SchemaError, ValidationError
from rowforge.query.clauses import (
    HavingSpec,
    JoinSpec,
    LimitSpec,
    OrderSpec,
    QueryState,
    SourceTable,
)
from rowforge.query.operators import (
    Aggregate,
    Connector,
    JoinKind,
    normalize_direction,
    normalize_join_kind,
    normalize_operator,
)
from rowforge.query.predicates import (
    Between,
    ColumnComparison,
    Comparison,
    Exists,
    InList,
    InSubquery,
    NullCheck,
    PredicateGroup,
)
from rowforge.query.renderer import StatementRenderer

if TYPE_CHECKING:
    from rowforge.adapters.base import QueryResult
    from rowforge.db import Database

#: Callback receiving a fresh nested builder.
NestedCallback = Callable[["Query"], Any]


class _Unset:
    """Marks an argument that was not passed (``None`` is a real value)."""

    def __repr__(self) -> str:
        return "<unset>"


UNSET: Any = _Unset()


@dataclass
class Page:
    """One page of results plus the pagination metadata.

    Attributes:
        page: 1-based page number.
        limit: Page length.
        pages: Total number of pages, ``ceil(total / limit)``.
        total: Total number of matching rows.
        data: The rows (or entities) of this page.
    """

    page: int
    limit: int
    pages: int
    total: int
    data: list[Any] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "page": self.page,
            "limit": self.limit,
            "pages": self.pages,
            "total": self.total,
            "data": self.data,
        }


class Query:
    """Accumulates clause fragments for one logical statement.

    Args:
        table: Primary source table, or ``None`` for nested builders that
            call :meth:`from_` themselves.
        alias: Optional alias of the primary table.
        db: Database used by the executing methods.
        dialect: Explicit dialect; defaults to ``db.dialect`` or SQLite.
    """

    def __init__(
        self,
        table: str | None = None,
        *,
        alias: str | None = None,
        db: Database | None = None,
        dialect: Dialect | None = None,
    ) -> None:
        self._db = db
        self._dialect = dialect or (db.dialect if db is not None else SQLiteDialect())
        self._renderer = StatementRenderer(self._dialect)
        self.state = QueryState()
        if table is not None:
            self.state.sources.append(SourceTable(table, alias))

    # ------------------------------------------------------------------
    # Binding
    # ------------------------------------------------------------------

    @property
    def db(self) -> Database | None:
        return self._db

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    @property
    def table(self) -> str | None:
        return self.state.table

    def use(self, db: Database) -> Query:
        """Bind this builder to ``db`` (adopting its dialect)."""
        self._db = db
        self._dialect = db.dialect
        self._renderer = StatementRenderer(self._dialect)
        return self

    def _nested(self) -> Query:
        """A fresh builder for callbacks; shares database and dialect."""
        return Query(db=self._db, dialect=self._dialect)

    # ------------------------------------------------------------------
    # SELECT / FROM
    # ------------------------------------------------------------------

    def select(self, *fields: str | Sequence[str]) -> Query:
        """Append fields to the select list (empty list means ``*``)."""
        self.state.fields.extend(_flatten(fields))
        return self

    def distinct(self, enabled: bool = True) -> Query:
        self.state.distinct = enabled
        return self

    def from_(self, table: str, alias: str | None = None) -> Query:
        """Add a source table; several sources render as a comma join."""
        self.state.sources.append(SourceTable(table, alias))
        return self

    # ------------------------------------------------------------------
    # JOIN
    # ------------------------------------------------------------------

    def join(
        self,
        kind: str,
        table: str,
        field1: str | None = None,
        operator: str | None = None,
        field2: str | None = None,
    ) -> Query:
        """Add a join of ``kind`` (inner, left, right, full, cross).

        ``join("left", "roles", "users.role_id", "roles.id")`` means
        ``=``; pass all three comparison arguments for another operator.
        """
        canonical = normalize_join_kind(kind)
        if field2 is None and operator is not None:
            operator, field2 = "=", operator
        if field1 is not None and field2 is None:
            raise ValidationError(
                f"Join on '{table}' needs two fields to compare.",
                code="INVALID_JOIN",
                details={"table": table, "field1": field1},
            )
        if field1 is None and canonical != JoinKind.CROSS.value:
            raise ValidationError(
                f"{canonical} JOIN on '{table}' needs an ON comparison.",
                code="INVALID_JOIN",
                details={"table": table, "kind": kind},
            )
        op = normalize_operator(operator) if operator is not None else "="
        self.state.joins.append(JoinSpec(canonical, table, field1, op, field2))
        return self

    def inner_join(self, table: str, field1: str, operator: str | None = None, field2: str | None = None) -> Query:
        return self.join("inner", table, field1, operator, field2)

    def left_join(self, table: str, field1: str, operator: str | None = None, field2: str | None = None) -> Query:
        return self.join("left", table, field1, operator, field2)

    def right_join(self, table: str, field1: str, operator: str | None = None, field2: str | None = None) -> Query:
        return self.join("right", table, field1, operator, field2)

    def full_join(self, table: str, field1: str, operator: str | None = None, field2: str | None = None) -> Query:
        return self.join("full", table, field1, operator, field2)

    def cross_join(
        self,
        table: str,
        field1: str | None = None,
        operator: str | None = None,
        field2: str | None = None,
    ) -> Query:
        return self.join("cross", table, field1, operator, field2)

    # ------------------------------------------------------------------
    # WHERE
    # ------------------------------------------------------------------

    def where(self, field: Any, operator: Any = UNSET, value: Any = UNSET) -> Query:
        """Add an AND-joined condition.

        ``field`` may be:

        * a field name: ``where("age", 18)`` (``=``) or ``where("age", ">", 18)``;
        * a mapping of field → value, each compared with ``=``;
        * a callable receiving a fresh nested builder whose conditions
          become one parenthesized group.
        """
        return self._add_where(Connector.AND, field, operator, value)

    def or_where(self, field: Any, operator: Any = UNSET, value: Any = UNSET) -> Query:
        """Same as :meth:`where` but joined with OR."""
        return self._add_where(Connector.OR, field, operator, value)

    def where_column(self, field: str, operator: str, other: str | None = None) -> Query:
        """Compare two columns, e.g. to correlate an EXISTS sub-query.

        ``where_column("posts.user_id", "users.id")`` means ``=``.
        """
        return self._add_column(Connector.AND, field, operator, other)

    def or_where_column(self, field: str, operator: str, other: str | None = None) -> Query:
        return self._add_column(Connector.OR, field, operator, other)

    def where_between(self, field: str, bounds: Sequence[Any]) -> Query:
        return self._add_between(Connector.AND, field, bounds, negated=False)

    def where_not_between(self, field: str, bounds: Sequence[Any]) -> Query:
        return self._add_between(Connector.AND, field, bounds, negated=True)

    def or_where_between(self, field: str, bounds: Sequence[Any]) -> Query:
        return self._add_between(Connector.OR, field, bounds, negated=False)

    def or_where_not_between(self, field: str, bounds: Sequence[Any]) -> Query:
        return self._add_between(Connector.OR, field, bounds, negated=True)

    def where_in(self, field: str, values: Sequence[Any] | NestedCallback) -> Query:
        return self._add_in(Connector.AND, field, values, negated=False)

    def where_not_in(self, field: str, values: Sequence[Any] | NestedCallback) -> Query:
        return self._add_in(Connector.AND, field, values, negated=True)

    def or_where_in(self, field: str, values: Sequence[Any] | NestedCallback) -> Query:
        return self._add_in(Connector.OR, field, values, negated=False)

    def or_where_not_in(self, field: str, values: Sequence[Any] | NestedCallback) -> Query:
        return self._add_in(Connector.OR, field, values, negated=True)

    def where_null(self, field: str) -> Query:
        self.state.where.add(NullCheck(field), Connector.AND)
        return self

    def where_not_null(self, field: str) -> Query:
        self.state.where.add(NullCheck(field, negated=True), Connector.AND)
        return self

    def or_where_null(self, field: str) -> Query:
        self.state.where.add(NullCheck(field), Connector.OR)
        return self

    def or_where_not_null(self, field: str) -> Query:
        self.state.where.add(NullCheck(field, negated=True), Connector.OR)
        return self

    def where_exists(self, callback: NestedCallback) -> Query:
        return self._add_exists(Connector.AND, callback, negated=False)

    def where_not_exists(self, callback: NestedCallback) -> Query:
        return self._add_exists(Connector.AND, callback, negated=True)

    def or_where_exists(self, callback: NestedCallback) -> Query:
        return self._add_exists(Connector.OR, callback, negated=False)

    def or_where_not_exists(self, callback: NestedCallback) -> Query:
        return self._add_exists(Connector.OR, callback, negated=True)

    # ------------------------------------------------------------------
    # ORDER / GROUP / HAVING / LIMIT
    # ------------------------------------------------------------------

    def order_by(self, field: str, direction: str | None = None) -> Query:
        """Order by ``field``; ``direction`` is ``asc``/``desc`` or database default."""
        self.state.orders.append(OrderSpec(field, normalize_direction(direction)))
        self.state.random = False
        return self

    def random(self) -> Query:
        """Order rows randomly; replaces any ``order_by``."""
        self.state.orders.clear()
        self.state.random = True
        return self

    def group_by(self, *fields: str | Sequence[str]) -> Query:
        self.state.group_by.extend(_flatten(fields))
        return self

    def having(self, raw: str, *bindings: Any) -> Query:
        """Set a raw HAVING clause; ``?`` markers bind ``bindings`` in order."""
        self.state.having = HavingSpec(raw, list(bindings))
        return self

    def limit(self, offset: int, length: int | None = None) -> Query:
        """``limit(n)`` takes ``n`` rows; ``limit(offset, length)`` skips first."""
        if length is None:
            offset, length = 0, offset
        for name, value in (("offset", offset), ("length", length)):
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ValidationError(
                    f"Limit {name} must be a non-negative integer, got {value!r}.",
                    code="INVALID_LIMIT",
                    details={name: value},
                )
        self.state.limit = LimitSpec(offset, length)
        return self

    def reset(self) -> Query:
        """Clear WHERE and LIMIT so the builder can be re-targeted."""
        self.state.where.clear()
        self.state.limit = None
        return self

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def to_select(self) -> CompiledSQL:
        return self._renderer.select(self.state)

    def to_insert(self, data: Mapping[str, Any], returning: str | None = None) -> CompiledSQL:
        return self._renderer.insert(self.state, dict(data), returning)

    def to_update(self, data: Mapping[str, Any]) -> CompiledSQL:
        return self._renderer.update(self.state, dict(data))

    def to_delete(self) -> CompiledSQL:
        return self._renderer.delete(self.state)

    def to_aggregate(self, func: str | Aggregate, field: str = "*", distinct: bool = False) -> CompiledSQL:
        return self._renderer.aggregate(self.state, func, field, distinct)

    def to_count(self) -> CompiledSQL:
        return self._renderer.count(self.state)

    def __str__(self) -> str:
        return self.to_select().sql

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    async def execute(self, compiled: CompiledSQL) -> QueryResult:
        """Send ``compiled`` through the bound database."""
        if self._db is None:
            raise SchemaError(
                "This builder is not bound to a Database; call use(db) first.",
                details={"table": self.table},
            )
        result = await self._db.execute(compiled)
        await self._after_execute(compiled, result)
        return result

    async def _after_execute(self, compiled: CompiledSQL, result: QueryResult) -> None:
        """Hook for subclasses; called after every executed statement."""

    async def get(self) -> dict[str, Any] | None:
        """Return the first matching row, or ``None``."""
        offset = self.state.limit.offset if self.state.limit is not None else 0
        state = replace(self.state, limit=LimitSpec(offset, 1))
        result = await self.execute(self._renderer.select(state))
        return result.first()

    async def all(self) -> list[dict[str, Any]]:
        """Return every matching row."""
        result = await self.execute(self.to_select())
        return result.rows

    async def insert(self, data: Mapping[str, Any], returning: str | None = None) -> QueryResult:
        return await self.execute(self.to_insert(data, returning))

    async def update(self, data: Mapping[str, Any]) -> QueryResult:
        return await self.execute(self.to_update(data))

    async def delete(self) -> QueryResult:
        return await self.execute(self.to_delete())

    async def aggregate(self, func: str | Aggregate, field: str = "*", distinct: bool = False) -> Any:
        result = await self.execute(self.to_aggregate(func, field, distinct))
        return result.scalar()

    async def count(self, field: str = "*", distinct: bool = False) -> int:
        value = await self.aggregate(Aggregate.COUNT, field, distinct)
        return int(value or 0)

    async def max(self, field: str) -> Any:
        return await self.aggregate(Aggregate.MAX, field)

    async def min(self, field: str) -> Any:
        return await self.aggregate(Aggregate.MIN, field)

    async def avg(self, field: str) -> Any:
        return await self.aggregate(Aggregate.AVG, field)

    async def sum(self, field: str) -> Any:
        return await self.aggregate(Aggregate.SUM, field)

    async def paginate(self, page: int = 1, limit: int = 10) -> Page:
        """Count the matches, then fetch one LIMIT/OFFSET window of rows."""
        _check_page(page, limit)
        total = await self.count()
        state = replace(self.state, limit=LimitSpec((page - 1) * limit, limit))
        rows: list[Any] = []
        if total:
            result = await self.execute(self._renderer.select(state))
            rows = result.rows
        return Page(
            page=page,
            limit=limit,
            pages=math.ceil(total / limit),
            total=total,
            data=await self._wrap_rows(rows),
        )

    async def chunk(self, length: int, callback: Callable[[list[Any]], Any]) -> list[Any]:
        """Feed consecutive chunks of ``length`` rows to ``callback``.

        Stops after a short chunk or when the callback returns ``False``.

        Returns:
            The last chunk that was processed.
        """
        _check_page(1, length)
        offset = 0
        chunk: list[Any] = []
        while True:
            state = replace(self.state, limit=LimitSpec(offset, length))
            result = await self.execute(self._renderer.select(state))
            if not result.rows:
                return chunk
            chunk = await self._wrap_rows(result.rows)
            outcome = callback(chunk)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            if outcome is False or len(result.rows) < length:
                return chunk
            offset += length

    async def _wrap_rows(self, rows: list[dict[str, Any]]) -> list[Any]:
        """Turn raw rows into result items; subclasses hydrate entities."""
        return rows

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _add_where(self, connector: Connector, field: Any, operator: Any, value: Any) -> Query:
        group = self.state.where

        if callable(field):
            nested = self._nested()
            field(nested)
            if nested.state.where:
                group.add(nested.state.where, connector)
            return self

        if isinstance(field, Mapping):
            pairs = [Comparison(str(k), "=", v) for k, v in field.items()]
            if len(pairs) == 1:
                group.add(pairs[0], connector)
            elif pairs:
                inner = PredicateGroup()
                for pair in pairs:
                    inner.add(pair)
                group.add(inner, connector)
            return self

        if operator is UNSET:
            raise ValidationError(
                f"where() on '{field}' needs a value.",
                code="MISSING_VALUE",
                details={"field": field},
            )
        if value is UNSET:
            operator, value = "=", operator
        group.add(Comparison(str(field), normalize_operator(operator), value), connector)
        return self

    def _add_column(
        self, connector: Connector, field: str, operator: str, other: str | None
    ) -> Query:
        if other is None:
            operator, other = "=", operator
        node = ColumnComparison(field, normalize_operator(operator), other)
        self.state.where.add(node, connector)
        return self

    def _add_between(
        self, connector: Connector, field: str, bounds: Sequence[Any], negated: bool
    ) -> Query:
        if isinstance(bounds, (str, bytes)) or not isinstance(bounds, Sequence):
            raise InvalidRangeError(field, 1)
        if len(bounds) != 2:
            raise InvalidRangeError(field, len(bounds))
        self.state.where.add(Between(field, bounds[0], bounds[1], negated), connector)
        return self

    def _add_in(
        self,
        connector: Connector,
        field: str,
        values: Sequence[Any] | NestedCallback,
        negated: bool,
    ) -> Query:
        if callable(values):
            nested = self._nested()
            values(nested)
            self.state.where.add(InSubquery(field, nested, negated), connector)
            return self
        if isinstance(values, (str, bytes)) or not isinstance(values, (Sequence, set, frozenset)):
            raise ValidationError(
                f"IN on '{field}' needs a list of values or a callback.",
                code="INVALID_VALUES",
                details={"field": field, "values": repr(values)},
            )
        items = list(values)
        if not items:
            raise ValidationError(
                f"IN on '{field}' needs at least one value.",
                code="EMPTY_VALUES",
                details={"field": field},
            )
        self.state.where.add(InList(field, items, negated), connector)
        return self

    def _add_exists(self, connector: Connector, callback: NestedCallback, negated: bool) -> Query:
        nested = self._nested()
        callback(nested)
        self.state.where.add(Exists(nested, negated), connector)
        return self


def _flatten(fields: tuple[Any, ...]) -> list[str]:
    """Accept ``f("a", "b")`` as well as ``f(["a", "b"])``."""
    flat: list[str] = []
    for item in fields:
        if isinstance(item, (list, tuple)):
            flat.extend(str(f) for f in item)
        else:
            flat.append(str(item))
    return flat


def _check_page(page: int, limit: int) -> None:
    for name, value in (("page", page), ("limit", limit)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ValidationError(
                f"Pagination {name} must be a positive integer, got {value!r}.",
                code="INVALID_PAGE",
                details={name: value},
            )
