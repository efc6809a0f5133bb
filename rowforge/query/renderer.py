"""Builder state → SQL statement rendering.

``StatementRenderer`` is the top-level orchestrator.  It wires together the
clause-level sub-builders and the predicate builder for one statement, then
assembles SELECT / aggregate / INSERT / UPDATE / DELETE text.  All
engine-specific behaviour is delegated to the injected ``Dialect``.

Sub-builder hierarchy
---------------------
StatementRenderer
  ├── PredicateBuilder     (predicates.py)
  ├── SelectClauseBuilder  (clauses.py)
  ├── FromClauseBuilder    (clauses.py)
  ├── JoinClauseBuilder    (clauses.py)
  ├── OrderClauseBuilder   (clauses.py)
  └── HavingClauseBuilder  (clauses.py)

Binding sharing
---------------
A single :class:`~rowforge.query.predicates.BindingList` is created per
render call and threaded through every sub-builder and every nested
sub-query (IN / EXISTS).  Clauses are rendered strictly in SQL order, so the
parameter list always matches the placeholder emission order:
SET → JOIN → WHERE → HAVING.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from rowforge.dialect.base import CompiledSQL, Dialect
from rowforge.errors import CompilationError
from rowforge.query.clauses import (
    FromClauseBuilder,
    HavingClauseBuilder,
    JoinClauseBuilder,
    OrderClauseBuilder,
    QueryState,
    SelectClauseBuilder,
)
from rowforge.query.identifiers import quote_field
from rowforge.query.operators import Aggregate
from rowforge.query.predicates import BindingList, PredicateBuilder

if TYPE_CHECKING:
    from rowforge.query.builder import Query

#: Column alias used by aggregate statements.
AGGREGATE_ALIAS = "aggregate"


class StatementRenderer:
    """Renders accumulated builder state to parameterized SQL.

    Args:
        dialect: Engine-specific dialect instance.
    """

    def __init__(self, dialect: Dialect) -> None:
        self._dialect = dialect

    @property
    def dialect(self) -> Dialect:
        return self._dialect

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def select(self, state: QueryState) -> CompiledSQL:
        """Render a full SELECT including ordering and pagination."""
        bindings = BindingList(self._dialect)
        sub = self._make_sub_builders(bindings)
        sql = self._build_select(state, sub, with_window=True)
        return self._compiled(sql, bindings)

    def aggregate(
        self,
        state: QueryState,
        func: str | Aggregate,
        field: str = "*",
        distinct: bool = False,
    ) -> CompiledSQL:
        """Render ``SELECT FUNC([DISTINCT] field) AS aggregate`` over the context.

        The WHERE / JOIN / GROUP BY / HAVING context is kept; ordering and
        LIMIT are dropped since they do not change a single aggregate.
        """
        name = func.value if isinstance(func, Aggregate) else str(func).upper()
        try:
            func_name = Aggregate(name).value
        except ValueError as exc:
            raise CompilationError(f"Unknown aggregate function '{func}'.", clause="SELECT") from exc
        bindings = BindingList(self._dialect)
        sub = self._make_sub_builders(bindings)
        column = quote_field(field, self._dialect)
        if distinct:
            column = f"DISTINCT {column}"
        alias = self._dialect.quote_identifier(AGGREGATE_ALIAS)
        parts = [f"SELECT {func_name}({column}) AS {alias}"]
        parts.extend(self._build_context(state, sub))
        return self._compiled("\n".join(parts), bindings)

    def count(self, state: QueryState) -> CompiledSQL:
        """Render the COUNT statement used by pagination."""
        return self.aggregate(state, Aggregate.COUNT, "*")

    def insert(
        self,
        state: QueryState,
        data: dict[str, Any],
        returning: str | None = None,
    ) -> CompiledSQL:
        """Render ``INSERT INTO t (cols) VALUES (...)``.

        Args:
            state: Builder state (only the target table is used).
            data: Column → value mapping for the single inserted row.
            returning: Primary-key column reported back on dialects that need
                an explicit ``RETURNING`` suffix.
        """
        table = self._require_table(state, "INSERT")
        if not data:
            raise CompilationError("INSERT needs at least one column.", clause="INSERT")
        bindings = BindingList(self._dialect)
        columns = ", ".join(quote_field(c, self._dialect) for c in data)
        values = ", ".join(bindings.add(v) for v in data.values())
        sql = f"INSERT INTO {quote_field(table, self._dialect)} ({columns}) VALUES ({values})"
        sql += self._dialect.insert_returning(returning)
        return self._compiled(sql, bindings)

    def update(self, state: QueryState, data: dict[str, Any]) -> CompiledSQL:
        """Render ``UPDATE t SET ... [WHERE ...]``; SET values bind first."""
        table = self._require_table(state, "UPDATE")
        if not data:
            raise CompilationError("UPDATE needs at least one column.", clause="UPDATE")
        bindings = BindingList(self._dialect)
        sub = self._make_sub_builders(bindings)
        assignments = ", ".join(
            f"{quote_field(c, self._dialect)} = {bindings.add(v)}" for c, v in data.items()
        )
        parts = [f"UPDATE {quote_field(table, self._dialect)} SET {assignments}"]
        if state.where:
            parts.append(f"WHERE {sub['pred'].build(state.where)}")
        return self._compiled("\n".join(parts), bindings)

    def delete(self, state: QueryState) -> CompiledSQL:
        """Render ``DELETE FROM t [WHERE ...]``."""
        table = self._require_table(state, "DELETE")
        bindings = BindingList(self._dialect)
        sub = self._make_sub_builders(bindings)
        parts = [f"DELETE FROM {quote_field(table, self._dialect)}"]
        if state.where:
            parts.append(f"WHERE {sub['pred'].build(state.where)}")
        return self._compiled("\n".join(parts), bindings)

    # ------------------------------------------------------------------
    # SELECT assembly
    # ------------------------------------------------------------------

    def _build_select(self, state: QueryState, sub: dict, with_window: bool) -> str:
        parts = [sub["select"].build(state.fields, state.distinct)]
        parts.extend(self._build_context(state, sub))

        if with_window:
            order_sql = sub["order"].build(state.orders, state.random)
            if order_sql:
                parts.append(order_sql)
            if state.limit is not None:
                parts.append(self._dialect.limit_clause(state.limit.offset, state.limit.length))

        return "\n".join(parts)

    def _build_context(self, state: QueryState, sub: dict) -> list[str]:
        """FROM, JOIN, WHERE, GROUP BY and HAVING, in emission order."""
        parts = [sub["from"].build(state.sources)]

        for join in state.joins:
            parts.append(sub["join"].build(join))

        if state.where:
            parts.append(f"WHERE {sub['pred'].build(state.where)}")

        if state.group_by:
            fields = ", ".join(quote_field(f, self._dialect) for f in state.group_by)
            parts.append(f"GROUP BY {fields}")

        if state.having is not None:
            parts.append(sub["having"].build(state.having))

        return parts

    # ------------------------------------------------------------------
    # Sub-builder wiring
    # ------------------------------------------------------------------

    def _make_sub_builders(self, bindings: BindingList) -> dict:
        """Construct the sub-builder graph for one rendering pass.

        Nested builders (IN / EXISTS sub-queries) are rendered through
        ``build_fn``, which reuses ``bindings`` so their values are spliced
        into the outer parameter list at the point of emission.
        """
        sub_builders: dict = {
            "select": SelectClauseBuilder(self._dialect),
            "from": FromClauseBuilder(self._dialect),
            "join": JoinClauseBuilder(self._dialect),
            "order": OrderClauseBuilder(self._dialect),
            "having": HavingClauseBuilder(bindings),
        }

        def build_fn(query: Query) -> str:
            return self._build_select(query.state, sub_builders, with_window=True)

        sub_builders["pred"] = PredicateBuilder(self._dialect, bindings, build_fn)
        return sub_builders

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _compiled(self, sql: str, bindings: BindingList) -> CompiledSQL:
        return CompiledSQL(
            sql=sql,
            params=bindings.values,
            dialect=self._dialect.dialect_name,
        )

    @staticmethod
    def _require_table(state: QueryState, clause: str) -> str:
        table = state.table
        if table is None:
            raise CompilationError(f"{clause} statement has no target table.", clause=clause)
        return table
