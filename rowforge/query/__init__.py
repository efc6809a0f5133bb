"""rowforge query layer: fluent builder, predicate tree and SQL rendering."""
from rowforge.query.builder import Page, Query
from rowforge.query.clauses import QueryState
from rowforge.query.operators import (
    Aggregate,
    ComparisonOp,
    Connector,
    Direction,
    JoinKind,
    escape_like,
    split_operator,
)
from rowforge.query.predicates import BindingList, PredicateBuilder, PredicateGroup
from rowforge.query.renderer import StatementRenderer

__all__ = [
    "Aggregate",
    "BindingList",
    "ComparisonOp",
    "Connector",
    "Direction",
    "JoinKind",
    "Page",
    "PredicateBuilder",
    "PredicateGroup",
    "Query",
    "QueryState",
    "StatementRenderer",
    "escape_like",
    "split_operator",
]
