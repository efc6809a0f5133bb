"""Constants and helpers for builder operators and clause keywords.

The fluent builder accepts operators and keywords as plain strings; this
module defines the allowable sets and the normalisation helpers shared by
the builder and the predicate renderer.
"""

from __future__ import annotations

import re
from enum import Enum
from typing import Any

from rowforge.errors import InvalidOperatorError, ValidationError

# ---------------------------------------------------------------------------
# Keyword enums
# ---------------------------------------------------------------------------


class ComparisonOp(str, Enum):
    """Binary comparison operators accepted by ``where()``."""

    EQ = "="
    NE = "!="
    NE_ALT = "<>"
    LT = "<"
    GT = ">"
    LTE = "<="
    GTE = ">="
    LIKE = "LIKE"
    NOT_LIKE = "NOT LIKE"


class Connector(str, Enum):
    """Logical connectives between predicate nodes."""

    AND = "AND"
    OR = "OR"


class JoinKind(str, Enum):
    """Supported join kinds."""

    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"
    FULL = "FULL"
    CROSS = "CROSS"


class Direction(str, Enum):
    """ORDER BY directions."""

    ASC = "ASC"
    DESC = "DESC"


class Aggregate(str, Enum):
    """Single-column aggregate functions."""

    COUNT = "COUNT"
    MAX = "MAX"
    MIN = "MIN"
    AVG = "AVG"
    SUM = "SUM"


# ---------------------------------------------------------------------------
# Operator sets (keep frozenset for O(1) membership tests)
# ---------------------------------------------------------------------------

#: Whitelisted comparison operators, upper-cased.
COMPARISON_OPS: frozenset[str] = frozenset(op.value for op in ComparisonOp)

#: Pattern-match operators; their values may need an ESCAPE clause.
PATTERN_OPS: frozenset[str] = frozenset({ComparisonOp.LIKE.value, ComparisonOp.NOT_LIKE.value})

_PREFIX_RE = re.compile(r"^(<>|!=|<=|>=|<|>|=)(.+)$", re.DOTALL)
_INT_RE = re.compile(r"^[+-]?\d+$")
_DECIMAL_RE = re.compile(r"^[+-]?\d*\.\d+$")

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def normalize_operator(operator: str) -> str:
    """Return the canonical upper-case spelling of ``operator``.

    Raises:
        InvalidOperatorError: If the operator is not whitelisted.
    """
    canonical = " ".join(str(operator).split()).upper()
    if canonical not in COMPARISON_OPS:
        raise InvalidOperatorError(str(operator), sorted(COMPARISON_OPS))
    return canonical


def normalize_join_kind(kind: str) -> str:
    """Return the canonical join keyword for ``kind``."""
    canonical = str(kind).strip().upper()
    if canonical not in JoinKind.__members__:
        raise ValidationError(
            f"Join kind '{kind}' is not supported.",
            code="INVALID_JOIN",
            details={"kind": kind, "allowed_kinds": [k.value.lower() for k in JoinKind]},
        )
    return canonical


def normalize_direction(direction: str | None) -> str | None:
    """Return ``ASC``/``DESC``, or ``None`` for the database default."""
    if direction is None or direction == "":
        return None
    canonical = str(direction).strip().upper()
    if canonical not in Direction.__members__:
        raise ValidationError(
            f"Order direction '{direction}' is not supported.",
            code="INVALID_ORDER",
            details={"direction": direction, "allowed": ["asc", "desc"]},
        )
    return canonical


def escape_like(value: str) -> str:
    """Escape ``\\`` and ``%`` so they match literally inside a LIKE pattern.

    The backslash is escaped first, otherwise the escapes added for ``%``
    would themselves be doubled.
    """
    return value.replace("\\", "\\\\").replace("%", "\\%")


def split_operator(value: Any) -> tuple[str, Any]:
    """Split an operator-prefixed filter value such as ``">18"``.

    Only string values are inspected.  The leading token matching the
    whitelist becomes the operator and the remainder the value; without one
    the operator is ``=``.  A value spelled exactly as Python prints an int
    or a float (``"18"``, ``"-3"``, ``"2.5"``) is converted to that number
    with or without an operator, so ``"007"`` or ``"1.50"`` stay strings.

    Args:
        value: A raw dynamic-filter value.

    Returns:
        An ``(operator, value)`` pair.
    """
    if not isinstance(value, str):
        return "=", value
    match = _PREFIX_RE.match(value)
    if match is None:
        return "=", _to_number(value)
    return match.group(1), _to_number(match.group(2))


def _to_number(text: str) -> Any:
    if _INT_RE.match(text) and str(int(text)) == text:
        return int(text)
    if _DECIMAL_RE.match(text) and repr(float(text)) == text:
        return float(text)
    return text
