"""Custom exception hierarchy for rowforge.

All public errors inherit from RowforgeError so callers can catch the base
class for any rowforge-specific failure.  Transport failures coming out of
an adapter are wrapped once in :class:`AdapterError` by the adapter itself
and then propagated by the core without modification.
"""
from __future__ import annotations

from typing import Any


class RowforgeError(Exception):
    """Base exception for all rowforge errors."""


class ValidationError(RowforgeError):
    """Raised when a builder receives malformed arguments.

    Always raised synchronously, before any SQL is rendered or sent.

    Args:
        message: Human-readable description.
        code: Machine-readable error code (e.g. ``INVALID_RANGE``).
        details: Extra context describing the offending arguments.
    """

    def __init__(
        self,
        message: str,
        code: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.details: dict[str, Any] = details or {}

    def to_error_response(self) -> dict[str, Any]:
        """Returns a structured error response suitable for API layers."""
        return {
            "error": self.code,
            "message": str(self),
            "details": self.details,
        }


class InvalidOperatorError(ValidationError):
    """Raised when a comparison operator is not in the whitelist."""

    def __init__(self, operator: str, allowed: list[str]) -> None:
        super().__init__(
            f"Operator '{operator}' is not supported.",
            code="INVALID_OPERATOR",
            details={"operator": operator, "allowed_operators": allowed},
        )


class InvalidRangeError(ValidationError):
    """Raised when a BETWEEN range does not carry exactly two bounds."""

    def __init__(self, field: str, received: int) -> None:
        super().__init__(
            f"BETWEEN on '{field}' requires exactly 2 bounds, got {received}.",
            code="INVALID_RANGE",
            details={"field": field, "received": received},
        )


class UnknownPivotError(ValidationError):
    """Raised when an association names a pivot table the model doesn't declare."""

    def __init__(self, pivot_table: str, declared: list[str]) -> None:
        super().__init__(
            f"Pivot table '{pivot_table}' is not declared on this model.",
            code="UNKNOWN_PIVOT",
            details={"pivot_table": pivot_table, "declared_pivots": declared},
        )


class NotFoundError(RowforgeError):
    """Raised when a fetch returned zero rows.

    Args:
        model: Name of the model (or table) that was searched.
        criteria: Optional description of what was searched for.
    """

    def __init__(self, model: str, criteria: dict[str, Any] | None = None) -> None:
        super().__init__(f"No {model} was found by searching the given data.")
        self.model = model
        self.criteria: dict[str, Any] = criteria or {}


class AdapterError(RowforgeError):
    """Opaque failure from the database driver (connectivity, constraint, syntax).

    Adapters raise this with the driver exception chained as ``__cause__``.

    Args:
        message: Human-readable description.
        sql: The statement being executed when the failure occurred.
    """

    def __init__(self, message: str, sql: str | None = None) -> None:
        super().__init__(message)
        self.sql = sql


class TransactionError(RowforgeError):
    """Raised when transaction primitives are misused (e.g. nested begin)."""


class SchemaError(RowforgeError):
    """Raised when a model is declared or used inconsistently.

    Args:
        message: Human-readable description.
        details: Extra context (model name, offending fields).
    """

    def __init__(
        self,
        message: str,
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message)
        self.details: dict[str, Any] = details or {}


class CompilationError(RowforgeError):
    """Raised when SQL rendering fails for an unexpected reason.

    Args:
        message: Human-readable description.
        clause: The clause being rendered when the error occurred.
    """

    def __init__(self, message: str, clause: str | None = None) -> None:
        super().__init__(message)
        self.clause = clause
