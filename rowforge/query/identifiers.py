"""Typed field-reference class.

Owns the parsing of ``table.column`` / ``column`` / ``*`` references so the
clause renderers never split strings themselves.
"""

from __future__ import annotations

from dataclasses import dataclass

from rowforge.dialect.base import Dialect


@dataclass(frozen=True)
class FieldReference:
    """A parsed ``table.column``, bare ``column`` or raw SQL expression.

    Attributes:
        table: Table qualifier, or ``None`` for unqualified references.
        column: Column name (``*`` for a wildcard).
        raw: ``True`` when the reference is an expression such as
            ``COUNT(*) AS total`` that must be emitted verbatim.
    """

    table: str | None
    column: str
    raw: bool = False

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def parse(cls, ref: str) -> FieldReference:
        """Parse a field reference string.

        Args:
            ref: The raw reference as passed to a builder method.

        Returns:
            A :class:`FieldReference` instance.
        """
        ref = ref.strip()
        if "(" in ref or " " in ref:
            return cls(table=None, column=ref, raw=True)
        if "." in ref:
            table, column = ref.split(".", 1)
            return cls(table=table, column=column)
        return cls(table=None, column=ref)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def render(self, dialect: Dialect) -> str:
        """Return the quoted SQL form of this reference."""
        if self.raw:
            return self.column
        column = "*" if self.column == "*" else dialect.quote_identifier(self.column)
        if self.table:
            return f"{dialect.quote_identifier(self.table)}.{column}"
        return column


def quote_field(ref: str, dialect: Dialect) -> str:
    """Shorthand for ``FieldReference.parse(ref).render(dialect)``."""
    return FieldReference.parse(ref).render(dialect)
