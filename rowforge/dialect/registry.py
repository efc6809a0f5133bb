"""Dialect registry (Open/Closed Principle).

``DialectFactory``
    Central registry for :class:`~rowforge.dialect.base.Dialect`
    implementations.  Adapters report a ``dialect_name``; the
    :class:`~rowforge.db.Database` looks the dialect up here, so supporting
    a new engine never requires editing the core.

Usage::

    from rowforge.dialect.registry import DialectFactory

    @DialectFactory.register("mssql")
    class MSSQLDialect(Dialect):
        ...
"""

from __future__ import annotations

from collections.abc import Callable
from typing import ClassVar

from rowforge.dialect.base import Dialect
from rowforge.errors import CompilationError


class DialectFactory:
    """Registry mapping dialect names to :class:`Dialect` classes.

    Example::

        @DialectFactory.register("mssql")
        class MSSQLDialect(Dialect):
            ...

        dialect = DialectFactory.create("mssql")
    """

    _dialects: ClassVar[dict[str, type[Dialect]]] = {}

    @classmethod
    def register(cls, name: str) -> Callable[[type[Dialect]], type[Dialect]]:
        """Decorator that registers a dialect class under ``name``.

        Args:
            name: The dialect name (e.g. ``"postgres"``).

        Returns:
            A decorator that registers and returns the dialect class.
        """

        def decorator(dialect_cls: type[Dialect]) -> type[Dialect]:
            cls._dialects[name] = dialect_cls
            return dialect_cls

        return decorator

    @classmethod
    def create(cls, name: str) -> Dialect:
        """Instantiate the dialect registered for ``name``.

        Raises:
            CompilationError: If no dialect is registered for ``name``.
        """
        dialect_cls = cls._dialects.get(name)
        if dialect_cls is None:
            raise CompilationError(
                f"Unsupported dialect: '{name}'. "
                f"Registered dialects: {cls.registered_dialects()}."
            )
        return dialect_cls()

    @classmethod
    def registered_dialects(cls) -> list[str]:
        """Return the sorted list of registered dialect names."""
        return sorted(cls._dialects)
