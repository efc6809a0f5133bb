"""Pydantic models describing how an entity type maps onto a table.

A ``ModelSchema`` is declared once per :class:`~rowforge.model.Model`
subclass and never mutated afterwards::

    class User(Model):
        schema = ModelSchema(
            table="users",
            fields=["id", "name", "email", "password", "age"],
            searchable=["name", "email"],
            pivots={"user_roles": ("user_id", "role_id")},
            transforms={"password": FieldTransform(to_storage=hash_password)},
        )
"""
from __future__ import annotations

from typing import Any, Callable, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from rowforge.errors import SchemaError


class FieldTransform(BaseModel):
    """Optional conversion pair for one field.

    Attributes:
        to_storage: Applied when a value is written to the entity (attribute
            assignment, or ``assign(..., use_transforms=True)``).
        from_storage: Applied when a stored value is read back.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    to_storage: Optional[Callable[[Any], Any]] = None
    from_storage: Optional[Callable[[Any], Any]] = None


class ModelSchema(BaseModel):
    """Table binding for one entity type.

    Attributes:
        table: Table name.
        fields: Ordered list of declared field names; anything else is
            dropped on assignment.
        primary: Primary-key field (must be one of ``fields``).
        searchable: Fields matched by keyword search in ``get_many``.
        pivots: Pivot table → ``(near_key, far_key)``, where ``near_key``
            points at this entity's primary key and ``far_key`` at the
            associated entity's primary key.
        transforms: Field → :class:`FieldTransform`.
    """

    model_config = ConfigDict(extra="forbid", frozen=True)

    table: str = Field(min_length=1)
    fields: list[str] = Field(min_length=1)
    primary: str = "id"
    searchable: list[str] = Field(default_factory=list)
    pivots: dict[str, tuple[str, str]] = Field(default_factory=dict)
    transforms: dict[str, FieldTransform] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_declarations(self) -> ModelSchema:
        declared = set(self.fields)
        if len(declared) != len(self.fields):
            raise SchemaError(
                f"Table '{self.table}' declares duplicate fields.",
                details={"table": self.table, "fields": self.fields},
            )
        if self.primary not in declared:
            raise SchemaError(
                f"Primary key '{self.primary}' is not a declared field of '{self.table}'.",
                details={"table": self.table, "primary": self.primary},
            )
        unknown = [f for f in [*self.searchable, *self.transforms] if f not in declared]
        if unknown:
            raise SchemaError(
                f"Undeclared fields referenced by '{self.table}': {unknown}.",
                details={"table": self.table, "fields": unknown},
            )
        for pivot, (near, far) in self.pivots.items():
            if not near or not far or near == far:
                raise SchemaError(
                    f"Pivot '{pivot}' needs two distinct foreign keys.",
                    details={"table": self.table, "pivot": pivot, "keys": [near, far]},
                )
        return self

    def transform(self, field: str) -> FieldTransform | None:
        """Returns the transform registered for ``field``, or ``None``."""
        return self.transforms.get(field)

    def pivot(self, table: str) -> tuple[str, str] | None:
        """Returns the ``(near_key, far_key)`` pair for a pivot table, or ``None``."""
        return self.pivots.get(table)
