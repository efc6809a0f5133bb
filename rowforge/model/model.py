"""Entities: one table row with identity, persistence and associations.

Declare an entity type by subclassing :class:`Model` with a
:class:`~rowforge.model.schema.ModelSchema`; create and fetch instances
through the factory returned by :meth:`Model.using`::

    class User(Model):
        schema = ModelSchema(table="users", fields=["id", "name", "age"])

    users = User.using(db)
    user = users.new({"name": "Ada"})
    await user.save()
    user.age = 36
    await user.save()

Declared fields are read and written as attributes.  Assigning the primary
key is ignored; it is set only from an inserted or fetched row.
"""
from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any, ClassVar, Iterator, Mapping, Sequence

from rowforge.errors import AdapterError, NotFoundError, SchemaError, UnknownPivotError
from rowforge.log import get_logger
from rowforge.model.events import EventBus, Handler
from rowforge.model.query import ModelQuery
from rowforge.model.schema import ModelSchema

if TYPE_CHECKING:
    from rowforge.db import Database
    from rowforge.model.factory import ModelFactory

logger = get_logger(__name__)


class Model:
    """Base class for entities.

    Subclasses set ``schema``.  Handlers shared by every entity of a type
    live on an explicitly declared ``event_bus``; a subclass that declares
    none shares its base's, and one declared as
    ``EventBus(parent=Base.event_bus)`` runs the base handlers first.
    """

    schema: ClassVar[ModelSchema]
    event_bus: ClassVar[EventBus | None] = None

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        bus = cls.__dict__.get("event_bus")
        if bus is not None and not isinstance(bus, EventBus):
            raise SchemaError(
                f"{cls.__name__}.event_bus must be an EventBus.",
                details={"model": cls.__name__, "type": type(bus).__name__},
            )
        schema = cls.__dict__.get("schema")
        if schema is not None and not isinstance(schema, ModelSchema):
            raise SchemaError(
                f"{cls.__name__}.schema must be a ModelSchema.",
                details={"model": cls.__name__, "type": type(schema).__name__},
            )

    def __init__(self, factory: ModelFactory, data: Mapping[str, Any] | None = None) -> None:
        if not isinstance(getattr(type(self), "schema", None), ModelSchema):
            raise SchemaError(
                f"{type(self).__name__} has no schema.",
                details={"model": type(self).__name__},
            )
        object.__setattr__(self, "_factory", factory)
        object.__setattr__(self, "_data", {})
        object.__setattr__(self, "_events", factory.events.child())
        object.__setattr__(self, "_query", factory.query(target=self))
        if data:
            primary = self.schema.primary
            self.assign({k: v for k, v in data.items() if k != primary}, use_transforms=True)

    @classmethod
    def using(cls, db: Database, events: EventBus | None = None) -> ModelFactory:
        """Returns a factory creating ``cls`` entities bound to ``db``.

        ``events`` replaces the factory's default bus, a child of
        ``cls.event_bus``.
        """
        from rowforge.model.factory import ModelFactory

        return ModelFactory(cls, db, events)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def db(self) -> Database:
        return self._factory.db

    @property
    def factory(self) -> ModelFactory:
        return self._factory

    @property
    def query(self) -> ModelQuery:
        """The builder this instance fetches, updates and deletes through."""
        return self._query

    @property
    def primary_key(self) -> Any:
        """The primary-key value, ``None`` while the entity is new."""
        return self._data.get(self.schema.primary)

    @property
    def is_persisted(self) -> bool:
        return self.primary_key is not None

    # ------------------------------------------------------------------
    # Field access
    # ------------------------------------------------------------------

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_") or name not in type(self).schema.fields:
            raise AttributeError(f"{type(self).__name__!r} object has no attribute {name!r}")
        return self._read(name)

    def __setattr__(self, name: str, value: Any) -> None:
        schema = type(self).schema
        if name not in schema.fields:
            object.__setattr__(self, name, value)
            return
        if name == schema.primary:
            return
        self._data[name] = self._to_storage(name, value)

    def assign(self, data: Mapping[str, Any], use_transforms: bool = False) -> Model:
        """Copy the declared fields of ``data`` onto the entity.

        Undeclared keys are dropped silently.  With ``use_transforms`` a
        registered ``to_storage`` converts each value first.
        """
        fields = self.schema.fields
        for key, value in data.items():
            if key not in fields:
                continue
            self._data[key] = self._to_storage(key, value) if use_transforms else value
        return self

    def to_dict(self) -> dict[str, Any]:
        """The assigned fields in declaration order, read through ``from_storage``."""
        return {f: self._read(f) for f in self.schema.fields if f in self._data}

    def __iter__(self) -> Iterator[tuple[str, Any]]:
        return iter(self.to_dict().items())

    def __str__(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {self.schema.primary}={self.primary_key!r}>"

    def _read(self, field: str) -> Any:
        if field not in self._data:
            return None
        value = self._data[field]
        transform = self.schema.transform(field)
        if transform is not None and transform.from_storage is not None:
            return transform.from_storage(value)
        return value

    def _to_storage(self, field: str, value: Any) -> Any:
        transform = self.schema.transform(field)
        if transform is not None and transform.to_storage is not None:
            return transform.to_storage(value)
        return value

    # ------------------------------------------------------------------
    # Events
    # ------------------------------------------------------------------

    def on(self, event: str, handler: Handler) -> Model:
        """Register a handler for this instance only."""
        self._events.on(event, handler)
        return self

    async def emit(self, event: str) -> None:
        await self._events.emit(event, self)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    async def save(self) -> Model:
        """Update when the entity has a primary key, insert otherwise."""
        await self.emit("save")
        if self.is_persisted:
            await self.update()
        else:
            await self.insert()
        await self.emit("saved")
        return self

    async def insert(self, data: Mapping[str, Any] | None = None) -> Model:
        """Insert the entity, then reload it from the stored row."""
        primary = self.schema.primary
        if data:
            self.assign(data, use_transforms=True)
        await self.emit("insert")
        result = await self._query.insert(dict(self._data), returning=primary)
        if result.insert_id is None:
            raise AdapterError(
                f"Insert into '{self.schema.table}' did not report a generated key."
            )
        self._data[primary] = result.insert_id
        await self.emit("inserted")
        self._query.reset().where(primary, result.insert_id)
        return await self.get()

    async def update(self, data: Mapping[str, Any] | None = None) -> Model:
        """Write every assigned field back to the row, then reload it."""
        primary = self.schema.primary
        key = self._require_primary_key("update")
        self._query.reset().where(primary, key)
        if data:
            self.assign(data, use_transforms=True)
        await self.emit("update")
        changes = {k: v for k, v in self._data.items() if k != primary}
        await self._query.update(changes)
        await self.emit("updated")
        self._query.reset().where(primary, key)
        return await self.get()

    async def delete(self, id: Any = None) -> Model:
        """Delete this entity's row, or fetch the row ``id`` first and delete it.

        The instance keeps its data after the row is gone.
        """
        if id is not None:
            await self.get(id)
            return await self.delete()
        key = self._require_primary_key("delete")
        self._query.reset().where(self.schema.primary, key)
        await self.emit("delete")
        await self._query.delete()
        await self.emit("deleted")
        return self

    async def get(self, id: Any = None) -> Model:
        """Load a row into this entity, optionally filtered by primary key.

        With ``id`` the builder's earlier filters are cleared first.

        Raises:
            NotFoundError: If no row matches.
        """
        primary = self.schema.primary
        if id is not None:
            self._query.reset().where(primary, id)
        row = await self._query.row()
        if row is None:
            raise NotFoundError(type(self).__name__, {primary: id} if id is not None else None)
        self.assign(row)
        await self.emit("get")
        return self

    def _require_primary_key(self, action: str) -> Any:
        key = self.primary_key
        if key is None:
            raise SchemaError(
                f"Cannot {action} a {type(self).__name__} that has no primary key.",
                details={"model": type(self).__name__, "action": action},
            )
        return key

    # ------------------------------------------------------------------
    # Associations
    # ------------------------------------------------------------------

    def has(
        self, model_cls: type[Model], foreign_key: str, events: EventBus | None = None
    ) -> ModelQuery:
        """``model_cls`` rows whose ``foreign_key`` points at this entity.

        Every association accepts ``events``, the bus handed to the
        ``model_cls`` factory; see :meth:`ModelFactory.related`.
        """
        return (
            self._factory.related(model_cls, events)
            .query()
            .where(foreign_key, self.primary_key)
        )

    def has_through(
        self,
        model_cls: type[Model],
        middle_cls: type[Model],
        foreign_key1: str,
        foreign_key2: str,
        events: EventBus | None = None,
    ) -> ModelQuery:
        """``model_cls`` rows reached through ``middle_cls``.

        Args:
            foreign_key1: Field of ``model_cls`` pointing at the middle entity.
            foreign_key2: Field of ``middle_cls`` pointing at this entity.
        """
        middle = middle_cls.schema
        key = self.primary_key
        return (
            self._factory.related(model_cls, events)
            .query()
            .where_in(
                foreign_key1,
                lambda sub: sub.select(middle.primary).from_(middle.table).where(foreign_key2, key),
            )
        )

    def belongs_to(
        self, model_cls: type[Model], foreign_key: str, events: EventBus | None = None
    ) -> ModelQuery:
        """The ``model_cls`` row this entity's ``foreign_key`` points at."""
        return (
            self._factory.related(model_cls, events)
            .query()
            .where(model_cls.schema.primary, self._data.get(foreign_key))
        )

    def belongs_to_many(
        self, model_cls: type[Model], pivot_table: str, events: EventBus | None = None
    ) -> ModelQuery:
        """``model_cls`` rows linked to this entity through ``pivot_table``."""
        near, far = self._pivot(pivot_table)
        key = self.primary_key
        return (
            self._factory.related(model_cls, events)
            .query()
            .where_in(
                model_cls.schema.primary,
                lambda sub: sub.select(far).from_(pivot_table).where(near, key),
            )
        )

    async def associate(self, foreign_key: str, model: Model) -> Model:
        """Point ``foreign_key`` at ``model`` and save."""
        self._require_field(foreign_key)
        self._data[foreign_key] = model.primary_key
        return await self.save()

    async def dissociate(self, foreign_key: str) -> Model:
        """Clear ``foreign_key`` and save."""
        self._require_field(foreign_key)
        self._data[foreign_key] = None
        return await self.save()

    async def attach(self, pivot_table: str, models: Sequence[Model | Any]) -> Model:
        """Make ``pivot_table`` link this entity to exactly ``models``.

        ``models`` holds entities or primary-key values.  Links not in
        ``models`` are deleted and missing ones inserted, all in one
        transaction.
        """
        near, far = self._pivot(pivot_table)
        own = self._require_primary_key("attach")
        targets = list(dict.fromkeys(_keys_of(models)))

        async def reconcile(db: Database) -> Model:
            rows = await db.table(pivot_table).where(near, own).all()
            stored = [row[far] for row in rows]
            removed = [k for k in stored if k not in targets]
            added = [k for k in targets if k not in stored]
            logger.debug(
                "pivot_attach",
                pivot=pivot_table,
                key=own,
                removed=removed,
                added=added,
            )
            if removed:
                await db.table(pivot_table).where(near, own).where_in(far, removed).delete()
            for far_key in added:
                await db.table(pivot_table).insert({near: own, far: far_key})
            return self

        return await self.db.transaction(reconcile)

    async def detach(self, pivot_table: str, models: Sequence[Model | Any] | None = None) -> Model:
        """Delete the links to ``models``, or every link of this entity."""
        near, far = self._pivot(pivot_table)
        own = self._require_primary_key("detach")
        query = self.db.table(pivot_table).where(near, own)
        if models:
            query.where_in(far, _keys_of(models))
        await query.delete()
        return self

    def _pivot(self, pivot_table: str) -> tuple[str, str]:
        pivot = self.schema.pivot(pivot_table)
        if pivot is None:
            raise UnknownPivotError(pivot_table, sorted(self.schema.pivots))
        return pivot

    def _require_field(self, field: str) -> None:
        if field not in self.schema.fields:
            raise SchemaError(
                f"'{field}' is not a declared field of {type(self).__name__}.",
                details={"model": type(self).__name__, "field": field},
            )


def _keys_of(models: Sequence[Model | Any]) -> list[Any]:
    return [m.primary_key if isinstance(m, Model) else m for m in models]
