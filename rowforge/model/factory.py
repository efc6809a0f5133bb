"""The single construction point for entities and their builders."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Awaitable, Callable, Generic, Mapping, TypeVar, Union

from rowforge.model.events import EventBus
from rowforge.model.query import ModelQuery
from rowforge.model.schema import ModelSchema

if TYPE_CHECKING:
    from rowforge.db import Database
    from rowforge.model.model import Model
    from rowforge.query.builder import Page

ModelT = TypeVar("ModelT", bound="Model")
T = TypeVar("T")


class ModelFactory(Generic[ModelT]):
    """Creates entities of ``model_cls`` and builders bound to ``db``.

    Obtain one through :meth:`Model.using`::

        users = User.using(db)
        user = await users.insert({"name": "Ada", "age": 36})
        adults = await users.query().where("age", ">=", 18).all()

    Args:
        model_cls: The entity type.
        db: Database the entities and builders use.
        events: Bus handed to new entities; defaults to a child of
            ``model_cls.event_bus`` (a root bus when the type declares none).
    """

    def __init__(
        self,
        model_cls: type[ModelT],
        db: Database,
        events: EventBus | None = None,
    ) -> None:
        self.model_cls = model_cls
        self.db = db
        self.events = events if events is not None else EventBus(parent=model_cls.event_bus)
        self._related: dict[type[Model], ModelFactory] = {}

    @property
    def schema(self) -> ModelSchema:
        return self.model_cls.schema

    @property
    def model_name(self) -> str:
        return self.model_cls.__name__

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    def query(self, target: ModelT | None = None) -> ModelQuery:
        """A fresh builder over this entity's table."""
        return ModelQuery(self, target)

    def new(self, data: Mapping[str, Any] | None = None) -> ModelT:
        """A new, unsaved entity; the primary key is dropped from ``data``."""
        return self.model_cls(self, data)

    def hydrate(self, row: Mapping[str, Any]) -> ModelT:
        """An entity holding a fetched ``row`` verbatim (primary key included)."""
        model = self.model_cls(self)
        model.assign(row)
        return model

    def related(
        self, model_cls: type[Model], events: EventBus | None = None
    ) -> ModelFactory:
        """A factory for ``model_cls`` sharing this factory's database.

        Associations resolve through it.  ``events`` is used as the new
        factory's bus.  When omitted, ``model_cls`` itself resolves to this
        factory and any other type to the factory previously created here
        for it, so handlers registered on ``factory.related(Post).events``
        fire for ``user.has(Post, ...)``.
        """
        if events is None and model_cls is self.model_cls:
            return self
        if events is None and model_cls in self._related:
            return self._related[model_cls]
        factory = ModelFactory(model_cls, self.db, events)
        self._related[model_cls] = factory
        return factory

    # ------------------------------------------------------------------
    # Shortcuts
    # ------------------------------------------------------------------

    def select(self, *fields: Any) -> ModelQuery:
        return self.query().select(*fields)

    def where(self, field: Any, *args: Any) -> ModelQuery:
        return self.query().where(field, *args)

    def where_in(self, field: str, values: Any) -> ModelQuery:
        return self.query().where_in(field, values)

    def order_by(self, field: str, direction: str | None = None) -> ModelQuery:
        return self.query().order_by(field, direction)

    def limit(self, offset: int, length: int | None = None) -> ModelQuery:
        return self.query().limit(offset, length)

    async def get(self, id: Any = None) -> ModelT:
        return await self.query().get(id)

    async def all(self) -> list[ModelT]:
        return await self.query().all()

    async def get_many(self, args: Mapping[str, Any] | None = None) -> dict[str, Any]:
        return await self.query().get_many(args)

    async def paginate(self, page: int = 1, limit: int | None = None) -> Page:
        return await self.query().paginate(page, limit)

    async def count(self, field: str = "*", distinct: bool = False) -> int:
        return await self.query().count(field, distinct)

    async def insert(self, data: Mapping[str, Any]) -> ModelT:
        """Insert a new entity from ``data`` and return it refreshed."""
        model = self.new()
        await model.insert(data)
        return model

    async def delete(self, id: Any) -> ModelT:
        """Fetch the entity with primary key ``id`` and delete it."""
        model = self.new()
        await model.delete(id)
        return model

    async def transaction(self, callback: Callable[[Database], Union[T, Awaitable[T]]]) -> T:
        return await self.db.transaction(callback)
