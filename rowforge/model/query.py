"""Builder bound to an entity type.

``ModelQuery`` is a :class:`~rowforge.query.builder.Query` whose terminal
methods hydrate entities through its :class:`ModelFactory`.  A builder
created for one entity instance (``target``) also fires that instance's
``query`` event after every executed statement.
"""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

from rowforge.adapters.base import QueryResult
from rowforge.config import get_settings
from rowforge.dialect import CompiledSQL
from rowforge.errors import NotFoundError, ValidationError
from rowforge.query.builder import Page, Query
from rowforge.query.operators import Connector, escape_like, split_operator
from rowforge.query.predicates import Comparison, PredicateGroup

if TYPE_CHECKING:
    from rowforge.model.factory import ModelFactory
    from rowforge.model.model import Model

#: Keys of ``get_many`` arguments that control paging and never filter.
RESERVED_KEYS: frozenset[str] = frozenset({"page", "limit", "order_by", "sequence", "keywords"})


class ModelQuery(Query):
    """A query over ``factory.schema.table`` that yields entities.

    Args:
        factory: Factory of the entity type being queried.
        target: Entity instance this builder belongs to, if any.
    """

    def __init__(self, factory: ModelFactory, target: Model | None = None) -> None:
        super().__init__(factory.schema.table, db=factory.db)
        self._factory = factory
        self._target = target

    @property
    def factory(self) -> ModelFactory:
        return self._factory

    async def _after_execute(self, compiled: CompiledSQL, result: QueryResult) -> None:
        if self._target is not None:
            await self._target.emit("query")

    async def _wrap_rows(self, rows: list[dict[str, Any]]) -> list[Any]:
        models = []
        for row in rows:
            model = self._factory.hydrate(row)
            await model.emit("get")
            models.append(model)
        return models

    # ------------------------------------------------------------------
    # Terminal methods
    # ------------------------------------------------------------------

    async def row(self) -> dict[str, Any] | None:
        """Return the first matching row as a plain dict, or ``None``."""
        return await super().get()

    async def get(self, id: Any = None) -> Model:
        """Fetch one entity, optionally filtered by primary key first.

        Raises:
            NotFoundError: If no row matches.
        """
        primary = self._factory.schema.primary
        if id is not None:
            self.where(primary, id)
        row = await self.row()
        if row is None:
            raise NotFoundError(
                self._factory.model_name, {primary: id} if id is not None else None
            )
        models = await self._wrap_rows([row])
        return models[0]

    async def all(self) -> list[Model]:
        """Fetch every matching entity.

        Raises:
            NotFoundError: If no row matches.
        """
        rows = await super().all()
        if not rows:
            raise NotFoundError(self._factory.model_name)
        return await self._wrap_rows(rows)

    async def paginate(self, page: int = 1, limit: int | None = None) -> Page:
        """Paginate entities; ``limit`` defaults to ``Settings.page_limit``."""
        return await super().paginate(page, limit or get_settings().page_limit)

    async def get_many(self, args: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Filter, search, order and paginate in one call.

        ``args`` is overlaid on the defaults ``page=1``,
        ``limit=<page_limit>``, ``order_by=<primary>``, ``sequence="asc"``
        and ``keywords=""``.  Every other key naming a declared field adds a
        filter; a value such as ``">18"`` filters with ``>`` and ``18``.
        A ``sequence`` other than ``asc``/``desc`` orders randomly.
        ``keywords`` (a string or a list) is matched with LIKE against the
        searchable fields, with ``%`` and ``\\`` taken literally.

        Returns:
            ``args`` merged with ``pages``, ``total`` and ``data``.
        """
        schema = self._factory.schema
        options: dict[str, Any] = {
            "page": 1,
            "limit": get_settings().page_limit,
            "order_by": schema.primary,
            "sequence": "asc",
            "keywords": "",
        }
        options.update(args or {})

        for field in schema.fields:
            if field in RESERVED_KEYS:
                continue
            value = options.get(field)
            if value is None or value == "":
                continue
            operator, value = split_operator(value)
            self.where(field, operator, value)

        sequence = str(options["sequence"] or "").lower()
        if sequence in ("asc", "desc"):
            self.order_by(options["order_by"], sequence)
        else:
            self.random()

        keywords = _keyword_list(options["keywords"])
        if keywords and schema.searchable:
            self._search(schema.searchable, keywords)

        page = await self.paginate(options["page"], options["limit"])
        return {**options, **page.to_dict()}

    def _search(self, fields: list[str], keywords: list[str]) -> None:
        """AND a group of ``field LIKE %kw%`` matches, OR-ed across fields and keywords."""
        outer = PredicateGroup()
        for field in fields:
            inner = PredicateGroup()
            for keyword in keywords:
                pattern = f"%{escape_like(str(keyword))}%"
                inner.add(Comparison(field, "LIKE", pattern, escaped=True), Connector.OR)
            outer.add(inner, Connector.OR)
        self.state.where.add(outer, Connector.AND)


def _keyword_list(keywords: Any) -> list[str]:
    """Normalise the ``keywords`` argument of ``get_many`` to non-empty strings."""
    if keywords is None:
        return []
    if isinstance(keywords, (str, int, float)) and not isinstance(keywords, bool):
        keywords = [keywords]
    elif not isinstance(keywords, (list, tuple)):
        raise ValidationError(
            f"Search keywords must be a string or a list, got {type(keywords).__name__}.",
            code="INVALID_KEYWORDS",
            details={"keywords": repr(keywords)},
        )
    return [str(k) for k in keywords if k is not None and str(k) != ""]
