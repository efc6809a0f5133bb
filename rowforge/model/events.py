"""Lifecycle event buses.

Buses are created explicitly and injected: an entity type may declare one
as ``event_bus``, each :class:`~rowforge.model.factory.ModelFactory` owns a
child of it (or a bus passed in), and each entity instance gets a child of
its factory's bus for instance-only handlers.  Handlers receive the entity
and may be plain functions or coroutines; they run in registration order,
parents first.
"""
from __future__ import annotations

import inspect
from typing import Any, Callable

from rowforge.errors import ValidationError

#: Events fired by entities.
EVENTS: frozenset[str] = frozenset(
    {
        "query",
        "insert",
        "inserted",
        "update",
        "updated",
        "save",
        "saved",
        "delete",
        "deleted",
        "get",
    }
)

Handler = Callable[[Any], Any]


class EventBus:
    """Ordered handler lists per event, with an optional parent bus.

    Args:
        parent: Bus whose handlers run before this bus' own handlers.
    """

    def __init__(self, parent: EventBus | None = None) -> None:
        self._parent = parent
        self._handlers: dict[str, list[Handler]] = {}

    @property
    def parent(self) -> EventBus | None:
        return self._parent

    def child(self) -> EventBus:
        """Returns a new bus chained to this one."""
        return EventBus(parent=self)

    def on(self, event: str, handler: Handler) -> EventBus:
        """Register ``handler`` for ``event``."""
        _check_event(event)
        self._handlers.setdefault(event, []).append(handler)
        return self

    def off(self, event: str, handler: Handler | None = None) -> EventBus:
        """Remove one handler, or every handler of ``event`` on this bus.

        Handlers registered on a parent bus are not affected.
        """
        _check_event(event)
        if handler is None:
            self._handlers.pop(event, None)
        elif handler in self._handlers.get(event, []):
            self._handlers[event].remove(handler)
        return self

    def handlers(self, event: str) -> list[Handler]:
        """All handlers for ``event`` in firing order (ancestors first)."""
        inherited = self._parent.handlers(event) if self._parent is not None else []
        return [*inherited, *self._handlers.get(event, [])]

    async def emit(self, event: str, entity: Any) -> None:
        """Call every handler of ``event`` with ``entity``, awaiting coroutines.

        A handler exception propagates and stops the remaining handlers.
        """
        _check_event(event)
        for handler in self.handlers(event):
            outcome = handler(entity)
            if inspect.isawaitable(outcome):
                await outcome


def _check_event(event: str) -> None:
    if event not in EVENTS:
        raise ValidationError(
            f"Unknown event '{event}'.",
            code="UNKNOWN_EVENT",
            details={"event": event, "allowed_events": sorted(EVENTS)},
        )
