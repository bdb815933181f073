"""In-process publisher for workflow events.

Services emit after their state change is flushed; subscribers (the
notification dispatcher, in practice) write into the same session. Because
that session cannot be used concurrently, subscribers are awaited one at a
time in the order they subscribed.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Iterable, Union

from sqlalchemy.ext.asyncio import AsyncSession

from nomina_engine.events.types import DomainEvent, EventCategory

logger = logging.getLogger(__name__)

EventHandler = Callable[[Any], Union[None, Awaitable[None]]]


@dataclass(frozen=True)
class HandlerRegistration:
    """One subscriber and the events it wants.

    Empty filters match everything.
    """

    handler: EventHandler
    event_names: frozenset[str] = frozenset()
    categories: frozenset[EventCategory] = frozenset()

    def matches(self, event: DomainEvent) -> bool:
        if self.event_names and event.event_type not in self.event_names:
            return False
        if self.categories and event.category not in self.categories:
            return False
        return True


def _as_iterable(value: Any) -> Iterable[Any]:
    return value if isinstance(value, (list, tuple, set, frozenset)) else (value,)


class EventEmitter:
    """Routes events to subscribers by event class or category.

    Usage:
        emitter = EventEmitter()
        emitter.on(PayrollAuthorized, dispatcher.on_payroll_authorized)
        await emitter.emit(PayrollAuthorized(...))

    Given a session, every subscriber runs inside a savepoint of it.
    """

    def __init__(self, session: AsyncSession | None = None) -> None:
        self._session = session
        self._registrations: list[HandlerRegistration] = []

    def on(self, event_type: type[DomainEvent] | list[type[DomainEvent]], handler: EventHandler) -> None:
        """Subscribe to one event class or a list of them."""
        names = frozenset(t.__name__ for t in _as_iterable(event_type))
        self._registrations.append(HandlerRegistration(handler, event_names=names))

    def on_category(
        self, category: EventCategory | list[EventCategory], handler: EventHandler
    ) -> None:
        """Subscribe to every event of a category (incidence, payroll, calendar)."""
        self._registrations.append(
            HandlerRegistration(handler, categories=frozenset(_as_iterable(category)))
        )

    def on_all(self, handler: EventHandler) -> None:
        self._registrations.append(HandlerRegistration(handler))

    def off(self, handler: EventHandler) -> None:
        """Drop every subscription of ``handler``."""
        self._registrations = [r for r in self._registrations if r.handler != handler]

    @property
    def handler_count(self) -> int:
        return len(self._registrations)

    async def emit(self, event: DomainEvent) -> list[Exception]:
        """Deliver ``event`` and return the exceptions subscribers raised.

        A failing subscriber is logged and skipped; the emitting operation
        and the remaining subscribers carry on. With a session, each
        subscriber runs in its own savepoint and is flushed there, so rows
        it wrote that the database refuses are discarded alone.
        """
        failures: list[Exception] = []
        for registration in self._registrations:
            if not registration.matches(event):
                continue
            try:
                await self._deliver(registration.handler, event)
            except Exception as exc:
                logger.exception(
                    "Subscriber %r failed on %s (%s)",
                    registration.handler,
                    event.event_type,
                    event.metadata.event_id,
                )
                failures.append(exc)
        return failures

    async def _deliver(self, handler: EventHandler, event: DomainEvent) -> None:
        if self._session is None:
            outcome = handler(event)
            if inspect.isawaitable(outcome):
                await outcome
            return

        async with self._session.begin_nested():
            outcome = handler(event)
            if inspect.isawaitable(outcome):
                await outcome
            await self._session.flush()
