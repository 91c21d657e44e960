"""Typed in-process events and the bus that carries them."""

from __future__ import annotations

import inspect
from collections import defaultdict
from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from pvaregistry.domain.reconciliation.view import ReconciledView

log = getLogger(__name__)


class NotificationLevel(StrEnum):
    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"


@dataclass(frozen=True, slots=True)
class Event:
    """Base class for bus events."""


@dataclass(frozen=True, slots=True)
class ReloadRequested(Event):
    """Any mutation happened; views should be recomputed."""

    reason: str = ""


@dataclass(frozen=True, slots=True)
class CacheInvalidated(Event):
    """Cached remote query results must be dropped before the next reload."""

    reason: str = ""


@dataclass(frozen=True, slots=True)
class ViewRefreshed(Event):
    view: ReconciledView


@dataclass(frozen=True, slots=True)
class NotificationRaised(Event):
    level: NotificationLevel
    title: str
    message: str


type Handler[E: Event] = Callable[[E], Awaitable[None] | None]


class EventBus:
    """Explicit publish/subscribe registry.

    Handlers run in subscription order; awaitable results are awaited. Handler
    errors propagate to the publisher.
    """

    def __init__(self) -> None:
        self._handlers: defaultdict[type[Event], list[Handler[Event]]] = defaultdict(list)

    def subscribe[E: Event](self, event_type: type[E], handler: Handler[E]) -> Callable[[], None]:
        handlers = self._handlers[event_type]
        handlers.append(handler)  # pyright: ignore[reportArgumentType]

        def unsubscribe() -> None:
            if handler in handlers:
                handlers.remove(handler)  # pyright: ignore[reportArgumentType]

        return unsubscribe

    def subscribers(self, event_type: type[Event]) -> int:
        return len(self._handlers.get(event_type, ()))

    async def publish(self, event: Event) -> None:
        handlers = list(self._handlers.get(type(event), ()))
        log.debug("Publishing %s to %d handler(s)", type(event).__name__, len(handlers))
        for handler in handlers:
            result = handler(event)
            if inspect.isawaitable(result):
                await result

    async def notify(self, level: NotificationLevel, title: str, message: str) -> None:
        await self.publish(NotificationRaised(level=level, title=title, message=message))
