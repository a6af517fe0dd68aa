"""Minimal synchronous publish/subscribe channel.

Stands in for the host's event bus: the sync listener only depends on
``subscribe`` / ``unsubscribe``, so tests and embedding hosts can drive it
with this channel or any object offering the same two methods.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

E = TypeVar("E")

Handler = Callable[[E], None]


class EventChannel(Generic[E]):
    """Deliver published events to subscribers on the publishing thread.

    A subscriber that raises is logged and does not stop delivery to the
    remaining subscribers.
    """

    def __init__(self, name: str = "events") -> None:
        self.name = name
        self._handlers: list[Handler] = []

    def subscribe(self, handler: Handler) -> None:
        if handler not in self._handlers:
            self._handlers.append(handler)

    def unsubscribe(self, handler: Handler) -> None:
        try:
            self._handlers.remove(handler)
        except ValueError:
            logger.debug("Handler %r was not subscribed to %s", handler, self.name)

    @property
    def subscribers(self) -> tuple[Handler, ...]:
        return tuple(self._handlers)

    def publish(self, event: E) -> int:
        """Deliver *event* to every subscriber in subscription order.

        Returns:
            Number of subscribers that handled the event without raising.
        """
        delivered = 0
        for handler in list(self._handlers):
            try:
                handler(event)
            except Exception:
                logger.exception(
                    "Subscriber %r failed on %s event", handler, self.name
                )
                continue
            delivered += 1
        return delivered
