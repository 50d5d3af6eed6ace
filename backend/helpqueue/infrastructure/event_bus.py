"""Event Bus — in-process publish/subscribe fabric for queue events.

Invariants:
    - Constructed explicitly and injected; there is no module-level instance
    - Subscribers attach per topic; handlers may be sync or async
    - Delivery is fire-and-forget in subscription order: a failing handler is
      logged and the remaining handlers still receive the event
    - Nothing is persisted; events published with no subscribers are dropped
"""

import inspect
import logging
from collections import defaultdict
from typing import Any, Awaitable, Callable

from helpqueue.core.domain_types import EventTopic

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[None] | None]


class EventBus:
    """Named-topic publish/subscribe."""

    def __init__(self):
        self._subscribers: dict[EventTopic, list[Handler]] = defaultdict(list)

    def subscribe(self, topic: EventTopic, handler: Handler) -> Callable[[], None]:
        """Attach a handler; returns a callable that detaches it."""
        self._subscribers[topic].append(handler)

        def unsubscribe() -> None:
            if handler in self._subscribers[topic]:
                self._subscribers[topic].remove(handler)

        return unsubscribe

    def subscriber_count(self, topic: EventTopic) -> int:
        return len(self._subscribers[topic])

    async def publish(self, event) -> None:
        """Deliver an event (anything with a `.topic`) to every subscriber."""
        handlers = list(self._subscribers[event.topic])
        logger.debug(
            f"Publishing {event.topic.value} to {len(handlers)} subscriber(s)",
            extra={"event": event.topic.value},
        )
        for handler in handlers:
            try:
                result = handler(event)
                if inspect.isawaitable(result):
                    await result
            except Exception:
                logger.error(
                    f"Subscriber {getattr(handler, '__qualname__', handler)!r} "
                    f"failed on {event.topic.value}",
                    exc_info=True,
                    extra={"event": event.topic.value},
                )
