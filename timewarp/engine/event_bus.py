"""
Event bus for timewarp scenario replay.

Each clock action a scenario performs (adding a timer, moving the clock,
changing speed) becomes one event carrying an "action" key. Subscribers
either see every event or only the actions they asked for, so a consumer
interested in fired timers can listen to "set" alone.

Delivery is synchronous, in subscription order.
"""

from collections.abc import Callable, Iterable
from typing import Any

Event = dict[str, Any]
Subscriber = Callable[[Event], None]


class EventBus:
    """
    Publish-subscribe bus for replay events.

    If a subscriber raises, delivery stops and the error reaches the
    publisher.
    """

    def __init__(self) -> None:
        self._subscriptions: list[tuple[Subscriber, frozenset[str] | None]] = []
        self._closed: bool = False
        self.published: int = 0

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(
        self, handler: Subscriber, actions: Iterable[str] | None = None
    ) -> None:
        """
        Register 'handler'. With 'actions', it only receives events whose
        "action" is one of them.
        """
        if self._closed:
            raise RuntimeError("Cannot subscribe to a closed event bus")

        wanted = frozenset(actions) if actions is not None else None
        self._subscriptions.append((handler, wanted))

    def unsubscribe(self, handler: Subscriber) -> None:
        """
        Drop every subscription of 'handler'. Unknown handlers are ignored.
        """
        self._subscriptions = [
            (h, wanted) for h, wanted in self._subscriptions if h != handler
        ]

    def publish(self, event: Event) -> None:
        if self._closed:
            raise RuntimeError("Cannot publish to a closed event bus")

        action = event.get("action")
        for handler, wanted in list(self._subscriptions):
            if wanted is None or action in wanted:
                handler(event)
        self.published += 1

    def close(self) -> None:
        """
        Close the bus. Later subscriptions and publications raise
        RuntimeError.
        """
        self._closed = True
