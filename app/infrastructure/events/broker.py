"""In-process pub/sub for change events.

Each subscription owns a bounded ``asyncio.Queue``. Publishing never waits:
when a subscriber's queue is full the event is dropped for that subscriber
only. There is no persistence and no replay.
"""
import asyncio
import itertools
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, ClassVar

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Scope:
    """Delivery target: one room, or every subscriber when ``room`` is None."""
    room: str | None = None

    GLOBAL: ClassVar["Scope"]

    @classmethod
    def user(cls, user_id: int) -> "Scope":
        """The room every session of ``user_id`` listens on."""
        return cls(room=f"user:{user_id}")

    @classmethod
    def named(cls, name: str) -> "Scope":
        return cls(room=name)

    @property
    def is_global(self) -> bool:
        return self.room is None


Scope.GLOBAL = Scope()


@dataclass(frozen=True)
class Event:
    event_type: str
    payload: dict[str, Any] = field(default_factory=dict)
    scope: Scope = Scope.GLOBAL

    def to_dict(self) -> dict:
        return {"eventType": self.event_type, "payload": self.payload}


class BrokerClosed(Exception):
    """Publish or subscribe on a closed broker."""
    pass


class Subscription:
    """Receiving end of a subscription.

    Iterate with ``async for event in subscription`` or poll with
    ``next_event(timeout)``. Call ``unsubscribe()`` when the client goes away.
    """

    _END = object()

    def __init__(self, broker: "EventBroker", scope: Scope, queue_size: int, subscription_id: int = 0):
        self.id = subscription_id
        self.scope = scope
        self.dropped = 0
        self._broker = broker
        self._queue: asyncio.Queue = asyncio.Queue(maxsize=queue_size)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def wants(self, scope: Scope) -> bool:
        return scope.is_global or scope == self.scope

    def offer(self, event: Event) -> bool:
        """Queue ``event`` without waiting. Returns False if it was dropped."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.debug("Subscriber queue full on %s, dropped %s", self.scope, event.event_type)
            return False
        return True

    async def next_event(self, timeout: float | None = None) -> Event | None:
        """Next event, or None on timeout or once the subscription is closed."""
        if self._closed and self._queue.empty():
            return None
        try:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        except asyncio.TimeoutError:
            return None
        if item is self._END:
            return None
        return item

    def unsubscribe(self) -> None:
        self._broker.discard(self)
        self.close()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        if self._queue.full():
            self._queue.get_nowait()
        self._queue.put_nowait(self._END)

    def __aiter__(self):
        return self

    async def __anext__(self) -> Event:
        event = await self.next_event()
        if event is None:
            raise StopAsyncIteration
        return event


class EventBroker(ABC):
    """Transport behind ``ChangeNotifier``.

    A multi-process deployment swaps ``InMemoryBroker`` for one backed by an
    external bus; the publish/subscribe contract stays the same.
    """

    @abstractmethod
    async def publish(self, event: Event) -> int:
        """Deliver ``event`` to matching subscribers. Returns the delivered count."""
        pass

    @abstractmethod
    def subscribe(self, scope: Scope) -> Subscription:
        pass

    @abstractmethod
    def discard(self, subscription: Subscription) -> None:
        pass

    @abstractmethod
    async def close(self) -> None:
        pass


class InMemoryBroker(EventBroker):
    """Fan-out to subscriptions held in this process."""

    def __init__(self, queue_size: int = 100):
        self.queue_size = queue_size
        self._subscriptions: dict[int, Subscription] = {}
        self._ids = itertools.count(1)
        self._closed = False

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def publish(self, event: Event) -> int:
        if self._closed:
            raise BrokerClosed("Broker is closed")
        delivered = 0
        for subscription in list(self._subscriptions.values()):
            if subscription.wants(event.scope) and subscription.offer(event):
                delivered += 1
        return delivered

    def subscribe(self, scope: Scope) -> Subscription:
        if self._closed:
            raise BrokerClosed("Broker is closed")
        subscription = Subscription(self, scope, self.queue_size, next(self._ids))
        self._subscriptions[subscription.id] = subscription
        return subscription

    def discard(self, subscription: Subscription) -> None:
        self._subscriptions.pop(subscription.id, None)

    async def close(self) -> None:
        self._closed = True
        for subscription in list(self._subscriptions.values()):
            subscription.close()
        self._subscriptions.clear()
