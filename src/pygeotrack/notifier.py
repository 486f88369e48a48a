"""In-process change notifier.

A topic → subscriptions table with one bounded queue per subscription.
``publish`` only ever calls ``put_nowait``, so a slow subscriber can never
stall the mutation that produced the event.

Overflow policy is drop-oldest: when a subscriber's queue is full the
oldest undelivered event is discarded to make room.  Delivery to each
subscriber is FIFO; order across subscribers is unspecified.

The notifier is loop-bound and not thread-safe.  Publish from the event
loop that owns the subscriptions.
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Any, Protocol

_logger = logging.getLogger(__name__)

_CLOSED = object()


class EventPublisher(Protocol):
    def publish(self, topic: str, payload: Any) -> int: ...


class Subscription:
    """A caller-owned registration on one topic.

    Iterate it with ``async for`` until it is unsubscribed or the notifier
    closes.  Using it as an async context manager unsubscribes on exit.
    """

    def __init__(self, notifier: ChangeNotifier, topic: str, maxsize: int) -> None:
        self._notifier = notifier
        self.topic = topic
        self._queue: asyncio.Queue[Any] = asyncio.Queue(maxsize=maxsize)
        self._closed = False
        self.dropped = 0

    def __repr__(self) -> str:
        return f"Subscription(topic={self.topic!r}, pending={self.pending}, dropped={self.dropped})"

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        return self._queue.qsize()

    def _force_put(self, item: Any) -> bool:
        """Enqueue *item*, evicting the oldest entry if full.  Returns ``True`` if one was evicted."""
        evicted = False
        if self._queue.full():
            self._queue.get_nowait()
            evicted = True
        self._queue.put_nowait(item)
        return evicted

    def deliver(self, payload: Any) -> None:
        if self._closed:
            return
        if self._force_put(payload):
            self.dropped += 1
            if self.dropped == 1:
                _logger.warning("Subscriber on %s is falling behind; dropping oldest events", self.topic)
            else:
                _logger.debug("Dropped event for slow subscriber topic=%s dropped=%d", self.topic, self.dropped)

    def _close(self) -> None:
        if self._closed:
            return
        self._closed = True
        # The close marker must fit even when the queue is full.
        self._force_put(_CLOSED)

    async def get(self, timeout: float | None = None) -> Any:
        """Wait for the next payload.

        Raises
        ------
        StopAsyncIteration
            If the subscription was closed and drained.
        TimeoutError
            If *timeout* elapses first.
        """
        if timeout is None:
            item = await self._queue.get()
        else:
            item = await asyncio.wait_for(self._queue.get(), timeout)
        if item is _CLOSED:
            # Leave the marker for any other waiter.
            self._queue.put_nowait(_CLOSED)
            raise StopAsyncIteration
        return item

    def __aiter__(self) -> Subscription:
        return self

    async def __anext__(self) -> Any:
        return await self.get()

    async def __aenter__(self) -> Subscription:
        return self

    async def __aexit__(self, *exc: Any) -> None:
        self._notifier.unsubscribe(self)


class ChangeNotifier:
    """Topic-keyed publish/subscribe bus with no persistence or replay.

    Usage::

        notifier = ChangeNotifier(queue_size=256)
        async with notifier.subscribe("asset:created") as sub:
            async for event in sub:
                ...
        notifier.close()
    """

    def __init__(self, *, queue_size: int = 256) -> None:
        if queue_size < 1:
            raise ValueError("queue_size must be at least 1")
        self._queue_size = queue_size
        # Weak, non-owning: a subscription dropped by its owner disappears here too.
        self._topics: dict[str, weakref.WeakSet[Subscription]] = {}
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self, topic: str) -> Subscription:
        if self._closed:
            raise RuntimeError("ChangeNotifier is closed")
        subscription = Subscription(self, topic, self._queue_size)
        self._topics.setdefault(topic, weakref.WeakSet()).add(subscription)
        _logger.debug("Subscribed topic=%s subscribers=%d", topic, len(self._topics[topic]))
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove *subscription* and end its iterator.  Idempotent."""
        subscribers = self._topics.get(subscription.topic)
        if subscribers is not None:
            subscribers.discard(subscription)
            if not subscribers:
                del self._topics[subscription.topic]
        subscription._close()  # noqa: SLF001

    def subscriber_count(self, topic: str) -> int:
        subscribers = self._topics.get(topic)
        return len(subscribers) if subscribers is not None else 0

    def publish(self, topic: str, payload: Any) -> int:
        """Hand *payload* to every current subscriber of *topic*.

        Returns the number of subscribers reached.  A failure delivering to
        one subscriber is logged and does not affect the others.
        """
        if self._closed:
            return 0
        subscribers = self._topics.get(topic)
        if not subscribers:
            return 0
        delivered = 0
        for subscription in list(subscribers):
            try:
                subscription.deliver(payload)
            except Exception:
                _logger.warning("Event delivery failed topic=%s", topic, exc_info=True)
                continue
            delivered += 1
        return delivered

    def close(self) -> None:
        """End every subscription.  Further publishes are no-ops."""
        if self._closed:
            return
        self._closed = True
        topics = self._topics
        self._topics = {}
        for subscribers in topics.values():
            for subscription in list(subscribers):
                subscription._close()  # noqa: SLF001
        _logger.debug("ChangeNotifier closed")
