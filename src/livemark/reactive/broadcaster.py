"""Reload broadcaster — pushes change notifications to connected viewers.

A single publish channel with any number of independent subscribers.  Each
viewer session holds a ``Subscription`` wrapping a small bounded queue; the
watch pump publishes a reload after every store change that alters what
viewers would see.

Publishing never blocks: a subscriber whose buffer is full simply misses the
message.  A missed reload is harmless because the reload already waiting in
that buffer has the same effect.

Subscribers receive every message published after they subscribed, in publish
order.  Nothing is replayed.

Thread-safe registry: the subscriber set is protected by a lock.  Queues are
``asyncio.Queue`` objects, so ``publish()`` and ``receive()`` run on the event
loop.
"""

from __future__ import annotations

import asyncio
import enum
import json
import threading
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from types import TracebackType


class MessageKind(enum.Enum):
    """Kinds of server -> viewer messages."""

    RELOAD = "Reload"
    PONG = "Pong"


@dataclass(frozen=True, slots=True)
class ServerMessage:
    """A message pushed to viewers.

    ``RELOAD`` is the only kind derived from store changes.  ``PONG`` is a
    liveness reply for the serving layer and never touches the store.
    """

    kind: MessageKind

    def encode(self) -> str:
        """Wire form sent to viewers, e.g. ``{"type": "Reload"}``."""
        return json.dumps({"type": self.kind.value})


RELOAD = ServerMessage(MessageKind.RELOAD)
PONG = ServerMessage(MessageKind.PONG)


class Subscription:
    """One viewer session's receive channel.

    Close it when the connection closes or a send fails; closing unregisters
    it from the broadcaster.  Usable as a context manager and as an async
    iterator that ends when the subscription is closed.
    """

    __slots__ = ("_broadcaster", "_closed", "_queue", "dropped")

    def __init__(self, broadcaster: Broadcaster, buffer_size: int) -> None:
        self._broadcaster = broadcaster
        # None is the close sentinel that wakes a pending receive().
        self._queue: asyncio.Queue[ServerMessage | None] = asyncio.Queue(maxsize=buffer_size)
        self._closed = False
        self.dropped = 0

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Messages buffered and not yet received."""
        return self._queue.qsize()

    async def receive(self) -> ServerMessage | None:
        """Wait for the next message.  Returns None once closed."""
        if self._closed:
            return None
        message = await self._queue.get()
        if message is None or self._closed:
            return None
        return message

    def close(self) -> None:
        """Unregister and wake any pending ``receive()``.  Idempotent."""
        if self._closed:
            return
        self._closed = True
        self._broadcaster.unsubscribe(self)
        while True:
            try:
                self._queue.put_nowait(None)
                break
            except asyncio.QueueFull:
                self._queue.get_nowait()

    def _offer(self, message: ServerMessage) -> bool:
        """Non-blocking enqueue.  False when closed or the buffer is full."""
        if self._closed:
            return False
        try:
            self._queue.put_nowait(message)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        return True

    def __enter__(self) -> Subscription:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()

    def __aiter__(self) -> AsyncIterator[ServerMessage]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[ServerMessage]:
        while (message := await self.receive()) is not None:
            yield message


class Broadcaster:
    """Fan-out hub for viewer notifications.

    Args:
        buffer_size: Per-subscriber buffer; messages beyond it are dropped.

    """

    def __init__(self, buffer_size: int = 16) -> None:
        self._buffer_size = buffer_size
        self._subscribers: set[Subscription] = set()
        self._lock = threading.Lock()
        self._closed = False
        self.dropped_total = 0

    @property
    def subscriber_count(self) -> int:
        """Number of live subscriptions."""
        with self._lock:
            return len(self._subscribers)

    @property
    def closed(self) -> bool:
        return self._closed

    def subscribe(self) -> Subscription:
        """Register a new viewer session.

        A subscription taken from a closed broadcaster is returned already
        closed.
        """
        sub = Subscription(self, self._buffer_size)
        with self._lock:
            if not self._closed:
                self._subscribers.add(sub)
                return sub
        sub.close()
        return sub

    def unsubscribe(self, sub: Subscription) -> None:
        """Remove a subscription.  Unknown subscriptions are ignored."""
        with self._lock:
            self._subscribers.discard(sub)

    def get_subscribers(self) -> frozenset[Subscription]:
        """Snapshot of current subscribers (no lock held on return)."""
        with self._lock:
            return frozenset(self._subscribers)

    def publish(self, message: ServerMessage = RELOAD) -> int:
        """Offer ``message`` to every current subscriber without blocking.

        Returns:
            Number of subscribers that accepted the message.

        """
        count = 0
        for sub in self.get_subscribers():
            if sub._offer(message):
                count += 1
            elif not sub.closed:
                self.dropped_total += 1
        return count

    def close(self) -> None:
        """Close every subscription.  Later subscriptions start closed."""
        with self._lock:
            self._closed = True
            subscribers = list(self._subscribers)
            self._subscribers.clear()
        for sub in subscribers:
            sub.close()
