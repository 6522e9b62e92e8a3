"""Event Hub — in-process fan-out of stream messages to WebSocket subscribers.

Invariants:
    - Each subscriber owns a bounded queue; a slow subscriber never blocks publish()
    - When a queue is full, its oldest message is dropped to make room
    - Unsubscribing is idempotent
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

logger = logging.getLogger(__name__)


class EventHub:
    def __init__(self, queue_size: int = 100):
        if queue_size < 1:
            raise ValueError("queue_size must be >= 1")
        self._queue_size = queue_size
        self._subscribers: set[asyncio.Queue] = set()
        self.dropped = 0

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)

    def subscribe(self) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue(maxsize=self._queue_size)
        self._subscribers.add(queue)
        return queue

    def unsubscribe(self, queue: asyncio.Queue) -> None:
        self._subscribers.discard(queue)

    @asynccontextmanager
    async def subscription(self) -> AsyncIterator[asyncio.Queue]:
        queue = self.subscribe()
        try:
            yield queue
        finally:
            self.unsubscribe(queue)

    async def publish(self, message: Any) -> int:
        """Deliver `message` to every subscriber. Returns how many received it."""
        for queue in list(self._subscribers):
            if queue.full():
                queue.get_nowait()
                self.dropped += 1
            queue.put_nowait(message)
        return len(self._subscribers)
