"""Stream Consumer — dispatches every upstream message to the registered handlers.

Invariants:
    - Messages are handled one at a time, in arrival order
    - A failing handler is logged and counted; other handlers and later messages still run
    - start() returns when the source ends and raises when the source fails,
      leaving reconnect policy to the JobSupervisor
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable

from streamgate.infrastructure.stream_source import MessageSource
from streamgate.models.stream_event import StreamEvent
from streamgate.services.event_hub import EventHub

logger = logging.getLogger(__name__)

MessageHandler = Callable[[Any], Awaitable[None]]


@dataclass
class ConsumerStats:
    received: int = 0
    handled: int = 0
    handler_failures: int = 0
    last_message_at: datetime | None = None


class StreamConsumer:
    def __init__(self, source: MessageSource, handlers: list[MessageHandler]):
        self.source = source
        self.handlers = list(handlers)
        self.stats = ConsumerStats()

    async def start(self) -> None:
        logger.info("Stream consumer started", extra={"source": self.source.name})
        async for message in self.source.messages():
            await self._dispatch(message)
        logger.warning("Stream ended", extra={"source": self.source.name})

    async def _dispatch(self, message: Any) -> None:
        self.stats.received += 1
        self.stats.last_message_at = datetime.now(timezone.utc)
        for handler in self.handlers:
            try:
                await handler(message)
                self.stats.handled += 1
            except Exception as e:
                self.stats.handler_failures += 1
                logger.error(
                    f"Stream handler {_handler_name(handler)} failed: {e}",
                    exc_info=True,
                    extra={"source": self.source.name},
                )


def _handler_name(handler: MessageHandler) -> str:
    return getattr(handler, "__name__", type(handler).__name__)


def message_kind(message: Any) -> str | None:
    if isinstance(message, dict):
        kind = message.get("type") or message.get("kind")
        return str(kind)[:64] if kind is not None else None
    return None


class StreamEventRecorder:
    """Persists each message as a StreamEvent row."""

    def __init__(self, storage, source: str):
        self.storage = storage
        self.source = source

    async def __call__(self, message: Any) -> None:
        async with self.storage.session() as db:
            db.add(StreamEvent(
                source=self.source,
                kind=message_kind(message),
                payload=message,
            ))
            await db.commit()


def hub_publisher(hub: EventHub) -> MessageHandler:
    async def publish_to_hub(message: Any) -> None:
        await hub.publish(message)
    return publish_to_hub
