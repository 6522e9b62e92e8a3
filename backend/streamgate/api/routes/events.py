"""Stream Events — recent persisted messages and a live WebSocket feed.

Invariants:
    - GET /events/recent returns newest first, at most `limit` rows
    - WS /ws/events forwards every message published on the EventHub after
      the client connected; each connection has its own queue
    - A slow or broken subscriber never affects other subscribers or HTTP routes
"""

import asyncio
import logging

from fastapi import Depends, Query, WebSocket
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from streamgate.api.context import context_of
from streamgate.api.routing import GatewayRouter, RouteGroup
from streamgate.infrastructure.database import get_db
from streamgate.models.stream_event import StreamEvent

logger = logging.getLogger(__name__)


async def _forward(websocket: WebSocket, queue: asyncio.Queue) -> None:
    while True:
        message = await queue.get()
        await websocket.send_json(message)


async def _drain_client(websocket: WebSocket) -> None:
    """Read (and ignore) client frames until it disconnects."""
    while True:
        await websocket.receive_text()


async def stream_events_feed(websocket: WebSocket) -> None:
    hub = context_of(websocket).hub
    await websocket.accept()
    async with hub.subscription() as queue:
        logger.info(
            "Event feed subscriber connected",
            extra={"subscribers": hub.subscriber_count},
        )
        forward = asyncio.create_task(_forward(websocket, queue))
        drain = asyncio.create_task(_drain_client(websocket))
        done, pending = await asyncio.wait(
            {forward, drain}, return_when=asyncio.FIRST_COMPLETED,
        )
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)
        for task in done:
            task.result()


def create_events_group() -> RouteGroup:
    router = GatewayRouter(tags=["events"])

    @router.get("/events/recent")
    async def recent_events(
        limit: int = Query(20, ge=1, le=200),
        db: AsyncSession = Depends(get_db),
    ):
        result = await db.execute(
            select(StreamEvent).order_by(StreamEvent.received_at.desc()).limit(limit),
        )
        return {"events": [event.to_dict() for event in result.scalars().all()]}

    router.ws("/ws/events", stream_events_feed)

    return RouteGroup(name="events", router=router)
