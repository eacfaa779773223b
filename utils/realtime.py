"""
In-process registry of live notification streams.

Each connected user owns one asyncio.Queue; a newer connection for the same
user replaces the older one. Frames are written as Server-Sent Events whose
data line is a single JSON object with a `type` discriminator.
"""

import asyncio
import json
import time
from typing import AsyncIterator, Dict, Optional

from constants import FrameTypes
from logging_config import get_logger
from models.notification import NotificationModel

logger = get_logger("realtime")

CONNECTED_MESSAGE = "Real-time notifications enabled"


def encode_frame(payload: dict) -> str:
    return f"data: {json.dumps(payload, default=str)}\n\n"


class NotificationBroadcaster:
    def __init__(self):
        self._queues: Dict[str, asyncio.Queue] = {}

    def register(self, user_id: str) -> asyncio.Queue:
        queue: asyncio.Queue = asyncio.Queue()
        if user_id in self._queues:
            logger.info("Replacing existing live stream", extra={"data": {"user_id": user_id}})
        self._queues[user_id] = queue
        return queue

    def unregister(self, user_id: str, queue: Optional[asyncio.Queue] = None):
        """Drop the user's stream. With `queue`, only if it is still the registered one."""
        current = self._queues.get(user_id)
        if current is None:
            return
        if queue is not None and current is not queue:
            return
        del self._queues[user_id]

    def is_connected(self, user_id: str) -> bool:
        return user_id in self._queues

    @property
    def connection_count(self) -> int:
        return len(self._queues)

    def send_to_user(self, user_id: str, notification: NotificationModel) -> bool:
        """Queue a notification frame for the user's live stream. False when not connected."""
        queue = self._queues.get(user_id)
        if queue is None:
            return False
        queue.put_nowait({
            "type": FrameTypes.NOTIFICATION,
            "notification": notification.model_dump(mode="json"),
        })
        return True


async def event_stream(
    user_id: str,
    broadcaster: NotificationBroadcaster,
    heartbeat_interval: float = 30.0,
) -> AsyncIterator[str]:
    """
    Yield SSE frames for one user until the client goes away.

    A heartbeat is emitted whenever `heartbeat_interval` seconds pass without
    a notification.
    """
    queue = broadcaster.register(user_id)
    logger.info("Live stream opened", extra={"data": {"user_id": user_id}})
    try:
        yield encode_frame({"type": FrameTypes.CONNECTED, "message": CONNECTED_MESSAGE})
        while True:
            try:
                payload = await asyncio.wait_for(queue.get(), timeout=heartbeat_interval)
            except asyncio.TimeoutError:
                payload = {"type": FrameTypes.HEARTBEAT, "timestamp": int(time.time() * 1000)}
            yield encode_frame(payload)
    finally:
        broadcaster.unregister(user_id, queue)
        logger.info("Live stream closed", extra={"data": {"user_id": user_id}})


broadcaster = NotificationBroadcaster()
