"""Redis pub/sub broadcaster for alert snapshots."""

import asyncio
import logging

import orjson
import redis.asyncio as aioredis

from busai.config import settings

logger = logging.getLogger(__name__)

CHANNEL = "busai:alerts"
STATE_KEY = "busai:suggestions"


class Broadcaster:
    """Publishes alert snapshots to Redis and manages WebSocket subscribers."""

    def __init__(self) -> None:
        self._redis: aioredis.Redis | None = None
        self._subscribers: set[asyncio.Queue] = set()
        self._last_payload: bytes | None = None

    async def connect(self, url: str | None = None) -> None:
        self._redis = aioredis.from_url(url or settings.redis_url, decode_responses=False)

    async def close(self) -> None:
        if self._redis:
            await self._redis.aclose()

    async def publish(self, snapshot: dict) -> None:
        """Publish a snapshot to Redis and fan out to WebSocket subscribers."""
        payload = orjson.dumps({"type": "update", **snapshot})
        self._last_payload = payload

        if self._redis:
            try:
                # Store current snapshot for new connections
                await self._redis.set(STATE_KEY, payload)
                await self._redis.publish(CHANNEL, payload)
            except Exception:
                logger.exception("Failed to publish to Redis")

        dead = set()
        for q in self._subscribers:
            try:
                q.put_nowait(payload)
            except asyncio.QueueFull:
                dead.add(q)
        if dead:
            logger.warning("Dropping %d slow alert subscribers", len(dead))
        self._subscribers -= dead

    async def get_current_state(self) -> bytes | None:
        """Latest published snapshot, from Redis when available."""
        if self._redis:
            try:
                data = await self._redis.get(STATE_KEY)
                if data:
                    return data
            except Exception:
                logger.exception("Failed to get state from Redis")
        return self._last_payload

    def subscribe(self) -> asyncio.Queue:
        q: asyncio.Queue = asyncio.Queue(maxsize=10)
        self._subscribers.add(q)
        return q

    def unsubscribe(self, q: asyncio.Queue) -> None:
        self._subscribers.discard(q)

    @property
    def subscriber_count(self) -> int:
        return len(self._subscribers)
