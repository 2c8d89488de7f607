"""Redis-backed cache of query -> emoji results.

Each query is stored under ``meme:<query>`` as the JSON encoding of an
:class:`~memoji.core.models.EmojiResult`, written with a ``PX`` expiry.
The cache does not interpret what it reads back; validating a hit is the
resolver's job.
"""

from __future__ import annotations

import logging

import redis.asyncio as redis

from memoji.core.config import CACHE_DURATION_MS
from memoji.core.models import EmojiResult

logger = logging.getLogger(__name__)

KEY_PREFIX = "meme:"


class MemeCache:
    """Exact-match cache keyed by the raw query string.

    Args:
        client: Shared ``redis.asyncio`` client (``decode_responses=True``).
        ttl_ms: Entry lifetime in milliseconds.
    """

    def __init__(self, client: redis.Redis, ttl_ms: int = CACHE_DURATION_MS) -> None:
        self._redis = client
        self.ttl_ms = ttl_ms

    @staticmethod
    def key(query: str) -> str:
        return f"{KEY_PREFIX}{query}"

    async def get(self, query: str) -> str | None:
        """Return the raw cached payload for *query*, or ``None`` on a miss."""
        raw = await self._redis.get(self.key(query))
        if raw is None:
            logger.debug("Cache miss for %r.", query)
        return raw

    async def set(self, query: str, result: EmojiResult) -> None:
        """Store *result* for *query*, replacing any previous entry."""
        await self._redis.set(self.key(query), result.model_dump_json(), px=self.ttl_ms)
        logger.debug("Cached %r -> %r for %d ms.", query, result.output, self.ttl_ms)
