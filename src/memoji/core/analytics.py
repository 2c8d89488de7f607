"""Best-effort usage analytics stored in Redis.

Two commands make up the whole analytics layer:

- ``INCR total_requests`` -- one global counter per rendered meme.
- ``RPUSH ip:<address> <json>`` -- an append-only history per client IP.

:meth:`UsageRecorder.record` is scheduled after the response is sent and
never raises, so a slow or failing Redis cannot change what the client sees.
"""

from __future__ import annotations

import asyncio
import logging

import redis.asyncio as redis

from memoji.core.models import IpLogEntry

logger = logging.getLogger(__name__)

TOTAL_REQUESTS_KEY = "total_requests"
IP_KEY_PREFIX = "ip:"


class UsageRecorder:
    """Write request counters and per-IP history.

    Args:
        client: Shared ``redis.asyncio`` client.
    """

    def __init__(self, client: redis.Redis) -> None:
        self._redis = client

    async def log_request(self) -> int:
        return await self._redis.incr(TOTAL_REQUESTS_KEY)

    async def log_ip(self, ip: str, ref: str | None, query: str, output: str) -> int:
        entry = IpLogEntry(ref=ref or "", query=query, output=output)
        return await self._redis.rpush(f"{IP_KEY_PREFIX}{ip}", entry.model_dump_json())

    async def record(self, ip: str | None, ref: str | None, query: str, output: str) -> None:
        """Run both analytics writes concurrently and swallow any failure.

        The IP history is skipped when the client address is unknown.
        """
        writes = [self.log_request()]
        if ip:
            writes.append(self.log_ip(ip, ref, query, output))

        results = await asyncio.gather(*writes, return_exceptions=True)
        for result in results:
            if isinstance(result, BaseException):
                logger.warning("Analytics write failed: %r", result)

    async def total_requests(self) -> int:
        """Current value of the global counter (0 before the first request)."""
        value = await self._redis.get(TOTAL_REQUESTS_KEY)
        return int(value) if value is not None else 0
