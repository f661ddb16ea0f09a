"""
Redis implementation of the key-value cache facade.

The facade is a pure pass-through: connection and command errors are not
caught here and reach the caller unchanged.
"""

from typing import Optional

from redis.asyncio import Redis

from ecommerce.handlers.utils.observability import logger


class CacheClient:
    """Async get/set/delete over a single shared Redis client."""

    def __init__(self, client: Redis) -> None:
        self._client = client

    async def get(self, key: str) -> Optional[str]:
        return await self._client.get(key)

    async def set(self, key: str, value: str, ttl_seconds: int) -> None:
        await self._client.setex(key, ttl_seconds, value)

    async def delete(self, key: str) -> None:
        await self._client.delete(key)

    async def close(self) -> None:
        await self._client.aclose()
        logger.debug('Redis connection closed')


async def connect_cache(url: str, ping: bool = True) -> CacheClient:
    """
    Open the process-wide Redis connection pool.

    Args:
        url: Redis URL, e.g. ``redis://cache.internal:6379/0``
        ping: Round-trip once so a bad URL fails at startup instead of on first use

    Returns:
        Cache facade owning the connection
    """
    client = Redis.from_url(url, decode_responses=True)
    if ping:
        await client.ping()
    logger.info('Redis connection established', extra={'host': client.connection_pool.connection_kwargs.get('host')})
    return CacheClient(client)
