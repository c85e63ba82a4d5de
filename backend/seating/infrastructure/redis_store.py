"""
Redis-backed blob store.

Each record is one Redis string under `<prefix><key>`. Multi-key writes go
through MSET, which Redis applies atomically, so a reader never sees the
seat statuses of one commit next to the reservations of another.
"""

from typing import Optional

import redis.asyncio as redis

from seating.core.logging import get_logger
from seating.services.interfaces.blob_store import BlobStore

logger = get_logger(__name__)


class RedisBlobStore(BlobStore):
    """
    Use when:
    - Records must survive restarts
    - Redis is already part of the deployment
    """

    def __init__(self, client: redis.Redis, prefix: str = ""):
        self.redis = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def ping(self) -> bool:
        try:
            return bool(await self.redis.ping())
        except redis.RedisError as e:
            logger.error("redis_connection_failed", error=str(e))
            return False

    async def get(self, key: str) -> Optional[str]:
        return await self.redis.get(self._key(key))

    async def set(self, key: str, value: str) -> None:
        await self.redis.set(self._key(key), value)

    async def set_many(self, items: dict[str, str]) -> None:
        if not items:
            return
        await self.redis.mset({self._key(key): value for key, value in items.items()})
        logger.debug("redis_records_written", keys=sorted(items))
