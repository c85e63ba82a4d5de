"""
Infrastructure layer - external system integrations.
Keeps business logic clean from implementation details.
"""

from .redis_client import get_redis, RedisClient
from .redis_store import RedisBlobStore
from .sql_store import SqlBlobStore

__all__ = ['get_redis', 'RedisClient', 'RedisBlobStore', 'SqlBlobStore']
