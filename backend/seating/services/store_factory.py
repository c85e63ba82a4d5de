"""
Blob store factory.
Configures which persistence backend the stores run on.
"""

from seating.core.config import Settings, get_settings
from seating.core.logging import get_logger
from seating.services.interfaces.blob_store import BlobStore
from seating.services.interfaces.memory_store import MemoryBlobStore

logger = get_logger(__name__)


async def create_blob_store(settings: Settings = None) -> BlobStore:
    """
    Build the configured blob store.

    Backend selection via STORAGE_BACKEND:
    - memory: MemoryBlobStore (development, tests)
    - redis: RedisBlobStore
    - database: SqlBlobStore, tables created when DB_AUTO_CREATE is set
    """
    settings = settings or get_settings()
    backend = settings.STORAGE_BACKEND

    if backend == "redis":
        from seating.infrastructure.redis_client import get_redis
        from seating.infrastructure.redis_store import RedisBlobStore

        store = RedisBlobStore(get_redis(settings.REDIS_URL), prefix=settings.STORE_KEY_PREFIX)
        if await store.ping():
            logger.info("redis_connected", url=settings.REDIS_URL)
        else:
            logger.warning("redis_unavailable", url=settings.REDIS_URL)
        return store

    if backend == "database":
        from seating.db.session import create_engine, create_tables
        from seating.infrastructure.sql_store import SqlBlobStore

        engine = create_engine(settings.DATABASE_URL)
        if settings.DB_AUTO_CREATE:
            await create_tables(engine)
            logger.info("database_tables_created")
        return SqlBlobStore(engine, prefix=settings.STORE_KEY_PREFIX)

    return MemoryBlobStore()
