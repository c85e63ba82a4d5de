"""
SQL-backed blob store.

Records live in the `kv_records` table. `set_many` writes every key inside
one transaction, so the seat statuses and reservations of a commit become
visible together or not at all.
"""

from typing import Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncEngine

from seating.core.logging import get_logger
from seating.db.session import create_session_factory
from seating.models.kv_record import KVRecord
from seating.services.interfaces.blob_store import BlobStore

logger = get_logger(__name__)


class SqlBlobStore(BlobStore):
    """
    Use when:
    - PostgreSQL is the system of record
    - Records must be backed up with the rest of the database
    """

    def __init__(self, engine: AsyncEngine, prefix: str = ""):
        self.engine = engine
        self.prefix = prefix
        self._session_factory = create_session_factory(engine)

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def get(self, key: str) -> Optional[str]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(KVRecord.value).where(KVRecord.key == self._key(key))
            )
            return result.scalar_one_or_none()

    async def set(self, key: str, value: str) -> None:
        await self.set_many({key: value})

    async def set_many(self, items: dict[str, str]) -> None:
        if not items:
            return
        async with self._session_factory() as session:
            async with session.begin():
                for key, value in items.items():
                    # merge() selects by primary key, then inserts or updates
                    await session.merge(KVRecord(key=self._key(key), value=value))
        logger.debug("sql_records_written", keys=sorted(items))

    async def close(self) -> None:
        await self.engine.dispose()
