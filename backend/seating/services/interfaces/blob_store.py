"""
Key/blob storage interface.
Allows swapping the persistence backend without changing business logic.
"""

from abc import ABC, abstractmethod
from typing import Optional


class BlobStore(ABC):
    """
    Interface for the opaque key -> text blob store holding the
    reservation and seat-status records.

    Implementations:
    - MemoryBlobStore: process-local dict (development, tests)
    - RedisBlobStore: Redis strings, MSET for atomic multi-key writes
    - SqlBlobStore: one SQL table, multi-key writes in one transaction
    """

    @abstractmethod
    async def get(self, key: str) -> Optional[str]:
        """Return the stored blob, or None when the key was never written."""
        pass

    @abstractmethod
    async def set(self, key: str, value: str) -> None:
        pass

    @abstractmethod
    async def set_many(self, items: dict[str, str]) -> None:
        """
        Write several keys atomically: readers see either none or all
        of the new values.
        """
        pass

    async def close(self) -> None:
        """Release connections. No-op by default."""
        pass

    async def replace_corrupt(self, key: str, value: str) -> None:
        """
        Called after the blob under `key` failed to parse. Plain stores keep
        it until the next write.
        """
        pass

    def transaction(self) -> "StagedBlobs":
        return StagedBlobs(self)


class StagedBlobs(BlobStore):
    """
    Write buffer over another store.

    Reads see staged values first. On a clean exit from the context manager
    every staged key is published with a single `set_many`; on an exception
    the buffer is dropped and the parent store is left untouched.
    """

    def __init__(self, parent: BlobStore):
        self._parent = parent
        self._staged: dict[str, str] = {}

    @property
    def pending(self) -> dict[str, str]:
        return dict(self._staged)

    async def get(self, key: str) -> Optional[str]:
        if key in self._staged:
            return self._staged[key]
        return await self._parent.get(key)

    async def set(self, key: str, value: str) -> None:
        self._staged[key] = value

    async def set_many(self, items: dict[str, str]) -> None:
        self._staged.update(items)

    async def replace_corrupt(self, key: str, value: str) -> None:
        # Later reads in this unit of work see the replacement, not the corrupt blob
        self._staged[key] = value

    async def commit(self) -> None:
        if self._staged:
            await self._parent.set_many(dict(self._staged))
            self._staged.clear()

    def rollback(self) -> None:
        self._staged.clear()

    async def __aenter__(self) -> "StagedBlobs":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            await self.commit()
        else:
            self.rollback()
