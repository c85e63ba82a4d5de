"""
In-process blob store - no external dependency.
State lives as long as the process does.
"""

from typing import Optional

from seating.services.interfaces.blob_store import BlobStore


class MemoryBlobStore(BlobStore):
    """
    Dict-backed store.

    Use when:
    - Local development and tests
    - A single process owns the data and losing it on restart is fine
    """

    def __init__(self, initial: Optional[dict[str, str]] = None):
        self._data: dict[str, str] = dict(initial or {})

    async def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    async def set(self, key: str, value: str) -> None:
        self._data[key] = value

    async def set_many(self, items: dict[str, str]) -> None:
        # dict.update runs without yielding to the event loop, so it is atomic here
        self._data.update(items)

    def snapshot(self) -> dict[str, str]:
        return dict(self._data)
