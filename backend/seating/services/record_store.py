"""
Shared JSON loading for the persisted record lists.

Both records are JSON arrays. A blob that cannot be parsed, or is not an
array, is treated as empty: the read never fails, but the reset is logged,
counted in `store_resets_total` and reported to the owner's callback so it
can be surfaced on /health.

Inside a transaction the empty record is staged after the first reset, so
one unit of work signals a corrupt blob once and its commit replaces it.
"""

import json
from typing import Callable, Optional

from seating.core.logging import get_logger
from seating.core.metrics import record_store_reset
from seating.services.interfaces.blob_store import BlobStore

logger = get_logger(__name__)

ResetCallback = Callable[[str], None]
EMPTY_RECORD = "[]"


class JsonRecordStore:
    def __init__(self, blobs: BlobStore, key: str, on_reset: Optional[ResetCallback] = None):
        self.blobs = blobs
        self.key = key
        self.on_reset = on_reset

    async def _load_items(self) -> list:
        raw = await self.blobs.get(self.key)
        if raw is None:
            return []

        try:
            data = json.loads(raw)
        except (TypeError, ValueError) as e:
            await self._reset(reason="invalid_json", error=str(e))
            return []

        if not isinstance(data, list):
            await self._reset(reason="not_a_list", found=type(data).__name__)
            return []
        return data

    async def _save_items(self, items: list[dict]) -> None:
        await self.blobs.set(self.key, json.dumps(items, ensure_ascii=False))

    async def _reset(self, **details) -> None:
        logger.warning("store_record_reset", record=self.key, **details)
        record_store_reset(self.key)
        if self.on_reset:
            self.on_reset(self.key)
        await self.blobs.replace_corrupt(self.key, EMPTY_RECORD)
