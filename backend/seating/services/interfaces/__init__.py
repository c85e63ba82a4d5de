"""
Service interfaces for dependency inversion.
Allows swapping implementations without changing business logic.
"""

from .blob_store import BlobStore, StagedBlobs
from .memory_store import MemoryBlobStore

__all__ = ['BlobStore', 'StagedBlobs', 'MemoryBlobStore']
