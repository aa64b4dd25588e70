from .interfaces import BlobStore, StorageBackend

__all__ = [
    "BlobStore",
    "StorageBackend",
]
