from dataclasses import dataclass
from typing import Any, Optional, Protocol


class BlobStore(Protocol):
    def load_blob(self, key: str) -> Optional[Any]:
        ...

    def save_blob(self, key: str, payload: Any) -> None:
        ...

    def delete_blob(self, key: str) -> None:
        ...

    def has_blob(self, key: str) -> bool:
        ...


@dataclass(frozen=True)
class StorageBackend:
    name: str
    blobs: BlobStore
