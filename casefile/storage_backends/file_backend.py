import json
import logging
import os
import re
import tempfile
from pathlib import Path
from typing import Any, Optional

from ..config import Settings
from .interfaces import BlobStore, StorageBackend

logger = logging.getLogger(__name__)

_KEY_PATTERN = re.compile(r"^[A-Za-z0-9_.-]+$")


def _validate_key(key: str) -> None:
    if not _KEY_PATTERN.match(key) or key.startswith("."):
        raise ValueError(f"Invalid blob key: {key!r}. Use letters, numbers, dots, hyphens, or underscores.")


class FileBlobStore(BlobStore):
    """One JSON document per key under the state directory."""

    def __init__(self, root: Path):
        self.root = root

    def _path(self, key: str) -> Path:
        _validate_key(key)
        return self.root / f"{key}.json"

    def load_blob(self, key: str) -> Optional[Any]:
        path = self._path(key)
        if not path.exists():
            return None
        with path.open(encoding="utf-8") as handle:
            try:
                return json.load(handle)
            except json.JSONDecodeError:
                logger.warning("Ignoring unreadable blob %s", path)
                return None

    def save_blob(self, key: str, payload: Any) -> None:
        path = self._path(key)
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{key}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2, default=str)
            os.replace(tmp_name, path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def delete_blob(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)

    def has_blob(self, key: str) -> bool:
        return self._path(key).exists()


def build_file_backend(settings: Settings) -> StorageBackend:
    return StorageBackend(name="file", blobs=FileBlobStore(settings.state_path))
