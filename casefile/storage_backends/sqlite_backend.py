import json
import logging
import os
import sqlite3
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional

from ..config import Settings
from .interfaces import BlobStore, StorageBackend

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _json_dumps(payload: Any) -> str:
    return json.dumps(payload, indent=2, default=str)


def _resolve_db_path(settings: Settings) -> Path:
    raw = os.getenv("DATABASE_URL") or os.getenv("SQLITE_PATH")
    if raw:
        if raw.startswith("sqlite:///"):
            raw = raw.replace("sqlite:///", "", 1)
        elif raw.startswith("file:"):
            raw = raw[5:]
        path = Path(raw)
    else:
        path = settings.state_path / "casefile.sqlite"
    if not path.is_absolute():
        path = settings.repo_root / path
    path.parent.mkdir(parents=True, exist_ok=True)
    return path


class SQLiteDatabase:
    def __init__(self, path: Path):
        self.path = path
        self.conn = sqlite3.connect(path, check_same_thread=False)
        self.conn.row_factory = sqlite3.Row
        self.lock = threading.Lock()
        self._ensure_schema()

    def _ensure_schema(self) -> None:
        self.conn.executescript(
            """
            CREATE TABLE IF NOT EXISTS blobs (
                blob_key TEXT PRIMARY KEY,
                blob_json TEXT NOT NULL,
                updated_at TEXT NOT NULL
            );
            """
        )


class SQLiteBlobStore(BlobStore):
    def __init__(self, db: SQLiteDatabase):
        self.db = db

    def load_blob(self, key: str) -> Optional[Any]:
        with self.db.lock:
            row = self.db.conn.execute("SELECT blob_json FROM blobs WHERE blob_key = ?", (key,)).fetchone()
        if row is None:
            return None
        try:
            return json.loads(row["blob_json"])
        except json.JSONDecodeError:
            logger.warning("Ignoring unreadable blob %s in %s", key, self.db.path)
            return None

    def save_blob(self, key: str, payload: Any) -> None:
        with self.db.lock, self.db.conn:
            self.db.conn.execute(
                """
                INSERT INTO blobs (blob_key, blob_json, updated_at)
                VALUES (?, ?, ?)
                ON CONFLICT(blob_key) DO UPDATE
                SET blob_json = excluded.blob_json, updated_at = excluded.updated_at
                """,
                (key, _json_dumps(payload), _now_iso()),
            )

    def delete_blob(self, key: str) -> None:
        with self.db.lock, self.db.conn:
            self.db.conn.execute("DELETE FROM blobs WHERE blob_key = ?", (key,))

    def has_blob(self, key: str) -> bool:
        with self.db.lock:
            row = self.db.conn.execute("SELECT 1 FROM blobs WHERE blob_key = ?", (key,)).fetchone()
        return row is not None


def build_sqlite_backend(settings: Settings, db_path: Optional[Path] = None) -> StorageBackend:
    path = db_path or _resolve_db_path(settings)
    db = SQLiteDatabase(path)
    return StorageBackend(name="sqlite", blobs=SQLiteBlobStore(db))


__all__ = ["build_sqlite_backend", "_resolve_db_path", "SQLiteDatabase", "SQLiteBlobStore"]
