"""
Case History - log of closed cases, newest first.
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from pydantic import ValidationError

from .models import CaseLog, CaseSnapshot
from .storage_backends import BlobStore

logger = logging.getLogger(__name__)

HISTORY_KEY = "history.logs"


class CaseHistoryStore:
    """Manages the closed-case history log"""

    def __init__(self, store: BlobStore):
        self.store = store
        self._logs: List[CaseLog] = []
        self._load()

    def _load(self):
        raw = self.store.load_blob(HISTORY_KEY)
        if not raw:
            self._logs = []
            return
        try:
            self._logs = [CaseLog.model_validate(entry) for entry in raw]
        except (TypeError, ValidationError) as exc:
            logger.warning("Discarding unreadable case history: %s", exc)
            self._logs = []

    def _persist(self):
        self.store.save_blob(HISTORY_KEY, [log.model_dump(mode="json") for log in self._logs])

    def logs(self) -> List[CaseLog]:
        return list(self._logs)

    def add(self, snapshot: CaseSnapshot, now: Optional[datetime] = None) -> Optional[CaseLog]:
        """Record a closed case; open cases and repeats are ignored"""
        if not snapshot.status.is_terminal:
            return None
        if any(log.case_id == snapshot.id for log in self._logs):
            return None
        log = CaseLog(
            id=str(uuid.uuid4()),
            case_id=snapshot.id,
            type=snapshot.type,
            title=snapshot.title,
            status=snapshot.status.label,
            date=now or datetime.now(timezone.utc),
            turns=len(snapshot.turns),
        )
        self._logs.insert(0, log)
        self._persist()
        logger.info("Logged closed case %s (%s)", snapshot.id, log.status)
        return log

    def remove(self, index: int) -> CaseLog:
        removed = self._logs.pop(index)
        self._persist()
        return removed

    def remove_all(self):
        self._logs.clear()
        self._persist()
