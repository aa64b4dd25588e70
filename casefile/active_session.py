"""
Active Session Store - persists the unfinished case so it can be resumed later.
"""

import logging
from typing import Optional, Sequence

from pydantic import ValidationError

from .models import ActiveSessionPayload, CaseHint, CaseSnapshot
from .storage_backends import BlobStore

logger = logging.getLogger(__name__)

ACTIVE_SESSION_KEY = "session.active"


class ActiveSessionStore:
    def __init__(self, store: BlobStore):
        self.store = store

    def save(
        self,
        snapshot: CaseSnapshot,
        hints: Sequence[CaseHint] = (),
        input_text: str = "",
        engine_state_version: Optional[int] = None,
    ) -> ActiveSessionPayload:
        payload = ActiveSessionPayload(
            snapshot=snapshot,
            hints=list(hints),
            input_text=input_text,
            engine_state_version=engine_state_version,
        )
        self.store.save_blob(ACTIVE_SESSION_KEY, payload.model_dump(mode="json"))
        return payload

    def load(self) -> Optional[ActiveSessionPayload]:
        raw = self.store.load_blob(ACTIVE_SESSION_KEY)
        if raw is None:
            return None
        try:
            return ActiveSessionPayload.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable active session payload: %s", exc)
            return None

    def clear(self) -> None:
        self.store.delete_blob(ACTIVE_SESSION_KEY)

    def has_active(self) -> bool:
        return self.store.has_blob(ACTIVE_SESSION_KEY)
