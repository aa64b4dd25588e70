from typing import Optional

from pydantic import ValidationError

from .models import CaseType, Preferences
from .storage_backends import BlobStore

PREFERENCES_KEY = "app.preferences"


class PreferenceStore:
    """Small app-level preferences kept alongside the economy state."""

    def __init__(self, store: BlobStore):
        self.store = store

    def load(self) -> Preferences:
        raw = self.store.load_blob(PREFERENCES_KEY)
        if not raw:
            return Preferences()
        try:
            return Preferences.model_validate(raw)
        except ValidationError:
            return Preferences()

    def _save(self, preferences: Preferences) -> Preferences:
        self.store.save_blob(PREFERENCES_KEY, preferences.model_dump(mode="json"))
        return preferences

    def set_last_case_type(self, case_type: Optional[CaseType]) -> Preferences:
        return self._save(self.load().model_copy(update={"last_case_type": case_type}))

    def set_notifications_enabled(self, enabled: bool) -> Preferences:
        return self._save(self.load().model_copy(update={"notifications_enabled": enabled}))
