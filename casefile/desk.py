"""
Case Desk - drives one player's case session end to end.

The desk is the caller in the control flow: it debits the economy before a
case opens, feeds questions to the engine, gates hint unlocks, writes the
closed-case history and keeps the active session payload current so an
abandoned case can be resumed.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, Optional

from .active_session import ActiveSessionStore
from .config import Settings, get_settings
from .economy import ResourceEconomy
from .engine import DetectiveEngine, ScriptedDetectiveEngine
from .errors import EmptyQuestionError, InsufficientResourceError, NoActiveCaseError, ScriptNotFoundError
from .hints import make_hint
from .history import CaseHistoryStore
from .models import ActiveSessionPayload, CaseHint, CaseType, HintUnlockMethod
from .preferences import PreferenceStore
from .resume import ResumeReport, SessionResumeCoordinator
from .storage_backends import StorageBackend
from .storage_backends.factory import get_storage_backend

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CaseDesk:
    def __init__(
        self,
        settings: Settings,
        backend: StorageBackend,
        engine: Optional[DetectiveEngine] = None,
        economy: Optional[ResourceEconomy] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.settings = settings
        self._clock = clock or _utcnow
        self.engine = engine or ScriptedDetectiveEngine(latency=settings.engine_latency, clock=self._clock)
        self.economy = economy or ResourceEconomy(settings, backend.blobs, clock=self._clock)
        self.sessions = ActiveSessionStore(backend.blobs)
        self.history = CaseHistoryStore(backend.blobs)
        self.preferences = PreferenceStore(backend.blobs)
        self.coordinator = SessionResumeCoordinator(
            self.engine,
            placeholder_question=settings.resume_placeholder,
            strict=settings.strict_resume,
        )
        self.last_resume_report: Optional[ResumeReport] = None
        self._current: Optional[ActiveSessionPayload] = None
        self._lock = asyncio.Lock()

    @property
    def current(self) -> Optional[ActiveSessionPayload]:
        return self._current

    def _require_current(self) -> ActiveSessionPayload:
        if self._current is None:
            raise NoActiveCaseError()
        return self._current

    def _record(self, payload: ActiveSessionPayload) -> None:
        snapshot = payload.snapshot
        if snapshot.status.is_terminal:
            self.history.add(snapshot, now=self._clock())
            self.sessions.clear()
        else:
            self.sessions.save(
                snapshot,
                payload.hints,
                payload.input_text,
                engine_state_version=self.engine.cursor_for(snapshot.id),
            )

    def _charge_hint(self, method: HintUnlockMethod) -> None:
        if method == HintUnlockMethod.SUBSCRIPTION:
            if not self.economy.has_subscription:
                raise InsufficientResourceError("subscription")
        elif method in (HintUnlockMethod.HINT_CREDIT, HintUnlockMethod.DAILY_ALLOWANCE):
            if not self.economy.consume_hint_credit():
                raise InsufficientResourceError("hint credits", 1)
        elif method == HintUnlockMethod.ENERGY:
            if not self.economy.consume_energy(self.settings.hint_energy_cost):
                raise InsufficientResourceError("energy", self.settings.hint_energy_cost)

    async def start_case(self, case_type: CaseType) -> ActiveSessionPayload:
        async with self._lock:
            if not self.economy.consume_energy_for(case_type):
                raise InsufficientResourceError("energy", case_type.energy_cost)
            try:
                snapshot = await self.engine.start_case(case_type)
            except (ScriptNotFoundError, asyncio.CancelledError):
                self.economy.add_energy(case_type.energy_cost)
                raise

            self.preferences.set_last_case_type(case_type)
            self._current = ActiveSessionPayload(snapshot=snapshot)
            self._record(self._current)
            logger.info("Started %s case %s", case_type.value, snapshot.id)
            return self._current

    async def ask(self, question: str) -> ActiveSessionPayload:
        text = question.strip()
        if not text:
            raise EmptyQuestionError()
        async with self._lock:
            current = self._require_current()
            snapshot = await self.engine.answer(text, current.snapshot)
            self._current = current.model_copy(update={"snapshot": snapshot, "input_text": ""})
            self._record(self._current)
            return self._current

    async def unlock_hint(self, method: HintUnlockMethod) -> CaseHint:
        async with self._lock:
            current = self._require_current()
            self._charge_hint(method)

            hint = CaseHint(
                id=str(uuid.uuid4()),
                text=make_hint(current.snapshot, current.hints),
                created_at=self._clock(),
                method=method,
            )
            self._current = current.model_copy(update={"hints": [*current.hints, hint]})
            if not self._current.snapshot.status.is_terminal:
                self._record(self._current)
            return hint

    async def save_draft(self, text: str) -> ActiveSessionPayload:
        async with self._lock:
            current = self._require_current()
            self._current = current.model_copy(update={"input_text": text})
            if not self._current.snapshot.status.is_terminal:
                self._record(self._current)
            return self._current

    async def resume(self) -> ActiveSessionPayload:
        async with self._lock:
            if not self.sessions.has_active():
                raise NoActiveCaseError("No saved case to resume")
            payload = self.sessions.load()
            if payload is None:
                raise NoActiveCaseError("Saved case is unreadable")
            if self._current is not None and self._current.snapshot.id == payload.snapshot.id:
                # Already live in this process; the cursor is in step.
                return self._current
            self.last_resume_report = await self.coordinator.realign(
                payload.snapshot, expected_cursor=payload.engine_state_version
            )
            self._current = payload
            return payload

    async def abandon(self) -> None:
        async with self._lock:
            self._current = None
            self.sessions.clear()


_DESKS: Dict[str, CaseDesk] = {}


def get_case_desk(settings: Optional[Settings] = None) -> CaseDesk:
    settings = settings or get_settings()
    backend = get_storage_backend(settings)
    key = f"{backend.name}:{settings.state_path}"
    desk = _DESKS.get(key)
    if desk is None:
        desk = CaseDesk(settings, backend)
        _DESKS[key] = desk
    return desk


def reset_case_desks() -> None:
    _DESKS.clear()
