"""
Case Engine - maps a sequence of player questions onto scripted beats.
"""

from __future__ import annotations

import asyncio
import logging
import threading
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, Mapping, Optional, Protocol

from .errors import ScriptNotFoundError
from .models import CaseSnapshot, CaseStatus, CaseTurn, CaseType, Speaker, StatusKind
from .scripts import DEFAULT_CATALOG, CaseScript, ScriptBeat, get_script

logger = logging.getLogger(__name__)

CASE_CLOSED_RESPONSE = "This case is already closed. Try opening a new case."

# Solved and failed share a rank: neither may follow the other.
_STATUS_RANK = {
    StatusKind.BRIEFING: 0,
    StatusKind.INVESTIGATION: 1,
    StatusKind.SOLVED: 2,
    StatusKind.FAILED: 2,
}


class DetectiveEngine(Protocol):
    async def start_case(self, case_type: CaseType) -> CaseSnapshot:
        ...

    async def answer(self, question: str, snapshot: CaseSnapshot) -> CaseSnapshot:
        ...

    def cursor_for(self, session_id: str) -> int:
        ...


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _advance_status(current: CaseStatus, override: Optional[CaseStatus]) -> CaseStatus:
    """Apply a beat's status override; terminal statuses absorb and status never moves back."""
    if override is None or current.is_terminal:
        return current
    if _STATUS_RANK[override.kind] < _STATUS_RANK[current.kind]:
        return current
    return override


class ScriptedDetectiveEngine:
    """Plays back the Script Catalog one beat per accepted question.

    Beat cursors are keyed by session id and live only here; snapshots carry
    no cursor. One lock guards the whole cursor map.
    """

    def __init__(
        self,
        catalog: Optional[Mapping[CaseType, CaseScript]] = None,
        latency: float = 0.0,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.catalog = catalog if catalog is not None else DEFAULT_CATALOG
        self.latency = latency
        self._clock = clock or _utcnow
        self._cursors: Dict[str, int] = {}
        self._lock = threading.Lock()

    def _script_for(self, case_type: CaseType) -> CaseScript:
        script = get_script(case_type, self.catalog)
        if script is None:
            raise ScriptNotFoundError(case_type)
        return script

    async def _simulate_latency(self) -> None:
        if self.latency > 0:
            await asyncio.sleep(self.latency)

    def _turn(self, speaker: Speaker, text: str, beat: Optional[ScriptBeat] = None) -> CaseTurn:
        return CaseTurn(
            id=str(uuid.uuid4()),
            speaker=speaker,
            text=text,
            timestamp=self._clock(),
            new_clues=list(beat.new_clues) if beat else [],
        )

    def cursor_for(self, session_id: str) -> int:
        with self._lock:
            return self._cursors.get(session_id, 0)

    async def start_case(self, case_type: CaseType) -> CaseSnapshot:
        script = self._script_for(case_type)
        await self._simulate_latency()

        session_id = str(uuid.uuid4())
        first_beat = script.beats[0] if script.beats else None
        with self._lock:
            self._cursors[session_id] = 1
            opening = self._turn(Speaker.ENGINE, first_beat.response if first_beat else "", first_beat)

        logger.info("Opened %s case session %s", case_type.value, session_id)
        return CaseSnapshot(
            id=session_id,
            type=case_type,
            title=script.title,
            synopsis=script.synopsis,
            status=first_beat.status if first_beat and first_beat.status is not None else CaseStatus.briefing(),
            turns=[opening],
            clues=list(first_beat.new_clues) if first_beat else [],
            suspects=list(script.suspects),
        )

    async def answer(self, question: str, snapshot: CaseSnapshot) -> CaseSnapshot:
        script = self._script_for(snapshot.type)
        await self._simulate_latency()

        asked = snapshot.appending(self._turn(Speaker.DETECTIVE, question))

        with self._lock:
            index = self._cursors.get(snapshot.id, 0)
            if index >= len(script.beats):
                logger.debug("Session %s has no beats left; replying closed", snapshot.id)
                return asked.appending(self._turn(Speaker.ENGINE, CASE_CLOSED_RESPONSE))
            beat = script.beats[index]
            response = self._turn(Speaker.ENGINE, beat.response, beat)
            self._cursors[snapshot.id] = index + 1

        revealed = []
        for clue in beat.new_clues:
            if clue not in asked.clues and clue not in revealed:
                revealed.append(clue)

        logger.debug("Session %s consumed beat %d", snapshot.id, index)
        return asked.appending(
            response,
            status=_advance_status(asked.status, beat.status),
            suspects=beat.suspect_updates or asked.suspects,
            clues=revealed,
        )
