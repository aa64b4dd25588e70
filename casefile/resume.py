"""
Session Resume Coordinator - realigns the engine's beat cursor with a
persisted snapshot after a cold start.

Snapshots carry no cursor, so a fresh engine would replay the script from
beat 0. The coordinator issues one discarded ``answer`` per engine turn already
in the snapshot, which leaves the cursor exactly where the previous session
stopped. Replay must finish before any live question is sent. When the saved
payload recorded the cursor, the replayed cursor is checked against it.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from .engine import DetectiveEngine
from .errors import ScriptNotFoundError, SessionNotAlignedError
from .models import CaseSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResumeReport:
    expected: int
    replayed: int
    failures: int = 0
    expected_cursor: Optional[int] = None
    cursor: Optional[int] = None

    @property
    def aligned(self) -> bool:
        if self.replayed != self.expected:
            return False
        return self.expected_cursor is None or self.cursor == self.expected_cursor


class SessionResumeCoordinator:
    def __init__(self, engine: DetectiveEngine, placeholder_question: str = "...", strict: bool = False):
        self.engine = engine
        self.placeholder_question = placeholder_question
        self.strict = strict

    async def realign(self, snapshot: CaseSnapshot, expected_cursor: Optional[int] = None) -> ResumeReport:
        if snapshot.status.is_terminal:
            return ResumeReport(expected=0, replayed=0)

        expected = len(snapshot.engine_turns())
        accumulator = snapshot
        replayed = 0
        failures = 0
        for _ in range(expected):
            try:
                accumulator = await self.engine.answer(self.placeholder_question, accumulator)
            except ScriptNotFoundError as exc:
                failures += 1
                logger.warning("Resume replay call failed for session %s: %s", snapshot.id, exc)
                continue
            replayed += 1

        cursor = self.engine.cursor_for(snapshot.id) if expected_cursor is not None else None
        report = ResumeReport(
            expected=expected,
            replayed=replayed,
            failures=failures,
            expected_cursor=expected_cursor,
            cursor=cursor,
        )
        if not report.aligned:
            if self.strict:
                raise SessionNotAlignedError(expected, replayed)
            logger.warning(
                "Session %s resumed out of step: replayed %d of %d beats, cursor %s (saved %s)",
                snapshot.id,
                replayed,
                expected,
                cursor,
                expected_cursor,
            )
        else:
            logger.info("Session %s realigned after %d replayed beats", snapshot.id, replayed)
        return report
