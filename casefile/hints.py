"""
Hint derivation - builds the next hint from the current snapshot.

The stage is the number of hints already unlocked in the session. Each stage
points at a different part of the case file; when the stage's source is
missing the generic nudge is used.
"""

from typing import Sequence

from .models import CaseHint, CaseSnapshot, Speaker, TrustLevel

GENERIC_NUDGE = (
    "Put the conflicting accounts side by side. Two statements cannot both be true; "
    "which one leads you to the culprit?"
)


def make_hint(snapshot: CaseSnapshot, existing_hints: Sequence[CaseHint]) -> str:
    stage = len(existing_hints)

    if stage == 0 and snapshot.clues:
        latest = snapshot.clues[-1]
        return f"Focus on the newly found {latest.title}. Its description: {latest.detail}."

    if stage == 1:
        for suspect in snapshot.suspects:
            if suspect.trust in (TrustLevel.SKEPTICAL, TrustLevel.HOSTILE):
                return f"Question the contradiction in {suspect.name}'s statement. Alibi: {suspect.alibi}."

    if stage == 2:
        for turn in reversed(snapshot.turns):
            if turn.speaker == Speaker.ENGINE:
                return f"Re-read the last report: {turn.text} One detail there will move you forward."

    if stage == 3 and snapshot.clues:
        first = snapshot.clues[0]
        return f"Go back to the first piece of evidence: {first.title}. It ties the plot together."

    return GENERIC_NUDGE
