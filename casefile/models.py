from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Iterable, List, Optional, Sequence

from pydantic import BaseModel, ConfigDict, Field


class CaseType(str, Enum):
    HOMICIDE = "homicide"
    MISSING_PERSON = "missing_person"
    HEIST = "heist"

    @property
    def display_name(self) -> str:
        return _CASE_TYPE_META[self]["display_name"]

    @property
    def tagline(self) -> str:
        return _CASE_TYPE_META[self]["tagline"]

    @property
    def energy_cost(self) -> int:
        return _CASE_TYPE_META[self]["energy_cost"]


_CASE_TYPE_META = {
    CaseType.HOMICIDE: {
        "display_name": "Homicide",
        "tagline": "A murder committed in a hotel room.",
        "energy_cost": 2,
    },
    CaseType.MISSING_PERSON: {
        "display_name": "Missing Person",
        "tagline": "A young journalist has vanished.",
        "energy_cost": 1,
    },
    CaseType.HEIST: {
        "display_name": "High-Profile Heist",
        "tagline": "Jewels stolen from the city's safest vault.",
        "energy_cost": 3,
    },
}


class ClueCategory(str, Enum):
    PHYSICAL_EVIDENCE = "physical_evidence"
    TESTIMONY = "testimony"
    DOCUMENT = "document"


class TrustLevel(str, Enum):
    UNKNOWN = "unknown"
    SKEPTICAL = "skeptical"
    COOPERATIVE = "cooperative"
    HOSTILE = "hostile"


class Speaker(str, Enum):
    DETECTIVE = "detective"
    ENGINE = "engine"


class StatusKind(str, Enum):
    BRIEFING = "briefing"
    INVESTIGATION = "investigation"
    SOLVED = "solved"
    FAILED = "failed"


class Clue(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    detail: str
    category: ClueCategory


class SuspectProfile(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    occupation: str
    motive: str
    alibi: str
    trust: TrustLevel = TrustLevel.UNKNOWN


class CaseTurn(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    speaker: Speaker
    text: str
    timestamp: datetime
    new_clues: List[Clue] = Field(default_factory=list)


class CaseStatus(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: StatusKind
    reason: Optional[str] = None

    @classmethod
    def briefing(cls) -> "CaseStatus":
        return cls(kind=StatusKind.BRIEFING)

    @classmethod
    def investigation(cls) -> "CaseStatus":
        return cls(kind=StatusKind.INVESTIGATION)

    @classmethod
    def solved(cls) -> "CaseStatus":
        return cls(kind=StatusKind.SOLVED)

    @classmethod
    def failed(cls, reason: str = "") -> "CaseStatus":
        return cls(kind=StatusKind.FAILED, reason=reason)

    @property
    def is_terminal(self) -> bool:
        return self.kind in (StatusKind.SOLVED, StatusKind.FAILED)

    @property
    def label(self) -> str:
        if self.kind == StatusKind.SOLVED:
            return "Solved"
        if self.kind == StatusKind.FAILED:
            return f"Unsolved: {self.reason}" if self.reason else "Unsolved"
        return self.kind.value.capitalize()


class CaseSnapshot(BaseModel):
    """Complete state of one case session at a point in time.

    Snapshots are values: ``appending`` builds the next snapshot from this one
    plus a delta and leaves the receiver untouched.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    type: CaseType
    title: str
    synopsis: str
    status: CaseStatus
    turns: List[CaseTurn] = Field(default_factory=list)
    clues: List[Clue] = Field(default_factory=list)
    suspects: List[SuspectProfile] = Field(default_factory=list)

    def appending(
        self,
        turn: CaseTurn,
        status: Optional[CaseStatus] = None,
        suspects: Optional[Sequence[SuspectProfile]] = None,
        clues: Iterable[Clue] = (),
    ) -> "CaseSnapshot":
        update = {
            "turns": [*self.turns, turn],
            "clues": [*self.clues, *clues],
        }
        if status is not None:
            update["status"] = status
        if suspects is not None:
            update["suspects"] = list(suspects)
        return self.model_copy(update=update)

    def engine_turns(self) -> List[CaseTurn]:
        return [turn for turn in self.turns if turn.speaker == Speaker.ENGINE]


class HintUnlockMethod(str, Enum):
    DAILY_ALLOWANCE = "daily_allowance"
    HINT_CREDIT = "hint_credit"
    ENERGY = "energy"
    REWARDED = "rewarded"
    SUBSCRIPTION = "subscription"


class CaseHint(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    text: str
    created_at: datetime
    method: HintUnlockMethod


class EconomyState(BaseModel):
    energy: int = Field(ge=0)
    max_energy: int = Field(ge=1)
    hint_credits: int = Field(ge=0)
    has_subscription: bool = False
    last_refill: datetime
    last_daily_bonus: Optional[datetime] = None


class ActiveSessionPayload(BaseModel):
    snapshot: CaseSnapshot
    hints: List[CaseHint] = Field(default_factory=list)
    input_text: str = ""
    # Engine beat cursor when the payload was saved; resume checks its replay against it.
    engine_state_version: Optional[int] = None


class CaseLog(BaseModel):
    id: str
    case_id: str
    type: CaseType
    title: str
    status: str
    date: datetime
    turns: int = Field(ge=0)


class Preferences(BaseModel):
    last_case_type: Optional[CaseType] = None
    notifications_enabled: bool = False


class EnergyPack(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    subtitle: str
    energy: int = Field(ge=1)


ENERGY_PACKS = {
    pack.id: pack
    for pack in (
        EnergyPack(id="pack.small", title="Daily Boost", subtitle="3 extra cases", energy=3),
        EnergyPack(id="pack.medium", title="Investigator Pack", subtitle="5 extra cases", energy=5),
        EnergyPack(id="pack.large", title="Operation Pack", subtitle="10 extra cases", energy=10),
    )
}
