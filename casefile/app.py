from typing import List, Optional

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field

from .config import Settings, get_settings
from .desk import CaseDesk, get_case_desk
from .economy import ResourceEconomy
from .errors import EmptyQuestionError, InsufficientResourceError, NoActiveCaseError, ScriptNotFoundError
from .models import (
    ENERGY_PACKS,
    ActiveSessionPayload,
    CaseHint,
    CaseLog,
    CaseType,
    EconomyState,
    HintUnlockMethod,
    Preferences,
)

app = FastAPI(
    title="Casefile Service",
    description="Scripted detective cases with a daily energy and hint economy",
)


class CaseTypeSummary(BaseModel):
    type: CaseType
    name: str
    tagline: str
    energy_cost: int


class StartCaseRequest(BaseModel):
    case_type: CaseType


class QuestionRequest(BaseModel):
    question: str


class DraftRequest(BaseModel):
    text: str = ""


class HintRequest(BaseModel):
    method: HintUnlockMethod


class SubscriptionRequest(BaseModel):
    active: bool


class EnergyGrantRequest(BaseModel):
    amount: int = Field(ge=0)
    allow_overflow: bool = False


class EconomyResponse(BaseModel):
    state: EconomyState
    daily_energy_allowance: int
    daily_hint_allowance: int
    daily_bonus_available: bool
    seconds_until_refill: float


class BonusResponse(BaseModel):
    claimed: bool
    economy: EconomyResponse


class ResumeResponse(BaseModel):
    session: ActiveSessionPayload
    replayed: int
    aligned: bool


class PreferencesUpdate(BaseModel):
    last_case_type: Optional[CaseType] = None
    notifications_enabled: Optional[bool] = None


def get_settings_dep() -> Settings:
    return get_settings()


def get_desk_dep(settings: Settings = Depends(get_settings_dep)) -> CaseDesk:
    return get_case_desk(settings)


def _economy_view(economy: ResourceEconomy) -> EconomyResponse:
    return EconomyResponse(
        state=economy.snapshot(),
        daily_energy_allowance=economy.daily_energy_allowance,
        daily_hint_allowance=economy.daily_hint_allowance,
        daily_bonus_available=economy.is_daily_bonus_available(),
        seconds_until_refill=economy.time_until_next_refill().total_seconds(),
    )


def _insufficient(exc: InsufficientResourceError) -> HTTPException:
    return HTTPException(status_code=402, detail=str(exc))


@app.get("/health")
def health() -> dict:
    return {"status": "ok"}


@app.get("/cases")
def list_case_types() -> List[CaseTypeSummary]:
    return [
        CaseTypeSummary(type=case_type, name=case_type.display_name, tagline=case_type.tagline, energy_cost=case_type.energy_cost)
        for case_type in CaseType
    ]


@app.post("/cases", status_code=201)
async def start_case(request: StartCaseRequest, desk: CaseDesk = Depends(get_desk_dep)) -> ActiveSessionPayload:
    try:
        return await desk.start_case(request.case_type)
    except InsufficientResourceError as exc:
        raise _insufficient(exc)
    except ScriptNotFoundError as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@app.get("/cases/active")
def active_case(desk: CaseDesk = Depends(get_desk_dep)) -> ActiveSessionPayload:
    if desk.current is not None:
        return desk.current
    payload = desk.sessions.load()
    if payload is None:
        raise HTTPException(status_code=404, detail="No active case")
    return payload


@app.delete("/cases/active")
async def abandon_case(desk: CaseDesk = Depends(get_desk_dep)) -> dict:
    await desk.abandon()
    return {"message": "Abandoned"}


@app.post("/cases/active/resume")
async def resume_case(desk: CaseDesk = Depends(get_desk_dep)) -> ResumeResponse:
    try:
        payload = await desk.resume()
    except NoActiveCaseError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    report = desk.last_resume_report
    return ResumeResponse(
        session=payload,
        replayed=report.replayed if report else 0,
        aligned=report.aligned if report else True,
    )


@app.post("/cases/active/questions")
async def ask_question(request: QuestionRequest, desk: CaseDesk = Depends(get_desk_dep)) -> ActiveSessionPayload:
    try:
        return await desk.ask(request.question)
    except EmptyQuestionError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    except NoActiveCaseError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ScriptNotFoundError as exc:
        raise HTTPException(status_code=500, detail=str(exc))


@app.post("/cases/active/hints", status_code=201)
async def unlock_hint(request: HintRequest, desk: CaseDesk = Depends(get_desk_dep)) -> CaseHint:
    try:
        return await desk.unlock_hint(request.method)
    except NoActiveCaseError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except InsufficientResourceError as exc:
        raise _insufficient(exc)


@app.put("/cases/active/draft")
async def save_draft(request: DraftRequest, desk: CaseDesk = Depends(get_desk_dep)) -> ActiveSessionPayload:
    try:
        return await desk.save_draft(request.text)
    except NoActiveCaseError as exc:
        raise HTTPException(status_code=404, detail=str(exc))


@app.get("/economy")
def economy_state(desk: CaseDesk = Depends(get_desk_dep)) -> EconomyResponse:
    return _economy_view(desk.economy)


@app.post("/economy/daily-bonus")
def claim_daily_bonus(desk: CaseDesk = Depends(get_desk_dep)) -> BonusResponse:
    claimed = desk.economy.claim_daily_bonus()
    return BonusResponse(claimed=claimed, economy=_economy_view(desk.economy))


@app.post("/economy/refill")
def refill_now(desk: CaseDesk = Depends(get_desk_dep)) -> EconomyResponse:
    desk.economy.refill_now()
    return _economy_view(desk.economy)


@app.post("/economy/subscription")
def set_subscription(request: SubscriptionRequest, desk: CaseDesk = Depends(get_desk_dep)) -> EconomyResponse:
    desk.economy.set_subscription(request.active)
    return _economy_view(desk.economy)


@app.post("/economy/energy")
def grant_energy(request: EnergyGrantRequest, desk: CaseDesk = Depends(get_desk_dep)) -> EconomyResponse:
    desk.economy.add_energy(request.amount, allow_overflow=request.allow_overflow)
    return _economy_view(desk.economy)


@app.post("/economy/packs/{pack_id}")
def purchase_pack(pack_id: str, desk: CaseDesk = Depends(get_desk_dep)) -> EconomyResponse:
    if pack_id not in ENERGY_PACKS:
        raise HTTPException(status_code=404, detail="Energy pack not found")
    if not desk.economy.purchase_pack(pack_id):
        raise HTTPException(status_code=409, detail="Energy is already full")
    return _economy_view(desk.economy)


@app.post("/economy/rewarded/{reward}")
def rewarded_grant(reward: str, desk: CaseDesk = Depends(get_desk_dep)) -> EconomyResponse:
    if reward not in ("energy", "hint"):
        raise HTTPException(status_code=404, detail="Unknown reward")
    if desk.economy.has_subscription:
        raise HTTPException(status_code=409, detail="Rewarded grants are disabled with an active subscription")
    if reward == "energy":
        desk.economy.add_energy(1)
    else:
        desk.economy.add_hint_credits(1)
    return _economy_view(desk.economy)


@app.post("/economy/reset")
def reset_progress(desk: CaseDesk = Depends(get_desk_dep)) -> EconomyResponse:
    desk.economy.reset_progress()
    return _economy_view(desk.economy)


@app.get("/history")
def case_history(desk: CaseDesk = Depends(get_desk_dep)) -> List[CaseLog]:
    return desk.history.logs()


@app.delete("/history")
def clear_history(desk: CaseDesk = Depends(get_desk_dep)) -> dict:
    desk.history.remove_all()
    return {"message": "Cleared"}


@app.delete("/history/{index}")
def delete_history_entry(index: int, desk: CaseDesk = Depends(get_desk_dep)) -> CaseLog:
    logs = desk.history.logs()
    if index < 0 or index >= len(logs):
        raise HTTPException(status_code=404, detail="History entry not found")
    return desk.history.remove(index)


@app.get("/preferences")
def get_preferences(desk: CaseDesk = Depends(get_desk_dep)) -> Preferences:
    return desk.preferences.load()


@app.put("/preferences")
def update_preferences(request: PreferencesUpdate, desk: CaseDesk = Depends(get_desk_dep)) -> Preferences:
    preferences = desk.preferences.load()
    if "last_case_type" in request.model_fields_set:
        preferences = desk.preferences.set_last_case_type(request.last_case_type)
    if request.notifications_enabled is not None:
        preferences = desk.preferences.set_notifications_enabled(request.notifications_enabled)
    return preferences
