"""
Resource Economy - energy and hint-credit balances with a calendar-day refill.

Time only moves through explicit calls: every public operation takes an
optional ``now`` and falls back to the injected clock. "Same day" is judged in
the injected time zone, never the ambient system calendar.
"""

from __future__ import annotations

import logging
import threading
from datetime import date, datetime, time, timedelta, timezone, tzinfo
from typing import Callable, Optional

from pydantic import BaseModel, ValidationError

from .config import Settings, get_settings
from .models import ENERGY_PACKS, CaseType, EconomyState
from .storage_backends import BlobStore

logger = logging.getLogger(__name__)

ECONOMY_KEY = "economy.state"
DAILY_BONUS_ENERGY = 1
DAILY_BONUS_HINTS = 1


class _PersistedEconomy(BaseModel):
    energy: Optional[int] = None
    max_energy: Optional[int] = None
    hint_credits: Optional[int] = None
    has_subscription: bool = False
    last_refill: Optional[datetime] = None
    last_daily_bonus: Optional[datetime] = None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ResourceEconomy:
    def __init__(
        self,
        settings: Optional[Settings] = None,
        store: Optional[BlobStore] = None,
        clock: Optional[Callable[[], datetime]] = None,
        tz: Optional[tzinfo] = None,
        *,
        initial_max_energy: Optional[int] = None,
        daily_energy_allowance: Optional[int] = None,
        daily_hint_allowance: Optional[int] = None,
        now: Optional[datetime] = None,
    ):
        settings = settings or get_settings()
        self.store = store
        self.tz = tz or settings.timezone
        self._clock = clock or _utcnow
        self._lock = threading.RLock()

        if initial_max_energy is None:
            initial_max_energy = settings.initial_max_energy
        if daily_energy_allowance is None:
            daily_energy_allowance = settings.daily_energy_allowance
        if daily_hint_allowance is None:
            daily_hint_allowance = settings.daily_hint_allowance

        now = now or self._clock()
        persisted = self._load_persisted()

        stored_max = persisted.max_energy if persisted.max_energy is not None else initial_max_energy
        self._max_energy = max(stored_max, 1)
        self.daily_energy_allowance = min(self._max_energy, max(daily_energy_allowance, 0))
        self.daily_hint_allowance = max(daily_hint_allowance, 0)
        self._has_subscription = persisted.has_subscription
        self._last_daily_bonus = persisted.last_daily_bonus

        stored_hints = persisted.hint_credits
        if persisted.energy is not None and persisted.last_refill is not None:
            self._energy = max(persisted.energy, 0)
            self._hint_credits = max(stored_hints if stored_hints is not None else self.daily_hint_allowance, 0)
            if self.same_day(now, persisted.last_refill):
                self._last_refill = persisted.last_refill
            else:
                self._energy = max(self._energy, self.daily_energy_allowance)
                self._hint_credits = max(self._hint_credits, self.daily_hint_allowance)
                self._last_refill = now
                self._persist()
        else:
            self._energy = self.daily_energy_allowance
            self._hint_credits = max(
                stored_hints if stored_hints is not None else self.daily_hint_allowance,
                self.daily_hint_allowance,
            )
            self._last_refill = now
            self._persist()

    # ------------------------------------------------------------------
    # Read model

    @property
    def energy(self) -> int:
        return self._energy

    @property
    def max_energy(self) -> int:
        return self._max_energy

    @property
    def hint_credits(self) -> int:
        return self._hint_credits

    @property
    def has_subscription(self) -> bool:
        return self._has_subscription

    @property
    def last_refill(self) -> datetime:
        return self._last_refill

    @property
    def last_daily_bonus(self) -> Optional[datetime]:
        return self._last_daily_bonus

    def snapshot(self) -> EconomyState:
        with self._lock:
            return EconomyState(
                energy=self._energy,
                max_energy=self._max_energy,
                hint_credits=self._hint_credits,
                has_subscription=self._has_subscription,
                last_refill=self._last_refill,
                last_daily_bonus=self._last_daily_bonus,
            )

    # ------------------------------------------------------------------
    # Calendar helpers

    def _local_day(self, moment: datetime) -> date:
        if moment.tzinfo is None:
            moment = moment.replace(tzinfo=timezone.utc)
        return moment.astimezone(self.tz).date()

    def same_day(self, first: datetime, second: datetime) -> bool:
        return self._local_day(first) == self._local_day(second)

    def next_refill_at(self, now: Optional[datetime] = None) -> datetime:
        now = now or self._clock()
        tomorrow = self._local_day(now) + timedelta(days=1)
        return datetime.combine(tomorrow, time(0, 0), tzinfo=self.tz)

    def time_until_next_refill(self, now: Optional[datetime] = None) -> timedelta:
        now = now or self._clock()
        return max(timedelta(0), self.next_refill_at(now) - now)

    def is_daily_bonus_available(self, now: Optional[datetime] = None) -> bool:
        now = now or self._clock()
        last = self._last_daily_bonus
        return last is None or not self.same_day(now, last)

    def time_until_daily_bonus(self, now: Optional[datetime] = None) -> timedelta:
        now = now or self._clock()
        if self.is_daily_bonus_available(now):
            return timedelta(0)
        return self.time_until_next_refill(now)

    # ------------------------------------------------------------------
    # Operations

    def consume_energy_for(self, case_type: CaseType, now: Optional[datetime] = None) -> bool:
        with self._lock:
            self._refill_if_needed(now or self._clock())
            cost = case_type.energy_cost
            if self._energy < cost:
                logger.info("Refused %s case: energy %d < cost %d", case_type.value, self._energy, cost)
                return False
            self._energy -= cost
            self._persist()
            return True

    def consume_energy(self, points: int, now: Optional[datetime] = None) -> bool:
        with self._lock:
            self._refill_if_needed(now or self._clock())
            if points <= 0 or self._energy < points:
                return False
            self._energy -= points
            self._persist()
            return True

    def add_energy(self, amount: int, allow_overflow: bool = False, now: Optional[datetime] = None) -> None:
        with self._lock:
            self._refill_if_needed(now or self._clock())
            addition = max(0, amount)
            if allow_overflow:
                self._energy += addition
                if self._energy > self._max_energy:
                    self._max_energy = self._energy
            else:
                self._energy = min(self._max_energy, self._energy + addition)
            self._persist()

    def consume_hint_credit(self, now: Optional[datetime] = None) -> bool:
        with self._lock:
            self._refill_if_needed(now or self._clock())
            if self._has_subscription:
                return True
            if self._hint_credits <= 0:
                return False
            self._hint_credits -= 1
            self._persist()
            return True

    def add_hint_credits(self, amount: int, now: Optional[datetime] = None) -> None:
        with self._lock:
            self._refill_if_needed(now or self._clock())
            self._hint_credits += max(0, amount)
            self._persist()

    def claim_daily_bonus(self, now: Optional[datetime] = None) -> bool:
        now = now or self._clock()
        with self._lock:
            if not self.is_daily_bonus_available(now):
                return False
            self.add_energy(DAILY_BONUS_ENERGY, allow_overflow=False, now=now)
            self.add_hint_credits(DAILY_BONUS_HINTS, now=now)
            self._last_daily_bonus = now
            self._persist()
            logger.info("Daily bonus claimed")
            return True

    def refill_now(self, now: Optional[datetime] = None) -> None:
        with self._lock:
            self._energy = max(self._energy, self._max_energy)
            self._hint_credits = max(self._hint_credits, self.daily_hint_allowance)
            self._last_refill = now or self._clock()
            self._persist()

    def set_subscription(self, active: bool) -> None:
        with self._lock:
            self._has_subscription = active
            self._persist()

    def increase_max_energy(self, amount: int) -> None:
        if amount <= 0:
            return
        with self._lock:
            self._max_energy += amount
            self._persist()

    def purchase_pack(self, pack_id: str, now: Optional[datetime] = None) -> bool:
        pack = ENERGY_PACKS[pack_id]
        now = now or self._clock()
        with self._lock:
            self._refill_if_needed(now)
            if self._energy >= self._max_energy:
                return False
            self.add_energy(pack.energy, allow_overflow=True, now=now)
            return True

    def reset_progress(self, now: Optional[datetime] = None) -> None:
        with self._lock:
            self._energy = self.daily_energy_allowance
            self._hint_credits = self.daily_hint_allowance
            self._has_subscription = False
            self._last_refill = now or self._clock()
            self._persist()

    # ------------------------------------------------------------------
    # Internals

    def _refill_if_needed(self, now: datetime) -> None:
        if self.same_day(now, self._last_refill):
            return
        self._energy = max(self._energy, self.daily_energy_allowance)
        self._hint_credits = max(self._hint_credits, self.daily_hint_allowance)
        self._last_refill = now
        logger.info("Daily refill applied: energy=%d hints=%d", self._energy, self._hint_credits)
        self._persist()

    def _load_persisted(self) -> _PersistedEconomy:
        if self.store is None:
            return _PersistedEconomy()
        raw = self.store.load_blob(ECONOMY_KEY)
        if not raw:
            return _PersistedEconomy()
        try:
            return _PersistedEconomy.model_validate(raw)
        except ValidationError as exc:
            logger.warning("Discarding unreadable economy state: %s", exc)
            return _PersistedEconomy()

    def _persist(self) -> None:
        if self.store is None:
            return
        self.store.save_blob(ECONOMY_KEY, self.snapshot().model_dump(mode="json"))
