from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import pytest

from casefile.config import Settings
from casefile.economy import ECONOMY_KEY, ResourceEconomy
from casefile.models import CaseType

UTC = timezone.utc


def _economy(clock, store=None, **kwargs):
    kwargs.setdefault("initial_max_energy", 10)
    kwargs.setdefault("daily_energy_allowance", 3)
    kwargs.setdefault("daily_hint_allowance", 1)
    return ResourceEconomy(Settings(), store, clock=clock, tz=UTC, **kwargs)


def test_fresh_install_starts_at_daily_allowances(clock):
    economy = _economy(clock)
    assert economy.energy == 3
    assert economy.max_energy == 10
    assert economy.hint_credits == 1
    assert economy.has_subscription is False
    assert economy.last_refill == clock.now


def test_allowances_are_clamped(clock):
    economy = _economy(clock, initial_max_energy=0, daily_energy_allowance=7, daily_hint_allowance=-2)
    assert economy.max_energy == 1
    assert economy.daily_energy_allowance == 1
    assert economy.daily_hint_allowance == 0
    assert economy.energy == 1
    assert economy.hint_credits == 0


def test_second_case_of_cost_two_is_refused(clock):
    economy = _economy(clock)
    assert CaseType.HOMICIDE.energy_cost == 2

    assert economy.consume_energy_for(CaseType.HOMICIDE) is True
    assert economy.energy == 1
    assert economy.consume_energy_for(CaseType.HOMICIDE) is False
    assert economy.energy == 1


def test_consume_energy_points_requires_positive_and_available(clock):
    economy = _economy(clock)
    assert economy.consume_energy(0) is False
    assert economy.consume_energy(-1) is False
    assert economy.consume_energy(4) is False
    assert economy.energy == 3
    assert economy.consume_energy(3) is True
    assert economy.energy == 0
    assert economy.consume_energy(1) is False
    assert economy.energy == 0


def test_add_energy_without_overflow_clamps_to_max(clock):
    economy = _economy(clock)
    economy.add_energy(50)
    assert economy.energy == 10
    assert economy.max_energy == 10


def test_add_energy_with_overflow_raises_max(clock):
    economy = _economy(clock)
    economy.add_energy(12, allow_overflow=True)
    assert economy.energy == 15
    assert economy.max_energy == 15


def test_negative_grants_add_nothing(clock):
    economy = _economy(clock)
    economy.add_energy(-5)
    economy.add_hint_credits(-5)
    assert economy.energy == 3
    assert economy.hint_credits == 1


def test_refill_happens_once_for_many_missed_days(clock):
    economy = _economy(clock)
    economy.consume_energy(3)
    economy.consume_hint_credit()
    assert (economy.energy, economy.hint_credits) == (0, 0)

    clock.advance(days=5)
    assert economy.consume_energy(1) is True
    # One allowance, not five.
    assert economy.energy == 2
    assert economy.hint_credits == 1
    assert economy.last_refill == clock.now


def test_refill_never_lowers_balances(clock):
    economy = _economy(clock)
    economy.add_energy(5)
    economy.add_hint_credits(4)
    clock.advance(days=1)
    economy.add_hint_credits(0)
    assert economy.energy == 8
    assert economy.hint_credits == 5


def test_same_day_calls_do_not_refill(clock):
    economy = _economy(clock)
    economy.consume_energy(3)
    clock.advance(hours=10)
    assert economy.consume_energy(1) is False
    assert economy.energy == 0


def test_day_boundary_uses_injected_timezone():
    clock_start = datetime(2026, 3, 14, 20, 0, tzinfo=UTC)  # 23:00 in Istanbul

    class Clock:
        now = clock_start

        def __call__(self):
            return self.now

    clock = Clock()
    economy = ResourceEconomy(
        Settings(),
        clock=clock,
        tz=ZoneInfo("Europe/Istanbul"),
        initial_max_energy=10,
        daily_energy_allowance=3,
        daily_hint_allowance=1,
    )
    economy.consume_energy(3)

    clock.now = datetime(2026, 3, 14, 21, 30, tzinfo=UTC)  # 00:30 next day in Istanbul
    assert economy.consume_energy(1) is True
    assert economy.energy == 2


def test_hint_credit_consumption(clock):
    economy = _economy(clock)
    assert economy.consume_hint_credit() is True
    assert economy.hint_credits == 0
    assert economy.consume_hint_credit() is False
    assert economy.hint_credits == 0


def test_subscription_makes_hints_free(clock):
    economy = _economy(clock)
    economy.set_subscription(True)
    for _ in range(5):
        assert economy.consume_hint_credit() is True
    assert economy.hint_credits == 1


def test_set_subscription_leaves_balances(clock):
    economy = _economy(clock)
    economy.set_subscription(True)
    economy.set_subscription(False)
    assert (economy.energy, economy.hint_credits, economy.max_energy) == (3, 1, 10)


def test_daily_bonus_once_per_day(clock):
    economy = _economy(clock)
    assert economy.is_daily_bonus_available() is True
    assert economy.claim_daily_bonus() is True
    assert (economy.energy, economy.hint_credits) == (4, 2)

    clock.advance(hours=3)
    assert economy.claim_daily_bonus() is False
    assert (economy.energy, economy.hint_credits) == (4, 2)
    assert economy.time_until_daily_bonus() == economy.time_until_next_refill()

    clock.advance(days=1)
    assert economy.claim_daily_bonus() is True
    assert (economy.energy, economy.hint_credits) == (5, 3)


def test_daily_bonus_does_not_overflow(clock):
    economy = _economy(clock)
    economy.add_energy(10)
    assert economy.claim_daily_bonus() is True
    assert economy.energy == 10
    assert economy.max_energy == 10


def test_refill_now_tops_up_to_max(clock):
    economy = _economy(clock)
    economy.consume_energy(3)
    economy.consume_hint_credit()
    clock.advance(minutes=5)
    economy.refill_now()
    assert economy.energy == 10
    assert economy.hint_credits == 1
    assert economy.last_refill == clock.now


def test_refill_now_keeps_overflowed_energy(clock):
    economy = _economy(clock)
    economy.add_energy(20, allow_overflow=True)
    economy.increase_max_energy(0)
    economy.refill_now()
    assert economy.energy == 23
    assert economy.max_energy == 23


def test_increase_max_energy(clock):
    economy = _economy(clock)
    economy.increase_max_energy(2)
    economy.increase_max_energy(-4)
    assert economy.max_energy == 12


def test_purchase_pack(clock):
    economy = _economy(clock)
    assert economy.purchase_pack("pack.large") is True
    assert economy.energy == 13
    assert economy.max_energy == 13
    assert economy.purchase_pack("pack.small") is False
    assert economy.energy == 13
    with pytest.raises(KeyError):
        economy.purchase_pack("pack.unknown")


def test_reset_progress(clock):
    economy = _economy(clock)
    economy.add_energy(5)
    economy.add_hint_credits(3)
    economy.set_subscription(True)
    economy.reset_progress()
    assert (economy.energy, economy.hint_credits, economy.has_subscription) == (3, 1, False)


def test_next_refill_is_next_local_midnight(clock):
    economy = _economy(clock)
    assert economy.next_refill_at() == datetime(2026, 3, 15, 0, 0, tzinfo=UTC)
    assert economy.time_until_next_refill() == timedelta(hours=14, minutes=30)


def test_state_persists_across_instances(clock, blobs):
    economy = _economy(clock, store=blobs)
    economy.consume_energy_for(CaseType.MISSING_PERSON)
    economy.add_hint_credits(2)
    economy.add_energy(9, allow_overflow=True)
    economy.set_subscription(True)
    economy.claim_daily_bonus()

    reloaded = _economy(clock, store=blobs)
    assert reloaded.snapshot() == economy.snapshot()
    assert reloaded.energy == 11
    assert reloaded.max_energy == 11
    assert reloaded.hint_credits == 4
    assert reloaded.has_subscription is True
    assert reloaded.is_daily_bonus_available() is False


def test_reload_on_a_new_day_applies_catch_up_refill(clock, blobs):
    economy = _economy(clock, store=blobs)
    economy.consume_energy(3)
    economy.consume_hint_credit()

    clock.advance(days=3)
    reloaded = _economy(clock, store=blobs)
    assert reloaded.energy == 3
    assert reloaded.hint_credits == 1
    assert reloaded.last_refill == clock.now
    assert blobs.load_blob(ECONOMY_KEY)["energy"] == 3


def test_failed_consume_does_not_persist(clock, blobs):
    economy = _economy(clock, store=blobs)
    economy.consume_energy(3)
    before = blobs.load_blob(ECONOMY_KEY)
    assert economy.consume_energy(1) is False
    assert economy.consume_hint_credit() is True
    assert economy.consume_hint_credit() is False
    after = blobs.load_blob(ECONOMY_KEY)
    assert after["energy"] == before["energy"] == 0
    assert after["hint_credits"] == 0


def test_unreadable_state_falls_back_to_defaults(clock, blobs):
    blobs.save_blob(ECONOMY_KEY, {"energy": "lots"})
    economy = _economy(clock, store=blobs)
    assert economy.energy == 3
    assert economy.hint_credits == 1
