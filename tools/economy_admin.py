#!/usr/bin/env python
"""Inspect and adjust the persisted resource economy."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from casefile.config import get_settings
from casefile.economy import ResourceEconomy
from casefile.storage_backends.factory import get_storage_backend


def _print_state(economy: ResourceEconomy) -> None:
    state = economy.snapshot()
    print(f"[STATE] energy={state.energy}/{state.max_energy} hints={state.hint_credits} subscription={state.has_subscription}")
    print(f"[STATE] last_refill={state.last_refill.isoformat()}")
    bonus = state.last_daily_bonus.isoformat() if state.last_daily_bonus else "never"
    print(f"[STATE] last_daily_bonus={bonus} available={economy.is_daily_bonus_available()}")


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Inspect and adjust the energy and hint economy.")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    sub = parser.add_subparsers(dest="command", required=True)
    sub.add_parser("show", help="Print the current balances")
    sub.add_parser("refill", help="Top balances up immediately, ignoring the calendar")
    sub.add_parser("bonus", help="Claim today's daily bonus")
    sub.add_parser("reset", help="Reset balances to the daily allowances and cancel the subscription")

    subscription = sub.add_parser("subscription", help="Toggle the subscription flag")
    toggle = subscription.add_mutually_exclusive_group(required=True)
    toggle.add_argument("--on", dest="active", action="store_true")
    toggle.add_argument("--off", dest="active", action="store_false")

    energy = sub.add_parser("grant-energy", help="Add energy")
    energy.add_argument("amount", type=int)
    energy.add_argument("--overflow", action="store_true", help="Allow exceeding (and raising) max energy")

    hints = sub.add_parser("grant-hints", help="Add hint credits")
    hints.add_argument("amount", type=int)
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    settings = get_settings()
    backend = get_storage_backend(settings)
    economy = ResourceEconomy(settings, backend.blobs)

    if args.command == "refill":
        economy.refill_now()
        print("[INFO] Balances refilled")
    elif args.command == "bonus":
        if not economy.claim_daily_bonus():
            print("[WARN] Daily bonus already claimed today")
            _print_state(economy)
            return 1
        print("[INFO] Daily bonus claimed")
    elif args.command == "reset":
        economy.reset_progress()
        print("[INFO] Progress reset")
    elif args.command == "subscription":
        economy.set_subscription(args.active)
        print(f"[INFO] Subscription {'enabled' if args.active else 'disabled'}")
    elif args.command == "grant-energy":
        if args.amount <= 0:
            print("[ERROR] Amount must be positive", file=sys.stderr)
            return 2
        economy.add_energy(args.amount, allow_overflow=args.overflow)
        print(f"[INFO] Granted {args.amount} energy")
    elif args.command == "grant-hints":
        if args.amount <= 0:
            print("[ERROR] Amount must be positive", file=sys.stderr)
            return 2
        economy.add_hint_credits(args.amount)
        print(f"[INFO] Granted {args.amount} hint credits")

    _print_state(economy)
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
