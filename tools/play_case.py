#!/usr/bin/env python
"""Play a scripted case in the terminal."""
from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from casefile.config import get_settings
from casefile.desk import CaseDesk
from casefile.errors import EmptyQuestionError, InsufficientResourceError, NoActiveCaseError
from casefile.models import CaseTurn, CaseType, HintUnlockMethod, Speaker
from casefile.storage_backends.factory import get_storage_backend

QUIT_COMMANDS = {"quit", "exit"}


def _render_turn(turn: CaseTurn) -> str:
    prefix = "YOU" if turn.speaker == Speaker.DETECTIVE else "FILE"
    lines = [f"[{prefix}] {turn.text}"]
    for clue in turn.new_clues:
        lines.append(f"  + clue: {clue.title} ({clue.category.value})")
    return "\n".join(lines)


async def play(desk: CaseDesk, case_type: Optional[CaseType], resume: bool, read_line: Callable[[str], str]) -> int:
    try:
        if resume:
            payload = await desk.resume()
            for turn in payload.snapshot.turns:
                print(_render_turn(turn))
        else:
            payload = await desk.start_case(case_type)
            print(f"== {payload.snapshot.title} ==")
            print(payload.snapshot.synopsis)
            print(_render_turn(payload.snapshot.turns[0]))
    except (InsufficientResourceError, NoActiveCaseError) as exc:
        print(f"[ERROR] {exc}", file=sys.stderr)
        return 1

    while True:
        try:
            line = read_line("> ")
        except EOFError:
            line = "quit"
        command = line.strip()
        if command.lower() in QUIT_COMMANDS:
            print("[INFO] Case saved; resume with --resume")
            return 0
        if command.lower() == "hint":
            try:
                hint = await desk.unlock_hint(HintUnlockMethod.HINT_CREDIT)
            except InsufficientResourceError as exc:
                print(f"[WARN] {exc}")
                continue
            print(f"[HINT] {hint.text}")
            continue
        try:
            payload = await desk.ask(command)
        except EmptyQuestionError:
            continue
        for turn in payload.snapshot.turns[-2:]:
            print(_render_turn(turn))
        if payload.snapshot.status.is_terminal:
            print(f"[CLOSED] {payload.snapshot.status.label}")
            return 0


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Play a scripted detective case in the terminal.")
    parser.add_argument("--case", choices=[case_type.value for case_type in CaseType], default=CaseType.HOMICIDE.value)
    parser.add_argument("--resume", action="store_true", help="Resume the saved case instead of opening a new one")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None, read_line: Callable[[str], str] = input) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    settings = get_settings()
    desk = CaseDesk(settings, get_storage_backend(settings))
    return asyncio.run(play(desk, CaseType(args.case), args.resume, read_line))


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
