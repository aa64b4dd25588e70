#!/usr/bin/env python
"""Validate persisted state blobs and the Script Catalog."""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import Dict, List, Optional, Sequence

import jsonschema
from pydantic import TypeAdapter

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from casefile.active_session import ACTIVE_SESSION_KEY
from casefile.config import get_settings
from casefile.economy import ECONOMY_KEY
from casefile.history import HISTORY_KEY
from casefile.models import ActiveSessionPayload, CaseLog, CaseType, EconomyState, Preferences
from casefile.preferences import PREFERENCES_KEY
from casefile.scripts import DEFAULT_CATALOG, CaseScript
from casefile.storage_backends import BlobStore
from casefile.storage_backends.factory import get_storage_backend

BLOB_SCHEMAS: Dict[str, dict] = {
    ECONOMY_KEY: EconomyState.model_json_schema(),
    ACTIVE_SESSION_KEY: ActiveSessionPayload.model_json_schema(),
    HISTORY_KEY: TypeAdapter(List[CaseLog]).json_schema(),
    PREFERENCES_KEY: Preferences.model_json_schema(),
}


def validate_blobs(blobs: BlobStore) -> List[str]:
    problems = []
    for key, schema in BLOB_SCHEMAS.items():
        payload = blobs.load_blob(key)
        if payload is None:
            continue
        try:
            jsonschema.validate(payload, schema)
        except jsonschema.ValidationError as exc:
            problems.append(f"{key}: {exc.message}")
    return problems


def validate_script(case_type: CaseType, script: CaseScript) -> List[str]:
    problems = []
    if not script.beats:
        problems.append(f"{case_type.value}: script has no beats")
        return problems

    for index, beat in enumerate(script.beats[:-1]):
        if beat.status is not None and beat.status.is_terminal:
            problems.append(f"{case_type.value}: beat {index} closes the case before the last beat")

    seen = set()
    for beat in script.beats:
        for clue in beat.new_clues:
            if clue.id in seen:
                problems.append(f"{case_type.value}: clue id {clue.id} used twice")
            seen.add(clue.id)
    return problems


def validate_catalog(catalog=None) -> List[str]:
    catalog = catalog if catalog is not None else DEFAULT_CATALOG
    problems = []
    for case_type in CaseType:
        script = catalog.get(case_type)
        if script is None:
            problems.append(f"{case_type.value}: no script registered")
            continue
        problems.extend(validate_script(case_type, script))
    return problems


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Validate persisted casefile state and the Script Catalog.")
    parser.add_argument("--catalog-only", action="store_true", help="Skip the persisted state blobs")
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def main(argv: Optional[Sequence[str]] = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)

    problems = validate_catalog()
    if not args.catalog_only:
        settings = get_settings()
        backend = get_storage_backend(settings)
        problems.extend(validate_blobs(backend.blobs))

    for problem in problems:
        print(f"[ERROR] {problem}")
    if problems:
        return 1
    print("[OK] Catalog and state are valid")
    return 0


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
