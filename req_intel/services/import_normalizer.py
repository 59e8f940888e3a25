"""
Import normalizer — raw parsed records → clean, uniquely-keyed corpus.

Per item:
  1. skip anything that is not a JSON object
  2. take `req_id` (trimmed) or synthesize UNK-XXXXX
  3. track trailing ID numbers for sequence-gap detection
  4. resolve collisions with _1, _2, … suffixes
  5. build a Requirement with schema defaults

The seen-ID registry and the numeric accumulator live only for one call.
"""

from __future__ import annotations

import logging
import random
import re
import string
from typing import Any, Callable, Iterable

from req_intel.errors import EmptyImport
from req_intel.models.enums import Criticality
from req_intel.models.schemas import ImportResult, ImportStats, Requirement, SequenceGap

logger = logging.getLogger(__name__)

# Tunable heuristics, kept at their historical values for compatibility
NUMERIC_MAJORITY = 0.5  # share of records that must carry a trailing number
DUPLICATE_SUFFIX = "_{n}"

_TRAILING_NUMBER = re.compile(r"(\d+)$")
_ID_ALPHABET = string.ascii_uppercase + string.digits

_FIELD_DEFAULTS: dict[str, str] = {
    "source_doc": "Unknown Source",
    "section": "",
    "category": "Uncategorized",
    "subcategory": "",
    "criticality": Criticality.MAY.value,
    "text_original": "",
}


def random_placeholder_id(rng: random.Random | None = None) -> str:
    """UNK- followed by 5 random uppercase base-36 characters."""
    chooser = rng or random
    return "UNK-" + "".join(chooser.choices(_ID_ALPHABET, k=5))


def normalize_records(
    raw_items: Iterable[Any],
    id_factory: Callable[[], str] | None = None,
) -> ImportResult:
    """Normalize raw records into a Requirement list plus import diagnostics."""
    make_id = id_factory or random_placeholder_id

    requirements: list[Requirement] = []
    seen_ids: set[str] = set()
    next_suffix: dict[str, int] = {}
    collided_bases: set[str] = set()

    min_id: int | None = None
    max_id: int | None = None
    numeric_ids_found = 0
    skipped = 0

    for item in raw_items:
        if not isinstance(item, dict):
            skipped += 1
            continue

        base_id = _text(item.get("req_id")).strip()
        if not base_id:
            base_id = make_id()

        match = _TRAILING_NUMBER.search(base_id)
        if match:
            num = int(match.group(1))
            min_id = num if min_id is None else min(min_id, num)
            max_id = num if max_id is None else max(max_id, num)
            numeric_ids_found += 1

        unique_id = base_id
        if unique_id in seen_ids:
            collided_bases.add(base_id)
            counter = next_suffix.get(base_id, 1)
            while unique_id in seen_ids:
                unique_id = base_id + DUPLICATE_SUFFIX.format(n=counter)
                counter += 1
            next_suffix[base_id] = counter
            logger.debug(f"[IMPORT] ID collision on '{base_id}' → '{unique_id}'")

        seen_ids.add(unique_id)
        requirements.append(_build_requirement(unique_id, item))

    if skipped:
        logger.debug(f"[IMPORT] Skipped {skipped} non-object entries")

    if not requirements:
        raise EmptyImport()

    total = len(requirements)
    sequence_gap = None
    if (
        numeric_ids_found > total * NUMERIC_MAJORITY
        and min_id is not None
        and max_id > min_id
    ):
        expected = max_id - min_id + 1
        if total < expected:
            sequence_gap = SequenceGap(min=min_id, max=max_id, expected=expected, actual=total)
            logger.warning(
                f"[IMPORT] Sequence gap: IDs span {min_id}..{max_id} "
                f"(expected {expected}) but only {total} records found"
            )

    stats = ImportStats(
        total=total,
        duplicates_fixed=len(collided_bases),
        sequence_gap=sequence_gap,
    )
    logger.info(
        f"[IMPORT] Normalized {total} requirements | "
        f"duplicates fixed: {stats.duplicates_fixed} | "
        f"sequence gap: {'yes' if sequence_gap else 'no'}"
    )
    return ImportResult(requirements=requirements, stats=stats)


def _build_requirement(req_id: str, item: dict[str, Any]) -> Requirement:
    fields = {
        name: _text(item.get(name)) or default
        for name, default in _FIELD_DEFAULTS.items()
    }
    return Requirement(req_id=req_id, ctonote=_text(item.get("ctonote")) or None, **fields)


def _text(value: Any) -> str:
    """Stringify a raw field; falsy values (None, "", 0, False) become ""."""
    if not value:
        return ""
    return value if isinstance(value, str) else str(value)
