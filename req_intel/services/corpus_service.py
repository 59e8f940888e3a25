"""
Corpus edits issued by the audit workflow.

All operations take the current corpus and return a new list; the input
list and its Requirement objects are never mutated.
"""

from __future__ import annotations

import logging
from typing import Iterable

from req_intel.models.enums import AuditAction
from req_intel.models.schemas import AuditSuggestion, Requirement

logger = logging.getLogger(__name__)


def apply_suggestions(
    corpus: list[Requirement],
    suggestions: Iterable[AuditSuggestion],
) -> list[Requirement]:
    """Apply selected audit suggestions atomically: drop deletions, substitute updated text."""
    to_delete: set[str] = set()
    updates: dict[str, str] = {}

    for suggestion in suggestions:
        if suggestion.type == AuditAction.DELETE:
            to_delete.add(suggestion.id)
        elif suggestion.type == AuditAction.UPDATE and suggestion.suggested_text:
            updates[suggestion.id] = suggestion.suggested_text

    result = [
        req.model_copy(update={"text_original": updates[req.req_id]})
        if req.req_id in updates
        else req
        for req in corpus
        if req.req_id not in to_delete
    ]
    logger.info(
        f"[CORPUS] Applied {len(to_delete)} deletions and {len(updates)} updates "
        f"({len(corpus)} → {len(result)} requirements)"
    )
    return result


def update_text(corpus: list[Requirement], req_id: str, text: str) -> list[Requirement]:
    return [
        req.model_copy(update={"text_original": text}) if req.req_id == req_id else req
        for req in corpus
    ]


def delete_record(corpus: list[Requirement], req_id: str) -> list[Requirement]:
    return [req for req in corpus if req.req_id != req_id]
