"""
Analysis Service — chat Q&A, executive summary, and QA audit over a corpus.

Each operation builds a compact JSON view of the corpus, sends one model
request through the orchestrator and post-processes the answer.
"""

from __future__ import annotations

import json
import logging
from typing import Iterable

from pydantic import ValidationError

from req_intel.config import Settings, get_settings
from req_intel.models.enums import AuditType, ChatRole, Criticality, ModelTask
from req_intel.models.schemas import AuditSuggestion, ChatTurn, ModelRequest, ProviderConfig, Requirement
from req_intel.prompts.templates import (
    AUDIT_SYSTEM_PROMPT,
    AUDIT_USER_PROMPT,
    CHAT_SYSTEM_PROMPT,
    SUMMARY_SYSTEM_PROMPT,
    SUMMARY_USER_PROMPT,
)
from req_intel.services.llm_service import ModelOrchestrator
from req_intel.services.response_extractor import extract_json_array

logger = logging.getLogger(__name__)

_CRITICALITY_CODES = {Criticality.MUST.value: "M", Criticality.SHOULD.value: "S"}


class AnalysisService:
    def __init__(self, orchestrator: ModelOrchestrator | None = None, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.orchestrator = orchestrator or ModelOrchestrator(self.settings)

    # ── Chat ─────────────────────────────────────────────

    async def ask(
        self,
        query: str,
        corpus: list[Requirement],
        history: Iterable[ChatTurn],
        config: ProviderConfig,
    ) -> str:
        limit = self.settings.chat_context_max_items
        truncated = len(corpus) > limit
        request = ModelRequest(
            task=ModelTask.CHAT,
            system_instruction=CHAT_SYSTEM_PROMPT.format(
                scope=f"First {limit} items" if truncated else "Full dataset",
                dataset=self.chat_context(corpus),
            ),
            user_message=query,
            history=trim_history(history),
        )
        answer = await self.orchestrator.execute(config, request, "Chat")
        return answer or "No response generated."

    def chat_context(self, corpus: list[Requirement]) -> str:
        max_chars = self.settings.chat_text_max_chars
        return json.dumps(
            [
                {
                    "id": r.req_id,
                    "cat": r.category,
                    "crit": _CRITICALITY_CODES.get(r.criticality, "O"),
                    "txt": r.text_original[:max_chars],
                    "note": r.ctonote,
                }
                for r in corpus[: self.settings.chat_context_max_items]
            ],
            ensure_ascii=False,
        )

    # ── Executive summary ────────────────────────────────

    async def executive_summary(self, corpus: list[Requirement], config: ProviderConfig) -> str:
        max_chars = self.settings.summary_text_max_chars
        dataset = json.dumps(
            [
                {
                    "id": r.req_id,
                    "category": r.category,
                    "criticality": r.criticality,
                    "text": r.text_original[:max_chars],
                }
                for r in corpus
            ],
            ensure_ascii=False,
        )
        request = ModelRequest(
            task=ModelTask.SUMMARY,
            system_instruction=SUMMARY_SYSTEM_PROMPT,
            user_message=SUMMARY_USER_PROMPT.format(dataset=dataset),
        )
        summary = await self.orchestrator.execute(config, request, "Summary")
        return summary or "Could not generate summary."

    # ── Audit ────────────────────────────────────────────

    async def audit(
        self,
        corpus: list[Requirement],
        mode: AuditType,
        config: ProviderConfig,
    ) -> list[AuditSuggestion]:
        dataset = json.dumps(
            [{"id": r.req_id, "text": r.text_original} for r in corpus],
            ensure_ascii=False,
        )
        request = ModelRequest(
            task=ModelTask.AUDIT,
            system_instruction=AUDIT_SYSTEM_PROMPT.format(mode=mode.value),
            user_message=AUDIT_USER_PROMPT.format(dataset=dataset),
            json_mode=True,
        )
        raw = await self.orchestrator.execute(config, request, "Audit")
        return parse_audit_suggestions(raw, known_ids={r.req_id for r in corpus})


def parse_audit_suggestions(raw: str, known_ids: set[str] | None = None) -> list[AuditSuggestion]:
    """Validate model output into AuditSuggestions, skipping malformed or unknown entries."""
    suggestions: list[AuditSuggestion] = []
    for i, item in enumerate(extract_json_array(raw)):
        if not isinstance(item, dict):
            logger.warning(f"[AUDIT] Skipping non-object suggestion {i}")
            continue
        if item.get("id") is not None and not isinstance(item["id"], str):
            item = {**item, "id": str(item["id"])}
        if isinstance(item.get("type"), str):
            item = {**item, "type": item["type"].strip().upper()}
        if isinstance(item.get("confidence"), str):
            item = {**item, "confidence": item["confidence"].strip().upper()}
        try:
            suggestion = AuditSuggestion(**item)
        except ValidationError as exc:
            logger.warning(f"[AUDIT] Skipping invalid suggestion {i}: {exc.error_count()} error(s)")
            continue
        if known_ids is not None and suggestion.id not in known_ids:
            logger.warning(f"[AUDIT] Skipping suggestion for unknown requirement '{suggestion.id}'")
            continue
        suggestions.append(suggestion)

    logger.info(f"[AUDIT] {len(suggestions)} suggestions accepted")
    return suggestions


def trim_history(history: Iterable[ChatTurn]) -> list[ChatTurn]:
    """Drop leading model turns (greetings); conversations must open with a user turn."""
    turns = list(history)
    while turns and turns[0].role == ChatRole.MODEL:
        turns.pop(0)
    return turns
