"""
Requirements session — the top-level state owner.

Holds the provider config, the corpus, import diagnostics, chat history,
the cached executive summary and the single-level undo snapshot. Services
receive the corpus as a value and return new values; only the session
swaps its own references, and only after an operation succeeded.

One action at a time per session is the caller's responsibility.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Iterable, Optional

from req_intel.config import Settings, get_settings
from req_intel.errors import ConfigError
from req_intel.models.enums import AuditType, ChatRole
from req_intel.models.schemas import (
    AuditSuggestion,
    ChatTurn,
    ImportResult,
    ImportStats,
    ProviderConfig,
    Requirement,
)
from req_intel.services import corpus_service
from req_intel.services.analysis_service import AnalysisService
from req_intel.services.export_service import export_csv
from req_intel.services.import_dispatcher import SmartImportDispatcher
from req_intel.services.llm_service import ModelOrchestrator
from req_intel.services.provider_config import describe_provider, resolve_provider_config

logger = logging.getLogger(__name__)

GREETING = (
    "Hello! I am your Senior Technical Analyst. I have analyzed {count} requirements "
    "in detail. What would you like to know?"
)


class RequirementsSession:
    """In-memory corpus plus everything derived from it, for one user."""

    def __init__(
        self,
        provider: str | None = None,
        settings: Settings | None = None,
        orchestrator: ModelOrchestrator | None = None,
    ):
        self.settings = settings or get_settings()
        self.orchestrator = orchestrator or ModelOrchestrator(self.settings)
        self.dispatcher = SmartImportDispatcher(self.orchestrator, self.settings)
        self.analysis = AnalysisService(self.orchestrator, self.settings)

        self.provider: Optional[ProviderConfig] = None
        self.corpus: list[Requirement] = []
        self.import_stats: Optional[ImportStats] = None
        self.chat_history: list[ChatTurn] = []
        self.summary: str = ""
        self.restore_point: Optional[list[Requirement]] = None

        if provider:
            self.set_provider(provider)

    # ── Provider ─────────────────────────────────────────

    def set_provider(self, value: str) -> ProviderConfig:
        """Resolve and install a provider string; analysis state derived from the old provider is dropped."""
        config = resolve_provider_config(value)
        self.provider = config
        self.orchestrator.reset()
        self._reset_analysis()
        logger.info(f"[SESSION] Provider set: {describe_provider(config)}")
        return config

    def reset(self) -> None:
        """Forget the provider and the corpus."""
        self.provider = None
        self.orchestrator.reset()
        self.corpus = []
        self.import_stats = None
        self._reset_analysis()
        logger.info("[SESSION] Reset")

    def _require_provider(self) -> ProviderConfig:
        if self.provider is None:
            raise ConfigError("No provider configured. Set an API key, a local LLM, or DEMO first.")
        return self.provider

    def _reset_analysis(self) -> None:
        self.summary = ""
        self.restore_point = None
        self.chat_history = []

    # ── Import ───────────────────────────────────────────

    async def import_text(self, raw: str) -> ImportResult:
        result = await self.dispatcher.import_text(raw, self._require_provider())
        self._install(result)
        return result

    async def import_files(self, paths: Iterable[str | Path]) -> ImportResult:
        result = await self.dispatcher.import_files(paths)
        self._install(result)
        return result

    async def import_documents(self, documents: Iterable[tuple[str, str]]) -> ImportResult:
        result = await self.dispatcher.import_documents(documents)
        self._install(result)
        return result

    def load_sample(self) -> ImportResult:
        result = self.dispatcher.load_sample()
        self._install(result)
        return result

    def _install(self, result: ImportResult) -> None:
        self.corpus = list(result.requirements)
        self.import_stats = result.stats
        self._reset_analysis()
        self.chat_history = [
            ChatTurn(role=ChatRole.MODEL, text=GREETING.format(count=len(self.corpus)))
        ]
        logger.info(f"[SESSION] Installed corpus: {len(self.corpus)} requirements (route={result.route})")

    # ── Analysis ─────────────────────────────────────────

    async def ask(self, query: str) -> str:
        t0 = time.perf_counter()
        answer = await self.analysis.ask(query, self.corpus, self.chat_history, self._require_provider())
        self.chat_history = [
            *self.chat_history,
            ChatTurn(role=ChatRole.USER, text=query),
            ChatTurn(role=ChatRole.MODEL, text=answer),
        ]
        logger.info(f"[SESSION] Chat turn answered in {time.perf_counter() - t0:.2f}s")
        return answer

    async def executive_summary(self, refresh: bool = False) -> str:
        if self.summary and not refresh:
            return self.summary
        self.summary = await self.analysis.executive_summary(self.corpus, self._require_provider())
        return self.summary

    async def audit(self, mode: AuditType) -> list[AuditSuggestion]:
        return await self.analysis.audit(self.corpus, mode, self._require_provider())

    # ── Corpus edits ─────────────────────────────────────

    def apply_suggestions(self, suggestions: Iterable[AuditSuggestion]) -> list[Requirement]:
        snapshot = list(self.corpus)
        self.corpus = corpus_service.apply_suggestions(snapshot, suggestions)
        self.restore_point = snapshot
        self.summary = ""
        return self.corpus

    def update_text(self, req_id: str, text: str) -> list[Requirement]:
        self.corpus = corpus_service.update_text(self.corpus, req_id, text)
        self.summary = ""
        return self.corpus

    def delete_record(self, req_id: str) -> list[Requirement]:
        self.corpus = corpus_service.delete_record(self.corpus, req_id)
        self.summary = ""
        return self.corpus

    def undo(self) -> bool:
        """Restore the corpus from before the last apply. Returns False if there is nothing to undo."""
        if self.restore_point is None:
            return False
        self.corpus = self.restore_point
        self.restore_point = None
        self.summary = ""
        logger.info(f"[SESSION] Restored {len(self.corpus)} requirements from snapshot")
        return True

    # ── Export ───────────────────────────────────────────

    def export_csv(self) -> str:
        return export_csv(self.corpus)
