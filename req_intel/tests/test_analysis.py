"""
Tests: Analysis service, corpus edits, CSV export and the session
orchestrator (import install rules, apply/undo, chat history).

Run with:
    pytest req_intel/tests/test_analysis.py -v
"""

import asyncio
import json
from datetime import date

import pytest

from req_intel.config import Settings
from req_intel.errors import ConfigError, EmptyImport, UnparseableResponse
from req_intel.models.enums import AuditAction, AuditType, ChatRole, Confidence, ModelTask
from req_intel.models.schemas import AuditSuggestion, ChatTurn, DemoConfig, Requirement
from req_intel.orchestration.session import RequirementsSession
from req_intel.services import corpus_service
from req_intel.services.analysis_service import AnalysisService, parse_audit_suggestions, trim_history
from req_intel.services.export_service import BOM, export_csv, export_filename, read_csv_records
from req_intel.services.import_normalizer import normalize_records


class FakeOrchestrator:
    def __init__(self, responses=None):
        self.responses = list(responses or [])
        self.requests = []

    def reset(self):
        pass

    async def execute(self, config, request, operation_name):
        self.requests.append(request)
        return self.responses.pop(0) if self.responses else "ok"


def _corpus():
    return [
        Requirement(req_id="R-1", category="Security", criticality="MUST", text_original="Encrypt data at rest."),
        Requirement(req_id="R-2", category="API", criticality="SHOULD", text_original="Use OpenAPI 3.0."),
        Requirement(req_id="R-3", category="Ops", criticality="MAY", text_original="Rotate logs weekly.", ctonote="low prio"),
    ]


def _settings(**overrides):
    return Settings(demo_latency_seconds=0, **overrides)


# ── Analysis service ─────────────────────────────────────


class TestAnalysisService:
    def test_chat_context_is_compacted_and_capped(self):
        orchestrator = FakeOrchestrator(["answer"])
        service = AnalysisService(orchestrator, _settings(chat_context_max_items=2, chat_text_max_chars=7))
        history = [
            ChatTurn(role=ChatRole.MODEL, text="Hello! greeting"),
            ChatTurn(role=ChatRole.USER, text="first question"),
            ChatTurn(role=ChatRole.MODEL, text="first answer"),
        ]
        answer = asyncio.run(service.ask("What is risky?", _corpus(), history, DemoConfig()))

        assert answer == "answer"
        request = orchestrator.requests[0]
        assert request.task == ModelTask.CHAT
        assert request.user_message == "What is risky?"
        assert "First 2 items" in request.system_instruction
        assert [t.text for t in request.history] == ["first question", "first answer"]

        dataset = json.loads(service.chat_context(_corpus()))
        assert [d["id"] for d in dataset] == ["R-1", "R-2"]
        assert [d["crit"] for d in dataset] == ["M", "S"]
        assert dataset[0]["txt"] == "Encrypt"

    def test_chat_full_dataset_label(self):
        orchestrator = FakeOrchestrator(["answer"])
        asyncio.run(AnalysisService(orchestrator, _settings()).ask("q", _corpus(), [], DemoConfig()))
        assert "Full dataset" in orchestrator.requests[0].system_instruction

    def test_summary_truncates_text(self):
        orchestrator = FakeOrchestrator(["## Executive Summary"])
        service = AnalysisService(orchestrator, _settings(summary_text_max_chars=4))
        summary = asyncio.run(service.executive_summary(_corpus(), DemoConfig()))

        assert summary == "## Executive Summary"
        request = orchestrator.requests[0]
        assert request.task == ModelTask.SUMMARY
        assert '"text": "Encr"' in request.user_message

    def test_audit_parses_suggestions(self):
        raw = """```json
        [
          {"id": "R-1", "type": "update", "issue": "vague", "suggested_text": "Encrypt with AES-256.", "confidence": "high"},
          {"id": "R-2", "type": "DELETE", "issue": "duplicate"},
          {"id": "R-3", "type": "RENAME", "issue": "invalid action"},
          {"id": "R-99", "type": "DELETE", "issue": "unknown id"},
          "noise"
        ]
        ```"""
        orchestrator = FakeOrchestrator([raw])
        service = AnalysisService(orchestrator, _settings())
        suggestions = asyncio.run(service.audit(_corpus(), AuditType.VAGUE, DemoConfig()))

        assert [(s.id, s.type) for s in suggestions] == [("R-1", AuditAction.UPDATE), ("R-2", AuditAction.DELETE)]
        assert suggestions[0].confidence == Confidence.HIGH
        assert suggestions[1].confidence == Confidence.MEDIUM
        request = orchestrator.requests[0]
        assert request.json_mode is True
        assert "MODE: VAGUE" in request.system_instruction
        assert '{"suggestions": [' in request.system_instruction

    def test_audit_accepts_object_wrapped_suggestions(self):
        raw = (
            '{"suggestions": ['
            '{"id": "R-2", "type": "UPDATE", "issue": "vague", "suggested_text": "Log [all] access.", "confidence": "LOW"}'
            "]}"
        )
        orchestrator = FakeOrchestrator([raw])
        service = AnalysisService(orchestrator, _settings())
        suggestions = asyncio.run(service.audit(_corpus(), AuditType.VAGUE, DemoConfig()))

        assert len(suggestions) == 1
        assert suggestions[0].id == "R-2"
        assert suggestions[0].suggested_text == "Log [all] access."
        assert suggestions[0].confidence == Confidence.LOW

    def test_audit_empty_wrapper_means_no_suggestions(self):
        assert parse_audit_suggestions('{"suggestions": []}') == []

    def test_audit_garbage_raises(self):
        with pytest.raises(UnparseableResponse):
            parse_audit_suggestions("no suggestions today")

    def test_trim_history_keeps_user_led_turns(self):
        turns = [ChatTurn(role=ChatRole.USER, text="q"), ChatTurn(role=ChatRole.MODEL, text="a")]
        assert trim_history(turns) == turns


# ── Corpus edits ─────────────────────────────────────────


class TestCorpusService:
    def test_apply_suggestions(self):
        corpus = _corpus()
        suggestions = [
            AuditSuggestion(id="R-1", type=AuditAction.UPDATE, issue="vague", suggested_text="Encrypt with AES-256."),
            AuditSuggestion(id="R-2", type=AuditAction.DELETE, issue="duplicate"),
            AuditSuggestion(id="R-3", type=AuditAction.UPDATE, issue="no text given"),
        ]
        result = corpus_service.apply_suggestions(corpus, suggestions)

        assert [r.req_id for r in result] == ["R-1", "R-3"]
        assert result[0].text_original == "Encrypt with AES-256."
        assert result[1].text_original == "Rotate logs weekly."
        # input untouched
        assert len(corpus) == 3
        assert corpus[0].text_original == "Encrypt data at rest."

    def test_update_and_delete(self):
        corpus = _corpus()
        updated = corpus_service.update_text(corpus, "R-2", "Use OpenAPI 3.1.")
        assert updated[1].text_original == "Use OpenAPI 3.1."
        assert corpus[1].text_original == "Use OpenAPI 3.0."
        assert [r.req_id for r in corpus_service.delete_record(corpus, "R-1")] == ["R-2", "R-3"]


# ── Export ───────────────────────────────────────────────


class TestExportService:
    def test_csv_format(self):
        corpus = [Requirement(req_id="R-1", text_original='Say "hello", then leave.')]
        content = export_csv(corpus)

        assert content.startswith(BOM)
        lines = content[len(BOM):].split("\n")
        assert lines[0] == '"req_id","category","subcategory","criticality","source_doc","section","text_original","ctonote"'
        assert lines[1] == '"R-1","Uncategorized","","MAY","Unknown Source","","Say ""hello"", then leave.",""'
        assert len(lines) == 2

    def test_round_trip(self):
        corpus = _corpus() + [Requirement(req_id="R-4", text_original="Line one\nline two, with \"quotes\"")]
        reimported = normalize_records(read_csv_records(export_csv(corpus))).requirements
        assert reimported == corpus

    def test_filename(self):
        assert export_filename(date(2026, 1, 31)) == "requirements_export_2026-01-31.csv"


# ── Session ──────────────────────────────────────────────


def _session(responses=None):
    return RequirementsSession(provider="DEMO", settings=_settings(), orchestrator=FakeOrchestrator(responses))


class TestRequirementsSession:
    def test_import_installs_corpus_and_greeting(self):
        session = _session()
        result = asyncio.run(session.import_text('[{"req_id":"R-1"},{"req_id":"R-1"}]'))

        assert [r.req_id for r in session.corpus] == ["R-1", "R-1_1"]
        assert session.import_stats == result.stats
        assert session.import_stats.duplicates_fixed == 1
        assert session.chat_history[0].role == ChatRole.MODEL
        assert "2 requirements" in session.chat_history[0].text

    def test_failed_import_keeps_existing_corpus(self):
        session = _session(["[1, 2]"])
        session.load_sample()
        before = list(session.corpus)
        with pytest.raises(EmptyImport):
            asyncio.run(session.import_text("just some prose without requirements"))
        assert session.corpus == before

    def test_apply_and_undo(self):
        session = _session()
        session.load_sample()
        original = list(session.corpus)

        session.apply_suggestions([AuditSuggestion(id="R-001", type=AuditAction.DELETE, issue="dup")])
        assert len(session.corpus) == len(original) - 1
        assert session.restore_point == original

        assert session.undo() is True
        assert session.corpus == original
        assert session.undo() is False

    def test_chat_history_grows_only_on_success(self):
        session = _session(["first answer"])
        session.load_sample()
        asyncio.run(session.ask("What is critical?"))
        assert [t.role for t in session.chat_history] == [ChatRole.MODEL, ChatRole.USER, ChatRole.MODEL]
        assert session.chat_history[-1].text == "first answer"

    def test_summary_cached(self):
        orchestrator = FakeOrchestrator(["summary v1", "summary v2"])
        session = RequirementsSession(provider="DEMO", settings=_settings(), orchestrator=orchestrator)
        session.load_sample()

        assert asyncio.run(session.executive_summary()) == "summary v1"
        assert asyncio.run(session.executive_summary()) == "summary v1"
        assert len(orchestrator.requests) == 1
        assert asyncio.run(session.executive_summary(refresh=True)) == "summary v2"

    def test_provider_required(self):
        session = RequirementsSession(settings=_settings(), orchestrator=FakeOrchestrator())
        with pytest.raises(ConfigError):
            asyncio.run(session.import_text("free text"))

    def test_set_provider_resets_analysis(self):
        session = _session()
        session.load_sample()
        session.summary = "stale"
        session.set_provider("CUSTOM_LLM::http://localhost:11434/v1::llama3")
        assert session.provider.kind == "local"
        assert session.summary == ""
        assert session.chat_history == []
        assert len(session.corpus) == 5

    def test_demo_end_to_end(self):
        session = RequirementsSession(provider="DEMO", settings=_settings())
        result = asyncio.run(session.import_text("The system MUST be a Source of Truth for metadata."))
        assert result.stats.total == 5
        suggestions = asyncio.run(session.audit(AuditType.VAGUE))
        assert {s.id for s in suggestions} == {"R-005", "R-003"}
        session.apply_suggestions(suggestions)
        assert session.corpus[4].text_original.startswith("The API response time MUST")
