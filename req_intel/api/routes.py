"""
API routes — thin HTTP layer over RequirementsSession.

Routes:
  GET    /health                      → API health check
  GET    /api/provider                → active provider (no credentials)
  POST   /api/provider                → set provider string
  POST   /api/import/text             → smart import of pasted text
  POST   /api/import/files            → batch import of JSON / CSV files
  POST   /api/import/sample           → load the bundled sample corpus
  GET    /api/requirements            → corpus + import stats
  PATCH  /api/requirements/{req_id}   → edit requirement text
  DELETE /api/requirements/{req_id}   → delete a requirement
  GET    /api/export.csv              → CSV download
  POST   /api/chat                    → ask a question about the corpus
  GET    /api/summary                 → executive summary (cached)
  POST   /api/audit                   → run a QA audit
  POST   /api/audit/apply             → apply selected suggestions
  POST   /api/undo                    → restore the pre-apply corpus
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, File, HTTPException, Request, UploadFile
from fastapi.responses import Response
from pydantic import BaseModel

from req_intel.errors import FileImportError
from req_intel.models.enums import AuditType
from req_intel.models.schemas import (
    AuditSuggestion,
    ChatTurn,
    ImportResult,
    ImportStats,
    Requirement,
)
from req_intel.orchestration.session import RequirementsSession
from req_intel.services.export_service import export_filename
from req_intel.services.provider_config import describe_provider

logger = logging.getLogger(__name__)

# ── Routers ──────────────────────────────────────────────
health_router = APIRouter()
corpus_router = APIRouter()
analysis_router = APIRouter()


# ── Request / response schemas ───────────────────────────
class ProviderRequest(BaseModel):
    config: str


class ProviderResponse(BaseModel):
    kind: Optional[str] = None
    label: str = ""


class TextImportRequest(BaseModel):
    text: str


class ImportResponse(BaseModel):
    route: Optional[str] = None
    stats: ImportStats


class CorpusResponse(BaseModel):
    requirements: list[Requirement] = []
    stats: Optional[ImportStats] = None
    can_undo: bool = False


class TextUpdateRequest(BaseModel):
    text: str


class ChatRequest(BaseModel):
    query: str


class ChatResponse(BaseModel):
    answer: str
    history: list[ChatTurn] = []


class SummaryResponse(BaseModel):
    summary: str


class AuditRequest(BaseModel):
    mode: AuditType


class ApplyRequest(BaseModel):
    suggestions: list[AuditSuggestion]


# ── Helpers ──────────────────────────────────────────────

def _session(request: Request) -> RequirementsSession:
    return request.app.state.session


@asynccontextmanager
async def _single_action(request: Request):
    """Reject a second long-running action while one is in flight."""
    state = request.app.state
    if state.busy:
        raise HTTPException(status_code=409, detail="Another action is already in progress")
    state.busy = True
    try:
        yield state.session
    finally:
        state.busy = False


def _import_response(result: ImportResult) -> ImportResponse:
    return ImportResponse(
        route=result.route.value if result.route else None,
        stats=result.stats,
    )


def _corpus_response(session: RequirementsSession) -> CorpusResponse:
    return CorpusResponse(
        requirements=session.corpus,
        stats=session.import_stats,
        can_undo=session.restore_point is not None,
    )


# ── Health ───────────────────────────────────────────────

@health_router.get("/health")
async def health_check():
    return {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


# ── Provider ─────────────────────────────────────────────

@corpus_router.get("/provider", response_model=ProviderResponse)
async def get_provider(request: Request):
    config = _session(request).provider
    if config is None:
        return ProviderResponse()
    return ProviderResponse(kind=config.kind, label=describe_provider(config))


@corpus_router.post("/provider", response_model=ProviderResponse)
async def set_provider(request: Request, body: ProviderRequest):
    config = _session(request).set_provider(body.config)
    return ProviderResponse(kind=config.kind, label=describe_provider(config))


# ── Import ───────────────────────────────────────────────

@corpus_router.post("/import/text", response_model=ImportResponse)
async def import_text(request: Request, body: TextImportRequest):
    async with _single_action(request) as session:
        result = await session.import_text(body.text)
    return _import_response(result)


@corpus_router.post("/import/files", response_model=ImportResponse)
async def import_files(request: Request, files: list[UploadFile] = File(...)):
    documents: list[tuple[str, str]] = []
    for upload in files:
        name = upload.filename or "unnamed"
        try:
            documents.append((name, (await upload.read()).decode("utf-8-sig")))
        except UnicodeDecodeError as exc:
            raise FileImportError(name, f"could not read file ({exc.reason})") from exc

    logger.info(f"[API] Received {len(documents)} file(s) for import")
    async with _single_action(request) as session:
        result = await session.import_documents(documents)
    return _import_response(result)


@corpus_router.post("/import/sample", response_model=ImportResponse)
async def import_sample(request: Request):
    return _import_response(_session(request).load_sample())


# ── Corpus ───────────────────────────────────────────────

@corpus_router.get("/requirements", response_model=CorpusResponse)
async def list_requirements(request: Request):
    return _corpus_response(_session(request))


@corpus_router.patch("/requirements/{req_id}", response_model=CorpusResponse)
async def update_requirement(request: Request, req_id: str, body: TextUpdateRequest):
    session = _session(request)
    if not any(r.req_id == req_id for r in session.corpus):
        raise HTTPException(status_code=404, detail=f"Requirement {req_id} not found")
    session.update_text(req_id, body.text)
    return _corpus_response(session)


@corpus_router.delete("/requirements/{req_id}", response_model=CorpusResponse)
async def delete_requirement(request: Request, req_id: str):
    session = _session(request)
    if not any(r.req_id == req_id for r in session.corpus):
        raise HTTPException(status_code=404, detail=f"Requirement {req_id} not found")
    session.delete_record(req_id)
    return _corpus_response(session)


@corpus_router.get("/export.csv")
async def export_requirements(request: Request):
    content = _session(request).export_csv()
    return Response(
        content=content.encode("utf-8"),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{export_filename()}"'},
    )


# ── Analysis ─────────────────────────────────────────────

@analysis_router.post("/chat", response_model=ChatResponse)
async def chat(request: Request, body: ChatRequest):
    async with _single_action(request) as session:
        answer = await session.ask(body.query)
    return ChatResponse(answer=answer, history=session.chat_history)


@analysis_router.get("/summary", response_model=SummaryResponse)
async def summary(request: Request, refresh: bool = False):
    async with _single_action(request) as session:
        text = await session.executive_summary(refresh=refresh)
    return SummaryResponse(summary=text)


@analysis_router.post("/audit", response_model=list[AuditSuggestion])
async def audit(request: Request, body: AuditRequest):
    async with _single_action(request) as session:
        return await session.audit(body.mode)


@analysis_router.post("/audit/apply", response_model=CorpusResponse)
async def apply_audit(request: Request, body: ApplyRequest):
    session = _session(request)
    session.apply_suggestions(body.suggestions)
    return _corpus_response(session)


@analysis_router.post("/undo", response_model=CorpusResponse)
async def undo(request: Request):
    session = _session(request)
    if not session.undo():
        raise HTTPException(status_code=409, detail="Nothing to undo")
    return _corpus_response(session)
