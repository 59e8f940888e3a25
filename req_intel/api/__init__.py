"""
FastAPI application factory and API package.

Run with:
    uvicorn req_intel.api:app --reload --port 8000

Or via main.py:
    python -m req_intel --serve
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from req_intel.config import get_settings
from req_intel.errors import (
    AllModelsExhausted,
    ProviderFailure,
    ReqIntelError,
    UnparseableResponse,
)
from req_intel.orchestration.session import RequirementsSession
from req_intel.api.routes import health_router, corpus_router, analysis_router

logger = logging.getLogger(__name__)


def _status_for(exc: ReqIntelError) -> int:
    if isinstance(exc, (ProviderFailure, AllModelsExhausted, UnparseableResponse)):
        return 502
    return 400


def create_app(session: RequirementsSession | None = None) -> FastAPI:
    """Application factory — create and configure the FastAPI instance."""
    settings = get_settings()

    application = FastAPI(
        title="Requirements Intelligence API",
        description="Import, normalize, query and audit requirement corpora",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # CORS: allow the frontend (adjust origins in production)
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.state.session = session or RequirementsSession(provider=settings.provider or None)
    application.state.busy = False

    @application.exception_handler(ReqIntelError)
    async def handle_req_intel_error(request: Request, exc: ReqIntelError):
        status = _status_for(exc)
        logger.warning(f"[API] {request.method} {request.url.path} → {status}: {exc}")
        return JSONResponse(
            status_code=status,
            content={"error": type(exc).__name__, "detail": str(exc)},
        )

    application.include_router(health_router, tags=["Health"])
    application.include_router(corpus_router, prefix="/api", tags=["Corpus"])
    application.include_router(analysis_router, prefix="/api", tags=["Analysis"])

    logger.info(f"Created {settings.app_name} API")
    return application


# Module-level instance for `uvicorn req_intel.api:app`
app = create_app()
