"""
Offline demo provider — canned responses with simulated latency.

Used when no real credential is configured. Responses are chosen by the
request's task; extraction returns the bundled sample corpus for short
or sample-like input and a single placeholder record otherwise.
"""

from __future__ import annotations

import asyncio
import json
import logging

from req_intel.models.enums import ModelTask
from req_intel.models.sample_data import SAMPLE_DATA
from req_intel.models.schemas import ModelRequest

logger = logging.getLogger(__name__)

_SAMPLE_MARKER = "Source of Truth"
_SHORT_INPUT_CHARS = 500

DEMO_PLACEHOLDER = [
    {
        "req_id": "DEMO-001",
        "category": "Demo",
        "criticality": "MAY",
        "text_original": (
            "Demo Mode Active: Real AI parsing requires a valid API Key or "
            "Local LLM. This is a placeholder."
        ),
        "section": "Simulation",
    }
]

DEMO_SUMMARY = """
## Executive Summary (DEMO)
The analyzed requirements define a **System of Record (SoT)** architecture with a strong emphasis on **auditability**, **security**, and **standardization**. The scope covers core database principles, API governance, and encryption standards. Explicit "MUST" constraints sit on the critical paths.

## Risk Analysis
- **Criticality Distribution:** 60% MUST, 40% SHOULD.
- **High Risk:** *Immutable lineage* (R-002) is hard to retrofit onto legacy data sources.
- **Security:** AES-256 encryption (R-004) is mandated; key rotation still needs to be automated.

## Key Domains
* **Architecture:** Data lineage & Postgres SoT.
* **Governance:** Compliance & audit trails.
* **Security:** Data-at-rest encryption.

## CTO Recommendations
1. **Prioritize the lineage engine:** start the lineage tracking work immediately.
2. **Standardize the API gateway:** enforce OpenAPI 3.0 validation at the gateway.
3. **Define SLA monitoring:** add distributed tracing (OpenTelemetry).
"""

DEMO_AUDIT = [
    {
        "id": "R-005",
        "type": "UPDATE",
        "issue": "Vague latency target without conditions.",
        "suggested_text": (
            "The API response time MUST be under 200ms for 99% of requests (p99) "
            "measured at the gateway, excluding cold starts."
        ),
        "confidence": "HIGH",
    },
    {
        "id": "R-003",
        "type": "UPDATE",
        "issue": "Standardize wording for 'RESTful'.",
        "suggested_text": (
            "External interfaces MUST adhere to REST maturity level 2 and be "
            "defined via OpenAPI 3.0 specification."
        ),
        "confidence": "MEDIUM",
    },
]

# (keywords, answer) pairs, first match wins
_CHAT_ANSWERS: list[tuple[tuple[str, ...], str]] = [
    (("summary", "overview"),
     "Based on the Demo Data: We have 5 core requirements focusing on **Security**, **Governance**, and **Performance**."),
    (("risk", "critical"),
     "High Risk: **R-002 (Auditability)** requires immutable lineage which is complex to implement."),
    (("database", "sql"),
     "**R-001** mandates **PostgreSQL** as the single Source of Truth."),
    (("security", "encrypt"),
     "**R-004** requires AES-256 for Data at Rest."),
]

_CHAT_FALLBACK = (
    "I am running in **Demo Mode**. I can answer basic questions about the sample "
    "dataset (Security, Architecture, Risks), but I cannot process custom queries "
    "dynamically without a real AI connection."
)


class DemoChatClient:
    def __init__(self, latency_seconds: float = 1.5):
        self.latency_seconds = latency_seconds

    async def complete(self, request: ModelRequest, model: str | None = None) -> str:
        if self.latency_seconds > 0:
            await asyncio.sleep(self.latency_seconds)
        logger.info(f"[LLM-DEMO] Serving canned {request.task.value} response")

        if request.task == ModelTask.EXTRACT:
            if _SAMPLE_MARKER in request.user_message or len(request.user_message) < _SHORT_INPUT_CHARS:
                return json.dumps(SAMPLE_DATA)
            return json.dumps(DEMO_PLACEHOLDER)

        if request.task == ModelTask.SUMMARY:
            return DEMO_SUMMARY

        if request.task == ModelTask.AUDIT:
            return json.dumps(DEMO_AUDIT)

        query = request.user_message.lower()
        for keywords, answer in _CHAT_ANSWERS:
            if any(k in query for k in keywords):
                return answer
        return _CHAT_FALLBACK
