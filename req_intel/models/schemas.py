"""
Reusable data schemas for the requirement corpus and the model call layer.
Each schema represents a clearly-bounded data object produced by one service.
"""

from __future__ import annotations

from typing import Annotated, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, SecretStr

from .enums import (
    AuditAction,
    ChatRole,
    Confidence,
    Criticality,
    ImportRoute,
    ModelTask,
)


# ── Corpus ───────────────────────────────────────────────


class Requirement(BaseModel):
    """A single requirement record. Immutable once constructed."""
    model_config = ConfigDict(frozen=True)

    req_id: str
    source_doc: str = "Unknown Source"
    section: str = ""
    category: str = "Uncategorized"
    subcategory: str = ""
    criticality: str = Criticality.MAY.value  # free text: sources may use their own levels
    text_original: str = ""
    ctonote: Optional[str] = None


class SequenceGap(BaseModel):
    """Numeric-ID span analysis: the corpus looks like it is missing records."""
    min: int
    max: int
    expected: int
    actual: int


class ImportStats(BaseModel):
    total: int = 0
    duplicates_fixed: int = 0
    sequence_gap: Optional[SequenceGap] = None


class ImportResult(BaseModel):
    requirements: list[Requirement] = []
    stats: ImportStats = Field(default_factory=ImportStats)
    route: Optional[ImportRoute] = None


class AuditSuggestion(BaseModel):
    """A proposed change against one requirement (by req_id)."""
    id: str
    type: AuditAction
    issue: str = ""
    suggested_text: Optional[str] = None
    confidence: Confidence = Confidence.MEDIUM


# ── Provider configuration ───────────────────────────────


class CloudConfig(BaseModel):
    kind: Literal["cloud"] = "cloud"
    api_key: SecretStr


class LocalConfig(BaseModel):
    kind: Literal["local"] = "local"
    base_url: str
    model: str


class DemoConfig(BaseModel):
    kind: Literal["demo"] = "demo"


ProviderConfig = Annotated[
    Union[CloudConfig, LocalConfig, DemoConfig],
    Field(discriminator="kind"),
]


# ── Model calls ──────────────────────────────────────────


class ChatTurn(BaseModel):
    role: ChatRole
    text: str


class ModelRequest(BaseModel):
    """One logical model call: system instruction, user message, prior turns."""
    task: ModelTask
    system_instruction: str
    user_message: str
    json_mode: bool = False
    history: list[ChatTurn] = []
