"""
Smart Import Dispatcher — decide how raw input becomes a record set.

Classification order for pasted text:
  1. direct JSON that already looks like requirements → no AI
  2. unparseable text with concatenated arrays ("[...][...]") → best-effort repair
  3. anything else → chunk → model extraction per chunk → concatenate

Every route ends in the Import Normalizer.
"""

from __future__ import annotations

import asyncio
import csv
import json
import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable

from req_intel.config import Settings, get_settings
from req_intel.errors import EmptyImport, FileImportError, UnparseableResponse
from req_intel.models.enums import ImportRoute, ModelTask
from req_intel.models.sample_data import SAMPLE_DATA
from req_intel.models.schemas import ImportResult, ModelRequest, ProviderConfig
from req_intel.prompts.templates import EXTRACTION_SYSTEM_PROMPT, EXTRACTION_USER_PROMPT
from req_intel.services.chunking import chunk_text
from req_intel.services.export_service import read_csv_records
from req_intel.services.import_normalizer import normalize_records
from req_intel.services.llm_service import ModelOrchestrator
from req_intel.services.provider_config import describe_provider
from req_intel.services.response_extractor import extract_json_array

logger = logging.getLogger(__name__)

REQUIREMENT_MARKER_FIELDS = ("req_id", "text_original", "criticality", "source_doc")

_ADJACENT_ARRAYS = re.compile(r"\]\s*\[")


@dataclass
class RepairResult:
    items: list[Any] = field(default_factory=list)
    reason: str = ""  # why the repair failed; empty on success

    @property
    def ok(self) -> bool:
        return bool(self.items)


def looks_like_requirements(parsed: Any) -> bool:
    """True if the first element (or the value itself) carries a requirement field."""
    sample = (parsed[0] if parsed else None) if isinstance(parsed, list) else parsed
    return isinstance(sample, dict) and any(k in sample for k in REQUIREMENT_MARKER_FIELDS)


def repair_concatenated_arrays(text: str) -> RepairResult:
    """Rewrite `[..][..]` into `[[..],[..]]`, parse, flatten one level."""
    if not _ADJACENT_ARRAYS.search(text):
        return RepairResult(reason="no adjacent top-level arrays")

    fixed = "[" + _ADJACENT_ARRAYS.sub("],[", text) + "]"
    try:
        data = json.loads(fixed)
    except json.JSONDecodeError as exc:
        return RepairResult(reason=f"invalid JSON after repair: {exc.msg}")

    items: list[Any] = []
    for entry in data:
        if isinstance(entry, list):
            items.extend(entry)
        else:
            items.append(entry)

    if not items:
        return RepairResult(reason="repair produced an empty array")
    return RepairResult(items=items)


class SmartImportDispatcher:
    """Routes raw input to direct parsing, JSON repair, or AI extraction."""

    def __init__(self, orchestrator: ModelOrchestrator | None = None, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.orchestrator = orchestrator or ModelOrchestrator(self.settings)

    # ── Pasted text ──────────────────────────────────────

    async def import_text(self, raw: str, config: ProviderConfig) -> ImportResult:
        trimmed = (raw or "").strip()
        if not trimmed:
            raise EmptyImport("Nothing to import: input is empty.")

        route, items = await self._classify_and_parse(trimmed, config)
        result = normalize_records(items)
        result.route = route
        return result

    async def _classify_and_parse(self, trimmed: str, config: ProviderConfig) -> tuple[ImportRoute, list[Any]]:
        # ── 1. Direct JSON ───────────────────────────────
        try:
            parsed = json.loads(trimmed)
        except json.JSONDecodeError as exc:
            logger.debug(f"[DISPATCH] Not direct JSON: {exc.msg}")

            # ── 2. Concatenated arrays (only when parsing failed) ──
            repair = repair_concatenated_arrays(trimmed)
            if repair.ok:
                logger.info(f"[DISPATCH] Repaired concatenated arrays → {len(repair.items)} items")
                return ImportRoute.REPAIRED_JSON, repair.items
            logger.info(f"[DISPATCH] JSON repair not applicable ({repair.reason}), delegating to AI extraction")
        else:
            if looks_like_requirements(parsed):
                logger.info("[DISPATCH] Requirement-shaped JSON detected, skipping AI")
                return ImportRoute.DIRECT_JSON, _as_list(parsed)
            logger.info("[DISPATCH] Valid JSON detected, but schema mismatch, delegating to AI extraction")

        # ── 3. Free text via model ───────────────────────
        return ImportRoute.AI_EXTRACTION, await self.extract_with_model(trimmed, config)

    async def extract_with_model(self, text: str, config: ProviderConfig) -> list[Any]:
        """Chunk the text and extract records chunk by chunk, preserving order."""
        chunks = chunk_text(text, self.settings.import_chunk_chars)
        logger.info(
            f"[DISPATCH] AI extraction via {describe_provider(config)}: "
            f"{len(text)} chars in {len(chunks)} chunk(s)"
        )

        all_items: list[Any] = []
        for index, chunk in enumerate(chunks, start=1):
            request = ModelRequest(
                task=ModelTask.EXTRACT,
                system_instruction=EXTRACTION_SYSTEM_PROMPT,
                user_message=EXTRACTION_USER_PROMPT.format(chunk=chunk),
                json_mode=True,
            )
            text_out = await self.orchestrator.execute(config, request, "Parsing Chunk")
            if not text_out or not text_out.strip():
                raise UnparseableResponse(f"empty response for chunk {index}/{len(chunks)}")

            items = extract_json_array(text_out)
            logger.info(f"[DISPATCH] Chunk {index}/{len(chunks)} → {len(items)} items")
            all_items.extend(items)
        return all_items

    # ── Files ────────────────────────────────────────────

    async def import_documents(self, documents: Iterable[tuple[str, str]]) -> ImportResult:
        """Import already-read files. One bad file aborts the whole batch."""
        combined: list[Any] = []
        count = 0
        for name, text in documents:
            combined.extend(_parse_document(name, text))
            count += 1
        logger.info(f"[DISPATCH] Parsed {count} file(s) → {len(combined)} raw items")

        result = normalize_records(combined)
        result.route = ImportRoute.FILES
        return result

    async def import_files(self, paths: Iterable[str | Path]) -> ImportResult:
        documents: list[tuple[str, str]] = []
        for path in map(Path, paths):
            try:
                text = await asyncio.to_thread(path.read_text, encoding="utf-8-sig")
            except (OSError, UnicodeDecodeError) as exc:
                raise FileImportError(path.name, f"could not read file ({exc})") from exc
            documents.append((path.name, text))
        return await self.import_documents(documents)

    # ── Sample ───────────────────────────────────────────

    def load_sample(self) -> ImportResult:
        result = normalize_records(SAMPLE_DATA)
        result.route = ImportRoute.SAMPLE
        return result


def _as_list(value: Any) -> list[Any]:
    return value if isinstance(value, list) else [value]


def _parse_document(name: str, text: str) -> list[Any]:
    if name.lower().endswith(".csv"):
        try:
            return read_csv_records(text)
        except (ValueError, csv.Error) as exc:
            raise FileImportError(name, f"invalid CSV ({exc})") from exc
    try:
        return _as_list(json.loads(text.lstrip("\ufeff")))
    except json.JSONDecodeError as exc:
        raise FileImportError(name, f"invalid JSON ({exc.msg})") from exc
