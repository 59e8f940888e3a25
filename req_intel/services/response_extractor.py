"""
Response extractor — pull a JSON array out of free-form model output.

Models wrap JSON in code fences or surround it with prose. The extractor
strips fences, then takes the outermost [...] span or, when there is none,
the outermost {...} span wrapped into a one-element array.
"""

from __future__ import annotations

import json
import logging
import re
from typing import Any

from req_intel.errors import UnparseableResponse

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"```(?:json)?", re.IGNORECASE)


def strip_fences(text: str) -> str:
    return _FENCE.sub("", text).strip()


def _json_span(text: str) -> str | None:
    first, last = text.find("["), text.rfind("]")
    if first != -1 and last > first:
        return text[first:last + 1]

    first, last = text.find("{"), text.rfind("}")
    if first != -1 and last > first:
        return f"[{text[first:last + 1]}]"
    return None


def extract_json_array(raw: str) -> list[Any]:
    """Return the JSON array found in *raw*, or raise UnparseableResponse."""
    text = strip_fences(raw or "")
    if not text:
        raise UnparseableResponse("empty response")

    snippet = _json_span(text)
    if snippet is None:
        logger.warning(f"[EXTRACT] No JSON array or object found in response ({len(text)} chars)")
        raise UnparseableResponse("no JSON array or object found")

    try:
        data = json.loads(snippet)
    except json.JSONDecodeError as exc:
        logger.warning(f"[EXTRACT] JSON parse error: {exc}")
        logger.debug(f"[EXTRACT] Offending text:\n{snippet[:500]}{'…' if len(snippet) > 500 else ''}")
        raise UnparseableResponse(f"JSON parse error: {exc.msg}") from exc

    return data if isinstance(data, list) else [data]
