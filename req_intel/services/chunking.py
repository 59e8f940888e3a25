"""
Paragraph-aware text chunking for model submission.

Oversized input is split on blank-line paragraph boundaries; a paragraph
that alone exceeds the limit is split on line boundaries. Lines are never
split, so a single line longer than the limit yields one oversized chunk.
"""

from __future__ import annotations

import re
from dataclasses import dataclass

_PARAGRAPH_BREAK = re.compile(r"(\n\s*\n)")


@dataclass(frozen=True)
class TextChunk:
    text: str
    separator: str = ""  # source text that followed this chunk ("" for the last)
    lead: str = ""  # blank lines that preceded the first chunk


def iter_chunks(text: str, max_length: int) -> list[TextChunk]:
    """
    Split *text* into ordered chunks.

    lead + text + separator of each chunk, joined in order, rebuilds the
    input exactly. Leading blank lines go into the first chunk's `lead`
    so they never push a chunk over the limit.
    """
    if max_length <= 0:
        raise ValueError("max_length must be positive")
    if len(text) <= max_length:
        return [TextChunk(text)]

    units = _units(text, max_length)
    lead = ""
    while len(units) > 1 and not units[0][0]:
        lead += units.pop(0)[1]

    chunks: list[TextChunk] = []
    current, pending_sep = units[0]

    for piece, sep in units[1:]:
        if len(current) + len(pending_sep) + len(piece) > max_length:
            chunks.append(TextChunk(current, pending_sep))
            current = piece
        else:
            current = current + pending_sep + piece
        pending_sep = sep

    if current or not chunks:
        chunks.append(TextChunk(current, pending_sep))
    else:
        # trailing newline left an empty final line
        last = chunks.pop()
        chunks.append(TextChunk(last.text, last.separator + current + pending_sep))

    first = chunks[0]
    chunks[0] = TextChunk(first.text, first.separator, lead)
    return chunks


def chunk_text(text: str, max_length: int = 15000) -> list[str]:
    return [c.text for c in iter_chunks(text, max_length)]


def _units(text: str, max_length: int) -> list[tuple[str, str]]:
    """Flatten text into (piece, following separator) pairs: paragraphs, or lines of long paragraphs."""
    parts = _PARAGRAPH_BREAK.split(text)
    paragraphs = parts[0::2]
    separators = parts[1::2] + [""]

    units: list[tuple[str, str]] = []
    for para, para_sep in zip(paragraphs, separators):
        if len(para) <= max_length:
            units.append((para, para_sep))
            continue
        lines = para.split("\n")
        for line in lines[:-1]:
            units.append((line, "\n"))
        units.append((lines[-1], para_sep))
    return units
