"""
Export Service — CSV export of the corpus and the matching CSV reader.

The export targets spreadsheets: UTF-8 with a byte-order mark, every field
double-quoted, internal quotes doubled.
"""

from __future__ import annotations

import csv
import io
import logging
from datetime import date
from typing import Iterable

from req_intel.models.schemas import Requirement

logger = logging.getLogger(__name__)

CSV_COLUMNS = [
    "req_id",
    "category",
    "subcategory",
    "criticality",
    "source_doc",
    "section",
    "text_original",
    "ctonote",
]
BOM = "\ufeff"


def export_csv(corpus: Iterable[Requirement]) -> str:
    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_ALL, lineterminator="\n")
    writer.writerow(CSV_COLUMNS)
    count = 0
    for req in corpus:
        row = req.model_dump()
        writer.writerow(["" if row[col] is None else str(row[col]) for col in CSV_COLUMNS])
        count += 1
    logger.info(f"[EXPORT] Wrote {count} requirements to CSV")
    # csv ends every row with the terminator; the export joins rows without a trailing one
    return BOM + buffer.getvalue().rstrip("\n")


def read_csv_records(text: str) -> list[dict[str, str]]:
    """Parse CSV text (header row required) back into raw record dicts."""
    if text.startswith(BOM):
        text = text[len(BOM):]
    reader = csv.DictReader(io.StringIO(text))
    if not reader.fieldnames:
        raise ValueError("CSV has no header row")
    return [dict(row) for row in reader]


def export_filename(today: date | None = None) -> str:
    return f"requirements_export_{(today or date.today()).isoformat()}.csv"
