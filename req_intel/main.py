"""
Requirements Intelligence — Main Entry Point

Import a file (or stdin text) and print the import summary:
    python -m req_intel requirements.json
    python -m req_intel notes.txt --provider "CUSTOM_LLM::http://localhost:11434/v1::llama3"
    cat tender.txt | python -m req_intel -

Run as an API server (for the frontend):
    python -m req_intel --serve
    # or: uvicorn req_intel.api:app --reload --port 8000

Or import and run programmatically:
    from req_intel.main import run
    result = run("path/to/requirements.json")
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from datetime import datetime, timezone
from pathlib import Path

from req_intel.config import get_settings
from req_intel.errors import ReqIntelError
from req_intel.models.schemas import ImportResult
from req_intel.orchestration.session import RequirementsSession
from req_intel.services.provider_config import describe_provider
from req_intel.utils.logger import setup_logging

# Files routed through the structured-file path; everything else is smart-imported as text
_STRUCTURED_SUFFIXES = {".json", ".csv"}


def run(source: str = "", provider: str | None = None) -> ImportResult | None:
    """Import *source* (a path, '-' for stdin, or '' for the sample) and log a summary."""
    settings = get_settings()
    setup_logging(settings.log_level)
    logger = logging.getLogger(__name__)

    try:
        session = RequirementsSession(provider=provider or settings.provider)
    except ReqIntelError as exc:
        logger.error(f"Invalid provider configuration: {exc}")
        return None

    logger.info("=" * 60)
    logger.info("  REQUIREMENTS INTELLIGENCE — IMPORT")
    label = describe_provider(session.provider) if session.provider else "none"
    logger.info(f"  Provider: {label} | Started: {datetime.now(timezone.utc).isoformat()}")
    logger.info("=" * 60)

    try:
        if not source:
            result = session.load_sample()
        elif source == "-":
            result = asyncio.run(session.import_text(sys.stdin.read()))
        elif Path(source).suffix.lower() in _STRUCTURED_SUFFIXES:
            result = asyncio.run(session.import_files([source]))
        else:
            result = asyncio.run(session.import_text(Path(source).read_text(encoding="utf-8")))
    except (ReqIntelError, OSError) as exc:
        logger.error(f"Import failed: {exc}")
        return None

    _print_summary(result)
    return result


def _print_summary(result: ImportResult) -> None:
    """Log a human-readable summary of the import result."""
    logger = logging.getLogger(__name__)
    stats = result.stats

    logger.info("")
    logger.info("-" * 60)
    logger.info("  IMPORT RESULT SUMMARY")
    logger.info("-" * 60)
    logger.info(f"  Route:             {result.route.value if result.route else 'N/A'}")
    logger.info(f"  Requirements:      {stats.total}")
    logger.info(f"  ID collisions:     {stats.duplicates_fixed} fixed")
    if stats.sequence_gap:
        gap = stats.sequence_gap
        logger.info(
            f"  Sequence gap:      expected {gap.expected} items "
            f"(ID {gap.min} to {gap.max}), found {gap.actual}"
        )

    by_criticality: dict[str, int] = {}
    for req in result.requirements:
        by_criticality[req.criticality] = by_criticality.get(req.criticality, 0) + 1
    for crit, count in sorted(by_criticality.items()):
        logger.info(f"    {crit:<8} {count}")
    logger.info("-" * 60)


def serve(host: str = "0.0.0.0", port: int = 8000) -> None:
    """Start the FastAPI server (for frontend communication)."""
    import uvicorn

    setup_logging(get_settings().log_level)
    logger = logging.getLogger(__name__)
    logger.info(f"Starting API server on {host}:{port}")
    uvicorn.run("req_intel.api:app", host=host, port=port, reload=True)


def _parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="req_intel", description="Import and normalize requirement records")
    parser.add_argument("source", nargs="?", default="", help="JSON/CSV/text file, '-' for stdin, empty for the sample")
    parser.add_argument("--provider", default=None, help="DEMO | CUSTOM_LLM::<baseUrl>::<model> | cloud API key")
    parser.add_argument("--serve", action="store_true", help="start the HTTP API instead")
    parser.add_argument("--host", default="0.0.0.0")
    parser.add_argument("--port", type=int, default=8000)
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    if args.serve:
        serve(args.host, args.port)
        return 0
    return 0 if run(args.source, args.provider) is not None else 1


if __name__ == "__main__":
    sys.exit(main())
