"""
Model cascade executor.

Runs one logical operation against an ordered list of candidate models.
Transient failures (quota / overload) move on to the next candidate;
anything else aborts the cascade immediately.
"""

from __future__ import annotations

import logging
from typing import Awaitable, Callable, Sequence, TypeVar

from req_intel.errors import AllModelsExhausted, ConfigError, ProviderFailure

logger = logging.getLogger(__name__)

T = TypeVar("T")

TRANSIENT_STATUS_CODES = frozenset({429, 503})


def is_transient_status(status_code: int | None) -> bool:
    return status_code in TRANSIENT_STATUS_CODES


async def run_with_cascade(
    operation_name: str,
    candidates: Sequence[str],
    operation: Callable[[str], Awaitable[T]],
) -> T:
    """
    Await `operation(model)` for each candidate in order and return the
    first success. Raises AllModelsExhausted when every candidate failed
    transiently; re-raises any non-transient error untouched.
    """
    if not candidates:
        raise ConfigError(f"No candidate models configured for {operation_name}")

    last_error: ProviderFailure | None = None
    for index, model in enumerate(candidates, start=1):
        logger.debug(f"[CASCADE] {operation_name}: trying {model} ({index}/{len(candidates)})")
        try:
            result = await operation(model)
        except ProviderFailure as exc:
            if not exc.transient:
                logger.error(f"[CASCADE] {operation_name}: {model} failed hard, aborting cascade: {exc}")
                raise
            logger.warning(
                f"[CASCADE] Model {model} exhausted/busy ({exc}). "
                f"{'Switching to next fallback…' if index < len(candidates) else 'No fallbacks left.'}"
            )
            last_error = exc
            continue

        if index > 1:
            logger.info(f"[CASCADE] {operation_name}: succeeded on fallback {model}")
        return result

    raise AllModelsExhausted(operation_name, last_error)
