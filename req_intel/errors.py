"""
Error taxonomy for imports and model calls.

Every error raised by the core derives from ReqIntelError so the operation
boundary (API route, CLI) can turn it into a user-visible message.
"""

from __future__ import annotations


class ReqIntelError(Exception):
    """Base class for all expected, user-reportable failures."""


class ConfigError(ReqIntelError):
    """Malformed provider configuration string."""


class ProviderFailure(ReqIntelError):
    """
    A single model call failed.

    `transient` is attached by the call layer: True for quota / rate-limit
    (HTTP 429) and overload (HTTP 503) signals, False for everything else.
    """

    def __init__(
        self,
        message: str,
        *,
        transient: bool,
        model: str = "",
        status_code: int | None = None,
    ):
        super().__init__(message)
        self.transient = transient
        self.model = model
        self.status_code = status_code


class TransientProviderFailure(ProviderFailure):
    def __init__(self, message: str, *, model: str = "", status_code: int | None = None):
        super().__init__(message, transient=True, model=model, status_code=status_code)


class HardProviderFailure(ProviderFailure):
    def __init__(self, message: str, *, model: str = "", status_code: int | None = None):
        super().__init__(message, transient=False, model=model, status_code=status_code)


class AllModelsExhausted(ReqIntelError):
    """Every cascade candidate failed transiently."""

    def __init__(self, operation_name: str, last_error: BaseException | None):
        detail = str(last_error) if last_error is not None else "no attempts made"
        super().__init__(f"All models failed for {operation_name}. Last error: {detail}")
        self.operation_name = operation_name
        self.last_error = last_error


class UnparseableResponse(ReqIntelError):
    """Model output could not be coerced into JSON."""

    def __init__(self, reason: str):
        super().__init__(
            f"Invalid JSON returned by AI ({reason}). "
            "Try a smaller text or a stronger model."
        )
        self.reason = reason


class EmptyImport(ReqIntelError):
    """Zero valid requirement records after normalization."""

    def __init__(self, message: str = "No valid requirement objects found."):
        super().__init__(message)


class FileImportError(ReqIntelError):
    """One file of a batch could not be read or parsed; the batch is aborted."""

    def __init__(self, filename: str, reason: str):
        super().__init__(f"Failed to import {filename}: {reason}")
        self.filename = filename
        self.reason = reason
