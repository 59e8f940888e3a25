"""
Application configuration using Pydantic Settings.
All environment-specific values are centralized here.
"""

from functools import lru_cache
from pydantic_settings import BaseSettings
from pydantic import Field


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # ── App ──────────────────────────────────────────────
    app_name: str = "Requirements Intelligence"
    debug: bool = True

    # ── Provider ─────────────────────────────────────────
    # "DEMO" | "CUSTOM_LLM::<baseUrl>::<model>" | cloud API key
    provider: str = "DEMO"

    # ── LLM ──────────────────────────────────────────────
    # Cloud cascade, tried in order on quota / overload failures
    cascade_models: list[str] = Field(
        default_factory=lambda: [
            "llama-3.3-70b-versatile",
            "openai/gpt-oss-120b",
            "llama-3.1-8b-instant",
            "gemma2-9b-it",
        ]
    )
    llm_temperature: float = 0.2
    llm_max_tokens: int = 8192
    local_timeout_seconds: float = 300.0

    # ── Import / Analysis Limits ─────────────────────────
    import_chunk_chars: int = 25000
    chat_context_max_items: int = 600
    chat_text_max_chars: int = 800
    summary_text_max_chars: int = 300

    # ── Demo ─────────────────────────────────────────────
    demo_latency_seconds: float = 1.5

    # ── Logging ──────────────────────────────────────────
    log_level: str = "INFO"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


@lru_cache()
def get_settings() -> Settings:
    """Return cached application settings (singleton)."""
    return Settings()
