"""
Provider configuration resolver.

Turns the single opaque provider string a user pastes in (an API key, the
literal DEMO, or a packed local endpoint) into a typed ProviderConfig.

    DEMO                                   → DemoConfig
    CUSTOM_LLM::<baseUrl>::<modelName>     → LocalConfig
    anything else (non-empty)              → CloudConfig (the string is the key)
"""

from __future__ import annotations

import logging

from pydantic import SecretStr

from req_intel.errors import ConfigError
from req_intel.models.schemas import CloudConfig, DemoConfig, LocalConfig, ProviderConfig

logger = logging.getLogger(__name__)

DEMO_TOKEN = "DEMO"
LOCAL_PREFIX = "CUSTOM_LLM::"
_SEPARATOR = "::"


def resolve_provider_config(value: str) -> ProviderConfig:
    """Parse a provider string into a typed config. Credentials are not checked here."""
    value = (value or "").strip()
    if not value:
        raise ConfigError("Provider configuration is empty")

    if value == DEMO_TOKEN:
        return DemoConfig()

    if value.startswith(LOCAL_PREFIX):
        parts = value.split(_SEPARATOR)
        base_url = parts[1].strip() if len(parts) > 1 else ""
        model = _SEPARATOR.join(parts[2:]).strip() if len(parts) > 2 else ""
        if not base_url:
            raise ConfigError("Local provider is missing a base URL (CUSTOM_LLM::<baseUrl>::<modelName>)")
        if not model:
            raise ConfigError("Local provider is missing a model name (CUSTOM_LLM::<baseUrl>::<modelName>)")
        return LocalConfig(base_url=base_url, model=model)

    return CloudConfig(api_key=SecretStr(value))


def describe_provider(config: ProviderConfig) -> str:
    """Short label for logs and status payloads. Never includes the credential."""
    if isinstance(config, DemoConfig):
        return "demo (offline)"
    if isinstance(config, LocalConfig):
        return f"local {config.model} @ {config.base_url}"
    return "cloud (model cascade)"
