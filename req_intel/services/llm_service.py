"""
LLM Service — provider clients and the model orchestrator.

Every model call in the app goes through ModelOrchestrator.execute(), which
picks the client for the active provider:
  - cloud → GroqChatClient, wrapped in the model cascade
  - local → LocalChatClient (OpenAI-compatible endpoint, single attempt)
  - demo  → DemoChatClient (canned responses, no network)
"""

from __future__ import annotations

import logging
import time
from typing import Any, Callable

import httpx

from req_intel.config import Settings, get_settings
from req_intel.errors import HardProviderFailure, ProviderFailure, TransientProviderFailure
from req_intel.models.enums import ChatRole
from req_intel.models.schemas import (
    CloudConfig,
    DemoConfig,
    LocalConfig,
    ModelRequest,
    ProviderConfig,
)
from req_intel.services.cascade import is_transient_status, run_with_cascade
from req_intel.services.demo_provider import DemoChatClient

logger = logging.getLogger(__name__)


# ── Error classification ─────────────────────────────────


def _status_code(exc: BaseException) -> int | None:
    status = getattr(exc, "status_code", None)
    if status is None:
        response = getattr(exc, "response", None)
        status = getattr(response, "status_code", None)
    return status if isinstance(status, int) else None


def classify_provider_error(exc: BaseException, model: str = "") -> ProviderFailure:
    """Wrap an SDK/transport error into a ProviderFailure with its transient flag set."""
    if isinstance(exc, ProviderFailure):
        return exc
    status = _status_code(exc)
    message = f"{type(exc).__name__}: {exc}"
    if is_transient_status(status):
        return TransientProviderFailure(message, model=model, status_code=status)
    return HardProviderFailure(message, model=model, status_code=status)


# ── Cloud (Groq via LangChain) ───────────────────────────


class GroqChatClient:
    """Cloud provider client. One ChatGroq instance per model id."""

    def __init__(self, api_key: str, settings: Settings | None = None):
        if not api_key:
            raise HardProviderFailure("Cloud provider API key is empty")
        self.api_key = api_key
        self.settings = settings or get_settings()
        self._llms: dict[str, Any] = {}

    def _get_llm(self, model: str):
        if model not in self._llms:
            from langchain_groq import ChatGroq

            # Retries are the cascade's job, not the SDK's
            self._llms[model] = ChatGroq(
                api_key=self.api_key,
                model=model,
                temperature=self.settings.llm_temperature,
                max_tokens=self.settings.llm_max_tokens,
                max_retries=0,
            )
            logger.info(f"Initialized Groq LLM: {model}")
        return self._llms[model]

    async def complete(self, request: ModelRequest, model: str) -> str:
        from langchain_core.messages import AIMessage, HumanMessage, SystemMessage

        messages: list[Any] = [SystemMessage(content=request.system_instruction)]
        for turn in request.history:
            if turn.role == ChatRole.USER:
                messages.append(HumanMessage(content=turn.text))
            else:
                messages.append(AIMessage(content=turn.text))
        messages.append(HumanMessage(content=request.user_message))

        llm = self._get_llm(model)
        if request.json_mode:
            llm = llm.bind(response_format={"type": "json_object"})

        t0 = time.perf_counter()
        try:
            response = await llm.ainvoke(messages)
        except Exception as exc:
            raise classify_provider_error(exc, model) from exc
        elapsed = time.perf_counter() - t0

        content = response.content if isinstance(response.content, str) else str(response.content or "")
        meta = getattr(response, "response_metadata", {}) or {}
        logger.info(
            f"[LLM-CLOUD] {model} responded in {elapsed:.2f}s | "
            f"{len(content)} chars | finish_reason={meta.get('finish_reason', 'unknown')}"
        )
        return content


# ── Local (OpenAI-compatible, e.g. Ollama) ───────────────


class LocalChatClient:
    """Single-endpoint client for an OpenAI-compatible /chat/completions API."""

    def __init__(
        self,
        base_url: str,
        model: str,
        settings: Settings | None = None,
        http_client: httpx.AsyncClient | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.settings = settings or get_settings()
        self._http_client = http_client

    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/chat/completions"

    def _payload(self, request: ModelRequest) -> dict[str, Any]:
        messages = [{"role": "system", "content": request.system_instruction}]
        for turn in request.history:
            role = "user" if turn.role == ChatRole.USER else "assistant"
            messages.append({"role": role, "content": turn.text})
        messages.append({"role": "user", "content": request.user_message})

        payload: dict[str, Any] = {
            "model": self.model,
            "messages": messages,
            "stream": False,
        }
        if request.json_mode:
            payload["format"] = "json"
        return payload

    async def complete(self, request: ModelRequest, model: str | None = None) -> str:
        payload = self._payload(request)
        logger.debug(f"[LLM-LOCAL] POST {self.endpoint} | model={self.model} | json_mode={request.json_mode}")

        t0 = time.perf_counter()
        try:
            if self._http_client is not None:
                response = await self._http_client.post(self.endpoint, json=payload)
            else:
                async with httpx.AsyncClient(timeout=self.settings.local_timeout_seconds) as client:
                    response = await client.post(self.endpoint, json=payload)
        except httpx.TransportError as exc:
            raise HardProviderFailure(
                f"Connection to {self.base_url} failed ({type(exc).__name__}). "
                "Is the local LLM server running and reachable?",
                model=self.model,
            ) from exc
        elapsed = time.perf_counter() - t0

        if response.status_code >= 400:
            message = f"Local LLM Error ({response.status_code}): {response.text[:500]}"
            if is_transient_status(response.status_code):
                raise TransientProviderFailure(message, model=self.model, status_code=response.status_code)
            raise HardProviderFailure(message, model=self.model, status_code=response.status_code)

        try:
            data = response.json()
            content = data["choices"][0]["message"]["content"]
        except (ValueError, KeyError, IndexError, TypeError):
            content = None
        if not content:
            raise HardProviderFailure("Local LLM returned empty response", model=self.model)

        logger.info(f"[LLM-LOCAL] {self.model} responded in {elapsed:.2f}s | {len(content)} chars")
        return content


# ── Orchestrator ─────────────────────────────────────────


class ModelOrchestrator:
    """Execute a ModelRequest against whichever provider the config selects."""

    def __init__(
        self,
        settings: Settings | None = None,
        cloud_client_factory: Callable[[str], Any] | None = None,
        local_client_factory: Callable[[str, str], Any] | None = None,
        demo_client: Any | None = None,
    ):
        self.settings = settings or get_settings()
        self._cloud_factory = cloud_client_factory or (
            lambda api_key: GroqChatClient(api_key, self.settings)
        )
        self._local_factory = local_client_factory or (
            lambda base_url, model: LocalChatClient(base_url, model, self.settings)
        )
        self._demo_client = demo_client or DemoChatClient(self.settings.demo_latency_seconds)
        self._cloud_clients: dict[str, Any] = {}

    def reset(self) -> None:
        """Drop cached cloud clients (called when the provider changes)."""
        self._cloud_clients.clear()

    def _cloud_client(self, api_key: str):
        if api_key not in self._cloud_clients:
            self._cloud_clients[api_key] = self._cloud_factory(api_key)
        return self._cloud_clients[api_key]

    async def execute(self, config: ProviderConfig, request: ModelRequest, operation_name: str) -> str:
        logger.debug(
            f"[LLM] {operation_name} | provider={config.kind} | "
            f"system={len(request.system_instruction)} chars | user={len(request.user_message)} chars | "
            f"history={len(request.history)} turns"
        )

        if isinstance(config, DemoConfig):
            return await self._demo_client.complete(request)

        if isinstance(config, LocalConfig):
            client = self._local_factory(config.base_url, config.model)
            return await client.complete(request, config.model)

        if isinstance(config, CloudConfig):
            client = self._cloud_client(config.api_key.get_secret_value())
            return await run_with_cascade(
                operation_name,
                self.settings.cascade_models,
                lambda model: client.complete(request, model),
            )

        raise TypeError(f"Unsupported provider config: {type(config).__name__}")
