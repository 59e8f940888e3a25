"""
Tests: Model orchestration — cascade executor, error classification,
provider clients (cloud, local, demo) and the orchestrator.

Run with:
    pytest req_intel/tests/test_model_layer.py -v
"""

import asyncio
import json

import httpx
import pytest

from req_intel.config import Settings
from req_intel.errors import (
    AllModelsExhausted,
    ConfigError,
    HardProviderFailure,
    TransientProviderFailure,
)
from req_intel.models.enums import ChatRole, ModelTask
from req_intel.models.schemas import ChatTurn, CloudConfig, DemoConfig, LocalConfig, ModelRequest
from req_intel.services.cascade import run_with_cascade
from req_intel.services.demo_provider import DEMO_AUDIT, DemoChatClient
from req_intel.services.llm_service import (
    GroqChatClient,
    LocalChatClient,
    ModelOrchestrator,
    classify_provider_error,
)


def _request(task=ModelTask.CHAT, user="hello", json_mode=False, history=None):
    return ModelRequest(
        task=task,
        system_instruction="system",
        user_message=user,
        json_mode=json_mode,
        history=history or [],
    )


class StatusError(Exception):
    def __init__(self, status_code):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class ScriptedOperation:
    """Per-model outcomes: an exception to raise or a value to return."""

    def __init__(self, outcomes):
        self.outcomes = outcomes
        self.calls = []

    async def __call__(self, model):
        self.calls.append(model)
        outcome = self.outcomes[model]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


# ── Cascade ──────────────────────────────────────────────


class TestCascade:
    def test_falls_back_on_transient_failure(self):
        op = ScriptedOperation({
            "A": TransientProviderFailure("quota", model="A", status_code=429),
            "B": "result from B",
            "C": "result from C",
        })
        result = asyncio.run(run_with_cascade("Test", ["A", "B", "C"], op))
        assert result == "result from B"
        assert op.calls == ["A", "B"]

    def test_hard_failure_stops_cascade(self):
        op = ScriptedOperation({
            "A": HardProviderFailure("bad key", model="A", status_code=401),
            "B": "never",
        })
        with pytest.raises(HardProviderFailure):
            asyncio.run(run_with_cascade("Test", ["A", "B"], op))
        assert op.calls == ["A"]

    def test_unexpected_error_stops_cascade(self):
        op = ScriptedOperation({"A": RuntimeError("boom"), "B": "never"})
        with pytest.raises(RuntimeError):
            asyncio.run(run_with_cascade("Test", ["A", "B"], op))
        assert op.calls == ["A"]

    def test_all_transient_exhausts(self):
        last = TransientProviderFailure("overloaded", model="B", status_code=503)
        op = ScriptedOperation({
            "A": TransientProviderFailure("quota", model="A", status_code=429),
            "B": last,
        })
        with pytest.raises(AllModelsExhausted) as excinfo:
            asyncio.run(run_with_cascade("Parsing Chunk", ["A", "B"], op))
        assert excinfo.value.last_error is last
        assert "Parsing Chunk" in str(excinfo.value)
        assert op.calls == ["A", "B"]

    def test_empty_candidate_list(self):
        with pytest.raises(ConfigError):
            asyncio.run(run_with_cascade("Test", [], ScriptedOperation({})))


class TestErrorClassification:
    @pytest.mark.parametrize("status", [429, 503])
    def test_transient_statuses(self, status):
        failure = classify_provider_error(StatusError(status), "m")
        assert failure.transient
        assert failure.status_code == status
        assert failure.model == "m"

    @pytest.mark.parametrize("status", [400, 401, 404, 500])
    def test_hard_statuses(self, status):
        assert not classify_provider_error(StatusError(status)).transient

    def test_status_on_response_attribute(self):
        exc = Exception("wrapped")
        exc.response = type("Resp", (), {"status_code": 429})()
        assert classify_provider_error(exc).transient

    def test_message_text_is_not_inspected(self):
        assert not classify_provider_error(Exception("429 quota exceeded")).transient


# ── Cloud client ─────────────────────────────────────────


class FakeChatModel:
    def __init__(self, outcome):
        self.outcome = outcome
        self.bound = {}
        self.messages = None

    def bind(self, **kwargs):
        self.bound.update(kwargs)
        return self

    async def ainvoke(self, messages):
        self.messages = messages
        if isinstance(self.outcome, BaseException):
            raise self.outcome
        return type("AIMsg", (), {"content": self.outcome, "response_metadata": {"finish_reason": "stop"}})()


class TestGroqChatClient:
    def test_history_and_json_mode(self, monkeypatch):
        fake = FakeChatModel('[{"req_id": "R-1"}]')
        client = GroqChatClient("gsk_test", Settings())
        monkeypatch.setattr(client, "_get_llm", lambda model: fake)

        history = [ChatTurn(role=ChatRole.USER, text="q1"), ChatTurn(role=ChatRole.MODEL, text="a1")]
        result = asyncio.run(client.complete(_request(json_mode=True, history=history), "llama"))

        assert result == '[{"req_id": "R-1"}]'
        assert fake.bound == {"response_format": {"type": "json_object"}}
        assert [m.content for m in fake.messages] == ["system", "q1", "a1", "hello"]

    def test_rate_limit_becomes_transient(self, monkeypatch):
        client = GroqChatClient("gsk_test", Settings())
        monkeypatch.setattr(client, "_get_llm", lambda model: FakeChatModel(StatusError(429)))
        with pytest.raises(TransientProviderFailure):
            asyncio.run(client.complete(_request(), "llama"))

    def test_auth_error_becomes_hard(self, monkeypatch):
        client = GroqChatClient("gsk_test", Settings())
        monkeypatch.setattr(client, "_get_llm", lambda model: FakeChatModel(StatusError(401)))
        with pytest.raises(HardProviderFailure):
            asyncio.run(client.complete(_request(), "llama"))


# ── Local client ─────────────────────────────────────────


def _local_call(handler, request):
    async def go():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as http:
            client = LocalChatClient("http://localhost:11434/v1/", "llama3", Settings(), http_client=http)
            return await client.complete(request)

    return asyncio.run(go())


class TestLocalChatClient:
    def test_success_payload(self):
        seen = {}

        def handler(req):
            seen["url"] = str(req.url)
            seen["payload"] = json.loads(req.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "hi there"}}]})

        history = [ChatTurn(role=ChatRole.USER, text="q1"), ChatTurn(role=ChatRole.MODEL, text="a1")]
        result = _local_call(handler, _request(json_mode=True, history=history))

        assert result == "hi there"
        assert seen["url"] == "http://localhost:11434/v1/chat/completions"
        payload = seen["payload"]
        assert payload["model"] == "llama3"
        assert payload["format"] == "json"
        assert payload["stream"] is False
        assert [m["role"] for m in payload["messages"]] == ["system", "user", "assistant", "user"]

    def test_plain_mode_has_no_format(self):
        seen = {}

        def handler(req):
            seen["payload"] = json.loads(req.content)
            return httpx.Response(200, json={"choices": [{"message": {"content": "ok"}}]})

        _local_call(handler, _request())
        assert "format" not in seen["payload"]

    def test_overload_is_transient(self):
        with pytest.raises(TransientProviderFailure, match="503"):
            _local_call(lambda req: httpx.Response(503, text="busy"), _request())

    def test_bad_request_is_hard(self):
        with pytest.raises(HardProviderFailure, match="400"):
            _local_call(lambda req: httpx.Response(400, text="model not found"), _request())

    def test_empty_content(self):
        with pytest.raises(HardProviderFailure, match="empty response"):
            _local_call(lambda req: httpx.Response(200, json={"choices": []}), _request())

    def test_connection_refused(self):
        def handler(req):
            raise httpx.ConnectError("connection refused", request=req)

        with pytest.raises(HardProviderFailure, match="running"):
            _local_call(handler, _request())


# ── Demo client ──────────────────────────────────────────


class TestDemoChatClient:
    def _complete(self, request):
        return asyncio.run(DemoChatClient(latency_seconds=0).complete(request))

    def test_extract_short_text_returns_sample(self):
        data = json.loads(self._complete(_request(ModelTask.EXTRACT, user="The system MUST work.")))
        assert [d["req_id"] for d in data][:2] == ["R-001", "R-002"]

    def test_extract_long_text_returns_placeholder(self):
        data = json.loads(self._complete(_request(ModelTask.EXTRACT, user="x" * 2000)))
        assert data[0]["req_id"] == "DEMO-001"

    def test_chat_keywords(self):
        assert "R-004" in self._complete(_request(user="How do we encrypt data?"))
        assert "Demo Mode" in self._complete(_request(user="What is the meaning of life?"))

    def test_audit(self):
        assert json.loads(self._complete(_request(ModelTask.AUDIT))) == DEMO_AUDIT


# ── Orchestrator ─────────────────────────────────────────


class FakeProviderClient:
    def __init__(self, outcomes=None, default="ok"):
        self.outcomes = outcomes or {}
        self.default = default
        self.calls = []

    async def complete(self, request, model=None):
        self.calls.append(model)
        outcome = self.outcomes.get(model, self.default)
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome


class TestModelOrchestrator:
    def test_cloud_runs_cascade_over_configured_models(self):
        cloud = FakeProviderClient({"m1": TransientProviderFailure("quota", status_code=429), "m2": "from m2"})
        created = []

        def factory(api_key):
            created.append(api_key)
            return cloud

        orchestrator = ModelOrchestrator(Settings(cascade_models=["m1", "m2", "m3"]), cloud_client_factory=factory)
        config = CloudConfig(api_key="gsk_key")

        assert asyncio.run(orchestrator.execute(config, _request(), "Chat")) == "from m2"
        assert cloud.calls == ["m1", "m2"]

        asyncio.run(orchestrator.execute(config, _request(), "Chat"))
        assert created == ["gsk_key"]

    def test_local_is_single_attempt(self):
        local = FakeProviderClient({"llama3": TransientProviderFailure("busy", status_code=503)})
        seen = []

        def factory(base_url, model):
            seen.append((base_url, model))
            return local

        orchestrator = ModelOrchestrator(Settings(), local_client_factory=factory)
        config = LocalConfig(base_url="http://localhost:11434/v1", model="llama3")
        with pytest.raises(TransientProviderFailure):
            asyncio.run(orchestrator.execute(config, _request(), "Chat"))
        assert seen == [("http://localhost:11434/v1", "llama3")]
        assert local.calls == ["llama3"]

    def test_demo_needs_no_network(self):
        orchestrator = ModelOrchestrator(Settings(demo_latency_seconds=0))
        answer = asyncio.run(orchestrator.execute(DemoConfig(), _request(ModelTask.SUMMARY), "Summary"))
        assert "Executive Summary" in answer
