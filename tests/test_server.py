"""Tests for noter.server — the assistance endpoint (ChatOllama mocked)."""

from __future__ import annotations

from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient
from langchain_core.messages import AIMessageChunk

from noter.assistant import AssistantAction, AssistantRequest
from noter.config import settings
from noter.server import app, build_prompt


def _streaming(*parts: str):
    async def astream(messages):
        for part in parts:
            yield AIMessageChunk(content=part)

    return astream


def _failing(exc: Exception):
    async def astream(messages):
        raise exc
        yield  # pragma: no cover

    return astream


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture()
def chat():
    with patch("noter.server.ChatOllama") as cls:
        instance = MagicMock()
        instance.astream = _streaming("Hello", " world")
        cls.return_value = instance
        yield cls


# ---------------------------------------------------------------------------
# Prompts
# ---------------------------------------------------------------------------


class TestBuildPrompt:
    def test_improve_prefers_selection(self):
        req = AssistantRequest(action="improve", content="whole note", selection="this bit")
        prompt = build_prompt(AssistantAction.IMPROVE, req)
        assert "this bit" in prompt
        assert "whole note" not in prompt

    def test_improve_falls_back_to_content(self):
        req = AssistantRequest(action="improve", content="whole note")
        assert "whole note" in build_prompt(AssistantAction.IMPROVE, req)

    def test_custom_includes_request_and_context(self):
        req = AssistantRequest(prompt="  Make it shorter ", content="Long text")
        prompt = build_prompt(AssistantAction.CUSTOM, req)
        assert "Request: Make it shorter" in prompt
        assert "Long text" in prompt

    @pytest.mark.parametrize("action", list(AssistantAction))
    def test_every_action_has_a_prompt(self, action: AssistantAction):
        assert build_prompt(action, AssistantRequest(content="x", prompt="y"))


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


class TestListModels:
    def test_lists_models_with_default(self, client: TestClient):
        resp = client.get("/ai")
        assert resp.status_code == 200
        data = resp.json()
        assert data["default"] == settings.ollama_model
        assert settings.ollama_model in [m["id"] for m in data["models"]]
        assert all(m["provider"] == "Ollama" for m in data["models"])


class TestAssist:
    def test_streams_text(self, client: TestClient, chat):
        resp = client.post("/ai", json={"action": "continue", "content": "Once"})
        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("text/plain")
        assert resp.text == "Hello world"
        chat.assert_called_once_with(model=settings.ollama_model, base_url=settings.ollama_base_url)

    def test_model_override(self, client: TestClient, chat):
        client.post("/ai", json={"action": "haiku", "content": "x", "model": "mistral:7b"})
        assert chat.call_args.kwargs["model"] == "mistral:7b"

    def test_prompt_only_is_custom(self, client: TestClient, chat):
        resp = client.post("/ai", json={"prompt": "Title ideas?", "content": "notes"})
        assert resp.status_code == 200

    def test_unknown_action(self, client: TestClient, chat):
        resp = client.post("/ai", json={"action": "dance"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Unknown action"}
        chat.assert_not_called()

    def test_nothing_requested(self, client: TestClient, chat):
        resp = client.post("/ai", json={"content": "text"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Unknown action"}

    def test_invalid_body(self, client: TestClient, chat):
        resp = client.post("/ai", content=b"not json", headers={"content-type": "application/json"})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid request body"}

    def test_wrong_field_type(self, client: TestClient, chat):
        resp = client.post("/ai", json={"action": "haiku", "content": ["a"]})
        assert resp.status_code == 400

    def test_model_failure_is_json_error(self, client: TestClient, chat):
        chat.return_value.astream = _failing(ConnectionError("Ollama unreachable"))
        resp = client.post("/ai", json={"action": "summarize", "content": "x"})
        assert resp.status_code == 500
        assert resp.json() == {"error": "Ollama unreachable"}

    def test_empty_stream(self, client: TestClient, chat):
        chat.return_value.astream = _streaming()
        resp = client.post("/ai", json={"action": "summarize", "content": "x"})
        assert resp.status_code == 200
        assert resp.text == ""


class TestOperational:
    def test_health(self, client: TestClient):
        data = client.get("/health").json()
        assert data["status"] == "healthy"
        assert data["server"] == "noter-assistant"

    def test_metrics(self, client: TestClient):
        resp = client.get("/metrics")
        assert resp.status_code == 200
        assert "noter_assistant_requests_total" in resp.text
