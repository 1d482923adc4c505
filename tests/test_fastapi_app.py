from __future__ import annotations

from typing import Any

import pytest
from fastapi.testclient import TestClient

import mission_compass.generation.gemini as gemini_mod
import mission_compass.serve.fastapi_app as app_mod
from mission_compass.common.config import Settings


class _FakeResponse:
    def __init__(self, status_code: int, json_data: dict[str, Any]) -> None:
        self.status_code = status_code
        self._json = json_data

    def json(self) -> dict[str, Any]:
        return self._json


def _reply(text: str) -> _FakeResponse:
    return _FakeResponse(200, {"candidates": [{"content": {"parts": [{"text": text}]}, "finishReason": "STOP"}]})


class _FakeClient:
    routes: dict[str, _FakeResponse] = {}
    prompts: list[str] = []

    def __init__(self, timeout: float | int | None = None) -> None:  # signature-compatible
        self.timeout = timeout

    def __enter__(self) -> "_FakeClient":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # noqa: ANN001
        return None

    def post(self, url: str, headers: dict[str, str] | None = None, json: dict[str, Any] | None = None) -> _FakeResponse:  # noqa: A002
        self.prompts.append((json or {})["contents"][0]["parts"][0]["text"])
        for key, resp in self.routes.items():
            if f"/models/{key}:" in url:
                return resp
        return _FakeResponse(404, {"error": {"message": "not found"}})


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch) -> TestClient:
    _FakeClient.routes = {}
    _FakeClient.prompts = []
    monkeypatch.setattr(gemini_mod.httpx, "Client", _FakeClient)
    monkeypatch.setattr(
        app_mod,
        "SETTINGS",
        Settings(api_key="test-key", primary_model="m1", fallback_models=["m2"], base_url="http://fake", budget_s=None),
    )
    app_mod.CACHE.clear()
    return TestClient(app_mod.app)


def test_health_ok(client: TestClient) -> None:
    r = client.get("/health")
    assert r.status_code == 200
    data = r.json()
    assert data.get("status") == "ok"
    assert data["models"] == ["m1", "m2"]


def test_chat_falls_back_to_second_model(client: TestClient) -> None:
    _FakeClient.routes = {"m2": _reply("Try this:\n1. Journal tonight\n2. Ask a friend\n\nToday's step: write one line.")}
    r = client.post("/api/chat", json={"message": "I feel stuck"})
    assert r.status_code == 200
    data = r.json()
    assert data["model_used"] == "m2"
    assert data["reply"].startswith("Try this:")
    assert data["options"] == [
        {"label": "1", "text": "Journal tonight"},
        {"label": "2", "text": "Ask a friend"},
    ]
    assert "User: I feel stuck" in _FakeClient.prompts[0]
    assert app_mod.CACHE.get() == "m2"


def test_chat_rejects_blank_message(client: TestClient) -> None:
    r = client.post("/api/chat", json={"message": "   "})
    assert r.status_code == 400


def test_chat_without_api_key(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(app_mod.SETTINGS, "api_key", "")
    r = client.post("/api/chat", json={"message": "hi"})
    assert r.status_code == 400
    assert _FakeClient.prompts == []


def test_chat_blocked(client: TestClient) -> None:
    _FakeClient.routes = {"m1": _FakeResponse(200, {"promptFeedback": {"blockReason": "SAFETY"}})}
    r = client.post("/api/chat", json={"message": "something"})
    assert r.status_code == 422
    detail = r.json()["detail"]
    assert detail["kind"] == "blocked"
    assert detail["tried_models"] == ["m1"]
    assert "rephrase" in detail["error_message"]


def test_chat_all_candidates_unavailable(client: TestClient) -> None:
    r = client.post("/api/chat", json={"message": "hello"})
    assert r.status_code == 502
    detail = r.json()["detail"]
    assert detail["kind"] == "retryable_unavailable"
    assert detail["tried_models"] == ["m1", "m2"]


def test_guided_returns_questions(client: TestClient) -> None:
    r = client.post("/api/guided", json={"step": 0, "answers": []})
    assert r.status_code == 200
    data = r.json()
    assert data["type"] == "question"
    assert data["step"] == 0
    assert data["total"] == len(app_mod.SETTINGS.questions)
    assert data["question"] == app_mod.SETTINGS.questions[0]
    assert _FakeClient.prompts == []


def test_guided_final_summary(client: TestClient) -> None:
    _FakeClient.routes = {
        "m1": _reply('```json\n{"values": ["integrity"], "passions": ["teaching"], "statement": "I light paths."}\n```')
    }
    total = len(app_mod.SETTINGS.questions)
    answers = [{"q": f"q{i}", "a": f"a{i}"} for i in range(total)]
    r = client.post("/api/guided", json={"step": total, "answers": answers})
    assert r.status_code == 200
    data = r.json()
    assert data["type"] == "final"
    assert data["model_used"] == "m1"
    assert data["mission"] == {"values": ["integrity"], "passions": ["teaching"], "statement": "I light paths."}
    assert "Q1: q0\nA1: a0" in _FakeClient.prompts[0]


def test_guided_rejects_negative_step(client: TestClient) -> None:
    r = client.post("/api/guided", json={"step": -1})
    assert r.status_code == 422
