import json
import asyncio
import logging

import pytest
from fastapi.testclient import TestClient

import main
from speech import tts
from utils.config import config


class FakeTranscriber:
    def transcribe(self, path, container="webm"):
        return "My name is Dana Lee and I use Python."


class FakeResponse:
    def __init__(self, status_code=200, content=b""):
        self.status_code = status_code
        self.content = content
        self.text = content.decode("utf-8", "replace")


@pytest.fixture
def client(monkeypatch, tmp_path):
    monkeypatch.setattr(main.orchestrator, "grace_seconds", 0)
    monkeypatch.setattr(main.orchestrator, "tmp_dir", str(tmp_path))
    monkeypatch.setattr(main.orchestrator, "transcriber", FakeTranscriber())
    with TestClient(main.app) as test_client:
        yield test_client


def create(client, **body):
    response = client.post("/api/interviews", json=body)
    assert response.status_code == 200
    return response.json()


def test_health(client):
    body = client.get("/").json()
    assert body["status"] == "running"
    assert body["llm"] is False
    assert body["tts"] is False
    assert [p["phase"] for p in body["phases"]][0] == "intro"


def test_create_without_credentials_still_has_question(client):
    body = create(client, company="Acme", role="Backend Engineer", maxTurns=4)
    assert body["id"]
    assert body["question"].strip()
    assert body["phase"] == "intro"


def test_create_rejects_zero_turns(client):
    assert client.post("/api/interviews", json={"maxTurns": 0}).status_code == 422


def test_status_endpoint(client):
    body = create(client, role="Junior Developer", maxTurns=3)
    status = client.get(f"/api/interviews/{body['id']}").json()
    assert status["turnIndex"] == 0
    assert status["maxTurns"] == 3
    assert status["level"] == "junior"
    assert status["askedQuestions"] == [body["question"]]
    assert client.get("/api/interviews/nope").status_code == 404


def test_tts_requires_text(client):
    assert client.post("/api/tts", json={}).status_code == 400
    assert client.post("/api/tts", json={"text": "   "}).status_code == 400


def test_tts_without_credential(client):
    assert client.post("/api/tts", json={"text": "Hello there"}).status_code == 503


def test_tts_returns_audio(client, monkeypatch):
    monkeypatch.setattr(config.tts, "api_key", "xi-key")
    calls = {}

    def _fake_post(url, headers=None, json=None, timeout=None):
        calls.update(url=url, headers=headers, json=json)
        return FakeResponse(200, b"ID3-audio")

    monkeypatch.setattr(tts.requests, "post", _fake_post)
    response = client.post("/api/tts", json={"text": "Why  Python?"})
    assert response.status_code == 200
    assert response.content == b"ID3-audio"
    assert response.headers["content-type"] == "audio/mpeg"
    assert calls["headers"]["xi-api-key"] == "xi-key"
    assert calls["json"]["text"] == "Why Python?"


def test_tts_upstream_failure(client, monkeypatch):
    monkeypatch.setattr(config.tts, "api_key", "xi-key")
    monkeypatch.setattr(tts.requests, "post", lambda *a, **k: FakeResponse(500, b"quota"))
    assert client.post("/api/tts", json={"text": "Hello"}).status_code == 502


def test_llm_proxy_without_credential_is_mock(client):
    body = client.post("/api/llm-proxy", json={"prompt": "Grade this answer"}).json()
    assert body["mock"] is True
    grade = json.loads(body["text"])
    assert 1 <= grade["score"] <= 5
    assert grade["pass"] == (grade["score"] >= 3)


def test_join_unknown_interview(client):
    with client.websocket_connect("/interview") as ws:
        ws.send_json({"event": "join", "data": {"interviewId": "nope"}})
        assert ws.receive_json() == {"event": "session-missing", "data": {"interviewId": "nope"}}


def test_join_emits_current_question(client):
    body = create(client)
    with client.websocket_connect("/interview") as ws:
        ws.send_json({"event": "join", "data": {"interviewId": body["id"]}})
        assert ws.receive_json() == {"event": "question", "data": {"question": body["question"]}}


def test_single_turn_over_channel(client):
    body = create(client, maxTurns=1)
    with client.websocket_connect("/interview") as ws:
        ws.send_json({"event": "join", "data": {"interviewId": body["id"]}})
        ws.receive_json()
        ws.send_bytes(b"chunk-1")
        ws.send_bytes(b"chunk-2")
        ws.send_json({"event": "end-answer"})

        evaluation = ws.receive_json()
        assert evaluation["event"] == "evaluation"
        assert evaluation["data"]["nextQuestion"] is None
        assert evaluation["data"]["transcript"] == "My name is Dana Lee and I use Python."

        ended = ws.receive_json()
        assert ended["event"] == "interview-ended"
        assert ended["data"]["averageScore"] == float(evaluation["data"]["evaluation"]["score"])

    status = client.get(f"/api/interviews/{body['id']}").json()
    assert status["isEnded"] is True
    assert "name: Dana Lee" in status["summary"]


def test_proctor_update_reaches_room(client):
    body = create(client)
    with client.websocket_connect("/interview") as first, client.websocket_connect("/interview") as second:
        for ws in (first, second):
            ws.send_json({"event": "join", "data": {"interviewId": body["id"]}})
            ws.receive_json()
        first.send_json({"event": "proctor-update", "data": {"lookingAway": True}})
        expected = {"event": "proctor-status", "data": {"lookingAway": True}}
        assert first.receive_json() == expected
        assert second.receive_json() == expected


@pytest.mark.asyncio
async def test_failed_turn_task_is_logged(monkeypatch, caplog):
    async def broken_end_answer(session_id):
        raise RuntimeError("channel closed")

    monkeypatch.setattr(main.orchestrator, "end_answer", broken_end_answer)
    with caplog.at_level(logging.ERROR, logger="main"):
        task = main._spawn_turn("abc")
        await asyncio.wait({task})
        await asyncio.sleep(0)

    assert task not in main._turn_tasks
    assert "End-of-answer sequence failed: channel closed" in caplog.text
