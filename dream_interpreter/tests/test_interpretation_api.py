"""HTTP tests for the interpretation and dream routes."""

from uuid import uuid4

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt

from dream_interpreter.api.dream.routes import router as dream_router
from dream_interpreter.api.interpretation.routes import router as interpretation_router
from dream_interpreter.config import settings
from dream_interpreter.dependencies import get_current_user_id, get_interpretation_service
from dream_interpreter.services.interpretation.service import InterpretationService
from dream_interpreter.services.interpretation.synchronizer import PersistenceSynchronizer

from fakes import InMemoryDreamRepository, ScriptedAssistant

DREAM = "I was standing in a green field under heavy rain"


@pytest.fixture
def scripted():
    return ScriptedAssistant()


@pytest.fixture
def app(scripted, mock_session_scope):
    service = InterpretationService(
        synchronizer=PersistenceSynchronizer(InMemoryDreamRepository()),
        assistant=scripted,
        poll_max_attempts=3,
        poll_interval_s=0,
    )
    app = FastAPI()
    app.include_router(dream_router)
    app.include_router(interpretation_router)
    app.dependency_overrides[get_interpretation_service] = lambda: service
    return app


@pytest.fixture
def client(app):
    app.dependency_overrides[get_current_user_id] = lambda: "user-1"
    with TestClient(app) as c:
        yield c


def _start(client):
    resp = client.post("/interpretations/", json={"dream_text": DREAM})
    assert resp.status_code == 201
    return resp.json()


def test_start_returns_first_question(client):
    body = _start(client)

    assert body["round"] == 1
    assert body["status"] == "interpreting"
    assert body["is_complete"] is False
    assert body["degraded"] is False
    assert [m["sender"] for m in body["messages"]] == ["user", "assistant"]
    assert body["messages"][0]["content"] == DREAM
    assert body["warnings"] == []


def test_full_conversation_over_http(client):
    did = _start(client)["dream_id"]

    for answer in ("It felt peaceful", "Nobody", "I recently lost my job"):
        resp = client.post(f"/interpretations/{did}/answers", json={"answer": answer})
        assert resp.status_code == 200
    body = resp.json()

    assert body["is_complete"] is True
    assert body["round"] == 4
    assert body["status"] == "completed"

    resp = client.get(f"/interpretations/{did}")
    assert resp.status_code == 200
    assert resp.json()["is_complete"] is True

    resp = client.post(f"/interpretations/{did}/answers", json={"answer": "more"})
    assert resp.status_code == 409


def test_empty_dream_text_is_rejected(client):
    assert client.post("/interpretations/", json={"dream_text": ""}).status_code == 422
    assert client.post("/interpretations/", json={"dream_text": "   "}).status_code == 422


def test_unknown_session(client):
    did = uuid4()
    assert client.get(f"/interpretations/{did}").status_code == 404
    assert client.post(f"/interpretations/{did}/answers", json={"answer": "x"}).status_code == 404
    assert client.delete(f"/interpretations/{did}").status_code == 404


def test_interrupted_round_asks_for_retry(client, scripted):
    did = _start(client)["dream_id"]
    scripted.fail("start_run")

    resp = client.post(f"/interpretations/{did}/answers", json={"answer": "It felt peaceful"})
    assert resp.status_code == 503
    assert resp.headers["Retry-After"] == "1"

    resp = client.post(f"/interpretations/{did}/answers", json={"answer": "It felt peaceful"})
    assert resp.status_code == 200
    senders = [m["sender"] for m in resp.json()["messages"]]
    assert senders == ["user", "assistant", "user", "assistant"]


def test_abandon(client):
    did = _start(client)["dream_id"]

    assert client.delete(f"/interpretations/{did}").status_code == 204
    # the durable record is still there and the session can be resumed
    resp = client.get(f"/interpretations/{did}")
    assert resp.status_code == 200
    assert resp.json()["round"] == 1


def test_past_dreams(client):
    did = _start(client)["dream_id"]

    resp = client.get("/dreams/")
    assert resp.status_code == 200
    items = resp.json()
    assert [i["id"] for i in items] == [did]
    assert items[0]["has_interpretation"] is False

    resp = client.get(f"/dreams/{did}")
    assert resp.status_code == 200
    body = resp.json()
    assert body["dream_text"] == DREAM
    assert body["status"] == "interpreting"
    assert body["questions"] == ["Question 1?"]
    assert body["answers"] == []
    assert body["created_at"].endswith("Z")

    assert client.get(f"/dreams/{uuid4()}").status_code == 404


class TestAuth:
    def test_missing_token(self, app):
        with TestClient(app) as c:
            resp = c.get("/dreams/")
        assert resp.status_code in (401, 403)

    def test_invalid_token(self, app):
        with TestClient(app) as c:
            resp = c.get("/dreams/", headers={"Authorization": "Bearer not-a-jwt"})
        assert resp.status_code == 401

    def test_valid_token(self, app):
        token = jwt.encode({"uid": "user-1"}, settings().jwt_secret, algorithm="HS256")
        with TestClient(app) as c:
            resp = c.get("/dreams/", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 200
        assert resp.json() == []

    def test_token_without_user(self, app):
        token = jwt.encode({"role": "anon"}, settings().jwt_secret, algorithm="HS256")
        with TestClient(app) as c:
            resp = c.get("/dreams/", headers={"Authorization": f"Bearer {token}"})
        assert resp.status_code == 401
