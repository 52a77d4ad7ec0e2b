import asyncio
import io

from sqlalchemy import inspect
from sqlmodel import Session, select

from incorporate import config
from incorporate import db as db_module
from incorporate.db import init_db, make_engine
from incorporate.models import CapTableEntry, Document, DocumentSignature, Founder, Investor, Task
from incorporate.voice import UnavailableVoice


def test_requests_without_session_are_unauthorized(client):
    assert client.get("/api/company").status_code == 401
    assert client.get("/api/company", headers={"Authorization": "Bearer forged"}).status_code == 401
    assert client.get("/api/auth/user").json() == {"message": "Unauthorized"}


def test_password_less_login_is_disabled_without_flag(client, monkeypatch):
    monkeypatch.setattr(config, "DEV_LOGIN_ENABLED", False)
    response = client.post("/api/auth/login", json={"email": "owner@acme.com"})
    assert response.status_code == 403
    assert response.json() == {"message": "Password-less login is disabled"}
    assert "session" not in response.cookies


def test_login_sets_cookie_and_returns_user(client):
    response = client.post("/api/auth/login", json={"email": "Olivia@Acme.com", "first_name": "Olivia"})
    assert response.status_code == 200
    assert response.json()["user"]["email"] == "olivia@acme.com"
    assert "session" in response.cookies

    # the cookie alone is enough
    assert client.get("/api/auth/user").json()["email"] == "olivia@acme.com"


def test_company_without_one_is_not_found(client, auth_headers):
    response = client.get("/api/company", headers=auth_headers)
    assert response.status_code == 404
    assert response.json() == {"message": "No company found"}
    assert client.get("/api/founders", headers=auth_headers).status_code == 404


def test_invalid_company_payload(client, auth_headers):
    response = client.post("/api/company", json={"name": "Acme", "jurisdiction": "mars"}, headers=auth_headers)
    assert response.status_code == 400
    assert "jurisdiction" in response.json()["message"]


def test_update_company(client, auth_headers, acme):
    response = client.patch("/api/company", json={"description": "Rocket parts"}, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["description"] == "Rocket parts"
    assert response.json()["name"] == "Acme"


def test_tasks_and_cap_table(client, auth_headers, acme):
    founder = client.post("/api/founders", json={"email": "alice@acme.com"}, headers=auth_headers).json()
    task = client.post(
        "/api/tasks",
        json={"description": "Upload ID", "category": "compliance", "assignee_id": founder["id"]},
        headers=auth_headers,
    ).json()
    assert task["status"] == "pending"

    done = client.patch(f"/api/tasks/{task['id']}", json={"status": "completed"}, headers=auth_headers)
    assert done.json()["status"] == "completed"
    reopened = client.patch(f"/api/tasks/{task['id']}", json={"status": "in_progress"}, headers=auth_headers)
    assert reopened.json()["status"] == "in_progress"

    entry = client.post(
        "/api/cap-table",
        json={"holder_id": founder["id"], "holder_type": "founder", "holder_name": "Alice", "shares": 6000000, "percentage": 60},
        headers=auth_headers,
    )
    assert entry.status_code == 200
    assert [e["holder_name"] for e in client.get("/api/cap-table", headers=auth_headers).json()] == ["Alice"]

    bad = client.post(
        "/api/cap-table",
        json={"holder_id": "x", "holder_type": "advisor", "holder_name": "X", "shares": 1, "percentage": 1},
        headers=auth_headers,
    )
    assert bad.status_code == 400


def test_delete_company_cascades(client, auth_headers, acme, services, test_engine):
    founder = client.post("/api/founders", json={"email": "alice@acme.com"}, headers=auth_headers).json()
    client.post("/api/investors", json={"name": "Jane", "email": "jane@x.com", "amount": 50000}, headers=auth_headers)
    doc = client.post(
        "/api/documents", json={"type": "nda", "title": "NDA", "content": "terms"}, headers=auth_headers
    ).json()
    client.post(
        f"/api/documents/{doc['id']}/send-for-signature",
        json={"signers": [{"email": "alice@acme.com"}]},
        headers=auth_headers,
    )
    client.post("/api/tasks", json={"description": "Upload ID", "assignee_id": founder["id"]}, headers=auth_headers)
    client.post(
        "/api/cap-table",
        json={"holder_id": founder["id"], "holder_type": "founder", "holder_name": "Alice", "shares": 1, "percentage": 100},
        headers=auth_headers,
    )
    client.post("/api/chat/send", json={"content": "hello"}, headers=auth_headers)
    assert services.retrieval.points

    response = client.delete("/api/company", headers=auth_headers)
    assert response.status_code == 200
    assert client.get("/api/company", headers=auth_headers).status_code == 404

    with Session(test_engine) as s:
        for model in (Founder, Investor, Document, DocumentSignature, Task, CapTableEntry):
            assert s.exec(select(model)).all() == []
    assert services.retrieval.points == {}


def test_voice_endpoints(client, auth_headers):
    speech = client.post("/api/voice/tts", json={"text": "hello"}, headers=auth_headers)
    assert speech.status_code == 200
    assert speech.headers["content-type"] == "audio/mpeg"
    assert speech.content == b"ID3hello"

    transcript = client.post(
        "/api/voice/transcribe",
        files={"file": ("note.webm", io.BytesIO(b"\x1aE\xdf\xa3"), "audio/webm")},
        headers=auth_headers,
    )
    assert transcript.json() == {"text": "transcribed text"}


def test_voice_unavailable(client, auth_headers, services):
    services.voice = UnavailableVoice()
    response = client.post("/api/voice/tts", json={"text": "hello"}, headers=auth_headers)
    assert response.status_code == 503
    assert response.json() == {"message": "Voice service is not configured"}


def test_health_check(client):
    body = client.get("/api/health-check").json()
    assert body["ok"] is True
    assert body["capabilities"]["generation"] is True


def test_transcribe_runs_off_the_event_loop(client, auth_headers, services):
    seen = {}

    def transcribe(filename, audio):
        try:
            asyncio.get_running_loop()
            seen["on_loop"] = True
        except RuntimeError:
            seen["on_loop"] = False
        return "ok"

    services.voice.transcribe = transcribe
    response = client.post(
        "/api/voice/transcribe",
        files={"file": ("note.webm", io.BytesIO(b"\x1aE\xdf\xa3"), "audio/webm")},
        headers=auth_headers,
    )
    assert response.json() == {"text": "ok"}
    assert seen["on_loop"] is False


def test_init_db_creates_unique_magic_token_index(tmp_path, monkeypatch):
    engine = make_engine(f"sqlite:///{tmp_path / 'fresh.db'}")
    monkeypatch.setattr(db_module, "engine", engine)
    init_db()

    indexes = {idx["name"]: idx for idx in inspect(engine).get_indexes("documentsignature")}
    assert set(indexes) == {"ix_documentsignature_document_id", "ix_documentsignature_magic_token"}
    assert indexes["ix_documentsignature_magic_token"]["unique"]
