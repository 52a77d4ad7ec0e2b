import os
import smtplib
from typing import Dict, List

import pytest
from fastapi.testclient import TestClient
from sqlmodel import SQLModel, Session

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

from incorporate.main import app  # noqa: E402
from incorporate import config  # noqa: E402
from incorporate import db as db_module  # noqa: E402
from incorporate import models  # noqa: E402,F401
from incorporate.db import get_session, make_engine  # noqa: E402
from incorporate.email import Notifier  # noqa: E402
from incorporate.llm import ExtractedEntities, ValidationResult  # noqa: E402
from incorporate.retrieval import Passage  # noqa: E402
from incorporate.services import Services, get_services  # noqa: E402


class FakeGeneration:
    available = True

    def __init__(self):
        self.validation = ValidationResult(valid=True, issues=[])
        self.entities = None
        self.company = None
        self.questions = []

    def draft_document(self, document_type, company, params=None):
        return f"{document_type} for {company.name}\nParties: {params}"

    def validate_document(self, document_type, content):
        return self.validation

    def answer_question(self, question, company_context, passages=None):
        self.questions.append({"question": question, "context": company_context, "passages": list(passages or [])})
        return f"Answer to: {question}"

    def extract_entities(self, conversation):
        return self.entities

    def extract_company(self, conversation):
        return self.company


class InMemoryRetrieval:
    available = True

    def __init__(self):
        self.points: Dict[str, dict] = {}

    def store_document(self, company_id, document_id, content, metadata=None):
        self.delete_document(document_id)
        self.points[f"doc_{document_id}_0"] = {
            "content": content,
            "metadata": {**(metadata or {}), "company_id": str(company_id), "document_id": str(document_id)},
        }
        return f"doc_{document_id}"

    def store_chat_message(self, company_id, message_id, content, role):
        self.points[f"msg_{message_id}"] = {
            "content": content,
            "metadata": {"company_id": str(company_id), "message_id": str(message_id), "role": role},
        }
        return f"msg_{message_id}"

    def search(self, company_id, query, limit=5):
        words = set(query.lower().split())
        hits = []
        for point in self.points.values():
            if point["metadata"]["company_id"] != str(company_id):
                continue
            score = len(words & set(point["content"].lower().split()))
            if score:
                hits.append(Passage(content=point["content"], metadata=point["metadata"], score=float(score)))
        hits.sort(key=lambda p: p.score, reverse=True)
        return hits[:limit]

    def delete_document(self, document_id):
        for key in [k for k, p in self.points.items() if p["metadata"].get("document_id") == str(document_id)]:
            del self.points[key]

    def delete_company(self, company_id):
        for key in [k for k, p in self.points.items() if p["metadata"]["company_id"] == str(company_id)]:
            del self.points[key]


class FakeVoice:
    available = True

    def text_to_speech(self, text, voice=None):
        return b"ID3" + text.encode()

    def transcribe(self, filename, audio):
        return "transcribed text"


class RecordingTransport:
    def __init__(self):
        self.messages: List[dict] = []
        self.failing: set = set()

    def __call__(self, to, subject, text_body, html_body=None, **kwargs):
        if to in self.failing:
            raise smtplib.SMTPRecipientsRefused({to: (550, b"mailbox unavailable")})
        self.messages.append({"to": to, "subject": subject, "text": text_body, "html": html_body, **kwargs})


@pytest.fixture(scope="session")
def test_engine(tmp_path_factory):
    db_path = tmp_path_factory.mktemp("data") / "test.db"
    return make_engine(f"sqlite:///{db_path}")


@pytest.fixture
def setup_db(test_engine):
    SQLModel.metadata.drop_all(test_engine)
    SQLModel.metadata.create_all(test_engine)
    yield
    SQLModel.metadata.drop_all(test_engine)


@pytest.fixture
def session(test_engine, setup_db):
    with Session(test_engine) as s:
        yield s


@pytest.fixture
def mail():
    return RecordingTransport()


@pytest.fixture
def services(mail):
    return Services(
        generation=FakeGeneration(),
        retrieval=InMemoryRetrieval(),
        notifier=Notifier(transport=mail),
        voice=FakeVoice(),
    )


@pytest.fixture
def client(test_engine, setup_db, services, monkeypatch):
    db_module.engine = test_engine
    monkeypatch.setattr(config, "DEV_LOGIN_ENABLED", True)
    app.state.services = services

    def override_session():
        with Session(test_engine) as s:
            yield s

    app.dependency_overrides[get_session] = override_session
    app.dependency_overrides[get_services] = lambda: services
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
    app.state.services = None


def login(client, email="owner@acme.com", first_name="Olivia", last_name="Owner"):
    response = client.post(
        "/api/auth/login", json={"email": email, "first_name": first_name, "last_name": last_name}
    )
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['token']}"}


@pytest.fixture
def auth_headers(client):
    return login(client)


@pytest.fixture
def acme(client, auth_headers):
    response = client.post(
        "/api/company", json={"name": "Acme", "jurisdiction": "delaware"}, headers=auth_headers
    )
    assert response.status_code == 200
    return response.json()


def sample_entities() -> ExtractedEntities:
    return ExtractedEntities.model_validate({
        "company": {"name": "Acme", "description": "Rocket parts", "jurisdiction": "delaware"},
        "founders": [
            {"email": "alice@acme.com", "first_name": "Alice", "last_name": "A", "role": "CEO", "equity_percentage": 60},
            {"email": "bob@acme.com", "first_name": "Bob", "last_name": "B", "role": "CTO", "equity_percentage": 40},
        ],
        "investors": [{"name": "Jane", "email": "jane@x.com", "amount": 50000}],
    })
