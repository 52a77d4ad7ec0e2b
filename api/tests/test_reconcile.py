from sqlmodel import Session, select

from incorporate import db, tasks
from incorporate.models import Company, Document, DocumentSignature, DocumentStatus, Founder, SignatureStatus, User
from incorporate.reconcile import reconcile_notifications


def test_reconcile_retries_undelivered_notifications(client, auth_headers, acme, mail, test_engine):
    mail.failing.update({"late@acme.com", "bounce@acme.com"})
    assert client.post("/api/founders", json={"email": "late@acme.com"}, headers=auth_headers).status_code == 500
    doc = client.post(
        "/api/documents", json={"type": "nda", "title": "NDA", "content": "terms"}, headers=auth_headers
    ).json()
    client.post(
        f"/api/documents/{doc['id']}/send-for-signature",
        json={"signers": [{"email": "bounce@acme.com"}, {"email": "ok@acme.com"}]},
        headers=auth_headers,
    )

    still_failing = client.post("/api/notifications/reconcile", headers=auth_headers).json()
    assert still_failing == {"signatures_sent": 0, "signatures_failed": 1, "invitations_sent": 0, "invitations_failed": 1}

    mail.failing.clear()
    mail.messages.clear()
    summary = client.post("/api/notifications/reconcile", headers=auth_headers).json()
    assert summary == {"signatures_sent": 1, "signatures_failed": 0, "invitations_sent": 1, "invitations_failed": 0}
    assert {m["to"] for m in mail.messages} == {"late@acme.com", "bounce@acme.com"}

    with Session(test_engine) as s:
        assert {sig.status for sig in s.exec(select(DocumentSignature)).all()} == {SignatureStatus.sent}
        founder = s.exec(select(Founder)).one()
        assert founder.invitation_sent_at is not None
        assert founder.delivery_error is None

    assert client.post("/api/notifications/reconcile", headers=auth_headers).json()["signatures_sent"] == 0


def test_reconcile_skips_active_documents(session, services, mail):
    user = User(email="o@acme.com")
    session.add(user)
    session.commit()
    company = Company(name="Acme", jurisdiction="delaware", user_id=user.id)
    session.add(company)
    session.commit()
    doc = Document(type="nda", title="NDA", company_id=company.id, status=DocumentStatus.active)
    session.add(doc)
    session.commit()
    session.add(DocumentSignature(document_id=doc.id, signer_email="x@acme.com", magic_token="tok"))
    session.commit()

    summary = reconcile_notifications(session, services, "http://localhost:5000")
    assert summary["signatures_sent"] == 0
    assert mail.messages == []


def test_celery_task_runs_reconciliation(monkeypatch, test_engine, setup_db, services):
    monkeypatch.setattr(db, "engine", test_engine)
    monkeypatch.setattr(tasks, "build_services", lambda: services)
    result = tasks.reconcile_notifications_task("http://localhost:5000")
    assert result == {"signatures_sent": 0, "signatures_failed": 0, "invitations_sent": 0, "invitations_failed": 0}
