from conftest import sample_entities
from sqlmodel import Session, select

from incorporate.models import Document, DocumentSignature, Founder, FounderStatus, Investor
from incorporate.onboarding import compute_health_score


def test_add_investor_drafts_safe(client, auth_headers, acme, test_engine):
    response = client.post(
        "/api/investors", json={"name": "Jane", "email": "jane@x.com", "amount": 50000}, headers=auth_headers
    )
    assert response.status_code == 200
    investor = response.json()
    assert investor["status"] == "pending"
    assert investor["safe_document_id"]

    safe = client.get(f"/api/documents/{investor['safe_document_id']}", headers=auth_headers).json()
    assert safe["type"] == "safe"
    assert safe["status"] == "drafting"
    assert safe["title"] == "SAFE - Jane"
    assert "Acme" in safe["content"]
    assert safe["index_point_id"] == f"doc_{safe['id']}"


def test_investor_follows_safe_signature(client, auth_headers, acme, test_engine):
    investor = client.post(
        "/api/investors", json={"name": "Jane", "email": "jane@x.com", "amount": 50000}, headers=auth_headers
    ).json()
    safe_id = investor["safe_document_id"]
    client.post(
        f"/api/documents/{safe_id}/send-for-signature",
        json={"signers": [{"email": "jane@x.com", "name": "Jane"}]},
        headers=auth_headers,
    )
    assert client.get("/api/investors", headers=auth_headers).json()[0]["status"] == "sent"

    signatures = client.get(f"/api/documents/{safe_id}/signatures", headers=auth_headers).json()
    assert signatures[0]["signer_type"] == "investor"
    with Session(test_engine) as s:
        token = s.exec(select(DocumentSignature)).one().magic_token

    assert client.post(f"/api/signatures/{token}/sign").status_code == 200
    assert client.get("/api/investors", headers=auth_headers).json()[0]["status"] == "signed"
    assert client.get(f"/api/documents/{safe_id}", headers=auth_headers).json()["status"] == "active"


def test_invite_founder_sends_invitation(client, auth_headers, acme, mail):
    response = client.post(
        "/api/founders",
        json={"email": "alice@acme.com", "first_name": "Alice", "role": "CEO", "equity_percentage": 60},
        headers=auth_headers,
    )
    assert response.status_code == 200
    founder = response.json()
    assert founder["status"] == "invited"
    assert founder["invitation_sent_at"]

    assert len(mail.messages) == 1
    message = mail.messages[0]
    assert message["to"] == "alice@acme.com"
    assert message["subject"] == "You've been added as a founder of Acme"
    assert "Olivia Owner" in message["text"]
    assert message["sender_name"] == "Olivia Owner via incorporate.run"


def test_failed_invitation_keeps_founder(client, auth_headers, acme, mail, test_engine):
    mail.failing.add("ghost@acme.com")
    response = client.post("/api/founders", json={"email": "ghost@acme.com"}, headers=auth_headers)
    assert response.status_code == 500
    assert "ghost@acme.com" in response.json()["message"]

    with Session(test_engine) as s:
        founder = s.exec(select(Founder)).one()
        assert founder.invitation_sent_at is None
        assert founder.delivery_error


def test_founder_status_cannot_regress(client, auth_headers, acme):
    founder = client.post("/api/founders", json={"email": "alice@acme.com"}, headers=auth_headers).json()
    url = f"/api/founders/{founder['id']}"

    forward = client.patch(url, json={"status": "active", "id_uploaded": True}, headers=auth_headers)
    assert forward.status_code == 200
    assert forward.json()["status"] == "active"
    assert forward.json()["id_uploaded"] is True

    back = client.patch(url, json={"status": "invited"}, headers=auth_headers)
    assert back.status_code == 400
    assert client.get("/api/founders", headers=auth_headers).json()[0]["status"] == "active"


def test_second_company_is_rejected(client, auth_headers, acme):
    response = client.post("/api/company", json={"name": "Acme 2", "jurisdiction": "france"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "You already have a company"


def test_onboard_from_conversation(client, auth_headers, services, mail, test_engine):
    services.generation.entities = sample_entities()
    response = client.post(
        "/api/company/from-conversation",
        json={"conversation": "We are Acme, Alice and Bob, Jane invests 50k"},
        headers=auth_headers,
    )
    assert response.status_code == 200
    body = response.json()
    assert body["company"]["name"] == "Acme"
    assert body["company"]["jurisdiction"] == "delaware"
    assert [f["email"] for f in body["founders"]] == ["alice@acme.com", "bob@acme.com"]
    assert [f["equity_percentage"] for f in body["founders"]] == [60, 40]
    assert [i["name"] for i in body["investors"]] == ["Jane"]
    assert body["investors"][0]["safe_document_id"]
    assert body["invitation_failures"] == 0
    assert {m["to"] for m in mail.messages} == {"alice@acme.com", "bob@acme.com"}

    with Session(test_engine) as s:
        assert len(s.exec(select(Investor)).all()) == 1
        assert len(s.exec(select(Document)).all()) == 1


def test_onboard_keeps_equity_as_given(client, auth_headers, services):
    entities = sample_entities()
    entities.founders[0].equity_percentage = 70
    entities.founders[1].equity_percentage = None
    services.generation.entities = entities
    body = client.post(
        "/api/company/from-conversation", json={"conversation": "Acme"}, headers=auth_headers
    ).json()
    assert [f["equity_percentage"] for f in body["founders"]] == [70, None]


def test_onboard_rejects_out_of_range_equity(client, auth_headers, services, mail):
    entities = sample_entities()
    entities.founders[0].equity_percentage = 150
    services.generation.entities = entities
    response = client.post("/api/company/from-conversation", json={"conversation": "Acme"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Equity percentage must be between 0 and 100, got 150"
    assert client.get("/api/company", headers=auth_headers).status_code == 404
    assert mail.messages == []


def test_onboard_without_entities_is_rejected(client, auth_headers, services):
    services.generation.entities = None
    response = client.post("/api/company/from-conversation", json={"conversation": "hmm"}, headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["message"] == "Could not extract company details, please enter them manually"
    assert client.get("/api/company", headers=auth_headers).status_code == 404


def test_health_score(client, auth_headers, acme):
    assert client.get("/api/company/health", headers=auth_headers).json()["health_score"] == 85

    client.post("/api/founders", json={"email": "alice@acme.com"}, headers=auth_headers)
    client.post("/api/documents", json={"type": "nda", "title": "NDA"}, headers=auth_headers)
    # one drafting document, one invited founder
    assert client.get("/api/company/health", headers=auth_headers).json()["health_score"] == 75
    assert client.get("/api/company", headers=auth_headers).json()["health_score"] == 75


def test_compute_health_score_floor():
    founders = [Founder(email=f"f{i}@x.com", status=FounderStatus.invited) for i in range(12)]
    assert compute_health_score(founders, []) == 0
    assert compute_health_score([Founder(email="a@x.com", status=FounderStatus.active)], []) == 100
