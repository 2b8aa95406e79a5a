import pytest
from fastapi.testclient import TestClient

from config import settings
from helpers import make_pdf_bytes
from main import app
from modules.documents.models import Envelope, Recipient
from modules.jobs.services.job_dispatcher import process_pending_jobs


@pytest.fixture
def client(tmp_path, monkeypatch):
    monkeypatch.setattr(settings, "upload_dir", str(tmp_path / "uploads"))
    return TestClient(app)


@pytest.fixture
def auth_headers(client, owner):
    response = client.post("/auth/login", json={"email": "carlos@empresa.com", "password": "carlos123"})
    assert response.status_code == 200
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


def upload(client, headers, name="contrato.pdf", content_type="application/pdf", data=None):
    return client.post(
        "/documents/upload",
        files={"file": (name, make_pdf_bytes(pages=2), content_type)},
        data=data or {},
        headers=headers,
    )


def test_login_incorrecto(client, owner):
    response = client.post("/auth/login", json={"email": "carlos@empresa.com", "password": "mal"})
    assert response.status_code == 401


def test_sin_token(client):
    response = client.get("/documents")
    assert response.status_code in (401, 403)


def test_subir_rechaza_no_pdf(client, auth_headers):
    response = upload(client, auth_headers, name="notas.txt", content_type="text/plain")
    assert response.status_code == 400


def test_subir_nombre_unico(client, auth_headers):
    first = upload(client, auth_headers).json()
    second = upload(client, auth_headers).json()

    assert first["title"] == "contrato.pdf"
    assert second["title"] == "contrato_1.pdf"
    assert first["status"] == "DRAFT"

    listed = client.get("/documents", headers=auth_headers).json()
    assert {d["id"] for d in listed} == {first["id"], second["id"]}


def test_campo_fuera_de_rango(client, auth_headers):
    envelope = upload(client, auth_headers).json()
    recipient = client.post(
        f"/documents/{envelope['id']}/recipients",
        json={"email": "ana@mail.com", "name": "Ana"},
        headers=auth_headers,
    ).json()

    response = client.post(
        f"/documents/{envelope['id']}/fields",
        json={"recipient_id": recipient["id"], "type": "SIGNATURE", "page": 5},
        headers=auth_headers,
    )
    assert response.status_code == 400


def test_flujo_completo_de_firma(client, auth_headers, session):
    envelope = upload(client, auth_headers, data={"signing_order": "SEQUENTIAL"}).json()
    envelope_id = envelope["id"]

    recipient = client.post(
        f"/documents/{envelope_id}/recipients",
        json={"email": "ana@mail.com", "name": "Ana", "signing_order": 1},
        headers=auth_headers,
    ).json()
    field = client.post(
        f"/documents/{envelope_id}/fields",
        json={"recipient_id": recipient["id"], "type": "SIGNATURE", "page": 2},
        headers=auth_headers,
    ).json()

    sent = client.post(f"/documents/{envelope_id}/send", headers=auth_headers)
    assert sent.status_code == 200
    assert sent.json()["status"] == "PENDING"
    assert sent.json()["recipients"][0]["send_status"] == "SENT"

    token = session.get(Recipient, recipient["id"]).token

    view = client.get(f"/sign/{token}").json()
    assert view["is_recipients_turn"] is True
    assert [f["id"] for f in view["fields"]] == [field["id"]]

    # Sin firmar el campo no se puede completar
    assert client.post(f"/sign/{token}/complete").status_code == 400

    signed = client.post(f"/sign/{token}/fields/{field['id']}", json={"value": "Ana"})
    assert signed.status_code == 200
    assert signed.json()["inserted"] is True

    completed = client.post(f"/sign/{token}/complete")
    assert completed.status_code == 200
    assert completed.json()["recipients"][0]["signing_status"] == "SIGNED"

    process_pending_jobs(session)
    session.expire_all()
    assert session.get(Envelope, envelope_id).status.value == "COMPLETED"

    document = client.get(f"/documents/{envelope_id}", headers=auth_headers).json()
    assert document["status"] == "COMPLETED"
    assert document["completed_at"] is not None

    logs = client.get(f"/documents/{envelope_id}/audit-logs", headers=auth_headers).json()
    assert {log["type"] for log in logs} == {
        "DOCUMENT_SENT",
        "DOCUMENT_FIELD_INSERTED",
        "DOCUMENT_RECIPIENT_COMPLETED",
        "DOCUMENT_COMPLETED",
    }

    notifications = client.get("/notifications/me", headers=auth_headers).json()
    assert len(notifications) == 2
    assert {n["envelope_id"] for n in notifications} == {envelope_id}


def test_enlace_de_firma_invalido(client):
    assert client.get("/sign/no-existe").status_code == 404
    assert client.post("/sign/no-existe/complete").status_code == 404


def test_enviar_sin_destinatarios(client, auth_headers):
    envelope = upload(client, auth_headers).json()
    response = client.post(f"/documents/{envelope['id']}/send", headers=auth_headers)
    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "El documento no tiene destinatarios"


def test_webhooks_api(client, auth_headers):
    created = client.post(
        "/webhooks",
        json={"webhook_url": "https://example.com/hook", "event_triggers": ["DOCUMENT_SIGNED"]},
        headers=auth_headers,
    )
    assert created.status_code == 201

    listed = client.get("/webhooks", headers=auth_headers).json()
    assert [w["id"] for w in listed] == [created.json()["id"]]

    assert client.delete(f"/webhooks/{created.json()['id']}", headers=auth_headers).status_code == 204
    assert client.get("/webhooks", headers=auth_headers).json() == []


def test_completar_sin_campos_mensaje_en_espanol(client, auth_headers, session):
    envelope = upload(client, auth_headers).json()
    recipient = client.post(
        f"/documents/{envelope['id']}/recipients",
        json={"email": "ana@mail.com", "name": "Ana"},
        headers=auth_headers,
    ).json()
    client.post(
        f"/documents/{envelope['id']}/fields",
        json={"recipient_id": recipient["id"], "type": "SIGNATURE", "page": 1},
        headers=auth_headers,
    )
    client.post(f"/documents/{envelope['id']}/send", headers=auth_headers)
    token = session.get(Recipient, recipient["id"]).token

    response = client.post(f"/sign/{token}/complete")

    assert response.status_code == 400
    assert response.json()["detail"]["message"] == "El destinatario tiene campos obligatorios sin completar"
