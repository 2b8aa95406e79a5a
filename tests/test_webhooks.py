import json

import httpx
import pytest

from modules.documents.exceptions import NotFoundError
from modules.jobs.models.background_job import BackgroundJob
from modules.jobs.services.job_dispatcher import EXECUTE_WEBHOOK
from modules.webhooks.models.webhook import WebhookTriggerEvent
from modules.webhooks.services.webhook_service import WebhookService


def create(session, owner, events, **kwargs):
    return WebhookService(session).create_webhook(
        user_id=owner.id, webhook_url="https://example.com/hook", event_triggers=events, **kwargs
    )


def test_crear_listar_eliminar(session, owner):
    service = WebhookService(session)
    webhook = create(session, owner, [WebhookTriggerEvent.DOCUMENT_SENT], secret="s3cr3t")

    assert webhook.event_triggers == ["DOCUMENT_SENT"]
    assert [w.id for w in service.list_webhooks(owner.id)] == [webhook.id]

    service.delete_webhook(owner.id, webhook.id)
    assert service.list_webhooks(owner.id) == []

    with pytest.raises(NotFoundError):
        service.delete_webhook(owner.id, webhook.id)


def test_emitir_solo_a_suscritos_y_activos(session, owner):
    create(session, owner, [WebhookTriggerEvent.DOCUMENT_SIGNED])
    create(session, owner, [WebhookTriggerEvent.DOCUMENT_SENT])
    create(session, owner, [WebhookTriggerEvent.DOCUMENT_SIGNED], enabled=False)

    count = WebhookService(session).emit(WebhookTriggerEvent.DOCUMENT_SIGNED, {"id": 1}, user_id=owner.id)

    assert count == 1
    job = session.query(BackgroundJob).one()
    assert job.job_id == EXECUTE_WEBHOOK
    assert job.payload["event"] == "DOCUMENT_SIGNED"
    assert job.payload["payload"] == {"id": 1}


def test_ejecutar_envia_post(session, owner):
    webhook = create(session, owner, [WebhookTriggerEvent.DOCUMENT_SENT], secret="s3cr3t")
    requests = []

    def handler(request):
        requests.append(request)
        return httpx.Response(200)

    client = httpx.Client(transport=httpx.MockTransport(handler))
    WebhookService(session).execute(
        {"webhook_id": webhook.id, "event": "DOCUMENT_SENT", "payload": {"id": 7}}, client=client
    )

    assert len(requests) == 1
    assert str(requests[0].url) == "https://example.com/hook"
    assert requests[0].headers["X-Webhook-Secret"] == "s3cr3t"
    body = json.loads(requests[0].content)
    assert body["event"] == "DOCUMENT_SENT"
    assert body["payload"] == {"id": 7}
    assert body["webhookEndpoint"] == "https://example.com/hook"


def test_ejecutar_falla_con_error_http(session, owner):
    webhook = create(session, owner, [WebhookTriggerEvent.DOCUMENT_SENT])
    client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(500)))

    with pytest.raises(httpx.HTTPStatusError):
        WebhookService(session).execute(
            {"webhook_id": webhook.id, "event": "DOCUMENT_SENT", "payload": {}}, client=client
        )


def test_ejecutar_ignora_webhook_desactivado(session, owner):
    webhook = create(session, owner, [WebhookTriggerEvent.DOCUMENT_SENT], enabled=False)

    def handler(request):
        raise AssertionError("no debería llamarse")

    client = httpx.Client(transport=httpx.MockTransport(handler))
    WebhookService(session).execute(
        {"webhook_id": webhook.id, "event": "DOCUMENT_SENT", "payload": {}}, client=client
    )
