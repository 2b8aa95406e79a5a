from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
from sqlalchemy import or_
from sqlalchemy.orm import Session

from config import settings
from modules.documents.exceptions import NotFoundError
from modules.jobs.services.job_dispatcher import EXECUTE_WEBHOOK, JobDispatcher
from modules.webhooks.models.webhook import Webhook, WebhookTriggerEvent
from logger import get_logger

logger = get_logger(__name__)


class WebhookService:
    def __init__(self, session: Session, dispatcher: Optional[JobDispatcher] = None):
        self.session = session
        self.dispatcher = dispatcher or JobDispatcher(session)

    def create_webhook(
        self,
        user_id: int,
        webhook_url: str,
        event_triggers: List[WebhookTriggerEvent],
        secret: Optional[str] = None,
        enabled: bool = True,
        team_id: Optional[int] = None,
    ) -> Webhook:
        webhook = Webhook(
            user_id=user_id,
            team_id=team_id,
            webhook_url=webhook_url,
            event_triggers=[event.value for event in event_triggers],
            secret=secret,
            enabled=enabled,
        )
        self.session.add(webhook)
        self.session.commit()
        self.session.refresh(webhook)
        return webhook

    def list_webhooks(self, user_id: int) -> List[Webhook]:
        return self.session.query(Webhook).filter(Webhook.user_id == user_id).order_by(Webhook.id).all()

    def delete_webhook(self, user_id: int, webhook_id: int) -> None:
        webhook = self.session.get(Webhook, webhook_id)
        if not webhook or webhook.user_id != user_id:
            raise NotFoundError("Webhook no encontrado", {"webhook_id": webhook_id})
        self.session.delete(webhook)
        self.session.commit()

    def emit(
        self,
        event: WebhookTriggerEvent,
        payload: Dict[str, Any],
        user_id: int,
        team_id: Optional[int] = None,
    ) -> int:
        """
        Queue one delivery per enabled webhook subscribed to the event.

        Returns the number of deliveries queued.
        """
        query = self.session.query(Webhook).filter(Webhook.enabled.is_(True))
        if team_id is not None:
            query = query.filter(or_(Webhook.team_id == team_id, Webhook.user_id == user_id))
        else:
            query = query.filter(Webhook.user_id == user_id)

        webhooks = [w for w in query.all() if event.value in (w.event_triggers or [])]
        for webhook in webhooks:
            self.dispatcher.enqueue(EXECUTE_WEBHOOK, {
                "webhook_id": webhook.id,
                "event": event.value,
                "payload": payload,
            })

        logger.info("Webhook event emitted", event=event.value, deliveries=len(webhooks), user_id=user_id)
        return len(webhooks)

    def execute(self, payload: Dict[str, Any], client: Optional[httpx.Client] = None) -> None:
        """
        Deliver a queued webhook call. Raises on non-2xx so the job is retried.
        """
        webhook = self.session.get(Webhook, payload["webhook_id"])
        if not webhook or not webhook.enabled:
            logger.info("Skipping delivery for missing or disabled webhook", webhook_id=payload["webhook_id"])
            return

        body = {
            "event": payload["event"],
            "payload": payload["payload"],
            "createdAt": datetime.now(timezone.utc).isoformat(),
            "webhookEndpoint": webhook.webhook_url,
        }
        headers = {"Content-Type": "application/json"}
        if webhook.secret:
            headers["X-Webhook-Secret"] = webhook.secret

        owns_client = client is None
        client = client or httpx.Client(timeout=settings.webhook_timeout_seconds)
        try:
            response = client.post(webhook.webhook_url, json=body, headers=headers)
            response.raise_for_status()
        finally:
            if owns_client:
                client.close()

        logger.info("Webhook delivered", webhook_id=webhook.id, event=payload["event"], status_code=response.status_code)
