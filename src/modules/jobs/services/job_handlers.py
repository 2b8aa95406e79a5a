from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from modules.documents.exceptions import NotFoundError
from modules.documents.models import Envelope, Recipient, User
from modules.documents.schemas import RequestMetadata
from modules.documents.services.document_state_service import DocumentStateService
from modules.jobs.services.job_dispatcher import (
    EXECUTE_WEBHOOK, SEAL_DOCUMENT, SEND_DOCUMENT_PENDING_EMAIL,
    SEND_RECIPIENT_SIGNED_EMAIL, SEND_SIGNING_REQUESTED_EMAIL,
)
from modules.notifications.repositories.notification_repository import NotificationRepository
from modules.notifications.services.notification_service import (
    DocumentPendingNotification, NotificationService, RecipientSignedNotification,
    SigningRequestedNotification,
)
from modules.webhooks.services.webhook_service import WebhookService
from logger import get_logger

logger = get_logger(__name__)


def _load(session: Session, payload: Dict[str, Any]):
    envelope = session.get(Envelope, payload["envelope_id"])
    recipient = session.get(Recipient, payload["recipient_id"])
    if not envelope or not recipient:
        raise NotFoundError("Document or recipient no longer exists", payload)
    return envelope, recipient


def _account_for(session: Session, email: str) -> Optional[User]:
    return session.query(User).filter(User.email == email).first()


def seal_document(session: Session, payload: Dict[str, Any]) -> None:
    DocumentStateService.seal_document(
        session,
        payload["envelope_id"],
        RequestMetadata(**(payload.get("request_metadata") or {})),
    )


def send_signing_requested(session: Session, payload: Dict[str, Any]) -> None:
    envelope, recipient = _load(session, payload)
    account = _account_for(session, recipient.email)
    if not account:
        logger.info("Recipient has no account, nothing to notify", recipient_id=recipient.id)
        return

    NotificationService(NotificationRepository(session)).notify(
        SigningRequestedNotification(
            user_id=account.id,
            envelope_id=envelope.id,
            document_title=envelope.title,
            sender_name=envelope.user.name,
        )
    )


def send_recipient_signed(session: Session, payload: Dict[str, Any]) -> None:
    envelope, recipient = _load(session, payload)
    NotificationService(NotificationRepository(session)).notify(
        RecipientSignedNotification(
            user_id=envelope.user_id,
            envelope_id=envelope.id,
            document_title=envelope.title,
            recipient_name=recipient.name or recipient.email,
        )
    )


def send_document_pending(session: Session, payload: Dict[str, Any]) -> None:
    envelope, recipient = _load(session, payload)
    account = _account_for(session, recipient.email)
    if not account:
        return

    NotificationService(NotificationRepository(session)).notify(
        DocumentPendingNotification(
            user_id=account.id,
            envelope_id=envelope.id,
            document_title=envelope.title,
        )
    )


def execute_webhook(session: Session, payload: Dict[str, Any]) -> None:
    WebhookService(session).execute(payload)


JOB_HANDLERS = {
    SEAL_DOCUMENT: seal_document,
    SEND_SIGNING_REQUESTED_EMAIL: send_signing_requested,
    SEND_RECIPIENT_SIGNED_EMAIL: send_recipient_signed,
    SEND_DOCUMENT_PENDING_EMAIL: send_document_pending,
    EXECUTE_WEBHOOK: execute_webhook,
}
