from datetime import datetime
from typing import Optional

from sqlalchemy.orm import Session

from modules.documents.exceptions import InvalidStateError, NotFoundError
from modules.documents.models import AuditLogType, DocumentStatus, Envelope
from modules.documents.repositories.envelope_repository import EnvelopeRepository
from modules.documents.schemas import RequestMetadata, map_envelope_to_webhook_payload
from modules.documents.services.audit_log_service import create_document_audit_log_data
from modules.documents.services.document_completion_service import all_recipients_done
from modules.notifications.repositories.notification_repository import NotificationRepository
from modules.notifications.services.notification_service import (
    DocumentCompletedNotification, NotificationService,
)
from modules.webhooks.models.webhook import WebhookTriggerEvent
from modules.webhooks.services.webhook_service import WebhookService
from logger import get_logger

logger = get_logger(__name__)

# Status only ever moves forward
ALLOWED_TRANSITIONS = {
    DocumentStatus.DRAFT: [DocumentStatus.PENDING],
    DocumentStatus.PENDING: [DocumentStatus.COMPLETED],
    DocumentStatus.COMPLETED: [],
}


class DocumentStateService:

    @staticmethod
    def can_transition(envelope: Envelope, new_status: DocumentStatus) -> bool:
        """
        Defines the allowed status transitions of an envelope
        """
        return new_status in ALLOWED_TRANSITIONS[envelope.status]

    @staticmethod
    def get_allowed_transitions(envelope: Envelope) -> list[DocumentStatus]:
        """
        Returns list of states the envelope can transition to
        """
        return list(ALLOWED_TRANSITIONS[envelope.status])

    @staticmethod
    def seal_document(
        session: Session,
        envelope_id: int,
        request_metadata: Optional[RequestMetadata] = None,
    ) -> Envelope:
        """
        Completes the envelope once every recipient is done.

        Sealing an already COMPLETED envelope does nothing, so a retried seal
        job is harmless.
        """
        repository = EnvelopeRepository(session)
        envelope = repository.find_envelope(envelope_id)
        if not envelope:
            raise NotFoundError("Documento no encontrado", {"envelope_id": envelope_id})

        if envelope.status == DocumentStatus.COMPLETED:
            logger.info("Document already sealed", envelope_id=envelope_id)
            return envelope

        if not DocumentStateService.can_transition(envelope, DocumentStatus.COMPLETED):
            raise InvalidStateError(
                f"El documento no puede pasar de {envelope.status.value} a {DocumentStatus.COMPLETED.value}",
                {"envelope_id": envelope_id, "status": envelope.status.value},
            )

        if not all_recipients_done(repository.find_recipients(envelope_id)):
            raise InvalidStateError("No todos los destinatarios han firmado", {"envelope_id": envelope_id})

        system_metadata = (request_metadata or RequestMetadata()).without_ip()

        def body(tx):
            tx.update_envelope(envelope_id, {
                "status": DocumentStatus.COMPLETED,
                "completed_at": datetime.utcnow(),
            })
            tx.create_audit_log_entry(create_document_audit_log_data(
                AuditLogType.DOCUMENT_COMPLETED,
                envelope_id,
                data={"transaction_id": f"seal-{envelope_id}"},
                request_metadata=system_metadata,
            ))

        repository.run_transaction(body)

        NotificationService(NotificationRepository(session)).notify(
            DocumentCompletedNotification(
                user_id=envelope.user_id,
                envelope_id=envelope.id,
                document_title=envelope.title,
            )
        )

        WebhookService(session).emit(
            WebhookTriggerEvent.DOCUMENT_COMPLETED,
            map_envelope_to_webhook_payload(envelope),
            user_id=envelope.user_id,
            team_id=envelope.team_id,
        )

        logger.info("Document sealed", envelope_id=envelope_id)
        return envelope
