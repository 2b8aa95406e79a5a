from typing import List, Optional

from sqlalchemy.orm import Session

from modules.documents.exceptions import InvalidStateError, NotFoundError, ValidationError
from modules.documents.models import (
    AuditLogType, DocumentSigningOrder, DocumentStatus, Envelope, Recipient,
    RecipientRole, SendStatus, SigningStatus,
)
from modules.documents.repositories.envelope_repository import EnvelopeRepository, Transaction
from modules.documents.schemas import RequestMetadata, map_envelope_to_webhook_payload
from modules.documents.services.pdf_service import inject_form_values
from modules.documents.services.audit_log_service import create_document_audit_log_data
from modules.documents.services.auto_sign_service import AutoSignService
from modules.documents.services.document_completion_service import (
    all_recipients_done, request_seal_once,
)
from modules.documents.services.recipient_progression_service import RecipientProgressionService
from modules.jobs.services.job_dispatcher import SEND_SIGNING_REQUESTED_EMAIL, JobDispatcher
from modules.webhooks.models.webhook import WebhookTriggerEvent
from modules.webhooks.services.webhook_service import WebhookService
from logger import get_logger

logger = get_logger(__name__)


class DocumentSendService:
    """
    Moves an envelope out of DRAFT and notifies the first recipients.
    """

    def __init__(
        self,
        session: Session,
        dispatcher: Optional[JobDispatcher] = None,
        webhooks: Optional[WebhookService] = None,
    ):
        self.session = session
        self.repository = EnvelopeRepository(session)
        self.dispatcher = dispatcher or JobDispatcher(session)
        self.webhooks = webhooks or WebhookService(session, self.dispatcher)

    def send_document(
        self,
        envelope_id: int,
        user_id: int,
        team_id: Optional[int] = None,
        request_metadata: Optional[RequestMetadata] = None,
        send_email: Optional[bool] = None,
    ) -> Envelope:
        request_metadata = request_metadata or RequestMetadata()

        envelope = self.repository.find_envelope(envelope_id, user_id=user_id, team_id=team_id)
        if not envelope:
            raise NotFoundError("Documento no encontrado", {"envelope_id": envelope_id})

        recipients = self.repository.find_recipients(envelope.id)
        if not recipients:
            raise ValidationError("El documento no tiene destinatarios", {"envelope_id": envelope.id})

        if envelope.status == DocumentStatus.COMPLETED:
            raise InvalidStateError("No se puede enviar un documento completado", {"envelope_id": envelope.id})

        if envelope.form_values:
            self._inject_form_values(envelope)

        was_draft = envelope.status == DocumentStatus.DRAFT

        def mark_sent(tx: Transaction):
            if was_draft:
                tx.create_audit_log_entry(create_document_audit_log_data(
                    AuditLogType.DOCUMENT_SENT,
                    envelope.id,
                    user_id=user_id,
                    name=envelope.user.name,
                    email=envelope.user.email,
                    request_metadata=request_metadata,
                ))
            if envelope.status != DocumentStatus.PENDING:
                tx.update_envelope(envelope.id, {"status": DocumentStatus.PENDING})

        if all_recipients_done(recipients):
            self.repository.run_transaction(mark_sent)
            request_seal_once(self.repository, self.dispatcher, envelope, request_metadata)
            logger.info("Document has no pending action, sealing directly", envelope_id=envelope.id)
            return self.repository.find_envelope(envelope.id)

        def body(tx: Transaction) -> List[Recipient]:
            AutoSignService.resolve_auto_sign(tx, envelope.id, request_metadata)
            mark_sent(tx)

            to_notify = [
                r for r in self._recipients_to_notify(envelope, tx.find_recipients(envelope.id))
                if r.send_status != SendStatus.SENT
            ]
            for recipient in to_notify:
                tx.update_recipient(recipient.id, {"send_status": SendStatus.SENT})
            return to_notify

        notified = self.repository.run_transaction(body)
        logger.info(
            "Document sent",
            envelope_id=envelope.id,
            notified=[r.id for r in notified],
        )

        email_enabled = send_email if send_email is not None else envelope.recipient_signing_request_email
        if email_enabled:
            for recipient in notified:
                self.dispatcher.enqueue(SEND_SIGNING_REQUESTED_EMAIL, {
                    "user_id": user_id,
                    "envelope_id": envelope.id,
                    "recipient_id": recipient.id,
                    "request_metadata": request_metadata.model_dump(),
                })

        if all_recipients_done(self.repository.find_recipients(envelope.id)):
            request_seal_once(self.repository, self.dispatcher, envelope, request_metadata)

        updated = self.repository.find_envelope(envelope.id)
        self.webhooks.emit(
            WebhookTriggerEvent.DOCUMENT_SENT,
            map_envelope_to_webhook_payload(updated),
            user_id=user_id,
            team_id=team_id,
        )
        return updated

    @staticmethod
    def _recipients_to_notify(envelope: Envelope, recipients: List[Recipient]) -> List[Recipient]:
        if envelope.signing_order == DocumentSigningOrder.SEQUENTIAL:
            active = RecipientProgressionService.active_recipient(recipients)
            return [active] if active else []

        return [
            r for r in recipients
            if r.role != RecipientRole.CC and r.signing_status == SigningStatus.NOT_SIGNED
        ]

    def _inject_form_values(self, envelope: Envelope) -> None:
        with open(envelope.file_path, "rb") as f:
            data = f.read()

        prefilled = inject_form_values(data, envelope.form_values)
        if prefilled is data:
            return

        with open(envelope.file_path, "wb") as f:
            f.write(prefilled)
        envelope.file_size = len(prefilled)
        self.session.commit()
        logger.info("Form values injected", envelope_id=envelope.id, fields=len(envelope.form_values))
