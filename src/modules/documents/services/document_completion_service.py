from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session

from modules.auth.services.two_factor_service import TwoFactorService
from modules.documents.exceptions import (
    AuthenticationError, InvalidStateError, NotFoundError, ValidationError,
)
from modules.documents.models import (
    AuditLogType, DocumentSigningOrder, DocumentStatus, Envelope, Recipient,
    RecipientRole, SigningStatus,
)
from modules.documents.repositories.envelope_repository import EnvelopeRepository, Transaction
from modules.documents.schemas import (
    AccessAuthOptions, DocumentAuth, NextSigner, RequestMetadata,
    map_envelope_to_webhook_payload,
)
from modules.documents.services.audit_log_service import (
    create_document_audit_log_data, recipient_audit_data,
)
from modules.documents.services.auto_sign_service import AutoSignService
from modules.documents.services.document_auth import extract_document_auth_methods
from modules.documents.services.field_completion import has_unsigned_required_field
from modules.documents.services.recipient_progression_service import RecipientProgressionService
from modules.jobs.services.job_dispatcher import (
    SEAL_DOCUMENT, SEND_DOCUMENT_PENDING_EMAIL, SEND_RECIPIENT_SIGNED_EMAIL,
    SEND_SIGNING_REQUESTED_EMAIL, JobDispatcher,
)
from modules.webhooks.models.webhook import WebhookTriggerEvent
from modules.webhooks.services.webhook_service import WebhookService
from logger import get_logger

logger = get_logger(__name__)

SecondFactorValidator = Callable[[Recipient, Optional[AccessAuthOptions]], bool]


def all_recipients_done(recipients) -> bool:
    """Every recipient is CC or has signed."""
    return all(
        r.role == RecipientRole.CC or r.signing_status == SigningStatus.SIGNED
        for r in recipients
    )


def request_seal_once(
    repository: EnvelopeRepository,
    dispatcher: JobDispatcher,
    envelope: Envelope,
    request_metadata: Optional[RequestMetadata],
) -> bool:
    """Enqueue the seal job unless it was already requested for this envelope."""
    if not repository.claim_seal_request(envelope.id):
        logger.info("Seal already requested", envelope_id=envelope.id)
        return False

    dispatcher.enqueue(SEAL_DOCUMENT, {
        "envelope_id": envelope.id,
        "request_metadata": request_metadata.model_dump() if request_metadata else None,
    })
    return True


class DocumentCompletionService:
    """
    Handles a recipient finishing their part of an envelope.
    """

    def __init__(
        self,
        session: Session,
        dispatcher: Optional[JobDispatcher] = None,
        webhooks: Optional[WebhookService] = None,
        second_factor_validator: Optional[SecondFactorValidator] = None,
    ):
        self.session = session
        self.repository = EnvelopeRepository(session)
        self.dispatcher = dispatcher or JobDispatcher(session)
        self.webhooks = webhooks or WebhookService(session, self.dispatcher)
        self.validate_second_factor = (
            second_factor_validator or TwoFactorService(session).validate_second_factor
        )

    def complete_recipient_action(
        self,
        envelope_id: int,
        recipient_token: str,
        request_metadata: Optional[RequestMetadata] = None,
        next_signer: Optional[NextSigner] = None,
        access_auth_options: Optional[AccessAuthOptions] = None,
    ) -> Envelope:
        """
        Mark the recipient as done and move the envelope forward.

        Raises:
            NotFoundError: no envelope with a recipient holding the token
            InvalidStateError: envelope not PENDING, recipient already
                SIGNED/REJECTED, or not the recipient's turn
            ValidationError: the recipient still has unsigned required fields
            AuthenticationError: second factor missing or invalid
        """
        request_metadata = request_metadata or RequestMetadata()

        envelope = self.repository.find_envelope_by_recipient_token(envelope_id, recipient_token)
        if envelope is None:
            raise NotFoundError(
                "Documento no encontrado para este enlace de firma",
                {"envelope_id": envelope_id},
            )
        recipient = self.repository.find_recipient_by_token(recipient_token)

        self._check_preconditions(envelope, recipient, recipient_token)
        self._check_access_auth(envelope, recipient, access_auth_options)

        action_auth = [
            auth.value for auth in
            extract_document_auth_methods(envelope, recipient).derived_recipient_action_auth
        ]

        def body(tx: Transaction):
            # Conditional on NOT_SIGNED: a concurrent completion that committed first wins
            if not tx.mark_recipient_signed(recipient.id, datetime.utcnow()):
                raise InvalidStateError(
                    "El destinatario ya completó el documento",
                    {"recipient_id": recipient.id},
                )
            tx.create_audit_log_entry(create_document_audit_log_data(
                AuditLogType.DOCUMENT_RECIPIENT_COMPLETED,
                envelope.id,
                data=recipient_audit_data(recipient, action_auth=action_auth),
                name=recipient.name,
                email=recipient.email,
                request_metadata=request_metadata,
            ))

            non_autosign_fields = [f for f in tx.find_fields(envelope.id) if not f.autosign]
            if not has_unsigned_required_field(non_autosign_fields):
                AutoSignService.resolve_auto_sign(tx, envelope.id, request_metadata)

            return RecipientProgressionService.advance(
                tx, envelope, recipient, next_signer, request_metadata
            )

        progression = self.repository.run_transaction(body)
        logger.info(
            "Recipient completed document",
            envelope_id=envelope.id,
            recipient_id=recipient.id,
            pending=len(progression.pending_recipients),
        )

        # Side effects only after the commit above
        self.dispatcher.enqueue(SEND_RECIPIENT_SIGNED_EMAIL, {
            "envelope_id": envelope.id,
            "recipient_id": recipient.id,
        })

        if progression.pending_recipients:
            self.dispatcher.enqueue(SEND_DOCUMENT_PENDING_EMAIL, {
                "envelope_id": envelope.id,
                "recipient_id": recipient.id,
            })

        for next_recipient in progression.recipients_to_notify:
            self.dispatcher.enqueue(SEND_SIGNING_REQUESTED_EMAIL, {
                "user_id": envelope.user_id,
                "envelope_id": envelope.id,
                "recipient_id": next_recipient.id,
                "request_metadata": request_metadata.model_dump(),
            })

        if all_recipients_done(self.repository.find_recipients(envelope.id)):
            request_seal_once(self.repository, self.dispatcher, envelope, request_metadata)

        updated = self.repository.find_envelope(envelope.id)
        self.webhooks.emit(
            WebhookTriggerEvent.DOCUMENT_SIGNED,
            map_envelope_to_webhook_payload(updated),
            user_id=updated.user_id,
            team_id=updated.team_id,
        )
        return updated

    def _check_preconditions(self, envelope: Envelope, recipient: Recipient, recipient_token: str) -> None:
        if envelope.status != DocumentStatus.PENDING:
            raise InvalidStateError(
                "El documento no está pendiente de firma",
                {"envelope_id": envelope.id, "status": envelope.status.value},
            )

        if recipient.signing_status == SigningStatus.SIGNED:
            raise InvalidStateError(
                "El destinatario ya completó el documento",
                {"recipient_id": recipient.id},
            )

        if recipient.signing_status == SigningStatus.REJECTED:
            raise InvalidStateError(
                "El destinatario rechazó el documento",
                {"recipient_id": recipient.id},
            )

        if envelope.signing_order == DocumentSigningOrder.SEQUENTIAL:
            if not RecipientProgressionService.is_recipients_turn(self.repository, recipient_token):
                raise InvalidStateError(
                    "Aún no es el turno de este destinatario",
                    {"recipient_id": recipient.id},
                )

        # Pending autosign fields are filled inside the completion transaction
        own_fields = [
            f for f in self.repository.find_fields(envelope.id, recipient_id=recipient.id)
            if not (f.autosign and not f.inserted)
        ]
        if has_unsigned_required_field(own_fields):
            raise ValidationError(
                "El destinatario tiene campos obligatorios sin completar",
                {"recipient_id": recipient.id},
            )

    def _check_access_auth(
        self,
        envelope: Envelope,
        recipient: Recipient,
        access_auth_options: Optional[AccessAuthOptions],
    ) -> None:
        auth_methods = extract_document_auth_methods(envelope, recipient)
        if DocumentAuth.TWO_FACTOR_AUTH not in auth_methods.derived_recipient_access_auth:
            return

        if access_auth_options is None:
            raise AuthenticationError("Se requiere autenticación de acceso", {"recipient_id": recipient.id})

        audit_data = {
            "recipient_id": recipient.id,
            "recipient_name": recipient.name,
            "recipient_email": recipient.email,
        }

        if not self.validate_second_factor(recipient, access_auth_options):
            self.repository.run_transaction(lambda tx: tx.create_audit_log_entry(
                create_document_audit_log_data(
                    AuditLogType.DOCUMENT_ACCESS_AUTH_2FA_FAILED,
                    envelope.id,
                    data=audit_data,
                )
            ))
            logger.warning("2FA validation failed", envelope_id=envelope.id, recipient_id=recipient.id)
            raise AuthenticationError("Código 2FA inválido", {"recipient_id": recipient.id})

        self.repository.run_transaction(lambda tx: tx.create_audit_log_entry(
            create_document_audit_log_data(
                AuditLogType.DOCUMENT_ACCESS_AUTH_2FA_VALIDATED,
                envelope.id,
                data=audit_data,
            )
        ))
