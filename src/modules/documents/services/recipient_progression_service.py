from dataclasses import dataclass, field
from typing import Iterable, List, Optional

from modules.documents.models import (
    AuditLogType, DocumentSigningOrder, Envelope, Recipient,
    RecipientRole, SendStatus, SigningStatus,
)
from modules.documents.repositories.envelope_repository import EnvelopeRepository, Transaction
from modules.documents.schemas import NextSigner, RequestMetadata
from modules.documents.services.audit_log_service import (
    create_document_audit_log_data, recipient_audit_data,
)
from logger import get_logger

logger = get_logger(__name__)


def signing_sort_key(recipient: Recipient):
    """(signing order ascending with nulls last, id ascending)"""
    return (
        recipient.signing_order is None,
        recipient.signing_order if recipient.signing_order is not None else 0,
        recipient.id,
    )


@dataclass
class ProgressionResult:
    next_recipient: Optional[Recipient] = None
    recipients_to_notify: List[Recipient] = field(default_factory=list)
    pending_recipients: List[Recipient] = field(default_factory=list)


class RecipientProgressionService:

    @staticmethod
    def active_recipient(recipients: Iterable[Recipient]) -> Optional[Recipient]:
        """
        The recipient whose turn it is under sequential signing.
        """
        candidates = [
            r for r in recipients
            if r.signing_status == SigningStatus.NOT_SIGNED and r.role != RecipientRole.CC
        ]
        if not candidates:
            return None
        return min(candidates, key=signing_sort_key)

    @staticmethod
    def is_recipients_turn(repository: EnvelopeRepository, recipient_token: str) -> bool:
        recipient = repository.find_recipient_by_token(recipient_token)
        if recipient is None:
            return False

        active = RecipientProgressionService.active_recipient(
            repository.find_recipients(recipient.envelope_id)
        )
        return active is not None and active.id == recipient.id

    @staticmethod
    def pending_recipients(recipients: Iterable[Recipient]) -> List[Recipient]:
        return sorted(
            (
                r for r in recipients
                if r.signing_status != SigningStatus.SIGNED and r.role != RecipientRole.CC
            ),
            key=signing_sort_key,
        )

    @staticmethod
    def advance(
        tx: Transaction,
        envelope: Envelope,
        just_completed: Recipient,
        next_signer: Optional[NextSigner] = None,
        request_metadata: Optional[RequestMetadata] = None,
    ) -> ProgressionResult:
        """
        Work out who has to be notified after a recipient completed.

        SEQUENTIAL: only the first pending recipient, optionally reassigned to
        next_signer when the envelope allows dictating the next signer.
        PARALLEL: every pending recipient not sent yet.
        Recipients that were already SENT are never notified twice.
        """
        pending = RecipientProgressionService.pending_recipients(
            tx.find_recipients(envelope.id)
        )
        result = ProgressionResult(pending_recipients=pending)

        if not pending:
            return result

        if envelope.signing_order == DocumentSigningOrder.SEQUENTIAL:
            next_recipient = pending[0]
            result.next_recipient = next_recipient
            already_sent = next_recipient.send_status == SendStatus.SENT
            patch = {}

            if next_signer and envelope.allow_dictate_next_signer:
                reassigned = (
                    next_signer.name != next_recipient.name
                    or next_signer.email != next_recipient.email
                )
                tx.create_audit_log_entry(create_document_audit_log_data(
                    AuditLogType.RECIPIENT_UPDATED,
                    envelope.id,
                    data=recipient_audit_data(
                        next_recipient,
                        changes=[
                            {"type": "NAME", "from": next_recipient.name, "to": next_signer.name},
                            {"type": "EMAIL", "from": next_recipient.email, "to": next_signer.email},
                        ],
                    ),
                    name=just_completed.name,
                    email=just_completed.email,
                    request_metadata=request_metadata,
                ))
                patch.update({"name": next_signer.name, "email": next_signer.email})
                # A different person has to hear about it even if the slot was notified
                already_sent = already_sent and not reassigned
            elif next_signer:
                logger.warning(
                    "Next signer override ignored, envelope does not allow it",
                    envelope_id=envelope.id,
                    recipient_id=next_recipient.id,
                )

            if not already_sent:
                patch["send_status"] = SendStatus.SENT
                result.recipients_to_notify.append(next_recipient)

            if patch:
                tx.update_recipient(next_recipient.id, patch)
            return result

        for recipient in pending:
            if recipient.send_status == SendStatus.SENT:
                continue
            tx.update_recipient(recipient.id, {"send_status": SendStatus.SENT})
            result.recipients_to_notify.append(recipient)
        return result
