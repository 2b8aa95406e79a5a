from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Set

from modules.documents.models import (
    AuditLogType, SIGNATURE_FIELD_TYPES, SigningStatus,
)
from modules.documents.repositories.envelope_repository import Transaction
from modules.documents.schemas import RequestMetadata
from modules.documents.services.audit_log_service import (
    create_document_audit_log_data, recipient_audit_data,
)
from modules.documents.services.field_completion import has_unsigned_required_field
from logger import get_logger

logger = get_logger(__name__)


@dataclass
class AutoSignResult:
    touched_recipients: Set[int] = field(default_factory=set)
    signed_recipients: Set[int] = field(default_factory=set)


class AutoSignService:

    @staticmethod
    def resolve_auto_sign(
        tx: Transaction,
        envelope_id: int,
        request_metadata: Optional[RequestMetadata] = None,
    ) -> AutoSignResult:
        """
        Fill every pending autosign field of the envelope and complete the
        recipients that have nothing left to sign.

        Only fields with inserted=False are picked up and recipients already
        SIGNED are skipped, so running it twice changes nothing. Audit entries
        are written without IP address or action auth: no human acted.
        """
        system_metadata = (request_metadata or RequestMetadata()).without_ip()
        result = AutoSignResult()

        pending_fields = tx.find_fields(envelope_id, autosign=True, inserted=False)

        for pending_field in pending_fields:
            recipient = pending_field.recipient
            result.touched_recipients.add(recipient.id)
            value = recipient.name or recipient.email

            if pending_field.type in SIGNATURE_FIELD_TYPES:
                tx.create_signature({
                    "field_id": pending_field.id,
                    "recipient_id": recipient.id,
                    "typed_signature": value,
                })

            tx.update_field(pending_field.id, {"inserted": True, "custom_text": value})

            tx.create_audit_log_entry(create_document_audit_log_data(
                AuditLogType.DOCUMENT_FIELD_INSERTED,
                envelope_id,
                data=recipient_audit_data(
                    recipient,
                    field_id=pending_field.secondary_id,
                    field={"type": pending_field.type.value, "data": value},
                ),
                request_metadata=system_metadata,
            ))

        for recipient_id in sorted(result.touched_recipients):
            recipient = tx.find_recipient(recipient_id)
            # SIGNED and REJECTED are terminal
            if recipient is None or recipient.signing_status != SigningStatus.NOT_SIGNED:
                continue

            recipient_fields = tx.find_fields(envelope_id, recipient_id=recipient_id)
            if has_unsigned_required_field(recipient_fields):
                continue

            tx.update_recipient(recipient_id, {
                "signing_status": SigningStatus.SIGNED,
                "signed_at": datetime.utcnow(),
            })
            tx.create_audit_log_entry(create_document_audit_log_data(
                AuditLogType.DOCUMENT_RECIPIENT_COMPLETED,
                envelope_id,
                data=recipient_audit_data(recipient, action_auth=[]),
                name=recipient.name,
                email=recipient.email,
                request_metadata=system_metadata,
            ))
            result.signed_recipients.add(recipient_id)

        if pending_fields:
            logger.info(
                "Auto-signed fields",
                envelope_id=envelope_id,
                fields=len(pending_fields),
                signed_recipients=sorted(result.signed_recipients),
            )
        return result
