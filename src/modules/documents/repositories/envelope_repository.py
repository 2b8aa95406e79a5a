from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, TypeVar

from sqlalchemy import update
from sqlalchemy.orm import Session

from modules.documents.models import (
    DocumentAuditLog, Envelope, Field, Recipient, Signature, SigningStatus,
)
from logger import get_logger

logger = get_logger(__name__)

T = TypeVar("T")


@dataclass
class TransactionOperation:
    name: str
    payload: Dict[str, Any]


class EnvelopeRepository:
    """
    Data access for envelopes, recipients, fields, signatures and audit logs.

    Writes only flush; nothing is committed outside run_transaction.
    """

    def __init__(self, db_session: Session):
        self.db = db_session

    # ==== Reads ====

    def find_envelope(
        self,
        envelope_id: int,
        user_id: Optional[int] = None,
        team_id: Optional[int] = None,
    ) -> Optional[Envelope]:
        query = self.db.query(Envelope).filter(Envelope.id == envelope_id)
        if team_id is not None:
            query = query.filter(Envelope.team_id == team_id)
        elif user_id is not None:
            query = query.filter(Envelope.user_id == user_id)
        return query.first()

    def find_envelope_by_recipient_token(self, envelope_id: int, token: str) -> Optional[Envelope]:
        return (
            self.db.query(Envelope)
            .join(Recipient, Recipient.envelope_id == Envelope.id)
            .filter(Envelope.id == envelope_id, Recipient.token == token)
            .first()
        )

    def find_recipient(self, recipient_id: int) -> Optional[Recipient]:
        return self.db.get(Recipient, recipient_id)

    def find_recipient_by_token(self, token: str) -> Optional[Recipient]:
        return self.db.query(Recipient).filter(Recipient.token == token).first()

    def find_recipients(self, envelope_id: int) -> List[Recipient]:
        """Recipients ordered by signing order (nulls last) then id"""
        return (
            self.db.query(Recipient)
            .filter(Recipient.envelope_id == envelope_id)
            .order_by(Recipient.signing_order.is_(None), Recipient.signing_order, Recipient.id)
            .all()
        )

    def find_fields(
        self,
        envelope_id: int,
        recipient_id: Optional[int] = None,
        autosign: Optional[bool] = None,
        inserted: Optional[bool] = None,
    ) -> List[Field]:
        query = self.db.query(Field).filter(Field.envelope_id == envelope_id)
        if recipient_id is not None:
            query = query.filter(Field.recipient_id == recipient_id)
        if autosign is not None:
            query = query.filter(Field.autosign == autosign)
        if inserted is not None:
            query = query.filter(Field.inserted == inserted)
        return query.order_by(Field.id).all()

    def find_field(self, field_id: int) -> Optional[Field]:
        return self.db.get(Field, field_id)

    def find_audit_logs(self, envelope_id: int) -> List[DocumentAuditLog]:
        return (
            self.db.query(DocumentAuditLog)
            .filter(DocumentAuditLog.envelope_id == envelope_id)
            .order_by(DocumentAuditLog.created_at, DocumentAuditLog.id)
            .all()
        )

    # ==== Writes ====

    def update_envelope(self, envelope_id: int, patch: Dict[str, Any]) -> Envelope:
        return self._patch(Envelope, envelope_id, patch)

    def update_recipient(self, recipient_id: int, patch: Dict[str, Any]) -> Recipient:
        return self._patch(Recipient, recipient_id, patch)

    def update_field(self, field_id: int, patch: Dict[str, Any]) -> Field:
        return self._patch(Field, field_id, patch)

    def create_signature(self, data: Dict[str, Any]) -> Signature:
        signature = Signature(**data)
        self.db.add(signature)
        self.db.flush()
        return signature

    def create_audit_log_entry(self, data: Dict[str, Any]) -> DocumentAuditLog:
        entry = DocumentAuditLog(**data)
        self.db.add(entry)
        self.db.flush()
        return entry

    def mark_recipient_signed(self, recipient_id: int, signed_at: datetime) -> bool:
        """
        Flip a NOT_SIGNED recipient to SIGNED. Does not commit.

        Returns False when the recipient was already moved out of NOT_SIGNED,
        e.g. by a concurrent completion that committed first.
        """
        result = self.db.execute(
            update(Recipient)
            .where(Recipient.id == recipient_id, Recipient.signing_status == SigningStatus.NOT_SIGNED)
            .values(signing_status=SigningStatus.SIGNED, signed_at=signed_at)
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            return False
        recipient = self.db.get(Recipient, recipient_id)
        if recipient is not None:
            self.db.refresh(recipient)
        return True

    def claim_seal_request(self, envelope_id: int) -> bool:
        """
        Mark the envelope as having requested sealing.

        Returns True only for the single caller whose conditional update
        actually changed the row.
        """
        result = self.db.execute(
            update(Envelope)
            .where(Envelope.id == envelope_id, Envelope.seal_requested_at.is_(None))
            .values(seal_requested_at=datetime.utcnow())
            .execution_options(synchronize_session=False)
        )
        self.db.commit()
        claimed = result.rowcount == 1
        envelope = self.db.get(Envelope, envelope_id)
        if envelope is not None:
            self.db.refresh(envelope)
        return claimed

    def _patch(self, model, entity_id: int, patch: Dict[str, Any]):
        entity = self.db.get(model, entity_id)
        if entity is None:
            raise LookupError(f"{model.__name__} {entity_id} does not exist")
        for field, value in patch.items():
            setattr(entity, field, value)
        self.db.flush()
        return entity

    # ==== Transactions ====

    def run_transaction(self, body: Callable[["Transaction"], T]) -> T:
        """
        Run body inside one all-or-nothing transaction.

        Any exception rolls back every write made through the transaction and
        is re-raised unchanged.
        """
        tx = Transaction(self)
        try:
            result = body(tx)
            self.db.commit()
        except Exception:
            self.db.rollback()
            logger.warning(
                "Transaction rolled back",
                operations=[op.name for op in tx.operations],
            )
            raise
        logger.debug("Transaction committed", operations=[op.name for op in tx.operations])
        return result


class Transaction:
    """
    Write handle given to run_transaction bodies.

    Every write is recorded as a tagged operation; reads go straight to the
    repository and see the writes already made in this transaction.
    """

    def __init__(self, repository: EnvelopeRepository):
        self.repository = repository
        self.operations: List[TransactionOperation] = []

    def __getattr__(self, name):
        # Reads (find_*) are delegated
        if name.startswith("find_"):
            return getattr(self.repository, name)
        raise AttributeError(name)

    def _record(self, name: str, payload: Dict[str, Any]) -> None:
        self.operations.append(TransactionOperation(name, payload))

    def update_envelope(self, envelope_id: int, patch: Dict[str, Any]) -> Envelope:
        self._record("update_envelope", {"id": envelope_id, **patch})
        return self.repository.update_envelope(envelope_id, patch)

    def update_recipient(self, recipient_id: int, patch: Dict[str, Any]) -> Recipient:
        self._record("update_recipient", {"id": recipient_id, **patch})
        return self.repository.update_recipient(recipient_id, patch)

    def mark_recipient_signed(self, recipient_id: int, signed_at: datetime) -> bool:
        self._record("mark_recipient_signed", {"id": recipient_id, "signed_at": signed_at})
        return self.repository.mark_recipient_signed(recipient_id, signed_at)

    def update_field(self, field_id: int, patch: Dict[str, Any]) -> Field:
        self._record("update_field", {"id": field_id, **patch})
        return self.repository.update_field(field_id, patch)

    def create_signature(self, data: Dict[str, Any]) -> Signature:
        self._record("create_signature", data)
        return self.repository.create_signature(data)

    def create_audit_log_entry(self, data: Dict[str, Any]) -> DocumentAuditLog:
        self._record("create_audit_log_entry", data)
        return self.repository.create_audit_log_entry(data)
