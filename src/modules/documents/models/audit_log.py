from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum as PyEnum
from database import Base

class AuditLogType(PyEnum):
    DOCUMENT_SENT = "DOCUMENT_SENT"
    DOCUMENT_FIELD_INSERTED = "DOCUMENT_FIELD_INSERTED"
    DOCUMENT_RECIPIENT_COMPLETED = "DOCUMENT_RECIPIENT_COMPLETED"
    DOCUMENT_ACCESS_AUTH_2FA_FAILED = "DOCUMENT_ACCESS_AUTH_2FA_FAILED"
    DOCUMENT_ACCESS_AUTH_2FA_VALIDATED = "DOCUMENT_ACCESS_AUTH_2FA_VALIDATED"
    DOCUMENT_COMPLETED = "DOCUMENT_COMPLETED"
    RECIPIENT_UPDATED = "RECIPIENT_UPDATED"

class DocumentAuditLog(Base):
    """Append-only history of an envelope; rows are never updated or deleted"""
    __tablename__ = 'document_audit_logs'

    id = Column(Integer, primary_key=True)
    envelope_id = Column(Integer, ForeignKey('envelopes.id'), nullable=False, index=True)
    type = Column(String(64), nullable=False)
    data = Column(JSON, nullable=False, default=dict)

    # Who performed the action
    name = Column(String, nullable=True)
    email = Column(String, nullable=True)
    user_id = Column(Integer, nullable=True)

    # Request metadata, empty for system-initiated actions
    ip_address = Column(String(64), nullable=True)
    user_agent = Column(String(512), nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    envelope = relationship("Envelope", back_populates="audit_logs")
