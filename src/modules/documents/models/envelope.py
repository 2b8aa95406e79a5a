from sqlalchemy import Boolean, Column, Integer, String, DateTime, Enum, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum as PyEnum
from database import Base

class DocumentStatus(PyEnum):
    DRAFT = "DRAFT"
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"

class DocumentSigningOrder(PyEnum):
    PARALLEL = "PARALLEL"
    SEQUENTIAL = "SEQUENTIAL"

class Envelope(Base):
    __tablename__ = 'envelopes'

    id = Column(Integer, primary_key=True)
    title = Column(String, nullable=False)
    file_path = Column(String, nullable=False)
    file_size = Column(Integer, nullable=False)
    status = Column(Enum(DocumentStatus), nullable=False, default=DocumentStatus.DRAFT)

    signing_order = Column(Enum(DocumentSigningOrder), nullable=False, default=DocumentSigningOrder.PARALLEL)
    allow_dictate_next_signer = Column(Boolean, nullable=False, default=False)
    recipient_signing_request_email = Column(Boolean, nullable=False, default=True)

    # {"field name": value} injected into the PDF form on send
    form_values = Column(JSON, nullable=True)
    # {"global_access_auth": [...], "global_action_auth": [...]}
    auth_options = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
    completed_at = Column(DateTime, nullable=True)
    seal_requested_at = Column(DateTime, nullable=True)

    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    team_id = Column(Integer, nullable=True)
    user = relationship("User", back_populates="envelopes")

    recipients = relationship(
        "Recipient",
        back_populates="envelope",
        order_by="Recipient.id",
        cascade="all, delete-orphan"
    )
    fields = relationship("Field", back_populates="envelope", cascade="all, delete-orphan")
    audit_logs = relationship(
        "DocumentAuditLog",
        back_populates="envelope",
        order_by="DocumentAuditLog.id",
        cascade="all, delete-orphan"
    )
