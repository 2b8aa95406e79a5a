from sqlalchemy import Column, Integer, String, DateTime, Enum, ForeignKey, JSON
from sqlalchemy.orm import relationship
from datetime import datetime
from enum import Enum as PyEnum
from database import Base

class RecipientRole(PyEnum):
    SIGNER = "SIGNER"
    APPROVER = "APPROVER"
    VIEWER = "VIEWER"
    ASSISTANT = "ASSISTANT"
    CC = "CC"

class SigningStatus(PyEnum):
    NOT_SIGNED = "NOT_SIGNED"
    SIGNED = "SIGNED"
    REJECTED = "REJECTED"

class SendStatus(PyEnum):
    NOT_SENT = "NOT_SENT"
    SENT = "SENT"

class Recipient(Base):
    __tablename__ = 'recipients'

    id = Column(Integer, primary_key=True)
    envelope_id = Column(Integer, ForeignKey('envelopes.id'), nullable=False, index=True)
    email = Column(String, nullable=False)
    name = Column(String, nullable=False, default="")
    token = Column(String, unique=True, nullable=False, index=True)

    role = Column(Enum(RecipientRole), nullable=False, default=RecipientRole.SIGNER)
    signing_order = Column(Integer, nullable=True)
    signing_status = Column(Enum(SigningStatus), nullable=False, default=SigningStatus.NOT_SIGNED)
    send_status = Column(Enum(SendStatus), nullable=False, default=SendStatus.NOT_SENT)
    signed_at = Column(DateTime, nullable=True)

    # {"access_auth": [...], "action_auth": [...]}
    auth_options = Column(JSON, nullable=True)

    created_at = Column(DateTime, default=datetime.utcnow)

    envelope = relationship("Envelope", back_populates="recipients")
    fields = relationship("Field", back_populates="recipient")
