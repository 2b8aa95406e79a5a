import uuid

from sqlalchemy import Boolean, Column, Integer, String, Float, Enum, ForeignKey, JSON
from sqlalchemy.orm import relationship
from enum import Enum as PyEnum
from database import Base

class FieldType(PyEnum):
    SIGNATURE = "SIGNATURE"
    FREE_SIGNATURE = "FREE_SIGNATURE"
    INITIALS = "INITIALS"
    NAME = "NAME"
    EMAIL = "EMAIL"
    DATE = "DATE"
    TEXT = "TEXT"
    NUMBER = "NUMBER"
    RADIO = "RADIO"
    CHECKBOX = "CHECKBOX"
    DROPDOWN = "DROPDOWN"

SIGNATURE_FIELD_TYPES = (FieldType.SIGNATURE, FieldType.FREE_SIGNATURE)

class Field(Base):
    __tablename__ = 'fields'

    id = Column(Integer, primary_key=True)
    secondary_id = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    envelope_id = Column(Integer, ForeignKey('envelopes.id'), nullable=False, index=True)
    recipient_id = Column(Integer, ForeignKey('recipients.id'), nullable=False, index=True)

    type = Column(Enum(FieldType), nullable=False)
    page = Column(Integer, nullable=False, default=1)
    position_x = Column(Float, nullable=False, default=0)
    position_y = Column(Float, nullable=False, default=0)
    width = Column(Float, nullable=False, default=0)
    height = Column(Float, nullable=False, default=0)

    custom_text = Column(String, nullable=False, default="")
    inserted = Column(Boolean, nullable=False, default=False)
    autosign = Column(Boolean, nullable=False, default=False)
    field_meta = Column(JSON, nullable=True)

    envelope = relationship("Envelope", back_populates="fields")
    recipient = relationship("Recipient", back_populates="fields")
    signature = relationship("Signature", back_populates="field", uselist=False, cascade="all, delete-orphan")
