# src/modules/documents/models/signature.py

from sqlalchemy import Column, Integer, ForeignKey, DateTime, String, Text
from sqlalchemy.orm import relationship
from datetime import datetime
from database import Base

class Signature(Base):
    __tablename__ = "signatures"

    id = Column(Integer, primary_key=True)
    field_id     = Column(Integer, ForeignKey("fields.id"),     nullable=False, unique=True)
    recipient_id = Column(Integer, ForeignKey("recipients.id"), nullable=False)
    typed_signature = Column(String, nullable=True)
    signature_image_as_base64 = Column(Text, nullable=True)
    created_at   = Column(DateTime, default=datetime.utcnow, nullable=False)

    field     = relationship("Field", back_populates="signature")
    recipient = relationship("Recipient")
