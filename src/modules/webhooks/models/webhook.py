from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Boolean, Column, Integer, String, DateTime, ForeignKey, JSON

from database import Base

class WebhookTriggerEvent(PyEnum):
    DOCUMENT_SENT = "DOCUMENT_SENT"
    DOCUMENT_SIGNED = "DOCUMENT_SIGNED"
    DOCUMENT_COMPLETED = "DOCUMENT_COMPLETED"

class Webhook(Base):
    __tablename__ = 'webhooks'

    id = Column(Integer, primary_key=True)
    webhook_url = Column(String(1024), nullable=False)
    secret = Column(String(255), nullable=True)
    # List of WebhookTriggerEvent values
    event_triggers = Column(JSON, nullable=False, default=list)
    enabled = Column(Boolean, nullable=False, default=True)

    user_id = Column(Integer, ForeignKey('users.id'), nullable=False)
    team_id = Column(Integer, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow)
