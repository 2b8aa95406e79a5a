import uuid
from datetime import datetime
from enum import Enum as PyEnum

from sqlalchemy import Column, Integer, String, DateTime, Enum, JSON, Text

from database import Base

class BackgroundJobStatus(PyEnum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"

class BackgroundJob(Base):
    __tablename__ = 'background_jobs'

    id = Column(String(36), primary_key=True, default=lambda: str(uuid.uuid4()))
    # Handler name, e.g. "internal.seal-document"
    job_id = Column(String(128), nullable=False, index=True)
    payload = Column(JSON, nullable=True)
    status = Column(Enum(BackgroundJobStatus), nullable=False, default=BackgroundJobStatus.PENDING, index=True)

    retried = Column(Integer, nullable=False, default=0)
    max_retries = Column(Integer, nullable=False, default=3)
    last_error = Column(Text, nullable=True)

    submitted_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    last_retried_at = Column(DateTime, nullable=True)
    completed_at = Column(DateTime, nullable=True)
