from datetime import datetime
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.orm import Session

from config import settings
from modules.documents.exceptions import InvalidStateError, NotFoundError
from modules.jobs.models.background_job import BackgroundJob, BackgroundJobStatus
from logger import get_logger

logger = get_logger(__name__)

SEAL_DOCUMENT = "internal.seal-document"
EXECUTE_WEBHOOK = "internal.execute-webhook"
SEND_SIGNING_REQUESTED_EMAIL = "send.signing.requested.email"
SEND_RECIPIENT_SIGNED_EMAIL = "send.recipient.signed.email"
SEND_DOCUMENT_PENDING_EMAIL = "send.document.pending.email"

JobHandler = Callable[[Session, Dict[str, Any]], None]


class JobDispatcher:
    """
    Fire-and-forget job queue backed by the background_jobs table.

    Callers must only enqueue after their own transaction committed.
    """

    def __init__(self, session: Session):
        self.session = session

    def enqueue(self, job_name: str, payload: Dict[str, Any]) -> BackgroundJob:
        job = BackgroundJob(
            job_id=job_name,
            payload=payload,
            status=BackgroundJobStatus.PENDING,
            max_retries=settings.job_max_retries,
        )
        self.session.add(job)
        self.session.commit()
        logger.info("Job enqueued", job=job_name, id=job.id)
        return job


def process_pending_jobs(
    session: Session,
    handlers: Optional[Dict[str, JobHandler]] = None,
    limit: Optional[int] = None,
) -> Dict[str, int]:
    """
    Run pending jobs oldest first.

    A failing job is retried on later runs until max_retries, then left FAILED.
    """
    if handlers is None:
        from modules.jobs.services.job_handlers import JOB_HANDLERS
        handlers = JOB_HANDLERS

    jobs = (
        session.query(BackgroundJob)
        .filter(BackgroundJob.status == BackgroundJobStatus.PENDING)
        .order_by(BackgroundJob.submitted_at, BackgroundJob.id)
        .limit(limit or settings.job_batch_size)
        .all()
    )

    processed = failed = 0
    for job in jobs:
        job_pk = job.id
        job.status = BackgroundJobStatus.PROCESSING
        session.commit()

        handler = handlers.get(job.job_id)
        try:
            if handler is None:
                raise LookupError(f"No handler registered for job {job.job_id}")
            handler(session, job.payload or {})
        except Exception as e:
            session.rollback()
            job = session.get(BackgroundJob, job_pk)
            job.retried += 1
            job.last_retried_at = datetime.utcnow()
            job.last_error = str(e)
            job.status = (
                BackgroundJobStatus.FAILED if job.retried >= job.max_retries
                else BackgroundJobStatus.PENDING
            )
            session.commit()
            failed += 1
            logger.error("Job failed", job=job.job_id, id=job_pk, retried=job.retried, error=str(e), exc_info=True)
            continue

        job.status = BackgroundJobStatus.COMPLETED
        job.completed_at = datetime.utcnow()
        session.commit()
        processed += 1

    return {"processed": processed, "failed": failed}


def list_jobs(
    session: Session,
    status: Optional[str] = "failed",
    job_type: Optional[str] = None,
    limit: int = 50,
) -> List[BackgroundJob]:
    query = session.query(BackgroundJob)
    if status and status != "all":
        query = query.filter(BackgroundJob.status == BackgroundJobStatus(status.upper()))
    if job_type:
        query = query.filter(BackgroundJob.job_id.contains(job_type))
    return query.order_by(BackgroundJob.submitted_at.desc()).limit(limit).all()


def retry_job(session: Session, job_id: str) -> BackgroundJob:
    job = session.get(BackgroundJob, job_id)
    if not job:
        raise NotFoundError(f"Job not found: {job_id}", {"job_id": job_id})
    if job.status != BackgroundJobStatus.FAILED:
        raise InvalidStateError(
            f"Job is not in FAILED status. Current status: {job.status.value}",
            {"job_id": job_id, "status": job.status.value},
        )
    _reset(job)
    session.commit()
    logger.info("Job reset for retry", id=job_id, job=job.job_id)
    return job


def retry_all_jobs(session: Session, job_type: Optional[str] = None) -> int:
    jobs = list_jobs(session, status="failed", job_type=job_type, limit=None)
    for job in jobs:
        _reset(job)
    session.commit()
    logger.info("Failed jobs reset for retry", count=len(jobs), job_type=job_type)
    return len(jobs)


def _reset(job: BackgroundJob) -> None:
    job.status = BackgroundJobStatus.PENDING
    job.retried = 0
    job.last_retried_at = None
    job.completed_at = None
    job.last_error = None
