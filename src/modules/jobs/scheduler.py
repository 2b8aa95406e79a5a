from apscheduler.schedulers.background import BackgroundScheduler

from config import settings
from database import SessionLocal
from modules.jobs.services.job_dispatcher import process_pending_jobs
from logger import get_logger

logger = get_logger(__name__)


def start_job_runner() -> BackgroundScheduler:
    scheduler = BackgroundScheduler()

    def job():
        with SessionLocal() as session:
            result = process_pending_jobs(session)
        if result["processed"] or result["failed"]:
            logger.info("Job runner pass finished", **result)

    # One pass at a time
    scheduler.add_job(job, 'interval', seconds=settings.job_poll_interval_seconds, max_instances=1)
    scheduler.start()
    logger.info("Job runner started", interval_seconds=settings.job_poll_interval_seconds)
    return scheduler
