"""
Background worker for processing scheduled jobs.

Usage:
    python -m casa.worker

The worker polls for pending jobs and processes them.
For production, run this as a separate process (e.g., systemd service, Docker container).
"""

import asyncio
import logging
from uuid import UUID

import httpx
from sqlalchemy.orm import Session

from casa.core.config import settings
from casa.core.errors import NotificationDispatchFailure
from casa.core.structured_logging import build_log_context
from casa.db.enums import JobStatus, JobType
from casa.db.models import EmailLog, Job
from casa.db.session import SessionLocal
from casa.services import audit_service, digest_service, email_service, job_service

logger = logging.getLogger(__name__)

RESEND_SEND_URL = "https://api.resend.com/emails"
RESEND_TIMEOUT_SECONDS = 10.0


def _email_log_for(db: Session, job: Job) -> EmailLog | None:
    email_log_id = (job.payload or {}).get("email_log_id")
    if not email_log_id:
        return None
    return db.query(EmailLog).filter(EmailLog.id == UUID(email_log_id)).first()


async def send_email_async(email_log: EmailLog) -> str | None:
    """
    Send an email using the Resend API. Returns the provider message id.

    If RESEND_API_KEY is not set, logs the email instead of sending.

    Raises:
        NotificationDispatchFailure: provider unreachable or rejected the email
    """
    if not settings.RESEND_API_KEY:
        logger.info("[DRY RUN] Email send skipped for email_log=%s", email_log.id)
        return None

    payload = {
        "from": settings.EMAIL_FROM,
        "to": [email_log.recipient_email],
        "subject": email_log.subject,
        "html": email_log.body,
    }
    headers = {
        "Authorization": f"Bearer {settings.RESEND_API_KEY}",
        "Content-Type": "application/json",
        # Stable across retries of the same email
        "Idempotency-Key": f"email-log/{email_log.id}",
    }

    try:
        async with httpx.AsyncClient(timeout=RESEND_TIMEOUT_SECONDS) as client:
            response = await client.post(RESEND_SEND_URL, headers=headers, json=payload)
    except httpx.HTTPError as e:
        raise NotificationDispatchFailure(f"Connection error: {e.__class__.__name__}") from e

    if not 200 <= response.status_code < 300:
        raise NotificationDispatchFailure(f"Resend API error {response.status_code}")

    message_id = response.json().get("id")
    logger.info(
        "Email sent for email_log=%s recipient=%s message_id=%s",
        email_log.id,
        audit_service.hash_email(email_log.recipient_email),
        message_id,
    )
    return message_id


async def process_job(db: Session, job: Job) -> None:
    """Process a single job based on its type."""
    logger.info("Processing job %s (type=%s, attempt=%s)", job.id, job.job_type, job.attempts)

    if job.job_type == JobType.SEND_EMAIL.value:
        email_log = _email_log_for(db, job)
        if not email_log:
            raise NotificationDispatchFailure(f"EmailLog for job {job.id} not found")

        message_id = await send_email_async(email_log)
        email_service.mark_email_sent(db, email_log, external_id=message_id)
    elif job.job_type == JobType.SUPERVISOR_DIGEST.value:
        digest_service.queue_supervisor_digests(db, job.organization_id)
    else:
        raise ValueError(f"Unknown job type: {job.job_type}")


async def process_pending_jobs(db: Session, limit: int | None = None) -> int:
    """
    Run one batch of due jobs. Returns the number processed.

    A failing job is retried with backoff until max_attempts and never
    stops the batch. Its email is marked failed only once the job has
    failed for good.
    """
    jobs = job_service.get_pending_jobs(db, limit=limit or settings.WORKER_BATCH_SIZE)
    if jobs:
        logger.info("Found %s pending jobs", len(jobs))

    for job in jobs:
        try:
            job_service.mark_job_running(db, job)
            await process_job(db, job)
            job_service.mark_job_completed(db, job)
            logger.info("Job %s completed successfully", job.id)
        except (NotificationDispatchFailure, ValueError) as e:
            error_msg = str(e)
            job_service.mark_job_failed(db, job, error_msg)
            if job.status == JobStatus.PENDING.value:
                logger.warning(
                    "Job %s failed (attempt %s/%s), retrying at %s: %s",
                    job.id,
                    job.attempts,
                    job.max_attempts,
                    job.run_at,
                    error_msg,
                )
                continue

            logger.error("Job %s failed: %s", job.id, error_msg)
            if job.job_type == JobType.SEND_EMAIL.value:
                email_log = _email_log_for(db, job)
                if email_log:
                    email_service.mark_email_failed(db, email_log, error_msg)
    return len(jobs)


async def worker_loop() -> None:
    """Main worker loop - polls for and processes pending jobs."""
    logger.info(
        "Worker starting (poll interval: %ss, batch size: %s)",
        settings.WORKER_POLL_INTERVAL,
        settings.WORKER_BATCH_SIZE,
    )

    if not settings.RESEND_API_KEY:
        logger.warning("RESEND_API_KEY not set - emails will be logged but not sent")

    while True:
        with SessionLocal() as db:
            try:
                await process_pending_jobs(db)
            except Exception:
                db.rollback()
                logger.exception("Error in worker loop")

        await asyncio.sleep(settings.WORKER_POLL_INTERVAL)


def main() -> None:
    """Entry point for the worker."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    try:
        asyncio.run(worker_loop())
    except KeyboardInterrupt:
        logger.info("Worker shutting down")
    except Exception:
        logger.exception(
            "Worker crashed",
            extra=build_log_context(route="worker", method="background"),
        )
        raise


if __name__ == "__main__":
    main()
