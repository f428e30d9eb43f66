"""Background worker for queued jobs.

Jobs are rows of the ``job`` table. The worker claims the oldest runnable
one, hands it to the handler registered for its type and stores the
handler's result in ``job.details``. Unexpected exceptions requeue the job
with an exponential delay until ``WORKER_MAX_ATTEMPTS`` is reached.
"""

import logging
import os
import time
from typing import Any, Dict, Optional

from sqlmodel import select

from .db import get_session_ctx, init_db
from .jobs import get_handler
from .models import Job
from .observability.logging import bind_feed_id, bind_job_id, setup_logging
from .observability.metrics import JOB_COUNTER, JOB_DURATION
from .observability.sentry import init_sentry

logger = logging.getLogger(__name__)

FEED_REFRESH = "feed_refresh"


def _job_setting(name: str, job_type: str, default: str) -> str:
    # WORKER_<NAME>_<TYPE> overrides WORKER_<NAME>.
    return os.getenv(f"WORKER_{name}_{job_type.upper()}") or os.getenv(f"WORKER_{name}", default)


def poll_interval() -> float:
    return float(os.getenv("WORKER_POLL_INTERVAL", "2.0"))


def max_attempts(job_type: str) -> int:
    return int(_job_setting("MAX_ATTEMPTS", job_type, "3"))


def retry_delay(job_type: str, attempts: int) -> float:
    base = float(_job_setting("BACKOFF_BASE", job_type, "2"))
    return base * (2 ** max(attempts - 1, 0))


def enqueue_job(job_type: str, payload: Dict[str, Any], owner_user_id: Optional[str] = None) -> Job:
    with get_session_ctx() as session:
        job = Job(type=job_type, payload=dict(payload), owner_user_id=owner_user_id)
        session.add(job)
        session.commit()
        session.refresh(job)
    logger.info("Job queued", extra={"event": "job_queued", "job_id": job.id, "type": job_type})
    return job


def enqueue_feed_refresh(owner_user_id: str, feed_id: str) -> Job:
    return enqueue_job(FEED_REFRESH, {"feed_id": feed_id}, owner_user_id)


def claim_next_job(now: Optional[float] = None) -> Optional[Job]:
    """Mark the next runnable job ``in_progress`` and return it."""
    now = time.time() if now is None else now
    with get_session_ctx() as session:
        stmt = (
            select(Job)
            .where(Job.status == "queued")
            .where((Job.available_at.is_(None)) | (Job.available_at <= now))
            .order_by(Job.attempts.asc())
            .limit(1)
        )
        job = session.exec(stmt).first()
        if job is None:
            return None
        job.status = "in_progress"
        session.add(job)
        session.commit()
        session.refresh(job)
        return job


def process_job(job: Job) -> Dict[str, Any]:
    bind_job_id(job.id)
    bind_feed_id((job.payload or {}).get("feed_id"))
    handler = get_handler(job.type)
    if handler is None:
        raise RuntimeError(f"No handler registered for job type: {job.type}")

    logger.info("Processing job", extra={"event": "job_start", "job_id": job.id, "type": job.type})
    outcome = "failed"
    start = time.time()
    try:
        details = handler(job_id=job.id, owner_user_id=job.owner_user_id, payload=job.payload or {})
        outcome = "done"
        return details or {}
    finally:
        JOB_COUNTER.labels(job.type or "unknown", outcome).inc()
        JOB_DURATION.observe(time.time() - start)


def mark_done(job: Job, details: Optional[Dict[str, Any]] = None) -> None:
    with get_session_ctx() as session:
        stored = session.get(Job, job.id)
        if stored is None:
            return
        stored.status = "done"
        stored.last_error = None
        if details is not None:
            stored.details = details
        session.add(stored)
        session.commit()
    logger.info("Job done", extra={"event": "job_done", "job_id": job.id, "type": job.type})


def mark_failed(job: Job, error: str) -> None:
    """Requeue ``job`` after a delay, or fail it once its attempts are used up."""
    with get_session_ctx() as session:
        stored = session.get(Job, job.id)
        if stored is None:
            return
        stored.attempts = (stored.attempts or 0) + 1
        stored.last_error = error[:500]
        if stored.attempts < max_attempts(stored.type or ""):
            stored.status = "queued"
            stored.available_at = time.time() + retry_delay(stored.type or "", stored.attempts)
        else:
            stored.status = "failed"
            stored.available_at = None
        session.add(stored)
        session.commit()
        status = stored.status
    logger.warning(
        "Job error",
        extra={"event": "job_error", "job_id": job.id, "type": job.type, "error": error, "status": status},
    )


def run_once() -> bool:
    """Run a single job; return ``False`` when nothing was runnable."""
    job = claim_next_job()
    if job is None:
        return False
    try:
        details = process_job(job)
    except Exception as exc:  # noqa: BLE001
        logger.exception("Job %s failed: %s", job.id, exc)
        mark_failed(job, str(exc))
    else:
        mark_done(job, details)
    return True


def run_forever() -> None:
    setup_logging()
    init_sentry()
    init_db()
    logger.info("Worker started")
    try:
        while True:
            if not run_once():
                time.sleep(poll_interval())
    except KeyboardInterrupt:
        logger.info("Worker stopped by user")


if __name__ == "__main__":
    run_forever()
