import time

from fluxfeed.jobs import register_handler


def test_worker_retry_backoff(monkeypatch, memory_db):
    monkeypatch.setenv("WORKER_MAX_ATTEMPTS", "2")
    monkeypatch.setenv("WORKER_BACKOFF_BASE", "0.1")

    from fluxfeed.db import get_session
    from fluxfeed.models import Job
    from fluxfeed.worker import enqueue_job, claim_next_job, mark_failed

    job_id = enqueue_job("unknown", {}, owner_user_id="u").id

    job = claim_next_job()
    assert job is not None and job.id == job_id
    assert job.status == "in_progress"
    # Simulate failure twice
    mark_failed(job, "oops")
    with next(get_session()) as session:
        dbj = session.get(Job, job_id)
        assert dbj.status == "queued"
        assert dbj.attempts == 1
        assert dbj.available_at is not None and dbj.available_at > time.time()

    # Backoff keeps the job invisible until available_at
    assert claim_next_job() is None

    # Second failure should mark failed due to max attempts=2
    mark_failed(job, "oops again")
    with next(get_session()) as session:
        dbj2 = session.get(Job, job_id)
        assert dbj2.status == "failed"
        assert dbj2.attempts == 2
        assert dbj2.last_error == "oops again"


def test_process_job_records_handler_details(memory_db):
    from fluxfeed.db import get_session
    from fluxfeed.models import Job
    from fluxfeed.worker import enqueue_job, claim_next_job, mark_done, process_job

    seen = {}

    def handler(*, job_id, owner_user_id, payload):
        seen.update(job_id=job_id, owner=owner_user_id, payload=payload)
        return {"status": "ok"}

    register_handler("test_echo", handler)
    job_id = enqueue_job("test_echo", {"feed_id": "feed_1"}, owner_user_id="u1").id

    job = claim_next_job()
    mark_done(job, process_job(job))

    assert seen == {"job_id": job_id, "owner": "u1", "payload": {"feed_id": "feed_1"}}
    with next(get_session()) as session:
        stored = session.get(Job, job_id)
        assert stored.status == "done"
        assert stored.details == {"status": "ok"}


def test_run_once_requeues_jobs_without_handler(memory_db):
    from fluxfeed.db import get_session
    from fluxfeed.models import Job
    from fluxfeed.worker import enqueue_job, run_once

    job_id = enqueue_job("no_such_type", {}).id

    assert run_once() is True
    assert run_once() is False

    with next(get_session()) as session:
        stored = session.get(Job, job_id)
        assert stored.status == "queued"
        assert stored.attempts == 1
        assert "No handler registered" in stored.last_error


def test_retry_delay_doubles_per_attempt(monkeypatch):
    from fluxfeed.worker import max_attempts, retry_delay

    monkeypatch.setenv("WORKER_BACKOFF_BASE", "2")
    monkeypatch.setenv("WORKER_MAX_ATTEMPTS_FEED_REFRESH", "5")

    assert [retry_delay("feed_refresh", n) for n in (1, 2, 3)] == [2.0, 4.0, 8.0]
    assert max_attempts("feed_refresh") == 5
    assert max_attempts("other") == 3
