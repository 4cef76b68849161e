import pytest

from orderflow.jobs.memory import MemoryJobQueue
from orderflow.jobs.queue import Backoff, Job, JobOptions


def test_exponential_backoff_delays():
    backoff = Backoff(type="exponential", delay=2.0)
    assert [backoff.delay_for(n) for n in (1, 2, 3, 4)] == [2.0, 4.0, 8.0, 16.0]


def test_fixed_backoff_delay():
    assert Backoff(type="fixed", delay=5).delay_for(3) == 5


def test_record_failure_exhausts_after_configured_attempts():
    job = Job(id="j", name="n", queue="q", data={}, options=JobOptions(attempts=2))

    assert job.record_failure("boom") == 2.0
    assert job.status == "delayed"
    assert job.record_failure("boom again") is None
    assert job.status == "failed"
    assert job.failed_reason == "boom again"
    assert job.finished_at is not None


def test_reserve_returns_jobs_in_fifo_order(jobs):
    first = jobs.enqueue("process-order", {"orderId": "a"})
    second = jobs.enqueue("process-order", {"orderId": "b"})

    assert jobs.reserve(timeout=0).id == first
    assert jobs.reserve(timeout=0).id == second
    assert jobs.reserve(timeout=0) is None


def test_reserved_job_is_active(jobs):
    jobs.enqueue("process-order", {"orderId": "a"})

    job = jobs.reserve(timeout=0)

    assert job.status == "active"
    assert job.processed_at is not None
    assert job.data == {"orderId": "a"}


def test_duplicate_job_id_is_ignored(jobs):
    jobs.enqueue("process-order", {"orderId": "a"}, job_id="process-order:a")
    jobs.enqueue("process-order", {"orderId": "a"}, job_id="process-order:a")

    assert jobs.reserve(timeout=0).id == "process-order:a"
    assert jobs.reserve(timeout=0) is None


def test_failed_job_retries_after_backoff(jobs, clock):
    jobs.enqueue("process-order", {"orderId": "a"})

    job = jobs.reserve(timeout=0)
    assert jobs.fail(job, "inventory down") is True
    assert jobs.reserve(timeout=0) is None

    clock.advance(1.9)
    assert jobs.reserve(timeout=0) is None
    clock.advance(0.1)
    job = jobs.reserve(timeout=0)
    assert job.attempts_made == 1

    assert jobs.fail(job, "inventory down") is True
    clock.advance(3.9)
    assert jobs.reserve(timeout=0) is None
    clock.advance(0.1)
    job = jobs.reserve(timeout=0)
    assert job.attempts_made == 2


def test_exhausted_job_is_kept_as_failed(jobs, clock):
    job_id = jobs.enqueue("process-order", {"orderId": "a"})

    for _ in range(3):
        clock.advance(60)
        job = jobs.reserve(timeout=0)
        retrying = jobs.fail(job, "payment declined")

    assert retrying is False
    clock.advance(60)
    assert jobs.reserve(timeout=0) is None
    kept = jobs.get(job_id)
    assert kept.status == "failed"
    assert kept.attempts_made == 3
    assert kept.failed_reason == "payment declined"
    assert [j.id for j in jobs.failed_jobs()] == [job_id]


def test_remove_on_fail_drops_exhausted_job(clock):
    queue = MemoryJobQueue("q", JobOptions(attempts=1, remove_on_fail=True), clock=clock)
    job_id = queue.enqueue("x", {})

    assert queue.fail(queue.reserve(timeout=0), "nope") is False
    assert queue.get(job_id) is None
    assert queue.failed_jobs() == []


def test_completed_job_is_removed_by_default(jobs):
    job_id = jobs.enqueue("process-order", {"orderId": "a"})

    jobs.complete(jobs.reserve(timeout=0), {"success": True})

    assert jobs.get(job_id) is None


def test_completed_job_can_be_kept(clock):
    queue = MemoryJobQueue("q", JobOptions(remove_on_complete=False), clock=clock)
    job_id = queue.enqueue("x", {})

    queue.complete(queue.reserve(timeout=0), {"ok": 1})

    kept = queue.get(job_id)
    assert kept.status == "completed"
    assert kept.result == {"ok": 1}


def test_progress_is_recorded(jobs):
    jobs.enqueue("process-order", {"orderId": "a"})
    job = jobs.reserve(timeout=0)

    jobs.report_progress(job, 40)

    assert jobs.get(job.id).progress == 40


def test_options_reject_zero_attempts():
    with pytest.raises(ValueError):
        JobOptions(attempts=0)
