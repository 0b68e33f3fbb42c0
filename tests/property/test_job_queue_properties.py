"""
Property-Based Tests for the ingestion job queue and retry wrapper.

Feature: pdf-ingestion, job lifecycle
"""
from datetime import timedelta

import pytest
from hypothesis import given, settings, strategies as st

from pdf_ingest.core.exceptions import InvalidTransitionError
from pdf_ingest.models.ingestion_job import ALLOWED_TRANSITIONS, JobStatus, utc_now
from pdf_ingest.services.job_queue import InMemoryJobStore, JobQueue
from pdf_ingest.services.retry import backoff_delay, is_retryable_error, with_retry

statuses = st.sampled_from(list(JobStatus))


# =============================================================================
# Lifecycle
# =============================================================================

@given(moves=st.lists(st.tuples(st.integers(min_value=0, max_value=2), statuses), max_size=30))
@settings(max_examples=100)
def test_status_changes_follow_lifecycle(moves):
    """
    For any sequence of requested status changes, a change is applied exactly
    when the lifecycle allows it, and terminal jobs never change again.
    """
    queue = JobQueue(InMemoryJobStore())
    ids = [queue.enqueue(f"/tmp/q/{i}.pdf", "docs", f"{i}.pdf").id for i in range(3)]

    for index, target in moves:
        job_id = ids[index]
        before = queue.get_job(job_id).status
        if target in ALLOWED_TRANSITIONS[before]:
            assert queue.update_status(job_id, target).status == target
        else:
            with pytest.raises(InvalidTransitionError):
                queue.update_status(job_id, target)
            assert queue.get_job(job_id).status == before


@given(
    ages=st.lists(st.integers(min_value=0, max_value=72), min_size=1, max_size=20),
    limit=st.one_of(st.none(), st.integers(min_value=-1, max_value=25)),
)
@settings(max_examples=100)
def test_get_jobs_newest_first_and_limited(ages, limit):
    """Listed jobs are ordered by creation time, newest first, and honour a positive limit."""
    queue = JobQueue(InMemoryJobStore())
    for i, hours in enumerate(ages):
        job = queue.enqueue(f"/tmp/q/{i}.pdf", "docs", f"{i}.pdf")
        queue.store.set(job.model_copy(update={"created": utc_now() - timedelta(hours=hours)}))

    jobs = queue.get_jobs(limit=limit)

    created = [job.created for job in jobs]
    assert created == sorted(created, reverse=True)
    expected = min(limit, len(ages)) if limit and limit > 0 else len(ages)
    assert len(jobs) == expected


@given(
    jobs=st.lists(
        st.tuples(st.integers(min_value=0, max_value=72), statuses),
        min_size=1,
        max_size=20,
    ),
    retention=st.integers(min_value=1, max_value=48),
)
@settings(max_examples=100)
def test_cleanup_removes_only_old_terminal_jobs(jobs, retention):
    """
    Cleanup removes exactly the terminal jobs older than the retention
    window, and a second run removes nothing.
    """
    queue = JobQueue(InMemoryJobStore())
    expected_removed = 0
    for i, (hours, status) in enumerate(jobs):
        job = queue.enqueue(f"/tmp/q/{i}.pdf", "docs", f"{i}.pdf")
        # Ages are whole hours offset by half an hour to stay clear of the cutoff
        created = utc_now() - timedelta(hours=hours, minutes=30)
        queue.store.set(job.model_copy(update={"created": created, "status": status}))
        if status.is_terminal and hours + 0.5 > retention:
            expected_removed += 1

    assert queue.cleanup_old_jobs(retention) == expected_removed
    assert queue.cleanup_old_jobs(retention) == 0
    assert len(queue.get_jobs()) == len(jobs) - expected_removed


# =============================================================================
# Retry
# =============================================================================

class StatusError(Exception):
    def __init__(self, status_code):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


@given(attempt=st.integers(min_value=1, max_value=20))
@settings(max_examples=100)
def test_backoff_delay_bounds(attempt):
    """Delay is at least the exponential base (or the cap) and never above ten seconds."""
    delay = backoff_delay(attempt)
    assert delay <= 10.0
    assert delay >= min(2 ** attempt, 10.0)


@pytest.mark.asyncio
@given(
    status=st.integers(min_value=400, max_value=599),
    max_retries=st.integers(min_value=1, max_value=5),
)
@settings(max_examples=100, deadline=None)
async def test_attempt_count_depends_on_retryability(status, max_retries):
    """
    An always-failing operation is attempted max_retries times when its
    error is retryable, once otherwise, with one sleep between attempts.
    """
    attempts = 0
    sleeps = []

    async def operation():
        nonlocal attempts
        attempts += 1
        raise StatusError(status)

    async def sleep(delay):
        sleeps.append(delay)

    with pytest.raises(StatusError):
        await with_retry(operation, max_retries, "property", sleep=sleep)

    expected = max_retries if is_retryable_error(StatusError(status)) else 1
    assert attempts == expected
    assert len(sleeps) == expected - 1
    assert is_retryable_error(StatusError(status)) == (status >= 500 or status == 429)
