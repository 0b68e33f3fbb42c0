"""
Ingestion job queue.

Registry of ingestion jobs keyed by id, backed by an injectable JobStore.
The default InMemoryJobStore is process local: it does not survive a
restart and is not shared between processes, so multi-instance deployments
need a shared store implementing the same interface.

Lifecycle: pending -> processing -> {completed | failed}
"""

import logging
import threading
import uuid
from datetime import datetime, timedelta
from typing import Dict, List, Optional, Protocol

from pdf_ingest.core.exceptions import InvalidTransitionError, JobNotFoundError
from pdf_ingest.models.ingestion_job import (
    ALLOWED_TRANSITIONS,
    IngestionJob,
    JobStatus,
    utc_now,
)

logger = logging.getLogger(__name__)


class JobStore(Protocol):
    def get(self, job_id: str) -> Optional[IngestionJob]: ...

    def set(self, job: IngestionJob) -> None: ...

    def list(self) -> List[IngestionJob]: ...

    def delete(self, job_id: str) -> bool: ...


class InMemoryJobStore:
    """Dict-backed JobStore guarded by a lock."""

    def __init__(self):
        self._jobs: Dict[str, IngestionJob] = {}
        self._lock = threading.RLock()

    def get(self, job_id: str) -> Optional[IngestionJob]:
        with self._lock:
            return self._jobs.get(job_id)

    def set(self, job: IngestionJob) -> None:
        with self._lock:
            self._jobs[job.id] = job

    def list(self) -> List[IngestionJob]:
        with self._lock:
            return list(self._jobs.values())

    def delete(self, job_id: str) -> bool:
        with self._lock:
            return self._jobs.pop(job_id, None) is not None

    def __len__(self) -> int:
        return len(self._jobs)


class JobQueue:
    """
    Job registry with lifecycle enforcement and housekeeping.

    Status changes go through update_status()/claim(), which reject moves
    outside pending -> processing -> {completed | failed}.
    """

    def __init__(self, store: Optional[JobStore] = None):
        self.store: JobStore = store if store is not None else InMemoryJobStore()
        self._lock = threading.RLock()

    def enqueue(
        self,
        file_path: str,
        collection_name: str,
        filename: str,
        job_id: Optional[str] = None
    ) -> IngestionJob:
        """Register a pending job for a PDF already persisted at file_path."""
        job = IngestionJob(
            id=job_id or str(uuid.uuid4()),
            file_path=file_path,
            collection_name=collection_name,
            filename=filename,
        )
        with self._lock:
            if self.store.get(job.id) is not None:
                raise ValueError(f"Job id already registered: {job.id}")
            self.store.set(job)
        logger.info(f"Queued PDF job {job.id} for processing")
        return job

    def get_job(self, job_id: str) -> Optional[IngestionJob]:
        return self.store.get(job_id)

    def discard(self, job_id: str) -> bool:
        """Forget a job that was registered but never handed to a worker."""
        with self._lock:
            removed = self.store.delete(job_id)
        if removed:
            logger.info(f"Discarded job {job_id}")
        return removed

    def get_jobs(self, limit: Optional[int] = None, status: Optional[JobStatus] = None) -> List[IngestionJob]:
        """Jobs filtered by status, newest first, capped at limit when positive."""
        jobs = self.store.list()
        if status:
            jobs = [job for job in jobs if job.status == status]

        jobs.sort(key=lambda job: job.created, reverse=True)

        if limit and limit > 0:
            jobs = jobs[:limit]
        return jobs

    def update_status(self, job_id: str, status: JobStatus, error: Optional[str] = None) -> IngestionJob:
        """
        Move a job to a new status.

        Raises:
            JobNotFoundError: unknown job id
            InvalidTransitionError: move not allowed from the current status
        """
        with self._lock:
            job = self.store.get(job_id)
            if job is None:
                raise JobNotFoundError(job_id)
            if status not in ALLOWED_TRANSITIONS[job.status]:
                raise InvalidTransitionError(job_id, job.status.value, status.value)

            changes = {"status": status, "updated": utc_now()}
            if error is not None:
                changes["error"] = error
            updated = job.model_copy(update=changes)
            self.store.set(updated)
            return updated

    def claim(self, job_id: str) -> Optional[IngestionJob]:
        """
        Atomically move a pending job to processing.

        Returns the claimed job, or None when the job is unknown or no longer
        pending (already claimed by another processor, or terminal).
        """
        with self._lock:
            job = self.store.get(job_id)
            if job is None or job.status != JobStatus.PENDING:
                return None
            return self.update_status(job_id, JobStatus.PROCESSING)

    def cleanup_old_jobs(self, max_age_hours: float = 24) -> int:
        """Remove terminal jobs created before the age cutoff; returns the count removed."""
        cutoff: datetime = utc_now() - timedelta(hours=max_age_hours)
        removed = 0
        with self._lock:
            for job in self.store.list():
                if job.created < cutoff and job.status.is_terminal:
                    if self.store.delete(job.id):
                        removed += 1
        if removed:
            logger.info(f"Cleaned up {removed} old jobs")
        return removed


# =============================================================================
# SINGLETON
# =============================================================================

_job_queue: Optional[JobQueue] = None


def get_job_queue() -> JobQueue:
    """Get or create JobQueue singleton."""
    global _job_queue
    if _job_queue is None:
        _job_queue = JobQueue()
    return _job_queue


def init_job_queue(store: Optional[JobStore] = None) -> JobQueue:
    """Initialize JobQueue with a specific store."""
    global _job_queue
    _job_queue = JobQueue(store)
    return _job_queue
