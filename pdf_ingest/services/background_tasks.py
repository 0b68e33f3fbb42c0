"""
Background Tasks - Job worker for PDF ingestion

HTTP handlers hand job ids to the worker through submit(); consumer tasks
own execution from there. A periodic sweep evicts old terminal jobs.

**Pattern:** Task Runner with explicit queue handoff
"""

import asyncio
import logging
from typing import List, Optional

from pdf_ingest.services.job_processor import PDFJobProcessor
from pdf_ingest.services.job_queue import JobQueue

logger = logging.getLogger(__name__)


class JobWorker:
    """
    Consumes job ids from an asyncio queue and processes them.

    Responsibilities:
    - Run PDFJobProcessor.process_job for each submitted id
    - Keep consumers alive when a job raises unexpectedly
    - Sweep old jobs on a fixed interval
    """

    def __init__(
        self,
        processor: PDFJobProcessor,
        job_queue: JobQueue,
        concurrency: int = 1,
        cleanup_interval_seconds: float = 3600,
        retention_hours: float = 24
    ):
        self.processor = processor
        self.job_queue = job_queue
        self.concurrency = max(1, concurrency)
        self.cleanup_interval_seconds = cleanup_interval_seconds
        self.retention_hours = retention_hours

        self._queue: Optional[asyncio.Queue] = None
        self._tasks: List[asyncio.Task] = []

        logger.info(f"JobWorker initialized (concurrency={self.concurrency})")

    @property
    def is_running(self) -> bool:
        return bool(self._tasks)

    @property
    def pending_count(self) -> int:
        return self._queue.qsize() if self._queue is not None else 0

    def start(self) -> None:
        """Start consumer and cleanup tasks on the running event loop."""
        if self.is_running:
            return
        self._queue = asyncio.Queue()
        for index in range(self.concurrency):
            self._tasks.append(asyncio.create_task(self._consume(self._queue), name=f"pdf-job-worker-{index}"))
        if self.cleanup_interval_seconds > 0:
            self._tasks.append(asyncio.create_task(self._cleanup_loop(), name="pdf-job-cleanup"))
        logger.info("JobWorker started")

    async def stop(self) -> None:
        """Cancel all worker tasks; queued ids that were not started are dropped."""
        tasks, self._tasks = self._tasks, []
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._queue = None
        logger.info("JobWorker stopped")

    def submit(self, job_id: str) -> None:
        """Hand a job id to the consumers. The caller does not wait for processing."""
        if self._queue is None:
            raise RuntimeError("JobWorker is not running")
        self._queue.put_nowait(job_id)
        logger.debug(f"Submitted job {job_id} to worker")

    async def join(self) -> None:
        """Wait until every submitted job has been processed."""
        if self._queue is not None:
            await self._queue.join()

    async def _consume(self, queue: asyncio.Queue) -> None:
        while True:
            job_id = await queue.get()
            try:
                await self.processor.process_job(job_id)
            except Exception as e:
                logger.exception(f"Unhandled error processing job {job_id}: {e}")
            finally:
                queue.task_done()

    async def _cleanup_loop(self) -> None:
        while True:
            await asyncio.sleep(self.cleanup_interval_seconds)
            try:
                removed = self.job_queue.cleanup_old_jobs(self.retention_hours)
                logger.info(f"Periodic cleanup removed {removed} old jobs")
            except Exception as e:
                logger.error(f"Periodic job cleanup failed: {e}")


# =============================================================================
# SINGLETON
# =============================================================================

_job_worker: Optional[JobWorker] = None


def get_job_worker() -> JobWorker:
    """Get or create JobWorker singleton wired from settings."""
    global _job_worker
    if _job_worker is None:
        from pdf_ingest.services import build_job_worker
        _job_worker = build_job_worker()
    return _job_worker


def init_job_worker(worker: JobWorker) -> JobWorker:
    """Install a specific JobWorker (tests, custom wiring)."""
    global _job_worker
    _job_worker = worker
    return _job_worker
