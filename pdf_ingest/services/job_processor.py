"""
PDF Job Processor

Runs one queued job end to end:
read file -> extract text -> embed -> store in collection -> delete temp file

The whole sequence races an overall deadline (processing_timeout). The
temp file is deleted and the in-memory buffer released whatever the
outcome; cleanup failures are logged and never replace the job's result.
"""

import asyncio
import logging
import time
import uuid
from pathlib import Path
from typing import Any, Awaitable, Callable, List, Optional, Protocol

from pdf_ingest.core.config import PDFProcessingConfig
from pdf_ingest.core.exceptions import (
    CollectionStoreError,
    EmbeddingError,
    ExtractionError,
    IngestionError,
    JobTimeoutError,
)
from pdf_ingest.engine.pdf_processor import PDFProcessor
from pdf_ingest.models.ingestion_job import IngestionJob, JobStatus, utc_now
from pdf_ingest.repositories.vector_store_repository import CollectionStore
from pdf_ingest.services.job_queue import JobQueue
from pdf_ingest.services.retry import with_retry

logger = logging.getLogger(__name__)

BYTES_PER_MB = 1024 * 1024


class EmbeddingProvider(Protocol):
    async def embed(self, text: str) -> List[float]: ...


class StageDeadline:
    """Deadline checked between pipeline stages."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds
        self.expires_at = time.monotonic() + timeout_seconds

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self.expires_at

    def check(self, stage: str) -> None:
        if self.expired:
            logger.warning(f"Deadline passed before {stage}")
            raise JobTimeoutError(self.timeout_seconds)


class _JobBuffer:
    """Holds the job's file bytes so cleanup can release them."""

    def __init__(self):
        self.data: bytes = b""

    def release(self) -> None:
        self.data = b""


class PDFJobProcessor:
    """
    Processes ingestion jobs registered in a JobQueue.

    Only the caller that claims a job (pending -> processing) works on it;
    duplicate triggers for the same job are ignored.
    """

    def __init__(
        self,
        job_queue: JobQueue,
        pdf_processor: PDFProcessor,
        embeddings: EmbeddingProvider,
        collection_store: CollectionStore,
        config: Optional[PDFProcessingConfig] = None,
        max_retries: int = 3,
        retry_sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
    ):
        self.job_queue = job_queue
        self.pdf_processor = pdf_processor
        self.embeddings = embeddings
        self.collection_store = collection_store
        self.config = config or PDFProcessingConfig()
        self.max_retries = max_retries
        self._retry_sleep = retry_sleep

    async def process_job(self, job_id: str) -> None:
        """
        Process one job; failures are recorded on the job, never raised.
        """
        job = self.job_queue.get_job(job_id)
        if job is None:
            logger.error(f"Job {job_id} not found")
            return

        claimed = self.job_queue.claim(job_id)
        if claimed is None:
            logger.warning(f"Job {job_id} is {job.status.value}, not processing it again")
            return
        job = claimed

        start_time = time.monotonic()
        file_path = Path(job.file_path)
        buffer = _JobBuffer()
        logger.info(f"Processing PDF job {job_id}")

        try:
            if not file_path.exists():
                raise FileNotFoundError(f"File not found: {job.file_path}")

            file_size_mb = file_path.stat().st_size / BYTES_PER_MB
            logger.info(f"Processing PDF: {file_path.name}, size: {file_size_mb:.2f} MB")

            await self._run_with_deadline(job, buffer, file_size_mb)

            self.job_queue.update_status(job_id, JobStatus.COMPLETED)
            logger.info(
                f"PDF job {job_id} completed successfully in {time.monotonic() - start_time:.1f}s"
            )
        except Exception as e:
            error_message = str(e) or type(e).__name__
            logger.error(f"Error processing PDF job {job_id}: {error_message}")
            self._mark_failed(job_id, error_message)
        finally:
            buffer.release()
            await self._safely_delete_file(file_path)

    async def _run_with_deadline(self, job: IngestionJob, buffer: _JobBuffer, file_size_mb: float) -> None:
        timeout = self.config.processing_timeout
        deadline = StageDeadline(timeout)
        try:
            await asyncio.wait_for(
                self._run_stages(job, buffer, file_size_mb, deadline),
                timeout=timeout,
            )
        except asyncio.TimeoutError as e:
            raise JobTimeoutError(timeout) from e

    async def _run_stages(
        self,
        job: IngestionJob,
        buffer: _JobBuffer,
        file_size_mb: float,
        deadline: StageDeadline
    ) -> None:
        try:
            buffer.data = await asyncio.to_thread(Path(job.file_path).read_bytes)

            deadline.check("text extraction")
            text = await self._retry(
                lambda: self.pdf_processor.extract_text(buffer.data), "text extraction"
            )
            if not text:
                raise ExtractionError("Failed to extract text from PDF")
            logger.info(f"Extracted {len(text)} characters of text")

            deadline.check("embedding generation")
            logger.info("Generating text embedding...")
            embedding = await self._retry(lambda: self.embeddings.embed(text), "embedding generation")
            if not embedding:
                raise EmbeddingError("Failed to generate embedding")

            deadline.check("collection retrieval")
            logger.info(f"Storing document in collection: {job.collection_name}")
            collection = await self._retry(
                lambda: self.collection_store.get_or_create(job.collection_name), "collection retrieval"
            )
            if collection is None:
                raise CollectionStoreError("Failed to get collection")

            deadline.check("document addition")
            doc_id = str(uuid.uuid4())
            metadata = {
                "filename": self._original_filename(job),
                "jobId": job.id,
                "fileSize": f"{file_size_mb:.2f} MB",
                "textLength": len(text),
                "processedAt": utc_now().isoformat(),
            }
            await self._retry(
                lambda: collection.add(
                    ids=[doc_id],
                    embeddings=[embedding],
                    documents=[text],
                    metadatas=[metadata],
                ),
                "document addition",
            )
        except asyncio.TimeoutError as e:
            # Keep stage timeouts distinct from the overall job deadline
            raise IngestionError(f"Operation timed out: {e}") from e

    async def _retry(self, operation, description: str):
        return await with_retry(operation, self.max_retries, description, sleep=self._retry_sleep)

    @staticmethod
    def _original_filename(job: IngestionJob) -> str:
        """Stored name minus the '<job id>_' prefix."""
        stored_name = Path(job.file_path).name
        prefix = f"{job.id}_"
        if stored_name.startswith(prefix):
            return stored_name[len(prefix):]
        return stored_name

    def _mark_failed(self, job_id: str, error_message: str) -> None:
        try:
            self.job_queue.update_status(job_id, JobStatus.FAILED, error_message)
        except IngestionError as e:
            logger.error(f"Could not mark job {job_id} as failed: {e}")

    async def _safely_delete_file(self, file_path: Path) -> bool:
        try:
            await asyncio.to_thread(file_path.unlink)
            return True
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.error(f"Error deleting file {file_path}: {e}")
            return False
