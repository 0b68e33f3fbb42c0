"""
Domain exceptions for the PDF ingestion pipeline.

Errors carrying ``retryable = False`` are never retried by
``pdf_ingest.services.retry.with_retry`` even though they have no HTTP status.
"""
from typing import Optional


class IngestionError(Exception):
    """Base class for ingestion pipeline errors."""
    retryable: Optional[bool] = None


class JobNotFoundError(IngestionError):
    """Raised when a job id is not registered in the queue."""

    def __init__(self, job_id: str):
        super().__init__(f"Job not found: {job_id}")
        self.job_id = job_id


class InvalidTransitionError(IngestionError):
    """Raised when a job status change would break the lifecycle."""

    def __init__(self, job_id: str, current: str, target: str):
        super().__init__(f"Job {job_id} cannot move from {current} to {target}")
        self.job_id = job_id
        self.current = current
        self.target = target


class JobTimeoutError(IngestionError):
    """Raised when a job exceeds its overall processing deadline."""
    retryable = False

    def __init__(self, timeout_seconds: float):
        super().__init__(f"Job processing timed out after {timeout_seconds:g} seconds")
        self.timeout_seconds = timeout_seconds


class ExtractionError(IngestionError):
    retryable = False


class EmbeddingError(IngestionError):
    retryable = False


class CollectionStoreError(IngestionError):
    """Raised when the vector collection cannot be obtained or written."""
