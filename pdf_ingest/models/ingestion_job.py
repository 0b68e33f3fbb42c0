"""
Ingestion Job Model for the PDF ingestion queue.

Tracks PDF upload and processing jobs from upload to vector storage.
JSON field names are camelCase (filePath, collectionName, jobId).
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def utc_now() -> datetime:
    """Get current UTC time (timezone-aware)"""
    return datetime.now(timezone.utc)


class JobStatus(str, Enum):
    """Ingestion job status enum."""
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (JobStatus.COMPLETED, JobStatus.FAILED)


# Allowed lifecycle moves: pending -> processing -> {completed | failed}
ALLOWED_TRANSITIONS = {
    JobStatus.PENDING: {JobStatus.PROCESSING},
    JobStatus.PROCESSING: {JobStatus.COMPLETED, JobStatus.FAILED},
    JobStatus.COMPLETED: set(),
    JobStatus.FAILED: set(),
}


class CamelModel(BaseModel):
    """Base model serialising field names as camelCase."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IngestionJob(CamelModel):
    """One PDF ingestion task tracked through its lifecycle."""
    id: str
    file_path: str
    collection_name: str
    filename: str
    status: JobStatus = JobStatus.PENDING
    created: datetime = Field(default_factory=utc_now)
    updated: Optional[datetime] = None
    error: Optional[str] = None


# Pydantic schemas for API
class UploadJobResponse(CamelModel):
    """Response after a PDF has been queued."""
    message: str = "PDF queued for processing"
    job_id: str
    status: JobStatus = JobStatus.PENDING
    filename: str


class ProcessJobRequest(CamelModel):
    """Request to start processing a queued job."""
    job_id: str = Field(..., min_length=1)


class ProcessJobResponse(CamelModel):
    message: str = "Processing started"
    job_id: str


class JobListResponse(CamelModel):
    """List of jobs, newest first."""
    jobs: list[IngestionJob]
    count: int


class CreateStoreRequest(CamelModel):
    name: str = Field(..., min_length=1, max_length=63)


class CreateStoreResponse(CamelModel):
    name: str
    status: str = "ready"
