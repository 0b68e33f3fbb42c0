"""
Vector Store Ingestion API Endpoints.

Upload PDFs into a queue, trigger processing and poll job status.

Flow:
1. POST /vector_stores/add_file     -> file saved to PDF_QUEUE_DIR, job pending
2. POST /vector_stores/process_pdf  -> job handed to the background worker
3. GET  /vector_stores/job_status   -> pending | processing | completed | failed
"""

import asyncio
import logging
import random
import uuid
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, Query, Request, UploadFile

from pdf_ingest.api.deps import CollectionStoreDep, JobQueueDep, JobWorkerDep, SettingsDep
from pdf_ingest.core.rate_limit import upload_rate_limit
from pdf_ingest.models.ingestion_job import (
    CreateStoreRequest,
    CreateStoreResponse,
    JobListResponse,
    JobStatus,
    ProcessJobRequest,
    ProcessJobResponse,
    UploadJobResponse,
)
from pdf_ingest.services.retry import with_retry

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vector_stores", tags=["Vector Stores"])

BYTES_PER_MB = 1024 * 1024


def validate_upload(file: Optional[UploadFile], collection_name: Optional[str]) -> str:
    """
    Check the upload form and return the sanitised original filename.

    Raises:
        HTTPException 400: missing file or collection, or not a .pdf
    """
    if file is None or not file.filename:
        raise HTTPException(status_code=400, detail="No file uploaded")

    if not collection_name:
        raise HTTPException(status_code=400, detail="Collection name is required")

    # Drop any client supplied directory part
    filename = Path(file.filename.replace("\\", "/")).name
    if not filename.lower().endswith(".pdf"):
        raise HTTPException(status_code=400, detail="Only PDF files are supported")

    return filename


def _write_file(path: Path, content: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(content)


def _remove_file(path: Path) -> None:
    try:
        path.unlink(missing_ok=True)
    except OSError as e:
        logger.error(f"Error deleting file {path}: {e}")


@router.post("/add_file", status_code=202, response_model=UploadJobResponse)
@upload_rate_limit
async def add_file(
    request: Request,
    job_queue: JobQueueDep,
    job_worker: JobWorkerDep,
    settings: SettingsDep,
    file: Optional[UploadFile] = File(default=None, description="PDF file to ingest"),
    collection_name: Optional[str] = Form(default=None, alias="collectionName"),
) -> UploadJobResponse:
    """
    Queue a PDF for ingestion into a vector store collection.

    - **file**: PDF file (max MAX_UPLOAD_SIZE_MB)
    - **collectionName**: Target collection

    Returns 202 with the job id; processing runs in the background.
    """
    filename = validate_upload(file, collection_name)

    content = await file.read()
    max_bytes = settings.max_upload_size_mb * BYTES_PER_MB
    if len(content) > max_bytes:
        raise HTTPException(
            status_code=413,
            detail=(
                f"File too large. Maximum size is {settings.max_upload_size_mb}MB. "
                f"Got: {len(content) / BYTES_PER_MB:.2f}MB"
            ),
        )

    job_id = str(uuid.uuid4())
    file_path = Path(settings.pdf_queue_dir) / f"{job_id}_{filename}"

    try:
        await asyncio.to_thread(_write_file, file_path, content)
        job = job_queue.enqueue(str(file_path), collection_name, filename, job_id=job_id)

        if settings.auto_process_uploads:
            job_worker.submit(job.id)
    except Exception as e:
        logger.error(f"Failed to queue PDF {filename}: {e}")
        job_queue.discard(job_id)
        await asyncio.to_thread(_remove_file, file_path)
        raise HTTPException(status_code=500, detail=f"Failed to queue PDF: {str(e)}")

    logger.info(f"PDF upload queued: {filename} (job_id: {job.id}, collection: {collection_name})")

    return UploadJobResponse(job_id=job.id, status=job.status, filename=filename)


@router.post("/process_pdf", response_model=ProcessJobResponse)
async def process_pdf(
    body: ProcessJobRequest,
    job_queue: JobQueueDep,
    job_worker: JobWorkerDep,
) -> ProcessJobResponse:
    """
    Start processing a queued job.

    Returns immediately; poll job_status for the outcome. Triggering a job
    that is already running or finished has no effect.
    """
    job = job_queue.get_job(body.job_id)
    if job is None:
        raise HTTPException(status_code=404, detail=f"Job {body.job_id} not found")

    job_worker.submit(job.id)
    logger.info(f"Processing requested for job {job.id} ({job.status.value})")

    return ProcessJobResponse(job_id=job.id)


@router.get("/job_status")
async def job_status(
    job_queue: JobQueueDep,
    settings: SettingsDep,
    job_id: Optional[str] = Query(default=None, alias="jobId"),
    status: Optional[str] = Query(default=None),
    limit: Optional[int] = Query(default=None),
):
    """
    Get one job by jobId, or list jobs newest first.

    - **jobId**: Return this job only (404 if unknown)
    - **status**: Filter the list by status; unknown values are ignored
    - **limit**: Maximum number of jobs in the list
    """
    try:
        if random.random() < settings.job_cleanup_probability:
            job_queue.cleanup_old_jobs(settings.job_retention_hours)

        if job_id:
            job = job_queue.get_job(job_id)
            if job is None:
                raise HTTPException(status_code=404, detail=f"Job {job_id} not found")
            return job.model_dump(mode="json", by_alias=True)

        status_filter = None
        if status:
            try:
                status_filter = JobStatus(status)
            except ValueError:
                logger.debug(f"Ignoring unknown status filter: {status}")

        jobs = job_queue.get_jobs(limit=limit, status=status_filter)
        return JobListResponse(jobs=jobs, count=len(jobs)).model_dump(mode="json", by_alias=True)
    except HTTPException:
        raise
    except Exception as e:
        logger.error(f"Job status lookup failed: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to get job status: {str(e)}")


@router.post("/create_store", response_model=CreateStoreResponse)
async def create_store(
    body: CreateStoreRequest,
    collection_store: CollectionStoreDep,
    settings: SettingsDep,
) -> CreateStoreResponse:
    """Create the named collection, or fetch it when it already exists."""
    try:
        await with_retry(
            lambda: collection_store.get_or_create(body.name),
            settings.retry_max_attempts,
            "collection creation",
        )
    except Exception as e:
        logger.error(f"Failed to create vector store {body.name}: {e}")
        raise HTTPException(status_code=500, detail=f"Failed to create vector store: {str(e)}")

    logger.info(f"Vector store ready: {body.name}")
    return CreateStoreResponse(name=body.name)
