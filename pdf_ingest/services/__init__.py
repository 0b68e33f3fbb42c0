"""Service layer for the PDF ingestion pipeline."""

from typing import Optional

from pdf_ingest.core.config import Settings, get_settings
from pdf_ingest.services.background_tasks import JobWorker, get_job_worker, init_job_worker
from pdf_ingest.services.job_processor import PDFJobProcessor
from pdf_ingest.services.job_queue import InMemoryJobStore, JobQueue, get_job_queue
from pdf_ingest.services.retry import with_retry


def build_job_worker(settings: Optional[Settings] = None) -> JobWorker:
    """Wire the extraction cascade, embeddings and vector store into a worker."""
    from pdf_ingest.engine.gemini_embedding import GeminiDocumentEmbeddings
    from pdf_ingest.engine.pdf_processor import PDFProcessor
    from pdf_ingest.repositories.vector_store_repository import get_collection_store

    settings = settings or get_settings()
    config = settings.processing_config()
    job_queue = get_job_queue()

    processor = PDFJobProcessor(
        job_queue=job_queue,
        pdf_processor=PDFProcessor(config),
        embeddings=GeminiDocumentEmbeddings(),
        collection_store=get_collection_store(),
        config=config,
        max_retries=settings.retry_max_attempts,
    )
    return JobWorker(
        processor=processor,
        job_queue=job_queue,
        concurrency=settings.worker_concurrency,
        cleanup_interval_seconds=settings.job_cleanup_interval_seconds,
        retention_hours=settings.job_retention_hours,
    )


__all__ = [
    "InMemoryJobStore",
    "JobQueue",
    "JobWorker",
    "PDFJobProcessor",
    "build_job_worker",
    "get_job_queue",
    "get_job_worker",
    "init_job_worker",
    "with_retry",
]
