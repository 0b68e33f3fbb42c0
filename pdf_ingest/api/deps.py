"""
API Dependencies - Dependency Injection for FastAPI

Routes receive their services through these providers; tests swap them
with ``app.dependency_overrides``.
"""
from typing import Annotated

from fastapi import Depends

from pdf_ingest.core.config import Settings, get_settings
from pdf_ingest.repositories.vector_store_repository import (
    CollectionStore,
    get_collection_store,
)
from pdf_ingest.services.background_tasks import JobWorker, get_job_worker
from pdf_ingest.services.job_queue import JobQueue, get_job_queue


def provide_settings() -> Settings:
    return get_settings()


def provide_job_queue() -> JobQueue:
    return get_job_queue()


def provide_job_worker() -> JobWorker:
    return get_job_worker()


def provide_collection_store() -> CollectionStore:
    return get_collection_store()


SettingsDep = Annotated[Settings, Depends(provide_settings)]

JobQueueDep = Annotated[JobQueue, Depends(provide_job_queue)]

JobWorkerDep = Annotated[JobWorker, Depends(provide_job_worker)]

CollectionStoreDep = Annotated[CollectionStore, Depends(provide_collection_store)]
