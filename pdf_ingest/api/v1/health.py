"""
Health Check Endpoint

GET /api/v1/health      - Shallow liveness, no external calls
GET /api/v1/health/deep - API, worker, job queue and vector store status
"""
import asyncio
import logging

from fastapi import APIRouter

from pdf_ingest.api.deps import CollectionStoreDep, JobQueueDep, JobWorkerDep
from pdf_ingest.core.config import settings
from pdf_ingest.models.ingestion_job import JobStatus
from pdf_ingest.models.schemas import ComponentHealth, ComponentStatus, HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["Health"])

# Seconds allowed for the vector store heartbeat
HEALTH_CHECK_TIMEOUT = 5


def check_worker_health(worker) -> ComponentHealth:
    if worker.is_running:
        return ComponentHealth(
            name="Job Worker",
            status=ComponentStatus.HEALTHY,
            message=f"Running, {worker.pending_count} job(s) waiting",
        )
    return ComponentHealth(
        name="Job Worker",
        status=ComponentStatus.UNAVAILABLE,
        message="Worker not running",
    )


def check_job_queue_health(job_queue) -> ComponentHealth:
    counts = {status.value: len(job_queue.get_jobs(status=status)) for status in JobStatus}
    return ComponentHealth(
        name="Job Queue",
        status=ComponentStatus.HEALTHY,
        message=", ".join(f"{name}={count}" for name, count in counts.items()),
    )


async def check_vector_store_health(collection_store) -> ComponentHealth:
    """ChromaDB heartbeat, bounded by HEALTH_CHECK_TIMEOUT."""
    try:
        available = await asyncio.wait_for(
            asyncio.to_thread(collection_store.is_available),
            timeout=HEALTH_CHECK_TIMEOUT,
        )
    except asyncio.TimeoutError:
        logger.warning(f"Vector store health check timeout (>{HEALTH_CHECK_TIMEOUT}s)")
        return ComponentHealth(
            name="Vector Store",
            status=ComponentStatus.UNAVAILABLE,
            message=f"Health check timeout (>{HEALTH_CHECK_TIMEOUT}s)",
        )
    except Exception as e:
        logger.warning(f"Vector store health check failed: {e}")
        return ComponentHealth(name="Vector Store", status=ComponentStatus.UNAVAILABLE, message=str(e))

    if available:
        return ComponentHealth(name="Vector Store", status=ComponentStatus.HEALTHY, message="ChromaDB reachable")
    return ComponentHealth(name="Vector Store", status=ComponentStatus.UNAVAILABLE, message="ChromaDB unreachable")


def determine_overall_status(components: dict[str, ComponentHealth]) -> str:
    """
    - healthy: all components healthy
    - unhealthy: the worker is down, so nothing gets processed
    - degraded: anything else
    """
    statuses = [c.status for c in components.values()]
    if all(s == ComponentStatus.HEALTHY for s in statuses):
        return "healthy"
    if components["worker"].status == ComponentStatus.UNAVAILABLE:
        return "unhealthy"
    return "degraded"


@router.get("", summary="Shallow Health Check")
async def health_check(job_worker: JobWorkerDep, job_queue: JobQueueDep):
    """Liveness plus in-process worker and queue state."""
    return {
        "status": "ok",
        "service": settings.app_name,
        "version": settings.app_version,
        "environment": settings.environment,
        "worker": {
            "running": job_worker.is_running,
            "pending": job_worker.pending_count,
        },
        "jobs": len(job_queue.get_jobs()),
    }


@router.get("/deep", response_model=HealthResponse, summary="Deep Health Check")
async def health_check_deep(
    job_worker: JobWorkerDep,
    job_queue: JobQueueDep,
    collection_store: CollectionStoreDep,
) -> HealthResponse:
    """Checks the worker, the job queue and the ChromaDB heartbeat."""
    components = {
        "api": ComponentHealth(name="API", status=ComponentStatus.HEALTHY, message="API is responding"),
        "worker": check_worker_health(job_worker),
        "job_queue": check_job_queue_health(job_queue),
        "vector_store": await check_vector_store_health(collection_store),
    }

    overall_status = determine_overall_status(components)
    logger.info(f"Deep health check: {overall_status}")

    return HealthResponse(
        status=overall_status,
        version=settings.app_version,
        environment=settings.environment,
        components=components,
    )
