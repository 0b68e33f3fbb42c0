"""
PDF Ingestion Service - FastAPI Application Entry Point

Upload -> extraction cascade -> embedding -> vector collection, driven by a
background job worker.
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded

from pdf_ingest.api.deps import JobWorkerDep
from pdf_ingest.core.config import settings
from pdf_ingest.core.rate_limit import limiter, rate_limit_exceeded_handler
from pdf_ingest.models.schemas import ErrorDetail, ErrorResponse

# Configure logging
logging.basicConfig(
    level=getattr(logging, settings.log_level),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """
    Application lifespan manager.

    - Startup: create the queue directory, start the job worker, check the
      vector store (warn only, don't crash)
    - Shutdown: stop the job worker
    """
    logger.info(f"Starting {settings.app_name} v{settings.app_version}")
    logger.info(f"Environment: {settings.environment}")
    logger.info(f"Debug mode: {settings.debug}")

    os.makedirs(settings.pdf_queue_dir, exist_ok=True)
    logger.info(f"PDF queue directory: {settings.pdf_queue_dir}")

    from pdf_ingest.services.background_tasks import get_job_worker
    worker = get_job_worker()
    worker.start()

    try:
        from pdf_ingest.repositories.vector_store_repository import get_collection_store
        if get_collection_store().is_available():
            logger.info("ChromaDB connection: Available")
        else:
            logger.warning("ChromaDB connection: Unavailable (service will continue)")
    except Exception as e:
        logger.warning(f"ChromaDB validation failed: {e} (service will continue)")

    logger.info(f"{settings.app_name} started successfully")

    yield

    logger.info(f"Shutting down {settings.app_name}...")
    try:
        await worker.stop()
    except Exception as e:
        logger.error(f"Failed to stop job worker: {e}")
    logger.info(f"{settings.app_name} shutdown complete")


def create_application() -> FastAPI:
    """
    Application factory pattern.
    Creates and configures the FastAPI application.
    """
    app = FastAPI(
        title=settings.app_name,
        description="PDF ingestion service - extraction cascade, embeddings and vector storage",
        version=settings.app_version,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )

    # Credentials cannot be combined with a wildcard origin
    allow_all = settings.cors_origins == ["*"]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=not allow_all,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["*"],
    )

    # Configure Rate Limiting
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    # Register exception handlers
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    # Include API routers
    from pdf_ingest.api.v1 import router as api_v1_router
    app.include_router(api_v1_router, prefix=settings.api_v1_prefix)

    @app.get("/", tags=["Root"])
    async def root():
        """Root endpoint - service information"""
        return {
            "service": settings.app_name,
            "version": settings.app_version,
            "environment": settings.environment,
            "docs": "/docs",
        }

    @app.get("/health", tags=["Health"])
    async def health_check_simple(job_worker: JobWorkerDep):
        """Simple liveness check for load balancers."""
        return {
            "status": "ok",
            "worker": "running" if job_worker.is_running else "stopped",
        }

    return app


# =============================================================================
# Exception Handlers
# =============================================================================

async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """
    Handle Pydantic validation errors.
    Returns HTTP 400 with detailed error information.
    """
    errors = []
    for error in exc.errors():
        errors.append(
            ErrorDetail(
                field=".".join(str(loc) for loc in error["loc"]),
                message=error["msg"],
                code=error["type"],
            )
        )

    response = ErrorResponse(
        error="validation_error",
        message="Request validation failed",
        details=errors,
        request_id=request.headers.get("X-Request-ID"),
    )

    logger.warning(f"Validation error: {response.model_dump_json()}")

    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content=response.model_dump(mode="json"),
    )


async def general_exception_handler(
    request: Request, exc: Exception
) -> JSONResponse:
    """
    Handle unexpected exceptions.
    Returns HTTP 500 while keeping the service available.
    """
    logger.exception(f"Unexpected error: {exc}")

    response = ErrorResponse(
        error="internal_error",
        message="An unexpected error occurred" if not settings.debug else str(exc),
        request_id=request.headers.get("X-Request-ID"),
    )

    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content=response.model_dump(mode="json"),
    )


# Create application instance
app = create_application()
