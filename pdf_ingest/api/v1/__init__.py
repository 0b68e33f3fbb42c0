"""
API Version 1 Router
Aggregates all v1 endpoints
"""
from fastapi import APIRouter

from pdf_ingest.api.v1.health import router as health_router
from pdf_ingest.api.v1.vector_stores import router as vector_stores_router

router = APIRouter(tags=["v1"])

router.include_router(health_router)
router.include_router(vector_stores_router)  # add_file, process_pdf, job_status, create_store


@router.get("/")
async def api_v1_root():
    """API v1 root endpoint"""
    return {"api": "v1", "status": "active"}
