"""
Rate Limiting Module

Implements rate limiting using slowapi to keep upload bursts from flooding
the job queue. Returns HTTP 429 with retry-after header when limit exceeded.
"""
import logging

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from slowapi import Limiter
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from pdf_ingest.core.config import settings
from pdf_ingest.models.schemas import RateLimitResponse

logger = logging.getLogger(__name__)


def get_client_identifier(request: Request) -> str:
    """
    Get unique client identifier for rate limiting.
    Uses API key if present, otherwise falls back to IP address.
    """
    api_key = request.headers.get("X-API-Key")
    if api_key:
        return f"api_key:{api_key[:8]}..."  # Partial key only

    return get_remote_address(request)


limiter = Limiter(key_func=get_client_identifier)


def rate_limit_exceeded_handler(request: Request, exc: RateLimitExceeded) -> Response:
    """Returns HTTP 429 with a Retry-After header."""
    retry_after = settings.rate_limit_window_seconds

    # Window length of the limit that was hit, e.g. 60 for "20/minute"
    limit_item = getattr(getattr(exc, "limit", None), "limit", None)
    if limit_item is not None:
        retry_after = int(limit_item.get_expiry())

    logger.warning(f"Rate limit exceeded for {get_client_identifier(request)}: {exc.detail}")

    response = RateLimitResponse(
        message=f"Rate limit exceeded. Try again in {retry_after} seconds.",
        retry_after=retry_after,
    )

    return JSONResponse(
        status_code=429,
        content=response.model_dump(mode="json"),
        headers={"Retry-After": str(retry_after)},
    )


# Uploads write to disk and start OCR work, so they get a stricter limit
upload_rate_limit = limiter.limit(settings.upload_rate_limit)
