"""
Retry wrapper for network-dependent operations.

Retryable: network-level failures (no HTTP status, connection reset,
timeouts, DNS errors), HTTP 5xx and HTTP 429. Anything else is raised after
the first attempt. Backoff is exponential with jitter, capped at 10s.
"""

import asyncio
import logging
import random
import socket
from typing import Any, Awaitable, Callable, Optional, TypeVar

import httpx

logger = logging.getLogger(__name__)

T = TypeVar("T")

BASE_DELAY_MS = 1000
MAX_JITTER_MS = 1000
MAX_DELAY_MS = 10000

NETWORK_ERRORS = (ConnectionResetError, TimeoutError, socket.gaierror, httpx.TransportError)


def get_error_status(error: BaseException) -> Optional[int]:
    """HTTP status attached to an error by common client libraries, if any."""
    for attr in ("status", "status_code"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value

    response = getattr(error, "response", None)
    value = getattr(response, "status_code", None)
    if isinstance(value, int):
        return value

    # google-genai APIError exposes the HTTP status as .code
    value = getattr(error, "code", None)
    if isinstance(value, int) and not isinstance(value, bool) and 100 <= value < 600:
        return value
    return None


def is_retryable_error(error: BaseException) -> bool:
    if getattr(error, "retryable", None) is False:
        return False
    if isinstance(error, NETWORK_ERRORS):
        return True

    status = get_error_status(error)
    if status is None:
        return True
    return status >= 500 or status == 429


def backoff_delay(attempt: int) -> float:
    """Delay in seconds before the next try, attempt counting from 1."""
    delay_ms = min(BASE_DELAY_MS * 2 ** attempt + random.random() * MAX_JITTER_MS, MAX_DELAY_MS)
    return delay_ms / 1000


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    description: str = "operation",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep
) -> T:
    """
    Await operation() up to max_retries times.

    Args:
        operation: Zero-argument coroutine factory
        max_retries: Total attempts for retryable errors
        description: Operation name used in log messages
        sleep: Awaitable delay function (injectable for tests)

    Returns:
        The operation's result

    Raises:
        The last error once attempts are exhausted, or a non-retryable
        error immediately.
    """
    attempt = 0
    while True:
        try:
            return await operation()
        except Exception as e:
            attempt += 1

            if not is_retryable_error(e):
                logger.error(f"Non-retryable error in {description}: {e}")
                raise

            if attempt >= max_retries:
                logger.error(f"Failed {description} after {max_retries} attempts: {e}")
                raise

            delay = backoff_delay(attempt)
            logger.warning(
                f"Error in {description} (attempt {attempt}/{max_retries}), "
                f"retrying in {delay * 1000:.0f}ms: {e}"
            )
            await sleep(delay)
