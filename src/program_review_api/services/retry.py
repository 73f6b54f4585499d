"""Retry utilities for document store reads with exponential backoff."""
import logging
from typing import Any, Callable, TypeVar

from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
    before_sleep_log,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")

# Default retry configuration
DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_MIN_WAIT_SECONDS = 1
DEFAULT_MAX_WAIT_SECONDS = 10


def is_retryable_error(exception: BaseException) -> bool:
    """
    Determine if a storage exception is worth retrying.

    Retryable errors include:
    - Rate limit errors (429)
    - Server errors (5xx)
    - Timeout and connection errors

    Everything else (bad requests, auth failures, missing rows) fails at once.
    """
    error_str = str(exception).lower()
    exception_type = type(exception).__name__.lower()

    if "429" in error_str or ("rate" in error_str and "limit" in error_str):
        return True

    if any(code in error_str for code in ["500", "502", "503", "504"]):
        return True

    if "timeout" in error_str or "timed out" in error_str or "timeout" in exception_type:
        return True

    if "connection" in error_str or "connect" in exception_type:
        return True

    if "temporary failure in name resolution" in error_str:
        return True

    # Default: don't retry unknown errors
    return False


def create_retry_decorator(
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    min_wait_seconds: float = DEFAULT_MIN_WAIT_SECONDS,
    max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS,
) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """
    Create a retry decorator with exponential backoff for retryable errors.

    Args:
        max_attempts: Maximum number of attempts
        min_wait_seconds: Minimum wait time between retries
        max_wait_seconds: Maximum wait time between retries

    Returns:
        A retry decorator configured with the specified parameters
    """
    return retry(
        retry=retry_if_exception(is_retryable_error),
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(
            multiplier=1,
            min=min_wait_seconds,
            max=max_wait_seconds,
        ),
        before_sleep=before_sleep_log(logger, logging.WARNING),
        reraise=True,
    )


# Pre-configured decorator for document store reads
storage_retry = create_retry_decorator()


def retry_sync_call(
    func: Callable[..., T],
    *args: Any,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    min_wait_seconds: float = DEFAULT_MIN_WAIT_SECONDS,
    max_wait_seconds: float = DEFAULT_MAX_WAIT_SECONDS,
    **kwargs: Any,
) -> T:
    """Call ``func`` with the same policy as :data:`storage_retry`."""
    decorated = create_retry_decorator(max_attempts, min_wait_seconds, max_wait_seconds)(func)
    return decorated(*args, **kwargs)
