"""
Retry with exponential backoff for calls to external services (the object store).
"""

import time
import logging
from typing import Callable, Optional, TypeVar
from functools import wraps

import httpx

logger = logging.getLogger(__name__)

T = TypeVar('T')


def is_transient_http_error(exc: BaseException) -> bool:
    """Connection failures, 429 and 5xx responses are worth another attempt; other 4xx are not."""
    if isinstance(exc, httpx.TransportError):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        code = exc.response.status_code
        return code == 429 or code >= 500
    return False


def retry_with_backoff(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 30.0,
    exponential_base: float = 2.0,
    exceptions: tuple = (Exception,),
    retry_if: Optional[Callable[[BaseException], bool]] = None,
):
    """
    Decorator for retrying functions with exponential backoff.

    Args:
        max_retries: Retries after the first attempt
        initial_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for any single delay
        exponential_base: Growth factor between delays
        exceptions: Exception types that may be retried
        retry_if: Optional predicate; an exception it rejects is raised at once

    Example:
        @retry_with_backoff(max_retries=2, exceptions=(httpx.HTTPError,), retry_if=is_transient_http_error)
        def put_object():
            response = client.post(url, content=data)
            response.raise_for_status()
            return response
    """
    def decorator(func: Callable[..., T]) -> Callable[..., T]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> T:
            delay = initial_delay
            attempts = max_retries + 1

            for attempt in range(1, attempts + 1):
                try:
                    return func(*args, **kwargs)
                except exceptions as e:
                    if retry_if is not None and not retry_if(e):
                        raise
                    if attempt == attempts:
                        logger.error(f"{func.__name__} failed after {attempts} attempts: {e}")
                        raise
                    logger.warning(
                        f"{func.__name__} attempt {attempt}/{attempts} failed: {e}. "
                        f"Retrying in {delay:.2f}s"
                    )
                    time.sleep(delay)
                    delay = min(delay * exponential_base, max_delay)

        return wrapper
    return decorator
