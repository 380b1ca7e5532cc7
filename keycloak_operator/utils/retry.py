"""
Retry policy for the operator's Kubernetes API calls.

Transient API failures (throttling, timeouts, 5xx) are retried with
exponential backoff. Statuses that carry a meaning for the caller, such as
404 on a read ("object absent") or 409 on a create ("already exists"), can
be declared as tolerated: the call then resolves to None without retrying.
"""
import asyncio
import functools
from typing import Any, Awaitable, Callable, Iterable, Optional, TypeVar

from kubernetes_asyncio.client import ApiException

from keycloak_operator.config.logging import get_logger

logger = get_logger(__name__)

T = TypeVar('T')

NOT_FOUND = 404
CONFLICT = 409

RETRYABLE_STATUS_CODES = frozenset({
    408,  # Request Timeout
    429,  # Too Many Requests
    500,
    502,
    503,
    504,
})


def is_retryable_k8s_error(exception: Exception) -> bool:
    """Whether a failed API call is worth another attempt."""
    return isinstance(exception, ApiException) and exception.status in RETRYABLE_STATUS_CODES


def backoff_delay(attempt: int, initial_delay: float, max_delay: float) -> float:
    """Delay before retry number `attempt` (0-based), doubling up to `max_delay`."""
    return min(initial_delay * (2 ** attempt), max_delay)


def retry_on_k8s_error(
    max_retries: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 10.0,
    tolerate: Iterable[int] = (),
) -> Callable[[Callable[..., Awaitable[T]]], Callable[..., Awaitable[Optional[T]]]]:
    """
    Decorate an async Kubernetes call with the operator's retry policy.

    Args:
        max_retries: Retries after the first attempt
        initial_delay: Delay before the first retry, in seconds
        max_delay: Upper bound for a single delay, in seconds
        tolerate: API statuses that end the call with None

    Example:
        @retry_on_k8s_error(tolerate=(NOT_FOUND,))
        async def read_statefulset(name: str, namespace: str):
            ...
    """
    tolerated = frozenset(tolerate)

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[Optional[T]]]:
        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> Optional[T]:
            attempt = 0
            while True:
                try:
                    return await func(*args, **kwargs)
                except ApiException as e:
                    if e.status in tolerated:
                        logger.debug(
                            "k8s_api_call_tolerated",
                            function=func.__name__,
                            status_code=e.status,
                        )
                        return None
                    if not is_retryable_k8s_error(e):
                        raise
                    if attempt >= max_retries:
                        logger.error(
                            "k8s_api_call_failed_max_retries",
                            function=func.__name__,
                            attempts=attempt + 1,
                            status_code=e.status,
                            error=e.reason,
                        )
                        raise

                    delay = backoff_delay(attempt, initial_delay, max_delay)
                    logger.warning(
                        "k8s_api_call_failed_retrying",
                        function=func.__name__,
                        attempt=attempt + 1,
                        delay_seconds=delay,
                        status_code=e.status,
                    )
                    await asyncio.sleep(delay)
                    attempt += 1

        return wrapper
    return decorator
