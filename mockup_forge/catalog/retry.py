"""Exponential backoff with jitter for catalog calls.

Retries throttling and server errors (429, 500, 502, 503, 504) and transport
failures. Respects Retry-After headers. Logs each retry attempt.
Deadline expiry is never retried. With ``max_retries=0`` (the default
configuration) calls are attempted once and failures go straight to the
queue's own retry policy.
"""

from __future__ import annotations

import functools
import logging
import random
import time
from typing import Any, Callable

from mockup_forge.errors import CatalogAPIError, CatalogTransportError

logger = logging.getLogger(__name__)

# HTTP status codes that trigger a retry
RETRYABLE_STATUS_CODES = {429, 500, 502, 503, 504}


def retry_with_backoff(
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 60.0,
    jitter: float = 0.3,
    sleep: Callable[[float], None] = time.sleep,
) -> Callable:
    """Decorator: retry a catalog call with exponential backoff + jitter.

    Args:
        max_retries: Maximum number of retry attempts.
        base_delay: Initial delay in seconds.
        max_delay: Maximum delay cap in seconds.
        jitter: Jitter factor (0.0-1.0). Adds randomness to prevent thundering herd.
        sleep: Sleep function (injected by tests).
    """

    def decorator(fn: Callable) -> Callable:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            for attempt in range(max_retries + 1):
                try:
                    return fn(*args, **kwargs)
                except CatalogAPIError as e:
                    if e.status_code not in RETRYABLE_STATUS_CODES or attempt == max_retries:
                        raise
                    delay = compute_delay(
                        attempt, base_delay, max_delay, jitter, e.retry_after
                    )
                    logger.warning(
                        "Retry %d/%d for %s (HTTP %d), waiting %.1fs",
                        attempt + 1,
                        max_retries,
                        fn.__name__,
                        e.status_code,
                        delay,
                    )
                    sleep(delay)
                except CatalogTransportError as e:
                    if attempt == max_retries:
                        raise
                    delay = compute_delay(attempt, base_delay, max_delay, jitter)
                    logger.warning(
                        "Retry %d/%d for %s (transport error: %s), waiting %.1fs",
                        attempt + 1,
                        max_retries,
                        fn.__name__,
                        e.message,
                        delay,
                    )
                    sleep(delay)
            raise AssertionError("unreachable")  # pragma: no cover

        return wrapper

    return decorator


def compute_delay(
    attempt: int,
    base_delay: float,
    max_delay: float,
    jitter: float,
    retry_after: str | None = None,
) -> float:
    """Compute delay with exponential backoff + jitter, respecting Retry-After."""
    if retry_after:
        try:
            return min(float(retry_after), max_delay)
        except ValueError:
            pass

    # Exponential backoff: base * 2^attempt
    delay = base_delay * (2**attempt)
    delay = min(delay, max_delay)

    jitter_amount = delay * jitter
    delay += random.uniform(-jitter_amount, jitter_amount)

    return max(0.1, delay)
