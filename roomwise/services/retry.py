"""
Retry with exponential backoff and jitter for calls to external providers.

Each call is independent: there is no circuit breaker and no shared state.
Errors are classified by status code and exception type, never by parsing
arbitrary message text (the "rate limit" phrase is the only message check).
"""
import asyncio
import logging
import random
import socket
from dataclasses import dataclass
from typing import Awaitable, Callable, Optional, TypeVar

import aiohttp

from roomwise.core.exceptions import ProviderError

logger = logging.getLogger(__name__)

T = TypeVar("T")

RETRYABLE_STATUS_CODES = {429, 503, 504}

_NETWORK_ERRORS = (
    asyncio.TimeoutError,
    TimeoutError,
    ConnectionError,
    socket.gaierror,
    aiohttp.ClientConnectionError,
    aiohttp.ServerTimeoutError,
)

JITTER_FRACTION = 0.3


@dataclass(frozen=True)
class RetryPolicy:
    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 10.0


def _status_of(exc: BaseException) -> Optional[int]:
    if isinstance(exc, ProviderError):
        return exc.provider_status
    for attr in ("status_code", "status", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int):
            return value
    return None


def is_retryable(exc: BaseException) -> bool:
    """Return True if the error is transient and worth retrying."""
    if isinstance(exc, ProviderError):
        if exc.retryable:
            return True
        status = exc.provider_status
        return status is not None and status in RETRYABLE_STATUS_CODES

    status = _status_of(exc)
    if status is not None and status in RETRYABLE_STATUS_CODES:
        return True

    if isinstance(exc, _NETWORK_ERRORS):
        return True

    # SDK transport errors (httpx, openai) that do not subclass the builtins
    name = type(exc).__name__.lower()
    if any(kw in name for kw in ("timeout", "connect")):
        return True

    return "rate limit" in str(exc).lower()


def calculate_delay(attempt: int, base_delay: float, max_delay: float, rand: Callable[[], float] = random.random) -> float:
    """Backoff for the given zero-based attempt: base * 2^attempt plus up to 30% jitter, capped at max_delay."""
    delay = base_delay * (2 ** attempt)
    jitter = rand() * JITTER_FRACTION * delay
    return min(delay + jitter, max_delay)


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 10.0,
    label: str = "operation",
) -> T:
    """
    Run ``operation`` and retry it on transient failures.

    The operation is attempted at most ``max_retries + 1`` times. Non-retryable
    errors propagate after the first failure; once retries are exhausted the
    last error is re-raised.
    """
    last_error: Optional[BaseException] = None

    for attempt in range(max_retries + 1):
        try:
            return await operation()
        except Exception as exc:
            last_error = exc

            if not is_retryable(exc):
                raise

            if attempt == max_retries:
                break

            delay = calculate_delay(attempt, base_delay, max_delay)
            logger.warning(
                f"[Retry] {label} failed (attempt {attempt + 1}/{max_retries}), retrying in {delay:.2f}s: {exc}"
            )
            await asyncio.sleep(delay)

    logger.error(f"[Retry] {label} gave up after {max_retries + 1} attempts: {last_error}")
    raise last_error


async def retry_with_policy(operation: Callable[[], Awaitable[T]], policy: RetryPolicy, label: str = "operation") -> T:
    return await with_retry(
        operation,
        max_retries=policy.max_retries,
        base_delay=policy.base_delay,
        max_delay=policy.max_delay,
        label=label,
    )
