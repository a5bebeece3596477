# ABOUTME: Pipeline error taxonomy and tenacity-based retry helpers
# ABOUTME: Classifies HTTP failures as retryable or not and computes capped, jittered backoff

import asyncio
import random
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import httpx
from tenacity import AsyncRetrying, RetryCallState, retry_if_exception, stop_after_attempt

from lomba_relay.utils.logging import get_logger

T = TypeVar("T")

logger = get_logger(__name__)


class PipelineError(Exception):
    """Base exception for pipeline failures."""

    pass


class SourceFetchError(PipelineError):
    """Raised when a source listing cannot be fetched; fatal to that source only."""

    def __init__(self, source: str, message: str):
        super().__init__(f"{source}: {message}")
        self.source = source


class RateLimitError(SourceFetchError):
    """Raised when an upstream throttles requests."""

    pass


class DetailFetchError(PipelineError):
    """Raised when a candidate's detail page cannot be fetched."""

    pass


class RelocationError(PipelineError):
    """Raised when an asset cannot be re-hosted."""

    def __init__(self, message: str, retryable: bool = False):
        super().__init__(message)
        self.retryable = retryable


class ProviderError(PipelineError):
    """Raised when an AI provider call fails or returns unusable data."""

    def __init__(self, provider: str, message: str):
        super().__init__(f"{provider}: {message}")
        self.provider = provider


class PersistenceError(PipelineError):
    """Raised when the database is unreachable or a statement fails. Aborts the run."""

    pass


class DeliveryError(PipelineError):
    """Raised when a channel send fails."""

    def __init__(self, channel: str, message: str):
        super().__init__(f"{channel}: {message}")
        self.channel = channel


class SourcesExhaustedError(PipelineError):
    """Raised when every source failed and no candidates were collected. Aborts the run."""

    pass


def is_retryable(exc: BaseException) -> bool:
    """Timeouts, connection failures and 5xx responses are worth retrying; everything else is not."""
    if isinstance(exc, RelocationError):
        return exc.retryable
    if isinstance(exc, RateLimitError):
        return True
    if isinstance(exc, (httpx.TimeoutException, httpx.NetworkError, httpx.RemoteProtocolError)):
        return True
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code >= 500
    return False


def describe_http_error(exc: Exception) -> str:
    if isinstance(exc, httpx.HTTPStatusError):
        return f"HTTP {exc.response.status_code} for {exc.request.url}"
    if isinstance(exc, httpx.TimeoutException):
        return f"timeout: {exc}"
    return str(exc) or type(exc).__name__


def backoff_delay(
    attempt: int,
    base: float,
    maximum: float,
    multiplier: float = 2.0,
    jitter: float = 0.0,
    rng: Callable[[], float] = random.random,
) -> float:
    """Delay before retry number ``attempt`` (0-based).

    ``min(base * multiplier**attempt, maximum)``, then shifted by up to
    ``±jitter`` of itself.
    """
    delay = min(base * multiplier**attempt, maximum)
    if jitter:
        delay += delay * jitter * (2 * rng() - 1)
    return max(0.0, delay)


def wait_backoff(
    base: float, maximum: float, multiplier: float = 2.0, jitter: float = 0.0
) -> Callable[[RetryCallState], float]:
    """Tenacity wait strategy built on backoff_delay."""

    def _wait(retry_state: RetryCallState) -> float:
        return backoff_delay(retry_state.attempt_number - 1, base, maximum, multiplier, jitter)

    return _wait


async def retry_async(
    func: Callable[[], Awaitable[T]],
    *,
    attempts: int,
    wait: Callable[[RetryCallState], float],
    retry_on: Callable[[BaseException], bool] = is_retryable,
    label: str = "operation",
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    **log_context: Any,
) -> T:
    """Run ``func`` with bounded attempts, retrying only errors accepted by ``retry_on``."""

    def _before_sleep(retry_state: RetryCallState) -> None:
        exc = retry_state.outcome.exception() if retry_state.outcome else None
        logger.warning(
            "Retrying after failure",
            operation=label,
            attempt=retry_state.attempt_number,
            max_attempts=attempts,
            delay_seconds=round(retry_state.next_action.sleep, 2) if retry_state.next_action else None,
            error=str(exc),
            error_type=type(exc).__name__,
            **log_context,
        )

    async for attempt in AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait,
        retry=retry_if_exception(retry_on),
        before_sleep=_before_sleep,
        sleep=sleep,
        reraise=True,
    ):
        with attempt:
            return await func()

    raise AssertionError("unreachable")  # pragma: no cover
