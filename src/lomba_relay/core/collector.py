# ABOUTME: Runs every source adapter concurrently and merges their candidates
# ABOUTME: Web sources get a bounded escalating retry; one source failing never aborts the others

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import httpx
from pydantic import BaseModel, Field

from lomba_relay.config import Config, get_config
from lomba_relay.sources import CandidateItem, SourceAdapter, SourceBatch, SourceError
from lomba_relay.utils.logging import RunContext
from lomba_relay.utils.retry import (
    SourceFetchError,
    SourcesExhaustedError,
    describe_http_error,
    retry_async,
    wait_backoff,
)


class SourceRun(BaseModel):
    """Outcome of one adapter within a collection run."""

    source: str
    success: bool
    count: int = 0
    attempts: int = 1
    error: str | None = None


class CollectorResult(BaseModel):
    """Aggregated candidates across all sources."""

    items: list[CandidateItem] = Field(default_factory=list)
    errors: list[SourceError] = Field(default_factory=list)
    sources: list[SourceRun] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.items)


def _is_source_failure(exc: BaseException) -> bool:
    return isinstance(exc, (SourceFetchError, httpx.HTTPError))


async def retry_web_source(
    adapter: SourceAdapter,
    config: Config,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> tuple[SourceBatch, int]:
    """Fetch a web source until it yields candidates, up to the configured attempt cap.

    An empty listing counts as a failed attempt because these sites only ever
    come back empty when the page failed to render.

    Returns:
        The successful batch and the number of attempts it took

    Raises:
        SourceFetchError: When every attempt failed
    """
    attempts = 0

    async def attempt() -> SourceBatch:
        nonlocal attempts
        attempts += 1
        batch = await adapter.fetch_candidates()
        if batch.count == 0:
            raise SourceFetchError(adapter.origin.value, "listing returned no items")
        return batch

    batch = await retry_async(
        attempt,
        attempts=config.web_retry_max_attempts,
        wait=wait_backoff(config.web_retry_base_delay, config.web_retry_max_delay, config.web_retry_multiplier),
        retry_on=_is_source_failure,
        label="web-source",
        sleep=sleep,
        source=adapter.origin.value,
    )
    return batch, attempts


class FanOutCollector:
    """Collects candidates from all adapters in parallel."""

    def __init__(
        self,
        adapters: list[SourceAdapter],
        config: Config | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.adapters = adapters
        self.config = config or get_config()
        self.sleep = sleep

    async def _run_source(self, adapter: SourceAdapter, ctx: RunContext) -> tuple[SourceRun, SourceBatch | None]:
        source = adapter.origin.value
        attempts = 1
        try:
            if adapter.is_web_source:
                batch, attempts = await ctx.time(f"source:{source}", retry_web_source(adapter, self.config, self.sleep))
            else:
                batch = await ctx.time(f"source:{source}", adapter.fetch_candidates())
        except Exception as e:
            message = describe_http_error(e) if isinstance(e, httpx.HTTPError) else str(e)
            ctx.logger.error("Source failed", source=source, error=message, error_type=type(e).__name__)
            return SourceRun(source=source, success=False, attempts=attempts, error=message), None

        ctx.logger.info("Source collected", source=source, count=batch.count, attempts=attempts)
        return SourceRun(source=source, success=True, count=batch.count, attempts=attempts), batch

    async def collect(self, ctx: RunContext | None = None) -> CollectorResult:
        """Run all adapters concurrently and concatenate their candidates.

        Raises:
            SourcesExhaustedError: If every source failed and nothing was collected
        """
        ctx = ctx or RunContext(pipeline="collector")
        outcomes = await asyncio.gather(*(self._run_source(adapter, ctx) for adapter in self.adapters))

        result = CollectorResult()
        for run, batch in outcomes:
            result.sources.append(run)
            if batch is not None:
                result.items.extend(batch.items)
                result.errors.extend(batch.errors)
            if run.error:
                result.errors.append(SourceError(source=run.source, message=run.error))

        if self.adapters and result.count == 0 and not any(run.success for run in result.sources):
            details = "; ".join(f"{err.source}: {err.message}" for err in result.errors)
            raise SourcesExhaustedError(f"All sources failed: {details}")

        ctx.logger.info(
            "Collection complete",
            total=result.count,
            sources={run.source: run.count for run in result.sources},
            errors=len(result.errors),
        )
        return result
