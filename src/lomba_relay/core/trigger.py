# ABOUTME: Hands newly admitted record ids to the extraction stage
# ABOUTME: Either emits one event to the event API or runs the batch scheduler in-process

from typing import Protocol

import httpx

from lomba_relay.config import Config, get_config
from lomba_relay.core.scheduler import BatchScheduler, BatchSummary
from lomba_relay.utils.logging import get_logger, log_api_call


class BatchTrigger(Protocol):
    async def dispatch(self, record_ids: list[int], source: str) -> BatchSummary | None:
        """Start extraction for ``record_ids``. Returns a summary only when run in-process."""
        ...


class EventTrigger:
    """Emits a single batch-start event carrying all admitted ids."""

    def __init__(self, config: Config | None = None, http_client: httpx.AsyncClient | None = None):
        self.config = config or get_config()
        self.http_client = http_client or httpx.AsyncClient(timeout=30.0)
        self.logger = get_logger(__name__)

    def build_event(self, record_ids: list[int], source: str) -> dict:
        return {"name": self.config.event_name, "data": {"recordIds": record_ids, "source": source}}

    @log_api_call("event-api")
    async def dispatch(self, record_ids: list[int], source: str) -> BatchSummary | None:
        url = f"{self.config.event_api_url.rstrip('/')}/e/{self.config.event_key}"
        response = await self.http_client.post(url, json=self.build_event(record_ids, source))
        response.raise_for_status()
        self.logger.info("Batch event sent", event=self.config.event_name, records=len(record_ids), source=source)
        return None

    async def aclose(self) -> None:
        await self.http_client.aclose()


class InProcessTrigger:
    """Runs the batch scheduler directly when no event key is configured."""

    def __init__(self, scheduler: BatchScheduler):
        self.scheduler = scheduler

    async def dispatch(self, record_ids: list[int], source: str) -> BatchSummary | None:
        return await self.scheduler.run(record_ids, source)


def build_trigger(config: Config, scheduler: BatchScheduler) -> BatchTrigger:
    if config.event_key:
        return EventTrigger(config)
    return InProcessTrigger(scheduler)
