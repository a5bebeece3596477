# ABOUTME: Tests for handing admitted record ids to the extraction stage
# ABOUTME: Event API requests are captured with httpx.MockTransport

import json
from unittest.mock import AsyncMock, Mock

import httpx
import pytest

from lomba_relay.config import Config
from lomba_relay.core.scheduler import BatchSummary
from lomba_relay.core.trigger import EventTrigger, InProcessTrigger, build_trigger


class TestEventTrigger:
    """Test the event payload and endpoint."""

    @pytest.mark.asyncio
    async def test_posts_single_event_with_all_ids(self):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json={"ids": ["evt"]})

        config = Config(event_api_url="https://events.example/", event_key="k123")
        trigger = EventTrigger(config, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))

        result = await trigger.dispatch([4, 5, 6], "cron")

        assert result is None
        assert len(requests) == 1
        assert str(requests[0].url) == "https://events.example/e/k123"
        assert json.loads(requests[0].content) == {
            "name": "process/batches.start",
            "data": {"recordIds": [4, 5, 6], "source": "cron"},
        }

    @pytest.mark.asyncio
    async def test_http_errors_propagate(self):
        config = Config(event_key="k123")
        trigger = EventTrigger(
            config, http_client=httpx.AsyncClient(transport=httpx.MockTransport(lambda r: httpx.Response(503)))
        )

        with pytest.raises(httpx.HTTPStatusError):
            await trigger.dispatch([1], "cron")


class TestBuildTrigger:
    def test_event_key_selects_event_trigger(self):
        assert isinstance(build_trigger(Config(event_key="k"), Mock()), EventTrigger)

    def test_no_event_key_runs_in_process(self):
        assert isinstance(build_trigger(Config(event_key=""), Mock()), InProcessTrigger)

    @pytest.mark.asyncio
    async def test_in_process_trigger_returns_summary(self):
        scheduler = Mock()
        scheduler.run = AsyncMock(return_value=BatchSummary(source="manual", processed=2))

        summary = await InProcessTrigger(scheduler).dispatch([1, 2], "manual")

        scheduler.run.assert_awaited_once_with([1, 2], "manual")
        assert summary is not None and summary.processed == 2
