# ABOUTME: Source adapter for public Instagram competition-announcement accounts
# ABOUTME: Paced per-account profile fetches with bounded, jittered retries on throttling

import asyncio
import random
import time
from collections.abc import Awaitable, Callable
from typing import Any

import httpx

from lomba_relay.config import Config, get_config
from lomba_relay.sources.base import CandidateItem, SourceBatch, SourceError, SourceOrigin
from lomba_relay.utils.logging import get_logger, log_api_call
from lomba_relay.utils.retry import (
    RateLimitError,
    SourceFetchError,
    describe_http_error,
    is_retryable,
    retry_async,
    wait_backoff,
)

PROFILE_URL = "https://www.instagram.com/api/v1/users/web_profile_info/"
POST_URL = "https://www.instagram.com/p/{shortcode}/"
USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0 Safari/537.36"
)


def _mapping(value: Any) -> dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _sequence(value: Any) -> list[Any]:
    return value if isinstance(value, list) else []


def parse_profile_posts(payload: Any, username: str, limit: int) -> list[CandidateItem]:
    """Turn a web_profile_info payload into candidates, keeping posts with an image and a link.

    Malformed pieces of the payload (null edges, non-object nodes) are skipped rather than raised.
    """
    user = _mapping(_mapping(_mapping(payload).get("data")).get("user"))
    edges = _sequence(_mapping(user.get("edge_owner_to_timeline_media")).get("edges"))

    items = []
    for edge in edges[:limit]:
        node = _mapping(_mapping(edge).get("node"))
        shortcode = node.get("shortcode")
        display_url = node.get("display_url")
        if not (shortcode and isinstance(shortcode, str) and display_url and isinstance(display_url, str)):
            continue
        caption_edges = _sequence(_mapping(node.get("edge_media_to_caption")).get("edges"))
        caption = _mapping(_mapping(caption_edges[0]).get("node")).get("text") if caption_edges else ""
        items.append(
            CandidateItem(
                title=None,
                source_url=POST_URL.format(shortcode=shortcode),
                media_url=display_url,
                body_text=caption if isinstance(caption, str) else "",
                origin=SourceOrigin.INSTAGRAM,
                origin_account=username,
            )
        )
    return items


class InstagramAdapter:
    """Scrapes recent posts from a fixed list of Instagram accounts.

    Accounts are visited sequentially with a random pause between them and
    requests are paced to the configured per-minute budget. A throttled account
    is retried a small number of times, then recorded as an error and skipped.
    """

    origin = SourceOrigin.INSTAGRAM
    is_web_source = False

    def __init__(
        self,
        config: Config | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ):
        self.config = config or get_config()
        self.http_client = http_client or httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT, "X-IG-App-ID": self.config.instagram_app_id},
            timeout=self.config.instagram_timeout,
        )
        self.sleep = sleep
        self.logger = get_logger(__name__)
        self._last_request_at: float | None = None

    async def _pace(self) -> None:
        await self.sleep(random.uniform(self.config.instagram_min_delay, self.config.instagram_max_delay))

        if self.config.instagram_rate_limit_per_minute <= 0:
            return
        min_interval = 60.0 / self.config.instagram_rate_limit_per_minute
        if self._last_request_at is not None:
            remaining = min_interval - (time.monotonic() - self._last_request_at)
            if remaining > 0:
                self.logger.debug("Rate limiting", sleep_time=round(remaining, 2))
                await self.sleep(remaining)
        self._last_request_at = time.monotonic()

    @log_api_call("instagram")
    async def _fetch_profile(self, username: str) -> dict[str, Any]:
        response = await self.http_client.get(PROFILE_URL, params={"username": username})
        if response.status_code == 429:
            raise RateLimitError(f"instagram:{username}", "rate limited (HTTP 429)")
        response.raise_for_status()
        return response.json()

    async def fetch_account(self, username: str) -> list[CandidateItem]:
        async def attempt() -> dict[str, Any]:
            await self._pace()
            return await self._fetch_profile(username)

        payload = await retry_async(
            attempt,
            attempts=self.config.instagram_max_retries + 1,
            wait=wait_backoff(self.config.instagram_min_delay, self.config.instagram_max_delay, jitter=0.25),
            retry_on=is_retryable,
            label="instagram-fetch",
            sleep=self.sleep,
            username=username,
        )
        return parse_profile_posts(payload, username, self.config.instagram_post_limit)

    async def fetch_candidates(self) -> SourceBatch:
        batch = SourceBatch(origin=self.origin)
        succeeded = 0

        for username in self.config.instagram_accounts:
            try:
                posts = await self.fetch_account(username)
            except (httpx.HTTPError, ValueError, SourceFetchError) as e:
                message = describe_http_error(e) if isinstance(e, httpx.HTTPError) else str(e)
                batch.errors.append(SourceError(source=f"instagram:{username}", message=message))
                self.logger.warning(
                    "Failed to fetch posts", username=username, error=message, error_type=type(e).__name__
                )
                continue

            succeeded += 1
            batch.items.extend(posts)
            self.logger.info("Fetched valid posts", username=username, valid_count=len(posts))

        if succeeded == 0 and self.config.instagram_accounts:
            details = "; ".join(f"{err.source}: {err.message}" for err in batch.errors)
            raise SourceFetchError(self.origin.value, f"all accounts failed ({details})")

        if batch.errors:
            self.logger.warning(
                "Some accounts failed during scraping",
                skipped_accounts=[err.source for err in batch.errors],
                success_count=succeeded,
            )
        return batch

    async def aclose(self) -> None:
        await self.http_client.aclose()
