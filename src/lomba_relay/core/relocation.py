# ABOUTME: Re-hosts candidate poster images from ephemeral upstream URLs to object storage
# ABOUTME: Uploads run concurrently per batch with bounded retries; failures keep the original URL

import asyncio
import hashlib
import re
import time
from collections.abc import Awaitable, Callable
from typing import Any, Protocol

import boto3
import httpx
from botocore.exceptions import BotoCoreError, ClientError
from pydantic import BaseModel, Field

from lomba_relay.config import Config, get_config
from lomba_relay.sources import CandidateItem
from lomba_relay.utils.logging import RunContext, get_logger
from lomba_relay.utils.retry import RelocationError, describe_http_error, is_retryable, retry_async, wait_backoff

UNSAFE_CHARS = re.compile(r"[^a-z0-9]")


class ObjectStore(Protocol):
    async def put_object(self, key: str, body: bytes, content_type: str) -> str:
        """Store ``body`` under ``key`` and return its public URL."""
        ...


class S3ObjectStore:
    """S3-compatible bucket (Cloudflare R2) accessed through boto3."""

    def __init__(self, config: Config | None = None, client: Any = None):
        self.config = config or get_config()
        self.client = client or boto3.client(
            "s3",
            endpoint_url=self.config.storage_endpoint,
            aws_access_key_id=self.config.storage_access_key_id,
            aws_secret_access_key=self.config.storage_secret_access_key,
            region_name="auto",
        )
        self.logger = get_logger(__name__)

    async def put_object(self, key: str, body: bytes, content_type: str) -> str:
        try:
            # boto3 is synchronous
            await asyncio.to_thread(
                self.client.put_object,
                Bucket=self.config.storage_bucket,
                Key=key,
                Body=body,
                ContentType=content_type,
            )
        except (BotoCoreError, ClientError) as e:
            raise RelocationError(f"upload of {key} failed: {e}", retryable=True) from e

        self.logger.debug("Uploaded object", key=key, size=len(body))
        return f"{self.config.storage_public_url.rstrip('/')}/{key}"


def build_filename(item: CandidateItem, now_ms: int) -> str:
    """``{epoch_ms}-{sanitized}-{digest}.jpg`` from the title, else the account, else the origin.

    The trailing digest of the source URL makes the key unique per item.
    """
    base = item.title or item.origin_account or item.origin.value
    sanitized = UNSAFE_CHARS.sub("_", base.lower())[:50]
    digest = hashlib.sha1(item.source_url.encode()).hexdigest()[:10]
    return f"{now_ms}-{sanitized}-{digest}.jpg"


class RelocationReport(BaseModel):
    items: list[CandidateItem] = Field(default_factory=list)
    uploaded: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)


class AssetRelocator:
    """Moves candidate media into object storage before the candidates are persisted.

    Without a store every item passes through untouched.
    """

    def __init__(
        self,
        store: ObjectStore | None,
        config: Config | None = None,
        http_client: httpx.AsyncClient | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store
        self.config = config or get_config()
        self.http_client = http_client or httpx.AsyncClient(
            timeout=self.config.relocation_timeout, follow_redirects=True
        )
        self.sleep = sleep
        self.clock = clock

    async def _download(self, url: str) -> tuple[bytes, str]:
        if not url.startswith("http"):
            raise RelocationError(f"not an http URL: {url!r}")
        try:
            response = await self.http_client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise RelocationError(describe_http_error(e), retryable=is_retryable(e)) from e

        body = response.content
        if not body:
            raise RelocationError(f"empty image body from {url}")
        content_type = response.headers.get("content-type") or "image/jpeg"
        return body, content_type

    async def _relocate_one(self, item: CandidateItem, filename: str) -> str:
        assert self.store is not None
        body, content_type = await self._download(item.media_url)
        return await self.store.put_object(filename, body, content_type)

    async def _relocate_item(self, item: CandidateItem, ctx: RunContext) -> tuple[CandidateItem, str | None]:
        """Returns the (possibly updated) item and an error message when relocation failed."""
        if not item.media_url:
            return item, None

        filename = build_filename(item, int(self.clock() * 1000))
        try:
            public_url = await retry_async(
                lambda: self._relocate_one(item, filename),
                attempts=self.config.relocation_max_attempts,
                wait=wait_backoff(self.config.relocation_base_delay, self.config.relocation_max_delay, jitter=0.25),
                label="relocation",
                sleep=self.sleep,
                source_url=item.source_url,
            )
        except Exception as e:
            ctx.logger.warning(
                "Relocation failed, keeping original URL",
                source_url=item.source_url,
                media_url=item.media_url,
                error=str(e),
                error_type=type(e).__name__,
            )
            return item, f"{item.source_url}: {e}"

        return item.model_copy(update={"media_url": public_url}), None

    async def relocate(self, items: list[CandidateItem], ctx: RunContext | None = None) -> RelocationReport:
        ctx = ctx or RunContext(pipeline="relocation")
        if self.store is None:
            ctx.logger.info("Object storage not configured, keeping upstream media URLs", count=len(items))
            return RelocationReport(items=list(items))

        report = RelocationReport()
        size = max(1, self.config.relocation_batch_size)
        batches = [items[i : i + size] for i in range(0, len(items), size)]

        for index, batch in enumerate(batches):
            if index > 0:
                await self.sleep(self.config.relocation_batch_pause)
            outcomes = await asyncio.gather(*(self._relocate_item(item, ctx) for item in batch))
            for original, (item, error) in zip(batch, outcomes, strict=True):
                report.items.append(item)
                if error:
                    report.failed += 1
                    report.errors.append(error)
                elif item.media_url != original.media_url:
                    report.uploaded += 1

        ctx.logger.info("Relocation complete", uploaded=report.uploaded, failed=report.failed, total=len(items))
        return report

    async def aclose(self) -> None:
        await self.http_client.aclose()


def build_relocator(config: Config | None = None) -> AssetRelocator:
    config = config or get_config()
    store = S3ObjectStore(config) if config.storage_configured else None
    return AssetRelocator(store, config)
