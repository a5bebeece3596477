# ABOUTME: Shared machinery for HTML listing-page adapters
# ABOUTME: Listing fetch, concurrent detail-page enrichment, and lexical URL normalization

import asyncio
from dataclasses import dataclass

import httpx
from bs4 import BeautifulSoup

from lomba_relay.sources.base import CandidateItem, SourceBatch, SourceOrigin
from lomba_relay.utils.logging import get_logger
from lomba_relay.utils.retry import DetailFetchError, SourceFetchError, describe_http_error

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) "
    "Chrome/124.0 Safari/537.36"
)


def normalize_url(base_url: str, link: str) -> str:
    """Resolve a possibly-relative link against a base URL by string concatenation."""
    if link.startswith("http"):
        return link
    base = base_url.rstrip("/")
    if link.startswith("/"):
        return f"{base}{link}"
    return f"{base}/{link}"


def collapse_whitespace(text: str) -> str:
    return " ".join(text.replace("\u00a0", " ").split())


@dataclass
class ListingEntry:
    """A candidate as seen on the listing page, before detail enrichment."""

    title: str
    link: str
    image: str = ""


class HtmlSourceAdapter:
    """Base class for adapters that scrape a listing page and one detail page per post."""

    origin: SourceOrigin
    is_web_source = True

    def __init__(self, base_url: str, limit: int, timeout: float = 30.0, http_client: httpx.AsyncClient | None = None):
        self.base_url = base_url.rstrip("/")
        self.limit = limit
        self.http_client = http_client or httpx.AsyncClient(
            headers={"User-Agent": USER_AGENT}, timeout=timeout, follow_redirects=True
        )
        self.logger = get_logger(__name__).bind(source=self.origin.value)

    def parse_listing(self, soup: BeautifulSoup) -> list[ListingEntry]:
        raise NotImplementedError

    def parse_detail(self, soup: BeautifulSoup) -> str:
        raise NotImplementedError

    async def _get(self, url: str) -> str:
        response = await self.http_client.get(url)
        response.raise_for_status()
        return response.text

    async def fetch_listing(self) -> list[ListingEntry]:
        try:
            html = await self._get(self.base_url)
        except httpx.HTTPError as e:
            raise SourceFetchError(self.origin.value, f"listing fetch failed: {describe_http_error(e)}") from e
        return self.parse_listing(BeautifulSoup(html, "html.parser"))[: self.limit]

    async def fetch_description(self, link: str) -> str:
        """Fetch a detail page's description, degrading to an empty string on any failure."""
        try:
            try:
                html = await self._get(link)
            except httpx.HTTPError as e:
                raise DetailFetchError(describe_http_error(e)) from e
            return self.parse_detail(BeautifulSoup(html, "html.parser"))
        except DetailFetchError as e:
            self.logger.warning("Detail page fetch failed", link=link, error=str(e))
            return ""

    async def fetch_candidates(self) -> SourceBatch:
        entries = await self.fetch_listing()
        descriptions = await asyncio.gather(*(self.fetch_description(entry.link) for entry in entries))

        items = [
            CandidateItem(
                title=entry.title or None,
                source_url=entry.link,
                media_url=entry.image,
                body_text=description,
                origin=self.origin,
                origin_account=self.origin.value,
            )
            for entry, description in zip(entries, descriptions, strict=True)
        ]
        self.logger.info(
            "Web scraping completed",
            count=len(items),
            with_description=sum(1 for item in items if item.body_text),
        )
        return SourceBatch(origin=self.origin, items=items)

    async def aclose(self) -> None:
        await self.http_client.aclose()
