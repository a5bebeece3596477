# ABOUTME: Source adapter for the infolombait.com Blogger listing
# ABOUTME: Pairs post titles with thumbnail background images and reads post bodies from detail pages

import re

from bs4 import BeautifulSoup

from lomba_relay.sources.base import SourceOrigin
from lomba_relay.sources.html import HtmlSourceAdapter, ListingEntry, collapse_whitespace, normalize_url

BACKGROUND_URL = re.compile(r"url\(([^)]+)\)", re.IGNORECASE)
BLOGGER_SIZE = re.compile(r"/s\d+(-c)?/")


def upscale_blogger_image(url: str) -> str:
    """Rewrite a Blogger thumbnail size segment (``/s72-c/``) to full size."""
    return BLOGGER_SIZE.sub("/s1600/", url, count=1)


def background_image_url(style: str) -> str | None:
    match = BACKGROUND_URL.search(style)
    if not match:
        return None
    return match.group(1).replace('"', "").replace("'", "").strip() or None


class InfolombaITAdapter(HtmlSourceAdapter):
    """Scrapes the newest posts from infolombait.com."""

    origin = SourceOrigin.INFOLOMBAIT

    def parse_listing(self, soup: BeautifulSoup) -> list[ListingEntry]:
        images = []
        for anchor in soup.select("#Blog1 .blog-posts .date-outer .thumb a"):
            if len(images) >= self.limit:
                break
            raw = background_image_url(anchor.get("style", ""))
            if raw:
                images.append(upscale_blogger_image(normalize_url(self.base_url, raw)))

        entries = []
        for index, anchor in enumerate(soup.select("h2.post-title.entry-title a")):
            if len(entries) >= self.limit:
                break
            title = anchor.get_text(strip=True)
            href = anchor.get("href", "").strip()
            if not title or not href:
                continue
            entries.append(
                ListingEntry(
                    title=title,
                    link=normalize_url(self.base_url, href),
                    image=images[index] if index < len(images) else "",
                )
            )
        return entries

    def parse_detail(self, soup: BeautifulSoup) -> str:
        node = soup.select_one("div.post-body.entry-content")
        if node is None:
            return ""
        return collapse_whitespace(node.get_text(" "))
