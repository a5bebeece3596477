# ABOUTME: Source adapter for the infolomba.id event listing
# ABOUTME: Reads regular event cards, tops up from the most-wanted carousel, and scans detail pages

from bs4 import BeautifulSoup, Tag

from lomba_relay.sources.base import SourceOrigin
from lomba_relay.sources.html import HtmlSourceAdapter, ListingEntry, collapse_whitespace, normalize_url

DESCRIPTION_SELECTORS = (
    "div.event-description-container",
    "div.event-description",
    "div.description",
    "div.event-content",
    "div.content",
    "div.detail-description",
    "div.post-content",
)
MIN_DESCRIPTION_LENGTH = 50
MAX_DESCRIPTION_LENGTH = 2000

# (container selector, title anchor selector)
LISTING_SECTIONS = (
    (".event-container", ".description h4.event-title a"),
    (".swiper-slide .event-most-container, .event-most-container", ".overlay h4.event-title a, h4.event-title a"),
)


class InfolombaIDAdapter(HtmlSourceAdapter):
    """Scrapes upcoming events from infolomba.id."""

    origin = SourceOrigin.INFOLOMBAID

    def _entry_from(self, container: Tag, title_selector: str) -> ListingEntry | None:
        anchor = container.select_one(title_selector)
        if anchor is None:
            return None
        title = anchor.get_text(strip=True)
        href = anchor.get("href", "").strip()
        if not title or not href:
            return None

        img = container.find("img")
        src = img.get("src", "").strip() if img is not None else ""
        return ListingEntry(
            title=title,
            link=normalize_url(self.base_url, href),
            image=normalize_url(self.base_url, src) if src else "",
        )

    def parse_listing(self, soup: BeautifulSoup) -> list[ListingEntry]:
        entries: list[ListingEntry] = []
        seen_links: set[str] = set()

        for container_selector, title_selector in LISTING_SECTIONS:
            for container in soup.select(container_selector):
                if len(entries) >= self.limit:
                    return entries
                entry = self._entry_from(container, title_selector)
                if entry is None or entry.link in seen_links:
                    continue
                seen_links.add(entry.link)
                entries.append(entry)
        return entries

    def parse_detail(self, soup: BeautifulSoup) -> str:
        for selector in DESCRIPTION_SELECTORS:
            node = soup.select_one(selector)
            if node is None:
                continue
            text = collapse_whitespace(node.get_text(" "))
            if len(text) > MIN_DESCRIPTION_LENGTH:
                return text[:MAX_DESCRIPTION_LENGTH]
        return ""
