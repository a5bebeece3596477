# ABOUTME: Tests for the infolomba.id listing and detail parsers
# ABOUTME: Parses canned event cards without any network access

import pytest
from bs4 import BeautifulSoup

from lomba_relay.sources.infolombaid import MAX_DESCRIPTION_LENGTH, InfolombaIDAdapter

LISTING = """
<div class="event-container">
  <img src="/uploads/a.jpg">
  <div class="description"><h4 class="event-title"><a href="/event/a">Lomba A</a></h4></div>
</div>
<div class="event-container">
  <img src="https://cdn.example/b.jpg">
  <div class="description"><h4 class="event-title"><a href="https://infolomba.id/event/b">Lomba B</a></h4></div>
</div>
<div class="swiper-slide">
  <div class="event-most-container">
    <img src="/uploads/c.jpg">
    <div class="overlay"><h4 class="event-title"><a href="/event/c">Lomba C</a></h4></div>
  </div>
</div>
<div class="swiper-slide">
  <div class="event-most-container">
    <div class="overlay"><h4 class="event-title"><a href="/event/a">Lomba A again</a></h4></div>
  </div>
</div>
"""

LONG_TEXT = "Lomba karya tulis ilmiah tingkat nasional untuk pelajar SMA dan mahasiswa seluruh Indonesia."


@pytest.fixture
def adapter():
    return InfolombaIDAdapter("https://infolomba.id", limit=10)


class TestParseListing:
    def test_regular_cards_then_carousel_without_duplicates(self, adapter):
        entries = adapter.parse_listing(BeautifulSoup(LISTING, "html.parser"))

        assert [e.title for e in entries] == ["Lomba A", "Lomba B", "Lomba C"]
        assert entries[0].link == "https://infolomba.id/event/a"
        assert entries[0].image == "https://infolomba.id/uploads/a.jpg"
        assert entries[1].image == "https://cdn.example/b.jpg"
        assert entries[2].image == "https://infolomba.id/uploads/c.jpg"

    def test_carousel_only_tops_up_to_limit(self):
        adapter = InfolombaIDAdapter("https://infolomba.id", limit=2)

        entries = adapter.parse_listing(BeautifulSoup(LISTING, "html.parser"))

        assert [e.title for e in entries] == ["Lomba A", "Lomba B"]


class TestParseDetail:
    def test_first_long_enough_selector_wins(self, adapter):
        html = f"<div class='event-description'>short</div><div class='content'>{LONG_TEXT}</div>"

        assert adapter.parse_detail(BeautifulSoup(html, "html.parser")) == LONG_TEXT

    def test_truncates_long_descriptions(self, adapter):
        html = f"<div class='event-description-container'>{'x' * 5000}</div>"

        text = adapter.parse_detail(BeautifulSoup(html, "html.parser"))

        assert len(text) == MAX_DESCRIPTION_LENGTH

    def test_nothing_long_enough(self, adapter):
        assert adapter.parse_detail(BeautifulSoup("<div class='content'>tiny</div>", "html.parser")) == ""
