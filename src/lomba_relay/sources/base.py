# ABOUTME: Protocol interface and models shared by all competition source adapters
# ABOUTME: Adapters turn one upstream (social profile or HTML listing) into candidate items

from enum import Enum
from typing import Protocol

from pydantic import BaseModel, Field


class SourceOrigin(str, Enum):
    """Identifier of the adapter that produced a candidate."""

    INSTAGRAM = "instagram"
    INFOLOMBAIT = "infolombait"
    INFOLOMBAID = "infolombaid"


class CandidateItem(BaseModel):
    """One scraped post before persistence."""

    title: str | None = None
    source_url: str = Field(description="Link to the upstream post, unique per upstream item")
    media_url: str = Field(default="", description="Upstream poster image URL")
    body_text: str = Field(default="", description="Caption or long-form description")
    origin: SourceOrigin
    origin_account: str = Field(description="Account or site the post came from")


class SourceError(BaseModel):
    """A failure scoped to one source (or one account within a source)."""

    source: str
    message: str


class SourceBatch(BaseModel):
    """What one adapter returned: candidates in upstream order plus partial failures."""

    origin: SourceOrigin
    items: list[CandidateItem] = Field(default_factory=list)
    errors: list[SourceError] = Field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.items)


class SourceAdapter(Protocol):
    """Protocol for fetching candidate posts from one upstream.

    Implementations raise SourceFetchError when the listing itself cannot be
    fetched. Per-candidate problems (missing selectors, failed detail pages)
    must degrade that candidate only.
    """

    origin: SourceOrigin
    is_web_source: bool

    async def fetch_candidates(self) -> SourceBatch:
        """Fetch the current candidates from this upstream.

        Returns:
            SourceBatch with candidates in stable upstream order

        Raises:
            SourceFetchError: If the upstream cannot be read at all
        """
        ...

    async def aclose(self) -> None:
        """Release the HTTP client."""
        ...
