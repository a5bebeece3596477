# ABOUTME: Persistence model for scraped competition announcements
# ABOUTME: One row per upstream post, from draft insertion through AI enrichment to delivery

from __future__ import annotations

from datetime import UTC, date, datetime
from typing import Any

from sqlalchemy import JSON, Text
from sqlmodel import Column, Field, SQLModel

from lomba_relay.persistence.json_types import PydanticJson

STATUS_DRAFT = "draft"
STATUS_PUBLISHED = "published"


def utcnow() -> datetime:
    """Returns the current UTC timestamp."""

    return datetime.now(UTC)


class CompetitionRecord(SQLModel, table=True):
    """A competition announcement and its extracted metadata."""

    __tablename__ = "competition"  # type: ignore[assignment]

    id: int | None = Field(default=None, primary_key=True, description="Record identity")
    title: str | None = Field(default=None, description="Competition title")
    description: str | None = Field(
        default=None,
        sa_column=Column(Text, index=True),
        description="Raw post body; secondary dedup key",
    )
    poster_url: str | None = Field(default=None, description="Relocated poster image URL")
    source_url: str | None = Field(default=None, unique=True, index=True, description="Original upstream link")
    registration_url: str | None = Field(default=None, description="Registration link")
    organizer: list[str] | None = Field(default=None, sa_column=Column(PydanticJson(list[str] | None)))
    category: list[str] | None = Field(default=None, sa_column=Column(PydanticJson(list[str] | None)))
    level: list[str] | None = Field(default=None, sa_column=Column(PydanticJson(list[str] | None)))
    start_date: date | None = Field(default=None, description="First day of the competition")
    end_date: date | None = Field(default=None, description="Registration deadline / last day")
    format: str | None = Field(default=None, description="Online, Offline or Hybrid")
    participation_type: list[str] | None = Field(
        default=None, sa_column=Column(PydanticJson(list[str] | None))
    )
    pricing: list[int] | None = Field(default=None, sa_column=Column(PydanticJson(list[int] | None)))
    location: str | None = Field(default=None, description="Venue or city")
    contact: Any | None = Field(
        default=None, sa_column=Column(JSON(none_as_null=True)), description="Contact details when extracted"
    )
    status: str = Field(default=STATUS_DRAFT, index=True, description="draft or published")
    delivered_to_channel: bool | None = Field(default=False, description="Whether the record was sent to chat")
    created_at: datetime = Field(default_factory=utcnow, description="Creation timestamp")
    updated_at: datetime = Field(default_factory=utcnow, description="Last modification timestamp")
