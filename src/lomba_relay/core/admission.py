# ABOUTME: Dedup admission of scraped candidates against persisted and in-batch keys
# ABOUTME: Admitted candidates become draft competition records in a single bulk insert

from pydantic import BaseModel, Field

from lomba_relay.persistence import STATUS_DRAFT, CompetitionRecord, DatabaseManager, DedupKeys
from lomba_relay.sources import CandidateItem
from lomba_relay.utils.logging import RunContext


class AdmissionResult(BaseModel):
    """Partition of one candidate batch.

    ``len(admitted)`` plus the three skip counters always equals the number of
    candidates that went in.
    """

    admitted: list[CandidateItem] = Field(default_factory=list)
    skipped_url: int = 0
    skipped_description: int = 0
    skipped_duplication: int = 0
    record_ids: list[int] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.admitted) + self.skipped_url + self.skipped_description + self.skipped_duplication


def partition_candidates(candidates: list[CandidateItem], keys: DedupKeys) -> AdmissionResult:
    """Split candidates into admitted and rejected, preserving candidate order.

    Matching is exact on trimmed text. Blank descriptions and blank source URLs
    never cause a rejection.
    """
    result = AdmissionResult()
    seen_urls: set[str] = set()
    seen_descriptions: set[str] = set()

    for item in candidates:
        url = item.source_url.strip()
        description = item.body_text.strip()

        if url and url in keys.source_urls:
            result.skipped_url += 1
            continue
        if description and description in keys.descriptions:
            result.skipped_description += 1
            continue
        # Same post reached twice in one run, through the description or the link
        if (description and description in seen_descriptions) or (url and url in seen_urls):
            result.skipped_duplication += 1
            continue

        if url:
            seen_urls.add(url)
        if description:
            seen_descriptions.add(description)
        result.admitted.append(item)

    return result


def to_draft(item: CandidateItem) -> CompetitionRecord:
    return CompetitionRecord(
        title=item.title or None,
        description=item.body_text.strip() or None,
        poster_url=item.media_url or None,
        source_url=item.source_url.strip() or None,
        status=STATUS_DRAFT,
    )


class AdmissionGate:
    """Reads persisted dedup keys, partitions candidates, and inserts the admitted ones."""

    def __init__(self, database: DatabaseManager):
        self.database = database

    async def partition(self, candidates: list[CandidateItem], ctx: RunContext) -> AdmissionResult:
        keys = await ctx.time("dedup-keys", self.database.fetch_dedup_keys())
        result = partition_candidates(candidates, keys)
        ctx.logger.info(
            "Candidates partitioned",
            candidates=len(candidates),
            admitted=len(result.admitted),
            skipped_url=result.skipped_url,
            skipped_description=result.skipped_description,
            skipped_duplication=result.skipped_duplication,
        )
        return result

    async def insert(self, result: AdmissionResult, ctx: RunContext) -> list[int]:
        """Insert ``result.admitted`` as drafts and remember the new ids on the result."""
        if not result.admitted:
            ctx.logger.info("No new candidates to insert")
            return []
        drafts = [to_draft(item) for item in result.admitted]
        result.record_ids = await ctx.time("insert-drafts", self.database.insert_drafts(drafts))
        return result.record_ids

    async def admit(self, candidates: list[CandidateItem], ctx: RunContext | None = None) -> AdmissionResult:
        ctx = ctx or RunContext(pipeline="admission")
        result = await self.partition(candidates, ctx)
        await self.insert(result, ctx)
        return result
