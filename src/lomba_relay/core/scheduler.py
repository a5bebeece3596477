# ABOUTME: Batch scheduler that runs extraction over admitted record ids in small sequential groups
# ABOUTME: Persists each record's fields as soon as it finishes and runs delivery once at the end

from collections.abc import Iterator

from pydantic import BaseModel, Field

from lomba_relay.delivery import DeliveryGate, DeliveryReport
from lomba_relay.extraction import ExtractionOrchestrator, ModelUsage
from lomba_relay.persistence import DatabaseManager
from lomba_relay.utils.logging import RunContext


def chunk(items: list[int], size: int) -> Iterator[list[int]]:
    """Split ``items`` into consecutive groups of ``size``, preserving order."""
    if size < 1:
        raise ValueError("group size must be at least 1")
    for start in range(0, len(items), size):
        yield items[start : start + size]


class BatchSummary(BaseModel):
    """What one scheduler run did, per record and overall."""

    source: str = "unknown"
    groups: int = 0
    processed: int = 0
    updated: int = 0
    empty: int = 0
    failed: int = 0
    field_sources: dict[int, str] = Field(default_factory=dict)
    usage: ModelUsage = Field(default_factory=ModelUsage)
    delivery: DeliveryReport | None = None
    errors: list[str] = Field(default_factory=list)


class BatchScheduler:
    """Drives the extraction orchestrator across record ids.

    Groups run one after another and records inside a group run one after
    another; nothing here is concurrent.
    """

    def __init__(
        self,
        database: DatabaseManager,
        orchestrator: ExtractionOrchestrator,
        delivery: DeliveryGate,
        batch_size: int = 2,
    ):
        self.database = database
        self.orchestrator = orchestrator
        self.delivery = delivery
        self.batch_size = batch_size

    async def aclose(self) -> None:
        await self.orchestrator.aclose()
        await self.delivery.aclose()

    async def _process_record(self, record_id: int, summary: BatchSummary, ctx: RunContext) -> None:
        record = await self.database.get_record(record_id)
        if record is None:
            summary.failed += 1
            summary.errors.append(f"record {record_id}: not found")
            ctx.logger.warning("Record not found, skipping", record_id=record_id)
            return

        try:
            result = await self.orchestrator.extract(record_id, record.description, record.poster_url, ctx)
        except Exception as e:
            summary.failed += 1
            summary.errors.append(f"record {record_id}: {e}")
            ctx.logger.error(
                "Extraction crashed", record_id=record_id, error=str(e), error_type=type(e).__name__
            )
            return

        summary.processed += 1
        summary.field_sources[record_id] = result.field_sources()
        summary.errors.extend(f"record {record_id}: {error}" for error in result.errors)

        values = result.to_record_values()
        if not values:
            summary.empty += 1
            ctx.logger.info("Nothing extracted, no update written", record_id=record_id)
            return

        written = await self.database.fill_missing_fields(record_id, values)
        if written:
            summary.updated += 1
        else:
            summary.empty += 1
        ctx.logger.info("Record updated", record_id=record_id, written=written)

    async def run(self, record_ids: list[int], source: str = "unknown", ctx: RunContext | None = None) -> BatchSummary:
        """Extract every record, then deliver.

        Raises:
            PersistenceError: When the database cannot be read or written
        """
        ctx = ctx or RunContext(pipeline="batches")
        summary = BatchSummary(source=source, usage=self.orchestrator.usage)
        groups = list(chunk(record_ids, self.batch_size))
        summary.groups = len(groups)

        ctx.logger.info("Starting batch processing", records=len(record_ids), groups=len(groups), source=source)

        for index, group in enumerate(groups, start=1):
            group_ctx = ctx.child(group=index)
            group_ctx.logger.info("Processing group", record_ids=group)
            for record_id in group:
                await group_ctx.time(f"record:{record_id}", self._process_record(record_id, summary, group_ctx))

        summary.delivery = await self.delivery.deliver_pending(ctx)

        ctx.logger.info(
            "Batch processing complete",
            processed=summary.processed,
            updated=summary.updated,
            empty=summary.empty,
            failed=summary.failed,
            delivered=summary.delivery.sent,
        )
        return summary
