# ABOUTME: Scheduled ingestion run: collect, dedup, relocate posters, insert drafts, trigger extraction
# ABOUTME: Returns a structured summary; only persistence failures and total source loss raise

from pydantic import BaseModel, Field

from lomba_relay.core.admission import AdmissionGate
from lomba_relay.core.collector import FanOutCollector
from lomba_relay.core.relocation import AssetRelocator
from lomba_relay.core.scheduler import BatchSummary
from lomba_relay.core.trigger import BatchTrigger
from lomba_relay.utils.logging import RunContext, log_pipeline_step
from lomba_relay.utils.retry import PersistenceError


class IngestSummary(BaseModel):
    """Result of one ingestion run as reported to the scheduling layer."""

    success: bool = True
    scraped_count: int = 0
    inserted_count: int = 0
    new_record_ids: list[int] = Field(default_factory=list)
    skipped_url: int = 0
    skipped_description: int = 0
    skipped_duplication: int = 0
    uploaded: int = 0
    triggered: bool = False
    batch: BatchSummary | None = None
    errors: list[str] = Field(default_factory=list)


class IngestionPipeline:
    """Collector → admission → relocation → draft insert → extraction trigger.

    Only admitted candidates have their posters relocated, so known posts never
    cost an upload.
    """

    def __init__(
        self,
        collector: FanOutCollector,
        admission: AdmissionGate,
        relocator: AssetRelocator,
        trigger: BatchTrigger,
        source: str = "cron",
    ):
        self.collector = collector
        self.admission = admission
        self.relocator = relocator
        self.trigger = trigger
        self.source = source

    @log_pipeline_step("ingestion")
    async def run(self, ctx: RunContext | None = None) -> IngestSummary:
        """Run one ingestion pass.

        Raises:
            SourcesExhaustedError: If every source failed and nothing was collected
            PersistenceError: If the database cannot be read or written
        """
        ctx = ctx or RunContext(pipeline="ingestion")
        summary = IngestSummary()

        collected = await ctx.time("collect", self.collector.collect(ctx.child(stage="collect")))
        summary.scraped_count = collected.count
        summary.errors.extend(f"{err.source}: {err.message}" for err in collected.errors)

        admission = await self.admission.partition(collected.items, ctx.child(stage="admission"))
        summary.skipped_url = admission.skipped_url
        summary.skipped_description = admission.skipped_description
        summary.skipped_duplication = admission.skipped_duplication

        if not admission.admitted:
            ctx.logger.info("No new competitions admitted", scraped=collected.count)
            return summary

        relocation = await ctx.time(
            "relocate", self.relocator.relocate(admission.admitted, ctx.child(stage="relocation"))
        )
        admission.admitted = relocation.items
        summary.uploaded = relocation.uploaded
        summary.errors.extend(relocation.errors)

        record_ids = await self.admission.insert(admission, ctx.child(stage="insert"))
        summary.inserted_count = len(record_ids)
        summary.new_record_ids = record_ids

        if record_ids:
            await self._dispatch(record_ids, summary, ctx)

        ctx.logger.info(
            "Ingestion complete",
            scraped=summary.scraped_count,
            inserted=summary.inserted_count,
            uploaded=summary.uploaded,
            errors=len(summary.errors),
        )
        return summary

    async def _dispatch(self, record_ids: list[int], summary: IngestSummary, ctx: RunContext) -> None:
        try:
            summary.batch = await self.trigger.dispatch(record_ids, self.source)
        except PersistenceError:
            raise
        except Exception as e:
            summary.errors.append(f"trigger: {e}")
            ctx.logger.error("Failed to trigger extraction", error=str(e), error_type=type(e).__name__)
            return
        summary.triggered = True
