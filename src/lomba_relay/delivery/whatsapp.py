# ABOUTME: Delivery gate that posts eligible competition records to WhatsApp channels via WAHA
# ABOUTME: A record is marked delivered only when every configured channel accepted it

import asyncio
from collections.abc import Callable
from datetime import date

import httpx
from pydantic import BaseModel, Field

from lomba_relay.config import Config, get_config
from lomba_relay.persistence import CompetitionRecord, DatabaseManager
from lomba_relay.utils.logging import RunContext, log_api_call
from lomba_relay.utils.retry import DeliveryError, describe_http_error

INDONESIAN_MONTHS = (
    "Januari",
    "Februari",
    "Maret",
    "April",
    "Mei",
    "Juni",
    "Juli",
    "Agustus",
    "September",
    "Oktober",
    "November",
    "Desember",
)


def format_deadline(value: date) -> str:
    """Day and Indonesian month name, e.g. ``"5 Agustus"``."""
    return f"{value.day} {INDONESIAN_MONTHS[value.month - 1]}"


def format_caption(record: CompetitionRecord) -> str:
    caption = f"*{record.title}*\n"
    if record.level:
        caption += f"\n🎓 {', '.join(record.level)}"
    if record.end_date:
        caption += f"\n⏰ Deadline: {format_deadline(record.end_date)}"
    caption += "\n"
    if record.registration_url:
        caption += f"\n{record.registration_url}"
    return caption


def poster_filename(poster_url: str) -> str:
    return poster_url.rstrip("/").split("/")[-1] or "image.jpg"


class DeliveryReport(BaseModel):
    """Outcome of one delivery pass."""

    selected: int = 0
    sent: int = 0
    failed: int = 0
    skipped: int = 0
    errors: list[str] = Field(default_factory=list)


class WahaClient:
    """Minimal WAHA HTTP client for sending an image with a caption."""

    def __init__(self, config: Config | None = None, http_client: httpx.AsyncClient | None = None):
        self.config = config or get_config()
        self.http_client = http_client or httpx.AsyncClient(timeout=self.config.waha_timeout)

    @log_api_call("waha")
    async def send_image(self, chat_id: str, poster_url: str, caption: str) -> None:
        payload = {
            "session": self.config.waha_session,
            "chatId": chat_id,
            "file": {
                "mimetype": "image/jpeg",
                "filename": poster_filename(poster_url),
                "url": poster_url,
            },
            "reply_to": None,
            "caption": caption,
        }
        try:
            response = await self.http_client.post(
                f"{self.config.waha_base_url.rstrip('/')}/api/sendImage",
                json=payload,
                headers={"X-Api-Key": self.config.waha_api_key},
            )
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise DeliveryError(chat_id, describe_http_error(e)) from e

    async def aclose(self) -> None:
        await self.http_client.aclose()


class DeliveryGate:
    """Selects undelivered, unexpired records and sends each one to every channel.

    Eligibility is always re-read from the database, so records whose
    extraction failed simply stay ineligible until a later pass fills them in.
    """

    def __init__(
        self,
        database: DatabaseManager,
        client: WahaClient | None = None,
        config: Config | None = None,
        today: Callable[[], date] = date.today,
    ):
        self.database = database
        self.config = config or get_config()
        self.client = client or WahaClient(self.config)
        self.today = today

    async def aclose(self) -> None:
        await self.client.aclose()

    async def deliver_pending(self, ctx: RunContext | None = None) -> DeliveryReport:
        ctx = ctx or RunContext(pipeline="delivery")
        records = await ctx.time("select-deliverable", self.database.select_deliverable(self.today()))
        return await self._deliver(records, ctx)

    async def send_random(self, limit: int, ctx: RunContext | None = None) -> DeliveryReport:
        ctx = ctx or RunContext(pipeline="delivery-random")
        records = await ctx.time(
            "select-random-deliverable", self.database.select_random_deliverable(self.today(), limit)
        )
        return await self._deliver(records, ctx)

    async def _send_record(self, record: CompetitionRecord) -> list[str]:
        """Send to all channels concurrently; returns one message per failed channel."""
        caption = format_caption(record)
        poster_url = record.poster_url or ""
        outcomes = await asyncio.gather(
            *(self.client.send_image(chat_id, poster_url, caption) for chat_id in self.config.waha_channel_ids),
            return_exceptions=True,
        )
        failures = []
        for chat_id, outcome in zip(self.config.waha_channel_ids, outcomes, strict=True):
            if isinstance(outcome, Exception):
                failures.append(str(outcome) if isinstance(outcome, DeliveryError) else f"{chat_id}: {outcome}")
        return failures

    async def _deliver(self, records: list[CompetitionRecord], ctx: RunContext) -> DeliveryReport:
        report = DeliveryReport(selected=len(records))
        if not records:
            ctx.logger.info("No competitions to send")
            return report

        if not self.config.waha_api_key:
            ctx.logger.warning("WAHA API key not set, skipping delivery", count=len(records))
            report.skipped = len(records)
            return report

        if not self.config.waha_channel_ids:
            ctx.logger.warning("No delivery channels configured, skipping delivery", count=len(records))
            report.skipped = len(records)
            return report

        for record in records:
            log = ctx.logger.bind(record_id=record.id, title=record.title)
            failures = await ctx.time(f"deliver:{record.id}", self._send_record(record))
            if failures:
                report.failed += 1
                report.errors.append(f"record {record.id}: {'; '.join(failures)}")
                log.warning("Delivery failed, record stays pending", failures=failures)
                continue

            assert record.id is not None
            await self.database.mark_delivered(record.id)
            report.sent += 1
            log.info("Delivered to all channels", channels=len(self.config.waha_channel_ids))

        ctx.logger.info(
            "Delivery complete",
            selected=report.selected,
            sent=report.sent,
            failed=report.failed,
        )
        return report
