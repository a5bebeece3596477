# ABOUTME: Tests for WhatsApp delivery: caption formatting, WAHA requests, and all-channels-or-nothing marking
# ABOUTME: WAHA is served by httpx.MockTransport over an in-memory database

import json
from datetime import date

import httpx
import pytest
import pytest_asyncio

from lomba_relay.config import Config
from lomba_relay.delivery import DeliveryGate, WahaClient, format_caption
from lomba_relay.delivery.whatsapp import format_deadline, poster_filename
from lomba_relay.persistence import STATUS_DRAFT, CompetitionRecord, DatabaseManager

TODAY = date(2025, 8, 1)
CHANNELS = ["111@g.us", "222@g.us"]


@pytest_asyncio.fixture
async def db():
    manager = DatabaseManager(database_url="sqlite+aiosqlite://")
    await manager.create_tables()
    yield manager
    await manager.close()


def make_gate(db, handler, api_key: str = "secret", channels: list[str] | None = None) -> DeliveryGate:
    config = Config(
        waha_base_url="https://waha.example",
        waha_api_key=api_key,
        waha_session="s1",
        waha_channel_ids=CHANNELS if channels is None else channels,
    )
    client = WahaClient(config, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))
    return DeliveryGate(db, client, config, today=lambda: TODAY)


def record(**overrides) -> CompetitionRecord:
    values = {
        "title": "Lomba Karya Tulis",
        "poster_url": "https://cdn.example/poster-1.jpg",
        "source_url": "https://x/1",
        "description": "body",
    }
    values.update(overrides)
    return CompetitionRecord(**values)


class TestCaption:
    def test_full_caption(self):
        caption = format_caption(
            record(level=["SMA", "Mahasiswa"], end_date=date(2025, 8, 5), registration_url="https://bit.ly/ktl")
        )

        assert caption == "*Lomba Karya Tulis*\n\n🎓 SMA, Mahasiswa\n⏰ Deadline: 5 Agustus\n\nhttps://bit.ly/ktl"

    def test_missing_lines_are_omitted(self):
        assert format_caption(record()) == "*Lomba Karya Tulis*\n\n"

    def test_indonesian_month_names(self):
        assert format_deadline(date(2025, 1, 31)) == "31 Januari"
        assert format_deadline(date(2025, 12, 1)) == "1 Desember"

    def test_poster_filename(self):
        assert poster_filename("https://cdn.example/a/b.jpg") == "b.jpg"


class TestDeliveryGate:
    """Test delivery passes against a mocked WAHA gateway."""

    @pytest.mark.asyncio
    async def test_sends_to_every_channel_and_marks_delivered(self, db):
        requests: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(201, json={"id": "msg"})

        (record_id,) = await db.insert_drafts([record(end_date=date(2025, 8, 5))])
        gate = make_gate(db, handler)

        report = await gate.deliver_pending()

        assert (report.selected, report.sent, report.failed) == (1, 1, 0)
        assert len(requests) == 2
        payloads = [json.loads(r.content) for r in requests]
        assert sorted(p["chatId"] for p in payloads) == CHANNELS
        assert payloads[0]["session"] == "s1"
        assert payloads[0]["file"] == {
            "mimetype": "image/jpeg",
            "filename": "poster-1.jpg",
            "url": "https://cdn.example/poster-1.jpg",
        }
        assert requests[0].headers["X-Api-Key"] == "secret"
        assert str(requests[0].url) == "https://waha.example/api/sendImage"
        stored = await db.get_record(record_id)
        assert stored is not None and stored.delivered_to_channel is True

    @pytest.mark.asyncio
    async def test_one_channel_failing_keeps_record_pending(self, db):
        def handler(request: httpx.Request) -> httpx.Response:
            if json.loads(request.content)["chatId"] == CHANNELS[1]:
                return httpx.Response(500, json={"error": "session closed"})
            return httpx.Response(201, json={})

        (record_id,) = await db.insert_drafts([record()])
        gate = make_gate(db, handler)

        report = await gate.deliver_pending()

        assert (report.sent, report.failed) == (0, 1)
        assert CHANNELS[1] in report.errors[0]
        stored = await db.get_record(record_id)
        assert stored is not None and stored.delivered_to_channel is False
        assert [r.id for r in await db.select_deliverable(TODAY)] == [record_id]

    @pytest.mark.asyncio
    async def test_ineligible_records_are_not_selected(self, db):
        await db.insert_drafts(
            [
                record(source_url="https://x/expired", description="1", end_date=date(2025, 7, 31)),
                record(source_url="https://x/untitled", description="2", title=None),
                record(source_url="https://x/no-poster", description="3", poster_url=""),
            ]
        )
        gate = make_gate(db, lambda request: httpx.Response(201, json={}))

        report = await gate.deliver_pending()

        assert report.selected == 0
        assert report.sent == 0

    @pytest.mark.asyncio
    async def test_without_api_key_everything_is_skipped(self, db):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(201, json={})

        (record_id,) = await db.insert_drafts([record()])
        gate = make_gate(db, handler, api_key="")

        report = await gate.deliver_pending()

        assert report.skipped == 1
        assert calls == []
        stored = await db.get_record(record_id)
        assert stored is not None and stored.delivered_to_channel is False

    @pytest.mark.asyncio
    async def test_without_channels_nothing_is_marked_delivered(self, db):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(201, json={})

        (record_id,) = await db.insert_drafts([record()])
        gate = make_gate(db, handler, channels=[])

        report = await gate.deliver_pending()

        assert (report.selected, report.sent, report.skipped) == (1, 0, 1)
        assert calls == []
        stored = await db.get_record(record_id)
        assert stored is not None and stored.delivered_to_channel is False
        assert stored.status == STATUS_DRAFT

    @pytest.mark.asyncio
    async def test_send_random_respects_limit(self, db):
        await db.insert_drafts([record(source_url=f"https://x/{n}", description=str(n)) for n in range(4)])
        gate = make_gate(db, lambda request: httpx.Response(201, json={}))

        report = await gate.send_random(limit=2)

        assert (report.selected, report.sent) == (2, 2)
        assert len(await db.select_deliverable(TODAY)) == 2

    @pytest.mark.asyncio
    async def test_aclose_closes_waha_client(self, db):
        gate = make_gate(db, lambda request: httpx.Response(201, json={}))

        await gate.aclose()

        assert gate.client.http_client.is_closed
