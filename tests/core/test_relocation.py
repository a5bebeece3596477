# ABOUTME: Tests for poster relocation into object storage
# ABOUTME: Downloads are served by httpx.MockTransport and uploads go to an in-memory store

import hashlib

import httpx
import pytest
from botocore.exceptions import ClientError

from lomba_relay.config import Config
from lomba_relay.core.relocation import AssetRelocator, S3ObjectStore, build_filename
from lomba_relay.sources import CandidateItem, SourceOrigin
from lomba_relay.utils.retry import RelocationError

NOW = 1_723_000_000.123


def candidate(n: int, media_url: str | None = None, title: str | None = "Lomba Esai Nasional 2025!") -> CandidateItem:
    return CandidateItem(
        title=title,
        source_url=f"https://www.instagram.com/p/{n}/",
        media_url=media_url if media_url is not None else f"https://scontent.example/{n}.jpg",
        body_text=f"caption {n}",
        origin=SourceOrigin.INSTAGRAM,
        origin_account="lomba_mahasiswa",
    )


class MemoryStore:
    def __init__(self, fail_times: int = 0):
        self.objects: dict[str, tuple[bytes, str]] = {}
        self.fail_times = fail_times

    async def put_object(self, key: str, body: bytes, content_type: str) -> str:
        if self.fail_times:
            self.fail_times -= 1
            raise RelocationError("upload failed", retryable=True)
        self.objects[key] = (body, content_type)
        return f"https://cdn.example/{key}"


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


def make_relocator(store, handler, **overrides) -> tuple[AssetRelocator, RecordingSleep]:
    sleep = RecordingSleep()
    config = Config(relocation_max_attempts=3, relocation_batch_size=40, relocation_batch_pause=2.0, **overrides)
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return AssetRelocator(store, config, http_client=client, sleep=sleep, clock=lambda: NOW), sleep


def digest(n: int) -> str:
    return hashlib.sha1(f"https://www.instagram.com/p/{n}/".encode()).hexdigest()[:10]


def image_handler(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, content=b"\xff\xd8jpeg", headers={"content-type": "image/png"})


class TestBuildFilename:
    def test_sanitizes_title(self):
        name = build_filename(candidate(1), 1723000000123)
        assert name == f"1723000000123-lomba_esai_nasional_2025_-{digest(1)}.jpg"

    def test_falls_back_to_account(self):
        assert build_filename(candidate(1, title=None), 1) == f"1-lomba_mahasiswa-{digest(1)}.jpg"

    def test_truncates_to_fifty_characters(self):
        name = build_filename(candidate(1, title="x" * 80), 7)
        assert name == f"7-{'x' * 50}-{digest(1)}.jpg"

    def test_same_base_and_timestamp_still_differ(self):
        names = {build_filename(candidate(n, title=None), 1) for n in range(10)}

        assert len(names) == 10


class TestAssetRelocator:
    """Test relocation outcomes."""

    @pytest.mark.asyncio
    async def test_uploads_and_rewrites_media_url(self):
        store = MemoryStore()
        relocator, _ = make_relocator(store, image_handler)

        report = await relocator.relocate([candidate(1)])

        assert report.uploaded == 1
        assert report.failed == 0
        key = f"1723000000123-lomba_esai_nasional_2025_-{digest(1)}.jpg"
        assert report.items[0].media_url == f"https://cdn.example/{key}"
        assert store.objects[key] == (b"\xff\xd8jpeg", "image/png")

    @pytest.mark.asyncio
    async def test_failure_keeps_original_url(self):
        relocator, _ = make_relocator(MemoryStore(), lambda request: httpx.Response(404))
        item = candidate(2)

        report = await relocator.relocate([item])

        assert report.items == [item]
        assert report.failed == 1
        assert "404" in report.errors[0]

    @pytest.mark.asyncio
    async def test_transient_upload_failure_is_retried(self):
        store = MemoryStore(fail_times=2)
        relocator, sleep = make_relocator(store, image_handler)

        report = await relocator.relocate([candidate(3)])

        assert report.uploaded == 1
        assert len(sleep.delays) == 2

    @pytest.mark.asyncio
    async def test_empty_media_url_passes_through(self):
        relocator, _ = make_relocator(MemoryStore(), image_handler)
        item = candidate(4, media_url="")

        report = await relocator.relocate([item])

        assert report.items == [item]
        assert (report.uploaded, report.failed) == (0, 0)

    @pytest.mark.asyncio
    async def test_without_store_items_are_untouched(self):
        relocator, _ = make_relocator(None, image_handler)
        items = [candidate(5), candidate(6)]

        report = await relocator.relocate(items)

        assert report.items == items
        assert report.uploaded == 0

    @pytest.mark.asyncio
    async def test_batches_pause_between_groups(self):
        relocator, sleep = make_relocator(MemoryStore(), image_handler)
        relocator.config = Config(relocation_batch_size=2, relocation_batch_pause=2.0)

        report = await relocator.relocate([candidate(n, title=f"t{n}") for n in range(5)])

        assert report.uploaded == 5
        assert [c.source_url for c in report.items] == [candidate(n).source_url for n in range(5)]
        assert sleep.delays == [2.0, 2.0]

    @pytest.mark.asyncio
    async def test_untitled_posts_from_one_account_get_distinct_objects(self):
        """Concurrent uploads within the same millisecond must not overwrite each other."""
        store = MemoryStore()
        client = httpx.AsyncClient(transport=httpx.MockTransport(image_handler))
        relocator = AssetRelocator(store, Config(), http_client=client, sleep=RecordingSleep())

        report = await relocator.relocate([candidate(n, title=None) for n in range(10)])

        urls = [item.media_url for item in report.items]
        assert report.uploaded == 10
        assert len(set(urls)) == len(urls) == len(store.objects) == 10


class FakeS3Client:
    def __init__(self, error: Exception | None = None):
        self.calls: list[dict] = []
        self.error = error

    def put_object(self, **kwargs):
        self.calls.append(kwargs)
        if self.error:
            raise self.error


class TestS3ObjectStore:
    @pytest.mark.asyncio
    async def test_returns_public_url(self):
        client = FakeS3Client()
        config = Config(storage_bucket="posters", storage_public_url="https://files.example/")
        store = S3ObjectStore(config, client=client)

        url = await store.put_object("a.jpg", b"data", "image/jpeg")

        assert url == "https://files.example/a.jpg"
        assert client.calls == [{"Bucket": "posters", "Key": "a.jpg", "Body": b"data", "ContentType": "image/jpeg"}]

    @pytest.mark.asyncio
    async def test_client_errors_are_retryable_relocation_errors(self):
        error = ClientError({"Error": {"Code": "SlowDown", "Message": "slow down"}}, "PutObject")
        store = S3ObjectStore(Config(), client=FakeS3Client(error))

        with pytest.raises(RelocationError) as exc_info:
            await store.put_object("a.jpg", b"data", "image/jpeg")

        assert exc_info.value.retryable is True
