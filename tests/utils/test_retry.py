# ABOUTME: Tests for the pipeline error taxonomy and tenacity-based retry helpers
# ABOUTME: Validates retryability classification, capped backoff, and bounded attempts

import httpx
import pytest

from lomba_relay.utils.retry import (
    DeliveryError,
    DetailFetchError,
    PersistenceError,
    PipelineError,
    ProviderError,
    RateLimitError,
    RelocationError,
    SourceFetchError,
    SourcesExhaustedError,
    backoff_delay,
    describe_http_error,
    is_retryable,
    retry_async,
    wait_backoff,
)


def status_error(code: int) -> httpx.HTTPStatusError:
    request = httpx.Request("GET", "https://upstream.example/page")
    response = httpx.Response(code, request=request)
    return httpx.HTTPStatusError(f"HTTP {code}", request=request, response=response)


class TestErrorTaxonomy:
    """Test pipeline exception types."""

    def test_every_error_is_a_pipeline_error(self):
        for error_type in (
            SourceFetchError,
            RateLimitError,
            DetailFetchError,
            RelocationError,
            ProviderError,
            PersistenceError,
            DeliveryError,
            SourcesExhaustedError,
        ):
            assert issubclass(error_type, PipelineError)

    def test_rate_limit_is_a_source_failure(self):
        assert issubclass(RateLimitError, SourceFetchError)

    def test_messages_carry_their_scope(self):
        assert str(ProviderError("mistral", "HTTP 500")) == "mistral: HTTP 500"
        assert str(DeliveryError("123@g.us", "timeout")) == "123@g.us: timeout"
        assert SourceFetchError("infolombait", "down").source == "infolombait"


class TestIsRetryable:
    @pytest.mark.parametrize("code", [500, 502, 503])
    def test_server_errors_retry(self, code):
        assert is_retryable(status_error(code))

    @pytest.mark.parametrize("code", [400, 403, 404])
    def test_client_errors_do_not_retry(self, code):
        assert not is_retryable(status_error(code))

    def test_timeouts_and_connection_errors_retry(self):
        assert is_retryable(httpx.ReadTimeout("slow"))
        assert is_retryable(httpx.ConnectError("refused"))

    def test_rate_limit_retries(self):
        assert is_retryable(RateLimitError("instagram:x", "HTTP 429"))

    def test_relocation_error_uses_its_flag(self):
        assert is_retryable(RelocationError("upload", retryable=True))
        assert not is_retryable(RelocationError("not an http URL"))

    def test_other_errors_do_not_retry(self):
        assert not is_retryable(ValueError("bad json"))


def test_describe_http_error_names_status_and_url():
    assert describe_http_error(status_error(503)) == "HTTP 503 for https://upstream.example/page"


class TestBackoffDelay:
    def test_grows_geometrically_until_cap(self):
        delays = [backoff_delay(n, base=5.0, maximum=60.0, multiplier=1.5) for n in range(8)]

        assert delays[:3] == [5.0, 7.5, 11.25]
        assert delays[-1] == 60.0
        assert delays == sorted(delays)

    def test_jitter_bounds(self):
        assert backoff_delay(0, 4.0, 10.0, jitter=0.25, rng=lambda: 0.0) == 3.0
        assert backoff_delay(0, 4.0, 10.0, jitter=0.25, rng=lambda: 1.0) == 5.0

    def test_never_negative(self):
        assert backoff_delay(0, 0.0, 10.0, jitter=0.5, rng=lambda: 0.0) == 0.0


class RecordingSleep:
    def __init__(self):
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)


class TestRetryAsync:
    """Test bounded retries with an injected sleep."""

    @pytest.mark.asyncio
    async def test_retries_until_success(self):
        outcomes = [httpx.ConnectError("refused"), status_error(503), "ok"]
        sleep = RecordingSleep()

        async def flaky():
            outcome = outcomes.pop(0)
            if isinstance(outcome, Exception):
                raise outcome
            return outcome

        result = await retry_async(flaky, attempts=3, wait=wait_backoff(1.0, 10.0), sleep=sleep)

        assert result == "ok"
        assert sleep.delays == [1.0, 2.0]

    @pytest.mark.asyncio
    async def test_stops_after_attempt_cap(self):
        calls = []

        async def always_down():
            calls.append(1)
            raise status_error(502)

        with pytest.raises(httpx.HTTPStatusError):
            await retry_async(always_down, attempts=3, wait=wait_backoff(1.0, 10.0), sleep=RecordingSleep())

        assert len(calls) == 3

    @pytest.mark.asyncio
    async def test_non_retryable_error_fails_immediately(self):
        calls = []

        async def not_found():
            calls.append(1)
            raise status_error(404)

        with pytest.raises(httpx.HTTPStatusError):
            await retry_async(not_found, attempts=5, wait=wait_backoff(1.0, 10.0), sleep=RecordingSleep())

        assert len(calls) == 1

    @pytest.mark.asyncio
    async def test_custom_retry_predicate(self):
        calls = []

        async def empty():
            calls.append(1)
            raise SourceFetchError("infolombaid", "listing returned no items")

        with pytest.raises(SourceFetchError):
            await retry_async(
                empty,
                attempts=4,
                wait=wait_backoff(0.0, 0.0),
                retry_on=lambda exc: isinstance(exc, SourceFetchError),
                sleep=RecordingSleep(),
            )

        assert len(calls) == 4
