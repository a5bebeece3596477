# ABOUTME: Tests for the Mistral OCR provider request shape and error handling
# ABOUTME: HTTP is served by httpx.MockTransport; no network access

import json

import httpx
import pytest

from lomba_relay.config import Config
from lomba_relay.extraction.base import OcrProviderOutput
from lomba_relay.extraction.providers.ocr import MistralOcrProvider
from lomba_relay.utils.retry import ProviderError

POSTER = "https://cdn.example.com/poster.jpg"


def make_provider(handler, api_key: str = "test-key") -> MistralOcrProvider:
    config = Config(mistral_api_key=api_key)
    return MistralOcrProvider(config, http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)))


class TestMistralOcrProvider:
    """Test the OCR provider against a mocked endpoint."""

    @pytest.mark.asyncio
    async def test_sends_annotation_request(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"pages": [], "document_annotation": '{"title": "Lomba"}'})

        provider = make_provider(handler)
        output = await provider.extract_image(POSTER)

        assert isinstance(output, OcrProviderOutput)
        assert output.canonical() == {"title": "Lomba"}
        assert seen["auth"] == "Bearer test-key"
        assert seen["body"]["document"] == {"type": "image_url", "image_url": POSTER}
        annotation_format = seen["body"]["document_annotation_format"]
        assert annotation_format["type"] == "json_schema"
        assert annotation_format["json_schema"]["name"] == "competition_annotation"
        assert "categories" in annotation_format["json_schema"]["schema"]["properties"]

    @pytest.mark.asyncio
    async def test_http_error_becomes_provider_error(self):
        provider = make_provider(lambda request: httpx.Response(500, json={"message": "boom"}))

        with pytest.raises(ProviderError, match="HTTP 500"):
            await provider.extract_image(POSTER)

    @pytest.mark.asyncio
    async def test_missing_api_key(self):
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            return httpx.Response(200, json={})

        provider = make_provider(handler, api_key="")

        with pytest.raises(ProviderError, match="API key"):
            await provider.extract_image(POSTER)
        assert calls == []

    @pytest.mark.asyncio
    async def test_missing_poster_url(self):
        provider = make_provider(lambda request: httpx.Response(200, json={}))

        with pytest.raises(ProviderError, match="poster"):
            await provider.extract_image("")
