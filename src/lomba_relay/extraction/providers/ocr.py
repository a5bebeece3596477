# ABOUTME: Mistral OCR client that returns a schema-guided document annotation for a poster
# ABOUTME: Primary poster provider; its output is validated before it may fill any field

import httpx

from lomba_relay.config import Config, get_config
from lomba_relay.extraction.base import OcrProviderOutput, ProviderId
from lomba_relay.extraction.schema import PROVIDER_JSON_SCHEMA
from lomba_relay.utils.logging import log_api_call
from lomba_relay.utils.retry import ProviderError, describe_http_error


class MistralOcrProvider:
    """Poster OCR with document annotation via the Mistral OCR endpoint."""

    provider_id = ProviderId.MISTRAL

    def __init__(self, config: Config | None = None, http_client: httpx.AsyncClient | None = None):
        self.config = config or get_config()
        self.http_client = http_client or httpx.AsyncClient(timeout=self.config.mistral_timeout)

    def build_request(self, image_url: str) -> dict:
        return {
            "model": self.config.mistral_ocr_model,
            "document": {"type": "image_url", "image_url": image_url},
            "include_image_base64": False,
            "document_annotation_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": "competition_annotation",
                    "strict": False,
                    "schema": PROVIDER_JSON_SCHEMA,
                },
            },
        }

    @log_api_call("mistral-ocr")
    async def extract_image(self, image_url: str) -> OcrProviderOutput:
        if not self.config.mistral_api_key:
            raise ProviderError(self.provider_id.value, "API key not configured")
        if not image_url:
            raise ProviderError(self.provider_id.value, "record has no poster URL")

        try:
            response = await self.http_client.post(
                self.config.mistral_ocr_url,
                json=self.build_request(image_url),
                headers={"Authorization": f"Bearer {self.config.mistral_api_key}"},
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPError as e:
            raise ProviderError(self.provider_id.value, describe_http_error(e)) from e
        except ValueError as e:
            raise ProviderError(self.provider_id.value, f"invalid JSON response: {e}") from e

        return OcrProviderOutput(document_annotation=data.get("document_annotation"))

    async def aclose(self) -> None:
        await self.http_client.aclose()
