# ABOUTME: DSPy vision module that reads competition fields straight from a poster image
# ABOUTME: Fallback for when OCR output is missing or fails canonical validation

from typing import Any, cast

import dspy

from lomba_relay.config import Config, get_config
from lomba_relay.extraction.base import ImageProviderOutput, ProviderId
from lomba_relay.extraction.prompts import EXTRACTION_PROMPT, OUTPUT_KEYS
from lomba_relay.utils.retry import ProviderError


class CompetitionPosterSignature(dspy.Signature):
    """Read a competition poster and extract the announcement details that are clearly visible."""

    instructions: str = dspy.InputField(description="Extraction rules and allowed vocabularies")
    poster: dspy.Image = dspy.InputField(description="Competition poster image")

    competition: dict[str, Any] = dspy.OutputField(
        description=f"JSON object with keys {OUTPUT_KEYS}; null for anything not visible"
    )


class GeminiImageProvider(dspy.Module):
    """Poster-to-structure extraction using Gemini vision."""

    provider_id = ProviderId.GEMINI

    def __init__(self, config: Config | None = None):
        super().__init__()
        self.config = config or get_config()
        self.read_poster = dspy.Predict(CompetitionPosterSignature)
        self.lm = (
            dspy.LM(self.config.gemini_model, api_key=self.config.gemini_api_key)
            if self.config.gemini_api_key
            else None
        )

    async def aforward(self, image_url: str) -> ImageProviderOutput:
        if self.lm is None:
            raise ProviderError(self.provider_id.value, "API key not configured")
        if not image_url:
            raise ProviderError(self.provider_id.value, "record has no poster URL")

        poster = dspy.Image.from_url(image_url)
        with dspy.context(lm=self.lm):
            result = await self.read_poster.acall(instructions=EXTRACTION_PROMPT, poster=poster)
        result = cast("CompetitionPosterSignature", result)

        return ImageProviderOutput(payload=result.competition)

    async def extract_image(self, image_url: str) -> ImageProviderOutput:
        try:
            return await self.aforward(image_url)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(self.provider_id.value, str(e)) from e
