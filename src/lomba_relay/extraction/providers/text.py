# ABOUTME: DSPy module that extracts competition fields from a post caption or web description
# ABOUTME: Runs against an OpenAI-compatible Z.ai model configured per call via dspy.context

from typing import Any, cast

import dspy

from lomba_relay.config import Config, get_config
from lomba_relay.extraction.base import ProviderId, TextProviderOutput
from lomba_relay.extraction.prompts import EXTRACTION_PROMPT, OUTPUT_KEYS
from lomba_relay.utils.retry import ProviderError


class CompetitionTextSignature(dspy.Signature):
    """Extract competition announcement details from Indonesian social media or web post text.

    Follow the extraction instructions exactly and leave out anything not clearly stated.
    """

    instructions: str = dspy.InputField(description="Extraction rules and allowed vocabularies")
    post_text: str = dspy.InputField(description="Caption or description text of the competition post")

    competition: dict[str, Any] = dspy.OutputField(
        description=f"JSON object with keys {OUTPUT_KEYS}; null for anything not found"
    )


class ZaiTextProvider(dspy.Module):
    """Text-to-structure extraction for post captions.

    Best-effort first step of the extraction chain: whatever it finds is
    trusted over the poster-based providers that run after it.
    """

    provider_id = ProviderId.ZAI

    def __init__(self, config: Config | None = None):
        super().__init__()
        self.config = config or get_config()
        self.extract_competition = dspy.ChainOfThought(CompetitionTextSignature)
        self.lm = (
            dspy.LM(self.config.zai_model, api_key=self.config.zai_api_key, api_base=self.config.zai_api_base)
            if self.config.zai_api_key
            else None
        )

    async def aforward(self, text: str) -> TextProviderOutput:
        if self.lm is None:
            raise ProviderError(self.provider_id.value, "API key not configured")

        with dspy.context(lm=self.lm):
            result = await self.extract_competition.acall(instructions=EXTRACTION_PROMPT, post_text=text)
        result = cast("CompetitionTextSignature", result)

        return TextProviderOutput(payload=result.competition)

    async def extract_text(self, text: str) -> TextProviderOutput:
        try:
            return await self.aforward(text)
        except ProviderError:
            raise
        except Exception as e:
            raise ProviderError(self.provider_id.value, str(e)) from e
