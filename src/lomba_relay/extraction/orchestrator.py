# ABOUTME: Drives the fixed text -> OCR -> vision fallback extraction chain for one record
# ABOUTME: Merges provider output first-writer-wins and validates the accumulator at the end

from typing import Any

from lomba_relay.extraction.base import (
    ExtractionResult,
    ExtractionState,
    ImageExtractionProvider,
    ModelUsage,
    ProviderId,
    TextExtractionProvider,
)
from lomba_relay.extraction.schema import validate_extraction, validate_fields
from lomba_relay.utils.logging import RunContext
from lomba_relay.utils.retry import ProviderError


class ExtractionOrchestrator:
    """Multi-provider extraction for a single competition record.

    Step order is fixed:

    1. caption text through the text provider (only when there is body text)
    2. poster through the OCR provider, accepted only if it validates on its own
    3. poster through the vision provider, only when step 2 was invalid or failed
    4. whole-accumulator validation, degrading to per-field validation

    A provider failure never aborts the record; it just contributes nothing.
    """

    def __init__(
        self,
        text_provider: TextExtractionProvider,
        ocr_provider: ImageExtractionProvider,
        image_provider: ImageExtractionProvider,
        usage: ModelUsage | None = None,
    ):
        self.text_provider = text_provider
        self.ocr_provider = ocr_provider
        self.image_provider = image_provider
        self.usage = usage or ModelUsage()

    async def aclose(self) -> None:
        """Release provider HTTP clients; providers without one are left alone."""
        for provider in (self.text_provider, self.ocr_provider, self.image_provider):
            closer = getattr(provider, "aclose", None)
            if closer is not None:
                await closer()

    async def extract(
        self,
        record_id: int | None,
        body_text: str | None,
        poster_url: str | None,
        ctx: RunContext | None = None,
    ) -> ExtractionResult:
        ctx = (ctx or RunContext(pipeline="extraction")).child(record_id=record_id)
        result = ExtractionResult(record_id=record_id)

        if body_text and body_text.strip():
            await self._text_step(result, body_text, ctx)
        result.state = ExtractionState.TEXT_EXTRACTED

        if await self._ocr_step(result, poster_url or "", ctx):
            result.state = ExtractionState.IMAGE_EXTRACTED_PRIMARY
        else:
            await self._fallback_step(result, poster_url or "", ctx)
            result.state = ExtractionState.IMAGE_EXTRACTED_FALLBACK

        self._finalize(result, ctx)
        result.state = ExtractionState.VALIDATED

        ctx.logger.info(
            "Extraction finished",
            fields=len(result.fields),
            field_sources=result.field_sources(),
            errors=len(result.errors),
        )
        return result

    async def _text_step(self, result: ExtractionResult, body_text: str, ctx: RunContext) -> None:
        provider = self.text_provider.provider_id
        try:
            output = await ctx.time(f"extract:{provider.value}", self.text_provider.extract_text(body_text))
            values = output.canonical()
        except Exception as e:
            self._provider_failed(result, provider, e, ctx)
            return

        self.usage.record(provider, success=True)
        written = result.merge(values, provider)
        ctx.logger.debug("Text extraction merged", provider=provider.value, written=written)

    async def _ocr_step(self, result: ExtractionResult, poster_url: str, ctx: RunContext) -> bool:
        """Run the primary poster provider. Returns False when the fallback should run."""
        provider = self.ocr_provider.provider_id
        try:
            output = await ctx.time(f"extract:{provider.value}", self.ocr_provider.extract_image(poster_url))
            values = output.canonical()
        except Exception as e:
            self._provider_failed(result, provider, e, ctx)
            return False

        clean, errors = validate_extraction(values)
        if clean is None:
            self.usage.record(provider, success=False)
            result.errors.append(f"{provider.value}: schema validation failed ({'; '.join(errors)})")
            ctx.logger.warning(
                "Primary image extraction failed validation",
                provider=provider.value,
                validation_errors=errors,
            )
            return False

        self.usage.record(provider, success=True)
        written = result.merge(clean, provider)
        ctx.logger.debug("Primary image extraction merged", provider=provider.value, written=written)
        return True

    async def _fallback_step(self, result: ExtractionResult, poster_url: str, ctx: RunContext) -> None:
        provider = self.image_provider.provider_id
        try:
            output = await ctx.time(f"extract:{provider.value}", self.image_provider.extract_image(poster_url))
            values = output.canonical()
        except Exception as e:
            self._provider_failed(result, provider, e, ctx)
            return

        self.usage.record(provider, success=True)
        written = result.merge(values, provider)
        ctx.logger.debug("Fallback image extraction merged", provider=provider.value, written=written)

    def _finalize(self, result: ExtractionResult, ctx: RunContext) -> None:
        if not result.fields:
            return

        clean, errors = validate_extraction(result.fields)
        if clean is not None:
            result.retain(clean)
            return

        kept: dict[str, Any] = validate_fields(result.fields)
        dropped = sorted(set(result.fields) - set(kept))
        ctx.logger.warning("Accumulator failed validation, keeping valid fields only", dropped=dropped, errors=errors)
        result.retain(kept)

    def _provider_failed(self, result: ExtractionResult, provider: ProviderId, error: Exception, ctx: RunContext):
        self.usage.record(provider, success=False)
        result.errors.append(str(error) if isinstance(error, ProviderError) else f"{provider.value}: {error}")
        ctx.logger.warning(
            "Provider contributed nothing",
            provider=provider.value,
            error=str(error),
            error_type=type(error).__name__,
        )
