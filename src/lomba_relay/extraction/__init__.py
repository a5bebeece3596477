# ABOUTME: AI extraction of structured competition fields from captions and posters
# ABOUTME: Pipeline Stage 3: draft record → normalized, validated, provenance-tracked fields

"""
Extraction Layer: Turn free-form posts into canonical competition fields

This layer handles:
- Calling the text, OCR and vision providers in a fixed order
- Per-provider normalization of loosely typed model output
- First-writer-wins merging with per-field provenance
- Whole-object validation with a per-field fallback

Data Flow: persistence/ draft → Providers → ExtractionResult → persistence/ fill-only update
"""

from lomba_relay.config import Config, get_config

from .base import ExtractionResult, ExtractionState, ModelUsage, ProviderId
from .orchestrator import ExtractionOrchestrator


def build_orchestrator(config: Config | None = None, usage: ModelUsage | None = None) -> ExtractionOrchestrator:
    """Wire the configured providers into an orchestrator."""
    from .providers import GeminiImageProvider, MistralOcrProvider, ZaiTextProvider

    config = config or get_config()
    return ExtractionOrchestrator(
        text_provider=ZaiTextProvider(config),
        ocr_provider=MistralOcrProvider(config),
        image_provider=GeminiImageProvider(config),
        usage=usage,
    )


__all__ = [
    "ExtractionOrchestrator",
    "ExtractionResult",
    "ExtractionState",
    "ModelUsage",
    "ProviderId",
    "build_orchestrator",
]
