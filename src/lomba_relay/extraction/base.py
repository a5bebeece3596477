# ABOUTME: Provider protocols, raw provider output variants, and the per-item extraction result
# ABOUTME: Holds the first-writer-wins merge and field provenance bookkeeping

import json
from datetime import date
from enum import Enum
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

from lomba_relay.extraction.normalize import normalize_payload
from lomba_relay.extraction.schema import FIELD_NAMES
from lomba_relay.persistence import is_empty


class ProviderId(str, Enum):
    """The fixed set of extraction providers, in call order."""

    ZAI = "zai"
    MISTRAL = "mistral"
    GEMINI = "gemini"


class ExtractionState(str, Enum):
    INIT = "init"
    TEXT_EXTRACTED = "text_extracted"
    IMAGE_EXTRACTED_PRIMARY = "image_extracted_primary"
    IMAGE_EXTRACTED_FALLBACK = "image_extracted_fallback"
    VALIDATED = "validated"


def _unwrap(payload: Any) -> Any:
    """Some models nest the object one level down, e.g. {"competition": {...}}."""
    if isinstance(payload, dict) and len(payload) == 1:
        (inner,) = payload.values()
        if isinstance(inner, dict):
            return inner
    return payload


class TextProviderOutput(BaseModel):
    """Structured object returned by the text provider for a post caption."""

    provider: Literal[ProviderId.ZAI] = ProviderId.ZAI
    payload: Any = None

    def canonical(self) -> dict[str, Any]:
        return normalize_payload(_unwrap(self.payload))


class OcrProviderOutput(BaseModel):
    """Document annotation returned by the OCR provider; may arrive as a JSON string."""

    provider: Literal[ProviderId.MISTRAL] = ProviderId.MISTRAL
    document_annotation: Any = None

    def canonical(self) -> dict[str, Any]:
        annotation = self.document_annotation
        if isinstance(annotation, str):
            annotation = json.loads(annotation)
        return normalize_payload(annotation)


class ImageProviderOutput(BaseModel):
    """Structured object returned by the fallback vision provider for a poster."""

    provider: Literal[ProviderId.GEMINI] = ProviderId.GEMINI
    payload: Any = None

    def canonical(self) -> dict[str, Any]:
        return normalize_payload(_unwrap(self.payload))


ProviderOutput = TextProviderOutput | OcrProviderOutput | ImageProviderOutput


class TextExtractionProvider(Protocol):
    provider_id: ProviderId

    async def extract_text(self, text: str) -> TextProviderOutput: ...


class ImageExtractionProvider(Protocol):
    provider_id: ProviderId

    async def extract_image(self, image_url: str) -> OcrProviderOutput | ImageProviderOutput: ...


class ModelUsage(BaseModel):
    """Per-provider call counters for one scheduler run."""

    attempted: dict[str, int] = Field(default_factory=lambda: {p.value: 0 for p in ProviderId})
    succeeded: dict[str, int] = Field(default_factory=lambda: {p.value: 0 for p in ProviderId})
    failed: dict[str, int] = Field(default_factory=lambda: {p.value: 0 for p in ProviderId})

    def record(self, provider: ProviderId, success: bool) -> None:
        self.attempted[provider.value] += 1
        bucket = self.succeeded if success else self.failed
        bucket[provider.value] += 1


class ExtractionResult(BaseModel):
    """Sparse canonical fields for one record plus which provider supplied each."""

    record_id: int | None = None
    fields: dict[str, Any] = Field(default_factory=dict)
    provenance: dict[str, ProviderId | None] = Field(default_factory=lambda: dict.fromkeys(FIELD_NAMES))
    state: ExtractionState = ExtractionState.INIT
    errors: list[str] = Field(default_factory=list)

    def merge(self, values: dict[str, Any], provider: ProviderId) -> list[str]:
        """Fill empty fields from ``values``; fields that already hold a value are never replaced.

        Returns the names of fields this call wrote.
        """
        written = []
        for name, value in values.items():
            if is_empty(value) or not is_empty(self.fields.get(name)):
                continue
            self.fields[name] = value
            if self.provenance.get(name) is None:
                self.provenance[name] = provider
            written.append(name)
        return written

    def retain(self, values: dict[str, Any]) -> None:
        """Replace fields with a validated subset, clearing provenance for anything dropped."""
        self.fields = dict(values)
        for name in self.provenance:
            if name not in self.fields:
                self.provenance[name] = None

    @property
    def has_fields(self) -> bool:
        return bool(self.fields)

    def field_sources(self) -> str:
        """Provenance grouped by provider, e.g. ``"zai: title, url | mistral: level"``."""
        groups = []
        for provider in ProviderId:
            names = [name for name, source in self.provenance.items() if source == provider]
            if names:
                groups.append(f"{provider.value}: {', '.join(names)}")
        return " | ".join(groups) if groups else "(none)"

    def to_record_values(self) -> dict[str, Any]:
        """Map canonical fields onto competition record columns.

        Dates that are not ISO calendar dates are left out.
        """
        values: dict[str, Any] = {}
        for name, value in self.fields.items():
            if name in ("start_date", "end_date"):
                try:
                    values[name] = date.fromisoformat(value)
                except (TypeError, ValueError):
                    continue
            elif name == "url":
                values["registration_url"] = value
            else:
                values[name] = value
        return values
