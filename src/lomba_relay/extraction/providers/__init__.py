# ABOUTME: AI extraction providers: caption text, poster OCR, and poster vision fallback
# ABOUTME: Each provider returns its own raw output variant for per-provider normalization

from .image import GeminiImageProvider
from .ocr import MistralOcrProvider
from .text import ZaiTextProvider

__all__ = [
    "GeminiImageProvider",
    "MistralOcrProvider",
    "ZaiTextProvider",
]
