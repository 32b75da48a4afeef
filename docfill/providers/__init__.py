"""Remote AI provider adapters, one per provider kind."""

import httpx

from docfill.extraction.pattern_extractor import PatternExtractor
from docfill.utils.config import ProviderKind

from .base import ProviderAdapter
from .language_model import LanguageModelAdapter
from .vision import VisionOCRAdapter

ADAPTER_TYPES: dict[ProviderKind, type[ProviderAdapter]] = {
    ProviderKind.VISION_OCR: VisionOCRAdapter,
    ProviderKind.LANGUAGE_MODEL: LanguageModelAdapter,
}


def build_adapters(
    client: httpx.AsyncClient | None = None,
    extractor: PatternExtractor | None = None,
) -> dict[ProviderKind, ProviderAdapter]:
    """Instantiate one adapter per provider kind sharing a client and extractor."""
    extractor = extractor or PatternExtractor()
    return {
        kind: adapter_type(client=client, extractor=extractor)
        for kind, adapter_type in ADAPTER_TYPES.items()
    }


__all__ = [
    "ADAPTER_TYPES",
    "LanguageModelAdapter",
    "ProviderAdapter",
    "VisionOCRAdapter",
    "build_adapters",
]
