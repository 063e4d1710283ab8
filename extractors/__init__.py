from extractors import account, contact, lead, opportunity, task  # noqa: F401 ensure registration
from extractors.base import EntityExtractor, ExtractionResult
from extractors.registry import available_extractors, extractor_for_page, get_extractor

__all__ = [
    "EntityExtractor",
    "ExtractionResult",
    "available_extractors",
    "extractor_for_page",
    "get_extractor",
]
