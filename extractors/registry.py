from __future__ import annotations

from typing import Any, Dict, Optional

from config.settings import Settings
from extraction.identity import object_type_for_url
from ports.page import RenderedPagePort
from utils.errors import MissingIdentifier


_REGISTRY: Dict[str, Any] = {}


def register(object_type: str, factory) -> None:
    _REGISTRY[object_type] = factory


def get_extractor(object_type: str, page: RenderedPagePort, settings: Optional[Settings] = None):
    if object_type not in _REGISTRY:
        raise KeyError(f"Unknown extractor: {object_type}")
    return _REGISTRY[object_type](page, settings)


def extractor_for_page(page: RenderedPagePort, settings: Optional[Settings] = None):
    """Pick the extractor whose detail-page address pattern matches the page."""
    object_type = object_type_for_url(page.url)
    if object_type is None or object_type not in _REGISTRY:
        raise MissingIdentifier("", page.url)
    return get_extractor(object_type, page, settings)


def available_extractors() -> Dict[str, Any]:
    return dict(_REGISTRY)
