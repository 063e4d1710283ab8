from .lines import lineize
from .labels import find_by_label, resolve_primary_name
from .normalizers import normalize_amount, normalize_date
from .identity import id_from_url, object_type_for_url
from .page import InMemoryPage, PageSnapshot

__all__ = [
    "lineize",
    "find_by_label",
    "resolve_primary_name",
    "normalize_amount",
    "normalize_date",
    "id_from_url",
    "object_type_for_url",
    "InMemoryPage",
    "PageSnapshot",
]
