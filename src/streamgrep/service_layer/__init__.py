"""Service layer - orchestrates one search over a candidate set."""

from .search_service import SearchService, extension_counts
from .show_service import ShowPage, ShowService, is_text


__all__ = [
    "SearchService",
    "ShowPage",
    "ShowService",
    "extension_counts",
    "is_text",
]
