"""Domain layer - value objects describing search requests and results.

No infrastructure dependencies; the service layer fills these models from
scanner callbacks and the HTTP layer serializes them.
"""

from streamgrep.domain.search import (
    ExtensionCount,
    FileMatches,
    MatchSnippet,
    SearchRequest,
    SearchResponse,
)


__all__ = [
    "ExtensionCount",
    "FileMatches",
    "MatchSnippet",
    "SearchRequest",
    "SearchResponse",
]
