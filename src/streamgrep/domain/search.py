"""Domain models for search requests and results.

Value objects are immutable (frozen=True); the service layer accumulates plain
lists while scanning and builds these once a file is finished.
"""

from pydantic import BaseModel, ConfigDict, Field


class SearchRequest(BaseModel):
    """One search over a candidate file set."""

    model_config = ConfigDict(frozen=True)

    query: str = Field(min_length=1)
    file_pattern: str = Field(default="", description="Regular expression that candidate names must match")
    literal: bool = False
    ignore_case: bool = False
    limit: int = Field(default=0, ge=0, description="Stop after this many matches (0 = unlimited)")
    context_before: int = Field(default=0, ge=0)
    context_after: int = Field(default=0, ge=0)


class MatchSnippet(BaseModel):
    """A matched line with its dedented neighbours."""

    model_config = ConfigDict(frozen=True)

    line_number: int
    line: str
    before: list[str] = Field(default_factory=list)
    after: list[str] = Field(default_factory=list)
    stream_offset: int = 0


class FileMatches(BaseModel):
    """All snippets reported for one file, in stream order."""

    model_config = ConfigDict(frozen=True)

    name: str
    link: str
    matches: list[MatchSnippet] = Field(default_factory=list)


class ExtensionCount(BaseModel):
    """How many candidates share a file extension; used as filter suggestions."""

    model_config = ConfigDict(frozen=True)

    extension: str
    count: int


class SearchResponse(BaseModel):
    """Complete result of one search."""

    model_config = ConfigDict(frozen=True)

    query: str
    files: list[FileMatches] = Field(default_factory=list)
    match_count: int = 0
    limited: bool = False
    candidates: int = 0
    extensions: list[ExtensionCount] = Field(default_factory=list)
    errors: list[str] = Field(default_factory=list)
    elapsed_seconds: float = 0.0
