"""Search service orchestration layer.

Drives one search over a candidate set: compiles the pattern, filters the
candidate names, opens every source (plain file or archive member) and scans
them one after another with a shared match ceiling. Results are either
collected as domain models through the scanner's callback hook or streamed
through one of the built-in formatters.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
import io
import logging
import os
import time
from typing import TYPE_CHECKING

from streamgrep.adapters.sources import SourceResolver
from streamgrep.domain.search import ExtensionCount, FileMatches, MatchSnippet, SearchRequest, SearchResponse
from streamgrep.observability.context import bind_search_context
from streamgrep.observability.metrics import (
    FILES_SCANNED,
    MATCH_COUNT,
    SEARCH_LATENCY,
    SEARCHES_LIMITED,
    track_latency,
)
from streamgrep.search.formatters import CallbackFormatter, MatchEvent, show_link
from streamgrep.search.limiter import MatchLimiter
from streamgrep.search.matcher import RegexMatcher, compile_matcher
from streamgrep.search.scanner import DEFAULT_BUFFER_SIZE, ChunkScanner, ScanConfig


if TYPE_CHECKING:
    from collections.abc import Callable, Iterable
    from typing import TextIO

    from streamgrep.adapters.candidates import CandidateProvider
    from streamgrep.search.formatters import MatchFormatter


logger = logging.getLogger(__name__)


def extension_counts(names: Iterable[str]) -> list[ExtensionCount]:
    """Tally file extensions, most common first."""
    counts = Counter(os.path.splitext(name)[1] for name in names)
    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return [ExtensionCount(extension=ext, count=count) for ext, count in ordered]


@dataclass(slots=True)
class StreamSummary:
    """Totals of a streamed search."""

    matches: int = 0
    limited: bool = False
    files_scanned: int = 0
    files_matched: int = 0
    files_skipped: int = 0


class _SnippetCollector:
    """Turns scanner callbacks into per-file ``FileMatches``."""

    def __init__(self, context_before: int, context_after: int) -> None:
        self.context_before = context_before
        self.context_after = context_after
        self.files: list[FileMatches] = []
        self._pending: list[MatchSnippet] = []

    def on_match(self, event: MatchEvent) -> None:
        before, line, after = event.context(self.context_before, self.context_after).decode()
        self._pending.append(
            MatchSnippet(
                line_number=event.line_number,
                line=line,
                before=before,
                after=after,
                stream_offset=event.stream_offset,
            )
        )

    def finish_file(self, name: str) -> None:
        if not self._pending:
            return
        self.files.append(FileMatches(name=name, link=show_link(name), matches=self._pending))
        self._pending = []


class SearchService:
    """High-level search orchestration.

    Args:
        candidates: Provider of names worth scanning (index query or path walk).
        buffer_size: Working buffer capacity for every scan.
        resolver_factory: Builds the object that opens candidate names.
    """

    def __init__(
        self,
        candidates: CandidateProvider,
        *,
        buffer_size: int = DEFAULT_BUFFER_SIZE,
        resolver_factory: Callable[[], SourceResolver] = SourceResolver,
    ) -> None:
        self.candidates = candidates
        self.buffer_size = buffer_size
        self.resolver_factory = resolver_factory

    def compile(self, request: SearchRequest) -> tuple[RegexMatcher, RegexMatcher | None]:
        """Compile the query and the optional file-name filter.

        Raises:
            PatternError: Before any file is touched, if either pattern is invalid.
        """
        matcher = compile_matcher(request.query, literal=request.literal, ignore_case=request.ignore_case)
        name_filter = compile_matcher(request.file_pattern, allow_text_anchors=True) if request.file_pattern else None
        return matcher, name_filter

    def search(self, request: SearchRequest, *, surface: str = "api") -> SearchResponse:
        """Run ``request`` and collect every snippet as domain models."""
        matcher, name_filter = self.compile(request)
        start = time.perf_counter()

        with bind_search_context(query=request.query, surface=surface), track_latency(
            SEARCH_LATENCY, surface=surface
        ):
            names = list(self.candidates.candidates(matcher))
            extensions = extension_counts(names)
            names = self._filter_names(names, name_filter)

            collector = _SnippetCollector(request.context_before, request.context_after)
            errors = io.StringIO()
            scanner = ChunkScanner(
                matcher,
                CallbackFormatter(collector.on_match),
                self._scan_config(request, line_numbers=True),
                limiter=MatchLimiter(request.limit),
                stderr=errors,
            )
            summary = self._scan_all(names, scanner, on_file_done=collector.finish_file)

        return SearchResponse(
            query=request.query,
            files=collector.files,
            match_count=summary.matches,
            limited=summary.limited,
            candidates=len(names),
            extensions=extensions,
            errors=errors.getvalue().splitlines(),
            elapsed_seconds=time.perf_counter() - start,
        )

    def stream(
        self,
        request: SearchRequest,
        formatter: MatchFormatter,
        *,
        stderr: TextIO | None = None,
        line_numbers: bool = False,
        surface: str = "cli",
    ) -> StreamSummary:
        """Run ``request`` rendering matches through ``formatter`` as they are found."""
        matcher, name_filter = self.compile(request)
        with bind_search_context(query=request.query, surface=surface), track_latency(
            SEARCH_LATENCY, surface=surface
        ):
            names = self._filter_names(self.candidates.candidates(matcher), name_filter)
            scanner = ChunkScanner(
                matcher,
                formatter,
                self._scan_config(request, line_numbers=line_numbers),
                limiter=MatchLimiter(request.limit),
                stderr=stderr,
            )
            return self._scan_all(names, scanner)

    def _scan_config(self, request: SearchRequest, *, line_numbers: bool) -> ScanConfig:
        return ScanConfig(
            context_before=request.context_before,
            context_after=request.context_after,
            line_numbers=line_numbers,
            buffer_size=self.buffer_size,
        )

    @staticmethod
    def _filter_names(names: Iterable[str], name_filter: RegexMatcher | None) -> list[str]:
        if name_filter is None:
            return list(names)
        return [name for name in names if name_filter.matches_name(name)]

    def _scan_all(
        self,
        names: Iterable[str],
        scanner: ChunkScanner,
        *,
        on_file_done: Callable[[str], None] | None = None,
    ) -> StreamSummary:
        summary = StreamSummary()
        limiter = scanner.limiter

        with self.resolver_factory() as resolver:
            for name in names:
                if limiter.limited:
                    break
                source = resolver.open(name)
                if source is None:
                    summary.files_skipped += 1
                    FILES_SCANNED.labels(outcome="skipped").inc()
                    continue
                with source:
                    state = scanner.scan(source, name)
                if on_file_done is not None:
                    on_file_done(name)

                summary.files_scanned += 1
                if state.matches:
                    summary.files_matched += 1
                    MATCH_COUNT.inc(state.matches)
                FILES_SCANNED.labels(outcome="error" if state.error else "scanned").inc()

        summary.matches = limiter.matches
        summary.limited = limiter.limited
        if summary.limited:
            SEARCHES_LIMITED.inc()
        logger.info(
            "Search finished: %d matches in %d/%d files (%d skipped)%s",
            summary.matches,
            summary.files_matched,
            summary.files_scanned,
            summary.files_skipped,
            ", limited" if summary.limited else "",
        )
        return summary
