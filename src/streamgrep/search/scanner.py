"""Streaming line-oriented match engine.

The scanner reads a byte stream through a bounded working buffer and asks the
matcher for one match at a time. Matching never runs past the "safe end" of
a non-final buffer, which leaves enough complete lines after every match to
render its trailing context. After each pass the processed bytes are slid
out of the buffer, keeping just enough lines to serve as leading context for
the next pass.

Memory stays bounded by ``ScanConfig.buffer_size``: when the requested
leading context does not fit, it is dropped for that slide instead of growing
the buffer.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import logging
from typing import TYPE_CHECKING, Protocol

from streamgrep.search.context import NEWLINE, count_newlines, line_suffix_len
from streamgrep.search.formatters import MatchEvent
from streamgrep.search.limiter import MatchLimiter
from streamgrep.search.matcher import NO_MATCH


if TYPE_CHECKING:
    from typing import TextIO

    from streamgrep.search.formatters import MatchFormatter
    from streamgrep.search.matcher import Matcher


logger = logging.getLogger(__name__)

DEFAULT_BUFFER_SIZE = 1 << 20
READ_ERRORS = (OSError, EOFError)
# Truncated streams (zip members cut short) end cleanly.
CLEAN_EOF_ERRORS = (EOFError,)


class ByteSource(Protocol):
    def read(self, size: int = -1, /) -> bytes:  # pragma: no cover - Protocol only
        """Return up to ``size`` bytes, ``b""`` at end of stream."""


@dataclass(frozen=True, slots=True)
class ScanConfig:
    """Per-scan options."""

    context_before: int = 0
    context_after: int = 0
    line_numbers: bool = False
    buffer_size: int = DEFAULT_BUFFER_SIZE

    def __post_init__(self) -> None:
        if self.context_before < 0 or self.context_after < 0:
            raise ValueError("context line counts must be >= 0")
        if self.buffer_size < 1:
            raise ValueError("buffer_size must be positive")


@dataclass(slots=True)
class WorkingBuffer:
    """Bounded byte region fed from a stream.

    ``len(data)`` is the valid data boundary. ``chunk_start`` is the first
    unprocessed byte and ``end`` the limit of the current matching pass, so
    ``0 <= chunk_start <= end <= len(data) <= capacity`` always holds.
    ``base_offset`` is the stream offset of ``data[0]``.
    """

    capacity: int
    data: bytearray = field(default_factory=bytearray)
    chunk_start: int = 0
    end: int = 0
    base_offset: int = 0

    def fill(self, source: ByteSource) -> bool:
        """Read until the buffer is full; return True once the source is exhausted.

        Bytes read before a failing read stay in the buffer.
        """
        while len(self.data) < self.capacity:
            chunk = source.read(self.capacity - len(self.data))
            if not chunk:
                return True
            self.data += chunk
        return False

    def safe_end(self, context_after: int) -> int:
        """Last offset that leaves ``context_after`` complete lines (plus one) unscanned."""
        size = len(self.data)
        tail = line_suffix_len(self.data, context_after + 1)
        if tail < size:
            return size - tail
        return size

    def slide(self, keep_lines: int) -> None:
        """Drop processed bytes, keeping up to ``keep_lines`` lines before ``end``."""
        keep = line_suffix_len(self.data, keep_lines, self.end)
        if keep == self.end:
            # Not enough room; give up on context.
            keep = 0
        drop = self.end - keep
        del self.data[:drop]
        self.base_offset += drop
        self.chunk_start = keep
        self.end = keep


@dataclass(slots=True)
class ScanState:
    """Running state of one scan call."""

    name: str
    line_number: int = 1
    begin_text: bool = True
    end_text: bool = False
    matches: int = 0
    limited: bool = False
    stopped: bool = False
    error: BaseException | None = None


class ChunkScanner:
    """Scans streams for matches and dispatches them to a formatter.

    Args:
        matcher: Compiled pattern.
        formatter: Receives every reported match.
        config: Context and buffer options.
        limiter: Match ceiling, shared by the sequential scans of a search.
        stderr: Sink for read errors (``name: error`` lines).

    A scanner instance can be reused for many streams one after another but
    must not be used from two threads at once.
    """

    def __init__(
        self,
        matcher: Matcher,
        formatter: MatchFormatter,
        config: ScanConfig | None = None,
        *,
        limiter: MatchLimiter | None = None,
        stderr: TextIO | None = None,
    ) -> None:
        self.matcher = matcher
        self.formatter = formatter
        self.config = config or ScanConfig()
        self.limiter = limiter if limiter is not None else MatchLimiter()
        self.stderr = stderr

    @property
    def tracks_line_numbers(self) -> bool:
        return self.config.line_numbers or bool(self.formatter.needs_line_numbers)

    def scan(self, source: ByteSource, name: str) -> ScanState:
        """Scan ``source`` to the end, or until the formatter or limiter stops it."""
        state = ScanState(name=name)
        self.formatter.begin_file(name)
        self._run(source, WorkingBuffer(self.config.buffer_size), state)
        # A file cut off by the limiter gets no summary.
        if not state.limited:
            self.formatter.end_file(name, state.matches)
        if state.error is not None:
            self._report_error(state)
        return state

    def _run(self, source: ByteSource, buf: WorkingBuffer, state: ScanState) -> None:
        config = self.config
        track = self.tracks_line_numbers

        while True:
            try:
                exhausted = buf.fill(source)
            except CLEAN_EOF_ERRORS as exc:
                logger.debug("Stream %s ended early: %s", state.name, exc)
                exhausted = True
            except READ_ERRORS as exc:
                state.error = exc
                exhausted = True

            data = buf.data
            if exhausted:
                state.end_text = True
                buf.end = len(data)
            else:
                buf.end = buf.safe_end(config.context_after)
            end = buf.end

            while buf.chunk_start < end:
                pos = self.matcher.match(data, state.begin_text, state.end_text, buf.chunk_start, end)
                state.begin_text = False
                if pos == NO_MATCH or pos < buf.chunk_start:
                    break

                j = data.rfind(NEWLINE, buf.chunk_start, pos)
                line_start = j + 1 if j >= 0 else buf.chunk_start
                j = data.find(NEWLINE, pos, end)
                line_end = j + 1 if j >= 0 else end

                if track:
                    state.line_number += count_newlines(data, buf.chunk_start, line_start)

                if not self.limiter.admit():
                    state.limited = True
                    return
                state.matches += 1

                event = MatchEvent(
                    buffer=data,
                    name=state.name,
                    line_number=state.line_number if track else 0,
                    line_start=line_start,
                    line_end=line_end,
                    match_start=pos,
                    base_offset=buf.base_offset,
                )
                keep_going = self.formatter.on_match(event)

                if track and line_end > line_start and data[line_end - 1] == NEWLINE[0]:
                    state.line_number += 1
                buf.chunk_start = line_end
                if not keep_going:
                    state.stopped = True
                    return

            if exhausted:
                return

            if track:
                state.line_number += count_newlines(data, buf.chunk_start, end)
            buf.slide(config.context_before)

    def _report_error(self, state: ScanState) -> None:
        logger.warning("Read error while scanning %s: %s", state.name, state.error)
        if self.stderr is not None:
            esc = self.formatter.esc
            self.stderr.write(f"{esc(state.name)}: {esc(str(state.error))}\n")


def scan(
    source: ByteSource,
    matcher: Matcher,
    formatter: MatchFormatter,
    config: ScanConfig | None = None,
    *,
    name: str = "(standard input)",
    limiter: MatchLimiter | None = None,
    stderr: TextIO | None = None,
) -> ScanState:
    """Scan a single stream with a throwaway ``ChunkScanner``."""
    scanner = ChunkScanner(matcher, formatter, config, limiter=limiter, stderr=stderr)
    return scanner.scan(source, name)
