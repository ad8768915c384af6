"""Line context extraction with shared-indentation stripping.

Given the span of a matched line inside a scan buffer, pull out up to N lines
before and after it and strip the leading whitespace run that every line in
the window has in common, so a snippet taken from deep inside an indented
block still reads from the left margin.
"""

from __future__ import annotations

from dataclasses import dataclass, field


NEWLINE = b"\n"
_TRAILING_BLANKS = b" \t\r\n"
_INDENT_BYTES = frozenset(b" \t")


@dataclass(frozen=True, slots=True)
class ContextWindow:
    """Lines around one match, all dedented by ``prefix``."""

    before: list[bytes] = field(default_factory=list)
    line: bytes = b""
    after: list[bytes] = field(default_factory=list)
    prefix: bytes = b""

    def lines(self) -> list[bytes]:
        return [*self.before, self.line, *self.after]

    def decode(self, encoding: str = "utf-8") -> tuple[list[str], str, list[str]]:
        """Return (before, line, after) as text, replacing undecodable bytes."""
        before = [line.decode(encoding, errors="replace") for line in self.before]
        after = [line.decode(encoding, errors="replace") for line in self.after]
        return before, self.line.decode(encoding, errors="replace"), after


def chomp(line: bytes) -> bytes:
    """Drop trailing newline, carriage return, spaces and tabs."""
    return line.rstrip(_TRAILING_BLANKS)


def count_newlines(buf: bytes | bytearray, start: int = 0, end: int | None = None) -> int:
    if end is None:
        end = len(buf)
    if end <= start:
        return 0
    return buf.count(NEWLINE, start, end)


def line_suffix_len(buf: bytes | bytearray, lines: int, end: int | None = None) -> int:
    """Length of the tail of ``buf[:end]`` that follows ``lines`` complete lines.

    Any trailing fragment without a newline is part of the suffix, then
    ``lines`` newline-terminated lines are added in front of it. When the
    region does not hold that many newlines the whole region is returned.
    """
    if end is None:
        end = len(buf)
    stop = end
    for _ in range(lines):
        j = buf.rfind(NEWLINE, 0, stop)
        if j < 0:
            break
        stop = j
    j = buf.rfind(NEWLINE, 0, stop)
    if j >= 0:
        return end - (j + 1)
    return end


def line_prefix_len(buf: bytes | bytearray, lines: int, start: int = 0, end: int | None = None) -> int:
    """Length of the first ``lines`` lines of ``buf[start:end]``, newlines included."""
    if end is None:
        end = len(buf)
    pos = start
    for _ in range(lines):
        j = buf.find(NEWLINE, pos, end)
        if j < 0:
            return end - start
        pos = j + 1
    return pos - start


def _split_lines(chunk: bytes) -> list[bytes]:
    if not chunk:
        return []
    parts = chunk.split(NEWLINE)
    if not parts[-1]:
        parts.pop()
    return [chomp(part) for part in parts]


def _narrow_prefix(prefix: bytes | None, line: bytes) -> bytes:
    if prefix is None:
        i = 0
        while i < len(line) and line[i] in _INDENT_BYTES:
            i += 1
        return line[:i]

    i = 0
    limit = min(len(prefix), len(line))
    while i < limit and line[i] == prefix[i]:
        i += 1
    return prefix[:i]


def shared_prefix(lines: list[bytes]) -> bytes:
    """Leading indentation of the first line, narrowed by every later line."""
    prefix: bytes | None = None
    for line in lines:
        prefix = _narrow_prefix(prefix, line)
    return prefix or b""


def line_context(
    buf: bytes | bytearray,
    before: int,
    after: int,
    line_start: int,
    line_end: int,
    end: int | None = None,
) -> ContextWindow:
    """Extract the matched line with up to ``before``/``after`` neighbours.

    Args:
        buf: Scan buffer holding the line.
        before: Number of preceding lines wanted.
        after: Number of following lines wanted.
        line_start: Offset of the first byte of the matched line.
        line_end: Offset just past the matched line (past its newline if any).
        end: Valid data boundary of ``buf`` (defaults to ``len(buf)``).

    Returns:
        ContextWindow with chomped lines and the shared prefix removed. Near
        the edges of the buffer fewer lines are returned.
    """
    if end is None:
        end = len(buf)
    before_start = line_start - line_suffix_len(buf, max(before, 0), line_start)
    after_end = line_end + line_prefix_len(buf, max(after, 0), line_end, end)

    match_line = chomp(bytes(buf[line_start:line_end]))
    before_lines = _split_lines(bytes(buf[before_start:line_start]))
    after_lines = _split_lines(bytes(buf[line_end:after_end]))

    prefix = shared_prefix([match_line, *before_lines, *after_lines])
    cut = len(prefix)
    return ContextWindow(
        before=[line[cut:] for line in before_lines],
        line=match_line[cut:],
        after=[line[cut:] for line in after_lines],
        prefix=prefix,
    )
