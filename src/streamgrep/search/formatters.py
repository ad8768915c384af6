"""Rendering of scan matches.

Each formatter receives ``MatchEvent``s while a stream is being scanned and
writes to a text sink right away; only the counts formatter holds its output
until the end of the file. ``CallbackFormatter`` hands events to foreign code
instead of rendering them, which is how the search service and the HTTP layer
embed the scanner.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
import html
from typing import TYPE_CHECKING, ClassVar
from urllib.parse import quote

from streamgrep.search.context import ContextWindow, line_context


if TYPE_CHECKING:
    from typing import TextIO


ARCHIVE_DELIMITER = "\x01"


class OutputMode(str, Enum):
    """Built-in rendering modes; exactly one is active per scan."""

    NAMES = "names"
    COUNTS = "counts"
    PLAIN = "plain"
    CONTEXT = "context"
    CALLBACK = "callback"


@dataclass(frozen=True, slots=True)
class MatchEvent:
    """One match, valid only while the callback that receives it runs.

    ``buffer`` is the scanner's live working buffer; it is overwritten on the
    next slide, so consumers copy what they need (``line``, ``context()``)
    before returning.
    """

    buffer: bytearray
    name: str
    line_number: int
    line_start: int
    line_end: int
    match_start: int
    base_offset: int = 0

    @property
    def line(self) -> bytes:
        return bytes(self.buffer[self.line_start : self.line_end])

    @property
    def stream_offset(self) -> int:
        """Offset of the matched line from the start of the stream."""
        return self.base_offset + self.line_start

    def context(self, before: int, after: int) -> ContextWindow:
        return line_context(self.buffer, before, after, self.line_start, self.line_end)


def _decode(data: bytes) -> str:
    return data.decode("utf-8", errors="replace")


def show_link(name: str, pattern: str = "", line_number: int | None = None) -> str:
    """Build the ``/show/...`` link for a file, archive members included."""
    href = "/show/" + quote(name.replace(ARCHIVE_DELIMITER, ">").lstrip("/"), safe="/>")
    if pattern:
        href += "?q=" + quote(pattern, safe="")
    if line_number is not None:
        href += f"#L{line_number}"
    return href


class MatchFormatter(ABC):
    """Base class for match renderers.

    Args:
        stdout: Text sink receiving the rendered output.
        markup: Escape HTML-significant characters and wrap names in anchors.
        show_names: Prefix lines with the file name.
        line_numbers: Include line numbers in plain output.
        pattern: Pattern text, carried into markup links.
    """

    mode: ClassVar[OutputMode]
    needs_line_numbers: ClassVar[bool] = False

    def __init__(
        self,
        stdout: TextIO,
        *,
        markup: bool = False,
        show_names: bool = True,
        line_numbers: bool = False,
        pattern: str = "",
    ) -> None:
        self.stdout = stdout
        self.markup = markup
        self.show_names = show_names
        self.line_numbers = line_numbers
        self.pattern = pattern

    def esc(self, text: str) -> str:
        if self.markup:
            return html.escape(text, quote=True)
        return text

    def anchor(self, name: str, label: str, line_number: int | None = None, *, with_query: bool = True) -> str:
        href = show_link(name, self.pattern if with_query else "", line_number)
        return f'<a href="{self.esc(href)}">{self.esc(label)}</a>'

    def prefix(self, name: str) -> str:
        return f"{name}:" if self.show_names else ""

    def begin_file(self, name: str) -> None:
        """Called before the first read of a stream."""

    @abstractmethod
    def on_match(self, event: MatchEvent) -> bool:
        """Render one match; return False to stop scanning the current stream."""

    def end_file(self, name: str, count: int) -> None:
        """Called once the stream is done, with the number of matches reported."""


class NamesFormatter(MatchFormatter):
    mode = OutputMode.NAMES

    def on_match(self, event: MatchEvent) -> bool:
        if self.markup:
            self.stdout.write(self.anchor(event.name, event.name, with_query=False) + "\n")
        else:
            self.stdout.write(f"{event.name}\n")
        return False


class CountsFormatter(MatchFormatter):
    mode = OutputMode.COUNTS

    def on_match(self, event: MatchEvent) -> bool:
        return True

    def end_file(self, name: str, count: int) -> None:
        if count <= 0:
            return
        if self.markup:
            self.stdout.write(f"{self.anchor(name, name)}: {count}\n")
        else:
            self.stdout.write(f"{name}: {count}\n")


class PlainFormatter(MatchFormatter):
    """``name:line:text`` per match."""

    mode = OutputMode.PLAIN

    @property
    def needs_line_numbers(self) -> bool:  # type: ignore[override]
        return self.line_numbers or self.markup

    def on_match(self, event: MatchEvent) -> bool:
        text = _decode(event.line)
        if not text.endswith("\n"):
            text += "\n"
        if self.markup:
            label = f"{event.name}:{event.line_number}"
            self.stdout.write(f"{self.anchor(event.name, label, event.line_number)}:{self.esc(text)}")
        elif self.line_numbers:
            self.stdout.write(f"{self.prefix(event.name)}{event.line_number}:{text}")
        else:
            self.stdout.write(f"{self.prefix(event.name)}{text}")
        return True


class ContextFormatter(MatchFormatter):
    """Line-number header followed by tab-indented, dedented context."""

    mode = OutputMode.CONTEXT
    needs_line_numbers = True

    def __init__(self, stdout: TextIO, *, context_before: int = 0, context_after: int = 0, **kwargs) -> None:
        super().__init__(stdout, **kwargs)
        self.context_before = context_before
        self.context_after = context_after

    def on_match(self, event: MatchEvent) -> bool:
        window = event.context(self.context_before, self.context_after)
        before, line, after = window.decode()
        if self.markup:
            label = f"{event.name}:{event.line_number}"
            header = f"{self.anchor(event.name, label, event.line_number)}:\n"
        else:
            header = f"{self.prefix(event.name)}{event.line_number}:\n"

        out = [header]
        out.extend(f"\t\t{self.esc(text)}\n" for text in before)
        out.append(f"\t>>\t{self.esc(line)}\n")
        out.extend(f"\t\t{self.esc(text)}\n" for text in after)
        self.stdout.write("".join(out))
        return True


class CallbackFormatter(MatchFormatter):
    """Hands every event to ``callback`` and renders nothing itself."""

    mode = OutputMode.CALLBACK
    needs_line_numbers = True

    def __init__(self, callback: Callable[[MatchEvent], object], stdout: TextIO | None = None, **kwargs) -> None:
        super().__init__(stdout, **kwargs)  # type: ignore[arg-type]
        self.callback = callback

    def on_match(self, event: MatchEvent) -> bool:
        self.callback(event)
        return True


def create_formatter(
    mode: OutputMode | str,
    stdout: TextIO | None = None,
    *,
    markup: bool = False,
    show_names: bool = True,
    line_numbers: bool = False,
    context_before: int = 0,
    context_after: int = 0,
    pattern: str = "",
    callback: Callable[[MatchEvent], object] | None = None,
) -> MatchFormatter:
    """Pick the formatter for ``mode``.

    Plain mode with any context requested renders context blocks instead.
    """
    mode = OutputMode(mode)
    if mode is OutputMode.CALLBACK:
        if callback is None:
            raise ValueError("callback mode requires a callback")
        return CallbackFormatter(callback, stdout)
    if stdout is None:
        raise ValueError(f"{mode.value} mode requires an output stream")

    common = {"markup": markup, "show_names": show_names, "line_numbers": line_numbers, "pattern": pattern}
    if mode is OutputMode.NAMES:
        return NamesFormatter(stdout, **common)
    if mode is OutputMode.COUNTS:
        return CountsFormatter(stdout, **common)
    if mode is OutputMode.CONTEXT or context_before + context_after > 0:
        return ContextFormatter(stdout, context_before=context_before, context_after=context_after, **common)
    return PlainFormatter(stdout, **common)
