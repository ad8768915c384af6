"""Service behind ``/show/...`` links: file text, archive members and listings.

Search results link each file as ``/show/<path>`` with archive members
written as ``archive.zip>member``. Only names under the configured roots are
served; anything else looks the same as a missing file.
"""

from __future__ import annotations

from collections.abc import Sequence
import codecs
from dataclasses import dataclass
import html
import logging
import os
from pathlib import Path
import zipfile

from streamgrep.adapters.sources import (
    ARCHIVE_MARKER,
    ARCHIVE_SUFFIX,
    SourceResolver,
    archive_member_name,
    split_archive_name,
)
from streamgrep.search.formatters import show_link
from streamgrep.search.scanner import CLEAN_EOF_ERRORS, WorkingBuffer


logger = logging.getLogger(__name__)

DEFAULT_SHOW_MAX_BYTES = 16 << 20
TEXT_SNIFF_BYTES = 1024
HTML_MEDIA_TYPE = "text/html; charset=utf-8"
RAW_MEDIA_TYPE = "application/octet-stream"


@dataclass(frozen=True, slots=True)
class ShowPage:
    """Rendered response body for one ``/show`` request."""

    name: str
    body: str | bytes
    media_type: str


def is_text(data: bytes) -> bool:
    """Report whether the start of ``data`` looks like human-readable UTF-8.

    Only the first ``TEXT_SNIFF_BYTES`` are checked. A character cut off by
    that limit is ignored. Decoding errors and control characters other than
    newline, tab and form feed mark the data as binary.
    """
    decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
    sample = decoder.decode(data[:TEXT_SNIFF_BYTES], final=False)
    for ch in sample:
        if ch == "\ufffd" or (ch < " " and ch not in "\n\t\f"):
            return False
    return True


def _header(name: str) -> list[str]:
    e = html.escape
    parts = split_archive_name(name)
    path, member = parts if parts is not None else (name, "")

    crumbs = []
    segments = path.split("/")
    for i, segment in enumerate(segments):
        if segment:
            crumbs.append(f'/<a href="{e(show_link("/".join(segments[: i + 1])))}">{e(segment)}</a>')
    if member:
        crumbs.append(f"&gt;{e(member)}")

    return [
        "<!DOCTYPE html>\n<head>\n",
        f"<title>{e(name.replace(ARCHIVE_MARKER, ARCHIVE_SUFFIX + '>'))} - streamgrep</title>\n",
        "</head><body><pre>\n",
        "".join(crumbs),
        "\n\n",
    ]


def render_file(name: str, data: bytes) -> str:
    """Render text as numbered lines, each wrapped in ``<span id="L<n>">``."""
    text = data.decode("utf-8", errors="replace")
    lines = text.split("\n")
    if lines[-1] == "":
        lines.pop()

    width = len(str(1 + text.count("\n")))
    # Pad so number plus gap lands on a tab stop.
    width = ((width + 2 + 7) & ~7) - 2

    out = _header(name)
    for number, line in enumerate(lines, start=1):
        out.append(f'<span id="L{number}">{number:{width}d}  {html.escape(line)}\n</span>')
    out.append("</pre></body>\n")
    return "".join(out)


def render_listing(name: str, entries: Sequence[tuple[str, str]]) -> str:
    """Render ``(label, name)`` entries as a list of ``/show`` links."""
    out = _header(name)
    for label, target in entries:
        out.append(f'<a href="{html.escape(show_link(target))}">{html.escape(label)}</a>\n')
    out.append("</pre></body>\n")
    return "".join(out)


class ShowService:
    """Resolves ``/show`` paths under a set of roots and renders them.

    Args:
        roots: Files or directories that may be shown.
        max_bytes: Longest prefix of a file or member that is served.
    """

    def __init__(self, roots: Sequence[str | Path], *, max_bytes: int = DEFAULT_SHOW_MAX_BYTES) -> None:
        self._roots = [os.path.realpath(root) for root in roots]
        self.max_bytes = max_bytes

    def resolve(self, link_path: str) -> str | None:
        """Map a ``/show`` link path back to a candidate name, or None if it is not servable."""
        name = link_path.replace(ARCHIVE_SUFFIX + ">", ARCHIVE_MARKER, 1)
        for candidate in ("/" + name.lstrip("/"), name):
            parts = split_archive_name(candidate)
            fs_path = parts[0] if parts is not None else candidate
            if fs_path and os.path.exists(fs_path) and self._within_roots(fs_path):
                return candidate
        return None

    def show(self, link_path: str) -> ShowPage | None:
        """Render the file, member or directory behind ``link_path``; None means not found."""
        name = self.resolve(link_path)
        if name is None:
            logger.debug("Nothing to show for %r", link_path)
            return None

        if split_archive_name(name) is None:
            try:
                if os.path.isdir(name):
                    return self._page(name, render_listing(name, self._directory_entries(name)))
                if name.endswith(ARCHIVE_SUFFIX) and zipfile.is_zipfile(name):
                    return self._page(name, render_listing(name, self._archive_entries(name)))
            except (OSError, zipfile.BadZipFile) as exc:
                logger.warning("Cannot list %s: %s", name, exc)
                return None

        data = self._read(name)
        if data is None:
            return None
        if not is_text(data):
            return ShowPage(name=name, body=data, media_type=RAW_MEDIA_TYPE)
        return self._page(name, render_file(name, data))

    def _within_roots(self, path: str) -> bool:
        real = os.path.realpath(path)
        for root in self._roots:
            if os.path.commonpath([root, real]) == root:
                return True
        return False

    @staticmethod
    def _page(name: str, body: str) -> ShowPage:
        return ShowPage(name=name, body=body, media_type=HTML_MEDIA_TYPE)

    @staticmethod
    def _directory_entries(path: str) -> list[tuple[str, str]]:
        entries = []
        with os.scandir(path) as it:
            for entry in sorted(it, key=lambda e: e.name):
                if entry.name.startswith("."):
                    continue
                label = entry.name + "/" if entry.is_dir() else entry.name
                entries.append((label, os.path.join(path, entry.name)))
        return entries

    @staticmethod
    def _archive_entries(path: str) -> list[tuple[str, str]]:
        with zipfile.ZipFile(path) as archive:
            members = sorted(info.filename for info in archive.infolist() if not info.is_dir())
        return [(member, archive_member_name(path, member)) for member in members]

    def _read(self, name: str) -> bytes | None:
        buf = WorkingBuffer(self.max_bytes)
        with SourceResolver() as resolver:
            stream = resolver.open(name)
            if stream is None:
                return None
            with stream:
                try:
                    buf.fill(stream)
                except CLEAN_EOF_ERRORS as exc:
                    logger.debug("Stream %s ended early: %s", name, exc)
                except OSError as exc:
                    logger.warning("Cannot show %s: %s", name, exc)
                    return None
        return bytes(buf.data)
