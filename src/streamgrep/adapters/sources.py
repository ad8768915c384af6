"""Byte sources for candidate names.

Candidate names are plain filesystem paths, or archive members addressed as
``archive.zip\\x01member/path`` the way the index records them.
"""

from __future__ import annotations

import logging
from pathlib import Path
import zipfile
import zlib

from streamgrep.search.formatters import ARCHIVE_DELIMITER


logger = logging.getLogger(__name__)

ARCHIVE_SUFFIX = ".zip"
ARCHIVE_MARKER = ARCHIVE_SUFFIX + ARCHIVE_DELIMITER


def split_archive_name(name: str) -> tuple[str, str] | None:
    """Split ``archive.zip\\x01member`` into its two parts, or None for plain paths."""
    archive, sep, member = name.partition(ARCHIVE_MARKER)
    if not sep:
        return None
    return archive + ARCHIVE_SUFFIX, member


def archive_member_name(archive: str | Path, member: str) -> str:
    return f"{archive}{ARCHIVE_DELIMITER}{member}"


class MemberReader:
    """Read wrapper that reports archive corruption as ``OSError``."""

    def __init__(self, stream) -> None:
        self._stream = stream

    def read(self, size: int = -1) -> bytes:
        try:
            return self._stream.read(size)
        except (zipfile.BadZipFile, zlib.error) as exc:
            raise OSError(f"corrupt archive member: {exc}") from exc

    def close(self) -> None:
        self._stream.close()

    def __enter__(self) -> MemberReader:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()


class SourceResolver:
    """Opens candidates as binary streams.

    The last archive opened stays open because index order groups members of
    the same archive together. Unavailable sources yield ``None`` so the
    caller can skip them and carry on with the rest of the set.
    """

    def __init__(self) -> None:
        self._archive_path: str | None = None
        self._archive: zipfile.ZipFile | None = None
        self._members: dict[str, zipfile.ZipInfo] = {}

    def open(self, name: str):
        try:
            return open(name, "rb")  # noqa: SIM115 - caller closes
        except OSError as exc:
            parts = split_archive_name(name)
            if parts is None:
                logger.debug("Skipping %s: %s", name, exc)
                return None
        return self._open_member(*parts)

    def _open_member(self, archive: str, member: str) -> MemberReader | None:
        if archive != self._archive_path:
            self._switch_archive(archive)
        if self._archive is None:
            return None

        info = self._members.get(member)
        if info is None:
            logger.debug("Skipping %s: no member %s", archive, member)
            return None
        try:
            return MemberReader(self._archive.open(info))
        except (OSError, zipfile.BadZipFile, NotImplementedError, RuntimeError) as exc:
            logger.debug("Skipping %s member %s: %s", archive, member, exc)
            return None

    def _switch_archive(self, archive: str) -> None:
        self.close()
        self._archive_path = archive
        try:
            self._archive = zipfile.ZipFile(archive)
        except (OSError, zipfile.BadZipFile) as exc:
            logger.debug("Skipping archive %s: %s", archive, exc)
            return
        self._members = {info.filename: info for info in self._archive.infolist()}

    def close(self) -> None:
        if self._archive is not None:
            self._archive.close()
        self._archive = None
        self._archive_path = None
        self._members = {}

    def __enter__(self) -> SourceResolver:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
