"""Candidate file providers.

A trigram index narrows the files worth scanning for a pattern; anything that
implements ``CandidateProvider`` can play that part. ``PathWalker`` is the
index-free fallback that offers every regular file under the given roots.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Sequence
import logging
import os
from pathlib import Path
from typing import TYPE_CHECKING, Protocol, runtime_checkable
import zipfile

from streamgrep.adapters.sources import ARCHIVE_SUFFIX, archive_member_name


if TYPE_CHECKING:
    from streamgrep.search.matcher import Matcher


logger = logging.getLogger(__name__)


@runtime_checkable
class CandidateProvider(Protocol):
    def candidates(self, matcher: Matcher) -> Iterable[str]:  # pragma: no cover - Protocol only
        """Return names that may contain matches for ``matcher``."""


class StaticCandidates:
    """Fixed candidate list, e.g. the result of an external index query."""

    def __init__(self, names: Iterable[str]) -> None:
        self._names = list(names)

    def candidates(self, matcher: Matcher) -> list[str]:
        return list(self._names)


class PathWalker:
    """Walks files and directories in sorted order.

    Args:
        roots: Files or directories to search.
        include_hidden: Descend into dot-files and dot-directories.
        expand_archives: Offer zip members as ``archive.zip\\x01member`` names
            instead of the archive itself.
    """

    def __init__(
        self,
        roots: Sequence[str | Path],
        *,
        include_hidden: bool = False,
        expand_archives: bool = False,
    ) -> None:
        self.roots = [Path(root) for root in roots]
        self.include_hidden = include_hidden
        self.expand_archives = expand_archives

    def candidates(self, matcher: Matcher) -> Iterator[str]:
        for root in self.roots:
            if root.is_dir():
                yield from self._walk(root)
            else:
                yield from self._expand(root)

    def _walk(self, root: Path) -> Iterator[str]:
        def _on_error(exc: OSError) -> None:
            logger.debug("Cannot list %s: %s", exc.filename, exc)

        for dirpath, dirnames, filenames in os.walk(root, onerror=_on_error):
            if not self.include_hidden:
                dirnames[:] = [d for d in dirnames if not d.startswith(".")]
            dirnames.sort()
            for filename in sorted(filenames):
                if not self.include_hidden and filename.startswith("."):
                    continue
                yield from self._expand(Path(dirpath) / filename)

    def _expand(self, path: Path) -> Iterator[str]:
        if not (self.expand_archives and path.suffix == ARCHIVE_SUFFIX):
            yield str(path)
            return
        try:
            with zipfile.ZipFile(path) as archive:
                members = [info.filename for info in archive.infolist() if not info.is_dir()]
        except (OSError, zipfile.BadZipFile) as exc:
            logger.debug("Cannot list archive %s: %s", path, exc)
            yield str(path)
            return
        for member in members:
            yield archive_member_name(path, member)
