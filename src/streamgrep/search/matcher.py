"""Pattern matcher port and the default ``re``-backed implementation."""

from __future__ import annotations

import re
from typing import Protocol, runtime_checkable


NO_MATCH = -1
_TEXT_ANCHORS = frozenset("AZz")


class PatternError(ValueError):
    """Raised when a search pattern cannot be compiled."""

    def __init__(self, pattern: str, reason: str) -> None:
        super().__init__(f"{reason}: {pattern!r}")
        self.pattern = pattern
        self.reason = reason


@runtime_checkable
class Matcher(Protocol):
    """Finds the earliest match in a byte region."""

    @property
    def pattern(self) -> str:  # pragma: no cover - Protocol only
        """Source text of the pattern, used for links and logging."""

    def match(  # pragma: no cover - Protocol only
        self,
        haystack: bytes | bytearray,
        at_beginning_of_text: bool,
        at_end_of_text: bool,
        start: int = 0,
        end: int | None = None,
    ) -> int:
        """Return the offset of the earliest match starting in ``haystack[start:end]`` or ``NO_MATCH``.

        The offset is relative to ``haystack``, not to ``start``. Bytes past
        ``end`` may be looked at but never hold a reported match start.
        """


class RegexMatcher:
    """Multi-line regular expression over bytes.

    The region is searched in place with ``pos`` so lookbehind sees the bytes
    before ``start``. On a partial region the search runs on into the tail of
    the buffer, so ``$`` sees the byte that really follows the region, but
    only matches starting before ``end`` count. Text anchors (``\\A``, ``\\Z``)
    are refused by ``compile_matcher`` because the buffer start and end are
    not the stream start and end.
    """

    def __init__(self, pattern: str, regex: re.Pattern[bytes]) -> None:
        self._pattern = pattern
        self._regex = regex

    @property
    def pattern(self) -> str:
        return self._pattern

    @property
    def regex(self) -> re.Pattern[bytes]:
        return self._regex

    def match(
        self,
        haystack: bytes | bytearray,
        at_beginning_of_text: bool = True,
        at_end_of_text: bool = True,
        start: int = 0,
        end: int | None = None,
    ) -> int:
        if end is None:
            end = len(haystack)
        if at_end_of_text:
            found = self._regex.search(haystack, start, end)
            return NO_MATCH if found is None else found.start()

        found = self._regex.search(haystack, start)
        # A match starting at or past the region end belongs to the next region.
        if found is None or found.start() >= end:
            return NO_MATCH
        return found.start()

    def matches_name(self, name: str) -> bool:
        return self._regex.search(name.encode("utf-8", errors="surrogateescape")) is not None

    def __repr__(self) -> str:
        return f"RegexMatcher({self._pattern!r})"


def _text_anchor(pattern: str) -> str | None:
    """Return the first ``\\A``, ``\\Z`` or ``\\z`` escape in ``pattern``, if any."""
    i = 0
    while i < len(pattern) - 1:
        if pattern[i] == "\\":
            if pattern[i + 1] in _TEXT_ANCHORS:
                return pattern[i : i + 2]
            i += 2
        else:
            i += 1
    return None


def compile_matcher(
    pattern: str,
    *,
    literal: bool = False,
    ignore_case: bool = False,
    allow_text_anchors: bool = False,
) -> RegexMatcher:
    """Compile a user pattern into a matcher.

    Args:
        pattern: Regular expression (or literal text when ``literal`` is set).
        literal: Escape every metacharacter so the text matches verbatim.
        ignore_case: Match case-insensitively.
        allow_text_anchors: Accept ``\\A`` and ``\\Z``. Only safe for patterns
            matched against whole strings, such as file name filters.

    Raises:
        PatternError: If the pattern is empty, uses a text anchor or is not
            a valid expression.
    """
    if not pattern:
        raise PatternError(pattern, "empty pattern")
    if not literal and not allow_text_anchors:
        anchor = _text_anchor(pattern)
        if anchor is not None:
            raise PatternError(pattern, f"{anchor} is not supported, use ^ or $ instead")

    source = re.escape(pattern) if literal else pattern
    flags = re.MULTILINE
    if ignore_case:
        flags |= re.IGNORECASE
    try:
        regex = re.compile(source.encode("utf-8"), flags)
    except re.error as exc:
        raise PatternError(pattern, str(exc)) from exc
    return RegexMatcher(pattern, regex)
