"""Match ceiling shared by the scans of one search."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(slots=True)
class MatchLimiter:
    """Counts reported matches against an optional ceiling.

    ``limit`` of 0 means unlimited. Once a match arrives after the ceiling was
    reached, ``limited`` is set and the scanner stops without reading further.
    One limiter may span several sequential scans; it is never shared by scans
    running at the same time.
    """

    limit: int = 0
    matches: int = 0
    limited: bool = False

    def __post_init__(self) -> None:
        if self.limit < 0:
            raise ValueError("limit must be >= 0")

    @property
    def exhausted(self) -> bool:
        return self.limit > 0 and self.matches >= self.limit

    def admit(self) -> bool:
        """Count one more match, or flag the search as limited and refuse it."""
        if self.exhausted:
            self.limited = True
            return False
        self.matches += 1
        return True
