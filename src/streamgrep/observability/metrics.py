"""Prometheus metrics for search throughput and latency."""

from __future__ import annotations

from contextlib import contextmanager
import time
from typing import TYPE_CHECKING

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest


if TYPE_CHECKING:
    from collections.abc import Generator


SEARCH_LATENCY = Histogram(
    "streamgrep_search_latency_seconds",
    "Wall time of one search over its candidate set",
    ["surface"],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0),
)

FILES_SCANNED = Counter(
    "streamgrep_files_scanned_total",
    "Candidates processed, by outcome",
    ["outcome"],
)

MATCH_COUNT = Counter(
    "streamgrep_matches_total",
    "Matches reported to formatters",
)

SEARCHES_LIMITED = Counter(
    "streamgrep_searches_limited_total",
    "Searches that stopped at the match ceiling",
)


@contextmanager
def track_latency(histogram: Histogram, **labels: str) -> Generator[None, None, None]:
    """Context manager to track operation latency."""
    start = time.perf_counter()
    try:
        yield
    finally:
        histogram.labels(**labels).observe(time.perf_counter() - start)


def get_metrics() -> bytes:
    """Generate Prometheus metrics output."""
    return generate_latest()


def get_metrics_content_type() -> str:
    """Get content type for metrics endpoint."""
    return CONTENT_TYPE_LATEST
