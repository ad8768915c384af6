"""Observability module for structured logging and Prometheus metrics."""

from streamgrep.observability.context import bind_search_context, get_search_context, search_context
from streamgrep.observability.logging import JsonFormatter, configure_logging
from streamgrep.observability.metrics import (
    FILES_SCANNED,
    MATCH_COUNT,
    SEARCH_LATENCY,
    get_metrics,
    get_metrics_content_type,
    track_latency,
)


__all__ = [
    "FILES_SCANNED",
    "MATCH_COUNT",
    "SEARCH_LATENCY",
    "JsonFormatter",
    "bind_search_context",
    "configure_logging",
    "get_metrics",
    "get_metrics_content_type",
    "get_search_context",
    "search_context",
    "track_latency",
]
