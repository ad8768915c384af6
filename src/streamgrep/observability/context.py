"""Per-search context carried into log records."""

from __future__ import annotations

from contextlib import contextmanager
from contextvars import ContextVar
from typing import TYPE_CHECKING
from uuid import uuid4


if TYPE_CHECKING:
    from collections.abc import Iterator


search_context: ContextVar[dict | None] = ContextVar("search_context", default=None)


def generate_search_id() -> str:
    """Generate a 16-char hex search ID."""
    return uuid4().hex[:16]


def get_search_context() -> dict:
    return search_context.get() or {}


@contextmanager
def bind_search_context(**values: object) -> Iterator[dict]:
    """Attach ``values`` (plus a fresh ``search_id``) to logs emitted in this block."""
    ctx = {"search_id": generate_search_id(), **values}
    token = search_context.set(ctx)
    try:
        yield ctx
    finally:
        search_context.reset(token)
