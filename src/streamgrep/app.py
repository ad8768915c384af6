"""ASGI application exposing the search engine over HTTP.

Routes:
    GET /search   run one search, JSON response
    GET /show/... file text, archive member or directory listing behind a result link
    GET /health   liveness and configured roots
    GET /metrics  Prometheus metrics

Usage:
    python -m streamgrep.app
    STREAMGREP_ROOTS=/src,/vendor STREAMGREP_PORT=8080 python -m streamgrep.app
"""

from __future__ import annotations

import logging

from pydantic import ValidationError
from starlette.applications import Starlette
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from starlette.routing import Route

from streamgrep.adapters.candidates import CandidateProvider, PathWalker
from streamgrep.config import Settings
from streamgrep.domain.search import SearchRequest
from streamgrep.observability.logging import configure_logging
from streamgrep.observability.metrics import get_metrics, get_metrics_content_type
from streamgrep.search.matcher import PatternError
from streamgrep.service_layer.search_service import SearchService
from streamgrep.service_layer.show_service import HTML_MEDIA_TYPE, ShowService


logger = logging.getLogger(__name__)


def _flag(request: Request, name: str) -> bool:
    return request.query_params.get(name, "") not in ("", "0", "false", "off")


def _int_param(request: Request, name: str, default: int) -> int:
    raw = request.query_params.get(name)
    if raw is None or raw == "":
        return default
    return int(raw)


def build_search_request(request: Request, settings: Settings) -> SearchRequest:
    """Translate query parameters into a ``SearchRequest``.

    ``q`` is matched literally unless ``regex`` is set, and case-insensitively
    unless ``case-sensitive`` is set.
    """
    context = _int_param(request, "context", settings.web_context)
    return SearchRequest(
        query=request.query_params.get("q", ""),
        file_pattern=request.query_params.get("f", ""),
        literal=not _flag(request, "regex"),
        ignore_case=not _flag(request, "case-sensitive"),
        limit=_int_param(request, "limit", settings.web_limit),
        context_before=context,
        context_after=context,
    )


def build_search_endpoint(service: SearchService, settings: Settings):
    """Return a coroutine function that runs searches off the event loop."""

    async def search_endpoint(request: Request) -> JSONResponse:
        try:
            search_request = build_search_request(request, settings)
        except (ValidationError, ValueError) as exc:
            return JSONResponse({"error": f"Bad request: {exc}"}, status_code=400)

        try:
            response = await run_in_threadpool(service.search, search_request, surface="web")
        except PatternError as exc:
            return JSONResponse({"error": f"Bad query: {exc}"}, status_code=400)

        return JSONResponse(response.model_dump(mode="json"))

    return search_endpoint


def build_show_endpoint(service: ShowService):
    """Return a coroutine function serving the pages behind search result links."""

    async def show_endpoint(request: Request) -> Response:
        page = await run_in_threadpool(service.show, request.path_params["path"])
        if page is None:
            return PlainTextResponse("Not found", status_code=404)
        if page.media_type == HTML_MEDIA_TYPE:
            return HTMLResponse(page.body)
        return Response(page.body, media_type=page.media_type)

    return show_endpoint


def create_app(settings: Settings | None = None, candidates: CandidateProvider | None = None) -> Starlette:
    """Create the Starlette app searching ``settings.roots`` (or ``candidates``)."""
    settings = settings or Settings()
    if candidates is None:
        candidates = PathWalker(settings.get_roots(), expand_archives=settings.expand_archives)
    service = SearchService(candidates, buffer_size=settings.buffer_size)
    show_service = ShowService(settings.get_roots(), max_bytes=settings.show_max_bytes)

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({"status": "healthy", "roots": settings.get_roots()})

    async def metrics(request: Request) -> Response:
        return Response(get_metrics(), media_type=get_metrics_content_type())

    routes = [
        Route("/search", endpoint=build_search_endpoint(service, settings), methods=["GET"]),
        Route("/show/{path:path}", endpoint=build_show_endpoint(show_service), methods=["GET"]),
        Route("/health", endpoint=health, methods=["GET"]),
        Route("/metrics", endpoint=metrics, methods=["GET"]),
    ]
    app = Starlette(debug=settings.log_level == "debug", routes=routes)
    app.state.settings = settings
    app.state.search_service = service
    app.state.show_service = show_service
    return app


def main() -> None:
    """Main entry point for the search server."""
    import uvicorn

    try:
        settings = Settings()
    except ValidationError as exc:
        logger.error("Configuration is invalid: %s", exc)
        return

    configure_logging(settings.log_level, json_output=settings.json_logs, access_log=settings.log_level == "debug")
    app = create_app(settings)

    logger.info("Starting streamgrep on %s:%d (roots: %s)", settings.host, settings.port, settings.get_roots())
    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level,
        log_config=None,
    )


if __name__ == "__main__":
    main()
