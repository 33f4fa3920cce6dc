# crawlertrap/server.py
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import HTMLResponse, JSONResponse, PlainTextResponse, Response
from fastapi.templating import Jinja2Templates
from starlette.concurrency import run_in_threadpool
from starlette.exceptions import HTTPException as StarletteHTTPException

from . import __version__
from .client_ip import resolve_client_ip
from .settings import AppSettings, get_settings
from .visitors import VisitCategory, VisitorLog

logger = logging.getLogger(__name__)

# Scanners use more than GET; every method on a trap path is logged
TRAP_METHODS = ["GET", "HEAD", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"]

APP_ROOT = Path(__file__).parent
WEB_DIR = APP_ROOT / "web"

templates = Jinja2Templates(directory=str(WEB_DIR))

SECRET_MESSAGE = (
    "Gotcha!\n\n"
    "This page was explicitly marked as off-limits in robots.txt.\n"
    "Your IP and User-Agent have been logged for posterity.\n"
    "Maybe try respecting robots.txt next time?"
)
JAVASCRIPT_MESSAGE = (
    "Caught in the JavaScript trap!\n\n"
    "This link was hidden in a JavaScript comment.\n"
    "Only bots scraping with regex would find it.\n"
    "Your IP and User-Agent have been logged. Nice try, bot!"
)
FORBIDDEN_MESSAGE = (
    "Forbidden area detected!\n\n"
    "This route only exists in robots.txt.\n"
    "You're actively scanning forbidden content.\n"
    "Your IP and User-Agent have been logged. Naughty bot!"
)


def _visitor_log(request: Request) -> VisitorLog:
    return request.app.state.visitor_log


def _record(request: Request, category: VisitCategory) -> None:
    """Log the request against a trap. Storage failures are logged by the store."""
    peer = request.client.host if request.client else ""
    _visitor_log(request).add(
        source_address=resolve_client_ip(request.headers, peer),
        user_agent=request.headers.get("user-agent", ""),
        request_path=request.url.path,
        category=category,
    )


def create_app(
    settings: Optional[AppSettings] = None,
    visitor_log: Optional[VisitorLog] = None,
) -> FastAPI:
    """
    Build the trap site. The visitor log is created from settings unless one
    is passed in, and lives on ``app.state.visitor_log``.
    """
    settings = settings or get_settings()
    if visitor_log is None:
        visitor_log = VisitorLog(settings.visitor_log_path)

    # no slash redirects: "/secret-page/" is an unknown path like any other
    app = FastAPI(
        title="crawlertrap",
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
        redirect_slashes=False,
    )
    app.state.settings = settings
    app.state.visitor_log = visitor_log
    logger.info(f"Visitor log at {visitor_log.path}")

    @app.exception_handler(StarletteHTTPException)
    async def not_found_trap(request: Request, exc: StarletteHTTPException) -> Response:
        # Anything that falls through the routing table is logged as a scan
        if exc.status_code != 404:
            return await http_exception_handler(request, exc)
        await run_in_threadpool(_record, request, VisitCategory.NOT_FOUND)
        return PlainTextResponse("404 page not found", status_code=404)

    @app.get("/favicon.ico")
    def favicon() -> Response:
        return Response(status_code=204)

    @app.get("/health")
    def health_check() -> JSONResponse:
        return JSONResponse({"status": "ok", "version": f"crawlertrap-{__version__}"})

    @app.get("/robots.txt")
    def robots_txt() -> PlainTextResponse:
        return PlainTextResponse((WEB_DIR / "robots.txt").read_text("utf-8"))

    @app.get("/", response_class=HTMLResponse)
    def index(request: Request) -> HTMLResponse:
        visitors = _visitor_log(request).get_all()
        return templates.TemplateResponse(
            request,
            "index.html",
            {"title": request.app.state.settings.site_title, "visitors": visitors},
        )

    @app.get("/api/visitors")
    def api_visitors(request: Request) -> JSONResponse:
        visitors = _visitor_log(request).get_all()
        return JSONResponse({"count": len(visitors), "visitors": [v.to_record() for v in visitors]})

    # ---------------------------------------------------------------------------
    # Trap routes
    # ---------------------------------------------------------------------------

    @app.api_route("/secret-page", methods=TRAP_METHODS)
    def secret_page(request: Request) -> PlainTextResponse:
        _record(request, VisitCategory.SECRET)
        return PlainTextResponse(SECRET_MESSAGE)

    @app.api_route("/javascript-trap", methods=TRAP_METHODS)
    def javascript_trap(request: Request) -> PlainTextResponse:
        _record(request, VisitCategory.JAVASCRIPT)
        return PlainTextResponse(JAVASCRIPT_MESSAGE)

    @app.api_route("/forbidden-scan", methods=TRAP_METHODS)
    def forbidden_scan(request: Request) -> PlainTextResponse:
        _record(request, VisitCategory.FORBIDDEN)
        return PlainTextResponse(FORBIDDEN_MESSAGE)

    return app
