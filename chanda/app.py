"""
FastAPI application factory for the Chanda dashboard.

Usage:
    python -m chanda.app                         # Dev server on port 8000
    CHANDA_API_URL=https://chanda.example.org python -m chanda.app

The dashboard is a server-rendered UI (Jinja2 + HTMX) in front of the
Chanda REST backend; it keeps no data of its own beyond per-browser session
state (see chanda/session.py).

Logging: text by default, newline-delimited JSON when APP_LOG_FORMAT=json.
Every request is logged with an 8-character request id that is also
returned in the X-Request-ID header.
"""

import json
import logging
import time
import uuid
from contextlib import asynccontextmanager
from pathlib import Path
from urllib.parse import quote

from fastapi import FastAPI, Request
from fastapi.responses import HTMLResponse, JSONResponse, RedirectResponse, Response
from fastapi.staticfiles import StaticFiles
from fastapi.templating import Jinja2Templates
from starlette.exceptions import HTTPException as StarletteHTTPException

from chanda.backend import BackendClient
from chanda.routes import auth, collect, contributions, contributors, dashboard, expenses, payments, tolas
from chanda.session import (
    SESSION_COOKIE,
    LoginRequired,
    SessionRegistry,
    new_session_id,
)
from chanda.submission import SubmissionAdapter
from chanda.templating import register_filters, render, set_templates
from chanda.workflow import ContributionDesk
from utils.config import AppConfig

_ROOT = Path(__file__).resolve().parent.parent
_TEMPLATES_DIR = _ROOT / "templates"
_STATIC_DIR = _ROOT / "static"

_SLOW_REQUEST_MS = 500


# ── Structured JSON logging ───────────────────────────────────────────────────

class _JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("method", "path", "status", "duration_ms", "client_ip",
                    "request_id"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data)


_logger = logging.getLogger("chanda_dashboard")


def configure_logging(log_format: str = "text") -> None:
    handler = logging.StreamHandler()
    if log_format == "json":
        handler.setFormatter(_JsonFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
        )
    logging.basicConfig(handlers=[handler], level=logging.INFO, force=True)


def _wants_html(request: Request) -> bool:
    return "text/html" in request.headers.get("accept", "") or \
        request.headers.get("HX-Request") == "true"


def create_app(config: AppConfig | None = None, backend=None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Settings; read from the environment when omitted.
        backend: Backend client override (tests pass an in-memory fake).

    Returns:
        Configured FastAPI application instance.
    """
    config = config or AppConfig.from_env()
    configure_logging(config.log_format)
    owns_backend = backend is None
    backend = backend or BackendClient.from_config(config)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        _logger.info("Chanda dashboard starting; backend=%s event=%s",
                     config.api_url, config.event_name)
        yield
        if owns_backend:
            backend.close()

    app = FastAPI(
        title="Chanda Dashboard",
        summary="Contribution capture and reporting for community fundraising.",
        version="1.0.0",
        lifespan=lifespan,
        docs_url=None,
        redoc_url=None,
    )

    def desk_factory() -> ContributionDesk:
        adapter = SubmissionAdapter(backend, event_id=config.event_id,
                                    financial_year_id=config.financial_year_id)
        return ContributionDesk(backend, adapter)

    app.state.config = config
    app.state.backend = backend
    app.state.sessions = SessionRegistry(desk_factory, ttl=config.session_ttl,
                                         max_sessions=config.max_sessions)

    # ── Request logging middleware ────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request with its duration and a short request id."""
        start = time.monotonic()
        request_id = uuid.uuid4().hex[:8]
        request.state.request_id = request_id
        client_ip = request.client.host if request.client else "unknown"
        path = request.url.path

        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        if config.log_format == "json":
            _logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "client_ip": client_ip,
                    "request_id": request_id,
                },
            )
        else:
            _logger.info(
                "method=%s path=%s status=%d duration_ms=%.1f ip=%s rid=%s",
                request.method, path, response.status_code, duration_ms,
                client_ip, request_id,
            )
        if duration_ms > _SLOW_REQUEST_MS:
            _logger.warning(
                "slow_request method=%s path=%s duration_ms=%.1f",
                request.method, path, duration_ms,
            )
        return response

    # ── Session cookie ────────────────────────────────────────────────────────

    @app.middleware("http")
    async def session_cookie(request: Request, call_next):
        """Give every browser a session id cookie."""
        session_id = request.cookies.get(SESSION_COOKIE)
        issued = not session_id
        if issued:
            session_id = new_session_id()
        request.state.session_id = session_id
        response = await call_next(request)
        if issued:
            response.set_cookie(
                SESSION_COOKIE, session_id, httponly=True, samesite="lax",
                secure=config.cookie_secure,
            )
        return response

    # ── Content Security Policy + security headers ────────────────────────────

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        """Add Content-Security-Policy, X-Content-Type-Options, and X-Frame-Options."""
        response = await call_next(request)
        # CSP: allow self + CDN origins used by HTMX and Chart.js.
        # 'unsafe-inline' is required for the inline <script> blocks in templates.
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' unpkg.com cdn.jsdelivr.net 'unsafe-inline'; "
            "style-src 'self' 'unsafe-inline'; "
            "img-src 'self' data:; "
            "font-src 'self'; "
            "connect-src 'self';"
        )
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    # ── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(LoginRequired)
    async def login_required_handler(request: Request, exc: LoginRequired):
        target = f"/login?next={quote(exc.next_url)}"
        if request.headers.get("HX-Request") == "true":
            return Response(status_code=200, headers={"HX-Redirect": target})
        return RedirectResponse(target, status_code=303)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        if not _wants_html(request):
            return JSONResponse(
                status_code=exc.status_code,
                content={"error": exc.detail, "status_code": exc.status_code},
            )
        return render(request, "error.html",
                      {"status_code": exc.status_code, "message": exc.detail},
                      status_code=exc.status_code, notices=False)

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Log unhandled exceptions and show an error page instead of a traceback."""
        _logger.error("Unhandled error on %s %s", request.method, request.url.path,
                      exc_info=exc)
        if not _wants_html(request):
            return JSONResponse(
                status_code=500,
                content={"error": "Internal server error", "status_code": 500},
            )
        return HTMLResponse(
            _render_error_page(500, "Something went wrong. Please try again."),
            status_code=500,
        )

    # ── Health check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["meta"], summary="Health check")
    def health():
        """Return 200 OK while the dashboard process is serving requests."""
        return {
            "status": "ok",
            "backend": config.api_url,
            "event": config.event_name,
            "sessions": len(app.state.sessions),
        }

    # ── Templates + routes ────────────────────────────────────────────────────

    templates = Jinja2Templates(directory=str(_TEMPLATES_DIR))
    register_filters(templates)
    set_templates(templates)

    if _STATIC_DIR.exists():
        app.mount("/static", StaticFiles(directory=str(_STATIC_DIR)), name="static")

    for module in (dashboard, collect, contributions, contributors, payments,
                   expenses, tolas, auth):
        app.include_router(module.router)

    return app


def _render_error_page(status_code: int, message: str) -> str:
    # Plain HTML: the template layer may be what failed.
    return (
        "<!doctype html><html><head><title>Error</title></head><body>"
        f"<h1>{status_code}</h1><p>{message}</p><p><a href=\"/\">Back to dashboard</a></p>"
        "</body></html>"
    )


app = create_app()


if __name__ == "__main__":
    import uvicorn
    _cfg = app.state.config
    uvicorn.run("chanda.app:app", host=_cfg.api_host, port=_cfg.api_port, reload=False)
