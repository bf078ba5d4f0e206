"""
Template rendering shared by the HTML routes.

``create_app()`` builds the Jinja2 environment and hands it over with
``set_templates()``; routes call ``render()``, which adds the common context
every page needs (config, login state, pending notices).
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Any

from fastapi import Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from chanda.session import TOKEN_COOKIE
from utils.config import PaymentMode
from utils.formatting import (
    MASKED_AMOUNT,
    collection_class,
    collection_label,
    format_inr,
    format_percent,
    payment_mode_badge,
    percent_diff_class,
    percent_diff_label,
)

_templates: Jinja2Templates | None = None


def set_templates(t: Jinja2Templates) -> None:
    global _templates
    _templates = t


def _tmpl() -> Jinja2Templates:
    if _templates is None:
        raise RuntimeError("Templates not initialised, call set_templates() first")
    return _templates


def format_date(value: Any, fmt: str = "%d %b %Y") -> str:
    """Render a date or an ISO date/datetime string; unparseable text as-is."""
    if value is None or value == "":
        return "-"
    if isinstance(value, (date, datetime)):
        return value.strftime(fmt)
    text = str(value)
    try:
        return date.fromisoformat(text[:10]).strftime(fmt)
    except ValueError:
        return text


def register_filters(templates: Jinja2Templates) -> None:
    env = templates.env
    env.filters["inr"] = format_inr
    env.filters["percent"] = format_percent
    env.filters["datefmt"] = format_date
    env.filters["mode_label"] = PaymentMode.label_for
    env.filters["mode_badge"] = payment_mode_badge
    env.filters["diff_label"] = percent_diff_label
    env.filters["diff_class"] = percent_diff_class
    env.filters["collection_class"] = collection_class
    env.filters["collection_label"] = collection_label
    env.globals["MASKED_AMOUNT"] = MASKED_AMOUNT
    env.globals["payment_modes"] = PaymentMode.choices()


def render(request: Request, name: str, context: dict[str, Any] | None = None,
           status_code: int = 200, notices: bool = True,
           headers: dict[str, str] | None = None) -> HTMLResponse:
    """Render *name* with the common page context.

    Pending notices for the browser session are popped (shown once) unless
    ``notices=False``.
    """
    ctx: dict[str, Any] = {
        "config": request.app.state.config,
        "logged_in": bool(request.cookies.get(TOKEN_COOKIE)),
        "is_htmx": is_htmx(request),
        "notices": [],
    }
    ctx.update(context or {})
    session_id = getattr(request.state, "session_id", None)
    if notices and session_id:
        ctx["notices"] = list(ctx["notices"]) + request.app.state.sessions.get(session_id).pop_notices()
    return _tmpl().TemplateResponse(request, name, ctx, status_code=status_code, headers=headers)


def is_htmx(request: Request) -> bool:
    return request.headers.get("HX-Request") == "true"


def render_table(request: Request, page: str, partial: str,
                 context: dict[str, Any]) -> HTMLResponse:
    """Full page on navigation; only the table fragment for HTMX search/paging."""
    return render(request, partial if is_htmx(request) else page, context)
