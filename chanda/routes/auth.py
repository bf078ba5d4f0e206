"""
Login / logout.

Routes:
    GET  /login?next=   → login.html
    POST /login         → POST /api/v1/users/login, sets the token cookie
    POST /logout        → clears the token cookie and the session's desk
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from chanda.errors import BackendClientError, BackendError
from chanda.session import (
    TOKEN_COOKIE,
    SessionContext,
    flash,
    get_backend,
    get_config,
    get_form,
    get_session_context,
)
from chanda.templating import render
from utils.validation import LoginForm, validate_form

logger = logging.getLogger(__name__)

router = APIRouter(tags=["auth"])


def safe_next(target: str | None) -> str:
    """Only redirect to local paths after login."""
    if not target or not target.startswith("/") or target.startswith("//") or "\\" in target:
        return "/"
    return target


@router.get("/login", response_class=HTMLResponse, include_in_schema=False)
def login_page(request: Request, next_url: str = Query("/", alias="next")) -> HTMLResponse:
    return render(request, "login.html", {"next": safe_next(next_url), "values": {}, "errors": {}})


@router.post("/login", response_class=HTMLResponse, include_in_schema=False)
def login(
    request: Request,
    form: dict = Depends(get_form),
    backend=Depends(get_backend),
    config=Depends(get_config),
):
    target = safe_next(form.get("next"))
    outcome = validate_form(LoginForm, form)
    if outcome.ok:
        try:
            result = backend.login(outcome.value.username, outcome.value.password)
        except BackendClientError as exc:
            logger.info("Login rejected for %s: %s", outcome.value.username, exc.detail)
            outcome.errors["__all__"] = exc.detail if exc.status_code != 401 else \
                "Invalid username or password"
        except BackendError as exc:
            logger.error("Login failed: %s", exc)
            outcome.errors["__all__"] = "Login failed, please try again"
        else:
            response = RedirectResponse(target, status_code=303)
            response.set_cookie(TOKEN_COOKIE, result.access_token, httponly=True,
                                samesite="lax", secure=config.cookie_secure)
            flash(request, "success", "Signed in")
            return response

    return render(request, "login.html", {
        "next": target,
        "values": {"username": form.get("username", "")},
        "errors": outcome.errors,
    }, status_code=422)


@router.post("/logout", include_in_schema=False)
def logout(
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
) -> RedirectResponse:
    request.app.state.sessions.discard(ctx.session_id)
    response = RedirectResponse("/login", status_code=303)
    response.delete_cookie(TOKEN_COOKIE)
    return response
