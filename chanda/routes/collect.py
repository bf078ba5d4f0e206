"""
"Collect Chanda" screen: record a contribution against a Tola.

Routes:
    GET  /collect           → collect.html (Tola picker + form or preview)
    POST /collect/tola      → select a Tola, reload its contributors
    POST /collect/draft     → live update + validation of the form
    POST /collect/preview   → validate and open the read-only preview
    POST /collect/confirm   → submit the previewed contribution
    POST /collect/cancel    → close the preview, keep the entered values
    POST /collect/reset     → clear the form

All POSTs answer with the ``partials/collect_panel.html`` fragment for HTMX
requests and with the full page otherwise.
"""

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from chanda.session import SessionContext, get_desk, get_form, require_login
from chanda.templating import is_htmx, render
from chanda.workflow import ContributionDesk, GateState

router = APIRouter(prefix="/collect", tags=["collect"])


def _tola_id(raw: str | None) -> int | None:
    try:
        value = int(raw) if raw not in (None, "") else None
    except ValueError:
        return None
    return value if value and value > 0 else None


def _context(desk: ContributionDesk) -> dict:
    return {
        "desk": desk,
        "loader": desk.loader,
        "form": desk.form,
        "values": desk.form.values,
        "errors": desk.form.errors,
        "previewing": desk.gate.state is GateState.PREVIEWING,
        "preview_rows": desk.preview_rows(),
    }


def _panel(request: Request, desk: ContributionDesk) -> HTMLResponse:
    return render(request, "partials/collect_panel.html" if is_htmx(request) else "collect.html",
                  _context(desk))


@router.get("", response_class=HTMLResponse, include_in_schema=False)
def collect_page(
    request: Request,
    ctx: SessionContext = Depends(require_login),
    desk: ContributionDesk = Depends(get_desk),
) -> HTMLResponse:
    """Full collection screen; reloads the Tola list on every visit."""
    desk.open(ctx)
    return render(request, "collect.html", _context(desk))


@router.post("/tola", response_class=HTMLResponse, include_in_schema=False)
def select_tola(
    request: Request,
    form: dict = Depends(get_form),
    ctx: SessionContext = Depends(require_login),
    desk: ContributionDesk = Depends(get_desk),
) -> HTMLResponse:
    desk.select_tola(_tola_id(form.get("tola_id")), ctx)
    return _panel(request, desk)


@router.post("/draft", response_class=HTMLResponse, include_in_schema=False)
def update_draft(
    request: Request,
    form: dict = Depends(get_form),
    ctx: SessionContext = Depends(require_login),
    desk: ContributionDesk = Depends(get_desk),
) -> HTMLResponse:
    desk.form.update(form, changed=request.headers.get("HX-Trigger-Name"))
    return _panel(request, desk)


@router.post("/preview", response_class=HTMLResponse, include_in_schema=False)
def preview(
    request: Request,
    form: dict = Depends(get_form),
    ctx: SessionContext = Depends(require_login),
    desk: ContributionDesk = Depends(get_desk),
) -> HTMLResponse:
    desk.form.update(form)
    desk.preview()
    return _panel(request, desk)


@router.post("/confirm", response_class=HTMLResponse, include_in_schema=False)
def confirm(
    request: Request,
    ctx: SessionContext = Depends(require_login),
    desk: ContributionDesk = Depends(get_desk),
) -> HTMLResponse:
    desk.confirm(ctx)
    return _panel(request, desk)


@router.post("/cancel", response_class=HTMLResponse, include_in_schema=False)
def cancel(
    request: Request,
    ctx: SessionContext = Depends(require_login),
    desk: ContributionDesk = Depends(get_desk),
) -> HTMLResponse:
    desk.cancel()
    return _panel(request, desk)


@router.post("/reset", response_class=HTMLResponse, include_in_schema=False)
def reset(
    request: Request,
    ctx: SessionContext = Depends(require_login),
    desk: ContributionDesk = Depends(get_desk),
) -> HTMLResponse:
    desk.reset()
    return _panel(request, desk)
