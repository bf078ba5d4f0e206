"""
Contributors listing and contributor update form.

Routes:
    GET  /contributors?q=&page=                    → contributors.html
    GET  /contributors/edit?tola_id=&contributor_id= → contributor_edit.html
    POST /contributors/{contributor_id}             → PUT /api/v1/contributors/{id}

The pledges column is only shown to logged-in users; editing requires login.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from chanda.errors import BackendClientError, BackendError
from chanda.session import (
    SessionContext,
    flash,
    get_backend,
    get_config,
    get_form,
    get_session_context,
    require_login,
)
from chanda.templating import is_htmx, render, render_table
from utils.pagination import filter_rows, paginate
from utils.validation import ContributorUpdateForm, validate_form

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contributors", tags=["contributors"])

SEARCH_FIELDS = ("name", "tola.tola_name")


def _int_or_none(raw: str | None) -> int | None:
    try:
        return int(raw) if raw else None
    except ValueError:
        return None


@router.get("", response_class=HTMLResponse, include_in_schema=False)
def contributors(
    request: Request,
    q: str = Query("", max_length=200),
    page: int = Query(1),
    ctx: SessionContext = Depends(get_session_context),
    backend=Depends(get_backend),
    config=Depends(get_config),
) -> HTMLResponse:
    error = None
    rows = []
    try:
        rows = backend.list_contributors(ctx)
    except BackendError as exc:
        logger.error("Could not load contributors: %s", exc)
        error = "Contributors are unavailable right now."

    result = paginate(filter_rows(rows, q, SEARCH_FIELDS), page, config.page_size)
    return render_table(request, "contributors.html", "partials/contributors_table.html", {
        "q": q,
        "page": result,
        "error": error,
        "show_pledges": ctx.is_authenticated,
    })


def _edit_context(backend, ctx: SessionContext, tola_id: int | None,
                  contributor_id: int | None) -> dict:
    tolas, contributors, load_error = [], [], None
    try:
        tolas = backend.list_tolas(ctx)
        if tola_id:
            contributors = backend.list_tola_contributors(tola_id, ctx)
    except BackendError as exc:
        logger.error("Could not load contributor edit data: %s", exc)
        load_error = "Reference data is unavailable right now."
    selected = next((c for c in contributors if c.id == contributor_id), None)
    values = {}
    if selected is not None:
        values = {
            "contributor_id": str(selected.id),
            "name": selected.name,
            "father_or_spouse_name": selected.father_or_spouse_name or "",
            "contact": selected.contact or "",
            "pledge_amount": "" if selected.pledge_amount is None else f"{selected.pledge_amount:g}",
        }
    return {
        "tolas": tolas,
        "contributors": contributors,
        "tola_id": tola_id,
        "selected": selected,
        "values": values,
        "errors": {},
        "load_error": load_error,
    }


@router.get("/edit", response_class=HTMLResponse, include_in_schema=False)
def edit_contributor(
    request: Request,
    tola_id: str | None = Query(None),
    contributor_id: str | None = Query(None),
    ctx: SessionContext = Depends(require_login),
    backend=Depends(get_backend),
) -> HTMLResponse:
    """Pick a Tola and a contributor; the form is pre-filled from the record."""
    context = _edit_context(backend, ctx, _int_or_none(tola_id), _int_or_none(contributor_id))
    template = "partials/contributor_edit_form.html" if is_htmx(request) else "contributor_edit.html"
    return render(request, template, context)


@router.post("/{contributor_id}", response_class=HTMLResponse, include_in_schema=False)
def update_contributor(
    request: Request,
    contributor_id: int,
    form: dict = Depends(get_form),
    ctx: SessionContext = Depends(require_login),
    backend=Depends(get_backend),
):
    tola_id = _int_or_none(form.get("tola_id"))
    data = dict(form, contributor_id=contributor_id)
    outcome = validate_form(ContributorUpdateForm, data)
    if outcome.ok:
        update = outcome.value
        payload = update.model_dump()
        try:
            backend.update_contributor(contributor_id, payload, ctx)
        except BackendClientError as exc:
            outcome.errors["__all__"] = f"The server rejected the update: {exc.detail}"
        except BackendError as exc:
            logger.error("Contributor %s update failed: %s", contributor_id, exc)
            outcome.errors["__all__"] = "Failed to update contributor"
        else:
            flash(request, "success", "Contributor & pledge updated successfully")
            target = f"/contributors/edit?tola_id={tola_id}&contributor_id={contributor_id}" \
                if tola_id else "/contributors/edit"
            return RedirectResponse(target, status_code=303)

    context = _edit_context(backend, ctx, tola_id, contributor_id)
    context["values"] = data
    context["errors"] = outcome.errors
    return render(request, "contributor_edit.html", context, status_code=422)
