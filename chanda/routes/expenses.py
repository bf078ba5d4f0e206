"""
Expenses: listing plus add / edit / delete.

Routes:
    GET  /expenses?q=&page=        → expenses.html (amounts masked unless logged in)
    GET  /expenses/new             → expense_form.html
    POST /expenses                 → POST   /api/v1/expenses
    GET  /expenses/{id}/edit       → expense_form.html pre-filled
    POST /expenses/{id}            → PUT    /api/v1/expenses/{id}
    POST /expenses/{id}/delete     → DELETE /api/v1/expenses/{id}
"""

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import HTMLResponse, RedirectResponse

from chanda.errors import BackendClientError, BackendError
from chanda.models import Expense
from chanda.session import (
    SessionContext,
    flash,
    get_backend,
    get_config,
    get_form,
    get_session_context,
    require_login,
)
from chanda.templating import render, render_table
from utils.pagination import filter_rows, paginate
from utils.validation import ExpenseForm, validate_form

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/expenses", tags=["expenses"])

SEARCH_FIELDS = ("description", "paid_by", "approved_by", "expense_type")

EXPENSE_FIELDS = ("amount", "description", "expense_type", "paid_by",
                  "approved_by", "payment_mode", "date_of_expense")


def expense_payload(form: ExpenseForm, config: Any) -> dict[str, Any]:
    """Request body for create/update; blank optional fields are sent as null."""
    payload = form.model_dump()
    payload["date_of_expense"] = form.date_of_expense.isoformat() if form.date_of_expense else None
    for key in ("expense_type", "paid_by", "approved_by", "payment_mode"):
        payload[key] = payload[key] or None
    payload["event_id"] = config.event_id
    payload["financial_year_id"] = config.financial_year_id
    return payload


def _form_values(expense: Expense) -> dict[str, str]:
    values = {key: getattr(expense, key) for key in EXPENSE_FIELDS}
    values["amount"] = f"{expense.amount:g}"
    values["date_of_expense"] = (expense.date_of_expense or "")[:10]
    return {key: "" if value is None else str(value) for key, value in values.items()}


@router.get("", response_class=HTMLResponse, include_in_schema=False)
def expenses(
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
        rows = backend.list_expenses(ctx)
    except BackendError as exc:
        logger.error("Could not load expenses: %s", exc)
        error = "Expenses are unavailable right now."

    result = paginate(filter_rows(rows, q, SEARCH_FIELDS), page, config.page_size)
    return render_table(request, "expenses.html", "partials/expenses_table.html", {
        "q": q,
        "page": result,
        "error": error,
        "show_amounts": ctx.is_authenticated,
    })


@router.get("/new", response_class=HTMLResponse, include_in_schema=False)
def new_expense(request: Request, ctx: SessionContext = Depends(require_login)) -> HTMLResponse:
    return render(request, "expense_form.html", {"expense_id": None, "values": {}, "errors": {}})


def _save(request: Request, form: dict, ctx: SessionContext, backend, config,
          expense_id: int | None):
    outcome = validate_form(ExpenseForm, form)
    if outcome.ok:
        payload = expense_payload(outcome.value, config)
        try:
            if expense_id is None:
                backend.create_expense(payload, ctx)
            else:
                backend.update_expense(expense_id, payload, ctx)
        except BackendClientError as exc:
            outcome.errors["__all__"] = f"The server rejected the expense: {exc.detail}"
        except BackendError as exc:
            logger.error("Saving expense %s failed: %s", expense_id or "(new)", exc)
            outcome.errors["__all__"] = ("Failed to add expense" if expense_id is None
                                         else "Failed to update expense")
        else:
            flash(request, "success", "Expense added successfully" if expense_id is None
                  else "Expense updated successfully")
            return RedirectResponse("/expenses", status_code=303)

    return render(request, "expense_form.html", {
        "expense_id": expense_id,
        "values": form,
        "errors": outcome.errors,
    }, status_code=422)


@router.post("", response_class=HTMLResponse, include_in_schema=False)
def create_expense(
    request: Request,
    form: dict = Depends(get_form),
    ctx: SessionContext = Depends(require_login),
    backend=Depends(get_backend),
    config=Depends(get_config),
):
    return _save(request, form, ctx, backend, config, None)


@router.get("/{expense_id}/edit", response_class=HTMLResponse, include_in_schema=False)
def edit_expense(
    request: Request,
    expense_id: int,
    ctx: SessionContext = Depends(require_login),
    backend=Depends(get_backend),
) -> HTMLResponse:
    try:
        expense = backend.get_expense(expense_id, ctx)
    except BackendClientError as exc:
        raise HTTPException(status_code=404, detail=f"Expense {expense_id} not found") from exc
    except BackendError as exc:
        logger.error("Could not load expense %s: %s", expense_id, exc)
        raise HTTPException(status_code=503, detail="Expenses are unavailable right now") from exc
    return render(request, "expense_form.html", {
        "expense_id": expense_id,
        "values": _form_values(expense),
        "errors": {},
    })


@router.post("/{expense_id}", response_class=HTMLResponse, include_in_schema=False)
def update_expense(
    request: Request,
    expense_id: int,
    form: dict = Depends(get_form),
    ctx: SessionContext = Depends(require_login),
    backend=Depends(get_backend),
    config=Depends(get_config),
):
    return _save(request, form, ctx, backend, config, expense_id)


@router.post("/{expense_id}/delete", include_in_schema=False)
def delete_expense(
    request: Request,
    expense_id: int,
    ctx: SessionContext = Depends(require_login),
    backend=Depends(get_backend),
) -> RedirectResponse:
    try:
        backend.delete_expense(expense_id, ctx)
    except BackendError as exc:
        logger.error("Deleting expense %s failed: %s", expense_id, exc)
        flash(request, "error", "Failed to delete expense")
    else:
        flash(request, "success", "Expense deleted")
    return RedirectResponse("/expenses", status_code=303)
