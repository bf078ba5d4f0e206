"""
Per-Tola payment reconciliation (pledged vs paid).

Routes:
    GET /payments?tola_id=&q=&page=   → payments.html
                                        (partials/payments_table.html for HTMX)

Nothing is fetched for the table until a Tola is chosen.
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse

from chanda.errors import BackendError
from chanda.session import SessionContext, get_backend, get_config, get_session_context
from chanda.templating import render_table
from utils.pagination import filter_rows, paginate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["payments"])

MSG_SELECT_TOLA = "Please select a Tola to view payments."


def _tola_id(raw: str | None) -> int | None:
    try:
        value = int(raw) if raw else None
    except ValueError:
        return None
    return value if value and value > 0 else None


@router.get("/payments", response_class=HTMLResponse, include_in_schema=False)
def payments(
    request: Request,
    tola_id: str | None = Query(None),
    q: str = Query("", max_length=200),
    page: int = Query(1),
    ctx: SessionContext = Depends(get_session_context),
    backend=Depends(get_backend),
    config=Depends(get_config),
) -> HTMLResponse:
    selected = _tola_id(tola_id)
    tolas, report, error = [], None, None
    try:
        tolas = backend.list_tolas(ctx)
    except BackendError as exc:
        logger.error("Could not load tolas: %s", exc)
    if selected is not None:
        try:
            report = backend.get_payments(selected, ctx)
        except BackendError as exc:
            logger.error("Could not load payments for tola %s: %s", selected, exc)
            error = "Payments are unavailable right now."

    rows = report.contributors if report is not None else []
    result = paginate(filter_rows(rows, q, ("contributor_name",)), page, config.page_size)
    return render_table(request, "payments.html", "partials/payments_table.html", {
        "tolas": tolas,
        "tola_id": selected,
        "q": q,
        "page": result,
        "summary": report.summary if report is not None else None,
        "error": error,
        "prompt": MSG_SELECT_TOLA if selected is None else None,
    })
