"""
Contributions listing.

Routes:
    GET /contributions?q=&page=   → contributions.html
                                    (partials/contributions_table.html for HTMX)
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse

from chanda.errors import BackendError
from chanda.session import SessionContext, get_backend, get_config, get_session_context
from chanda.templating import render_table
from utils.pagination import filter_rows, paginate

logger = logging.getLogger(__name__)

router = APIRouter(tags=["contributions"])

SEARCH_FIELDS = ("contributor_name", "tola_name", "receipt_id", "payment_mode")


@router.get("/contributions", response_class=HTMLResponse, include_in_schema=False)
def contributions(
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
        rows = backend.list_contributions(ctx)
    except BackendError as exc:
        logger.error("Could not load contributions: %s", exc)
        error = "Contributions are unavailable right now."

    result = paginate(filter_rows(rows, q, SEARCH_FIELDS), page, config.page_size)
    return render_table(request, "contributions.html", "partials/contributions_table.html", {
        "q": q,
        "page": result,
        "error": error,
    })
