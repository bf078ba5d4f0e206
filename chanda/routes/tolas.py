"""
Tola master data.

Routes:
    GET /tolas?q=   → tolas.html
"""

import logging

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import HTMLResponse

from chanda.errors import BackendError
from chanda.session import SessionContext, get_backend, get_session_context
from chanda.templating import render
from utils.pagination import filter_rows

logger = logging.getLogger(__name__)

router = APIRouter(tags=["tolas"])


@router.get("/tolas", response_class=HTMLResponse, include_in_schema=False)
def tolas(
    request: Request,
    q: str = Query("", max_length=200),
    ctx: SessionContext = Depends(get_session_context),
    backend=Depends(get_backend),
) -> HTMLResponse:
    error = None
    rows = []
    try:
        rows = backend.list_tolas(ctx)
    except BackendError as exc:
        logger.error("Could not load tolas: %s", exc)
        error = "Tolas are unavailable right now."
    rows = filter_rows(rows, q, ("tola_name", "tola_code", "village.name"))
    return render(request, "tolas.html", {"q": q, "tolas": rows, "error": error})
