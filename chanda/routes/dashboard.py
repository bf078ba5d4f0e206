"""
Dashboard home page.

Routes:
    GET /   → dashboard.html (metric cards, Tola-wise pledge chart,
              collection progress, recent contributions)
"""

import logging
import math
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse

from chanda.errors import BackendError
from chanda.models import DashboardSummary, TolaCollection
from chanda.session import SessionContext, get_backend, get_session_context
from chanda.templating import render
from utils.formatting import collection_percent, rounded_axis_max

logger = logging.getLogger(__name__)

router = APIRouter(tags=["dashboard"])

RECENT_CONTRIBUTIONS = 10


def pledge_chart(summary: DashboardSummary) -> dict[str, Any]:
    """Chart.js data for the Tola-wise pledge bar chart.

    Negative or non-finite totals are drawn as 0; the y-axis tops out at the
    next multiple of 10,000.
    """
    labels = [row.tola_name for row in summary.tol_wise_pledge]
    values = []
    for row in summary.tol_wise_pledge:
        amount = row.total_amount
        values.append(amount if math.isfinite(amount) and amount > 0 else 0)
    return {"labels": labels, "values": values, "max": rounded_axis_max(values)}


def collection_cards(rows: list[TolaCollection]) -> dict[str, Any]:
    """Per-Tola and overall collected-vs-pledged percentages."""
    cards = [
        {
            "tola_name": row.tola_name,
            "pledged": row.total_pledged,
            "collected": row.total_collected,
            "percent": collection_percent(row.total_collected, row.total_pledged),
        }
        for row in rows
    ]
    total_pledged = sum(row.total_pledged for row in rows)
    total_collected = sum(row.total_collected for row in rows)
    return {
        "cards": cards,
        "total_pledged": total_pledged,
        "total_collected": total_collected,
        "percent": collection_percent(total_collected, total_pledged),
    }


@router.get("/", response_class=HTMLResponse, include_in_schema=False)
def dashboard(
    request: Request,
    ctx: SessionContext = Depends(get_session_context),
    backend=Depends(get_backend),
) -> HTMLResponse:
    """Dashboard home; renders an "unavailable" panel if the backend fails."""
    summary = None
    recent = []
    try:
        summary = backend.get_dashboard(ctx)
    except BackendError as exc:
        logger.error("Dashboard summary unavailable: %s", exc)
    try:
        recent = backend.list_contributions(ctx)[:RECENT_CONTRIBUTIONS]
    except BackendError as exc:
        logger.error("Recent contributions unavailable: %s", exc)

    context: dict[str, Any] = {"summary": summary, "recent": recent}
    if summary is not None:
        context["chart"] = pledge_chart(summary)
        context["collection"] = collection_cards(summary.tola_wise_collection)
        context["collected_percent"] = max(0.0, min(100.0, summary.collected_percent))
    return render(request, "dashboard.html", context)
