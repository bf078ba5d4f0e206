"""Maps a validated contribution draft onto the backend's create request."""

from __future__ import annotations

import logging
from typing import Any

from chanda.errors import (
    BackendClientError,
    BackendError,
    SubmissionError,
)
from chanda.models import ContributionRecord
from utils.validation import NewContributorDraft

logger = logging.getLogger(__name__)

MSG_FAILED = "Failed to save contribution"
MSG_REJECTED = "The server rejected the contribution: {detail}"


class SubmissionAdapter:
    """Builds the ``POST /api/v1/contributions`` payload and sends it.

    The draft only knows what the user typed; the adapter adds the active
    Tola id, the configured event id and the financial year id.
    """

    def __init__(self, backend: Any, event_id: int = 1, financial_year_id: int = 5) -> None:
        self.backend = backend
        self.event_id = event_id
        self.financial_year_id = financial_year_id

    def build_payload(self, draft: Any, tola_id: int) -> dict[str, Any]:
        """Return the snake_case request body for *draft*.

        ``payment_date`` is sent as ``YYYY-MM-DD``.  ``contact`` is left out
        when blank.  A new contributor is sent by name, an existing one by
        ``contributor_id``.
        """
        is_new = isinstance(draft, NewContributorDraft)
        payload: dict[str, Any] = {
            "tola_id": tola_id,
            "event_id": self.event_id,
            "payment_date": draft.payment_date.isoformat(),
            "amount": draft.amount,
            "payment_mode_id": draft.payment_mode_id.value,
            "is_new_contributor": is_new,
            "receipt_id": draft.receipt_id,
            "financial_year_id": self.financial_year_id,
        }
        if is_new:
            payload["contributor_name"] = draft.contributor_name
            payload["father_or_spouse_name"] = draft.father_or_spouse_name
        else:
            payload["contributor_id"] = draft.contributor_id
        if draft.contact:
            payload["contact"] = draft.contact
        return payload

    def submit(self, draft: Any, tola_id: int, ctx: Any = None) -> ContributionRecord:
        """Send *draft* to the backend once; no retries.

        Raises:
            SubmissionError: ``kind="rejected"`` for a 4xx response,
                ``kind="failed"`` for 5xx and network errors.
        """
        payload = self.build_payload(draft, tola_id)
        try:
            record = self.backend.create_contribution(payload, ctx)
        except BackendClientError as exc:
            raise SubmissionError(MSG_REJECTED.format(detail=exc.detail),
                                  kind=SubmissionError.REJECTED, cause=exc) from exc
        except BackendError as exc:
            raise SubmissionError(MSG_FAILED, kind=SubmissionError.FAILED, cause=exc) from exc
        logger.info("Contribution %s saved for tola %s (receipt %s)",
                    record.id, tola_id, draft.receipt_id)
        return record
