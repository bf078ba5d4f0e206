"""
Tests for the contribution submission adapter: chanda/submission.py

Checks the request body built from each draft kind, the mapping of backend
failures onto SubmissionError kinds, and that identical drafts are not
de-duplicated.
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from conftest import FakeBackend

from chanda.errors import (
    BackendClientError,
    BackendServerError,
    BackendUnavailable,
    SubmissionError,
)
from chanda.submission import MSG_FAILED, SubmissionAdapter
from chanda.workflow import ContributionDesk
from utils.validation import validate_contribution

NORTH_TOLA = 1


def _draft(**data):
    outcome = validate_contribution(data)
    assert outcome.ok, outcome.errors
    return outcome.value


@pytest.fixture()
def backend():
    return FakeBackend()


@pytest.fixture()
def adapter(backend):
    return SubmissionAdapter(backend, event_id=1, financial_year_id=5)


class TestBuildPayload:
    def test_new_contributor(self, adapter):
        draft = _draft(is_new_contributor="true", contributor_name="Ravi Kumar",
                       father_or_spouse_name="Suresh Kumar", contact="",
                       receipt_id="R-1001", payment_date="2025-01-15",
                       amount="500", payment_mode_id="2")
        payload = adapter.build_payload(draft, NORTH_TOLA)
        assert payload == {
            "tola_id": NORTH_TOLA,
            "event_id": 1,
            "payment_date": "2025-01-15",
            "amount": 500.0,
            "payment_mode_id": "2",
            "is_new_contributor": True,
            "receipt_id": "R-1001",
            "financial_year_id": 5,
            "contributor_name": "Ravi Kumar",
            "father_or_spouse_name": "Suresh Kumar",
        }

    def test_existing_contributor(self, adapter):
        draft = _draft(contributor_id="11", contact="9876543210", receipt_id="R-7",
                       payment_date="2025-01-15T09:30:00", amount="250.5",
                       payment_mode_id="4")
        payload = adapter.build_payload(draft, NORTH_TOLA)
        assert payload["is_new_contributor"] is False
        assert payload["contributor_id"] == 11
        assert payload["contact"] == "9876543210"
        assert payload["payment_date"] == "2025-01-15"
        assert payload["payment_mode_id"] == "4"
        assert "contributor_name" not in payload
        assert "father_or_spouse_name" not in payload

    def test_configured_ids(self, backend):
        adapter = SubmissionAdapter(backend, event_id=9, financial_year_id=6)
        draft = _draft(contributor_id="11", receipt_id="R", payment_date="2025-01-15",
                       amount="1", payment_mode_id="1")
        payload = adapter.build_payload(draft, 2)
        assert (payload["event_id"], payload["financial_year_id"], payload["tola_id"]) == (9, 6, 2)


class TestSubmit:
    def _draft(self):
        return _draft(contributor_id="11", receipt_id="R-9", payment_date="2025-01-15",
                      amount="500", payment_mode_id="2")

    def test_success_returns_record(self, adapter, backend):
        record = adapter.submit(self._draft(), NORTH_TOLA)
        assert record.id == 1
        assert record.tola_id == NORTH_TOLA
        assert len(backend.created) == 1

    def test_identical_drafts_are_sent_twice(self, adapter, backend):
        draft = self._draft()
        adapter.submit(draft, NORTH_TOLA)
        adapter.submit(draft, NORTH_TOLA)
        assert len(backend.created) == 2
        assert backend.created[0][0] == backend.created[1][0]

    def test_client_error_is_rejected(self, adapter, backend):
        backend.fail["create_contribution"] = BackendClientError(
            "POST returned 422", status_code=422, detail="Receipt ID already used")
        with pytest.raises(SubmissionError) as excinfo:
            adapter.submit(self._draft(), NORTH_TOLA)
        assert excinfo.value.kind == SubmissionError.REJECTED
        assert "Receipt ID already used" in excinfo.value.message
        assert isinstance(excinfo.value.cause, BackendClientError)

    @pytest.mark.parametrize("exc", [
        BackendServerError("POST returned 500", status_code=500),
        BackendUnavailable("connection refused"),
    ])
    def test_server_and_network_errors_fail(self, adapter, backend, exc):
        backend.fail["create_contribution"] = exc
        with pytest.raises(SubmissionError) as excinfo:
            adapter.submit(self._draft(), NORTH_TOLA)
        assert excinfo.value.kind == SubmissionError.FAILED
        assert excinfo.value.message == MSG_FAILED

    def test_token_is_passed_through(self, adapter, backend):
        ctx = object()
        adapter.submit(self._draft(), NORTH_TOLA, ctx)
        assert backend.created[0][1] is ctx


class TestNorthTolaScenario:
    """New contributor recorded from the collect desk, start to finish."""

    def test_new_contributor_flow(self, backend):
        desk = ContributionDesk(backend, SubmissionAdapter(backend, event_id=1,
                                                           financial_year_id=5))
        desk.open()
        north = next(t for t in desk.loader.sub_villages if t.tola_name == "North Tola")
        desk.select_tola(north.id)
        desk.form.set_field("is_new_contributor", True)
        for name, value in [
            ("contributor_name", "Ravi Kumar"),
            ("father_or_spouse_name", "Suresh Kumar"),
            ("contact", ""),
            ("receipt_id", "R-1001"),
            ("payment_date", "2025-01-15"),
            ("payment_mode_id", "2"),
            ("amount", "500"),
        ]:
            desk.form.set_field(name, value)

        assert desk.preview()
        rows = dict(desk.preview_rows())
        assert rows["Contributor"] == "Ravi Kumar (new)"
        assert rows["Receipt ID"] == "R-1001"
        assert rows["Payment Date"] == "15 Jan 2025"
        assert rows["Amount"] == "₹ 500"
        assert rows["Payment Mode"] == "Cash"

        desk.confirm()
        payload, _ = backend.created[0]
        assert payload["is_new_contributor"] is True
        assert payload["payment_date"] == "2025-01-15"
        assert payload["tola_id"] == north.id
        assert payload["financial_year_id"] == 5
        assert "contact" not in payload

    @pytest.mark.parametrize("amount", ["", "abc"])
    def test_bad_amount_never_submits(self, backend, amount):
        desk = ContributionDesk(backend, SubmissionAdapter(backend))
        desk.open()
        desk.select_tola(1)
        desk.form.update({"contributor_id": "11", "receipt_id": "R-1", "amount": amount,
                          "payment_date": "2025-01-15", "payment_mode_id": "2"})
        # choosing the contributor autofilled the pledge; clear it again
        desk.form.set_field("amount", amount)
        assert desk.preview() is False
        assert desk.form.errors["amount"] == "Amount must be greater than zero"
        assert desk.confirm() is None
        assert backend.created == []
