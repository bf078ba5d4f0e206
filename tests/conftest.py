"""
Pytest fixtures for the Chanda dashboard tests.

The dashboard holds no data of its own, so every test runs against
``FakeBackend``: an in-memory stand-in for ``chanda.backend.BackendClient``
with the same method signatures.  Individual calls can be made to fail by
putting an exception in ``backend.fail[<method name>]``.

Fixtures:
    backend         a fresh FakeBackend seeded with two Tolas
    app_config      AppConfig with test-friendly settings
    client          TestClient for create_app(app_config, backend)
    auth_client     the same client carrying a bearer-token cookie
"""
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from fastapi.testclient import TestClient

from chanda.app import create_app
from chanda.errors import BackendClientError
from chanda.models import (
    ContributionRecord,
    ContributionSummary,
    Contributor,
    DashboardSummary,
    Expense,
    LoginResponse,
    PaymentsResponse,
    Tola,
)
from chanda.session import TOKEN_COOKIE
from utils.config import AppConfig

TEST_TOKEN = "tok-test-123"
TEST_PASSWORD = "secret123"

TOLAS = [
    {"id": 1, "tola_name": "North Tola", "tola_code": "NT", "village_id": 1,
     "village": {"id": 1, "name": "Rampur"}},
    {"id": 2, "tola_name": "South Tola", "tola_code": "ST", "village_id": 1,
     "village": {"id": 1, "name": "Rampur"}},
]

CONTRIBUTORS = {
    1: [
        {"id": 11, "name": "Amit Singh", "father_or_spouse_name": "Raj Singh",
         "contact": "9876543210", "tola_id": 1, "pledge_amount": 500,
         "tola": {"id": 1, "tola_name": "North Tola"},
         "pledges": [
             {"id": 101, "amount": 500,
              "financial_year": {"id": 5, "name": "2025-26", "is_active": True}},
             {"id": 90, "amount": 300,
              "financial_year": {"id": 4, "name": "2024-25", "is_active": False}},
         ]},
        {"id": 12, "name": "Sunita Devi", "father_or_spouse_name": "Mohan Lal",
         "tola_id": 1, "pledge_amount": 1100.5,
         "tola": {"id": 1, "tola_name": "North Tola"}},
    ],
    2: [
        {"id": 21, "name": "Bina Kumari", "father_or_spouse_name": "Hari Prasad",
         "tola_id": 2, "pledge_amount": 2100,
         "tola": {"id": 2, "tola_name": "South Tola"}},
    ],
}

CONTRIBUTIONS = [
    {"id": 1, "amount": 500, "payment_date": "2025-09-20", "tola_name": "North Tola",
     "contributor_name": "Amit Singh", "payment_mode": "Cash", "receipt_id": "R-001"},
    {"id": 2, "amount": 2100, "payment_date": "2025-09-21", "tola_name": "South Tola",
     "contributor_name": "Bina Kumari", "payment_mode": "UPI", "receipt_id": "R-002"},
]

EXPENSES = [
    {"id": 7, "amount": 4500, "description": "Pandal decoration", "expense_type": "Decoration",
     "paid_by": "Ravi", "approved_by": "Committee", "payment_mode": "Cash",
     "date_of_expense": "2025-09-25T00:00:00"},
    {"id": 8, "amount": 1200, "description": "Sound system", "expense_type": "Rental",
     "paid_by": "Mukesh", "payment_mode": "UPI", "date_of_expense": "2025-09-26"},
]

DASHBOARD = {
    "contributor_count": 3,
    "total_pledge": 3700.5,
    "tol_wise_pledge": [
        {"tola_name": "North Tola", "total_amount": 1600.5},
        {"tola_name": "South Tola", "total_amount": 2100},
    ],
    "total_collected": 2600,
    "today_collected": 500,
    "collected_percent": 70.3,
    "total_expense": 5700,
    "tola_wise_collection": [
        {"tola_name": "North Tola", "total_pledged": 1600.5, "total_collected": 500},
        {"tola_name": "South Tola", "total_pledged": 2100, "total_collected": 2100},
    ],
}

PAYMENTS = {
    1: {
        "contributors": [
            {"contributor_id": 11, "contributor_name": "Amit Singh",
             "pledged_amount": 500, "paid_amount": 500, "percent_diff": 0},
            {"contributor_id": 12, "contributor_name": "Sunita Devi",
             "pledged_amount": 1100.5, "paid_amount": 0, "percent_diff": -100},
        ],
        "summary": {"total_pledged": 1600.5, "total_paid": 500, "total_percent_diff": -68.76},
    },
}


class FakeBackend:
    """In-memory BackendClient with call recording and injectable failures."""

    def __init__(self):
        self.tolas = [Tola.model_validate(t) for t in TOLAS]
        self.contributors = {
            tola_id: [Contributor.model_validate(c) for c in rows]
            for tola_id, rows in CONTRIBUTORS.items()
        }
        self.contributions = [ContributionSummary.model_validate(c) for c in CONTRIBUTIONS]
        self.expenses = {e["id"]: Expense.model_validate(e) for e in EXPENSES}
        self.dashboard = DashboardSummary.model_validate(DASHBOARD)
        self.payments = {k: PaymentsResponse.model_validate(v) for k, v in PAYMENTS.items()}
        self.fail: dict = {}
        self.calls: list = []
        self.created: list = []
        self.updated_contributors: list = []
        self.closed = False

    def _call(self, name, *args):
        self.calls.append((name,) + args)
        exc = self.fail.get(name)
        if exc is not None:
            raise exc

    def close(self):
        self.closed = True

    def list_tolas(self, ctx=None):
        self._call("list_tolas")
        return list(self.tolas)

    def list_tola_contributors(self, tola_id, ctx=None):
        self._call("list_tola_contributors", tola_id)
        return list(self.contributors.get(tola_id, []))

    def list_contributors(self, ctx=None):
        self._call("list_contributors")
        return [c for rows in self.contributors.values() for c in rows]

    def update_contributor(self, contributor_id, payload, ctx=None):
        self._call("update_contributor", contributor_id)
        self.updated_contributors.append((contributor_id, payload, ctx))
        return {"id": contributor_id}

    def create_contribution(self, payload, ctx=None):
        self._call("create_contribution")
        self.created.append((payload, ctx))
        return ContributionRecord(
            id=len(self.created),
            tola_id=payload["tola_id"],
            contributor_id=payload.get("contributor_id"),
            amount=payload["amount"],
            receipt_id=payload["receipt_id"],
        )

    def list_contributions(self, ctx=None):
        self._call("list_contributions")
        return list(self.contributions)

    def get_payments(self, tola_id, ctx=None):
        self._call("get_payments", tola_id)
        return self.payments.get(tola_id, PaymentsResponse())

    def get_dashboard(self, ctx=None):
        self._call("get_dashboard")
        return self.dashboard

    def list_expenses(self, ctx=None):
        self._call("list_expenses")
        return list(self.expenses.values())

    def get_expense(self, expense_id, ctx=None):
        self._call("get_expense", expense_id)
        if expense_id not in self.expenses:
            raise BackendClientError(f"GET /api/v1/expenses/{expense_id} returned 404",
                                     status_code=404, detail="Expense not found")
        return self.expenses[expense_id]

    def create_expense(self, payload, ctx=None):
        self._call("create_expense", payload)
        new_id = max(self.expenses, default=0) + 1
        self.expenses[new_id] = Expense.model_validate(dict(payload, id=new_id))
        return {"id": new_id}

    def update_expense(self, expense_id, payload, ctx=None):
        self._call("update_expense", expense_id, payload)
        self.expenses[expense_id] = Expense.model_validate(dict(payload, id=expense_id))
        return {"id": expense_id}

    def delete_expense(self, expense_id, ctx=None):
        self._call("delete_expense", expense_id)
        self.expenses.pop(expense_id, None)

    def login(self, username, password):
        self._call("login", username)
        if password != TEST_PASSWORD:
            raise BackendClientError("POST /api/v1/users/login returned 401",
                                     status_code=401, detail="Incorrect username or password")
        return LoginResponse(access_token=TEST_TOKEN)

    def called(self, name):
        return [call for call in self.calls if call[0] == name]


def make_config(**overrides):
    values = {
        "api_url": "http://backend.test",
        "log_format": "text",
        "event_id": 1,
        "event_name": "Durga Pooja 2025",
        "financial_year_id": 5,
        "page_size": 20,
        "session_ttl": 3600.0,
        "max_sessions": 1000,
        "cookie_secure": False,
    }
    values.update(overrides)
    return AppConfig.from_dict(values)


@pytest.fixture()
def backend():
    return FakeBackend()


@pytest.fixture()
def app_config():
    return make_config()


@pytest.fixture()
def client(app_config, backend):
    app = create_app(config=app_config, backend=backend)
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture()
def auth_client(client):
    client.cookies.set(TOKEN_COOKIE, TEST_TOKEN)
    return client
