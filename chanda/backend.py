"""
HTTP client for the Chanda REST backend.

One ``BackendClient`` is shared by the whole app; it owns a pooled
``requests.Session`` (see ``utils.http.SessionManager``).  Per-browser state
never lives on the client: callers pass a ``SessionContext`` with each call
and the client adds ``Authorization: Bearer <token>`` when it carries one.

Failures are mapped onto three exception types so callers can tell a
rejected record apart from an outage:

    BackendClientError   4xx  (the request was refused)
    BackendServerError   5xx
    BackendUnavailable   connection error, timeout, unreadable JSON
"""

from __future__ import annotations

import logging
import time
from typing import TYPE_CHECKING, Any

import requests
from pydantic import TypeAdapter, ValidationError

from chanda.errors import (
    BackendClientError,
    BackendServerError,
    BackendUnavailable,
)
from chanda.models import (
    Contributor,
    ContributionRecord,
    ContributionSummary,
    DashboardSummary,
    Expense,
    LoginResponse,
    PaymentsResponse,
    Tola,
)
from utils.http import RetryStrategy, SessionManager

if TYPE_CHECKING:
    from chanda.session import SessionContext
    from utils.config import AppConfig

logger = logging.getLogger(__name__)

_TOLAS = TypeAdapter(list[Tola])
_CONTRIBUTORS = TypeAdapter(list[Contributor])
_CONTRIBUTIONS = TypeAdapter(list[ContributionSummary])
_EXPENSES = TypeAdapter(list[Expense])


def _error_detail(resp: requests.Response) -> str:
    """Pull a readable message out of an error response body."""
    try:
        body = resp.json()
    except ValueError:
        return (resp.text or resp.reason or "").strip()[:200]
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("message") or body.get("error")
        if isinstance(detail, list):
            return "; ".join(
                str(item.get("msg", item)) if isinstance(item, dict) else str(item)
                for item in detail
            )
        if detail:
            return str(detail)
    return str(body)[:200]


class BackendClient:
    """Typed wrapper around the backend's ``/api/v1`` endpoints."""

    def __init__(self, base_url: str, timeout: float = 15.0,
                 session_manager: SessionManager | None = None,
                 retries: int = 0) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._manager = session_manager or SessionManager(
            RetryStrategy(max_retries=retries, backoff_factor=0.5)
        )

    @classmethod
    def from_config(cls, config: AppConfig) -> BackendClient:
        return cls(config.api_url, timeout=config.http_timeout,
                   retries=config.http_retries)

    def close(self) -> None:
        self._manager.close()

    # ── Transport ─────────────────────────────────────────────────────────────

    def _request(self, method: str, path: str, ctx: SessionContext | None = None,
                 payload: Any = None, params: dict | None = None) -> Any:
        url = f"{self.base_url}{path}"
        headers = {}
        if ctx is not None and ctx.token:
            headers["Authorization"] = f"Bearer {ctx.token}"

        start = time.monotonic()
        try:
            resp = self._manager.session.request(
                method, url, json=payload, params=params, headers=headers,
                timeout=self.timeout,
            )
        except requests.RequestException as exc:
            logger.warning("%s %s failed: %s", method, path, exc)
            raise BackendUnavailable(f"{method} {path} failed: {exc}") from exc
        duration_ms = round((time.monotonic() - start) * 1000, 1)
        logger.debug("%s %s -> %d (%.1fms)", method, path, resp.status_code, duration_ms)

        if resp.status_code >= 500:
            detail = _error_detail(resp)
            logger.error("%s %s -> %d: %s", method, path, resp.status_code, detail)
            raise BackendServerError(
                f"{method} {path} returned {resp.status_code}",
                status_code=resp.status_code, detail=detail,
            )
        if resp.status_code >= 400:
            detail = _error_detail(resp)
            logger.info("%s %s -> %d: %s", method, path, resp.status_code, detail)
            raise BackendClientError(
                f"{method} {path} returned {resp.status_code}",
                status_code=resp.status_code, detail=detail,
            )

        if resp.status_code == 204 or not resp.content:
            return None
        try:
            return resp.json()
        except ValueError as exc:
            raise BackendUnavailable(f"{method} {path} returned invalid JSON") from exc

    @staticmethod
    def _parse(adapter: Any, data: Any, what: str) -> Any:
        try:
            if isinstance(adapter, TypeAdapter):
                return adapter.validate_python(data)
            return adapter.model_validate(data)
        except ValidationError as exc:
            raise BackendUnavailable(f"Unexpected {what} response: {exc.error_count()} errors") from exc

    # ── Reference data ────────────────────────────────────────────────────────

    def list_tolas(self, ctx: SessionContext | None = None) -> list[Tola]:
        return self._parse(_TOLAS, self._request("GET", "/api/v1/tolas", ctx), "tola list")

    def list_tola_contributors(self, tola_id: int,
                               ctx: SessionContext | None = None) -> list[Contributor]:
        data = self._request("GET", f"/api/v1/tolas/{tola_id}/contributors", ctx)
        return self._parse(_CONTRIBUTORS, data, "contributor list")

    def list_contributors(self, ctx: SessionContext | None = None) -> list[Contributor]:
        data = self._request("GET", "/api/v1/contributors", ctx)
        return self._parse(_CONTRIBUTORS, data, "contributor list")

    def update_contributor(self, contributor_id: int, payload: dict,
                           ctx: SessionContext | None = None) -> Any:
        return self._request("PUT", f"/api/v1/contributors/{contributor_id}", ctx, payload)

    # ── Contributions ─────────────────────────────────────────────────────────

    def create_contribution(self, payload: dict,
                            ctx: SessionContext | None = None) -> ContributionRecord:
        data = self._request("POST", "/api/v1/contributions", ctx, payload)
        if not isinstance(data, dict):
            return ContributionRecord()
        return self._parse(ContributionRecord, data, "contribution")

    def list_contributions(self, ctx: SessionContext | None = None) -> list[ContributionSummary]:
        data = self._request("GET", "/api/v1/contributions", ctx)
        return self._parse(_CONTRIBUTIONS, data, "contribution list")

    def get_payments(self, tola_id: int,
                     ctx: SessionContext | None = None) -> PaymentsResponse:
        data = self._request("GET", f"/api/v1/contributions/tola/{tola_id}/payments", ctx)
        return self._parse(PaymentsResponse, data, "payments")

    def get_dashboard(self, ctx: SessionContext | None = None) -> DashboardSummary:
        return self._parse(DashboardSummary, self._request("GET", "/api/v1/dashboard", ctx),
                           "dashboard")

    # ── Expenses ──────────────────────────────────────────────────────────────

    def list_expenses(self, ctx: SessionContext | None = None) -> list[Expense]:
        return self._parse(_EXPENSES, self._request("GET", "/api/v1/expenses", ctx),
                           "expense list")

    def get_expense(self, expense_id: int, ctx: SessionContext | None = None) -> Expense:
        return self._parse(Expense, self._request("GET", f"/api/v1/expenses/{expense_id}", ctx),
                           "expense")

    def create_expense(self, payload: dict, ctx: SessionContext | None = None) -> Any:
        return self._request("POST", "/api/v1/expenses", ctx, payload)

    def update_expense(self, expense_id: int, payload: dict,
                       ctx: SessionContext | None = None) -> Any:
        return self._request("PUT", f"/api/v1/expenses/{expense_id}", ctx, payload)

    def delete_expense(self, expense_id: int, ctx: SessionContext | None = None) -> None:
        self._request("DELETE", f"/api/v1/expenses/{expense_id}", ctx)

    # ── Auth ──────────────────────────────────────────────────────────────────

    def login(self, username: str, password: str) -> LoginResponse:
        data = self._request("POST", "/api/v1/users/login",
                             payload={"username": username, "password": password})
        return self._parse(LoginResponse, data, "login")
