"""Exception types raised by the dashboard's backend client and workflows."""

from __future__ import annotations


class ChandaError(Exception):
    """Base class for dashboard errors."""


# ── Backend transport ─────────────────────────────────────────────────────────

class BackendError(ChandaError):
    """A call to the Chanda REST backend failed."""

    def __init__(self, message: str, status_code: int | None = None,
                 detail: str | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.detail = detail or message


class BackendClientError(BackendError):
    """The backend rejected the request (4xx)."""


class BackendServerError(BackendError):
    """The backend failed to handle the request (5xx)."""


class BackendUnavailable(BackendError):
    """The backend could not be reached or returned an unreadable body."""


# ── Workflow ──────────────────────────────────────────────────────────────────

class FieldValidationError(ChandaError):
    """A form failed validation; ``errors`` maps field name to message."""

    def __init__(self, errors: dict[str, str]) -> None:
        super().__init__("; ".join(f"{k}: {v}" for k, v in errors.items()))
        self.errors = errors


class ReferenceLoadError(ChandaError):
    """Tola or contributor reference data could not be loaded."""


class PreconditionError(ChandaError):
    """An action was attempted before its prerequisites were met."""


class SubmissionError(ChandaError):
    """Saving a record failed.

    ``kind`` is ``"rejected"`` when the backend refused the record (4xx) and
    ``"failed"`` for server errors and network failures.
    """

    REJECTED = "rejected"
    FAILED = "failed"

    def __init__(self, message: str, kind: str = FAILED,
                 cause: BackendError | None = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.cause = cause

    @property
    def message(self) -> str:
        return str(self)
