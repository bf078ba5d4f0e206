"""
Contribution capture workflow.

A ``ContributionDesk`` is the server-side state behind one browser's
"Collect Chanda" screen.  It is assembled from four parts:

    ReferenceDataLoader         Tola list + contributors of the selected Tola
    ContributionFormController  the draft being edited, its field errors
    PreviewGate                 IDLE -> PREVIEWING -> SUBMITTING -> IDLE
    SubmissionAdapter           (chanda/submission.py) the POST itself

FastAPI runs sync handlers in a thread pool, so two requests from the same
browser can overlap (a slow contributor fetch and a new Tola selection, or a
double-clicked confirm).  The loader tags every selection with a generation
number and drops responses from superseded selections; the gate serialises
its transitions with a lock and only lets one confirm through per preview.
"""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping

from chanda.errors import (
    BackendError,
    FieldValidationError,
    PreconditionError,
    ReferenceLoadError,
    SubmissionError,
)
from chanda.models import ContributionRecord, Contributor, Tola
from utils.config import PaymentMode
from utils.formatting import format_inr
from utils.validation import (
    ExistingContributorDraft,
    NewContributorDraft,
    as_flag,
    validate_contribution,
)

logger = logging.getLogger(__name__)

MSG_SELECT_TOLA = "Please select Tola before submitting"
MSG_CONTRIBUTOR_NOT_IN_TOLA = "Select a contributor from the chosen Tola"
MSG_SAVED = "Contribution saved successfully"

NEW_CONTRIBUTOR_FIELDS = ("contributor_name", "father_or_spouse_name")


@dataclass
class Notice:
    """A one-shot message shown on the next render (toast)."""
    level: str  # success | error | warning | info
    message: str


# ── Reference data ────────────────────────────────────────────────────────────

class ReferenceDataLoader:
    """Loads the Tola list and the contributors of the selected Tola.

    Failures are logged and recorded in ``last_error``; the lists are left as
    they were.  Changing the selection clears the contributor list at once so
    a previous Tola's contributors are never offered for the new one.
    """

    def __init__(self, backend: Any) -> None:
        self._backend = backend
        self._lock = threading.Lock()
        self._generation = 0
        self.sub_villages: list[Tola] = []
        self.contributors: list[Contributor] = []
        self.selected_tola_id: int | None = None
        self.last_error: ReferenceLoadError | None = None

    @property
    def generation(self) -> int:
        return self._generation

    @property
    def selected_tola(self) -> Tola | None:
        return self.find_tola(self.selected_tola_id)

    def find_tola(self, tola_id: int | None) -> Tola | None:
        if tola_id is None:
            return None
        return next((t for t in self.sub_villages if t.id == tola_id), None)

    def find_contributor(self, contributor_id: Any) -> Contributor | None:
        try:
            wanted = int(contributor_id)
        except (TypeError, ValueError):
            return None
        return next((c for c in self.contributors if c.id == wanted), None)

    def load_sub_villages(self, ctx: Any = None) -> list[Tola]:
        try:
            tolas = self._backend.list_tolas(ctx)
        except BackendError as exc:
            self.last_error = ReferenceLoadError(f"Could not load tolas: {exc}")
            logger.error("%s", self.last_error)
            return list(self.sub_villages)
        with self._lock:
            self.sub_villages = tolas
        return tolas

    def select_sub_village(self, tola_id: int | None, ctx: Any = None) -> list[Contributor]:
        """Make *tola_id* the current selection and load its contributors.

        Returns the contributor list as it stands once this call finishes,
        which is empty (or a newer selection's list) if the fetch failed or
        was overtaken.
        """
        with self._lock:
            self._generation += 1
            generation = self._generation
            self.selected_tola_id = tola_id
            self.contributors = []
        if tola_id is None:
            return []

        try:
            contributors = self._backend.list_tola_contributors(tola_id, ctx)
        except BackendError as exc:
            self.last_error = ReferenceLoadError(
                f"Could not load contributors for tola {tola_id}: {exc}")
            logger.error("%s", self.last_error)
            with self._lock:
                return list(self.contributors)

        with self._lock:
            if generation != self._generation:
                logger.debug("Discarding contributors for tola %s (selection changed)", tola_id)
                return list(self.contributors)
            self.contributors = contributors
            return list(contributors)


# ── Form controller ───────────────────────────────────────────────────────────

def _blank_values() -> dict[str, Any]:
    return {
        "is_new_contributor": False,
        "contributor_id": "",
        "contributor_name": "",
        "father_or_spouse_name": "",
        "contact": "",
        "receipt_id": "",
        "payment_date": "",
        "amount": "",
        "payment_mode_id": "",
    }


def _plain_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else str(value)


class ContributionFormController:
    """Owns the contribution draft and its field errors.

    Values are kept as submitted by the browser (strings) so the form can be
    re-rendered exactly as typed; ``validate_contribution`` does the coercion.
    Live validation only reports errors for fields the user has touched;
    ``validate_for_submit`` reports all of them.
    """

    FIELDS = tuple(_blank_values())

    def __init__(self, loader: ReferenceDataLoader) -> None:
        self.loader = loader
        self.values: dict[str, Any] = _blank_values()
        self.errors: dict[str, str] = {}
        self.touched: set[str] = set()

    @property
    def is_new_contributor(self) -> bool:
        return as_flag(self.values["is_new_contributor"])

    def set_field(self, name: str, value: Any) -> None:
        """Set one field, derive dependent fields, and re-validate."""
        self._apply(name, value)
        self.touched.add(name)
        self.revalidate()

    def update(self, form: Mapping[str, Any], changed: str | None = None) -> None:
        """Apply a whole form post.

        An unchecked checkbox is absent from a form post, so
        ``is_new_contributor`` is always taken from *form*.  The contributor
        is applied last so that choosing one overrides the posted amount.

        When *changed* names the field the user just edited, only that field
        becomes touched; otherwise every posted field does.
        """
        self._apply("is_new_contributor", form.get("is_new_contributor"))
        for name in self.FIELDS:
            if name in ("is_new_contributor", "contributor_id") or name not in form:
                continue
            self._apply(name, form[name])
        if "contributor_id" in form and not self.is_new_contributor:
            self._apply("contributor_id", form["contributor_id"])
        if changed is not None:
            if changed in self.values:
                self.touched.add(changed)
        else:
            self.touched.update(name for name in form if name in self.values)
        self.revalidate()

    def _apply(self, name: str, value: Any) -> None:
        if name not in self.values:
            raise KeyError(f"Unknown contribution field: {name}")
        if name == "is_new_contributor":
            flag = as_flag(value)
            if flag and not self.is_new_contributor:
                self.values["contributor_id"] = ""
                self.errors.pop("contributor_id", None)
            elif not flag and self.is_new_contributor:
                for field_name in NEW_CONTRIBUTOR_FIELDS:
                    self.errors.pop(field_name, None)
                    self.touched.discard(field_name)
            self.values[name] = flag
            return

        text = "" if value is None else str(value)
        if name == "contributor_id":
            changed = text != str(self.values["contributor_id"])
            self.values[name] = text
            if changed:
                self._autofill_amount(text)
            return
        self.values[name] = text

    def _autofill_amount(self, contributor_id: str) -> None:
        contributor = self.loader.find_contributor(contributor_id)
        if contributor is not None and contributor.pledge_amount is not None:
            self.values["amount"] = _plain_number(contributor.pledge_amount)

    def clear_contributor(self) -> None:
        """Forget the chosen contributor (the Tola changed)."""
        self.values["contributor_id"] = ""

    def revalidate(self) -> dict[str, str]:
        outcome = validate_contribution(self.values)
        self.errors = {k: v for k, v in outcome.errors.items() if k in self.touched}
        return self.errors

    def validate_for_submit(self) -> ExistingContributorDraft | NewContributorDraft:
        """Run the authoritative validation before previewing.

        Raises:
            FieldValidationError: a field is invalid; ``errors`` is updated.
            PreconditionError: no Tola is selected.
        """
        self.touched.update(self.values)
        outcome = validate_contribution(self.values)
        self.errors = dict(outcome.errors)
        if not outcome.ok:
            raise FieldValidationError(self.errors)
        if self.loader.selected_tola_id is None:
            raise PreconditionError(MSG_SELECT_TOLA)
        draft = outcome.value
        if isinstance(draft, ExistingContributorDraft) and \
                self.loader.find_contributor(draft.contributor_id) is None:
            self.errors["contributor_id"] = MSG_CONTRIBUTOR_NOT_IN_TOLA
            raise FieldValidationError(self.errors)
        return draft

    def reset(self) -> None:
        self.values = _blank_values()
        self.errors = {}
        self.touched = set()


# ── Preview gate ──────────────────────────────────────────────────────────────

class GateState(str, Enum):
    IDLE = "idle"
    PREVIEWING = "previewing"
    CONFIRMED = "confirmed"
    SUBMITTING = "submitting"
    CANCELLED = "cancelled"


class PreviewGate:
    """Holds a validated draft until the user confirms or cancels it.

    Only a confirm from PREVIEWING starts a submission; the snapshot taken
    when the preview opened is what gets submitted.  While a submission is in
    flight the gate is SUBMITTING and further confirms are rejected.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.state = GateState.IDLE
        self.snapshot: ExistingContributorDraft | NewContributorDraft | None = None
        self.tola_id: int | None = None
        self.history: list[GateState] = [GateState.IDLE]

    def _move(self, state: GateState) -> None:
        self.state = state
        self.history.append(state)

    def open(self, draft: Any, tola_id: int) -> None:
        with self._lock:
            if self.state is GateState.SUBMITTING:
                raise PreconditionError("A contribution is already being saved")
            if self.state is not GateState.PREVIEWING:
                self._move(GateState.PREVIEWING)
            self.snapshot = draft
            self.tola_id = tola_id

    def cancel(self) -> bool:
        """Close the preview; returns False if there was nothing to cancel."""
        with self._lock:
            if self.state is not GateState.PREVIEWING:
                return False
            self._move(GateState.CANCELLED)
            self.snapshot = None
            self.tola_id = None
            self._move(GateState.IDLE)
            return True

    def begin_submit(self) -> tuple[Any, int]:
        """Claim the previewed snapshot for submission.

        Raises:
            PreconditionError: the gate is not PREVIEWING (no preview open,
                or a submission for it already started).
        """
        with self._lock:
            if self.state is GateState.SUBMITTING:
                raise PreconditionError("This contribution is already being saved")
            if self.state is not GateState.PREVIEWING or self.snapshot is None:
                raise PreconditionError("Nothing to confirm")
            self._move(GateState.CONFIRMED)
            self._move(GateState.SUBMITTING)
            return self.snapshot, self.tola_id

    def finish(self) -> None:
        with self._lock:
            self.snapshot = None
            self.tola_id = None
            self._move(GateState.IDLE)


# ── Desk ──────────────────────────────────────────────────────────────────────

class ContributionDesk:
    """Per-browser contribution capture state."""

    def __init__(self, backend: Any, adapter: Any) -> None:
        self.loader = ReferenceDataLoader(backend)
        self.form = ContributionFormController(self.loader)
        self.gate = PreviewGate()
        self.adapter = adapter
        self._notices: list[Notice] = []
        self._notice_lock = threading.Lock()

    # notices

    def notify(self, level: str, message: str) -> None:
        with self._notice_lock:
            self._notices.append(Notice(level, message))

    def pop_notices(self) -> list[Notice]:
        with self._notice_lock:
            notices, self._notices = self._notices, []
        return notices

    # reference data

    def open(self, ctx: Any = None) -> None:
        """Load the Tola list (on every visit to the collect screen)."""
        self.loader.load_sub_villages(ctx)

    def select_tola(self, tola_id: int | None, ctx: Any = None) -> list[Contributor]:
        self.form.clear_contributor()
        return self.loader.select_sub_village(tola_id, ctx)

    # preview / confirm

    def preview(self) -> bool:
        """Validate and open the preview; returns True if it opened."""
        try:
            draft = self.form.validate_for_submit()
        except FieldValidationError:
            return False
        except PreconditionError as exc:
            self.notify("warning", str(exc))
            return False
        try:
            self.gate.open(draft, self.loader.selected_tola_id)
        except PreconditionError as exc:
            self.notify("warning", str(exc))
            return False
        return True

    def cancel(self) -> None:
        self.gate.cancel()

    def confirm(self, ctx: Any = None) -> ContributionRecord | None:
        """Submit the previewed snapshot.

        On success the form is reset; on failure the entered values stay so
        the user can try again.  Either way a notice is queued.
        """
        try:
            draft, tola_id = self.gate.begin_submit()
        except PreconditionError as exc:
            self.notify("warning", str(exc))
            return None
        try:
            record = self.adapter.submit(draft, tola_id, ctx)
        except SubmissionError as exc:
            logger.warning("Contribution not saved (%s): %s", exc.kind, exc)
            self.notify("error", str(exc))
            return None
        finally:
            self.gate.finish()
        self.form.reset()
        self.notify("success", MSG_SAVED)
        return record

    def reset(self) -> None:
        self.gate.cancel()
        self.form.reset()

    def preview_rows(self) -> list[tuple[str, str]]:
        """Read-only summary of the previewed snapshot as (label, value)."""
        draft = self.gate.snapshot
        if draft is None:
            return []
        tola = self.loader.find_tola(self.gate.tola_id)
        rows = [("Tola", tola.tola_name if tola else str(self.gate.tola_id))]
        if isinstance(draft, NewContributorDraft):
            rows.append(("Contributor", f"{draft.contributor_name} (new)"))
            rows.append(("Father/Spouse Name", draft.father_or_spouse_name))
        else:
            contributor = self.loader.find_contributor(draft.contributor_id)
            rows.append(("Contributor", contributor.name if contributor
                         else f"#{draft.contributor_id}"))
        rows.extend([
            ("Contact", draft.contact or "-"),
            ("Receipt ID", draft.receipt_id),
            ("Payment Date", draft.payment_date.strftime("%d %b %Y")),
            ("Amount", format_inr(draft.amount)),
            ("Payment Mode", PaymentMode(draft.payment_mode_id).label),
        ])
        return rows
