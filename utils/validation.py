"""Form validation schemas for the Chanda dashboard.

Every form the dashboard posts to the backend is validated here first so
that field errors can be shown inline next to the offending input. The
schemas are pydantic models; ``validate_form()`` turns pydantic's error list
into a flat ``{field_name: message}`` map with one message per field.

The contribution schema is a tagged union over ``is_new_contributor``:

    ExistingContributorDraft   contributor_id >= 1
    NewContributorDraft        contributor_name + father_or_spouse_name

Both share the common payment fields (receipt, date, amount, mode, optional
contact). Only the branch selected by the flag is validated.
"""

import math
import re
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Annotated, Any, Dict, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Tag,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic_core import PydanticCustomError

from utils.config import PaymentMode

CONTACT_PATTERN = re.compile(r"^[6-9][0-9]{9}$")
NUMBER_PATTERN = re.compile(r"^[+-]?([0-9]+\.?[0-9]*|\.[0-9]+)([eE][+-]?[0-9]+)?$")

_TRUE_VALUES = frozenset({"1", "true", "on", "yes"})

MSG_CONTRIBUTOR = "Contributor is required"
MSG_CONTRIBUTOR_NAME = "Contributor name is required"
MSG_FATHER_OR_SPOUSE = "Father/Spouse name is required"
MSG_CONTACT = "Enter a valid 10-digit mobile number"
MSG_RECEIPT = "Receipt ID is required"
MSG_PAYMENT_DATE = "Payment date is required"
MSG_AMOUNT = "Amount must be greater than zero"
MSG_PAYMENT_MODE = "Payment mode is required"


# ── Coercion helpers ──────────────────────────────────────────────────────────

def as_flag(value: Any) -> bool:
    """Interpret a form/JSON value as a boolean (checkbox "on", "true", 1...)."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    if isinstance(value, (int, float)):
        return value != 0
    return str(value).strip().lower() in _TRUE_VALUES


def coerce_number(value: Any) -> float:
    """Coerce form input to a float.

    Blank input is 0 and anything unparseable is NaN, so both fail a
    "greater than zero" check.  Only plain ASCII decimal notation is
    accepted: ``float()`` alone would also take "1_000", "inf" or
    non-Latin digits such as "५००".
    """
    if isinstance(value, bool) or value is None:
        return math.nan
    if isinstance(value, (int, float)):
        return float(value)
    text = str(value).strip()
    if not text:
        return 0.0
    if not NUMBER_PATTERN.match(text):
        return math.nan
    try:
        return float(text)
    except ValueError:
        return math.nan


def coerce_date(value: Any) -> Optional[date]:
    """Accept a date, a datetime (time dropped) or an ISO string."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    text = str(value).strip()
    if not text:
        return None
    try:
        return date.fromisoformat(text[:10])
    except ValueError:
        return None


def _text(value: Any) -> str:
    return "" if value is None else str(value).strip()


def _required_text(value: Any, code: str, message: str) -> str:
    text = _text(value)
    if not text:
        raise PydanticCustomError(code, message)
    return text


def _positive(value: Any, code: str, message: str) -> float:
    number = coerce_number(value)
    if math.isnan(number) or math.isinf(number) or number <= 0:
        raise PydanticCustomError(code, message)
    return number


def _record_id(value: Any, code: str, message: str) -> int:
    number = coerce_number(value)
    if math.isnan(number) or not number.is_integer() or number < 1:
        raise PydanticCustomError(code, message)
    return int(number)


def _contact(value: Any) -> str:
    text = _text(value)
    if text and not CONTACT_PATTERN.match(text):
        raise PydanticCustomError("contact_pattern", MSG_CONTACT)
    return text


# ── Outcome ───────────────────────────────────────────────────────────────────

@dataclass
class ValidationOutcome:
    """Result of validating one form submission."""

    value: Any = None
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return not self.errors


def _field_name(loc: tuple) -> str:
    # Tagged-union errors are located as ("existing", "amount").
    names = [part for part in loc if isinstance(part, str)]
    return names[-1] if names else "__all__"


def validate_form(schema: Any, data: Dict[str, Any]) -> ValidationOutcome:
    """Validate *data* against a model class or TypeAdapter.

    Returns:
        ValidationOutcome with the parsed value on success, or a map of
        field name to the first message reported for that field.
    """
    adapter = schema if isinstance(schema, TypeAdapter) else TypeAdapter(schema)
    try:
        return ValidationOutcome(value=adapter.validate_python(data))
    except ValidationError as exc:
        errors: Dict[str, str] = {}
        for err in exc.errors():
            errors.setdefault(_field_name(tuple(err["loc"])), err["msg"])
        return ValidationOutcome(errors=errors)


# ── Contribution drafts ───────────────────────────────────────────────────────

class _DraftBase(BaseModel):
    """Fields common to both contributor modes."""

    model_config = ConfigDict(validate_default=True, extra="ignore", frozen=True)

    contact: str = ""
    receipt_id: str = ""
    payment_date: Optional[date] = None
    amount: float = 0.0
    payment_mode_id: PaymentMode = None  # type: ignore[assignment]

    @field_validator("is_new_contributor", mode="before", check_fields=False)
    @classmethod
    def _flag(cls, v: Any) -> bool:
        return as_flag(v)

    @field_validator("contact", mode="before")
    @classmethod
    def _check_contact(cls, v: Any) -> str:
        return _contact(v)

    @field_validator("receipt_id", mode="before")
    @classmethod
    def _check_receipt(cls, v: Any) -> str:
        return _required_text(v, "receipt_required", MSG_RECEIPT)

    @field_validator("payment_date", mode="before")
    @classmethod
    def _check_date(cls, v: Any) -> date:
        parsed = coerce_date(v)
        if parsed is None:
            raise PydanticCustomError("payment_date_required", MSG_PAYMENT_DATE)
        return parsed

    @field_validator("amount", mode="before")
    @classmethod
    def _check_amount(cls, v: Any) -> float:
        return _positive(v, "amount_positive", MSG_AMOUNT)

    @field_validator("payment_mode_id", mode="before")
    @classmethod
    def _check_mode(cls, v: Any) -> PaymentMode:
        try:
            return PaymentMode(_text(v.value if isinstance(v, PaymentMode) else v))
        except ValueError:
            raise PydanticCustomError("payment_mode_required", MSG_PAYMENT_MODE) from None

    @property
    def payment_mode_label(self) -> str:
        return self.payment_mode_id.label


class ExistingContributorDraft(_DraftBase):
    """A contribution from a contributor already registered in the Tola."""

    is_new_contributor: Literal[False] = False
    contributor_id: int = 0

    @field_validator("contributor_id", mode="before")
    @classmethod
    def _check_contributor(cls, v: Any) -> int:
        return _record_id(v, "contributor_required", MSG_CONTRIBUTOR)


class NewContributorDraft(_DraftBase):
    """A contribution that also registers a new contributor."""

    is_new_contributor: Literal[True] = True
    contributor_name: str = ""
    father_or_spouse_name: str = ""

    @field_validator("contributor_name", mode="before")
    @classmethod
    def _check_name(cls, v: Any) -> str:
        return _required_text(v, "contributor_name_required", MSG_CONTRIBUTOR_NAME)

    @field_validator("father_or_spouse_name", mode="before")
    @classmethod
    def _check_relation(cls, v: Any) -> str:
        return _required_text(v, "father_or_spouse_required", MSG_FATHER_OR_SPOUSE)


def contributor_mode(value: Any) -> str:
    """Discriminator: pick the draft branch from ``is_new_contributor``."""
    if isinstance(value, dict):
        flag = value.get("is_new_contributor")
    else:
        flag = getattr(value, "is_new_contributor", None)
    return "new" if as_flag(flag) else "existing"


ContributionDraft = Annotated[
    Union[
        Annotated[ExistingContributorDraft, Tag("existing")],
        Annotated[NewContributorDraft, Tag("new")],
    ],
    Discriminator(contributor_mode),
]

CONTRIBUTION_DRAFT = TypeAdapter(ContributionDraft)


def validate_contribution(data: Dict[str, Any]) -> ValidationOutcome:
    """Validate a contribution draft, applying only the selected branch.

    Examples:
        validate_contribution({"is_new_contributor": "on", ...}).ok
    """
    return validate_form(CONTRIBUTION_DRAFT, data)


# ── Other forms ───────────────────────────────────────────────────────────────

class ExpenseForm(BaseModel):
    """Expense entry/edit form."""

    model_config = ConfigDict(validate_default=True, extra="ignore")

    amount: float = 0.0
    description: str = ""
    expense_type: str = ""
    paid_by: str = ""
    approved_by: str = ""
    payment_mode: str = ""
    date_of_expense: Optional[date] = None

    @field_validator("amount", mode="before")
    @classmethod
    def _check_amount(cls, v: Any) -> float:
        return _positive(v, "amount_positive", "Amount must be greater than 0")

    @field_validator("description", mode="before")
    @classmethod
    def _check_description(cls, v: Any) -> str:
        return _required_text(v, "description_required", "Description is required")

    @field_validator("expense_type", "paid_by", "approved_by", "payment_mode", mode="before")
    @classmethod
    def _strip(cls, v: Any) -> str:
        return _text(v)

    @field_validator("date_of_expense", mode="before")
    @classmethod
    def _check_date(cls, v: Any) -> Optional[date]:
        if not _text(v) and not isinstance(v, date):
            return None
        parsed = coerce_date(v)
        if parsed is None:
            raise PydanticCustomError("date_invalid", "Enter a valid date")
        return parsed


class ContributorUpdateForm(BaseModel):
    """Contributor details + pledge amount edit form."""

    model_config = ConfigDict(validate_default=True, extra="ignore")

    contributor_id: int = 0
    name: str = ""
    father_or_spouse_name: str = ""
    contact: str = ""
    pledge_amount: float = 0.0

    @field_validator("contributor_id", mode="before")
    @classmethod
    def _check_contributor(cls, v: Any) -> int:
        return _record_id(v, "contributor_required", MSG_CONTRIBUTOR)

    @field_validator("name", mode="before")
    @classmethod
    def _check_name(cls, v: Any) -> str:
        return _required_text(v, "name_required", "Name is required")

    @field_validator("father_or_spouse_name", mode="before")
    @classmethod
    def _check_relation(cls, v: Any) -> str:
        return _required_text(v, "father_or_spouse_required", MSG_FATHER_OR_SPOUSE)

    @field_validator("contact", mode="before")
    @classmethod
    def _check_contact(cls, v: Any) -> str:
        return _contact(v)

    @field_validator("pledge_amount", mode="before")
    @classmethod
    def _check_pledge(cls, v: Any) -> float:
        return _positive(v, "pledge_positive", "Pledge amount must be greater than zero")


class LoginForm(BaseModel):
    model_config = ConfigDict(validate_default=True, extra="ignore")

    username: str = ""
    password: str = ""

    @field_validator("username", mode="before")
    @classmethod
    def _check_username(cls, v: Any) -> str:
        return _required_text(v, "username_required", "Username is required")

    @field_validator("password", mode="before")
    @classmethod
    def _check_password(cls, v: Any) -> str:
        text = "" if v is None else str(v)
        if len(text) < 6:
            raise PydanticCustomError("password_short", "Password must be at least 6 characters")
        return text
