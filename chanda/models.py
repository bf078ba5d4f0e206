"""
Pydantic models for the Chanda backend's JSON responses.

Optional fields default to None so that partial responses from the backend
(older records, missing joins) still parse.  Unknown keys are ignored.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


# ── Reference data models ─────────────────────────────────────────────────────

class Village(BaseModel):
    id: int = Field(..., description="Village ID", examples=[1])
    name: str = Field(..., description="Village name", examples=["Rampur"])


class Tola(BaseModel):
    """A sub-village unit that groups contributors."""
    id: int = Field(..., description="Tola ID", examples=[3])
    tola_name: str = Field(..., description="Display name", examples=["North Tola"])
    village_id: int | None = Field(None, description="Owning village ID")
    tola_code: str | None = Field(None, description="Short code", examples=["NT"])
    created_at: str | None = None
    updated_at: str | None = None
    village: Village | None = None


class TolaRef(BaseModel):
    """Abbreviated Tola embedded in contributor and payment rows."""
    id: int
    tola_name: str


class FinancialYear(BaseModel):
    id: int
    name: str | int | None = Field(None, description="Financial year label", examples=["2025-26"])
    is_active: bool = False


class Pledge(BaseModel):
    id: int
    amount: float = Field(0.0, description="Pledged amount in rupees")
    financial_year: FinancialYear | None = None


class Contributor(BaseModel):
    """A person who pledges and pays contributions."""
    id: int = Field(..., description="Contributor ID", examples=[17])
    name: str = Field(..., description="Contributor name", examples=["Ravi Kumar"])
    father_or_spouse_name: str | None = Field(None, description="Father or spouse name")
    contact: str | None = Field(None, description="10-digit mobile number")
    tola_id: int | None = None
    pledge_amount: float | None = Field(None, description="Current pledge in rupees", examples=[500.0])
    tola: TolaRef | None = None
    pledges: list[Pledge] = Field(default_factory=list)

    @property
    def active_pledges(self) -> list[Pledge]:
        """Pledges made for the currently active financial year."""
        return [p for p in self.pledges if p.financial_year and p.financial_year.is_active]

    @property
    def option_label(self) -> str:
        """Label shown in the contributor picker: ``"Ravi Kumar - ₹ 500"``."""
        amount = self.pledge_amount if self.pledge_amount is not None else 0
        return f"{self.name} - ₹ {amount:g}"


# ── Contribution models ───────────────────────────────────────────────────────

class ContributionRecord(BaseModel):
    """The backend's response to a created contribution."""
    id: int | None = Field(None, description="Contribution ID")
    tola_id: int | None = None
    contributor_id: int | None = None
    event_id: int | None = None
    payment_date: str | None = None
    amount: float | None = None
    payment_mode_id: str | int | None = None
    receipt_id: str | int | None = None
    created_at: str | None = None
    updated_at: str | None = None


class ContributionSummary(BaseModel):
    """A row of the contributions listing."""
    id: int
    amount: float = 0.0
    payment_date: str | None = None
    tola_name: str | None = None
    contributor_name: str | None = None
    payment_mode: str | None = None
    receipt_id: str | int | None = None


# ── Payment reconciliation models ─────────────────────────────────────────────

class PaymentContributor(BaseModel):
    """Paid vs pledged for one contributor in a Tola."""
    contributor_id: int
    contributor_name: str
    pledged_amount: float = 0.0
    paid_amount: float = 0.0
    percent_diff: float = 0.0
    tola: TolaRef | None = None

    @property
    def is_paid(self) -> bool:
        return self.paid_amount > 0


class PaymentsSummary(BaseModel):
    total_pledged: float = 0.0
    total_paid: float = 0.0
    total_percent_diff: float = 0.0


class PaymentsResponse(BaseModel):
    contributors: list[PaymentContributor] = Field(default_factory=list)
    summary: PaymentsSummary = Field(default_factory=PaymentsSummary)


# ── Expense models ────────────────────────────────────────────────────────────

class Expense(BaseModel):
    """An event expense."""
    id: int = Field(..., description="Expense ID")
    event_id: int | None = None
    financial_year_id: int | None = None
    amount: float = Field(0.0, description="Amount in rupees")
    description: str = ""
    expense_type: str | None = None
    paid_by: str | None = None
    approved_by: str | None = None
    payment_mode: str | None = None
    date_of_expense: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


# ── Dashboard models ──────────────────────────────────────────────────────────

class TolaWisePledge(BaseModel):
    tola_name: str
    total_amount: float = 0.0


class TolaCollection(BaseModel):
    tola_name: str
    total_pledged: float = 0.0
    total_collected: float = 0.0


class DashboardSummary(BaseModel):
    """Aggregates behind the dashboard home page."""
    contributor_count: int = 0
    total_pledge: float = 0.0
    tol_wise_pledge: list[TolaWisePledge] = Field(default_factory=list)
    total_collected: float = 0.0
    today_collected: float = 0.0
    collected_percent: float = 0.0
    total_expense: float = 0.0
    tola_wise_collection: list[TolaCollection] = Field(default_factory=list)


# ── Auth models ───────────────────────────────────────────────────────────────

class LoginResponse(BaseModel):
    access_token: str
    token_type: str | None = "bearer"
