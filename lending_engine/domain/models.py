"""Domain models - pure Python dataclasses representing business entities

All currency fields are integer minor units (cents). Rates are annual
percentages and ratios are percentages.
"""

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, Mapping, NewType, Tuple

# Higher is better: how desirable one evaluation dimension looks (0-100)
DesirabilityScore = NewType("DesirabilityScore", int)

# Lower is better: aggregate application risk (0 = safest, 100 = riskiest)
RiskScore = NewType("RiskScore", int)


class LoanType(str, Enum):
    PERSONAL = "PERSONAL"
    MORTGAGE = "MORTGAGE"
    AUTO = "AUTO"
    BUSINESS = "BUSINESS"
    STUDENT = "STUDENT"
    PAYDAY = "PAYDAY"


class LoanLifecycleState(str, Enum):
    DRAFT = "DRAFT"
    SUBMITTED = "SUBMITTED"
    UNDER_REVIEW = "UNDER_REVIEW"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    DISBURSED = "DISBURSED"
    ACTIVE = "ACTIVE"
    PAID_OFF = "PAID_OFF"
    DEFAULTED = "DEFAULTED"


class LifecycleEvent(str, Enum):
    SUBMIT = "SUBMIT"
    START_REVIEW = "START_REVIEW"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    DISBURSE = "DISBURSE"
    ACTIVATE = "ACTIVATE"
    PAY_OFF = "PAY_OFF"
    DEFAULT = "DEFAULT"


@dataclass(frozen=True)
class BorrowerProfile:
    """Borrower financial snapshot supplied per evaluation"""

    monthly_income_cents: int
    credit_score: int
    employment_status: str
    existing_loan_count: int = 0
    total_active_debt_cents: int = 0  # monthly obligation of active loans


@dataclass(frozen=True)
class SavingsProfile:
    """Savings account snapshot supplied per evaluation"""

    balance_cents: int = 0
    total_interest_earned_cents: int = 0
    account_age_months: int = 0


@dataclass(frozen=True)
class LoanRequest:
    requested_amount_cents: int
    loan_type: LoanType
    term_months: int


@dataclass(frozen=True)
class FactorScore:
    """Desirability rating for one evaluation dimension"""

    score: DesirabilityScore
    weight: int
    description: str


@dataclass(frozen=True)
class SavingsImpact:
    savings_ratio: float
    savings_bonus: int
    minimum_savings_required_cents: int
    meets_savings_requirement: bool


@dataclass(frozen=True)
class EvaluationResult:
    """Output of a single underwriting evaluation"""

    is_eligible: bool
    risk_score: RiskScore
    recommended_amount_cents: int
    recommended_interest_rate: float
    savings_impact: SavingsImpact
    factors: Mapping[str, FactorScore]
    recommendations: Tuple[str, ...]
    warnings: Tuple[str, ...]
    debt_to_income_ratio: float
    payment_to_income_ratio: float
    estimated_monthly_payment_cents: int


@dataclass(frozen=True)
class AmortizationEntry:
    """Single installment in a repayment schedule"""

    installment_number: int
    due_date: date
    principal_portion_cents: int
    interest_portion_cents: int
    total_amount_cents: int
    running_balance_cents: int


@dataclass(frozen=True)
class AmortizationSchedule:
    monthly_payment_cents: int
    entries: Tuple[AmortizationEntry, ...]
    total_payment_cents: int
    total_interest_cents: int
    maturity_date: date


@dataclass(frozen=True)
class LoanApplication:
    """Application fields the lifecycle guards read"""

    application_id: str
    borrower_id: str | None
    state: LoanLifecycleState
    loan_type: LoanType | None
    requested_amount_cents: int | None
    term_months: int | None
    purpose: str | None = None
    approved_amount_cents: int | None = None
    interest_rate: float | None = None
    monthly_payment_cents: int | None = None


@dataclass(frozen=True)
class Disbursement:
    """Account terms produced when an approved application is disbursed"""

    account_number: str
    principal_cents: int
    interest_rate: float
    monthly_payment_cents: int
    start_date: date
    maturity_date: date
    next_payment_date: date
    schedule: AmortizationSchedule
    state: LoanLifecycleState


@dataclass(frozen=True)
class LoanAccount:
    """Account fields needed to apply a payment"""

    account_number: str
    state: LoanLifecycleState
    current_balance_cents: int
    interest_rate: float
    next_payment_date: date


@dataclass(frozen=True)
class PaymentApplication:
    interest_portion_cents: int
    principal_portion_cents: int
    excess_cents: int
    new_balance_cents: int
    next_payment_date: date
    state: LoanLifecycleState


@dataclass(frozen=True)
class AuditRecord:
    """Values that belong in an audit entry; persisting them is the caller's job"""

    action: str
    entity_type: str
    entity_id: str
    old_values: Dict[str, Any] = field(default_factory=dict)
    new_values: Dict[str, Any] = field(default_factory=dict)
