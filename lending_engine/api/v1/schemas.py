"""Pydantic schemas for API request/response validation"""

from pydantic import BaseModel, Field
from datetime import date
from typing import Any, Dict, List, Optional

from lending_engine.domain.policy import MAX_TERM_MONTHS
from lending_engine.domain.models import (
    AmortizationSchedule,
    EvaluationResult,
    LoanLifecycleState,
    LoanType,
)


class LoanRequestFields(BaseModel):
    """Loan terms shared by evaluation requests"""

    requested_amount_cents: int = Field(..., gt=0, description="Requested principal in minor units")
    loan_type: LoanType
    term_months: int = Field(..., gt=0, le=MAX_TERM_MONTHS)


class EvaluationRequest(LoanRequestFields):
    """Request body for POST /v1/evaluations"""

    borrower_id: Optional[str] = Field(None, description="Borrower identifier, for audit only")
    monthly_income_cents: int = Field(..., gt=0)
    credit_score: int = Field(..., ge=0)
    employment_status: str = "UNKNOWN"
    savings_balance_cents: int = Field(0, ge=0)
    total_interest_earned_cents: int = Field(0, ge=0)
    savings_account_age_months: int = Field(0, ge=0)
    existing_loan_count: int = Field(0, ge=0)
    total_active_debt_cents: int = Field(0, ge=0, description="Monthly obligation of active loans")


class FactorSchema(BaseModel):
    score: int
    weight: int
    description: str


class SavingsImpactSchema(BaseModel):
    savings_ratio: float
    savings_bonus: int
    minimum_savings_required_cents: int
    meets_savings_requirement: bool


class EvaluationResponse(BaseModel):
    """Response for evaluation endpoints"""

    is_eligible: bool
    risk_score: int
    recommended_amount_cents: int
    recommended_interest_rate: float
    savings_impact: SavingsImpactSchema
    factors: Dict[str, FactorSchema]
    recommendations: List[str]
    warnings: List[str]
    debt_to_income_ratio: float
    payment_to_income_ratio: float
    estimated_monthly_payment_cents: int

    @classmethod
    def from_result(cls, result: EvaluationResult) -> "EvaluationResponse":
        impact = result.savings_impact
        return cls(
            is_eligible=result.is_eligible,
            risk_score=result.risk_score,
            recommended_amount_cents=result.recommended_amount_cents,
            recommended_interest_rate=result.recommended_interest_rate,
            savings_impact=SavingsImpactSchema(
                savings_ratio=impact.savings_ratio,
                savings_bonus=impact.savings_bonus,
                minimum_savings_required_cents=impact.minimum_savings_required_cents,
                meets_savings_requirement=impact.meets_savings_requirement,
            ),
            factors={
                name: FactorSchema(score=f.score, weight=f.weight, description=f.description)
                for name, f in result.factors.items()
            },
            recommendations=list(result.recommendations),
            warnings=list(result.warnings),
            debt_to_income_ratio=result.debt_to_income_ratio,
            payment_to_income_ratio=result.payment_to_income_ratio,
            estimated_monthly_payment_cents=result.estimated_monthly_payment_cents,
        )


class ApplicationCreateRequest(BaseModel):
    """Request body for POST /v1/applications; drafts may be incomplete"""

    borrower_id: str = Field(..., min_length=1)
    loan_type: Optional[LoanType] = None
    requested_amount_cents: Optional[int] = Field(None, gt=0)
    term_months: Optional[int] = Field(None, gt=0, le=MAX_TERM_MONTHS)
    purpose: Optional[str] = None


class ApprovalRequest(BaseModel):
    approved_amount_cents: int = Field(..., gt=0)
    interest_rate: Optional[float] = Field(None, ge=0)
    monthly_payment_cents: Optional[int] = Field(None, gt=0)


class RejectionRequest(BaseModel):
    reason: str = Field(..., min_length=1)


class DisbursementRequest(BaseModel):
    disbursement_amount_cents: Optional[int] = Field(None, gt=0)
    disbursement_date: Optional[date] = None


class ApplicationResponse(BaseModel):
    application_id: str
    application_number: str
    borrower_id: str
    status: LoanLifecycleState
    loan_type: Optional[LoanType] = None
    requested_amount_cents: Optional[int] = None
    term_months: Optional[int] = None
    purpose: Optional[str] = None
    approved_amount_cents: Optional[int] = None
    interest_rate: Optional[float] = None
    monthly_payment_cents: Optional[int] = None
    rejection_reason: Optional[str] = None
    account_number: Optional[str] = None
    created_at: Optional[str] = None


class ScheduleEntrySchema(BaseModel):
    """Single installment in an amortization schedule"""

    installment_number: int
    due_date: date
    principal_portion_cents: int
    interest_portion_cents: int
    total_amount_cents: int
    running_balance_cents: int
    status: str = "scheduled"


class DisbursementResponse(BaseModel):
    """Response for POST /v1/applications/{id}/disburse"""

    account_number: str
    principal_amount_cents: int
    interest_rate: float
    monthly_payment_cents: int
    start_date: date
    maturity_date: date
    next_payment_date: date
    total_payment_cents: int
    total_interest_cents: int
    status: LoanLifecycleState
    initial_schedule: List[ScheduleEntrySchema]

    @staticmethod
    def schedule_entries(schedule: AmortizationSchedule) -> List[ScheduleEntrySchema]:
        return [
            ScheduleEntrySchema(
                installment_number=e.installment_number,
                due_date=e.due_date,
                principal_portion_cents=e.principal_portion_cents,
                interest_portion_cents=e.interest_portion_cents,
                total_amount_cents=e.total_amount_cents,
                running_balance_cents=e.running_balance_cents,
            )
            for e in schedule.entries
        ]


class AccountResponse(BaseModel):
    """Response for GET /v1/accounts/{account_number}"""

    account_number: str
    application_id: str
    status: LoanLifecycleState
    principal_amount_cents: int
    current_balance_cents: int
    interest_rate: float
    monthly_payment_cents: int
    start_date: date
    maturity_date: date
    next_payment_date: date
    total_paid_cents: int
    schedule: List[ScheduleEntrySchema]


class PaymentRequest(BaseModel):
    amount_cents: int = Field(..., gt=0)
    paid_on: Optional[date] = None


class PaymentResponse(BaseModel):
    account_number: str
    interest_portion_cents: int
    principal_portion_cents: int
    excess_cents: int
    current_balance_cents: int
    next_payment_date: date
    status: LoanLifecycleState


class OverdueResponse(BaseModel):
    account_number: str
    next_payment_date: date
    as_of: date
    days_overdue: int
    grace_days: int
    past_grace: bool


class AuditEntry(BaseModel):
    action: str
    entity_type: str
    entity_id: str
    old_values: Optional[Dict[str, Any]] = None
    new_values: Optional[Dict[str, Any]] = None
    created_at: str


class AuditTrailResponse(BaseModel):
    """Response for GET /v1/applications/{id}/audit"""

    application_id: str
    entries: List[AuditEntry]
