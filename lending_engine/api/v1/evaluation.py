"""POST /v1/evaluations - loan underwriting evaluation endpoints"""

import time
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from lending_engine.api.v1.schemas import EvaluationRequest, EvaluationResponse, LoanRequestFields
from lending_engine.api.dependencies import get_profile_client, get_request_id
from lending_engine.config import settings
from lending_engine.domain.exceptions import ProfileServiceError
from lending_engine.domain.lifecycle import build_audit_record
from lending_engine.domain.models import BorrowerProfile, EvaluationResult, LoanRequest, SavingsProfile
from lending_engine.domain.scoring import evaluate_loan_application
from lending_engine.infrastructure.clients.profile import ProfileClient
from lending_engine.infrastructure.database.session import get_db
from lending_engine.infrastructure.database.repositories import AuditRepository
from lending_engine.infrastructure.observability.metrics import record_evaluation, profile_fetch_failures_counter
from lending_engine.infrastructure.observability.logging import log_evaluation

router = APIRouter()


def _run_evaluation(
    db: Session,
    request_id: str,
    borrower_id: str | None,
    loan: LoanRequest,
    borrower: BorrowerProfile,
    savings: SavingsProfile,
) -> EvaluationResult:
    """Evaluate, then record audit, metrics and logs for the outcome"""
    start_time = time.time()
    result = evaluate_loan_application(loan, borrower, savings, settings.currency_code)

    AuditRepository(db).record(
        build_audit_record(
            action="EVALUATE_LOAN_APPLICATION",
            entity_type="LOAN_EVALUATION",
            entity_id=borrower_id or "anonymous",
            new_values={
                "requested_amount_cents": loan.requested_amount_cents,
                "loan_type": loan.loan_type.value,
                "term_months": loan.term_months,
                "risk_score": result.risk_score,
                "is_eligible": result.is_eligible,
                "recommended_amount_cents": result.recommended_amount_cents,
                "recommended_interest_rate": result.recommended_interest_rate,
                "savings_balance_cents": savings.balance_cents,
                "savings_ratio": result.savings_impact.savings_ratio,
            },
        ),
        request_id=request_id,
    )
    db.commit()

    duration_ms = (time.time() - start_time) * 1000
    record_evaluation(result.is_eligible, loan.loan_type.value, result.risk_score)
    log_evaluation(request_id, borrower_id, loan.loan_type.value, result.is_eligible, result.risk_score, duration_ms)
    return result


@router.post("/evaluations", response_model=EvaluationResponse)
def create_evaluation(
    request_body: EvaluationRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Evaluate a loan request against an inline borrower and savings profile.

    Ineligible requests still return 200 with is_eligible=false and warnings.
    """
    loan = LoanRequest(
        requested_amount_cents=request_body.requested_amount_cents,
        loan_type=request_body.loan_type,
        term_months=request_body.term_months,
    )
    borrower = BorrowerProfile(
        monthly_income_cents=request_body.monthly_income_cents,
        credit_score=request_body.credit_score,
        employment_status=request_body.employment_status,
        existing_loan_count=request_body.existing_loan_count,
        total_active_debt_cents=request_body.total_active_debt_cents,
    )
    savings = SavingsProfile(
        balance_cents=request_body.savings_balance_cents,
        total_interest_earned_cents=request_body.total_interest_earned_cents,
        account_age_months=request_body.savings_account_age_months,
    )
    result = _run_evaluation(db, get_request_id(request), request_body.borrower_id, loan, borrower, savings)
    return EvaluationResponse.from_result(result)


@router.post("/borrowers/{borrower_id}/evaluations", response_model=EvaluationResponse)
async def evaluate_for_borrower(
    borrower_id: str,
    request_body: LoanRequestFields,
    request: Request,
    db: Session = Depends(get_db),
    profile_client: ProfileClient = Depends(get_profile_client),
):
    """
    Evaluate a loan request for a known member.

    Flow:
    1. Fetch borrower and savings profile from the member profile service
    2. Run the underwriting evaluation
    3. Record audit entry, metrics and logs
    """
    request_id = get_request_id(request)
    try:
        borrower, savings = await profile_client.get_profile(borrower_id)
    except ProfileServiceError:
        profile_fetch_failures_counter.inc()
        raise

    loan = LoanRequest(
        requested_amount_cents=request_body.requested_amount_cents,
        loan_type=request_body.loan_type,
        term_months=request_body.term_months,
    )
    result = _run_evaluation(db, request_id, borrower_id, loan, borrower, savings)
    return EvaluationResponse.from_result(result)
