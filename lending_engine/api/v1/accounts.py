"""Loan account endpoints: servicing, repayments, overdue checks and default"""

from datetime import date
from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from lending_engine.api.v1.schemas import (
    AccountResponse,
    OverdueResponse,
    PaymentRequest,
    PaymentResponse,
    ScheduleEntrySchema,
)
from lending_engine.api.dependencies import get_request_id
from lending_engine.config import settings
from lending_engine.domain import lifecycle
from lending_engine.domain.models import LifecycleEvent, LoanLifecycleState
from lending_engine.infrastructure.database.models import LoanAccountRecord
from lending_engine.infrastructure.database.session import get_db
from lending_engine.infrastructure.database.repositories import (
    AccountRepository,
    ApplicationRepository,
    AuditRepository,
    PaymentRepository,
    account_to_domain,
)
from lending_engine.infrastructure.observability.logging import log_transition
from lending_engine.infrastructure.observability.metrics import record_transition

router = APIRouter()


def _load_account(db: Session, account_number: str) -> LoanAccountRecord:
    record = AccountRepository(db).get_by_number(account_number)
    if not record:
        raise HTTPException(status_code=404, detail="Loan account not found")
    return record


@router.get("/accounts/{account_number}", response_model=AccountResponse)
def get_account(account_number: str, db: Session = Depends(get_db)):
    record = _load_account(db, account_number)
    return AccountResponse(
        account_number=record.account_number,
        application_id=str(record.application_id),
        status=record.application.status,
        principal_amount_cents=record.principal_cents,
        current_balance_cents=record.current_balance_cents,
        interest_rate=record.interest_rate,
        monthly_payment_cents=record.monthly_payment_cents,
        start_date=record.start_date,
        maturity_date=record.maturity_date,
        next_payment_date=record.next_payment_date,
        total_paid_cents=record.total_paid_cents,
        schedule=[
            ScheduleEntrySchema(
                installment_number=e.installment_number,
                due_date=e.due_date,
                principal_portion_cents=e.principal_cents,
                interest_portion_cents=e.interest_cents,
                total_amount_cents=e.total_cents,
                running_balance_cents=e.balance_cents,
                status=e.status,
            )
            for e in record.schedule
        ],
    )


@router.post("/accounts/{account_number}/payments", response_model=PaymentResponse)
def make_payment(
    account_number: str,
    request_body: PaymentRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Apply a repayment to an active loan.

    Interest accrued on the outstanding balance is settled first. A payment
    that clears the balance moves the loan to PAID_OFF in the same transaction.
    """
    request_id = get_request_id(request)
    record = _load_account(db, account_number)
    account = account_to_domain(record)
    paid_on = request_body.paid_on or date.today()

    applied = lifecycle.apply_payment(account, request_body.amount_cents, paid_on)

    PaymentRepository(db).record_payment(record, request_body.amount_cents, applied, paid_on)
    if applied.state != account.state:
        ApplicationRepository(db).transition_status(record.application, account.state, applied.state)

    AuditRepository(db).record(
        lifecycle.build_audit_record(
            action="APPLY_LOAN_PAYMENT",
            entity_type="LOAN_ACCOUNT",
            entity_id=str(record.application_id),
            old_values={"current_balance_cents": account.current_balance_cents, "status": account.state.value},
            new_values={
                "account_number": account_number,
                "amount_cents": request_body.amount_cents,
                "interest_portion_cents": applied.interest_portion_cents,
                "principal_portion_cents": applied.principal_portion_cents,
                "excess_cents": applied.excess_cents,
                "current_balance_cents": applied.new_balance_cents,
                "status": applied.state.value,
            },
        ),
        request_id=request_id,
    )
    db.commit()

    if applied.state != account.state:
        record_transition(LifecycleEvent.PAY_OFF.value)
        log_transition(request_id, str(record.application_id), LifecycleEvent.PAY_OFF.value,
                       account.state.value, applied.state.value)

    return PaymentResponse(
        account_number=account_number,
        interest_portion_cents=applied.interest_portion_cents,
        principal_portion_cents=applied.principal_portion_cents,
        excess_cents=applied.excess_cents,
        current_balance_cents=applied.new_balance_cents,
        next_payment_date=applied.next_payment_date,
        status=applied.state,
    )


@router.get("/accounts/{account_number}/overdue", response_model=OverdueResponse)
def get_overdue_status(
    account_number: str,
    as_of: date | None = Query(None, description="Evaluation date, defaults to today"),
    db: Session = Depends(get_db),
):
    """Report days past due and whether the grace period has run out"""
    record = _load_account(db, account_number)
    as_of = as_of or date.today()
    grace_days = settings.overdue_grace_days

    return OverdueResponse(
        account_number=account_number,
        next_payment_date=record.next_payment_date,
        as_of=as_of,
        days_overdue=lifecycle.days_overdue(record.next_payment_date, as_of),
        grace_days=grace_days,
        past_grace=lifecycle.is_past_grace(record.next_payment_date, grace_days, as_of),
    )


@router.post("/accounts/{account_number}/default", response_model=AccountResponse)
def default_account(account_number: str, request: Request, db: Session = Depends(get_db)):
    """Record a default decided by collections"""
    request_id = get_request_id(request)
    record = _load_account(db, account_number)
    old_state = LoanLifecycleState(record.application.status)

    new_state = lifecycle.default_account(old_state)
    ApplicationRepository(db).transition_status(record.application, old_state, new_state)
    AuditRepository(db).record(
        lifecycle.build_audit_record(
            action="DEFAULT_LOAN",
            entity_type="LOAN_ACCOUNT",
            entity_id=str(record.application_id),
            old_values={"status": old_state.value},
            new_values={
                "status": new_state.value,
                "account_number": account_number,
                "current_balance_cents": record.current_balance_cents,
                "days_overdue": lifecycle.days_overdue(record.next_payment_date),
            },
        ),
        request_id=request_id,
    )
    db.commit()

    record_transition(LifecycleEvent.DEFAULT.value)
    log_transition(request_id, str(record.application_id), LifecycleEvent.DEFAULT.value,
                   old_state.value, new_state.value)
    return get_account(account_number, db)
