"""Loan application lifecycle endpoints: create, submit, review, approve, reject, disburse"""

import uuid
from datetime import date, datetime, timezone
from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Request
from sqlalchemy.orm import Session

from lending_engine.api.v1.schemas import (
    ApplicationCreateRequest,
    ApplicationResponse,
    ApprovalRequest,
    AuditEntry,
    AuditTrailResponse,
    DisbursementRequest,
    DisbursementResponse,
    RejectionRequest,
)
from lending_engine.api.dependencies import get_ledger_client, get_request_id
from lending_engine.config import settings
from lending_engine.domain import lifecycle
from lending_engine.domain.exceptions import (
    AlreadyDisbursedError,
    AmountExceedsApprovedError,
    DomainException,
    NotApprovedError,
)
from lending_engine.domain.models import LifecycleEvent, LoanLifecycleState
from lending_engine.infrastructure.clients.ledger import LedgerClient, disbursement_event
from lending_engine.infrastructure.database.models import LoanApplicationRecord
from lending_engine.infrastructure.database.session import get_db
from lending_engine.infrastructure.database.repositories import (
    AccountRepository,
    ApplicationRepository,
    AuditRepository,
    application_to_domain,
)
from lending_engine.infrastructure.observability.logging import log_transition
from lending_engine.infrastructure.observability.metrics import (
    record_disbursement,
    record_disbursement_rejection,
    record_transition,
)

router = APIRouter()

DISBURSEMENT_REJECTION_REASONS = (
    (AlreadyDisbursedError, "already_disbursed"),
    (NotApprovedError, "not_approved"),
    (AmountExceedsApprovedError, "amount_exceeds_approved"),
)


def _load_application(repo: ApplicationRepository, application_id: str) -> LoanApplicationRecord:
    try:
        app_uuid = uuid.UUID(application_id)
    except ValueError:
        raise HTTPException(status_code=400, detail="Invalid application ID format")

    record = repo.get_application(app_uuid)
    if not record:
        raise HTTPException(status_code=404, detail="Application not found")
    return record


def _to_response(record: LoanApplicationRecord) -> ApplicationResponse:
    return ApplicationResponse(
        application_id=str(record.id),
        application_number=record.application_number,
        borrower_id=record.borrower_id,
        status=record.status,
        loan_type=record.loan_type,
        requested_amount_cents=record.requested_cents,
        term_months=record.term_months,
        purpose=record.purpose,
        approved_amount_cents=record.approved_cents,
        interest_rate=record.interest_rate,
        monthly_payment_cents=record.monthly_payment_cents,
        rejection_reason=record.rejection_reason,
        account_number=record.account.account_number if record.account else None,
        created_at=record.created_at.isoformat() if record.created_at else None,
    )


def _commit_transition(
    db: Session,
    request_id: str,
    record: LoanApplicationRecord,
    event: LifecycleEvent,
    old_state: LoanLifecycleState,
    new_state: LoanLifecycleState,
    action: str,
    old_values: dict | None = None,
    new_values: dict | None = None,
    **fields,
) -> None:
    """Compare-and-swap the status, write the audit entry, commit"""
    ApplicationRepository(db).transition_status(record, old_state, new_state, **fields)
    AuditRepository(db).record(
        lifecycle.build_audit_record(
            action=action,
            entity_type="LOAN_APPLICATION",
            entity_id=str(record.id),
            old_values={"status": old_state.value, **(old_values or {})},
            new_values={
                "status": new_state.value,
                "application_number": record.application_number,
                **(new_values or {}),
            },
        ),
        request_id=request_id,
    )
    db.commit()

    record_transition(event.value)
    log_transition(request_id, str(record.id), event.value, old_state.value, new_state.value)


@router.post("/applications", response_model=ApplicationResponse, status_code=201)
def create_application(
    request_body: ApplicationCreateRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """Create a DRAFT application; completeness is checked on submit"""
    record = ApplicationRepository(db).create_application(
        application_number=lifecycle.generate_application_number(),
        borrower_id=request_body.borrower_id,
        loan_type=request_body.loan_type,
        requested_cents=request_body.requested_amount_cents,
        term_months=request_body.term_months,
        purpose=request_body.purpose,
    )
    AuditRepository(db).record(
        lifecycle.build_audit_record(
            action="CREATE_LOAN_APPLICATION",
            entity_type="LOAN_APPLICATION",
            entity_id=str(record.id),
            new_values={"status": LoanLifecycleState.DRAFT.value, "application_number": record.application_number},
        ),
        request_id=get_request_id(request),
    )
    db.commit()
    db.refresh(record)
    return _to_response(record)


@router.get("/applications/{application_id}", response_model=ApplicationResponse)
def get_application(application_id: str, db: Session = Depends(get_db)):
    record = _load_application(ApplicationRepository(db), application_id)
    return _to_response(record)


@router.post("/applications/{application_id}/submit", response_model=ApplicationResponse)
def submit_application(application_id: str, request: Request, db: Session = Depends(get_db)):
    record = _load_application(ApplicationRepository(db), application_id)
    application = application_to_domain(record)

    new_state = lifecycle.submit_application(application)
    _commit_transition(
        db,
        get_request_id(request),
        record,
        LifecycleEvent.SUBMIT,
        application.state,
        new_state,
        action="SUBMIT_LOAN_APPLICATION",
        submitted_at=datetime.now(timezone.utc),
    )
    return _to_response(record)


@router.post("/applications/{application_id}/review", response_model=ApplicationResponse)
def start_review(application_id: str, request: Request, db: Session = Depends(get_db)):
    record = _load_application(ApplicationRepository(db), application_id)
    application = application_to_domain(record)

    new_state = lifecycle.start_review(application)
    _commit_transition(
        db,
        get_request_id(request),
        record,
        LifecycleEvent.START_REVIEW,
        application.state,
        new_state,
        action="START_LOAN_REVIEW",
    )
    return _to_response(record)


@router.post("/applications/{application_id}/approve", response_model=ApplicationResponse)
def approve_application(
    application_id: str,
    request_body: ApprovalRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    """
    Approve with explicit terms.

    The evaluator's verdict is advisory; the amount is capped at
    requested x approval_ceiling_ratio.
    """
    record = _load_application(ApplicationRepository(db), application_id)
    application = application_to_domain(record)

    new_state = lifecycle.approve_application(
        application,
        approved_amount_cents=request_body.approved_amount_cents,
        interest_rate=request_body.interest_rate,
        monthly_payment_cents=request_body.monthly_payment_cents,
        ceiling_ratio=settings.approval_ceiling_ratio,
    )
    _commit_transition(
        db,
        get_request_id(request),
        record,
        LifecycleEvent.APPROVE,
        application.state,
        new_state,
        action="APPROVE_LOAN_APPLICATION",
        old_values={"approved_amount_cents": record.approved_cents, "interest_rate": record.interest_rate},
        new_values={
            "approved_amount_cents": request_body.approved_amount_cents,
            "interest_rate": request_body.interest_rate,
            "monthly_payment_cents": request_body.monthly_payment_cents,
        },
        approved_cents=request_body.approved_amount_cents,
        interest_rate=request_body.interest_rate,
        monthly_payment_cents=request_body.monthly_payment_cents,
        decided_at=datetime.now(timezone.utc),
    )
    return _to_response(record)


@router.post("/applications/{application_id}/reject", response_model=ApplicationResponse)
def reject_application(
    application_id: str,
    request_body: RejectionRequest,
    request: Request,
    db: Session = Depends(get_db),
):
    record = _load_application(ApplicationRepository(db), application_id)
    application = application_to_domain(record)

    new_state = lifecycle.reject_application(application, request_body.reason)
    _commit_transition(
        db,
        get_request_id(request),
        record,
        LifecycleEvent.REJECT,
        application.state,
        new_state,
        action="REJECT_LOAN_APPLICATION",
        new_values={"reason": request_body.reason},
        rejection_reason=request_body.reason,
        decided_at=datetime.now(timezone.utc),
    )
    return _to_response(record)


@router.post("/applications/{application_id}/disburse", response_model=DisbursementResponse)
async def disburse_application(
    application_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    request_body: DisbursementRequest | None = None,
    db: Session = Depends(get_db),
    ledger_client: LedgerClient = Depends(get_ledger_client),
):
    """
    Disburse an approved loan and activate its account.

    Flow:
    1. Guard: not already disbursed, approved, amount within approval
    2. Compute account terms and amortization schedule
    3. In one transaction: create account + schedule, CAS status to ACTIVE, audit
    4. Send async LOAN_DISBURSED event to ledger
    """
    request_id = get_request_id(request)
    request_body = request_body or DisbursementRequest()
    application_repo = ApplicationRepository(db)
    account_repo = AccountRepository(db)

    record = _load_application(application_repo, application_id)
    application = application_to_domain(record)
    disbursement_date = request_body.disbursement_date or date.today()

    try:
        disbursement = lifecycle.disburse_application(
            application,
            account_exists=account_repo.exists_for_application(record.id),
            account_number=lifecycle.generate_account_number(disbursement_date),
            disbursement_amount_cents=request_body.disbursement_amount_cents,
            disbursement_date=disbursement_date,
        )

        account = account_repo.create_account(record.id, disbursement)
        application_repo.transition_status(
            record,
            application.state,
            disbursement.state,
            disbursed_at=datetime.now(timezone.utc),
        )
        AuditRepository(db).record(
            lifecycle.build_audit_record(
                action="DISBURSE_LOAN",
                entity_type="LOAN_ACCOUNT",
                entity_id=str(record.id),
                old_values={"status": application.state.value, "loan_account_exists": False},
                new_values={
                    "status": disbursement.state.value,
                    "account_number": account.account_number,
                    "disbursed_amount_cents": disbursement.principal_cents,
                    "interest_rate": disbursement.interest_rate,
                    "monthly_payment_cents": disbursement.monthly_payment_cents,
                    "application_number": record.application_number,
                },
            ),
            request_id=request_id,
        )
        db.commit()

    except DomainException as e:
        db.rollback()
        for exc_type, reason in DISBURSEMENT_REJECTION_REASONS:
            if isinstance(e, exc_type):
                record_disbursement_rejection(reason)
                break
        raise

    record_transition(LifecycleEvent.DISBURSE.value)
    record_transition(LifecycleEvent.ACTIVATE.value)
    record_disbursement(application.loan_type.value, disbursement.principal_cents)
    log_transition(request_id, application.application_id, LifecycleEvent.DISBURSE.value,
                   application.state.value, disbursement.state.value)

    background_tasks.add_task(
        ledger_client.send_disbursement_event,
        disbursement_event(application, disbursement),
    )

    schedule = disbursement.schedule
    return DisbursementResponse(
        account_number=disbursement.account_number,
        principal_amount_cents=disbursement.principal_cents,
        interest_rate=disbursement.interest_rate,
        monthly_payment_cents=disbursement.monthly_payment_cents,
        start_date=disbursement.start_date,
        maturity_date=disbursement.maturity_date,
        next_payment_date=disbursement.next_payment_date,
        total_payment_cents=schedule.total_payment_cents,
        total_interest_cents=schedule.total_interest_cents,
        status=disbursement.state,
        initial_schedule=DisbursementResponse.schedule_entries(schedule),
    )


@router.get("/applications/{application_id}/audit", response_model=AuditTrailResponse)
def get_audit_trail(application_id: str, db: Session = Depends(get_db)):
    """Audit entries recorded against an application, oldest first"""
    record = _load_application(ApplicationRepository(db), application_id)
    entries = AuditRepository(db).get_entries_for_entity(str(record.id))

    return AuditTrailResponse(
        application_id=str(record.id),
        entries=[
            AuditEntry(
                action=e.action,
                entity_type=e.entity_type,
                entity_id=e.entity_id,
                old_values=e.old_values,
                new_values=e.new_values,
                created_at=e.created_at.isoformat(),
            )
            for e in entries
        ],
    )
