"""Loan lifecycle state machine and transition guards

Every state change goes through `transition`. The guard functions below check
the business preconditions for one event each and compute the values the
caller must persist; none of them store anything.
"""

import logging
import uuid
from datetime import date, datetime
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple

from lending_engine.domain.amortization import generate_schedule, monthly_rate
from lending_engine.domain.exceptions import (
    AlreadyDisbursedError,
    AmountExceedsApprovedError,
    ApprovalCeilingExceededError,
    IncompleteApplicationError,
    InvalidInputError,
    InvalidTransitionError,
    NotApprovedError,
)
from lending_engine.domain.models import (
    AuditRecord,
    Disbursement,
    LifecycleEvent,
    LoanAccount,
    LoanApplication,
    LoanLifecycleState,
    PaymentApplication,
)
from lending_engine.utils.date_utils import add_months, days_between
from lending_engine.utils.money import round_half_up

logger = logging.getLogger(__name__)

State = LoanLifecycleState
Event = LifecycleEvent

TRANSITIONS: Mapping[Tuple[LoanLifecycleState, LifecycleEvent], LoanLifecycleState] = MappingProxyType({
    (State.DRAFT, Event.SUBMIT): State.SUBMITTED,
    (State.SUBMITTED, Event.START_REVIEW): State.UNDER_REVIEW,
    (State.UNDER_REVIEW, Event.APPROVE): State.APPROVED,
    (State.UNDER_REVIEW, Event.REJECT): State.REJECTED,
    (State.APPROVED, Event.DISBURSE): State.DISBURSED,
    (State.DISBURSED, Event.ACTIVATE): State.ACTIVE,
    (State.ACTIVE, Event.PAY_OFF): State.PAID_OFF,
    (State.ACTIVE, Event.DEFAULT): State.DEFAULTED,
})

TERMINAL_STATES = frozenset({State.REJECTED, State.PAID_OFF, State.DEFAULTED})
DISBURSED_STATES = frozenset({State.DISBURSED, State.ACTIVE, State.PAID_OFF, State.DEFAULTED})


def transition(state: LoanLifecycleState, event: LifecycleEvent) -> LoanLifecycleState:
    """
    Single authority for lifecycle changes.

    Raises:
        InvalidTransitionError: event is not allowed from state
    """
    if state in TERMINAL_STATES:
        raise InvalidTransitionError(state, event, f"Loan is closed ({state.value}); {event.value} is not allowed")
    try:
        return TRANSITIONS[(state, event)]
    except KeyError:
        raise InvalidTransitionError(state, event) from None


def allowed_events(state: LoanLifecycleState) -> List[LifecycleEvent]:
    return [event for (source, event) in TRANSITIONS if source == state]


def generate_application_number(now: datetime | None = None) -> str:
    now = now or datetime.now()
    return f"LN{now:%Y%m%d%H%M%S}{uuid.uuid4().int % 1000:03d}"


def generate_account_number(disbursement_date: date | None = None) -> str:
    year = (disbursement_date or date.today()).year
    return f"ACC-{year}-{uuid.uuid4().hex[:8].upper()}"


def missing_submission_fields(application: LoanApplication) -> List[str]:
    missing = []
    if not application.borrower_id:
        missing.append("borrower_id")
    if application.loan_type is None:
        missing.append("loan_type")
    if not application.requested_amount_cents or application.requested_amount_cents <= 0:
        missing.append("requested_amount")
    if not application.term_months or application.term_months <= 0:
        missing.append("term_months")
    if not (application.purpose or "").strip():
        missing.append("purpose")
    return missing


def submit_application(application: LoanApplication) -> LoanLifecycleState:
    new_state = transition(application.state, Event.SUBMIT)
    missing = missing_submission_fields(application)
    if missing:
        raise IncompleteApplicationError(missing)
    return new_state


def start_review(application: LoanApplication) -> LoanLifecycleState:
    return transition(application.state, Event.START_REVIEW)


def approve_application(
    application: LoanApplication,
    approved_amount_cents: int,
    interest_rate: float | None,
    monthly_payment_cents: int | None,
    ceiling_ratio: float,
) -> LoanLifecycleState:
    """
    Validate an underwriter's approval.

    The evaluator's eligibility verdict is advisory: a human may approve an
    ineligible application, but only within the ceiling and with explicit
    pricing terms.
    """
    new_state = transition(application.state, Event.APPROVE)

    problems = []
    if approved_amount_cents is None or approved_amount_cents <= 0:
        problems.append("approved_amount must be positive")
    if interest_rate is None:
        problems.append("interest_rate is required for approval")
    elif interest_rate < 0:
        problems.append("interest_rate must not be negative")
    if monthly_payment_cents is None:
        problems.append("monthly_payment is required for approval")
    elif monthly_payment_cents <= 0:
        problems.append("monthly_payment must be positive")
    if problems:
        raise InvalidInputError(problems)

    ceiling = application.requested_amount_cents * ceiling_ratio
    if approved_amount_cents > ceiling:
        raise ApprovalCeilingExceededError(
            f"Approved amount {approved_amount_cents} exceeds ceiling {round_half_up(ceiling)} "
            f"({ceiling_ratio:g} x requested)"
        )

    return new_state


def reject_application(application: LoanApplication, reason: str | None = None) -> LoanLifecycleState:
    new_state = transition(application.state, Event.REJECT)
    if not (reason or "").strip():
        raise InvalidInputError("A rejection reason is required")
    return new_state


def disburse_application(
    application: LoanApplication,
    account_exists: bool,
    account_number: str,
    disbursement_amount_cents: int | None = None,
    disbursement_date: date | None = None,
) -> Disbursement:
    """
    Release approved funds: compute account terms and the repayment schedule.

    Guards, in order:
    - AlreadyDisbursedError: an account exists or the loan is past disbursement
    - NotApprovedError: the application is not APPROVED
    - AmountExceedsApprovedError: override above the approved amount

    Disbursement is followed immediately by activation, so the returned state
    is ACTIVE. The caller must persist the account and the state change in one
    transaction.
    """
    if account_exists or application.state in DISBURSED_STATES:
        raise AlreadyDisbursedError(f"Application {application.application_id} has already been disbursed")

    if application.state != State.APPROVED:
        raise NotApprovedError(
            application.state,
            Event.DISBURSE,
            f"Application {application.application_id} must be approved before disbursement "
            f"(current state {application.state.value})",
        )

    approved = application.approved_amount_cents
    principal = disbursement_amount_cents if disbursement_amount_cents is not None else approved
    if principal <= 0:
        raise InvalidInputError("disbursement_amount must be positive")
    if principal > approved:
        raise AmountExceedsApprovedError(
            f"Disbursement amount {principal} cannot exceed approved amount {approved}"
        )

    start = disbursement_date or date.today()
    schedule = generate_schedule(principal, application.interest_rate, application.term_months, start)

    state = transition(application.state, Event.DISBURSE)
    state = transition(state, Event.ACTIVATE)

    if application.monthly_payment_cents and application.monthly_payment_cents != schedule.monthly_payment_cents:
        logger.info(
            "Scheduled payment differs from approved payment",
            extra={
                "application_id": application.application_id,
                "approved_payment_cents": application.monthly_payment_cents,
                "scheduled_payment_cents": schedule.monthly_payment_cents,
            },
        )

    return Disbursement(
        account_number=account_number,
        principal_cents=principal,
        interest_rate=application.interest_rate,
        monthly_payment_cents=schedule.monthly_payment_cents,
        start_date=start,
        maturity_date=schedule.maturity_date,
        next_payment_date=add_months(start, 1),
        schedule=schedule,
        state=state,
    )


def apply_payment(account: LoanAccount, amount_cents: int, paid_on: date | None = None) -> PaymentApplication:
    """
    Apply a repayment: accrued interest first, the rest to principal.

    Principal is capped at the outstanding balance; any surplus is reported as
    excess. A zero balance pays the loan off.
    """
    if account.state != State.ACTIVE:
        raise InvalidTransitionError(
            account.state,
            Event.PAY_OFF,
            f"Payments can only be applied to an active loan (current state {account.state.value})",
        )
    if amount_cents <= 0:
        raise InvalidInputError("payment amount must be positive")

    interest_due = round_half_up(account.current_balance_cents * monthly_rate(account.interest_rate))
    interest = min(interest_due, amount_cents)
    principal = min(amount_cents - interest, account.current_balance_cents)
    excess = amount_cents - interest - principal
    balance = account.current_balance_cents - principal

    state = transition(account.state, Event.PAY_OFF) if balance == 0 else account.state

    logger.debug(
        "Payment applied",
        extra={
            "account_number": account.account_number,
            "paid_on": (paid_on or date.today()).isoformat(),
            "balance_cents": balance,
        },
    )

    return PaymentApplication(
        interest_portion_cents=interest,
        principal_portion_cents=principal,
        excess_cents=excess,
        new_balance_cents=balance,
        next_payment_date=add_months(account.next_payment_date, 1),
        state=state,
    )


def days_overdue(next_payment_date: date, as_of: date | None = None) -> int:
    """Days elapsed since the next payment fell due (0 when not yet due)"""
    return max(0, days_between(next_payment_date, as_of or date.today()))


def is_past_grace(next_payment_date: date, grace_days: int, as_of: date | None = None) -> bool:
    return days_overdue(next_payment_date, as_of) > grace_days


def default_account(state: LoanLifecycleState) -> LoanLifecycleState:
    """Apply an externally decided default; the engine never defaults a loan on its own"""
    return transition(state, Event.DEFAULT)


def build_audit_record(
    action: str,
    entity_type: str,
    entity_id: str,
    old_values: Dict[str, Any] | None = None,
    new_values: Dict[str, Any] | None = None,
) -> AuditRecord:
    return AuditRecord(
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id),
        old_values=dict(old_values or {}),
        new_values=dict(new_values or {}),
    )
