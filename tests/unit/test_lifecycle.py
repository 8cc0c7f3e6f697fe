"""Unit tests for the loan lifecycle state machine and its guards"""

import re
import pytest
from dataclasses import replace
from datetime import date, datetime
from lending_engine.domain import lifecycle
from lending_engine.domain.lifecycle import TERMINAL_STATES, TRANSITIONS, allowed_events, transition
from lending_engine.domain.models import (
    LifecycleEvent,
    LoanAccount,
    LoanApplication,
    LoanLifecycleState,
    LoanType,
)
from lending_engine.domain.exceptions import (
    AlreadyDisbursedError,
    AmountExceedsApprovedError,
    ApprovalCeilingExceededError,
    IncompleteApplicationError,
    InvalidInputError,
    InvalidTransitionError,
    NotApprovedError,
)

State = LoanLifecycleState
Event = LifecycleEvent


@pytest.fixture
def draft() -> LoanApplication:
    return LoanApplication(
        application_id="app-1",
        borrower_id="member_good",
        state=State.DRAFT,
        loan_type=LoanType.PERSONAL,
        requested_amount_cents=1_000_000,
        term_months=12,
        purpose="School fees",
    )


@pytest.fixture
def approved(draft: LoanApplication) -> LoanApplication:
    return replace(
        draft,
        state=State.APPROVED,
        approved_amount_cents=1_000_000,
        interest_rate=12.0,
        monthly_payment_cents=88_849,
    )


@pytest.fixture
def active_account() -> LoanAccount:
    return LoanAccount(
        account_number="ACC-2024-0000ABCD",
        state=State.ACTIVE,
        current_balance_cents=1_000_000,
        interest_rate=12.0,
        next_payment_date=date(2024, 2, 15),
    )


def test_happy_path_transitions():
    state = State.DRAFT
    for event in (Event.SUBMIT, Event.START_REVIEW, Event.APPROVE, Event.DISBURSE, Event.ACTIVATE, Event.PAY_OFF):
        state = transition(state, event)
    assert state == State.PAID_OFF


@pytest.mark.parametrize("state", list(State))
@pytest.mark.parametrize("event", list(Event))
def test_transition_table_is_exhaustive(state, event):
    """Every (state, event) pair either follows the table or raises"""
    if (state, event) in TRANSITIONS:
        assert transition(state, event) == TRANSITIONS[(state, event)]
    else:
        with pytest.raises(InvalidTransitionError) as exc_info:
            transition(state, event)
        assert exc_info.value.state == state
        assert exc_info.value.event == event


@pytest.mark.parametrize("state", [State.REJECTED, State.PAID_OFF, State.DEFAULTED])
def test_terminal_states_allow_nothing(state):
    assert state in TERMINAL_STATES
    assert allowed_events(state) == []


@pytest.mark.parametrize("event", list(Event))
def test_closed_loan_rejects_every_event(event):
    with pytest.raises(InvalidTransitionError, match=r"Loan is closed \(PAID_OFF\)"):
        transition(State.PAID_OFF, event)


def test_allowed_events_from_review():
    assert set(allowed_events(State.UNDER_REVIEW)) == {Event.APPROVE, Event.REJECT}


def test_generated_numbers_format():
    assert re.fullmatch(r"LN20240315093000\d{3}", lifecycle.generate_application_number(datetime(2024, 3, 15, 9, 30)))
    assert re.fullmatch(r"ACC-2024-[0-9A-F]{8}", lifecycle.generate_account_number(date(2024, 3, 15)))


def test_submit_complete_application(draft):
    assert lifecycle.submit_application(draft) == State.SUBMITTED


def test_submit_incomplete_application_lists_missing_fields(draft):
    incomplete = replace(draft, loan_type=None, purpose="  ", term_months=None)

    with pytest.raises(IncompleteApplicationError) as exc_info:
        lifecycle.submit_application(incomplete)

    assert exc_info.value.missing_fields == ["loan_type", "term_months", "purpose"]


def test_submit_twice_is_invalid_transition(draft):
    with pytest.raises(InvalidTransitionError):
        lifecycle.submit_application(replace(draft, state=State.SUBMITTED))


def test_start_review(draft):
    assert lifecycle.start_review(replace(draft, state=State.SUBMITTED)) == State.UNDER_REVIEW
    with pytest.raises(InvalidTransitionError):
        lifecycle.start_review(draft)


def test_approve_within_ceiling(draft):
    under_review = replace(draft, state=State.UNDER_REVIEW)
    assert lifecycle.approve_application(under_review, 1_100_000, 12.0, 97_734, ceiling_ratio=1.1) == State.APPROVED


def test_approve_above_ceiling_rejected(draft):
    under_review = replace(draft, state=State.UNDER_REVIEW)
    with pytest.raises(ApprovalCeilingExceededError):
        lifecycle.approve_application(under_review, 1_100_001, 12.0, 97_734, ceiling_ratio=1.1)


def test_approve_requires_rate_and_payment(draft):
    under_review = replace(draft, state=State.UNDER_REVIEW)
    with pytest.raises(InvalidInputError) as exc_info:
        lifecycle.approve_application(under_review, 1_000_000, None, None, ceiling_ratio=1.1)

    assert exc_info.value.problems == [
        "interest_rate is required for approval",
        "monthly_payment is required for approval",
    ]


def test_approve_outside_review_is_invalid_transition(draft):
    with pytest.raises(InvalidTransitionError):
        lifecycle.approve_application(draft, 1_000_000, 12.0, 88_849, ceiling_ratio=1.1)


def test_reject_requires_reason(draft):
    under_review = replace(draft, state=State.UNDER_REVIEW)

    assert lifecycle.reject_application(under_review, "Insufficient income") == State.REJECTED
    with pytest.raises(InvalidInputError):
        lifecycle.reject_application(under_review, "   ")


def test_disburse_approved_application(approved):
    disbursement = lifecycle.disburse_application(
        approved,
        account_exists=False,
        account_number="ACC-2024-0000ABCD",
        disbursement_date=date(2024, 1, 15),
    )

    assert disbursement.state == State.ACTIVE
    assert disbursement.principal_cents == 1_000_000
    assert disbursement.monthly_payment_cents == 88_849
    assert disbursement.start_date == date(2024, 1, 15)
    assert disbursement.next_payment_date == date(2024, 2, 15)
    assert disbursement.maturity_date == date(2025, 1, 15)
    assert len(disbursement.schedule.entries) == 12


def test_disburse_partial_amount_recomputes_payment(approved):
    disbursement = lifecycle.disburse_application(
        approved,
        account_exists=False,
        account_number="ACC-2024-0000ABCD",
        disbursement_amount_cents=600_000,
        disbursement_date=date(2024, 1, 15),
    )

    assert disbursement.principal_cents == 600_000
    assert sum(e.principal_portion_cents for e in disbursement.schedule.entries) == 600_000
    assert disbursement.monthly_payment_cents < approved.monthly_payment_cents


def test_disburse_more_than_approved(approved):
    with pytest.raises(AmountExceedsApprovedError):
        lifecycle.disburse_application(
            approved, account_exists=False, account_number="ACC-X", disbursement_amount_cents=1_000_001
        )


def test_disburse_not_approved(draft):
    with pytest.raises(NotApprovedError) as exc_info:
        lifecycle.disburse_application(
            replace(draft, state=State.UNDER_REVIEW), account_exists=False, account_number="ACC-X"
        )
    assert isinstance(exc_info.value, InvalidTransitionError)


def test_disburse_when_account_exists(approved):
    with pytest.raises(AlreadyDisbursedError):
        lifecycle.disburse_application(approved, account_exists=True, account_number="ACC-X")


@pytest.mark.parametrize("state", [State.DISBURSED, State.ACTIVE, State.PAID_OFF, State.DEFAULTED])
def test_second_disbursement_is_already_disbursed(approved, state):
    """A disbursed loan reports AlreadyDisbursed, not NotApproved"""
    with pytest.raises(AlreadyDisbursedError):
        lifecycle.disburse_application(replace(approved, state=state), account_exists=False, account_number="ACC-X")


def test_payment_interest_first(active_account):
    applied = lifecycle.apply_payment(active_account, 88_849, paid_on=date(2024, 2, 15))

    assert applied.interest_portion_cents == 10_000
    assert applied.principal_portion_cents == 78_849
    assert applied.excess_cents == 0
    assert applied.new_balance_cents == 921_151
    assert applied.next_payment_date == date(2024, 3, 15)
    assert applied.state == State.ACTIVE


def test_payment_smaller_than_interest(active_account):
    applied = lifecycle.apply_payment(active_account, 4_000)

    assert applied.interest_portion_cents == 4_000
    assert applied.principal_portion_cents == 0
    assert applied.new_balance_cents == 1_000_000


def test_overpayment_pays_off_with_excess(active_account):
    applied = lifecycle.apply_payment(active_account, 1_050_000)

    assert applied.interest_portion_cents == 10_000
    assert applied.principal_portion_cents == 1_000_000
    assert applied.excess_cents == 40_000
    assert applied.new_balance_cents == 0
    assert applied.state == State.PAID_OFF


def test_payment_on_inactive_loan(active_account):
    with pytest.raises(InvalidTransitionError):
        lifecycle.apply_payment(replace(active_account, state=State.PAID_OFF), 10_000)


def test_payment_must_be_positive(active_account):
    with pytest.raises(InvalidInputError):
        lifecycle.apply_payment(active_account, 0)


def test_days_overdue():
    due = date(2024, 2, 15)

    assert lifecycle.days_overdue(due, as_of=date(2024, 2, 10)) == 0
    assert lifecycle.days_overdue(due, as_of=date(2024, 2, 15)) == 0
    assert lifecycle.days_overdue(due, as_of=date(2024, 3, 1)) == 15


def test_grace_period_boundary():
    due = date(2024, 2, 15)

    assert lifecycle.is_past_grace(due, 30, as_of=date(2024, 3, 16)) is False  # 30 days
    assert lifecycle.is_past_grace(due, 30, as_of=date(2024, 3, 17)) is True


def test_default_only_from_active():
    assert lifecycle.default_account(State.ACTIVE) == State.DEFAULTED
    with pytest.raises(InvalidTransitionError):
        lifecycle.default_account(State.PAID_OFF)


def test_build_audit_record():
    record = lifecycle.build_audit_record("APPROVE_LOAN_APPLICATION", "LOAN_APPLICATION", 42, new_values={"status": "APPROVED"})

    assert record.entity_id == "42"
    assert record.old_values == {}
    assert record.new_values == {"status": "APPROVED"}
