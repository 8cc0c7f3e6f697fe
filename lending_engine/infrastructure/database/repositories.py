"""Data access layer for loan applications, accounts, payments and audit"""

import uuid
from datetime import date
from typing import Any, Dict, List, Optional, Protocol
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from lending_engine.infrastructure.database.models import (
    AuditLogRecord,
    LoanAccountRecord,
    LoanApplicationRecord,
    PaymentRecord,
    ScheduleEntryRecord,
)
from lending_engine.domain.exceptions import AlreadyDisbursedError, ConcurrentModificationError
from lending_engine.domain.models import (
    AuditRecord,
    Disbursement,
    LoanAccount,
    LoanApplication,
    LoanLifecycleState,
    LoanType,
    PaymentApplication,
)


class AuditSink(Protocol):
    def record(self, entry: AuditRecord, request_id: str | None = None) -> None: ...


def application_to_domain(record: LoanApplicationRecord) -> LoanApplication:
    """Snapshot a stored application for the lifecycle guards"""
    return LoanApplication(
        application_id=str(record.id),
        borrower_id=record.borrower_id,
        state=LoanLifecycleState(record.status),
        loan_type=LoanType(record.loan_type) if record.loan_type else None,
        requested_amount_cents=record.requested_cents,
        term_months=record.term_months,
        purpose=record.purpose,
        approved_amount_cents=record.approved_cents,
        interest_rate=record.interest_rate,
        monthly_payment_cents=record.monthly_payment_cents,
    )


def account_to_domain(record: LoanAccountRecord) -> LoanAccount:
    return LoanAccount(
        account_number=record.account_number,
        state=LoanLifecycleState(record.application.status),
        current_balance_cents=record.current_balance_cents,
        interest_rate=record.interest_rate,
        next_payment_date=record.next_payment_date,
    )


class ApplicationRepository:
    """Repository for loan applications"""

    def __init__(self, db: Session):
        self.db = db

    def create_application(
        self,
        application_number: str,
        borrower_id: str,
        loan_type: LoanType | None,
        requested_cents: int | None,
        term_months: int | None,
        purpose: str | None,
    ) -> LoanApplicationRecord:
        """Persist a new DRAFT application"""
        record = LoanApplicationRecord(
            application_number=application_number,
            borrower_id=borrower_id,
            status=LoanLifecycleState.DRAFT.value,
            loan_type=loan_type.value if loan_type else None,
            requested_cents=requested_cents,
            term_months=term_months,
            purpose=purpose,
        )
        self.db.add(record)
        self.db.flush()  # Get ID without committing
        return record

    def get_application(self, application_id: uuid.UUID) -> Optional[LoanApplicationRecord]:
        return (
            self.db.query(LoanApplicationRecord)
            .filter(LoanApplicationRecord.id == application_id)
            .first()
        )

    def transition_status(
        self,
        record: LoanApplicationRecord,
        expected: LoanLifecycleState,
        new: LoanLifecycleState,
        **fields: Any,
    ) -> LoanApplicationRecord:
        """
        Compare-and-swap the application status.

        The UPDATE only matches while the row still holds the expected status,
        so two concurrent transitions from the same state cannot both win.

        Raises:
            ConcurrentModificationError: the stored status no longer matches
        """
        values: Dict[str, Any] = {"status": new.value, **fields}
        updated = (
            self.db.query(LoanApplicationRecord)
            .filter(
                LoanApplicationRecord.id == record.id,
                LoanApplicationRecord.status == expected.value,
            )
            .update(values, synchronize_session="fetch")
        )
        if updated != 1:
            raise ConcurrentModificationError(
                f"Application {record.id} is no longer {expected.value}"
            )
        return record


class AccountRepository:
    """Repository for loan accounts and their schedules"""

    def __init__(self, db: Session):
        self.db = db

    def exists_for_application(self, application_id: uuid.UUID) -> bool:
        return (
            self.db.query(LoanAccountRecord.id)
            .filter(LoanAccountRecord.application_id == application_id)
            .first()
            is not None
        )

    def create_account(self, application_id: uuid.UUID, disbursement: Disbursement) -> LoanAccountRecord:
        """
        Create the loan account with its full schedule.

        Raises:
            AlreadyDisbursedError: another account already holds this application
        """
        schedule = disbursement.schedule
        record = LoanAccountRecord(
            account_number=disbursement.account_number,
            application_id=application_id,
            principal_cents=disbursement.principal_cents,
            current_balance_cents=disbursement.principal_cents,
            interest_rate=disbursement.interest_rate,
            term_months=len(schedule.entries),
            monthly_payment_cents=disbursement.monthly_payment_cents,
            start_date=disbursement.start_date,
            maturity_date=disbursement.maturity_date,
            next_payment_date=disbursement.next_payment_date,
            total_paid_cents=0,
            principal_paid_cents=0,
            interest_paid_cents=0,
        )
        record.schedule = [
            ScheduleEntryRecord(
                installment_number=entry.installment_number,
                due_date=entry.due_date,
                principal_cents=entry.principal_portion_cents,
                interest_cents=entry.interest_portion_cents,
                total_cents=entry.total_amount_cents,
                balance_cents=entry.running_balance_cents,
            )
            for entry in schedule.entries
        ]
        self.db.add(record)
        try:
            self.db.flush()
        except IntegrityError as e:
            raise AlreadyDisbursedError(f"Application {application_id} already has a loan account") from e
        return record

    def get_by_number(self, account_number: str) -> Optional[LoanAccountRecord]:
        return (
            self.db.query(LoanAccountRecord)
            .filter(LoanAccountRecord.account_number == account_number)
            .first()
        )


class PaymentRepository:
    """Repository for repayments"""

    def __init__(self, db: Session):
        self.db = db

    def record_payment(
        self,
        account: LoanAccountRecord,
        amount_cents: int,
        applied: PaymentApplication,
        paid_on: date,
    ) -> PaymentRecord:
        """
        Store the payment and roll its portions into the account totals.

        The balance is compare-and-swapped against the value the payment was
        computed from, so two concurrent payments cannot both apply to the
        same starting balance.

        Raises:
            ConcurrentModificationError: the stored balance changed since it was read
        """
        paid_cents = applied.principal_portion_cents + applied.interest_portion_cents
        updated = (
            self.db.query(LoanAccountRecord)
            .filter(
                LoanAccountRecord.id == account.id,
                LoanAccountRecord.current_balance_cents == account.current_balance_cents,
            )
            .update(
                {
                    "current_balance_cents": applied.new_balance_cents,
                    "next_payment_date": applied.next_payment_date,
                    "total_paid_cents": LoanAccountRecord.total_paid_cents + paid_cents,
                    "principal_paid_cents": LoanAccountRecord.principal_paid_cents + applied.principal_portion_cents,
                    "interest_paid_cents": LoanAccountRecord.interest_paid_cents + applied.interest_portion_cents,
                },
                synchronize_session=False,
            )
        )
        if updated != 1:
            raise ConcurrentModificationError(
                f"Loan account {account.account_number} balance changed during payment"
            )

        payment = PaymentRecord(
            account_id=account.id,
            amount_cents=amount_cents,
            principal_cents=applied.principal_portion_cents,
            interest_cents=applied.interest_portion_cents,
            excess_cents=applied.excess_cents,
            paid_on=paid_on,
        )
        self.db.add(payment)
        self.db.flush()
        self.db.refresh(account)
        return payment


class AuditRepository:
    """SQL-backed audit sink"""

    def __init__(self, db: Session):
        self.db = db

    def record(self, entry: AuditRecord, request_id: str | None = None) -> None:
        self.db.add(
            AuditLogRecord(
                action=entry.action,
                entity_type=entry.entity_type,
                entity_id=entry.entity_id,
                old_values=entry.old_values or None,
                new_values=entry.new_values or None,
                request_id=request_id,
            )
        )

    def get_entries_for_entity(self, entity_id: str, limit: int = 50) -> List[AuditLogRecord]:
        return (
            self.db.query(AuditLogRecord)
            .filter(AuditLogRecord.entity_id == entity_id)
            .order_by(AuditLogRecord.created_at.asc())
            .limit(limit)
            .all()
        )
