"""SQLAlchemy ORM models for applications, accounts, schedules, payments and audit"""

import uuid
from sqlalchemy import (
    Column,
    String,
    BigInteger,
    Float,
    DateTime,
    Date,
    Integer,
    ForeignKey,
    Text,
    JSON,
    Uuid,
    UniqueConstraint,
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.sql import func

Base = declarative_base()


class LoanApplicationRecord(Base):
    """Loan application and its lifecycle state"""

    __tablename__ = "loan_application"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    application_number = Column(Text, nullable=False, unique=True)
    borrower_id = Column(Text, nullable=False, index=True)
    status = Column(String(32), nullable=False, default="DRAFT", index=True)
    loan_type = Column(String(16), nullable=True)
    requested_cents = Column(BigInteger, nullable=True)
    term_months = Column(Integer, nullable=True)
    purpose = Column(Text, nullable=True)
    approved_cents = Column(BigInteger, nullable=True)
    interest_rate = Column(Float, nullable=True)
    monthly_payment_cents = Column(BigInteger, nullable=True)
    rejection_reason = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
    submitted_at = Column(DateTime(timezone=True), nullable=True)
    decided_at = Column(DateTime(timezone=True), nullable=True)
    disbursed_at = Column(DateTime(timezone=True), nullable=True)

    account = relationship("LoanAccountRecord", back_populates="application", uselist=False)


class LoanAccountRecord(Base):
    """Active loan account created on disbursement"""

    __tablename__ = "loan_account"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    account_number = Column(Text, nullable=False, unique=True)
    # One account per application: the database enforces the disbursed-once rule
    application_id = Column(Uuid, ForeignKey("loan_application.id"), nullable=False, unique=True)
    principal_cents = Column(BigInteger, nullable=False)
    current_balance_cents = Column(BigInteger, nullable=False)
    interest_rate = Column(Float, nullable=False)
    term_months = Column(Integer, nullable=False)
    monthly_payment_cents = Column(BigInteger, nullable=False)
    start_date = Column(Date, nullable=False)
    maturity_date = Column(Date, nullable=False)
    next_payment_date = Column(Date, nullable=False)
    total_paid_cents = Column(BigInteger, nullable=False, default=0)
    principal_paid_cents = Column(BigInteger, nullable=False, default=0)
    interest_paid_cents = Column(BigInteger, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    application = relationship("LoanApplicationRecord", back_populates="account")
    schedule = relationship(
        "ScheduleEntryRecord",
        back_populates="account",
        cascade="all, delete-orphan",
        order_by="ScheduleEntryRecord.installment_number",
    )
    payments = relationship("PaymentRecord", back_populates="account", cascade="all, delete-orphan")


class ScheduleEntryRecord(Base):
    """Individual installment within an amortization schedule"""

    __tablename__ = "loan_schedule_entry"
    __table_args__ = (UniqueConstraint("account_id", "installment_number"),)

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id = Column(Uuid, ForeignKey("loan_account.id", ondelete="CASCADE"), nullable=False)
    installment_number = Column(Integer, nullable=False)
    due_date = Column(Date, nullable=False)
    principal_cents = Column(BigInteger, nullable=False)
    interest_cents = Column(BigInteger, nullable=False)
    total_cents = Column(BigInteger, nullable=False)
    balance_cents = Column(BigInteger, nullable=False)
    status = Column(Text, nullable=False, default="scheduled")

    account = relationship("LoanAccountRecord", back_populates="schedule")


class PaymentRecord(Base):
    """Repayment applied to a loan account"""

    __tablename__ = "loan_payment"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id = Column(Uuid, ForeignKey("loan_account.id", ondelete="CASCADE"), nullable=False)
    amount_cents = Column(BigInteger, nullable=False)
    principal_cents = Column(BigInteger, nullable=False)
    interest_cents = Column(BigInteger, nullable=False)
    excess_cents = Column(BigInteger, nullable=False, default=0)
    paid_on = Column(Date, nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    account = relationship("LoanAccountRecord", back_populates="payments")


class AuditLogRecord(Base):
    """Audit trail entry with before/after values"""

    __tablename__ = "audit_log"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    action = Column(Text, nullable=False)
    entity_type = Column(Text, nullable=False)
    entity_id = Column(Text, nullable=False, index=True)
    old_values = Column(JSON, nullable=True)
    new_values = Column(JSON, nullable=True)
    request_id = Column(Text, nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())
