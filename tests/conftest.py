"""Pytest fixtures for testing"""

import os

# Point the module-level engine at SQLite before the app is imported
os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")

import pytest
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from lending_engine.api.main import create_app
from lending_engine.infrastructure.database.models import Base
from lending_engine.infrastructure.database.session import get_db
from lending_engine.domain.models import BorrowerProfile, LoanRequest, LoanType, SavingsProfile


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def personal_loan() -> LoanRequest:
    """UGX 10,000,000 personal loan over 24 months"""
    return LoanRequest(requested_amount_cents=10_000_000 * 100, loan_type=LoanType.PERSONAL, term_months=24)


@pytest.fixture
def good_borrower() -> BorrowerProfile:
    """Salaried borrower earning UGX 2,000,000 a month with good credit"""
    return BorrowerProfile(
        monthly_income_cents=2_000_000 * 100,
        credit_score=720,
        employment_status="EMPLOYED",
        existing_loan_count=1,
        total_active_debt_cents=0,
    )


@pytest.fixture
def good_savings() -> SavingsProfile:
    """UGX 3,000,000 saved (30% of the personal loan), no interest earned yet"""
    return SavingsProfile(balance_cents=3_000_000 * 100, total_interest_earned_cents=0, account_age_months=12)


@pytest.fixture
def evaluation_payload() -> dict:
    """Inline evaluation request matching the good borrower fixtures"""
    return {
        "borrower_id": "member_good",
        "requested_amount_cents": 10_000_000 * 100,
        "loan_type": "PERSONAL",
        "term_months": 24,
        "monthly_income_cents": 2_000_000 * 100,
        "credit_score": 720,
        "employment_status": "EMPLOYED",
        "savings_balance_cents": 3_000_000 * 100,
        "total_interest_earned_cents": 0,
        "savings_account_age_months": 12,
        "existing_loan_count": 1,
        "total_active_debt_cents": 0,
    }
