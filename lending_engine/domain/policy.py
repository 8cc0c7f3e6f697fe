"""Per-loan-type underwriting tables and fixed policy constants"""

from types import MappingProxyType
from typing import Mapping

from lending_engine.domain.models import LoanType

# Annual base rate (%) before risk adjustment and savings discount
BASE_RATES: Mapping[LoanType, float] = MappingProxyType({
    LoanType.MORTGAGE: 12.0,
    LoanType.AUTO: 15.0,
    LoanType.BUSINESS: 18.0,
    LoanType.PERSONAL: 20.0,
    LoanType.STUDENT: 10.0,
    LoanType.PAYDAY: 30.0,
})

MINIMUM_CREDIT_SCORES: Mapping[LoanType, int] = MappingProxyType({
    LoanType.MORTGAGE: 650,
    LoanType.BUSINESS: 650,
    LoanType.AUTO: 600,
    LoanType.PERSONAL: 580,
    LoanType.STUDENT: 550,
    LoanType.PAYDAY: 500,
})

# Share of the requested amount the borrower must hold in savings (%)
MINIMUM_SAVINGS_PERCENT: Mapping[LoanType, int] = MappingProxyType({
    LoanType.MORTGAGE: 20,
    LoanType.BUSINESS: 15,
    LoanType.AUTO: 10,
    LoanType.PERSONAL: 5,
    LoanType.STUDENT: 3,
    LoanType.PAYDAY: 2,
})

LOAN_TYPE_RISK: Mapping[LoanType, tuple[int, str]] = MappingProxyType({
    LoanType.MORTGAGE: (85, "Low-risk secured loan type"),
    LoanType.AUTO: (80, "Low-risk asset-backed loan"),
    LoanType.STUDENT: (75, "Education investment loan"),
    LoanType.BUSINESS: (60, "Medium-risk business loan"),
    LoanType.PERSONAL: (65, "Medium-risk personal loan"),
    LoanType.PAYDAY: (30, "High-risk short-term loan"),
})

EMPLOYMENT_SCORES: Mapping[str, tuple[int, str]] = MappingProxyType({
    "EMPLOYED": (85, "Stable employment status"),
    "FULL_TIME": (85, "Stable employment status"),
    "SELF_EMPLOYED": (70, "Self-employed with variable income"),
    "FREELANCER": (70, "Self-employed with variable income"),
    "PART_TIME": (60, "Part-time employment"),
    "CONTRACT": (65, "Contract-based employment"),
    "RETIRED": (75, "Retired with pension income"),
})
UNKNOWN_EMPLOYMENT = (30, "Unclear or unstable employment")

# Factor weights, must sum to 100
FACTOR_WEIGHTS: Mapping[str, int] = MappingProxyType({
    "income": 25,
    "credit_score": 20,
    "savings": 25,
    "employment": 15,
    "debt_ratio": 10,
    "loan_type": 5,
})

HIGH_AMOUNT_THRESHOLD_CENTS = 50_000_000 * 100
MEDIUM_AMOUNT_THRESHOLD_CENTS = 20_000_000 * 100

MAX_ELIGIBLE_RISK_SCORE = 70
MAX_DEBT_TO_INCOME_RATIO = 40.0
RATE_FLOOR_FRACTION = 0.7  # final rate never drops below 70% of the base rate
MANY_EXISTING_LOANS = 3
MAX_TERM_MONTHS = 600


def minimum_savings_required(loan_type: LoanType, requested_amount_cents: int) -> int:
    """Savings balance (cents) required before a loan of this size is eligible"""
    # Rounded up so an integer balance meets it exactly when it meets the fractional amount
    return -(-requested_amount_cents * MINIMUM_SAVINGS_PERCENT[loan_type] // 100)


def minimum_credit_score(loan_type: LoanType) -> int:
    return MINIMUM_CREDIT_SCORES[loan_type]


def base_rate(loan_type: LoanType) -> float:
    return BASE_RATES[loan_type]
