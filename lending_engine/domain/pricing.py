"""Risk-adjusted, savings-aware pricing and amount recommendation"""

from lending_engine.domain.models import LoanType, RiskScore
from lending_engine.domain.policy import RATE_FLOOR_FRACTION, base_rate
from lending_engine.utils.money import round_half_up


def calculate_risk_adjustment(risk_score: RiskScore) -> float:
    """
    Rate adjustment (percentage points) by risk band.

    - 0-20:   -1.0 (excellent risk, discount)
    - 21-40:   0.0
    - 41-60:  +1.0
    - 61-80:  +2.5
    - 81+:    +5.0
    """
    if risk_score <= 20:
        return -1.0
    if risk_score <= 40:
        return 0.0
    if risk_score <= 60:
        return 1.0
    if risk_score <= 80:
        return 2.5
    return 5.0


def calculate_savings_discount(
    savings_ratio: float,
    total_interest_earned_cents: int,
    account_age_months: int,
) -> float:
    """Rate discount (percentage points) earned through savings, at most 4.0"""
    discount = 0.0

    # Coverage discount, capped at 3.0
    if savings_ratio >= 50:
        discount += 3.0
    elif savings_ratio >= 30:
        discount += 2.0
    elif savings_ratio >= 20:
        discount += 1.5
    elif savings_ratio >= 10:
        discount += 1.0
    elif savings_ratio >= 5:
        discount += 0.5

    if total_interest_earned_cents > 0:
        discount += 0.5

    if account_age_months >= 24:
        discount += 0.5
    elif account_age_months >= 12:
        discount += 0.25

    return discount


def calculate_interest_rate(
    loan_type: LoanType,
    risk_score: RiskScore,
    savings_ratio: float,
    total_interest_earned_cents: int,
    account_age_months: int,
) -> float:
    """
    Final annual rate: base + risk adjustment - savings discount, floored at
    70% of the base rate and rounded to two decimals.
    """
    base = base_rate(loan_type)
    adjusted = (
        base
        + calculate_risk_adjustment(risk_score)
        - calculate_savings_discount(savings_ratio, total_interest_earned_cents, account_age_months)
    )
    return round(max(adjusted, base * RATE_FLOOR_FRACTION), 2)


def amount_multiplier(risk_score: RiskScore, savings_ratio: float) -> float:
    if risk_score > 70:
        return 0.7
    if risk_score > 50:
        return 0.85
    if savings_ratio >= 30:
        return 1.1
    return 1.0


def calculate_recommended_amount(requested_amount_cents: int, risk_score: RiskScore, savings_ratio: float) -> int:
    return round_half_up(requested_amount_cents * amount_multiplier(risk_score, savings_ratio))
