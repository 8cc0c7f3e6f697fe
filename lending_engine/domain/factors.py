"""Factor evaluators - each maps one slice of the profile to a 0-100 desirability score

Every evaluator is a bucketed ladder; boundaries are inclusive exactly as
written below.
"""

import math

from lending_engine.domain.models import DesirabilityScore, FactorScore, LoanType
from lending_engine.domain.policy import (
    EMPLOYMENT_SCORES,
    FACTOR_WEIGHTS,
    HIGH_AMOUNT_THRESHOLD_CENTS,
    LOAN_TYPE_RISK,
    MEDIUM_AMOUNT_THRESHOLD_CENTS,
    UNKNOWN_EMPLOYMENT,
)


def _factor(name: str, score: int, description: str) -> FactorScore:
    clamped = min(100, max(0, score))
    return FactorScore(score=DesirabilityScore(clamped), weight=FACTOR_WEIGHTS[name], description=description)


def savings_ratio(savings_balance_cents: int, requested_amount_cents: int) -> float:
    """Savings balance as a percentage of the requested amount"""
    return savings_balance_cents / requested_amount_cents * 100


def debt_to_income_ratio(
    total_active_debt_cents: int,
    estimated_payment_cents: int,
    monthly_income_cents: int,
) -> float:
    """(existing monthly debt + new payment) / monthly income, as a percentage"""
    return (total_active_debt_cents + estimated_payment_cents) / monthly_income_cents * 100


def payment_to_income_ratio(monthly_payment_cents: int, monthly_income_cents: int) -> float:
    if monthly_income_cents <= 0:
        return 0.0
    return monthly_payment_cents / monthly_income_cents * 100


def evaluate_income(monthly_income_cents: int, estimated_payment_cents: int) -> FactorScore:
    ratio = monthly_income_cents / estimated_payment_cents if estimated_payment_cents > 0 else math.inf

    if ratio >= 5:
        return _factor("income", 90, "Excellent income relative to payment")
    if ratio >= 4:
        return _factor("income", 80, "Very good income relative to payment")
    if ratio >= 3:
        return _factor("income", 70, "Good income relative to payment")
    if ratio >= 2.5:
        return _factor("income", 60, "Adequate income relative to payment")
    return _factor("income", 30, "Low income relative to payment requirement")


def evaluate_credit_score(credit_score: int) -> FactorScore:
    if credit_score >= 800:
        return _factor("credit_score", 95, "Excellent credit history")
    if credit_score >= 750:
        return _factor("credit_score", 85, "Very good credit history")
    if credit_score >= 700:
        return _factor("credit_score", 75, "Good credit history")
    if credit_score >= 650:
        return _factor("credit_score", 60, "Fair credit history")
    if credit_score >= 600:
        return _factor("credit_score", 40, "Poor credit history")
    return _factor("credit_score", 20, "Very poor credit history")


def evaluate_savings(
    savings_balance_cents: int,
    requested_amount_cents: int,
    total_interest_earned_cents: int,
    account_age_months: int,
) -> FactorScore:
    """
    Savings coverage, growth and account age.

    Base 50, then:
    - coverage (savings / requested): +40, +30, +20, +10, +5 or -10
    - growth (interest earned / balance): +10 at 2%, +5 at 1%
    - account age: +10 at 24 months, +5 at 12 months
    """
    ratio = savings_ratio(savings_balance_cents, requested_amount_cents)
    score = 50

    if ratio >= 50:
        score += 40
        description = "Excellent savings coverage"
    elif ratio >= 30:
        score += 30
        description = "Very good savings coverage"
    elif ratio >= 20:
        score += 20
        description = "Good savings coverage"
    elif ratio >= 10:
        score += 10
        description = "Adequate savings coverage"
    elif ratio >= 5:
        score += 5
        description = "Minimal savings coverage"
    else:
        score -= 10
        description = "Insufficient savings coverage"

    if total_interest_earned_cents > 0 and savings_balance_cents > 0:
        interest_ratio = total_interest_earned_cents / savings_balance_cents * 100
        if interest_ratio >= 2:
            score += 10
            description += " with excellent savings growth"
        elif interest_ratio >= 1:
            score += 5
            description += " with good savings growth"

    if account_age_months >= 24:
        score += 10
        description += " and long-term financial commitment"
    elif account_age_months >= 12:
        score += 5
        description += " and established savings habit"

    return _factor("savings", score, description)


def evaluate_employment(employment_status: str | None) -> FactorScore:
    key = (employment_status or "").strip().upper()
    score, description = EMPLOYMENT_SCORES.get(key, UNKNOWN_EMPLOYMENT)
    return _factor("employment", score, description)


def evaluate_debt_ratio(dti_ratio: float) -> FactorScore:
    if dti_ratio <= 20:
        return _factor("debt_ratio", 90, "Excellent debt-to-income ratio")
    if dti_ratio <= 30:
        return _factor("debt_ratio", 75, "Good debt-to-income ratio")
    if dti_ratio <= 40:
        return _factor("debt_ratio", 60, "Acceptable debt-to-income ratio")
    if dti_ratio <= 50:
        return _factor("debt_ratio", 40, "High debt-to-income ratio")
    return _factor("debt_ratio", 20, "Very high debt-to-income ratio")


def evaluate_loan_type(loan_type: LoanType, requested_amount_cents: int) -> FactorScore:
    score, description = LOAN_TYPE_RISK[loan_type]

    if requested_amount_cents > HIGH_AMOUNT_THRESHOLD_CENTS:
        score -= 10
        description += " (large amount)"
    elif requested_amount_cents > MEDIUM_AMOUNT_THRESHOLD_CENTS:
        score -= 5
        description += " (substantial amount)"

    return _factor("loan_type", score, description)
