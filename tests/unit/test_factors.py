"""Unit tests for the factor evaluators"""

import pytest
from lending_engine.domain.models import LoanType
from lending_engine.domain.factors import (
    debt_to_income_ratio,
    evaluate_credit_score,
    evaluate_debt_ratio,
    evaluate_employment,
    evaluate_income,
    evaluate_loan_type,
    evaluate_savings,
    payment_to_income_ratio,
    savings_ratio,
)


@pytest.mark.parametrize(
    "income, payment, expected",
    [
        (500_000, 100_000, 90),  # exactly 5x
        (499_999, 100_000, 80),
        (400_000, 100_000, 80),
        (300_000, 100_000, 70),
        (250_000, 100_000, 60),
        (249_999, 100_000, 30),
    ],
)
def test_evaluate_income_ladder(income, payment, expected):
    """Income-to-payment ratio boundaries are inclusive on the lower edge"""
    assert evaluate_income(income, payment).score == expected


def test_evaluate_income_zero_payment_is_top_bucket():
    factor = evaluate_income(100_000, 0)
    assert factor.score == 90
    assert factor.weight == 25


@pytest.mark.parametrize(
    "credit_score, expected",
    [(850, 95), (800, 95), (799, 85), (750, 85), (700, 75), (650, 60), (600, 40), (599, 20), (0, 20)],
)
def test_evaluate_credit_score_ladder(credit_score, expected):
    assert evaluate_credit_score(credit_score).score == expected


def test_evaluate_credit_score_description():
    assert evaluate_credit_score(720).description == "Good credit history"


def test_evaluate_savings_coverage_only():
    """20% coverage, no interest, new account: 50 + 20"""
    factor = evaluate_savings(2_000_000, 10_000_000, 0, 0)

    assert factor.score == 70
    assert factor.weight == 25
    assert factor.description == "Good savings coverage"


def test_evaluate_savings_insufficient_coverage_penalty():
    factor = evaluate_savings(0, 10_000_000, 0, 0)
    assert factor.score == 40
    assert factor.description == "Insufficient savings coverage"


def test_evaluate_savings_growth_and_age_bonuses():
    """60% coverage (+40), 2.5% interest growth (+10), 30 months (+10) clamps to 100"""
    factor = evaluate_savings(6_000_000, 10_000_000, 150_000, 30)

    assert factor.score == 100
    assert "excellent savings growth" in factor.description
    assert "long-term financial commitment" in factor.description


def test_evaluate_savings_good_growth_and_established_habit():
    """10% coverage (+10), 1.5% growth (+5), 12 months (+5)"""
    factor = evaluate_savings(1_000_000, 10_000_000, 15_000, 12)

    assert factor.score == 70
    assert factor.description == (
        "Adequate savings coverage with good savings growth and established savings habit"
    )


def test_evaluate_savings_interest_ignored_without_balance():
    factor = evaluate_savings(0, 10_000_000, 50_000, 0)
    assert factor.score == 40


@pytest.mark.parametrize(
    "status, expected",
    [
        ("EMPLOYED", 85),
        ("full_time", 85),
        ("  Self_Employed ", 70),
        ("FREELANCER", 70),
        ("PART_TIME", 60),
        ("CONTRACT", 65),
        ("RETIRED", 75),
        ("UNEMPLOYED", 30),
        ("", 30),
        (None, 30),
    ],
)
def test_evaluate_employment(status, expected):
    """Lookup is case-insensitive; anything unrecognised scores 30"""
    assert evaluate_employment(status).score == expected


@pytest.mark.parametrize(
    "dti, expected",
    [(0.0, 90), (20.0, 90), (20.01, 75), (30.0, 75), (40.0, 60), (50.0, 40), (50.01, 20)],
)
def test_evaluate_debt_ratio_ladder(dti, expected):
    """Debt ratio boundaries are inclusive on the upper edge"""
    assert evaluate_debt_ratio(dti).score == expected


def test_evaluate_loan_type_base_scores():
    assert evaluate_loan_type(LoanType.MORTGAGE, 100_000).score == 85
    assert evaluate_loan_type(LoanType.PAYDAY, 100_000).score == 30


def test_evaluate_loan_type_amount_adjustments():
    """UGX 20M / 50M thresholds are exclusive"""
    medium = 20_000_000 * 100
    high = 50_000_000 * 100

    assert evaluate_loan_type(LoanType.PERSONAL, medium).score == 65
    assert evaluate_loan_type(LoanType.PERSONAL, medium + 1).score == 60
    assert evaluate_loan_type(LoanType.PERSONAL, high).score == 60
    large = evaluate_loan_type(LoanType.PERSONAL, high + 1)
    assert large.score == 55
    assert large.description.endswith("(large amount)")


def test_ratio_helpers():
    assert savings_ratio(2_000_000, 10_000_000) == pytest.approx(20.0)
    assert debt_to_income_ratio(100_000, 400_000, 2_000_000) == pytest.approx(25.0)
    assert payment_to_income_ratio(500_000, 2_000_000) == pytest.approx(25.0)


def test_ratio_helpers_zero_denominator():
    assert payment_to_income_ratio(500_000, 0) == 0.0
