"""Unit tests for the underwriting engine"""

import pytest
from dataclasses import replace
from lending_engine.domain.models import BorrowerProfile, LoanRequest, LoanType, SavingsProfile
from lending_engine.domain.factors import evaluate_credit_score
from lending_engine.domain.scoring import (
    aggregate_risk_score,
    evaluate_criteria,
    evaluate_loan_application,
    parse_loan_type,
    validate_evaluation_input,
)
from lending_engine.domain.exceptions import InvalidInputError

UGX = 100  # minor units per shilling


def scenario_a():
    """UGX 10M personal loan, UGX 2M income, 750 credit, 20% savings"""
    request = LoanRequest(requested_amount_cents=10_000_000 * UGX, loan_type=LoanType.PERSONAL, term_months=24)
    borrower = BorrowerProfile(
        monthly_income_cents=2_000_000 * UGX,
        credit_score=750,
        employment_status="EMPLOYED",
        existing_loan_count=0,
        total_active_debt_cents=0,
    )
    savings = SavingsProfile(balance_cents=2_000_000 * UGX, total_interest_earned_cents=0, account_age_months=0)
    return request, borrower, savings


def test_scenario_a_eligible_personal_loan():
    """Good borrower with 20% savings is approved at the requested amount, below the base rate"""
    result = evaluate_loan_application(*scenario_a())

    assert result.is_eligible is True
    # Weighted factors: 70, 85, 70, 85, 75, 65 -> 75.5 -> risk 24.5, rounded half-up
    assert result.risk_score == 25
    assert result.recommended_amount_cents == 10_000_000 * UGX
    assert result.recommended_interest_rate == pytest.approx(18.5)
    assert result.recommended_interest_rate < 20.0
    assert result.warnings == ()


def test_scenario_a_factor_breakdown():
    result = evaluate_loan_application(*scenario_a())

    scores = {name: factor.score for name, factor in result.factors.items()}
    assert scores == {
        "income": 70,
        "credit_score": 85,
        "savings": 70,
        "employment": 85,
        "debt_ratio": 75,
        "loan_type": 65,
    }
    assert sum(factor.weight for factor in result.factors.values()) == 100
    assert 25.0 < result.debt_to_income_ratio < 26.0


def test_scenario_a_savings_impact():
    result = evaluate_loan_application(*scenario_a())

    assert result.savings_impact.savings_ratio == pytest.approx(20.0)
    assert result.savings_impact.savings_bonus == 20
    assert result.savings_impact.minimum_savings_required_cents == 500_000 * UGX
    assert result.savings_impact.meets_savings_requirement is True
    assert "Keep your savings active to earn interest and demonstrate financial discipline" in result.recommendations


def test_scenario_b_low_credit_score_ineligible():
    """Credit below the personal loan minimum of 580 is ineligible whatever else holds"""
    request, borrower, savings = scenario_a()
    result = evaluate_loan_application(request, replace(borrower, credit_score=400), savings)

    assert result.is_eligible is False
    assert result.risk_score == 38
    assert "Credit score below minimum requirement for this loan type" in result.warnings
    assert any("credit score" in r for r in result.recommendations)


def test_scenario_c_mortgage_without_savings_ineligible():
    """Mortgage requires 20% savings; a low risk score does not override it"""
    request, borrower, _ = scenario_a()
    request = replace(request, loan_type=LoanType.MORTGAGE)
    result = evaluate_loan_application(request, borrower, SavingsProfile())

    assert result.is_eligible is False
    assert result.risk_score <= 70
    assert result.savings_impact.meets_savings_requirement is False
    assert result.savings_impact.minimum_savings_required_cents == 2_000_000 * UGX
    assert (
        "Build your savings to at least UGX 2,000,000 before applying for this loan amount"
        in result.recommendations
    )


def test_high_debt_to_income_ineligible():
    request, borrower, savings = scenario_a()
    result = evaluate_loan_application(
        request, replace(borrower, total_active_debt_cents=1_000_000 * UGX), savings
    )

    assert result.is_eligible is False
    assert result.debt_to_income_ratio > 40
    assert result.factors["debt_ratio"].score == 20
    assert "Debt-to-income ratio exceeds recommended 40% threshold" in result.warnings


def test_multiple_existing_loans_warning():
    request, borrower, savings = scenario_a()
    result = evaluate_loan_application(request, replace(borrower, existing_loan_count=3), savings)

    assert "Multiple existing loans may affect approval" in result.warnings


def test_strong_savings_increase_recommended_amount(personal_loan, good_borrower, good_savings):
    """30% coverage at low risk lifts the recommendation by 10%"""
    result = evaluate_loan_application(personal_loan, good_borrower, good_savings)

    assert result.risk_score == 23
    assert result.recommended_amount_cents == 11_000_000 * UGX
    assert result.recommended_interest_rate == pytest.approx(17.75)


def test_high_risk_profile_warning_and_reduced_amount():
    request = LoanRequest(requested_amount_cents=10_000_000 * UGX, loan_type=LoanType.PAYDAY, term_months=6)
    borrower = BorrowerProfile(
        monthly_income_cents=500_000 * UGX,
        credit_score=300,
        employment_status="UNEMPLOYED",
        existing_loan_count=5,
        total_active_debt_cents=400_000 * UGX,
    )
    result = evaluate_loan_application(request, borrower, SavingsProfile())

    assert result.risk_score > 70
    assert result.is_eligible is False
    assert result.recommended_amount_cents == 7_000_000 * UGX
    assert "High risk profile - loan approval may be difficult" in result.warnings
    assert len(result.warnings) == 4


@pytest.mark.parametrize("loan_type", list(LoanType))
@pytest.mark.parametrize("credit_score", [0, 550, 700, 850])
def test_scores_stay_in_range(loan_type, credit_score):
    request, borrower, savings = scenario_a()
    result = evaluate_loan_application(
        replace(request, loan_type=loan_type), replace(borrower, credit_score=credit_score), savings
    )

    assert 0 <= result.risk_score <= 100
    assert all(0 <= factor.score <= 100 for factor in result.factors.values())
    assert result.recommended_interest_rate > 0


def test_risk_score_monotonic_in_credit_score():
    """Raising the credit score never raises the risk score"""
    request, borrower, savings = scenario_a()
    scores = [
        evaluate_loan_application(request, replace(borrower, credit_score=cs), savings).risk_score
        for cs in range(300, 851, 10)
    ]
    assert scores == sorted(scores, reverse=True)


def test_risk_score_monotonic_in_savings_balance():
    """Raising the savings balance never raises the risk score when no interest has been earned"""
    request, borrower, _ = scenario_a()
    scores = [
        evaluate_loan_application(request, borrower, SavingsProfile(balance_cents=balance * UGX)).risk_score
        for balance in range(0, 8_000_001, 250_000)
    ]
    assert scores == sorted(scores, reverse=True)


def test_evaluation_is_deterministic():
    assert evaluate_loan_application(*scenario_a()) == evaluate_loan_application(*scenario_a())


def test_aggregate_rounds_half_up():
    """24.5 rounds to 25, not to the even neighbour"""
    result = evaluate_loan_application(*scenario_a())
    assert aggregate_risk_score(result.factors) == 25


def test_aggregate_inverts_factor_average():
    factors = {"credit_score": evaluate_credit_score(850)}
    assert aggregate_risk_score(factors) == 5


def test_evaluation_factors_are_read_only():
    result = evaluate_loan_application(*scenario_a())

    with pytest.raises(TypeError):
        result.factors["income"] = evaluate_credit_score(850)


def test_payment_to_income_ratio_reported():
    """With no existing debt the payment-to-income ratio equals the DTI"""
    request, borrower, savings = scenario_a()
    result = evaluate_loan_application(request, borrower, savings)

    assert result.payment_to_income_ratio == pytest.approx(
        result.estimated_monthly_payment_cents / borrower.monthly_income_cents * 100
    )
    assert result.payment_to_income_ratio == pytest.approx(result.debt_to_income_ratio)


def test_validate_lists_every_problem():
    request = LoanRequest(requested_amount_cents=0, loan_type=LoanType.PERSONAL, term_months=0)
    borrower = BorrowerProfile(monthly_income_cents=0, credit_score=-1, employment_status="EMPLOYED")

    with pytest.raises(InvalidInputError) as exc_info:
        validate_evaluation_input(request, borrower, SavingsProfile(balance_cents=-5))

    assert exc_info.value.problems == [
        "requested_amount must be positive",
        "term_months must be positive",
        "monthly_income must be positive",
        "credit_score must not be negative",
        "savings_balance must not be negative",
    ]


def test_invalid_input_raised_before_evaluation():
    request, borrower, savings = scenario_a()
    with pytest.raises(InvalidInputError):
        evaluate_loan_application(replace(request, term_months=0), borrower, savings)


def test_term_above_maximum_is_invalid_input():
    request, borrower, savings = scenario_a()
    long_payday = LoanRequest(requested_amount_cents=1_000_000, loan_type=LoanType.PAYDAY, term_months=30_000)

    with pytest.raises(InvalidInputError, match="term_months must not exceed 600"):
        evaluate_loan_application(long_payday, borrower, savings)

    # The cap itself is still accepted
    assert evaluate_loan_application(replace(request, term_months=600), borrower, savings).risk_score >= 0


def test_parse_loan_type():
    assert parse_loan_type("personal") == LoanType.PERSONAL
    assert parse_loan_type(LoanType.AUTO) == LoanType.AUTO
    with pytest.raises(InvalidInputError, match="Unknown loan type"):
        parse_loan_type("HOLIDAY")


def test_evaluate_criteria_from_flat_mapping():
    result = evaluate_criteria({
        "requested_amount_cents": 10_000_000 * UGX,
        "loan_type": "personal",
        "term_months": 24,
        "monthly_income_cents": 2_000_000 * UGX,
        "credit_score": 750,
        "employment_status": "employed",
        "savings_balance_cents": 2_000_000 * UGX,
    })

    assert result == evaluate_loan_application(*scenario_a())


def test_evaluate_criteria_missing_fields():
    with pytest.raises(InvalidInputError) as exc_info:
        evaluate_criteria({"loan_type": "PERSONAL", "term_months": 12})

    assert exc_info.value.problems == [
        "Missing required field: requested_amount_cents",
        "Missing required field: monthly_income_cents",
        "Missing required field: credit_score",
    ]


def test_evaluate_criteria_non_numeric_field():
    with pytest.raises(InvalidInputError):
        evaluate_criteria({
            "requested_amount_cents": "lots",
            "loan_type": "PERSONAL",
            "term_months": 12,
            "monthly_income_cents": 100_000,
            "credit_score": 700,
        })
