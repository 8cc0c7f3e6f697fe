"""Underwriting engine - core business logic for loan evaluation"""

import logging
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Tuple

from lending_engine.domain.amortization import calculate_monthly_payment
from lending_engine.domain.exceptions import InvalidInputError
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
from lending_engine.domain.models import (
    BorrowerProfile,
    EvaluationResult,
    FactorScore,
    LoanRequest,
    LoanType,
    RiskScore,
    SavingsImpact,
    SavingsProfile,
)
from lending_engine.domain.policy import (
    MANY_EXISTING_LOANS,
    MAX_DEBT_TO_INCOME_RATIO,
    MAX_ELIGIBLE_RISK_SCORE,
    MAX_TERM_MONTHS,
    base_rate,
    minimum_credit_score,
    minimum_savings_required,
)
from lending_engine.domain.pricing import calculate_interest_rate, calculate_recommended_amount
from lending_engine.utils.money import format_currency, round_half_up

logger = logging.getLogger(__name__)


def parse_loan_type(value: Any) -> LoanType:
    if isinstance(value, LoanType):
        return value
    try:
        return LoanType(str(value).strip().upper())
    except ValueError:
        raise InvalidInputError(f"Unknown loan type: {value!r}") from None


def validate_evaluation_input(
    request: LoanRequest,
    borrower: BorrowerProfile,
    savings: SavingsProfile,
) -> None:
    """
    Reject malformed input before any factor is evaluated.

    Raises:
        InvalidInputError: listing every problem found
    """
    problems: List[str] = []

    if not isinstance(request.loan_type, LoanType):
        problems.append(f"Unknown loan type: {request.loan_type!r}")
    if request.requested_amount_cents <= 0:
        problems.append("requested_amount must be positive")
    if request.term_months <= 0:
        problems.append("term_months must be positive")
    elif request.term_months > MAX_TERM_MONTHS:
        problems.append(f"term_months must not exceed {MAX_TERM_MONTHS}")
    if borrower.monthly_income_cents <= 0:
        problems.append("monthly_income must be positive")

    non_negative = {
        "credit_score": borrower.credit_score,
        "existing_loan_count": borrower.existing_loan_count,
        "total_active_debt": borrower.total_active_debt_cents,
        "savings_balance": savings.balance_cents,
        "total_interest_earned": savings.total_interest_earned_cents,
        "savings_account_age_months": savings.account_age_months,
    }
    for name, value in non_negative.items():
        if value < 0:
            problems.append(f"{name} must not be negative")

    if problems:
        raise InvalidInputError(problems)


def aggregate_risk_score(factors: Mapping[str, FactorScore]) -> RiskScore:
    """
    Invert the weighted factor average into a risk score.

    Factor scores are higher-is-better; the risk score is lower-is-better:
    risk = round(100 - sum(score * weight) / sum(weight)).
    """
    total_weight = sum(f.weight for f in factors.values())
    weighted = sum(f.score * f.weight for f in factors.values())
    return RiskScore(min(100, max(0, round_half_up(100 - weighted / total_weight))))


def determine_eligibility(
    risk_score: RiskScore,
    dti_ratio: float,
    request: LoanRequest,
    borrower: BorrowerProfile,
    savings: SavingsProfile,
) -> bool:
    return (
        risk_score <= MAX_ELIGIBLE_RISK_SCORE
        and dti_ratio <= MAX_DEBT_TO_INCOME_RATIO
        and savings.balance_cents >= minimum_savings_required(request.loan_type, request.requested_amount_cents)
        and borrower.credit_score >= minimum_credit_score(request.loan_type)
    )


def generate_recommendations(
    request: LoanRequest,
    savings: SavingsProfile,
    factors: Mapping[str, FactorScore],
    currency_code: str = "UGX",
) -> List[str]:
    recommendations: List[str] = []

    required = minimum_savings_required(request.loan_type, request.requested_amount_cents)
    if savings.balance_cents < required:
        recommendations.append(
            f"Build your savings to at least {format_currency(required, currency_code)} "
            "before applying for this loan amount"
        )

    if factors["credit_score"].score < 60:
        recommendations.append("Improve your credit score by paying bills on time and reducing existing debt")

    if factors["income"].score < 60:
        recommendations.append("Consider applying for a smaller loan amount that better fits your income")

    if savings.balance_cents > 0 and savings.balance_cents / request.requested_amount_cents < 0.1:
        recommendations.append("Increase your savings balance to get better interest rates and loan terms")

    if savings.total_interest_earned_cents == 0 and savings.balance_cents > 0:
        recommendations.append("Keep your savings active to earn interest and demonstrate financial discipline")

    return recommendations


def generate_warnings(
    request: LoanRequest,
    borrower: BorrowerProfile,
    risk_score: RiskScore,
    dti_ratio: float,
) -> List[str]:
    warnings: List[str] = []

    if risk_score > MAX_ELIGIBLE_RISK_SCORE:
        warnings.append("High risk profile - loan approval may be difficult")
    if dti_ratio > MAX_DEBT_TO_INCOME_RATIO:
        warnings.append("Debt-to-income ratio exceeds recommended 40% threshold")
    if borrower.credit_score < minimum_credit_score(request.loan_type):
        warnings.append("Credit score below minimum requirement for this loan type")
    if borrower.existing_loan_count >= MANY_EXISTING_LOANS:
        warnings.append("Multiple existing loans may affect approval")

    return warnings


def evaluate_loan_application(
    request: LoanRequest,
    borrower: BorrowerProfile,
    savings: SavingsProfile,
    currency_code: str = "UGX",
) -> EvaluationResult:
    """
    Main entry point: score a loan request against the borrower's profile.

    Flow:
    1. Validate input (InvalidInputError, nothing evaluated)
    2. Estimate the monthly payment at the loan type's base rate
    3. Run the six factor evaluators
    4. Aggregate into a risk score and decide eligibility
    5. Price the loan and recommend an amount

    Ineligibility is a normal result carrying warnings, not an error.
    """
    validate_evaluation_input(request, borrower, savings)

    # Income and DTI use the base-rate estimate, not the final recommended rate
    estimated_payment = calculate_monthly_payment(
        request.requested_amount_cents, base_rate(request.loan_type), request.term_months
    )
    dti_ratio = debt_to_income_ratio(
        borrower.total_active_debt_cents, estimated_payment, borrower.monthly_income_cents
    )
    coverage = savings_ratio(savings.balance_cents, request.requested_amount_cents)

    factors: Dict[str, FactorScore] = {
        "income": evaluate_income(borrower.monthly_income_cents, estimated_payment),
        "credit_score": evaluate_credit_score(borrower.credit_score),
        "savings": evaluate_savings(
            savings.balance_cents,
            request.requested_amount_cents,
            savings.total_interest_earned_cents,
            savings.account_age_months,
        ),
        "employment": evaluate_employment(borrower.employment_status),
        "debt_ratio": evaluate_debt_ratio(dti_ratio),
        "loan_type": evaluate_loan_type(request.loan_type, request.requested_amount_cents),
    }

    risk_score = aggregate_risk_score(factors)
    is_eligible = determine_eligibility(risk_score, dti_ratio, request, borrower, savings)
    required_savings = minimum_savings_required(request.loan_type, request.requested_amount_cents)

    logger.debug(
        "Loan evaluated",
        extra={
            "loan_type": request.loan_type.value,
            "risk_score": risk_score,
            "dti_ratio": dti_ratio,
            "eligible": is_eligible,
        },
    )

    return EvaluationResult(
        is_eligible=is_eligible,
        risk_score=risk_score,
        recommended_amount_cents=calculate_recommended_amount(
            request.requested_amount_cents, risk_score, coverage
        ),
        recommended_interest_rate=calculate_interest_rate(
            request.loan_type,
            risk_score,
            coverage,
            savings.total_interest_earned_cents,
            savings.account_age_months,
        ),
        savings_impact=SavingsImpact(
            savings_ratio=coverage,
            savings_bonus=factors["savings"].score - 50,
            minimum_savings_required_cents=required_savings,
            meets_savings_requirement=savings.balance_cents >= required_savings,
        ),
        factors=MappingProxyType(factors),
        recommendations=tuple(generate_recommendations(request, savings, factors, currency_code)),
        warnings=tuple(generate_warnings(request, borrower, risk_score, dti_ratio)),
        debt_to_income_ratio=dti_ratio,
        payment_to_income_ratio=payment_to_income_ratio(estimated_payment, borrower.monthly_income_cents),
        estimated_monthly_payment_cents=estimated_payment,
    )


def build_evaluation_inputs(criteria: Mapping[str, Any]) -> Tuple[LoanRequest, BorrowerProfile, SavingsProfile]:
    """
    Split a flat evaluation payload into the engine's input snapshots.

    Expected keys: requested_amount_cents, loan_type, term_months,
    monthly_income_cents, credit_score, employment_status, savings_balance_cents,
    total_interest_earned_cents, savings_account_age_months,
    existing_loan_count, total_active_debt_cents.
    """
    required = ("requested_amount_cents", "loan_type", "term_months", "monthly_income_cents", "credit_score")
    missing = [key for key in required if criteria.get(key) is None]
    if missing:
        raise InvalidInputError([f"Missing required field: {key}" for key in missing])

    try:
        request = LoanRequest(
            requested_amount_cents=int(criteria["requested_amount_cents"]),
            loan_type=parse_loan_type(criteria["loan_type"]),
            term_months=int(criteria["term_months"]),
        )
        borrower = BorrowerProfile(
            monthly_income_cents=int(criteria["monthly_income_cents"]),
            credit_score=int(criteria["credit_score"]),
            employment_status=str(criteria.get("employment_status") or "UNKNOWN"),
            existing_loan_count=int(criteria.get("existing_loan_count", 0)),
            total_active_debt_cents=int(criteria.get("total_active_debt_cents", 0)),
        )
        savings = SavingsProfile(
            balance_cents=int(criteria.get("savings_balance_cents", 0)),
            total_interest_earned_cents=int(criteria.get("total_interest_earned_cents", 0)),
            account_age_months=int(criteria.get("savings_account_age_months", 0)),
        )
    except (TypeError, ValueError) as e:
        raise InvalidInputError(f"Evaluation fields must be valid numbers: {e}") from e

    return request, borrower, savings


def evaluate_criteria(criteria: Mapping[str, Any], currency_code: str = "UGX") -> EvaluationResult:
    """Evaluate a flat criteria mapping, as received from an external caller"""
    request, borrower, savings = build_evaluation_inputs(criteria)
    return evaluate_loan_application(request, borrower, savings, currency_code)
