"""Fixed-rate annuity amortization for loan repayment"""

from datetime import date
from typing import List

from lending_engine.domain.exceptions import InvalidInputError
from lending_engine.domain.models import AmortizationEntry, AmortizationSchedule
from lending_engine.domain.policy import MAX_TERM_MONTHS
from lending_engine.utils.date_utils import add_months
from lending_engine.utils.money import round_half_up


def monthly_rate(annual_rate: float) -> float:
    """Convert an annual percentage rate to a monthly fraction"""
    return annual_rate / 100 / 12


def calculate_monthly_payment(principal_cents: int, annual_rate: float, term_months: int) -> int:
    """
    Fixed monthly payment for an annuity loan, rounded to the minor unit.

    A zero rate falls back to straight-line division (principal / term) instead
    of the annuity formula, which would divide by zero.
    """
    if term_months <= 0:
        raise InvalidInputError("term_months must be positive")
    if term_months > MAX_TERM_MONTHS:
        raise InvalidInputError(f"term_months must not exceed {MAX_TERM_MONTHS}")

    rate = monthly_rate(annual_rate)
    if rate == 0:
        return round_half_up(principal_cents / term_months)

    try:
        growth = (1 + rate) ** term_months
    except OverflowError:
        raise InvalidInputError(f"annual_rate {annual_rate} is out of range for a {term_months}-month term") from None
    return round_half_up(principal_cents * rate * (growth / (growth - 1)))


def calculate_maturity_date(start_date: date, term_months: int) -> date:
    return add_months(start_date, term_months)


def generate_schedule(
    principal_cents: int,
    annual_rate: float,
    term_months: int,
    start_date: date | None = None,
) -> AmortizationSchedule:
    """
    Generate the full monthly installment schedule.

    Requirements:
    - Interest portion = running balance x monthly rate (rounded half-up)
    - Principal portion = payment - interest
    - Last installment absorbs any rounding remainder so the balance ends at 0
    - Installment i falls due i months after start_date

    Example:
        10,000.00 at 0% over 3 months -> 3333.33, 3333.33, 3333.34
    """
    if principal_cents <= 0:
        raise InvalidInputError("principal must be positive")
    if annual_rate < 0:
        raise InvalidInputError("annual_rate must not be negative")
    if not 0 < term_months <= MAX_TERM_MONTHS:
        raise InvalidInputError(f"term_months must be between 1 and {MAX_TERM_MONTHS}")

    if start_date is None:
        start_date = date.today()

    rate = monthly_rate(annual_rate)
    payment = calculate_monthly_payment(principal_cents, annual_rate, term_months)

    entries: List[AmortizationEntry] = []
    balance = principal_cents
    for number in range(1, term_months + 1):
        interest = round_half_up(balance * rate)

        if number == term_months:
            principal_portion = balance
        else:
            principal_portion = min(max(payment - interest, 0), balance)

        balance -= principal_portion
        entries.append(
            AmortizationEntry(
                installment_number=number,
                due_date=add_months(start_date, number),
                principal_portion_cents=principal_portion,
                interest_portion_cents=interest,
                total_amount_cents=principal_portion + interest,
                running_balance_cents=balance,
            )
        )

    total_payment = sum(entry.total_amount_cents for entry in entries)

    return AmortizationSchedule(
        monthly_payment_cents=payment,
        entries=tuple(entries),
        total_payment_cents=total_payment,
        total_interest_cents=total_payment - principal_cents,
        maturity_date=calculate_maturity_date(start_date, term_months),
    )
