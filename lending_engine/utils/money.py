"""Rounding and display helpers for integer minor-unit amounts"""

import math


def round_half_up(value: float) -> int:
    """Round to the nearest integer, with .5 always rounding up"""
    return math.floor(value + 0.5)


def format_currency(amount_cents: int, currency_code: str = "UGX") -> str:
    """Display an amount in whole currency units, e.g. 'UGX 10,000,000'"""
    whole_units = round_half_up(amount_cents / 100)
    sign = "-" if whole_units < 0 else ""
    return f"{sign}{currency_code} {abs(whole_units):,}"
