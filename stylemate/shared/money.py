"""Money helpers. Every stored amount is an integer in minor currency units (paisa)."""

from ..config import CURRENCY_DISPLAY_DECIMALS, CURRENCY_SYMBOL, TAX_RATE_PERCENT


def percent_of(amount: int, percent: int) -> int:
    """Integer percentage of a minor-unit amount, rounded half up"""
    return (amount * percent + 50) // 100


def calc_tax(subtotal: int, rate_percent: int = TAX_RATE_PERCENT) -> int:
    return percent_of(subtotal, rate_percent)


def format_money(amount_in_minor_units: int) -> str:
    major = amount_in_minor_units / 100
    return f"{CURRENCY_SYMBOL}{major:.{CURRENCY_DISPLAY_DECIMALS}f}"
