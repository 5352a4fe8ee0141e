"""
Number formatting for tables and documents.
"""

from babel.numbers import format_decimal

LOCALE = 'en_US'


def format_number(value: float, decimals: int = 2) -> str:
    pattern = "#,##0" + ("." + "0" * decimals if decimals > 0 else "")
    return format_decimal(value, format=pattern, locale=LOCALE)


def format_amount(value: float) -> str:
    return format_number(value, 2)


def format_money(value: float, currency: str) -> str:
    """1234.5, "CLP" -> "1,234.50 CLP"."""
    return f"{format_amount(value)} {currency}"
