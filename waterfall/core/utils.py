from datetime import date
from decimal import Decimal, ROUND_HALF_UP
import re

_YEAR_MONTH = re.compile(r"^(\d{4})-(\d{2})$")
_MONTH_NAMES = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def round_money(value: float) -> float:
    """
    Rounds a currency amount to cents, half away from zero.
    Goes through the shortest decimal repr so 1.005 rounds to 1.01 as written.
    """
    return float(Decimal(repr(value)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP))


def parse_year_month(value: str) -> date:
    """
    Parses a YYYY-MM string into the first day of that month.
    Raises ValueError on anything else.
    """
    match = _YEAR_MONTH.match(value.strip()) if value else None
    if not match:
        raise ValueError(f"Invalid year-month '{value}'. Use YYYY-MM")
    year, month = int(match.group(1)), int(match.group(2))
    if not 1 <= month <= 12:
        raise ValueError(f"Invalid month in '{value}'")
    return date(year, month, 1)


def add_months(value: date, months: int) -> date:
    """First day of the month `months` after the month containing `value`."""
    index = value.year * 12 + (value.month - 1) + months
    return date(index // 12, index % 12 + 1, 1)


def format_month_label(value: date) -> str:
    """
    Short calendar label used in ledger displays.
    Format: Mon YYYY (e.g. Mar 2029)
    """
    return f"{_MONTH_NAMES[value.month - 1]} {value.year}"
