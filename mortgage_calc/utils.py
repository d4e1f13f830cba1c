"""Utility functions for the mortgage calculator.

This module provides helpers for parsing user input into Python data types and
for handling dates: adding months, counting whole months between two dates and
normalizing year-month strings to ``datetime.date`` instances.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal, InvalidOperation, getcontext
import calendar

getcontext().prec = 28  # increase decimal precision to avoid rounding errors

# Amount suffixes accepted by ``parse_amount``. ``w`` is 万 (ten thousand),
# the unit loan amounts are usually quoted in on Chinese mortgage forms.
AMOUNT_SUFFIXES = {
    "k": Decimal("1000"),
    "w": Decimal("10000"),
    "m": Decimal("1000000"),
}


def parse_year_month(ym: str) -> date:
    """Parse a YYYY-MM string into a ``date`` object (first day of month).

    Parameters
    ----------
    ym: str
        A string in the form ``"YYYY-MM"``. The day component, if present,
        will be ignored.

    Returns
    -------
    date
        A date object representing the first day of the specified month.

    Raises
    ------
    ValueError
        If the string is not a valid year-month.
    """
    try:
        parts = ym.strip().split("-")
        if len(parts) < 2:
            raise ValueError
        year = int(parts[0])
        month = int(parts[1])
        return date(year, month, 1)
    except (AttributeError, ValueError) as exc:
        raise ValueError(f"Invalid year-month string: {ym}") from exc


def month_start(dt: date) -> date:
    return date(dt.year, dt.month, 1)


def add_months(dt: date, months: int) -> date:
    """Return a new date a number of months after ``dt``.

    The day of the month is clamped to the last valid day if needed (e.g.,
    adding one month to Jan 31 yields Feb 28 or 29).
    """
    year = dt.year + (dt.month - 1 + months) // 12
    month = (dt.month - 1 + months) % 12 + 1
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def months_between(start: date, end: date) -> int:
    """Whole calendar months from ``start`` to ``end``; days are ignored.

    Negative when ``end`` is before ``start``.
    """
    return (end.year - start.year) * 12 + (end.month - start.month)


def decimal_from_str(value: str) -> Decimal:
    """Convert a numeric string into a ``Decimal``.

    The function strips any commas and handles both integer and float-like
    strings. It raises ``ValueError`` if conversion fails.
    """
    try:
        cleaned = str(value).replace(",", "").strip()
        result = Decimal(cleaned)
    except InvalidOperation as exc:
        raise ValueError(f"Invalid numeric value: {value}") from exc
    if not result.is_finite():
        raise ValueError(f"Invalid numeric value: {value}")
    return result


def parse_amount(value: str) -> Decimal:
    """Parse a monetary amount with optional ``k``/``w``/``m`` suffix.

    ``"500k"`` is 500 000, ``"150w"`` is 1 500 000 and ``"2m"`` is 2 000 000.
    """
    text = str(value).strip().lower().replace(",", "")
    factor = Decimal("1")
    if text and text[-1] in AMOUNT_SUFFIXES:
        factor = AMOUNT_SUFFIXES[text[-1]]
        text = text[:-1]
    return decimal_from_str(text) * factor


def parse_percent(value: str) -> Decimal:
    """Parse a percentage such as ``"4.9"`` or ``"4.9%"`` (kept in percent)."""
    text = str(value).strip()
    if text.endswith("%"):
        text = text[:-1]
    return decimal_from_str(text)
