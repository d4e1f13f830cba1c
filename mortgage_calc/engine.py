"""Core calculation engine for the mortgage calculator.

This module implements the amortization math shared by every surface of the
application: the current monthly payment for equal-installment (annuity) and
equal-principal loans, full repayment schedules, and the time/principal
progress of a loan. All functions are pure; they read their arguments and
return new values.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal, ROUND_CEILING, getcontext
from typing import Dict, List, Optional, Tuple

from .data_models import (
    EQUAL_INSTALLMENT,
    EQUAL_PRINCIPAL,
    REPAYMENT_STYLES,
    LoanProgress,
    LoanTerm,
    RateBenchmarks,
    ScheduleEntry,
)
from .errors import InvalidLoanInput, InvalidRate, InvalidTerm, PaymentTooLowToAmortize
from .rates import resolve_annual_rate
from .utils import add_months, month_start, months_between

getcontext().prec = 28  # increase precision for financial calculations

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")
MONTHS_PER_YEAR = Decimal("12")
# Residual balances below half a cent are treated as fully repaid.
BALANCE_EPSILON = Decimal("0.005")


def monthly_rate(annual_rate_percent: Decimal) -> Decimal:
    """Convert an annual percentage into a monthly decimal rate."""
    rate = Decimal(annual_rate_percent)
    if rate < 0:
        raise InvalidRate(f"Annual rate must not be negative; got {rate}%")
    return rate / HUNDRED / MONTHS_PER_YEAR


def _check_style(style: str) -> None:
    if style not in REPAYMENT_STYLES:
        raise InvalidLoanInput(f"Unknown repayment style: {style}")


def _calculate_annuity_payment(principal: Decimal, rate_per_month: Decimal, term: int) -> Decimal:
    """Return the annuity (equal installment) monthly payment for a loan.

    The formula is:

        payment = P * (i * (1 + i)^n) / ((1 + i)^n - 1)

    where ``P`` is the principal, ``i`` is the monthly interest rate and
    ``n`` is the number of payments. When the interest rate is zero, the
    payment simplifies to ``P / n``.
    """
    if rate_per_month == 0:
        return principal / Decimal(term)
    factor = (1 + rate_per_month) ** term
    return principal * (rate_per_month * factor) / (factor - 1)


def monthly_payment(
    principal: Decimal, annual_rate_percent: Decimal, remaining_months: int, style: str
) -> Decimal:
    """Return the current-period payment of a loan.

    For equal-installment loans this is the constant annuity payment. For
    equal-principal loans it is the payment of the current period only:
    the constant principal portion ``P / n`` plus this month's interest.
    A matured loan (``remaining_months <= 0``) pays nothing.
    """
    _check_style(style)
    rate_per_month = monthly_rate(annual_rate_percent)
    if remaining_months <= 0 or principal <= 0:
        return ZERO
    principal = Decimal(principal)
    if style == EQUAL_INSTALLMENT:
        return _calculate_annuity_payment(principal, rate_per_month, remaining_months)
    return principal / Decimal(remaining_months) + principal * rate_per_month


def remaining_months(term: LoanTerm, as_of: date) -> int:
    """Months left from ``as_of`` until the loan's end month (never negative)."""
    return max(0, months_between(as_of, term.end_date))


def current_payment(
    term: LoanTerm, as_of: date, benchmarks: Optional[RateBenchmarks] = None
) -> Decimal:
    """Monthly payment currently due on ``term``."""
    rate = resolve_annual_rate(term, benchmarks)
    months = remaining_months(term, as_of)
    payment = monthly_payment(term.principal_remaining, rate, months, term.repayment_style)
    logger.debug(
        "Current payment for %s tranche: principal=%s rate=%s%% months=%s payment=%s",
        term.kind,
        term.principal_remaining,
        rate,
        months,
        payment,
    )
    return payment


def total_interest(
    principal: Decimal, annual_rate_percent: Decimal, months: int, style: str
) -> Decimal:
    """Total interest paid repaying ``principal`` over ``months`` periods.

    Equal-installment loans pay ``payment * n - P``; equal-principal loans pay
    interest on a linearly declining balance, ``P * i * (n + 1) / 2``.
    """
    _check_style(style)
    if months <= 0 or principal <= 0:
        return ZERO
    rate_per_month = monthly_rate(annual_rate_percent)
    principal = Decimal(principal)
    if style == EQUAL_INSTALLMENT:
        payment = _calculate_annuity_payment(principal, rate_per_month, months)
        return payment * Decimal(months) - principal
    return principal * rate_per_month * Decimal(months + 1) / 2


def months_to_repay(principal: Decimal, rate_per_month: Decimal, payment: Decimal) -> Decimal:
    """Solve the annuity formula for the number of periods.

    ``n = ln(payment / (payment - P * i)) / ln(1 + i)``. The result is
    fractional; callers round up to whole months. A payment that does not
    exceed the monthly interest can never amortize the loan.
    """
    interest_only = principal * rate_per_month
    if payment <= interest_only:
        raise PaymentTooLowToAmortize(
            f"Payment {payment:.2f} does not exceed the monthly interest {interest_only:.2f}"
        )
    if principal <= 0:
        return ZERO
    if rate_per_month == 0:
        return principal / payment
    return (payment / (payment - interest_only)).ln() / (1 + rate_per_month).ln()


def whole_months(months: Decimal) -> int:
    """Round a fractional period count up, ignoring float-noise overshoot."""
    return int((months - Decimal("1e-9")).to_integral_value(rounding=ROUND_CEILING))


def simulate_repayment(
    principal: Decimal,
    rate_per_month: Decimal,
    style: str,
    amount: Decimal,
    max_periods: int,
    start_date: Optional[date] = None,
) -> List[ScheduleEntry]:
    """Amortize ``principal`` month by month.

    ``amount`` is the level payment for equal-installment loans and the
    constant principal portion for equal-principal loans. The final period
    (the one that clears the balance, or period ``max_periods``) pays off the
    whole remaining balance.
    """
    _check_style(style)
    schedule: List[ScheduleEntry] = []
    balance = Decimal(principal)
    period = 1
    current_date = start_date
    while balance > BALANCE_EPSILON and period <= max_periods:
        starting_balance = balance
        interest_payment = balance * rate_per_month
        if style == EQUAL_INSTALLMENT:
            principal_payment = amount - interest_payment
            if principal_payment <= 0:
                raise PaymentTooLowToAmortize(
                    f"Payment {amount:.2f} does not cover the interest {interest_payment:.2f}"
                )
        else:
            principal_payment = amount
        if principal_payment >= balance or period == max_periods:
            principal_payment = balance
        balance -= principal_payment
        if balance.copy_abs() < BALANCE_EPSILON:
            balance = ZERO
        schedule.append(
            ScheduleEntry(
                period=period,
                date=current_date,
                starting_balance=starting_balance,
                payment=principal_payment + interest_payment,
                principal_payment=principal_payment,
                interest_payment=interest_payment,
                ending_balance=balance,
            )
        )
        period += 1
        if current_date is not None:
            current_date = add_months(current_date, 1)
    return schedule


def build_schedule(
    principal: Decimal,
    annual_rate_percent: Decimal,
    months: int,
    style: str,
    start_date: Optional[date] = None,
) -> Tuple[List[ScheduleEntry], Dict[str, object]]:
    """Compute the full repayment schedule and summary for a loan.

    Parameters
    ----------
    principal: Decimal
        Balance to repay.
    annual_rate_percent: Decimal
        Nominal annual rate in percent.
    months: int
        Number of monthly payments.
    style: str
        ``"equal_installment"`` or ``"equal_principal"``. Equal-principal
        schedules show the declining payment period by period.
    start_date: date, optional
        Date of the first payment; entries are dated when given.

    Returns
    -------
    schedule: List[ScheduleEntry]
        One entry per month; the last entry ends at a zero balance.
    summary: Dict[str, object]
        Aggregate metrics: total interest, total paid, first/last payment and
        number of payments.
    """
    _check_style(style)
    if months <= 0:
        raise InvalidTerm("Schedule term must be positive")
    rate_per_month = monthly_rate(annual_rate_percent)
    principal = Decimal(principal)
    if style == EQUAL_INSTALLMENT:
        amount = _calculate_annuity_payment(principal, rate_per_month, months)
    else:
        amount = principal / Decimal(months)
    schedule = simulate_repayment(principal, rate_per_month, style, amount, months, start_date)

    interest = sum((e.interest_payment for e in schedule), ZERO)
    summary: Dict[str, object] = {
        "principal": float(principal),
        "annual_rate": float(annual_rate_percent),
        "repayment_style": style,
        "total_interest": float(interest),
        "total_paid": float(principal + interest),
        "first_payment": float(schedule[0].payment) if schedule else 0.0,
        "last_payment": float(schedule[-1].payment) if schedule else 0.0,
        "payments_made": len(schedule),
    }
    if start_date is not None and schedule:
        summary["end_date"] = schedule[-1].date.strftime("%Y-%m")
    return schedule, summary


def progress_over_span(
    start_date: date,
    end_date: date,
    principal_original: Decimal,
    principal_remaining: Decimal,
    as_of: date,
) -> LoanProgress:
    """Time and principal progress of a loan (or tranche union) over a span."""
    total = months_between(start_date, end_date)
    if total <= 0:
        raise InvalidTerm(
            f"Loan end {end_date:%Y-%m} must be after its start {start_date:%Y-%m}"
        )
    elapsed = min(max(months_between(start_date, as_of), 0), total)
    time_progress = Decimal(elapsed) / Decimal(total) * HUNDRED

    original = Decimal(principal_original)
    remaining = Decimal(principal_remaining)
    paid = original - remaining
    principal_progress = paid / original * HUNDRED if original > 0 else ZERO
    return LoanProgress(
        total_months=total,
        elapsed_months=elapsed,
        remaining_months=total - elapsed,
        time_progress_percent=time_progress,
        principal_original=original,
        principal_remaining=remaining,
        principal_paid=paid,
        principal_progress_percent=principal_progress,
    )


def compute_progress(term: LoanTerm, as_of: date) -> LoanProgress:
    """Return the progress of a single tranche as of ``as_of``."""
    return progress_over_span(
        term.start_date,
        term.end_date,
        term.principal_original,
        term.principal_remaining,
        month_start(as_of),
    )
