"""Commercial-to-provident conversion.

Part of a commercial tranche's outstanding balance is refinanced as a
housing-fund (provident) loan at the provident rate and a new term. The rest
of the commercial tranche keeps its rate, style and end date.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from .data_models import REPAYMENT_STYLES, ConversionRequest, ConversionResult, LoanTerm, RateBenchmarks
from .engine import monthly_payment, remaining_months, total_interest
from .errors import ExceedsRemainingPrincipal, InvalidLoanInput, InvalidPrepayment, InvalidTerm
from .rates import resolve_annual_rate

logger = logging.getLogger(__name__)


def compute_conversion(
    commercial: LoanTerm,
    request: ConversionRequest,
    as_of: date,
    benchmarks: Optional[RateBenchmarks] = None,
) -> ConversionResult:
    if request.amount <= 0 or request.amount > commercial.principal_remaining:
        raise ExceedsRemainingPrincipal(
            f"Conversion amount must be greater than 0 and at most the remaining "
            f"principal {commercial.principal_remaining:.2f}; got {request.amount:.2f}"
        )
    if request.term_months <= 0:
        raise InvalidTerm("Provident loan term must be positive")
    if request.repayment_style not in REPAYMENT_STYLES:
        raise InvalidLoanInput(f"Unknown repayment style: {request.repayment_style}")
    if request.fee_rate_percent < 0:
        raise InvalidPrepayment("Conversion fee rate must not be negative")

    rate = resolve_annual_rate(commercial, benchmarks)
    months = remaining_months(commercial, as_of)
    style = commercial.repayment_style
    balance = Decimal(commercial.principal_remaining)
    left = balance - request.amount

    old_payment = monthly_payment(balance, rate, months, style)
    old_interest = total_interest(balance, rate, months, style)
    left_payment = monthly_payment(left, rate, months, style)
    left_interest = total_interest(left, rate, months, style)
    provident_payment = monthly_payment(
        request.amount, request.provident_rate, request.term_months, request.repayment_style
    )
    provident_interest = total_interest(
        request.amount, request.provident_rate, request.term_months, request.repayment_style
    )

    fee = request.amount * request.fee_rate_percent / Decimal(100)
    next_payment = left_payment + provident_payment
    new_interest = left_interest + provident_interest
    result = ConversionResult(
        amount=Decimal(request.amount),
        fee=fee,
        old_commercial_payment=old_payment,
        remaining_commercial_payment=left_payment,
        provident_payment=provident_payment,
        next_month_payment=next_payment,
        payment_change=next_payment - old_payment,
        old_total_interest=old_interest,
        new_total_interest=new_interest,
        total_savings=old_interest - new_interest - fee,
    )
    logger.debug(
        "Converted %s to provident at %s%%: payment %s -> %s, savings %s",
        request.amount,
        request.provident_rate,
        old_payment,
        next_payment,
        result.total_savings,
    )
    return result
