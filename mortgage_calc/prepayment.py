"""What-if prepayment calculations.

A prepayment lowers the outstanding principal now. What happens afterwards
depends on the continuation policy:

``reduce_payment``
    Keep the remaining term and re-amortize the smaller balance, lowering
    the monthly payment.
``shorten_term``
    Keep the current monthly payment and finish earlier.
``custom_payment``
    Pay a chosen amount per month (at least the reduce-payment minimum) and
    finish whenever that payment clears the balance.

All policies are independent projections over the same reduced principal;
none of them modifies the loan they are computed for.
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from typing import Dict, Optional, Tuple

from .data_models import (
    CUSTOM_PAYMENT,
    EQUAL_INSTALLMENT,
    PREPAYMENT_POLICIES,
    REDUCE_PAYMENT,
    SHORTEN_TERM,
    LoanTerm,
    PrepaymentEffect,
    PrepaymentRequest,
    RateBenchmarks,
)
from .engine import (
    ZERO,
    monthly_payment,
    monthly_rate,
    months_to_repay,
    remaining_months,
    simulate_repayment,
    total_interest,
    whole_months,
)
from .errors import (
    ExceedsRemainingPrincipal,
    InvalidPrepayment,
    InvalidTerm,
    Outcome,
    PaymentBelowMinimum,
    PaymentTooLowToAmortize,
    attempt,
)
from .rates import resolve_annual_rate

logger = logging.getLogger(__name__)


def validate_request(term: LoanTerm, request: PrepaymentRequest) -> None:
    """Reject requests that cannot be evaluated; amounts are never clamped."""
    if request.policy not in PREPAYMENT_POLICIES:
        raise InvalidPrepayment(f"Unknown prepayment policy: {request.policy}")
    if request.fee_rate_percent < 0:
        raise InvalidPrepayment("Prepayment fee rate must not be negative")
    if request.amount <= 0 or request.amount > term.principal_remaining:
        logger.warning(
            "Rejecting prepayment of %s against remaining principal %s",
            request.amount,
            term.principal_remaining,
        )
        raise ExceedsRemainingPrincipal(
            f"Prepayment amount must be greater than 0 and at most the remaining "
            f"principal {term.principal_remaining:.2f}; got {request.amount:.2f}"
        )
    if request.policy == CUSTOM_PAYMENT and request.target_payment is None:
        raise InvalidPrepayment("Custom payment policy requires a target payment")


def _term_at_payment(
    principal: Decimal, rate_per_month: Decimal, payment: Decimal, style: str
) -> Tuple[int, Decimal]:
    """Months and total interest needed to clear ``principal`` paying ``payment``.

    Equal-installment loans invert the annuity formula. Equal-principal loans
    keep the principal portion of ``payment`` (payment minus this month's
    interest) constant from now on.
    """
    if principal <= 0:
        return 0, ZERO
    if style == EQUAL_INSTALLMENT:
        months = whole_months(months_to_repay(principal, rate_per_month, payment))
        amount = payment
    else:
        amount = payment - principal * rate_per_month
        if amount <= 0:
            raise PaymentTooLowToAmortize(
                f"Payment {payment:.2f} does not exceed the monthly interest "
                f"{principal * rate_per_month:.2f}"
            )
        months = whole_months(principal / amount)
    schedule = simulate_repayment(principal, rate_per_month, style, amount, months)
    interest = sum((e.interest_payment for e in schedule), ZERO)
    return len(schedule), interest


def compute_prepayment_effect(
    term: LoanTerm,
    request: PrepaymentRequest,
    as_of: date,
    benchmarks: Optional[RateBenchmarks] = None,
) -> PrepaymentEffect:
    """Project the effect of prepaying ``request.amount`` on ``term`` now.

    Raises
    ------
    ExceedsRemainingPrincipal
        The amount is not in ``(0, principal_remaining]``.
    PaymentTooLowToAmortize
        The kept or chosen payment cannot pay down the principal.
    PaymentBelowMinimum
        A custom payment is below the reduce-payment minimum.
    """
    validate_request(term, request)
    rate = resolve_annual_rate(term, benchmarks)
    rate_per_month = monthly_rate(rate)
    style = term.repayment_style
    months = remaining_months(term, as_of)
    if months <= 0:
        raise InvalidTerm(f"Loan matured in {term.end_date:%Y-%m}; nothing left to prepay")

    old_principal = Decimal(term.principal_remaining)
    new_principal = old_principal - request.amount
    fee = request.fee
    old_payment = monthly_payment(old_principal, rate, months, style)
    old_interest = total_interest(old_principal, rate, months, style)

    if request.policy == REDUCE_PAYMENT:
        new_payment = monthly_payment(new_principal, rate, months, style)
        new_months = months if new_principal > 0 else 0
        new_interest = total_interest(new_principal, rate, months, style)
    elif request.policy == SHORTEN_TERM:
        new_payment = old_payment
        new_months, new_interest = _term_at_payment(new_principal, rate_per_month, old_payment, style)
    else:
        minimum = monthly_payment(new_principal, rate, months, style)
        target = Decimal(request.target_payment)
        if target < minimum:
            raise PaymentBelowMinimum(
                f"Custom payment {target:.2f} is below the minimum payment {minimum:.2f}"
            )
        new_payment = target
        new_months, new_interest = _term_at_payment(new_principal, rate_per_month, target, style)

    if new_principal <= 0:
        new_payment = ZERO
    interest_saved = old_interest - new_interest
    effect = PrepaymentEffect(
        policy=request.policy,
        amount=Decimal(request.amount),
        fee=fee,
        old_principal=old_principal,
        new_principal=new_principal,
        old_payment=old_payment,
        new_payment=new_payment,
        payment_change=new_payment - old_payment,
        old_remaining_months=months,
        new_remaining_months=new_months,
        months_saved=months - new_months,
        old_total_interest=old_interest,
        new_total_interest=new_interest,
        interest_saved=interest_saved,
        total_cost_saved=interest_saved - fee,
    )
    logger.debug(
        "Prepayment %s of %s: payment %s -> %s, months %s -> %s, saved %s",
        request.policy,
        request.amount,
        old_payment,
        new_payment,
        months,
        new_months,
        effect.total_cost_saved,
    )
    return effect


def compute_all_effects(
    term: LoanTerm,
    amount: Decimal,
    fee_rate_percent: Decimal,
    as_of: date,
    benchmarks: Optional[RateBenchmarks] = None,
    target_payment: Optional[Decimal] = None,
) -> Dict[str, Outcome[PrepaymentEffect]]:
    """Evaluate every policy for the same prepayment.

    The custom-payment policy is only evaluated when ``target_payment`` is
    given. A policy that fails is reported through its ``Outcome`` and does
    not prevent the others from being computed.
    """
    policies = [REDUCE_PAYMENT, SHORTEN_TERM]
    if target_payment is not None:
        policies.append(CUSTOM_PAYMENT)
    results: Dict[str, Outcome[PrepaymentEffect]] = {}
    for policy in policies:
        request = PrepaymentRequest(
            amount=amount,
            fee_rate_percent=fee_rate_percent,
            policy=policy,
            target_payment=target_payment if policy == CUSTOM_PAYMENT else None,
        )
        results[policy] = attempt(compute_prepayment_effect, term, request, as_of, benchmarks)
    return results
