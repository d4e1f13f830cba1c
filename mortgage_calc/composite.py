"""Combined figures for combination (commercial + provident) loans."""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date
from decimal import Decimal
from typing import Dict, Iterable, Optional

from .data_models import (
    TRANCHE_KINDS,
    CompositeLoan,
    CompositeSummary,
    LoanProgress,
    LoanTerm,
    PrepaymentRequest,
    RateBenchmarks,
)
from .engine import ZERO, current_payment, progress_over_span
from .errors import InvalidLoanInput, attempt
from .prepayment import compute_prepayment_effect
from .utils import month_start

logger = logging.getLogger(__name__)


def compute_composite_progress(tranches: Iterable[LoanTerm], as_of: date) -> Optional[LoanProgress]:
    """Progress across tranches, spanning the earliest start to the latest end.

    A combination loan's total months therefore cover both tranches even when
    one of them matures earlier. Returns ``None`` when no tranche is present.
    """
    tranches = list(tranches)
    if not tranches:
        return None
    return progress_over_span(
        min(t.start_date for t in tranches),
        max(t.end_date for t in tranches),
        sum((Decimal(t.principal_original) for t in tranches), ZERO),
        sum((Decimal(t.principal_remaining) for t in tranches), ZERO),
        month_start(as_of),
    )


def _summarize(
    tranches: Dict[str, LoanTerm], as_of: date, benchmarks: Optional[RateBenchmarks]
) -> CompositeSummary:
    payments: Dict[str, Decimal] = {}
    errors: Dict[str, str] = {}
    valid: Dict[str, LoanTerm] = {}
    for kind, term in tranches.items():
        outcome = attempt(current_payment, term, as_of, benchmarks)
        if outcome.ok:
            payments[kind] = outcome.value
            valid[kind] = term
        else:
            logger.warning("Skipping %s tranche: %s", kind, outcome.error)
            errors[kind] = str(outcome.error)

    progress = None
    if valid:
        progress_outcome = attempt(compute_composite_progress, valid.values(), as_of)
        if progress_outcome.ok:
            progress = progress_outcome.value
        else:
            errors["progress"] = str(progress_outcome.error)

    return CompositeSummary(
        tranche_payments=payments,
        combined_monthly_payment=sum(payments.values(), ZERO),
        combined_principal_original=sum((Decimal(t.principal_original) for t in valid.values()), ZERO),
        combined_remaining_principal=sum((Decimal(t.principal_remaining) for t in valid.values()), ZERO),
        progress=progress,
        errors=errors,
    )


def aggregate(
    commercial: Optional[LoanTerm] = None,
    provident: Optional[LoanTerm] = None,
    *,
    as_of: date,
    benchmarks: Optional[RateBenchmarks] = None,
) -> CompositeSummary:
    """Sum the payments and principals of the present tranches.

    An absent tranche contributes zero. A tranche that cannot be evaluated is
    reported in ``errors`` while the other one is still computed.
    """
    return _summarize(CompositeLoan(commercial, provident).tranches(), as_of, benchmarks)


def aggregate_with_prepayment(
    loan: CompositeLoan,
    target: str,
    request: PrepaymentRequest,
    *,
    as_of: date,
    benchmarks: Optional[RateBenchmarks] = None,
) -> CompositeSummary:
    """Apply a prepayment to one tranche and recombine with the other.

    The targeted tranche contributes its post-prepayment payment and
    principal; the other tranche contributes its unaffected figures. Errors
    from the prepayment itself (e.g. an amount above the tranche's remaining
    principal) propagate to the caller.
    """
    if target not in TRANCHE_KINDS:
        raise InvalidLoanInput(f"Unknown tranche: {target}")
    tranches = loan.tranches()
    if target not in tranches:
        raise InvalidLoanInput(f"Loan has no {target} tranche to prepay")

    effect = compute_prepayment_effect(tranches[target], request, as_of, benchmarks)
    summary = _summarize(tranches, as_of, benchmarks)
    summary.tranche_payments[target] = effect.new_payment
    summary.combined_monthly_payment = sum(summary.tranche_payments.values(), ZERO)
    summary.combined_remaining_principal -= effect.amount
    if summary.progress is not None:
        summary.progress = compute_composite_progress(
            [
                term if kind != target else _with_remaining(term, effect.new_principal)
                for kind, term in tranches.items()
                if kind not in summary.errors
            ],
            as_of,
        )
    summary.prepayment_target = target
    summary.prepayment_effect = effect
    summary.combined_savings = effect.total_cost_saved
    return summary


def _with_remaining(term: LoanTerm, remaining: Decimal) -> LoanTerm:
    return replace(term, principal_remaining=remaining)
