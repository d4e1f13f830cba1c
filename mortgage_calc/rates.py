"""Annual rate resolution for fixed and LPR-linked floating tranches."""

from __future__ import annotations

import logging
from decimal import Decimal
from typing import Optional

from .data_models import LoanTerm, RATE_FIXED, RATE_FLOATING, RateBenchmarks
from .errors import InvalidRate

logger = logging.getLogger(__name__)

BASIS_POINTS_PER_PERCENT = Decimal(100)


def resolve_annual_rate(term: LoanTerm, benchmarks: Optional[RateBenchmarks] = None) -> Decimal:
    """Return the effective annual rate (percent) of ``term``.

    Fixed tranches return ``fixed_rate`` unchanged. Floating tranches return
    the benchmark plus ``floating_adjustment_bp / 100``; the benchmark comes
    from the term itself or, when absent, from ``benchmarks`` according to the
    tranche kind.

    A rate of zero is returned as is (straight-line repayment). A negative
    rate raises :class:`InvalidRate`.
    """
    if term.rate_mode == RATE_FIXED:
        if term.fixed_rate is None:
            raise InvalidRate("Fixed-rate loan requires a fixed rate")
        rate = Decimal(term.fixed_rate)
    elif term.rate_mode == RATE_FLOATING:
        benchmark = term.floating_benchmark
        if benchmark is None:
            if benchmarks is None:
                raise InvalidRate("Floating-rate loan requires a benchmark rate")
            benchmark = benchmarks.for_kind(term.kind)
        rate = Decimal(benchmark) + Decimal(term.floating_adjustment_bp) / BASIS_POINTS_PER_PERCENT
    else:
        raise InvalidRate(f"Unknown rate mode: {term.rate_mode}")

    if rate < 0:
        logger.warning("Rejecting negative annual rate %s for %s tranche", rate, term.kind)
        raise InvalidRate(f"Annual rate must not be negative; got {rate}%")
    return rate
