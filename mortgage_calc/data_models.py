"""Data models for the mortgage calculator.

This module defines dataclasses representing the entities used by the
calculator: loan tranches, composite (combination) loans, prepayment requests
and the derived results (progress, prepayment effects, composite summaries and
schedule entries). Using dataclasses makes it easy to construct, inspect and
serialize these structures.

String constants are used for the enumerated fields (rate mode, repayment
style, tranche kind, prepayment policy) so values read from forms or JSON can
be passed through unchanged once validated.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, Optional

RATE_FIXED = "fixed"
RATE_FLOATING = "floating"
RATE_MODES = (RATE_FIXED, RATE_FLOATING)

EQUAL_INSTALLMENT = "equal_installment"
EQUAL_PRINCIPAL = "equal_principal"
REPAYMENT_STYLES = (EQUAL_INSTALLMENT, EQUAL_PRINCIPAL)

COMMERCIAL = "commercial"
PROVIDENT = "provident"
TRANCHE_KINDS = (COMMERCIAL, PROVIDENT)

REDUCE_PAYMENT = "reduce_payment"
SHORTEN_TERM = "shorten_term"
CUSTOM_PAYMENT = "custom_payment"
PREPAYMENT_POLICIES = (REDUCE_PAYMENT, SHORTEN_TERM, CUSTOM_PAYMENT)


@dataclass(frozen=True)
class RateBenchmarks:
    """Current floating-rate benchmarks (annual percent).

    ``lpr_5y`` is the 5-year LPR, referenced by housing-fund (provident)
    tranches; ``lpr_5y_plus`` is the over-5-year LPR referenced by commercial
    tranches.
    """

    lpr_5y: Decimal = Decimal("3.60")
    lpr_5y_plus: Decimal = Decimal("3.85")

    def for_kind(self, kind: str) -> Decimal:
        return self.lpr_5y if kind == PROVIDENT else self.lpr_5y_plus


@dataclass(frozen=True)
class LoanTerm:
    """One loan tranche.

    Attributes
    ----------
    principal_original: Decimal
        Amount disbursed at origination.
    principal_remaining: Decimal
        Outstanding balance as of "now".
    start_date, end_date: date
        First day of the first and the final month of the loan.
    rate_mode: str
        ``"fixed"`` or ``"floating"``.
    fixed_rate: Decimal, optional
        Annual percentage for fixed-rate loans.
    floating_benchmark: Decimal, optional
        Benchmark annual percentage for floating loans. When ``None`` the
        benchmark is looked up in :class:`RateBenchmarks` by ``kind``.
    floating_adjustment_bp: Decimal
        Signed basis-point offset added to the benchmark (100 bp = 1 %).
    repayment_style: str
        ``"equal_installment"`` or ``"equal_principal"``.
    kind: str
        ``"commercial"`` or ``"provident"``.
    """

    principal_original: Decimal
    principal_remaining: Decimal
    start_date: date
    end_date: date
    rate_mode: str = RATE_FIXED
    fixed_rate: Optional[Decimal] = None
    floating_benchmark: Optional[Decimal] = None
    floating_adjustment_bp: Decimal = Decimal("0")
    repayment_style: str = EQUAL_INSTALLMENT
    kind: str = COMMERCIAL


@dataclass(frozen=True)
class CompositeLoan:
    """A combination loan: at most one commercial and one provident tranche."""

    commercial: Optional[LoanTerm] = None
    provident: Optional[LoanTerm] = None

    def tranches(self) -> Dict[str, LoanTerm]:
        present: Dict[str, LoanTerm] = {}
        if self.commercial is not None:
            present[COMMERCIAL] = self.commercial
        if self.provident is not None:
            present[PROVIDENT] = self.provident
        return present

    @property
    def is_combination(self) -> bool:
        return self.commercial is not None and self.provident is not None


@dataclass(frozen=True)
class PrepaymentRequest:
    """A what-if lump-sum prepayment applied now.

    ``target_payment`` is only used (and required) by the
    ``"custom_payment"`` policy.
    """

    amount: Decimal
    fee_rate_percent: Decimal = Decimal("0")
    policy: str = REDUCE_PAYMENT
    target_payment: Optional[Decimal] = None

    @property
    def fee(self) -> Decimal:
        return self.amount * self.fee_rate_percent / Decimal(100)


@dataclass(frozen=True)
class LoanProgress:
    total_months: int
    elapsed_months: int
    remaining_months: int
    time_progress_percent: Decimal
    principal_original: Decimal
    principal_remaining: Decimal
    principal_paid: Decimal
    principal_progress_percent: Decimal


@dataclass(frozen=True)
class PrepaymentEffect:
    """Outcome of one prepayment policy.

    ``payment_change`` is ``new_payment - old_payment`` (zero or negative for
    the reduce-payment policy). ``total_cost_saved`` is the interest saved
    minus the fee and may be negative.
    """

    policy: str
    amount: Decimal
    fee: Decimal
    old_principal: Decimal
    new_principal: Decimal
    old_payment: Decimal
    new_payment: Decimal
    payment_change: Decimal
    old_remaining_months: int
    new_remaining_months: int
    months_saved: int
    old_total_interest: Decimal
    new_total_interest: Decimal
    interest_saved: Decimal
    total_cost_saved: Decimal


@dataclass
class CompositeSummary:
    """Combined figures across the tranches of a (combination) loan.

    Tranches that could not be evaluated are listed in ``errors`` and are
    excluded from the combined totals.
    """

    tranche_payments: Dict[str, Decimal]
    combined_monthly_payment: Decimal
    combined_principal_original: Decimal
    combined_remaining_principal: Decimal
    progress: Optional[LoanProgress]
    errors: Dict[str, str] = field(default_factory=dict)
    prepayment_target: Optional[str] = None
    prepayment_effect: Optional[PrepaymentEffect] = None
    combined_savings: Decimal = Decimal("0")


@dataclass(frozen=True)
class ConversionRequest:
    """Refinance part of a commercial tranche as a provident loan."""

    amount: Decimal
    provident_rate: Decimal
    term_months: int
    repayment_style: str = EQUAL_INSTALLMENT
    fee_rate_percent: Decimal = Decimal("0")


@dataclass(frozen=True)
class ConversionResult:
    amount: Decimal
    fee: Decimal
    old_commercial_payment: Decimal
    remaining_commercial_payment: Decimal
    provident_payment: Decimal
    next_month_payment: Decimal
    payment_change: Decimal
    old_total_interest: Decimal
    new_total_interest: Decimal
    total_savings: Decimal


@dataclass
class ScheduleEntry:
    """An entry in the amortization schedule, one per month."""

    period: int
    date: Optional[date]
    starting_balance: Decimal
    payment: Decimal
    principal_payment: Decimal
    interest_payment: Decimal
    ending_balance: Decimal

