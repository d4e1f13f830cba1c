"""Output helpers for the mortgage calculator.

This module provides simple functions to render payments, progress,
prepayment effects, composite summaries and schedules in a tabular text
format. We rely only on built-in printing and string formatting.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Dict, Iterable, Optional

from .data_models import (
    CompositeSummary,
    ConversionResult,
    LoanProgress,
    PrepaymentEffect,
    ScheduleEntry,
)
from .errors import Outcome

POLICY_LABELS = {
    "reduce_payment": "Reduce payment",
    "shorten_term": "Shorten term",
    "custom_payment": "Custom payment",
}


def print_payment(payment: Decimal, rate: Decimal, months: int) -> None:
    print(f"Annual rate        : {rate:.4f}%")
    print(f"Remaining months   : {months}")
    print(f"Monthly payment    : {payment:.2f}")


def print_progress(progress: LoanProgress) -> None:
    """Print the time and principal progress of a loan."""
    print("Progress")
    print("-" * 72)
    print(f"Total months       : {progress.total_months}")
    print(f"Elapsed months     : {progress.elapsed_months}")
    print(f"Remaining months   : {progress.remaining_months}")
    print(f"Time progress      : {progress.time_progress_percent:.2f}%")
    print(f"Principal original : {progress.principal_original:.2f}")
    print(f"Principal paid     : {progress.principal_paid:.2f}")
    print(f"Principal progress : {progress.principal_progress_percent:.2f}%")
    print("-" * 72)


def print_prepayment_effect(effect: PrepaymentEffect) -> None:
    print(POLICY_LABELS.get(effect.policy, effect.policy))
    print("-" * 72)
    print(f"Prepayment         : {effect.amount:.2f}")
    print(f"Fee                : {effect.fee:.2f}")
    print(f"Principal          : {effect.old_principal:.2f} -> {effect.new_principal:.2f}")
    print(f"Monthly payment    : {effect.old_payment:.2f} -> {effect.new_payment:.2f}")
    print(f"Payment change     : {effect.payment_change:+.2f}")
    print(f"Remaining months   : {effect.old_remaining_months} -> {effect.new_remaining_months}")
    if effect.months_saved:
        print(f"Term reduction     : {effect.months_saved} months")
    print(f"Interest saved     : {effect.interest_saved:.2f}")
    print(f"Total cost saved   : {effect.total_cost_saved:.2f}")
    print("-" * 72)


def print_prepayment_effects(outcomes: Dict[str, Outcome[PrepaymentEffect]]) -> None:
    """Print every evaluated policy; failed policies show their error."""
    for policy, outcome in outcomes.items():
        if outcome.ok:
            print_prepayment_effect(outcome.value)
        else:
            print(POLICY_LABELS.get(policy, policy))
            print("-" * 72)
            print(f"Not available      : {outcome.error}")
            print("-" * 72)


def print_composite(summary: CompositeSummary) -> None:
    print("Combination loan")
    print("=" * 72)
    for kind, payment in summary.tranche_payments.items():
        print(f"{kind.capitalize():19s}: {payment:.2f}")
    for kind, message in summary.errors.items():
        print(f"{kind.capitalize():19s}: error - {message}")
    print(f"Combined payment   : {summary.combined_monthly_payment:.2f}")
    print(f"Combined remaining : {summary.combined_remaining_principal:.2f}")
    if summary.prepayment_effect is not None:
        print(f"Prepaid tranche    : {summary.prepayment_target}")
        print(f"Combined savings   : {summary.combined_savings:.2f}")
    print("=" * 72)
    if summary.progress is not None:
        print_progress(summary.progress)


def print_conversion(result: ConversionResult) -> None:
    print("Commercial to provident")
    print("-" * 72)
    print(f"Converted amount   : {result.amount:.2f}")
    print(f"Fee                : {result.fee:.2f}")
    print(f"Commercial payment : {result.old_commercial_payment:.2f} -> {result.remaining_commercial_payment:.2f}")
    print(f"Provident payment  : {result.provident_payment:.2f}")
    print(f"Next month payment : {result.next_month_payment:.2f}")
    print(f"Payment change     : {result.payment_change:+.2f}")
    print(f"Total savings      : {result.total_savings:.2f}")
    print("-" * 72)


def print_schedule_summary(summary: Dict[str, object]) -> None:
    print("Summary")
    print("-" * 72)
    print(f"Principal          : {summary['principal']:.2f}")
    print(f"Total interest     : {summary['total_interest']:.2f}")
    print(f"Total paid         : {summary['total_paid']:.2f}")
    print(f"First payment      : {summary['first_payment']:.2f}")
    print(f"Last payment       : {summary['last_payment']:.2f}")
    print(f"Payments           : {summary['payments_made']}")
    if summary.get("end_date"):
        print(f"End date           : {summary['end_date']}")
    print("-" * 72)


def print_schedule(schedule: Iterable[ScheduleEntry], limit: Optional[int] = None) -> None:
    """Print the amortization schedule as a simple table."""
    headers = ["Period", "Date", "StartBal", "Payment", "Principal", "Interest", "EndBal"]
    print("\t".join(headers))
    for index, entry in enumerate(schedule):
        if limit is not None and index >= limit:
            break
        row = [
            str(entry.period),
            entry.date.strftime("%Y-%m") if entry.date else "",
            f"{entry.starting_balance:.2f}",
            f"{entry.payment:.2f}",
            f"{entry.principal_payment:.2f}",
            f"{entry.interest_payment:.2f}",
            f"{entry.ending_balance:.2f}",
        ]
        print("\t".join(row))
