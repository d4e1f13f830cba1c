"""Domain errors raised by the calculator.

Every error is a ``ValueError`` subclass carrying a stable ``code`` so the CLI
and the web API can surface it as a validation message. ``attempt`` turns a
calculator call into an :class:`Outcome` so callers evaluating several
tranches or policies can report each failure without losing the others.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

T = TypeVar("T")


class CalculationError(ValueError):
    code = "calculation_error"


class InvalidRate(CalculationError):
    code = "invalid_rate"


class InvalidTerm(CalculationError):
    code = "invalid_term"


class ExceedsRemainingPrincipal(CalculationError):
    code = "exceeds_remaining_principal"


class PaymentTooLowToAmortize(CalculationError):
    code = "payment_too_low_to_amortize"


class PaymentBelowMinimum(CalculationError):
    code = "payment_below_minimum"


class InvalidPrepayment(CalculationError):
    code = "invalid_prepayment"


class InvalidLoanInput(CalculationError):
    code = "invalid_loan_input"


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """Either a computed ``value`` or the ``error`` that prevented it."""

    value: Optional[T] = None
    error: Optional[CalculationError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def attempt(fn: Callable[..., T], *args: Any, **kwargs: Any) -> Outcome[T]:
    """Call ``fn`` and capture a :class:`CalculationError` as an ``Outcome``.

    Only domain errors are captured; anything else is a bug and propagates.
    """
    try:
        return Outcome(value=fn(*args, **kwargs))
    except CalculationError as exc:
        return Outcome(error=exc)
