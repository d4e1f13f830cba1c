from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

import pytest

from mortgage_calc.data_models import COMMERCIAL, PROVIDENT, RATE_FLOATING, RateBenchmarks
from mortgage_calc.errors import InvalidRate
from mortgage_calc.rates import resolve_annual_rate


def test_fixed_rate_returned_unchanged(provident_term):
    assert resolve_annual_rate(provident_term) == Decimal("3.25")


def test_floating_rate_adds_basis_points(provident_term):
    term = replace(
        provident_term,
        rate_mode=RATE_FLOATING,
        fixed_rate=None,
        floating_benchmark=Decimal("3.85"),
        floating_adjustment_bp=Decimal("-30"),
    )
    assert resolve_annual_rate(term) == Decimal("3.55")


def test_floating_benchmark_taken_from_configuration_by_kind(provident_term):
    benchmarks = RateBenchmarks(lpr_5y=Decimal("3.5"), lpr_5y_plus=Decimal("4.0"))
    provident = replace(
        provident_term, rate_mode=RATE_FLOATING, fixed_rate=None, floating_adjustment_bp=Decimal("10")
    )
    commercial = replace(provident, kind=COMMERCIAL)
    assert provident.kind == PROVIDENT
    assert resolve_annual_rate(provident, benchmarks) == Decimal("3.6")
    assert resolve_annual_rate(commercial, benchmarks) == Decimal("4.1")


def test_floating_without_any_benchmark_rejected(provident_term):
    term = replace(provident_term, rate_mode=RATE_FLOATING, fixed_rate=None)
    with pytest.raises(InvalidRate):
        resolve_annual_rate(term)


def test_zero_rate_allowed_negative_rejected(provident_term):
    assert resolve_annual_rate(replace(provident_term, fixed_rate=Decimal("0"))) == 0
    floating = replace(
        provident_term,
        rate_mode=RATE_FLOATING,
        fixed_rate=None,
        floating_benchmark=Decimal("0.2"),
        floating_adjustment_bp=Decimal("-50"),
    )
    with pytest.raises(InvalidRate):
        resolve_annual_rate(floating)


def test_missing_fixed_rate_rejected(provident_term):
    with pytest.raises(InvalidRate):
        resolve_annual_rate(replace(provident_term, fixed_rate=None))
