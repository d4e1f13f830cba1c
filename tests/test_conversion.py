from __future__ import annotations

from dataclasses import replace
from decimal import Decimal

import pytest

from mortgage_calc.conversion import compute_conversion
from mortgage_calc.data_models import COMMERCIAL, EQUAL_INSTALLMENT, ConversionRequest
from mortgage_calc.engine import monthly_payment
from mortgage_calc.errors import ExceedsRemainingPrincipal, InvalidTerm


@pytest.fixture
def commercial(provident_term):
    return replace(provident_term, kind=COMMERCIAL, fixed_rate=Decimal("4.9"))


def test_converting_to_cheaper_provident_loan_saves(commercial, as_of):
    request = ConversionRequest(amount=Decimal("300000"), provident_rate=Decimal("3.1"), term_months=180)
    result = compute_conversion(commercial, request, as_of)
    assert result.provident_payment == monthly_payment(
        Decimal("300000"), Decimal("3.1"), 180, EQUAL_INSTALLMENT
    )
    assert result.next_month_payment == result.remaining_commercial_payment + result.provident_payment
    assert result.payment_change < 0
    assert result.total_savings > 0
    assert result.fee == 0


def test_conversion_fee_reduces_savings(commercial, as_of):
    free = compute_conversion(
        commercial, ConversionRequest(amount=Decimal("300000"), provident_rate=Decimal("3.1"), term_months=180), as_of
    )
    charged = compute_conversion(
        commercial,
        ConversionRequest(
            amount=Decimal("300000"),
            provident_rate=Decimal("3.1"),
            term_months=180,
            fee_rate_percent=Decimal("0.5"),
        ),
        as_of,
    )
    assert charged.fee == Decimal("1500")
    assert charged.total_savings == free.total_savings - Decimal("1500")


def test_conversion_amount_capped_by_remaining(commercial, as_of):
    request = ConversionRequest(amount=Decimal("1000001"), provident_rate=Decimal("3.1"), term_months=180)
    with pytest.raises(ExceedsRemainingPrincipal):
        compute_conversion(commercial, request, as_of)


def test_conversion_requires_positive_term(commercial, as_of):
    request = ConversionRequest(amount=Decimal("1000"), provident_rate=Decimal("3.1"), term_months=0)
    with pytest.raises(InvalidTerm):
        compute_conversion(commercial, request, as_of)
