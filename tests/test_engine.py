from __future__ import annotations

import math
from datetime import date
from decimal import Decimal

import pytest

from mortgage_calc.data_models import EQUAL_INSTALLMENT, EQUAL_PRINCIPAL, LoanTerm
from mortgage_calc.engine import (
    build_schedule,
    current_payment,
    monthly_payment,
    months_to_repay,
    remaining_months,
    total_interest,
)
from mortgage_calc.errors import InvalidLoanInput, InvalidRate, InvalidTerm, PaymentTooLowToAmortize


def test_annuity_payment_known_case():
    payment = monthly_payment(Decimal("2000000"), Decimal("4.9"), 240, EQUAL_INSTALLMENT)
    # 2m @ 4.9 % over 20 years ~ 13,089 per month
    assert math.isclose(float(payment), 13088.9, rel_tol=1e-3)


def test_annuity_payment_reamortizes_to_zero():
    principal = Decimal("2000000")
    months = 240
    payment = monthly_payment(principal, Decimal("4.9"), months, EQUAL_INSTALLMENT)
    rate = Decimal("4.9") / 100 / 12
    balance = principal
    for _ in range(months):
        balance = balance * (1 + rate) - payment
    assert abs(balance) < Decimal("0.01")


def test_zero_rate_is_straight_line():
    principal = Decimal("120000")
    assert monthly_payment(principal, Decimal("0"), 7, EQUAL_INSTALLMENT) == principal / 7
    assert monthly_payment(principal, Decimal("0"), 7, EQUAL_PRINCIPAL) == principal / 7


def test_equal_principal_reports_current_period():
    payment = monthly_payment(Decimal("120000"), Decimal("6"), 120, EQUAL_PRINCIPAL)
    # 1,000 principal + 0.5 % of 120,000 interest
    assert payment == Decimal("1600")


def test_matured_loan_pays_nothing():
    assert monthly_payment(Decimal("50000"), Decimal("4"), 0, EQUAL_INSTALLMENT) == 0
    assert monthly_payment(Decimal("50000"), Decimal("4"), -3, EQUAL_PRINCIPAL) == 0


def test_negative_rate_rejected():
    with pytest.raises(InvalidRate):
        monthly_payment(Decimal("50000"), Decimal("-0.5"), 12, EQUAL_INSTALLMENT)


def test_unknown_style_rejected():
    with pytest.raises(InvalidLoanInput):
        monthly_payment(Decimal("50000"), Decimal("4"), 12, "balloon")


def test_remaining_months_and_current_payment(provident_term, as_of):
    assert remaining_months(provident_term, as_of) == 180
    assert remaining_months(provident_term, date(2041, 6, 1)) == 0
    expected = monthly_payment(Decimal("1000000"), Decimal("3.25"), 180, EQUAL_INSTALLMENT)
    assert current_payment(provident_term, as_of) == expected


def test_current_payment_of_matured_loan_is_zero(provident_term):
    assert current_payment(provident_term, date(2040, 1, 1)) == 0


def test_total_interest_closed_forms():
    principal = Decimal("120000")
    assert total_interest(principal, Decimal("6"), 120, EQUAL_PRINCIPAL) == Decimal("36300")
    payment = monthly_payment(principal, Decimal("6"), 120, EQUAL_INSTALLMENT)
    assert total_interest(principal, Decimal("6"), 120, EQUAL_INSTALLMENT) == payment * 120 - principal
    assert total_interest(principal, Decimal("0"), 120, EQUAL_PRINCIPAL) == 0


def test_schedule_balances_down_to_zero():
    schedule, summary = build_schedule(
        Decimal("200000"), Decimal("4"), 300, EQUAL_INSTALLMENT, start_date=date(2025, 2, 1)
    )
    assert len(schedule) == 300
    assert schedule[-1].ending_balance == 0
    assert schedule[0].date == date(2025, 2, 1)
    assert summary["end_date"] == "2050-01"
    assert math.isclose(summary["first_payment"], summary["last_payment"], rel_tol=1e-6)


def test_equal_principal_schedule_declines():
    schedule, summary = build_schedule(Decimal("120000"), Decimal("6"), 120, EQUAL_PRINCIPAL)
    payments = [entry.payment for entry in schedule]
    assert payments == sorted(payments, reverse=True)
    assert schedule[0].payment == Decimal("1600")
    assert schedule[-1].ending_balance == 0
    assert math.isclose(summary["total_interest"], 36300.0, rel_tol=1e-9)


def test_schedule_requires_positive_term():
    with pytest.raises(InvalidTerm):
        build_schedule(Decimal("1000"), Decimal("3"), 0, EQUAL_INSTALLMENT)


def test_months_to_repay_inverts_annuity():
    principal = Decimal("300000")
    payment = monthly_payment(principal, Decimal("5"), 360, EQUAL_INSTALLMENT)
    months = months_to_repay(principal, Decimal("5") / 100 / 12, payment)
    assert math.isclose(float(months), 360.0, abs_tol=1e-6)


def test_months_to_repay_rejects_interest_only_payment():
    with pytest.raises(PaymentTooLowToAmortize):
        months_to_repay(Decimal("100000"), Decimal("0.01"), Decimal("1000"))
