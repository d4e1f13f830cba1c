from __future__ import annotations

from dataclasses import replace
from datetime import date
from decimal import Decimal

import pytest

from mortgage_calc.data_models import (
    CUSTOM_PAYMENT,
    EQUAL_PRINCIPAL,
    REDUCE_PAYMENT,
    SHORTEN_TERM,
    PrepaymentRequest,
)
from mortgage_calc.errors import (
    ExceedsRemainingPrincipal,
    InvalidPrepayment,
    InvalidTerm,
    PaymentBelowMinimum,
)
from mortgage_calc.prepayment import compute_all_effects, compute_prepayment_effect


def _request(amount: str, policy: str = REDUCE_PAYMENT, fee: str = "0", target=None) -> PrepaymentRequest:
    return PrepaymentRequest(
        amount=Decimal(amount),
        fee_rate_percent=Decimal(fee),
        policy=policy,
        target_payment=Decimal(target) if target is not None else None,
    )


def test_reduce_payment_lowers_payment_and_saves(provident_term, as_of):
    effect = compute_prepayment_effect(provident_term, _request("200000"), as_of)
    assert effect.new_principal == Decimal("800000")
    assert effect.new_payment < effect.old_payment
    assert effect.payment_change < 0
    assert effect.new_remaining_months == effect.old_remaining_months == 180
    assert effect.months_saved == 0
    assert effect.total_cost_saved > 0
    # annuity payments scale with principal
    assert abs(effect.new_payment - effect.old_payment * Decimal("0.8")) < Decimal("0.000001")


def test_prepayment_above_remaining_principal_rejected(provident_term, as_of):
    term = replace(provident_term, principal_remaining=Decimal("500000"))
    for policy in (REDUCE_PAYMENT, SHORTEN_TERM):
        with pytest.raises(ExceedsRemainingPrincipal):
            compute_prepayment_effect(term, _request("600000", policy), as_of)


def test_non_positive_amount_rejected(provident_term, as_of):
    with pytest.raises(ExceedsRemainingPrincipal):
        compute_prepayment_effect(provident_term, _request("0"), as_of)


def test_fee_larger_than_savings_gives_negative_result(provident_term, as_of):
    effect = compute_prepayment_effect(provident_term, _request("200000", fee="50"), as_of)
    assert effect.fee == Decimal("100000")
    assert effect.interest_saved > 0
    assert effect.total_cost_saved == effect.interest_saved - effect.fee
    assert effect.total_cost_saved < 0


def test_negative_fee_rate_rejected(provident_term, as_of):
    with pytest.raises(InvalidPrepayment):
        compute_prepayment_effect(provident_term, _request("1000", fee="-1"), as_of)


def test_shorten_term_keeps_payment_and_saves_more(provident_term, as_of):
    reduce = compute_prepayment_effect(provident_term, _request("200000"), as_of)
    shorten = compute_prepayment_effect(provident_term, _request("200000", SHORTEN_TERM), as_of)
    assert shorten.new_payment == shorten.old_payment
    assert shorten.payment_change == 0
    assert 0 < shorten.new_remaining_months < 180
    assert shorten.months_saved == 180 - shorten.new_remaining_months
    assert shorten.interest_saved > reduce.interest_saved


def test_custom_payment_below_minimum_rejected(provident_term, as_of):
    with pytest.raises(PaymentBelowMinimum):
        compute_prepayment_effect(provident_term, _request("200000", CUSTOM_PAYMENT, target="5000"), as_of)


def test_custom_payment_requires_target(provident_term, as_of):
    with pytest.raises(InvalidPrepayment):
        compute_prepayment_effect(provident_term, _request("200000", CUSTOM_PAYMENT), as_of)


def test_custom_payment_above_current_finishes_sooner(provident_term, as_of):
    shorten = compute_prepayment_effect(provident_term, _request("200000", SHORTEN_TERM), as_of)
    custom = compute_prepayment_effect(provident_term, _request("200000", CUSTOM_PAYMENT, target="8000"), as_of)
    assert custom.new_payment == Decimal("8000")
    assert custom.new_remaining_months < shorten.new_remaining_months
    assert custom.interest_saved > shorten.interest_saved


def test_custom_payment_at_minimum_keeps_term(provident_term, as_of):
    reduce = compute_prepayment_effect(provident_term, _request("200000"), as_of)
    target = str(reduce.new_payment)
    custom = compute_prepayment_effect(provident_term, _request("200000", CUSTOM_PAYMENT, target=target), as_of)
    assert custom.new_remaining_months == 180


def test_equal_principal_shorten_term(provident_term, as_of):
    term = replace(provident_term, repayment_style=EQUAL_PRINCIPAL)
    reduce = compute_prepayment_effect(term, _request("200000"), as_of)
    shorten = compute_prepayment_effect(term, _request("200000", SHORTEN_TERM), as_of)
    assert reduce.new_payment < reduce.old_payment
    assert shorten.new_payment == shorten.old_payment
    assert shorten.new_remaining_months < 180
    assert shorten.total_cost_saved > reduce.total_cost_saved


def test_full_prepayment_clears_loan(provident_term, as_of):
    effect = compute_prepayment_effect(provident_term, _request("1000000", SHORTEN_TERM), as_of)
    assert effect.new_principal == 0
    assert effect.new_payment == 0
    assert effect.new_remaining_months == 0
    assert effect.interest_saved == effect.old_total_interest


def test_matured_loan_cannot_be_prepaid(provident_term):
    with pytest.raises(InvalidTerm):
        compute_prepayment_effect(provident_term, _request("1000"), date(2040, 1, 1))


def test_prepayment_does_not_modify_loan(provident_term, as_of):
    before = replace(provident_term)
    compute_prepayment_effect(provident_term, _request("200000", SHORTEN_TERM), as_of)
    assert provident_term == before


def test_all_effects_reports_each_policy(provident_term, as_of):
    outcomes = compute_all_effects(provident_term, Decimal("200000"), Decimal("0"), as_of)
    assert set(outcomes) == {REDUCE_PAYMENT, SHORTEN_TERM}
    assert all(outcome.ok for outcome in outcomes.values())

    outcomes = compute_all_effects(
        provident_term, Decimal("200000"), Decimal("0"), as_of, target_payment=Decimal("100")
    )
    assert outcomes[REDUCE_PAYMENT].ok
    assert not outcomes[CUSTOM_PAYMENT].ok
    assert isinstance(outcomes[CUSTOM_PAYMENT].error, PaymentBelowMinimum)
    with pytest.raises(PaymentBelowMinimum):
        outcomes[CUSTOM_PAYMENT].unwrap()
