from __future__ import annotations

from mortgage_calc.settings import Settings
from mortgage_calc_web.loan_store import LoanStore, create_store_from_settings


def test_store_keeps_newest_records_per_user():
    store = LoanStore("sqlite://", max_per_user=2)
    for index in range(3):
        store.add_loan("user-a", f"loan-{index}", f"Loan {index}", {"commercial": {"principal": index}})
    store.add_loan("user-b", "other", "Other", {})

    ids = [record["id"] for record in store.list_loans("user-a")]
    assert ids == ["loan-1", "loan-2"]
    assert [record["id"] for record in store.list_loans("user-b")] == ["other"]


def test_records_are_scoped_to_their_owner():
    store = LoanStore("sqlite://")
    store.add_loan("user-a", "loan", "Home", {"provident": {"rate": 3.1}})
    assert store.get_loan("user-a", "loan")["loan"] == {"provident": {"rate": 3.1}}
    assert store.get_loan("user-b", "loan") is None
    assert not store.remove_loan("user-b", "loan")
    assert store.remove_loan("user-a", "loan")
    assert store.list_loans("user-a") == []


def test_missing_user_token_is_a_no_op():
    store = create_store_from_settings(Settings(database_url="sqlite://"))
    store.add_loan("", "loan", "Home", {})
    assert store.list_loans("") == []
    store.clear_loans("")
