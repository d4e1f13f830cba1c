from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from mortgage_calc.settings import DEFAULT_DATABASE_URL, load_settings
from mortgage_calc.utils import add_months, months_between, parse_amount, parse_percent, parse_year_month


def test_defaults_when_environment_is_empty() -> None:
    settings = load_settings({})
    assert settings.benchmarks.lpr_5y == Decimal("3.60")
    assert settings.benchmarks.lpr_5y_plus == Decimal("3.85")
    assert settings.database_url == DEFAULT_DATABASE_URL
    assert settings.max_loans_per_user == 10
    assert settings.log_file is None


def test_environment_overrides() -> None:
    settings = load_settings(
        {
            "MORTGAGE_CALC_LPR_5Y": "3.5",
            "MORTGAGE_CALC_LPR_5Y_PLUS": "3.95",
            "MORTGAGE_CALC_DATABASE_URL": "sqlite://",
            "MORTGAGE_CALC_MAX_LOANS_PER_USER": "3",
            "LOG_LEVEL": "DEBUG",
        }
    )
    assert settings.benchmarks.lpr_5y == Decimal("3.5")
    assert settings.benchmarks.lpr_5y_plus == Decimal("3.95")
    assert settings.database_url == "sqlite://"
    assert settings.max_loans_per_user == 3
    assert settings.log_level == "DEBUG"


def test_invalid_numbers_name_the_variable() -> None:
    with pytest.raises(ValueError, match="MORTGAGE_CALC_LPR_5Y"):
        load_settings({"MORTGAGE_CALC_LPR_5Y": "abc"})
    with pytest.raises(ValueError, match="MORTGAGE_CALC_MAX_LOANS_PER_USER"):
        load_settings({"MORTGAGE_CALC_MAX_LOANS_PER_USER": "ten"})


def test_environment_read_when_no_mapping_given(monkeypatch) -> None:
    monkeypatch.setenv("MORTGAGE_CALC_LPR_5Y_PLUS", "4.2")
    assert load_settings().benchmarks.lpr_5y_plus == Decimal("4.2")


def test_amount_suffixes() -> None:
    assert parse_amount("500k") == Decimal("500000")
    assert parse_amount("150w") == Decimal("1500000")
    assert parse_amount("2m") == Decimal("2000000")
    assert parse_amount("1,250,000") == Decimal("1250000")
    with pytest.raises(ValueError):
        parse_amount("lots")
    with pytest.raises(ValueError):
        parse_amount("nan")


def test_percent_and_dates() -> None:
    assert parse_percent("4.9%") == Decimal("4.9")
    assert parse_year_month("2025-03") == date(2025, 3, 1)
    with pytest.raises(ValueError):
        parse_year_month("March")
    assert months_between(date(2020, 1, 1), date(2050, 1, 1)) == 360
    assert months_between(date(2025, 6, 1), date(2025, 1, 1)) == -5
    assert add_months(date(2024, 1, 31), 1) == date(2024, 2, 29)
