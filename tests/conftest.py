from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from mortgage_calc.data_models import (
    EQUAL_INSTALLMENT,
    PROVIDENT,
    RATE_FIXED,
    LoanTerm,
)

AS_OF = date(2025, 1, 1)


@pytest.fixture
def as_of() -> date:
    return AS_OF


@pytest.fixture
def provident_term() -> LoanTerm:
    # 1,000,000 left at 3.25 % with 180 months to go as of 2025-01
    return LoanTerm(
        principal_original=Decimal("1500000"),
        principal_remaining=Decimal("1000000"),
        start_date=date(2020, 1, 1),
        end_date=date(2040, 1, 1),
        rate_mode=RATE_FIXED,
        fixed_rate=Decimal("3.25"),
        repayment_style=EQUAL_INSTALLMENT,
        kind=PROVIDENT,
    )
