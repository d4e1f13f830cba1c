"""Runtime configuration read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Mapping, Optional

from .data_models import RateBenchmarks
from .utils import decimal_from_str

DEFAULT_DATABASE_URL = "sqlite:///mortgage_calc.sqlite3"


@dataclass(frozen=True)
class Settings:
    benchmarks: RateBenchmarks = field(default_factory=RateBenchmarks)
    database_url: str = DEFAULT_DATABASE_URL
    max_loans_per_user: int = 10
    secret_key: str = "dev-secret-key"
    log_level: str = "INFO"
    log_file: Optional[str] = None


def _decimal_env(env: Mapping[str, str], name: str, default: Decimal) -> Decimal:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return decimal_from_str(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number; got {raw!r}") from exc


def _int_env(env: Mapping[str, str], name: str, default: int) -> int:
    raw = env.get(name, "").strip()
    if not raw:
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer; got {raw!r}") from exc


def load_settings(env: Optional[Mapping[str, str]] = None) -> Settings:
    """Build :class:`Settings` from ``env`` (defaults to ``os.environ``).

    Recognised variables: ``MORTGAGE_CALC_LPR_5Y``,
    ``MORTGAGE_CALC_LPR_5Y_PLUS``, ``MORTGAGE_CALC_DATABASE_URL``,
    ``MORTGAGE_CALC_MAX_LOANS_PER_USER``, ``FLASK_SECRET_KEY``, ``LOG_LEVEL``
    and ``LOG_FILE``.
    """
    if env is None:
        env = os.environ
    defaults = RateBenchmarks()
    benchmarks = RateBenchmarks(
        lpr_5y=_decimal_env(env, "MORTGAGE_CALC_LPR_5Y", defaults.lpr_5y),
        lpr_5y_plus=_decimal_env(env, "MORTGAGE_CALC_LPR_5Y_PLUS", defaults.lpr_5y_plus),
    )
    return Settings(
        benchmarks=benchmarks,
        database_url=env.get("MORTGAGE_CALC_DATABASE_URL") or DEFAULT_DATABASE_URL,
        max_loans_per_user=_int_env(env, "MORTGAGE_CALC_MAX_LOANS_PER_USER", 10),
        secret_key=env.get("FLASK_SECRET_KEY") or "dev-secret-key",
        log_level=env.get("LOG_LEVEL") or "INFO",
        log_file=env.get("LOG_FILE") or None,
    )
