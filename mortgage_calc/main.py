"""Command-line interface for the mortgage calculator.

This module uses the ``click`` library to implement a multi-command
interface. Users can compute the current monthly payment, the progress of a
loan, the effect of a prepayment under each continuation policy, full
repayment schedules, combined figures for combination loans and the effect of
converting part of a commercial loan into a provident loan. Schedules can be
exported to JSON/CSV files.

It also hosts the input boundary shared with the web app: free-form text is
parsed and validated into a :class:`LoanTerm` here, so the calculator itself
only ever sees validated numbers.
"""

from __future__ import annotations

import csv
import json
import logging
import shlex
from dataclasses import fields, is_dataclass
from datetime import date
from decimal import Decimal
from pathlib import Path
from typing import Any, Callable, Dict, List, Mapping, Optional

import click

from .composite import aggregate, aggregate_with_prepayment
from .conversion import compute_conversion
from .data_models import (
    COMMERCIAL,
    CUSTOM_PAYMENT,
    EQUAL_INSTALLMENT,
    PREPAYMENT_POLICIES,
    PROVIDENT,
    RATE_FIXED,
    RATE_FLOATING,
    REPAYMENT_STYLES,
    TRANCHE_KINDS,
    CompositeLoan,
    ConversionRequest,
    LoanTerm,
    PrepaymentRequest,
    RateBenchmarks,
    ScheduleEntry,
)
from .engine import build_schedule, compute_progress, current_payment, remaining_months
from .errors import CalculationError, InvalidLoanInput, InvalidTerm, Outcome
from .formatter import (
    print_composite,
    print_conversion,
    print_payment,
    print_prepayment_effect,
    print_prepayment_effects,
    print_progress,
    print_schedule,
    print_schedule_summary,
)
from .logging_config import configure_logging
from .prepayment import compute_all_effects, compute_prepayment_effect
from .rates import resolve_annual_rate
from .settings import load_settings
from .utils import add_months, month_start, parse_amount, parse_percent, parse_year_month

logger = logging.getLogger(__name__)

MAX_SCHEDULE_ROWS = 120


def _parse(parser: Callable[[str], Any], value: Any, label: str) -> Any:
    try:
        return parser(str(value))
    except ValueError as exc:
        raise InvalidLoanInput(f"Invalid {label}: {value}") from exc


def build_term_from_options(
    principal: str,
    remaining: Optional[str],
    start_date: str,
    end_date: str,
    rate: Optional[str] = None,
    lpr_bp: Optional[str] = None,
    benchmark: Optional[str] = None,
    repayment_style: str = EQUAL_INSTALLMENT,
    kind: str = COMMERCIAL,
) -> LoanTerm:
    """Parse and validate user input into a :class:`LoanTerm`.

    ``rate`` selects a fixed-rate loan; ``lpr_bp`` (optionally with an
    explicit ``benchmark``) selects an LPR-linked floating loan. Amounts accept
    ``k``/``w``/``m`` suffixes.
    """
    principal_value = _parse(parse_amount, principal, "principal")
    remaining_value = (
        _parse(parse_amount, remaining, "remaining principal")
        if remaining not in (None, "")
        else principal_value
    )
    if principal_value <= 0:
        raise InvalidLoanInput("Principal must be positive")
    if remaining_value < 0 or remaining_value > principal_value:
        raise InvalidLoanInput("Remaining principal must be between 0 and the original principal")

    start = _parse(parse_year_month, start_date, "start date")
    end = _parse(parse_year_month, end_date, "end date")
    if end <= start:
        raise InvalidTerm(f"Loan end {end:%Y-%m} must be after its start {start:%Y-%m}")

    style = (repayment_style or EQUAL_INSTALLMENT).lower()
    if style not in REPAYMENT_STYLES:
        raise InvalidLoanInput(f"Repayment style must be one of {', '.join(REPAYMENT_STYLES)}; got {style}")
    kind = (kind or COMMERCIAL).lower()
    if kind not in TRANCHE_KINDS:
        raise InvalidLoanInput(f"Loan kind must be one of {', '.join(TRANCHE_KINDS)}; got {kind}")

    has_rate = rate not in (None, "")
    floating = lpr_bp not in (None, "") or benchmark not in (None, "")
    if has_rate and floating:
        raise InvalidLoanInput("Give either a fixed rate or an LPR adjustment, not both")
    if not has_rate and not floating:
        raise InvalidLoanInput("Either a fixed rate or an LPR adjustment is required")

    if has_rate:
        return LoanTerm(
            principal_original=principal_value,
            principal_remaining=remaining_value,
            start_date=start,
            end_date=end,
            rate_mode=RATE_FIXED,
            fixed_rate=_parse(parse_percent, rate, "rate"),
            repayment_style=style,
            kind=kind,
        )
    return LoanTerm(
        principal_original=principal_value,
        principal_remaining=remaining_value,
        start_date=start,
        end_date=end,
        rate_mode=RATE_FLOATING,
        floating_benchmark=(
            _parse(parse_percent, benchmark, "benchmark") if benchmark not in (None, "") else None
        ),
        floating_adjustment_bp=(
            _parse(parse_percent, lpr_bp, "LPR adjustment") if lpr_bp not in (None, "") else Decimal("0")
        ),
        repayment_style=style,
        kind=kind,
    )


def term_from_mapping(data: Mapping[str, Any], kind: Optional[str] = None) -> LoanTerm:
    """Build a :class:`LoanTerm` from a JSON object or form mapping."""
    if not isinstance(data, Mapping):
        raise InvalidLoanInput("Loan must be an object")
    for key in ("principal", "start_date", "end_date"):
        if data.get(key) in (None, ""):
            raise InvalidLoanInput(f"Missing required field: {key}")
    return build_term_from_options(
        str(data["principal"]),
        _optional_str(data.get("remaining_principal")),
        str(data["start_date"]),
        str(data["end_date"]),
        rate=_optional_str(data.get("rate")),
        lpr_bp=_optional_str(data.get("lpr_bp")),
        benchmark=_optional_str(data.get("benchmark")),
        repayment_style=str(data.get("repayment_style") or EQUAL_INSTALLMENT),
        kind=str(kind or data.get("kind") or COMMERCIAL),
    )


def _optional_str(value: Any) -> Optional[str]:
    return None if value in (None, "") else str(value)


def to_jsonable(value: Any) -> Any:
    """Convert calculator results into JSON-serialisable structures."""
    if isinstance(value, Outcome):
        if value.ok:
            return {"ok": True, "value": to_jsonable(value.value)}
        return {"ok": False, "error": value.error.code, "message": str(value.error)}
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, date):
        return value.strftime("%Y-%m")
    if isinstance(value, dict):
        return {str(k): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def export_to_json(path: Path, schedule: List[ScheduleEntry], summary: Dict[str, Any]) -> None:
    """Export schedule and summary to a JSON file."""
    data = {"summary": summary, "schedule": to_jsonable(schedule)}
    with path.open("w", encoding="utf-8") as f:
        json.dump(data, f, indent=2)


def export_to_csv(path: Path, schedule: List[ScheduleEntry]) -> None:
    """Export schedule to a CSV file."""
    header = [
        "Period",
        "Date",
        "Starting_Balance",
        "Payment",
        "Principal",
        "Interest",
        "Ending_Balance",
    ]
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.writer(f)
        writer.writerow(header)
        for e in schedule:
            writer.writerow(
                [
                    e.period,
                    e.date.strftime("%Y-%m") if e.date else "",
                    float(e.starting_balance),
                    float(e.payment),
                    float(e.principal_payment),
                    float(e.interest_payment),
                    float(e.ending_balance),
                ]
            )


def _as_of(value: Optional[str]) -> date:
    if not value:
        return month_start(date.today())
    try:
        return parse_year_month(value)
    except ValueError as exc:
        raise click.BadParameter(str(exc), param_hint="--as-of")


def _benchmarks(ctx: click.Context) -> RateBenchmarks:
    return ctx.obj["benchmarks"]


def _fail(exc: CalculationError) -> click.ClickException:
    return click.ClickException(f"{exc.code}: {exc}")


def term_options(f: Callable[..., Any]) -> Callable[..., Any]:
    """Attach the options describing one loan tranche to a command."""
    options = [
        click.option("--principal", "-p", "principal", required=True, help="Original loan amount (e.g. 2m, 150w)"),
        click.option("--remaining", "remaining", help="Outstanding principal today; defaults to the original amount"),
        click.option("--start-date", "-s", "start_date", required=True, help="First month of the loan (YYYY-MM)"),
        click.option("--end-date", "-e", "end_date", required=True, help="Final month of the loan (YYYY-MM)"),
        click.option("--rate", "-r", "rate", help="Fixed annual interest rate (percent)"),
        click.option("--lpr-bp", "lpr_bp", help="Floating rate: basis points added to the LPR benchmark"),
        click.option("--benchmark", "benchmark", help="Floating rate: benchmark percent (defaults to the configured LPR)"),
        click.option("--type", "repayment_style", type=click.Choice(list(REPAYMENT_STYLES)), default=EQUAL_INSTALLMENT, help="Repayment style"),
        click.option("--kind", "kind", type=click.Choice(list(TRANCHE_KINDS)), default=COMMERCIAL, help="Commercial or provident (housing fund) loan"),
        click.option("--as-of", "as_of", help="Valuation month (YYYY-MM); defaults to the current month"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


def _term(
    principal: str,
    remaining: Optional[str],
    start_date: str,
    end_date: str,
    rate: Optional[str],
    lpr_bp: Optional[str],
    benchmark: Optional[str],
    repayment_style: str,
    kind: str,
) -> LoanTerm:
    try:
        return build_term_from_options(
            principal, remaining, start_date, end_date, rate, lpr_bp, benchmark, repayment_style, kind
        )
    except CalculationError as exc:
        raise _fail(exc)


@click.group()
@click.option("--lpr-5y", "lpr_5y", help="5-year LPR (percent); overrides MORTGAGE_CALC_LPR_5Y")
@click.option("--lpr-5y-plus", "lpr_5y_plus", help="Over-5-year LPR (percent); overrides MORTGAGE_CALC_LPR_5Y_PLUS")
@click.option("--log-level", "log_level", help="Logging level (DEBUG, INFO, ...); overrides LOG_LEVEL")
@click.pass_context
def cli(ctx: click.Context, lpr_5y: Optional[str], lpr_5y_plus: Optional[str], log_level: Optional[str]) -> None:
    """A command-line mortgage calculator: payments, progress and prepayments."""
    try:
        settings = load_settings()
    except ValueError as exc:
        raise click.ClickException(str(exc))
    configure_logging(log_level or settings.log_level, settings.log_file)
    benchmarks = settings.benchmarks
    try:
        if lpr_5y:
            benchmarks = RateBenchmarks(parse_percent(lpr_5y), benchmarks.lpr_5y_plus)
        if lpr_5y_plus:
            benchmarks = RateBenchmarks(benchmarks.lpr_5y, parse_percent(lpr_5y_plus))
    except ValueError as exc:
        raise click.BadParameter(str(exc))
    ctx.ensure_object(dict)
    ctx.obj["benchmarks"] = benchmarks


@cli.command()
@term_options
@click.pass_context
def payment(ctx: click.Context, as_of: Optional[str], **term_kwargs: Any) -> None:
    """Print the current monthly payment of a loan."""
    term = _term(**term_kwargs)
    when = _as_of(as_of)
    try:
        rate = resolve_annual_rate(term, _benchmarks(ctx))
        amount = current_payment(term, when, _benchmarks(ctx))
    except CalculationError as exc:
        raise _fail(exc)
    print_payment(amount, rate, remaining_months(term, when))


@cli.command()
@term_options
def progress(as_of: Optional[str], **term_kwargs: Any) -> None:
    """Print how far along a loan is, in time and in principal."""
    term = _term(**term_kwargs)
    try:
        result = compute_progress(term, _as_of(as_of))
    except CalculationError as exc:
        raise _fail(exc)
    print_progress(result)


@cli.command()
@term_options
@click.option("--amount", "amount", required=True, help="Lump sum to prepay now")
@click.option("--fee-rate", "fee_rate", default="0", show_default=True, help="Prepayment fee (percent of the amount)")
@click.option(
    "--policy",
    "policy",
    type=click.Choice(list(PREPAYMENT_POLICIES) + ["all"]),
    default="all",
    show_default=True,
    help="Continuation policy after the prepayment",
)
@click.option("--target-payment", "target_payment", help="Monthly payment for the custom_payment policy")
@click.pass_context
def prepay(
    ctx: click.Context,
    as_of: Optional[str],
    amount: str,
    fee_rate: str,
    policy: str,
    target_payment: Optional[str],
    **term_kwargs: Any,
) -> None:
    """Show the effect of prepaying a lump sum now."""
    term = _term(**term_kwargs)
    when = _as_of(as_of)
    try:
        amount_value = _parse(parse_amount, amount, "amount")
        fee_value = _parse(parse_percent, fee_rate, "fee rate")
        target_value = _parse(parse_amount, target_payment, "target payment") if target_payment else None
        if policy == "all":
            outcomes = compute_all_effects(
                term, amount_value, fee_value, when, _benchmarks(ctx), target_payment=target_value
            )
            print_prepayment_effects(outcomes)
            return
        request = PrepaymentRequest(
            amount=amount_value,
            fee_rate_percent=fee_value,
            policy=policy,
            target_payment=target_value if policy == CUSTOM_PAYMENT else None,
        )
        effect = compute_prepayment_effect(term, request, when, _benchmarks(ctx))
    except CalculationError as exc:
        raise _fail(exc)
    print_prepayment_effect(effect)


@cli.command()
@term_options
@click.option("--output", "output", type=str, help="Output file path (.json or .csv)")
@click.option("--full", "full", is_flag=True, help=f"Print every row instead of the first {MAX_SCHEDULE_ROWS}")
@click.pass_context
def schedule(ctx: click.Context, as_of: Optional[str], output: Optional[str], full: bool, **term_kwargs: Any) -> None:
    """Compute the remaining repayment schedule from next month on."""
    term = _term(**term_kwargs)
    when = _as_of(as_of)
    try:
        rate = resolve_annual_rate(term, _benchmarks(ctx))
        entries, summary = build_schedule(
            term.principal_remaining,
            rate,
            remaining_months(term, when),
            term.repayment_style,
            start_date=add_months(when, 1),
        )
    except CalculationError as exc:
        raise _fail(exc)
    if output:
        path = Path(output)
        if path.suffix.lower() == ".json":
            export_to_json(path, entries, summary)
        elif path.suffix.lower() == ".csv":
            export_to_csv(path, entries)
        else:
            raise click.BadParameter("Unsupported output format; use .json or .csv", param_hint="--output")
        click.echo(f"Schedule exported to {path}")
        return
    print_schedule_summary(summary)
    if not full and len(entries) > MAX_SCHEDULE_ROWS:
        click.echo(f"Schedule has {len(entries)} rows; showing first {MAX_SCHEDULE_ROWS} rows.")
        print_schedule(entries, limit=MAX_SCHEDULE_ROWS)
    else:
        print_schedule(entries)


def parse_tranche_opts(opts: str, kind: str) -> LoanTerm:
    """Parse a quoted option string describing one tranche.

    For example ``"-p 100w --remaining 80w -s 2020-01 -e 2050-01 -r 3.1"``.
    """
    params: Dict[str, Optional[str]] = {
        "principal": None,
        "remaining": None,
        "start_date": None,
        "end_date": None,
        "rate": None,
        "lpr_bp": None,
        "benchmark": None,
        "repayment_style": EQUAL_INSTALLMENT,
    }
    aliases = {
        "-p": "principal",
        "--principal": "principal",
        "--remaining": "remaining",
        "-s": "start_date",
        "--start-date": "start_date",
        "-e": "end_date",
        "--end-date": "end_date",
        "-r": "rate",
        "--rate": "rate",
        "--lpr-bp": "lpr_bp",
        "--benchmark": "benchmark",
        "--type": "repayment_style",
    }
    tokens = shlex.split(opts)
    i = 0
    while i < len(tokens):
        token = tokens[i]
        if token not in aliases:
            raise click.BadParameter(f"Unknown option in {kind} tranche: {token}")
        if i + 1 >= len(tokens):
            raise click.BadParameter(f"Option {token} in {kind} tranche needs a value")
        params[aliases[token]] = tokens[i + 1]
        i += 2
    for required in ("principal", "start_date", "end_date"):
        if params[required] is None:
            raise click.BadParameter(f"{kind.capitalize()} tranche missing required option {required}")
    try:
        return build_term_from_options(kind=kind, **params)  # type: ignore[arg-type]
    except CalculationError as exc:
        raise _fail(exc)


@cli.command()
@click.option("--commercial", "commercial", help="Commercial tranche options as a quoted string")
@click.option("--provident", "provident", help="Provident tranche options as a quoted string")
@click.option("--prepay-tranche", "prepay_tranche", type=click.Choice(list(TRANCHE_KINDS)), help="Tranche receiving a prepayment")
@click.option("--amount", "amount", help="Lump sum to prepay on the selected tranche")
@click.option("--fee-rate", "fee_rate", default="0", show_default=True, help="Prepayment fee (percent of the amount)")
@click.option("--policy", "policy", type=click.Choice(list(PREPAYMENT_POLICIES)), default="reduce_payment", show_default=True)
@click.option("--target-payment", "target_payment", help="Monthly payment for the custom_payment policy")
@click.option("--as-of", "as_of", help="Valuation month (YYYY-MM); defaults to the current month")
@click.pass_context
def composite(
    ctx: click.Context,
    commercial: Optional[str],
    provident: Optional[str],
    prepay_tranche: Optional[str],
    amount: Optional[str],
    fee_rate: str,
    policy: str,
    target_payment: Optional[str],
    as_of: Optional[str],
) -> None:
    """Combine the tranches of a combination loan.

    Tranches are provided as quoted option strings, for example:

        mortgage-calc composite --commercial "-p 150w -s 2020-01 -e 2050-01 --lpr-bp -20"
            --provident "-p 60w -s 2020-01 -e 2045-01 -r 3.1"
    """
    if not commercial and not provident:
        raise click.UsageError("Give at least one of --commercial or --provident")
    loan = CompositeLoan(
        commercial=parse_tranche_opts(commercial, COMMERCIAL) if commercial else None,
        provident=parse_tranche_opts(provident, PROVIDENT) if provident else None,
    )
    when = _as_of(as_of)
    try:
        if prepay_tranche:
            if not amount:
                raise click.UsageError("--amount is required with --prepay-tranche")
            request = PrepaymentRequest(
                amount=_parse(parse_amount, amount, "amount"),
                fee_rate_percent=_parse(parse_percent, fee_rate, "fee rate"),
                policy=policy,
                target_payment=_parse(parse_amount, target_payment, "target payment") if target_payment else None,
            )
            summary = aggregate_with_prepayment(
                loan, prepay_tranche, request, as_of=when, benchmarks=_benchmarks(ctx)
            )
        else:
            summary = aggregate(loan.commercial, loan.provident, as_of=when, benchmarks=_benchmarks(ctx))
    except CalculationError as exc:
        raise _fail(exc)
    print_composite(summary)
    if summary.prepayment_effect is not None:
        print_prepayment_effect(summary.prepayment_effect)


@cli.command()
@term_options
@click.option("--amount", "amount", required=True, help="Commercial principal to convert")
@click.option("--provident-rate", "provident_rate", required=True, help="Provident annual rate (percent)")
@click.option("--provident-months", "provident_months", required=True, type=int, help="Provident loan term in months")
@click.option("--provident-type", "provident_type", type=click.Choice(list(REPAYMENT_STYLES)), default=EQUAL_INSTALLMENT)
@click.option("--fee-rate", "fee_rate", default="0", show_default=True, help="Conversion fee (percent of the amount)")
@click.pass_context
def convert(
    ctx: click.Context,
    as_of: Optional[str],
    amount: str,
    provident_rate: str,
    provident_months: int,
    provident_type: str,
    fee_rate: str,
    **term_kwargs: Any,
) -> None:
    """Show the effect of converting part of a commercial loan to a provident loan."""
    term = _term(**term_kwargs)
    try:
        request = ConversionRequest(
            amount=_parse(parse_amount, amount, "amount"),
            provident_rate=_parse(parse_percent, provident_rate, "provident rate"),
            term_months=provident_months,
            repayment_style=provident_type,
            fee_rate_percent=_parse(parse_percent, fee_rate, "fee rate"),
        )
        result = compute_conversion(term, request, _as_of(as_of), _benchmarks(ctx))
    except CalculationError as exc:
        raise _fail(exc)
    print_conversion(result)


if __name__ == "__main__":
    cli(obj={})
