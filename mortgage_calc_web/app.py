import logging
from datetime import date
from typing import Any, Dict, Optional
from uuid import uuid4

from flask import Flask, current_app, jsonify, request, session

from mortgage_calc.composite import aggregate, aggregate_with_prepayment
from mortgage_calc.conversion import compute_conversion
from mortgage_calc.data_models import (
    COMMERCIAL,
    EQUAL_INSTALLMENT,
    PREPAYMENT_POLICIES,
    PROVIDENT,
    CompositeLoan,
    ConversionRequest,
    PrepaymentRequest,
)
from mortgage_calc.engine import compute_progress, current_payment, remaining_months
from mortgage_calc.errors import CalculationError, InvalidLoanInput, InvalidPrepayment
from mortgage_calc.logging_config import configure_logging
from mortgage_calc.main import term_from_mapping, to_jsonable
from mortgage_calc.prepayment import compute_all_effects, compute_prepayment_effect
from mortgage_calc.rates import resolve_annual_rate
from mortgage_calc.settings import Settings, load_settings
from mortgage_calc.utils import month_start, parse_amount, parse_percent, parse_year_month
from mortgage_calc_web.loan_store import LoanStore, create_store_from_settings

logger = logging.getLogger(__name__)


def _ensure_user_token() -> str:
    token = session.get("user_token")
    if not token:
        token = uuid4().hex
        session["user_token"] = token
        session.modified = True
    return token


def _payload() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise InvalidLoanInput("Request body must be a JSON object")
    return data


def _number(data: Dict[str, Any], key: str, parser=parse_amount, default: Optional[str] = None):
    value = data.get(key, default)
    if value in (None, ""):
        raise InvalidLoanInput(f"Missing required field: {key}")
    try:
        return parser(str(value))
    except ValueError as exc:
        raise InvalidLoanInput(f"Invalid {key}: {value}") from exc


def _as_of(data: Dict[str, Any]) -> date:
    value = data.get("as_of")
    if not value:
        return month_start(date.today())
    try:
        return parse_year_month(str(value))
    except ValueError as exc:
        raise InvalidLoanInput(str(exc)) from exc


def _composite_from(data: Dict[str, Any]) -> CompositeLoan:
    commercial = data.get("commercial")
    provident = data.get("provident")
    if not commercial and not provident:
        raise InvalidLoanInput("Give at least one of commercial or provident")
    return CompositeLoan(
        commercial=term_from_mapping(commercial, COMMERCIAL) if commercial else None,
        provident=term_from_mapping(provident, PROVIDENT) if provident else None,
    )


def _prepayment_request(data: Dict[str, Any], policy: str) -> PrepaymentRequest:
    if policy not in PREPAYMENT_POLICIES:
        raise InvalidPrepayment(f"Unknown prepayment policy: {policy}")
    target = data.get("target_payment")
    return PrepaymentRequest(
        amount=_number(data, "amount"),
        fee_rate_percent=_number(data, "fee_rate", parse_percent, default="0"),
        policy=policy,
        target_payment=_number(data, "target_payment") if target not in (None, "") else None,
    )


def create_app(settings: Optional[Settings] = None, store: Optional[LoanStore] = None) -> Flask:
    """Build the JSON API.

    ``settings`` default to the environment; ``store`` defaults to a
    :class:`LoanStore` on ``settings.database_url``.
    """
    settings = settings or load_settings()
    app = Flask(__name__)
    app.secret_key = settings.secret_key
    app.config["SETTINGS"] = settings
    app.config["LOAN_STORE"] = store or create_store_from_settings(settings)

    def benchmarks():
        return current_app.config["SETTINGS"].benchmarks

    def loan_store() -> LoanStore:
        return current_app.config["LOAN_STORE"]

    @app.errorhandler(CalculationError)
    def handle_calculation_error(exc: CalculationError):
        logger.info("Rejected %s %s: %s", request.method, request.path, exc)
        return jsonify({"error": exc.code, "message": str(exc)}), 400

    @app.get("/api/benchmarks")
    def get_benchmarks():
        return jsonify(to_jsonable(benchmarks()))

    @app.post("/api/payment")
    def payment():
        data = _payload()
        term = term_from_mapping(data.get("loan"))
        as_of = _as_of(data)
        return jsonify(
            {
                "annual_rate": float(resolve_annual_rate(term, benchmarks())),
                "remaining_months": remaining_months(term, as_of),
                "monthly_payment": float(current_payment(term, as_of, benchmarks())),
            }
        )

    @app.post("/api/progress")
    def progress():
        data = _payload()
        term = term_from_mapping(data.get("loan"))
        return jsonify(to_jsonable(compute_progress(term, _as_of(data))))

    @app.post("/api/prepayment")
    def prepayment():
        data = _payload()
        term = term_from_mapping(data.get("loan"))
        as_of = _as_of(data)
        policy = data.get("policy") or "all"
        if policy == "all":
            target = data.get("target_payment")
            outcomes = compute_all_effects(
                term,
                _number(data, "amount"),
                _number(data, "fee_rate", parse_percent, default="0"),
                as_of,
                benchmarks(),
                target_payment=_number(data, "target_payment") if target not in (None, "") else None,
            )
            return jsonify({"effects": to_jsonable(outcomes)})
        effect = compute_prepayment_effect(term, _prepayment_request(data, policy), as_of, benchmarks())
        return jsonify({"effects": {policy: {"ok": True, "value": to_jsonable(effect)}}})

    @app.post("/api/composite")
    def composite():
        data = _payload()
        loan = _composite_from(data)
        as_of = _as_of(data)
        prepay = data.get("prepayment")
        if prepay:
            if not isinstance(prepay, dict):
                raise InvalidPrepayment("prepayment must be an object")
            request_ = _prepayment_request(prepay, prepay.get("policy") or "reduce_payment")
            summary = aggregate_with_prepayment(
                loan, str(prepay.get("tranche") or ""), request_, as_of=as_of, benchmarks=benchmarks()
            )
        else:
            summary = aggregate(loan.commercial, loan.provident, as_of=as_of, benchmarks=benchmarks())
        return jsonify(to_jsonable(summary))

    @app.post("/api/conversion")
    def conversion():
        data = _payload()
        term = term_from_mapping(data.get("loan"), COMMERCIAL)
        try:
            term_months = int(data.get("term_months"))
        except (TypeError, ValueError) as exc:
            raise InvalidLoanInput("term_months must be an integer") from exc
        conversion_request = ConversionRequest(
            amount=_number(data, "amount"),
            provident_rate=_number(data, "provident_rate", parse_percent),
            term_months=term_months,
            repayment_style=str(data.get("repayment_style") or EQUAL_INSTALLMENT),
            fee_rate_percent=_number(data, "fee_rate", parse_percent, default="0"),
        )
        result = compute_conversion(term, conversion_request, _as_of(data), benchmarks())
        return jsonify(to_jsonable(result))

    @app.get("/api/loans")
    def list_loans():
        user_token = _ensure_user_token()
        return jsonify({"loans": loan_store().list_loans(user_token)})

    @app.post("/api/loans")
    def add_loan():
        user_token = _ensure_user_token()
        data = _payload()
        # validate before storing; the stored record keeps the user's input
        _composite_from(data)
        loan_id = uuid4().hex
        name = str(data.get("name") or "").strip() or "Loan"
        record = {key: data[key] for key in ("commercial", "provident") if data.get(key)}
        loan_store().add_loan(user_token, loan_id, name, record)
        return jsonify({"id": loan_id, "name": name, "loan": record}), 201

    @app.delete("/api/loans/<loan_id>")
    def remove_loan(loan_id: str):
        user_token = session.get("user_token")
        if not loan_store().remove_loan(user_token, loan_id):
            return jsonify({"error": "not_found", "message": f"No loan {loan_id}"}), 404
        return "", 204

    @app.post("/api/loans/clear")
    def clear_loans():
        loan_store().clear_loans(session.get("user_token"))
        return "", 204

    @app.get("/api/loans/<loan_id>/summary")
    def loan_summary(loan_id: str):
        record = loan_store().get_loan(session.get("user_token"), loan_id)
        if record is None:
            return jsonify({"error": "not_found", "message": f"No loan {loan_id}"}), 404
        loan = _composite_from(record["loan"])
        summary = aggregate(
            loan.commercial, loan.provident, as_of=_as_of(request.args), benchmarks=benchmarks()
        )
        return jsonify({"id": loan_id, "name": record["name"], "summary": to_jsonable(summary)})

    return app


if __name__ == "__main__":
    settings = load_settings()
    configure_logging(settings.log_level, settings.log_file)
    print("Starting Mortgage Calculator API...")
    create_app(settings).run(host="0.0.0.0", port=8710, debug=True)
