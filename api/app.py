"""Flask REST API exposing the budget ledger services."""

from __future__ import annotations

from typing import Any, Dict, Optional

from flask import Flask, Response, jsonify, request
from flask_cors import CORS
from werkzeug.exceptions import HTTPException

from ledger_core.exceptions import (
    DuplicateAccountError,
    InternalError,
    InvalidCredentialsError,
    RecordNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from ledger_core.models import Period
from ledger_core.services import BudgetService
from ledger_core.settings import Settings
from ledger_core.storage import Storage


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[Storage] = None,
    service: Optional[BudgetService] = None,
) -> Flask:
    app = Flask(__name__)

    settings = settings or Settings.from_env()
    if settings.is_dev:
        CORS(app, resources={r"/*": {"origins": "*"}}, supports_credentials=True)
    elif settings.allowed_origins:
        CORS(app, resources={r"/*": {"origins": list(settings.allowed_origins)}}, supports_credentials=True)
    else:
        CORS(app)

    budget = service or BudgetService.from_settings(settings, storage)

    def _success(payload: Any, status: int = 200):
        if status == 204:
            return ("", status)
        return jsonify(payload), status

    def _handle_error(exc: Exception, status: int, message: str, *, details: bool = True):
        app.logger.info("%s: %s", message, exc)
        body: Dict[str, Any] = {"error": message}
        if details:
            body["details"] = str(exc)
        return jsonify(body), status

    @app.errorhandler(ValidationError)
    def handle_validation_error(exc: ValidationError):
        return _handle_error(exc, 400, "Validation error")

    @app.errorhandler(InvalidCredentialsError)
    def handle_invalid_credentials(exc: InvalidCredentialsError):
        return _handle_error(exc, 401, "Invalid email or password", details=False)

    @app.errorhandler(UnauthorizedError)
    def handle_unauthorized(exc: UnauthorizedError):
        response, status = _handle_error(exc, 401, "Unauthorized", details=False)
        response.headers["WWW-Authenticate"] = "Bearer"
        return response, status

    @app.errorhandler(RecordNotFoundError)
    def handle_not_found(exc: RecordNotFoundError):
        return _handle_error(exc, 404, "Record not found", details=False)

    @app.errorhandler(DuplicateAccountError)
    def handle_duplicate(exc: DuplicateAccountError):
        return _handle_error(exc, 409, "Account already exists", details=False)

    @app.errorhandler(InternalError)
    def handle_internal_error(exc: InternalError):
        return jsonify({"error": "Internal error"}), 500

    @app.errorhandler(Exception)
    def handle_unexpected(exc: Exception):
        if isinstance(exc, HTTPException):
            return exc
        app.logger.exception("Unhandled error")
        return jsonify({"error": "Internal error"}), 500

    def _json_body() -> Dict[str, Any]:
        if not request.is_json:
            raise ValidationError("Request content must be application/json")
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            raise ValidationError("Malformed JSON body")
        return data

    def _bearer_token() -> Optional[str]:
        header = request.headers.get("Authorization", "")
        scheme, _, token = header.partition(" ")
        if scheme.lower() != "bearer" or not token.strip():
            return None
        return token.strip()

    def _authenticated_token() -> Optional[str]:
        # Credentials are checked before the body or query is looked at.
        token = _bearer_token()
        budget.authenticate(token)
        return token

    def _period() -> Optional[Period]:
        start = request.args.get("start")
        end = request.args.get("end")
        if not start and not end:
            return None
        if not start or not end:
            raise ValidationError("start and end must be provided together")
        return Period.parse(start, end)

    @app.post("/accounts")
    def sign_up():
        payload = _json_body()
        account_id = budget.sign_up(
            payload.get("email"), payload.get("password"), payload.get("timezone")
        )
        return _success({"id": account_id}, 201)

    @app.post("/sessions")
    def log_in():
        payload = _json_body()
        token = budget.log_in(payload.get("email"), payload.get("password"))
        return _success(
            {
                "token": token,
                "token_type": "Bearer",
                "expires_in": budget.token_lifetime_seconds,
            }
        )

    @app.get("/transactions")
    def list_transactions():
        token = _authenticated_token()
        entries = budget.list_transactions(token, _period())
        return _success({"items": [entry.to_dict() for entry in entries]})

    @app.post("/transactions")
    def record_transaction():
        token = _authenticated_token()
        payload = _json_body()
        entry_id = budget.record_transaction(
            token,
            payload.get("amount"),
            payload.get("category"),
            payload.get("timestamp"),
        )
        return _success({"id": entry_id}, 201)

    @app.delete("/transactions/<entry_id>")
    def delete_transaction(entry_id: str):
        budget.delete_transaction(_bearer_token(), entry_id)
        return _success({}, 204)

    @app.get("/transactions/export.csv")
    def export_csv():
        token = _authenticated_token()
        period = _period() or budget.current_period(token)
        body = budget.export_csv(token, period)
        filename = f"transactions-{period.start.date()}-to-{period.end.date()}.csv"
        return Response(
            body,
            mimetype="text/csv",
            headers={"Content-Disposition": f'attachment; filename="{filename}"'},
        )

    @app.get("/summary")
    def summary():
        token = _authenticated_token()
        result = budget.get_summary(token, _period())
        return _success(result.to_dict())

    @app.get("/categories")
    def list_categories():
        return _success({"items": budget.list_categories(_bearer_token())})

    return app
