"""Console interface for the budget ledger."""

from __future__ import annotations

import argparse
import os
import sys
from dataclasses import replace
from datetime import datetime
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import List, Optional

from ledger_core.exceptions import (
    ConfigurationError,
    DuplicateAccountError,
    InternalError,
    InvalidCredentialsError,
    RecordNotFoundError,
    UnauthorizedError,
    ValidationError,
)
from ledger_core.models import BudgetSummary, Period, Transaction
from ledger_core.services import BudgetService
from ledger_core.settings import Settings

TOKEN_ENV = "BUDGET_TRACKER_TOKEN"


def _parse_datetime(value: str) -> str:
    try:
        datetime.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(
            f"Invalid datetime '{value}'. Expected ISO format such as 2026-02-01 or 2026-02-01T09:30:00."
        ) from exc
    return value


def _parse_amount(value: str) -> str:
    try:
        amount = Decimal(value)
    except InvalidOperation as exc:
        raise argparse.ArgumentTypeError("Amount must be a numeric value") from exc
    if amount == 0:
        raise argparse.ArgumentTypeError("Amount must not be zero")
    return value


def _parse_month(value: str) -> Period:
    try:
        year, month = (int(part) for part in value.split("-", 1))
        return Period.month(year, month)
    except (ValueError, ValidationError) as exc:
        raise argparse.ArgumentTypeError(f"Invalid month '{value}'. Expected YYYY-MM.") from exc


def _format_transaction(entry: Transaction) -> str:
    data = entry.to_dict()
    return f"[{data['id']}] {data['timestamp']} {data['amount']:>12} {data['category']}"


def _format_summary(summary: BudgetSummary) -> str:
    data = summary.to_dict()
    lines = [
        f"Period: {data['period']['start']} -> {data['period']['end']}",
        f"Income:  {data['total_income']}",
        f"Expense: {data['total_expense']}",
        f"Net:     {data['net']}",
    ]
    if data["categories"]:
        lines.append("By category:")
        for item in data["categories"]:
            lines.append(f"  {item['category']:<20} {item['amount']:>12}")
    return "\n".join(lines)


def _resolve_period(args: argparse.Namespace) -> Optional[Period]:
    if args.month is not None:
        return args.month
    if args.start or args.end:
        if not (args.start and args.end):
            raise ValidationError("--start and --end must be provided together")
        return Period.parse(args.start, args.end)
    return None


def _resolve_token(args: argparse.Namespace) -> Optional[str]:
    return args.token or os.getenv(TOKEN_ENV)


def handle_command(args: argparse.Namespace, service: BudgetService) -> None:
    if args.command == "signup":
        account_id = service.sign_up(args.email, args.password, args.timezone)
        print(f"Account created: {account_id}")
    elif args.command == "login":
        print(service.log_in(args.email, args.password))
    elif args.command == "record":
        entry_id = service.record_transaction(
            _resolve_token(args), args.amount, args.category, args.timestamp
        )
        print(f"Transaction recorded: {entry_id}")
    elif args.command == "list":
        entries = service.list_transactions(_resolve_token(args), _resolve_period(args))
        if not entries:
            print("No transactions found.")
            return
        print(f"Found {len(entries)} transactions:")
        for entry in entries:
            print(_format_transaction(entry))
    elif args.command == "summary":
        summary = service.get_summary(_resolve_token(args), _resolve_period(args))
        print(_format_summary(summary))
    elif args.command == "delete":
        service.delete_transaction(_resolve_token(args), args.id)
        print(f"Transaction {args.id} deleted.")
    elif args.command == "categories":
        categories = service.list_categories(_resolve_token(args))
        print("\n".join(categories) if categories else "No categories yet.")


def _add_token(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--token", help=f"Session token (default: ${TOKEN_ENV})")


def _add_period(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--month", type=_parse_month, help="Calendar month as YYYY-MM")
    parser.add_argument("--start", type=_parse_datetime)
    parser.add_argument("--end", type=_parse_datetime)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Budget Tracker CLI")
    parser.add_argument(
        "--data-dir",
        type=Path,
        help="Directory to store JSON data (default: $BUDGET_TRACKER_DATA_DIR or ./data)",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    signup = subparsers.add_parser("signup", help="Create an account")
    signup.add_argument("email")
    signup.add_argument("password")
    signup.add_argument("--timezone", help="IANA time zone used for periods")

    login = subparsers.add_parser("login", help="Print a session token")
    login.add_argument("email")
    login.add_argument("password")

    record = subparsers.add_parser("record", help="Record income (positive) or expense (negative)")
    record.add_argument("amount", type=_parse_amount)
    record.add_argument("category")
    record.add_argument("timestamp", type=_parse_datetime)
    _add_token(record)

    list_parser = subparsers.add_parser("list", help="List transactions in a period")
    _add_period(list_parser)
    _add_token(list_parser)

    summary = subparsers.add_parser("summary", help="Summarise a period by category")
    _add_period(summary)
    _add_token(summary)

    delete = subparsers.add_parser("delete", help="Delete a transaction")
    delete.add_argument("id")
    _add_token(delete)

    categories = subparsers.add_parser("categories", help="List categories in use")
    _add_token(categories)

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = Settings.from_env()
    except ConfigurationError as exc:
        print(f"Configuration error: {exc}", file=sys.stderr)
        return 2
    if args.data_dir is not None:
        settings = replace(settings, data_dir=args.data_dir)

    try:
        service = BudgetService.from_settings(settings)
        handle_command(args, service)
    except ValidationError as exc:
        print(f"Validation error: {exc}", file=sys.stderr)
        return 1
    except (DuplicateAccountError, InvalidCredentialsError, RecordNotFoundError) as exc:
        print(str(exc), file=sys.stderr)
        return 1
    except UnauthorizedError:
        print("Unauthorized: log in again to obtain a token.", file=sys.stderr)
        return 1
    except InternalError:
        print("Internal error", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
