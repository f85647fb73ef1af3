"""Validation helpers shared across budget ledger services."""

from __future__ import annotations

import re
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, InvalidOperation, ROUND_HALF_UP
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from .exceptions import ValidationError
from .models import parse_datetime

EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")

MIN_PASSWORD_LENGTH = 8
# bcrypt only consumes the first 72 bytes of its input.
MAX_PASSWORD_BYTES = 72
MAX_CATEGORY_LENGTH = 50


def _quantize_two_decimals(amount: Decimal) -> Decimal:
    """Round the amount to two decimal places using HALF_UP rounding."""
    return amount.quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def parse_amount(raw: object, field: str = "amount") -> Decimal:
    """Convert raw input to a signed, non-zero Decimal with two fraction digits."""
    if isinstance(raw, bool) or raw is None:
        raise ValidationError(f"{field} must be a numeric value")
    try:
        amount = Decimal(str(raw).strip())
    except (InvalidOperation, TypeError) as exc:
        raise ValidationError(f"{field} must be a numeric value") from exc

    if not amount.is_finite():
        raise ValidationError(f"{field} must be a finite number")

    try:
        quantized = _quantize_two_decimals(amount)
    except InvalidOperation as exc:
        raise ValidationError(f"{field} is out of range") from exc
    if quantized == 0:
        raise ValidationError(f"{field} must not be zero")
    return quantized


def normalize_email(raw: object) -> str:
    if not isinstance(raw, str):
        raise ValidationError("email must be a string")
    email = raw.strip().lower()
    if not email:
        raise ValidationError("email cannot be empty")
    if len(email) > 254 or not EMAIL_PATTERN.fullmatch(email):
        raise ValidationError("email must be a valid address")
    return email


def validate_password(raw: object) -> str:
    if not isinstance(raw, str):
        raise ValidationError("password must be a string")
    if len(raw) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"password must be at least {MIN_PASSWORD_LENGTH} characters")
    if len(raw.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise ValidationError(f"password must be at most {MAX_PASSWORD_BYTES} bytes")
    return raw


def validate_required_str(value: object, field: str, max_length: int) -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be a string")
    trimmed = value.strip()
    if not trimmed:
        raise ValidationError(f"{field} cannot be empty")
    if len(trimmed) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return trimmed


def validate_category(value: object) -> str:
    """Categories form an open tag set; only empty or oversized tags are rejected."""
    return validate_required_str(value, "category", MAX_CATEGORY_LENGTH).lower()


def validate_timezone(value: object, field: str = "timezone") -> ZoneInfo:
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"{field} must be an IANA time zone name")
    try:
        return ZoneInfo(value.strip())
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValidationError(f"Unknown time zone: {value!r}") from exc


def validate_optional_timezone(value: object) -> Optional[str]:
    if value is None:
        return None
    return validate_timezone(value).key


def validate_datetime(value: object, field: str, default_zone: tzinfo = timezone.utc) -> datetime:
    """Return a UTC datetime; naive input is read as wall time in ``default_zone``."""
    if isinstance(value, datetime):
        dt = value
    elif isinstance(value, str):
        dt = parse_datetime(value)
    else:
        raise ValidationError(f"{field} must be a datetime or ISO 8601 string")
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=default_zone)
    return dt.astimezone(timezone.utc)
