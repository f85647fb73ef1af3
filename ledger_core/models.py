"""Data models for the budget ledger domain."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timezone, tzinfo
from decimal import Decimal
from typing import Any, Dict, Optional, Tuple

from .exceptions import ValidationError

__all__ = [
    "Account",
    "BudgetSummary",
    "CategoryTotal",
    "Period",
    "Transaction",
    "isoformat_utc",
    "parse_datetime",
]


def isoformat_utc(dt: datetime) -> str:
    """Return an ISO 8601 string with trailing Z for UTC-aware datetimes."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)
    iso = dt.isoformat(timespec="seconds")
    # datetime.isoformat renders +00:00 for UTC; replace with the shorter Z form.
    return iso.replace("+00:00", "Z")


def parse_datetime(value: str) -> datetime:
    """Parse ISO 8601 strings with optional trailing Z; naive results stay naive."""
    value = value.strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(value)
    except ValueError as exc:
        raise ValidationError(f"Invalid ISO 8601 datetime: {value!r}") from exc


def _parse_utc(value: str) -> datetime:
    dt = parse_datetime(value)
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass(frozen=True)
class Account:
    id: str
    email: str
    password_hash: str
    created_at: datetime
    timezone: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "password_hash": self.password_hash,
            "created_at": isoformat_utc(self.created_at),
            "timezone": self.timezone,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Account":
        return cls(
            id=data["id"],
            email=data["email"],
            password_hash=data["password_hash"],
            created_at=_parse_utc(data["created_at"]),
            timezone=data.get("timezone"),
        )


@dataclass(frozen=True)
class Transaction:
    id: str
    owner_id: str
    amount: Decimal
    category: str
    timestamp: datetime
    recorded_at: datetime
    sequence: int

    @property
    def is_income(self) -> bool:
        return self.amount > 0

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the transaction to JSON-friendly natives."""
        return {
            "id": self.id,
            "owner_id": self.owner_id,
            "amount": f"{self.amount:.2f}",
            "category": self.category,
            "timestamp": isoformat_utc(self.timestamp),
            "recorded_at": isoformat_utc(self.recorded_at),
            "sequence": self.sequence,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Transaction":
        """Hydrate a Transaction from JSON-native data."""
        return cls(
            id=data["id"],
            owner_id=data["owner_id"],
            amount=Decimal(str(data["amount"])),
            category=data["category"],
            timestamp=_parse_utc(data["timestamp"]),
            recorded_at=_parse_utc(data["recorded_at"]),
            sequence=int(data["sequence"]),
        )


def _as_datetime(value: object, field_name: str) -> datetime:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        return parse_datetime(value)
    raise ValidationError(f"{field_name} must be a date, datetime or ISO 8601 string")


@dataclass(frozen=True)
class Period:
    """Half-open window ``[start, end)``.

    Naive bounds carry no zone yet; :meth:`localize` pins them to the
    account's time zone before any comparison with stored timestamps.
    """

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if (self.start.tzinfo is None) != (self.end.tzinfo is None):
            raise ValidationError("period bounds must both be naive or both be aware")
        if self.start >= self.end:
            raise ValidationError("period start must be before period end")

    @property
    def is_naive(self) -> bool:
        return self.start.tzinfo is None

    def localize(self, zone: tzinfo) -> "Period":
        if not self.is_naive:
            return self
        return Period(self.start.replace(tzinfo=zone), self.end.replace(tzinfo=zone))

    def contains(self, moment: datetime) -> bool:
        return self.start <= moment < self.end

    def to_dict(self) -> Dict[str, Any]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}

    @classmethod
    def month(cls, year: int, month: int) -> "Period":
        if not 1 <= month <= 12:
            raise ValidationError("month must be between 1 and 12")
        start = datetime(year, month, 1)
        if month == 12:
            end = datetime(year + 1, 1, 1)
        else:
            end = datetime(year, month + 1, 1)
        return cls(start, end)

    @classmethod
    def current_month(cls, today: Optional[date] = None) -> "Period":
        current = today or date.today()
        return cls.month(current.year, current.month)

    @classmethod
    def parse(cls, start: object, end: object) -> "Period":
        return cls(_as_datetime(start, "start"), _as_datetime(end, "end"))


@dataclass(frozen=True)
class CategoryTotal:
    category: str
    amount: Decimal

    @property
    def magnitude(self) -> Decimal:
        return abs(self.amount)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category,
            "amount": f"{self.amount:.2f}",
            "magnitude": f"{self.magnitude:.2f}",
        }


@dataclass(frozen=True)
class BudgetSummary:
    period: Period
    total_income: Decimal
    total_expense: Decimal
    categories: Tuple[CategoryTotal, ...] = field(default_factory=tuple)
    entry_count: int = 0

    @property
    def net(self) -> Decimal:
        return self.total_income - self.total_expense

    def by_category(self) -> Dict[str, Decimal]:
        return {item.category: item.amount for item in self.categories}

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the summary for JSON responses and charts."""
        return {
            "period": self.period.to_dict(),
            "total_income": f"{self.total_income:.2f}",
            "total_expense": f"{self.total_expense:.2f}",
            "net": f"{self.net:.2f}",
            "entry_count": self.entry_count,
            "categories": [item.to_dict() for item in self.categories],
        }
