"""Framework-agnostic request surface shared by the API and the CLI."""

from __future__ import annotations

import csv
import functools
import logging
from datetime import datetime, timezone
from io import StringIO
from typing import Callable, List, Optional, TypeVar

from .aggregator import BudgetAggregator
from .credentials import CredentialStore
from .exceptions import (
    DuplicateAccountError,
    InternalError,
    InvalidCredentialsError,
    InvalidSignatureError,
    RecordNotFoundError,
    TokenExpiredError,
    UnauthorizedError,
    ValidationError,
)
from .ledger import TransactionLedger
from .models import BudgetSummary, Period, Transaction, isoformat_utc
from .settings import Settings
from .storage import JSONStorage, Storage
from .tokens import TokenService
from .validators import validate_datetime

logger = logging.getLogger(__name__)

T = TypeVar("T")

EXPECTED_ERRORS = (
    ValidationError,
    DuplicateAccountError,
    InvalidCredentialsError,
    UnauthorizedError,
    RecordNotFoundError,
)


def _opaque_internal_errors(func: Callable[..., T]) -> Callable[..., T]:
    """Let typed outcomes through; log anything else and raise an opaque InternalError."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except EXPECTED_ERRORS:
            raise
        except Exception:
            logger.exception("Unexpected failure in %s", func.__name__)
            raise InternalError("Internal error") from None

    return wrapper


class BudgetService:
    """Authenticates requests and dispatches them to the core components."""

    def __init__(
        self,
        credentials: CredentialStore,
        tokens: TokenService,
        ledger: TransactionLedger,
        aggregator: Optional[BudgetAggregator] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._credentials = credentials
        self._tokens = tokens
        self._ledger = ledger
        self._aggregator = aggregator or BudgetAggregator(ledger, credentials.timezone_for)
        self._clock = clock

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        storage: Optional[Storage] = None,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> "BudgetService":
        backend = storage if storage is not None else JSONStorage(settings.data_dir)
        credentials = CredentialStore(backend, settings, clock=clock)
        return cls(
            credentials,
            TokenService(settings, clock=clock),
            TransactionLedger(backend, settings, clock=clock),
            clock=clock,
        )

    @property
    def token_lifetime_seconds(self) -> int:
        return self._tokens.lifetime_seconds

    def _period_for(self, account_id: str, period: Optional[Period]) -> Period:
        """Default to the calendar month that is current in the account's zone."""
        if period is not None:
            return period
        zone = self._credentials.timezone_for(account_id)
        return Period.current_month(self._clock().astimezone(zone).date())

    # Public API -----------------------------------------------------------
    @_opaque_internal_errors
    def sign_up(self, email: object, password: object, timezone_name: object = None) -> str:
        """Create an identity only; clients log in separately for a token."""
        return self._credentials.create_account(email, password, timezone_name)

    @_opaque_internal_errors
    def log_in(self, email: object, password: object) -> str:
        account_id = self._credentials.verify_credentials(email, password)
        return self._tokens.issue_token(account_id)

    @_opaque_internal_errors
    def authenticate(self, token: object) -> str:
        try:
            account_id = self._tokens.validate_token(token)
        except TokenExpiredError:
            logger.info("Rejected expired token")
            raise UnauthorizedError("Unauthorized") from None
        except InvalidSignatureError:
            logger.info("Rejected token with invalid signature")
            raise UnauthorizedError("Unauthorized") from None
        try:
            self._credentials.get(account_id)
        except RecordNotFoundError:
            logger.info("Rejected token for unknown account %s", account_id)
            raise UnauthorizedError("Unauthorized") from None
        return account_id

    @_opaque_internal_errors
    def current_period(self, token: object) -> Period:
        return self._period_for(self.authenticate(token), None)

    @_opaque_internal_errors
    def record_transaction(
        self, token: object, amount: object, category: object, timestamp: object
    ) -> str:
        account_id = self.authenticate(token)
        moment = validate_datetime(timestamp, "timestamp", self._credentials.timezone_for(account_id))
        return self._ledger.record(account_id, amount, category, moment)

    @_opaque_internal_errors
    def list_transactions(self, token: object, period: Optional[Period] = None) -> List[Transaction]:
        account_id = self.authenticate(token)
        window = self._period_for(account_id, period).localize(self._credentials.timezone_for(account_id))
        return list(self._ledger.list(account_id, window))

    @_opaque_internal_errors
    def get_summary(self, token: object, period: Optional[Period] = None) -> BudgetSummary:
        account_id = self.authenticate(token)
        return self._aggregator.summarize(account_id, self._period_for(account_id, period))

    @_opaque_internal_errors
    def delete_transaction(self, token: object, entry_id: str) -> None:
        account_id = self.authenticate(token)
        try:
            self._ledger.delete(account_id, entry_id)
        except RecordNotFoundError:
            # Another account's entry must look exactly like a missing one.
            raise RecordNotFoundError("Transaction not found") from None

    @_opaque_internal_errors
    def list_categories(self, token: object) -> List[str]:
        account_id = self.authenticate(token)
        return self._ledger.categories(account_id)

    @_opaque_internal_errors
    def export_csv(self, token: object, period: Optional[Period] = None) -> str:
        account_id = self.authenticate(token)
        window = self._period_for(account_id, period).localize(self._credentials.timezone_for(account_id))
        output = StringIO()
        writer = csv.writer(output)
        writer.writerow(["id", "timestamp", "amount", "category", "recorded_at"])
        for entry in self._ledger.list(account_id, window):
            writer.writerow(
                [
                    entry.id,
                    isoformat_utc(entry.timestamp),
                    f"{entry.amount:.2f}",
                    entry.category,
                    isoformat_utc(entry.recorded_at),
                ]
            )
        return output.getvalue()
