"""Account records, signup and login verification."""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone
from typing import Callable, Dict, Optional
from uuid import uuid4
from zoneinfo import ZoneInfo

import bcrypt

from .exceptions import (
    DuplicateAccountError,
    InvalidCredentialsError,
    PersistenceError,
    RecordNotFoundError,
    ValidationError,
)
from .locks import KeyedLock
from .models import Account
from .settings import Settings
from .storage import Storage
from .validators import normalize_email, validate_optional_timezone, validate_password

logger = logging.getLogger(__name__)


class CredentialStore:
    """Owns account records and checks login credentials."""

    def __init__(
        self,
        storage: Storage,
        settings: Settings,
        resource: str = "accounts.json",
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._storage = storage
        self._settings = settings
        self._resource = resource
        self._clock = clock
        self._accounts: Dict[str, Account] = {}
        self._by_email: Dict[str, str] = {}
        self._email_locks = KeyedLock()
        self._write_lock = threading.Lock()
        self._dummy_hash: Optional[bytes] = None
        self.load()

    def create_account(self, email: object, password: object, timezone_name: object = None) -> str:
        normalized = normalize_email(email)
        secret = validate_password(password)
        zone = validate_optional_timezone(timezone_name)
        if normalized in self._by_email:
            raise DuplicateAccountError(f"An account already exists for {normalized}")
        password_hash = self._hash(secret).decode("ascii")

        with self._email_locks.hold(normalized):
            if normalized in self._by_email:
                raise DuplicateAccountError(f"An account already exists for {normalized}")
            account = Account(
                id=str(uuid4()),
                email=normalized,
                password_hash=password_hash,
                created_at=self._clock(),
                timezone=zone,
            )
            with self._write_lock:
                self._accounts[account.id] = account
                try:
                    self._persist()
                except PersistenceError:
                    del self._accounts[account.id]
                    raise
                self._by_email[normalized] = account.id

        logger.info("Created account %s", account.id)
        return account.id

    def verify_credentials(self, email: object, password: object) -> str:
        try:
            normalized = normalize_email(email)
        except ValidationError:
            normalized = None
        candidate = password.encode("utf-8") if isinstance(password, str) else b""

        account_id = self._by_email.get(normalized) if normalized else None
        account = self._accounts.get(account_id) if account_id else None
        if account is None:
            # Pay for one hash check so unknown emails cost the same as wrong passwords.
            self._check(candidate, self._get_dummy_hash())
            raise InvalidCredentialsError("Invalid email or password")
        if not self._check(candidate, account.password_hash.encode("ascii")):
            raise InvalidCredentialsError("Invalid email or password")
        return account.id

    def get(self, account_id: str) -> Account:
        try:
            return self._accounts[account_id]
        except KeyError as exc:
            raise RecordNotFoundError(f"Account {account_id} not found") from exc

    def timezone_for(self, account_id: str) -> ZoneInfo:
        account = self.get(account_id)
        return ZoneInfo(account.timezone or self._settings.default_timezone)

    def load(self) -> None:
        raw_records = self._storage.load(self._resource)
        accounts = [Account.from_dict(payload) for payload in raw_records]
        self._accounts = {account.id: account for account in accounts}
        self._by_email = {account.email: account.id for account in accounts}

    def __len__(self) -> int:
        return len(self._accounts)

    # Internal helpers -----------------------------------------------------
    def _persist(self) -> None:
        self._storage.save(
            self._resource, [account.to_dict() for account in self._accounts.values()]
        )

    def _hash(self, password: str) -> bytes:
        salt = bcrypt.gensalt(rounds=self._settings.bcrypt_rounds)
        return bcrypt.hashpw(password.encode("utf-8"), salt)

    def _get_dummy_hash(self) -> bytes:
        if self._dummy_hash is None:
            self._dummy_hash = self._hash(uuid4().hex)
        return self._dummy_hash

    @staticmethod
    def _check(candidate: bytes, hashed: bytes) -> bool:
        if not candidate or len(candidate) > 72:
            bcrypt.checkpw(b"-", hashed)
            return False
        return bcrypt.checkpw(candidate, hashed)
