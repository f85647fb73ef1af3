"""Append-mostly record of income and expense entries per account."""

from __future__ import annotations

import itertools
import logging
import threading
from datetime import datetime, timezone
from decimal import Decimal
from typing import Callable, Dict, Iterator, List, Tuple
from uuid import uuid4

from .exceptions import NotOwnerError, RecordNotFoundError
from .locks import KeyedLock
from .models import Period, Transaction
from .settings import Settings
from .storage import Storage
from .validators import parse_amount, validate_category, validate_datetime

logger = logging.getLogger(__name__)

RESOURCE_PREFIX = "transactions-"


def _newest_first(entry: Transaction) -> Tuple[datetime, int]:
    return entry.timestamp, entry.sequence


class TransactionView:
    """Restartable view over one owner's entries inside a period.

    Entries are captured when the view is created; filtering and ordering
    run again on every iteration.
    """

    def __init__(self, entries: Tuple[Transaction, ...], period: Period) -> None:
        self._entries = entries
        self._period = period

    @property
    def period(self) -> Period:
        return self._period

    def __iter__(self) -> Iterator[Transaction]:
        matching = (entry for entry in self._entries if self._period.contains(entry.timestamp))
        return iter(sorted(matching, key=_newest_first, reverse=True))


class TransactionLedger:
    """Owns transaction records and serialises writes per account."""

    def __init__(
        self,
        storage: Storage,
        settings: Settings,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ) -> None:
        self._storage = storage
        self._zone = settings.zone
        self._clock = clock
        # Each owner's entries are published as an immutable tuple so reads need no lock.
        self._entries: Dict[str, Tuple[Transaction, ...]] = {}
        self._owners: Dict[str, str] = {}
        self._owner_locks = KeyedLock()
        self._sequence_lock = threading.Lock()
        self._sequence = itertools.count(1)
        self.load()

    # Public API -----------------------------------------------------------
    def record(self, owner_id: str, amount: object, category: object, timestamp: object) -> str:
        entry_amount: Decimal = parse_amount(amount, "amount")
        entry_category = validate_category(category)
        entry_timestamp = validate_datetime(timestamp, "timestamp", self._zone)

        with self._owner_locks.hold(owner_id):
            entry = Transaction(
                id=str(uuid4()),
                owner_id=owner_id,
                amount=entry_amount,
                category=entry_category,
                timestamp=entry_timestamp,
                recorded_at=self._clock(),
                sequence=self._next_sequence(),
            )
            updated = self._entries.get(owner_id, ()) + (entry,)
            self._persist(owner_id, updated)
            self._entries[owner_id] = updated
            self._owners[entry.id] = owner_id
        return entry.id

    def list(self, owner_id: str, period: Period) -> TransactionView:
        return TransactionView(self._entries.get(owner_id, ()), period.localize(self._zone))

    def get(self, owner_id: str, entry_id: str) -> Transaction:
        self._check_owner(owner_id, entry_id)
        for entry in self._entries.get(owner_id, ()):
            if entry.id == entry_id:
                return entry
        raise RecordNotFoundError(f"Transaction {entry_id} not found")

    def delete(self, owner_id: str, entry_id: str) -> None:
        self._check_owner(owner_id, entry_id)
        with self._owner_locks.hold(owner_id):
            current = self._entries.get(owner_id, ())
            remaining = tuple(entry for entry in current if entry.id != entry_id)
            if len(remaining) == len(current):
                # Deleted by a concurrent request while we waited for the lock.
                raise RecordNotFoundError(f"Transaction {entry_id} not found")
            self._persist(owner_id, remaining)
            self._entries[owner_id] = remaining
            self._owners.pop(entry_id, None)
        logger.info("Deleted transaction %s for account %s", entry_id, owner_id)

    def categories(self, owner_id: str) -> List[str]:
        return sorted({entry.category for entry in self._entries.get(owner_id, ())})

    def load(self) -> None:
        """Load every owner's ledger from persistence."""
        entries: Dict[str, Tuple[Transaction, ...]] = {}
        for resource in self._storage.resources(RESOURCE_PREFIX):
            records = [Transaction.from_dict(payload) for payload in self._storage.load(resource)]
            if records:
                records.sort(key=lambda entry: entry.sequence)
                entries[records[0].owner_id] = tuple(records)
        self._entries = entries
        self._owners = {
            entry.id: owner_id for owner_id, owned in entries.items() for entry in owned
        }
        highest = max(
            (entry.sequence for owned in entries.values() for entry in owned), default=0
        )
        self._sequence = itertools.count(highest + 1)

    # Internal helpers -----------------------------------------------------
    def _check_owner(self, owner_id: str, entry_id: str) -> None:
        actual_owner = self._owners.get(entry_id)
        if actual_owner is None:
            raise RecordNotFoundError(f"Transaction {entry_id} not found")
        if actual_owner != owner_id:
            raise NotOwnerError(f"Transaction {entry_id} not found")

    def _next_sequence(self) -> int:
        with self._sequence_lock:
            return next(self._sequence)

    def _persist(self, owner_id: str, entries: Tuple[Transaction, ...]) -> None:
        self._storage.save(
            f"{RESOURCE_PREFIX}{owner_id}.json", [entry.to_dict() for entry in entries]
        )
