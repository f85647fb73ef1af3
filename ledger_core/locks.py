"""Per-key mutual exclusion used to serialise writes per email or per account."""

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Iterator


@dataclass
class _Slot:
    lock: threading.Lock = field(default_factory=threading.Lock)
    holders: int = 0


class KeyedLock:
    """Hands out one lock per key; unused locks are discarded."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._slots: Dict[str, _Slot] = {}

    @contextmanager
    def hold(self, key: str) -> Iterator[None]:
        with self._guard:
            slot = self._slots.setdefault(key, _Slot())
            slot.holders += 1
        try:
            with slot.lock:
                yield
        finally:
            with self._guard:
                slot.holders -= 1
                if slot.holders == 0:
                    del self._slots[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._slots)
