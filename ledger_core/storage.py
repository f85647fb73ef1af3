"""Persistence utilities for the budget ledger core services."""

from __future__ import annotations

import json
import threading
from pathlib import Path
from typing import Any, Dict, Iterable, List, Protocol

from .exceptions import PersistenceError


class Storage(Protocol):
    """Record storage consumed by the credential store and the ledger."""

    def load(self, resource: str) -> List[Dict[str, Any]]:
        ...

    def save(self, resource: str, records: Iterable[Dict[str, Any]]) -> None:
        ...

    def resources(self, prefix: str) -> List[str]:
        ...


class JSONStorage:
    """Simple file-based JSON storage with crash-safe writes."""

    def __init__(self, base_path: Path) -> None:
        self._base_path = base_path
        self._base_path.mkdir(parents=True, exist_ok=True)

    def load(self, resource: str) -> List[Dict[str, Any]]:
        path = self._base_path / resource
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except json.JSONDecodeError as exc:
            raise PersistenceError(f"Corrupted JSON data in {path}") from exc
        except OSError as exc:
            raise PersistenceError(f"Unable to read from {path}") from exc

        if not isinstance(payload, list):
            raise PersistenceError(f"Expected list payload in {path}")
        return payload

    def save(self, resource: str, records: Iterable[Dict[str, Any]]) -> None:
        path = self._base_path / resource
        temp_path = path.with_suffix(path.suffix + ".tmp")
        try:
            with temp_path.open("w", encoding="utf-8") as handle:
                json.dump(list(records), handle, indent=2)
                handle.flush()
            # Use replace for atomic move on POSIX; ensures crash-safe persistence.
            temp_path.replace(path)
        except OSError as exc:
            raise PersistenceError(f"Unable to write to {path}") from exc

    def resources(self, prefix: str) -> List[str]:
        return sorted(
            path.name for path in self._base_path.glob(f"{prefix}*.json") if path.is_file()
        )

    @property
    def base_path(self) -> Path:
        return self._base_path


class MemoryStorage:
    """In-process storage keeping JSON-encoded copies of each resource."""

    def __init__(self) -> None:
        self._resources: Dict[str, str] = {}
        self._lock = threading.Lock()

    def load(self, resource: str) -> List[Dict[str, Any]]:
        with self._lock:
            encoded = self._resources.get(resource)
        if encoded is None:
            return []
        return json.loads(encoded)

    def save(self, resource: str, records: Iterable[Dict[str, Any]]) -> None:
        try:
            encoded = json.dumps(list(records))
        except (TypeError, ValueError) as exc:
            raise PersistenceError(f"Records for {resource} are not serialisable") from exc
        with self._lock:
            self._resources[resource] = encoded

    def resources(self, prefix: str) -> List[str]:
        with self._lock:
            return sorted(name for name in self._resources if name.startswith(prefix))
