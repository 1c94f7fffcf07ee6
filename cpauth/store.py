"""Storage backends for identity records and in-flight challenges.

Every value crosses this boundary as a hex string; the protocol layers convert
to integers on their side.
"""

from __future__ import annotations

import json
import logging
import os
import threading
from abc import ABC, abstractmethod
from typing import Dict, Optional, Tuple

from .errors import StorageFailure

logger = logging.getLogger(__name__)

MEMORY_URL = "memory://"


class AuthStore(ABC):
    """Key-value contract the session coordinator persists through."""

    @abstractmethod
    def exists_identity(self, auth_id: str) -> bool: ...

    @abstractmethod
    def put_identity(self, auth_id: str, y1: str, y2: str) -> None: ...

    @abstractmethod
    def put_identity_if_absent(self, auth_id: str, y1: str, y2: str) -> bool:
        """Write the identity only if none exists, atomically; return whether it was written."""

    @abstractmethod
    def get_identity(self, auth_id: str) -> Optional[Tuple[str, str]]: ...

    @abstractmethod
    def put_pending(self, auth_id: str, r1: str, r2: str, c: str) -> None:
        """Insert or overwrite the pending challenge for ``auth_id``."""

    @abstractmethod
    def get_pending(self, auth_id: str) -> Optional[Tuple[str, str, str]]: ...

    @abstractmethod
    def delete_pending(self, auth_id: str) -> None: ...


class MemoryStore(AuthStore):
    """Process-local store, suitable for tests and single-process servers."""

    def __init__(self) -> None:
        self._identities: Dict[str, Tuple[str, str]] = {}
        self._pending: Dict[str, Tuple[str, str, str]] = {}
        self._lock = threading.Lock()

    def exists_identity(self, auth_id: str) -> bool:
        with self._lock:
            return auth_id in self._identities

    def put_identity(self, auth_id: str, y1: str, y2: str) -> None:
        with self._lock:
            self._identities[auth_id] = (y1, y2)

    def put_identity_if_absent(self, auth_id: str, y1: str, y2: str) -> bool:
        with self._lock:
            if auth_id in self._identities:
                return False
            self._identities[auth_id] = (y1, y2)
            return True

    def get_identity(self, auth_id: str) -> Optional[Tuple[str, str]]:
        with self._lock:
            return self._identities.get(auth_id)

    def put_pending(self, auth_id: str, r1: str, r2: str, c: str) -> None:
        with self._lock:
            self._pending[auth_id] = (r1, r2, c)

    def get_pending(self, auth_id: str) -> Optional[Tuple[str, str, str]]:
        with self._lock:
            return self._pending.get(auth_id)

    def delete_pending(self, auth_id: str) -> None:
        with self._lock:
            self._pending.pop(auth_id, None)


class JSONFileStore(AuthStore):
    """Persist identities and pending challenges in a single JSON document."""

    def __init__(self, path: str) -> None:
        self.path = path
        self._lock = threading.Lock()

    def _load(self) -> Dict[str, Dict[str, Dict[str, str]]]:
        # The file is created by the first write.
        if not os.path.exists(self.path):
            return {"identities": {}, "pending": {}}
        try:
            with open(self.path, "r", encoding="utf-8") as handle:
                payload = json.load(handle)
        except (OSError, json.JSONDecodeError) as exc:
            logger.error("Failed to read store %s: %s", self.path, exc)
            raise StorageFailure(f"Cannot read store at {self.path}") from exc
        if not isinstance(payload, dict):
            raise StorageFailure(f"Store at {self.path} is not a JSON object")
        for section in ("identities", "pending"):
            if not isinstance(payload.setdefault(section, {}), dict):
                raise StorageFailure(f"Store section '{section}' has an unexpected shape")
        return payload

    def _save(self, payload: Dict[str, Dict[str, Dict[str, str]]]) -> None:
        tmp_path = f"{self.path}.tmp"
        try:
            with open(tmp_path, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
            os.replace(tmp_path, self.path)
        except OSError as exc:
            logger.error("Failed to write store %s: %s", self.path, exc)
            raise StorageFailure(f"Cannot write store at {self.path}") from exc

    @staticmethod
    def _fields(row: object, names: Tuple[str, ...]) -> Tuple[str, ...]:
        if not isinstance(row, dict) or not all(isinstance(row.get(name), str) for name in names):
            raise StorageFailure(f"Stored row is missing one of {', '.join(names)}")
        return tuple(row[name] for name in names)

    def exists_identity(self, auth_id: str) -> bool:
        with self._lock:
            return auth_id in self._load()["identities"]

    def put_identity(self, auth_id: str, y1: str, y2: str) -> None:
        with self._lock:
            payload = self._load()
            payload["identities"][auth_id] = {"y1": y1, "y2": y2}
            self._save(payload)

    def put_identity_if_absent(self, auth_id: str, y1: str, y2: str) -> bool:
        with self._lock:
            payload = self._load()
            if auth_id in payload["identities"]:
                return False
            payload["identities"][auth_id] = {"y1": y1, "y2": y2}
            self._save(payload)
            return True

    def get_identity(self, auth_id: str) -> Optional[Tuple[str, str]]:
        with self._lock:
            row = self._load()["identities"].get(auth_id)
        if row is None:
            return None
        y1, y2 = self._fields(row, ("y1", "y2"))
        return y1, y2

    def put_pending(self, auth_id: str, r1: str, r2: str, c: str) -> None:
        with self._lock:
            payload = self._load()
            payload["pending"][auth_id] = {"r1": r1, "r2": r2, "c": c}
            self._save(payload)

    def get_pending(self, auth_id: str) -> Optional[Tuple[str, str, str]]:
        with self._lock:
            row = self._load()["pending"].get(auth_id)
        if row is None:
            return None
        r1, r2, c = self._fields(row, ("r1", "r2", "c"))
        return r1, r2, c

    def delete_pending(self, auth_id: str) -> None:
        with self._lock:
            payload = self._load()
            if payload["pending"].pop(auth_id, None) is not None:
                self._save(payload)


def open_store(url: str) -> AuthStore:
    """Open ``memory://`` as a ``MemoryStore`` and anything else as a JSON file path."""

    if url == MEMORY_URL:
        return MemoryStore()
    return JSONFileStore(url)


__all__ = ["AuthStore", "JSONFileStore", "MEMORY_URL", "MemoryStore", "open_store"]
