"""Identity registry mapping a username hash to its public verification values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from .crypto import from_hex, to_hex
from .errors import StorageFailure
from .store import AuthStore


@dataclass(frozen=True)
class IdentityRecord:
    """Long-term public values ``y1 = g^x`` and ``y2 = h^x`` of one identity."""

    auth_id: str
    y1: int
    y2: int


class IdentityRegistry:
    def __init__(self, store: AuthStore) -> None:
        self.store = store

    def exists(self, auth_id: str) -> bool:
        return self.store.exists_identity(auth_id)

    def put(self, auth_id: str, y1: int, y2: int) -> bool:
        """Store the record unless one exists; return whether it was created."""

        return self.store.put_identity_if_absent(auth_id, to_hex(y1), to_hex(y2))

    def get(self, auth_id: str) -> Optional[IdentityRecord]:
        row = self.store.get_identity(auth_id)
        if row is None:
            return None
        try:
            y1, y2 = (from_hex(value) for value in row)
        except ValueError as exc:
            raise StorageFailure(f"Identity {auth_id[:12]} holds non-hex values") from exc
        return IdentityRecord(auth_id=auth_id, y1=y1, y2=y2)


__all__ = ["IdentityRecord", "IdentityRegistry"]
