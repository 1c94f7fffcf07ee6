"""Server-side state machine driving registration and challenge/response logins."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Optional, Union

from . import proof
from .crypto import PublicParameters, from_hex, hash_username, random_token, to_hex
from .errors import MalformedInput, NoPendingChallenge, StorageFailure, UnknownIdentity
from .registry import IdentityRegistry
from .store import AuthStore

logger = logging.getLogger(__name__)

_AUTH_ID = re.compile(r"^[0-9a-f]{64}$")


@dataclass(frozen=True)
class RegistrationAck:
    auth_id: str
    outcome: str = field(default="registered", init=False)


@dataclass(frozen=True)
class ChallengeIssued:
    auth_id: str
    challenge: int
    outcome: str = field(default="challenge_issued", init=False)


@dataclass(frozen=True)
class NotRegistered:
    outcome: str = field(default="not_registered", init=False)


@dataclass(frozen=True)
class SessionGranted:
    session_token: str
    outcome: str = field(default="verified", init=False)


@dataclass(frozen=True)
class WrongCredentials:
    outcome: str = field(default="wrong_credentials", init=False)


ChallengeOutcome = Union[ChallengeIssued, NotRegistered]
VerifyOutcome = Union[SessionGranted, WrongCredentials]


@dataclass(frozen=True)
class PendingChallenge:
    r1: int
    r2: int
    challenge: int


def _short(auth_id: str) -> str:
    return auth_id[:12]


class SessionCoordinator:
    """Map identities to their registration values and single-use challenges.

    The coordinator keeps no state of its own between calls: identity records
    and pending challenges live in the ``AuthStore`` and are looked up by the
    identity id on every request.
    """

    def __init__(self, params: PublicParameters, store: AuthStore) -> None:
        self.params = params
        self.store = store
        self.registry = IdentityRegistry(store)

    def _require_element(self, value: int, name: str) -> int:
        if not self.params.is_element(value):
            raise MalformedInput(f"{name} is not an element of the order-q subgroup")
        return value

    def register(self, username: str, y1: int, y2: int) -> RegistrationAck:
        self._require_element(y1, "y1")
        self._require_element(y2, "y2")
        auth_id = hash_username(username)
        created = self.registry.put(auth_id, y1, y2)
        # The caller gets the same acknowledgement either way.
        logger.info("Registration for %s (%s)", _short(auth_id), "created" if created else "unchanged")
        return RegistrationAck(auth_id=auth_id)

    def begin_challenge(self, username: str, r1: int, r2: int) -> ChallengeOutcome:
        self._require_element(r1, "r1")
        self._require_element(r2, "r2")
        auth_id = hash_username(username)
        if not self.registry.exists(auth_id):
            logger.info("Challenge refused for unregistered identity %s", _short(auth_id))
            return NotRegistered()

        challenge = proof.new_challenge(self.params)
        self.store.put_pending(auth_id, to_hex(r1), to_hex(r2), to_hex(challenge))
        logger.info("Challenge issued for %s", _short(auth_id))
        return ChallengeIssued(auth_id=auth_id, challenge=challenge)

    def pending(self, auth_id: str) -> Optional[PendingChallenge]:
        row = self.store.get_pending(auth_id)
        if row is None:
            return None
        try:
            r1, r2, challenge = (from_hex(value) for value in row)
        except ValueError as exc:
            raise StorageFailure(f"Pending challenge for {_short(auth_id)} holds non-hex values") from exc
        return PendingChallenge(r1=r1, r2=r2, challenge=challenge)

    def verify(self, auth_id: str, s: int) -> VerifyOutcome:
        if not 0 <= s < self.params.q:
            raise MalformedInput("s must lie in [0, q)")
        if not _AUTH_ID.match(auth_id):
            raise NoPendingChallenge("Unknown or garbled auth id")

        record = self.registry.get(auth_id)
        if record is None:
            raise UnknownIdentity(f"No identity registered under {_short(auth_id)}")
        pending = self.pending(auth_id)
        if pending is None:
            raise NoPendingChallenge(f"No pending challenge for {_short(auth_id)}")

        # Consume before checking so a challenge can never be answered twice.
        self.store.delete_pending(auth_id)

        if proof.verify(
            self.params,
            record.y1,
            record.y2,
            pending.r1,
            pending.r2,
            pending.challenge,
            s,
        ):
            logger.info("Verification succeeded for %s", _short(auth_id))
            return SessionGranted(session_token=random_token())
        logger.warning("Verification failed for %s", _short(auth_id))
        return WrongCredentials()


__all__ = [
    "ChallengeIssued",
    "ChallengeOutcome",
    "NotRegistered",
    "PendingChallenge",
    "RegistrationAck",
    "SessionCoordinator",
    "SessionGranted",
    "VerifyOutcome",
    "WrongCredentials",
]
