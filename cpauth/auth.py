"""High level registration and authentication helpers for the prover side."""

from __future__ import annotations

from typing import Dict, Union

from .client import RemoteCoordinator
from .crypto import PublicParameters, derive_secret, to_hex
from .errors import ParameterMismatch
from .proof import ChaumPedersenProver
from .session import ChallengeIssued, SessionCoordinator, SessionGranted

Coordinator = Union[SessionCoordinator, RemoteCoordinator]


def _prover(
    coordinator: Coordinator,
    params: PublicParameters,
    password: Union[str, bytes],
) -> ChaumPedersenProver:
    # Values derived from the secret must only ever be computed in the verifier's group.
    if params != coordinator.params:
        raise ParameterMismatch("Client and coordinator use different group parameters")
    return ChaumPedersenProver(params, derive_secret(password))


def register_user(
    coordinator: Coordinator,
    params: PublicParameters,
    username: str,
    password: Union[str, bytes],
) -> Dict[str, str]:
    prover = _prover(coordinator, params, password)
    y1, y2 = prover.registration()
    ack = coordinator.register(username, y1, y2)
    return {
        "outcome": ack.outcome,
        "auth_id": ack.auth_id,
        "y1": to_hex(y1),
        "y2": to_hex(y2),
    }


def authenticate(
    coordinator: Coordinator,
    params: PublicParameters,
    username: str,
    password: Union[str, bytes],
) -> Dict[str, object]:
    """Run one commit/challenge/response exchange and report its outcome."""

    prover = _prover(coordinator, params, password)
    commitment = prover.commit()

    issued = coordinator.begin_challenge(username, commitment.r1, commitment.r2)
    if not isinstance(issued, ChallengeIssued):
        return {"outcome": issued.outcome, "success": False}

    s = prover.respond(commitment, issued.challenge)
    result = coordinator.verify(issued.auth_id, s)
    payload: Dict[str, object] = {
        "outcome": result.outcome,
        "auth_id": issued.auth_id,
        "success": isinstance(result, SessionGranted),
    }
    if isinstance(result, SessionGranted):
        payload["session_token"] = result.session_token
    return payload


__all__ = ["Coordinator", "authenticate", "register_user"]
