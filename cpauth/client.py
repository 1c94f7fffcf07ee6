"""HTTP client speaking to a remote ``cpauth.server`` instance."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

import httpx

from .crypto import PublicParameters, default_parameters, from_hex, to_hex
from .errors import (
    AuthError,
    MalformedInput,
    NoPendingChallenge,
    ParameterMismatch,
    StorageFailure,
    UnknownIdentity,
)
from .session import (
    ChallengeIssued,
    ChallengeOutcome,
    NotRegistered,
    RegistrationAck,
    SessionGranted,
    VerifyOutcome,
    WrongCredentials,
)

logger = logging.getLogger(__name__)

STATUS_ERRORS = {
    400: MalformedInput,
    404: UnknownIdentity,
    409: NoPendingChallenge,
    503: StorageFailure,
}

DEFAULT_TIMEOUT = 10.0


class RemoteCoordinator:
    """Drop-in stand-in for ``SessionCoordinator`` that forwards calls over HTTP.

    The group parameters are always the client's own. The server's ``/params``
    is only compared against them, once, before the first value derived from
    the secret leaves the process.
    """

    def __init__(
        self,
        base_url: str,
        *,
        params: Optional[PublicParameters] = None,
        client: Optional[httpx.Client] = None,
        timeout: float = DEFAULT_TIMEOUT,
    ) -> None:
        self.params = params or default_parameters()
        self._client = client or httpx.Client(base_url=base_url, timeout=timeout)
        self._params_checked = False

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "RemoteCoordinator":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _call(self, method: str, path: str, payload: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        try:
            response = self._client.request(method, path, json=payload)
        except httpx.HTTPError as exc:
            logger.error("%s %s failed: %s", method, path, exc)
            raise AuthError(f"Cannot reach authentication server: {exc}") from exc

        if response.is_success:
            return response.json()

        try:
            detail = response.json().get("detail", response.text)
        except ValueError:
            detail = response.text
        error = STATUS_ERRORS.get(response.status_code, AuthError)
        raise error(f"{detail} (HTTP {response.status_code})")

    def check_params(self) -> PublicParameters:
        """Confirm the server uses our group; raise ``ParameterMismatch`` otherwise."""

        if self._params_checked:
            return self.params
        advertised = self._call("GET", "/params")
        try:
            remote = {name: from_hex(advertised[name], name) for name in ("p", "q", "g", "h")}
        except (KeyError, TypeError, MalformedInput) as exc:
            raise ParameterMismatch("Server advertised malformed group parameters") from exc
        if PublicParameters(**remote) != self.params:
            logger.error("Server advertised foreign group parameters (p has %d bits)", remote["p"].bit_length())
            raise ParameterMismatch("Server group parameters differ from the client's")
        self._params_checked = True
        return self.params

    def register(self, username: str, y1: int, y2: int) -> RegistrationAck:
        self.check_params()
        body = self._call("POST", "/register", {"username": username, "y1": to_hex(y1), "y2": to_hex(y2)})
        return RegistrationAck(auth_id=body["auth_id"])

    def begin_challenge(self, username: str, r1: int, r2: int) -> ChallengeOutcome:
        self.check_params()
        body = self._call("POST", "/challenge", {"username": username, "r1": to_hex(r1), "r2": to_hex(r2)})
        if body.get("outcome") == "not_registered":
            return NotRegistered()
        return ChallengeIssued(auth_id=body["auth_id"], challenge=from_hex(body["challenge"], "challenge"))

    def verify(self, auth_id: str, s: int) -> VerifyOutcome:
        body = self._call("POST", "/verify", {"auth_id": auth_id, "s": to_hex(s)})
        if body.get("outcome") == "verified":
            return SessionGranted(session_token=body["session_token"])
        return WrongCredentials()


__all__ = ["RemoteCoordinator"]
