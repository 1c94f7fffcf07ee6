"""FastAPI-powered Chaum-Pedersen authentication service."""

from __future__ import annotations

import logging
from typing import Literal, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from .config import Settings, configure_logging
from .crypto import PublicParameters, default_parameters, from_hex, to_hex
from .errors import AuthError, MalformedInput, NoPendingChallenge, StorageFailure, UnknownIdentity
from .session import ChallengeIssued, SessionCoordinator, SessionGranted
from .store import AuthStore, open_store

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    MalformedInput: 400,
    UnknownIdentity: 404,
    NoPendingChallenge: 409,
    StorageFailure: 503,
}


class RegisterRequest(BaseModel):
    username: str
    y1: str
    y2: str


class RegisterResponse(BaseModel):
    auth_id: str


class ChallengeRequest(BaseModel):
    username: str
    r1: str
    r2: str


class ChallengeResponse(BaseModel):
    outcome: Literal["challenge_issued", "not_registered"]
    auth_id: Optional[str] = None
    challenge: Optional[str] = None


class VerifyRequest(BaseModel):
    auth_id: str
    s: str


class VerifyResponse(BaseModel):
    outcome: Literal["verified", "wrong_credentials"]
    session_token: Optional[str] = None


class ParamsResponse(BaseModel):
    p: str
    q: str
    g: str
    h: str


class ErrorResponse(BaseModel):
    error: str
    detail: str


def error_status(exc: AuthError) -> int:
    for kind, status in ERROR_STATUS.items():
        if isinstance(exc, kind):
            return status
    return 500


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[AuthStore] = None,
    params: Optional[PublicParameters] = None,
) -> FastAPI:
    settings = settings or Settings()
    params = params or default_parameters()
    coordinator = SessionCoordinator(params, store or open_store(settings.store))

    app = FastAPI(title="CPAuth", description="Chaum-Pedersen zero-knowledge password authentication")
    app.state.coordinator = coordinator

    @app.exception_handler(AuthError)
    async def auth_error_handler(request: Request, exc: AuthError) -> JSONResponse:
        status = error_status(exc)
        if status >= 500:
            logger.error("%s %s failed: %s", request.method, request.url.path, exc)
        body = ErrorResponse(error=type(exc).__name__, detail=str(exc))
        return JSONResponse(status_code=status, content=body.model_dump())

    @app.get("/params", response_model=ParamsResponse)
    async def get_params() -> ParamsResponse:
        return ParamsResponse(**params.to_dict())

    @app.post("/register", response_model=RegisterResponse)
    async def register(request: RegisterRequest) -> RegisterResponse:
        ack = coordinator.register(
            request.username,
            from_hex(request.y1, "y1"),
            from_hex(request.y2, "y2"),
        )
        return RegisterResponse(auth_id=ack.auth_id)

    @app.post("/challenge", response_model=ChallengeResponse, response_model_exclude_none=True)
    async def begin_challenge(request: ChallengeRequest) -> ChallengeResponse:
        outcome = coordinator.begin_challenge(
            request.username,
            from_hex(request.r1, "r1"),
            from_hex(request.r2, "r2"),
        )
        if isinstance(outcome, ChallengeIssued):
            return ChallengeResponse(
                outcome=outcome.outcome,
                auth_id=outcome.auth_id,
                challenge=to_hex(outcome.challenge),
            )
        return ChallengeResponse(outcome=outcome.outcome)

    @app.post("/verify", response_model=VerifyResponse, response_model_exclude_none=True)
    async def verify(request: VerifyRequest) -> VerifyResponse:
        outcome = coordinator.verify(request.auth_id, from_hex(request.s, "s"))
        if isinstance(outcome, SessionGranted):
            return VerifyResponse(outcome=outcome.outcome, session_token=outcome.session_token)
        return VerifyResponse(outcome=outcome.outcome)

    return app


def _default_app() -> FastAPI:
    settings = Settings()
    configure_logging(settings.log_level)
    return create_app(settings)


app = _default_app()


__all__ = ["app", "create_app", "error_status"]
