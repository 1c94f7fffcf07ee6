"""Chaum-Pedersen zero-knowledge password authentication."""

from .auth import authenticate, register_user
from .client import RemoteCoordinator
from .crypto import (
    PublicParameters,
    default_parameters,
    derive_secret,
    hash_username,
    mod_normalize,
    mod_pow,
    random_in_range,
)
from .errors import (
    AuthError,
    MalformedInput,
    NoPendingChallenge,
    ParameterMismatch,
    StorageFailure,
    UnknownIdentity,
)
from .proof import (
    ChaumPedersenProver,
    Commitment,
    compute_commitment,
    compute_registration_values,
    compute_response,
    verify,
)
from .registry import IdentityRecord, IdentityRegistry
from .session import (
    ChallengeIssued,
    NotRegistered,
    RegistrationAck,
    SessionCoordinator,
    SessionGranted,
    WrongCredentials,
)
from .store import AuthStore, JSONFileStore, MemoryStore, open_store

__all__ = [
    "authenticate",
    "register_user",
    "RemoteCoordinator",
    "PublicParameters",
    "default_parameters",
    "derive_secret",
    "hash_username",
    "mod_normalize",
    "mod_pow",
    "random_in_range",
    "AuthError",
    "MalformedInput",
    "NoPendingChallenge",
    "ParameterMismatch",
    "StorageFailure",
    "UnknownIdentity",
    "ChaumPedersenProver",
    "Commitment",
    "compute_commitment",
    "compute_registration_values",
    "compute_response",
    "verify",
    "IdentityRecord",
    "IdentityRegistry",
    "ChallengeIssued",
    "NotRegistered",
    "RegistrationAck",
    "SessionCoordinator",
    "SessionGranted",
    "WrongCredentials",
    "AuthStore",
    "JSONFileStore",
    "MemoryStore",
    "open_store",
]
