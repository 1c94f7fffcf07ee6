"""Typed failures raised by the Chaum-Pedersen authentication service."""

from __future__ import annotations


class AuthError(Exception):
    """Base class for every failure the protocol reports to its caller."""


class MalformedInput(AuthError, ValueError):
    """A field was not a hex integer, or fell outside its permitted range."""


class UnknownIdentity(AuthError):
    """No identity record exists for the supplied id."""


class NoPendingChallenge(AuthError):
    """There is no outstanding commitment/challenge for the supplied id."""


class StorageFailure(AuthError):
    """The storage backend was unreachable or returned an unexpected shape."""


class ParameterMismatch(AuthError):
    """A server advertised group parameters other than the compiled-in ones."""


__all__ = [
    "AuthError",
    "MalformedInput",
    "NoPendingChallenge",
    "ParameterMismatch",
    "StorageFailure",
    "UnknownIdentity",
]
