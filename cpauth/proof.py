"""Chaum-Pedersen proof of equality of discrete logarithms.

The prover knows ``x`` with ``y1 = g^x`` and ``y2 = h^x`` (mod ``p``). One
protocol run is:

1. commit: the prover picks a nonce ``k`` and sends ``r1 = g^k``, ``r2 = h^k``;
2. challenge: the verifier answers with a random ``c``;
3. response: the prover sends ``s = k - c*x (mod q)`` and the verifier checks
   ``g^s * y1^c == r1`` and ``h^s * y2^c == r2``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from .crypto import PublicParameters, mod_normalize, mod_pow, random_in_range


@dataclass
class Commitment:
    """First protocol message together with the nonce that produced it."""

    r1: int
    r2: int
    nonce: int
    spent: bool = False


def compute_registration_values(params: PublicParameters, x: int) -> Tuple[int, int]:
    return mod_pow(params.g, x, params.p), mod_pow(params.h, x, params.p)


def compute_commitment(params: PublicParameters, k: int) -> Tuple[int, int]:
    return mod_pow(params.g, k, params.p), mod_pow(params.h, k, params.p)


def compute_response(k: int, c: int, x: int, q: int) -> int:
    # k - c*x is usually negative; normalise the full-precision difference.
    return mod_normalize(k - c * x, q)


def new_nonce(params: PublicParameters) -> int:
    return random_in_range(2, params.q - 2)


def new_challenge(params: PublicParameters) -> int:
    return random_in_range(2, params.q - 1)


def verify(
    params: PublicParameters,
    y1: int,
    y2: int,
    r1: int,
    r2: int,
    c: int,
    s: int,
) -> bool:
    """Return whether ``(r1, r2, c, s)`` is an accepting transcript for ``(y1, y2)``."""

    part1 = mod_normalize(mod_pow(params.g, s, params.p) * mod_pow(y1, c, params.p), params.p)
    part2 = mod_normalize(mod_pow(params.h, s, params.p) * mod_pow(y2, c, params.p), params.p)
    return part1 == r1 and part2 == r2


class ChaumPedersenProver:
    """Client-side prover holding the password-derived secret."""

    def __init__(self, params: PublicParameters, secret: int) -> None:
        if secret <= 0:
            raise ValueError("Secret must be a positive integer")
        self.params = params
        self.secret = secret

    def registration(self) -> Tuple[int, int]:
        return compute_registration_values(self.params, self.secret)

    def commit(self) -> Commitment:
        nonce = new_nonce(self.params)
        r1, r2 = compute_commitment(self.params, nonce)
        return Commitment(r1=r1, r2=r2, nonce=nonce)

    def respond(self, commitment: Commitment, challenge: int) -> int:
        if not 0 <= challenge < self.params.q:
            raise ValueError("Challenge outside of the subgroup order")
        # Answering two challenges with one nonce reveals the secret.
        if commitment.spent:
            raise ValueError("Commitment already answered")
        commitment.spent = True
        return compute_response(commitment.nonce, challenge, self.secret, self.params.q)


__all__ = [
    "ChaumPedersenProver",
    "Commitment",
    "compute_commitment",
    "compute_registration_values",
    "compute_response",
    "new_challenge",
    "new_nonce",
    "verify",
]
