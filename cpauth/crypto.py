"""Arithmetic helpers and the public parameter set for Chaum-Pedersen proofs."""

from __future__ import annotations

import hashlib
import re
import secrets
from dataclasses import dataclass
from functools import lru_cache
from typing import Dict, Union

from .constants import G, H_SEED, P, Q, TOKEN_BYTES
from .errors import MalformedInput

_HEX = re.compile(r"^(0[xX])?[0-9a-fA-F]+\Z")


def mod_pow(base: int, exponent: int, modulus: int) -> int:
    """Compute ``base ** exponent % modulus`` by square-and-multiply.

    The result always lies in ``[0, modulus)``, negative bases included.
    """

    if modulus < 1:
        raise ValueError("Modulus must be at least 1")
    if exponent < 0:
        raise ValueError("Exponent must be nonnegative")
    if modulus == 1:
        return 0

    result = 1
    base = base % modulus
    while exponent > 0:
        if exponent & 1:
            result = result * base % modulus
        exponent >>= 1
        base = base * base % modulus
    return (result + modulus) % modulus


def mod_normalize(value: int, modulus: int) -> int:
    """Map any integer, negative or not, into ``[0, modulus)``."""

    return ((value % modulus) + modulus) % modulus


def random_in_range(low: int, high: int) -> int:
    """Return a uniformly random integer in ``[low, high)`` from the OS CSPRNG."""

    if high <= low:
        raise ValueError(f"Empty range [{low}, {high})")
    return low + secrets.randbelow(high - low)


@dataclass(frozen=True)
class PublicParameters:
    """Group modulus ``p``, subgroup order ``q`` and the generators ``g`` and ``h``."""

    p: int
    q: int
    g: int
    h: int

    def validate(self) -> "PublicParameters":
        if self.q < 3 or (self.p - 1) % self.q != 0:
            raise ValueError("Subgroup order must divide p - 1")
        for name, generator in (("g", self.g), ("h", self.h)):
            if not 1 < generator < self.p:
                raise ValueError(f"Generator {name} outside of (1, p)")
            if mod_pow(generator, self.q, self.p) != 1:
                raise ValueError(f"Generator {name} does not lie in the order-q subgroup")
        if self.g == self.h:
            raise ValueError("Generators must be distinct")
        return self

    def is_element(self, value: int) -> bool:
        """Return whether ``value`` is a member of the order-``q`` subgroup."""

        return 1 <= value < self.p and mod_pow(value, self.q, self.p) == 1

    def to_dict(self) -> Dict[str, str]:
        return {"p": to_hex(self.p), "q": to_hex(self.q), "g": to_hex(self.g), "h": to_hex(self.h)}

    @staticmethod
    def from_dict(data: Dict[str, str]) -> "PublicParameters":
        return PublicParameters(
            p=from_hex(data["p"]),
            q=from_hex(data["q"]),
            g=from_hex(data["g"]),
            h=from_hex(data["h"]),
        ).validate()


def _derive_second_generator(p: int, seed: bytes) -> int:
    # Squaring a hash output lands in the quadratic residues, so nobody knows log_g(h).
    digest = hashlib.blake2b(seed, digest_size=64).digest()
    candidate = int.from_bytes(digest, "big") % p
    h = mod_pow(candidate, 2, p)
    if h <= 1:
        raise ValueError("Degenerate second generator, change the seed")
    return h


@lru_cache(maxsize=None)
def default_parameters() -> PublicParameters:
    """Return the process-wide 2048-bit parameter set, built on first use."""

    return PublicParameters(p=P, q=Q, g=G, h=_derive_second_generator(P, H_SEED)).validate()


def derive_secret(password: Union[str, bytes]) -> int:
    """Decode raw password bytes (big-endian) into the prover's secret."""

    raw = password.encode("utf-8") if isinstance(password, str) else password
    secret = int.from_bytes(raw, "big")
    # An empty or all-NUL password decodes to 0, which makes y1 = y2 = 1.
    if secret == 0:
        raise MalformedInput("Password must contain a nonzero byte")
    return secret


def hash_username(username: str) -> str:
    """Derive the stable identity id for a username."""

    return hashlib.sha256(username.encode("utf-8")).hexdigest()


def random_token() -> str:
    return secrets.token_urlsafe(TOKEN_BYTES)


def to_hex(value: int) -> str:
    return format(value, "x")


def from_hex(text: str, field: str = "value") -> int:
    """Parse a hex-encoded nonnegative integer, raising ``MalformedInput`` otherwise."""

    if not isinstance(text, str) or not _HEX.match(text):
        raise MalformedInput(f"{field} must be a hex string")
    return int(text, 16)


__all__ = [
    "PublicParameters",
    "default_parameters",
    "derive_secret",
    "from_hex",
    "hash_username",
    "mod_normalize",
    "mod_pow",
    "random_in_range",
    "random_token",
    "to_hex",
]
