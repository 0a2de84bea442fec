"""
fusionswap/core/hashlock.py

Hash lock: a 32-byte SHA-256 commitment unlocked only by its preimage.

Key contracts:
    HashLock.create(commitment)  → validates 32 bytes, not all-zero
    HashLock.from_secret(secret) → commitment = sha256(secret)
    lock.verify(secret)          → bool. Pure. Never raises for a wrong secret.
"""

import hashlib
import hmac
from dataclasses import dataclass
from typing import Union

from fusionswap.core.exceptions import InvalidCommitmentError

COMMITMENT_LENGTH = 32

_ZERO_COMMITMENT = bytes(COMMITMENT_LENGTH)


def hash_secret(secret: Union[bytes, str]) -> bytes:
    """SHA-256 digest of a secret. Strings are UTF-8 encoded first."""
    if isinstance(secret, str):
        secret = secret.encode("utf-8")
    return hashlib.sha256(secret).digest()


def validate_commitment(commitment: bytes) -> bytes:
    """Return `commitment` as bytes or raise InvalidCommitmentError."""
    if not isinstance(commitment, (bytes, bytearray)):
        raise InvalidCommitmentError(
            "Commitment must be bytes",
            {"type": type(commitment).__name__},
        )
    commitment = bytes(commitment)
    if len(commitment) == 0:
        raise InvalidCommitmentError("Commitment must not be empty")
    if len(commitment) != COMMITMENT_LENGTH:
        raise InvalidCommitmentError(
            f"Commitment must be {COMMITMENT_LENGTH} bytes",
            {"length": len(commitment)},
        )
    if commitment == _ZERO_COMMITMENT:
        raise InvalidCommitmentError("Commitment must not be all-zero")
    return commitment


@dataclass(frozen=True)
class HashLock:
    """Immutable hash commitment."""

    commitment: bytes

    @classmethod
    def create(cls, commitment: bytes) -> "HashLock":
        return cls(commitment=validate_commitment(commitment))

    @classmethod
    def from_secret(cls, secret: Union[bytes, str]) -> "HashLock":
        return cls(commitment=hash_secret(secret))

    @property
    def commitment_hex(self) -> str:
        return self.commitment.hex()

    def verify(self, secret: Union[bytes, str, None]) -> bool:
        """
        Return True iff sha256(secret) == commitment.

        Safe with any input: None, wrong types and wrong secrets return False.
        """
        if isinstance(secret, bytearray):
            secret = bytes(secret)
        if not isinstance(secret, (bytes, str)):
            return False
        return hmac.compare_digest(hash_secret(secret), self.commitment)

    def __repr__(self) -> str:
        return f"HashLock(commitment={self.commitment.hex()[:16]}...)"
