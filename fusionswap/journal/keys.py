"""
fusionswap/journal/keys.py

Ed25519 signing key for the settlement journal.

    JournalKey.generate()                    → fresh random key
    JournalKey.load_or_create(path)          → PEM on disk, created on first use
    JournalKey.verify_detached(data, sig, h) → bool, needs only the public key hex

    key.public_key_hex   (@property) → 64-char lowercase hex
    key.sign(data)                   → base64url str, no padding
"""

import base64
import binascii
import logging
from pathlib import Path

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)

logger = logging.getLogger(__name__)

_SIGNATURE_LENGTH = 64


def _b64url_decode(value: str) -> bytes:
    padding = -len(value) % 4
    return base64.urlsafe_b64decode(value + "=" * padding)


class JournalKey:
    """Private key used to sign journal envelopes."""

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key = private_key
        self._public_key_hex: str = (
            private_key.public_key()
            .public_bytes(Encoding.Raw, PublicFormat.Raw)
            .hex()
        )

    @classmethod
    def generate(cls) -> "JournalKey":
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_seed(cls, seed: bytes) -> "JournalKey":
        if len(seed) != 32:
            raise ValueError(f"Ed25519 seed must be 32 bytes, got {len(seed)}")
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    @classmethod
    def from_file(cls, path: Path) -> "JournalKey":
        """
        Load a PEM private key.
        Raises FileNotFoundError if missing, ValueError if not an Ed25519 key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Key file not found: {path}")
        private_key = load_pem_private_key(path.read_bytes(), password=None)
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError(f"Key file {path} does not contain an Ed25519 private key")
        return cls(private_key)

    @classmethod
    def load_or_create(cls, path: Path) -> "JournalKey":
        path = Path(path)
        if path.exists():
            return cls.from_file(path)
        key = cls.generate()
        key.save(path)
        logger.info("Generated journal signing key at %s", path)
        return key

    @property
    def public_key_hex(self) -> str:
        return self._public_key_hex

    def sign(self, data: bytes) -> str:
        raw_sig = self._private_key.sign(data)
        return base64.urlsafe_b64encode(raw_sig).rstrip(b"=").decode("ascii")

    @staticmethod
    def verify_detached(data: bytes, signature_b64: str, public_key_hex: str) -> bool:
        """
        True iff `signature_b64` is a valid Ed25519 signature over `data`.

        Returns False for a wrong key, bad encoding or a corrupted signature.
        """
        if not isinstance(public_key_hex, str) or len(public_key_hex) != 64:
            return False
        if not isinstance(signature_b64, str):
            return False
        try:
            public_key = Ed25519PublicKey.from_public_bytes(bytes.fromhex(public_key_hex))
            raw_sig    = _b64url_decode(signature_b64)
        except (ValueError, binascii.Error):
            return False
        if len(raw_sig) != _SIGNATURE_LENGTH:
            return False
        try:
            public_key.verify(raw_sig, data)
        except InvalidSignature:
            return False
        return True

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(
            self._private_key.private_bytes(
                encoding=             Encoding.PEM,
                format=               PrivateFormat.PKCS8,
                encryption_algorithm= NoEncryption(),
            )
        )

    def __repr__(self) -> str:
        return f"JournalKey(public_key_hex={self._public_key_hex[:16]}...)"
