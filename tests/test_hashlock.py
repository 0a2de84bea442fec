"""
tests/test_hashlock.py

HashLock laws:
    - only 32-byte, non-zero commitments are accepted
    - verify() is true for the preimage and false for anything else
    - verify() never raises
"""

import hashlib

import pytest

from fusionswap.core.exceptions import InvalidCommitmentError
from fusionswap.core.hashlock import COMMITMENT_LENGTH, HashLock, hash_secret, validate_commitment


class TestCommitmentValidation:

    def test_sha256_commitment_accepted(self):
        lock = HashLock.create(hashlib.sha256(b"s").digest())
        assert len(lock.commitment) == COMMITMENT_LENGTH

    def test_empty_commitment_rejected(self):
        with pytest.raises(InvalidCommitmentError):
            HashLock.create(b"")

    def test_all_zero_commitment_rejected(self):
        """An all-zero digest has no known preimage and would lock funds forever."""
        with pytest.raises(InvalidCommitmentError):
            HashLock.create(bytes(32))

    @pytest.mark.parametrize("length", [1, 31, 33, 64])
    def test_wrong_length_rejected(self, length):
        with pytest.raises(InvalidCommitmentError) as exc:
            HashLock.create(b"\x01" * length)
        assert exc.value.details["length"] == length

    def test_non_bytes_rejected(self):
        with pytest.raises(InvalidCommitmentError):
            validate_commitment("ab" * 16)

    def test_bytearray_normalized_to_bytes(self):
        digest = bytearray(hashlib.sha256(b"s").digest())
        assert isinstance(validate_commitment(digest), bytes)


class TestVerify:

    def test_preimage_verifies(self):
        lock = HashLock.from_secret(b"correct horse")
        assert lock.verify(b"correct horse") is True

    def test_wrong_secret_fails(self):
        lock = HashLock.from_secret(b"correct horse")
        assert lock.verify(b"battery staple") is False

    def test_str_secret_is_utf8_encoded(self):
        lock = HashLock.from_secret("sécret")
        assert lock.verify("sécret".encode("utf-8"))
        assert lock.verify("sécret")

    @pytest.mark.parametrize("bad", [None, 42, 3.5, ["a"], {"k": "v"}])
    def test_garbage_input_returns_false(self, bad):
        lock = HashLock.from_secret(b"x")
        assert lock.verify(bad) is False

    def test_commitment_is_sha256(self):
        assert hash_secret(b"abc") == hashlib.sha256(b"abc").digest()
        assert HashLock.from_secret(b"abc").commitment_hex == hashlib.sha256(b"abc").hexdigest()

    def test_hashlock_is_immutable(self):
        lock = HashLock.from_secret(b"x")
        with pytest.raises(AttributeError):
            lock.commitment = hash_secret(b"y")
