"""
fusionswap: Canonical JSON Encoding - RFC 8785 (JCS)

This is the ONLY canonicalization permitted in fusionswap.
Journal signing, journal chaining and order-hash derivation MUST use this module.

RFC 8785: https://www.rfc-editor.org/rfc/rfc8785
"""

import hashlib
from typing import Any, Dict

try:
    import jcs as _jcs
except ImportError as exc:
    raise ImportError(
        "fusionswap requires the 'jcs' package for RFC 8785 compliance.\n"
        "Install with: pip install jcs\n"
        f"Original error: {exc}"
    ) from exc


def canonicalize(obj: dict) -> bytes:
    """
    Encode a dict to RFC 8785 canonical JSON bytes.

    Output is deterministic regardless of key insertion order.
    All values must be JSON-primitive (str, int, float, bool, None, list, dict).
    Bytes must be hex-encoded by the caller.

    Returns:
        UTF-8 encoded canonical JSON bytes, suitable for signing.
    """
    return _jcs.canonicalize(obj)


def canonical_hash(obj: dict) -> str:
    """
    SHA-256 of the RFC 8785 canonical form.

    Used for causal_hash chaining in the event journal.

    Returns:
        Lowercase hex-encoded SHA-256 digest (64 characters).
    """
    return hashlib.sha256(canonicalize(obj)).hexdigest()


def order_hash_for(terms: Dict[str, Any]) -> bytes:
    """
    Derive a 32-byte order hash from an order's terms.

    Amounts are stringified before encoding so u64 values survive the
    JSON number range. Bytes values are hex-encoded.
    """
    normalized: Dict[str, Any] = {}
    for key, value in terms.items():
        if isinstance(value, bool) or value is None:
            normalized[key] = value
        elif isinstance(value, int):
            normalized[key] = str(value)
        elif isinstance(value, (bytes, bytearray)):
            normalized[key] = bytes(value).hex()
        elif isinstance(value, (list, tuple)):
            normalized[key] = [
                bytes(v).hex() if isinstance(v, (bytes, bytearray)) else str(v)
                for v in value
            ]
        else:
            normalized[key] = str(value)
    return hashlib.sha256(canonicalize(normalized)).digest()
