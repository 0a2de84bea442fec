"""
fusionswap/journal/models.py

Settlement Journal Data Model - v1.0

Every protocol event (auction created, order accepted, escrow withdrawn ...)
is recorded as one EventEnvelope in an append-only JSONL journal.

═══════════════════════════════════════════════════════════════════
JOURNAL CONTRACTS
═══════════════════════════════════════════════════════════════════

CONTRACT 1 - Signing
    bytes_signed = canonicalize(env.to_signing_dict())
    algorithm    = Ed25519
    encoding     = base64url, no padding

CONTRACT 2 - Chain
    causal_hash  = SHA-256(canonicalize(prev.to_chain_dict()))
    first_entry  = GENESIS_HASH ("0" * 64)

CONTRACT 3 - Timestamp
    format = YYYY-MM-DDTHH:MM:SS.mmmZ, from journal_timestamp() only

CONTRACT 4 - Nonce
    exactly 32 hex characters. Uniqueness guard, NOT ordering.

CONTRACT 5 - Vocabulary
    event_type must be an EventType constant.
    enforced at create() → ValueError; reported by validate_schema()
═══════════════════════════════════════════════════════════════════
"""

import hashlib
import re
import secrets
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Set

from fusionswap.core.canonical import canonicalize
from fusionswap.core.time import journal_timestamp


JOURNAL_VERSION = "1.0"
GENESIS_HASH    = "0" * 64

_NONCE_HEX_LENGTH      = 32
_PUBLIC_KEY_HEX_LENGTH = 64

_TIMESTAMP_RE = re.compile(
    r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$"
)


class JournalVersionError(Exception):
    """Raised when envelopes within one journal carry different versions."""
    pass


# ─────────────────────────────────────────────────────────────
# Event Vocabulary
# ─────────────────────────────────────────────────────────────

class EventType:
    AUCTION_CREATED   = "auction_created"
    AUCTION_FILLED    = "auction_filled"
    AUCTION_CANCELLED = "auction_cancelled"
    ORDER_CREATED     = "order_created"
    ORDER_ACCEPTED    = "order_accepted"
    ORDER_CANCELLED   = "order_cancelled"
    ESCROW_CREATED    = "escrow_created"
    ESCROW_WITHDRAWN  = "escrow_withdrawn"
    ESCROW_RECOVERED  = "escrow_recovered"


_VALID_EVENT_TYPES: Set[str] = {
    EventType.AUCTION_CREATED,
    EventType.AUCTION_FILLED,
    EventType.AUCTION_CANCELLED,
    EventType.ORDER_CREATED,
    EventType.ORDER_ACCEPTED,
    EventType.ORDER_CANCELLED,
    EventType.ESCROW_CREATED,
    EventType.ESCROW_WITHDRAWN,
    EventType.ESCROW_RECOVERED,
}


@dataclass
class SchemaValidationResult:
    """
    Result of EventEnvelope.validate_schema().

    bool(result) is True iff valid.
    """
    valid:  bool
    errors: List[str]

    def __bool__(self) -> bool:
        return self.valid

    def __repr__(self) -> str:
        if self.valid:
            return "SchemaValidationResult(VALID)"
        return f"SchemaValidationResult(INVALID, errors={self.errors})"


def _is_hex(value: Any, length: int) -> bool:
    if not isinstance(value, str) or len(value) != length:
        return False
    try:
        bytes.fromhex(value)
    except ValueError:
        return False
    return True


# ─────────────────────────────────────────────────────────────
# EventEnvelope
# ─────────────────────────────────────────────────────────────

@dataclass
class EventEnvelope:
    journal_version:   str
    record_id:         str
    event_type:        str
    signer_id:         str
    signer_public_key: str
    sequence:          int
    nonce:             str
    timestamp:         str
    causal_hash:       str
    payload:           Dict[str, Any]
    signature:         Optional[str] = None

    @classmethod
    def create(
        cls,
        event_type:        str,
        signer_id:         str,
        signer_public_key: str,
        sequence:          int,
        payload:           Dict[str, Any],
        prev:              Optional["EventEnvelope"] = None,
    ) -> "EventEnvelope":
        """
        Create an unsigned envelope with the correct causal_hash.

        Call .sign(key_manager) immediately after:
            env = EventEnvelope.create(...).sign(key_manager)
        """
        if event_type not in _VALID_EVENT_TYPES:
            raise ValueError(
                f"Invalid event_type '{event_type}'. "
                f"Valid: {sorted(_VALID_EVENT_TYPES)}"
            )
        if not isinstance(payload, dict):
            raise TypeError(
                f"payload must be dict, got {type(payload).__name__}"
            )
        if not isinstance(sequence, int) or sequence < 0:
            raise ValueError(
                f"sequence must be non-negative int, got {sequence!r}"
            )
        if not _is_hex(signer_public_key, _PUBLIC_KEY_HEX_LENGTH):
            raise ValueError(
                f"signer_public_key must be a {_PUBLIC_KEY_HEX_LENGTH}-char hex string"
            )

        return cls(
            journal_version=   JOURNAL_VERSION,
            record_id=         f"evt-{uuid.uuid4()}",
            event_type=        event_type,
            signer_id=         signer_id,
            signer_public_key= signer_public_key,
            sequence=          sequence,
            nonce=             secrets.token_hex(_NONCE_HEX_LENGTH // 2),
            timestamp=         journal_timestamp(),
            causal_hash=       cls._compute_causal_hash(prev),
            payload=           payload,
            signature=         None,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "EventEnvelope":
        """
        Deserialize from a JSONL line dict.

        Trusts persisted data. Callers MUST call validate_schema().
        Raises KeyError when a required field is missing.
        """
        return cls(
            journal_version=   data["journal_version"],
            record_id=         data["record_id"],
            event_type=        data["event_type"],
            signer_id=         data["signer_id"],
            signer_public_key= data["signer_public_key"],
            sequence=          data["sequence"],
            nonce=             data["nonce"],
            timestamp=         data["timestamp"],
            causal_hash=       data["causal_hash"],
            payload=           data.get("payload", {}),
            signature=         data.get("signature"),
        )

    def validate_schema(self) -> SchemaValidationResult:
        errors: List[str] = []

        if self.journal_version != JOURNAL_VERSION:
            errors.append(
                f"journal_version: expected '{JOURNAL_VERSION}', "
                f"got '{self.journal_version}'"
            )
        if self.event_type not in _VALID_EVENT_TYPES:
            errors.append(
                f"event_type '{self.event_type}' not in valid set: "
                f"{sorted(_VALID_EVENT_TYPES)}"
            )
        if not isinstance(self.record_id, str) or not self.record_id.startswith("evt-"):
            errors.append(
                f"record_id must be a string starting with 'evt-', got {self.record_id!r}"
            )
        if not isinstance(self.signer_id, str) or not self.signer_id:
            errors.append("signer_id must be a non-empty string")
        if not _is_hex(self.signer_public_key, _PUBLIC_KEY_HEX_LENGTH):
            errors.append(
                f"signer_public_key must be exactly {_PUBLIC_KEY_HEX_LENGTH} hex chars"
            )
        if isinstance(self.sequence, bool) or not isinstance(self.sequence, int) or self.sequence < 0:
            errors.append(
                f"sequence must be non-negative int, got {self.sequence!r}"
            )
        if not _is_hex(self.nonce, _NONCE_HEX_LENGTH):
            errors.append(
                f"nonce must be exactly {_NONCE_HEX_LENGTH} hex chars"
            )
        if not isinstance(self.timestamp, str) or not _TIMESTAMP_RE.match(self.timestamp):
            errors.append(
                f"timestamp {self.timestamp!r} does not match wire format "
                f"YYYY-MM-DDTHH:MM:SS.mmmZ"
            )
        if not _is_hex(self.causal_hash, 64):
            errors.append("causal_hash must be 64 hex chars")
        if not isinstance(self.payload, dict):
            errors.append(
                f"payload must be dict, got {type(self.payload).__name__}"
            )

        return SchemaValidationResult(valid=len(errors) == 0, errors=errors)

    # ── Canonical contracts ───────────────────────────────────

    def to_signing_dict(self) -> Dict[str, Any]:
        """CONTRACT 1 - every field except the signature."""
        return {
            "causal_hash":       self.causal_hash,
            "event_type":        self.event_type,
            "journal_version":   self.journal_version,
            "nonce":             self.nonce,
            "payload":           self.payload,
            "record_id":         self.record_id,
            "sequence":          self.sequence,
            "signer_id":         self.signer_id,
            "signer_public_key": self.signer_public_key,
            "timestamp":         self.timestamp,
        }

    def to_chain_dict(self) -> Dict[str, Any]:
        """CONTRACT 2 - hashed into the NEXT entry's causal_hash."""
        return self.to_signing_dict()

    def to_dict(self) -> Dict[str, Any]:
        """Full serialization including signature. JSONL persistence only."""
        d = self.to_signing_dict().copy()
        d["signature"] = self.signature
        return d

    def canonical_bytes_for_signing(self) -> bytes:
        return canonicalize(self.to_signing_dict())

    @staticmethod
    def _compute_causal_hash(prev: Optional["EventEnvelope"]) -> str:
        if prev is None:
            return GENESIS_HASH
        return hashlib.sha256(canonicalize(prev.to_chain_dict())).hexdigest()

    def expected_causal_hash_from(self, prev: Optional["EventEnvelope"]) -> str:
        return EventEnvelope._compute_causal_hash(prev)

    # ── Signing / verification ────────────────────────────────

    def sign(self, key_manager) -> "EventEnvelope":
        """Sign in place and return self."""
        self.signature = key_manager.sign(self.canonical_bytes_for_signing())
        return self

    def verify_signature(self, override_public_key_hex: Optional[str] = None) -> bool:
        """True iff the signature is valid over the current canonical bytes. Never raises."""
        if not self.signature:
            return False

        from fusionswap.journal.keys import JournalKey

        pubkey_hex = override_public_key_hex or self.signer_public_key
        return JournalKey.verify_detached(
            self.canonical_bytes_for_signing(), self.signature, pubkey_hex
        )

    def verify_chain(self, prev: Optional["EventEnvelope"]) -> bool:
        return self.causal_hash == self.expected_causal_hash_from(prev)

    def verify_sequence(self, expected: int) -> bool:
        return self.sequence == expected

    def is_signed(self) -> bool:
        return bool(self.signature)
