"""
fusionswap/journal/emitter.py

Event sinks for the settlement engine.

    EventSink     - Protocol: emit(event_type, payload)
    MemorySink    - list-backed, for tests and dry runs
    EventJournal  - signed, hash-chained JSONL journal

EventJournal.emit() MUST, in this exact order:
  1. Acquire lock
  2. EventEnvelope.create(..., prev=last_envelope)
  3. envelope.sign(key)
  4. Assert chain invariants  - causal_hash, sequence
  5. Append to JSONL journal
  6. Advance internal state   - only after confirmed write
  7. Return the signed envelope
"""

import json
import logging
import threading
import warnings
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from fusionswap.journal.keys import JournalKey
from fusionswap.journal.models import (
    GENESIS_HASH,
    JOURNAL_VERSION,
    EventEnvelope,
)

logger = logging.getLogger(__name__)

JOURNAL_FILENAME = "journal.jsonl"


@runtime_checkable
class EventSink(Protocol):
    def emit(self, event_type: str, payload: Dict[str, Any]) -> Any:
        ...


@dataclass(frozen=True)
class RecordedEvent:
    event_type: str
    payload:    Dict[str, Any]


class MemorySink:
    """Keeps emitted events in memory, in order."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self.events: List[RecordedEvent] = []

    def emit(self, event_type: str, payload: Dict[str, Any]) -> RecordedEvent:
        event = RecordedEvent(event_type=event_type, payload=dict(payload))
        with self._lock:
            self.events.append(event)
        return event

    def of_type(self, event_type: str) -> List[RecordedEvent]:
        return [e for e in self.events if e.event_type == event_type]

    def __len__(self) -> int:
        return len(self.events)


class EventJournal:
    """
    Append-only signed journal.

    Chain state:
        _sequence        - 0, 1, 2, ...
        _last_envelope   - the last EventEnvelope appended (or None)

    Thread-safe within one process. State survives restart: the last line
    of an existing journal is read back on construction.
    """

    def __init__(
        self,
        key:          JournalKey,
        signer_id:    str,
        journal_path: str = ".fusionswap/journal",
    ) -> None:
        self.key       = key
        self.signer_id = signer_id

        self._lock:          threading.Lock          = threading.Lock()
        self._sequence:      int                     = 0
        self._last_envelope: Optional[EventEnvelope] = None

        self._journal_dir  = Path(journal_path)
        self._journal_dir.mkdir(parents=True, exist_ok=True)
        self._journal_file = self._journal_dir / JOURNAL_FILENAME

        self._restore_state()

    @property
    def path(self) -> Path:
        return self._journal_file

    # ── Public API ────────────────────────────────────────────

    def emit(self, event_type: str, payload: Dict[str, Any]) -> EventEnvelope:
        """
        Sign and append one event.

        Raises ValueError for an unknown event_type and RuntimeError on a
        chain invariant violation or write failure. State does not advance
        when this raises.
        """
        with self._lock:
            envelope = EventEnvelope.create(
                event_type=        event_type,
                signer_id=         self.signer_id,
                signer_public_key= self.key.public_key_hex,
                sequence=          self._sequence,
                payload=           payload,
                prev=              self._last_envelope,
            ).sign(self.key)

            self._assert_chain_invariants(envelope)
            self._append(envelope)

            self._sequence      += 1
            self._last_envelope  = envelope

        logger.debug(
            "Journal entry %d: %s (%s)",
            envelope.sequence, envelope.event_type, envelope.record_id,
        )
        return envelope

    def get_stats(self) -> Dict[str, Any]:
        return {
            "signer_id":        self.signer_id,
            "next_sequence":    self._sequence,
            "last_record_id":   (
                self._last_envelope.record_id if self._last_envelope else None
            ),
            "last_causal_hash": (
                self._last_envelope.causal_hash if self._last_envelope else GENESIS_HASH
            ),
            "journal_file":     str(self._journal_file),
            "journal_version":  JOURNAL_VERSION,
        }

    # ── Internal ──────────────────────────────────────────────

    def _restore_state(self) -> None:
        """
        Restore sequence and last_envelope from an existing journal.
        On a corrupted last line state stays at genesis and a RuntimeWarning
        is issued.
        """
        if not self._journal_file.exists():
            return

        last_line = None
        with open(self._journal_file, "r", encoding="utf-8") as f:
            for line in f:
                stripped = line.strip()
                if stripped:
                    last_line = stripped

        if not last_line:
            return

        try:
            env    = EventEnvelope.from_dict(json.loads(last_line))
            schema = env.validate_schema()
            if not schema:
                raise ValueError(f"schema violation in last line: {schema.errors}")
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Journal restore failed for %s: %s", self._journal_file, exc)
            warnings.warn(
                f"EventJournal: could not restore state from {self._journal_file}: {exc}. "
                "Last line may be corrupted. Run `fusionswap verify` before emitting.",
                RuntimeWarning,
                stacklevel=3,
            )
            return

        self._sequence      = env.sequence + 1
        self._last_envelope = env

    def _assert_chain_invariants(self, envelope: EventEnvelope) -> None:
        if not envelope.verify_sequence(self._sequence):
            raise RuntimeError(
                f"Chain invariant violated: sequence mismatch, "
                f"expected={self._sequence}, got={envelope.sequence}"
            )
        if not envelope.verify_chain(self._last_envelope):
            expected = envelope.expected_causal_hash_from(self._last_envelope)
            raise RuntimeError(
                f"Chain invariant violated: causal_hash mismatch, "
                f"expected=...{expected[-12:]}, got=...{envelope.causal_hash[-12:]}"
            )

    def _append(self, envelope: EventEnvelope) -> None:
        try:
            with open(self._journal_file, "a", encoding="utf-8") as f:
                f.write(json.dumps(envelope.to_dict()) + "\n")
        except OSError as exc:
            raise RuntimeError(f"EventJournal: write failed: {exc}") from exc
