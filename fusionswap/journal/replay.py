"""
fusionswap/journal/replay.py

Journal replay and verification.

    replay = JournalReplay()
    replay.load(Path(".fusionswap/journal/journal.jsonl"))
    summary = replay.verify()

Per entry, in journal order:
    1. schema     → env.validate_schema()
    2. sequence   → env.verify_sequence(i)
    3. chain      → env.verify_chain(prev)
    4. nonce      → no two entries share a nonce
    5. signature  → env.verify_signature()

Schema problems are reported as violations, not raised. Malformed JSON,
missing fields and mixed journal versions abort load().
"""

import json
import logging
from collections import defaultdict
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Dict, List, Optional, Set

from fusionswap.journal.models import EventEnvelope, JournalVersionError

logger = logging.getLogger(__name__)


@dataclass
class ChainViolation:
    at_sequence:    int
    record_id:      str
    violation_type: str   # "schema" | "sequence_gap" | "chain_break" | "duplicate_nonce" | "invalid_signature"
    detail:         str


@dataclass
class ReplaySummary:
    total_entries:      int
    chain_valid:        bool
    violations:         List[ChainViolation]
    valid_signatures:   int
    invalid_signatures: int
    event_type_counts:  Dict[str, int]
    signers_seen:       List[str]
    journal_version:    Optional[str]
    first_timestamp:    Optional[str]
    last_timestamp:     Optional[str]


class JournalReplay:

    def __init__(self) -> None:
        self.envelopes:     List[EventEnvelope]  = []
        self.violations:    List[ChainViolation] = []
        self._journal_path: Optional[Path]       = None

    # ── Load ──────────────────────────────────────────────────

    def load(self, journal_path: Path) -> None:
        """
        Raises:
            FileNotFoundError   - journal file does not exist
            ValueError          - malformed JSON or a missing field
            JournalVersionError - mixed journal_version values
        """
        journal_path       = Path(journal_path)
        self._journal_path = journal_path
        self.envelopes     = []
        self.violations    = []

        if not journal_path.exists():
            raise FileNotFoundError(f"Journal not found: {journal_path}")

        with open(journal_path, "r", encoding="utf-8") as f:
            for line_num, raw in enumerate(f, 1):
                raw = raw.strip()
                if not raw:
                    continue
                try:
                    data = json.loads(raw)
                except json.JSONDecodeError as e:
                    raise ValueError(f"Malformed JSON at journal line {line_num}: {e}") from e
                try:
                    self.envelopes.append(EventEnvelope.from_dict(data))
                except KeyError as e:
                    raise ValueError(
                        f"Missing required field at journal line {line_num}: {e}"
                    ) from e

        versions = {e.journal_version for e in self.envelopes}
        if len(versions) > 1:
            raise JournalVersionError(
                f"Journal '{journal_path.name}' mixes journal_version values: "
                f"{sorted(versions)}"
            )

        logger.debug("Loaded %d journal entries from %s", len(self.envelopes), journal_path)

    # ── Verify ────────────────────────────────────────────────

    def verify(self) -> ReplaySummary:
        violations:  List[ChainViolation] = []
        seen_nonces: Set[str]             = set()
        valid_sigs   = 0
        invalid_sigs = 0

        for i, env in enumerate(self.envelopes):
            prev = self.envelopes[i - 1] if i > 0 else None

            schema = env.validate_schema()
            if not schema:
                violations.append(ChainViolation(
                    at_sequence=    i,
                    record_id=      str(env.record_id),
                    violation_type= "schema",
                    detail=         "; ".join(schema.errors),
                ))

            if not env.verify_sequence(i):
                violations.append(ChainViolation(
                    at_sequence=    i,
                    record_id=      str(env.record_id),
                    violation_type= "sequence_gap",
                    detail=         f"Expected sequence {i}, got {env.sequence}",
                ))

            if not env.verify_chain(prev):
                expected = env.expected_causal_hash_from(prev)
                violations.append(ChainViolation(
                    at_sequence=    i,
                    record_id=      str(env.record_id),
                    violation_type= "chain_break",
                    detail=(
                        f"causal_hash mismatch: expected ...{expected[-12:]}, "
                        f"got ...{str(env.causal_hash)[-12:]}"
                    ),
                ))

            if env.nonce in seen_nonces:
                violations.append(ChainViolation(
                    at_sequence=    i,
                    record_id=      str(env.record_id),
                    violation_type= "duplicate_nonce",
                    detail=         f"Nonce {env.nonce!r} already used earlier in the journal",
                ))
            seen_nonces.add(env.nonce)

            if env.verify_signature():
                valid_sigs += 1
            else:
                invalid_sigs += 1
                violations.append(ChainViolation(
                    at_sequence=    i,
                    record_id=      str(env.record_id),
                    violation_type= "invalid_signature",
                    detail=         f"Signature invalid (signer: {str(env.signer_public_key)[:16]}...)",
                ))

        self.violations = violations

        counts: Dict[str, int] = defaultdict(int)
        for env in self.envelopes:
            counts[env.event_type] += 1

        if violations:
            logger.warning(
                "Journal %s: %d violation(s) in %d entries",
                self._journal_path or "in-memory", len(violations), len(self.envelopes),
            )

        return ReplaySummary(
            total_entries=      len(self.envelopes),
            chain_valid=        not violations,
            violations=         list(violations),
            valid_signatures=   valid_sigs,
            invalid_signatures= invalid_sigs,
            event_type_counts=  dict(counts),
            signers_seen=       sorted({str(e.signer_id) for e in self.envelopes}),
            journal_version=    self.envelopes[0].journal_version if self.envelopes else None,
            first_timestamp=    self.envelopes[0].timestamp if self.envelopes else None,
            last_timestamp=     self.envelopes[-1].timestamp if self.envelopes else None,
        )

    # ── Queries ───────────────────────────────────────────────

    def events_for(self, entity_id: str) -> List[EventEnvelope]:
        """Every entry whose payload references `entity_id`, in order."""
        return [
            env for env in self.envelopes
            if entity_id in (
                env.payload.get("auction_id"),
                env.payload.get("order_id"),
                env.payload.get("escrow_id"),
            )
        ]

    # ── Export ────────────────────────────────────────────────

    def export_json(self, output_path: Path) -> None:
        """Write the replay summary as a JSON audit report."""
        summary     = self.verify()
        output_path = Path(output_path)
        output_path.parent.mkdir(parents=True, exist_ok=True)

        report = {
            "journal_replay_report": {
                "journal": str(self._journal_path or "in-memory"),
                **{k: v for k, v in asdict(summary).items() if k != "violations"},
                "violations": [asdict(v) for v in summary.violations],
            }
        }
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump(report, f, indent=2)
