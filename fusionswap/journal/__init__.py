"""
Signed, hash-chained settlement journal.
"""

from fusionswap.journal.emitter import EventJournal, EventSink, MemorySink, RecordedEvent
from fusionswap.journal.keys import JournalKey
from fusionswap.journal.models import (
    GENESIS_HASH,
    JOURNAL_VERSION,
    EventEnvelope,
    EventType,
    JournalVersionError,
)
from fusionswap.journal.replay import ChainViolation, JournalReplay, ReplaySummary

__all__ = [
    "EventJournal",
    "EventSink",
    "MemorySink",
    "RecordedEvent",
    "JournalKey",
    "GENESIS_HASH",
    "JOURNAL_VERSION",
    "EventEnvelope",
    "EventType",
    "JournalVersionError",
    "ChainViolation",
    "JournalReplay",
    "ReplaySummary",
]
