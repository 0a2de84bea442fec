"""
fusionswap/__init__.py

fusionswap: cross-chain atomic swap settlement.

Makers publish pre-funded fusion orders or Dutch auctions; resolvers fill
them in hash-locked segments and settle through time-locked escrows. Every
committed operation is recorded in a signed, hash-chained journal.
"""

__version__         = "0.3.0"
__journal_version__ = "1.0"

from fusionswap.config import EscrowDurations, ProtocolConfig
from fusionswap.core.exceptions import (
    ERROR_CODES,
    ErrorKind,
    FusionSwapError,
    error_for_code,
)
from fusionswap.core.hashlock import HashLock, hash_secret
from fusionswap.core.segments import SegmentedFillLedger, TerminalPolicy
from fusionswap.core.time import ManualClock, SystemClock
from fusionswap.core.timelock import Phase, Timelock
from fusionswap.core.whitelist import Whitelist
from fusionswap.journal import EventJournal, EventType, JournalKey, JournalReplay, MemorySink
from fusionswap.runtime import HostContext
from fusionswap.settlement import SettlementEngine

__all__ = [
    # Engine
    "SettlementEngine",
    "HostContext",
    "ProtocolConfig",
    "EscrowDurations",
    # Primitives
    "HashLock",
    "hash_secret",
    "Timelock",
    "Phase",
    "SegmentedFillLedger",
    "TerminalPolicy",
    "Whitelist",
    "ManualClock",
    "SystemClock",
    # Journal
    "EventJournal",
    "EventType",
    "JournalKey",
    "JournalReplay",
    "MemorySink",
    # Errors
    "FusionSwapError",
    "ErrorKind",
    "ERROR_CODES",
    "error_for_code",
]
