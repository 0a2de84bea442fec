"""
Host context for settlement execution.

Bundles the collaborators every protocol operation needs (clock, custody,
entity arena, event sink and configuration) and provides the transaction
boundary that makes each operation all-or-nothing.
"""

import logging
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional, Tuple

from fusionswap.config import ProtocolConfig
from fusionswap.core.exceptions import FusionSwapError, JournalWriteError
from fusionswap.core.time import Clock, resolve_clock
from fusionswap.journal.emitter import EventJournal, EventSink, MemorySink
from fusionswap.journal.keys import JournalKey
from fusionswap.runtime.custody import MemoryCustody
from fusionswap.runtime.entities import MemoryEntityStore

logger = logging.getLogger(__name__)


@dataclass
class HostContext:
    clock:    Clock
    custody:  MemoryCustody
    entities: MemoryEntityStore
    sink:     EventSink
    config:   ProtocolConfig = field(default_factory=ProtocolConfig)

    _lock:    threading.RLock               = field(default_factory=threading.RLock, repr=False)
    _pending: List[Tuple[str, Dict[str, Any]]] = field(default_factory=list, repr=False)
    _depth:   int                           = field(default=0, repr=False)

    @classmethod
    def from_config(
        cls,
        config: Optional[ProtocolConfig] = None,
        clock:  Optional[Clock] = None,
    ) -> "HostContext":
        """
        Build a context from configuration.

        A journal_path selects the signed EventJournal; without one events
        go to a MemorySink.
        """
        config = config or ProtocolConfig()

        if config.journal_path:
            journal_dir = Path(config.journal_path)
            key_path = Path(config.key_path) if config.key_path else journal_dir / "signing_key.pem"
            sink: EventSink = EventJournal(
                key=          JournalKey.load_or_create(key_path),
                signer_id=    config.signer_id,
                journal_path= str(journal_dir),
            )
        else:
            sink = MemorySink()

        return cls(
            clock=    resolve_clock(clock),
            custody=  MemoryCustody(),
            entities= MemoryEntityStore(),
            sink=     sink,
            config=   config,
        )

    # ── Transactions ──────────────────────────────────────────

    @contextmanager
    def transaction(self, operation: str) -> Iterator[None]:
        """
        Serialize one operation and roll back custody and entity state if it raises.

        Events recorded inside are emitted to the sink once the operation body
        has finished, still under the lock and before the rollback point is
        released. A sink failure raises JournalWriteError and undoes the
        operation. Nested calls join the outer transaction.

        The rollback point is a copy of the balance maps plus a deep copy of
        each entity the operation looked up, taken on first lookup.
        """
        with self._lock:
            if self._depth:
                yield
                return

            balances = self.custody.snapshot()
            slots    = self.entities.begin()
            self._depth   = 1
            self._pending = []
            try:
                yield
                self._depth = 0
                events, self._pending = self._pending, []
                self._flush(operation, events)
            except BaseException as exc:
                self.custody.restore(balances)
                self.entities.rollback(slots)
                self._pending = []
                logger.warning("Rolled back %s: %s", operation, exc)
                raise
            else:
                self.entities.commit()
            finally:
                self._depth = 0
            logger.debug("Committed %s (%d event(s))", operation, len(events))

    def _flush(self, operation: str, events: List[Tuple[str, Dict[str, Any]]]) -> None:
        for event_type, payload in events:
            try:
                self.sink.emit(event_type, payload)
            except FusionSwapError:
                raise
            except Exception as exc:
                raise JournalWriteError(
                    f"Event sink rejected {event_type}",
                    {"operation": operation, "event_type": event_type, "error": str(exc)},
                ) from exc

    def record(self, event_type: str, payload: Dict[str, Any]) -> None:
        """Queue an event for the current transaction, or emit it directly outside one."""
        if self._depth:
            self._pending.append((event_type, payload))
        else:
            self.sink.emit(event_type, payload)

    def __repr__(self) -> str:
        return (
            f"HostContext("
            f"clock={self.clock!r}, "
            f"entities={len(self.entities)}, "
            f"sink={type(self.sink).__name__})"
        )
