"""
fusionswap/runtime/entities.py

Entity arena: records addressed by stable string handles.

    handle = store.create("escrow", owner, record)
    store.get(handle, "escrow")      → record, EntityNotFoundError if gone
    store.destroy(handle)            → record, handle invalid afterwards
    store.transfer(handle, owner)    → moves ownership, no aliasing

Handles are never reused.
"""

import copy
import threading
import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Protocol, runtime_checkable

from fusionswap.core.exceptions import EntityNotFoundError

EntityHandle = str


@dataclass
class EntitySlot:
    kind:   str
    owner:  str
    record: Any


@runtime_checkable
class EntityStore(Protocol):
    def create(self, kind: str, owner: str, record: Any) -> EntityHandle:
        ...

    def get(self, handle: EntityHandle, kind: Optional[str] = None) -> Any:
        ...

    def destroy(self, handle: EntityHandle) -> Any:
        ...

    def exists(self, handle: EntityHandle) -> bool:
        ...

    def transfer(self, handle: EntityHandle, new_owner: str) -> None:
        ...


class MemoryEntityStore:

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._slots: Dict[EntityHandle, EntitySlot] = {}
        self._undo:  Optional[Dict[EntityHandle, EntitySlot]] = None

    def create(self, kind: str, owner: str, record: Any) -> EntityHandle:
        handle = f"{kind}-{uuid.uuid4()}"
        with self._lock:
            self._slots[handle] = EntitySlot(kind=kind, owner=owner, record=record)
        return handle

    def get(self, handle: EntityHandle, kind: Optional[str] = None) -> Any:
        return self._slot(handle, kind).record

    def owner_of(self, handle: EntityHandle) -> str:
        return self._slot(handle).owner

    def destroy(self, handle: EntityHandle) -> Any:
        with self._lock:
            slot = self._slot(handle)
            del self._slots[handle]
        return slot.record

    def exists(self, handle: EntityHandle) -> bool:
        with self._lock:
            return handle in self._slots

    def transfer(self, handle: EntityHandle, new_owner: str) -> None:
        with self._lock:
            self._slot(handle).owner = new_owner

    def handles(self, kind: Optional[str] = None) -> List[EntityHandle]:
        with self._lock:
            return [
                h for h, slot in self._slots.items()
                if kind is None or slot.kind == kind
            ]

    def records(self, kind: Optional[str] = None) -> List[Any]:
        with self._lock:
            return [
                slot.record for slot in self._slots.values()
                if kind is None or slot.kind == kind
            ]

    # ── Transaction support ───────────────────────────────────

    def begin(self) -> Dict[EntityHandle, EntitySlot]:
        """
        Start tracking changes. Returns the slot map as it stands now.

        Records are copied lazily: the first lookup of a handle inside the
        transaction saves a deep copy of its slot, so rollback costs scale
        with the entities an operation touched.
        """
        with self._lock:
            self._undo = {}
            return dict(self._slots)

    def commit(self) -> None:
        with self._lock:
            self._undo = None

    def rollback(self, slots: Dict[EntityHandle, EntitySlot]) -> None:
        with self._lock:
            undo, self._undo = self._undo or {}, None
            self._slots = slots
            for handle, original in undo.items():
                if handle in slots:
                    slots[handle] = original

    def _slot(self, handle: EntityHandle, kind: Optional[str] = None) -> EntitySlot:
        with self._lock:
            slot = self._slots.get(handle)
            if slot is not None and self._undo is not None and handle not in self._undo:
                self._undo[handle] = copy.deepcopy(slot)
        if slot is None or (kind is not None and slot.kind != kind):
            raise EntityNotFoundError(
                f"{kind or 'entity'} not found",
                {"handle": handle},
            )
        return slot

    def __len__(self) -> int:
        return len(self._slots)
