"""
fusionswap/runtime/custody.py

In-process asset custody.

Balances live in the store; value in flight lives in AssetHandle objects.
For every asset kind, at every commit point:

    sum(balances) + outstanding == minted

withdraw() moves value from a balance into a new handle; deposit() consumes
a handle into a balance. split()/join() move value between handles without
touching the store.
"""

import logging
import threading
from collections import defaultdict
from typing import Any, Dict, Protocol, Tuple, runtime_checkable

from fusionswap.core.exceptions import (
    AmountOverflowError,
    AssetMismatchError,
    HandleConsumedError,
    InsufficientBalanceError,
    InvalidAmountError,
)
from fusionswap.core.segments import U64_MAX, require_amount

logger = logging.getLogger(__name__)


class AssetHandle:
    """A quantity of one asset kind held outside any balance. Single use."""

    __slots__ = ("asset_kind", "_amount", "_consumed")

    def __init__(self, asset_kind: str, amount: int) -> None:
        self.asset_kind = asset_kind
        self._amount    = require_amount("amount", amount, allow_zero=True)
        self._consumed  = False

    @property
    def amount(self) -> int:
        self._require_live()
        return self._amount

    @property
    def consumed(self) -> bool:
        return self._consumed

    def split(self, amount: int) -> "AssetHandle":
        """Carve `amount` out of this handle into a new one."""
        self._require_live()
        require_amount("amount", amount, allow_zero=True)
        if amount > self._amount:
            raise InvalidAmountError(
                "Cannot split more than the handle holds",
                {"requested": amount, "available": self._amount},
            )
        self._amount -= amount
        return AssetHandle(self.asset_kind, amount)

    def join(self, other: "AssetHandle") -> "AssetHandle":
        """Absorb `other` into this handle. `other` is consumed."""
        self._require_live()
        other._require_live()
        if other is self:
            raise InvalidAmountError("Cannot join a handle with itself")
        if other.asset_kind != self.asset_kind:
            raise AssetMismatchError(
                "Cannot join handles of different asset kinds",
                {"left": self.asset_kind, "right": other.asset_kind},
            )
        if self._amount + other._amount > U64_MAX:
            raise AmountOverflowError(
                "Joined amount exceeds u64",
                {"left": self._amount, "right": other._amount},
            )
        self._amount += other.consume()
        return self

    def consume(self) -> int:
        """Mark the handle spent and return the quantity it held."""
        self._require_live()
        self._consumed = True
        amount, self._amount = self._amount, 0
        return amount

    def _require_live(self) -> None:
        if self._consumed:
            raise HandleConsumedError(
                "Asset handle was already consumed",
                {"asset_kind": self.asset_kind},
            )

    def __getstate__(self):
        return (self.asset_kind, self._amount, self._consumed)

    def __setstate__(self, state) -> None:
        self.asset_kind, self._amount, self._consumed = state

    def __repr__(self) -> str:
        state = "consumed" if self._consumed else self._amount
        return f"AssetHandle({self.asset_kind!r}, {state})"


@runtime_checkable
class CustodyStore(Protocol):
    def withdraw(self, payer: str, asset_kind: str, amount: int) -> AssetHandle:
        ...

    def deposit(self, recipient: str, handle: AssetHandle) -> int:
        ...

    def balance(self, holder: str, asset_kind: str) -> int:
        ...


class MemoryCustody:
    """Dictionary-backed CustodyStore with mint() for funding accounts."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._balances:    Dict[Tuple[str, str], int] = defaultdict(int)
        self._minted:      Dict[str, int]             = defaultdict(int)
        self._outstanding: Dict[str, int]             = defaultdict(int)

    # ── Store operations ──────────────────────────────────────

    def mint(self, holder: str, asset_kind: str, amount: int) -> int:
        require_amount("amount", amount)
        with self._lock:
            new_balance = self._credit(holder, asset_kind, amount)
            self._minted[asset_kind] += amount
        logger.debug("Minted %d %s to %s", amount, asset_kind, holder)
        return new_balance

    def withdraw(self, payer: str, asset_kind: str, amount: int) -> AssetHandle:
        require_amount("amount", amount, allow_zero=True)
        with self._lock:
            available = self._balances.get((payer, asset_kind), 0)
            if amount > available:
                raise InsufficientBalanceError(
                    "Insufficient balance",
                    {
                        "holder":     payer,
                        "asset_kind": asset_kind,
                        "requested":  amount,
                        "available":  available,
                    },
                )
            self._balances[(payer, asset_kind)] = available - amount
            self._outstanding[asset_kind] += amount
        return AssetHandle(asset_kind, amount)

    def deposit(self, recipient: str, handle: AssetHandle) -> int:
        """Consume `handle` into `recipient`'s balance and return the new balance."""
        with self._lock:
            amount = handle.amount
            current = self._balances.get((recipient, handle.asset_kind), 0)
            if current + amount > U64_MAX:
                raise AmountOverflowError(
                    "Balance would exceed u64",
                    {"holder": recipient, "balance": current, "amount": amount},
                )
            handle.consume()
            self._outstanding[handle.asset_kind] -= amount
            return self._credit(recipient, handle.asset_kind, amount)

    def balance(self, holder: str, asset_kind: str) -> int:
        with self._lock:
            return self._balances.get((holder, asset_kind), 0)

    def total_supply(self, asset_kind: str) -> int:
        with self._lock:
            return self._minted.get(asset_kind, 0)

    def outstanding(self, asset_kind: str) -> int:
        """Value currently held in handles rather than balances."""
        with self._lock:
            return self._outstanding.get(asset_kind, 0)

    def holders(self, asset_kind: str) -> Dict[str, int]:
        with self._lock:
            return {
                holder: amount
                for (holder, kind), amount in self._balances.items()
                if kind == asset_kind and amount
            }

    # ── Transaction support ───────────────────────────────────

    def snapshot(self) -> Dict[str, Any]:
        # Values are ints, so copying the maps is enough.
        with self._lock:
            return {
                "balances":    self._balances.copy(),
                "minted":      self._minted.copy(),
                "outstanding": self._outstanding.copy(),
            }

    def restore(self, state: Dict[str, Any]) -> None:
        with self._lock:
            self._balances    = state["balances"]
            self._minted      = state["minted"]
            self._outstanding = state["outstanding"]

    # ── Internal ──────────────────────────────────────────────

    def _credit(self, holder: str, asset_kind: str, amount: int) -> int:
        new_balance = self._balances.get((holder, asset_kind), 0) + amount
        if new_balance > U64_MAX:
            raise AmountOverflowError(
                "Balance would exceed u64",
                {"holder": holder, "balance": new_balance - amount, "amount": amount},
            )
        self._balances[(holder, asset_kind)] = new_balance
        return new_balance
