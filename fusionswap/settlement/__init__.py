"""
fusionswap Settlement Engine

Operation surface for auctions, fusion orders and escrows.

Critical Invariants:
- Every mutating operation is all-or-nothing
- The clock is read once per operation
- Journal events are emitted only for committed operations
- A segment is released at most once
"""

from fusionswap.settlement.engine import SettlementEngine

__all__ = ["SettlementEngine"]
