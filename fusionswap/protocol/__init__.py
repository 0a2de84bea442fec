"""
fusionswap protocol entities: Dutch auctions, fusion orders and escrows.

Functions here run against a HostContext and expect to be called inside
its transaction; SettlementEngine is the usual entry point.
"""

from fusionswap.protocol.auction import AuctionCurve, AuctionFill, DutchAuction
from fusionswap.protocol.capability import FillCapability
from fusionswap.protocol.escrow import Escrow, EscrowRelease
from fusionswap.protocol.fusion_order import FusionOrder, OrderClaim

__all__ = [
    "AuctionCurve",
    "AuctionFill",
    "DutchAuction",
    "FillCapability",
    "Escrow",
    "EscrowRelease",
    "FusionOrder",
    "OrderClaim",
]
