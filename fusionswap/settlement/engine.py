"""
Settlement engine: the operation surface of the swap protocol.
"""

import logging
from typing import Iterable, Optional, Tuple, Union

from fusionswap.config import ProtocolConfig
from fusionswap.core.time import Clock
from fusionswap.core.timelock import Phase
from fusionswap.core.whitelist import Whitelist
from fusionswap.protocol import auction as auctions
from fusionswap.protocol import escrow as escrows
from fusionswap.protocol import fusion_order as orders
from fusionswap.protocol.auction import AuctionFill, DutchAuction
from fusionswap.protocol.capability import grant
from fusionswap.protocol.escrow import Escrow, EscrowRelease
from fusionswap.protocol.fusion_order import FusionOrder, OrderClaim
from fusionswap.runtime.context import HostContext
from fusionswap.runtime.entities import EntityHandle

logger = logging.getLogger(__name__)


class SettlementEngine:
    """
    Runs every protocol operation as one transaction against a HostContext.

    Each mutating call:
        - holds the context lock for its whole duration
        - reads the clock exactly once, under the lock, so `now` never
          goes backwards between committed calls
        - emits its journal events once the body succeeds
        - restores custody and entity state if anything raises, including
          the event sink

    Competing resolvers are serialized by the lock; the loser of a race
    for a segment sees SegmentAlreadyFilledError.
    """

    def __init__(self, ctx: Optional[HostContext] = None):
        """
        Initialize settlement engine.

        Args:
            ctx: Host collaborators. Defaults to an in-memory context with a
                 system clock and default configuration.
        """
        self.ctx = ctx or HostContext.from_config()
        self._capability = grant("fusionswap.settlement.engine")

    @classmethod
    def from_config(
        cls,
        config: Optional[ProtocolConfig] = None,
        clock:  Optional[Clock] = None,
    ) -> "SettlementEngine":
        return cls(HostContext.from_config(config, clock))

    @property
    def config(self) -> ProtocolConfig:
        return self.ctx.config

    def now(self) -> int:
        return self.ctx.clock.now()

    # ── Dutch auctions ────────────────────────────────────────

    def create_auction(
        self,
        maker:                str,
        asset_kind:           str,
        starting_amount:      int,
        ending_amount:        int,
        start_time:           int,
        end_time:             int,
        decay_duration:       int,
        safety_deposit_total: int,
        segment_hashes:       Iterable[bytes],
        order_hash:           Optional[bytes] = None,
    ) -> EntityHandle:
        with self.ctx.transaction("create_auction"):
            auction_id = auctions.create_auction(
                self.ctx, maker, asset_kind, starting_amount, ending_amount,
                start_time, end_time, decay_duration, safety_deposit_total,
                segment_hashes, order_hash,
            )
        logger.info("Auction %s created by %s", auction_id, maker)
        return auction_id

    def cancel_auction(self, caller: str, auction_id: EntityHandle) -> None:
        with self.ctx.transaction("cancel_auction"):
            auctions.cancel_auction(self.ctx, caller, auction_id)
        logger.info("Auction %s cancelled", auction_id)

    def fill_auction(
        self,
        resolver:   str,
        auction_id: EntityHandle,
        segment:    Optional[int] = None,
    ) -> AuctionFill:
        """
        Fill an auction at the current price.

        Args:
            resolver:   Pays the quoted amount and safety deposit.
            auction_id: Auction handle.
            segment:    Target segment index; None fills to completion.

        Returns:
            AuctionFill with the resolver-owned asset and deposit handles.
        """
        with self.ctx.transaction("fill_auction"):
            now = self.now()
            fill = auctions.fill_auction(
                self.ctx, self._capability, resolver, auction_id, now, segment
            )
        logger.info(
            "Auction %s filled to segment %d by %s at price %d (amount=%d)",
            auction_id, fill.quote.target_index, resolver, fill.price, fill.quote.amount,
        )
        return fill

    # ── Fusion orders ─────────────────────────────────────────

    def create_fusion_order(
        self,
        maker:                str,
        asset_kind:           str,
        amount:               int,
        safety_deposit:       int,
        segment_hashes:       Iterable[bytes],
        resolvers:            Union[Whitelist, Iterable[str]],
        finality:             int,
        exclusive_withdrawal: int,
        private_cancellation: int,
        public_withdrawal:    int = 0,
        auto_cancel_after:    Optional[int] = None,
        order_hash:           Optional[bytes] = None,
    ) -> EntityHandle:
        with self.ctx.transaction("create_fusion_order"):
            order_id = orders.create_fusion_order(
                self.ctx, maker, asset_kind, amount, safety_deposit, segment_hashes,
                resolvers, finality, exclusive_withdrawal, private_cancellation,
                public_withdrawal, auto_cancel_after, order_hash,
            )
        logger.info("Fusion order %s created by %s (amount=%d)", order_id, maker, amount)
        return order_id

    def cancel_fusion_order(self, caller: str, order_id: EntityHandle) -> dict:
        with self.ctx.transaction("cancel_fusion_order"):
            now = self.now()
            returned = orders.cancel_fusion_order(self.ctx, caller, order_id, now)
        logger.info("Fusion order %s cancelled by %s", order_id, caller)
        return returned

    def resolver_accept_order(
        self,
        resolver: str,
        order_id: EntityHandle,
        segment:  Optional[int] = None,
    ) -> OrderClaim:
        with self.ctx.transaction("resolver_accept_order"):
            claim = orders.resolver_accept_order(
                self.ctx, self._capability, resolver, order_id, segment
            )
        logger.info(
            "Fusion order %s accepted to segment %d by %s (amount=%d)",
            order_id, claim.quote.target_index, resolver, claim.quote.amount,
        )
        return claim

    # ── Escrows ───────────────────────────────────────────────

    def deploy_escrow_from_order(
        self,
        resolver: str,
        order_id: EntityHandle,
        segment:  Optional[int] = None,
    ) -> Tuple[EntityHandle, OrderClaim]:
        with self.ctx.transaction("deploy_escrow_from_order"):
            now = self.now()
            escrow_id, claim = escrows.deploy_escrow_from_order(
                self.ctx, resolver, order_id, now, segment
            )
        logger.info("Source escrow %s deployed from order %s", escrow_id, order_id)
        return escrow_id, claim

    def deploy_escrow_from_auction(
        self,
        resolver:             str,
        auction_id:           EntityHandle,
        finality:             Optional[int] = None,
        exclusive_withdrawal: Optional[int] = None,
        private_cancellation: Optional[int] = None,
        public_withdrawal:    Optional[int] = None,
        segment:              Optional[int] = None,
    ) -> Tuple[EntityHandle, AuctionFill]:
        """
        Fund an auction fill and lock it in a destination escrow.

        Durations left as None fall back to config.escrow_durations.
        """
        defaults = self.config.escrow_durations
        with self.ctx.transaction("deploy_escrow_from_auction"):
            now = self.now()
            escrow_id, fill = escrows.deploy_escrow_from_auction(
                self.ctx, resolver, auction_id, now,
                finality=             defaults.finality if finality is None else finality,
                exclusive_withdrawal= (
                    defaults.exclusive_withdrawal if exclusive_withdrawal is None
                    else exclusive_withdrawal
                ),
                private_cancellation= (
                    defaults.private_cancellation if private_cancellation is None
                    else private_cancellation
                ),
                public_withdrawal=    (
                    defaults.public_withdrawal if public_withdrawal is None
                    else public_withdrawal
                ),
                segment=              segment,
            )
        logger.info("Destination escrow %s deployed from auction %s", escrow_id, auction_id)
        return escrow_id, fill

    def escrow_withdraw(
        self,
        caller:    str,
        escrow_id: EntityHandle,
        secret:    Union[bytes, str],
    ) -> EscrowRelease:
        with self.ctx.transaction("escrow_withdraw"):
            now = self.now()
            release = escrows.withdraw(self.ctx, caller, escrow_id, secret, now)
        logger.info(
            "Escrow %s withdrawn by %s: %d to %s",
            escrow_id, caller, release.amount, release.asset_recipient,
        )
        return release

    def escrow_recovery(self, caller: str, escrow_id: EntityHandle) -> EscrowRelease:
        with self.ctx.transaction("escrow_recovery"):
            now = self.now()
            release = escrows.recovery(self.ctx, caller, escrow_id, now)
        logger.info(
            "Escrow %s recovered by %s: %d to %s",
            escrow_id, caller, release.amount, release.asset_recipient,
        )
        return release

    # ── Read-only views ───────────────────────────────────────

    def get_auction(self, auction_id: EntityHandle) -> DutchAuction:
        return self.ctx.entities.get(auction_id, auctions.AUCTION)

    def get_order(self, order_id: EntityHandle) -> FusionOrder:
        return self.ctx.entities.get(order_id, orders.ORDER)

    def get_escrow(self, escrow_id: EntityHandle) -> Escrow:
        return self.ctx.entities.get(escrow_id, escrows.ESCROW)

    def auction_price(self, auction_id: EntityHandle, at: Optional[int] = None) -> int:
        now = self.now() if at is None else at
        return self.get_auction(auction_id).get_current_price(now, self.config.price_scale)

    def escrow_phase(self, escrow_id: EntityHandle, at: Optional[int] = None) -> Phase:
        now = self.now() if at is None else at
        return self.get_escrow(escrow_id).phase(now)

    def balance(self, holder: str, asset_kind: str) -> int:
        return self.ctx.custody.balance(holder, asset_kind)

    def fund(self, holder: str, asset_kind: str, amount: int) -> int:
        """Mint `amount` into `holder`'s balance. For tests and simulations."""
        with self.ctx.transaction("fund"):
            return self.ctx.custody.mint(holder, asset_kind, amount)
