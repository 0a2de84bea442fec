"""
fusionswap/protocol/fusion_order.py

FusionOrder: a maker's pre-funded order, claimed in segments by
whitelisted resolvers.

The maker locks `amount` of the asset plus `safety_deposit_total` of the
safety deposit asset at creation. Each accept releases the quoted portion
out of the order's own custody; the order is destroyed once fully filled
or cancelled.

Cancellation routing:
    maker                          → asset and deposit back to the maker
    whitelisted resolver, after
    auto_cancel_after              → asset to the maker, deposit to the resolver
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional, Union

from fusionswap.core.canonical import order_hash_for
from fusionswap.core.exceptions import (
    AutoCancelNotReachedError,
    NotWhitelistedError,
)
from fusionswap.core.segments import (
    FillQuote,
    FillState,
    SegmentedFillLedger,
    SegmentSet,
    require_amount,
)
from fusionswap.core.timelock import Timelock
from fusionswap.core.whitelist import Whitelist
from fusionswap.journal.models import EventType
from fusionswap.protocol.capability import FillCapability, require_capability
from fusionswap.runtime.context import HostContext
from fusionswap.runtime.custody import AssetHandle
from fusionswap.runtime.entities import EntityHandle

ORDER = "fusion_order"


@dataclass
class FusionOrder:
    order_hash:           bytes
    maker:                str
    asset_kind:           str
    amount:               int
    safety_deposit_total: int
    safety_deposit_asset: str
    whitelist:            Whitelist
    segments:             SegmentSet
    finality:             int
    exclusive_withdrawal: int
    private_cancellation: int
    public_withdrawal:    int
    auto_cancel_after:    Optional[int]
    asset:                AssetHandle
    safety_deposit:       AssetHandle
    fill_state:           FillState = field(default_factory=FillState)

    @property
    def last_filled_segment(self) -> Optional[int]:
        return self.fill_state.last_filled_segment

    @property
    def remaining_amount(self) -> int:
        return self.asset.amount

    @property
    def remaining_safety_deposit(self) -> int:
        return self.safety_deposit.amount

    @property
    def filled_amount(self) -> int:
        return self.amount - self.asset.amount

    def timelock_at(self, created_at: int) -> Timelock:
        return Timelock.create(
            created_at=           created_at,
            finality=             self.finality,
            exclusive_withdrawal= self.exclusive_withdrawal,
            private_cancellation= self.private_cancellation,
            public_withdrawal=    self.public_withdrawal,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_hash":               self.order_hash.hex(),
            "maker":                    self.maker,
            "asset_kind":               self.asset_kind,
            "amount":                   self.amount,
            "safety_deposit_total":     self.safety_deposit_total,
            "remaining_amount":         self.remaining_amount,
            "remaining_safety_deposit": self.remaining_safety_deposit,
            "whitelist":                self.whitelist.to_list(),
            "segments":                 self.segments.count,
            "last_filled_segment":      self.last_filled_segment,
            "auto_cancel_after":        self.auto_cancel_after,
        }


@dataclass
class OrderClaim:
    """Output of one resolver accept. The caller owns both handles."""

    order_id:       EntityHandle
    order_hash:     bytes
    maker:          str
    asset_kind:     str
    quote:          FillQuote
    secret_hash:    bytes
    timelock_terms: Dict[str, int]
    asset:          AssetHandle
    safety_deposit: AssetHandle

    @property
    def completed(self) -> bool:
        return self.quote.completes


# ── Operations ────────────────────────────────────────────────

def create_fusion_order(
    ctx:                  HostContext,
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
    require_amount("amount", amount)
    require_amount("safety_deposit", safety_deposit)
    segments = SegmentSet.create(segment_hashes)
    segments.require_divisible("amount", amount)
    segments.require_divisible("safety_deposit", safety_deposit)

    whitelist = (
        resolvers if isinstance(resolvers, Whitelist)
        else Whitelist.from_addresses(resolvers, ctx.config.wildcard_address)
    )
    # Durations are checked now so a claim can never fail on them later.
    Timelock.create(0, finality, exclusive_withdrawal, private_cancellation, public_withdrawal)
    if auto_cancel_after is not None:
        require_amount("auto_cancel_after", auto_cancel_after, allow_zero=True)

    if order_hash is None:
        order_hash = order_hash_for({
            "kind":                 ORDER,
            "maker":                maker,
            "asset_kind":           asset_kind,
            "amount":               amount,
            "safety_deposit":       safety_deposit,
            "segment_hashes":       list(segments.hashes),
            "resolvers":            whitelist.to_list(),
            "finality":             finality,
            "exclusive_withdrawal": exclusive_withdrawal,
            "public_withdrawal":    public_withdrawal,
            "private_cancellation": private_cancellation,
            "auto_cancel_after":    auto_cancel_after,
        })

    deposit_asset = ctx.config.safety_deposit_asset
    order = FusionOrder(
        order_hash=           order_hash,
        maker=                maker,
        asset_kind=           asset_kind,
        amount=               amount,
        safety_deposit_total= safety_deposit,
        safety_deposit_asset= deposit_asset,
        whitelist=            whitelist,
        segments=             segments,
        finality=             finality,
        exclusive_withdrawal= exclusive_withdrawal,
        private_cancellation= private_cancellation,
        public_withdrawal=    public_withdrawal,
        auto_cancel_after=    auto_cancel_after,
        asset=                ctx.custody.withdraw(maker, asset_kind, amount),
        safety_deposit=       ctx.custody.withdraw(maker, deposit_asset, safety_deposit),
    )
    order_id = ctx.entities.create(ORDER, maker, order)

    ctx.record(EventType.ORDER_CREATED, {
        "order_id":          order_id,
        "order_hash":        order_hash.hex(),
        "maker":             maker,
        "asset_kind":        asset_kind,
        "amount":            str(amount),
        "safety_deposit":    str(safety_deposit),
        "segments":          segments.count,
        "resolvers":         whitelist.to_list(),
        "auto_cancel_after": auto_cancel_after,
    })
    return order_id


def cancel_fusion_order(
    ctx:      HostContext,
    caller:   str,
    order_id: EntityHandle,
    now:      int,
) -> Dict[str, int]:
    """Return the remaining funds and destroy the order. Returns the amounts moved."""
    order: FusionOrder = ctx.entities.get(order_id, ORDER)

    if caller == order.maker:
        deposit_recipient = order.maker
    else:
        if not order.whitelist.allows(caller):
            raise NotWhitelistedError(
                "Only the maker or a whitelisted resolver can cancel",
                {"order_id": order_id, "caller": caller},
            )
        if order.auto_cancel_after is None or now < order.auto_cancel_after:
            raise AutoCancelNotReachedError(
                "Order cannot be cancelled by a resolver yet",
                {
                    "order_id":          order_id,
                    "now":               now,
                    "auto_cancel_after": order.auto_cancel_after,
                },
            )
        deposit_recipient = caller

    returned_amount  = order.remaining_amount
    returned_deposit = order.remaining_safety_deposit
    ctx.custody.deposit(order.maker, order.asset)
    ctx.custody.deposit(deposit_recipient, order.safety_deposit)
    ctx.entities.destroy(order_id)

    ctx.record(EventType.ORDER_CANCELLED, {
        "order_id":          order_id,
        "cancelled_by":      caller,
        "amount":            str(returned_amount),
        "safety_deposit":    str(returned_deposit),
        "deposit_recipient": deposit_recipient,
    })
    return {"amount": returned_amount, "safety_deposit": returned_deposit}


def resolver_accept_order(
    ctx:        HostContext,
    capability: FillCapability,
    resolver:   str,
    order_id:   EntityHandle,
    segment:    Optional[int] = None,
) -> OrderClaim:
    require_capability(capability)
    order: FusionOrder = ctx.entities.get(order_id, ORDER)

    if not order.whitelist.allows(resolver):
        raise NotWhitelistedError(
            "Resolver is not whitelisted for this order",
            {"order_id": order_id, "resolver": resolver},
        )

    ledger = SegmentedFillLedger(order.segments.count, ctx.config.terminal_policy)
    quote  = ledger.quote(
        order.last_filled_segment, segment, order.amount, order.safety_deposit_total
    )

    asset   = order.asset.split(quote.amount)
    deposit = order.safety_deposit.split(quote.safety_deposit)

    if quote.completes:
        # Both handles are empty now; retire them with the order.
        order.asset.consume()
        order.safety_deposit.consume()
        ctx.entities.destroy(order_id)
    else:
        SegmentedFillLedger.apply(order.fill_state, quote)

    ctx.record(EventType.ORDER_ACCEPTED, {
        "order_id":       order_id,
        "resolver":       resolver,
        "segment":        quote.target_index,
        "amount":         str(quote.amount),
        "safety_deposit": str(quote.safety_deposit),
        "completed":      quote.completes,
    })

    return OrderClaim(
        order_id=       order_id,
        order_hash=     order.order_hash,
        maker=          order.maker,
        asset_kind=     order.asset_kind,
        quote=          quote,
        secret_hash=    order.segments.hash_at(quote.target_index),
        timelock_terms= {
            "finality":             order.finality,
            "exclusive_withdrawal": order.exclusive_withdrawal,
            "private_cancellation": order.private_cancellation,
            "public_withdrawal":    order.public_withdrawal,
        },
        asset=          asset,
        safety_deposit= deposit,
    )
