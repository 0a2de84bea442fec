"""
fusionswap/protocol/auction.py

Dutch auction: a price that decays linearly from starting_amount to
ending_amount over decay_duration, filled in segments by resolvers who pay
the live price out of their own balance.

Price at `now` (integer, truncating):

    now <  start_time                    → starting_amount
    now >= start_time + decay_duration   → ending_amount
    otherwise:
        step  = (now - start_time) * scale // decay_duration
        price = starting_amount - (starting_amount - ending_amount) * step // scale

Fill window is [start_time, end_time). The maker locks nothing upfront.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, Optional

from fusionswap.core.canonical import order_hash_for
from fusionswap.core.exceptions import (
    AuctionExpiredError,
    AuctionNotStartedError,
    InvalidAuctionWindowError,
    NotMakerError,
)
from fusionswap.core.segments import (
    FillQuote,
    FillState,
    SegmentedFillLedger,
    SegmentSet,
    require_amount,
)
from fusionswap.journal.models import EventType
from fusionswap.protocol.capability import FillCapability, require_capability
from fusionswap.runtime.context import HostContext
from fusionswap.runtime.custody import AssetHandle
from fusionswap.runtime.entities import EntityHandle

AUCTION = "auction"

DEFAULT_PRICE_SCALE = 100


def _require_time(name: str, value: int) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise InvalidAuctionWindowError(
            f"{name} must be a non-negative int", {name: value}
        )
    return value


@dataclass(frozen=True)
class AuctionCurve:
    starting_amount: int
    ending_amount:   int
    start_time:      int
    end_time:        int
    decay_duration:  int

    @classmethod
    def create(
        cls,
        starting_amount: int,
        ending_amount:   int,
        start_time:      int,
        end_time:        int,
        decay_duration:  int,
    ) -> "AuctionCurve":
        require_amount("starting_amount", starting_amount)
        require_amount("ending_amount", ending_amount)
        _require_time("start_time", start_time)
        _require_time("end_time", end_time)
        _require_time("decay_duration", decay_duration)

        if starting_amount <= ending_amount:
            raise InvalidAuctionWindowError(
                "starting_amount must exceed ending_amount",
                {"starting_amount": starting_amount, "ending_amount": ending_amount},
            )
        if start_time >= end_time:
            raise InvalidAuctionWindowError(
                "start_time must be before end_time",
                {"start_time": start_time, "end_time": end_time},
            )
        if decay_duration == 0:
            raise InvalidAuctionWindowError("decay_duration must be positive")
        if end_time <= start_time + decay_duration:
            raise InvalidAuctionWindowError(
                "Decay must finish before end_time",
                {
                    "start_time":     start_time,
                    "decay_duration": decay_duration,
                    "end_time":       end_time,
                },
            )
        return cls(starting_amount, ending_amount, start_time, end_time, decay_duration)

    def price_at(self, now: int, scale: int = DEFAULT_PRICE_SCALE) -> int:
        if now < self.start_time:
            return self.starting_amount
        elapsed = now - self.start_time
        if elapsed >= self.decay_duration:
            return self.ending_amount
        step = elapsed * scale // self.decay_duration
        return self.starting_amount - (self.starting_amount - self.ending_amount) * step // scale

    def is_open(self, now: int) -> bool:
        return self.start_time <= now < self.end_time

    def to_dict(self) -> Dict[str, int]:
        return {
            "starting_amount": self.starting_amount,
            "ending_amount":   self.ending_amount,
            "start_time":      self.start_time,
            "end_time":        self.end_time,
            "decay_duration":  self.decay_duration,
        }


@dataclass
class DutchAuction:
    order_hash:           bytes
    maker:                str
    asset_kind:           str
    curve:                AuctionCurve
    safety_deposit_total: int
    segments:             SegmentSet
    fill_state:           FillState = field(default_factory=FillState)

    @property
    def last_filled_segment(self) -> Optional[int]:
        return self.fill_state.last_filled_segment

    def get_current_price(self, now: int, scale: int = DEFAULT_PRICE_SCALE) -> int:
        return self.curve.price_at(now, scale)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_hash":           self.order_hash.hex(),
            "maker":                self.maker,
            "asset_kind":           self.asset_kind,
            "curve":                self.curve.to_dict(),
            "safety_deposit_total": self.safety_deposit_total,
            "segments":             self.segments.count,
            "last_filled_segment":  self.last_filled_segment,
        }


@dataclass
class AuctionFill:
    """What one fill produced. The resolver owns both handles."""

    auction_id:     EntityHandle
    price:          int
    quote:          FillQuote
    secret_hash:    bytes
    asset:          AssetHandle
    safety_deposit: AssetHandle

    @property
    def completed(self) -> bool:
        return self.quote.completes


# ── Operations ────────────────────────────────────────────────

def create_auction(
    ctx:                  HostContext,
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
    curve    = AuctionCurve.create(starting_amount, ending_amount, start_time, end_time, decay_duration)
    segments = SegmentSet.create(segment_hashes)
    require_amount("safety_deposit_total", safety_deposit_total)
    segments.require_divisible("safety_deposit_total", safety_deposit_total)

    if order_hash is None:
        order_hash = order_hash_for({
            "kind":                 AUCTION,
            "maker":                maker,
            "asset_kind":           asset_kind,
            "starting_amount":      starting_amount,
            "ending_amount":        ending_amount,
            "start_time":           start_time,
            "end_time":             end_time,
            "decay_duration":       decay_duration,
            "safety_deposit_total": safety_deposit_total,
            "segment_hashes":       list(segments.hashes),
        })

    auction = DutchAuction(
        order_hash=           order_hash,
        maker=                maker,
        asset_kind=           asset_kind,
        curve=                curve,
        safety_deposit_total= safety_deposit_total,
        segments=             segments,
    )
    auction_id = ctx.entities.create(AUCTION, maker, auction)

    ctx.record(EventType.AUCTION_CREATED, {
        "auction_id":           auction_id,
        "order_hash":           order_hash.hex(),
        "maker":                maker,
        "asset_kind":           asset_kind,
        "starting_amount":      str(starting_amount),
        "ending_amount":        str(ending_amount),
        "start_time":           start_time,
        "end_time":             end_time,
        "decay_duration":       decay_duration,
        "safety_deposit_total": str(safety_deposit_total),
        "segments":             segments.count,
    })
    return auction_id


def cancel_auction(ctx: HostContext, caller: str, auction_id: EntityHandle) -> None:
    auction: DutchAuction = ctx.entities.get(auction_id, AUCTION)
    if caller != auction.maker:
        raise NotMakerError(
            "Only the maker can cancel the auction",
            {"auction_id": auction_id, "caller": caller},
        )
    ctx.entities.destroy(auction_id)
    ctx.record(EventType.AUCTION_CANCELLED, {"auction_id": auction_id, "maker": caller})


def fill_auction(
    ctx:        HostContext,
    capability: FillCapability,
    resolver:   str,
    auction_id: EntityHandle,
    now:        int,
    segment:    Optional[int] = None,
) -> AuctionFill:
    """
    Fill the auction at the current price.

    The resolver pays `quote.amount` of the auction asset and
    `quote.safety_deposit` of the safety deposit asset. The auction is
    destroyed once the ledger reports completion.
    """
    require_capability(capability)
    auction: DutchAuction = ctx.entities.get(auction_id, AUCTION)

    if now < auction.curve.start_time:
        raise AuctionNotStartedError(
            "Auction has not started",
            {"auction_id": auction_id, "now": now, "start_time": auction.curve.start_time},
        )
    if now >= auction.curve.end_time:
        raise AuctionExpiredError(
            "Auction has ended",
            {"auction_id": auction_id, "now": now, "end_time": auction.curve.end_time},
        )

    price  = auction.get_current_price(now, ctx.config.price_scale)
    ledger = SegmentedFillLedger(auction.segments.count, ctx.config.terminal_policy)
    quote  = ledger.quote(
        auction.last_filled_segment, segment, price, auction.safety_deposit_total
    )

    asset   = ctx.custody.withdraw(resolver, auction.asset_kind, quote.amount)
    deposit = ctx.custody.withdraw(resolver, ctx.config.safety_deposit_asset, quote.safety_deposit)

    if quote.completes:
        ctx.entities.destroy(auction_id)
    else:
        SegmentedFillLedger.apply(auction.fill_state, quote)

    ctx.record(EventType.AUCTION_FILLED, {
        "auction_id":     auction_id,
        "resolver":       resolver,
        "segment":        quote.target_index,
        "price":          str(price),
        "amount":         str(quote.amount),
        "safety_deposit": str(quote.safety_deposit),
        "completed":      quote.completes,
    })

    return AuctionFill(
        auction_id=     auction_id,
        price=          price,
        quote=          quote,
        secret_hash=    auction.segments.hash_at(quote.target_index),
        asset=          asset,
        safety_deposit= deposit,
    )
