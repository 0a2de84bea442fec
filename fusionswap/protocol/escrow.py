"""
fusionswap/protocol/escrow.py

Escrow: custody of one asset plus one safety deposit, released by secret
during the withdrawal phases or reclaimed during the cancellation phases.

    Phase                  withdraw(secret)        recovery()
    ─────────────────────  ──────────────────────  ─────────────────
    FINALITY               WrongPhaseError         WrongPhaseError
    EXCLUSIVE_WITHDRAWAL   taker only              WrongPhaseError
    PUBLIC_WITHDRAWAL      anyone                  WrongPhaseError
    PRIVATE_CANCELLATION   WrongPhaseError         taker only
    PUBLIC_CANCELLATION    WrongPhaseError         anyone

Asset routing:
    withdraw    source leg → taker,   destination leg → maker
    recovery    source leg → maker,   destination leg → taker
    The safety deposit always goes to the caller.

Both operations destroy the escrow.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple, Union

from fusionswap.core.exceptions import (
    InvalidSecretError,
    NotTakerError,
    WrongPhaseError,
)
from fusionswap.core.hashlock import HashLock
from fusionswap.core.timelock import Phase, Timelock
from fusionswap.journal.models import EventType
from fusionswap.protocol.auction import AUCTION, AuctionFill, fill_auction
from fusionswap.protocol.capability import grant
from fusionswap.protocol.fusion_order import OrderClaim, resolver_accept_order
from fusionswap.runtime.context import HostContext
from fusionswap.runtime.custody import AssetHandle
from fusionswap.runtime.entities import EntityHandle

ESCROW = "escrow"

_DEPLOYER = grant("fusionswap.protocol.escrow")


@dataclass
class Escrow:
    order_hash:      bytes
    asset_kind:      str
    amount:          int
    safety_deposit:  int
    maker:           str
    taker:           str
    is_source_chain: bool
    timelock:        Timelock
    hashlock:        HashLock
    segment:         int
    asset:           AssetHandle
    deposit:         AssetHandle

    def phase(self, now: int) -> Phase:
        return self.timelock.current_phase(now)

    @property
    def withdraw_recipient(self) -> str:
        return self.taker if self.is_source_chain else self.maker

    @property
    def recovery_recipient(self) -> str:
        return self.maker if self.is_source_chain else self.taker

    def to_dict(self) -> Dict[str, Any]:
        return {
            "order_hash":      self.order_hash.hex(),
            "asset_kind":      self.asset_kind,
            "amount":          self.amount,
            "safety_deposit":  self.safety_deposit,
            "maker":           self.maker,
            "taker":           self.taker,
            "is_source_chain": self.is_source_chain,
            "segment":         self.segment,
            "hashlock":        self.hashlock.commitment_hex,
            "timelock":        self.timelock.to_dict(),
        }


@dataclass(frozen=True)
class EscrowRelease:
    """Where the funds of a destroyed escrow went."""

    escrow_id:         EntityHandle
    asset_recipient:   str
    amount:            int
    deposit_recipient: str
    safety_deposit:    int


# ── Deployment ────────────────────────────────────────────────

def _record_created(ctx: HostContext, escrow_id: EntityHandle, escrow: Escrow, source_id: str) -> None:
    ctx.record(EventType.ESCROW_CREATED, {
        "escrow_id":       escrow_id,
        "source_id":       source_id,
        "order_hash":      escrow.order_hash.hex(),
        "maker":           escrow.maker,
        "taker":           escrow.taker,
        "asset_kind":      escrow.asset_kind,
        "amount":          str(escrow.amount),
        "safety_deposit":  str(escrow.safety_deposit),
        "is_source_chain": escrow.is_source_chain,
        "segment":         escrow.segment,
        "hashlock":        escrow.hashlock.commitment_hex,
        "timelock":        escrow.timelock.to_dict(),
    })


def deploy_escrow_from_order(
    ctx:      HostContext,
    resolver: str,
    order_id: EntityHandle,
    now:      int,
    segment:  Optional[int] = None,
) -> Tuple[EntityHandle, OrderClaim]:
    """Source leg: claim a FusionOrder segment and lock it under the order's timelock terms."""
    claim = resolver_accept_order(ctx, _DEPLOYER, resolver, order_id, segment)
    escrow = Escrow(
        order_hash=      claim.order_hash,
        asset_kind=      claim.asset_kind,
        amount=          claim.asset.amount,
        safety_deposit=  claim.safety_deposit.amount,
        maker=           claim.maker,
        taker=           resolver,
        is_source_chain= True,
        timelock=        Timelock.create(created_at=now, **claim.timelock_terms),
        hashlock=        HashLock.create(claim.secret_hash),
        segment=         claim.quote.target_index,
        asset=           claim.asset,
        deposit=         claim.safety_deposit,
    )
    escrow_id = ctx.entities.create(ESCROW, resolver, escrow)
    _record_created(ctx, escrow_id, escrow, order_id)
    return escrow_id, claim


def deploy_escrow_from_auction(
    ctx:                  HostContext,
    resolver:             str,
    auction_id:           EntityHandle,
    now:                  int,
    finality:             int,
    exclusive_withdrawal: int,
    private_cancellation: int,
    public_withdrawal:    int = 0,
    segment:              Optional[int] = None,
) -> Tuple[EntityHandle, AuctionFill]:
    """Destination leg: the resolver funds an auction fill and locks it for the maker."""
    timelock = Timelock.create(
        created_at=           now,
        finality=             finality,
        exclusive_withdrawal= exclusive_withdrawal,
        private_cancellation= private_cancellation,
        public_withdrawal=    public_withdrawal,
    )
    auction = ctx.entities.get(auction_id, AUCTION)
    fill = fill_auction(ctx, _DEPLOYER, resolver, auction_id, now, segment)
    escrow = Escrow(
        order_hash=      auction.order_hash,
        asset_kind=      auction.asset_kind,
        amount=          fill.asset.amount,
        safety_deposit=  fill.safety_deposit.amount,
        maker=           auction.maker,
        taker=           resolver,
        is_source_chain= False,
        timelock=        timelock,
        hashlock=        HashLock.create(fill.secret_hash),
        segment=         fill.quote.target_index,
        asset=           fill.asset,
        deposit=         fill.safety_deposit,
    )
    escrow_id = ctx.entities.create(ESCROW, resolver, escrow)
    _record_created(ctx, escrow_id, escrow, auction_id)
    return escrow_id, fill


# ── Resolution ────────────────────────────────────────────────

def _release(
    ctx:             HostContext,
    escrow_id:       EntityHandle,
    escrow:          Escrow,
    asset_recipient: str,
    caller:          str,
) -> EscrowRelease:
    ctx.custody.deposit(asset_recipient, escrow.asset)
    ctx.custody.deposit(caller, escrow.deposit)
    ctx.entities.destroy(escrow_id)
    return EscrowRelease(
        escrow_id=         escrow_id,
        asset_recipient=   asset_recipient,
        amount=            escrow.amount,
        deposit_recipient= caller,
        safety_deposit=    escrow.safety_deposit,
    )


def withdraw(
    ctx:       HostContext,
    caller:    str,
    escrow_id: EntityHandle,
    secret:    Union[bytes, str],
    now:       int,
) -> EscrowRelease:
    escrow: Escrow = ctx.entities.get(escrow_id, ESCROW)
    phase = escrow.phase(now)

    if phase is Phase.EXCLUSIVE_WITHDRAWAL:
        if caller != escrow.taker:
            raise NotTakerError(
                "Only the taker can withdraw during the exclusive window",
                {"escrow_id": escrow_id, "caller": caller},
            )
    elif phase is not Phase.PUBLIC_WITHDRAWAL:
        raise WrongPhaseError(
            "Escrow is not in a withdrawal phase",
            {"escrow_id": escrow_id, "phase": phase.value, "now": now},
        )

    if not escrow.hashlock.verify(secret):
        raise InvalidSecretError("Secret does not match hash lock", {"escrow_id": escrow_id})

    release = _release(ctx, escrow_id, escrow, escrow.withdraw_recipient, caller)
    ctx.record(EventType.ESCROW_WITHDRAWN, {
        "escrow_id":         escrow_id,
        "caller":            caller,
        "phase":             phase.value,
        "secret":            (secret.encode("utf-8") if isinstance(secret, str) else bytes(secret)).hex(),
        "asset_recipient":   release.asset_recipient,
        "amount":            str(release.amount),
        "deposit_recipient": release.deposit_recipient,
        "safety_deposit":    str(release.safety_deposit),
    })
    return release


def recovery(
    ctx:       HostContext,
    caller:    str,
    escrow_id: EntityHandle,
    now:       int,
) -> EscrowRelease:
    escrow: Escrow = ctx.entities.get(escrow_id, ESCROW)
    phase = escrow.phase(now)

    if phase is Phase.PRIVATE_CANCELLATION:
        if caller != escrow.taker:
            raise NotTakerError(
                "Only the taker can recover during private cancellation",
                {"escrow_id": escrow_id, "caller": caller},
            )
    elif phase is not Phase.PUBLIC_CANCELLATION:
        raise WrongPhaseError(
            "Escrow is not in a cancellation phase",
            {"escrow_id": escrow_id, "phase": phase.value, "now": now},
        )

    release = _release(ctx, escrow_id, escrow, escrow.recovery_recipient, caller)
    ctx.record(EventType.ESCROW_RECOVERED, {
        "escrow_id":         escrow_id,
        "caller":            caller,
        "phase":             phase.value,
        "asset_recipient":   release.asset_recipient,
        "amount":            str(release.amount),
        "deposit_recipient": release.deposit_recipient,
        "safety_deposit":    str(release.safety_deposit),
    })
    return release
