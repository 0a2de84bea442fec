"""
tests/helpers/swap_fixtures.py

Actors, assets and builders shared across the test suite.
"""

from typing import List, Optional

from fusionswap.config import ProtocolConfig
from fusionswap.core.hashlock import hash_secret
from fusionswap.core.time import ManualClock
from fusionswap.core.whitelist import Whitelist
from fusionswap.journal.emitter import EventSink, MemorySink
from fusionswap.runtime.context import HostContext
from fusionswap.runtime.custody import MemoryCustody
from fusionswap.runtime.entities import MemoryEntityStore
from fusionswap.settlement.engine import SettlementEngine

T0 = 1_000

MAKER    = "0xmaker"
RESOLVER = "0xresolver"
RIVAL    = "0xrival"
STRANGER = "0xstranger"

ASSET   = "USDC"
DEPOSIT = "NATIVE"

FUNDING = 1_000_000


def make_secrets(n: int, tag: str = "secret") -> List[bytes]:
    return [f"{tag}-{i}".encode() for i in range(n)]


def make_hashes(secrets: List[bytes]) -> List[bytes]:
    return [hash_secret(s) for s in secrets]


def build_engine(
    clock:  ManualClock,
    config: Optional[ProtocolConfig] = None,
    sink:   Optional[EventSink] = None,
    funded: bool = True,
) -> SettlementEngine:
    ctx = HostContext(
        clock=    clock,
        custody=  MemoryCustody(),
        entities= MemoryEntityStore(),
        sink=     sink if sink is not None else MemorySink(),
        config=   config or ProtocolConfig(),
    )
    engine = SettlementEngine(ctx)
    if funded:
        for holder in (MAKER, RESOLVER, RIVAL):
            engine.fund(holder, ASSET, FUNDING)
            engine.fund(holder, DEPOSIT, FUNDING)
    return engine


def supply_is_conserved(engine: SettlementEngine, asset_kind: str) -> bool:
    """sum(balances) + value held in live handles == minted."""
    custody = engine.ctx.custody
    held = sum(custody.holders(asset_kind).values())
    return held + custody.outstanding(asset_kind) == custody.total_supply(asset_kind)


def create_order(
    engine:    SettlementEngine,
    n:         int = 11,
    amount:    int = 100,
    deposit:   int = 10,
    resolvers=  (RESOLVER, RIVAL),
    **kwargs,
):
    """Create a FusionOrder with n segment secrets. Returns (order_id, secrets)."""
    secrets = make_secrets(n)
    params = dict(
        maker=                MAKER,
        asset_kind=           ASSET,
        amount=               amount,
        safety_deposit=       deposit,
        segment_hashes=       make_hashes(secrets),
        resolvers=            resolvers if isinstance(resolvers, Whitelist) else list(resolvers),
        finality=             3600,
        exclusive_withdrawal= 1800,
        private_cancellation= 900,
    )
    params.update(kwargs)
    return engine.create_fusion_order(**params), secrets


def create_auction(
    engine:  SettlementEngine,
    n:       int = 11,
    start:   int = T0,
    deposit: int = 10,
    **kwargs,
):
    """1000 → 500 over 600s, open for 900s. Returns (auction_id, secrets)."""
    secrets = make_secrets(n, tag="dst")
    params = dict(
        maker=                MAKER,
        asset_kind=           ASSET,
        starting_amount=      1000,
        ending_amount=        500,
        start_time=           start,
        end_time=             start + 900,
        decay_duration=       600,
        safety_deposit_total= deposit,
        segment_hashes=       make_hashes(secrets),
    )
    params.update(kwargs)
    return engine.create_auction(**params), secrets


class FailingSink(MemorySink):
    """MemorySink that raises on emit, for every event or only for `fail_on`."""

    def __init__(self, fail_on: Optional[str] = None) -> None:
        super().__init__()
        self.fail_on = fail_on

    def emit(self, event_type, payload):
        if self.fail_on is None or event_type == self.fail_on:
            raise RuntimeError("EventJournal: write failed: disk full")
        return super().emit(event_type, payload)
