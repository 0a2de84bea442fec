"""
fusionswap: Basic Cross-Chain Swap

Demonstrates:
- A maker order on the source leg and a Dutch auction on the destination leg
- A resolver locking both sides in hashlocked escrows
- Secret reveal on the destination unlocking the source
- Offline verification of the signed journal
"""

import logging
import tempfile

from fusionswap.config import ProtocolConfig
from fusionswap.core.hashlock import hash_secret
from fusionswap.core.time import ManualClock
from fusionswap.journal.models import EventType
from fusionswap.journal.replay import JournalReplay
from fusionswap.settlement.engine import SettlementEngine

MAKER = "0xmaker"
RESOLVER = "0xresolver"


def main():
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    print("=" * 60)
    print("fusionswap: Basic Cross-Chain Swap")
    print("=" * 60)
    print()

    journal_dir = tempfile.mkdtemp(prefix="fusionswap-")
    clock = ManualClock(1_000)
    engine = SettlementEngine.from_config(
        ProtocolConfig(journal_path=journal_dir, signer_id="basic-swap"),
        clock,
    )

    for holder in (MAKER, RESOLVER):
        engine.fund(holder, "USDC", 10_000)
        engine.fund(holder, "NATIVE", 100)

    # 1. Maker commits to one secret and publishes both legs
    print("1. Maker publishes order and auction...")
    secret = b"maker-secret-0"
    hashes = [hash_secret(secret)]

    order_id = engine.create_fusion_order(
        maker=                MAKER,
        asset_kind=           "USDC",
        amount=               100,
        safety_deposit=       10,
        segment_hashes=       hashes,
        resolvers=            [RESOLVER],
        finality=             3600,
        exclusive_withdrawal= 1800,
        private_cancellation= 900,
    )
    auction_id = engine.create_auction(
        maker=                MAKER,
        asset_kind=           "USDC",
        starting_amount=      1000,
        ending_amount=        500,
        start_time=           clock.now(),
        end_time=             clock.now() + 900,
        decay_duration=       600,
        safety_deposit_total= 10,
        segment_hashes=       hashes,
    )
    print(f"   order   {order_id}")
    print(f"   auction {auction_id}")
    print()

    # 2. Resolver locks both legs
    print("2. Resolver deploys escrows...")
    src_id, _ = engine.deploy_escrow_from_order(RESOLVER, order_id)
    clock.advance(300)
    print(f"   auction price now: {engine.auction_price(auction_id)}")
    dst_id, fill = engine.deploy_escrow_from_auction(RESOLVER, auction_id)
    print(f"   filled {fill.asset.amount} at price {fill.price}")
    print()

    # 3. After finality the secret settles both escrows
    print("3. Settling after finality...")
    clock.advance(3600)
    print(f"   destination phase: {engine.escrow_phase(dst_id).value}")
    engine.escrow_withdraw(RESOLVER, dst_id, secret)

    withdrawn = [
        e for e in _envelopes(engine) if e.event_type == EventType.ESCROW_WITHDRAWN
    ]
    revealed = bytes.fromhex(withdrawn[0].payload["secret"])
    engine.escrow_withdraw(RESOLVER, src_id, revealed)

    for holder in (MAKER, RESOLVER):
        print(f"   {holder}: USDC={engine.balance(holder, 'USDC')} "
              f"NATIVE={engine.balance(holder, 'NATIVE')}")
    print()

    # 4. Verify the journal offline
    print("4. Verifying journal...")
    replay = JournalReplay()
    replay.load(engine.ctx.sink.path)
    summary = replay.verify()
    print(f"   entries: {summary.total_entries}")
    print(f"   chain valid: {summary.chain_valid}")
    print(f"   journal: {engine.ctx.sink.path}")


def _envelopes(engine):
    replay = JournalReplay()
    replay.load(engine.ctx.sink.path)
    return replay.envelopes


if __name__ == "__main__":
    main()
