"""
tests/test_escrow.py

Escrow laws:
    - withdraw needs the preimage and a withdrawal phase
    - recovery needs a cancellation phase
    - the exclusive windows belong to the taker; the public windows to anyone
    - source leg pays the taker on withdraw, destination leg pays the maker
    - the safety deposit always goes to whoever called
    - a resolved escrow no longer exists
"""

import pytest

from fusionswap.core.exceptions import (
    EntityNotFoundError,
    InvalidSecretError,
    NotTakerError,
    NotWhitelistedError,
    WrongPhaseError,
)
from fusionswap.core.timelock import Phase
from fusionswap.journal.models import EventType
from tests.helpers.swap_fixtures import (
    ASSET,
    DEPOSIT,
    FUNDING,
    MAKER,
    RESOLVER,
    RIVAL,
    STRANGER,
    T0,
    create_auction,
    create_order,
    make_hashes,
    supply_is_conserved,
)

# Source escrow deployed at T0 with 3600 / 1800 / 900 (and an optional public window).
EXCLUSIVE_START = T0 + 3600
PRIVATE_START   = T0 + 5400


@pytest.fixture
def source_escrow(engine):
    """Segment 2 of a fresh order locked in a source escrow. Returns (escrow_id, secret)."""
    order_id, secrets = create_order(engine)
    escrow_id, _ = engine.deploy_escrow_from_order(RESOLVER, order_id, segment=2)
    return escrow_id, secrets[2]


class TestDeploy:

    def test_source_escrow_holds_claim(self, engine, sink):
        order_id, secrets = create_order(engine)
        escrow_id, claim = engine.deploy_escrow_from_order(RESOLVER, order_id, segment=2)
        escrow = engine.get_escrow(escrow_id)

        assert escrow.amount == 30
        assert escrow.safety_deposit == 3
        assert escrow.taker == RESOLVER
        assert escrow.maker == MAKER
        assert escrow.is_source_chain
        assert escrow.segment == 2
        assert escrow.hashlock.verify(secrets[2])
        assert escrow.order_hash == claim.order_hash
        assert escrow.timelock.created_at == T0
        assert sink.of_type(EventType.ESCROW_CREATED)[0].payload["source_id"] == order_id

    def test_non_whitelisted_deployer_rejected(self, engine):
        order_id, _ = create_order(engine)
        with pytest.raises(NotWhitelistedError):
            engine.deploy_escrow_from_order(STRANGER, order_id)
        assert engine.get_order(order_id).remaining_amount == 100

    def test_destination_escrow_funded_by_resolver(self, engine, clock):
        auction_id, secrets = create_auction(engine)
        clock.advance(300)

        escrow_id, fill = engine.deploy_escrow_from_auction(RESOLVER, auction_id, segment=2)
        escrow = engine.get_escrow(escrow_id)

        assert fill.price == 750
        assert escrow.amount == 225
        assert escrow.safety_deposit == 3
        assert not escrow.is_source_chain
        assert escrow.hashlock.verify(secrets[2])
        assert escrow.timelock.created_at == T0 + 300
        assert escrow.timelock.finality == engine.config.escrow_durations.finality
        assert engine.balance(RESOLVER, ASSET) == FUNDING - 225

    def test_destination_durations_can_be_overridden(self, engine):
        auction_id, _ = create_auction(engine)
        escrow_id, _ = engine.deploy_escrow_from_auction(
            RESOLVER, auction_id, finality=10, exclusive_withdrawal=20,
            private_cancellation=30, public_withdrawal=5,
        )
        assert engine.get_escrow(escrow_id).timelock.thresholds() == (
            T0 + 10, T0 + 30, T0 + 35, T0 + 65,
        )

    def test_escrow_phase_view(self, engine, clock, source_escrow):
        escrow_id, _ = source_escrow
        assert engine.escrow_phase(escrow_id) is Phase.FINALITY
        assert engine.escrow_phase(escrow_id, at=EXCLUSIVE_START) is Phase.EXCLUSIVE_WITHDRAWAL
        clock.set(PRIVATE_START)
        assert engine.escrow_phase(escrow_id) is Phase.PRIVATE_CANCELLATION


class TestPhaseGating:

    @pytest.mark.parametrize("at, allowed", [
        (T0,             False),
        (T0 + 3599,      False),
        (T0 + 3600,      True),
        (T0 + 5399,      True),
        (T0 + 5400,      True),    # public withdrawal
        (T0 + 5999,      True),
        (T0 + 6000,      False),
        (T0 + 6900,      False),
    ])
    def test_withdraw_by_taker(self, engine, clock, at, allowed):
        order_id, secrets = create_order(engine, public_withdrawal=600)
        escrow_id, _ = engine.deploy_escrow_from_order(RESOLVER, order_id, segment=2)
        clock.set(at)
        if allowed:
            engine.escrow_withdraw(RESOLVER, escrow_id, secrets[2])
        else:
            with pytest.raises(WrongPhaseError):
                engine.escrow_withdraw(RESOLVER, escrow_id, secrets[2])

    @pytest.mark.parametrize("at, allowed", [
        (T0,             False),
        (T0 + 3600,      False),
        (T0 + 5400,      False),
        (T0 + 6000,      True),
        (T0 + 6899,      True),
        (T0 + 6900,      True),
    ])
    def test_recovery_by_taker(self, engine, clock, at, allowed):
        order_id, _ = create_order(engine, public_withdrawal=600)
        escrow_id, _ = engine.deploy_escrow_from_order(RESOLVER, order_id, segment=2)
        clock.set(at)
        if allowed:
            engine.escrow_recovery(RESOLVER, escrow_id)
        else:
            with pytest.raises(WrongPhaseError):
                engine.escrow_recovery(RESOLVER, escrow_id)


class TestWithdraw:

    def test_too_early_withdraw_rejected(self, engine, clock, source_escrow):
        escrow_id, secret = source_escrow
        clock.set(T0 + 100)
        with pytest.raises(WrongPhaseError):
            engine.escrow_withdraw(RESOLVER, escrow_id, secret)

    def test_taker_withdraws_source_leg(self, engine, clock, sink, source_escrow):
        escrow_id, secret = source_escrow
        clock.set(EXCLUSIVE_START + 100)

        release = engine.escrow_withdraw(RESOLVER, escrow_id, secret)

        assert release.asset_recipient == RESOLVER
        assert release.amount == 30
        assert release.deposit_recipient == RESOLVER
        assert release.safety_deposit == 3
        assert engine.balance(RESOLVER, ASSET) == FUNDING + 30
        assert engine.balance(RESOLVER, DEPOSIT) == FUNDING + 3
        assert sink.of_type(EventType.ESCROW_WITHDRAWN)[0].payload["secret"] == secret.hex()

    def test_exclusive_window_refuses_others(self, engine, clock, source_escrow):
        escrow_id, secret = source_escrow
        clock.set(EXCLUSIVE_START)
        with pytest.raises(NotTakerError):
            engine.escrow_withdraw(RIVAL, escrow_id, secret)

    def test_wrong_secret_rejected(self, engine, clock, source_escrow):
        escrow_id, _ = source_escrow
        clock.set(EXCLUSIVE_START)
        with pytest.raises(InvalidSecretError):
            engine.escrow_withdraw(RESOLVER, escrow_id, b"not-the-secret")
        assert engine.get_escrow(escrow_id).amount == 30

    def test_public_window_open_to_anyone(self, engine, clock):
        """A third party may finish the swap; the asset still goes to the taker."""
        order_id, secrets = create_order(engine, public_withdrawal=600)
        escrow_id, _ = engine.deploy_escrow_from_order(RESOLVER, order_id, segment=2)
        clock.set(PRIVATE_START + 10)

        release = engine.escrow_withdraw(STRANGER, escrow_id, secrets[2])

        assert release.asset_recipient == RESOLVER
        assert release.deposit_recipient == STRANGER
        assert engine.balance(STRANGER, DEPOSIT) == 3
        assert engine.balance(RESOLVER, ASSET) == FUNDING + 30

    def test_zero_public_window_has_no_public_withdrawal(self, engine, clock, source_escrow):
        escrow_id, secret = source_escrow
        clock.set(PRIVATE_START)
        with pytest.raises(WrongPhaseError):
            engine.escrow_withdraw(STRANGER, escrow_id, secret)

    def test_withdrawn_escrow_is_gone(self, engine, clock, source_escrow):
        escrow_id, secret = source_escrow
        clock.set(EXCLUSIVE_START)
        engine.escrow_withdraw(RESOLVER, escrow_id, secret)
        with pytest.raises(EntityNotFoundError):
            engine.get_escrow(escrow_id)
        with pytest.raises(EntityNotFoundError):
            engine.escrow_withdraw(RESOLVER, escrow_id, secret)
        with pytest.raises(EntityNotFoundError):
            engine.escrow_recovery(RESOLVER, escrow_id)


class TestRecovery:

    def test_private_cancellation_is_taker_only(self, engine, clock, source_escrow):
        escrow_id, _ = source_escrow
        clock.set(PRIVATE_START)
        with pytest.raises(NotTakerError):
            engine.escrow_recovery(RIVAL, escrow_id)

    def test_source_recovery_returns_asset_to_maker(self, engine, clock, source_escrow):
        escrow_id, _ = source_escrow
        clock.set(PRIVATE_START)

        release = engine.escrow_recovery(RESOLVER, escrow_id)

        assert release.asset_recipient == MAKER
        assert release.deposit_recipient == RESOLVER
        # 70 is still locked in the order.
        assert engine.balance(MAKER, ASSET) == FUNDING - 70
        assert engine.balance(RESOLVER, DEPOSIT) == FUNDING + 3

    def test_public_cancellation_open_to_anyone(self, engine, clock, source_escrow):
        escrow_id, _ = source_escrow
        clock.set(T0 + 6300)
        release = engine.escrow_recovery(STRANGER, escrow_id)
        assert release.asset_recipient == MAKER
        assert engine.balance(STRANGER, DEPOSIT) == 3

    def test_withdraw_refused_once_cancellation_starts(self, engine, clock, source_escrow):
        escrow_id, secret = source_escrow
        clock.set(PRIVATE_START)
        with pytest.raises(WrongPhaseError):
            engine.escrow_withdraw(RESOLVER, escrow_id, secret)

    def test_destination_recovery_returns_asset_to_taker(self, engine, clock):
        auction_id, _ = create_auction(engine)
        escrow_id, _ = engine.deploy_escrow_from_auction(RESOLVER, auction_id, segment=2)
        clock.set(T0 + 5400)

        release = engine.escrow_recovery(RESOLVER, escrow_id)

        assert release.asset_recipient == RESOLVER
        assert engine.balance(RESOLVER, ASSET) == FUNDING
        assert engine.balance(RESOLVER, DEPOSIT) == FUNDING


class TestCrossChainSwap:

    def test_full_swap_settles_both_legs(self, engine, clock, sink):
        """
        Maker sells 100 USDC on the source leg for an auction fill on the
        destination leg. The secret revealed on the destination withdraw
        unlocks the source escrow.
        """
        order_id, secrets = create_order(engine, n=1, amount=100, deposit=10)
        auction_id, _ = create_auction(engine, n=1, segment_hashes=make_hashes(secrets))

        src_id, _ = engine.deploy_escrow_from_order(RESOLVER, order_id)
        clock.advance(300)
        dst_id, fill = engine.deploy_escrow_from_auction(RESOLVER, auction_id)
        assert fill.price == 750

        # Maker shares the secret once both escrows are visible.
        clock.set(T0 + 300 + 3600)
        engine.escrow_withdraw(RESOLVER, dst_id, secrets[0])

        revealed = bytes.fromhex(sink.of_type(EventType.ESCROW_WITHDRAWN)[0].payload["secret"])
        engine.escrow_withdraw(RESOLVER, src_id, revealed)

        assert engine.balance(MAKER, ASSET) == FUNDING - 100 + 750
        assert engine.balance(RESOLVER, ASSET) == FUNDING + 100 - 750
        assert engine.balance(MAKER, DEPOSIT) == FUNDING - 10
        assert engine.balance(RESOLVER, DEPOSIT) == FUNDING + 10
        assert supply_is_conserved(engine, ASSET)
        assert supply_is_conserved(engine, DEPOSIT)
        assert engine.ctx.custody.outstanding(ASSET) == 0
