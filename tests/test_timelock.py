"""
tests/test_timelock.py

Timelock laws:
    - phases appear in fixed order and each boundary is half-open
    - a zero public-withdrawal window collapses to the four-phase order
    - the phase is a pure function of `now`
    - durations are validated at construction
"""

import pytest

from fusionswap.core.exceptions import ClockRewindError, InvalidDurationError
from fusionswap.core.time import ManualClock, SystemClock, journal_timestamp
from fusionswap.core.timelock import Phase, Timelock


@pytest.fixture
def four_phase():
    return Timelock.create(
        created_at=1_000, finality=3600, exclusive_withdrawal=1800, private_cancellation=900
    )


@pytest.fixture
def five_phase():
    return Timelock.create(
        created_at=1_000, finality=100, exclusive_withdrawal=200,
        private_cancellation=300, public_withdrawal=50,
    )


class TestPhaseOrdering:

    def test_thresholds_are_cumulative(self, five_phase):
        assert five_phase.thresholds() == (1_100, 1_300, 1_350, 1_650)

    @pytest.mark.parametrize("now, phase", [
        (1_000, Phase.FINALITY),
        (1_099, Phase.FINALITY),
        (1_100, Phase.EXCLUSIVE_WITHDRAWAL),
        (1_299, Phase.EXCLUSIVE_WITHDRAWAL),
        (1_300, Phase.PUBLIC_WITHDRAWAL),
        (1_349, Phase.PUBLIC_WITHDRAWAL),
        (1_350, Phase.PRIVATE_CANCELLATION),
        (1_649, Phase.PRIVATE_CANCELLATION),
        (1_650, Phase.PUBLIC_CANCELLATION),
        (10**9, Phase.PUBLIC_CANCELLATION),
    ])
    def test_half_open_boundaries(self, five_phase, now, phase):
        assert five_phase.current_phase(now) is phase

    def test_zero_public_window_skips_public_withdrawal(self, four_phase):
        """With no public window, exclusive withdrawal hands straight to private cancellation."""
        assert four_phase.current_phase(6_399) is Phase.EXCLUSIVE_WITHDRAWAL
        assert four_phase.current_phase(6_400) is Phase.PRIVATE_CANCELLATION
        seen = {four_phase.current_phase(t) for t in range(1_000, 8_000, 50)}
        assert Phase.PUBLIC_WITHDRAWAL not in seen

    def test_phase_never_goes_backwards(self, five_phase):
        orders = [five_phase.current_phase(t).order for t in range(900, 2_000)]
        assert orders == sorted(orders)

    def test_before_creation_is_finality(self, four_phase):
        assert four_phase.current_phase(0) is Phase.FINALITY


class TestRemainingTime:

    def test_remaining_until_next_boundary(self, four_phase):
        assert four_phase.remaining_time(1_100) == 3_500
        assert four_phase.remaining_time(4_600) == 1_800

    def test_remaining_is_zero_when_terminal(self, four_phase):
        assert four_phase.remaining_time(7_300) == 0
        assert four_phase.remaining_time(99_999) == 0

    def test_schedule_lists_every_phase_start(self, five_phase):
        assert five_phase.schedule() == [
            (Phase.FINALITY, 1_000),
            (Phase.EXCLUSIVE_WITHDRAWAL, 1_100),
            (Phase.PUBLIC_WITHDRAWAL, 1_300),
            (Phase.PRIVATE_CANCELLATION, 1_350),
            (Phase.PUBLIC_CANCELLATION, 1_650),
        ]

    def test_phase_predicates(self, five_phase):
        assert five_phase.is_withdrawal_phase(1_320)
        assert not five_phase.is_withdrawal_phase(1_000)
        assert five_phase.is_cancellation_phase(1_400)
        assert five_phase.is_cancellation_phase(5_000)


class TestDurationValidation:

    @pytest.mark.parametrize("field", ["finality", "exclusive_withdrawal", "private_cancellation"])
    def test_zero_required_duration_rejected(self, field):
        params = dict(created_at=0, finality=1, exclusive_withdrawal=1, private_cancellation=1)
        params[field] = 0
        with pytest.raises(InvalidDurationError):
            Timelock.create(**params)

    def test_negative_public_window_rejected(self):
        with pytest.raises(InvalidDurationError):
            Timelock.create(0, 1, 1, 1, public_withdrawal=-1)

    def test_non_int_duration_rejected(self):
        with pytest.raises(InvalidDurationError):
            Timelock.create(0, 1.5, 1, 1)

    def test_timelock_is_immutable(self, four_phase):
        with pytest.raises(AttributeError):
            four_phase.finality = 1


class TestClocks:

    def test_manual_clock_advances(self):
        clock = ManualClock(10)
        assert clock.advance(5) == 15
        assert clock.set(20) == 20
        assert clock.now() == 20

    def test_manual_clock_refuses_rewind(self):
        clock = ManualClock(10)
        with pytest.raises(ClockRewindError):
            clock.set(9)
        with pytest.raises(ClockRewindError):
            clock.advance(-1)
        assert clock.now() == 10

    def test_system_clock_is_non_decreasing(self):
        clock = SystemClock()
        readings = [clock.now() for _ in range(100)]
        assert readings == sorted(readings)

    def test_journal_timestamp_format(self):
        ts = journal_timestamp()
        assert ts.endswith("Z")
        assert len(ts) == len("2026-01-01T00:00:00.000Z")
