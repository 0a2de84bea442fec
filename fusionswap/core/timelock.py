"""
fusionswap/core/timelock.py

Timelock phase machine.

Phases, in fixed order. Each is entered exactly once; the last is terminal:

    FINALITY → EXCLUSIVE_WITHDRAWAL → PUBLIC_WITHDRAWAL
             → PRIVATE_CANCELLATION → PUBLIC_CANCELLATION

Thresholds (half-open intervals, [t_i, t_i+1)):

    t1 = created_at + finality
    t2 = t1 + exclusive_withdrawal
    t3 = t2 + public_withdrawal          (0 collapses to the four-phase order)
    t4 = t3 + private_cancellation

The phase is ALWAYS recomputed from `now`. Nothing is cached and a
Timelock has no mutators.
"""

from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from fusionswap.core.exceptions import InvalidDurationError


class Phase(Enum):
    FINALITY             = "finality"
    EXCLUSIVE_WITHDRAWAL = "exclusive_withdrawal"
    PUBLIC_WITHDRAWAL    = "public_withdrawal"
    PRIVATE_CANCELLATION = "private_cancellation"
    PUBLIC_CANCELLATION  = "public_cancellation"

    @property
    def order(self) -> int:
        return _PHASE_ORDER.index(self)

    @property
    def is_withdrawal(self) -> bool:
        return self in (Phase.EXCLUSIVE_WITHDRAWAL, Phase.PUBLIC_WITHDRAWAL)

    @property
    def is_cancellation(self) -> bool:
        return self in (Phase.PRIVATE_CANCELLATION, Phase.PUBLIC_CANCELLATION)


_PHASE_ORDER: Tuple[Phase, ...] = (
    Phase.FINALITY,
    Phase.EXCLUSIVE_WITHDRAWAL,
    Phase.PUBLIC_WITHDRAWAL,
    Phase.PRIVATE_CANCELLATION,
    Phase.PUBLIC_CANCELLATION,
)


def _require_duration(name: str, value: int, allow_zero: bool) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidDurationError(
            f"{name} must be an int",
            {"type": type(value).__name__},
        )
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidDurationError(
            f"{name} must be {'non-negative' if allow_zero else 'positive'}",
            {name: value},
        )


@dataclass(frozen=True)
class Timelock:
    created_at:           int
    finality:             int
    exclusive_withdrawal: int
    public_withdrawal:    int
    private_cancellation: int

    @classmethod
    def create(
        cls,
        created_at:           int,
        finality:             int,
        exclusive_withdrawal: int,
        private_cancellation: int,
        public_withdrawal:    int = 0,
    ) -> "Timelock":
        """Validate durations and build a Timelock anchored at `created_at`."""
        _require_duration("created_at", created_at, allow_zero=True)
        _require_duration("finality", finality, allow_zero=False)
        _require_duration("exclusive_withdrawal", exclusive_withdrawal, allow_zero=False)
        _require_duration("public_withdrawal", public_withdrawal, allow_zero=True)
        _require_duration("private_cancellation", private_cancellation, allow_zero=False)
        return cls(
            created_at=           created_at,
            finality=             finality,
            exclusive_withdrawal= exclusive_withdrawal,
            public_withdrawal=    public_withdrawal,
            private_cancellation= private_cancellation,
        )

    def thresholds(self) -> Tuple[int, int, int, int]:
        t1 = self.created_at + self.finality
        t2 = t1 + self.exclusive_withdrawal
        t3 = t2 + self.public_withdrawal
        t4 = t3 + self.private_cancellation
        return t1, t2, t3, t4

    def current_phase(self, now: int) -> Phase:
        t1, t2, t3, t4 = self.thresholds()
        if now < t1:
            return Phase.FINALITY
        if now < t2:
            return Phase.EXCLUSIVE_WITHDRAWAL
        if now < t3:
            return Phase.PUBLIC_WITHDRAWAL
        if now < t4:
            return Phase.PRIVATE_CANCELLATION
        return Phase.PUBLIC_CANCELLATION

    def remaining_time(self, now: int) -> int:
        """Seconds until the next phase boundary; 0 once terminal."""
        for threshold in self.thresholds():
            if now < threshold:
                return threshold - now
        return 0

    def phase_start(self, phase: Phase) -> int:
        starts = (self.created_at,) + self.thresholds()
        return starts[phase.order]

    def schedule(self) -> List[Tuple[Phase, int]]:
        """Every phase with the timestamp it begins at, in order."""
        return [(phase, self.phase_start(phase)) for phase in _PHASE_ORDER]

    def is_withdrawal_phase(self, now: int) -> bool:
        return self.current_phase(now).is_withdrawal

    def is_cancellation_phase(self, now: int) -> bool:
        return self.current_phase(now).is_cancellation

    def to_dict(self) -> dict:
        return {
            "created_at":           self.created_at,
            "finality":             self.finality,
            "exclusive_withdrawal": self.exclusive_withdrawal,
            "public_withdrawal":    self.public_withdrawal,
            "private_cancellation": self.private_cancellation,
        }
