"""
fusionswap/core/segments.py

Segmented fill ledger - the accounting shape shared by FusionOrder and
DutchAuction.

A total quantity is split into N-1 equal segments, addressed by N secret
hashes. Index N-1 is the completing ("full fill") index.

Rules:
    target            = N-1 when no index is requested, else the index (< N)
    ordering          = target must be strictly greater than last_filled
    segments_covered  = target - (last_filled or -1), capped at the segments left
    owed              = segments_covered * (total // (N-1))
    completing fill   = target >= N-2; owed = total - already_filled
                        (absorbs the truncation remainder, so fills sum to total)
    N == 1            = the sole fill is always the whole amount

Terminal policy - what N-1 means once partial fills exist:
    REMAINDER   fill the remainder and complete           (default)
    REJECT      TerminalSegmentError; complete by reaching N-2 instead

quote() is pure. apply() advances FillState with a compare-and-swap on
last_filled, so a quote computed against stale state cannot be applied.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Tuple

from fusionswap.core.exceptions import (
    AmountOverflowError,
    EmptySegmentHashesError,
    IndivisibleAmountError,
    InvalidAmountError,
    InvalidSegmentIndexError,
    SegmentAlreadyFilledError,
    TerminalSegmentError,
)
from fusionswap.core.hashlock import validate_commitment

U64_MAX = (1 << 64) - 1


class TerminalPolicy(Enum):
    REMAINDER = "remainder"
    REJECT    = "reject"


def require_amount(name: str, value: int, allow_zero: bool = False) -> int:
    """Validate a u64 amount."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(
            f"{name} must be an int", {"type": type(value).__name__}
        )
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidAmountError(f"{name} must be positive", {name: value})
    if value > U64_MAX:
        raise AmountOverflowError(f"{name} exceeds u64", {name: value})
    return value


@dataclass(frozen=True)
class SegmentSet:
    """Ordered, non-empty list of 32-byte secret-hash commitments."""

    hashes: Tuple[bytes, ...]

    @classmethod
    def create(cls, hashes: Iterable[bytes]) -> "SegmentSet":
        items = tuple(validate_commitment(h) for h in hashes)
        if not items:
            raise EmptySegmentHashesError("Segment hash list must not be empty")
        return cls(hashes=items)

    @property
    def count(self) -> int:
        return len(self.hashes)

    @property
    def terminal_index(self) -> int:
        return len(self.hashes) - 1

    def hash_at(self, index: int) -> bytes:
        if not 0 <= index < len(self.hashes):
            raise InvalidSegmentIndexError(
                "Segment index out of range",
                {"index": index, "segments": len(self.hashes)},
            )
        return self.hashes[index]

    def require_divisible(self, name: str, amount: int) -> None:
        """Amounts split across N-1 segments must divide evenly."""
        parts = self.count - 1
        if parts > 0 and amount % parts != 0:
            raise IndivisibleAmountError(
                f"{name} must divide evenly into {parts} segments",
                {name: amount, "segments": parts},
            )


@dataclass
class FillState:
    last_filled_segment: Optional[int] = None

    @property
    def has_partial_history(self) -> bool:
        return self.last_filled_segment is not None


@dataclass(frozen=True)
class FillQuote:
    """Result of one fill request against the ledger. Nothing is mutated."""

    target_index:        int
    previous_last:       Optional[int]
    segments_covered:    int
    amount:              int
    safety_deposit:      int
    completes:           bool


class SegmentedFillLedger:
    """Stateless rules engine over a SegmentSet; FillState lives on the entity."""

    def __init__(
        self,
        segment_count: int,
        policy: TerminalPolicy = TerminalPolicy.REMAINDER,
    ) -> None:
        if segment_count < 1:
            raise EmptySegmentHashesError("Segment hash list must not be empty")
        self.segment_count = segment_count
        self.policy        = policy

    @property
    def parts(self) -> int:
        """Number of real (equal) segments; 0 for the single-hash case."""
        return self.segment_count - 1

    def resolve_target(self, last_filled: Optional[int], segment: Optional[int]) -> int:
        terminal = self.segment_count - 1

        if segment is None:
            target = terminal
        else:
            if isinstance(segment, bool) or not isinstance(segment, int):
                raise InvalidSegmentIndexError(
                    "Segment index must be an int", {"segment": segment}
                )
            if not 0 <= segment < self.segment_count:
                raise InvalidSegmentIndexError(
                    "Segment index out of range",
                    {"segment": segment, "segments": self.segment_count},
                )
            target = segment

        if last_filled is not None and target <= last_filled:
            raise SegmentAlreadyFilledError(
                "Segment already filled",
                {"requested": target, "last_filled": last_filled},
            )

        if (
            self.segment_count > 1
            and target == terminal
            and last_filled is not None
            and self.policy is TerminalPolicy.REJECT
        ):
            raise TerminalSegmentError(
                "Completing segment cannot be used after partial fills",
                {"requested": target, "last_filled": last_filled},
            )
        return target

    def filled_portion(self, total: int, last_filled: Optional[int]) -> int:
        """Quantity already released out of `total` given last_filled."""
        if last_filled is None:
            return 0
        if self.segment_count == 1:
            return total
        return min(total, (last_filled + 1) * (total // self.parts))

    def quote(
        self,
        last_filled:    Optional[int],
        segment:        Optional[int],
        amount_total:   int,
        deposit_total:  int,
    ) -> FillQuote:
        target = self.resolve_target(last_filled, segment)

        if self.segment_count == 1:
            return FillQuote(
                target_index=     target,
                previous_last=    last_filled,
                segments_covered= 1,
                amount=           amount_total,
                safety_deposit=   deposit_total,
                completes=        True,
            )

        already   = -1 if last_filled is None else last_filled
        remaining = self.parts - (already + 1)
        covered   = min(target - already, remaining)
        completes = target >= self.segment_count - 2

        if completes:
            amount  = amount_total - self.filled_portion(amount_total, last_filled)
            deposit = deposit_total - self.filled_portion(deposit_total, last_filled)
        else:
            amount  = covered * (amount_total // self.parts)
            deposit = covered * (deposit_total // self.parts)

        return FillQuote(
            target_index=     target,
            previous_last=    last_filled,
            segments_covered= covered,
            amount=           amount,
            safety_deposit=   deposit,
            completes=        completes,
        )

    @staticmethod
    def apply(state: FillState, quote: FillQuote) -> None:
        """Advance `state` to the quoted target. Compare-and-swap on last_filled."""
        if state.last_filled_segment != quote.previous_last:
            raise SegmentAlreadyFilledError(
                "Fill state changed since the quote was computed",
                {
                    "quoted_against": quote.previous_last,
                    "last_filled":    state.last_filled_segment,
                },
            )
        state.last_filled_segment = quote.target_index
