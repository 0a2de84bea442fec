"""
fusionswap Exception Hierarchy

All exceptions inherit from FusionSwapError for easy catching.

Every error carries:
    code  - stable numeric code (1:1 with the class, see error_for_code())
    kind  - ErrorKind family: VALIDATION / AUTHORIZATION / STATE / ARITHMETIC

Code ranges:
    1xx  Validation     malformed parameters, surfaced at construction
    2xx  Authorization  wrong caller for the current role or phase
    3xx  State          entity missing, segment consumed, wrong phase ...
    4xx  Arithmetic     u64 overflow
"""

from enum import Enum
from typing import Dict, Type


class ErrorKind(Enum):
    VALIDATION    = "validation"
    AUTHORIZATION = "authorization"
    STATE         = "state"
    ARITHMETIC    = "arithmetic"


class FusionSwapError(Exception):
    """Base exception for all fusionswap errors"""

    code: int = 0
    kind: ErrorKind = ErrorKind.STATE

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"[{self.code}] {self.message} ({details_str})"
        return f"[{self.code}] {self.message}"


# ── Validation ────────────────────────────────────────────────

class ValidationError(FusionSwapError):
    """Raised when construction parameters are malformed"""
    code = 100
    kind = ErrorKind.VALIDATION


class InvalidAmountError(ValidationError):
    """Zero, negative or non-integer amount"""
    code = 101


class EmptySegmentHashesError(ValidationError):
    """Segment hash list is empty"""
    code = 102


class IndivisibleAmountError(ValidationError):
    """Amount does not split evenly into N-1 segments"""
    code = 103


class InvalidAuctionWindowError(ValidationError):
    """Auction prices, start/end times or decay window are inconsistent"""
    code = 104


class InvalidCommitmentError(ValidationError):
    """Hash commitment is empty, all-zero or the wrong length"""
    code = 105


class InvalidDurationError(ValidationError):
    """Timelock phase duration is negative, zero where forbidden, or not an int"""
    code = 106


class InvalidSegmentIndexError(ValidationError):
    """Requested segment index is outside 0..N-1"""
    code = 107


class EmptyWhitelistError(ValidationError):
    """Resolver whitelist has no entries"""
    code = 108


class ConfigError(ValidationError):
    """Protocol configuration file or mapping is invalid"""
    code = 109


# ── Authorization ─────────────────────────────────────────────

class AuthorizationError(FusionSwapError):
    """Raised when the caller may not perform the operation"""
    code = 200
    kind = ErrorKind.AUTHORIZATION


class NotMakerError(AuthorizationError):
    """Only the maker may perform this operation"""
    code = 201


class NotWhitelistedError(AuthorizationError):
    """Caller is not in the resolver whitelist"""
    code = 202


class NotTakerError(AuthorizationError):
    """Only the escrow taker may act in the current phase"""
    code = 203


class MissingCapabilityError(AuthorizationError):
    """Fill/accept invoked without a valid FillCapability"""
    code = 204


# ── State ─────────────────────────────────────────────────────

class StateError(FusionSwapError):
    """Raised when the entity's lifecycle state forbids the operation"""
    code = 300
    kind = ErrorKind.STATE


class EntityNotFoundError(StateError):
    """Entity handle does not resolve (never created, or destroyed)"""
    code = 301


class SegmentAlreadyFilledError(StateError):
    """Target segment is not strictly after the last filled segment"""
    code = 302


class TerminalSegmentError(StateError):
    """Completing segment requested after partial fills under the REJECT policy"""
    code = 303


class WrongPhaseError(StateError):
    """Timelock is not in a phase that permits the operation"""
    code = 304


class AuctionNotStartedError(StateError):
    """Fill attempted before the auction start time"""
    code = 305


class AuctionExpiredError(StateError):
    """Fill attempted at or after the auction end time"""
    code = 306


class AutoCancelNotReachedError(StateError):
    """Resolver cancel attempted before auto_cancel_after (or none is set)"""
    code = 307


class InvalidSecretError(StateError):
    """Secret does not match the escrow hash lock"""
    code = 308


class InsufficientBalanceError(StateError):
    """Payer balance is lower than the requested withdrawal"""
    code = 309


class HandleConsumedError(StateError):
    """AssetHandle was already deposited, joined or drained"""
    code = 310


class ClockRewindError(StateError):
    """Clock was asked to move backwards"""
    code = 311


class AssetMismatchError(StateError):
    """Handles of different asset kinds were combined"""
    code = 312


class JournalWriteError(StateError):
    """The event sink refused an event; the operation was rolled back"""
    code = 313


# ── Arithmetic ────────────────────────────────────────────────

class ArithmeticFault(FusionSwapError):
    """Raised when an amount leaves the u64 range"""
    code = 400
    kind = ErrorKind.ARITHMETIC


class AmountOverflowError(ArithmeticFault):
    """Amount or balance exceeds 2**64 - 1"""
    code = 401


_ALL_ERRORS = (
    FusionSwapError,
    ValidationError,
    InvalidAmountError,
    EmptySegmentHashesError,
    IndivisibleAmountError,
    InvalidAuctionWindowError,
    InvalidCommitmentError,
    InvalidDurationError,
    InvalidSegmentIndexError,
    EmptyWhitelistError,
    ConfigError,
    AuthorizationError,
    NotMakerError,
    NotWhitelistedError,
    NotTakerError,
    MissingCapabilityError,
    StateError,
    EntityNotFoundError,
    SegmentAlreadyFilledError,
    TerminalSegmentError,
    WrongPhaseError,
    AuctionNotStartedError,
    AuctionExpiredError,
    AutoCancelNotReachedError,
    InvalidSecretError,
    InsufficientBalanceError,
    HandleConsumedError,
    ClockRewindError,
    AssetMismatchError,
    JournalWriteError,
    ArithmeticFault,
    AmountOverflowError,
)

ERROR_CODES: Dict[int, Type[FusionSwapError]] = {
    cls.code: cls for cls in _ALL_ERRORS
}


def error_for_code(code: int) -> Type[FusionSwapError]:
    """Return the error class registered under a numeric code."""
    try:
        return ERROR_CODES[code]
    except KeyError:
        raise KeyError(f"Unknown fusionswap error code: {code}") from None
