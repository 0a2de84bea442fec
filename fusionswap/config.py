"""
Protocol configuration.

    config = ProtocolConfig.from_yaml(Path("fusionswap.yaml"))
    config = ProtocolConfig.from_dict({"price_scale": 1000})

Every key is optional; unknown keys are rejected.
"""

from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from fusionswap.core.exceptions import ConfigError, InvalidDurationError
from fusionswap.core.segments import TerminalPolicy
from fusionswap.core.timelock import Timelock
from fusionswap.core.whitelist import WILDCARD_ADDRESS


@dataclass(frozen=True)
class EscrowDurations:
    """Default timelock durations for destination-leg escrows, in seconds."""

    finality:             int = 3600
    exclusive_withdrawal: int = 1800
    public_withdrawal:    int = 0
    private_cancellation: int = 900

    def validate(self) -> None:
        # Reuses the Timelock duration rules; created_at is irrelevant here.
        Timelock.create(
            created_at=           0,
            finality=             self.finality,
            exclusive_withdrawal= self.exclusive_withdrawal,
            private_cancellation= self.private_cancellation,
            public_withdrawal=    self.public_withdrawal,
        )


@dataclass(frozen=True)
class ProtocolConfig:
    safety_deposit_asset: str              = "NATIVE"
    price_scale:          int              = 100
    terminal_policy:      TerminalPolicy   = TerminalPolicy.REMAINDER
    wildcard_address:     str              = WILDCARD_ADDRESS
    escrow_durations:     EscrowDurations  = field(default_factory=EscrowDurations)
    journal_path:         Optional[str]    = None
    key_path:             Optional[str]    = None
    signer_id:            str              = "fusionswap-engine"

    def __post_init__(self) -> None:
        if not isinstance(self.price_scale, int) or isinstance(self.price_scale, bool) \
                or self.price_scale <= 0:
            raise ConfigError(
                "price_scale must be a positive int", {"price_scale": self.price_scale}
            )
        if not self.safety_deposit_asset:
            raise ConfigError("safety_deposit_asset must not be empty")
        if not self.signer_id:
            raise ConfigError("signer_id must not be empty")

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "ProtocolConfig":
        data = dict(data or {})
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError("Unknown configuration keys", {"keys": unknown})

        if "terminal_policy" in data:
            try:
                data["terminal_policy"] = TerminalPolicy(str(data["terminal_policy"]).lower())
            except ValueError:
                raise ConfigError(
                    "terminal_policy must be one of: "
                    + ", ".join(p.value for p in TerminalPolicy),
                    {"terminal_policy": data["terminal_policy"]},
                ) from None

        if "escrow_durations" in data:
            data["escrow_durations"] = cls._load_durations(data["escrow_durations"])

        return cls(**data)

    @classmethod
    def from_yaml(cls, config_file: Path) -> "ProtocolConfig":
        """Load configuration from a YAML file."""
        config_file = Path(config_file)
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {config_file}: {exc}") from exc

        if data is not None and not isinstance(data, dict):
            raise ConfigError(
                "Configuration root must be a mapping",
                {"file": str(config_file), "type": type(data).__name__},
            )
        return cls.from_dict(data)

    @staticmethod
    def _load_durations(raw: Any) -> EscrowDurations:
        if isinstance(raw, EscrowDurations):
            durations = raw
        else:
            if not isinstance(raw, dict):
                raise ConfigError("escrow_durations must be a mapping")
            known = {f.name for f in fields(EscrowDurations)}
            unknown = sorted(set(raw) - known)
            if unknown:
                raise ConfigError("Unknown escrow_durations keys", {"keys": unknown})
            durations = EscrowDurations(**raw)
        try:
            durations.validate()
        except InvalidDurationError as exc:
            raise ConfigError(f"Invalid escrow_durations: {exc.message}", exc.details) from exc
        return durations

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["terminal_policy"] = self.terminal_policy.value
        return data
