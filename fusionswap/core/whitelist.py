"""
fusionswap/core/whitelist.py

Resolver whitelist as an explicit tagged variant:

    Whitelist.any()            - every caller is accepted
    Whitelist.of([a, b, ...])  - only the listed addresses

from_addresses() accepts the legacy list form, where an entry equal to the
wildcard address means "anyone".
"""

from dataclasses import dataclass
from typing import FrozenSet, Iterable, Optional

from fusionswap.core.exceptions import EmptyWhitelistError

WILDCARD_ADDRESS = "0x0"


@dataclass(frozen=True)
class Whitelist:
    addresses: Optional[FrozenSet[str]] = None

    @classmethod
    def any(cls) -> "Whitelist":
        return cls(addresses=None)

    @classmethod
    def of(cls, addresses: Iterable[str]) -> "Whitelist":
        members = frozenset(addresses)
        if not members:
            raise EmptyWhitelistError("Resolver whitelist must not be empty")
        return cls(addresses=members)

    @classmethod
    def from_addresses(
        cls,
        addresses: Iterable[str],
        wildcard: str = WILDCARD_ADDRESS,
    ) -> "Whitelist":
        members = list(addresses)
        if not members:
            raise EmptyWhitelistError("Resolver whitelist must not be empty")
        if wildcard in members:
            return cls.any()
        return cls.of(members)

    @property
    def is_any(self) -> bool:
        return self.addresses is None

    def allows(self, address: str) -> bool:
        return self.addresses is None or address in self.addresses

    def to_list(self) -> list:
        if self.addresses is None:
            return ["*"]
        return sorted(self.addresses)
