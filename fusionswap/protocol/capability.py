"""
fusionswap/protocol/capability.py

FillCapability: the token that authorizes mutating fills.

DutchAuction fills and FusionOrder accepts move funds on behalf of the
escrow layer, so they refuse to run without a capability minted here.
Instances cannot be constructed outside grant(); a forged or copied
object fails require_capability().
"""

import weakref

from fusionswap.core.exceptions import MissingCapabilityError

_MINT_KEY = object()
_ISSUED: "weakref.WeakSet[FillCapability]" = weakref.WeakSet()


class FillCapability:
    __slots__ = ("holder", "__weakref__")

    def __init__(self, holder: str, _key: object = None) -> None:
        if _key is not _MINT_KEY:
            raise MissingCapabilityError(
                "FillCapability can only be granted by fusionswap.protocol",
                {"holder": holder},
            )
        self.holder = holder

    def __copy__(self) -> "FillCapability":
        raise MissingCapabilityError("FillCapability cannot be copied")

    def __deepcopy__(self, memo) -> "FillCapability":
        raise MissingCapabilityError("FillCapability cannot be copied")

    def __reduce__(self):
        raise MissingCapabilityError("FillCapability cannot be serialized")

    def __repr__(self) -> str:
        return f"FillCapability(holder={self.holder!r})"


def grant(holder: str) -> FillCapability:
    """Mint a capability. Called by the escrow deployer and the settlement engine."""
    capability = FillCapability(holder, _key=_MINT_KEY)
    _ISSUED.add(capability)
    return capability


def require_capability(capability: object) -> FillCapability:
    if not isinstance(capability, FillCapability) or capability not in _ISSUED:
        raise MissingCapabilityError("Operation requires a FillCapability")
    return capability
