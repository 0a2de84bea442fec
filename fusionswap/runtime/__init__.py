"""
fusionswap runtime: in-process host collaborators.

Custody, entity arena and the transactional HostContext that the
settlement engine runs every operation inside.
"""

from fusionswap.runtime.context import HostContext
from fusionswap.runtime.custody import AssetHandle, CustodyStore, MemoryCustody
from fusionswap.runtime.entities import EntityHandle, EntityStore, MemoryEntityStore

__all__ = [
    "HostContext",
    "AssetHandle",
    "CustodyStore",
    "MemoryCustody",
    "EntityHandle",
    "EntityStore",
    "MemoryEntityStore",
]
