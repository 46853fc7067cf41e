"""
ClaimVault Custody Ledger

Pooled balances per fungible asset, and the external asset primitives
(transfer, mint) the pools are built on.
"""

from claimvault.ledger.assets import (
    AssetStore,
    CollectibleMinter,
    InMemoryAssetStore,
    InMemoryCollectibleStore,
    item_id_for,
)
from claimvault.ledger.custody import CustodyLedger, custody_store_for

__all__ = [
    "AssetStore",
    "CollectibleMinter",
    "CustodyLedger",
    "InMemoryAssetStore",
    "InMemoryCollectibleStore",
    "custody_store_for",
    "item_id_for",
]
