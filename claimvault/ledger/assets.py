"""
External asset primitives consumed by the custody ledger and settlement engine.

ClaimVault does not implement token accounting or collectible storage itself.
It talks to two narrow interfaces:

    AssetStore         transfer(asset_ref, from_holder, to_holder, amount)
                       balance_of(holder, asset_ref)
    CollectibleMinter  mint(collection, name, description, uri, owner, minted_at)
                       burn(item_id)  undoes a mint whose claim did not commit

The in-memory implementations here back the test suite and any embedding
that does not bring its own asset subsystem.
"""

import threading
from typing import Dict, List, Optional, Protocol, Tuple

from claimvault.core.canonical import canonical_hash
from claimvault.core.exceptions import InsufficientFundsError, ItemAlreadyMintedError
from claimvault.core.models import MintedItem


class AssetStore(Protocol):
    def balance_of(self, holder: str, asset_ref: str) -> int: ...

    def transfer(self, asset_ref: str, from_holder: str, to_holder: str, amount: int) -> None: ...


class CollectibleMinter(Protocol):
    def mint(
        self,
        collection:  str,
        name:        str,
        description: str,
        uri:         str,
        owner:       str,
        minted_at:   str,
    ) -> MintedItem: ...

    def exists(self, item_id: str) -> bool: ...

    def burn(self, item_id: str) -> bool: ...

    def get(self, item_id: str) -> Optional[MintedItem]: ...

    def minted_count(self, collection: str) -> int: ...


def item_id_for(collection: str, name: str) -> str:
    """Globally unique collectible id derived from (collection, name)."""
    return canonical_hash({"collection": collection, "name": name})


class InMemoryAssetStore:
    """
    Fungible balances keyed by (holder, asset_ref).

    transfer() is atomic: either both sides move or neither does.
    """

    def __init__(self) -> None:
        self._lock:     threading.Lock             = threading.Lock()
        self._balances: Dict[Tuple[str, str], int] = {}

    def balance_of(self, holder: str, asset_ref: str) -> int:
        with self._lock:
            return self._balances.get((holder, asset_ref), 0)

    def credit(self, holder: str, asset_ref: str, amount: int) -> None:
        """Create value out of thin air. Seeding only, never on the claim path."""
        if amount < 0:
            raise ValueError(f"credit amount must be non-negative, got {amount}")
        with self._lock:
            key = (holder, asset_ref)
            self._balances[key] = self._balances.get(key, 0) + amount

    def transfer(self, asset_ref: str, from_holder: str, to_holder: str, amount: int) -> None:
        if amount <= 0:
            raise ValueError(f"transfer amount must be positive, got {amount}")
        with self._lock:
            src       = (from_holder, asset_ref)
            available = self._balances.get(src, 0)
            if available < amount:
                raise InsufficientFundsError(
                    "Insufficient balance for transfer",
                    {"holder": from_holder, "asset_ref": asset_ref,
                     "available": available, "requested": amount},
                )
            dst = (to_holder, asset_ref)
            self._balances[src] = available - amount
            self._balances[dst] = self._balances.get(dst, 0) + amount


class InMemoryCollectibleStore:
    """Unique collectibles keyed by item_id_for(collection, name)."""

    def __init__(self) -> None:
        self._lock:  threading.Lock        = threading.Lock()
        self._items: Dict[str, MintedItem] = {}

    def mint(
        self,
        collection:  str,
        name:        str,
        description: str,
        uri:         str,
        owner:       str,
        minted_at:   str,
    ) -> MintedItem:
        """Raises ItemAlreadyMintedError if (collection, name) exists."""
        item_id = item_id_for(collection, name)
        with self._lock:
            if item_id in self._items:
                raise ItemAlreadyMintedError(
                    "Collectible already minted",
                    {"collection": collection, "name": name},
                )
            item = MintedItem(
                item_id=     item_id,
                collection=  collection,
                name=        name,
                description= description,
                uri=         uri,
                owner=       owner,
                minted_at=   minted_at,
            )
            self._items[item_id] = item
            return item

    def exists(self, item_id: str) -> bool:
        with self._lock:
            return item_id in self._items

    def burn(self, item_id: str) -> bool:
        """Remove a minted item. Returns False if it does not exist."""
        with self._lock:
            return self._items.pop(item_id, None) is not None

    def get(self, item_id: str) -> Optional[MintedItem]:
        with self._lock:
            return self._items.get(item_id)

    def owned_by(self, owner: str) -> List[MintedItem]:
        with self._lock:
            return [i for i in self._items.values() if i.owner == owner]

    def minted_count(self, collection: str) -> int:
        with self._lock:
            return sum(1 for i in self._items.values() if i.collection == collection)
