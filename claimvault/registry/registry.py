"""
Asset Registry — which fungible assets and collectible series may be claimed.

Enabling is idempotent: re-enabling an enabled entry is a no-op and never
creates a duplicate. Enumeration preserves first-enable order.
"""

import logging
import threading
from typing import Dict, List

from claimvault.core.authority import AssetLocks, VaultAuthority
from claimvault.core.exceptions import AssetNotSupportedError
from claimvault.core.models import MAX_COLLECTION_NAME_LENGTH
from claimvault.core.validation import require_bounded, require_identity


logger = logging.getLogger(__name__)


class _OrderedSet:
    """Insertion-ordered membership with O(1) lookup."""

    def __init__(self) -> None:
        self._items: Dict[str, None] = {}

    def add(self, item: str) -> bool:
        if item in self._items:
            return False
        self._items[item] = None
        return True

    def remove(self, item: str) -> bool:
        if item not in self._items:
            return False
        del self._items[item]
        return True

    def __contains__(self, item: str) -> bool:
        return item in self._items

    def to_list(self) -> List[str]:
        return list(self._items)


class AssetRegistry:
    """
    Enabled fungible AssetRefs and collection names.

    Mutations are admin-only and run under the same per-asset lock as
    deposits, withdrawals and claim settlement.
    """

    def __init__(self, authority: VaultAuthority, locks: AssetLocks) -> None:
        self._authority   = authority
        self._locks       = locks
        self._guard       = threading.Lock()
        self._assets      = _OrderedSet()
        self._collections = _OrderedSet()

    # ── Fungible assets ───────────────────────────────────────

    def enable(self, caller: str, asset_ref: str) -> bool:
        """Returns True if newly enabled, False if it already was."""
        self._authority.require_admin(caller)
        require_identity(asset_ref, "asset_ref")
        with self._locks.for_asset(asset_ref), self._guard:
            added = self._assets.add(asset_ref)
        if added:
            logger.info("Enabled asset %s", asset_ref)
        return added

    def disable(self, caller: str, asset_ref: str) -> None:
        """Raises AssetNotSupportedError if asset_ref is not enabled."""
        self._authority.require_admin(caller)
        with self._locks.for_asset(asset_ref), self._guard:
            if not self._assets.remove(asset_ref):
                raise AssetNotSupportedError(
                    "Asset is not enabled",
                    {"asset_ref": asset_ref},
                )
        logger.info("Disabled asset %s", asset_ref)

    def is_enabled(self, asset_ref: str) -> bool:
        with self._guard:
            return asset_ref in self._assets

    def list(self) -> List[str]:
        with self._guard:
            return self._assets.to_list()

    # ── Collections ───────────────────────────────────────────

    def enable_collection(self, caller: str, collection: str) -> bool:
        """Returns True if newly enabled. Raises NameTooLongError on long names."""
        self._authority.require_admin(caller)
        require_bounded(collection, MAX_COLLECTION_NAME_LENGTH, "collection")
        with self._locks.for_collection(collection), self._guard:
            added = self._collections.add(collection)
        if added:
            logger.info("Enabled collection %s", collection)
        return added

    def disable_collection(self, caller: str, collection: str) -> None:
        self._authority.require_admin(caller)
        with self._locks.for_collection(collection), self._guard:
            if not self._collections.remove(collection):
                raise AssetNotSupportedError(
                    "Collection is not enabled",
                    {"collection": collection},
                )
        logger.info("Disabled collection %s", collection)

    def is_collection_enabled(self, collection: str) -> bool:
        with self._guard:
            return collection in self._collections

    def list_collections(self) -> List[str]:
        with self._guard:
            return self._collections.to_list()
