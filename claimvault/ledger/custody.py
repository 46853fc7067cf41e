"""
Custody Ledger — pooled balances per fungible asset.

Each pool is a holder account inside the AssetStore that only this ledger
moves value out of. Two paths debit a pool:

    withdraw()   admin recovery, back to the admin
    debit_to()   claim settlement, to the claimant  (caller holds the pool lock)

reverse_debit() undoes a debit_to() whose history commit failed, so a
settled claim and its payout always go together.

Invariants:
    total_claimed == sum of committed claim amounts for the asset
                     (seeded from the replay guard when a pool is allocated,
                     so it survives a restart on the same history journal)
    balance == total_deposited - total_withdrawn - total_claimed
                     (within one process lifetime)
"""

import logging
import threading
from typing import Dict, List, Optional

from claimvault.core.authority import AssetLocks, VaultAuthority
from claimvault.core.exceptions import (
    AssetNotSupportedError,
    InsufficientFundsError,
    PoolExistsError,
)
from claimvault.core.models import Asset
from claimvault.core.replay import ReplayGuard
from claimvault.core.validation import require_amount, require_identity
from claimvault.ledger.assets import AssetStore
from claimvault.registry.registry import AssetRegistry


logger = logging.getLogger(__name__)

CUSTODY_PREFIX = "custody:"


def custody_store_for(asset_ref: str) -> str:
    """Holder id of the pool account for asset_ref."""
    return f"{CUSTODY_PREFIX}{asset_ref}"


class CustodyLedger:
    """
    Admin-controlled custody pools.

    Every mutation takes the per-asset lock from AssetLocks, the same lock
    the settlement engine holds while it settles a claim, so a withdrawal can
    never interleave with a claim against the same pool.
    """

    def __init__(
        self,
        authority:   VaultAuthority,
        registry:    AssetRegistry,
        locks:       AssetLocks,
        asset_store: AssetStore,
        replay_guard: Optional[ReplayGuard] = None,
    ) -> None:
        self._authority   = authority
        self._registry    = registry
        self._locks       = locks
        self._store       = asset_store
        self._history     = replay_guard
        self._guard       = threading.Lock()
        self._pools: Dict[str, Asset] = {}

    # ── Pools ─────────────────────────────────────────────────

    def create_pool(self, caller: str, asset_ref: str) -> Asset:
        """Allocate a zero-balance pool. Raises PoolExistsError if allocated."""
        self._authority.require_admin(caller)
        require_identity(asset_ref, "asset_ref")
        with self._locks.for_asset(asset_ref), self._guard:
            if asset_ref in self._pools:
                raise PoolExistsError(
                    "Custody pool already allocated",
                    {"asset_ref": asset_ref},
                )
            asset = self._new_pool(asset_ref)
            self._pools[asset_ref] = asset
        logger.info("Created custody pool for %s", asset_ref)
        return _copy(asset)

    def ensure_pool(self, caller: str, asset_ref: str) -> bool:
        """Allocate the pool unless it exists. Returns True if created."""
        self._authority.require_admin(caller)
        require_identity(asset_ref, "asset_ref")
        with self._locks.for_asset(asset_ref), self._guard:
            if asset_ref in self._pools:
                return False
            self._pools[asset_ref] = self._new_pool(asset_ref)
        logger.info("Created custody pool for %s", asset_ref)
        return True

    def has_pool(self, asset_ref: str) -> bool:
        with self._guard:
            return asset_ref in self._pools

    def get_asset(self, asset_ref: str) -> Asset:
        """Snapshot of a pool's bookkeeping. Raises AssetNotSupportedError."""
        with self._guard:
            return _copy(self._pool(asset_ref))

    def list_pools(self) -> List[str]:
        with self._guard:
            return list(self._pools)

    def balance(self, asset_ref: str) -> int:
        """Current pool balance. Read-only."""
        with self._guard:
            store = self._pool(asset_ref).custody_store
        return self._store.balance_of(store, asset_ref)

    # ── Admin movements ───────────────────────────────────────

    def deposit(self, caller: str, asset_ref: str, amount: int) -> int:
        """
        Move amount from the admin's holdings into the pool.
        Returns the new pool balance.
        """
        self._authority.require_admin(caller)
        require_amount(amount)
        with self._locks.for_asset(asset_ref):
            if not self._registry.is_enabled(asset_ref):
                raise AssetNotSupportedError(
                    "Asset is not enabled",
                    {"asset_ref": asset_ref},
                )
            with self._guard:
                asset = self._pool(asset_ref)
            self._store.transfer(asset_ref, caller, asset.custody_store, amount)
            asset.total_deposited += amount
            balance = self._store.balance_of(asset.custody_store, asset_ref)
        logger.info("Deposited %d %s (pool balance %d)", amount, asset_ref, balance)
        return balance

    def withdraw(self, caller: str, asset_ref: str, amount: int) -> int:
        """
        Move amount from the pool back to the admin.
        Works for disabled assets so funds are always recoverable.
        Returns the new pool balance.
        """
        self._authority.require_admin(caller)
        require_amount(amount)
        with self._locks.for_asset(asset_ref):
            with self._guard:
                asset = self._pool(asset_ref)
            self._check_balance(asset, amount)
            self._store.transfer(asset_ref, asset.custody_store, caller, amount)
            asset.total_withdrawn += amount
            balance = self._store.balance_of(asset.custody_store, asset_ref)
        logger.info("Withdrew %d %s (pool balance %d)", amount, asset_ref, balance)
        return balance

    # ── Settlement path ───────────────────────────────────────

    def check_funds(self, asset_ref: str, amount: int) -> None:
        """Raises InsufficientFundsError if the pool cannot cover amount."""
        with self._guard:
            asset = self._pool(asset_ref)
        self._check_balance(asset, amount)

    def debit_to(self, asset_ref: str, claimant: str, amount: int) -> None:
        """
        Pay a settled claim out of the pool.

        The caller MUST hold locks.for_asset(asset_ref). Raises
        InsufficientFundsError without moving anything if the pool is short.
        """
        with self._guard:
            asset = self._pool(asset_ref)
        self._check_balance(asset, amount)
        self._store.transfer(asset_ref, asset.custody_store, claimant, amount)
        asset.total_claimed += amount

    def reverse_debit(self, asset_ref: str, claimant: str, amount: int) -> None:
        """
        Undo a debit_to() whose history record could not be committed.
        The caller MUST still hold locks.for_asset(asset_ref).
        """
        with self._guard:
            asset = self._pool(asset_ref)
        self._store.transfer(asset_ref, claimant, asset.custody_store, amount)
        asset.total_claimed -= amount
        logger.warning(
            "Reversed uncommitted debit of %d %s from %s", amount, asset_ref, claimant,
        )

    # ── Internal ──────────────────────────────────────────────

    def _new_pool(self, asset_ref: str) -> Asset:
        """Fresh pool bookkeeping; total_claimed carries over from settled history."""
        claimed = self._history.claimed_total(asset_ref) if self._history is not None else 0
        return Asset(
            asset_ref=     asset_ref,
            custody_store= custody_store_for(asset_ref),
            total_claimed= claimed,
        )

    def _pool(self, asset_ref: str) -> Asset:
        asset = self._pools.get(asset_ref)
        if asset is None:
            raise AssetNotSupportedError(
                "No custody pool for asset",
                {"asset_ref": asset_ref},
            )
        return asset

    def _check_balance(self, asset: Asset, amount: int) -> None:
        available = self._store.balance_of(asset.custody_store, asset.asset_ref)
        if available < amount:
            raise InsufficientFundsError(
                "Insufficient pool balance",
                {"asset_ref": asset.asset_ref,
                 "available": available, "requested": amount},
            )


def _copy(asset: Asset) -> Asset:
    return Asset(
        asset_ref=       asset.asset_ref,
        custody_store=   asset.custody_store,
        total_claimed=   asset.total_claimed,
        total_deposited= asset.total_deposited,
        total_withdrawn= asset.total_withdrawn,
    )
