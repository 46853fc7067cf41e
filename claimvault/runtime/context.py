"""
Vault context — the explicit handle every caller passes around.

A VaultContext owns one of each component and exposes the public API:

    admin:    enable_asset, disable_asset, enable_collection, disable_collection,
              create_pool, deposit, withdraw, set_operator_key, set_admin
    claims:   claim_fungible, claim_digital_asset
    queries:  get_admin, get_operator_key, list_assets, list_collections,
              get_pool_balance, get_total_claimed, get_asset,
              get_claim_history, get_item_claim, get_claim_stats

Lifecycle: the GlobalConfig is created once, in __init__, with the initial
admin. There is no re-initialization and no teardown.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from claimvault.core.authority import AssetLocks, VaultAuthority
from claimvault.core.events import EventSink, JsonlEventSink, NullEventSink, emit_safely
from claimvault.core.exceptions import AlreadyInitializedError
from claimvault.core.models import (
    AdminEvent,
    Asset,
    ClaimHistory,
    EventType,
    GlobalConfig,
    ItemClaimHistory,
    MintedItem,
)
from claimvault.core.replay import ReplayGuard, derive_identity, derive_item_identity
from claimvault.core.time import Clock, SystemClock
from claimvault.ledger.assets import (
    AssetStore,
    CollectibleMinter,
    InMemoryAssetStore,
    InMemoryCollectibleStore,
)
from claimvault.ledger.custody import CustodyLedger
from claimvault.registry.registry import AssetRegistry
from claimvault.runtime.config import VaultConfig
from claimvault.settlement.engine import ClaimSettlementEngine


logger = logging.getLogger(__name__)


class VaultContext:
    """Claim-authorization and custody vault."""

    def __init__(
        self,
        admin:               str,
        operator_public_key: Optional[str] = None,
        asset_store:         Optional[AssetStore] = None,
        minter:              Optional[CollectibleMinter] = None,
        clock:               Optional[Clock] = None,
        event_sink:          Optional[EventSink] = None,
        history_path:        Optional[Union[str, Path]] = None,
    ) -> None:
        self.authority    = VaultAuthority(admin, operator_public_key)
        self.locks        = AssetLocks()
        self.asset_store  = asset_store if asset_store is not None else InMemoryAssetStore()
        self.minter       = minter if minter is not None else InMemoryCollectibleStore()
        self.clock        = clock or SystemClock()
        self.event_sink   = event_sink if event_sink is not None else NullEventSink()
        self.replay_guard = ReplayGuard(journal_path=history_path)
        self.registry     = AssetRegistry(self.authority, self.locks)
        self.custody      = CustodyLedger(
            self.authority, self.registry, self.locks, self.asset_store,
            replay_guard=self.replay_guard,
        )
        self.engine       = ClaimSettlementEngine(
            authority=    self.authority,
            registry=     self.registry,
            custody=      self.custody,
            replay_guard= self.replay_guard,
            minter=       self.minter,
            locks=        self.locks,
            clock=        self.clock,
            event_sink=   self.event_sink,
        )

    @classmethod
    def from_config(
        cls,
        config:      Union[VaultConfig, str, Path],
        asset_store: Optional[AssetStore] = None,
        minter:      Optional[CollectibleMinter] = None,
        clock:       Optional[Clock] = None,
    ) -> "VaultContext":
        """
        Build a context from a VaultConfig or a YAML path.

        Applies log_level to the "claimvault" logger, opens the history
        journal and event log when configured, and enables the listed
        assets and collections as the configured admin.
        """
        if not isinstance(config, VaultConfig):
            config = VaultConfig.from_yaml(Path(config))

        logging.getLogger("claimvault").setLevel(config.log_level)

        event_sink = (
            JsonlEventSink(config.event_log_path)
            if config.event_log_path is not None
            else NullEventSink()
        )
        ctx = cls(
            admin=               config.admin,
            operator_public_key= config.operator_public_key,
            asset_store=         asset_store,
            minter=              minter,
            clock=               clock,
            event_sink=          event_sink,
            history_path=        config.history_path,
        )
        for asset_ref in config.assets:
            ctx.enable_asset(config.admin, asset_ref)
        for collection in config.collections:
            ctx.enable_collection(config.admin, collection)
        return ctx

    # ── Admin: registry ───────────────────────────────────────

    def enable_asset(self, caller: str, asset_ref: str) -> None:
        """
        Enable asset_ref for claims and allocate its custody pool if absent.
        Idempotent. A pool survives disable/enable cycles with its balance.
        """
        added = self.registry.enable(caller, asset_ref)
        self.custody.ensure_pool(caller, asset_ref)
        if added:
            self._admin_event(EventType.ASSET_ENABLED, caller, asset_ref=asset_ref)

    def disable_asset(self, caller: str, asset_ref: str) -> None:
        self.registry.disable(caller, asset_ref)
        self._admin_event(EventType.ASSET_DISABLED, caller, asset_ref=asset_ref)

    def enable_collection(self, caller: str, collection: str) -> None:
        if self.registry.enable_collection(caller, collection):
            self._admin_event(EventType.COLLECTION_ENABLED, caller, collection=collection)

    def disable_collection(self, caller: str, collection: str) -> None:
        self.registry.disable_collection(caller, collection)
        self._admin_event(EventType.COLLECTION_DISABLED, caller, collection=collection)

    # ── Admin: custody ────────────────────────────────────────

    def create_pool(self, caller: str, asset_ref: str) -> Asset:
        asset = self.custody.create_pool(caller, asset_ref)
        self._admin_event(EventType.POOL_CREATED, caller, asset_ref=asset_ref)
        return asset

    def deposit(self, caller: str, asset_ref: str, amount: int) -> int:
        """Returns the new pool balance."""
        balance = self.custody.deposit(caller, asset_ref, amount)
        self._admin_event(EventType.DEPOSIT, caller, asset_ref=asset_ref, amount=amount)
        return balance

    def withdraw(self, caller: str, asset_ref: str, amount: int) -> int:
        """Returns the new pool balance."""
        balance = self.custody.withdraw(caller, asset_ref, amount)
        self._admin_event(EventType.WITHDRAW, caller, asset_ref=asset_ref, amount=amount)
        return balance

    # ── Admin: authority ──────────────────────────────────────

    def set_operator_key(self, caller: str, public_key) -> None:
        key_hex = self.authority.set_operator_key(caller, public_key)
        self._admin_event(EventType.OPERATOR_KEY_SET, caller, operator_public_key=key_hex)

    def set_admin(self, caller: str, new_admin: str) -> None:
        self.authority.set_admin(caller, new_admin)
        self._admin_event(EventType.ADMIN_SET, caller, new_admin=new_admin)

    # ── Claims ────────────────────────────────────────────────

    def claim_fungible(self, claimant, asset_ref, index, amount, signature) -> ClaimHistory:
        return self.engine.claim_fungible(claimant, asset_ref, index, amount, signature)

    def claim_digital_asset(
        self, claimant, collection, description, item_name, uri, signature,
    ) -> MintedItem:
        return self.engine.claim_digital_asset(
            claimant, collection, description, item_name, uri, signature,
        )

    # ── Queries ───────────────────────────────────────────────

    def get_admin(self) -> str:
        return self.authority.admin

    def get_operator_key(self) -> Optional[str]:
        return self.authority.operator_public_key

    def get_config(self) -> GlobalConfig:
        return self.authority.snapshot()

    def list_assets(self) -> List[str]:
        return self.registry.list()

    def list_collections(self) -> List[str]:
        return self.registry.list_collections()

    def get_pool_balance(self, asset_ref: str) -> int:
        return self.custody.balance(asset_ref)

    def get_asset(self, asset_ref: str) -> Asset:
        return self.custody.get_asset(asset_ref)

    def get_total_claimed(self, asset_ref: str) -> int:
        return self.custody.get_asset(asset_ref).total_claimed

    def get_claim_history(self, claimant: str, asset_ref: str, index: int) -> Optional[ClaimHistory]:
        return self.replay_guard.get(derive_identity(claimant, asset_ref, index))

    def get_item_claim(self, claimant: str, collection: str, item_name: str) -> Optional[ItemClaimHistory]:
        return self.replay_guard.get(derive_item_identity(claimant, collection, item_name))

    def get_claim_stats(self) -> dict:
        return self.engine.get_claim_stats()

    # ── Internal ──────────────────────────────────────────────

    def _admin_event(self, event_type: str, actor: str, **payload) -> None:
        emit_safely(self.event_sink, AdminEvent(
            event_type= event_type,
            actor=      actor,
            timestamp=  self.clock.now(),
            payload=    payload,
        ))

    def __repr__(self) -> str:
        return (
            f"VaultContext("
            f"admin={self.get_admin()!r}, "
            f"assets={len(self.list_assets())}, "
            f"settled_claims={len(self.replay_guard)})"
        )


# ── Global Instance Helpers ───────────────────────────────────

_global_vault: Optional[VaultContext] = None


def init_global_vault(*args, **kwargs) -> VaultContext:
    """
    Initialize and return the process-wide VaultContext.

    Arguments are forwarded to VaultContext(). Raises
    AlreadyInitializedError if a global vault already exists.
    """
    global _global_vault
    if _global_vault is not None:
        raise AlreadyInitializedError(
            "Global vault already initialized",
            {"admin": _global_vault.get_admin()},
        )
    _global_vault = VaultContext(*args, **kwargs)
    logger.info("Initialized global vault with admin %s", _global_vault.get_admin())
    return _global_vault


def get_global_vault() -> Optional[VaultContext]:
    """Return the global VaultContext, or None if not yet initialized."""
    return _global_vault


def reset_global_vault() -> None:
    """Forget the global VaultContext. Intended for test isolation."""
    global _global_vault
    _global_vault = None
