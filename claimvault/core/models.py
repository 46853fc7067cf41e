"""
claimvault/core/models.py

ClaimVault Data Model

Every persisted or emitted record is a dataclass with a to_dict() /
from_dict() pair. to_dict() is the only serialization path: the history
journal, the event sinks and the tests all go through it.

Records:
    GlobalConfig     — admin identity + operator public key (one per vault)
    Asset            — per-AssetRef custody pool and audit counters
    ClaimHistory     — one settled fungible claim  (immutable)
    ItemClaimHistory — one settled digital-asset claim  (immutable)
    MintedItem       — a collectible minted to a claimant
    ClaimEvent / ItemClaimEvent / AdminEvent — event sink payloads

Identities are opaque non-empty strings. Amounts and indices are u64.
Timestamps use the fixed wire format produced by claimvault.core.time.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


# ─────────────────────────────────────────────────────────────
# Constants
# ─────────────────────────────────────────────────────────────

U64_MAX = 2 ** 64 - 1

# Metadata bounds of the collectible standard
MAX_COLLECTION_NAME_LENGTH = 128
MAX_ITEM_NAME_LENGTH       = 128
MAX_DESCRIPTION_LENGTH     = 2048
MAX_URI_LENGTH             = 512


# ─────────────────────────────────────────────────────────────
# Claim State Machine
# ─────────────────────────────────────────────────────────────

class ClaimState(Enum):
    """
    States of a single claim request.

    Happy path:
        RECEIVED → VALIDATED → AUTHORIZED → RESERVED → SETTLED

    Terminal failures:
        REJECTED_UNSUPPORTED         asset / collection not enabled
        REJECTED_UNAUTHORIZED        operator key unset or bad signature
        REJECTED_REPLAY              identity already settled
        REJECTED_INSUFFICIENT_FUNDS  pool cannot cover the amount
    """
    RECEIVED                    = "received"
    VALIDATED                   = "validated"
    AUTHORIZED                  = "authorized"
    RESERVED                    = "reserved"
    SETTLED                     = "settled"
    REJECTED_UNSUPPORTED        = "rejected_unsupported"
    REJECTED_UNAUTHORIZED       = "rejected_unauthorized"
    REJECTED_REPLAY             = "rejected_replay"
    REJECTED_INSUFFICIENT_FUNDS = "rejected_insufficient_funds"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL_STATES


_TERMINAL_STATES = {
    ClaimState.SETTLED,
    ClaimState.REJECTED_UNSUPPORTED,
    ClaimState.REJECTED_UNAUTHORIZED,
    ClaimState.REJECTED_REPLAY,
    ClaimState.REJECTED_INSUFFICIENT_FUNDS,
}


class EventType:
    """Event type string constants carried by every emitted event."""
    CLAIM              = "claim"
    ITEM_CLAIM         = "item_claim"
    ASSET_ENABLED      = "asset_enabled"
    ASSET_DISABLED     = "asset_disabled"
    COLLECTION_ENABLED = "collection_enabled"
    COLLECTION_DISABLED = "collection_disabled"
    POOL_CREATED       = "pool_created"
    DEPOSIT            = "deposit"
    WITHDRAW           = "withdraw"
    OPERATOR_KEY_SET   = "operator_key_set"
    ADMIN_SET          = "admin_set"


# ─────────────────────────────────────────────────────────────
# Configuration and custody records
# ─────────────────────────────────────────────────────────────

@dataclass
class GlobalConfig:
    """
    Vault-wide authority settings.

    operator_public_key is a 64-char lowercase hex Ed25519 key, or None
    until the admin sets one. Replacing it discards the previous key.
    """
    admin:               str
    operator_public_key: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "admin":               self.admin,
            "operator_public_key": self.operator_public_key,
        }


@dataclass
class Asset:
    """
    Custody pool bookkeeping for one AssetRef.

    Counters only increase, except that a reversed debit takes its amount
    back off total_claimed. total_claimed is an audit counter, never a
    balance cap: pool_balance is the custody store's balance.
    """
    asset_ref:       str
    custody_store:   str
    total_claimed:   int = 0
    total_deposited: int = 0
    total_withdrawn: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "asset_ref":       self.asset_ref,
            "custody_store":   self.custody_store,
            "total_claimed":   self.total_claimed,
            "total_deposited": self.total_deposited,
            "total_withdrawn": self.total_withdrawn,
        }


# ─────────────────────────────────────────────────────────────
# History records (their existence is the replay guard)
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ClaimHistory:
    """One settled fungible claim. Keyed by (claimant, asset_ref, index)."""
    claimant:   str
    asset_ref:  str
    index:      int
    amount:     int
    settled_at: str

    kind = "fungible"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind":       self.kind,
            "claimant":   self.claimant,
            "asset_ref":  self.asset_ref,
            "index":      self.index,
            "amount":     self.amount,
            "settled_at": self.settled_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClaimHistory":
        return cls(
            claimant=   data["claimant"],
            asset_ref=  data["asset_ref"],
            index=      data["index"],
            amount=     data["amount"],
            settled_at= data["settled_at"],
        )


@dataclass(frozen=True)
class ItemClaimHistory:
    """One settled digital-asset claim. Keyed by (claimant, collection, item_name)."""
    claimant:   str
    collection: str
    item_name:  str
    item_id:    str
    settled_at: str

    kind = "digital_asset"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind":       self.kind,
            "claimant":   self.claimant,
            "collection": self.collection,
            "item_name":  self.item_name,
            "item_id":    self.item_id,
            "settled_at": self.settled_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ItemClaimHistory":
        return cls(
            claimant=   data["claimant"],
            collection= data["collection"],
            item_name=  data["item_name"],
            item_id=    data["item_id"],
            settled_at= data["settled_at"],
        )


def history_from_dict(data: Dict[str, Any]):
    """Deserialize either history kind from its to_dict() form."""
    kind = data.get("kind")
    if kind == ClaimHistory.kind:
        return ClaimHistory.from_dict(data)
    if kind == ItemClaimHistory.kind:
        return ItemClaimHistory.from_dict(data)
    raise ValueError(f"Unknown history kind: {kind!r}")


@dataclass(frozen=True)
class MintedItem:
    """A unique collectible. item_id = hash of (collection, name)."""
    item_id:     str
    collection:  str
    name:        str
    description: str
    uri:         str
    owner:       str
    minted_at:   str

    def to_dict(self) -> Dict[str, Any]:
        return {
            "item_id":     self.item_id,
            "collection":  self.collection,
            "name":        self.name,
            "description": self.description,
            "uri":         self.uri,
            "owner":       self.owner,
            "minted_at":   self.minted_at,
        }


# ─────────────────────────────────────────────────────────────
# Events
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ClaimEvent:
    """Emitted once per settled fungible claim."""
    claimant:   str
    asset_ref:  str
    index:      int
    amount:     int
    timestamp:  str

    event_type = EventType.CLAIM

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "claimant":   self.claimant,
            "asset_ref":  self.asset_ref,
            "index":      self.index,
            "amount":     self.amount,
            "timestamp":  self.timestamp,
        }


@dataclass(frozen=True)
class ItemClaimEvent:
    """Emitted once per settled digital-asset claim."""
    claimant:   str
    collection: str
    item_name:  str
    item_id:    str
    uri:        str
    timestamp:  str

    event_type = EventType.ITEM_CLAIM

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "claimant":   self.claimant,
            "collection": self.collection,
            "item_name":  self.item_name,
            "item_id":    self.item_id,
            "uri":        self.uri,
            "timestamp":  self.timestamp,
        }


@dataclass(frozen=True)
class AdminEvent:
    """Emitted for every successful admin mutation."""
    event_type: str
    actor:      str
    timestamp:  str
    payload:    Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "event_type": self.event_type,
            "actor":      self.actor,
            "timestamp":  self.timestamp,
            "payload":    dict(self.payload),
        }
