"""
claimvault/__init__.py

ClaimVault: Claim Authorization and Custody Engine

An administrator deposits fungible pools and enables collectible series.
An off-chain operator signs claims with Ed25519. ClaimVault verifies each
claim against its canonical (RFC 8785) encoding, settles it at most once,
and moves custody from the pool to the claimant with an audit record.
"""

import logging

__version__ = "0.3.0"

from claimvault.core.canonical import (
    canonicalize,
    encode_digital_asset_claim,
    encode_fungible_claim,
)
from claimvault.core.crypto import Ed25519KeyManager, verify_strict
from claimvault.core.exceptions import (
    AlreadyClaimedError,
    AlreadyInitializedError,
    AssetNotSupportedError,
    ClaimError,
    ClaimVaultError,
    InsufficientFundsError,
    InvalidAmountError,
    InvalidSignatureError,
    ItemAlreadyMintedError,
    LedgerError,
    NameTooLongError,
    NotAdminError,
    OperatorNotConfiguredError,
    PoolExistsError,
    ValidationError,
)
from claimvault.core.models import (
    ClaimEvent,
    ClaimHistory,
    ClaimState,
    EventType,
    ItemClaimHistory,
    MintedItem,
)
from claimvault.core.replay import ReplayGuard, derive_identity, derive_item_identity
from claimvault.runtime.config import VaultConfig
from claimvault.runtime.context import (
    VaultContext,
    get_global_vault,
    init_global_vault,
)

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    # Entry points
    "VaultContext",
    "VaultConfig",
    "ReplayGuard",
    "Ed25519KeyManager",
    # Records
    "ClaimHistory",
    "ItemClaimHistory",
    "MintedItem",
    "ClaimEvent",
    "ClaimState",
    "EventType",
    # Errors
    "ClaimVaultError",
    "ClaimError",
    "ValidationError",
    "InvalidAmountError",
    "NameTooLongError",
    "LedgerError",
    "AlreadyInitializedError",
    "PoolExistsError",
    "NotAdminError",
    "AssetNotSupportedError",
    "OperatorNotConfiguredError",
    "InvalidSignatureError",
    "AlreadyClaimedError",
    "ItemAlreadyMintedError",
    "InsufficientFundsError",
    # Helpers
    "init_global_vault",
    "get_global_vault",
    "canonicalize",
    "encode_fungible_claim",
    "encode_digital_asset_claim",
    "verify_strict",
    "derive_identity",
    "derive_item_identity",
]
