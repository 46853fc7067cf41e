"""
Shared fixtures for the ClaimVault test suite.

    operator   — the operator's Ed25519 key manager
    vault      — VaultContext with admin ADMIN, operator key set, FixedClock,
                 events captured in a MemoryEventSink
    funded     — vault with ASSET enabled and 1,000,000 units deposited
    signer     — helpers producing operator signatures for claims
"""

import pytest

from claimvault import Ed25519KeyManager, VaultContext
from claimvault.core.canonical import encode_digital_asset_claim, encode_fungible_claim
from claimvault.core.events import MemoryEventSink
from claimvault.core.time import FixedClock
from claimvault.runtime.context import reset_global_vault


ADMIN      = "0xadmin"
CLAIMANT   = "0xc1a1"
OTHER      = "0xbeef"
ASSET      = "0xa::coin::USDC"
COLLECTION = "Genesis Badges"

INITIAL_DEPOSIT = 1_000_000


class ClaimSigner:
    """Signs claim messages the way the off-chain operator service does."""

    def __init__(self, key: Ed25519KeyManager) -> None:
        self.key = key

    def fungible(self, claimant, asset_ref, index, amount) -> str:
        return self.key.sign(encode_fungible_claim(claimant, asset_ref, index, amount))

    def digital_asset(self, claimant, collection, description, item_name, uri) -> str:
        return self.key.sign(
            encode_digital_asset_claim(claimant, collection, description, item_name, uri)
        )


@pytest.fixture
def operator():
    """A fresh operator key for each test."""
    return Ed25519KeyManager.generate()


@pytest.fixture
def signer(operator):
    return ClaimSigner(operator)


@pytest.fixture
def vault(operator):
    """Vault with the operator key configured and a frozen clock."""
    ctx = VaultContext(admin=ADMIN, clock=FixedClock(), event_sink=MemoryEventSink())
    ctx.set_operator_key(ADMIN, operator.public_key_hex)
    ctx.asset_store.credit(ADMIN, ASSET, 10 * INITIAL_DEPOSIT)
    return ctx


@pytest.fixture
def funded(vault):
    """Vault with ASSET enabled and INITIAL_DEPOSIT units in the pool."""
    vault.enable_asset(ADMIN, ASSET)
    vault.deposit(ADMIN, ASSET, INITIAL_DEPOSIT)
    return vault


@pytest.fixture
def collectibles(vault):
    """Vault with COLLECTION enabled."""
    vault.enable_collection(ADMIN, COLLECTION)
    return vault


@pytest.fixture(autouse=True)
def _isolate_global_vault():
    reset_global_vault()
    yield
    reset_global_vault()
