"""
tests/test_conservation.py

Value conservation over long random operation sequences:

    pool balance == deposits - withdrawals - claimed
    claimant holdings == sum of settled claim amounts
    admin holdings + pool + claimants == value ever credited
"""

import random

import pytest

from claimvault.core.exceptions import ClaimVaultError
from claimvault.ledger.custody import custody_store_for
from tests.conftest import ADMIN, ASSET, INITIAL_DEPOSIT


CLAIMANTS = ["0xc1", "0xc2", "0xc3"]


@pytest.mark.parametrize("seed", range(5))
def test_random_sequence_conserves_value(funded, signer, seed):
    rng       = random.Random(seed)
    credited  = 10 * INITIAL_DEPOSIT
    next_index = {c: 0 for c in CLAIMANTS}
    settled   = {c: 0 for c in CLAIMANTS}

    for _ in range(300):
        roll = rng.random()
        try:
            if roll < 0.15:
                funded.deposit(ADMIN, ASSET, rng.randint(1, 100_000))
            elif roll < 0.25:
                funded.withdraw(ADMIN, ASSET, rng.randint(1, 200_000))
            elif roll < 0.35 and any(next_index.values()):
                # replay of an earlier index
                claimant = rng.choice([c for c in CLAIMANTS if next_index[c]])
                index    = rng.randrange(next_index[claimant])
                amount   = rng.randint(1, 50_000)
                funded.claim_fungible(
                    claimant, ASSET, index, amount,
                    signer.fungible(claimant, ASSET, index, amount),
                )
            else:
                claimant = rng.choice(CLAIMANTS)
                index    = next_index[claimant]
                amount   = rng.randint(1, 150_000)
                funded.claim_fungible(
                    claimant, ASSET, index, amount,
                    signer.fungible(claimant, ASSET, index, amount),
                )
                next_index[claimant] += 1
                settled[claimant] += amount
        except ClaimVaultError:
            pass

        asset = funded.get_asset(ASSET)
        pool  = funded.get_pool_balance(ASSET)
        assert pool >= 0
        assert pool == asset.total_deposited - asset.total_withdrawn - asset.total_claimed

    store = funded.asset_store
    for claimant in CLAIMANTS:
        assert store.balance_of(claimant, ASSET) == settled[claimant]

    held = (
        store.balance_of(ADMIN, ASSET)
        + store.balance_of(custody_store_for(ASSET), ASSET)
        + sum(store.balance_of(c, ASSET) for c in CLAIMANTS)
    )
    assert held == credited
    assert funded.get_total_claimed(ASSET) == sum(settled.values())
