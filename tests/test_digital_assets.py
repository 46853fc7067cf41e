"""
tests/test_digital_assets.py

Collectible claims — minting, uniqueness, metadata bounds.
"""

import pytest

from claimvault.core.exceptions import (
    AlreadyClaimedError,
    AssetNotSupportedError,
    InvalidSignatureError,
    ItemAlreadyMintedError,
    LedgerError,
    NameTooLongError,
    ValidationError,
)
from claimvault.core.models import ClaimState, EventType
from claimvault.ledger.assets import item_id_for
from tests.conftest import ADMIN, CLAIMANT, COLLECTION, OTHER


ITEM = "Badge #1"
DESC = "First badge of the genesis series"
URI  = "ipfs://bafy.../1.json"


def _claim(ctx, signer, claimant=CLAIMANT, collection=COLLECTION,
           description=DESC, item_name=ITEM, uri=URI):
    sig = signer.digital_asset(claimant, collection, description, item_name, uri)
    return ctx.claim_digital_asset(claimant, collection, description, item_name, uri, sig)


class TestMinting:

    def test_mint_to_claimant(self, collectibles, signer):
        item = _claim(collectibles, signer)
        assert item.owner == CLAIMANT
        assert item.collection == COLLECTION
        assert item.name == ITEM
        assert item.uri == URI
        assert item.item_id == item_id_for(COLLECTION, ITEM)
        assert collectibles.minter.get(item.item_id) == item

    def test_history_recorded(self, collectibles, signer):
        item = _claim(collectibles, signer)
        history = collectibles.get_item_claim(CLAIMANT, COLLECTION, ITEM)
        assert history.item_id == item.item_id
        assert history.settled_at == item.minted_at

    def test_empty_description_and_uri_allowed(self, collectibles, signer):
        item = _claim(collectibles, signer, description="", uri="")
        assert item.description == ""

    def test_item_claim_event(self, collectibles, signer):
        item = _claim(collectibles, signer)
        events = collectibles.event_sink.of_type(EventType.ITEM_CLAIM)
        assert len(events) == 1
        assert events[0].item_id == item.item_id
        assert events[0].to_dict()["collection"] == COLLECTION

    def test_several_items_same_collection(self, collectibles, signer):
        for n in range(3):
            _claim(collectibles, signer, item_name=f"Badge #{n}")
        assert collectibles.minter.minted_count(COLLECTION) == 3
        assert len(collectibles.minter.owned_by(CLAIMANT)) == 3


class TestUniqueness:

    def test_replay_rejected(self, collectibles, signer):
        _claim(collectibles, signer)
        with pytest.raises(AlreadyClaimedError) as info:
            _claim(collectibles, signer)
        assert not isinstance(info.value, ItemAlreadyMintedError)
        assert info.value.state is ClaimState.REJECTED_REPLAY

    def test_same_item_other_claimant_rejected(self, collectibles, signer):
        _claim(collectibles, signer)
        with pytest.raises(ItemAlreadyMintedError):
            _claim(collectibles, signer, claimant=OTHER)
        assert collectibles.get_item_claim(OTHER, COLLECTION, ITEM) is None
        assert collectibles.minter.minted_count(COLLECTION) == 1

    def test_rejected_mint_releases_reservation(self, collectibles, signer):
        """A failed mint leaves no trace, so the identity stays claimable."""
        _claim(collectibles, signer)
        with pytest.raises(ItemAlreadyMintedError):
            _claim(collectibles, signer, claimant=OTHER)
        assert len(collectibles.replay_guard) == 1
        assert collectibles.replay_guard.get_stats()["pending"] == 0

    def test_item_names_scoped_per_collection(self, collectibles, signer):
        collectibles.enable_collection(ADMIN, "Season Two")
        _claim(collectibles, signer)
        _claim(collectibles, signer, collection="Season Two")
        assert item_id_for(COLLECTION, ITEM) != item_id_for("Season Two", ITEM)


class TestAuthorizationAndRegistry:

    @pytest.mark.parametrize("field", ["claimant", "collection", "description", "item_name", "uri"])
    def test_field_mutation_invalidates_signature(self, collectibles, signer, field):
        collectibles.enable_collection(ADMIN, COLLECTION + "x")
        request = {
            "claimant":    CLAIMANT,
            "collection":  COLLECTION,
            "description": DESC,
            "item_name":   ITEM,
            "uri":         URI,
        }
        sig = signer.digital_asset(**request)
        request[field] = request[field] + "x"
        with pytest.raises(InvalidSignatureError):
            collectibles.claim_digital_asset(signature=sig, **request)
        assert collectibles.minter.minted_count(COLLECTION) == 0

    def test_disabled_collection_rejected(self, collectibles, signer):
        collectibles.disable_collection(ADMIN, COLLECTION)
        with pytest.raises(AssetNotSupportedError):
            _claim(collectibles, signer)

    def test_unknown_collection_rejected(self, vault, signer):
        with pytest.raises(AssetNotSupportedError):
            _claim(vault, signer)


class TestMetadataBounds:

    @pytest.mark.parametrize("field,limit", [
        ("collection", 128),
        ("item_name", 128),
        ("description", 2048),
        ("uri", 512),
    ])
    def test_over_limit_rejected(self, collectibles, signer, field, limit):
        kwargs = {field: "x" * (limit + 1)}
        with pytest.raises(NameTooLongError):
            _claim(collectibles, signer, **kwargs)

    def test_item_name_at_limit_accepted(self, collectibles, signer):
        item = _claim(collectibles, signer, item_name="n" * 128)
        assert len(item.name) == 128

    def test_empty_item_name_rejected(self, collectibles, signer):
        with pytest.raises(ValidationError):
            _claim(collectibles, signer, item_name="")


def _journal_down(*args, **kwargs):
    raise LedgerError("History journal write failed: disk full")


class TestRollback:

    def test_journal_failure_burns_minted_item(self, collectibles, signer, monkeypatch):
        monkeypatch.setattr(collectibles.replay_guard, "_append", _journal_down)
        with pytest.raises(LedgerError):
            _claim(collectibles, signer)
        assert collectibles.minter.minted_count(COLLECTION) == 0
        assert collectibles.get_item_claim(CLAIMANT, COLLECTION, ITEM) is None
        assert collectibles.event_sink.of_type(EventType.ITEM_CLAIM) == []

        monkeypatch.undo()
        item = _claim(collectibles, signer)
        assert collectibles.minter.get(item.item_id).owner == CLAIMANT

    def test_failed_mint_leaves_no_history(self, collectibles, signer, monkeypatch):
        def mint_down(**kwargs):
            raise RuntimeError("minter unavailable")

        monkeypatch.setattr(collectibles.minter, "mint", mint_down)
        with pytest.raises(RuntimeError):
            _claim(collectibles, signer)
        assert collectibles.get_item_claim(CLAIMANT, COLLECTION, ITEM) is None
        assert not collectibles.replay_guard.item_claimed(item_id_for(COLLECTION, ITEM))
        assert collectibles.replay_guard.get_stats()["pending"] == 0
