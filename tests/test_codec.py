"""
tests/test_codec.py

Claim message codec — determinism and field sensitivity.
"""

import json

import pytest

from claimvault.core.canonical import (
    DIGITAL_ASSET_CLAIM_TYPE,
    FUNGIBLE_CLAIM_TYPE,
    canonical_hash,
    canonicalize,
    encode_digital_asset_claim,
    encode_fungible_claim,
    fungible_claim_dict,
)
from claimvault.core.models import U64_MAX


BASE = ("0xc1a1", "0xa::coin::USDC", 7, 10)


class TestCanonicalEncoding:

    def test_key_order_does_not_matter(self):
        """Two dicts with the same members encode identically."""
        a = {"b": "1", "a": "2"}
        b = {"a": "2", "b": "1"}
        assert canonicalize(a) == canonicalize(b)

    def test_output_has_no_whitespace(self):
        assert canonicalize({"a": "x", "b": "y"}) == b'{"a":"x","b":"y"}'

    def test_canonical_hash_is_hex_sha256(self):
        h = canonical_hash({"a": "1"})
        assert len(h) == 64
        int(h, 16)


class TestFungibleClaimMessage:

    def test_encoding_is_deterministic(self):
        assert encode_fungible_claim(*BASE) == encode_fungible_claim(*BASE)

    def test_layout(self):
        """The signed bytes are the JCS form of the documented v1 layout."""
        decoded = json.loads(encode_fungible_claim(*BASE))
        assert decoded == {
            "type":          FUNGIBLE_CLAIM_TYPE,
            "claimant":      "0xc1a1",
            "asset_address": "0xa::coin::USDC",
            "index":         "7",
            "amount":        "10",
        }

    @pytest.mark.parametrize("position,value", [
        (0, "0xc1a2"),
        (1, "0xa::coin::USDT"),
        (2, 8),
        (3, 11),
    ])
    def test_every_field_changes_encoding(self, position, value):
        mutated = list(BASE)
        mutated[position] = value
        assert encode_fungible_claim(*mutated) != encode_fungible_claim(*BASE)

    def test_u64_max_survives_exactly(self):
        """Large integers travel as decimal strings, not floats."""
        encoded = encode_fungible_claim("0xc1a1", "A", U64_MAX, U64_MAX)
        decoded = json.loads(encoded)
        assert decoded["index"] == str(U64_MAX)
        assert int(decoded["amount"]) == U64_MAX

    def test_field_boundaries_are_unambiguous(self):
        """Moving characters between adjacent fields changes the bytes."""
        a = encode_fungible_claim("ab", "c", 1, 1)
        b = encode_fungible_claim("a", "bc", 1, 1)
        assert a != b

    def test_dict_helper_matches_encoder(self):
        assert canonicalize(fungible_claim_dict(*BASE)) == encode_fungible_claim(*BASE)


class TestDigitalAssetClaimMessage:

    ARGS = ("0xc1a1", "Genesis Badges", "first badge", "Badge #1", "ipfs://badge1")

    def test_type_tag_separates_claim_kinds(self):
        decoded = json.loads(encode_digital_asset_claim(*self.ARGS))
        assert decoded["type"] == DIGITAL_ASSET_CLAIM_TYPE
        assert decoded["collection_name"] == "Genesis Badges"

    @pytest.mark.parametrize("position", range(5))
    def test_every_field_changes_encoding(self, position):
        mutated = list(self.ARGS)
        mutated[position] = mutated[position] + "x"
        assert (
            encode_digital_asset_claim(*mutated)
            != encode_digital_asset_claim(*self.ARGS)
        )

    def test_unicode_is_stable(self):
        args = ("0xc1a1", "Colección", "día", "Ñandú", "ipfs://ü")
        assert encode_digital_asset_claim(*args) == encode_digital_asset_claim(*args)
