"""
ClaimVault: Claim Message Codec — RFC 8785 (JCS)

This is the ONLY canonicalization permitted in ClaimVault.
All signing, verification and replay-identity hashing MUST use this module.

RFC 8785: https://www.rfc-editor.org/rfc/rfc8785

Claim message layouts (version 1, locked):

    fungible
        {"type":          "claimvault.fungible_claim.v1",
         "claimant":      <identity>,
         "asset_address": <asset ref>,
         "index":         "<decimal u64>",
         "amount":        "<decimal u64>"}

    digital asset
        {"type":            "claimvault.digital_asset_claim.v1",
         "claimant":        <identity>,
         "collection_name": <str>,
         "description":     <str>,
         "item_name":       <str>,
         "uri":             <str>}

JCS sorts members and fixes string escaping, so two equal claims always
produce the same bytes and a change to any field changes them. The "type"
member separates the two claim kinds. Integers are carried as decimal
strings so that u64 values round-trip through any JSON implementation.
"""

import hashlib

try:
    import jcs as _jcs
except ImportError as exc:
    raise ImportError(
        "ClaimVault requires the 'jcs' package for RFC 8785 compliance.\n"
        "Install with: pip install jcs\n"
        f"Original error: {exc}"
    ) from exc


FUNGIBLE_CLAIM_TYPE      = "claimvault.fungible_claim.v1"
DIGITAL_ASSET_CLAIM_TYPE = "claimvault.digital_asset_claim.v1"


def canonicalize(obj: dict) -> bytes:
    """
    Encode a dict to RFC 8785 canonical JSON bytes.

    Output is deterministic regardless of key insertion order.
    All values must be JSON-primitive (str, int, bool, None, list, dict).

    Returns:
        UTF-8 encoded canonical JSON bytes, suitable for signing.
    """
    return _jcs.canonicalize(obj)


def canonical_hash(obj: dict) -> str:
    """
    SHA-256 of the RFC 8785 canonical form.

    Used for replay identities and collectible item ids.

    Returns:
        Lowercase hex-encoded SHA-256 digest (64 characters).
    """
    return hashlib.sha256(canonicalize(obj)).hexdigest()


def fungible_claim_dict(claimant: str, asset_address: str, index: int, amount: int) -> dict:
    """The exact dict the operator signs for a fungible claim."""
    return {
        "type":          FUNGIBLE_CLAIM_TYPE,
        "claimant":      claimant,
        "asset_address": asset_address,
        "index":         str(index),
        "amount":        str(amount),
    }


def digital_asset_claim_dict(
    claimant:        str,
    collection_name: str,
    description:     str,
    item_name:       str,
    uri:             str,
) -> dict:
    """The exact dict the operator signs for a digital-asset claim."""
    return {
        "type":            DIGITAL_ASSET_CLAIM_TYPE,
        "claimant":        claimant,
        "collection_name": collection_name,
        "description":     description,
        "item_name":       item_name,
        "uri":             uri,
    }


def encode_fungible_claim(claimant: str, asset_address: str, index: int, amount: int) -> bytes:
    """Canonical bytes of a fungible claim message."""
    return canonicalize(fungible_claim_dict(claimant, asset_address, index, amount))


def encode_digital_asset_claim(
    claimant:        str,
    collection_name: str,
    description:     str,
    item_name:       str,
    uri:             str,
) -> bytes:
    """Canonical bytes of a digital-asset claim message."""
    return canonicalize(
        digital_asset_claim_dict(claimant, collection_name, description, item_name, uri)
    )
