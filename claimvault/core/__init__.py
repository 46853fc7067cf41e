"""ClaimVault core: data model, codec, crypto, replay guard."""
