"""
ClaimVault Asset Registry

Tracks which fungible assets and collectible series are open for claims.
"""

from claimvault.registry.registry import AssetRegistry

__all__ = ["AssetRegistry"]
