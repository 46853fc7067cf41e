"""
ClaimVault Runtime - configuration and the vault context handle.
"""

from claimvault.runtime.config import VaultConfig
from claimvault.runtime.context import (
    VaultContext,
    get_global_vault,
    init_global_vault,
    reset_global_vault,
)

__all__ = [
    "VaultConfig",
    "VaultContext",
    "get_global_vault",
    "init_global_vault",
    "reset_global_vault",
]
