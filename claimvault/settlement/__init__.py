"""
ClaimVault Settlement Engine

Critical Invariants:
- A claim identity settles at most once
- A claim settles only with a valid operator signature over its own fields
- A rejected claim leaves the pool and the replay guard unchanged
- Aggregate payouts never exceed a pool's balance
"""

from claimvault.settlement.engine import ClaimSettlementEngine

__all__ = ["ClaimSettlementEngine"]
