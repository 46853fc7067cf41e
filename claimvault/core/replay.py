"""
claimvault/core/replay.py

Replay Guard — at-most-once settlement of claim identities.

Protocol Laws enforced here:
    1. Identity → derive_identity() / derive_item_identity(), SHA-256 over JCS
                  with a domain tag. Pure functions, no state.
    2. Reserve  → reserve(key) is atomic: fails if the key is committed
                  OR already reserved by a concurrent claim.
    3. Commit   → commit(key, history) writes the journal line FIRST,
                  then advances in-memory state. A failed write leaves the
                  key reserved so the caller can release it.
    4. Release  → release(key) drops a reservation. The guard is then
                  exactly as it was before reserve().
    5. Restore  → on construction the journal is replayed line by line.
                  Duplicate identities, duplicate item ids, and malformed or
                  ill-typed records raise LedgerError.

The existence of a committed record IS the replay guard. Records are
never deleted or overwritten.

Two indexes are derived from the records and rebuilt on restore:
    item_id → identity      an item is minted once, whoever claims it
    asset_ref → amount sum  seeds Asset.total_claimed for new pools
"""

import json
import logging
import threading
from pathlib import Path
from typing import Any, Dict, List, Optional, Set, Union

from claimvault.core.canonical import canonical_hash, canonicalize
from claimvault.core.exceptions import (
    AlreadyClaimedError,
    ItemAlreadyMintedError,
    LedgerError,
    ValidationError,
)
from claimvault.core.models import ClaimHistory, ItemClaimHistory, history_from_dict
from claimvault.core.time import TIMESTAMP_RE
from claimvault.core.validation import require_amount, require_identity, require_u64


logger = logging.getLogger(__name__)

CLAIM_IDENTITY_DOMAIN = "claimvault.claim_identity.v1"
ITEM_IDENTITY_DOMAIN  = "claimvault.item_claim_identity.v1"

History = Union[ClaimHistory, ItemClaimHistory]


# ─────────────────────────────────────────────────────────────
# Identity derivation
# ─────────────────────────────────────────────────────────────

def derive_identity(claimant: str, asset_ref: str, index: int) -> str:
    """
    Deterministic 64-char hex key for a fungible claim.

    SHA-256(JCS({"domain", "claimant", "asset_ref", "index"})). The index
    travels as a decimal string, matching the claim message codec.
    """
    return canonical_hash({
        "domain":    CLAIM_IDENTITY_DOMAIN,
        "claimant":  claimant,
        "asset_ref": asset_ref,
        "index":     str(index),
    })


def derive_item_identity(claimant: str, collection: str, item_name: str) -> str:
    """Deterministic 64-char hex key for a digital-asset claim."""
    return canonical_hash({
        "domain":     ITEM_IDENTITY_DOMAIN,
        "claimant":   claimant,
        "collection": collection,
        "item_name":  item_name,
    })


def identity_of(history: History) -> str:
    """The replay key a history record is stored under."""
    if isinstance(history, ClaimHistory):
        return derive_identity(history.claimant, history.asset_ref, history.index)
    return derive_item_identity(history.claimant, history.collection, history.item_name)


def check_history(history: History) -> None:
    """
    Field-level checks for a record read back from the journal.
    Raises ValidationError on a wrong type or out-of-range value.
    """
    require_identity(history.claimant, "claimant")
    if isinstance(history, ClaimHistory):
        require_identity(history.asset_ref, "asset_ref")
        require_u64(history.index, "index")
        require_amount(history.amount)
    else:
        require_identity(history.collection, "collection")
        require_identity(history.item_name, "item_name")
        require_identity(history.item_id, "item_id")
    if not isinstance(history.settled_at, str) or not TIMESTAMP_RE.match(history.settled_at):
        raise ValidationError(
            "settled_at is not a wire-format timestamp",
            {"settled_at": history.settled_at},
        )


# ─────────────────────────────────────────────────────────────
# Replay Guard
# ─────────────────────────────────────────────────────────────

class ReplayGuard:
    """
    Associative store DeterministicKey → history record, with reservations.

    Usage:
        guard = ReplayGuard()                          # in-memory
        guard = ReplayGuard(journal_path="h.jsonl")    # persistent

        key = derive_identity(claimant, asset_ref, index)
        guard.reserve(key)          # AlreadyClaimedError on replay
        try:
            ...                     # move value
            guard.commit(key, history)   # on LedgerError, undo the move
        except Exception:
            guard.release(key)
            raise

    Thread-safe via internal lock (single-process only).
    """

    def __init__(self, journal_path: Optional[Union[str, Path]] = None) -> None:
        self._lock:     threading.Lock     = threading.Lock()
        self._records:  Dict[str, History] = {}
        self._pending:  Set[str]           = set()
        self._item_ids: Dict[str, str]     = {}
        self._claimed:  Dict[str, int]     = {}
        self._journal:  Optional[Path]     = Path(journal_path) if journal_path else None

        if self._journal is not None:
            self._journal.parent.mkdir(parents=True, exist_ok=True)
            self._restore()

    # ── Queries ───────────────────────────────────────────────

    def exists(self, key: str) -> bool:
        """True if a committed record exists for key. Reservations do not count."""
        with self._lock:
            return key in self._records

    def get(self, key: str) -> Optional[History]:
        with self._lock:
            return self._records.get(key)

    def is_pending(self, key: str) -> bool:
        with self._lock:
            return key in self._pending

    def __len__(self) -> int:
        with self._lock:
            return len(self._records)

    def records(self) -> List[History]:
        """Committed records in commit order."""
        with self._lock:
            return list(self._records.values())

    def item_claimed(self, item_id: str) -> bool:
        """True if any claimant has a committed claim for item_id."""
        with self._lock:
            return item_id in self._item_ids

    def claimed_total(self, asset_ref: str) -> int:
        """Sum of committed fungible claim amounts for asset_ref."""
        with self._lock:
            return self._claimed.get(asset_ref, 0)

    # ── Reservation protocol ──────────────────────────────────

    def reserve(self, key: str) -> None:
        """
        Atomically claim key for settlement.
        Raises AlreadyClaimedError if key is committed or reserved.
        """
        with self._lock:
            if key in self._records:
                raise AlreadyClaimedError(
                    "Claim already settled",
                    {"identity": key[:16]},
                )
            if key in self._pending:
                raise AlreadyClaimedError(
                    "Claim settlement already in progress",
                    {"identity": key[:16]},
                )
            self._pending.add(key)

    def release(self, key: str) -> None:
        """Drop a reservation. No-op if key is not reserved."""
        with self._lock:
            self._pending.discard(key)

    def commit(self, key: str, history: History) -> None:
        """
        Persist history under a reserved key.

        Raises LedgerError if key was not reserved or the journal write
        fails, and ItemAlreadyMintedError if another identity already holds
        the item. On failure the reservation is kept; the caller releases it.
        """
        with self._lock:
            if key not in self._pending:
                raise LedgerError(
                    "Commit without reservation",
                    {"identity": key[:16]},
                )
            if isinstance(history, ItemClaimHistory) and history.item_id in self._item_ids:
                raise ItemAlreadyMintedError(
                    "Collectible already claimed",
                    {"collection": history.collection, "item_name": history.item_name},
                )
            self._append(history)
            self._pending.discard(key)
            self._index(key, history)

    def record(self, key: str, history: History) -> None:
        """
        Check-then-create in one step.
        Raises AlreadyClaimedError if key already exists.
        """
        self.reserve(key)
        try:
            self.commit(key, history)
        except Exception:
            self.release(key)
            raise

    # ── Journal ───────────────────────────────────────────────

    def _append(self, history: History) -> None:
        """
        Append one record as a newline-terminated canonical JSON line.
        Raises LedgerError on I/O failure. State MUST NOT advance if this raises.
        """
        if self._journal is None:
            return
        try:
            with open(self._journal, "a", encoding="utf-8") as f:
                f.write(canonicalize(history.to_dict()).decode("utf-8") + "\n")
        except OSError as exc:
            raise LedgerError(f"History journal write failed: {exc}") from exc

    def _restore(self) -> None:
        """
        Rebuild committed records from the journal.
        Called once at construction. Safe on empty or missing file.
        """
        if not self._journal.exists():
            return

        with open(self._journal, "r", encoding="utf-8") as f:
            for line_num, raw in enumerate(f, 1):
                raw = raw.strip()
                if not raw:
                    continue
                try:
                    history = history_from_dict(json.loads(raw))
                    check_history(history)
                except (ValueError, KeyError, TypeError, AttributeError, ValidationError) as e:
                    raise LedgerError(
                        f"Malformed history record at journal line {line_num}: {e}"
                    ) from e

                key = identity_of(history)
                if key in self._records:
                    raise LedgerError(
                        f"Duplicate claim identity at journal line {line_num}",
                        {"identity": key[:16]},
                    )
                if isinstance(history, ItemClaimHistory) and history.item_id in self._item_ids:
                    raise LedgerError(
                        f"Duplicate item id at journal line {line_num}",
                        {"item_id": history.item_id[:16]},
                    )
                self._index(key, history)

        logger.info(
            "Restored %d claim records from %s", len(self._records), self._journal
        )

    def _index(self, key: str, history: History) -> None:
        """Add a committed record and its derived indexes. Caller holds the lock."""
        self._records[key] = history
        if isinstance(history, ItemClaimHistory):
            self._item_ids[history.item_id] = key
        else:
            self._claimed[history.asset_ref] = (
                self._claimed.get(history.asset_ref, 0) + history.amount
            )

    def get_stats(self) -> Dict[str, Any]:
        """Return current guard state snapshot."""
        with self._lock:
            kinds: Dict[str, int] = {}
            for history in self._records.values():
                kinds[history.kind] = kinds.get(history.kind, 0) + 1
            return {
                "committed":    len(self._records),
                "pending":      len(self._pending),
                "by_kind":      kinds,
                "journal_path": str(self._journal) if self._journal else None,
            }
