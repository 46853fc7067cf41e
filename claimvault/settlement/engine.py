"""
Claim settlement engine — verify, reserve, pay out, record, notify.
"""

import logging
import threading
from typing import Dict, Optional, Union

from claimvault.core.authority import AssetLocks, VaultAuthority
from claimvault.core.canonical import encode_digital_asset_claim, encode_fungible_claim
from claimvault.core.crypto import verify_strict
from claimvault.core.events import EventSink, NullEventSink, emit_safely
from claimvault.core.exceptions import (
    AssetNotSupportedError,
    ClaimError,
    ClaimVaultError,
    InvalidSignatureError,
    ItemAlreadyMintedError,
    LedgerError,
    OperatorNotConfiguredError,
)
from claimvault.core.models import (
    MAX_COLLECTION_NAME_LENGTH,
    MAX_DESCRIPTION_LENGTH,
    MAX_ITEM_NAME_LENGTH,
    MAX_URI_LENGTH,
    ClaimEvent,
    ClaimHistory,
    ClaimState,
    ItemClaimEvent,
    ItemClaimHistory,
    MintedItem,
)
from claimvault.core.replay import ReplayGuard, derive_identity, derive_item_identity
from claimvault.core.time import Clock, SystemClock
from claimvault.core.validation import (
    require_amount,
    require_bounded,
    require_identity,
    require_u64,
)
from claimvault.ledger.assets import CollectibleMinter, item_id_for
from claimvault.ledger.custody import CustodyLedger
from claimvault.registry.registry import AssetRegistry


logger = logging.getLogger(__name__)

# Stats bucket for requests rejected before RECEIVED → VALIDATED completes
INVALID_REQUEST = "invalid_request"

# Stats bucket for history journal failures
LEDGER_FAILURE = "ledger_failure"


class ClaimSettlementEngine:
    """
    Settles operator-signed claims at most once.

    State machine per request (see ClaimState):
        RECEIVED → VALIDATED → AUTHORIZED → RESERVED → SETTLED

    Steps that depend only on the request (shape checks, signature
    verification) run without locks. Everything from the registry re-check
    to the history commit runs under the asset's (or collection's) lock,
    which admin operations on that asset also take.

    Within the lock the order is:
        reserve identity → check funds / item uniqueness
        → move value / mint → commit history → release lock → emit event

    A history record is committed only after value has moved, so a failed
    transfer or mint never leaves a settled claim behind. If the commit
    itself fails, the debit is reversed (or the item burned) before the
    reservation is released. Any rejection after reserve() leaves the
    replay guard and the pool exactly as they were.
    """

    def __init__(
        self,
        authority:    VaultAuthority,
        registry:     AssetRegistry,
        custody:      CustodyLedger,
        replay_guard: ReplayGuard,
        minter:       CollectibleMinter,
        locks:        AssetLocks,
        clock:        Optional[Clock] = None,
        event_sink:   Optional[EventSink] = None,
    ) -> None:
        self.authority    = authority
        self.registry     = registry
        self.custody      = custody
        self.replay_guard = replay_guard
        self.minter       = minter
        self.locks        = locks
        self.clock        = clock or SystemClock()
        self.event_sink   = event_sink or NullEventSink()

        self._stats_lock = threading.Lock()
        self._outcomes: Dict[str, int] = {}

    # ── Fungible claims ───────────────────────────────────────

    def claim_fungible(
        self,
        claimant:  str,
        asset_ref: str,
        index:     int,
        amount:    int,
        signature: Union[str, bytes],
    ) -> ClaimHistory:
        """
        Settle one fungible claim.

        Returns:
            The committed ClaimHistory.

        Raises:
            ValidationError / InvalidAmountError   malformed request
            AssetNotSupportedError                 asset not enabled
            OperatorNotConfiguredError             no operator key
            InvalidSignatureError                  signature does not verify
            AlreadyClaimedError                    identity already settled
            InsufficientFundsError                 pool cannot cover amount
            LedgerError                            history journal write failed
                                                   (payout reversed)
        """
        try:
            require_identity(claimant, "claimant")
            require_identity(asset_ref, "asset_ref")
            require_u64(index, "index")
            require_amount(amount)
            self._require_asset_enabled(asset_ref)
            self._trace(ClaimState.VALIDATED, claimant, asset_ref, index)

            self._authorize(
                encode_fungible_claim(claimant, asset_ref, index, amount),
                signature,
            )
            self._trace(ClaimState.AUTHORIZED, claimant, asset_ref, index)

            identity = derive_identity(claimant, asset_ref, index)
            with self.locks.for_asset(asset_ref):
                self._require_asset_enabled(asset_ref)
                self.replay_guard.reserve(identity)
                self._trace(ClaimState.RESERVED, claimant, asset_ref, index)
                try:
                    self.custody.check_funds(asset_ref, amount)
                    history = ClaimHistory(
                        claimant=   claimant,
                        asset_ref=  asset_ref,
                        index=      index,
                        amount=     amount,
                        settled_at= self.clock.now(),
                    )
                    self.custody.debit_to(asset_ref, claimant, amount)
                    try:
                        self.replay_guard.commit(identity, history)
                    except ClaimVaultError:
                        self.custody.reverse_debit(asset_ref, claimant, amount)
                        raise
                except Exception:
                    self.replay_guard.release(identity)
                    raise

        except ClaimVaultError as exc:
            self._reject(exc, "fungible", claimant, asset_ref, index)
            raise

        self._count(ClaimState.SETTLED.value)
        logger.info(
            "Settled claim claimant=%s asset=%s index=%d amount=%d",
            claimant, asset_ref, index, amount,
        )
        emit_safely(self.event_sink, ClaimEvent(
            claimant=  claimant,
            asset_ref= asset_ref,
            index=     index,
            amount=    amount,
            timestamp= history.settled_at,
        ))
        return history

    # ── Digital-asset claims ──────────────────────────────────

    def claim_digital_asset(
        self,
        claimant:    str,
        collection:  str,
        description: str,
        item_name:   str,
        uri:         str,
        signature:   Union[str, bytes],
    ) -> MintedItem:
        """
        Mint one collectible to the claimant.

        Same state machine as claim_fungible, with minting in place of the
        pool debit. A (collection, item_name) pair can be minted once, ever:
        a second claim for it fails with ItemAlreadyMintedError even for a
        different claimant.
        """
        try:
            require_identity(claimant, "claimant")
            require_bounded(collection, MAX_COLLECTION_NAME_LENGTH, "collection")
            require_bounded(item_name, MAX_ITEM_NAME_LENGTH, "item_name")
            require_bounded(description, MAX_DESCRIPTION_LENGTH, "description", allow_empty=True)
            require_bounded(uri, MAX_URI_LENGTH, "uri", allow_empty=True)
            self._require_collection_enabled(collection)
            self._trace(ClaimState.VALIDATED, claimant, collection, item_name)

            self._authorize(
                encode_digital_asset_claim(claimant, collection, description, item_name, uri),
                signature,
            )
            self._trace(ClaimState.AUTHORIZED, claimant, collection, item_name)

            identity = derive_item_identity(claimant, collection, item_name)
            item_id  = item_id_for(collection, item_name)
            with self.locks.for_collection(collection):
                self._require_collection_enabled(collection)
                self.replay_guard.reserve(identity)
                self._trace(ClaimState.RESERVED, claimant, collection, item_name)
                try:
                    if self.minter.exists(item_id) or self.replay_guard.item_claimed(item_id):
                        raise ItemAlreadyMintedError(
                            "Collectible already minted",
                            {"collection": collection, "item_name": item_name},
                        )
                    history = ItemClaimHistory(
                        claimant=   claimant,
                        collection= collection,
                        item_name=  item_name,
                        item_id=    item_id,
                        settled_at= self.clock.now(),
                    )
                    item = self.minter.mint(
                        collection=  collection,
                        name=        item_name,
                        description= description,
                        uri=         uri,
                        owner=       claimant,
                        minted_at=   history.settled_at,
                    )
                    try:
                        self.replay_guard.commit(identity, history)
                    except ClaimVaultError:
                        self.minter.burn(item.item_id)
                        raise
                except Exception:
                    self.replay_guard.release(identity)
                    raise

        except ClaimVaultError as exc:
            self._reject(exc, "digital_asset", claimant, collection, item_name)
            raise

        self._count(ClaimState.SETTLED.value)
        logger.info(
            "Minted %s/%s to %s (item %s...)",
            collection, item_name, claimant, item.item_id[:16],
        )
        emit_safely(self.event_sink, ItemClaimEvent(
            claimant=   claimant,
            collection= collection,
            item_name=  item_name,
            item_id=    item.item_id,
            uri=        uri,
            timestamp=  history.settled_at,
        ))
        return item

    # ── Stats ─────────────────────────────────────────────────

    def get_claim_stats(self) -> dict:
        """
        Claim outcome counts.

        Returns:
            {"total": int, "by_state": {state_value: count}}
        """
        with self._stats_lock:
            by_state = dict(self._outcomes)
        return {
            "total":    sum(by_state.values()),
            "by_state": by_state,
        }

    # ── Internal ──────────────────────────────────────────────

    def _authorize(self, message: bytes, signature) -> None:
        operator_key = self.authority.operator_public_key
        if operator_key is None:
            raise OperatorNotConfiguredError("Operator public key is not configured")
        if not verify_strict(message, signature, operator_key):
            raise InvalidSignatureError("Claim signature does not verify")

    def _require_asset_enabled(self, asset_ref: str) -> None:
        if not self.registry.is_enabled(asset_ref):
            raise AssetNotSupportedError(
                "Asset is not enabled for claims",
                {"asset_ref": asset_ref},
            )

    def _require_collection_enabled(self, collection: str) -> None:
        if not self.registry.is_collection_enabled(collection):
            raise AssetNotSupportedError(
                "Collection is not enabled for claims",
                {"collection": collection},
            )

    def _reject(self, exc: ClaimVaultError, kind: str, claimant, target, key) -> None:
        if isinstance(exc, ClaimError):
            label = exc.state.value
        elif isinstance(exc, LedgerError):
            label = LEDGER_FAILURE
        else:
            label = INVALID_REQUEST
        self._count(label)
        logger.warning(
            "Rejected %s claim claimant=%s target=%s key=%s: %s [%s]",
            kind, claimant, target, key, exc, label,
        )

    def _count(self, label: str) -> None:
        with self._stats_lock:
            self._outcomes[label] = self._outcomes.get(label, 0) + 1

    @staticmethod
    def _trace(state: ClaimState, claimant, target, key) -> None:
        logger.debug("claim %s/%s/%s → %s", claimant, target, key, state.value)
