"""
Vault authority: admin identity, operator key and the per-asset
mutual-exclusion domain shared by every mutating component.
"""

import logging
import threading
from typing import Dict, Optional

from claimvault.core.crypto import normalize_public_key_hex
from claimvault.core.exceptions import NotAdminError, ValidationError
from claimvault.core.models import GlobalConfig
from claimvault.core.validation import require_identity


logger = logging.getLogger(__name__)


class VaultAuthority:
    """
    Holds the GlobalConfig and answers "is this caller the admin?".

    Created exactly once per vault with its initial admin. Both fields are
    replaced only through set_admin() / set_operator_key(), which are
    themselves admin-only.
    """

    def __init__(self, admin: str, operator_public_key: Optional[str] = None) -> None:
        require_identity(admin, "admin")
        self._lock   = threading.Lock()
        self._config = GlobalConfig(admin=admin)
        if operator_public_key is not None:
            self._config.operator_public_key = _checked_key(operator_public_key)

    @property
    def admin(self) -> str:
        with self._lock:
            return self._config.admin

    @property
    def operator_public_key(self) -> Optional[str]:
        with self._lock:
            return self._config.operator_public_key

    def snapshot(self) -> GlobalConfig:
        with self._lock:
            return GlobalConfig(
                admin=               self._config.admin,
                operator_public_key= self._config.operator_public_key,
            )

    def require_admin(self, caller: str) -> None:
        """Raises NotAdminError unless caller is the current admin."""
        with self._lock:
            admin = self._config.admin
        if caller != admin:
            raise NotAdminError(
                "Caller is not the vault admin",
                {"caller": caller},
            )

    def set_admin(self, caller: str, new_admin: str) -> None:
        self.require_admin(caller)
        require_identity(new_admin, "new_admin")
        with self._lock:
            self._config.admin = new_admin
        logger.info("Admin changed from %s to %s", caller, new_admin)

    def set_operator_key(self, caller: str, public_key) -> str:
        """Replace the operator key. Returns the normalized hex key."""
        self.require_admin(caller)
        key_hex = _checked_key(public_key)
        with self._lock:
            self._config.operator_public_key = key_hex
        logger.info("Operator key set to %s...", key_hex[:16])
        return key_hex


def _checked_key(public_key) -> str:
    try:
        return normalize_public_key_hex(public_key)
    except ValueError as exc:
        raise ValidationError(f"Invalid operator public key: {exc}") from exc


class AssetLocks:
    """
    One threading.Lock per asset (or collection) key, created on demand.

    Settlement and admin operations on the same key serialize; unrelated
    keys never contend.
    """

    def __init__(self) -> None:
        self._guard: threading.Lock            = threading.Lock()
        self._locks: Dict[str, threading.Lock] = {}

    def for_asset(self, asset_ref: str) -> threading.Lock:
        return self._get(f"asset:{asset_ref}")

    def for_collection(self, collection: str) -> threading.Lock:
        return self._get(f"collection:{collection}")

    def _get(self, key: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock
