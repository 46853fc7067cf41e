"""
ClaimVault Exception Hierarchy

All exceptions inherit from ClaimVaultError for easy catching.
Claim rejections inherit from ClaimError and carry the terminal
ClaimState the request ended in.
"""

from claimvault.core.models import ClaimState


class ClaimVaultError(Exception):
    """Base exception for all ClaimVault errors"""

    def __init__(self, message: str, details: dict = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self):
        if self.details:
            details_str = ", ".join(f"{k}={v}" for k, v in self.details.items())
            return f"{self.message} ({details_str})"
        return self.message


class ValidationError(ClaimVaultError):
    """Raised when input or configuration validation fails"""
    pass


class InvalidAmountError(ValidationError):
    """Raised when an amount is non-positive or outside the u64 range"""
    pass


class NameTooLongError(ValidationError):
    """Raised when collectible metadata exceeds its length bound"""
    pass


class LedgerError(ClaimVaultError):
    """Raised when history journal operations fail"""
    pass


class AlreadyInitializedError(ClaimVaultError):
    """Raised when a vault is initialized a second time"""
    pass


class PoolExistsError(ClaimVaultError):
    """Raised when a custody pool is allocated twice for one asset"""
    pass


class NotAdminError(ClaimVaultError):
    """Raised when a non-admin caller invokes an admin operation"""
    pass


class ClaimError(ClaimVaultError):
    """Base for every rejection on the claim path"""

    state: ClaimState = ClaimState.REJECTED_UNAUTHORIZED


class AssetNotSupportedError(ClaimError):
    """Raised when an asset or collection is not enabled"""

    state = ClaimState.REJECTED_UNSUPPORTED


class OperatorNotConfiguredError(ClaimError):
    """Raised when no operator public key has been set"""

    state = ClaimState.REJECTED_UNAUTHORIZED


class InvalidSignatureError(ClaimError):
    """Raised when the operator signature does not verify"""

    state = ClaimState.REJECTED_UNAUTHORIZED


class AlreadyClaimedError(ClaimError):
    """Raised when a claim identity has already been settled (replay)"""

    state = ClaimState.REJECTED_REPLAY


class ItemAlreadyMintedError(AlreadyClaimedError):
    """Raised when a (collection, item_name) pair was already minted"""
    pass


class InsufficientFundsError(ClaimError):
    """Raised when a holder or pool lacks the requested amount"""

    state = ClaimState.REJECTED_INSUFFICIENT_FUNDS
