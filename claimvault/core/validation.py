"""
Input shape checks shared by the registry, custody ledger and settlement engine.

Each helper returns the validated value or raises a ValidationError subclass.
"""

from claimvault.core.exceptions import (
    InvalidAmountError,
    NameTooLongError,
    ValidationError,
)
from claimvault.core.models import U64_MAX


def require_identity(value, field_name: str = "identity") -> str:
    """Identities and asset references are non-empty strings."""
    if not isinstance(value, str) or not value:
        raise ValidationError(
            f"{field_name} must be a non-empty string",
            {"got": type(value).__name__},
        )
    return value


def require_u64(value, field_name: str = "index") -> int:
    """Unsigned 64-bit integer. bool is rejected even though it is an int."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(
            f"{field_name} must be an int",
            {"got": type(value).__name__},
        )
    if value < 0 or value > U64_MAX:
        raise ValidationError(
            f"{field_name} out of u64 range",
            {field_name: value},
        )
    return value


def require_amount(value) -> int:
    """Positive u64 amount."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise InvalidAmountError(
            "amount must be an int",
            {"got": type(value).__name__},
        )
    if value <= 0:
        raise InvalidAmountError("amount must be positive", {"amount": value})
    if value > U64_MAX:
        raise InvalidAmountError("amount exceeds u64 range", {"amount": value})
    return value


def require_bounded(value, max_length: int, field_name: str, allow_empty: bool = False) -> str:
    """String metadata with an upper length bound."""
    if not isinstance(value, str):
        raise ValidationError(
            f"{field_name} must be a string",
            {"got": type(value).__name__},
        )
    if not value and not allow_empty:
        raise ValidationError(f"{field_name} must not be empty")
    if len(value) > max_length:
        raise NameTooLongError(
            f"{field_name} exceeds {max_length} characters",
            {"length": len(value)},
        )
    return value
