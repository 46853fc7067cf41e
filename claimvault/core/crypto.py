"""
claimvault/core/crypto.py

Operator signing and strict Ed25519 verification.

Key contracts:
    public_key_hex          : @property → 64-char lowercase hex  (NO parentheses)
    sign(data)              : bytes → base64url str, no padding
    verify_strict(...)      : module function, verifies with ONLY a public key
                              This is the function the settlement engine calls.

Strict verification rejects, on top of plain Ed25519:
    - public keys that are non-canonical (y >= p) or of small order
    - signatures whose R is non-canonical or of small order
    - signatures whose scalar S is not reduced (S >= L)  → no malleability

Every malformed input returns False. verify_strict() never raises.
"""

import base64
import logging
from pathlib import Path
from typing import Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)
from cryptography.hazmat.primitives.serialization import (
    Encoding,
    NoEncryption,
    PrivateFormat,
    PublicFormat,
    load_pem_private_key,
)


logger = logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────
# Curve constants
# ─────────────────────────────────────────────────────────────

# Field prime p = 2^255 - 19
_P = 2 ** 255 - 19

# Group order L = 2^252 + 27742317777372353535851937790883648493
_L = 2 ** 252 + 27742317777372353535851937790883648493

_PUBLIC_KEY_LENGTH = 32
_SIGNATURE_LENGTH  = 64

# y-coordinates (sign bit cleared) of the eight small-order points.
# 0 and p-1 cover order 4/2, 1 is the identity, the two large values are
# the order-8 points; their negations share the same y.
_SMALL_ORDER_Y = frozenset(
    int.from_bytes(bytes.fromhex(h), "little") & ((1 << 255) - 1)
    for h in (
        "0000000000000000000000000000000000000000000000000000000000000000",
        "0100000000000000000000000000000000000000000000000000000000000000",
        "ecffffffffffffffffffffffffffffffffffffffffffffffffffffffffffff7f",
        "26e8958fc2b227b045c3f489f2ef98f0d5dfac05d3c63339b13802886d53fc05",
        "c7176a703d4dd84fba3c0b760d10670f2a2053fa2c39ccc64ec7fd7792ac037a",
    )
)


# ─────────────────────────────────────────────────────────────
# Encoding helpers
# ─────────────────────────────────────────────────────────────

def encode_signature(raw_sig: bytes) -> str:
    """Raw 64-byte signature → base64url, no '=' padding."""
    return base64.urlsafe_b64encode(raw_sig).rstrip(b"=").decode("ascii")


def decode_signature(signature: Union[str, bytes]) -> bytes:
    """
    Accepts raw bytes or base64url text (padding optional).
    Raises ValueError if the result is not exactly 64 bytes.
    """
    if isinstance(signature, (bytes, bytearray)):
        raw_sig = bytes(signature)
    elif isinstance(signature, str):
        padding = 4 - len(signature) % 4
        raw_sig = base64.urlsafe_b64decode(signature + "=" * (padding % 4))
    else:
        raise ValueError(f"unsupported signature type {type(signature).__name__}")
    if len(raw_sig) != _SIGNATURE_LENGTH:
        raise ValueError(f"signature must be {_SIGNATURE_LENGTH} bytes, got {len(raw_sig)}")
    return raw_sig


def decode_public_key(public_key: Union[str, bytes]) -> bytes:
    """
    Accepts 32 raw bytes or 64 hex chars.
    Raises ValueError on any other shape.
    """
    if isinstance(public_key, (bytes, bytearray)):
        raw_pub = bytes(public_key)
    elif isinstance(public_key, str):
        if len(public_key) != _PUBLIC_KEY_LENGTH * 2:
            raise ValueError(
                f"public key hex must be {_PUBLIC_KEY_LENGTH * 2} chars, got {len(public_key)}"
            )
        raw_pub = bytes.fromhex(public_key)
    else:
        raise ValueError(f"unsupported public key type {type(public_key).__name__}")
    if len(raw_pub) != _PUBLIC_KEY_LENGTH:
        raise ValueError(f"public key must be {_PUBLIC_KEY_LENGTH} bytes, got {len(raw_pub)}")
    return raw_pub


def normalize_public_key_hex(public_key: Union[str, bytes]) -> str:
    """
    Canonical 64-char lowercase hex form of a public key.
    Raises ValueError if the key is malformed or fails the strict point checks.
    """
    raw_pub = decode_public_key(public_key)
    if not is_strict_point(raw_pub):
        raise ValueError("public key is non-canonical or of small order")
    Ed25519PublicKey.from_public_bytes(raw_pub)
    return raw_pub.hex()


def is_strict_point(encoded: bytes) -> bool:
    """True if a 32-byte point encoding is canonical and not of small order."""
    y = int.from_bytes(encoded, "little") & ((1 << 255) - 1)
    if y >= _P:
        return False
    return y not in _SMALL_ORDER_Y


# ─────────────────────────────────────────────────────────────
# Strict verification
# ─────────────────────────────────────────────────────────────

def verify_strict(
    message:    bytes,
    signature:  Union[str, bytes],
    public_key: Union[str, bytes],
) -> bool:
    """
    Verify an Ed25519 signature with strict (non-malleable) rules.

    Args:
        message:    Canonical claim bytes.
        signature:  64 raw bytes or base64url string.
        public_key: 32 raw bytes or 64-char hex string.

    Returns:
        True if the signature is valid and passes every strict check.
        False for ANY failure. Never raises.
    """
    try:
        raw_pub = decode_public_key(public_key)
        raw_sig = decode_signature(signature)
    except (ValueError, TypeError):
        return False

    if not is_strict_point(raw_pub):
        return False
    if not is_strict_point(raw_sig[:32]):
        return False
    if int.from_bytes(raw_sig[32:], "little") >= _L:
        return False

    try:
        Ed25519PublicKey.from_public_bytes(raw_pub).verify(raw_sig, message)
    except (InvalidSignature, ValueError, TypeError):
        return False
    return True


# ─────────────────────────────────────────────────────────────
# Operator key manager
# ─────────────────────────────────────────────────────────────

class Ed25519KeyManager:
    """
    Operator Ed25519 key manager.

    Public surface:
        Ed25519KeyManager.generate()                 → new random key
        Ed25519KeyManager.from_file(path)            → load PEM private key
        Ed25519KeyManager.from_private_bytes(seed)   → load from raw 32-byte seed

        key.public_key_hex          (@property) → 64-char lowercase hex
        key.sign(data: bytes)                   → base64url str (no padding)
        key.verify(data, sig)                   → bool, strict rules
        key.save(path)                          → write PEM private key
        key.private_bytes_raw()                 → raw 32-byte seed
    """

    def __init__(self, private_key: Ed25519PrivateKey) -> None:
        self._private_key:    Ed25519PrivateKey = private_key
        self._public_key:     Ed25519PublicKey  = private_key.public_key()
        self._public_key_hex: str = (
            self._public_key
            .public_bytes(Encoding.Raw, PublicFormat.Raw)
            .hex()
        )

    # ── Construction ──────────────────────────────────────────

    @classmethod
    def generate(cls) -> "Ed25519KeyManager":
        """Generate a new random Ed25519 key pair."""
        return cls(Ed25519PrivateKey.generate())

    @classmethod
    def from_file(cls, path: Path) -> "Ed25519KeyManager":
        """
        Load an Ed25519 private key from a PEM file.
        Raises FileNotFoundError if path does not exist.
        Raises ValueError if the file is not a valid Ed25519 PEM key.
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Key file not found: {path}")
        try:
            private_key = load_pem_private_key(path.read_bytes(), password=None)
        except Exception as exc:
            raise ValueError(
                f"Failed to load Ed25519 key from {path}: {exc}"
            ) from exc
        if not isinstance(private_key, Ed25519PrivateKey):
            raise ValueError(
                f"Key file {path} does not contain an Ed25519 private key"
            )
        return cls(private_key)

    @classmethod
    def from_private_bytes(cls, seed: bytes) -> "Ed25519KeyManager":
        """
        Load an Ed25519 key from a raw 32-byte seed.
        Raises ValueError if seed is not exactly 32 bytes.
        """
        if len(seed) != 32:
            raise ValueError(
                f"Ed25519 seed must be 32 bytes, got {len(seed)}"
            )
        return cls(Ed25519PrivateKey.from_private_bytes(seed))

    # ── Public Key ────────────────────────────────────────────

    @property
    def public_key_hex(self) -> str:
        """
        64-character lowercase hex string of the Ed25519 public key (32 bytes).

        THIS IS A @property: access as key.public_key_hex (NO parentheses).
        """
        return self._public_key_hex

    # ── Signing ───────────────────────────────────────────────

    def sign(self, data: bytes) -> str:
        """
        Sign data with Ed25519. Returns base64url string, no '=' padding.

        Args:
            data: Raw bytes to sign. Caller is responsible for canonicalization
                  (claim messages come from claimvault.core.canonical).
        """
        return encode_signature(self._private_key.sign(data))

    def verify(self, data: bytes, signature: Union[str, bytes]) -> bool:
        """Strictly verify a signature against this key. Never raises."""
        return verify_strict(data, signature, self._public_key_hex)

    # ── Persistence ───────────────────────────────────────────

    def save(self, path: Path) -> None:
        """
        Write the private key to disk as a PEM file.
        Creates parent directories if needed.
        Raises RuntimeError on write failure.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        try:
            pem = self._private_key.private_bytes(
                encoding=             Encoding.PEM,
                format=               PrivateFormat.PKCS8,
                encryption_algorithm= NoEncryption(),
            )
            path.write_bytes(pem)
        except OSError as exc:
            raise RuntimeError(
                f"Failed to save Ed25519 key to {path}: {exc}"
            ) from exc
        logger.info("Saved operator key %s... to %s", self._public_key_hex[:16], path)

    def private_bytes_raw(self) -> bytes:
        """
        Return the raw 32-byte private key seed.
        Use only for secure backup. Never log or transmit.
        """
        return self._private_key.private_bytes(
            encoding=             Encoding.Raw,
            format=               PrivateFormat.Raw,
            encryption_algorithm= NoEncryption(),
        )

    def __repr__(self) -> str:
        return (
            f"Ed25519KeyManager(public_key_hex={self._public_key_hex[:16]}...)"
        )
